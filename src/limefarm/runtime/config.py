# src/limefarm/runtime/config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

from limefarm.ledger.constants import (
    BPS_DENOMINATOR,
    DEFAULT_DEPOSIT_TAX_BPS,
    DEFAULT_HARVEST_CYCLE_SECONDS,
    DEFAULT_HARVEST_WINDOW_SECONDS,
    DEFAULT_REWARD_TOKEN,
    DEFAULT_WITHDRAW_TAX_BPS,
    FARM_ACCOUNT_ID,
)
from limefarm.runtime.harvest_window import HarvestWindowPolicy

Json = Dict[str, Any]


def _as_int(v: Any, default: int) -> int:
    if v is None or isinstance(v, bool):
        return int(default)
    try:
        return int(v)
    except (TypeError, ValueError):
        return int(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


@dataclass(frozen=True)
class FarmConfig:
    mode: str  # "dev" | "testnet" | "prod"

    # Farm owner (may create pools) and the tax beneficiary.
    owner: str
    beneficiary: str
    reward_token: str

    deposit_tax_bps: int
    withdraw_tax_bps: int

    harvest_cycle_seconds: int
    harvest_window_seconds: int
    harvest_offset_seconds: int

    # Single SQLite DB file path for farm state snapshots.
    db_path: str

    api_host: str
    api_port: int

    log_level: str

    def harvest_policy(self) -> HarvestWindowPolicy:
        return HarvestWindowPolicy(
            cycle_seconds=int(self.harvest_cycle_seconds),
            window_seconds=int(self.harvest_window_seconds),
            offset_seconds=int(self.harvest_offset_seconds),
        )


_ALLOWED_MODES = {"dev", "testnet", "prod"}


def validate_farm_config(cfg: FarmConfig) -> None:
    """Fail-fast validation for operator config."""

    mode = str(cfg.mode or "").strip().lower()
    if mode not in _ALLOWED_MODES:
        raise ValueError(f"mode must be one of {_ALLOWED_MODES}; got: {cfg.mode!r}")

    for name, v in (("owner", cfg.owner), ("beneficiary", cfg.beneficiary), ("reward_token", cfg.reward_token)):
        if not isinstance(v, str) or not v.strip():
            raise ValueError(f"{name} must be a non-empty string")

    if cfg.beneficiary == FARM_ACCOUNT_ID:
        raise ValueError(f"beneficiary cannot be the farm custody account {FARM_ACCOUNT_ID!r}")

    for name, bps in (("deposit_tax_bps", cfg.deposit_tax_bps), ("withdraw_tax_bps", cfg.withdraw_tax_bps)):
        if int(bps) < 0 or int(bps) > BPS_DENOMINATOR:
            raise ValueError(f"{name} must be 0..{BPS_DENOMINATOR}; got: {bps}")

    # Raises ValueError for an impossible window.
    cfg.harvest_policy()

    if int(cfg.api_port) <= 0 or int(cfg.api_port) > 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")

    if not isinstance(cfg.db_path, str) or not cfg.db_path.strip():
        raise ValueError("db_path must be a non-empty string")


def default_farm_config() -> FarmConfig:
    return FarmConfig(
        mode="prod",
        owner="deployer",
        beneficiary="dev",
        reward_token=DEFAULT_REWARD_TOKEN,
        deposit_tax_bps=DEFAULT_DEPOSIT_TAX_BPS,
        withdraw_tax_bps=DEFAULT_WITHDRAW_TAX_BPS,
        harvest_cycle_seconds=DEFAULT_HARVEST_CYCLE_SECONDS,
        harvest_window_seconds=DEFAULT_HARVEST_WINDOW_SECONDS,
        harvest_offset_seconds=0,
        db_path="./data/limefarm.db",
        api_host="127.0.0.1",
        api_port=8080,
        log_level="INFO",
    )


def farm_config_from_dict(raw: Json, *, base: Optional[FarmConfig] = None) -> FarmConfig:
    d = base or default_farm_config()
    return FarmConfig(
        mode=_as_str(raw.get("mode"), d.mode).strip().lower(),
        owner=_as_str(raw.get("owner"), d.owner),
        beneficiary=_as_str(raw.get("beneficiary"), d.beneficiary),
        reward_token=_as_str(raw.get("reward_token"), d.reward_token),
        deposit_tax_bps=_as_int(raw.get("deposit_tax_bps"), d.deposit_tax_bps),
        withdraw_tax_bps=_as_int(raw.get("withdraw_tax_bps"), d.withdraw_tax_bps),
        harvest_cycle_seconds=_as_int(raw.get("harvest_cycle_seconds"), d.harvest_cycle_seconds),
        harvest_window_seconds=_as_int(raw.get("harvest_window_seconds"), d.harvest_window_seconds),
        harvest_offset_seconds=_as_int(raw.get("harvest_offset_seconds"), d.harvest_offset_seconds),
        db_path=_as_str(raw.get("db_path"), d.db_path),
        api_host=_as_str(raw.get("api_host"), d.api_host),
        api_port=_as_int(raw.get("api_port"), d.api_port),
        log_level=_as_str(raw.get("log_level"), d.log_level).strip().upper(),
    )


def read_farm_config_file(path: str) -> FarmConfig:
    p = Path(path)
    raw = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("farm config must be a JSON object")

    cfg = farm_config_from_dict(raw)
    validate_farm_config(cfg)
    return cfg


def _apply_env_overrides(cfg: FarmConfig) -> FarmConfig:
    # DEV_ADDRESS is the name the deployment scripts have always used.
    beneficiary = os.environ.get("LIMEFARM_DEV_ADDRESS") or os.environ.get("DEV_ADDRESS")
    overrides: Json = {}
    if beneficiary and beneficiary.strip():
        overrides["beneficiary"] = beneficiary.strip()
    owner = os.environ.get("LIMEFARM_OWNER")
    if owner and owner.strip():
        overrides["owner"] = owner.strip()
    db_path = os.environ.get("LIMEFARM_DB_PATH")
    if db_path and db_path.strip():
        overrides["db_path"] = db_path.strip()
    level = os.environ.get("LIMEFARM_LOG_LEVEL")
    if level and level.strip():
        overrides["log_level"] = level.strip().upper()
    mode = os.environ.get("LIMEFARM_MODE")
    if mode and mode.strip():
        overrides["mode"] = mode.strip().lower()
    return replace(cfg, **overrides) if overrides else cfg


def load_farm_config(*, config_path: Optional[str] = None) -> FarmConfig:
    p = config_path or os.environ.get("LIMEFARM_CONFIG_PATH")
    if p:
        cfg = read_farm_config_file(p)
    else:
        cfg = default_farm_config()

    cfg = _apply_env_overrides(cfg)
    validate_farm_config(cfg)
    return cfg
