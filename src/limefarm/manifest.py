# src/limefarm/manifest.py
from __future__ import annotations

"""Pool manifest: the list of pools a fresh farm is bootstrapped with.

YAML shape:

  pools:
    - stake_token: BUSD-LIME-LP
      reward_rate: "10"        # reward tokens per block, decimal string
      tax_free: false
    - stake_token: BNB-LIME-LP
      reward_rate: "7.5"
      tax_free: true
      stake_decimals: 18       # optional
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

import yaml

from limefarm.ledger.constants import TOKEN_DECIMALS
from limefarm.ledger.fixed_point import tokens
from limefarm.runtime.engine import FarmEngine

Json = Dict[str, Any]


@dataclass(frozen=True, slots=True)
class PoolSpec:
    stake_token: str
    reward_rate: int
    tax_free: bool
    stake_decimals: int = TOKEN_DECIMALS


def _parse_bool(v: Any, *, where: str) -> bool:
    if isinstance(v, bool):
        return v
    raise ValueError(f"manifest error: {where}.tax_free must be true/false (got {v!r})")


def parse_pool_manifest(obj: Any, *, reward_decimals: int = TOKEN_DECIMALS) -> List[PoolSpec]:
    if not isinstance(obj, dict):
        raise ValueError("manifest error: top level must be a mapping with a 'pools' list")
    pools = obj.get("pools")
    if not isinstance(pools, list) or not pools:
        raise ValueError("manifest error: 'pools' must be a non-empty list")

    out: List[PoolSpec] = []
    for i, raw in enumerate(pools):
        where = f"pools[{i}]"
        if not isinstance(raw, dict):
            raise ValueError(f"manifest error: {where} must be a mapping")

        token = str(raw.get("stake_token") or "").strip()
        if not token:
            raise ValueError(f"manifest error: {where}.stake_token is required")

        rate_raw = raw.get("reward_rate")
        if rate_raw is None or isinstance(rate_raw, (bool, float)):
            raise ValueError(f"manifest error: {where}.reward_rate must be an int or a quoted decimal string")
        rate = tokens(rate_raw, reward_decimals)
        if rate < 0:
            raise ValueError(f"manifest error: {where}.reward_rate must be >= 0")

        out.append(
            PoolSpec(
                stake_token=token,
                reward_rate=rate,
                tax_free=_parse_bool(raw.get("tax_free", False), where=where),
                stake_decimals=int(raw.get("stake_decimals", TOKEN_DECIMALS)),
            )
        )
    return out


def load_pool_manifest(path: str) -> List[PoolSpec]:
    raw = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    return parse_pool_manifest(raw)


def bootstrap_pools(engine: FarmEngine, specs: List[PoolSpec], *, actor: str) -> List[int]:
    """Create every pool in order; returns the new pool ids."""
    return [
        engine.create_pool(
            spec.stake_token,
            spec.reward_rate,
            spec.tax_free,
            actor=actor,
            stake_decimals=spec.stake_decimals,
        )
        for spec in specs
    ]
