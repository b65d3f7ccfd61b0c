from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import pytest

from limefarm.ledger.constants import DAY_SECONDS
from limefarm.runtime.config import (
    default_farm_config,
    farm_config_from_dict,
    load_farm_config,
    read_farm_config_file,
    validate_farm_config,
)


def _write(tmp_path: Path, obj) -> str:
    p = tmp_path / "farm.json"
    p.write_text(json.dumps(obj), encoding="utf-8")
    return str(p)


def test_defaults_are_valid() -> None:
    cfg = load_farm_config()
    assert cfg == default_farm_config()
    assert cfg.deposit_tax_bps == 90
    assert cfg.withdraw_tax_bps == 350
    policy = cfg.harvest_policy()
    assert policy.cycle_seconds == 14 * DAY_SECONDS
    assert policy.window_seconds == DAY_SECONDS


def test_config_file_overrides_defaults(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        {"mode": "Dev", "beneficiary": "treasury", "withdraw_tax_bps": 90, "api_port": 9000, "log_level": "debug"},
    )
    cfg = read_farm_config_file(path)
    assert cfg.mode == "dev"
    assert cfg.beneficiary == "treasury"
    assert cfg.withdraw_tax_bps == 90
    assert cfg.deposit_tax_bps == 90
    assert cfg.api_port == 9000
    assert cfg.log_level == "DEBUG"


def test_config_path_from_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LIMEFARM_CONFIG_PATH", _write(tmp_path, {"owner": "alice"}))
    assert load_farm_config().owner == "alice"


def test_env_overrides_win(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write(tmp_path, {"beneficiary": "from-file", "db_path": "/tmp/x.db"})
    monkeypatch.setenv("DEV_ADDRESS", "legacy-dev")
    monkeypatch.setenv("LIMEFARM_DB_PATH", str(tmp_path / "farm.db"))
    monkeypatch.setenv("LIMEFARM_MODE", "testnet")

    cfg = load_farm_config(config_path=path)
    assert cfg.beneficiary == "legacy-dev"
    assert cfg.db_path == str(tmp_path / "farm.db")
    assert cfg.mode == "testnet"

    monkeypatch.setenv("LIMEFARM_DEV_ADDRESS", "preferred-dev")
    assert load_farm_config(config_path=path).beneficiary == "preferred-dev"


@pytest.mark.parametrize(
    "overrides",
    [
        {"mode": "staging"},
        {"beneficiary": "FARM"},
        {"deposit_tax_bps": 10_001},
        {"withdraw_tax_bps": -1},
        {"harvest_window_seconds": 15 * DAY_SECONDS},
        {"harvest_cycle_seconds": 0},
        {"api_port": 70_000},
        {"db_path": "  "},
    ],
)
def test_validation_fails_fast(overrides) -> None:
    with pytest.raises(ValueError):
        validate_farm_config(replace(default_farm_config(), **overrides))


def test_garbage_fields_fall_back_to_defaults() -> None:
    cfg = farm_config_from_dict({"api_port": "not-a-port", "deposit_tax_bps": True, "owner": "   "})
    d = default_farm_config()
    assert cfg.api_port == d.api_port
    assert cfg.deposit_tax_bps == d.deposit_tax_bps
    assert cfg.owner == d.owner


def test_config_file_must_be_object(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        read_farm_config_file(_write(tmp_path, [1, 2, 3]))
