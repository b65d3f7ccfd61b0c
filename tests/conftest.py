from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure local "src/" takes precedence over any globally-installed "limefarm" package.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

src_str = str(SRC)
if src_str not in sys.path:
    sys.path.insert(0, src_str)


_FARM_ENV = (
    "LIMEFARM_CONFIG_PATH",
    "LIMEFARM_DEV_ADDRESS",
    "DEV_ADDRESS",
    "LIMEFARM_OWNER",
    "LIMEFARM_DB_PATH",
    "LIMEFARM_LOG_LEVEL",
    "LIMEFARM_MODE",
    "LIMEFARM_METRICS_ENABLED",
    "LIMEFARM_CORS_ORIGINS",
    "LIMEFARM_LOG_REQUESTS",
    "LIMEFARM_SQLITE_SYNCHRONOUS",
)


@pytest.fixture(autouse=True)
def _clean_farm_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in _FARM_ENV:
        monkeypatch.delenv(name, raising=False)
    # Never pick up a developer's .env while testing.
    monkeypatch.setenv("LIMEFARM_DOTENV_PATH", str(tmp_path / "absent.env"))

    from limefarm.runtime import metrics

    metrics.reset()


@pytest.fixture
def chain():
    """Fresh dev chain: owner "deployer", beneficiary "dev", default taxes and window."""
    from limefarm.testing.devchain import LocalDevChain

    return LocalDevChain()
