from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient


def test_create_app_boot_runtime_false_does_not_attach_chain() -> None:
    from limefarm.api.app import create_app

    app = create_app(boot_runtime=False)
    assert getattr(app.state, "chain", None) is None

    with TestClient(app) as client:
        assert client.get("/v1/health").json() == {"ok": True, "ready": False}
        r = client.get("/v1/pools")
        assert r.status_code == 500
        assert r.json()["error"]["code"] == "not_ready"


def test_create_app_boot_runtime_true_uses_build_runtime(monkeypatch: pytest.MonkeyPatch) -> None:
    from limefarm.api import app as api_app
    from limefarm.testing.devchain import LocalDevChain

    chain = LocalDevChain()
    monkeypatch.setattr(api_app, "build_runtime", lambda: chain)

    app = api_app.create_app(boot_runtime=True)
    assert app.state.chain is chain

    with TestClient(app) as client:
        body = client.get("/v1/health").json()
        assert body["ready"] is True
        assert body["block"] == chain.block


def test_default_runtime_persists_to_sqlite(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    from limefarm.api.app import create_app

    monkeypatch.setenv("LIMEFARM_DB_PATH", str(tmp_path / "api.db"))
    monkeypatch.setenv("LIMEFARM_MODE", "dev")

    with TestClient(create_app()) as client:
        r = client.post("/v1/pools", json={"stake_token": "T1", "reward_rate": "1"}, headers={"X-Actor": "deployer"})
        assert r.status_code == 200

    with TestClient(create_app()) as client:
        assert client.get("/v1/pools").json()["total_pools"] == 1


def test_prod_mode_hides_docs_and_refuses_wildcard_cors(monkeypatch: pytest.MonkeyPatch) -> None:
    from limefarm.api.app import create_app

    app = create_app(boot_runtime=False)
    with TestClient(app) as client:
        assert client.get("/docs").status_code == 404

    monkeypatch.setenv("LIMEFARM_CORS_ORIGINS", "*")
    with pytest.raises(RuntimeError):
        create_app(boot_runtime=False)

    monkeypatch.setenv("LIMEFARM_MODE", "dev")
    create_app(boot_runtime=False)
