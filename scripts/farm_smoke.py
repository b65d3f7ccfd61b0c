#!/usr/bin/env python3

"""Smoke test for a LimeFarm API node.

It verifies, against a fresh SQLite db:
  - the FastAPI app boots a dev chain and serves /v1/health
  - a pool can be created, funded, staked into and withdrawn from
  - harvesting is refused outside the window and pays out inside it
  - farm state survives an app restart on the same db

Usage:
  python3 scripts/farm_smoke.py
"""

from __future__ import annotations

import os
import sys
import tempfile
from typing import Any, Dict

from fastapi.testclient import TestClient

from limefarm.api.app import create_app

OWNER = "deployer"
USER = "investor"


def _ok(resp, what: str) -> Dict[str, Any]:
    if resp.status_code != 200:
        raise RuntimeError(f"{what} failed: {resp.status_code} {resp.text}")
    return resp.json()


def main() -> int:
    with tempfile.TemporaryDirectory(prefix="limefarm-smoke-") as td:
        os.environ["LIMEFARM_DB_PATH"] = os.path.join(td, "limefarm.db")
        os.environ["LIMEFARM_MODE"] = "dev"
        os.environ.setdefault("LIMEFARM_OWNER", OWNER)

        with TestClient(create_app(boot_runtime=True)) as client:
            _ok(client.get("/v1/health"), "health")

            body = _ok(
                client.post("/v1/pools", json={"stake_token": "BUSD-LIME-LP", "reward_rate": "10"}, headers={"X-Actor": OWNER}),
                "create pool",
            )
            pid = int(body["pool"]["pool_id"])

            _ok(client.post("/v1/chain/fund", json={"account": USER, "token": "BUSD-LIME-LP", "amount": "1000"}), "fund")
            dep = _ok(client.post(f"/v1/pools/{pid}/deposit", json={"amount": "1000"}, headers={"X-Actor": USER}), "deposit")
            print("deposit:", dep["receipt"])

            _ok(client.post("/v1/chain/mine", json={"blocks": 10}), "mine")

            window = _ok(client.get("/v1/harvest-window"), "harvest window")
            if not window["is_harvesting_period"]:
                r = client.post(f"/v1/pools/{pid}/harvest", headers={"X-Actor": USER})
                if r.status_code != 409:
                    raise RuntimeError(f"expected harvest refusal outside window, got {r.status_code}")
                _ok(
                    client.post("/v1/chain/advance-time", json={"seconds": window["seconds_until_next_window"]}),
                    "advance time",
                )

            hv = _ok(client.post(f"/v1/pools/{pid}/harvest", headers={"X-Actor": USER}), "harvest")
            print("harvest:", hv["receipt"])

            wd = _ok(client.post(f"/v1/pools/{pid}/withdraw", json={"amount": "100"}, headers={"X-Actor": USER}), "withdraw")
            print("withdraw:", wd["receipt"])
            staked_before = wd["receipt"]["staked_amount"]

        with TestClient(create_app(boot_runtime=True)) as client:
            pos = _ok(client.get(f"/v1/pools/{pid}/positions/{USER}"), "position after restart")["position"]
            if int(pos["staked_amount"]) != int(staked_before):
                raise RuntimeError("farm state did not survive restart")

    print("OK: LimeFarm smoke passed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
