# src/limefarm/cli.py
from __future__ import annotations

import argparse
import json
import logging
import time
from typing import Any, Optional

from limefarm.env import load_dotenv_if_present
from limefarm.manifest import bootstrap_pools, load_pool_manifest
from limefarm.runtime.config import FarmConfig, load_farm_config
from limefarm.runtime.errors import FarmError
from limefarm.runtime.farm_logging import configure_structured_logging, log_event
from limefarm.runtime.sqlite_db import SqliteDB, SqliteFarmStore
from limefarm.testing.devchain import LocalDevChain

log = logging.getLogger("limefarm.cli")


def _print_json(obj: Any) -> None:
    print(json.dumps(obj, indent=2, sort_keys=True))


def _open_chain(cfg: FarmConfig) -> LocalDevChain:
    store = SqliteFarmStore(db=SqliteDB(path=cfg.db_path))
    return LocalDevChain(cfg, store=store)


def cmd_bootstrap(cfg: FarmConfig, args: argparse.Namespace) -> int:
    specs = load_pool_manifest(args.manifest)
    chain = _open_chain(cfg)

    existing = chain.engine.total_pools()
    if existing and not args.force:
        print(f"farm at {cfg.db_path} already has {existing} pools; pass --force to append anyway")
        return 1

    pool_ids = bootstrap_pools(chain.engine, specs, actor=cfg.owner)
    log_event(log, "farm_bootstrap", manifest=str(args.manifest), pool_ids=pool_ids, db_path=cfg.db_path)
    _print_json({"ok": True, "pool_ids": pool_ids, "total_pools": chain.engine.total_pools()})
    return 0


def cmd_status(cfg: FarmConfig, args: argparse.Namespace) -> int:
    chain = _open_chain(cfg)
    _print_json({"ok": True, "block": chain.block, "pools": chain.engine.list_pools()})
    return 0


def cmd_window(cfg: FarmConfig, args: argparse.Namespace) -> int:
    ts = int(args.at) if args.at is not None else int(time.time())
    _print_json({"ok": True, **cfg.harvest_policy().describe(ts)})
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="limefarm", description="LimeFarm staking ledger tools")
    p.add_argument("--config", default=None, help="farm config JSON (default: $LIMEFARM_CONFIG_PATH)")
    sub = p.add_subparsers(dest="command", required=True)

    b = sub.add_parser("bootstrap", help="create the pools listed in a YAML manifest")
    b.add_argument("--manifest", required=True)
    b.add_argument("--force", action="store_true", help="append even if pools already exist")
    b.set_defaults(func=cmd_bootstrap)

    s = sub.add_parser("status", help="print every pool as JSON")
    s.set_defaults(func=cmd_status)

    w = sub.add_parser("window", help="print harvesting window state")
    w.add_argument("--at", type=int, default=None, help="unix timestamp (default: now)")
    w.set_defaults(func=cmd_window)
    return p


def main(argv: Optional[list[str]] = None) -> int:
    load_dotenv_if_present()
    args = build_parser().parse_args(argv)

    cfg = load_farm_config(config_path=args.config)
    configure_structured_logging(cfg.log_level)

    try:
        return int(args.func(cfg, args))
    except FarmError as e:
        print(f"rejected: {e.code}:{e.reason}")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
