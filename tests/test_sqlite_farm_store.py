from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from limefarm.ledger.fixed_point import tokens
from limefarm.runtime.sqlite_db import SqliteDB, SqliteFarmStore
from limefarm.testing.devchain import LocalDevChain


def _pragma(con: sqlite3.Connection, name: str) -> int | str:
    row = con.execute(f"PRAGMA {name};").fetchone()
    if row is None:
        raise AssertionError(f"missing pragma: {name}")
    return row[0]


def test_sqlite_pragmas_follow_mode(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LIMEFARM_SQLITE_BUSY_TIMEOUT_MS", "1234")
    db = SqliteDB(path=str(tmp_path / "farm.db"))
    db.init_schema()

    with db.connection() as con:
        assert str(_pragma(con, "journal_mode")).lower() == "wal"
        # FULL is the prod default.
        assert int(_pragma(con, "synchronous")) == 2
        assert int(_pragma(con, "busy_timeout")) == 1234

    monkeypatch.setenv("LIMEFARM_MODE", "dev")
    with db.connection() as con:
        assert int(_pragma(con, "synchronous")) == 1

    monkeypatch.setenv("LIMEFARM_SQLITE_SYNCHRONOUS", "extra")
    with db.connection() as con:
        assert int(_pragma(con, "synchronous")) == 3


def test_store_round_trip(tmp_path: Path) -> None:
    store = SqliteFarmStore(db=SqliteDB(path=str(tmp_path / "farm.db")))
    assert store.exists() is False
    assert store.read_block() == 0
    with pytest.raises(FileNotFoundError):
        store.read()

    st = {"version": 1, "pools": [], "positions": {}}
    store.write(st, block=42)
    assert store.exists() is True
    assert store.read() == st
    assert store.read_block() == 42

    store.write({"version": 1, "pools": [], "positions": {}, "x": 1}, block=43)
    assert store.read()["x"] == 1
    assert store.read_block() == 43

    with pytest.raises(ValueError):
        store.write([], block=1)  # type: ignore[arg-type]


def test_schema_version_mismatch_refuses_to_start(tmp_path: Path) -> None:
    db = SqliteDB(path=str(tmp_path / "farm.db"))
    SqliteFarmStore(db=db)
    with db.write_tx() as con:
        con.execute("UPDATE meta SET value='99' WHERE key='schema_version';")

    with pytest.raises(RuntimeError):
        SqliteFarmStore(db=db)


def test_write_tx_rolls_back_on_error(tmp_path: Path) -> None:
    db = SqliteDB(path=str(tmp_path / "farm.db"))
    store = SqliteFarmStore(db=db)
    store.write({"version": 1, "pools": [], "positions": {}}, block=1)

    with pytest.raises(RuntimeError):
        with db.write_tx() as con:
            con.execute("UPDATE farm_state SET block=500 WHERE id=1;")
            raise RuntimeError("boom")

    assert store.read_block() == 1


def test_engine_state_survives_reopen(tmp_path: Path) -> None:
    path = str(tmp_path / "farm.db")
    chain = LocalDevChain(store=SqliteFarmStore(db=SqliteDB(path=path)))
    chain.create_pool("T1", tokens(1), False)
    chain.create_pool("T2", tokens(2), True)
    chain.fund("alice", "T1", tokens(100))
    chain.deposit(0, tokens(100), sender="alice")
    chain.mine(5)
    chain.checkpoint(0, sender="alice")
    expected = chain.engine.snapshot()
    block = chain.block

    reopened = LocalDevChain(store=SqliteFarmStore(db=SqliteDB(path=path)))
    assert reopened.engine.snapshot() == expected
    assert reopened.block == block
    assert reopened.engine.user_stake(0, "alice") == tokens("99.1")
    assert reopened.engine.total_pools() == 2


def test_rejected_operation_is_not_persisted(tmp_path: Path) -> None:
    path = str(tmp_path / "farm.db")
    store = SqliteFarmStore(db=SqliteDB(path=path))
    chain = LocalDevChain(store=store)
    chain.create_pool("T1", tokens(1), False)
    persisted = store.read()

    with pytest.raises(Exception):
        chain.deposit(0, tokens(5), sender="broke")
    assert store.read() == persisted
