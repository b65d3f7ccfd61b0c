"""limefarm.ledger.types

Farm state object model + strict schema coercion for JSON snapshots.

This module defines:
  - Pool: per-pool accrual bookkeeping
  - UserPosition: per (pool, participant) stake and reward debt
  - FarmState: the container the engine owns, JSON round-trippable
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from limefarm.ledger.constants import TOKEN_DECIMALS

Json = Dict[str, Any]

STATE_VERSION = 1


def _coerce_int(v: Any, *, field: str) -> int:
    try:
        # bool is an int subclass; disallow it explicitly
        if isinstance(v, bool):
            raise ValueError("bool is not a valid int")
        return int(v)
    except Exception as e:
        raise ValueError(f"FarmState schema error: field '{field}' must be int-coercible (got {type(v).__name__})") from e


def _coerce_bool(v: Any, *, field: str) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, int) and v in (0, 1):
        return bool(v)
    if isinstance(v, str):
        s = v.strip().lower()
        if s in {"1", "true", "yes", "y", "on"}:
            return True
        if s in {"0", "false", "no", "n", "off"}:
            return False
    raise ValueError(f"FarmState schema error: field '{field}' must be bool-ish (got {type(v).__name__})")


def _require_dict(v: Any, *, field: str) -> Json:
    if isinstance(v, dict):
        return v
    raise ValueError(f"FarmState schema error: field '{field}' must be dict (got {type(v).__name__})")


@dataclass
class Pool:
    pool_id: int
    stake_token: str
    reward_rate: int
    tax_free: bool
    total_staked: int = 0
    acc_reward_per_share: int = 0
    last_reward_block: int = 0
    stake_decimals: int = TOKEN_DECIMALS
    reward_decimals: int = TOKEN_DECIMALS

    def to_dict(self) -> Json:
        return {
            "pool_id": int(self.pool_id),
            "stake_token": str(self.stake_token),
            "reward_rate": int(self.reward_rate),
            "tax_free": bool(self.tax_free),
            "total_staked": int(self.total_staked),
            "acc_reward_per_share": int(self.acc_reward_per_share),
            "last_reward_block": int(self.last_reward_block),
            "stake_decimals": int(self.stake_decimals),
            "reward_decimals": int(self.reward_decimals),
        }

    @classmethod
    def from_dict(cls, d: Any) -> "Pool":
        raw = _require_dict(d, field="pools[]")
        pid = _coerce_int(raw.get("pool_id"), field="pools[].pool_id")
        where = f"pools[{pid}]"
        return cls(
            pool_id=pid,
            stake_token=str(raw.get("stake_token") or ""),
            reward_rate=_coerce_int(raw.get("reward_rate", 0), field=f"{where}.reward_rate"),
            tax_free=_coerce_bool(raw.get("tax_free", False), field=f"{where}.tax_free"),
            total_staked=_coerce_int(raw.get("total_staked", 0), field=f"{where}.total_staked"),
            acc_reward_per_share=_coerce_int(raw.get("acc_reward_per_share", 0), field=f"{where}.acc_reward_per_share"),
            last_reward_block=_coerce_int(raw.get("last_reward_block", 0), field=f"{where}.last_reward_block"),
            stake_decimals=_coerce_int(raw.get("stake_decimals", TOKEN_DECIMALS), field=f"{where}.stake_decimals"),
            reward_decimals=_coerce_int(raw.get("reward_decimals", TOKEN_DECIMALS), field=f"{where}.reward_decimals"),
        )


@dataclass
class UserPosition:
    staked_amount: int = 0
    reward_debt: int = 0
    pending_harvest: int = 0

    def to_dict(self) -> Json:
        return {
            "staked_amount": int(self.staked_amount),
            "reward_debt": int(self.reward_debt),
            "pending_harvest": int(self.pending_harvest),
        }

    @classmethod
    def from_dict(cls, d: Any, *, where: str = "positions") -> "UserPosition":
        raw = _require_dict(d, field=where)
        pos = cls(
            staked_amount=_coerce_int(raw.get("staked_amount", 0), field=f"{where}.staked_amount"),
            reward_debt=_coerce_int(raw.get("reward_debt", 0), field=f"{where}.reward_debt"),
            pending_harvest=_coerce_int(raw.get("pending_harvest", 0), field=f"{where}.pending_harvest"),
        )
        if pos.staked_amount < 0:
            raise ValueError(f"FarmState schema error: {where}.staked_amount must be >= 0")
        return pos


@dataclass
class FarmState:
    """All pools and positions. Pool ids are list indexes and never reused."""

    pools: List[Pool] = field(default_factory=list)
    # pool_id -> actor -> position
    positions: Dict[int, Dict[str, UserPosition]] = field(default_factory=dict)
    version: int = STATE_VERSION

    def get_pool(self, pool_id: int) -> Optional[Pool]:
        try:
            pid = int(pool_id)
        except (TypeError, ValueError):
            return None
        if pid < 0 or pid >= len(self.pools):
            return None
        return self.pools[pid]

    def get_position(self, pool_id: int, actor: str) -> Optional[UserPosition]:
        return self.positions.get(int(pool_id), {}).get(str(actor))

    def stake_sum(self, pool_id: int) -> int:
        return sum(p.staked_amount for p in self.positions.get(int(pool_id), {}).values())

    # ---- JSON interop ----

    def to_dict(self) -> Json:
        return {
            "version": int(self.version),
            "pools": [p.to_dict() for p in self.pools],
            "positions": {
                str(pid): {actor: pos.to_dict() for actor, pos in sorted(by_actor.items())}
                for pid, by_actor in sorted(self.positions.items())
            },
        }

    @classmethod
    def from_dict(cls, d: Any) -> "FarmState":
        raw = _require_dict(d if d is not None else {}, field="<root>")
        version = _coerce_int(raw.get("version", STATE_VERSION), field="version")
        if version != STATE_VERSION:
            raise ValueError(f"FarmState schema error: version={version} != STATE_VERSION={STATE_VERSION}")

        pools_raw = raw.get("pools") or []
        if not isinstance(pools_raw, list):
            raise ValueError("FarmState schema error: field 'pools' must be list")
        pools = [Pool.from_dict(p) for p in pools_raw]
        for idx, p in enumerate(pools):
            if p.pool_id != idx:
                raise ValueError(f"FarmState schema error: pools[{idx}] has pool_id={p.pool_id}")

        positions: Dict[int, Dict[str, UserPosition]] = {}
        for pid_s, by_actor in _require_dict(raw.get("positions") or {}, field="positions").items():
            pid = _coerce_int(pid_s, field="positions.<pool_id>")
            if pid < 0 or pid >= len(pools):
                raise ValueError(f"FarmState schema error: positions reference unknown pool {pid}")
            positions[pid] = {
                str(actor): UserPosition.from_dict(pos, where=f"positions[{pid}][{actor!r}]")
                for actor, pos in _require_dict(by_actor, field=f"positions[{pid}]").items()
            }

        st = cls(pools=pools, positions=positions, version=version)
        for p in st.pools:
            if p.total_staked != st.stake_sum(p.pool_id):
                raise ValueError(f"FarmState schema error: pools[{p.pool_id}].total_staked does not match positions")
        return st


__all__ = ["FarmState", "Json", "Pool", "UserPosition", "STATE_VERSION"]
