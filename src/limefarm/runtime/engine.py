# src/limefarm/runtime/engine.py
from __future__ import annotations

"""
Staking ledger engine.

Owns every Pool and UserPosition and exposes the farm operations:
- create_pool (owner only)
- deposit / withdraw (taxed unless the pool is tax-free)
- checkpoint (lock accrued reward into pending_harvest)
- harvest (only inside the harvesting window)
- read-only accessors (available_harvest, pool_size, user_stake, total_pools)

Every mutating operation is a single atomic unit: it runs under the engine
lock against working copies of the touched records. The candidate state is
written to the store first, then the transfer batch settles through the
gateway, and only then does the candidate replace the in-memory state. A
rejected settlement writes the previous state back. A failed operation leaves
state, stored snapshot and balances exactly as they were.
"""

import copy
import logging
import threading
from dataclasses import replace
from typing import Any, Dict, List, Optional, Protocol, Tuple

from limefarm.ledger.accrual import checkpoint_pool, projected_entitlement, reward_debt_for, settle
from limefarm.ledger.constants import (
    DEFAULT_DEPOSIT_TAX_BPS,
    DEFAULT_REWARD_TOKEN,
    DEFAULT_WITHDRAW_TAX_BPS,
    TOKEN_DECIMALS,
)
from limefarm.ledger.fixed_point import format_units
from limefarm.ledger.tax import compute_tax, validate_rate_bps
from limefarm.ledger.types import FarmState, Pool, UserPosition
from limefarm.runtime.config import FarmConfig
from limefarm.runtime.errors import (
    FarmError,
    InvalidAmount,
    InvalidWithdrawal,
    Unauthorized,
    UnknownPool,
)
from limefarm.runtime.farm_logging import log_event
from limefarm.runtime.gateways import (
    DIRECTION_IN,
    DIRECTION_MINT,
    DIRECTION_OUT,
    Authorizer,
    Clock,
    Transfer,
    TransferGateway,
)
from limefarm.runtime.gateways_memory import OwnerAuthorizer
from limefarm.runtime.harvest_window import DEFAULT_POLICY, HarvestWindowPolicy, deny_if_not_harvesting
from limefarm.runtime.metrics import inc_counter, set_gauge

Json = Dict[str, Any]

log = logging.getLogger("limefarm.engine")


class StateStore(Protocol):
    def write(self, st: Json, *, block: int = 0) -> None: ...


def _as_amount(v: Any, *, error: type) -> int:
    if isinstance(v, bool) or not isinstance(v, int):
        raise error(reason="amount_must_be_int", details={"amount": repr(v)})
    return int(v)


class FarmEngine:
    """Single-writer staking ledger over injected clock/transfer/auth collaborators."""

    def __init__(
        self,
        *,
        clock: Clock,
        gateway: TransferGateway,
        authorizer: Authorizer,
        beneficiary: str,
        reward_token: str = DEFAULT_REWARD_TOKEN,
        deposit_tax_bps: int = DEFAULT_DEPOSIT_TAX_BPS,
        withdraw_tax_bps: int = DEFAULT_WITHDRAW_TAX_BPS,
        harvest_policy: HarvestWindowPolicy = DEFAULT_POLICY,
        state: Optional[FarmState] = None,
        store: Optional[StateStore] = None,
    ) -> None:
        if not str(beneficiary or "").strip():
            raise ValueError("beneficiary must be a non-empty string")

        self.clock = clock
        self.gateway = gateway
        self.authorizer = authorizer
        self.beneficiary = str(beneficiary)
        self.reward_token = str(reward_token)
        self.deposit_tax_bps = validate_rate_bps(deposit_tax_bps, field="deposit_tax_bps")
        self.withdraw_tax_bps = validate_rate_bps(withdraw_tax_bps, field="withdraw_tax_bps")
        self.harvest_policy = harvest_policy

        self.state: FarmState = state if state is not None else FarmState()
        self._store = store
        self._lock = threading.RLock()

    @classmethod
    def from_config(
        cls,
        cfg: FarmConfig,
        *,
        clock: Clock,
        gateway: TransferGateway,
        authorizer: Optional[Authorizer] = None,
        state: Optional[FarmState] = None,
        store: Optional[StateStore] = None,
    ) -> "FarmEngine":
        return cls(
            clock=clock,
            gateway=gateway,
            authorizer=authorizer if authorizer is not None else OwnerAuthorizer(owner=cfg.owner),
            beneficiary=cfg.beneficiary,
            reward_token=cfg.reward_token,
            deposit_tax_bps=cfg.deposit_tax_bps,
            withdraw_tax_bps=cfg.withdraw_tax_bps,
            harvest_policy=cfg.harvest_policy(),
            state=state,
            store=store,
        )

    # ----------------------------
    # Internals
    # ----------------------------

    def _require_pool(self, pool_id: Any) -> Pool:
        pool = self.state.get_pool(pool_id) if not isinstance(pool_id, bool) else None
        if pool is None:
            raise UnknownPool(details={"pool_id": pool_id, "total_pools": len(self.state.pools)})
        return pool

    def _working_copies(self, pool: Pool, actor: str) -> Tuple[Pool, UserPosition, bool]:
        existing = self.state.get_position(pool.pool_id, actor)
        work_pos = replace(existing) if existing is not None else UserPosition()
        return replace(pool), work_pos, existing is not None

    def _candidate(self, pool: Pool, actor: Optional[str], position: Optional[UserPosition]) -> FarmState:
        pools = list(self.state.pools)
        if pool.pool_id == len(pools):
            pools.append(pool)
        else:
            pools[pool.pool_id] = pool
        positions = {pid: dict(by_actor) for pid, by_actor in self.state.positions.items()}
        by_actor = positions.setdefault(pool.pool_id, {})
        if actor is not None and position is not None:
            by_actor[actor] = position
        return FarmState(pools=pools, positions=positions, version=self.state.version)

    def _commit(self, pool: Pool, actor: Optional[str], position: Optional[UserPosition], transfers: List[Transfer]) -> None:
        """Persist the candidate state, settle transfers, then swap it in. Nothing changes on failure."""
        candidate = self._candidate(pool, actor, position)
        batch = [t for t in transfers if int(t.amount) > 0]

        self._persist(candidate)
        if batch:
            try:
                self.gateway.settle(batch)
            except Exception:
                self._persist(self.state)
                raise
        self.state = candidate

    def _persist(self, st: FarmState) -> None:
        if self._store is not None:
            self._store.write(st.to_dict(), block=int(self.clock.current_block()))

    def _block(self) -> int:
        return int(self.clock.current_block())

    def _timestamp(self) -> int:
        return int(self.clock.current_timestamp())

    # ----------------------------
    # Administrative
    # ----------------------------

    def create_pool(
        self,
        stake_token: str,
        reward_rate: int,
        tax_free: bool,
        *,
        actor: str,
        stake_decimals: int = TOKEN_DECIMALS,
        reward_decimals: int = TOKEN_DECIMALS,
    ) -> int:
        """Append a new pool and return its id. Owner only."""
        with self._lock:
            if not self.authorizer.is_admin(actor):
                raise Unauthorized(details={"actor": actor})

            token = str(stake_token or "").strip()
            if not token:
                raise FarmError("invalid_pool", "stake_token_required", {"stake_token": stake_token})
            rate = _as_amount(reward_rate, error=InvalidAmount)
            if rate < 0:
                raise InvalidAmount(reason="reward_rate_must_be_non_negative", details={"reward_rate": rate})
            if int(stake_decimals) < 0 or int(reward_decimals) < 0:
                raise FarmError("invalid_pool", "decimals_must_be_non_negative", {})

            block = self._block()
            pool = Pool(
                pool_id=len(self.state.pools),
                stake_token=token,
                reward_rate=rate,
                tax_free=bool(tax_free),
                last_reward_block=block,
                stake_decimals=int(stake_decimals),
                reward_decimals=int(reward_decimals),
            )
            self._commit(pool, None, None, [])

            inc_counter("pools_created_total")
            set_gauge("pools_total", len(self.state.pools))
            log_event(
                log,
                "farm_pool_created",
                pool_id=pool.pool_id,
                stake_token=token,
                reward_rate=rate,
                tax_free=bool(tax_free),
                block=block,
                actor=actor,
            )
            return pool.pool_id

    # ----------------------------
    # Staking
    # ----------------------------

    def deposit(self, pool_id: int, amount: int, *, actor: str) -> Json:
        with self._lock:
            amt = _as_amount(amount, error=InvalidAmount)
            if amt <= 0:
                raise InvalidAmount(details={"amount": amt})
            pool = self._require_pool(pool_id)

            block = self._block()
            work_pool, work_pos, _ = self._working_copies(pool, actor)
            checkpoint_pool(work_pool, block)
            settled = settle(work_pool, work_pos)

            net, tax = compute_tax(amt, work_pool.tax_free, self.deposit_tax_bps)
            work_pos.staked_amount += net
            work_pool.total_staked += net
            work_pos.reward_debt = reward_debt_for(work_pos.staked_amount, work_pool.acc_reward_per_share)

            self._commit(
                work_pool,
                actor,
                work_pos,
                [
                    Transfer(actor, work_pool.stake_token, amt, DIRECTION_IN),
                    Transfer(self.beneficiary, work_pool.stake_token, tax, DIRECTION_OUT),
                ],
            )

            inc_counter("deposits_total")
            log_event(log, "farm_deposit", pool_id=work_pool.pool_id, actor=actor, amount=amt, net=net, tax=tax, block=block)
            return {
                "applied": "DEPOSIT",
                "pool_id": work_pool.pool_id,
                "actor": actor,
                "amount": amt,
                "net": net,
                "tax": tax,
                "settled_reward": settled,
                "staked_amount": work_pos.staked_amount,
                "pool_size": work_pool.total_staked,
                "block": block,
            }

    def withdraw(self, pool_id: int, amount: int, *, actor: str) -> Json:
        with self._lock:
            pool = self._require_pool(pool_id)
            amt = _as_amount(amount, error=InvalidWithdrawal)
            current = self.state.get_position(pool.pool_id, actor)
            staked = current.staked_amount if current is not None else 0
            if amt <= 0 or amt > staked:
                raise InvalidWithdrawal(details={"amount": amt, "staked_amount": staked})

            block = self._block()
            work_pool, work_pos, _ = self._working_copies(pool, actor)
            checkpoint_pool(work_pool, block)
            settled = settle(work_pool, work_pos)

            net, tax = compute_tax(amt, work_pool.tax_free, self.withdraw_tax_bps)
            work_pos.staked_amount -= amt
            work_pool.total_staked -= amt
            work_pos.reward_debt = reward_debt_for(work_pos.staked_amount, work_pool.acc_reward_per_share)

            self._commit(
                work_pool,
                actor,
                work_pos,
                [
                    Transfer(actor, work_pool.stake_token, net, DIRECTION_OUT),
                    Transfer(self.beneficiary, work_pool.stake_token, tax, DIRECTION_OUT),
                ],
            )

            inc_counter("withdrawals_total")
            log_event(log, "farm_withdraw", pool_id=work_pool.pool_id, actor=actor, amount=amt, net=net, tax=tax, block=block)
            return {
                "applied": "WITHDRAW",
                "pool_id": work_pool.pool_id,
                "actor": actor,
                "amount": amt,
                "net": net,
                "tax": tax,
                "settled_reward": settled,
                "staked_amount": work_pos.staked_amount,
                "pool_size": work_pool.total_staked,
                "block": block,
            }

    def checkpoint(self, pool_id: int, *, actor: str) -> Json:
        """Checkpoint the pool and lock the caller's accrued reward into pending_harvest."""
        with self._lock:
            pool = self._require_pool(pool_id)
            block = self._block()
            work_pool, work_pos, has_position = self._working_copies(pool, actor)
            checkpoint_pool(work_pool, block)
            settled = settle(work_pool, work_pos) if has_position else 0

            self._commit(work_pool, actor if has_position else None, work_pos, [])

            inc_counter("checkpoints_total")
            log_event(log, "farm_checkpoint", pool_id=work_pool.pool_id, actor=actor, settled=settled, block=block)
            return {
                "applied": "CHECKPOINT",
                "pool_id": work_pool.pool_id,
                "actor": actor,
                "settled_reward": settled,
                "pending_harvest": work_pos.pending_harvest,
                "acc_reward_per_share": work_pool.acc_reward_per_share,
                "block": block,
            }

    def harvest(self, pool_id: int, *, actor: str) -> Json:
        """Mint the caller's pending reward. Only allowed inside a harvesting window."""
        with self._lock:
            pool = self._require_pool(pool_id)
            ts = self._timestamp()
            deny_if_not_harvesting(ts, self.harvest_policy)

            block = self._block()
            work_pool, work_pos, has_position = self._working_copies(pool, actor)
            checkpoint_pool(work_pool, block)
            if has_position:
                settle(work_pool, work_pos)

            harvested = work_pos.pending_harvest
            work_pos.pending_harvest = 0

            self._commit(
                work_pool,
                actor if has_position else None,
                work_pos,
                [Transfer(actor, self.reward_token, harvested, DIRECTION_MINT)],
            )

            inc_counter("harvests_total")
            log_event(log, "farm_harvest", pool_id=work_pool.pool_id, actor=actor, amount=harvested, block=block, ts=ts)
            return {
                "applied": "HARVEST",
                "pool_id": work_pool.pool_id,
                "actor": actor,
                "amount": harvested,
                "reward_token": self.reward_token,
                "block": block,
                "timestamp": ts,
            }

    # ----------------------------
    # Read-only accessors
    # ----------------------------

    def available_harvest(self, pool_id: int, actor: str) -> int:
        """pending_harvest + entitlement as of the current block, without persisting anything."""
        with self._lock:
            pool = self._require_pool(pool_id)
            pos = self.state.get_position(pool.pool_id, actor)
            if pos is None:
                return 0
            return pos.pending_harvest + projected_entitlement(pool, pos, self._block())

    def pool_size(self, pool_id: int) -> int:
        with self._lock:
            return self._require_pool(pool_id).total_staked

    def user_stake(self, pool_id: int, actor: str) -> int:
        with self._lock:
            pool = self._require_pool(pool_id)
            pos = self.state.get_position(pool.pool_id, actor)
            return pos.staked_amount if pos is not None else 0

    def total_pools(self) -> int:
        with self._lock:
            return len(self.state.pools)

    def stake_decimals(self, pool_id: int) -> Optional[int]:
        """Stake-token decimals of a pool, None when the pool does not exist."""
        with self._lock:
            pool = self.state.get_pool(pool_id) if not isinstance(pool_id, bool) else None
            return pool.stake_decimals if pool is not None else None

    def is_harvesting_period(self) -> bool:
        return self.harvest_policy.is_harvesting_period(self._timestamp())

    def time_until_harvest(self) -> int:
        return self.harvest_policy.time_until_next_window(self._timestamp())

    def pool_info(self, pool_id: int) -> Json:
        with self._lock:
            pool = self._require_pool(pool_id)
            out = pool.to_dict()
            out["total_staked_display"] = format_units(pool.total_staked, pool.stake_decimals)
            out["reward_rate_display"] = format_units(pool.reward_rate, pool.reward_decimals)
            out["participants"] = len(self.state.positions.get(pool.pool_id, {}))
            return out

    def list_pools(self) -> List[Json]:
        with self._lock:
            return [self.pool_info(p.pool_id) for p in self.state.pools]

    def position_info(self, pool_id: int, actor: str) -> Json:
        with self._lock:
            pool = self._require_pool(pool_id)
            pos = self.state.get_position(pool.pool_id, actor) or UserPosition()
            available = self.available_harvest(pool.pool_id, actor)
            return {
                "pool_id": pool.pool_id,
                "actor": actor,
                "staked_amount": pos.staked_amount,
                "reward_debt": pos.reward_debt,
                "pending_harvest": pos.pending_harvest,
                "available_harvest": available,
                "staked_display": format_units(pos.staked_amount, pool.stake_decimals),
                "available_harvest_display": format_units(available, pool.reward_decimals),
            }

    def check_invariants(self) -> None:
        """Raise AssertionError if any pool's total_staked drifted from its positions."""
        with self._lock:
            for pool in self.state.pools:
                total = self.state.stake_sum(pool.pool_id)
                if pool.total_staked != total:
                    raise AssertionError(f"pool {pool.pool_id}: total_staked={pool.total_staked} != sum(stakes)={total}")
                for actor, pos in self.state.positions.get(pool.pool_id, {}).items():
                    if pos.staked_amount < 0:
                        raise AssertionError(f"pool {pool.pool_id}: negative stake for {actor!r}")

    # ----------------------------
    # Snapshot / restore
    # ----------------------------

    def snapshot(self) -> Json:
        with self._lock:
            return copy.deepcopy(self.state.to_dict())

    def restore(self, st: Json) -> None:
        with self._lock:
            restored = FarmState.from_dict(copy.deepcopy(st))
            self._persist(restored)
            self.state = restored
            set_gauge("pools_total", len(self.state.pools))
