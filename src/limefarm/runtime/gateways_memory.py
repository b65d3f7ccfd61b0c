from __future__ import annotations

import copy
import threading
from typing import Dict, Iterable, List, Optional, Set

from limefarm.ledger.constants import DEFAULT_REWARD_TOKEN, FARM_ACCOUNT_ID
from limefarm.runtime.errors import InsufficientExternalBalance, TransferRejected
from limefarm.runtime.gateways import DIRECTION_IN, DIRECTION_MINT, DIRECTION_OUT, Transfer


class ManualClock:
    """
    Clock driven by hand, used by the dev chain and unit tests.

    - Never moves on its own
    - Refuses to go backwards
    """

    def __init__(self, *, block: int = 0, timestamp: int = 0) -> None:
        self._block = int(block)
        self._timestamp = int(timestamp)
        self._lock = threading.Lock()

    def current_block(self) -> int:
        with self._lock:
            return self._block

    def current_timestamp(self) -> int:
        with self._lock:
            return self._timestamp

    def mine(self, blocks: int = 1, *, seconds_per_block: int = 0) -> int:
        n = int(blocks)
        if n < 0:
            raise ValueError(f"blocks must be >= 0; got: {blocks}")
        with self._lock:
            self._block += n
            self._timestamp += n * max(0, int(seconds_per_block))
            return self._block

    def advance_time(self, seconds: int) -> int:
        s = int(seconds)
        if s < 0:
            raise ValueError(f"seconds must be >= 0; got: {seconds}")
        with self._lock:
            self._timestamp += s
            return self._timestamp

    def set(self, *, block: Optional[int] = None, timestamp: Optional[int] = None) -> None:
        with self._lock:
            if block is not None and int(block) < self._block:
                raise ValueError(f"block cannot go backwards: {block} < {self._block}")
            if timestamp is not None and int(timestamp) < self._timestamp:
                raise ValueError(f"timestamp cannot go backwards: {timestamp} < {self._timestamp}")
            if block is not None:
                self._block = int(block)
            if timestamp is not None:
                self._timestamp = int(timestamp)

    def reset(self, *, block: int, timestamp: int) -> None:
        """Jump to an arbitrary point, backwards included (snapshot revert only)."""
        with self._lock:
            self._block = int(block)
            self._timestamp = int(timestamp)


class InMemoryTokenBank:
    """
    Multi-token balance sheet standing in for the token contracts.

    - Balances are keyed by token then account
    - Deposits land in the farm custody account (FARM)
    - Only `mintable` tokens may be minted (the reward token by default)
    - Accounts in `frozen` reject any movement (TransferRejected)
    """

    def __init__(
        self,
        *,
        custody_account: str = FARM_ACCOUNT_ID,
        mintable: Iterable[str] = (DEFAULT_REWARD_TOKEN,),
    ) -> None:
        self.custody_account = str(custody_account)
        self.mintable: Set[str] = {str(t) for t in mintable}
        self.frozen: Set[str] = set()
        self._balances: Dict[str, Dict[str, int]] = {}
        self._lock = threading.Lock()

    # ---- balances ----

    def balance_of(self, account: str, token: str) -> int:
        with self._lock:
            return int(self._balances.get(str(token), {}).get(str(account), 0))

    def credit(self, account: str, token: str, amount: int) -> None:
        """Faucet: give `account` tokens out of thin air (test setup only)."""
        if int(amount) < 0:
            raise ValueError(f"amount must be >= 0; got: {amount}")
        with self._lock:
            by_acct = self._balances.setdefault(str(token), {})
            by_acct[str(account)] = int(by_acct.get(str(account), 0)) + int(amount)

    def total_supply(self, token: str) -> int:
        with self._lock:
            return sum(int(v) for v in self._balances.get(str(token), {}).values())

    # ---- settlement ----

    @staticmethod
    def _debit(work: Dict[str, Dict[str, int]], account: str, token: str, amount: int, tr: Transfer) -> None:
        by_acct = work.setdefault(token, {})
        have = int(by_acct.get(account, 0))
        if have < amount:
            raise InsufficientExternalBalance(
                details={"account": account, "token": token, "balance": have, "amount": amount, "transfer": tr.to_json()}
            )
        by_acct[account] = have - amount

    @staticmethod
    def _credit(work: Dict[str, Dict[str, int]], account: str, token: str, amount: int) -> None:
        by_acct = work.setdefault(token, {})
        by_acct[account] = int(by_acct.get(account, 0)) + amount

    def settle(self, transfers: Iterable[Transfer]) -> None:
        batch: List[Transfer] = list(transfers)
        with self._lock:
            work = copy.deepcopy(self._balances)
            for tr in batch:
                amt = int(tr.amount)
                if amt == 0:
                    continue
                if tr.account in self.frozen:
                    raise TransferRejected(reason="account_frozen", details=tr.to_json())

                if tr.direction == DIRECTION_IN:
                    self._debit(work, tr.account, tr.token, amt, tr)
                    self._credit(work, self.custody_account, tr.token, amt)
                elif tr.direction == DIRECTION_OUT:
                    self._debit(work, self.custody_account, tr.token, amt, tr)
                    self._credit(work, tr.account, tr.token, amt)
                elif tr.direction == DIRECTION_MINT:
                    if tr.token not in self.mintable:
                        raise TransferRejected(reason="token_not_mintable", details=tr.to_json())
                    self._credit(work, tr.account, tr.token, amt)

            self._balances = work

    # ---- snapshot / revert ----

    def snapshot(self) -> Dict[str, Dict[str, int]]:
        with self._lock:
            return copy.deepcopy(self._balances)

    def restore(self, balances: Dict[str, Dict[str, int]]) -> None:
        with self._lock:
            self._balances = copy.deepcopy(balances)


class OwnerAuthorizer:
    """Single-owner capability check (the farm's Ownable owner)."""

    def __init__(self, *, owner: str) -> None:
        self.owner = str(owner)

    def is_admin(self, actor: str) -> bool:
        return bool(self.owner) and str(actor) == self.owner
