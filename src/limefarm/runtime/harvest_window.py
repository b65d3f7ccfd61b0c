# src/limefarm/runtime/harvest_window.py

from __future__ import annotations

"""Harvesting window helpers.

Rewards can only be harvested during a short window that recurs at the start
of every cycle:

  in_window  <=>  (timestamp - offset) % cycle_seconds < window_seconds

Defaults: a 1 day window every 14 days, aligned to the unix epoch. Over any
28 consecutive days sampled once per day that yields exactly two harvesting
days.

This module provides:
  - HarvestWindowPolicy: the stateless policy object
  - is_harvesting_period / time_until_next_window: evaluated at a timestamp
  - deny_if_not_harvesting: gate used by the engine's harvest operation
"""

from dataclasses import dataclass
from typing import Any, Dict

from limefarm.ledger.constants import DEFAULT_HARVEST_CYCLE_SECONDS, DEFAULT_HARVEST_WINDOW_SECONDS
from limefarm.runtime.errors import NotHarvestingPeriod

Json = Dict[str, Any]


@dataclass(frozen=True, slots=True)
class HarvestWindowPolicy:
    cycle_seconds: int = DEFAULT_HARVEST_CYCLE_SECONDS
    window_seconds: int = DEFAULT_HARVEST_WINDOW_SECONDS
    offset_seconds: int = 0

    def __post_init__(self) -> None:
        if int(self.cycle_seconds) <= 0:
            raise ValueError(f"cycle_seconds must be > 0; got: {self.cycle_seconds}")
        if int(self.window_seconds) <= 0 or int(self.window_seconds) > int(self.cycle_seconds):
            raise ValueError(
                f"window_seconds must be 1..cycle_seconds ({self.cycle_seconds}); got: {self.window_seconds}"
            )

    def _phase(self, timestamp: int) -> int:
        return (int(timestamp) - int(self.offset_seconds)) % int(self.cycle_seconds)

    def is_harvesting_period(self, timestamp: int) -> bool:
        return self._phase(timestamp) < int(self.window_seconds)

    def time_until_next_window(self, timestamp: int) -> int:
        """Seconds until harvesting opens; 0 while a window is open."""
        if self.is_harvesting_period(timestamp):
            return 0
        return int(self.cycle_seconds) - self._phase(timestamp)

    def window_closes_in(self, timestamp: int) -> int:
        """Seconds until the current window closes; 0 outside a window."""
        if not self.is_harvesting_period(timestamp):
            return 0
        return int(self.window_seconds) - self._phase(timestamp)

    def describe(self, timestamp: int) -> Json:
        return {
            "timestamp": int(timestamp),
            "is_harvesting_period": self.is_harvesting_period(timestamp),
            "seconds_until_next_window": self.time_until_next_window(timestamp),
            "seconds_until_window_closes": self.window_closes_in(timestamp),
            "cycle_seconds": int(self.cycle_seconds),
            "window_seconds": int(self.window_seconds),
            "offset_seconds": int(self.offset_seconds),
        }


DEFAULT_POLICY = HarvestWindowPolicy()


def is_harvesting_period(timestamp: int, policy: HarvestWindowPolicy = DEFAULT_POLICY) -> bool:
    return policy.is_harvesting_period(timestamp)


def time_until_next_window(timestamp: int, policy: HarvestWindowPolicy = DEFAULT_POLICY) -> int:
    return policy.time_until_next_window(timestamp)


def deny_if_not_harvesting(timestamp: int, policy: HarvestWindowPolicy = DEFAULT_POLICY) -> None:
    """Raise NotHarvestingPeriod unless a harvest window is open at timestamp."""
    if not policy.is_harvesting_period(timestamp):
        raise NotHarvestingPeriod(
            details={
                "timestamp": int(timestamp),
                "seconds_until_next_window": policy.time_until_next_window(timestamp),
            }
        )
