"""Current sync committee period discovery."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Callable

from kevlar.core.config import ChainConfig
from kevlar.lightclient.types import Period


class ChainHead(ABC):
    @abstractmethod
    def current_period(self) -> Period:
        """Sync committee period at the live chain head."""


class StaticChainHead(ChainHead):
    """Head pinned to a fixed period."""

    def __init__(self, period: Period):
        if period < 0:
            raise ValueError("Period must be non-negative.")
        self.period = period

    def current_period(self) -> Period:
        return self.period


class ClockChainHead(ChainHead):
    """
    Head derived from wall-clock time: elapsed seconds since genesis divided
    by the length of a sync committee period.
    """

    def __init__(
        self,
        chain_config: ChainConfig,
        genesis_time: int | None = None,
        time_provider: Callable[[], float] | None = None,
    ):
        self.chain_config = chain_config
        self.genesis_time = chain_config.genesis_time if genesis_time is None else genesis_time
        self._time_provider = time_provider or time.time

    def current_slot(self) -> int:
        elapsed = self._time_provider() - self.genesis_time
        if elapsed < 0:
            return 0
        return int(elapsed // self.chain_config.seconds_per_slot)

    def current_period(self) -> Period:
        slots_per_period = self.chain_config.slots_per_epoch * self.chain_config.epochs_per_sync_committee_period
        return self.current_slot() // slots_per_period
