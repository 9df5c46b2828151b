"""
Prover channels.

A prover is an untrusted source of sync committee data. Every answer it gives
is a claim; the light client decides what to believe.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Mapping

from kevlar.core.exceptions import ProverMalformedError, ProverUnreachableError
from kevlar.lightclient.oracle import committee_hash
from kevlar.lightclient.types import Committee, CommitteeHash, Period, SyncUpdate

logger = logging.getLogger(__name__)


class ProverChannel(ABC):
    """Async interface to one configured prover."""

    @abstractmethod
    async def get_committee(self, period: Period) -> Committee:
        """Committee the prover claims is active at ``period``."""

    @abstractmethod
    async def get_committee_hash(
        self, period: Period, current_period: Period, batch_size: int
    ) -> CommitteeHash:
        """Claimed committee hash at ``period``.

        The prover may answer up to ``batch_size`` periods at once; callers
        pass the head period so batches never run past it.
        """

    @abstractmethod
    async def get_sync_update(self, period: Period) -> SyncUpdate:
        """Sync update moving the chain from ``period - 1`` into ``period``."""

    async def close(self) -> None:
        """Release transport resources, if any."""


class InMemoryProver(ProverChannel):
    """
    Prover backed by in-process committee and update stores.

    Hash queries are served in batches through a local cache, the same way a
    remote prover client amortises round trips.
    """

    def __init__(
        self,
        committees: Mapping[Period, Committee],
        updates: Mapping[Period, SyncUpdate],
        name: str = "in-memory",
    ):
        self.committees = dict(committees)
        self.updates = dict(updates)
        self.name = name
        self._hash_cache: dict[Period, CommitteeHash] = {}
        self.hash_batches_served = 0

    def __repr__(self):
        return f"InMemoryProver(name='{self.name}', periods={len(self.committees)})"

    async def get_committee(self, period: Period) -> Committee:
        committee = self.committees.get(period)
        if committee is None:
            raise ProverUnreachableError(f"{self.name} has no committee for period {period}")
        return tuple(committee)

    def _hash_batch(self, start: Period, count: int) -> list[CommitteeHash]:
        hashes = []
        for period in range(start, start + count):
            committee = self.committees.get(period)
            if committee is None:
                break
            try:
                hashes.append(committee_hash(committee))
            except ValueError as e:
                raise ProverMalformedError(f"{self.name} holds a malformed committee at {period}: {e}")
        return hashes

    async def get_committee_hash(
        self, period: Period, current_period: Period, batch_size: int
    ) -> CommitteeHash:
        cached = self._hash_cache.get(period)
        if cached is not None:
            return cached

        count = max(1, min(batch_size, current_period - period + 1))
        hashes = self._hash_batch(period, count)
        if not hashes:
            raise ProverUnreachableError(f"{self.name} has no committee hash for period {period}")
        self.hash_batches_served += 1
        for offset, value in enumerate(hashes):
            self._hash_cache[period + offset] = value
        return hashes[0]

    async def get_sync_update(self, period: Period) -> SyncUpdate:
        update = self.updates.get(period)
        if update is None:
            raise ProverUnreachableError(f"{self.name} has no sync update for period {period}")
        return update
