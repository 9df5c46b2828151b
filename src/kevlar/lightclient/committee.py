from __future__ import annotations

import logging
from typing import Sequence

from kevlar.core.exceptions import IncorrectCommitteeError, MissingExpectedHashError, ProverError
from kevlar.lightclient.oracle import VerificationOracle
from kevlar.lightclient.prover import ProverChannel
from kevlar.lightclient.types import Committee, CommitteeHash, GenesisData, Period, short_hex

logger = logging.getLogger(__name__)


class CommitteeFetcher:
    """Fetch committees from provers and check them against an anchoring hash."""

    def __init__(
        self,
        provers: Sequence[ProverChannel],
        oracle: VerificationOracle,
        genesis: GenesisData,
    ):
        self.provers = provers
        self.oracle = oracle
        self.genesis = genesis
        self.trusted: dict[Period, Committee] = {genesis.period: genesis.committee}

    def trust(self, period: Period, committee: Committee) -> None:
        """Record a committee accepted by a completed sync as locally trusted."""
        self.trusted[period] = committee

    async def get_committee(
        self,
        period: Period,
        prover_index: int,
        expected_hash: CommitteeHash | None,
    ) -> Committee:
        """
        Committee at ``period`` as served by one prover.

        Trusted committees (genesis, or accepted by an earlier sync) are
        returned directly. Any other committee must hash to ``expected_hash``.

        Raises:
            MissingExpectedHashError: No hash was supplied for a non-genesis period
            IncorrectCommitteeError: The prover's committee hashes differently
            ProverError: The prover could not answer
        """
        trusted = self.trusted.get(period)
        if trusted is not None:
            return trusted
        if expected_hash is None:
            raise MissingExpectedHashError(
                f"Expected committee hash required for period {period}",
                details={"period": period, "prover_index": prover_index},
            )

        try:
            committee = await self.provers[prover_index].get_committee(period)
        except ProverError as e:
            if e.prover_index is None:
                e.prover_index = prover_index
            raise

        try:
            actual_hash = self.oracle.hash_of(committee)
        except (ValueError, TypeError) as e:
            raise IncorrectCommitteeError(
                f"Prover({prover_index}) responded with a malformed committee: {e}",
                prover_index=prover_index,
            )
        if actual_hash != expected_hash:
            raise IncorrectCommitteeError(
                f"Prover({prover_index}) responded with an incorrect committee for period {period}",
                prover_index=prover_index,
                details={
                    "expected": short_hex(expected_hash),
                    "actual": short_hex(actual_hash),
                },
            )
        return committee
