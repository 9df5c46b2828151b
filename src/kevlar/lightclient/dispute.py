"""
Pairwise dispute resolution between two provers.

Two provers that agreed on the committee at ``period - 1`` but disagree at
``period`` are asked for the sync update entering ``period``. Only an update
signed by the agreed previous committee can yield a committee matching its
owner's claim, so at most one side can be valid. Both sides being valid means
the signature assumption is broken and the session must stop.
"""

from __future__ import annotations

import logging
from typing import Sequence

from kevlar.core.exceptions import ProtocolViolationError, ProverError
from kevlar.lightclient.committee import CommitteeFetcher
from kevlar.lightclient.oracle import VerificationOracle
from kevlar.lightclient.prover import ProverChannel
from kevlar.lightclient.types import (
    Committee,
    CommitteeHash,
    DisputeOutcome,
    Period,
    ProverClaim,
    short_hex,
)

logger = logging.getLogger(__name__)


class DisputeResolver:
    def __init__(
        self,
        provers: Sequence[ProverChannel],
        oracle: VerificationOracle,
        committees: CommitteeFetcher,
    ):
        self.provers = provers
        self.oracle = oracle
        self.committees = committees

    async def _previous_committee(
        self,
        claim_a: ProverClaim,
        claim_b: ProverClaim,
        period: Period,
        prior_committee_hash: CommitteeHash,
    ) -> Committee | None:
        """Committee at ``period - 1`` re-verified against the agreed hash.

        The champion is asked first, then the challenger.
        """
        for claim in (claim_a, claim_b):
            try:
                return await self.committees.get_committee(period - 1, claim.index, prior_committee_hash)
            except ProverError as e:
                logger.warning(
                    "Prover(%s) could not supply the committee for period %s: %s",
                    claim.index,
                    period - 1,
                    e,
                    extra={"event": "dispute.prev_committee_failed", "prover": claim.index},
                )
        return None

    async def check_committee_hash_at(
        self,
        claim: ProverClaim,
        period: Period,
        prev_committee: Committee,
    ) -> bool:
        """True when the claim's sync update verifies and yields the claimed hash."""
        try:
            update = await self.provers[claim.index].get_sync_update(period)
        except ProverError as e:
            logger.info(
                "Prover(%s) failed to provide a sync update for period %s: %s",
                claim.index,
                period,
                e,
                extra={"event": "dispute.update_unavailable", "prover": claim.index},
            )
            return False

        if update.period != period:
            logger.info(
                "Prover(%s) sent an update for period %s instead of %s",
                claim.index,
                update.period,
                period,
                extra={"event": "dispute.update_wrong_period", "prover": claim.index},
            )
            return False

        result = self.oracle.verify_transition(prev_committee, update)
        if not result.ok:
            logger.info(
                "Prover(%s) sync update rejected: %s",
                claim.index,
                result.reason,
                extra={"event": "dispute.update_invalid", "prover": claim.index},
            )
            return False

        try:
            actual_hash = self.oracle.hash_of(result.committee)
        except (ValueError, TypeError):
            return False
        return actual_hash == claim.committee_hash

    async def resolve(
        self,
        claim_a: ProverClaim,
        claim_b: ProverClaim,
        period: Period,
        prior_committee_hash: CommitteeHash,
    ) -> DisputeOutcome:
        """
        Decide which of two conflicting claims at ``period`` is backed by a valid transition.

        Args:
            claim_a: Champion's claim
            claim_b: Challenger's claim
            period: Period the claims are about
            prior_committee_hash: Agreed hash of the committee at ``period - 1``

        Returns:
            A_WINS, B_WINS or NEITHER

        Raises:
            ProtocolViolationError: Both claims are backed by valid transitions
        """
        if claim_a.committee_hash == claim_b.committee_hash:
            raise ValueError("Claims agree; there is nothing to dispute.")

        prev_committee = await self._previous_committee(claim_a, claim_b, period, prior_committee_hash)
        if prev_committee is None:
            logger.warning(
                "Neither Prover(%s) nor Prover(%s) could supply the committee anchoring period %s",
                claim_a.index,
                claim_b.index,
                period,
                extra={"event": "dispute.no_anchor", "period": period},
            )
            return DisputeOutcome.NEITHER

        is_a_correct = await self.check_committee_hash_at(claim_a, period, prev_committee)
        is_b_correct = await self.check_committee_hash_at(claim_b, period, prev_committee)

        if is_a_correct and not is_b_correct:
            outcome = DisputeOutcome.A_WINS
        elif is_b_correct and not is_a_correct:
            outcome = DisputeOutcome.B_WINS
        elif not is_a_correct and not is_b_correct:
            outcome = DisputeOutcome.NEITHER
        else:
            raise ProtocolViolationError(
                f"Both Prover({claim_a.index}) and Prover({claim_b.index}) presented valid "
                f"sync updates for period {period}",
                period=period,
                prover_indices=(claim_a.index, claim_b.index),
                details={
                    "hash_a": short_hex(claim_a.committee_hash),
                    "hash_b": short_hex(claim_b.committee_hash),
                },
            )

        logger.info(
            "Dispute at period %s between Prover(%s) and Prover(%s): %s",
            period,
            claim_a.index,
            claim_b.index,
            outcome.value,
            extra={"event": "dispute.resolved", "period": period, "outcome": outcome.value},
        )
        return outcome

