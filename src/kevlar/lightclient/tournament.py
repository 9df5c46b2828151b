from __future__ import annotations

import logging
from typing import Sequence

from kevlar.lightclient.dispute import DisputeResolver
from kevlar.lightclient.events import EventEmitter, SyncEventType
from kevlar.lightclient.types import CommitteeHash, DisputeOutcome, Period, ProverClaim, short_hex

logger = logging.getLogger(__name__)


class TournamentEngine:
    """
    Reduce conflicting claims at one period to a set that agrees on a single hash.

    Claims are visited left to right against a champion set. Agreeing claims
    join the champions; a disagreeing claim fights one champion. When the
    champion does not win, every champion is dropped together and the
    challenger becomes the only champion. A dispute in which neither side is
    valid therefore also replaces the champions; a later honest challenger
    is relied on to defeat the new champion.
    """

    def __init__(self, resolver: DisputeResolver, events: EventEmitter | None = None):
        self.resolver = resolver
        self.events = events or EventEmitter()

    async def run(
        self,
        claims: Sequence[ProverClaim],
        period: Period,
        prior_committee_hash: CommitteeHash,
    ) -> list[ProverClaim]:
        if not claims:
            raise ValueError("Tournament requires at least one claim.")

        self.events.emit(
            SyncEventType.ROUND_STARTED,
            period,
            provers=[claim.index for claim in claims],
        )
        winners = [claims[0]]
        for challenger in claims[1:]:
            champion = winners[0]
            if champion.committee_hash == challenger.committee_hash:
                logger.info(
                    "Prover(%s) added to the existing winners list",
                    challenger.index,
                    extra={"event": "tournament.winner_joined", "period": period},
                )
                winners.append(challenger)
                self.events.emit(SyncEventType.WINNER_JOINED, period, prover=challenger.index)
                continue

            logger.info(
                "Fight between Prover(%s) and Prover(%s) at period %s",
                champion.index,
                challenger.index,
                period,
                extra={"event": "tournament.fight_started", "period": period},
            )
            self.events.emit(
                SyncEventType.FIGHT_STARTED,
                period,
                champion=champion.index,
                challenger=challenger.index,
            )
            outcome = await self.resolver.resolve(champion, challenger, period, prior_committee_hash)

            if outcome is DisputeOutcome.A_WINS:
                self.events.emit(SyncEventType.PROVER_ELIMINATED, period, prover=challenger.index)
                continue

            eliminated = [winner.index for winner in winners]
            logger.info(
                "Prover(%s) defeated all existing winners %s",
                challenger.index,
                eliminated,
                extra={
                    "event": "tournament.champion_replaced",
                    "period": period,
                    "outcome": outcome.value,
                    "committee_hash": short_hex(challenger.committee_hash),
                },
            )
            for index in eliminated:
                self.events.emit(SyncEventType.PROVER_ELIMINATED, period, prover=index)
            self.events.emit(
                SyncEventType.CHAMPION_REPLACED,
                period,
                champion=challenger.index,
                eliminated=eliminated,
                outcome=outcome.value,
            )
            winners = [challenger]

        return winners
