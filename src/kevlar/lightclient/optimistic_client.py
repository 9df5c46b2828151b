"""
Optimistic sync committee light client.

Walks sync committee periods from genesis to the chain head using committee
hashes claimed by several untrusted provers. While every surviving prover
agrees, nothing is verified. Disagreements are settled by a tournament of
pairwise disputes in which only a cryptographically valid sync update wins.
At the head, the committee of the first survivor whose answer matches the
agreed hash is accepted.

Security assumption: at least one configured prover is honest.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Sequence

from kevlar.core.config import DEFAULT_BATCH_SIZE, ClientConfig
from kevlar.core.exceptions import (
    ConfigurationError,
    IncorrectCommitteeError,
    NoHonestProverError,
    ProverError,
    get_error_context,
)
from kevlar.lightclient.chain_head import ChainHead, ClockChainHead
from kevlar.lightclient.committee import CommitteeFetcher
from kevlar.lightclient.dispute import DisputeResolver
from kevlar.lightclient.events import EventEmitter, EventListener, SyncEventType
from kevlar.lightclient.http_prover import HttpProverChannel
from kevlar.lightclient.oracle import CommitteeSignatureOracle, VerificationOracle
from kevlar.lightclient.prover import ProverChannel
from kevlar.lightclient.tournament import TournamentEngine
from kevlar.lightclient.types import (
    Committee,
    CommitteeHash,
    DisputeOutcome,
    GenesisData,
    Period,
    ProverClaim,
    SyncResult,
    short_hex,
)

logger = logging.getLogger(__name__)


class OptimisticLightClient:
    """
    Light client that trusts no single prover.

    Args:
        provers: Prover channels, indexed by position for the whole session
        oracle: Committee hashing and sync update verification
        genesis: Trusted genesis period and committee
        chain_head: Source of the current period
        config: Client settings; only ``batch_size`` is used here
        listeners: Optional structured event callbacks
        dispute_resolver: Override the resolver, e.g. to instrument disputes
    """

    def __init__(
        self,
        provers: Sequence[ProverChannel],
        oracle: VerificationOracle,
        genesis: GenesisData,
        chain_head: ChainHead,
        config: ClientConfig | None = None,
        listeners: Iterable[EventListener] | None = None,
        dispute_resolver: DisputeResolver | None = None,
    ):
        if not provers:
            raise ConfigurationError("At least one prover is required.")
        if not genesis.committee:
            raise ConfigurationError("Genesis committee cannot be empty.")

        self.provers = tuple(provers)
        self.oracle = oracle
        self.genesis = genesis
        self.chain_head = chain_head
        self.batch_size = config.batch_size if config is not None else DEFAULT_BATCH_SIZE
        self.events = EventEmitter(listeners)
        self.committees = CommitteeFetcher(self.provers, oracle, genesis)
        self.resolver = dispute_resolver or DisputeResolver(self.provers, oracle, self.committees)
        self.tournament_engine = TournamentEngine(self.resolver, self.events)
        self.latest: SyncResult | None = None

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        genesis: GenesisData,
        listeners: Iterable[EventListener] | None = None,
    ) -> OptimisticLightClient:
        """Client over HTTP provers, signature oracle and wall-clock head from ``config``."""
        if not config.prover_urls:
            raise ConfigurationError("No prover URLs configured (KEVLAR_PROVER_URLS).")
        provers = [HttpProverChannel(url, timeout=config.prover_timeout) for url in config.prover_urls]
        return cls(
            provers=provers,
            oracle=CommitteeSignatureOracle(config.participation_threshold),
            genesis=genesis,
            chain_head=ClockChainHead(config.chain, genesis_time=genesis.genesis_time),
            config=config,
            listeners=listeners,
        )

    @property
    def genesis_period(self) -> Period:
        return self.genesis.period

    @property
    def genesis_committee(self) -> Committee:
        return self.genesis.committee

    def get_current_period(self) -> Period:
        return self.chain_head.current_period()

    def get_committee_hash(self, committee: Committee) -> CommitteeHash:
        return self.oracle.hash_of(committee)

    async def get_committee(
        self,
        period: Period,
        prover_index: int,
        expected_hash: CommitteeHash | None,
    ) -> Committee:
        return await self.committees.get_committee(period, prover_index, expected_hash)

    async def fight(
        self,
        claim_a: ProverClaim,
        claim_b: ProverClaim,
        period: Period,
        prior_committee_hash: CommitteeHash,
    ) -> DisputeOutcome:
        return await self.resolver.resolve(claim_a, claim_b, period, prior_committee_hash)

    async def tournament(
        self,
        claims: Sequence[ProverClaim],
        period: Period,
        prior_committee_hash: CommitteeHash,
    ) -> list[ProverClaim]:
        return await self.tournament_engine.run(claims, period, prior_committee_hash)

    async def _gather_claims(
        self,
        survivors: Sequence[int],
        period: Period,
        current_period: Period,
    ) -> list[ProverClaim]:
        """Query every survivor concurrently and drop the ones that fail."""
        results = await asyncio.gather(
            *(
                self.provers[index].get_committee_hash(period, current_period, self.batch_size)
                for index in survivors
            ),
            return_exceptions=True,
        )

        claims = []
        for index, result in zip(survivors, results):
            if isinstance(result, ProverError):
                logger.warning(
                    "Prover(%s) failed to report a committee hash for period %s: %s",
                    index,
                    period,
                    result,
                    extra={"event": "sync.prover_failed", "period": period, **get_error_context(result)},
                )
                self.events.emit(SyncEventType.PROVER_FAILED, period, prover=index, error=str(result))
            elif isinstance(result, BaseException):
                raise result
            else:
                claims.append(ProverClaim(index=index, committee_hash=result))
        return claims

    async def _sync_range(
        self,
        start_period: Period,
        start_hash: CommitteeHash,
        current_period: Period,
    ) -> SyncResult:
        logger.info(
            "Sync started using %s Provers from period(%s) to period(%s)",
            len(self.provers),
            start_period,
            current_period,
            extra={"event": "sync.started", "start": start_period, "current": current_period},
        )
        self.events.emit(
            SyncEventType.SYNC_STARTED,
            start_period,
            current_period=current_period,
            provers=len(self.provers),
        )

        last_hash = start_hash
        survivors = list(range(len(self.provers)))
        # Set when the survivors collapse; their chain is then verified update by update.
        verify_from: Period | None = None
        anchor_hash = start_hash

        for period in range(start_period + 1, current_period + 1):
            claims = await self._gather_claims(survivors, period, current_period)
            if not claims:
                survivors = []
                break

            if all(claim.committee_hash == claims[0].committee_hash for claim in claims):
                self.events.emit(
                    SyncEventType.PERIOD_AGREED,
                    period,
                    committee_hash=claims[0].committee_hash.hex(),
                )
            else:
                claims = await self.tournament_engine.run(claims, period, last_hash)

            survivors = [claim.index for claim in claims]
            if len(survivors) < 2:
                verify_from, anchor_hash = period, last_hash
                logger.info(
                    "Only Prover(%s) remains at period(%s); verifying its chain to period(%s)",
                    survivors[0],
                    period,
                    current_period,
                    extra={"event": "sync.sole_survivor", "prover": survivors[0], "period": period},
                )
                break
            last_hash = claims[0].committee_hash

        for index in survivors:
            try:
                if verify_from is None:
                    committee = await self.get_committee(current_period, index, last_hash)
                else:
                    committee = await self._verify_chain(index, verify_from, anchor_hash, current_period)
            except ProverError as e:
                logger.error(
                    "Seemingly honest Prover(%s) responded incorrectly!",
                    index,
                    extra={"event": "sync.prover_rejected", **get_error_context(e)},
                )
                self.events.emit(SyncEventType.PROVER_REJECTED, current_period, prover=index, error=str(e))
                continue
            return self._accept(committee, index, current_period)

        raise NoHonestProverError(
            "None of the provers responded honestly",
            details={"period": current_period, "survivors": list(survivors)},
        )

    async def _verify_chain(
        self,
        prover_index: int,
        start_period: Period,
        anchor_hash: CommitteeHash,
        current_period: Period,
    ) -> Committee:
        """
        Follow one prover's sync updates from ``start_period`` to the head.

        The committee at ``start_period - 1`` must hash to ``anchor_hash``;
        every later committee is obtained only through a verified update.

        Raises:
            ProverError: The prover could not answer or an update failed verification
        """
        committee = await self.get_committee(start_period - 1, prover_index, anchor_hash)
        prover = self.provers[prover_index]
        for period in range(start_period, current_period + 1):
            update = await prover.get_sync_update(period)
            if update.period != period:
                raise IncorrectCommitteeError(
                    f"Prover({prover_index}) sent the update for period {update.period} instead of {period}",
                    prover_index=prover_index,
                )
            result = self.oracle.verify_transition(committee, update)
            if not result.ok:
                raise IncorrectCommitteeError(
                    f"Prover({prover_index}) sync update for period {period} is invalid: {result.reason}",
                    prover_index=prover_index,
                )
            committee = result.committee
        return committee

    def _accept(self, committee: Committee, prover_index: int, period: Period) -> SyncResult:
        result = SyncResult(committee=committee, prover_index=prover_index, period=period)
        self.latest = result
        self.committees.trust(period, committee)
        logger.info(
            "Sync completed at period %s with Prover(%s), committee %s",
            period,
            prover_index,
            short_hex(self.get_committee_hash(committee)),
            extra={"event": "sync.completed", "period": period, "prover": prover_index},
        )
        self.events.emit(SyncEventType.SYNC_COMPLETED, period, prover=prover_index)
        return result

    async def sync_from_genesis(self) -> SyncResult:
        """
        Walk from the genesis period to the current period.

        Returns:
            The accepted committee at the head and the prover that served it

        Raises:
            ProtocolViolationError: Two differing sync updates both verified
            NoHonestProverError: No surviving prover's head committee verified
        """
        current_period = self.get_current_period()
        if current_period < self.genesis_period:
            raise ConfigurationError(
                f"Chain head period {current_period} precedes genesis period {self.genesis_period}"
            )
        genesis_hash = self.get_committee_hash(self.genesis_committee)
        return await self._sync_range(self.genesis_period, genesis_hash, current_period)

    async def sync(self) -> SyncResult:
        """Sync from the last accepted committee, or from genesis on first use."""
        if self.latest is None:
            return await self.sync_from_genesis()

        current_period = self.get_current_period()
        if current_period <= self.latest.period:
            return self.latest
        start_hash = self.get_committee_hash(self.latest.committee)
        return await self._sync_range(self.latest.period, start_hash, current_period)

    async def close(self) -> None:
        await asyncio.gather(*(prover.close() for prover in self.provers))
