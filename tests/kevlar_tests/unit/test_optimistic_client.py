"""
Unit tests for OptimisticLightClient.

Coverage targets:
- Honest agreement, forks detected by the tournament
- Single honest prover among dishonest ones
- Exhaustion of every prover and protocol violations
- Incremental sync, batching and event emission
"""

import pytest

from chain_factory import build_chain, fork_chain
from kevlar.core.config import ClientConfig
from kevlar.core.exceptions import ConfigurationError, NoHonestProverError, ProtocolViolationError
from kevlar.lightclient.chain_head import ClockChainHead, StaticChainHead
from kevlar.lightclient.committee import CommitteeFetcher
from kevlar.lightclient.dispute import DisputeResolver
from kevlar.lightclient.events import SyncEventType
from kevlar.lightclient.http_prover import HttpProverChannel
from kevlar.lightclient.optimistic_client import OptimisticLightClient
from kevlar.lightclient.prover import InMemoryProver
from kevlar.lightclient.types import GenesisData


class CountingResolver(DisputeResolver):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.disputes = 0

    async def resolve(self, claim_a, claim_b, period, prior_committee_hash):
        self.disputes += 1
        return await super().resolve(claim_a, claim_b, period, prior_committee_hash)


class WrongHeadProver(InMemoryProver):
    """Agrees on every hash but serves another committee at the head."""

    def __init__(self, chain, decoy):
        super().__init__(chain.committees, chain.updates, name="wrong-head")
        self.head_period = chain.head_period
        self.decoy = decoy

    async def get_committee(self, period):
        if period == self.head_period:
            return self.decoy
        return await super().get_committee(period)


def _client(chain, provers, oracle, head=None, **kwargs):
    return OptimisticLightClient(
        provers=provers,
        oracle=oracle,
        genesis=chain.genesis,
        chain_head=StaticChainHead(chain.head_period if head is None else head),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_honest_provers_agree_without_disputes(honest_chain, oracle):
    provers = [honest_chain.prover(f"p{i}") for i in range(3)]
    resolver = CountingResolver(provers, oracle, CommitteeFetcher(provers, oracle, honest_chain.genesis))
    client = _client(honest_chain, provers, oracle, dispute_resolver=resolver)

    result = await client.sync_from_genesis()

    assert result.committee == honest_chain.committees[6]
    assert result.prover_index == 0
    assert result.period == 6
    assert resolver.disputes == 0


@pytest.mark.asyncio
async def test_fork_is_eliminated_and_majority_accepted(honest_chain, oracle):
    forked = fork_chain(honest_chain, fork_period=5)
    provers = [honest_chain.prover("a"), honest_chain.prover("b"), forked.prover("forked")]
    seen = []
    client = _client(honest_chain, provers, oracle, listeners=[seen.append])

    result = await client.sync_from_genesis()

    assert result.committee == honest_chain.committees[6]
    assert result.prover_index in (0, 1)
    eliminated = [e.data["prover"] for e in seen if e.type is SyncEventType.PROVER_ELIMINATED]
    assert eliminated == [2]
    assert all(e.period == 5 for e in seen if e.type is SyncEventType.FIGHT_STARTED)


@pytest.mark.asyncio
async def test_single_honest_prover_among_many(honest_chain, oracle):
    provers = [
        fork_chain(honest_chain, fork_period=2, seed=b"d0").prover("d0"),
        fork_chain(honest_chain, fork_period=2, seed=b"d1").prover("d1"),
        fork_chain(honest_chain, fork_period=4, seed=b"d2").prover("d2"),
        fork_chain(honest_chain, fork_period=6, seed=b"d3").prover("d3"),
        honest_chain.prover("honest"),
    ]
    client = _client(honest_chain, provers, oracle)

    result = await client.sync_from_genesis()

    assert result.committee == honest_chain.committees[6]
    assert result.prover_index == 4


@pytest.mark.asyncio
async def test_honest_prover_listed_first(honest_chain, oracle):
    provers = [honest_chain.prover("honest")] + [
        fork_chain(honest_chain, fork_period=p, seed=f"d{p}".encode()).prover(f"d{p}") for p in (1, 3, 6)
    ]
    client = _client(honest_chain, provers, oracle)

    result = await client.sync_from_genesis()

    assert result.committee == honest_chain.committees[6]
    assert result.prover_index == 0


@pytest.mark.asyncio
async def test_every_prover_dishonest_raises(honest_chain, oracle):
    provers = [
        fork_chain(honest_chain, fork_period=3, seed=seed).prover(seed.decode())
        for seed in (b"x", b"y", b"z")
    ]
    seen = []
    client = _client(honest_chain, provers, oracle, listeners=[seen.append])

    with pytest.raises(NoHonestProverError):
        await client.sync_from_genesis()

    assert client.latest is None
    rejected = [e.data["prover"] for e in seen if e.type is SyncEventType.PROVER_REJECTED]
    assert rejected == [2]


@pytest.mark.asyncio
async def test_equivocating_committee_is_protocol_violation(honest_chain, oracle):
    equivocation = fork_chain(honest_chain, fork_period=3, signed_by_base=True)
    provers = [honest_chain.prover("honest"), equivocation.prover("equivocation")]
    client = _client(honest_chain, provers, oracle)

    with pytest.raises(ProtocolViolationError) as excinfo:
        await client.sync_from_genesis()
    assert excinfo.value.period == 3


@pytest.mark.asyncio
async def test_unreachable_prover_is_dropped(honest_chain, oracle):
    dead = InMemoryProver(committees={}, updates={}, name="dead")
    provers = [dead, honest_chain.prover("a"), honest_chain.prover("b")]
    seen = []
    client = _client(honest_chain, provers, oracle, listeners=[seen.append])

    result = await client.sync_from_genesis()

    assert result.prover_index == 1
    failed = [e for e in seen if e.type is SyncEventType.PROVER_FAILED]
    assert [e.data["prover"] for e in failed] == [0]
    assert failed[0].period == 1


@pytest.mark.asyncio
async def test_all_provers_unreachable(honest_chain, oracle):
    provers = [InMemoryProver({}, {}, name=f"dead-{i}") for i in range(2)]
    client = _client(honest_chain, provers, oracle)

    with pytest.raises(NoHonestProverError):
        await client.sync_from_genesis()


@pytest.mark.asyncio
async def test_wrong_head_committee_falls_through_to_next_survivor(honest_chain, oracle):
    decoy = honest_chain.committees[5]
    provers = [WrongHeadProver(honest_chain, decoy), honest_chain.prover("honest")]
    seen = []
    client = _client(honest_chain, provers, oracle, listeners=[seen.append])

    result = await client.sync_from_genesis()

    assert result.prover_index == 1
    assert result.committee == honest_chain.committees[6]
    assert [e.data["prover"] for e in seen if e.type is SyncEventType.PROVER_REJECTED] == [0]


@pytest.mark.asyncio
async def test_head_at_genesis_returns_genesis_committee(honest_chain, oracle):
    client = _client(honest_chain, [honest_chain.prover()], oracle, head=0)

    result = await client.sync_from_genesis()

    assert result.committee == honest_chain.genesis.committee
    assert result.period == 0


@pytest.mark.asyncio
async def test_single_prover_chain_is_verified(honest_chain, oracle):
    forged = fork_chain(honest_chain, fork_period=2)
    client = _client(honest_chain, [forged.prover("alone")], oracle)

    with pytest.raises(NoHonestProverError):
        await client.sync_from_genesis()

    client = _client(honest_chain, [honest_chain.prover("alone")], oracle)
    result = await client.sync_from_genesis()
    assert result.committee == honest_chain.committees[6]


@pytest.mark.asyncio
async def test_non_zero_genesis_period(oracle):
    chain = build_chain(genesis_period=10, head_period=14)
    forked = fork_chain(chain, fork_period=12)
    client = _client(chain, [forked.prover("forked"), chain.prover("honest")], oracle)

    result = await client.sync_from_genesis()

    assert result.committee == chain.committees[14]
    assert result.prover_index == 1


@pytest.mark.asyncio
async def test_head_before_genesis_rejected(oracle):
    chain = build_chain(genesis_period=3, head_period=5)
    client = _client(chain, [chain.prover()], oracle, head=2)

    with pytest.raises(ConfigurationError):
        await client.sync_from_genesis()


@pytest.mark.asyncio
async def test_incremental_sync_resumes_from_latest(honest_chain, oracle):
    head = StaticChainHead(3)
    provers = [honest_chain.prover("a"), honest_chain.prover("b")]
    seen = []
    client = OptimisticLightClient(
        provers, oracle, honest_chain.genesis, head, listeners=[seen.append]
    )

    first = await client.sync()
    assert first.committee == honest_chain.committees[3]

    assert await client.sync() is first

    head.period = 6
    second = await client.sync()
    assert second.committee == honest_chain.committees[6]
    assert client.committees.trusted[3] == honest_chain.committees[3]

    started = [e for e in seen if e.type is SyncEventType.SYNC_STARTED]
    assert [e.period for e in started] == [0, 3]


@pytest.mark.asyncio
async def test_hash_queries_are_batched(honest_chain, oracle):
    default_prover = honest_chain.prover("default")
    await _client(honest_chain, [default_prover, honest_chain.prover()], oracle).sync_from_genesis()
    assert default_prover.hash_batches_served == 1

    small_prover = honest_chain.prover("small")
    client = _client(
        honest_chain, [small_prover, honest_chain.prover()], oracle, config=ClientConfig(batch_size=2)
    )
    await client.sync_from_genesis()
    assert small_prover.hash_batches_served == 3


@pytest.mark.asyncio
async def test_event_sequence(honest_chain, oracle):
    seen = []
    provers = [honest_chain.prover("a"), honest_chain.prover("b")]
    await _client(honest_chain, provers, oracle, listeners=[seen.append]).sync_from_genesis()

    assert seen[0].type is SyncEventType.SYNC_STARTED
    assert seen[-1].type is SyncEventType.SYNC_COMPLETED
    agreed = [e.period for e in seen if e.type is SyncEventType.PERIOD_AGREED]
    assert agreed == [1, 2, 3, 4, 5, 6]


def test_constructor_validation(honest_chain, oracle):
    with pytest.raises(ConfigurationError):
        _client(honest_chain, [], oracle)

    empty_genesis = GenesisData(period=0, committee=())
    with pytest.raises(ConfigurationError):
        OptimisticLightClient([honest_chain.prover()], oracle, empty_genesis, StaticChainHead(1))


def test_from_config(honest_chain):
    with pytest.raises(ConfigurationError):
        OptimisticLightClient.from_config(ClientConfig(), honest_chain.genesis)

    config = ClientConfig(prover_urls=["http://p1:8080", "http://p2:8080/"], batch_size=8)
    client = OptimisticLightClient.from_config(config, honest_chain.genesis)

    assert all(isinstance(p, HttpProverChannel) for p in client.provers)
    assert [p.base_url for p in client.provers] == ["http://p1:8080", "http://p2:8080"]
    assert isinstance(client.chain_head, ClockChainHead)
    assert client.batch_size == 8


def test_committee_hash_helpers(honest_chain, oracle):
    client = _client(honest_chain, [honest_chain.prover()], oracle)
    assert client.genesis_period == 0
    assert client.get_current_period() == 6
    assert client.get_committee_hash(client.genesis_committee) == honest_chain.hash_at(0)
