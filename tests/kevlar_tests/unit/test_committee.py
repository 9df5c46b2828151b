"""Unit tests for CommitteeFetcher."""

import pytest

from kevlar.core.exceptions import (
    IncorrectCommitteeError,
    MissingExpectedHashError,
    ProverUnreachableError,
)
from kevlar.lightclient.committee import CommitteeFetcher
from kevlar.lightclient.prover import InMemoryProver


@pytest.mark.asyncio
async def test_genesis_committee_needs_no_prover(honest_chain, oracle):
    empty = InMemoryProver({}, {}, name="empty")
    fetcher = CommitteeFetcher([empty], oracle, honest_chain.genesis)

    committee = await fetcher.get_committee(0, 0, None)

    assert committee == honest_chain.genesis.committee


@pytest.mark.asyncio
async def test_missing_expected_hash(honest_chain, oracle):
    fetcher = CommitteeFetcher([honest_chain.prover()], oracle, honest_chain.genesis)

    with pytest.raises(MissingExpectedHashError):
        await fetcher.get_committee(2, 0, None)


@pytest.mark.asyncio
async def test_committee_matching_hash_is_returned(honest_chain, oracle):
    fetcher = CommitteeFetcher([honest_chain.prover()], oracle, honest_chain.genesis)

    committee = await fetcher.get_committee(4, 0, honest_chain.hash_at(4))

    assert committee == honest_chain.committees[4]


@pytest.mark.asyncio
async def test_hash_mismatch_is_incorrect_committee(honest_chain, oracle):
    provers = [honest_chain.prover("a"), honest_chain.prover("b")]
    fetcher = CommitteeFetcher(provers, oracle, honest_chain.genesis)

    with pytest.raises(IncorrectCommitteeError) as excinfo:
        await fetcher.get_committee(4, 1, honest_chain.hash_at(3))

    assert excinfo.value.prover_index == 1
    assert excinfo.value.recoverable is True
    assert set(excinfo.value.details) == {"expected", "actual"}


@pytest.mark.asyncio
async def test_malformed_committee_is_incorrect(honest_chain, oracle):
    bad = InMemoryProver({2: ("not-a-key",)}, {}, name="bad")
    fetcher = CommitteeFetcher([bad], oracle, honest_chain.genesis)

    with pytest.raises(IncorrectCommitteeError):
        await fetcher.get_committee(2, 0, honest_chain.hash_at(2))


@pytest.mark.asyncio
async def test_prover_failure_carries_index(honest_chain, oracle):
    provers = [honest_chain.prover(), InMemoryProver({}, {}, name="empty")]
    fetcher = CommitteeFetcher(provers, oracle, honest_chain.genesis)

    with pytest.raises(ProverUnreachableError) as excinfo:
        await fetcher.get_committee(2, 1, honest_chain.hash_at(2))

    assert excinfo.value.prover_index == 1


@pytest.mark.asyncio
async def test_trusted_committee_short_circuits(honest_chain, oracle):
    fetcher = CommitteeFetcher([InMemoryProver({}, {})], oracle, honest_chain.genesis)
    fetcher.trust(5, honest_chain.committees[5])

    assert await fetcher.get_committee(5, 0, None) == honest_chain.committees[5]
