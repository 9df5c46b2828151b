"""
Kevlar Light Client Module

- Verification oracle for signed sync committee transitions
- Prover channels (in-memory and HTTP)
- Pairwise dispute resolution and the prover tournament
- Optimistic sync from genesis to the chain head
"""

from kevlar.lightclient.chain_head import ChainHead, ClockChainHead, StaticChainHead
from kevlar.lightclient.committee import CommitteeFetcher
from kevlar.lightclient.dispute import DisputeResolver
from kevlar.lightclient.events import EventEmitter, SyncEvent, SyncEventType
from kevlar.lightclient.http_prover import HttpProverChannel
from kevlar.lightclient.optimistic_client import OptimisticLightClient
from kevlar.lightclient.oracle import (
    CommitteeSignatureOracle,
    VerificationOracle,
    committee_hash,
    sign_sync_update,
)
from kevlar.lightclient.prover import InMemoryProver, ProverChannel
from kevlar.lightclient.tournament import TournamentEngine
from kevlar.lightclient.types import (
    DisputeOutcome,
    GenesisData,
    Invalid,
    ProverClaim,
    SyncResult,
    SyncUpdate,
    Valid,
)

__all__ = [
    "ChainHead",
    "ClockChainHead",
    "CommitteeFetcher",
    "CommitteeSignatureOracle",
    "DisputeOutcome",
    "DisputeResolver",
    "EventEmitter",
    "GenesisData",
    "HttpProverChannel",
    "InMemoryProver",
    "Invalid",
    "OptimisticLightClient",
    "ProverChannel",
    "ProverClaim",
    "StaticChainHead",
    "SyncEvent",
    "SyncEventType",
    "SyncResult",
    "SyncUpdate",
    "TournamentEngine",
    "Valid",
    "VerificationOracle",
    "committee_hash",
    "sign_sync_update",
]
