"""Data types shared by the optimistic light client components."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Union

Period = int
Committee = tuple[str, ...]
CommitteeHash = bytes


def short_hex(value: bytes, length: int = 8) -> str:
    """Abbreviated hex for log lines."""
    text = value.hex()
    return text if len(text) <= length else text[:length] + "..."


@dataclass(frozen=True)
class SyncUpdate:
    """Signed record proving the committee entering ``period`` follows from the one before it.

    ``signatures`` maps a member's index in the previous committee to its
    compact hex signature.
    """

    period: Period
    next_committee: Committee
    signatures: dict[int, str] = field(default_factory=dict, hash=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period,
            "next_committee": list(self.next_committee),
            "signatures": {str(i): sig for i, sig in sorted(self.signatures.items())},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncUpdate:
        return cls(
            period=int(data["period"]),
            next_committee=tuple(str(pk) for pk in data["next_committee"]),
            signatures={int(i): str(sig) for i, sig in data.get("signatures", {}).items()},
        )


@dataclass(frozen=True)
class Valid:
    committee: Committee

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Invalid:
    reason: str

    @property
    def ok(self) -> bool:
        return False


VerificationResult = Union[Valid, Invalid]


@dataclass(frozen=True)
class ProverClaim:
    """A prover's unverified claim about the committee hash at one period."""

    index: int
    committee_hash: CommitteeHash

    def __repr__(self):
        return f"ProverClaim(index={self.index}, hash='{short_hex(self.committee_hash)}')"


class DisputeOutcome(Enum):
    A_WINS = "a_wins"
    B_WINS = "b_wins"
    NEITHER = "neither"


@dataclass(frozen=True)
class SyncResult:
    """Committee accepted at ``period`` and the prover that substantiated it."""

    committee: Committee
    prover_index: int
    period: Period


@dataclass(frozen=True)
class GenesisData:
    """Trusted bootstrap: the committee at the genesis period."""

    period: Period
    committee: Committee
    genesis_time: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period,
            "committee": list(self.committee),
            "genesis_time": self.genesis_time,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GenesisData:
        committee = tuple(str(pk) for pk in data["committee"])
        if not committee:
            raise ValueError("Genesis committee cannot be empty.")
        period = int(data["period"])
        if period < 0:
            raise ValueError("Genesis period must be non-negative.")
        genesis_time = data.get("genesis_time")
        return cls(
            period=period,
            committee=committee,
            genesis_time=int(genesis_time) if genesis_time is not None else None,
        )

    @classmethod
    def load(cls, path: str | Path) -> GenesisData:
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))
