"""
Verification oracle for sync committee transitions.

The light client core only needs two things from cryptography: a deterministic
committee hash, and a check that a signed sync update legitimately moves the
chain from one committee to the next. ``VerificationOracle`` describes that
contract; ``CommitteeSignatureOracle`` implements it with per-member
secp256k1 signatures and a supermajority participation rule.
"""

from __future__ import annotations

import hashlib
import logging
import math
from abc import ABC, abstractmethod
from fractions import Fraction
from typing import Mapping

from kevlar.core.config import DEFAULT_PARTICIPATION_THRESHOLD
from kevlar.core.crypto_utils import (
    public_key_bytes,
    sign_message_hex,
    verify_signature_hex,
)
from kevlar.lightclient.types import (
    Committee,
    CommitteeHash,
    Invalid,
    Period,
    SyncUpdate,
    Valid,
    VerificationResult,
)

logger = logging.getLogger(__name__)

SYNC_UPDATE_DOMAIN = b"kevlar/sync-update/v1"


class VerificationOracle(ABC):
    """Cryptographic collaborator consumed by the dispute protocol."""

    @abstractmethod
    def hash_of(self, committee: Committee) -> CommitteeHash:
        """Deterministic digest of a committee."""

    @abstractmethod
    def verify_transition(self, prev_committee: Committee, update: SyncUpdate) -> VerificationResult:
        """Return ``Valid(next_committee)`` or ``Invalid(reason)``; never raises."""


def committee_hash(committee: Committee) -> CommitteeHash:
    """SHA-256 over the concatenated raw public keys, in committee order."""
    return hashlib.sha256(b"".join(public_key_bytes(pk) for pk in committee)).digest()


def sync_update_signing_root(period: Period, prev_hash: CommitteeHash, next_hash: CommitteeHash) -> bytes:
    return hashlib.sha256(
        SYNC_UPDATE_DOMAIN + period.to_bytes(8, "big") + prev_hash + next_hash
    ).digest()


def sign_sync_update(
    period: Period,
    prev_committee: Committee,
    next_committee: Committee,
    signer_keys: Mapping[int, str],
) -> SyncUpdate:
    """
    Build a sync update signed by members of the previous committee.

    Args:
        period: Period being entered
        prev_committee: Committee of ``period - 1``
        next_committee: Committee of ``period``
        signer_keys: Index in ``prev_committee`` -> private key hex. A key that
            does not belong to that index still signs; the oracle rejects it.

    Returns:
        The signed SyncUpdate
    """
    message = sync_update_signing_root(period, committee_hash(prev_committee), committee_hash(next_committee))
    signatures = {index: sign_message_hex(key, message) for index, key in signer_keys.items()}
    return SyncUpdate(period=period, next_committee=tuple(next_committee), signatures=signatures)


class CommitteeSignatureOracle(VerificationOracle):
    """
    Accept an update when enough distinct members of the previous committee signed it.

    The required signer count is ``ceil(threshold * len(prev_committee))``.
    """

    def __init__(self, participation_threshold: Fraction = DEFAULT_PARTICIPATION_THRESHOLD):
        if not (0 < participation_threshold <= 1):
            raise ValueError("Participation threshold must be in (0, 1].")
        self.participation_threshold = Fraction(participation_threshold)

    def hash_of(self, committee: Committee) -> CommitteeHash:
        return committee_hash(committee)

    def required_signers(self, committee_size: int) -> int:
        return max(1, math.ceil(self.participation_threshold * committee_size))

    def verify_transition(self, prev_committee: Committee, update: SyncUpdate) -> VerificationResult:
        if not prev_committee:
            return Invalid("previous committee is empty")
        if not update.next_committee:
            return Invalid("next committee is empty")

        try:
            prev_hash = committee_hash(prev_committee)
            next_hash = committee_hash(update.next_committee)
        except (ValueError, TypeError) as e:
            return Invalid(f"malformed committee: {e}")
        try:
            message = sync_update_signing_root(update.period, prev_hash, next_hash)
        except (OverflowError, AttributeError):
            return Invalid(f"unencodable period {update.period!r}")
        signers = set()
        for index, signature in update.signatures.items():
            if not isinstance(index, int) or not (0 <= index < len(prev_committee)):
                logger.debug(
                    "Ignoring signature from index outside committee",
                    extra={"event": "oracle.signer_out_of_range", "index": index},
                )
                continue
            try:
                if verify_signature_hex(prev_committee[index], message, signature):
                    signers.add(index)
            except (ValueError, TypeError):
                continue

        required = self.required_signers(len(prev_committee))
        if len(signers) < required:
            return Invalid(f"insufficient participation: {len(signers)}/{required} valid signatures")
        return Valid(tuple(update.next_committee))
