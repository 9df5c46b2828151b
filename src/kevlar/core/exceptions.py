"""
Light client exception hierarchy for Kevlar.

Provides typed exceptions for sync operations so that per-prover faults can be
converted into lost claims while protocol violations and session exhaustion
propagate to the caller.
"""

from __future__ import annotations
from typing import Optional, Any, Dict


class LightClientError(Exception):
    """Base exception for all light client errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the session can continue after this error
    """

    recoverable = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: Optional[bool] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if recoverable is not None:
            self.recoverable = recoverable


# ==================== Prover Errors ====================


class ProverError(LightClientError):
    """Raised when a single prover misbehaves or cannot be reached.

    Prover errors never abort a session; the offending claim loses its round.
    """
    recoverable = True

    def __init__(
        self,
        message: str,
        prover_index: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.prover_index = prover_index


class ProverUnreachableError(ProverError):
    """Raised when a prover cannot be reached or times out."""
    pass


class ProverMalformedError(ProverError):
    """Raised when a prover answers with data that cannot be decoded."""
    pass


class IncorrectCommitteeError(ProverError):
    """Raised when a prover's committee does not hash to the expected value."""
    pass


# ==================== Input Validation Errors ====================


class MissingExpectedHashError(LightClientError):
    """Raised when a committee is requested without the hash anchoring it."""
    pass


# ==================== Fatal Session Errors ====================


class ProtocolViolationError(LightClientError):
    """Raised when two differing transitions both verify for the same prior committee.

    Signals signature forgery or a consensus fork the light client cannot
    arbitrate.
    """

    def __init__(
        self,
        message: str,
        period: Optional[int] = None,
        prover_indices: Optional[tuple] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.period = period
        self.prover_indices = prover_indices


class NoHonestProverError(LightClientError):
    """Raised when no surviving prover's committee verifies at the head period."""
    pass


class ConfigurationError(LightClientError):
    """Raised when light client configuration is missing or invalid."""
    pass


# ==================== Utility Functions ====================


def is_recoverable_error(exc: Exception) -> bool:
    """Check if an exception only affects a single prover's claim.

    Args:
        exc: The exception to check

    Returns:
        True if the sync session can continue
    """
    if isinstance(exc, LightClientError):
        return exc.recoverable

    recoverable_types = (
        ConnectionError,
        TimeoutError,
    )
    return isinstance(exc, recoverable_types)


def get_error_context(exc: Exception) -> Dict[str, Any]:
    """Extract error context from an exception for logging.

    Args:
        exc: The exception to extract context from

    Returns:
        Dictionary containing error type, message, and any additional details
    """
    context: Dict[str, Any] = {
        "error_type": type(exc).__name__,
        "error_message": str(exc),
    }

    if isinstance(exc, LightClientError):
        context["recoverable"] = exc.recoverable
        if exc.details:
            context["details"] = exc.details

    if isinstance(exc, ProverError) and exc.prover_index is not None:
        context["prover_index"] = exc.prover_index

    if isinstance(exc, ProtocolViolationError):
        if exc.period is not None:
            context["period"] = exc.period
        if exc.prover_indices is not None:
            context["prover_indices"] = list(exc.prover_indices)

    return context
