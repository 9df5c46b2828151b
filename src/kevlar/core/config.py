"""
Kevlar Light Client Configuration

Supports mainnet and testnet chain timing with environment overrides.

Environment variables:
- KEVLAR_NETWORK: "mainnet" (default) or "testnet"
- KEVLAR_BATCH_SIZE: periods a prover may batch per committee-hash query
- KEVLAR_PROVER_URLS: comma separated prover base URLs
- KEVLAR_PROVER_TIMEOUT: per-request prover timeout in seconds
- KEVLAR_PARTICIPATION_THRESHOLD: required signer share as "n/d"
- KEVLAR_LOG_LEVEL / KEVLAR_LOG_FILE: logging setup
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from fractions import Fraction
from typing import Mapping

from kevlar.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


DEFAULT_BATCH_SIZE = 32
DEFAULT_PROVER_TIMEOUT = 30.0
DEFAULT_PARTICIPATION_THRESHOLD = Fraction(2, 3)


class NetworkType(Enum):
    MAINNET = "mainnet"
    TESTNET = "testnet"


@dataclass(frozen=True)
class ChainConfig:
    """Slot timing used to map wall-clock time onto sync committee periods."""

    network: NetworkType
    genesis_time: int
    seconds_per_slot: int = 12
    slots_per_epoch: int = 32
    epochs_per_sync_committee_period: int = 256

    @property
    def seconds_per_period(self) -> int:
        return self.seconds_per_slot * self.slots_per_epoch * self.epochs_per_sync_committee_period

    @classmethod
    def mainnet(cls) -> ChainConfig:
        return cls(network=NetworkType.MAINNET, genesis_time=1606824023)

    @classmethod
    def testnet(cls) -> ChainConfig:
        # Goerli beacon chain
        return cls(network=NetworkType.TESTNET, genesis_time=1616508000)

    @classmethod
    def for_network(cls, network: str) -> ChainConfig:
        try:
            network_type = NetworkType(network.strip().lower())
        except ValueError:
            raise ConfigurationError(
                f"Unknown network '{network}'",
                details={"supported": [n.value for n in NetworkType]},
            )
        if network_type is NetworkType.MAINNET:
            return cls.mainnet()
        return cls.testnet()


def _parse_int(env: Mapping[str, str], name: str, default: int, minimum: int = 1) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got '{raw}'")
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value


def _parse_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got '{raw}'")
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


def parse_threshold(raw: str) -> Fraction:
    """Parse a participation threshold such as "2/3" or "0.75"."""
    try:
        threshold = Fraction(raw.strip())
    except (ValueError, ZeroDivisionError):
        raise ConfigurationError(f"Invalid participation threshold '{raw}'")
    if not (0 < threshold <= 1):
        raise ConfigurationError(f"Participation threshold must be in (0, 1], got {threshold}")
    return threshold


@dataclass
class ClientConfig:
    """Runtime settings for an optimistic light client session."""

    batch_size: int = DEFAULT_BATCH_SIZE
    prover_urls: list[str] = field(default_factory=list)
    prover_timeout: float = DEFAULT_PROVER_TIMEOUT
    participation_threshold: Fraction = DEFAULT_PARTICIPATION_THRESHOLD
    chain: ChainConfig = field(default_factory=ChainConfig.mainnet)
    log_level: str = "INFO"
    log_file: str | None = None

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ConfigurationError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.prover_timeout <= 0:
            raise ConfigurationError(f"prover_timeout must be positive, got {self.prover_timeout}")
        if self.log_level.upper() not in logging.getLevelNamesMapping():
            raise ConfigurationError(f"Unknown log level '{self.log_level}'")

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> ClientConfig:
        """Build a config from KEVLAR_* environment variables."""
        env = os.environ if env is None else env

        prover_urls = [
            url.strip() for url in env.get("KEVLAR_PROVER_URLS", "").split(",") if url.strip()
        ]
        threshold_raw = env.get("KEVLAR_PARTICIPATION_THRESHOLD", "").strip()
        config = cls(
            batch_size=_parse_int(env, "KEVLAR_BATCH_SIZE", DEFAULT_BATCH_SIZE),
            prover_urls=prover_urls,
            prover_timeout=_parse_float(env, "KEVLAR_PROVER_TIMEOUT", DEFAULT_PROVER_TIMEOUT),
            participation_threshold=(
                parse_threshold(threshold_raw) if threshold_raw else DEFAULT_PARTICIPATION_THRESHOLD
            ),
            chain=ChainConfig.for_network(env.get("KEVLAR_NETWORK", "mainnet")),
            log_level=env.get("KEVLAR_LOG_LEVEL", "INFO").strip() or "INFO",
            log_file=env.get("KEVLAR_LOG_FILE", "").strip() or None,
        )
        logger.debug(
            "Loaded client configuration",
            extra={
                "event": "config.loaded",
                "network": config.chain.network.value,
                "batch_size": config.batch_size,
                "provers": len(config.prover_urls),
            },
        )
        return config
