"""
HTTP prover channel.

Talks to a prover server over JSON:
    GET /sync-committee/{period}
    GET /sync-committee/hashes?startPeriod=P&maxCount=N
    GET /sync-update/{period}

Transport failures surface as ProverUnreachableError and undecodable payloads
as ProverMalformedError, so the light client can count them as lost claims.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from kevlar.core.config import DEFAULT_PROVER_TIMEOUT
from kevlar.core.crypto_utils import public_key_bytes
from kevlar.core.exceptions import ProverMalformedError, ProverUnreachableError
from kevlar.lightclient.prover import ProverChannel
from kevlar.lightclient.types import Committee, CommitteeHash, Period, SyncUpdate

logger = logging.getLogger(__name__)

COMMITTEE_HASH_BYTES = 32


class HttpProverChannel(ProverChannel):
    """Prover reached over HTTP with a shared aiohttp session."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_PROVER_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
    ):
        if not base_url:
            raise ValueError("Prover base URL cannot be empty.")
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None
        self._hash_cache: dict[Period, CommitteeHash] = {}

    def __repr__(self):
        return f"HttpProverChannel(base_url='{self.base_url}')"

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> HttpProverChannel:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            async with self._get_session().get(url, params=params) as response:
                if response.status != 200:
                    raise ProverUnreachableError(
                        f"Prover {self.base_url} answered HTTP {response.status} for {path}",
                        details={"status": response.status, "path": path},
                    )
                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    raise ProverMalformedError(f"Prover {self.base_url} sent invalid JSON for {path}: {e}")
        except asyncio.TimeoutError:
            raise ProverUnreachableError(f"Prover {self.base_url} timed out on {path}")
        except aiohttp.ClientError as e:
            raise ProverUnreachableError(f"Prover {self.base_url} request failed: {e}")

        if not isinstance(data, dict):
            raise ProverMalformedError(f"Prover {self.base_url} sent a non-object payload for {path}")
        return data

    async def get_committee(self, period: Period) -> Committee:
        data = await self._get_json(f"/sync-committee/{period}")
        committee = data.get("committee")
        if not isinstance(committee, list) or not committee:
            raise ProverMalformedError(f"Prover {self.base_url} sent no committee for period {period}")
        try:
            for pk in committee:
                public_key_bytes(pk)
        except (ValueError, TypeError) as e:
            raise ProverMalformedError(f"Prover {self.base_url} sent a malformed committee: {e}")
        return tuple(committee)

    async def get_committee_hash(
        self, period: Period, current_period: Period, batch_size: int
    ) -> CommitteeHash:
        cached = self._hash_cache.get(period)
        if cached is not None:
            return cached

        count = max(1, min(batch_size, current_period - period + 1))
        data = await self._get_json(
            "/sync-committee/hashes",
            params={"startPeriod": period, "maxCount": count},
        )
        raw_hashes = data.get("hashes")
        if not isinstance(raw_hashes, list) or not raw_hashes:
            raise ProverMalformedError(f"Prover {self.base_url} sent no hashes from period {period}")

        hashes = []
        for raw in raw_hashes[:count]:
            try:
                value = bytes.fromhex(raw)
            except (ValueError, TypeError):
                raise ProverMalformedError(f"Prover {self.base_url} sent a non-hex committee hash")
            if len(value) != COMMITTEE_HASH_BYTES:
                raise ProverMalformedError(
                    f"Prover {self.base_url} sent a {len(value)}-byte committee hash"
                )
            hashes.append(value)

        for offset, value in enumerate(hashes):
            self._hash_cache[period + offset] = value
        logger.debug(
            "Fetched committee hash batch",
            extra={"event": "prover.hash_batch", "prover": self.base_url, "start": period, "count": len(hashes)},
        )
        return hashes[0]

    async def get_sync_update(self, period: Period) -> SyncUpdate:
        data = await self._get_json(f"/sync-update/{period}")
        try:
            return SyncUpdate.from_dict(data)
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise ProverMalformedError(f"Prover {self.base_url} sent a malformed sync update: {e}")
