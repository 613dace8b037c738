"""HTTP connection to the FIRDS publication endpoints using aiohttp."""
import asyncio
import logging
from typing import Any, AsyncIterator

import aiohttp

from firds.core.errors import FetchError, NetworkTransient, SourceIndexError

logger = logging.getLogger(__name__)

_TRANSIENT_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


class FirdsConnection:
    """Owns an aiohttp session and maps transport failures to ingestion errors.

    Timeouts, connection errors and 5xx/429 responses surface as
    ``NetworkTransient`` so callers can retry them; any other non-2xx
    response is a terminal ``FetchError``.

    Attributes:
        timeout: Total timeout for index queries, and the connect and
            per-read timeout for downloads, in seconds
        chunk_size: Bytes read per chunk when streaming a download
    """

    def __init__(self, timeout: float = 60.0, chunk_size: int = 1 << 16):
        self.timeout = timeout
        self.chunk_size = chunk_size
        self._session: aiohttp.ClientSession | None = None

        logger.debug(
            "INIT: FirdsConnection initialized",
            extra={
                "extra_data": {
                    "action": "connection_init",
                    "timeout": timeout,
                    "chunk_size": chunk_size,
                }
            },
        )

    def is_connected(self) -> bool:
        return self._session is not None and not self._session.closed

    async def connect(self) -> None:
        if self.is_connected():
            return
        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        )

    async def disconnect(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    @property
    def download_timeout(self) -> aiohttp.ClientTimeout:
        """Bounds stalls rather than the whole transfer, which can run long."""
        return aiohttp.ClientTimeout(
            total=None, sock_connect=self.timeout, sock_read=self.timeout
        )

    async def __aenter__(self) -> "FirdsConnection":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    def _check_status(self, url: str, status: int) -> None:
        if status in _TRANSIENT_STATUSES:
            raise NetworkTransient(f"HTTP {status} from {url}")
        if status >= 400:
            raise FetchError(f"HTTP {status} from {url}")

    async def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """GET a JSON document."""
        await self.connect()
        try:
            async with self._session.get(url, params=params) as response:
                self._check_status(url, response.status)
                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise SourceIndexError(f"Response from {url} is not JSON: {e}") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkTransient(f"Request to {url} failed: {e!r}") from e

    async def iter_chunks(self, url: str) -> AsyncIterator[bytes]:
        """Stream a response body chunk by chunk."""
        await self.connect()
        try:
            async with self._session.get(url, timeout=self.download_timeout) as response:
                self._check_status(url, response.status)
                async for chunk in response.content.iter_chunked(self.chunk_size):
                    yield chunk
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkTransient(f"Download of {url} failed: {e!r}") from e
