"""
HTTP transport for chunk downloads.

Fetches one chunk per call with aiohttp and classifies every outcome into a
ChunkFetch instead of raising. Chunk bodies are buffered completely before
they are returned, so a connection dropped mid-body never reaches the
destination file.
"""

import asyncio
import logging
from typing import Optional, Protocol

import aiohttp

from segment_loader.download.models import ChunkFetch
from segment_loader.errors.exceptions import (
    ErrorCategory,
    HttpStatusError,
    TransientTransportError,
    classify_http_status,
)
from segment_loader.logging.setup import get_logger
from segment_loader.logging.utilities import log_with_context
from segment_loader.security.url import sanitize_error_message

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_READ_CHUNK_SIZE = 64 * 1024


class ChunkTransport(Protocol):
    """Anything able to fetch a chunk URI into a classified ChunkFetch."""

    async def fetch(self, uri: str) -> ChunkFetch:
        ...


def create_session(
    max_connections: int = 10,
    user_agent: Optional[str] = None,
) -> aiohttp.ClientSession:
    """
    Create aiohttp session for chunk downloads.

    Args:
        max_connections: Total connection pool size
        user_agent: Optional User-Agent header value

    Returns:
        Configured ClientSession (caller closes it)
    """
    connector = aiohttp.TCPConnector(limit=max_connections)
    headers = {"User-Agent": user_agent} if user_agent else None
    return aiohttp.ClientSession(connector=connector, headers=headers)


class HttpChunkTransport:
    """
    aiohttp-backed ChunkTransport.

    Session management:
        By default a session is created lazily and closed by close() or by
        leaving the ``async with`` block. A shared session can be passed in
        instead; it is then left open for its owner.

        async with HttpChunkTransport(timeout=30) as transport:
            fetch = await transport.fetch(uri)
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        read_chunk_size: int = DEFAULT_READ_CHUNK_SIZE,
        max_connections: int = 10,
        user_agent: Optional[str] = None,
    ):
        self._session = session
        self._owns_session = session is None
        self._timeout = timeout
        self._read_chunk_size = read_chunk_size
        self._max_connections = max_connections
        self._user_agent = user_agent

    async def __aenter__(self) -> "HttpChunkTransport":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the session if this transport created it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = create_session(
                max_connections=self._max_connections, user_agent=self._user_agent
            )
        return self._session

    async def fetch(self, uri: str) -> ChunkFetch:
        """
        GET ``uri`` and read the complete body.

        Classification:
            2xx                -> OK with the full body
            404                -> NOT_FOUND
            408, 429, 5xx      -> TRANSIENT (TransientTransportError)
            other statuses     -> FATAL (HttpStatusError)
            timeouts and aiohttp client errors, including a body cut short
                               -> TRANSIENT
        """
        session = self._get_session()

        try:
            async with session.get(
                uri,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as response:
                status = response.status

                if status == 404:
                    return ChunkFetch.not_found(uri)

                if not 200 <= status < 300:
                    return self._classify_status(uri, status)

                buffer = bytearray()
                async for piece in response.content.iter_chunked(self._read_chunk_size):
                    buffer.extend(piece)

                log_with_context(
                    logger,
                    logging.DEBUG,
                    "Chunk response received",
                    chunk_uri=uri,
                    http_status=status,
                    chunk_bytes=len(buffer),
                )
                return ChunkFetch.ok(uri, bytes(buffer), http_status=status)

        except asyncio.TimeoutError as e:
            return ChunkFetch.transient(
                uri,
                TransientTransportError(
                    f"Chunk request timed out after {self._timeout}s", uri=uri, cause=e
                ),
            )
        except aiohttp.ClientError as e:
            return ChunkFetch.transient(
                uri,
                TransientTransportError(
                    f"Connection error: {sanitize_error_message(str(e))}",
                    uri=uri,
                    cause=e,
                ),
            )

    @staticmethod
    def _classify_status(uri: str, status: int) -> ChunkFetch:
        if classify_http_status(status) == ErrorCategory.TRANSIENT:
            return ChunkFetch.transient(
                uri,
                TransientTransportError(f"HTTP error: {status}", uri=uri, http_status=status),
                http_status=status,
            )
        return ChunkFetch.fatal(
            uri,
            HttpStatusError(f"HTTP error: {status}", status_code=status, uri=uri),
            http_status=status,
        )


__all__ = [
    "ChunkTransport",
    "HttpChunkTransport",
    "create_session",
    "DEFAULT_TIMEOUT_SECONDS",
    "DEFAULT_READ_CHUNK_SIZE",
]
