"""
Resilient transfer loop for segmented resources.

SegmentLoader downloads the chunks of one resource strictly in order and
appends each complete chunk body to a single destination file:

    Idle -> Fetching -> Writing -> (more chunks? Fetching : Done)
    Fetching -> Retrying -> Fetching    (transient failure, bounded)
    Fetching -> Failed                  (fatal, or retries exhausted)

Clean interface: download(DownloadJob, destination_folder) -> DownloadResult,
raising a LoaderError subclass on failure.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Optional, Union

import aiofiles

from segment_loader import metrics
from segment_loader.config import LoaderConfig
from segment_loader.download.http_client import ChunkTransport
from segment_loader.download.models import (
    ChunkFetch,
    DownloadJob,
    DownloadResult,
    FetchStatus,
    RetryState,
    SequencerState,
    TerminationPolicy,
)
from segment_loader.download.sequencer import ChunkSequencer
from segment_loader.errors.exceptions import (
    ChunkNotFoundError,
    ConfigurationError,
    FileSystemError,
    LoaderError,
    RetriesExhaustedError,
    TransientTransportError,
)
from segment_loader.logging.context import log_context
from segment_loader.logging.setup import get_logger
from segment_loader.logging.utilities import log_with_context

logger = get_logger(__name__)


class SegmentLoader:
    """
    Downloads segmented resources through an injected ChunkTransport.

    One SegmentLoader may serve many jobs, including concurrent ones: all
    per-job state (sequencer position, padding width, retry counter, file
    handle) is created inside download() and discarded when it returns.

    Usage:
        async with HttpChunkTransport() as transport:
            loader = SegmentLoader(transport, LoaderConfig())
            result = await loader.download(job, Path("output"))
    """

    def __init__(self, transport: ChunkTransport, config: Optional[LoaderConfig] = None):
        self._transport = transport
        self._config = config or LoaderConfig()

    async def download(
        self, job: DownloadJob, destination_folder: Union[str, Path]
    ) -> DownloadResult:
        """
        Download every chunk of ``job`` into ``{destination_folder}/{name}{ext}``.

        The destination file is created or truncated. Chunk N is written and
        flushed before chunk N+1 is requested. On failure the bytes of chunks
        already completed are left on disk.

        Args:
            job: Resource to download
            destination_folder: Folder for the output file (created if missing)

        Returns:
            DownloadResult describing the completed file

        Raises:
            InvalidChunkTokenError: Chunk number in a URI is not numeric
            ConfigurationError: final_chunk precedes the initial chunk
            ChunkNotFoundError: 404 where the resource was not expected to end
            HttpStatusError: Non-retriable HTTP status
            RetriesExhaustedError: A chunk failed transiently max_retries times
            FileSystemError: Destination cannot be created or written
        """
        with log_context(resource=job.resource_name):
            return await self._download(job, Path(destination_folder))

    async def _download(self, job: DownloadJob, folder: Path) -> DownloadResult:
        started = time.monotonic()

        sequencer = ChunkSequencer(separator=job.separator, zero_pad=job.zero_pad)
        state = sequencer.start(job.initial_uri)
        first_chunk = state.chunk_index

        if (
            job.termination_policy is TerminationPolicy.COUNT
            and job.final_chunk is not None
            and job.final_chunk < first_chunk
        ):
            raise ConfigurationError(
                f"final_chunk {job.final_chunk} precedes initial chunk {first_chunk}",
                context={"resource_name": job.resource_name},
            )

        file_path = job.destination_path(folder)
        retry = RetryState(max_retries=self._config.max_retries)

        try:
            await asyncio.to_thread(folder.mkdir, parents=True, exist_ok=True)
            sink = await aiofiles.open(file_path, "wb")
        except OSError as e:
            raise FileSystemError(
                f"Cannot open destination file {file_path}", path=str(file_path), cause=e
            ) from e

        bytes_written = 0
        chunks_written = 0
        try:
            while True:
                fetch = await self._transport.fetch(state.uri)

                if fetch.status is FetchStatus.OK:
                    content = fetch.content or b""
                    await self._commit(sink, content, file_path)
                    bytes_written += len(content)
                    chunks_written += 1
                    retry.reset()
                    metrics.chunks_downloaded_total.inc()
                    metrics.bytes_written_total.inc(len(content))

                    log_with_context(
                        logger,
                        logging.INFO,
                        f"Part {state.chunk_index} was downloaded to \"{file_path}\"",
                        chunk_index=state.chunk_index,
                        file_path=str(file_path),
                        chunk_bytes=len(content),
                    )

                    if self._is_last_chunk(job, state):
                        break
                    sequencer.advance(state)
                    continue

                if fetch.status is FetchStatus.NOT_FOUND:
                    if job.termination_policy is TerminationPolicy.SENTINEL and chunks_written:
                        log_with_context(
                            logger,
                            logging.DEBUG,
                            "End of resource reached",
                            chunk_index=state.chunk_index,
                            chunk_uri=state.uri,
                        )
                        break
                    raise ChunkNotFoundError(
                        f"Chunk {state.chunk_index} of {job.resource_name!r} not found",
                        uri=state.uri,
                        chunk_index=state.chunk_index,
                    )

                if fetch.status is FetchStatus.TRANSIENT:
                    await self._handle_transient(fetch, state, retry)
                    continue

                raise self._fatal_error(fetch, state)
        finally:
            await sink.close()

        duration = time.monotonic() - started
        size = (await asyncio.to_thread(file_path.stat)).st_size
        metrics.job_duration_seconds.observe(duration)

        log_with_context(
            logger,
            logging.INFO,
            f"Resource \"{job.resource_name}\" was downloaded to \"{file_path.resolve()}\". "
            f"Resource size = {size} bytes; Total request duration = {duration:.3f}s",
            resource_name=job.resource_name,
            file_path=str(file_path.resolve()),
            size_bytes=size,
            duration_ms=round(duration * 1000, 2),
            chunks_written=chunks_written,
            first_chunk=first_chunk,
            last_chunk=first_chunk + chunks_written - 1,
            total_retries=retry.total_failures,
            termination_policy=job.termination_policy.value,
        )

        return DownloadResult(
            resource_name=job.resource_name,
            file_path=file_path,
            bytes_written=bytes_written,
            chunks_written=chunks_written,
            first_chunk=first_chunk,
            last_chunk=first_chunk + chunks_written - 1,
            total_retries=retry.total_failures,
            duration_seconds=duration,
            termination_policy=job.termination_policy,
        )

    @staticmethod
    def _is_last_chunk(job: DownloadJob, state: SequencerState) -> bool:
        return (
            job.termination_policy is TerminationPolicy.COUNT
            and state.chunk_index == job.final_chunk
        )

    @staticmethod
    async def _commit(sink, content: bytes, file_path: Path) -> None:
        """Append one complete chunk body and flush it."""
        try:
            await sink.write(content)
            await sink.flush()
        except OSError as e:
            raise FileSystemError(
                f"Cannot write to destination file {file_path}",
                path=str(file_path),
                cause=e,
            ) from e

    async def _handle_transient(
        self, fetch: ChunkFetch, state: SequencerState, retry: RetryState
    ) -> None:
        """Count the failure, then either give up or wait before the refetch."""
        error = fetch.error
        if not isinstance(error, TransientTransportError):
            error = TransientTransportError(
                "Transient transport failure",
                uri=fetch.uri,
                http_status=fetch.http_status,
                cause=fetch.error,
            )

        retry.record_failure()
        if retry.exhausted:
            raise RetriesExhaustedError(
                f"Chunk {state.chunk_index} failed {retry.failures} times in a row",
                attempts=retry.failures,
                last_error=error,
                context={"uri": state.uri, "chunk_index": state.chunk_index},
            ) from error

        delay = self._config.retry_delay_seconds
        metrics.chunk_retries_total.inc()
        log_with_context(
            logger,
            logging.WARNING,
            f"Chunk {state.chunk_index} failed, retrying in {delay}s",
            chunk_index=state.chunk_index,
            chunk_uri=state.uri,
            retry_count=retry.failures,
            max_retries=retry.max_retries,
            delay_seconds=delay,
            http_status=fetch.http_status,
            error_category="transient",
            error_message=str(error),
        )
        await asyncio.sleep(delay)

    @staticmethod
    def _fatal_error(fetch: ChunkFetch, state: SequencerState) -> LoaderError:
        if isinstance(fetch.error, LoaderError):
            return fetch.error
        return LoaderError(
            f"Chunk {state.chunk_index} failed",
            cause=fetch.error,
            context={"uri": state.uri, "http_status": fetch.http_status},
        )


async def download_resource(
    job: DownloadJob,
    destination_folder: Union[str, Path],
    transport: ChunkTransport,
    config: Optional[LoaderConfig] = None,
) -> DownloadResult:
    """Download a single resource with a one-off SegmentLoader."""
    return await SegmentLoader(transport, config).download(job, destination_folder)


__all__ = ["SegmentLoader", "download_resource"]
