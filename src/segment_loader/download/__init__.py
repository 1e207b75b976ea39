"""
Segmented download module.

Components:
    - ChunkSequencer: derives the URI of chunk N+1 from the URI of chunk N
    - SegmentLoader: sequential, retrying transfer loop appending chunks to one file
    - HttpChunkTransport: aiohttp transport returning classified ChunkFetch results
    - load_jobs / run_batch: JSON batch descriptors and per-job outcomes
"""

from segment_loader.download.batch import JobOutcome, load_jobs, run_batch
from segment_loader.download.http_client import (
    ChunkTransport,
    HttpChunkTransport,
    create_session,
)
from segment_loader.download.loader import SegmentLoader, download_resource
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

__all__ = [
    "ChunkFetch",
    "ChunkSequencer",
    "ChunkTransport",
    "DownloadJob",
    "DownloadResult",
    "FetchStatus",
    "HttpChunkTransport",
    "JobOutcome",
    "RetryState",
    "SegmentLoader",
    "SequencerState",
    "TerminationPolicy",
    "create_session",
    "download_resource",
    "load_jobs",
    "run_batch",
]
