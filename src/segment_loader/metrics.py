"""
Prometheus metrics for segment downloads.

Provides instrumentation for:
- Chunk and byte throughput
- Transient retries
- Job outcomes and durations
"""

from prometheus_client import Counter, Histogram

chunks_downloaded_total = Counter(
    "segment_loader_chunks_downloaded_total",
    "Total number of chunks appended to destination files",
)

bytes_written_total = Counter(
    "segment_loader_bytes_written_total",
    "Total bytes of chunk data written to destination files",
)

chunk_retries_total = Counter(
    "segment_loader_chunk_retries_total",
    "Total number of transient chunk fetch failures that triggered a retry",
)

jobs_total = Counter(
    "segment_loader_jobs_total",
    "Total number of download jobs by outcome",
    ["status"],  # status: success, failed, skipped
)

job_duration_seconds = Histogram(
    "segment_loader_job_duration_seconds",
    "Wall-clock time spent downloading one resource",
    buckets=(1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0, 600.0, 1800.0, 3600.0),
)


def record_job_outcome(status: str) -> None:
    """Increment the job counter for ``status``."""
    jobs_total.labels(status=status).inc()
