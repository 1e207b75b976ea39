"""
Batch descriptors: load a list of jobs from JSON and run them.

Descriptor format (either form):

    [
        {"name": "lecture-01", "uri": "https://cdn.example.com/l1/seg_001.ts", "final_part": 120},
        {"resource_name": "lecture-02", "initial_uri": "https://cdn.example.com/l2/seg_1.ts",
         "zero_pad": false}
    ]

    {"jobs": [ ... ]}
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

from pydantic import ValidationError

from segment_loader import metrics
from segment_loader.config import LoaderConfig
from segment_loader.download.http_client import ChunkTransport
from segment_loader.download.loader import SegmentLoader
from segment_loader.download.models import DownloadJob, DownloadResult
from segment_loader.errors.exceptions import ConfigurationError, ErrorCategory, classify_exception
from segment_loader.logging.context import set_log_context
from segment_loader.logging.setup import get_logger
from segment_loader.logging.utilities import log_exception, log_with_context

logger = get_logger(__name__)


@dataclass
class JobOutcome:
    """Result of one job within a batch.

    Exactly one of ``result``/``error`` is set unless the job was skipped.
    """

    job: DownloadJob
    result: Optional[DownloadResult] = None
    error: Optional[BaseException] = None
    skipped: bool = False

    @property
    def success(self) -> bool:
        return self.result is not None

    @property
    def error_category(self) -> Optional[ErrorCategory]:
        """Category of the failure; TRANSIENT means a rerun may succeed."""
        if self.error is None:
            return None
        return classify_exception(self.error)


def load_jobs(path: Union[str, Path]) -> List[DownloadJob]:
    """
    Load an ordered list of jobs from a JSON batch descriptor.

    Raises:
        ConfigurationError: File unreadable, not JSON, wrong shape, or an
            entry fails validation (the entry's position is reported)
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"Cannot read job file {path}", cause=e) from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Job file {path} is not valid JSON", cause=e) from e

    if isinstance(raw, dict):
        raw = raw.get("jobs")
    if not isinstance(raw, list):
        raise ConfigurationError(
            f"Job file {path} must contain a list of jobs or an object with a 'jobs' list"
        )

    jobs: List[DownloadJob] = []
    for position, entry in enumerate(raw):
        try:
            jobs.append(DownloadJob.model_validate(entry))
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid job #{position} in {path}: {e}",
                cause=e,
                context={"position": position},
            ) from e
    return jobs


async def run_batch(
    jobs: Sequence[DownloadJob],
    destination_folder: Union[str, Path],
    transport: ChunkTransport,
    config: Optional[LoaderConfig] = None,
    fail_fast: bool = False,
) -> List[JobOutcome]:
    """
    Run ``jobs`` with at most ``config.max_concurrent_jobs`` in flight.

    Failures are logged and recorded, never swallowed: each job gets a
    JobOutcome in input order. With ``fail_fast`` a failure stops jobs that
    have not started yet (they are reported as skipped); jobs already running
    finish normally.
    """
    config = config or LoaderConfig()
    if not jobs:
        return []

    loader = SegmentLoader(transport, config)
    semaphore = asyncio.Semaphore(config.max_concurrent_jobs)
    abort = asyncio.Event()

    log_with_context(
        logger,
        logging.DEBUG,
        "Starting batch download",
        batch_size=len(jobs),
        max_concurrent=config.max_concurrent_jobs,
    )

    async def bounded_download(position: int, job: DownloadJob) -> JobOutcome:
        async with semaphore:
            if abort.is_set():
                metrics.record_job_outcome("skipped")
                return JobOutcome(job=job, skipped=True)

            set_log_context(resource=job.resource_name, job_id=str(position))
            try:
                result = await loader.download(job, destination_folder)
            except Exception as e:
                log_exception(
                    logger,
                    e,
                    f"Download of \"{job.resource_name}\" failed",
                    resource_name=job.resource_name,
                )
                metrics.record_job_outcome("failed")
                if fail_fast:
                    abort.set()
                return JobOutcome(job=job, error=e)

            metrics.record_job_outcome("success")
            return JobOutcome(job=job, result=result)

    outcomes = list(
        await asyncio.gather(
            *(bounded_download(position, job) for position, job in enumerate(jobs))
        )
    )

    log_with_context(
        logger,
        logging.INFO,
        "Batch complete",
        batch_size=len(jobs),
        records_succeeded=sum(1 for o in outcomes if o.success),
        records_failed=sum(1 for o in outcomes if o.error is not None),
        records_skipped=sum(1 for o in outcomes if o.skipped) or None,
    )

    return outcomes


__all__ = ["JobOutcome", "load_jobs", "run_batch"]
