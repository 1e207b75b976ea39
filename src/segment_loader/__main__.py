"""
Entry point for downloading segmented resources.

Usage:
    # Single resource, stop when the next chunk returns 404
    python -m segment_loader lecture-01 https://cdn.example.com/l1/seg_001.ts

    # Single resource with a known last chunk
    python -m segment_loader lecture-01 https://cdn.example.com/l1/seg_001.ts --final-chunk 120

    # Batch descriptor (JSON list of jobs)
    python -m segment_loader --jobs jobs.json --max-concurrent 2

Exit status:
    0  every job completed
    1  at least one job failed or was skipped
    2  invalid arguments or configuration
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path
from typing import List, Optional

from prometheus_client import start_http_server
from pydantic import ValidationError

from segment_loader.config import LoaderConfig, load_config
from segment_loader.download.batch import JobOutcome, load_jobs, run_batch
from segment_loader.download.http_client import HttpChunkTransport
from segment_loader.download.models import DEFAULT_EXTENSION, DEFAULT_SEPARATOR, DownloadJob
from segment_loader.errors.exceptions import ConfigurationError, ErrorCategory
from segment_loader.logging.setup import get_logger, setup_logging

# Placeholder logger until setup_logging() is called in main()
logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="segment-loader",
        description="Download a segmented resource and concatenate its chunks into one file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Chunks clip_001.ts, clip_002.ts, ... until a 404
    segment-loader clip https://cdn.example.com/v/clip_001.ts

    # Chunks part-1.mp4 ... part-40.mp4, numbers not zero-padded
    segment-loader talk https://cdn.example.com/t/part-1.mp4 \\
        --separator - --extension .mp4 --no-pad --final-chunk 40

    # Several resources from a JSON descriptor
    segment-loader --jobs jobs.json --output downloads
        """,
    )

    parser.add_argument("name", nargs="?", help="Resource name (output file name without extension)")
    parser.add_argument("uri", nargs="?", help="URI of the first chunk")

    parser.add_argument(
        "--jobs",
        type=Path,
        default=None,
        help="JSON batch descriptor with a list of jobs (replaces NAME and URI)",
    )
    parser.add_argument(
        "--final-chunk",
        type=int,
        default=None,
        help="Index of the last chunk; selects count termination",
    )
    parser.add_argument(
        "--policy",
        choices=["count", "sentinel"],
        default=None,
        help="Termination policy (default: count with --final-chunk, otherwise sentinel)",
    )
    parser.add_argument(
        "--separator",
        default=DEFAULT_SEPARATOR,
        help=f"Character before the chunk number (default: {DEFAULT_SEPARATOR})",
    )
    parser.add_argument(
        "--extension",
        default=DEFAULT_EXTENSION,
        help=f"Output file extension (default: {DEFAULT_EXTENSION})",
    )
    parser.add_argument(
        "--no-pad",
        action="store_true",
        help="Do not zero-pad incremented chunk numbers",
    )

    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Destination folder (default: from config or ./output)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML config file (default: ./config.yaml if present)",
    )
    parser.add_argument(
        "--max-concurrent",
        type=int,
        default=None,
        help="Jobs downloaded at the same time in batch mode (default: 1)",
    )
    parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Stop starting new jobs after the first failure",
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Expose Prometheus metrics on this port",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-dir",
        type=str,
        default=None,
        help="Log directory path (default: from LOG_DIR env var or ./logs)",
    )

    args = parser.parse_args(argv)

    if args.jobs is None and (not args.name or not args.uri):
        parser.error("NAME and URI are required unless --jobs is given")
    if args.jobs is not None and (args.name or args.uri):
        parser.error("NAME and URI cannot be combined with --jobs")

    return args


def build_jobs(args: argparse.Namespace) -> List[DownloadJob]:
    """
    Build the job list from --jobs or from the positional arguments.

    Raises:
        ConfigurationError: If the job description is invalid
    """
    if args.jobs is not None:
        return load_jobs(args.jobs)

    fields = {
        "resource_name": args.name,
        "initial_uri": args.uri,
        "separator": args.separator,
        "extension": args.extension,
        "zero_pad": not args.no_pad,
        "final_chunk": args.final_chunk,
        "termination_policy": args.policy,
    }
    try:
        return [DownloadJob.model_validate(fields)]
    except ValidationError as e:
        raise ConfigurationError(f"Invalid job: {e}", cause=e) from e


def resolve_config(args: argparse.Namespace) -> LoaderConfig:
    """Load config file/environment and apply CLI overrides."""
    config = load_config(args.config)
    if args.output:
        config.output_dir = args.output
    if args.max_concurrent is not None:
        config.max_concurrent_jobs = args.max_concurrent
    config.validate()
    return config


async def run(jobs: List[DownloadJob], config: LoaderConfig, fail_fast: bool) -> List[JobOutcome]:
    """Download ``jobs`` into the configured output folder."""
    async with HttpChunkTransport(
        timeout=config.request_timeout_seconds,
        read_chunk_size=config.read_chunk_size,
        max_connections=max(config.max_concurrent_jobs, 1),
        user_agent=config.user_agent,
    ) as transport:
        return await run_batch(
            jobs,
            Path(config.output_dir),
            transport,
            config=config,
            fail_fast=fail_fast,
        )


def setup_signal_handlers(loop: asyncio.AbstractEventLoop, main_task: asyncio.Task) -> None:
    """Cancel the running batch on SIGINT/SIGTERM.

    Cancellation unwinds every job, closing its destination file. Signal
    handlers are not supported on Windows, where KeyboardInterrupt is used.
    """

    def handle_signal(sig):
        logger.warning(f"Received signal {sig.name}, cancelling downloads...")
        main_task.cancel()

    if sys.platform == "win32":
        return

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda s=sig: handle_signal(s))


def report_rerunnable(outcomes: List[JobOutcome]) -> List[str]:
    """Log the failed jobs whose errors are transient and return their names."""
    names = [
        o.job.resource_name
        for o in outcomes
        if o.error_category is ErrorCategory.TRANSIENT
    ]
    if names:
        logger.warning(
            f"{len(names)} job(s) failed on transient errors and may succeed "
            f"if rerun: {', '.join(names)}"
        )
    return names


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    global logger
    args = parse_args(argv)

    # JSON_LOGS=false for human-readable file logs during local development
    json_logs = os.getenv("JSON_LOGS", "true").lower() in ("true", "1", "yes")
    log_dir = Path(args.log_dir or os.getenv("LOG_DIR", "logs"))

    setup_logging(
        name="segment_loader",
        log_dir=log_dir,
        json_format=json_logs,
        console_level=getattr(logging, args.log_level),
    )
    logger = get_logger(__name__)

    try:
        config = resolve_config(args)
        jobs = build_jobs(args)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_USAGE

    if args.metrics_port is not None:
        logger.info(f"Starting metrics server on port {args.metrics_port}")
        start_http_server(args.metrics_port)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    main_task = loop.create_task(run(jobs, config, args.fail_fast))
    setup_signal_handlers(loop, main_task)

    try:
        outcomes = loop.run_until_complete(main_task)
    except KeyboardInterrupt:
        # Let the cancelled jobs close their destination files
        main_task.cancel()
        loop.run_until_complete(asyncio.gather(main_task, return_exceptions=True))
        logger.info("Download interrupted")
        return EXIT_FAILED
    except asyncio.CancelledError:
        logger.info("Download interrupted")
        return EXIT_FAILED
    finally:
        loop.close()
        asyncio.set_event_loop(None)

    if all(o.success for o in outcomes):
        return EXIT_OK
    report_rerunnable(outcomes)
    return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
