"""
Data models for segmented downloads.

DownloadJob is the caller-facing job description (validated with pydantic,
loadable from a JSON batch descriptor). The remaining dataclasses are
per-job working state and results owned by the transfer loop.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from segment_loader.security.url import validate_chunk_uri

DEFAULT_EXTENSION = ".ts"
DEFAULT_SEPARATOR = "_"


class TerminationPolicy(str, Enum):
    """How the transfer loop detects the end of a resource.

    COUNT: stop after the chunk whose index equals DownloadJob.final_chunk
    SENTINEL: stop when the next chunk returns 404 Not Found
    """

    COUNT = "count"
    SENTINEL = "sentinel"


class DownloadJob(BaseModel):
    """Description of one segmented resource to download.

    Attributes:
        resource_name: Output file name without extension
        initial_uri: URI of the first chunk to fetch
        separator: Character separating the chunk number from its prefix
        extension: Output file extension (also the chunk file extension)
        zero_pad: Re-pad incremented chunk numbers to the first-seen width
        final_chunk: Index of the last chunk (count-terminated jobs)
        termination_policy: Derived from final_chunk when omitted

    Example:
        >>> job = DownloadJob(
        ...     resource_name="lecture-01",
        ...     initial_uri="https://cdn.example.com/v/lecture/seg_001.ts",
        ...     final_chunk=120,
        ... )
        >>> job.termination_policy
        <TerminationPolicy.COUNT: 'count'>
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    resource_name: str = Field(
        ...,
        description="Output file name without extension",
        validation_alias=AliasChoices("resource_name", "name"),
        min_length=1,
    )
    initial_uri: str = Field(
        ...,
        description="URI of the first chunk",
        validation_alias=AliasChoices("initial_uri", "uri"),
        min_length=1,
    )
    separator: str = Field(
        default=DEFAULT_SEPARATOR,
        description="Single character preceding the chunk number",
        min_length=1,
        max_length=1,
    )
    extension: str = Field(
        default=DEFAULT_EXTENSION,
        description="Output file extension",
    )
    zero_pad: bool = Field(
        default=True,
        description="Left-pad chunk numbers with zeros to the first-seen width",
    )
    final_chunk: Optional[int] = Field(
        default=None,
        description="Index of the last chunk (count-terminated jobs)",
        validation_alias=AliasChoices("final_chunk", "final_part", "final_part_number"),
        ge=0,
    )
    termination_policy: TerminationPolicy = Field(
        default=TerminationPolicy.SENTINEL,
        description="count or sentinel; derived from final_chunk when omitted",
    )

    @model_validator(mode="before")
    @classmethod
    def derive_termination_policy(cls, data: Any) -> Any:
        """Pick COUNT when a final chunk is known, SENTINEL otherwise."""
        if not isinstance(data, dict) or data.get("termination_policy") is not None:
            return data
        final = next(
            (
                data[key]
                for key in ("final_chunk", "final_part", "final_part_number")
                if data.get(key) is not None
            ),
            None,
        )
        data = dict(data)
        data["termination_policy"] = (
            TerminationPolicy.COUNT if final is not None else TerminationPolicy.SENTINEL
        )
        return data

    @field_validator("resource_name")
    @classmethod
    def validate_resource_name(cls, v: str) -> str:
        """Resource name becomes a file name; reject paths and blanks."""
        v = v.strip()
        if not v:
            raise ValueError("resource_name cannot be empty or whitespace")
        if "/" in v or "\\" in v or v in (".", ".."):
            raise ValueError(f"resource_name must be a plain file name, got {v!r}")
        return v

    @field_validator("initial_uri")
    @classmethod
    def validate_initial_uri(cls, v: str) -> str:
        v = v.strip()
        is_valid, error = validate_chunk_uri(v)
        if not is_valid:
            raise ValueError(f"initial_uri is not a valid chunk URI: {error}")
        return v

    @field_validator("extension")
    @classmethod
    def normalize_extension(cls, v: str) -> str:
        v = v.strip()
        if not v or v == ".":
            raise ValueError("extension cannot be empty")
        if "/" in v or "\\" in v:
            raise ValueError(f"extension must not contain path separators, got {v!r}")
        return v if v.startswith(".") else f".{v}"

    @model_validator(mode="after")
    def check_count_policy(self) -> "DownloadJob":
        if self.termination_policy is TerminationPolicy.COUNT and self.final_chunk is None:
            raise ValueError("count termination policy requires final_chunk")
        return self

    def destination_path(self, destination_folder: Path) -> Path:
        """Path of the concatenated output file inside ``destination_folder``."""
        return Path(destination_folder) / f"{self.resource_name}{self.extension}"


@dataclass
class SequencerState:
    """Position of a job within its chunk sequence.

    pad_width is recorded once, from the first token the sequencer
    increments, and 0 means it has not been recorded yet.
    """

    uri: str
    chunk_index: int
    pad_width: int = 0


@dataclass
class RetryState:
    """Consecutive transient failures for the chunk currently in flight."""

    max_retries: int
    failures: int = 0
    total_failures: int = 0

    def record_failure(self) -> None:
        self.failures += 1
        self.total_failures += 1

    def reset(self) -> None:
        self.failures = 0

    @property
    def exhausted(self) -> bool:
        return self.failures >= self.max_retries


class FetchStatus(str, Enum):
    """Outcome kind reported by a chunk transport."""

    OK = "ok"
    NOT_FOUND = "not_found"
    TRANSIENT = "transient"
    FATAL = "fatal"


@dataclass
class ChunkFetch:
    """Result of fetching one chunk.

    Transports report HTTP and network failures through ``status`` rather
    than raising, so the transfer loop can tell end-of-resource, retriable
    and fatal outcomes apart.

    Attributes:
        uri: Requested chunk URI
        status: Outcome kind
        content: Complete chunk body (OK only)
        http_status: HTTP status code if a response was received
        error: Classified error for TRANSIENT and FATAL outcomes
    """

    uri: str
    status: FetchStatus
    content: Optional[bytes] = None
    http_status: Optional[int] = None
    error: Optional[Exception] = None

    @classmethod
    def ok(cls, uri: str, content: bytes, http_status: int = 200) -> "ChunkFetch":
        return cls(uri=uri, status=FetchStatus.OK, content=content, http_status=http_status)

    @classmethod
    def not_found(cls, uri: str) -> "ChunkFetch":
        return cls(uri=uri, status=FetchStatus.NOT_FOUND, http_status=404)

    @classmethod
    def transient(
        cls, uri: str, error: Exception, http_status: Optional[int] = None
    ) -> "ChunkFetch":
        return cls(
            uri=uri, status=FetchStatus.TRANSIENT, http_status=http_status, error=error
        )

    @classmethod
    def fatal(
        cls, uri: str, error: Exception, http_status: Optional[int] = None
    ) -> "ChunkFetch":
        return cls(uri=uri, status=FetchStatus.FATAL, http_status=http_status, error=error)


@dataclass
class DownloadResult:
    """Summary of a completed download."""

    resource_name: str
    file_path: Path
    bytes_written: int
    chunks_written: int
    first_chunk: int
    last_chunk: int
    total_retries: int
    duration_seconds: float
    termination_policy: TerminationPolicy
