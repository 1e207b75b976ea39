"""
Loader configuration.

Precedence (lowest to highest):
    1. Dataclass defaults
    2. ``loader:`` section of a YAML config file
    3. Environment variables

Environment variables:
    SEGMENT_LOADER_OUTPUT_DIR: Destination folder (default: output)
    SEGMENT_LOADER_MAX_RETRIES: Consecutive transient failures allowed per chunk (default: 3)
    SEGMENT_LOADER_RETRY_DELAY: Seconds to wait before refetching a chunk (default: 3.0)
    SEGMENT_LOADER_TIMEOUT: Total timeout per chunk request in seconds (default: 60)
    SEGMENT_LOADER_READ_CHUNK_SIZE: Bytes read from the socket per iteration (default: 65536)
    SEGMENT_LOADER_MAX_CONCURRENT: Jobs downloaded at once in a batch (default: 1)
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from segment_loader.errors.exceptions import ConfigurationError

DEFAULT_CONFIG_PATH = Path("config.yaml")

# Environment variable -> field name
ENV_OVERRIDES = {
    "SEGMENT_LOADER_OUTPUT_DIR": "output_dir",
    "SEGMENT_LOADER_MAX_RETRIES": "max_retries",
    "SEGMENT_LOADER_RETRY_DELAY": "retry_delay_seconds",
    "SEGMENT_LOADER_TIMEOUT": "request_timeout_seconds",
    "SEGMENT_LOADER_READ_CHUNK_SIZE": "read_chunk_size",
    "SEGMENT_LOADER_MAX_CONCURRENT": "max_concurrent_jobs",
}


@dataclass
class LoaderConfig:
    """Transfer loop and transport settings.

    All timing values in seconds.
    """

    output_dir: str = "output"

    # Retry configuration
    max_retries: int = 3
    retry_delay_seconds: float = 3.0

    # Transport
    request_timeout_seconds: float = 60.0
    read_chunk_size: int = 64 * 1024
    user_agent: str = "segment-loader/1.0"

    # Batch
    max_concurrent_jobs: int = 1

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Raise ConfigurationError for out-of-range values."""
        if self.max_retries < 1:
            raise ConfigurationError(
                f"max_retries must be at least 1, got {self.max_retries}"
            )
        if self.retry_delay_seconds < 0:
            raise ConfigurationError(
                f"retry_delay_seconds must be non-negative, got {self.retry_delay_seconds}"
            )
        if self.request_timeout_seconds <= 0:
            raise ConfigurationError(
                f"request_timeout_seconds must be positive, got {self.request_timeout_seconds}"
            )
        if self.read_chunk_size <= 0:
            raise ConfigurationError(
                f"read_chunk_size must be positive, got {self.read_chunk_size}"
            )
        if self.max_concurrent_jobs < 1:
            raise ConfigurationError(
                f"max_concurrent_jobs must be at least 1, got {self.max_concurrent_jobs}"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoaderConfig":
        """Build config from a mapping, coercing values to the field types.

        Raises:
            ConfigurationError: On unknown keys or values of the wrong type
        """
        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ConfigurationError(f"Unknown loader settings: {', '.join(unknown)}")

        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            target = known[key].type
            if value is None:
                raise ConfigurationError(f"Missing value for {key}")
            try:
                if target in (int, "int"):
                    if isinstance(value, bool) or (
                        isinstance(value, float) and not value.is_integer()
                    ):
                        raise ValueError("not a whole number")
                    kwargs[key] = int(value)
                elif target in (float, "float"):
                    kwargs[key] = float(value)
                else:
                    kwargs[key] = str(value)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"Invalid value for {key}: {value!r}", cause=e
                ) from e

        return cls(**kwargs)

    @classmethod
    def from_env(cls, base: Optional[Dict[str, Any]] = None) -> "LoaderConfig":
        """Load configuration from environment variables on top of ``base``."""
        data = dict(base or {})
        for env_var, field_name in ENV_OVERRIDES.items():
            value = os.getenv(env_var)
            if value:
                data[field_name] = value
        return cls.from_dict(data)


def load_config(config_path: Optional[Path] = None) -> LoaderConfig:
    """Load loader configuration from YAML file and environment.

    Args:
        config_path: YAML file to read (default: ./config.yaml). A missing
            file is not an error; defaults and environment are used instead.

    Returns:
        LoaderConfig

    Raises:
        ConfigurationError: If the file cannot be parsed or holds invalid values
    """
    path = config_path or DEFAULT_CONFIG_PATH
    section: Dict[str, Any] = {}

    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Cannot parse config file {path}", cause=e) from e

        if not isinstance(raw, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")
        section = raw.get("loader") or {}
        if not isinstance(section, dict):
            raise ConfigurationError(f"'loader' section in {path} must be a mapping")
    elif config_path is not None:
        raise ConfigurationError(f"Config file not found: {path}")

    return LoaderConfig.from_env(section)
