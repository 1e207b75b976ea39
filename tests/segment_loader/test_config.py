"""Tests for LoaderConfig and load_config."""

import pytest

from segment_loader.config import LoaderConfig, load_config
from segment_loader.errors.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in (
        "SEGMENT_LOADER_OUTPUT_DIR",
        "SEGMENT_LOADER_MAX_RETRIES",
        "SEGMENT_LOADER_RETRY_DELAY",
        "SEGMENT_LOADER_TIMEOUT",
        "SEGMENT_LOADER_READ_CHUNK_SIZE",
        "SEGMENT_LOADER_MAX_CONCURRENT",
    ):
        monkeypatch.delenv(var, raising=False)


class TestLoaderConfig:
    """Test defaults and validation."""

    def test_defaults(self):
        config = LoaderConfig()

        assert config.output_dir == "output"
        assert config.max_retries == 3
        assert config.retry_delay_seconds == 3.0
        assert config.request_timeout_seconds == 60.0
        assert config.read_chunk_size == 65536
        assert config.max_concurrent_jobs == 1

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_retries": 0},
            {"retry_delay_seconds": -1},
            {"request_timeout_seconds": 0},
            {"read_chunk_size": 0},
            {"max_concurrent_jobs": 0},
        ],
    )
    def test_rejects_out_of_range(self, kwargs):
        with pytest.raises(ConfigurationError):
            LoaderConfig(**kwargs)

    def test_from_dict_coerces_types(self):
        config = LoaderConfig.from_dict({"max_retries": "5", "retry_delay_seconds": "0.5"})

        assert config.max_retries == 5
        assert config.retry_delay_seconds == 0.5

    def test_from_dict_unknown_key(self):
        with pytest.raises(ConfigurationError, match="Unknown loader settings: retries"):
            LoaderConfig.from_dict({"retries": 3})

    def test_from_dict_bad_value(self):
        with pytest.raises(ConfigurationError, match="Invalid value for max_retries"):
            LoaderConfig.from_dict({"max_retries": "many"})

    @pytest.mark.parametrize("value", [3.5, True, "3.5"])
    def test_from_dict_rejects_non_whole_numbers(self, value):
        with pytest.raises(ConfigurationError, match="Invalid value for max_retries"):
            LoaderConfig.from_dict({"max_retries": value})

    def test_from_dict_accepts_integral_float(self):
        assert LoaderConfig.from_dict({"max_retries": 4.0}).max_retries == 4

    @pytest.mark.parametrize("key", ["user_agent", "output_dir", "max_retries"])
    def test_from_dict_rejects_none(self, key):
        with pytest.raises(ConfigurationError, match=f"Missing value for {key}"):
            LoaderConfig.from_dict({key: None})

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("SEGMENT_LOADER_MAX_RETRIES", "7")
        monkeypatch.setenv("SEGMENT_LOADER_OUTPUT_DIR", "/data/out")

        config = LoaderConfig.from_env({"max_retries": 4, "max_concurrent_jobs": 2})

        assert config.max_retries == 7
        assert config.output_dir == "/data/out"
        assert config.max_concurrent_jobs == 2


class TestLoadConfig:
    """Test YAML loading and precedence."""

    def test_missing_default_file_uses_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert load_config() == LoaderConfig()

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Config file not found"):
            load_config(tmp_path / "nope.yaml")

    def test_reads_loader_section(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "loader:\n  max_retries: 5\n  retry_delay_seconds: 1.5\n  output_dir: media\n",
            encoding="utf-8",
        )

        config = load_config(path)

        assert config.max_retries == 5
        assert config.retry_delay_seconds == 1.5
        assert config.output_dir == "media"

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("loader:\n  max_retries: 5\n", encoding="utf-8")
        monkeypatch.setenv("SEGMENT_LOADER_MAX_RETRIES", "9")

        assert load_config(path).max_retries == 9

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")

        assert load_config(path) == LoaderConfig()

    @pytest.mark.parametrize(
        "content,match",
        [
            ("loader: [unclosed\n", "Cannot parse"),
            ("- a\n- b\n", "must contain a mapping"),
            ("loader: 3\n", "must be a mapping"),
            ("loader:\n  max_retries: 0\n", "max_retries must be at least 1"),
            ("loader:\n  user_agent:\n", "Missing value for user_agent"),
            ("loader:\n  max_retries: 2.5\n", "Invalid value for max_retries"),
        ],
    )
    def test_invalid_file(self, tmp_path, content, match):
        path = tmp_path / "config.yaml"
        path.write_text(content, encoding="utf-8")

        with pytest.raises(ConfigurationError, match=match):
            load_config(path)
