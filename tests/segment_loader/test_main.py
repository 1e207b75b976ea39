"""Tests for the command line entry point."""

import json
import logging
from unittest.mock import AsyncMock, patch

import pytest

from segment_loader.__main__ import (
    EXIT_FAILED,
    EXIT_OK,
    EXIT_USAGE,
    build_jobs,
    main,
    parse_args,
    report_rerunnable,
    resolve_config,
)
from segment_loader.download.batch import JobOutcome
from segment_loader.download.models import DownloadJob, TerminationPolicy
from segment_loader.errors.exceptions import (
    ChunkNotFoundError,
    ConfigurationError,
    RetriesExhaustedError,
)

URI = "https://cdn.example.com/v/seg_001.ts"


class TestParseArgs:
    def test_single_resource(self):
        args = parse_args(["clip", URI, "--final-chunk", "12", "--no-pad"])

        assert args.name == "clip"
        assert args.uri == URI
        assert args.final_chunk == 12
        assert args.no_pad is True
        assert args.jobs is None

    def test_requires_name_and_uri(self):
        with pytest.raises(SystemExit):
            parse_args(["clip"])

    def test_jobs_excludes_positionals(self, tmp_path):
        with pytest.raises(SystemExit):
            parse_args(["clip", URI, "--jobs", str(tmp_path / "jobs.json")])


class TestBuildJobs:
    def test_from_positionals(self):
        (job,) = build_jobs(
            parse_args(["clip", URI, "--separator", "-", "--extension", "mp4", "--final-chunk", "3"])
        )

        assert job.separator == "-"
        assert job.extension == ".mp4"
        assert job.termination_policy is TerminationPolicy.COUNT

    def test_explicit_policy(self):
        (job,) = build_jobs(parse_args(["clip", URI, "--final-chunk", "3", "--policy", "sentinel"]))
        assert job.termination_policy is TerminationPolicy.SENTINEL

    def test_invalid_job(self):
        with pytest.raises(ConfigurationError, match="Invalid job"):
            build_jobs(parse_args(["../clip", URI]))

    def test_from_descriptor(self, tmp_path):
        path = tmp_path / "jobs.json"
        path.write_text(json.dumps([{"name": "a", "uri": URI}]), encoding="utf-8")

        jobs = build_jobs(parse_args(["--jobs", str(path)]))

        assert [j.resource_name for j in jobs] == ["a"]


class TestResolveConfig:
    def test_cli_overrides(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = resolve_config(parse_args(["clip", URI, "--output", "dl", "--max-concurrent", "4"]))

        assert config.output_dir == "dl"
        assert config.max_concurrent_jobs == 4

    def test_invalid_override(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(ConfigurationError):
            resolve_config(parse_args(["clip", URI, "--max-concurrent", "0"]))


class TestMain:
    """Exit codes of main()."""

    @pytest.fixture(autouse=True)
    def quiet_logging(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with patch("segment_loader.__main__.setup_logging"):
            yield

    def outcome(self, success):
        job = DownloadJob(resource_name="clip", initial_uri=URI)
        if success:
            return JobOutcome(job=job, result=object())
        return JobOutcome(job=job, error=RuntimeError("failed"))

    def test_success(self):
        with patch("segment_loader.__main__.run", new_callable=AsyncMock) as mock_run:
            mock_run.return_value = [self.outcome(True)]
            assert main(["clip", URI]) == EXIT_OK

        jobs, config, fail_fast = mock_run.call_args.args
        assert jobs[0].resource_name == "clip"
        assert config.output_dir == "output"
        assert fail_fast is False

    def test_failed_job(self):
        with patch("segment_loader.__main__.run", new_callable=AsyncMock) as mock_run:
            mock_run.return_value = [self.outcome(True), self.outcome(False)]
            assert main(["clip", URI, "--fail-fast"]) == EXIT_FAILED

    def test_failed_job_reports_rerunnable(self):
        with patch("segment_loader.__main__.run", new_callable=AsyncMock) as mock_run, patch(
            "segment_loader.__main__.report_rerunnable"
        ) as mock_report:
            outcomes = [self.outcome(True), self.outcome(False)]
            mock_run.return_value = outcomes
            main(["clip", URI])

        mock_report.assert_called_once_with(outcomes)

    def test_configuration_error(self, tmp_path):
        with patch("segment_loader.__main__.run", new_callable=AsyncMock) as mock_run:
            assert main(["clip", URI, "--config", str(tmp_path / "missing.yaml")]) == EXIT_USAGE

        mock_run.assert_not_called()

    def test_invalid_descriptor(self, tmp_path):
        path = tmp_path / "jobs.json"
        path.write_text("{not json", encoding="utf-8")

        assert main(["--jobs", str(path)]) == EXIT_USAGE

    def test_metrics_server_started(self):
        with patch("segment_loader.__main__.run", new_callable=AsyncMock) as mock_run, patch(
            "segment_loader.__main__.start_http_server"
        ) as mock_server:
            mock_run.return_value = [self.outcome(True)]
            main(["clip", URI, "--metrics-port", "9100"])

        mock_server.assert_called_once_with(9100)


class TestReportRerunnable:
    def outcome(self, name, error):
        job = DownloadJob(resource_name=name, initial_uri=URI)
        return JobOutcome(job=job, error=error)

    def test_only_transient_failures(self, caplog):
        outcomes = [
            self.outcome("flaky", RetriesExhaustedError("Chunk 3 failed 3 times", attempts=3)),
            self.outcome("gone", ChunkNotFoundError("Chunk 1 not found", uri=URI, chunk_index=1)),
            JobOutcome(job=DownloadJob(resource_name="skipped", initial_uri=URI), skipped=True),
        ]

        with caplog.at_level(logging.WARNING, logger="segment_loader"):
            names = report_rerunnable(outcomes)

        assert names == ["flaky"]
        (record,) = caplog.records
        assert "may succeed if rerun: flaky" in record.getMessage()

    def test_nothing_to_rerun(self, caplog):
        outcomes = [self.outcome("gone", ChunkNotFoundError("missing", uri=URI))]

        with caplog.at_level(logging.WARNING, logger="segment_loader"):
            assert report_rerunnable(outcomes) == []

        assert caplog.records == []
