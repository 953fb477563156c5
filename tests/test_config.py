"""Tests for configuration."""
import os
from pathlib import Path

import pytest

from speedgrabber.config import (
    DEFAULT_CONCURRENCY,
    DEFAULT_FILE_TIMEOUT,
    DEFAULT_FOLDER_TIMEOUT,
    DEFAULT_ROUND_TIMEOUT,
    RunConfig,
    ScanConfig,
    TransferConfig,
    default_worker_count,
    read_env_file,
)
from speedgrabber.errors import ConfigError
from speedgrabber.models import TransferMode


class TestScanConfig:
    def test_defaults(self):
        config = ScanConfig(Path("/data"))
        assert config.worker_count == default_worker_count()
        assert config.worker_count >= 1
        assert config.executor == "thread"
        config.validate()

    def test_explicit_workers(self):
        assert ScanConfig(Path("/data"), workers=3).worker_count == 3

    @pytest.mark.parametrize("kwargs", [
        {"workers": 0},
        {"executor": "fibers"},
        {"progress_interval": -1},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ConfigError):
            ScanConfig(Path("/data"), **kwargs).validate()


class TestTransferConfig:
    def test_defaults(self):
        config = TransferConfig("s3://bucket")
        assert config.concurrency == DEFAULT_CONCURRENCY
        assert config.round_timeout == DEFAULT_ROUND_TIMEOUT
        assert config.cancel_on_round_timeout is True
        assert config.check_existing is False

    def test_item_timeout_per_mode(self):
        assert TransferConfig("s3://b").effective_item_timeout == DEFAULT_FILE_TIMEOUT
        assert TransferConfig("s3://b", mode=TransferMode.FOLDERS).effective_item_timeout == DEFAULT_FOLDER_TIMEOUT
        assert TransferConfig("s3://b", mode=TransferMode.FOLDERS, item_timeout=5).effective_item_timeout == 5

    @pytest.mark.parametrize("kwargs", [
        {"destination": ""},
        {"destination": "   "},
        {"destination": "s3://b", "concurrency": 0},
        {"destination": "s3://b", "item_timeout": 0},
        {"destination": "s3://b", "round_timeout": -5},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ConfigError):
            TransferConfig(**kwargs).validate()

    def test_frozen(self):
        config = TransferConfig("s3://b")
        with pytest.raises(Exception):
            config.concurrency = 10


class TestRunConfig:
    def test_scan_only(self):
        config = RunConfig(ScanConfig(Path("/data")))
        assert config.upload_enabled is False
        config.validate()

    def test_validate_checks_transfer(self):
        config = RunConfig(ScanConfig(Path("/data")), TransferConfig("s3://b", concurrency=0))
        with pytest.raises(ConfigError):
            config.validate()

    def test_from_env_scan_only(self):
        config = RunConfig.from_env("/data", environ={"SPEEDGRABBER_WORKERS": "2"})
        assert config.scan.root == Path("/data")
        assert config.scan.workers == 2
        assert config.transfer is None

    def test_from_env_with_upload(self):
        config = RunConfig.from_env("/data", environ={
            "SPEEDGRABBER_DESTINATION": "s3://bucket/data",
            "SPEEDGRABBER_MODE": "Folders",
            "SPEEDGRABBER_CONCURRENCY": "8",
            "SPEEDGRABBER_CHECK_EXISTING": "yes",
            "SPEEDGRABBER_ITEM_TIMEOUT": "30",
            "SPEEDGRABBER_ROUND_TIMEOUT": "120",
            "SPEEDGRABBER_EXECUTOR": "process",
        })
        transfer = config.transfer
        assert transfer.destination == "s3://bucket/data"
        assert transfer.mode is TransferMode.FOLDERS
        assert transfer.concurrency == 8
        assert transfer.check_existing is True
        assert transfer.item_timeout == 30.0
        assert transfer.round_timeout == 120.0
        assert config.scan.executor == "process"

    def test_from_env_defaults(self):
        config = RunConfig.from_env("/data", environ={"SPEEDGRABBER_DESTINATION": "s3://b"})
        assert config.transfer.mode is TransferMode.FILES
        assert config.transfer.concurrency == DEFAULT_CONCURRENCY
        assert config.transfer.item_timeout is None

    @pytest.mark.parametrize("env", [
        {"SPEEDGRABBER_WORKERS": "many"},
        {"SPEEDGRABBER_DESTINATION": "s3://b", "SPEEDGRABBER_MODE": "objects"},
        {"SPEEDGRABBER_DESTINATION": "s3://b", "SPEEDGRABBER_ROUND_TIMEOUT": "soon"},
    ])
    def test_from_env_invalid(self, env):
        with pytest.raises(ConfigError):
            RunConfig.from_env("/data", environ=env)


class TestEnvFile:
    def test_reads_values(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "# comment\n"
            "SG_TEST_A=1\n"
            "export SG_TEST_B='quoted value'\n"
            "not a pair\n"
            "=orphan\n"
            'SG_TEST_C="x=y"\n'
        )

        assert read_env_file(env_file) == {
            "SG_TEST_A": "1",
            "SG_TEST_B": "quoted value",
            "SG_TEST_C": "x=y",
        }

    def test_does_not_touch_process_environment(self, tmp_path, monkeypatch):
        monkeypatch.delenv("SG_TEST_A", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("SG_TEST_A=1\n")

        read_env_file(env_file)
        RunConfig.from_env("/data", environ={}, env_file=env_file)

        assert "SG_TEST_A" not in os.environ

    def test_from_env_uses_file_as_defaults(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "SPEEDGRABBER_DESTINATION=s3://bucket/from-file\n"
            "SPEEDGRABBER_CONCURRENCY=3\n"
        )

        config = RunConfig.from_env(
            "/data", environ={"SPEEDGRABBER_CONCURRENCY": "9"}, env_file=env_file
        )

        assert config.transfer.destination == "s3://bucket/from-file"
        assert config.transfer.concurrency == 9

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            read_env_file(tmp_path / "missing.env")

    def test_directory(self, tmp_path):
        with pytest.raises(ConfigError, match="not a file"):
            read_env_file(tmp_path)

    def test_from_env_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            RunConfig.from_env("/data", environ={}, env_file=tmp_path / "missing.env")
