"""
SpeedGrabber - parallel directory inventory and bounded-concurrency upload.

Usage:
    from speedgrabber import SpeedGrabber, RunConfig, ScanConfig, TransferConfig, setup_logging
    from speedgrabber.services import AwsCliStorage

    setup_logging(log_level="info")
    config = RunConfig(
        scan=ScanConfig(Path("/data"), workers=4),
        transfer=TransferConfig("s3://my-bucket/data", concurrency=8),
    )
    async with SpeedGrabber(config, storage=AwsCliStorage()) as grabber:
        report = await grabber.run()
"""
from .config import RunConfig, ScanConfig, TransferConfig, read_env_file
from .errors import (
    CommandError,
    ConfigError,
    InvalidTransition,
    PreflightError,
    SpeedGrabberError,
    TransferError,
    TransferTimeout,
)
from .logging_setup import setup_logging
from .models import (
    FileRecord,
    FolderAggregate,
    ProgressSnapshot,
    RunReport,
    ScanSnapshot,
    SubtreeBatch,
    TransferMode,
    TransferReport,
    TransferUnit,
    UnitStatus,
)
from .orchestrator import Aggregator, DirectoryWalker, SpeedGrabber, UploadScheduler

__version__ = "0.1.0"
__all__ = [
    # Main
    "SpeedGrabber",
    "DirectoryWalker",
    "Aggregator",
    "UploadScheduler",
    # Config
    "RunConfig",
    "ScanConfig",
    "TransferConfig",
    "read_env_file",
    # Logging
    "setup_logging",
    # Models
    "FileRecord",
    "FolderAggregate",
    "ProgressSnapshot",
    "RunReport",
    "ScanSnapshot",
    "SubtreeBatch",
    "TransferMode",
    "TransferReport",
    "TransferUnit",
    "UnitStatus",
    # Errors
    "SpeedGrabberError",
    "ConfigError",
    "PreflightError",
    "InvalidTransition",
    "TransferError",
    "TransferTimeout",
    "CommandError",
]
