"""Core orchestrator - runs the scan, then the optional upload."""
from pathlib import Path
from typing import Callable, Dict, Optional
import logging
import time

from ..config import RunConfig
from ..errors import ConfigError, PreflightError
from ..models import RunReport, ScanSnapshot, TransferReport
from ..protocols import IFilesystemProbe, IStorageClient
from ..utils.events import EventEmitter, ProgressReporter
from ..utils.format import format_duration, format_size
from ..utils.memory import reclaim
from .aggregator import Aggregator
from .destinations import DestinationMapper
from .scheduler import UploadScheduler
from .walker import DirectoryWalker

logger = logging.getLogger(__name__)


class SpeedGrabber:
    """
    Inventories a directory tree and uploads it with bounded concurrency.

    Usage:
        config = RunConfig(ScanConfig(Path("/data")), TransferConfig("s3://bucket/data"))
        async with SpeedGrabber(config, storage=AwsCliStorage()) as grabber:
            grabber.on_progress(lambda snap: print(snap.total_files))
            report = await grabber.run()
    """

    def __init__(
        self,
        config: RunConfig,
        storage: Optional[IStorageClient] = None,
        probe: Optional[IFilesystemProbe] = None,
    ):
        self._config = config
        self._storage = storage
        self._probe = probe
        self._events = EventEmitter()
        self._aggregator = Aggregator(store_files=config.scan.store_files)
        self._scan_snapshot: Optional[ScanSnapshot] = None
        self._root: Optional[Path] = None
        self._scan_elapsed = 0.0
        self._skipped_subtrees: Dict[str, str] = {}

    async def __aenter__(self):
        enter = getattr(self._storage, "__aenter__", None)
        if callable(enter):
            await enter()
        return self

    async def __aexit__(self, *args):
        exit_ = getattr(self._storage, "__aexit__", None)
        if callable(exit_):
            await exit_(*args)

    @property
    def aggregator(self) -> Aggregator:
        return self._aggregator

    @property
    def skipped_subtrees(self) -> Dict[str, str]:
        """Folders the last scan could not read, mapped to the error."""
        return dict(self._skipped_subtrees)

    # Event subscription methods
    def on_progress(self, callback: Callable):
        """Throttled ProgressSnapshot updates (scan and upload)."""
        self._events.on("progress", callback)

    def on_scan_progress(self, callback: Callable):
        """Throttled ProgressSnapshot updates from the walk only."""
        self._events.on("scan_progress", callback)

    def on_round_complete(self, callback: Callable):
        """Called after each upload round. Receives RoundSummary."""
        self._events.on("round_complete", callback)

    def on_finish(self, callback: Callable):
        """Called when the upload finishes. Receives TransferReport."""
        self._events.on("finish", callback)

    def preflight(self) -> Path:
        """Validate configuration and the scan root before any work starts."""
        self._config.validate()
        if self._config.upload_enabled and self._storage is None:
            raise ConfigError("upload enabled but no storage client was provided")

        root = Path(self._config.scan.root).expanduser()
        if not root.exists():
            raise PreflightError(f"directory does not exist: {root}")
        if not root.is_dir():
            raise PreflightError(f"not a directory: {root}")
        return root.resolve()

    def _reporter(self, *topics: str) -> ProgressReporter:
        return ProgressReporter(self._events, interval=self._config.scan.progress_interval, topics=topics)

    async def scan(self) -> ScanSnapshot:
        root = self._root = self.preflight()
        scan = self._config.scan
        logger.info("Starting scan of %s...", root)

        walker = DirectoryWalker(
            self._aggregator,
            probe=self._probe,
            workers=scan.worker_count,
            executor=scan.executor,
            reporter=self._reporter("scan_progress"),
        )
        started = time.monotonic()
        self._scan_snapshot = await walker.walk(root)
        self._scan_elapsed = time.monotonic() - started
        self._skipped_subtrees = dict(walker.skipped_subtrees)

        logger.info("Scan completed!")
        logger.info("Total files: %d", self._scan_snapshot.total_files)
        logger.info("Total size: %s", format_size(self._scan_snapshot.total_size))
        logger.info("Directories processed: %d", self._scan_snapshot.processed_dirs)
        logger.info("Scan time: %s", format_duration(self._scan_elapsed))
        if self._skipped_subtrees:
            logger.warning("Skipped %d unreadable folder(s)", len(self._skipped_subtrees))
        return self._scan_snapshot

    async def upload(self) -> TransferReport:
        """Upload the current inventory. Requires a prior scan()."""
        transfer = self._config.transfer
        if transfer is None:
            raise ConfigError("upload is not enabled (no transfer configuration)")
        if self._scan_snapshot is None:
            raise RuntimeError("scan() must complete before upload()")

        units = self._aggregator.units(transfer.mode)
        logger.info("Uploading %d %s unit(s) to %s", len(units), transfer.mode.value, transfer.destination)

        scheduler = UploadScheduler(
            self._storage,
            DestinationMapper(transfer.destination, self._root),
            transfer,
            reporter=self._reporter(),
        )
        report = await scheduler.run(units)
        del units

        if self._config.release_after_upload:
            released = self._aggregator.release_file_records()
            logger.debug("Released %d file record(s)", released)
            reclaim("after upload")
        return report

    async def run(self) -> RunReport:
        """Preflight, scan, and upload when enabled."""
        snapshot = await self.scan()
        report = RunReport(
            scan=snapshot,
            scan_elapsed=self._scan_elapsed,
            skipped_subtrees=dict(self._skipped_subtrees),
        )
        if self._config.upload_enabled:
            report.transfer = await self.upload()
        return report
