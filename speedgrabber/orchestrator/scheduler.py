"""
Upload scheduler - bounded-concurrency rounds over transfer units.

The FIFO queue is formed once. Each round dequeues up to ``concurrency``
units, dispatches them together and waits for the whole round (bounded by the
round deadline) before the next one starts. Transfer tasks never touch unit
state: they return a UnitOutcome and the coordinator applies it, so late
completions of abandoned tasks are simply dropped.
"""
from collections import deque
from typing import Dict, Iterable, List, Optional, Set
import asyncio
import logging
import time

from ..config import TransferConfig
from ..errors import TransferError, TransferTimeout
from ..models import ProgressSnapshot, TransferReport, TransferUnit, UnitStatus
from ..protocols import IStorageClient
from ..utils.events import EventEmitter, ProgressReporter
from ..utils.format import format_duration, format_rate, format_size
from ..utils.memory import reclaim
from .destinations import DestinationMapper
from .models import RoundSummary, UnitOutcome

logger = logging.getLogger(__name__)

# Upper bound on waiting for cancelled tasks to unwind after a round deadline
CANCEL_GRACE = 1.0


class UploadScheduler:
    """
    Drives transfer units through ready -> transfer -> done|failed.

    Usage:
        scheduler = UploadScheduler(storage, mapper, TransferConfig("s3://bucket"))
        report = await scheduler.run(aggregator.units(TransferMode.FILES))
    """

    def __init__(
        self,
        storage: IStorageClient,
        mapper: DestinationMapper,
        config: TransferConfig,
        reporter: Optional[ProgressReporter] = None,
    ):
        self._storage = storage
        self._mapper = mapper
        self._config = config
        self._reporter = reporter
        self._events = reporter.events if reporter else EventEmitter()
        self._orphans: Set[asyncio.Task] = set()
        self._in_flight = 0
        self.peak_in_flight = 0
        self.transfer_invocations = 0

    @property
    def events(self) -> EventEmitter:
        return self._events

    @property
    def in_flight(self) -> int:
        """Units currently in ``transfer`` status."""
        return self._in_flight

    async def run(self, units: Iterable[TransferUnit]) -> TransferReport:
        """Upload every READY unit exactly once and return the final report."""
        units = list(units)
        queue = deque(unit for unit in units if unit.status is UnitStatus.READY)
        concurrency = self._config.concurrency
        total = len(queue)

        logger.info(
            "Starting upload: %d unit(s), concurrency %d, item timeout %.0fs, round timeout %.0fs",
            total, concurrency, self._config.effective_item_timeout, self._config.round_timeout,
        )

        started = time.monotonic()
        bytes_transferred = 0
        skipped = 0
        failed_count = 0
        settled = 0
        round_sizes: List[int] = []

        while queue:
            batch = [queue.popleft() for _ in range(min(concurrency, len(queue)))]
            index = len(round_sizes) + 1
            round_sizes.append(len(batch))
            logger.info("Round %d: %d unit(s), %d remaining in queue", index, len(batch), len(queue))

            round_started = time.monotonic()
            outcomes, timed_out = await self._run_round(batch)

            done = 0
            for unit in batch:
                outcome = outcomes[id(unit)]
                unit.advance(outcome.status, outcome.error)
                self._in_flight -= 1
                settled += 1
                if outcome.status is UnitStatus.DONE:
                    done += 1
                    bytes_transferred += unit.size
                    skipped += outcome.skipped
                    if self._config.release_settled:
                        unit.release()
                else:
                    failed_count += 1
                    logger.debug("Failed %s: %s", unit.identifier, outcome.error)

            summary = RoundSummary(
                index=index,
                size=len(batch),
                done=done,
                failed=len(batch) - done,
                elapsed=time.monotonic() - round_started,
                timed_out=timed_out,
                remaining=len(queue),
            )
            logger.info(
                "Round %d completed in %s: %d done, %d failed (%d/%d processed)",
                index, format_duration(summary.elapsed), summary.done, summary.failed, settled, total,
            )
            await self._events.emit("round_complete", summary)
            if self._reporter is not None:
                await self._reporter.report(ProgressSnapshot(
                    total_files=settled,
                    total_size=bytes_transferred,
                    round_completed=index,
                    failed_count=failed_count,
                ))

            batch.clear()
            reclaim(f"after round {index}", collect=self._config.collect_between_rounds)
            await asyncio.sleep(0)

        report = self._build_report(units, bytes_transferred, time.monotonic() - started,
                                    skipped, round_sizes)
        self._log_summary(report)
        if self._reporter is not None:
            await self._reporter.report(ProgressSnapshot(
                total_files=settled,
                total_size=bytes_transferred,
                round_completed=len(round_sizes),
                failed_count=failed_count,
            ), force=True)
        await self._events.emit("finish", report)
        return report

    async def _run_round(self, batch: List[TransferUnit]):
        """Dispatch one round and wait for it; returns outcomes keyed by id(unit)."""
        tasks: Dict[asyncio.Task, TransferUnit] = {}
        for unit in batch:
            unit.advance(UnitStatus.TRANSFER)
            self._in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self._in_flight)
            tasks[asyncio.create_task(self._attempt(unit))] = unit

        try:
            done, pending = await asyncio.wait(set(tasks), timeout=self._config.round_timeout)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        outcomes: Dict[int, UnitOutcome] = {}
        for task in done:
            outcomes[id(tasks[task])] = self._settle(task)

        timed_out = bool(pending)
        if timed_out:
            action = "cancelling" if self._config.cancel_on_round_timeout else "abandoning"
            logger.warning(
                "Round timeout after %gs: %s %d outstanding transfer(s)",
                self._config.round_timeout, action, len(pending),
            )
            for task in pending:
                outcomes[id(tasks[task])] = UnitOutcome.failed(
                    f"round timeout: no result after {self._config.round_timeout:g}s"
                )
            if self._config.cancel_on_round_timeout:
                for task in pending:
                    task.cancel()
                _, pending = await asyncio.wait(pending, timeout=CANCEL_GRACE)
                if pending:
                    logger.warning("%d transfer(s) still running after cancellation", len(pending))
            for task in pending:
                self._orphans.add(task)
                task.add_done_callback(self._discard_orphan)

        return outcomes, timed_out

    def _discard_orphan(self, task: asyncio.Task) -> None:
        self._orphans.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.debug("Abandoned transfer finished with error: %s", task.exception())

    @staticmethod
    def _settle(task: asyncio.Task) -> UnitOutcome:
        if task.cancelled():
            return UnitOutcome.failed("cancelled")
        error = task.exception()
        if error is not None:
            return UnitOutcome.failed(f"{type(error).__name__}: {error}")
        return task.result()

    async def _attempt(self, unit: TransferUnit) -> UnitOutcome:
        """One attempt for one unit, bounded by the per-item timeout. Never retried."""
        timeout = self._config.effective_item_timeout
        try:
            dest = self._mapper.destination(unit)
            skipped = await asyncio.wait_for(self._transfer(unit.path, dest), timeout=timeout)
        except asyncio.TimeoutError:
            error = TransferTimeout(f"timeout: no result after {timeout:g}s")
            logger.warning("Timed out: %s", unit.identifier)
            return UnitOutcome.failed(str(error))
        except Exception as e:
            logger.error("Upload failed for %s: %s", unit.identifier, e)
            return UnitOutcome.failed(str(e) or type(e).__name__)
        return UnitOutcome.done(skipped=skipped)

    async def _transfer(self, source: str, dest: str) -> bool:
        """
        Returns True when the destination already held the unit.

        A TimeoutError raised by the storage client is re-raised as
        TransferError so it is never mistaken for the per-item deadline.
        """
        try:
            if self._config.check_existing and await self._storage.exists(dest):
                logger.info("Skipping %s -> %s (already exists)", source, dest)
                return True
            self.transfer_invocations += 1
            logger.debug("Uploading %s -> %s", source, dest)
            await self._storage.transfer(source, dest)
        except asyncio.TimeoutError as e:
            raise TransferError(str(e) or type(e).__name__) from e
        return False

    def _build_report(self, units: List[TransferUnit], bytes_transferred: int, elapsed: float,
                      skipped: int, round_sizes: List[int]) -> TransferReport:
        counts = TransferReport.empty_counts()
        failed = []
        for unit in units:
            counts[unit.status.value] += 1
            if unit.status is UnitStatus.FAILED:
                failed.append(unit.identifier)
        return TransferReport(
            status_counts=counts,
            bytes_transferred=bytes_transferred,
            elapsed=elapsed,
            failed=sorted(failed),
            skipped_existing=skipped,
            transfer_invocations=self.transfer_invocations,
            round_sizes=round_sizes,
        )

    @staticmethod
    def _log_summary(report: TransferReport) -> None:
        counts = report.status_counts
        logger.info("Upload completed!")
        logger.info("Units ready: %d", counts[UnitStatus.READY.value])
        logger.info("Units in transfer: %d", counts[UnitStatus.TRANSFER.value])
        logger.info("Units uploaded successfully: %d", counts[UnitStatus.DONE.value])
        logger.info("Units failed: %d", counts[UnitStatus.FAILED.value])
        logger.info("Total data uploaded: %s", format_size(report.bytes_transferred))
        logger.info("Average upload rate: %s", format_rate(report.throughput))
        logger.info("Upload time: %s", format_duration(report.elapsed))
        for identifier in report.failed:
            logger.warning("Failed upload: %s", identifier)
