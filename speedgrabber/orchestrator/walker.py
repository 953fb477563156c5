"""
Parallel directory walker.

The coordinator lists the root itself, then hands every first-level
subdirectory to a bounded pool of worker slots. Each slot walks its subtree
to completion and returns one immutable SubtreeBatch; the coordinator applies
batches to the Aggregator as they arrive and refills the free slot.
"""
from collections import deque
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from typing import Deque, Dict, List, Optional, Tuple
import asyncio
import logging
import os

from ..config import default_worker_count
from ..models import ProgressSnapshot, ScanSnapshot, SubtreeBatch
from ..protocols import IFilesystemProbe
from ..services.filesystem import LocalFilesystemProbe
from ..utils.events import ProgressReporter
from ..utils.format import format_size
from .aggregator import Aggregator

logger = logging.getLogger(__name__)


def walk_subtree(folder: str, probe: IFilesystemProbe) -> SubtreeBatch:
    """
    Walk ``folder`` recursively and return one batch for the whole subtree.

    Runs inside a worker slot (thread or process), so it only touches its own
    locals. Unreadable nested directories and failed stats are skipped; an
    unreadable ``folder`` yields an empty batch carrying the error.
    """
    try:
        top_entries = probe.list_dir(folder)
    except OSError as e:
        return SubtreeBatch.unreadable(folder, f"{type(e).__name__}: {e}")

    files: List[Tuple[str, int]] = []
    total_size = 0
    processed_dirs = 1
    stack: List[Tuple[str, list]] = [(folder, top_entries)]

    while stack:
        dir_path, entries = stack.pop()
        for entry in entries:
            full_path = os.path.join(dir_path, entry.name)
            if entry.is_dir:
                processed_dirs += 1
                try:
                    stack.append((full_path, probe.list_dir(full_path)))
                except OSError as e:
                    logger.debug("Skipping unreadable directory %s: %s", full_path, e)
            elif entry.is_file:
                try:
                    size = probe.stat(full_path)
                except OSError as e:
                    logger.debug("Skipping unreadable file %s: %s", full_path, e)
                    continue
                files.append((full_path, size))
                total_size += size

    return SubtreeBatch(
        folder=folder,
        files=tuple(files),
        processed_dirs=processed_dirs,
        file_count=len(files),
        total_size=total_size,
    )


def _list_root(root: str, probe: IFilesystemProbe) -> Tuple[List[Tuple[str, int]], List[str]]:
    """List the scan root: sized files directly under it, and its subdirectories."""
    root_files = []
    subdirs = []
    for entry in sorted(probe.list_dir(root), key=lambda e: e.name):
        full_path = os.path.join(root, entry.name)
        if entry.is_dir:
            subdirs.append(full_path)
        elif entry.is_file:
            try:
                root_files.append((full_path, probe.stat(full_path)))
            except OSError as e:
                logger.debug("Skipping unreadable file %s: %s", full_path, e)
    return root_files, subdirs


class DirectoryWalker:
    """
    Distributes first-level subtree scans across a bounded worker pool.

    Usage:
        aggregator = Aggregator()
        walker = DirectoryWalker(aggregator, workers=4)
        snapshot = await walker.walk("/data")
    """

    def __init__(
        self,
        aggregator: Aggregator,
        probe: Optional[IFilesystemProbe] = None,
        workers: Optional[int] = None,
        executor: str = "thread",
        reporter: Optional[ProgressReporter] = None,
    ):
        self._aggregator = aggregator
        self._probe = probe or LocalFilesystemProbe()
        self._workers = workers if workers is not None else default_worker_count()
        self._executor_kind = executor
        self._reporter = reporter
        self.skipped_subtrees: Dict[str, str] = {}
        self.peak_in_flight = 0

    @property
    def workers(self) -> int:
        return self._workers

    def _make_executor(self, slots: int) -> Executor:
        if self._executor_kind == "process":
            return ProcessPoolExecutor(max_workers=slots)
        return ThreadPoolExecutor(max_workers=slots, thread_name_prefix="speedgrabber-walk")

    async def walk(self, root) -> ScanSnapshot:
        """Scan ``root`` into the aggregator and return the final snapshot."""
        root = os.path.abspath(os.fspath(root))
        aggregator = self._aggregator
        aggregator.set_root_name(os.path.basename(root.rstrip(os.sep)) or root)
        aggregator.increment_processed_dirs()

        try:
            root_files, subdirs = await asyncio.to_thread(_list_root, root, self._probe)
        except OSError as e:
            logger.error("Error reading directory %s: %s", root, e)
            return aggregator.snapshot()

        if root_files:
            aggregator.add_batch(root_files)
        for subdir in subdirs:
            aggregator.add_first_level_folder(subdir, 0, 0)

        logger.info(
            "Scanning %s: %d root files, %d first-level folders, %d worker slot(s)",
            root, len(root_files), len(subdirs), self._workers,
        )

        if subdirs:
            await self._drain(deque(subdirs))

        snapshot = aggregator.snapshot()
        await self._report(force=True)
        logger.info(
            "Scan complete: %d files (%s) in %d directories",
            snapshot.total_files, format_size(snapshot.total_size), snapshot.processed_dirs,
        )
        return snapshot

    async def _drain(self, queue: Deque[str]) -> None:
        loop = asyncio.get_running_loop()
        slots = min(self._workers, len(queue))
        owners: Dict[asyncio.Future, str] = {}

        with self._make_executor(slots) as pool:
            try:
                while queue or owners:
                    while queue and len(owners) < slots:
                        folder = queue.popleft()
                        future = loop.run_in_executor(pool, walk_subtree, folder, self._probe)
                        owners[future] = folder
                    self.peak_in_flight = max(self.peak_in_flight, len(owners))

                    done, _ = await asyncio.wait(set(owners), return_when=asyncio.FIRST_COMPLETED)
                    for future in done:
                        folder = owners.pop(future)
                        self._accept(folder, future)
                    await self._report()
            finally:
                for future in owners:
                    future.cancel()

    def _accept(self, folder: str, future: asyncio.Future) -> None:
        try:
            batch = future.result()
        except Exception as e:
            logger.warning("Worker failed on %s: %s", folder, e)
            self.skipped_subtrees[folder] = f"{type(e).__name__}: {e}"
            return

        if not batch.ok:
            logger.warning("Skipping unreadable folder %s: %s", folder, batch.error)
            self.skipped_subtrees[folder] = batch.error
        self._aggregator.apply(batch)
        logger.debug(
            "Batch from %s: %d files (%s), %d dirs",
            folder, batch.file_count, format_size(batch.total_size), batch.processed_dirs,
        )

    async def _report(self, force: bool = False) -> None:
        if self._reporter is None:
            return
        snapshot = ProgressSnapshot(
            total_files=self._aggregator.total_files,
            total_size=self._aggregator.total_size,
        )
        await self._reporter.report(snapshot, force=force)
