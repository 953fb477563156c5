"""
Aggregator - single-owner bookkeeping of scan totals and transfer units.

Pure bookkeeping, no I/O. Only the coordinating task mutates it, so it
carries no locks.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple, Union

from ..models import (
    FileRecord,
    FolderAggregate,
    ScanSnapshot,
    SubtreeBatch,
    TransferMode,
    TransferUnit,
    UnitStatus,
)


@dataclass
class ScanState:
    """Mutable scan state owned by the Aggregator."""
    total_files: int = 0
    total_size: int = 0
    processed_dirs: int = 0
    root_name: str = ""
    first_level_folders: Dict[str, FolderAggregate] = field(default_factory=dict)
    files: List[FileRecord] = field(default_factory=list)


RecordLike = Union[FileRecord, Tuple[str, int]]


class Aggregator:
    """
    Accumulates walker batches into totals, file records and folder rollups.

    ``store_files=False`` keeps totals and folders but discards per-file
    records, for runs that never upload individual files.
    """

    def __init__(self, store_files: bool = True):
        self.store_files = store_files
        self._state = ScanState()

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def total_files(self) -> int:
        return self._state.total_files

    @property
    def total_size(self) -> int:
        return self._state.total_size

    @property
    def processed_dirs(self) -> int:
        return self._state.processed_dirs

    @property
    def files(self) -> List[FileRecord]:
        return self._state.files

    @property
    def first_level_folders(self) -> List[FolderAggregate]:
        return list(self._state.first_level_folders.values())

    def set_root_name(self, name: str) -> None:
        self._state.root_name = name

    def add_batch(self, records: Iterable[RecordLike]) -> int:
        """Append records (unless discarding) and bump totals. Returns the record count."""
        count = 0
        size = 0
        for record in records:
            if not isinstance(record, FileRecord):
                path, file_size = record
                record = FileRecord(path, file_size)
            if self.store_files:
                self._state.files.append(record)
            count += 1
            size += record.size
        self._state.total_files += count
        self._state.total_size += size
        return count

    def add_first_level_folder(self, path: str, delta_count: int = 0, delta_size: int = 0) -> FolderAggregate:
        """Upsert: merge deltas into the folder at ``path`` or create it."""
        folder = self._state.first_level_folders.get(path)
        if folder is None:
            folder = FolderAggregate(path, delta_count, delta_size)
            self._state.first_level_folders[path] = folder
        else:
            folder.merge(delta_count, delta_size)
        return folder

    def increment_processed_dirs(self, count: int = 1) -> None:
        self._state.processed_dirs += count

    def apply(self, batch: SubtreeBatch) -> None:
        """Apply one worker batch: files, directory count and folder rollup."""
        if batch.files:
            self.add_batch(batch.files)
        self.increment_processed_dirs(batch.processed_dirs)
        self.add_first_level_folder(batch.folder, batch.file_count, batch.total_size)

    def snapshot(self) -> ScanSnapshot:
        state = self._state
        return ScanSnapshot(
            root_name=state.root_name,
            total_files=state.total_files,
            total_size=state.total_size,
            processed_dirs=state.processed_dirs,
            folder_count=len(state.first_level_folders),
        )

    def release_file_records(self) -> int:
        """Drop stored per-file detail; totals and folders are untouched."""
        released = len(self._state.files)
        self._state.files = []
        return released

    def units(self, mode: TransferMode) -> List[TransferUnit]:
        if mode is TransferMode.FOLDERS:
            return self.first_level_folders
        return list(self._state.files)

    def status_counts(self, mode: TransferMode) -> Tuple[Dict[str, int], List[str]]:
        """Count units per status and collect failed paths (sorted)."""
        counts = {status.value: 0 for status in UnitStatus}
        failed = []
        for unit in self.units(mode):
            counts[unit.status.value] += 1
            if unit.status is UnitStatus.FAILED:
                failed.append(unit.identifier)
        return counts, sorted(failed)
