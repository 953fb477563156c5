"""
Models for speedgrabber.

Transfer units are mutable (their status advances during upload); every value
that crosses a worker or round boundary is an immutable dataclass.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .errors import InvalidTransition


class UnitStatus(Enum):
    """Transfer unit status."""
    READY = "ready"
    TRANSFER = "transfer"
    DONE = "done"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (UnitStatus.DONE, UnitStatus.FAILED)


# ready -> failed covers units abandoned before dispatch
_TRANSITIONS = {
    UnitStatus.READY: {UnitStatus.TRANSFER, UnitStatus.FAILED},
    UnitStatus.TRANSFER: {UnitStatus.DONE, UnitStatus.FAILED},
    UnitStatus.DONE: set(),
    UnitStatus.FAILED: set(),
}


class TransferMode(Enum):
    """What the scheduler uploads: single files or whole first-level folders."""
    FILES = "files"
    FOLDERS = "folders"


class TransferUnit:
    """Anything the scheduler can move: has a path, a size and a status."""

    __slots__ = ("path", "size", "status", "error")

    is_folder = False

    def __init__(self, path: str, size: int = 0, status: UnitStatus = UnitStatus.READY,
                 error: Optional[str] = None):
        self.path = path
        self.size = size
        self.status = status
        self.error = error

    @property
    def identifier(self) -> str:
        return self.path

    def advance(self, status: UnitStatus, error: Optional[str] = None) -> None:
        """Move to ``status``; backward or repeated transitions raise."""
        if status not in _TRANSITIONS[self.status]:
            raise InvalidTransition(
                f"{self.path}: {self.status.value} -> {status.value} is not allowed"
            )
        self.status = status
        if error is not None:
            self.error = error

    def release(self) -> None:
        """Drop the path once the unit is terminal."""
        if not self.status.terminal:
            raise InvalidTransition(f"cannot release {self.path} in state {self.status.value}")
        self.path = ""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(path={self.path!r}, size={self.size}, status={self.status.value})"


class FileRecord(TransferUnit):
    """One file found by the walker."""

    __slots__ = ()


class FolderAggregate(TransferUnit):
    """Rollup of one first-level subtree of the scan root."""

    __slots__ = ("file_count",)

    is_folder = True

    def __init__(self, path: str, file_count: int = 0, total_size: int = 0,
                 status: UnitStatus = UnitStatus.READY, error: Optional[str] = None):
        super().__init__(path, total_size, status, error)
        self.file_count = file_count

    @property
    def total_size(self) -> int:
        return self.size

    def merge(self, delta_count: int, delta_size: int) -> None:
        self.file_count += delta_count
        self.size += delta_size


@dataclass(frozen=True)
class SubtreeBatch:
    """Immutable result returned by one worker slot for one first-level subtree."""
    folder: str
    files: Tuple[Tuple[str, int], ...] = ()
    processed_dirs: int = 0
    file_count: int = 0
    total_size: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def unreadable(cls, folder: str, error: str) -> "SubtreeBatch":
        return cls(folder=folder, processed_dirs=1, error=error)


@dataclass(frozen=True)
class ScanSnapshot:
    """Consistent read of the aggregator totals."""
    root_name: str
    total_files: int
    total_size: int
    processed_dirs: int
    folder_count: int


@dataclass(frozen=True)
class ProgressSnapshot:
    """Periodic progress payload handed to the progress sink."""
    total_files: int
    total_size: int
    round_completed: int = 0
    failed_count: int = 0


@dataclass
class TransferReport:
    """Result of one scheduler run."""
    status_counts: Dict[str, int]
    bytes_transferred: int
    elapsed: float
    failed: List[str] = field(default_factory=list)
    skipped_existing: int = 0
    transfer_invocations: int = 0
    round_sizes: List[int] = field(default_factory=list)

    @property
    def throughput(self) -> float:
        """Bytes per second over the whole run."""
        if self.elapsed <= 0:
            return 0.0
        return self.bytes_transferred / self.elapsed

    @property
    def rounds(self) -> int:
        return len(self.round_sizes)

    @property
    def all_success(self) -> bool:
        return self.status_counts.get(UnitStatus.FAILED.value, 0) == 0

    @staticmethod
    def empty_counts() -> Dict[str, int]:
        return {status.value: 0 for status in UnitStatus}


@dataclass
class RunReport:
    """Scan (and optional upload) result of a full run."""
    scan: ScanSnapshot
    scan_elapsed: float
    transfer: Optional[TransferReport] = None
    skipped_subtrees: Dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.transfer is None or self.transfer.all_success
