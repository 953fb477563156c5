"""
Protocols (Interfaces) for Dependency Inversion.

The walker only needs a filesystem probe and the scheduler only needs a
storage client, so both can be swapped (local disk, CLI, HTTP, test fakes).
"""
from dataclasses import dataclass
from typing import List, Protocol, runtime_checkable


@dataclass(frozen=True)
class ProbeEntry:
    """One directory entry as seen by a filesystem probe."""
    name: str
    is_dir: bool
    is_file: bool


@runtime_checkable
class IFilesystemProbe(Protocol):
    """Interface for directory listing and file metadata."""

    def list_dir(self, path: str) -> List[ProbeEntry]:
        """List entries of ``path``; raises OSError when unreadable."""
        ...

    def stat(self, path: str) -> int:
        """Return the size of ``path`` in bytes; raises OSError on failure."""
        ...


@runtime_checkable
class IStorageClient(Protocol):
    """Interface for the remote store transfer capability."""

    async def transfer(self, source: str, dest: str) -> None:
        """Copy ``source`` (file or directory) to ``dest``; raises on failure."""
        ...

    async def exists(self, dest: str) -> bool:
        """Whether ``dest`` already holds the unit."""
        ...
