"""Mapping of local transfer units onto remote destination identifiers."""
import os
from pathlib import PurePosixPath

from ..models import TransferUnit


class DestinationMapper:
    """
    Maps a unit to ``destination/<path relative to base_path>``.

    Relative parts always use ``/``. Folder units get a trailing ``/`` so
    storage clients can tell prefixes from objects.

    Example:
        mapper = DestinationMapper("s3://bucket/backup", "/data")
        mapper.destination(FileRecord("/data/a/b.txt", 1))  # s3://bucket/backup/a/b.txt
    """

    def __init__(self, destination: str, base_path):
        self._destination = destination.rstrip("/")
        self._base_path = os.path.abspath(os.fspath(base_path))

    @property
    def base_path(self) -> str:
        return self._base_path

    def relative(self, path: str) -> str:
        rel = os.path.relpath(os.path.abspath(path), self._base_path)
        if rel == os.pardir or rel.startswith(os.pardir + os.sep):
            raise ValueError(f"{path} is outside of {self._base_path}")
        if rel == os.curdir:
            return ""
        return PurePosixPath(*rel.split(os.sep)).as_posix()

    def destination(self, unit: TransferUnit) -> str:
        rel = self.relative(unit.path)
        target = f"{self._destination}/{rel}" if rel else self._destination
        if unit.is_folder:
            target += "/"
        return target
