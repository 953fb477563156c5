"""
Filesystem Probe - Single Responsibility: list directories and read sizes.

Kept free of state so instances can be handed to process pool workers.
"""
import os
from typing import List

from ..protocols import ProbeEntry


class LocalFilesystemProbe:
    """Probe backed by os.scandir / os.stat. Symlinks are not followed."""

    def __init__(self, follow_symlinks: bool = False):
        self.follow_symlinks = follow_symlinks

    def list_dir(self, path: str) -> List[ProbeEntry]:
        entries = []
        with os.scandir(path) as it:
            for entry in it:
                try:
                    is_dir = entry.is_dir(follow_symlinks=self.follow_symlinks)
                    is_file = entry.is_file(follow_symlinks=self.follow_symlinks)
                except OSError:
                    continue
                entries.append(ProbeEntry(entry.name, is_dir, is_file))
        return entries

    def stat(self, path: str) -> int:
        if self.follow_symlinks:
            return os.stat(path).st_size
        return os.lstat(path).st_size
