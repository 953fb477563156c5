"""Shared fixtures for speedgrabber tests."""
import asyncio
from pathlib import Path

import pytest

from speedgrabber.services.filesystem import LocalFilesystemProbe


def build_tree(root: Path, layout: dict) -> Path:
    """
    Create files from a nested dict: {"name": size_in_bytes | {...}}.

    Returns ``root``.
    """
    root.mkdir(parents=True, exist_ok=True)
    for name, value in layout.items():
        path = root / name
        if isinstance(value, dict):
            build_tree(path, value)
        else:
            path.write_bytes(b"x" * value)
    return root


THREE_FOLDERS = {
    "a": {"a1.bin": 10, "a2.bin": 20},
    "b": {"b1.bin": 30, "b2.bin": 40},
    "c": {"c1.bin": 50, "c2.bin": 60},
}


@pytest.fixture
def three_folders(tmp_path):
    """Three first-level folders with 2 files each: 210 bytes total."""
    return build_tree(tmp_path / "root", THREE_FOLDERS)


@pytest.fixture
def deep_tree(tmp_path):
    """Uneven tree with root files, nested folders and an empty folder."""
    return build_tree(tmp_path / "deep", {
        "top.txt": 7,
        "readme.md": 3,
        "photos": {
            "2023": {"img1.jpg": 100, "img2.jpg": 200, "raw": {"img1.cr2": 1000}},
            "2024": {"img3.jpg": 300},
        },
        "docs": {"a.pdf": 11, "nested": {"deeper": {"deepest": {"b.pdf": 13}}}},
        "empty": {},
        "zero": {"empty.bin": 0},
    })


class DenyingProbe(LocalFilesystemProbe):
    """Local probe that raises PermissionError for selected paths."""

    def __init__(self, deny_dirs=(), deny_files=()):
        super().__init__()
        self.deny_dirs = {str(p) for p in deny_dirs}
        self.deny_files = {str(p) for p in deny_files}

    def list_dir(self, path):
        if path in self.deny_dirs:
            raise PermissionError(13, "Permission denied", path)
        return super().list_dir(path)

    def stat(self, path):
        if path in self.deny_files:
            raise PermissionError(13, "Permission denied", path)
        return super().stat(path)


class FakeStorage:
    """
    In-memory storage client.

    Records every transfer call and the peak number of concurrent transfers.
    Sources listed in ``hang`` never finish; sources in ``fail`` raise.
    """

    def __init__(self, existing=(), fail=(), hang=(), delay: float = 0.0, observer=None):
        self.existing = set(existing)
        self.fail = set(fail)
        self.hang = set(hang)
        self.delay = delay
        self.observer = observer
        self.calls = []
        self.exists_calls = []
        self.active = 0
        self.peak = 0

    async def exists(self, dest: str) -> bool:
        self.exists_calls.append(dest)
        return dest in self.existing

    async def transfer(self, source: str, dest: str) -> None:
        self.calls.append((source, dest))
        self.active += 1
        self.peak = max(self.peak, self.active)
        if self.observer is not None:
            self.observer()
        try:
            if source in self.hang:
                await asyncio.sleep(3600)
            await asyncio.sleep(self.delay)
            if source in self.fail:
                raise RuntimeError(f"upload rejected: {source}")
        finally:
            self.active -= 1


@pytest.fixture
def fake_storage():
    return FakeStorage()
