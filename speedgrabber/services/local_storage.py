"""Local storage - copies units into a directory tree (mirrors, tests)."""
from pathlib import Path
import asyncio
import os
import shutil

FILE_SCHEME = "file://"


def _target(dest: str) -> Path:
    if dest.startswith(FILE_SCHEME):
        dest = dest[len(FILE_SCHEME):]
    return Path(dest.rstrip("/") or "/")


def _copy(source: str, target: Path) -> None:
    if os.path.isdir(source):
        shutil.copytree(source, target, dirs_exist_ok=True)
        return
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, target)


def _exists(target: Path, folder: bool) -> bool:
    if folder:
        return target.is_dir() and any(target.iterdir())
    return target.is_file()


class LocalStorage:
    """Storage client whose destinations are local paths (optionally ``file://``)."""

    async def transfer(self, source: str, dest: str) -> None:
        await asyncio.to_thread(_copy, source, _target(dest))

    async def exists(self, dest: str) -> bool:
        return await asyncio.to_thread(_exists, _target(dest), dest.endswith("/"))
