"""
HTTP storage - transfer capability against an object-store HTTP endpoint.

Objects are written with ``PUT <dest>`` and probed with ``HEAD <dest>``.
Folder destinations (trailing ``/``) are uploaded one PUT per contained file
and probed with a ``GET`` listing.
"""
from pathlib import Path
from typing import AsyncIterator, Dict, Optional
import asyncio
import logging
import os

import httpx

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


async def _read_chunks(path: Path) -> AsyncIterator[bytes]:
    """Stream a file without blocking the event loop."""
    with open(path, "rb") as f:
        while True:
            chunk = await asyncio.to_thread(f.read, CHUNK_SIZE)
            if not chunk:
                break
            yield chunk


class HttpStorage:
    """
    Storage client over plain HTTP.

    Usage:
        async with HttpStorage(headers={"Authorization": token}) as storage:
            await storage.transfer("/data/a.txt", "https://store.example/bucket/a.txt")
    """

    def __init__(
        self,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._headers = headers or {}
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self):
        if self._client is None:
            self._client = httpx.AsyncClient(headers=self._headers, timeout=self._timeout)
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("HttpStorage used outside of 'async with'")
        return self._client

    async def transfer(self, source: str, dest: str) -> None:
        source_path = Path(source)
        if source_path.is_dir():
            base = dest.rstrip("/")
            files = await asyncio.to_thread(lambda: sorted(p for p in source_path.rglob("*") if p.is_file()))
            for file_path in files:
                rel = file_path.relative_to(source_path).as_posix()
                await self._put(file_path, f"{base}/{rel}")
            return
        await self._put(source_path, dest)

    async def exists(self, dest: str) -> bool:
        if dest.endswith("/"):
            response = await self.client.get(dest)
            if response.status_code == 404:
                return False
            response.raise_for_status()
            body = response.text.strip()
            return bool(body) and body not in ("[]", "{}")

        response = await self.client.head(dest)
        if response.status_code == 404:
            return False
        response.raise_for_status()
        return True

    async def _put(self, path: Path, url: str) -> None:
        size = os.path.getsize(path)
        logger.debug("PUT %s (%d bytes)", url, size)
        response = await self.client.put(
            url,
            content=_read_chunks(path),
            headers={"Content-Length": str(size)},
        )
        response.raise_for_status()
