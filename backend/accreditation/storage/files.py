"""Attachment file storage."""

from __future__ import annotations

import asyncio
from pathlib import Path, PurePosixPath
from typing import Protocol

import structlog

logger = structlog.get_logger()


class FileStorage(Protocol):
    async def store(self, path: str, content: bytes) -> None: ...

    async def exists(self, path: str) -> bool: ...

    async def delete(self, path: str) -> None: ...

    async def read(self, path: str) -> bytes: ...


class LocalFileStorage:
    """Stores files below a root directory; paths are relative POSIX strings."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _resolve(self, path: str) -> Path:
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts:
            raise ValueError(f"Refusing to access '{path}' outside the storage root")
        return self.root.joinpath(*relative.parts)

    async def store(self, path: str, content: bytes) -> None:
        target = self._resolve(path)

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)

        await asyncio.to_thread(_write)
        logger.debug("file_stored", path=path, size=len(content))

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(self._resolve(path).is_file)

    async def delete(self, path: str) -> None:
        target = self._resolve(path)
        await asyncio.to_thread(target.unlink, True)
        logger.debug("file_deleted", path=path)

    async def read(self, path: str) -> bytes:
        return await asyncio.to_thread(self._resolve(path).read_bytes)
