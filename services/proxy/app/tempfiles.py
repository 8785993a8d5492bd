"""
Scoped temporary files for external decode steps.

Every path handed out by temp_artifacts() is removed when the block exits,
whether it finished, raised or was cancelled. Names share one random uuid4
prefix per block so concurrent requests never collide; no registry or lock.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TempArtifact:
    path: Path

    async def write(self, data: bytes) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.path.write_bytes, data)

    async def write_stream(self, chunks: AsyncIterator[bytes]) -> int:
        """Write chunks as they arrive; returns the number of bytes written."""
        loop = asyncio.get_running_loop()
        handle = await loop.run_in_executor(None, self.path.open, "wb")
        written = 0
        try:
            async for chunk in chunks:
                await loop.run_in_executor(None, handle.write, chunk)
                written += len(chunk)
        finally:
            await loop.run_in_executor(None, handle.close)
        return written

    async def read(self) -> bytes:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.path.read_bytes)

    def remove(self) -> None:
        """Delete the file if it exists. Never raises."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Could not remove temp file %s: %s", self.path, exc)


@asynccontextmanager
async def temp_artifacts(
    *suffixes: str,
    directory: Path,
) -> AsyncIterator[tuple[TempArtifact, ...]]:
    """Yield one TempArtifact per suffix, all removed on exit.

    Nothing is created on disk here; the caller (or the external tool it
    invokes) creates the files.
    """
    prefix = uuid.uuid4().hex
    artifacts = tuple(TempArtifact(directory / f"{prefix}{suffix}") for suffix in suffixes)
    try:
        yield artifacts
    finally:
        for artifact in artifacts:
            artifact.remove()
