"""
Video engine — single frame extraction with the ffmpeg executable.

ffmpeg runs as an asyncio subprocess so extraction never blocks the event
loop. The `thumbnail` filter picks a representative frame out of the first
batch of decoded frames; which frame exactly is ffmpeg's choice.

The process is killed when extraction times out or the awaiting task is
cancelled (e.g. the client disconnected).
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class FrameExtractionError(RuntimeError):
    pass


def _build_command(ffmpeg_path: str, source: Path, output: Path) -> list[str]:
    return [
        ffmpeg_path,
        "-y",
        "-hide_banner",
        "-loglevel",
        "error",
        "-i",
        str(source),
        "-vf",
        "thumbnail",
        "-frames:v",
        "1",
        "-an",
        str(output),
    ]


async def _kill(proc: asyncio.subprocess.Process) -> None:
    with contextlib.suppress(ProcessLookupError):
        proc.kill()
    await proc.wait()


async def extract_frame(
    source: Path,
    output: Path,
    *,
    ffmpeg_path: str = "ffmpeg",
    timeout: float | None = None,
) -> None:
    """Write one still frame of the video at `source` to `output`.

    The output format follows the output file extension.
    Raises FrameExtractionError if ffmpeg is missing, fails, times out or
    produces no file.
    """
    cmd = _build_command(ffmpeg_path, source, output)
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise FrameExtractionError(f"Could not start ffmpeg at {ffmpeg_path}: {exc}") from exc

    try:
        _, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        await _kill(proc)
        raise FrameExtractionError(f"ffmpeg timed out after {timeout}s") from None
    except asyncio.CancelledError:
        await asyncio.shield(_kill(proc))
        raise

    if proc.returncode != 0:
        message = stderr.decode("utf-8", errors="replace").strip()[:300]
        raise FrameExtractionError(f"ffmpeg exited with {proc.returncode}: {message}")
    if not output.exists():
        raise FrameExtractionError("ffmpeg produced no frame")

    logger.debug("Extracted frame %s from %s", output.name, source.name)
