"""Media Inspector — technical metadata for a local media file."""

from __future__ import annotations

from fractions import Fraction
from pathlib import Path
from typing import Any

import structlog

from video_synthesis.errors import MediaToolError, ProbeError
from video_synthesis.models.media import MediaInfo
from video_synthesis.tools.ffmpeg import MediaEngine

logger = structlog.get_logger()


def parse_frame_rate(value: str) -> float:
    """Evaluate an ffprobe rational such as ``"30000/1001"`` exactly.

    The fraction is reduced before the single conversion to float, so
    ``"30000/1001"`` yields 29.97002997..., not 30.
    """
    try:
        rate = Fraction(str(value).strip())
    except (ValueError, ZeroDivisionError) as exc:
        raise ProbeError(f"Invalid frame rate: {value!r}") from exc
    if rate <= 0:
        raise ProbeError(f"Invalid frame rate: {value!r}")
    return float(rate)


def _parse_probe(data: dict[str, Any], path: Path, require_video: bool) -> MediaInfo:
    try:
        duration = float(data["format"]["duration"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ProbeError("Probe output has no usable format.duration", path=str(path)) from exc

    streams = data.get("streams") or []
    if not isinstance(streams, list) or not all(isinstance(s, dict) for s in streams):
        raise ProbeError("Probe output has malformed streams", path=str(path))
    video = next((s for s in streams if s.get("codec_type") == "video"), None)
    has_audio = any(s.get("codec_type") == "audio" for s in streams)

    if video is None:
        if require_video:
            raise ProbeError("No video stream found", path=str(path))
        return MediaInfo(duration=duration, file_size=path.stat().st_size, has_audio=has_audio)

    try:
        width = int(video["width"])
        height = int(video["height"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ProbeError("Video stream has no dimensions", path=str(path)) from exc

    return MediaInfo(
        duration=duration,
        width=width,
        height=height,
        fps=parse_frame_rate(video.get("r_frame_rate", "")),
        file_size=path.stat().st_size,
        has_audio=has_audio,
    )


async def inspect_media(
    engine: MediaEngine,
    path: Path,
    *,
    require_video: bool = True,
) -> MediaInfo:
    """Probe *path* and return its ``MediaInfo``.

    *require_video*: raise ``ProbeError`` when the file has no video stream;
    pass False to inspect audio-only files.

    The file size comes from the filesystem, not from container metadata.
    """
    path = Path(path)
    if not path.is_file():
        raise ProbeError(f"Media file not found: {path}", path=str(path))

    try:
        data = await engine.probe(path)
    except (MediaToolError, OSError) as exc:
        raise ProbeError(f"Probe failed: {exc}", path=str(path)) from exc
    except ValueError as exc:
        raise ProbeError(f"Probe output is not valid JSON: {exc}", path=str(path)) from exc

    info = _parse_probe(data, path, require_video)
    logger.info(
        "inspector.done",
        path=str(path),
        duration=info.duration,
        width=info.width,
        height=info.height,
        fps=info.fps,
    )
    return info
