"""Muxer — combine the video with the optional mixed audio track."""

from __future__ import annotations

from pathlib import Path

import structlog

from video_synthesis.errors import MediaToolError, MuxError
from video_synthesis.models.synthesis import EncodeSettings
from video_synthesis.tools.ffmpeg import MediaEngine

logger = structlog.get_logger()


async def mux_streams(
    engine: MediaEngine,
    video_path: Path,
    audio_path: Path | None,
    work_dir: Path,
    encode: EncodeSettings,
    max_duration: float | None = None,
) -> Path:
    """Write ``<work_dir>/output.<format>`` and return its path.

    With audio the output stops at the shorter stream. Without audio the
    video is still transcoded with the requested codec and bitrate. Either
    way the output is cut at *max_duration* seconds when it is given.
    A partial file left behind on failure is removed with the session.
    """
    output_path = Path(work_dir) / f"output.{encode.output_format.value}"

    logger.info(
        "muxer.start",
        has_audio=audio_path is not None,
        video_codec=encode.video_codec,
        audio_codec=encode.audio_codec,
        bitrate=encode.bitrate,
    )

    try:
        await engine.mux(
            Path(video_path),
            Path(audio_path) if audio_path is not None else None,
            output_path,
            video_codec=encode.video_codec,
            audio_codec=encode.audio_codec,
            bitrate=encode.bitrate,
            max_duration=max_duration,
        )
    except (MediaToolError, OSError) as exc:
        raise MuxError(f"Muxing failed: {exc}") from exc

    logger.info("muxer.done", output_path=str(output_path))
    return output_path
