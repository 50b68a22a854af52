"""Audio Mixer — one time-capped track from voiceover, music and effects."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import structlog

from video_synthesis.errors import MediaToolError, MixError
from video_synthesis.models.media import AudioTrack
from video_synthesis.tools.ffmpeg import MediaEngine

logger = structlog.get_logger()

MIX_CODEC = "libmp3lame"
MIX_BITRATE = "192k"
MIX_FILENAME = "mixed_audio.mp3"


async def mix_audio_tracks(
    engine: MediaEngine,
    tracks: Sequence[AudioTrack],
    work_dir: Path,
    duration: float,
) -> Path:
    """Produce ``<work_dir>/mixed_audio.mp3`` no longer than *duration* seconds.

    One track is re-encoded and truncated. Several tracks are amplitude-mixed;
    the first listed track sets the mix length, tracks that end early fall
    silent, and the result is then capped to *duration*. Short tracks are
    never looped or padded.
    """
    if not tracks:
        raise MixError("No audio tracks to mix")
    if duration <= 0:
        raise MixError(f"Target duration must be positive, got {duration}")

    output_path = Path(work_dir) / MIX_FILENAME

    logger.info("mixer.start", num_tracks=len(tracks), duration=duration)

    try:
        if len(tracks) == 1:
            await engine.transcode_audio(tracks[0], output_path, duration, MIX_CODEC, MIX_BITRATE)
        else:
            await engine.mix_audio(tracks, output_path, duration, MIX_CODEC, MIX_BITRATE)
    except (MediaToolError, OSError) as exc:
        raise MixError(f"Audio mixing failed: {exc}") from exc

    logger.info("mixer.done", output_path=str(output_path))
    return output_path
