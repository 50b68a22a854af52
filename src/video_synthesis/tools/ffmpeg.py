"""FFmpeg/ffprobe media engine — every codec operation runs out of process."""

from __future__ import annotations

import asyncio
import json
import math
from pathlib import Path
from typing import Any, Protocol, Sequence

import structlog

from video_synthesis.errors import MediaToolError
from video_synthesis.models.media import AudioTrack
from video_synthesis.models.platform import PlatformProfile

logger = structlog.get_logger()

_STDERR_TAIL = 2000


class MediaEngine(Protocol):
    """Capabilities the pipeline needs from a media toolchain."""

    async def probe(self, path: Path) -> dict[str, Any]: ...

    async def transcode_audio(
        self, track: AudioTrack, dst: Path, duration: float, codec: str, bitrate: str
    ) -> None: ...

    async def mix_audio(
        self, tracks: Sequence[AudioTrack], dst: Path, duration: float, codec: str, bitrate: str
    ) -> None: ...

    async def mux(
        self,
        video: Path,
        audio: Path | None,
        dst: Path,
        *,
        video_codec: str,
        audio_codec: str,
        bitrate: str,
        max_duration: float | None = None,
    ) -> None: ...

    async def scale_pad(
        self, src: Path, dst: Path, profile: PlatformProfile, audio_bitrate: str
    ) -> None: ...

    async def overlay(self, src: Path, image: Path, dst: Path, overlay_expr: str) -> None: ...

    async def extract_frame(self, src: Path, dst: Path, timestamp: float) -> None: ...


def _track_filter(track: AudioTrack) -> str:
    """Return the per-input filter chain for a delayed and/or gain-adjusted track."""
    filters: list[str] = []
    if track.start_time > 0:
        delay_ms = int(round(track.start_time * 1000))
        filters.append(f"adelay=delays={delay_ms}:all=1")
    if track.volume != 1.0:
        filters.append(f"volume={track.volume:g}")
    return ",".join(filters) or "anull"


def _cap(seconds: float) -> str:
    """Format a duration cap, rounded down to the millisecond."""
    return f"{math.floor(seconds * 1000) / 1000:.3f}"


def _faststart_args(dst: Path) -> list[str]:
    if dst.suffix.lower() in (".mp4", ".mov"):
        return ["-movflags", "+faststart"]
    return []


class FFmpegEngine:
    """``MediaEngine`` backed by the ffmpeg and ffprobe command-line tools."""

    def __init__(self, ffmpeg_bin: str = "ffmpeg", ffprobe_bin: str = "ffprobe"):
        self.ffmpeg_bin = ffmpeg_bin
        self.ffprobe_bin = ffprobe_bin

    async def _run(self, argv: list[str]) -> str:
        """Run *argv* to completion and return its stdout.

        The child is killed if the awaiting task is cancelled.
        """
        tool = Path(argv[0]).name
        logger.debug("media_tool.run", tool=tool, argv=argv)

        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await proc.communicate()
        except asyncio.CancelledError:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            logger.warning("media_tool.cancelled", tool=tool)
            raise

        if proc.returncode != 0:
            err = stderr.decode(errors="replace")[-_STDERR_TAIL:]
            logger.warning("media_tool.failed", tool=tool, returncode=proc.returncode, stderr=err[-300:])
            raise MediaToolError(tool, proc.returncode, err)
        return stdout.decode(errors="replace")

    def _ffmpeg(self, *args: str) -> list[str]:
        return [self.ffmpeg_bin, "-hide_banner", "-nostdin", "-y", *args]

    async def probe(self, path: Path) -> dict[str, Any]:
        stdout = await self._run(
            [
                self.ffprobe_bin,
                "-v", "quiet",
                "-print_format", "json",
                "-show_format",
                "-show_streams",
                str(path),
            ]
        )
        return json.loads(stdout)

    async def transcode_audio(
        self, track: AudioTrack, dst: Path, duration: float, codec: str, bitrate: str
    ) -> None:
        args = ["-i", str(track.path)]
        if not track.is_plain:
            args += ["-af", _track_filter(track)]
        args += ["-vn", "-t", f"{duration:.3f}", "-c:a", codec, "-b:a", bitrate, str(dst)]
        await self._run(self._ffmpeg(*args))

    async def mix_audio(
        self, tracks: Sequence[AudioTrack], dst: Path, duration: float, codec: str, bitrate: str
    ) -> None:
        inputs: list[str] = []
        chains: list[str] = []
        labels: list[str] = []
        for i, track in enumerate(tracks):
            inputs += ["-i", str(track.path)]
            if track.is_plain:
                labels.append(f"[{i}:a]")
            else:
                chains.append(f"[{i}:a]{_track_filter(track)}[t{i}]")
                labels.append(f"[t{i}]")

        # duration=first: the first listed track sets the mix length
        mix = f"{''.join(labels)}amix=inputs={len(tracks)}:duration=first:dropout_transition=3[out]"
        filter_complex = ";".join([*chains, mix])

        await self._run(
            self._ffmpeg(
                *inputs,
                "-filter_complex", filter_complex,
                "-map", "[out]",
                "-t", f"{duration:.3f}",
                "-c:a", codec,
                "-b:a", bitrate,
                str(dst),
            )
        )

    async def mux(
        self,
        video: Path,
        audio: Path | None,
        dst: Path,
        *,
        video_codec: str,
        audio_codec: str,
        bitrate: str,
        max_duration: float | None = None,
    ) -> None:
        if audio is not None:
            args = [
                "-i", str(video),
                "-i", str(audio),
                "-map", "0:v:0",
                "-map", "1:a:0",
                "-c:v", video_codec,
                "-c:a", audio_codec,
                "-b:v", bitrate,
                "-shortest",
            ]
        else:
            args = [
                "-i", str(video),
                "-map", "0:v:0",
                "-an",
                "-c:v", video_codec,
                "-b:v", bitrate,
            ]
        if max_duration is not None:
            # -shortest alone can overrun the video by an audio frame
            args += ["-t", _cap(max_duration)]
        await self._run(self._ffmpeg(*args, *_faststart_args(dst), str(dst)))

    async def scale_pad(
        self, src: Path, dst: Path, profile: PlatformProfile, audio_bitrate: str
    ) -> None:
        w, h = profile.width, profile.height
        vf = (
            f"scale={w}:{h}:force_original_aspect_ratio=decrease:force_divisible_by=2,"
            f"pad={w}:{h}:(ow-iw)/2:(oh-ih)/2,setsar=1"
        )
        await self._run(
            self._ffmpeg(
                "-i", str(src),
                "-vf", vf,
                "-r", str(profile.fps),
                "-c:v", "libx264",
                "-b:v", profile.bitrate,
                "-c:a", "aac",
                "-b:a", audio_bitrate,
                *_faststart_args(dst),
                str(dst),
            )
        )

    async def overlay(self, src: Path, image: Path, dst: Path, overlay_expr: str) -> None:
        await self._run(
            self._ffmpeg(
                "-i", str(src),
                "-i", str(image),
                "-filter_complex", f"[0:v][1:v]{overlay_expr}[v]",
                "-map", "[v]",
                "-map", "0:a?",
                "-c:a", "copy",
                str(dst),
            )
        )

    async def extract_frame(self, src: Path, dst: Path, timestamp: float) -> None:
        await self._run(
            self._ffmpeg(
                "-ss", f"{timestamp:.3f}",
                "-i", str(src),
                "-frames:v", "1",
                "-q:v", "2",
                str(dst),
            )
        )
