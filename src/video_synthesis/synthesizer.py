"""Video synthesis pipeline — fetch, inspect, mix, mux, publish to the output root."""

from __future__ import annotations

from pathlib import Path

import httpx
import structlog

from video_synthesis.config import Settings
from video_synthesis.errors import SynthesisError
from video_synthesis.models.media import AudioTrack
from video_synthesis.models.platform import Platform, Renditions, WatermarkPosition
from video_synthesis.models.synthesis import SynthesisRequest, SynthesisResult
from video_synthesis.session import SynthesisSession
from video_synthesis.stages.inspector import inspect_media
from video_synthesis.stages.mixer import mix_audio_tracks
from video_synthesis.stages.muxer import mux_streams
from video_synthesis.stages.postprocess import PostProcessor
from video_synthesis.tools.downloader import download_file
from video_synthesis.tools.ffmpeg import FFmpegEngine, MediaEngine

logger = structlog.get_logger()


class VideoSynthesizer:
    """Combine a generated video with voiceover, music and sound effects.

    *temp_dir* holds one working directory per call; *output_dir* receives the
    finished files, published as ``<output_url_prefix>/<name>``. Both roots are
    passed in explicitly so concurrent synthesizers never share ambient state.
    """

    def __init__(
        self,
        temp_dir: Path | str,
        output_dir: Path | str,
        *,
        engine: MediaEngine | None = None,
        http_client: httpx.AsyncClient | None = None,
        output_url_prefix: str = "/output",
        download_timeout: float = 60.0,
    ):
        self.temp_dir = Path(temp_dir)
        self.output_dir = Path(output_dir)
        self.engine = engine or FFmpegEngine()
        self.http_client = http_client
        self.output_url_prefix = output_url_prefix.rstrip("/")
        self.download_timeout = download_timeout
        self.post_processor = PostProcessor(self.engine)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> VideoSynthesizer:
        kwargs.setdefault("engine", FFmpegEngine(settings.ffmpeg_bin, settings.ffprobe_bin))
        return cls(
            settings.temp_dir,
            settings.output_dir,
            output_url_prefix=settings.output_url_prefix,
            download_timeout=settings.download_timeout_sec,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Synthesis
    # ------------------------------------------------------------------

    async def synthesize(self, request: SynthesisRequest) -> SynthesisResult:
        """Run the full pipeline for one request.

        Raises:
            SynthesisError: wrapping whatever failed, stage error or not. The
                session's working directory is already removed when it is
                raised. Cancellation is never wrapped.
        """
        session = SynthesisSession(self.temp_dir)
        log = logger.bind(session_id=session.session_id)
        log.info(
            "synthesis.start",
            has_voiceover=bool(request.audio_url),
            has_music=bool(request.music_url),
            num_sound_effects=len(request.sound_effects),
            output_format=request.output_format.value,
        )

        try:
            with session:
                result = await self._run(session, request)
        except Exception as exc:
            log.exception("synthesis.failed", kind=getattr(exc, "kind", "internal"), error_type=type(exc).__name__)
            raise SynthesisError(
                "Failed to synthesize video", cause=exc, session_id=session.session_id
            ) from exc

        log.info(
            "synthesis.done",
            output_url=result.output_url,
            duration=result.duration,
            file_size=result.file_size,
        )
        return result

    async def _run(self, session: SynthesisSession, request: SynthesisRequest) -> SynthesisResult:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        work_dir = session.working_dir

        if self.http_client is not None:
            tracks, video_path = await self._fetch_inputs(self.http_client, session, request)
        else:
            async with httpx.AsyncClient(timeout=self.download_timeout, follow_redirects=True) as client:
                tracks, video_path = await self._fetch_inputs(client, session, request)

        video_info = await inspect_media(self.engine, video_path)

        # Zero audio inputs: the mixer is skipped and the muxer writes video only
        mixed_audio: Path | None = None
        if tracks:
            mixed_audio = await mix_audio_tracks(self.engine, tracks, work_dir, video_info.duration)

        encode = request.encode_settings()
        output_path = await mux_streams(
            self.engine, video_path, mixed_audio, work_dir, encode, max_duration=video_info.duration
        )
        output_info = await inspect_media(self.engine, output_path)

        final_name = f"{session.session_id}.{encode.output_format.value}"
        final_path = session.finalize(output_path, self.output_dir / final_name)

        return SynthesisResult(
            output_url=f"{self.output_url_prefix}/{final_name}",
            output_path=str(final_path),
            duration=output_info.duration,
            file_size=output_info.file_size,
            format=encode.output_format,
            session_id=session.session_id,
        )

    async def _fetch_inputs(
        self,
        client: httpx.AsyncClient,
        session: SynthesisSession,
        request: SynthesisRequest,
    ) -> tuple[list[AudioTrack], Path]:
        """Download every declared input, in order: video, voiceover, music, effects."""
        session.mark_populated()
        work_dir = session.working_dir

        video_path = await download_file(request.video_url, work_dir, "video", client=client)

        tracks: list[AudioTrack] = []
        if request.audio_url:
            path = await download_file(request.audio_url, work_dir, "voiceover", client=client)
            tracks.append(AudioTrack(path=path))
        if request.music_url:
            path = await download_file(request.music_url, work_dir, "music", client=client)
            tracks.append(AudioTrack(path=path))
        for i, effect in enumerate(request.sound_effects):
            path = await download_file(effect.url, work_dir, f"sfx{i}", client=client)
            tracks.append(AudioTrack(path=path, start_time=effect.start_time, volume=effect.volume))

        return tracks, video_path

    # ------------------------------------------------------------------
    # Follow-up operations on finished files
    # ------------------------------------------------------------------

    async def optimize_for_platform(self, video_path: Path, platform: Platform | str) -> Path:
        return await self.post_processor.optimize_for_platform(video_path, platform)

    async def add_watermark(
        self,
        video_path: Path,
        watermark_path: Path,
        position: WatermarkPosition | str = WatermarkPosition.BOTTOM_RIGHT,
    ) -> Path:
        return await self.post_processor.add_watermark(video_path, watermark_path, position)

    async def generate_thumbnail(self, video_path: Path, timestamp: float = 0.0) -> Path:
        return await self.post_processor.generate_thumbnail(video_path, timestamp)

    async def create_renditions(self, result: SynthesisResult, aspect_ratio: str | None) -> Renditions:
        return await self.post_processor.create_renditions(
            Path(result.output_path), aspect_ratio, result.duration
        )
