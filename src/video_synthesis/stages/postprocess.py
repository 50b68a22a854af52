"""Platform Post-Processor — renditions, watermarks and thumbnails of a finished video."""

from __future__ import annotations

import math
from pathlib import Path

import structlog

from video_synthesis.errors import MediaToolError, PostProcessError, PostProcessOperation
from video_synthesis.models.platform import (
    ASPECT_RATIO_PLATFORMS,
    PLATFORM_PROFILES,
    WATERMARK_OVERLAYS,
    Platform,
    Renditions,
    WatermarkPosition,
)
from video_synthesis.tools.ffmpeg import MediaEngine

logger = structlog.get_logger()

PLATFORM_AUDIO_BITRATE = "192k"


def _sibling(path: Path, suffix: str, extension: str) -> Path:
    """``/out/abc.mp4`` + ``_tiktok`` + ``.mp4`` → ``/out/abc_tiktok.mp4``."""
    return path.with_name(f"{path.stem}{suffix}{extension}")


def _require_file(path: Path, operation: PostProcessOperation) -> Path:
    path = Path(path)
    if not path.is_file():
        raise PostProcessError(f"File not found: {path}", operation)
    return path


class PostProcessor:
    """Stateless follow-up operations on finished videos.

    Every operation writes a new file next to its source and leaves the
    source untouched, so operations can run in any order or repeatedly.
    """

    def __init__(self, engine: MediaEngine):
        self.engine = engine

    async def optimize_for_platform(self, video_path: Path, platform: Platform | str) -> Path:
        """Rescale with letterbox/pillarbox padding to the platform's exact profile."""
        platform = Platform(platform)
        op = PostProcessOperation.OPTIMIZE
        src = _require_file(video_path, op)
        profile = PLATFORM_PROFILES[platform]
        output_path = _sibling(src, f"_{platform.value}", ".mp4")

        logger.info("postprocess.optimize.start", source=str(src), platform=platform.value, resolution=profile.resolution)
        try:
            await self.engine.scale_pad(src, output_path, profile, PLATFORM_AUDIO_BITRATE)
        except (MediaToolError, OSError) as exc:
            raise PostProcessError(str(exc), op) from exc

        logger.info("postprocess.optimize.done", output_path=str(output_path))
        return output_path

    async def add_watermark(
        self,
        video_path: Path,
        watermark_path: Path,
        position: WatermarkPosition | str = WatermarkPosition.BOTTOM_RIGHT,
    ) -> Path:
        """Overlay *watermark_path* in a corner; the audio stream is copied as-is."""
        position = WatermarkPosition(position)
        op = PostProcessOperation.WATERMARK
        src = _require_file(video_path, op)
        image = _require_file(watermark_path, op)
        output_path = _sibling(src, "_watermarked", src.suffix or ".mp4")

        logger.info("postprocess.watermark.start", source=str(src), position=position.value)
        try:
            await self.engine.overlay(src, image, output_path, WATERMARK_OVERLAYS[position])
        except (MediaToolError, OSError) as exc:
            raise PostProcessError(str(exc), op) from exc

        logger.info("postprocess.watermark.done", output_path=str(output_path))
        return output_path

    async def generate_thumbnail(self, video_path: Path, timestamp: float = 0.0) -> Path:
        """Extract the frame at *timestamp* seconds as ``<stem>_thumbnail.jpg``."""
        if timestamp < 0:
            raise ValueError(f"timestamp must be >= 0, got {timestamp}")
        op = PostProcessOperation.THUMBNAIL
        src = _require_file(video_path, op)
        output_path = _sibling(src, "_thumbnail", ".jpg")

        try:
            await self.engine.extract_frame(src, output_path, timestamp)
        except (MediaToolError, OSError) as exc:
            raise PostProcessError(str(exc), op) from exc

        logger.info("postprocess.thumbnail.done", output_path=str(output_path), timestamp=timestamp)
        return output_path

    async def create_renditions(
        self,
        video_path: Path,
        aspect_ratio: str | None,
        duration: float,
    ) -> Renditions:
        """Build the platform variants for *aspect_ratio* plus a mid-point thumbnail.

        Operations run independently: a failure is logged and recorded in
        ``Renditions.errors`` without stopping the remaining ones.
        """
        renditions = Renditions()

        for platform in ASPECT_RATIO_PLATFORMS.get(aspect_ratio or "", []):
            try:
                path = await self.optimize_for_platform(video_path, platform)
            except PostProcessError as exc:
                logger.warning("postprocess.rendition_failed", platform=platform.value, error=str(exc))
                renditions.errors.append(str(exc))
                continue
            renditions.optimized[platform] = str(path)

        try:
            thumb = await self.generate_thumbnail(video_path, math.floor(max(duration, 0.0) / 2))
        except PostProcessError as exc:
            logger.warning("postprocess.rendition_failed", operation="thumbnail", error=str(exc))
            renditions.errors.append(str(exc))
        else:
            renditions.thumbnail_path = str(thumb)

        return renditions
