"""Platform delivery profiles, watermark placement and derived-asset results."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Platform(str, Enum):
    YOUTUBE = "youtube"
    TIKTOK = "tiktok"
    INSTAGRAM = "instagram"
    TWITTER = "twitter"


class PlatformProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int
    height: int
    bitrate: str
    fps: int

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"


PLATFORM_PROFILES: dict[Platform, PlatformProfile] = {
    Platform.YOUTUBE: PlatformProfile(width=1920, height=1080, bitrate="8M", fps=30),
    Platform.TIKTOK: PlatformProfile(width=1080, height=1920, bitrate="4M", fps=30),  # 9:16
    Platform.INSTAGRAM: PlatformProfile(width=1080, height=1080, bitrate="5M", fps=30),  # 1:1
    Platform.TWITTER: PlatformProfile(width=1280, height=720, bitrate="5M", fps=30),
}

# Generated aspect ratio → platforms that get a dedicated rendition
ASPECT_RATIO_PLATFORMS: dict[str, list[Platform]] = {
    "9:16": [Platform.TIKTOK],
    "1:1": [Platform.INSTAGRAM],
}


class WatermarkPosition(str, Enum):
    TOP_LEFT = "top-left"
    TOP_RIGHT = "top-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_RIGHT = "bottom-right"


WATERMARK_INSET_PX = 10

WATERMARK_OVERLAYS: dict[WatermarkPosition, str] = {
    WatermarkPosition.TOP_LEFT: f"overlay={WATERMARK_INSET_PX}:{WATERMARK_INSET_PX}",
    WatermarkPosition.TOP_RIGHT: f"overlay=W-w-{WATERMARK_INSET_PX}:{WATERMARK_INSET_PX}",
    WatermarkPosition.BOTTOM_LEFT: f"overlay={WATERMARK_INSET_PX}:H-h-{WATERMARK_INSET_PX}",
    WatermarkPosition.BOTTOM_RIGHT: f"overlay=W-w-{WATERMARK_INSET_PX}:H-h-{WATERMARK_INSET_PX}",
}


class Renditions(BaseModel):
    optimized: dict[Platform, str] = Field(default_factory=dict)
    thumbnail_path: str | None = None
    errors: list[str] = Field(default_factory=list)
