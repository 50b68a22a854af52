"""Pydantic models for synthesis requests and results."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_VIDEO_CODEC = "libx264"
DEFAULT_AUDIO_CODEC = "aac"
DEFAULT_BITRATE = "2M"

# libx264/aac cannot be stored in WebM
_WEBM_VIDEO_CODEC = "libvpx-vp9"
_WEBM_AUDIO_CODEC = "libopus"


class OutputFormat(str, Enum):
    MP4 = "mp4"
    MOV = "mov"
    WEBM = "webm"


class SoundEffect(BaseModel):
    url: str
    start_time: float = Field(default=0.0, ge=0, description="Offset into the video, in seconds")
    volume: float = Field(default=1.0, ge=0)


class EncodeSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    output_format: OutputFormat = OutputFormat.MP4
    video_codec: str = DEFAULT_VIDEO_CODEC
    audio_codec: str = DEFAULT_AUDIO_CODEC
    bitrate: str = DEFAULT_BITRATE


class SynthesisRequest(BaseModel):
    video_url: str
    audio_url: Optional[str] = Field(default=None, description="Voiceover track")
    music_url: Optional[str] = Field(default=None, description="Background music track")
    sound_effects: list[SoundEffect] = Field(default_factory=list)
    output_format: OutputFormat = OutputFormat.MP4
    video_codec: Optional[str] = None
    audio_codec: Optional[str] = None
    bitrate: Optional[str] = None

    def encode_settings(self) -> EncodeSettings:
        """Resolve codec/bitrate overrides against the container defaults."""
        if self.output_format is OutputFormat.WEBM:
            video_default, audio_default = _WEBM_VIDEO_CODEC, _WEBM_AUDIO_CODEC
        else:
            video_default, audio_default = DEFAULT_VIDEO_CODEC, DEFAULT_AUDIO_CODEC
        return EncodeSettings(
            output_format=self.output_format,
            video_codec=self.video_codec or video_default,
            audio_codec=self.audio_codec or audio_default,
            bitrate=self.bitrate or DEFAULT_BITRATE,
        )


class SynthesisResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    output_url: str
    output_path: str
    duration: float
    file_size: int
    format: OutputFormat
    session_id: str
