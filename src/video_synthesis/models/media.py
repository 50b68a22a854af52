"""Pydantic models for probed media and local audio tracks."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class MediaInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    duration: float
    width: Optional[int] = None
    height: Optional[int] = None
    fps: Optional[float] = None
    file_size: int
    has_audio: bool = False


class AudioTrack(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: Path
    start_time: float = Field(default=0.0, ge=0)
    volume: float = Field(default=1.0, ge=0)

    @property
    def is_plain(self) -> bool:
        """True when the track needs neither a delay nor a gain change."""
        return self.start_time == 0 and self.volume == 1.0
