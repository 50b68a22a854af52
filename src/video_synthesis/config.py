"""Synthesis configuration loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "SYNTHESIS_",
        "extra": "ignore",
    }

    # Working areas
    temp_dir: str = "/tmp/synthesis/work"
    output_dir: str = "/tmp/synthesis/output"
    output_url_prefix: str = "/output"

    # External media toolchain
    ffmpeg_bin: str = "ffmpeg"
    ffprobe_bin: str = "ffprobe"

    # Downloads
    download_timeout_sec: float = 60.0

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"  # "console" | "json"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a process-wide Settings instance for host applications."""
    return Settings()
