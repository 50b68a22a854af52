"""Remote media download — async helper function."""

from __future__ import annotations

import time
from pathlib import Path
from urllib.parse import urlparse

import httpx
import structlog

from video_synthesis.errors import DownloadError

logger = structlog.get_logger()

_DEFAULT_EXTENSION = ".mp4"
_DEFAULT_TIMEOUT_SEC = 60.0


def _extension_for(url: str) -> str:
    """Return the URL path's file extension, or ``.mp4`` when it has none."""
    return Path(urlparse(url).path).suffix or _DEFAULT_EXTENSION


async def download_file(
    url: str,
    dest_dir: Path,
    prefix: str,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float = _DEFAULT_TIMEOUT_SEC,
) -> Path:
    """Download *url* into *dest_dir* as ``<prefix>_<epoch-ms><ext>``.

    Args:
        url: HTTP(S) location of the resource.
        dest_dir: Existing directory to write into.
        prefix: Non-empty filename prefix (e.g. "video", "voiceover").
        client: Optional shared client; a short-lived one is created otherwise.
        timeout: Request timeout in seconds for the short-lived client.

    Returns:
        Absolute path of the written file.

    Raises:
        DownloadError: On a malformed URL, a non-2xx response or any
            network-level failure.
    """
    if not prefix:
        raise ValueError("download prefix must be a non-empty string")
    dest_dir = Path(dest_dir)
    if not dest_dir.is_dir():
        raise ValueError(f"download destination does not exist: {dest_dir}")

    try:
        extension = _extension_for(url)
    except ValueError as exc:
        raise DownloadError(f"Invalid download URL: {exc}", url=url) from exc
    filepath = (dest_dir / f"{prefix}_{int(time.time() * 1000)}{extension}").resolve()

    logger.info("download.start", url=url, prefix=prefix)

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as http:
                response = await http.get(url)
        else:
            response = await client.get(url)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise DownloadError(f"Failed to download file: {exc}", url=url) from exc

    if not response.is_success:
        raise DownloadError(
            f"Failed to download file: {response.status_code} {response.reason_phrase}",
            url=url,
            status_code=response.status_code,
        )

    filepath.write_bytes(response.content)

    logger.info(
        "download.done",
        url=url,
        path=str(filepath),
        bytes_written=len(response.content),
    )
    return filepath
