from __future__ import annotations

from pathlib import Path
from typing import Any

import httpx
import pytest

from video_synthesis.errors import MediaToolError


def probe_payload(
    duration: float = 10.0,
    width: int | None = 1280,
    height: int | None = 720,
    r_frame_rate: str = "30/1",
    audio: bool = True,
) -> dict[str, Any]:
    streams: list[dict[str, Any]] = []
    if width is not None:
        streams.append(
            {"codec_type": "video", "width": width, "height": height, "r_frame_rate": r_frame_rate}
        )
    if audio:
        streams.append({"codec_type": "audio", "r_frame_rate": "0/0"})
    return {"format": {"duration": f"{duration:.6f}"}, "streams": streams}


class FakeEngine:
    """Records every call and writes placeholder outputs instead of running ffmpeg.

    *probes* maps a filename prefix to the payload ``probe`` returns for it.
    *fail_on* names operations that raise ``MediaToolError``.
    """

    def __init__(self, probes: dict[str, dict] | None = None, fail_on: set[str] | None = None):
        self.probes = probes or {}
        self.fail_on = fail_on or set()
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def _record(self, name: str, dst: Path | None = None, **kwargs: Any) -> None:
        self.calls.append((name, {"dst": dst, **kwargs}))
        if name in self.fail_on:
            if dst is not None:
                Path(dst).write_bytes(b"partial")
            raise MediaToolError("ffmpeg", 1, f"simulated {name} failure")
        if dst is not None:
            Path(dst).write_bytes(f"{name} output".encode())

    async def probe(self, path: Path) -> dict[str, Any]:
        self.calls.append(("probe", {"path": Path(path)}))
        if "probe" in self.fail_on:
            raise MediaToolError("ffprobe", 1, "Invalid data found when processing input")
        for prefix, payload in self.probes.items():
            if Path(path).name.startswith(prefix):
                return payload
        return probe_payload()

    async def transcode_audio(self, track, dst, duration, codec, bitrate):
        self._record("transcode_audio", dst, track=track, duration=duration, codec=codec, bitrate=bitrate)

    async def mix_audio(self, tracks, dst, duration, codec, bitrate):
        self._record("mix_audio", dst, tracks=list(tracks), duration=duration, codec=codec, bitrate=bitrate)

    async def mux(self, video, audio, dst, *, video_codec, audio_codec, bitrate, max_duration=None):
        self._record(
            "mux", dst, video=video, audio=audio,
            video_codec=video_codec, audio_codec=audio_codec, bitrate=bitrate,
            max_duration=max_duration,
        )

    async def scale_pad(self, src, dst, profile, audio_bitrate):
        self._record("scale_pad", dst, src=src, profile=profile, audio_bitrate=audio_bitrate)

    async def overlay(self, src, image, dst, overlay_expr):
        self._record("overlay", dst, src=src, image=image, overlay_expr=overlay_expr)

    async def extract_frame(self, src, dst, timestamp):
        self._record("extract_frame", dst, src=src, timestamp=timestamp)


def media_transport(routes: dict[str, tuple[int, bytes]]) -> httpx.MockTransport:
    """Serve ``routes[url] = (status, body)``; unknown URLs get a 404."""
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        requested.append(url)
        status, body = routes.get(url, (404, b""))
        return httpx.Response(status, content=body)

    transport = httpx.MockTransport(handler)
    transport.requested = requested  # type: ignore[attr-defined]
    return transport


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def video_file(tmp_path: Path) -> Path:
    path = tmp_path / "final.mp4"
    path.write_bytes(b"\x00" * 64)
    return path
