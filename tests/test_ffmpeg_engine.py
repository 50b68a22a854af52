import asyncio
import json
import sys
from pathlib import Path

import pytest

from video_synthesis.errors import MediaToolError
from video_synthesis.models.media import AudioTrack
from video_synthesis.models.platform import PLATFORM_PROFILES, WATERMARK_OVERLAYS, Platform, WatermarkPosition
from video_synthesis.tools.ffmpeg import FFmpegEngine


class RecordingEngine(FFmpegEngine):
    def __init__(self, stdout: str = ""):
        super().__init__()
        self.argvs: list[list[str]] = []
        self.stdout = stdout

    async def _run(self, argv):
        self.argvs.append(argv)
        return self.stdout


def _arg_after(argv: list[str], flag: str) -> str:
    return argv[argv.index(flag) + 1]


@pytest.mark.asyncio
async def test_probe_requests_json_format_and_streams():
    engine = RecordingEngine(stdout=json.dumps({"format": {"duration": "1.0"}, "streams": []}))
    data = await engine.probe(Path("/w/video.mp4"))

    argv = engine.argvs[0]
    assert argv[0] == "ffprobe"
    assert _arg_after(argv, "-print_format") == "json"
    assert "-show_format" in argv and "-show_streams" in argv
    assert data["format"]["duration"] == "1.0"


@pytest.mark.asyncio
async def test_probe_invalid_json_raises_value_error():
    engine = RecordingEngine(stdout="not json")
    with pytest.raises(ValueError):
        await engine.probe(Path("/w/video.mp4"))


@pytest.mark.asyncio
async def test_single_track_trim_caps_duration():
    engine = RecordingEngine()
    await engine.transcode_audio(AudioTrack(path=Path("/w/voice.mp3")), Path("/w/mixed.mp3"), 8.0, "libmp3lame", "192k")

    argv = engine.argvs[0]
    assert _arg_after(argv, "-t") == "8.000"
    assert _arg_after(argv, "-c:a") == "libmp3lame"
    assert _arg_after(argv, "-b:a") == "192k"
    assert "-af" not in argv
    assert argv[-1] == "/w/mixed.mp3"


@pytest.mark.asyncio
async def test_amix_uses_first_track_duration_and_hard_cap():
    engine = RecordingEngine()
    tracks = [
        AudioTrack(path=Path("/w/voice.mp3")),
        AudioTrack(path=Path("/w/music.mp3")),
        AudioTrack(path=Path("/w/sfx0.wav"), start_time=1.5, volume=0.5),
    ]
    await engine.mix_audio(tracks, Path("/w/mixed.mp3"), 8.0, "libmp3lame", "192k")

    argv = engine.argvs[0]
    assert argv.count("-i") == 3
    graph = _arg_after(argv, "-filter_complex")
    assert "[2:a]adelay=delays=1500:all=1,volume=0.5[t2]" in graph
    assert "[0:a][1:a][t2]amix=inputs=3:duration=first:dropout_transition=3[out]" in graph
    assert _arg_after(argv, "-map") == "[out]"
    assert _arg_after(argv, "-t") == "8.000"


@pytest.mark.asyncio
async def test_mux_with_audio_stops_at_shortest():
    engine = RecordingEngine()
    await engine.mux(
        Path("/w/video.mp4"), Path("/w/mixed.mp3"), Path("/w/output.mp4"),
        video_codec="libx264", audio_codec="aac", bitrate="2M",
    )

    argv = engine.argvs[0]
    assert "-shortest" in argv
    assert argv[argv.index("-map") : argv.index("-map") + 4] == ["-map", "0:v:0", "-map", "1:a:0"]
    assert _arg_after(argv, "-c:v") == "libx264"
    assert _arg_after(argv, "-c:a") == "aac"
    assert _arg_after(argv, "-b:v") == "2M"
    assert _arg_after(argv, "-movflags") == "+faststart"


@pytest.mark.asyncio
async def test_mux_without_audio_transcodes_video_only():
    engine = RecordingEngine()
    await engine.mux(
        Path("/w/video.mp4"), None, Path("/w/output.webm"),
        video_codec="libvpx-vp9", audio_codec="libopus", bitrate="2M",
    )

    argv = engine.argvs[0]
    assert "-an" in argv
    assert _arg_after(argv, "-c:v") == "libvpx-vp9"
    assert "copy" not in argv
    assert "-shortest" not in argv
    assert "-movflags" not in argv


@pytest.mark.asyncio
async def test_scale_pad_letterboxes_to_exact_profile():
    engine = RecordingEngine()
    profile = PLATFORM_PROFILES[Platform.TIKTOK]
    await engine.scale_pad(Path("/o/a.mp4"), Path("/o/a_tiktok.mp4"), profile, "192k")

    argv = engine.argvs[0]
    vf = _arg_after(argv, "-vf")
    assert "scale=1080:1920:force_original_aspect_ratio=decrease" in vf
    assert "pad=1080:1920:(ow-iw)/2:(oh-ih)/2" in vf
    assert _arg_after(argv, "-r") == "30"
    assert _arg_after(argv, "-b:v") == "4M"
    assert _arg_after(argv, "-b:a") == "192k"


@pytest.mark.asyncio
async def test_overlay_copies_audio_and_extract_frame_takes_one_frame():
    engine = RecordingEngine()
    await engine.overlay(
        Path("/o/a.mp4"), Path("/o/logo.png"), Path("/o/a_watermarked.mp4"),
        WATERMARK_OVERLAYS[WatermarkPosition.TOP_RIGHT],
    )
    await engine.extract_frame(Path("/o/a.mp4"), Path("/o/a_thumbnail.jpg"), 2.0)

    overlay_argv, frame_argv = engine.argvs
    assert _arg_after(overlay_argv, "-filter_complex") == "[0:v][1:v]overlay=W-w-10:10[v]"
    assert _arg_after(overlay_argv, "-c:a") == "copy"
    assert _arg_after(frame_argv, "-frames:v") == "1"
    assert _arg_after(frame_argv, "-ss") == "2.000"


@pytest.mark.asyncio
async def test_run_raises_media_tool_error_on_nonzero_exit():
    engine = FFmpegEngine()
    with pytest.raises(MediaToolError) as excinfo:
        await engine._run([sys.executable, "-c", "import sys; sys.stderr.write('bad input'); sys.exit(3)"])
    assert excinfo.value.returncode == 3
    assert "bad input" in excinfo.value.stderr


@pytest.mark.asyncio
async def test_run_kills_child_on_cancellation():
    engine = FFmpegEngine()
    task = asyncio.create_task(engine._run([sys.executable, "-c", "import time; time.sleep(30)"]))
    await asyncio.sleep(0.5)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await asyncio.wait_for(task, timeout=10)


@pytest.mark.asyncio
async def test_mux_caps_output_at_video_duration_rounded_down():
    engine = RecordingEngine()
    await engine.mux(
        Path("/w/video.mp4"), Path("/w/mixed.mp3"), Path("/w/output.mp4"),
        video_codec="libx264", audio_codec="aac", bitrate="2M", max_duration=3.0339,
    )

    argv = engine.argvs[0]
    assert "-shortest" in argv
    assert _arg_after(argv, "-t") == "3.033"
    assert argv.index("-t") < argv.index("/w/output.mp4")
