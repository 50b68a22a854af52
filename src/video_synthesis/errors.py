"""Error taxonomy for the synthesis pipeline."""

from __future__ import annotations

from enum import Enum


class PostProcessOperation(str, Enum):
    OPTIMIZE = "optimize"
    WATERMARK = "watermark"
    THUMBNAIL = "thumbnail"


class MediaToolError(Exception):
    """An external media tool (ffmpeg/ffprobe) exited non-zero."""

    def __init__(self, tool: str, returncode: int, stderr: str = ""):
        self.tool = tool
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"{tool} exited with code {returncode}: {stderr[-500:]}")


class SynthesisStageError(Exception):
    """Base class for failures raised by a single pipeline stage."""

    kind = "stage"


class DownloadError(SynthesisStageError):
    kind = "download"

    def __init__(self, message: str, url: str, status_code: int | None = None):
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class ProbeError(SynthesisStageError):
    kind = "probe"

    def __init__(self, message: str, path: str = ""):
        self.path = path
        super().__init__(message)


class MixError(SynthesisStageError):
    kind = "mix"


class MuxError(SynthesisStageError):
    kind = "mux"


class PostProcessError(SynthesisStageError):
    kind = "post_process"

    def __init__(self, message: str, operation: PostProcessOperation):
        self.operation = operation
        super().__init__(f"{operation.value}: {message}")


class SynthesisError(Exception):
    """Umbrella error surfaced to callers of ``VideoSynthesizer.synthesize``.

    *cause* is the original stage error (also chained as ``__cause__``).
    """

    def __init__(self, message: str, cause: BaseException, session_id: str | None = None):
        self.cause = cause
        self.session_id = session_id
        super().__init__(f"{message}: {cause}")

    @property
    def kind(self) -> str:
        return getattr(self.cause, "kind", "internal")


class SessionStateError(RuntimeError):
    """An operation was attempted on a session that already reached a terminal state."""
