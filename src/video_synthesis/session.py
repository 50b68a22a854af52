"""Session Lifecycle Manager — isolated, always-removed working directory per request."""

from __future__ import annotations

import shutil
import uuid
from enum import Enum
from pathlib import Path

import structlog

from video_synthesis.errors import SessionStateError

logger = structlog.get_logger()


class SessionState(str, Enum):
    CREATED = "created"
    POPULATED = "populated"
    FINALIZED = "finalized"
    FAILED = "failed"
    CLEANED_UP = "cleaned_up"


_TERMINAL_STATES = (SessionState.FINALIZED, SessionState.CLEANED_UP)


class SynthesisSession:
    """Working directory ``<temp_root>/<session_id>`` owned by one synthesis call.

    Use as a context manager::

        with SynthesisSession(temp_root) as session:
            session.mark_populated()
            ...
            session.finalize(output, output_dir / f"{session.session_id}.mp4")

    The directory is removed on every exit path. When the block raises, the
    session goes through ``failed`` to ``cleaned_up`` and the original
    exception propagates unchanged.
    """

    def __init__(self, temp_root: Path, session_id: str | None = None):
        self.session_id = session_id or str(uuid.uuid4())
        self.working_dir = Path(temp_root) / self.session_id
        self.state: SessionState | None = None
        self._log = logger.bind(session_id=self.session_id)

    # -- context manager ---------------------------------------------------

    def __enter__(self) -> SynthesisSession:
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc is not None:
            if self.state not in _TERMINAL_STATES:
                self.state = SessionState.FAILED
                self._log.warning("session.failed", error=str(exc), error_type=exc_type.__name__)
            self.cleanup()
            self.state = SessionState.CLEANED_UP
        elif self.state is not SessionState.FINALIZED:
            self.cleanup()
            self.state = SessionState.CLEANED_UP
        return False

    # -- lifecycle ---------------------------------------------------------

    def open(self) -> Path:
        if self.state is not None:
            raise SessionStateError(f"Session {self.session_id} was already opened")
        # exist_ok=False: a session never adopts another session's directory
        self.working_dir.mkdir(parents=True, exist_ok=False)
        self.state = SessionState.CREATED
        self._log.info("session.created", working_dir=str(self.working_dir))
        return self.working_dir

    def _ensure_active(self) -> None:
        if self.state is None:
            raise SessionStateError(f"Session {self.session_id} is not open")
        if self.state in _TERMINAL_STATES or self.state is SessionState.FAILED:
            raise SessionStateError(f"Session {self.session_id} is {self.state.value}")

    def mark_populated(self) -> None:
        self._ensure_active()
        self.state = SessionState.POPULATED

    def finalize(self, artifact: Path, destination: Path) -> Path:
        """Move *artifact* out to *destination*, then remove the working directory."""
        self._ensure_active()
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        final_path = Path(shutil.move(str(artifact), str(destination)))
        self.cleanup()
        self.state = SessionState.FINALIZED
        self._log.info("session.finalized", output_path=str(final_path))
        return final_path

    def cleanup(self) -> None:
        """Recursively delete the working directory.

        Safe to call repeatedly. Errors are logged and never raised.
        """
        try:
            shutil.rmtree(self.working_dir)
        except FileNotFoundError:
            return
        except OSError:
            self._log.exception("session.cleanup_failed", working_dir=str(self.working_dir))
            return
        self._log.info("session.cleaned_up", working_dir=str(self.working_dir))
