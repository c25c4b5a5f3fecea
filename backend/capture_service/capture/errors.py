from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    CONTEXT = "context_error"
    TIMEOUT = "timeout"
    NAVIGATION = "navigation_error"
    NO_SURFACE = "no_surface"
    ENCODING = "encoding_error"
    INTERNAL = "internal_error"


class CaptureError(Exception):
    """Base class for every failure raised by the capture pipeline."""


class LaunchError(CaptureError):
    """The browser process backing a session could not be started."""


class OrchestratorError(CaptureError):
    """A capture request could not be attempted at all."""


class StoreError(CaptureError):
    """The artifact store rejected or failed to persist bytes."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"{key}: {message}")
        self.key = key


class ViewCaptureError(CaptureError):
    kind: ErrorKind = ErrorKind.INTERNAL


class ContextError(ViewCaptureError):
    kind = ErrorKind.CONTEXT


class CaptureTimeout(ViewCaptureError):
    kind = ErrorKind.TIMEOUT


class NavigationError(ViewCaptureError):
    kind = ErrorKind.NAVIGATION


class NoSurfaceError(ViewCaptureError):
    kind = ErrorKind.NO_SURFACE


class EncodingError(ViewCaptureError):
    kind = ErrorKind.ENCODING
