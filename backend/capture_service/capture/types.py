from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from capture_service.capture.errors import ErrorKind

Vector3 = tuple[float, float, float]

VIEW_NAMES: tuple[str, str] = ("front", "back")
PNG_CONTENT_TYPE = "image/png"


@dataclass(frozen=True)
class Viewport:
    width: int
    height: int
    device_scale_factor: float = 1


@dataclass(frozen=True)
class CameraSettings:
    field_of_view: float
    near_plane: float
    far_plane: float
    position: Vector3 = (0.0, 0.0, 0.0)
    target: Vector3 = (0.0, 0.0, 0.0)

    def as_payload(self) -> dict[str, Any]:
        """Serializable settings object handed to the render target.

        The short ``fov``/``near``/``far`` keys are kept alongside the long
        names because existing render targets read those.
        """
        return {
            "fieldOfView": self.field_of_view,
            "nearPlane": self.near_plane,
            "farPlane": self.far_plane,
            "position": list(self.position),
            "target": list(self.target),
            "fov": self.field_of_view,
            "near": self.near_plane,
            "far": self.far_plane,
        }


@dataclass(frozen=True)
class CaptureRequest:
    customization_id: str
    camera_settings: CameraSettings


@dataclass(frozen=True)
class Success:
    view_name: str
    image_bytes: bytes
    encoding: str = PNG_CONTENT_TYPE
    width: int | None = None
    height: int | None = None


@dataclass(frozen=True)
class Failure:
    view_name: str
    error_kind: ErrorKind
    message: str


ViewCaptureResult = Union[Success, Failure]


class OverallStatus(str, Enum):
    COMPLETE = "complete"
    PARTIAL_FAILURE = "partial_failure"
    TOTAL_FAILURE = "total_failure"


def derive_status(front: ViewCaptureResult, back: ViewCaptureResult) -> OverallStatus:
    succeeded = sum(1 for result in (front, back) if isinstance(result, Success))
    if succeeded == 2:
        return OverallStatus.COMPLETE
    if succeeded == 0:
        return OverallStatus.TOTAL_FAILURE
    return OverallStatus.PARTIAL_FAILURE


@dataclass(frozen=True)
class CaptureResult:
    request_id: str
    front: ViewCaptureResult
    back: ViewCaptureResult
    overall_status: OverallStatus = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "overall_status", derive_status(self.front, self.back))

    def successes(self) -> list[Success]:
        return [result for result in (self.front, self.back) if isinstance(result, Success)]


@dataclass(frozen=True)
class StoredArtifact:
    key: str
    url: str


def artifact_key(customization_id: str, view_name: str) -> str:
    return f"{customization_id}_{view_name}.png"
