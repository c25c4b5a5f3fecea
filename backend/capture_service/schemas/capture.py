from pydantic import BaseModel, ConfigDict, Field

from capture_service.capture.types import CameraSettings


class CameraSettingsBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    field_of_view: float = Field(alias="fieldOfView")
    near_plane: float = Field(alias="nearPlane")
    far_plane: float = Field(alias="farPlane")
    position: tuple[float, float, float]
    target: tuple[float, float, float]

    def to_camera(self) -> CameraSettings:
        return CameraSettings(
            field_of_view=self.field_of_view,
            near_plane=self.near_plane,
            far_plane=self.far_plane,
            position=self.position,
            target=self.target,
        )


class CaptureRequestBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    customization_id: str = Field(alias="customizationId", min_length=1, max_length=256)
    camera_settings: CameraSettingsBody | None = Field(default=None, alias="cameraSettings")


class CaptureImages(BaseModel):
    front: str | None = None
    back: str | None = None


class CaptureResponse(BaseModel):
    success: bool = True
    images: CaptureImages


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
