from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from capture_service.capture.types import CameraSettings, Viewport


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "Model Capture Service"
    env: str = "dev"
    log_level: str = "INFO"
    port: int = 3001

    client_url: str = "http://localhost:5173"
    capture_path: str = "capture"

    page_load_timeout_ms: int = 120000
    surface_timeout_ms: int = 5000
    session_timeout_ms: int = 300000

    viewport_width: int = 1920
    viewport_height: int = 1080
    device_scale_factor: float = 2

    camera_fov: float = 60
    camera_near: float = 0.01
    camera_far: float = 100
    camera_position: tuple[float, float, float] = (0.0, 0.0, 0.0)
    camera_target: tuple[float, float, float] = (0.0, 0.0, 0.0)

    browser_headless: bool = True
    browser_args: str = ""

    storage_backend: str = "local"
    storage_prefix: str = "captures"
    s3_endpoint_url: str | None = None
    s3_access_key: str | None = None
    s3_secret_key: str | None = None
    s3_bucket: str = "model-captures"
    s3_region: str = "us-east-1"
    s3_public_base_url: str | None = None
    s3_presign_expires: int = 7 * 24 * 3600
    local_data_dir: str = "data"
    public_base_url: str = "http://localhost:3001"

    spool_dir: str | None = None
    spool_cleanup: bool = True

    cors_origins: str = "*"
    tls_certfile: str | None = None
    tls_keyfile: str | None = None
    redirect_http_port: int | None = None

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def browser_arg_list(self) -> list[str]:
        return [arg.strip() for arg in self.browser_args.split(",") if arg.strip()]

    @property
    def render_target_base_url(self) -> str:
        return f"{self.client_url.rstrip('/')}/{self.capture_path.strip('/')}"

    def viewport(self) -> Viewport:
        return Viewport(
            width=self.viewport_width,
            height=self.viewport_height,
            device_scale_factor=self.device_scale_factor,
        )

    def default_camera(self) -> CameraSettings:
        return CameraSettings(
            field_of_view=self.camera_fov,
            near_plane=self.camera_near,
            far_plane=self.camera_far,
            position=tuple(self.camera_position),
            target=tuple(self.camera_target),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
