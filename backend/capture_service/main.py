from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from loguru import logger

from capture_service.api.routes import api_router
from capture_service.core.config import Settings, get_settings
from capture_service.core.logging import init_logging
from capture_service.schemas.capture import ErrorResponse


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts) or "Invalid request"


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    init_logging(settings.log_level)
    app = FastAPI(title=settings.app_name)
    app.state.settings = settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    if settings.storage_backend.lower() == "local":
        prefix = settings.storage_prefix.strip("/")
        static_dir = Path(settings.local_data_dir) / prefix
        app.mount(f"/{prefix}", StaticFiles(directory=static_dir, check_dir=False), name="captures")

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        body = ErrorResponse(error=_validation_message(exc)).model_dump()
        return JSONResponse(body, status_code=422)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.opt(exception=exc).error("Unhandled error on {} {}", request.method, request.url.path)
        return JSONResponse(ErrorResponse(error="Capture failed").model_dump(), status_code=500)

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    @app.get("/", response_class=PlainTextResponse)
    def root():
        return "Hello server"

    return app


app = create_app()
