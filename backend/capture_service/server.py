from __future__ import annotations

import asyncio

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse
from loguru import logger

from capture_service.core.config import Settings, get_settings


def create_redirect_app(https_port: int) -> FastAPI:
    """Plain-HTTP listener that sends every request to the HTTPS origin."""
    redirect_app = FastAPI(openapi_url=None, docs_url=None, redoc_url=None)

    @redirect_app.api_route("/{path:path}", methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])
    def redirect(request: Request, path: str):
        host = request.url.hostname or "localhost"
        netloc = host if https_port == 443 else f"{host}:{https_port}"
        target = request.url.replace(scheme="https", netloc=netloc)
        return RedirectResponse(str(target), status_code=301)

    return redirect_app


def _server_configs(settings: Settings) -> list[uvicorn.Config]:
    tls = bool(settings.tls_certfile and settings.tls_keyfile)
    main = uvicorn.Config(
        "capture_service.main:app",
        host="0.0.0.0",
        port=settings.port,
        ssl_certfile=settings.tls_certfile if tls else None,
        ssl_keyfile=settings.tls_keyfile if tls else None,
        log_config=None,
    )
    configs = [main]
    if tls and settings.redirect_http_port:
        configs.append(
            uvicorn.Config(
                create_redirect_app(settings.port),
                host="0.0.0.0",
                port=settings.redirect_http_port,
                log_config=None,
            )
        )
    return configs


async def serve(settings: Settings) -> None:
    servers = [uvicorn.Server(config) for config in _server_configs(settings)]
    await asyncio.gather(*(server.serve() for server in servers))


def run() -> None:
    settings = get_settings()
    scheme = "https" if settings.tls_certfile and settings.tls_keyfile else "http"
    logger.info("Capture service running on {}://0.0.0.0:{}", scheme, settings.port)
    asyncio.run(serve(settings))


if __name__ == "__main__":
    run()
