from fastapi import APIRouter

from capture_service.api.routes.capture import router as capture_router

api_router = APIRouter()
api_router.include_router(capture_router)
