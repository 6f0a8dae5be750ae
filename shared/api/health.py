"""Health check API endpoints."""
from fastapi import APIRouter

from config import get_settings

router = APIRouter(tags=["health"])


@router.get("/")
def read_root():
    """Health check endpoint."""
    settings = get_settings()
    return {
        "status": "ok",
        "service": "MathSage Tutor Backend",
        "version": "1.0.0",
        "environment": settings.environment,
        "model": settings.llm_model,
    }
