"""Health check API endpoints."""
from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/")
def read_root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "Service Trainer Backend",
        "version": "1.0.0"
    }


@router.get("/health")
def health(request: Request):
    """Liveness plus a session count from the registry."""
    registry = request.app.state.registry
    return {"status": "ok", "sessions": registry.get_stats()["total"]}
