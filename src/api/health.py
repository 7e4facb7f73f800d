"""Health check endpoint."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    """Report liveness and the provider's authentication state."""
    provider = getattr(request.app.state, "provider", None)
    return {
        "status": "ok",
        "provider_state": provider.state.value if provider else None,
    }
