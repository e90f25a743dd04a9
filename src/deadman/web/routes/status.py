"""Status endpoint - what is being watched and how the sweeper is doing."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/status")
async def status(request: Request):
    """Watched heartbeats (soonest expiry first) and sweeper counters."""
    state = request.app.state
    return {
        **state.registry.to_dict(),
        "sweeper": state.sweeper.get_status(),
    }
