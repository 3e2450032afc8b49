# ─────────────────────────────────────────────────────────────────────────────
# Health Route — GET /
# ─────────────────────────────────────────────────────────────────────────────
# Unauthenticated and dependency-free: answers even when the pool is down.
# ─────────────────────────────────────────────────────────────────────────────

from fastapi import APIRouter

from gateway.schemas import StatusResponse

router = APIRouter()


@router.get("/", response_model=StatusResponse)
async def health() -> StatusResponse:
    """Liveness probe. No deps, no I/O."""
    return StatusResponse(status="online")
