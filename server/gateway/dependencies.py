# ─────────────────────────────────────────────────────────────────────────────
# Dependency Injection — FastAPI Depends() providers
# ─────────────────────────────────────────────────────────────────────────────
# State flows: create_app/lifespan creates → app.state stores → Depends() injects.
# No global variables. Every dependency is explicit in endpoint signatures.
# ─────────────────────────────────────────────────────────────────────────────


from fastapi import Request

from gateway.db import PlayerStore
from gateway.metrics import GatewayMetrics


def get_player_store(request: Request) -> PlayerStore:
    """Inject PlayerStore into endpoints via Depends()."""
    return request.app.state.player_store  # type: ignore[no-any-return]


def get_metrics(request: Request) -> GatewayMetrics:
    """Inject GatewayMetrics into endpoints via Depends()."""
    return request.app.state.metrics  # type: ignore[no-any-return]
