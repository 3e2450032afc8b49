# ─────────────────────────────────────────────────────────────────────────────
# Prometheus Metrics Endpoint — text exposition format
# ─────────────────────────────────────────────────────────────────────────────

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from gateway.dependencies import get_metrics
from gateway.metrics import GatewayMetrics

router = APIRouter()


@router.get("/metrics/prometheus")
async def prometheus_metrics(metrics: GatewayMetrics = Depends(get_metrics)) -> Response:
    """Prometheus text exposition format metrics endpoint."""
    return Response(
        content=metrics.render(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
