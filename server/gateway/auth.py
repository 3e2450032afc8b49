# API key authentication middleware for the /v1 data routes.
# Constant-time comparison lives in gate.has_valid_key. Disabled when api_key is empty.


from typing import Any

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from gateway.exceptions import AuthError, error_response
from gateway.gate import RequestContext, has_valid_key, is_protected

logger = structlog.get_logger(__name__)


class APIKeyMiddleware(BaseHTTPMiddleware):
    """Validate the API key header on protected routes (exempt: health, metrics)."""

    def __init__(self, app: Any, *, api_key: str, api_key_header: str = "x-api-key") -> None:
        super().__init__(app)
        self._api_key = api_key
        self._api_key_header = api_key_header

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method == "OPTIONS":
            return await call_next(request)

        ctx = RequestContext.from_request(request, api_key_header=self._api_key_header)
        if not is_protected(ctx):
            return await call_next(request)

        if not has_valid_key(ctx, self._api_key):
            logger.warning(
                "auth_rejected",
                path=ctx.path,
                method=ctx.method,
                client_ip=ctx.client_ip,
                reason="missing_api_key" if not ctx.api_key else "invalid_api_key",
            )
            metrics = getattr(request.app.state, "metrics", None)
            if metrics is not None:
                metrics.record_auth_rejection()
            return error_response(AuthError())

        return await call_next(request)
