# ─────────────────────────────────────────────────────────────────────────────
# Rate Limiter — fixed window per client IP, key holders exempt
# ─────────────────────────────────────────────────────────────────────────────
# Runs as middleware ahead of the API key check, so a keyless client is
# throttled before it ever learns whether a key would have worked.
# Counters live in a slowapi Limiter (fixed-window strategy) over in-process
# memory storage. hit() is synchronous and runs inside async dispatch, so
# network-backed storages (redis://, memcached://) are refused: each would
# block the event loop on every request. Windows are per worker process.
# ─────────────────────────────────────────────────────────────────────────────


import math
import time
from typing import Any

import structlog
from limits import parse
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from gateway.exceptions import RateLimitError, error_response
from gateway.gate import RequestContext, bypasses_rate_limit, rate_limit_key

logger = structlog.get_logger(__name__)

_NAMESPACE = "gateway"


class RateLimiter:
    """Fixed-window counter keyed by client identifier."""

    def __init__(self, limit: str = "10/minute", storage_uri: str = "memory://") -> None:
        if not storage_uri.startswith("memory://"):
            raise ValueError(
                f"Unsupported rate limit storage {storage_uri!r}: only memory:// is supported"
            )
        self._item = parse(limit)
        # slowapi insists on a key_func; keys come from RequestContext instead
        self._limiter = Limiter(
            key_func=get_remote_address,
            strategy="fixed-window",
            storage_uri=storage_uri,
        )

    @property
    def window_seconds(self) -> int:
        return self._item.get_expiry()

    @property
    def max_requests(self) -> int:
        return self._item.amount

    def hit(self, key: str) -> bool:
        """Count one request for key. False once the window is exhausted."""
        return self._limiter.limiter.hit(self._item, _NAMESPACE, key)

    def retry_after(self, key: str) -> int:
        """Seconds until the current window for key resets."""
        reset_time, _ = self._limiter.limiter.get_window_stats(self._item, _NAMESPACE, key)
        return max(1, math.ceil(reset_time - time.time()))

    def reset(self) -> None:
        """Drop every counter (tests, admin tooling)."""
        self._limiter.reset()


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Reject over-limit clients with 429 before auth and routing."""

    def __init__(
        self,
        app: Any,
        *,
        limiter: RateLimiter,
        api_key: str,
        api_key_header: str = "x-api-key",
        client_ip_header: str = "cf-connecting-ip",
    ) -> None:
        super().__init__(app)
        self._limiter = limiter
        self._api_key = api_key
        self._api_key_header = api_key_header
        self._client_ip_header = client_ip_header

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        ctx = RequestContext.from_request(
            request,
            api_key_header=self._api_key_header,
            client_ip_header=self._client_ip_header,
        )

        # Exemption is decided before the counter is touched
        if bypasses_rate_limit(ctx, self._api_key):
            return await call_next(request)

        key = rate_limit_key(ctx)
        if not self._limiter.hit(key):
            retry_after = self._limiter.retry_after(key)
            logger.warning(
                "rate_limit_exceeded",
                path=ctx.path,
                method=ctx.method,
                client_ip=key,
                retry_after=retry_after,
            )
            metrics = getattr(request.app.state, "metrics", None)
            if metrics is not None:
                metrics.record_rate_limited()
            return error_response(RateLimitError(retry_after))

        return await call_next(request)
