# Request gate predicates: a frozen per-request context plus pure functions
# deciding protection, authentication, rate-limit exemption and limiter key.
# Both gate middlewares consume these; nothing here touches the network.


import secrets
from dataclasses import dataclass

from starlette.requests import Request

PROTECTED_PREFIX = "/v1/"


@dataclass(frozen=True, slots=True)
class RequestContext:
    """What the gate needs to know about a request, captured once."""

    path: str
    method: str
    client_ip: str
    api_key: str | None = None

    @classmethod
    def from_request(
        cls,
        request: Request,
        *,
        api_key_header: str = "x-api-key",
        client_ip_header: str = "cf-connecting-ip",
    ) -> "RequestContext":
        forwarded_ip = request.headers.get(client_ip_header, "").strip()
        peer_ip = request.client.host if request.client else "unknown"
        return cls(
            path=request.url.path,
            method=request.method,
            client_ip=forwarded_ip or peer_ip,
            api_key=request.headers.get(api_key_header),
        )


def is_protected(ctx: RequestContext) -> bool:
    """Data routes require the API key; health and metrics do not."""
    return ctx.path.startswith(PROTECTED_PREFIX)


def has_valid_key(ctx: RequestContext, expected: str) -> bool:
    """Exact match against the configured key, in constant time.

    An unconfigured (empty) key never matches, so nobody gets a free pass
    when auth is disabled.
    """
    if not expected or not ctx.api_key:
        return False
    return secrets.compare_digest(ctx.api_key.encode(), expected.encode())


def bypasses_rate_limit(ctx: RequestContext, expected: str) -> bool:
    """Holders of the API key are never counted by the limiter."""
    return has_valid_key(ctx, expected)


def rate_limit_key(ctx: RequestContext) -> str:
    return ctx.client_ip
