# ─────────────────────────────────────────────────────────────────────────────
# Custom Exceptions + FastAPI Exception Handlers
# ─────────────────────────────────────────────────────────────────────────────


import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


# ── Exception hierarchy ──────────────────────────────────────────────────────


class GatewayError(Exception):
    """Base exception for all gateway errors."""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class MissingIdError(GatewayError):
    """Raised when a data route is called with a blank player id."""

    def __init__(self) -> None:
        super().__init__("Missing id parameter", status_code=400)


class InvalidRequestError(GatewayError):
    """Raised when the request body does not match the update schema."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__("Invalid request body", status_code=400)


class AuthError(GatewayError):
    """Raised when the API key header is absent or wrong."""

    def __init__(self) -> None:
        super().__init__("Invalid API key.", status_code=401)


class PlayerNotFoundError(GatewayError):
    """Raised when no row matches the requested player id."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__("User not found", status_code=404)


class RateLimitError(GatewayError):
    """Raised when a client exceeds its request window.

    retry_after_seconds is surfaced as the Retry-After header.
    """

    def __init__(self, retry_after_seconds: int = 60):
        self.retry_after_seconds = retry_after_seconds
        super().__init__("Too many requests, please try again later.", status_code=429)


class BackendError(GatewayError):
    """Raised when the pool, the driver or stored JSON fails.

    Always chained to the original exception. The public message is
    sanitized; `detail` keeps the driver's own text for logs and for
    deployments that opt into echoing it.
    """

    def __init__(self, operation: str, cause: BaseException):
        self.operation = operation
        self.error_type = type(cause).__name__
        self.detail = str(cause)
        super().__init__(f"Database error during {operation}", status_code=500)


# ── Rendering ────────────────────────────────────────────────────────────────


def error_response(exc: GatewayError, *, expose_backend_errors: bool = False) -> JSONResponse:
    """Render a GatewayError as the `{"error": ...}` JSON body."""
    headers: dict[str, str] = {}
    content: dict[str, object] = {"error": exc.message}

    if isinstance(exc, RateLimitError):
        headers["Retry-After"] = str(exc.retry_after_seconds)
    elif isinstance(exc, BackendError) and expose_backend_errors:
        content["error"] = {"type": exc.error_type, "message": exc.detail}
    elif isinstance(exc, InvalidRequestError):
        content["detail"] = exc.detail

    return JSONResponse(status_code=exc.status_code, content=content, headers=headers or None)


# ── Handler registration ────────────────────────────────────────────────────


def register_exception_handlers(app: FastAPI, *, expose_backend_errors: bool = False) -> None:
    """Register all custom exception handlers on the FastAPI app.

    Endpoints raise GatewayError subclasses; these handlers catch them
    and return structured JSON -- no inline try/except in endpoints.
    """

    @app.exception_handler(BackendError)
    async def backend_error_handler(request: Request, exc: BackendError) -> JSONResponse:
        metrics = getattr(request.app.state, "metrics", None)
        if metrics is not None:
            metrics.record_backend_error(exc.operation)
        logger.error(
            "backend_error",
            operation=exc.operation,
            error=exc.detail,
            error_type=exc.error_type,
            path=request.url.path,
            exc_info=exc,
        )
        return error_response(exc, expose_backend_errors=expose_backend_errors)

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
        logger.info(
            "request_rejected",
            error=exc.message,
            error_type=type(exc).__name__,
            status=exc.status_code,
            path=request.url.path,
        )
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Schema failures share the 400 class with a missing id."""
        detail = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        logger.info("request_invalid", path=request.url.path, detail=detail)
        return error_response(InvalidRequestError(detail))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_error", error=str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"},
        )
