"""ASGI middleware binding request context and writing access logs."""

import time

from starlette.datastructures import MutableHeaders
from starlette.requests import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from learntrack.core.context import (
    clear_context,
    set_correlation_id,
    set_request_id,
    set_trace_id,
)
from learntrack.core.logging import get_logger


logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
TRACE_ID_HEADER = "X-Trace-ID"
CORRELATION_ID_HEADER = "X-Correlation-ID"
TRACEPARENT_HEADER = "traceparent"
PROCESS_TIME_HEADER = "X-Process-Time-Ms"


class RequestContextMiddleware:
    """Give every HTTP request an id and log how it went.

    The caller's ``X-Request-ID`` is reused when present. The id and the
    elapsed time are added to the response headers.
    """

    def __init__(
        self,
        app: ASGIApp,
        log_requests: bool = True,
        exclude_paths: list[str] | None = None,
    ) -> None:
        self.app = app
        self.log_requests = log_requests
        self.exclude_paths = tuple(exclude_paths or ["/health"])

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = time.perf_counter()
        request = Request(scope)
        request_id = bind_request_context(request)
        path = request.url.path
        logged = self.log_requests and not path.startswith(self.exclude_paths)
        status_code = 500

        if logged:
            logger.info(
                "request_started",
                method=request.method,
                path=path,
                query=str(request.query_params) or None,
                client_ip=client_ip(request),
            )

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                headers = MutableHeaders(scope=message)
                headers[REQUEST_ID_HEADER] = request_id
                headers[PROCESS_TIME_HEADER] = str(_elapsed_ms(started))
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as e:
            logger.exception(
                "request_failed",
                method=request.method,
                path=path,
                error_type=type(e).__name__,
                duration_ms=_elapsed_ms(started),
            )
            raise
        else:
            if logged:
                log = logger.warning if status_code >= 400 else logger.info
                log(
                    "request_completed",
                    method=request.method,
                    path=path,
                    status_code=status_code,
                    duration_ms=_elapsed_ms(started),
                )
        finally:
            clear_context()


def bind_request_context(request: Request) -> str:
    """Copy tracing headers into the context and return the request id."""
    headers = request.headers
    request_id = set_request_id(headers.get(REQUEST_ID_HEADER))
    # Error handlers outside this middleware read it from request state
    request.state.request_id = request_id

    trace_id = headers.get(TRACE_ID_HEADER) or parse_traceparent(
        headers.get(TRACEPARENT_HEADER)
    )
    if trace_id:
        set_trace_id(trace_id)
    if correlation_id := headers.get(CORRELATION_ID_HEADER):
        set_correlation_id(correlation_id)
    return request_id


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def client_ip(request: Request) -> str | None:
    """Best-effort client address, honouring reverse proxy headers."""
    if forwarded_for := request.headers.get("x-forwarded-for"):
        return forwarded_for.split(",")[0].strip()
    if real_ip := request.headers.get("x-real-ip"):
        return real_ip
    return request.client.host if request.client else None


def parse_traceparent(traceparent: str | None) -> str | None:
    """Trace id from a W3C ``traceparent`` (``version-traceid-parentid-flags``)."""
    if not traceparent:
        return None
    parts = traceparent.split("-")
    return parts[1] if len(parts) == 4 else None
