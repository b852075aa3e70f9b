"""Middleware pattern: a chain of handlers that may short-circuit a request.

Requests and responses are plain dicts::

    request = {"method": "GET", "url": "/courses", "headers": {...}, "body": {...}}
    response = {"status": 200, "data": None, "cached": False}
"""

import math
import re
import time
from collections.abc import Callable
from typing import Any

import structlog


logger = structlog.get_logger(__name__)

Request = dict[str, Any]
Response = dict[str, Any]
FinalHandler = Callable[[Request, Response], Response]

_TYPE_CHECKS: dict[str, type | tuple[type, ...]] = {
    "string": str,
    "number": (int, float),
    "boolean": bool,
    "object": dict,
    "array": list,
}


def _reject(response: Response, status: int, error: str, **extra: Any) -> Response:
    response.update(status=status, error=error, **extra)
    return response


class Middleware:
    """One link of the chain; ``handle`` forwards to the next link."""

    def __init__(self) -> None:
        self.next_middleware: Middleware | None = None

    def set_next(self, middleware: "Middleware") -> "Middleware":
        self.next_middleware = middleware
        return middleware

    def handle(
        self,
        request: Request,
        response: Response,
        final: FinalHandler | None = None,
    ) -> Response:
        if self.next_middleware is not None:
            return self.next_middleware.handle(request, response, final)
        return final(request, response) if final else response


class AuthenticationMiddleware(Middleware):
    def handle(self, request, response, final=None):
        authorization = (request.get("headers") or {}).get("authorization")
        if not authorization:
            return _reject(response, 401, "Missing authorization header")

        token = authorization.removeprefix("Bearer ")
        if token == "invalid-token":
            return _reject(response, 401, "Invalid token")

        request["user"] = {"id": 1, "username": "john_doe", "role": "student"}
        return super().handle(request, response, final)


class AuthorizationMiddleware(Middleware):
    def __init__(self, required_role: str | None = None):
        super().__init__()
        self.required_role = required_role

    def handle(self, request, response, final=None):
        user = request.get("user")
        if not user:
            return _reject(response, 403, "User not authenticated")
        if self.required_role and user.get("role") != self.required_role:
            return _reject(
                response, 403, f"Insufficient permissions. Required: {self.required_role}"
            )
        return super().handle(request, response, final)


class ValidationMiddleware(Middleware):
    """Checks ``request["body"]`` against rules.

    Each rule is a dict with ``field`` and any of ``required``, ``type``,
    ``min_length``, ``max_length`` and ``pattern``.
    """

    def __init__(self, rules: list[dict[str, Any]]):
        super().__init__()
        self.rules = rules

    def validate(self, body: dict[str, Any]) -> list[str]:
        errors = []
        for rule in self.rules:
            field = rule["field"]
            value = body.get(field)
            if value is None or value == "":
                if rule.get("required"):
                    errors.append(f"{field} is required")
                continue

            expected = rule.get("type")
            if expected and not isinstance(value, _TYPE_CHECKS.get(expected, object)):
                errors.append(f"{field} must be of type {expected}")
            if isinstance(value, str):
                if rule.get("min_length") and len(value) < rule["min_length"]:
                    errors.append(
                        f"{field} must be at least {rule['min_length']} characters long"
                    )
                if rule.get("max_length") and len(value) > rule["max_length"]:
                    errors.append(
                        f"{field} must be no more than {rule['max_length']} characters long"
                    )
            pattern = rule.get("pattern")
            if pattern and not re.search(pattern, str(value)):
                errors.append(f"{field} format is invalid")
        return errors

    def handle(self, request, response, final=None):
        errors = self.validate(request.get("body") or {})
        if errors:
            return _reject(response, 400, "Validation failed", details=errors)
        return super().handle(request, response, final)


class LoggingMiddleware(Middleware):
    REDACTED_FIELDS = ("password", "token")

    def handle(self, request, response, final=None):
        body = {
            k: v
            for k, v in (request.get("body") or {}).items()
            if k not in self.REDACTED_FIELDS
        }
        user = request.get("user") or {}
        logger.info(
            "pipeline_request",
            method=request.get("method", "GET"),
            url=request.get("url", "/"),
            user_id=user.get("id", "anonymous"),
            body=body or None,
        )
        result = super().handle(request, response, final)
        logger.info("pipeline_response", status=result.get("status"))
        return result


class RateLimitMiddleware(Middleware):
    """Sliding-window limit of ``max_requests`` per ``window_seconds`` per client."""

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__()
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self.requests: dict[Any, list[float]] = {}

    def handle(self, request, response, final=None):
        user = request.get("user") or {}
        client_id = user.get("id") or request.get("ip") or "anonymous"
        now = self.clock()

        recent = [
            t for t in self.requests.get(client_id, []) if now - t < self.window_seconds
        ]
        self.requests[client_id] = recent
        if len(recent) >= self.max_requests:
            return _reject(
                response,
                429,
                "Too many requests",
                retry_after=math.ceil(self.window_seconds),
            )
        recent.append(now)
        return super().handle(request, response, final)


class CachingMiddleware(Middleware):
    """Caches successful GET responses per url and user."""

    def __init__(
        self,
        cache_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__()
        self.cache_seconds = cache_seconds
        self.clock = clock
        self.cache: dict[str, tuple[Response, float]] = {}

    def handle(self, request, response, final=None):
        if request.get("method", "GET") != "GET":
            return super().handle(request, response, final)

        user = request.get("user") or {}
        key = f"{request.get('url', '/')}_{user.get('id', 'anonymous')}"
        entry = self.cache.get(key)
        if entry and self.clock() - entry[1] < self.cache_seconds:
            return {**entry[0], "cached": True}

        result = super().handle(request, response, final)
        if not result.get("error") and result.get("status") != 429:
            self.cache[key] = (dict(result), self.clock())
        return result


class MiddlewarePipeline:
    def __init__(self) -> None:
        self.first: Middleware | None = None
        self.last: Middleware | None = None

    def use(self, middleware: Middleware) -> "MiddlewarePipeline":
        if self.last is None:
            self.first = middleware
        else:
            self.last.set_next(middleware)
        self.last = middleware
        return self

    def execute(self, request: Request, final: FinalHandler | None = None) -> Response:
        response: Response = {"status": 200, "data": None, "cached": False}
        if self.first is None:
            return final(request, response) if final else response
        return self.first.handle(request, response, final)
