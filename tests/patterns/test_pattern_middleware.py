"""Tests for the request handler chain."""

import pytest

from learntrack.patterns.middleware import (
    AuthenticationMiddleware,
    AuthorizationMiddleware,
    CachingMiddleware,
    LoggingMiddleware,
    MiddlewarePipeline,
    RateLimitMiddleware,
    ValidationMiddleware,
)


AUTH = {"authorization": "Bearer good"}


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def calls():
    return []


@pytest.fixture
def handler(calls):
    def _handler(request, response):
        calls.append(request.get("url"))
        response["data"] = {"ok": True}
        return response

    return _handler


class TestPipeline:
    def test_empty_pipeline_runs_handler(self, handler) -> None:
        response = MiddlewarePipeline().execute({"url": "/x"}, handler)
        assert response["data"] == {"ok": True}

    def test_without_handler(self) -> None:
        response = MiddlewarePipeline().use(LoggingMiddleware()).execute({})
        assert response == {"status": 200, "data": None, "cached": False}


class TestAuthentication:
    @pytest.fixture
    def pipeline(self):
        return (
            MiddlewarePipeline()
            .use(AuthenticationMiddleware())
            .use(AuthorizationMiddleware("admin"))
        )

    def test_missing_header(self, pipeline, handler, calls) -> None:
        response = pipeline.execute({"url": "/x"}, handler)
        assert response["status"] == 401
        assert response["error"] == "Missing authorization header"
        assert calls == []

    def test_invalid_token(self, pipeline, handler) -> None:
        response = pipeline.execute(
            {"headers": {"authorization": "Bearer invalid-token"}}, handler
        )
        assert response["error"] == "Invalid token"

    def test_insufficient_role(self, pipeline, handler) -> None:
        response = pipeline.execute({"headers": AUTH}, handler)
        assert response["status"] == 403
        assert response["error"] == "Insufficient permissions. Required: admin"

    def test_authorization_without_user(self, handler) -> None:
        response = (
            MiddlewarePipeline().use(AuthorizationMiddleware()).execute({}, handler)
        )
        assert response["status"] == 403


class TestValidation:
    RULES = [
        {"field": "title", "required": True, "type": "string", "min_length": 3},
        {"field": "code", "pattern": r"^[A-Z]{3}\d{3}$"},
        {"field": "hours", "type": "number"},
    ]

    def test_errors(self) -> None:
        errors = ValidationMiddleware(self.RULES).validate(
            {"title": "ab", "code": "cs101", "hours": "ten"}
        )
        assert errors == [
            "title must be at least 3 characters long",
            "code format is invalid",
            "hours must be of type number",
        ]

    def test_required(self) -> None:
        assert ValidationMiddleware(self.RULES).validate({"title": ""}) == [
            "title is required"
        ]

    def test_rejects_request(self, handler) -> None:
        response = (
            MiddlewarePipeline()
            .use(ValidationMiddleware(self.RULES))
            .execute({"body": {"title": "Intro", "code": "CSE101"}}, handler)
        )
        assert response["status"] == 200

        response = (
            MiddlewarePipeline()
            .use(ValidationMiddleware(self.RULES))
            .execute({"body": {}}, handler)
        )
        assert response["status"] == 400
        assert response["details"] == ["title is required"]


class TestRateLimit:
    def test_window(self, handler) -> None:
        clock = FakeClock()
        pipeline = MiddlewarePipeline().use(
            RateLimitMiddleware(max_requests=2, window_seconds=60, clock=clock)
        )
        request = {"ip": "10.0.0.1"}

        assert pipeline.execute(dict(request), handler)["status"] == 200
        assert pipeline.execute(dict(request), handler)["status"] == 200
        limited = pipeline.execute(dict(request), handler)
        assert limited["status"] == 429
        assert limited["retry_after"] == 60

        assert pipeline.execute({"ip": "10.0.0.2"}, handler)["status"] == 200

        clock.now = 61
        assert pipeline.execute(dict(request), handler)["status"] == 200


class TestCaching:
    def test_get_responses_are_cached(self, handler, calls) -> None:
        clock = FakeClock()
        pipeline = MiddlewarePipeline().use(CachingMiddleware(300, clock=clock))

        first = pipeline.execute({"method": "GET", "url": "/courses"}, handler)
        second = pipeline.execute({"method": "GET", "url": "/courses"}, handler)

        assert first["cached"] is False
        assert second["cached"] is True
        assert calls == ["/courses"]

        clock.now = 301
        pipeline.execute({"method": "GET", "url": "/courses"}, handler)
        assert calls == ["/courses", "/courses"]

    def test_other_methods_bypass_cache(self, handler, calls) -> None:
        pipeline = MiddlewarePipeline().use(CachingMiddleware())
        pipeline.execute({"method": "POST", "url": "/courses"}, handler)
        pipeline.execute({"method": "POST", "url": "/courses"}, handler)
        assert len(calls) == 2

    def test_errors_are_not_cached(self, calls) -> None:
        def failing(request, response):
            calls.append(request["url"])
            response.update(status=500, error="boom")
            return response

        pipeline = MiddlewarePipeline().use(CachingMiddleware())
        pipeline.execute({"method": "GET", "url": "/x"}, failing)
        pipeline.execute({"method": "GET", "url": "/x"}, failing)
        assert len(calls) == 2
