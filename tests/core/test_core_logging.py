"""Tests for log event processors and request context."""

from learntrack.core.context import (
    clear_context,
    get_context,
    get_request_id,
    get_user_id,
    set_request_id,
    set_trace_id,
    set_user_id,
)
from learntrack.core.logging import add_context_processor, filter_sensitive_data


def test_sensitive_values_are_masked() -> None:
    event = filter_sensitive_data(
        None,
        "info",
        {
            "event": "user_registered",
            "password": "hunter2secret",
            "token": "abc",
            "payload": {"access_token": "eyJhbGciOi"},
            "email": "ana@example.com",
        },
    )

    assert event["password"] == "hu*********et"
    assert event["token"] == "***"
    assert event["payload"]["access_token"].startswith("ey")
    assert "*" in event["payload"]["access_token"]
    assert event["email"] == "ana@example.com"


def test_context_is_merged_without_overriding() -> None:
    set_request_id("r-1")
    set_user_id("u-1")
    try:
        event = add_context_processor(None, "info", {"event": "x", "user_id": "own"})
    finally:
        clear_context()

    assert event["request_id"] == "r-1"
    assert event["user_id"] == "own"


def test_clear_context_resets_values() -> None:
    set_request_id()
    set_user_id("u-1", role="student")
    set_trace_id("t")
    assert get_context()["user_role"] == "student"

    clear_context()

    assert get_request_id() == ""
    assert get_user_id() is None
    assert get_context() == {}
