"""Request-scoped context stored in contextvars.

Every request gets a request id; authenticated requests also carry the
caller's user id and role. The logging processors read these values so
that log lines emitted deep inside a service can be correlated with the
request that caused them.
"""

from contextvars import ContextVar
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
user_role_var: ContextVar[str | None] = ContextVar("user_role", default=None)
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)
correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

_CONTEXT_VARS: dict[str, ContextVar] = {
    "request_id": request_id_var,
    "user_id": user_id_var,
    "user_role": user_role_var,
    "trace_id": trace_id_var,
    "correlation_id": correlation_id_var,
}


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID, generating one when none is supplied.

    Returns:
        The request ID that was set.
    """
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_user_id() -> str | None:
    return user_id_var.get()


def set_user_id(user_id: str | UUID | None, role: str | None = None) -> None:
    """Attach the authenticated user (and optionally the role) to the context."""
    user_id_var.set(str(user_id) if user_id is not None else None)
    if role is not None:
        user_role_var.set(role)


def get_trace_id() -> str | None:
    return trace_id_var.get()


def set_trace_id(trace_id: str | None) -> None:
    trace_id_var.set(trace_id)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str | None) -> None:
    correlation_id_var.set(correlation_id)


def get_context() -> dict[str, Any]:
    """Return the non-empty context values as a dictionary."""
    return {name: var.get() for name, var in _CONTEXT_VARS.items() if var.get()}


def clear_context() -> None:
    """Reset all context variables at the end of a request."""
    request_id_var.set("")
    for name, var in _CONTEXT_VARS.items():
        if name != "request_id":
            var.set(None)
