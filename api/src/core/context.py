"""Request context management using contextvars.

Each request gets a unique ID, and once known, the acting account and the
client IPv4 address. Log events pick these up through the logging processors
without passing them around explicitly.
"""

from contextvars import ContextVar
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
client_ip_var: ContextVar[str | None] = ContextVar("client_ip", default=None)


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context.

    Args:
        request_id: Optional request ID. If not provided, generates a new one.

    Returns:
        The request ID that was set.
    """
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_user_id() -> str | None:
    return user_id_var.get()


def set_user_id(user_id: str | UUID | None) -> None:
    """Set the acting account for the current context."""
    user_id_var.set(str(user_id) if user_id is not None else None)


def get_client_ip() -> str | None:
    return client_ip_var.get()


def set_client_ip(client_ip: str | None) -> None:
    client_ip_var.set(client_ip)


def get_context() -> dict[str, Any]:
    """Get the non-empty context variables as a dictionary."""
    context: dict[str, Any] = {}

    request_id = get_request_id()
    if request_id:
        context["request_id"] = request_id

    user_id = get_user_id()
    if user_id:
        context["user_id"] = user_id

    client_ip = get_client_ip()
    if client_ip:
        context["client_ip"] = client_ip

    return context


def clear_context() -> None:
    """Reset all context variables so nothing leaks between requests."""
    request_id_var.set("")
    user_id_var.set(None)
    client_ip_var.set(None)
