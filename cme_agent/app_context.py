"""Shared application context for session-wide dependencies."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Optional

if TYPE_CHECKING:  # pragma: no cover
    from cme_agent.app.subscriptions.context import EntitlementSession

_get_conn: Optional[Callable[[], Any]] = None
_entitlement_session: Optional["EntitlementSession"] = None


class ContextNotConfiguredError(RuntimeError):
    """Raised when a dependency is requested before the application registered it."""


def configure(
    *,
    entitlement_session: "EntitlementSession",
    get_conn: Optional[Callable[[], Any]] = None,
) -> None:
    """Register application-wide dependencies once at start-up."""

    global _get_conn
    global _entitlement_session

    _entitlement_session = entitlement_session
    if get_conn is not None:
        _get_conn = get_conn


def reset() -> None:
    """Forget registered dependencies, e.g. when the application shuts down."""

    global _get_conn
    global _entitlement_session

    _get_conn = None
    _entitlement_session = None


def _require(value: Optional[Any], name: str) -> Any:
    if value is None:
        raise ContextNotConfiguredError(f"Application context has not been configured yet: {name}")
    return value


def get_conn() -> Any:
    conn_factory = _require(_get_conn, "get_conn")
    return conn_factory()


def get_entitlement_session() -> "EntitlementSession":
    return _require(_entitlement_session, "entitlement_session")
