"""Active user identity for the application session."""
from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

from supabase import Client

logger = logging.getLogger(__name__)

IdentityListener = Callable[[Optional[str]], None]


class IdentitySource:
    """Holds the signed-in user id and notifies listeners when it changes."""

    def __init__(self, user_id: Optional[str] = None) -> None:
        self._user_id = user_id
        self._listeners: List[IdentityListener] = []

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_user(self, user_id: Optional[str]) -> None:
        """Record the signed-in user; listeners only fire on an actual change."""

        user_id = user_id or None
        if user_id == self._user_id:
            return
        logger.info("Session identity changed: %s -> %s", self._user_id or "<none>", user_id or "<none>")
        self._user_id = user_id
        for listener in list(self._listeners):
            try:
                listener(user_id)
            except Exception:
                logger.exception("Identity listener failed")

    def clear(self) -> None:
        self.set_user(None)


def _user_id_from_session(session: Any) -> Optional[str]:
    user = getattr(session, "user", None) if session is not None else None
    user_id = getattr(user, "id", None)
    return str(user_id) if user_id else None


def bridge_supabase_auth(client: Client, identity: IdentitySource) -> Callable[[], None]:
    """Forward Supabase auth state changes into ``identity``.

    Returns a callable that stops forwarding.
    """

    def _on_auth_state_change(event: Any, session: Any) -> None:
        logger.debug("Supabase auth event %s", getattr(event, "value", event))
        identity.set_user(_user_id_from_session(session))

    subscription = client.auth.on_auth_state_change(_on_auth_state_change)
    identity.set_user(_user_id_from_session(client.auth.get_session()))
    return subscription.unsubscribe
