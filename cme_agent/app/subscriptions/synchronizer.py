"""Keeps the entitlement snapshot of the active user in sync with the remote store."""
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from .models import EntitlementSnapshot, SubscriptionRecord
from .store import SubscriptionNotFound, SubscriptionStore

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[EntitlementSnapshot], None]


class SynchronizerClosedError(RuntimeError):
    """Raised when a closed synchronizer is asked to sync again."""


class CancellationToken:
    """Liveness flag handed to one sync; once cancelled its results are dropped."""

    __slots__ = ("_cancelled",)

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class SubscriptionSynchronizer:
    """Fetches the active user's subscription and publishes entitlement snapshots.

    ``set_identity`` and ``refresh`` may overlap. Each call supersedes the
    previous one by cancelling its token, and a cancelled sync never touches
    the published snapshot, so the most recently started sync always wins.
    """

    def __init__(self, store: SubscriptionStore) -> None:
        self._store = store
        self._snapshot = EntitlementSnapshot.initial()
        self._user_id: Optional[str] = None
        self._token: Optional[CancellationToken] = None
        self._listeners: List[SnapshotListener] = []
        self._closed = False

    @property
    def snapshot(self) -> EntitlementSnapshot:
        return self._snapshot

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register ``listener`` for every published snapshot; returns an unsubscribe callable."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def set_identity(self, user_id: Optional[str]) -> EntitlementSnapshot:
        """Switch to ``user_id`` (``None`` when signed out) and sync from scratch."""

        self._ensure_open()
        self._user_id = user_id
        return await self._sync(keep_previous=False)

    async def refresh(self) -> EntitlementSnapshot:
        """Re-fetch the subscription for the current identity."""

        self._ensure_open()
        return await self._sync(keep_previous=True)

    def close(self) -> None:
        """Tear down: discard any outstanding completion and stop notifying listeners."""

        if self._closed:
            return
        self._closed = True
        if self._token is not None:
            self._token.cancel()
            self._token = None
        self._listeners.clear()

    def _ensure_open(self) -> None:
        if self._closed:
            raise SynchronizerClosedError("Subscription synchronizer has been closed")

    def _begin(self) -> CancellationToken:
        if self._token is not None:
            self._token.cancel()
        token = CancellationToken()
        self._token = token
        return token

    async def _sync(self, *, keep_previous: bool) -> EntitlementSnapshot:
        token = self._begin()
        user_id = self._user_id

        if user_id is None:
            self._publish(token, EntitlementSnapshot.ready(None))
            return self._snapshot

        previous = self._snapshot.subscription if keep_previous else None
        self._publish(token, EntitlementSnapshot.loading(previous))
        settled = await self._fetch(user_id, previous, token)
        self._publish(token, settled)
        return self._snapshot

    async def _fetch(
        self,
        user_id: str,
        previous: Optional[SubscriptionRecord],
        token: CancellationToken,
    ) -> EntitlementSnapshot:
        try:
            subscription = await self._store.fetch_latest_subscription(user_id)
        except SubscriptionNotFound:
            logger.debug("No subscription row for user=%s, using free tier", user_id)
            return EntitlementSnapshot.ready(None)
        except Exception as exc:
            if not token.cancelled:
                logger.warning("Subscription fetch failed for user=%s: %s", user_id, exc)
            return EntitlementSnapshot.errored(previous, exc)
        return EntitlementSnapshot.ready(subscription)

    def _publish(self, token: CancellationToken, snapshot: EntitlementSnapshot) -> None:
        if token.cancelled:
            logger.debug("Dropping superseded subscription snapshot state=%s", snapshot.state.value)
            return
        self._snapshot = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Entitlement snapshot listener failed")
