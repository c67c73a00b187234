"""Session-wide distribution of entitlement state to gating consumers."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Set

from cme_agent import app_context

from . import resolver
from .identity import IdentitySource
from .models import EntitlementSnapshot, FeatureKey, SubscriptionRecord, Tier
from .store import SubscriptionStore
from .synchronizer import SubscriptionSynchronizer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntitlementView:
    """Facade exposing a snapshot plus resolver helpers bound to its tier."""

    snapshot: EntitlementSnapshot
    _refresh: Callable[[], Awaitable[EntitlementSnapshot]] = field(repr=False, compare=False)

    @property
    def subscription(self) -> Optional[SubscriptionRecord]:
        return self.snapshot.subscription

    @property
    def tier(self) -> Tier:
        return self.snapshot.tier

    @property
    def is_loading(self) -> bool:
        return self.snapshot.is_loading

    @property
    def error(self) -> Optional[Exception]:
        return self.snapshot.error

    @property
    def is_free_tier(self) -> bool:
        return self.tier == Tier.FREE

    @property
    def is_pro_tier(self) -> bool:
        return self.tier == Tier.PRO

    @property
    def is_corporate_tier(self) -> bool:
        return self.tier == Tier.CORPORATE

    def can_add_doctor(self, current_count: int) -> bool:
        return resolver.can_add_doctor(self.tier, current_count)

    def can_add_state(self, current_count: int) -> bool:
        return resolver.can_add_state(self.tier, current_count)

    def check_feature_access(self, feature: FeatureKey) -> bool:
        return resolver.has_feature(self.tier, feature)

    def has_minimum_tier(self, required_tier: Tier) -> bool:
        return resolver.has_minimum_tier(self.tier, required_tier)

    async def refresh(self) -> EntitlementSnapshot:
        return await self._refresh()


class EntitlementSession:
    """Owns the single subscription synchronizer of an application session.

    Identity changes may be reported from any thread; they are scheduled on
    the loop that called :meth:`start`.
    """

    def __init__(self, store: SubscriptionStore, identity: IdentitySource) -> None:
        self._identity = identity
        self._synchronizer = SubscriptionSynchronizer(store)
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._pending: Set[asyncio.Task] = set()
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def synchronizer(self) -> SubscriptionSynchronizer:
        return self._synchronizer

    @property
    def identity(self) -> IdentitySource:
        return self._identity

    @property
    def started(self) -> bool:
        return self._loop is not None

    @property
    def view(self) -> EntitlementView:
        return EntitlementView(snapshot=self._synchronizer.snapshot, _refresh=self.refresh)

    async def start(self) -> EntitlementSnapshot:
        """Subscribe to identity changes and perform the initial sync."""

        if self._loop is not None:
            return self._synchronizer.snapshot
        self._loop = asyncio.get_running_loop()
        self._unsubscribe = self._identity.subscribe(self._on_identity_change)
        logger.info("Entitlement session started")
        return await self._synchronizer.set_identity(self._identity.user_id)

    async def refresh(self) -> EntitlementSnapshot:
        return await self._synchronizer.refresh()

    async def settle(self) -> EntitlementSnapshot:
        """Wait for identity-triggered syncs scheduled so far to finish."""

        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
        return self._synchronizer.snapshot

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        for task in list(self._pending):
            task.cancel()
        self._synchronizer.close()
        logger.info("Entitlement session closed")

    def _on_identity_change(self, user_id: Optional[str]) -> None:
        loop = self._loop
        if loop is None or self._synchronizer.closed:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self._schedule(user_id)
            return
        if loop.is_closed():
            logger.warning("Dropping identity change for user=%s: event loop is closed", user_id)
            return
        try:
            loop.call_soon_threadsafe(self._schedule, user_id)
        except RuntimeError:
            logger.warning("Dropping identity change for user=%s: event loop is closed", user_id)

    def _schedule(self, user_id: Optional[str]) -> None:
        if self._synchronizer.closed:
            return
        assert self._loop is not None
        task = self._loop.create_task(self._apply_identity(user_id))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _apply_identity(self, user_id: Optional[str]) -> None:
        if self._synchronizer.closed:
            return
        await self._synchronizer.set_identity(user_id)


def use_entitlements() -> EntitlementView:
    """Return the current entitlement view of the registered session.

    Raises :class:`~cme_agent.app_context.ContextNotConfiguredError` when no
    session has been registered.
    """

    return app_context.get_entitlement_session().view
