"""Application wiring for the entitlement session."""
from __future__ import annotations

import logging
from typing import Callable, List, Optional

import psycopg2
from psycopg2.extensions import connection as PgConnection
from supabase import Client, create_client

from cme_agent import app_context

from ..subscriptions import (
    EntitlementSession,
    IdentitySource,
    PostgresSubscriptionStore,
    SubscriptionConfig,
    SubscriptionStore,
    SupabaseSubscriptionStore,
    bridge_supabase_auth,
)

logger = logging.getLogger("subscriptions")


def create_supabase_client(config: SubscriptionConfig) -> Client:
    url, key = config.require_supabase()
    return create_client(url, key)


def create_connection_factory(config: SubscriptionConfig) -> Callable[[], PgConnection]:
    db_config = dict(config.db_config)

    def connect() -> PgConnection:
        return psycopg2.connect(**db_config)

    return connect


class EntitlementRuntime:
    """Builds, registers and tears down the single entitlement session."""

    def __init__(
        self,
        config: SubscriptionConfig,
        *,
        store: Optional[SubscriptionStore] = None,
        identity: Optional[IdentitySource] = None,
        supabase_client: Optional[Client] = None,
    ) -> None:
        self._config = config
        self._identity = identity or IdentitySource()
        self._supabase_client = supabase_client
        self._store = store
        self._cleanups: List[Callable[[], None]] = []
        self._session: Optional[EntitlementSession] = None

    @property
    def session(self) -> Optional[EntitlementSession]:
        return self._session

    def _build_store(self) -> SubscriptionStore:
        if self._store is not None:
            return self._store
        if self._config.store_backend == "postgres":
            return PostgresSubscriptionStore()
        if self._supabase_client is None:
            self._supabase_client = create_supabase_client(self._config)
        return SupabaseSubscriptionStore(self._supabase_client)

    async def start(self) -> EntitlementSession:
        if self._session is not None:
            return self._session

        store = self._build_store()
        session = EntitlementSession(store, self._identity)
        get_conn = None
        if self._config.store_backend == "postgres":
            get_conn = create_connection_factory(self._config)
        app_context.configure(entitlement_session=session, get_conn=get_conn)

        if self._supabase_client is not None:
            self._cleanups.append(bridge_supabase_auth(self._supabase_client, self._identity))

        self._session = session
        snapshot = await session.start()
        logger.info(
            "Entitlement runtime started store=%s tier=%s state=%s",
            self._config.store_backend,
            snapshot.tier.value,
            snapshot.state.value,
        )
        return session

    def shutdown(self) -> None:
        while self._cleanups:
            cleanup = self._cleanups.pop()
            cleanup()
        if self._session is not None:
            self._session.close()
            self._session = None
        app_context.reset()
        logger.info("Entitlement runtime stopped")


__all__ = ["EntitlementRuntime", "create_connection_factory", "create_supabase_client"]
