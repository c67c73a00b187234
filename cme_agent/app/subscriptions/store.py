"""Read access to the remote ``subscriptions`` table."""
from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from typing import Any, Callable, Mapping, Optional, Protocol

import httpx
import psycopg2
import psycopg2.extras
from postgrest.exceptions import APIError
from psycopg2.extensions import connection as PgConnection
from pydantic import ValidationError
from supabase import Client

from cme_agent import app_context
from .models import SubscriptionRecord

logger = logging.getLogger(__name__)

SUBSCRIPTIONS_TABLE = "subscriptions"
NO_ROW_ERROR_CODE = "PGRST116"

LATEST_SUBSCRIPTION_SQL = (
    "SELECT * FROM subscriptions WHERE user_id = %s ORDER BY created_at DESC LIMIT 1"
)


class SubscriptionStoreError(Exception):
    """Base class for subscription store failures."""


class SubscriptionNotFound(SubscriptionStoreError):
    """No subscription row exists for the requested user."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"No subscription found for user={user_id}")
        self.user_id = user_id


class SubscriptionFetchError(SubscriptionStoreError):
    """The store could not produce a usable subscription row."""


class SubscriptionStore(Protocol):
    """Data access layer for the latest subscription of a user."""

    async def fetch_latest_subscription(self, user_id: str) -> SubscriptionRecord:
        """Return the most recently created row or raise :class:`SubscriptionNotFound`."""


def _record_from_row(row: Mapping[str, Any]) -> SubscriptionRecord:
    try:
        return SubscriptionRecord.model_validate(dict(row))
    except ValidationError as exc:
        logger.warning("Discarding malformed subscription row id=%s", row.get("id"))
        raise SubscriptionFetchError(f"Malformed subscription row: {exc}") from exc


class SupabaseSubscriptionStore:
    """Store backed by a Supabase (PostgREST) client."""

    def __init__(self, client: Client) -> None:
        self._client = client

    async def fetch_latest_subscription(self, user_id: str) -> SubscriptionRecord:
        return await asyncio.to_thread(self._fetch, user_id)

    def _fetch(self, user_id: str) -> SubscriptionRecord:
        try:
            result = (
                self._client.table(SUBSCRIPTIONS_TABLE)
                .select("*")
                .eq("user_id", user_id)
                .order("created_at", desc=True)
                .limit(1)
                .single()
                .execute()
            )
        except APIError as exc:
            if exc.code == NO_ROW_ERROR_CODE:
                raise SubscriptionNotFound(user_id) from exc
            raise SubscriptionFetchError(f"Subscription query failed: {exc.message}") from exc
        except httpx.HTTPError as exc:
            raise SubscriptionFetchError(f"Subscription query failed: {exc}") from exc

        if not result.data:
            raise SubscriptionNotFound(user_id)
        return _record_from_row(result.data)


@contextmanager
def managed_connection(connection_factory: Optional[Callable[[], PgConnection]] = None):
    """Open a connection (from the application context by default) and close it afterwards."""

    factory = connection_factory or app_context.get_conn
    connection = factory()
    try:
        yield connection
    finally:
        connection.close()


class PostgresSubscriptionStore:
    """Store reading the subscriptions table directly through psycopg2."""

    def __init__(self, connection_factory: Optional[Callable[[], PgConnection]] = None) -> None:
        self._connection_factory = connection_factory

    async def fetch_latest_subscription(self, user_id: str) -> SubscriptionRecord:
        return await asyncio.to_thread(self._fetch, user_id)

    def _fetch(self, user_id: str) -> SubscriptionRecord:
        try:
            with managed_connection(self._connection_factory) as connection:
                with connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                    cur.execute(LATEST_SUBSCRIPTION_SQL, (user_id,))
                    row = cur.fetchone()
        except psycopg2.Error as exc:
            raise SubscriptionFetchError(f"Subscription query failed: {exc}") from exc

        if row is None:
            raise SubscriptionNotFound(user_id)
        return _record_from_row(row)


__all__ = [
    "LATEST_SUBSCRIPTION_SQL",
    "NO_ROW_ERROR_CODE",
    "PostgresSubscriptionStore",
    "SubscriptionFetchError",
    "SubscriptionNotFound",
    "SubscriptionStore",
    "SubscriptionStoreError",
    "SupabaseSubscriptionStore",
]
