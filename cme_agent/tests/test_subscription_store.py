from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
import psycopg2
import psycopg2.extras
import pytest
from postgrest.exceptions import APIError

from cme_agent import app_context
from cme_agent.app.subscriptions import (
    PostgresSubscriptionStore,
    SubscriptionFetchError,
    SubscriptionNotFound,
    SubscriptionPlatform,
    SubscriptionStatus,
    SupabaseSubscriptionStore,
    Tier,
)
from cme_agent.app.subscriptions.store import LATEST_SUBSCRIPTION_SQL


def subscription_row(**overrides: Any) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "id": "sub-1",
        "user_id": "user-1",
        "tier": "pro",
        "status": "active",
        "platform": "stripe",
        "platform_product_id": "prod_pro_monthly",
        "platform_subscription_id": "sub_123",
        "billing_period": "monthly",
        "price_cents": 2900,
        "currency": "USD",
        "trial_started_at": None,
        "trial_ends_at": None,
        "current_period_start": "2026-01-01T00:00:00+00:00",
        "current_period_end": "2026-02-01T00:00:00+00:00",
        "canceled_at": None,
        "created_at": "2026-01-01T00:00:00+00:00",
        "updated_at": "2026-01-01T00:00:00+00:00",
        "agency_id": None,
    }
    row.update(overrides)
    return row


class FakeResponse:
    def __init__(self, data: Any) -> None:
        self.data = data


class FakeQuery:
    def __init__(self, table: str, client: "FakeSupabaseClient") -> None:
        self.table = table
        self.client = client
        self.operations: List[tuple] = []

    def select(self, fields: str) -> "FakeQuery":
        self.operations.append(("select", fields))
        return self

    def eq(self, field: str, value: Any) -> "FakeQuery":
        self.operations.append(("eq", field, value))
        return self

    def order(self, field: str, desc: bool = False) -> "FakeQuery":
        self.operations.append(("order", field, desc))
        return self

    def limit(self, count: int) -> "FakeQuery":
        self.operations.append(("limit", count))
        return self

    def single(self) -> "FakeQuery":
        self.operations.append(("single",))
        return self

    def execute(self) -> FakeResponse:
        self.client.queries.append(self)
        if self.client.error is not None:
            raise self.client.error
        return FakeResponse(self.client.row)


class FakeSupabaseClient:
    def __init__(self, row: Optional[Dict[str, Any]] = None, error: Optional[Exception] = None) -> None:
        self.row = row
        self.error = error
        self.queries: List[FakeQuery] = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(name, self)


@pytest.mark.asyncio
async def test_supabase_store_requests_most_recent_single_row() -> None:
    client = FakeSupabaseClient(row=subscription_row())
    store = SupabaseSubscriptionStore(client)

    record = await store.fetch_latest_subscription("user-1")

    assert record.tier == Tier.PRO
    assert record.status == SubscriptionStatus.ACTIVE
    assert record.platform == SubscriptionPlatform.STRIPE
    assert record.current_period_end == datetime(2026, 2, 1, tzinfo=timezone.utc)

    query = client.queries[0]
    assert query.table == "subscriptions"
    assert query.operations == [
        ("select", "*"),
        ("eq", "user_id", "user-1"),
        ("order", "created_at", True),
        ("limit", 1),
        ("single",),
    ]


@pytest.mark.asyncio
async def test_supabase_no_row_code_maps_to_not_found() -> None:
    error = APIError(
        {
            "message": "JSON object requested, multiple (or no) rows returned",
            "code": "PGRST116",
            "hint": None,
            "details": "The result contains 0 rows",
        }
    )
    store = SupabaseSubscriptionStore(FakeSupabaseClient(error=error))

    with pytest.raises(SubscriptionNotFound) as exc:
        await store.fetch_latest_subscription("user-1")

    assert exc.value.user_id == "user-1"


@pytest.mark.asyncio
async def test_supabase_other_api_errors_are_fetch_errors() -> None:
    error = APIError(
        {
            "message": "permission denied for table subscriptions",
            "code": "42501",
            "hint": None,
            "details": None,
        }
    )
    store = SupabaseSubscriptionStore(FakeSupabaseClient(error=error))

    with pytest.raises(SubscriptionFetchError) as exc:
        await store.fetch_latest_subscription("user-1")

    assert not isinstance(exc.value, SubscriptionNotFound)
    assert "permission denied" in str(exc.value)


@pytest.mark.asyncio
async def test_supabase_network_errors_are_fetch_errors() -> None:
    store = SupabaseSubscriptionStore(FakeSupabaseClient(error=httpx.ConnectError("connection refused")))

    with pytest.raises(SubscriptionFetchError):
        await store.fetch_latest_subscription("user-1")


@pytest.mark.asyncio
async def test_malformed_row_is_fetch_error() -> None:
    store = SupabaseSubscriptionStore(FakeSupabaseClient(row=subscription_row(tier="enterprise")))

    with pytest.raises(SubscriptionFetchError):
        await store.fetch_latest_subscription("user-1")


@pytest.mark.asyncio
async def test_unknown_columns_are_ignored() -> None:
    store = SupabaseSubscriptionStore(FakeSupabaseClient(row=subscription_row(legacy_flag=True)))

    record = await store.fetch_latest_subscription("user-1")

    assert record.id == "sub-1"


class FakeCursor:
    def __init__(self, connection: "FakeConnection") -> None:
        self.connection = connection

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None

    def execute(self, sql: str, params: tuple) -> None:
        if self.connection.error is not None:
            raise self.connection.error
        self.connection.executed.append((sql, params))

    def fetchone(self) -> Optional[Dict[str, Any]]:
        return self.connection.row


class FakeConnection:
    def __init__(self, row: Optional[Dict[str, Any]] = None, error: Optional[Exception] = None) -> None:
        self.row = row
        self.error = error
        self.executed: List[tuple] = []
        self.closed = False
        self.cursor_factory = None

    def cursor(self, cursor_factory=None) -> FakeCursor:
        self.cursor_factory = cursor_factory
        return FakeCursor(self)

    def close(self) -> None:
        self.closed = True


@pytest.mark.asyncio
async def test_postgres_store_returns_latest_row() -> None:
    connection = FakeConnection(
        row=subscription_row(
            id=uuid.UUID("11111111-1111-1111-1111-111111111111"),
            tier="corporate",
            status="trialing",
            agency_id=uuid.UUID("22222222-2222-2222-2222-222222222222"),
        )
    )
    store = PostgresSubscriptionStore(connection_factory=lambda: connection)

    record = await store.fetch_latest_subscription("user-1")

    assert record.tier == Tier.CORPORATE
    assert record.status == SubscriptionStatus.TRIALING
    assert record.id == "11111111-1111-1111-1111-111111111111"
    assert record.agency_id == "22222222-2222-2222-2222-222222222222"
    assert connection.executed == [(LATEST_SUBSCRIPTION_SQL, ("user-1",))]
    assert connection.cursor_factory is psycopg2.extras.RealDictCursor
    assert connection.closed is True


@pytest.mark.asyncio
async def test_postgres_store_empty_result_is_not_found() -> None:
    connection = FakeConnection(row=None)
    store = PostgresSubscriptionStore(connection_factory=lambda: connection)

    with pytest.raises(SubscriptionNotFound):
        await store.fetch_latest_subscription("user-1")

    assert connection.closed is True


@pytest.mark.asyncio
async def test_postgres_store_database_errors_are_fetch_errors() -> None:
    connection = FakeConnection(error=psycopg2.OperationalError("server closed the connection"))
    store = PostgresSubscriptionStore(connection_factory=lambda: connection)

    with pytest.raises(SubscriptionFetchError):
        await store.fetch_latest_subscription("user-1")

    assert connection.closed is True


@pytest.mark.asyncio
async def test_postgres_store_defaults_to_application_connection() -> None:
    connection = FakeConnection(row=subscription_row())
    app_context.configure(entitlement_session=object(), get_conn=lambda: connection)  # type: ignore[arg-type]
    try:
        record = await PostgresSubscriptionStore().fetch_latest_subscription("user-1")
    finally:
        app_context.reset()

    assert record.user_id == "user-1"
    assert connection.closed is True
