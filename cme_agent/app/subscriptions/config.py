"""Configuration for the subscription store and entitlement session."""
from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

SUPPORTED_STORES = ("supabase", "postgres")


@dataclass(frozen=True)
class SubscriptionConfig:
    """Settings needed to reach the remote subscriptions table."""

    store_backend: str
    supabase_url: Optional[str]
    supabase_anon_key: Optional[str]
    db_config: Dict[str, Any] = field(default_factory=dict)
    cors_allowed_origins: Tuple[str, ...] = ()

    def require_supabase(self) -> Tuple[str, str]:
        if not self.supabase_url or not self.supabase_anon_key:
            raise RuntimeError("SUPABASE_URL and SUPABASE_ANON_KEY are required for the supabase store")
        return self.supabase_url, self.supabase_anon_key


def _to_int(value: Optional[str], *, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected integer value, got {value!r}") from exc


def _to_timeout(value: Optional[str], *, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        timeout = float(value)
    except ValueError as exc:
        raise ValueError("DB_CONNECT_TIMEOUT must be a number") from exc
    if timeout < 0:
        raise ValueError("DB_CONNECT_TIMEOUT must be non-negative")
    return int(math.ceil(timeout))


def _split_csv(value: Optional[str]) -> Tuple[str, ...]:
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


def load_subscription_config(env: Optional[Mapping[str, str]] = None) -> SubscriptionConfig:
    """Load :class:`SubscriptionConfig` from environment variables."""

    env_mapping = os.environ if env is None else env

    store_backend = (env_mapping.get("SUBSCRIPTION_STORE") or "supabase").strip().lower()
    if store_backend not in SUPPORTED_STORES:
        raise ValueError(
            f"SUBSCRIPTION_STORE must be one of {', '.join(SUPPORTED_STORES)}, got {store_backend!r}"
        )

    db_config: Dict[str, Any] = {
        "host": env_mapping.get("DB_HOST", "127.0.0.1"),
        "port": _to_int(env_mapping.get("DB_PORT"), default=5432),
        "dbname": env_mapping.get("DB_NAME", "cme_agent"),
        "user": env_mapping.get("DB_USER", "cme_agent"),
        "password": env_mapping.get("DB_PASSWORD", ""),
        "connect_timeout": _to_timeout(env_mapping.get("DB_CONNECT_TIMEOUT"), default=5),
    }

    return SubscriptionConfig(
        store_backend=store_backend,
        supabase_url=(env_mapping.get("SUPABASE_URL") or "").strip() or None,
        supabase_anon_key=(env_mapping.get("SUPABASE_ANON_KEY") or "").strip() or None,
        db_config=db_config,
        cors_allowed_origins=_split_csv(env_mapping.get("CORS_ALLOWED_ORIGINS")),
    )
