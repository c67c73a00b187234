"""Domain models for subscription tiers and entitlement snapshots."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import FrozenSet, Optional, Tuple, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

UNBOUNDED = math.inf


class Tier(str, Enum):
    """Canonical identifiers for subscription tiers."""

    FREE = "free"
    PRO = "pro"
    CORPORATE = "corporate"


TIER_ORDER: Tuple[Tier, ...] = (Tier.FREE, Tier.PRO, Tier.CORPORATE)


class FeatureKey(str, Enum):
    """Capabilities gated independently of numeric limits."""

    MULTIPLE_DOCTORS = "multiple_doctors"
    UNLIMITED_STATE_LICENSES = "unlimited_state_licenses"
    ADVANCED_ANALYTICS = "advanced_analytics"
    CUSTOM_BRANDING = "custom_branding"
    API_ACCESS = "api_access"
    TEAM_MANAGEMENT = "team_management"


class SubscriptionStatus(str, Enum):
    """Lifecycle state reported by the billing backend."""

    ACTIVE = "active"
    TRIALING = "trialing"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    PAST_DUE = "past_due"


class SubscriptionPlatform(str, Enum):
    """Billing platforms that can own a subscription row."""

    STRIPE = "stripe"
    REVENUECAT = "revenucat"
    NONE = "none"


class SyncState(str, Enum):
    """Externally visible states of the subscription synchronizer."""

    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    ERRORED = "errored"


@dataclass(frozen=True)
class FixedPrice:
    """A published monthly price."""

    amount: Decimal
    currency: str = "USD"

    @property
    def label(self) -> str:
        amount = self.amount
        if amount == amount.to_integral_value():
            amount = amount.quantize(Decimal(1))
        symbol = "$" if self.currency == "USD" else f"{self.currency} "
        return f"{symbol}{amount}/mo"


@dataclass(frozen=True)
class CustomPrice:
    """Pricing negotiated with sales; no published amount."""

    currency: str = "USD"

    @property
    def label(self) -> str:
        return "Custom pricing"


Price = Union[FixedPrice, CustomPrice]


@dataclass(frozen=True)
class Limits:
    """Numeric caps granted by a tier. ``UNBOUNDED`` disables a cap."""

    max_doctors: float
    max_states: float

    def __post_init__(self) -> None:
        for name in ("max_doctors", "max_states"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be >= 0")

    @staticmethod
    def to_json_value(value: float) -> Optional[int]:
        """Represent a limit for JSON payloads, ``None`` meaning unlimited."""

        return None if math.isinf(value) else int(value)


@dataclass(frozen=True)
class FeatureDescription:
    """Human readable copy for a feature key."""

    title: str
    description: str


@dataclass(frozen=True)
class TierDefinition:
    """Describes a subscription tier and what it grants."""

    tier: Tier
    display_name: str
    description: str
    price: Price
    features: FrozenSet[FeatureKey]
    limits: Limits
    is_most_popular: bool = False

    @property
    def is_custom_priced(self) -> bool:
        return isinstance(self.price, CustomPrice)


class SubscriptionRecord(BaseModel):
    """A row of the remote ``subscriptions`` table.

    Only ``tier`` drives entitlements; the remaining fields are carried along
    for display and are never written by the client.
    """

    id: str
    user_id: str
    tier: Tier
    status: SubscriptionStatus
    platform: Optional[SubscriptionPlatform] = None
    platform_product_id: Optional[str] = None
    platform_subscription_id: Optional[str] = None
    billing_period: Optional[str] = None
    price_cents: Optional[int] = None
    currency: Optional[str] = None
    trial_started_at: Optional[datetime] = None
    trial_ends_at: Optional[datetime] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    agency_id: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("id", "user_id", "agency_id", mode="before")
    @classmethod
    def _coerce_uuid(cls, value: object) -> object:
        if isinstance(value, UUID):
            return str(value)
        return value


@dataclass(frozen=True)
class EntitlementSnapshot:
    """Complete derived entitlement state at a point in time."""

    subscription: Optional[SubscriptionRecord] = None
    is_loading: bool = True
    error: Optional[Exception] = None
    state: SyncState = SyncState.UNINITIALIZED
    tier: Tier = field(init=False)

    def __post_init__(self) -> None:
        tier = self.subscription.tier if self.subscription is not None else Tier.FREE
        object.__setattr__(self, "tier", tier)

    @classmethod
    def initial(cls) -> "EntitlementSnapshot":
        return cls()

    @classmethod
    def loading(cls, subscription: Optional[SubscriptionRecord]) -> "EntitlementSnapshot":
        return cls(subscription=subscription, is_loading=True, state=SyncState.LOADING)

    @classmethod
    def ready(cls, subscription: Optional[SubscriptionRecord]) -> "EntitlementSnapshot":
        return cls(subscription=subscription, is_loading=False, state=SyncState.READY)

    @classmethod
    def errored(
        cls,
        subscription: Optional[SubscriptionRecord],
        error: Exception,
    ) -> "EntitlementSnapshot":
        return cls(
            subscription=subscription,
            is_loading=False,
            error=error,
            state=SyncState.ERRORED,
        )
