"""Subscription tiers, entitlement checks and the session-wide entitlement state."""

from .catalog import (
    FEATURE_DESCRIPTIONS,
    TIER_CATALOG,
    get_feature_description,
    get_tier_definition,
    minimum_tier_for_feature,
    tier_rank,
)
from .config import SubscriptionConfig, load_subscription_config
from .context import EntitlementSession, EntitlementView, use_entitlements
from .identity import IdentitySource, bridge_supabase_auth
from .models import (
    TIER_ORDER,
    UNBOUNDED,
    CustomPrice,
    EntitlementSnapshot,
    FeatureDescription,
    FeatureKey,
    FixedPrice,
    Limits,
    Price,
    SubscriptionPlatform,
    SubscriptionRecord,
    SubscriptionStatus,
    SyncState,
    Tier,
    TierDefinition,
)
from .resolver import can_add_doctor, can_add_state, has_feature, has_minimum_tier
from .store import (
    PostgresSubscriptionStore,
    SubscriptionFetchError,
    SubscriptionNotFound,
    SubscriptionStore,
    SubscriptionStoreError,
    SupabaseSubscriptionStore,
)
from .synchronizer import CancellationToken, SubscriptionSynchronizer, SynchronizerClosedError

__all__ = [
    "FEATURE_DESCRIPTIONS",
    "TIER_CATALOG",
    "TIER_ORDER",
    "UNBOUNDED",
    "CancellationToken",
    "CustomPrice",
    "EntitlementSession",
    "EntitlementSnapshot",
    "EntitlementView",
    "FeatureDescription",
    "FeatureKey",
    "FixedPrice",
    "IdentitySource",
    "Limits",
    "PostgresSubscriptionStore",
    "Price",
    "SubscriptionConfig",
    "SubscriptionFetchError",
    "SubscriptionNotFound",
    "SubscriptionPlatform",
    "SubscriptionRecord",
    "SubscriptionStatus",
    "SubscriptionStore",
    "SubscriptionStoreError",
    "SubscriptionSynchronizer",
    "SupabaseSubscriptionStore",
    "SyncState",
    "SynchronizerClosedError",
    "Tier",
    "TierDefinition",
    "bridge_supabase_auth",
    "can_add_doctor",
    "can_add_state",
    "get_feature_description",
    "get_tier_definition",
    "has_feature",
    "has_minimum_tier",
    "load_subscription_config",
    "minimum_tier_for_feature",
    "tier_rank",
    "use_entitlements",
]
