"""Static catalog definitions for subscription tiers."""
from __future__ import annotations

from decimal import Decimal
from types import MappingProxyType
from typing import Dict, Mapping

from .models import (
    TIER_ORDER,
    UNBOUNDED,
    CustomPrice,
    FeatureDescription,
    FeatureKey,
    FixedPrice,
    Limits,
    Tier,
    TierDefinition,
)

_ALL_FEATURES = frozenset(FeatureKey)

_TIER_DEFINITIONS: Dict[Tier, TierDefinition] = {
    Tier.FREE: TierDefinition(
        tier=Tier.FREE,
        display_name="Free",
        description="Get started with CME Agent",
        price=FixedPrice(amount=Decimal("0")),
        features=frozenset(),
        limits=Limits(max_doctors=1, max_states=1),
    ),
    Tier.PRO: TierDefinition(
        tier=Tier.PRO,
        display_name="Pro",
        description="For individual practitioners",
        price=FixedPrice(amount=Decimal("29")),
        features=frozenset(
            {
                FeatureKey.UNLIMITED_STATE_LICENSES,
                FeatureKey.ADVANCED_ANALYTICS,
            }
        ),
        limits=Limits(max_doctors=1, max_states=UNBOUNDED),
        is_most_popular=True,
    ),
    Tier.CORPORATE: TierDefinition(
        tier=Tier.CORPORATE,
        display_name="Corporate",
        description="For health systems & agencies",
        price=CustomPrice(),
        features=_ALL_FEATURES,
        limits=Limits(max_doctors=UNBOUNDED, max_states=UNBOUNDED),
    ),
}

_missing_tiers = [tier.value for tier in TIER_ORDER if tier not in _TIER_DEFINITIONS]
if _missing_tiers:  # pragma: no cover - static catalog
    raise RuntimeError(f"Tier catalog is missing definitions for: {', '.join(_missing_tiers)}")

TIER_CATALOG: Mapping[Tier, TierDefinition] = MappingProxyType(_TIER_DEFINITIONS)

FEATURE_DESCRIPTIONS: Mapping[FeatureKey, FeatureDescription] = MappingProxyType(
    {
        FeatureKey.MULTIPLE_DOCTORS: FeatureDescription(
            title="Multiple Doctors",
            description="Add unlimited doctors to your account",
        ),
        FeatureKey.UNLIMITED_STATE_LICENSES: FeatureDescription(
            title="Unlimited State Licenses",
            description="Manage licenses across all states",
        ),
        FeatureKey.ADVANCED_ANALYTICS: FeatureDescription(
            title="Advanced Analytics",
            description="Track CME credits and compliance across your team",
        ),
        FeatureKey.CUSTOM_BRANDING: FeatureDescription(
            title="Custom Branding",
            description="White-label the app with your organization branding",
        ),
        FeatureKey.API_ACCESS: FeatureDescription(
            title="API Access",
            description="Integrate with your existing systems",
        ),
        FeatureKey.TEAM_MANAGEMENT: FeatureDescription(
            title="Team Management",
            description="Manage roles and permissions for team members",
        ),
    }
)

_TIER_RANKS: Mapping[Tier, int] = MappingProxyType({tier: index for index, tier in enumerate(TIER_ORDER)})


def get_tier_definition(tier: Tier) -> TierDefinition:
    """Return the definition for a tier, raising if unsupported."""

    try:
        return TIER_CATALOG[Tier(tier)]
    except (KeyError, ValueError) as exc:  # pragma: no cover - guarded by static catalog
        raise KeyError(f"Unknown tier: {tier}") from exc


def tier_rank(tier: Tier) -> int:
    """Position of ``tier`` in the fixed tier ordering."""

    return _TIER_RANKS[Tier(tier)]


def get_feature_description(feature: FeatureKey) -> FeatureDescription:
    return FEATURE_DESCRIPTIONS[FeatureKey(feature)]


def minimum_tier_for_feature(feature: FeatureKey) -> Tier:
    """Return the lowest ranked tier whose configuration lists ``feature``."""

    feature = FeatureKey(feature)
    for tier in TIER_ORDER:
        if feature in TIER_CATALOG[tier].features:
            return tier
    raise LookupError(f"No tier grants feature: {feature.value}")  # pragma: no cover
