"""Pure entitlement checks evaluated against the tier catalog."""
from __future__ import annotations

from .catalog import get_tier_definition, tier_rank
from .models import FeatureKey, Tier


def has_minimum_tier(current_tier: Tier, required_tier: Tier) -> bool:
    """Return whether ``current_tier`` ranks at or above ``required_tier``."""

    return tier_rank(current_tier) >= tier_rank(required_tier)


def can_add_doctor(current_tier: Tier, current_count: int) -> bool:
    """Return whether one more doctor fits under the tier's doctor limit."""

    return current_count < get_tier_definition(current_tier).limits.max_doctors


def can_add_state(current_tier: Tier, current_count: int) -> bool:
    """Return whether one more state license fits under the tier's state limit."""

    return current_count < get_tier_definition(current_tier).limits.max_states


def has_feature(current_tier: Tier, feature: FeatureKey) -> bool:
    """Return whether the tier's configuration lists ``feature``.

    This is exact membership in the tier's own feature set; grants made by
    lower tiers are not inherited. Unknown keys are never granted.
    """

    try:
        key = FeatureKey(feature)
    except ValueError:
        return False
    return key in get_tier_definition(current_tier).features
