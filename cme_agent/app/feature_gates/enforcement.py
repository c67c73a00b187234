"""Helpers for enforcing entitlement checks on API and service layers."""
from __future__ import annotations

from typing import Optional

from ..subscriptions import (
    TIER_CATALOG,
    TIER_ORDER,
    FeatureKey,
    Limits,
    Tier,
    can_add_doctor,
    can_add_state,
    get_tier_definition,
)
from .exceptions import FeatureGateError
from .prompts import build_upgrade_prompt, evaluate_gate


def require_tier(
    current_tier: Tier,
    required_tier: Tier,
    *,
    feature: Optional[FeatureKey] = None,
    error_code: str = "tier_required",
) -> None:
    """Ensure ``current_tier`` ranks at or above ``required_tier``.

    ``feature`` only changes the wording of the upgrade prompt.
    """

    decision = evaluate_gate(current_tier, required_tier=required_tier, feature=feature)
    if not decision.allowed:
        assert decision.prompt is not None
        raise FeatureGateError.from_prompt(
            error_code,
            decision.prompt,
            detail={"current_tier": Tier(current_tier).value},
        )


def require_feature(
    current_tier: Tier,
    feature: FeatureKey,
    *,
    error_code: str = "feature_required",
) -> None:
    """Ensure the current tier's configuration lists ``feature``."""

    decision = evaluate_gate(current_tier, feature=feature)
    if not decision.allowed:
        assert decision.prompt is not None
        raise FeatureGateError.from_prompt(
            error_code,
            decision.prompt,
            detail={"current_tier": Tier(current_tier).value, "missing_feature": FeatureKey(feature).value},
        )


def _next_tier_with_more(current_tier: Tier, limit_name: str) -> Tier:
    current_limit = getattr(get_tier_definition(current_tier).limits, limit_name)
    start = TIER_ORDER.index(Tier(current_tier)) + 1
    for tier in TIER_ORDER[start:]:
        if getattr(TIER_CATALOG[tier].limits, limit_name) > current_limit:
            return tier
    return TIER_ORDER[-1]


def require_doctor_capacity(
    current_tier: Tier,
    current_count: int,
    *,
    error_code: str = "doctor_limit_reached",
) -> None:
    """Raise when adding one more doctor would exceed the tier's limit."""

    if can_add_doctor(current_tier, current_count):
        return
    target = _next_tier_with_more(current_tier, "max_doctors")
    prompt = build_upgrade_prompt(target, FeatureKey.MULTIPLE_DOCTORS)
    raise FeatureGateError.from_prompt(
        error_code,
        prompt,
        detail={
            "current_tier": Tier(current_tier).value,
            "current_count": current_count,
            "limit": Limits.to_json_value(get_tier_definition(current_tier).limits.max_doctors),
        },
    )


def require_state_capacity(
    current_tier: Tier,
    current_count: int,
    *,
    error_code: str = "state_limit_reached",
) -> None:
    """Raise when adding one more state license would exceed the tier's limit."""

    if can_add_state(current_tier, current_count):
        return
    target = _next_tier_with_more(current_tier, "max_states")
    prompt = build_upgrade_prompt(target, FeatureKey.UNLIMITED_STATE_LICENSES)
    raise FeatureGateError.from_prompt(
        error_code,
        prompt,
        detail={
            "current_tier": Tier(current_tier).value,
            "current_count": current_count,
            "limit": Limits.to_json_value(get_tier_definition(current_tier).limits.max_states),
        },
    )
