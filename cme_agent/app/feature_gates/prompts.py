"""Upgrade prompts and pricing content shown when a gate denies access."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from ..subscriptions import (
    TIER_ORDER,
    FeatureKey,
    Limits,
    Tier,
    get_feature_description,
    get_tier_definition,
    has_feature,
    has_minimum_tier,
    minimum_tier_for_feature,
)

DEFAULT_FEATURE_NAME = "This feature"
PROMPT_BENEFIT_COUNT = 4


@dataclass(frozen=True)
class UpgradePrompt:
    """Everything a gating surface needs to ask the user to upgrade."""

    required_tier: Tier
    tier_name: str
    feature: Optional[FeatureKey]
    feature_name: str
    feature_description: Optional[str]
    price_label: str
    is_custom_priced: bool
    benefits: Tuple[str, ...]

    @property
    def message(self) -> str:
        return f"You need {self.tier_name} to use {self.feature_name}."

    def to_dict(self) -> Dict[str, object]:
        return {
            "required_tier": self.required_tier.value,
            "tier_name": self.tier_name,
            "feature": self.feature.value if self.feature else None,
            "feature_name": self.feature_name,
            "feature_description": self.feature_description,
            "price_label": self.price_label,
            "is_custom_priced": self.is_custom_priced,
            "benefits": list(self.benefits),
        }


@dataclass(frozen=True)
class GateDecision:
    """Outcome of a gate check; ``prompt`` is set only on denial."""

    allowed: bool
    required_tier: Tier
    prompt: Optional[UpgradePrompt] = None


@dataclass(frozen=True)
class PricingOption:
    """One column of the pricing table."""

    tier: Tier
    name: str
    description: str
    price_label: str
    is_custom_priced: bool
    features: Tuple[str, ...]
    max_doctors: Optional[int]
    max_states: Optional[int]
    is_current: bool
    is_most_popular: bool


def _ordered_feature_titles(features) -> Tuple[str, ...]:
    ordered = [feature for feature in FeatureKey if feature in features]
    return tuple(get_feature_description(feature).title for feature in ordered)


def build_upgrade_prompt(
    required_tier: Tier,
    feature: Optional[FeatureKey] = None,
    *,
    benefit_count: int = PROMPT_BENEFIT_COUNT,
) -> UpgradePrompt:
    """Describe the tier to upgrade to, naming the feature by its display title."""

    definition = get_tier_definition(required_tier)
    description = get_feature_description(feature) if feature is not None else None
    return UpgradePrompt(
        required_tier=definition.tier,
        tier_name=definition.display_name,
        feature=FeatureKey(feature) if feature is not None else None,
        feature_name=description.title if description else DEFAULT_FEATURE_NAME,
        feature_description=description.description if description else None,
        price_label=definition.price.label,
        is_custom_priced=definition.is_custom_priced,
        benefits=_ordered_feature_titles(definition.features)[: max(benefit_count, 0)],
    )


def evaluate_gate(
    current_tier: Tier,
    required_tier: Optional[Tier] = None,
    feature: Optional[FeatureKey] = None,
) -> GateDecision:
    """Decide whether ``current_tier`` passes a gate.

    With a required tier the decision is a rank comparison and ``feature`` is
    only used for messaging. With just a feature, the tier must list it and
    the prompt points at the lowest tier that does.
    """

    if required_tier is None and feature is None:
        raise ValueError("A gate needs a required tier or a feature")

    if required_tier is not None:
        allowed = has_minimum_tier(current_tier, required_tier)
        target = Tier(required_tier)
    else:
        allowed = has_feature(current_tier, feature)
        target = minimum_tier_for_feature(feature)

    if allowed:
        return GateDecision(allowed=True, required_tier=target)
    return GateDecision(
        allowed=False,
        required_tier=target,
        prompt=build_upgrade_prompt(target, feature),
    )


def build_pricing_table(current_tier: Tier) -> Tuple[PricingOption, ...]:
    """Return one pricing option per tier in rank order."""

    options = []
    for tier in TIER_ORDER:
        definition = get_tier_definition(tier)
        is_current = tier == Tier(current_tier)
        options.append(
            PricingOption(
                tier=tier,
                name=definition.display_name,
                description=definition.description,
                price_label=definition.price.label,
                is_custom_priced=definition.is_custom_priced,
                features=_ordered_feature_titles(definition.features),
                max_doctors=Limits.to_json_value(definition.limits.max_doctors),
                max_states=Limits.to_json_value(definition.limits.max_states),
                is_current=is_current,
                is_most_popular=definition.is_most_popular and not is_current,
            )
        )
    return tuple(options)
