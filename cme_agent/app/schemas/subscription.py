"""API schemas for subscription and entitlement endpoints."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..feature_gates import GateDecision, PricingOption, UpgradePrompt
from ..subscriptions import (
    EntitlementView,
    FeatureKey,
    Limits,
    SubscriptionRecord,
    SyncState,
    Tier,
    get_tier_definition,
)


class TierLimitsResponse(BaseModel):
    """Numeric limits of a tier; ``None`` means unlimited."""

    max_doctors: Optional[int] = Field(alias="maxDoctors", default=None)
    max_states: Optional[int] = Field(alias="maxStates", default=None)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_limits(cls, limits: Limits) -> "TierLimitsResponse":
        return cls(
            max_doctors=Limits.to_json_value(limits.max_doctors),
            max_states=Limits.to_json_value(limits.max_states),
        )


class EntitlementStateResponse(BaseModel):
    subscription: Optional[SubscriptionRecord] = None
    tier: Tier
    state: SyncState
    is_loading: bool = Field(alias="isLoading")
    error: Optional[str] = None
    is_free_tier: bool = Field(alias="isFreeTier")
    is_pro_tier: bool = Field(alias="isProTier")
    is_corporate_tier: bool = Field(alias="isCorporateTier")
    features: List[FeatureKey] = Field(default_factory=list)
    limits: TierLimitsResponse

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_view(cls, view: EntitlementView) -> "EntitlementStateResponse":
        definition = get_tier_definition(view.tier)
        return cls(
            subscription=view.subscription,
            tier=view.tier,
            state=view.snapshot.state,
            is_loading=view.is_loading,
            error=str(view.error) if view.error is not None else None,
            is_free_tier=view.is_free_tier,
            is_pro_tier=view.is_pro_tier,
            is_corporate_tier=view.is_corporate_tier,
            features=[feature for feature in FeatureKey if view.check_feature_access(feature)],
            limits=TierLimitsResponse.from_limits(definition.limits),
        )


class UpgradePromptResponse(BaseModel):
    required_tier: Tier = Field(alias="requiredTier")
    tier_name: str = Field(alias="tierName")
    feature: Optional[FeatureKey] = None
    feature_name: str = Field(alias="featureName")
    feature_description: Optional[str] = Field(alias="featureDescription", default=None)
    price_label: str = Field(alias="priceLabel")
    is_custom_priced: bool = Field(alias="isCustomPriced")
    benefits: List[str] = Field(default_factory=list)
    message: str

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_prompt(cls, prompt: UpgradePrompt) -> "UpgradePromptResponse":
        return cls(
            required_tier=prompt.required_tier,
            tier_name=prompt.tier_name,
            feature=prompt.feature,
            feature_name=prompt.feature_name,
            feature_description=prompt.feature_description,
            price_label=prompt.price_label,
            is_custom_priced=prompt.is_custom_priced,
            benefits=list(prompt.benefits),
            message=prompt.message,
        )


class GateDecisionResponse(BaseModel):
    allowed: bool
    required_tier: Tier = Field(alias="requiredTier")
    upgrade: Optional[UpgradePromptResponse] = None

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_decision(cls, decision: GateDecision) -> "GateDecisionResponse":
        return cls(
            allowed=decision.allowed,
            required_tier=decision.required_tier,
            upgrade=UpgradePromptResponse.from_prompt(decision.prompt) if decision.prompt else None,
        )


class PricingOptionResponse(BaseModel):
    tier: Tier
    name: str
    description: str
    price_label: str = Field(alias="priceLabel")
    is_custom_priced: bool = Field(alias="isCustomPriced")
    features: List[str] = Field(default_factory=list)
    limits: TierLimitsResponse
    is_current: bool = Field(alias="isCurrent")
    is_most_popular: bool = Field(alias="isMostPopular")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_option(cls, option: PricingOption) -> "PricingOptionResponse":
        return cls(
            tier=option.tier,
            name=option.name,
            description=option.description,
            price_label=option.price_label,
            is_custom_priced=option.is_custom_priced,
            features=list(option.features),
            limits=TierLimitsResponse(max_doctors=option.max_doctors, max_states=option.max_states),
            is_current=option.is_current,
            is_most_popular=option.is_most_popular,
        )


class PricingResponse(BaseModel):
    current_tier: Tier = Field(alias="currentTier")
    options: List[PricingOptionResponse]

    model_config = ConfigDict(populate_by_name=True)
