"""Feature gating utilities built on the subscription entitlement checks."""
from .enforcement import (
    require_doctor_capacity,
    require_feature,
    require_state_capacity,
    require_tier,
)
from .exceptions import FeatureGateError
from .prompts import (
    GateDecision,
    PricingOption,
    UpgradePrompt,
    build_pricing_table,
    build_upgrade_prompt,
    evaluate_gate,
)

__all__ = [
    "FeatureGateError",
    "GateDecision",
    "PricingOption",
    "UpgradePrompt",
    "build_pricing_table",
    "build_upgrade_prompt",
    "evaluate_gate",
    "require_doctor_capacity",
    "require_feature",
    "require_state_capacity",
    "require_tier",
]
