from __future__ import annotations

import pytest
from fastapi import HTTPException

from cme_agent.app.feature_gates import (
    FeatureGateError,
    build_pricing_table,
    build_upgrade_prompt,
    evaluate_gate,
    require_doctor_capacity,
    require_feature,
    require_state_capacity,
    require_tier,
)
from cme_agent.app.subscriptions import FeatureKey, Tier


def test_evaluate_gate_allows_sufficient_tier() -> None:
    decision = evaluate_gate(Tier.CORPORATE, required_tier=Tier.PRO)

    assert decision.allowed is True
    assert decision.required_tier == Tier.PRO
    assert decision.prompt is None


def test_evaluate_gate_denies_with_upgrade_prompt() -> None:
    decision = evaluate_gate(Tier.FREE, required_tier=Tier.PRO, feature=FeatureKey.ADVANCED_ANALYTICS)

    assert decision.allowed is False
    prompt = decision.prompt
    assert prompt is not None
    assert prompt.required_tier == Tier.PRO
    assert prompt.tier_name == "Pro"
    assert prompt.feature_name == "Advanced Analytics"
    assert prompt.price_label == "$29/mo"
    assert prompt.message == "You need Pro to use Advanced Analytics."


def test_feature_only_gate_targets_lowest_granting_tier() -> None:
    denied = evaluate_gate(Tier.PRO, feature=FeatureKey.TEAM_MANAGEMENT)
    allowed = evaluate_gate(Tier.PRO, feature=FeatureKey.ADVANCED_ANALYTICS)

    assert denied.allowed is False
    assert denied.required_tier == Tier.CORPORATE
    assert denied.prompt is not None
    assert denied.prompt.is_custom_priced is True
    assert denied.prompt.price_label == "Custom pricing"
    assert allowed.allowed is True


def test_evaluate_gate_needs_tier_or_feature() -> None:
    with pytest.raises(ValueError):
        evaluate_gate(Tier.FREE)


def test_upgrade_prompt_without_feature_uses_generic_name() -> None:
    prompt = build_upgrade_prompt(Tier.CORPORATE)

    assert prompt.feature is None
    assert prompt.feature_name == "This feature"
    assert prompt.feature_description is None
    assert prompt.benefits == (
        "Multiple Doctors",
        "Unlimited State Licenses",
        "Advanced Analytics",
        "Custom Branding",
    )


def test_upgrade_prompt_benefit_count_is_configurable() -> None:
    assert build_upgrade_prompt(Tier.CORPORATE, benefit_count=2).benefits == (
        "Multiple Doctors",
        "Unlimited State Licenses",
    )
    assert build_upgrade_prompt(Tier.FREE).benefits == ()


def test_pricing_table_marks_current_tier() -> None:
    options = build_pricing_table(Tier.FREE)

    assert [option.tier for option in options] == [Tier.FREE, Tier.PRO, Tier.CORPORATE]
    free, pro, corporate = options
    assert free.is_current is True
    assert free.price_label == "$0/mo"
    assert free.max_doctors == 1
    assert pro.is_most_popular is True
    assert pro.max_states is None
    assert corporate.price_label == "Custom pricing"
    assert corporate.max_doctors is None


def test_pricing_table_hides_popular_badge_on_current_plan() -> None:
    pro = build_pricing_table(Tier.PRO)[1]

    assert pro.is_current is True
    assert pro.is_most_popular is False


def test_require_tier_raises_feature_gate_error() -> None:
    require_tier(Tier.PRO, Tier.PRO)

    with pytest.raises(FeatureGateError) as exc:
        require_tier(Tier.PRO, Tier.CORPORATE)

    assert exc.value.code == "tier_required"
    assert exc.value.status_code == 403
    assert exc.value.payload["current_tier"] == "pro"
    assert exc.value.payload["upgrade"]["required_tier"] == "corporate"


def test_require_feature_reports_missing_feature() -> None:
    require_feature(Tier.CORPORATE, FeatureKey.API_ACCESS)

    with pytest.raises(FeatureGateError) as exc:
        require_feature(Tier.FREE, FeatureKey.ADVANCED_ANALYTICS)

    assert exc.value.code == "feature_required"
    assert exc.value.payload["missing_feature"] == "advanced_analytics"
    assert exc.value.payload["upgrade"]["tier_name"] == "Pro"


def test_doctor_capacity_points_free_users_at_corporate() -> None:
    require_doctor_capacity(Tier.FREE, 0)
    require_doctor_capacity(Tier.CORPORATE, 500)

    with pytest.raises(FeatureGateError) as exc:
        require_doctor_capacity(Tier.FREE, 1)

    payload = exc.value.payload
    assert payload["error"] == "doctor_limit_reached"
    assert payload["current_count"] == 1
    assert payload["limit"] == 1
    assert payload["upgrade"]["required_tier"] == "corporate"
    assert payload["upgrade"]["feature"] == "multiple_doctors"


def test_state_capacity_points_free_users_at_pro() -> None:
    require_state_capacity(Tier.PRO, 40)

    with pytest.raises(FeatureGateError) as exc:
        require_state_capacity(Tier.FREE, 1)

    assert exc.value.prompt is not None
    assert exc.value.prompt.required_tier == Tier.PRO
    assert exc.value.payload["limit"] == 1


def test_gate_error_converts_to_http_exception() -> None:
    with pytest.raises(FeatureGateError) as exc:
        require_tier(Tier.FREE, Tier.PRO)

    http_error = exc.value.to_http_exception()

    assert isinstance(http_error, HTTPException)
    assert http_error.status_code == 403
    assert http_error.detail["error"] == "tier_required"
    assert http_error.detail["message"] == "You need Pro to use This feature."
