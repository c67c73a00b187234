"""API routes exposing the entitlement state of the current session."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from cme_agent import app_context

from ..feature_gates import build_pricing_table, evaluate_gate
from ..schemas.subscription import (
    EntitlementStateResponse,
    GateDecisionResponse,
    PricingOptionResponse,
    PricingResponse,
)
from ..subscriptions import EntitlementSession, EntitlementView, FeatureKey, Tier, use_entitlements

router = APIRouter(prefix="/api/subscription", tags=["subscription"])


def _get_session() -> EntitlementSession:
    return app_context.get_entitlement_session()


@router.get("", response_model=EntitlementStateResponse, response_model_by_alias=True)
def get_entitlement_state(view: EntitlementView = Depends(use_entitlements)) -> EntitlementStateResponse:
    return EntitlementStateResponse.from_view(view)


@router.post("/refresh", response_model=EntitlementStateResponse, response_model_by_alias=True)
async def refresh_entitlements(
    session: EntitlementSession = Depends(_get_session),
) -> EntitlementStateResponse:
    await session.refresh()
    return EntitlementStateResponse.from_view(session.view)


@router.get("/pricing", response_model=PricingResponse, response_model_by_alias=True)
def get_pricing(view: EntitlementView = Depends(use_entitlements)) -> PricingResponse:
    options = build_pricing_table(view.tier)
    return PricingResponse(
        current_tier=view.tier,
        options=[PricingOptionResponse.from_option(option) for option in options],
    )


@router.get("/gate", response_model=GateDecisionResponse, response_model_by_alias=True)
def check_gate(
    required_tier: Optional[Tier] = Query(default=None, alias="requiredTier"),
    feature: Optional[FeatureKey] = Query(default=None),
    *,
    view: EntitlementView = Depends(use_entitlements),
) -> GateDecisionResponse:
    if required_tier is None and feature is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide requiredTier or feature",
        )
    decision = evaluate_gate(view.tier, required_tier=required_tier, feature=feature)
    return GateDecisionResponse.from_decision(decision)
