"""FastAPI application exposing the CME Agent entitlement session."""
from __future__ import annotations

import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cme_agent.app.feature_gates import FeatureGateError
from cme_agent.app.routes.subscription import router as subscription_router
from cme_agent.app.services.subscriptions import EntitlementRuntime
from cme_agent.app.subscriptions import load_subscription_config

load_dotenv()

logger = logging.getLogger("subscriptions")

SUBSCRIPTION_CONFIG = load_subscription_config()

app = FastAPI(title="CME Agent Entitlements API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(SUBSCRIPTION_CONFIG.cors_allowed_origins) or ["http://localhost:8081"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(subscription_router)


@app.exception_handler(FeatureGateError)
async def handle_feature_gate_error(request: Request, exc: FeatureGateError) -> JSONResponse:
    logger.info("Feature gate denied %s %s: %s", request.method, request.url.path, exc.code)
    return JSONResponse(status_code=exc.status_code, content={"detail": dict(exc.payload)})


@app.on_event("startup")
async def start_entitlements() -> None:
    runtime = EntitlementRuntime(SUBSCRIPTION_CONFIG)
    app.state.entitlement_runtime = runtime
    await runtime.start()


@app.on_event("shutdown")
async def stop_entitlements() -> None:
    runtime = getattr(app.state, "entitlement_runtime", None)
    if runtime is not None:
        runtime.shutdown()
