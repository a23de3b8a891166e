"""Read-only diagnostics HTTP API over the process-wide bus: health, exchanges, stats."""

from dotenv import load_dotenv
load_dotenv()

import os
import time

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from topicbus import configuration
from topicbus.protocol import (
    ERROR_UNAUTHORIZED,
    HealthResponse,
    exchanges_list_response,
    stats_response,
)

_start_time: float = time.time()


# X-API-Key is compulsory: API_KEY must be set in env (or .env)
def _get_expected_api_key() -> str | None:
    return (os.environ.get("API_KEY") or "").strip() or None


class XAPIKeyMiddleware(BaseHTTPMiddleware):
    """Require X-API-Key header; API_KEY env must be set."""
    async def dispatch(self, request: Request, call_next):
        expected = _get_expected_api_key()
        if not expected:
            return JSONResponse(
                status_code=503,
                content={"error": ERROR_UNAUTHORIZED, "message": "X-API-Key required (API_KEY env not set)"},
            )
        key = (request.headers.get("X-API-Key") or "").strip()
        if key != expected:
            return JSONResponse(
                status_code=401,
                content={"error": ERROR_UNAUTHORIZED, "message": "invalid or missing X-API-Key"},
            )
        return await call_next(request)


router = APIRouter(prefix="/api/v1")


# ---- Health ----

@router.get("/health")
def health() -> JSONResponse:
    """GET /health → { uptime_sec, exchanges, subscriptions, wiretaps }."""
    bus = configuration.bus
    body = HealthResponse(
        uptime_sec=time.time() - _start_time,
        exchanges=len(bus.registry.exchanges()),
        subscriptions=bus.registry.subscription_count(),
        wiretaps=bus.wiretap_count(),
    ).to_dict()
    return JSONResponse(content=body, status_code=200)


# ---- Exchanges ----

@router.get("/exchanges")
def list_exchanges() -> JSONResponse:
    """GET /exchanges → { exchanges: [ { name, bindings, subscriptions } ] }."""
    body = exchanges_list_response(configuration.bus.exchanges())
    return JSONResponse(content=body, status_code=200)


# ---- Stats ----

@router.get("/stats")
def stats() -> JSONResponse:
    """GET /stats → { exchanges: { name: { pattern: subscriptions } }, metrics }."""
    bus = configuration.bus
    body = stats_response(bus.stats(), bus.metrics.snapshot())
    return JSONResponse(content=body, status_code=200)


app = FastAPI(title="Topic Bus Diagnostics")
app.add_middleware(XAPIKeyMiddleware)
app.include_router(router)
