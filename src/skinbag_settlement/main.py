# src/skinbag_settlement/main.py
"""Main entry point for the settlement API."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from skinbag_settlement.api.v1 import (
    disputes_router,
    escrows_router,
    milestones_router,
    payouts_router,
    policy_router,
    wallets_router,
    webhooks_router,
)
from skinbag_settlement.core.settings import settings
from skinbag_settlement.services.errors import SettlementError

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Crypto payout, escrow and dispute settlement for skinbag.rent",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)


@app.exception_handler(SettlementError)
async def settlement_error_handler(request: Request, exc: SettlementError) -> JSONResponse:
    """Translate engine errors into JSON responses with their mapped status."""
    if exc.http_status >= 500:
        logger.error("Settlement error on %s: %s", request.url.path, exc.message)
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


# Include API routers
app.include_router(policy_router, prefix="/api/v1")
app.include_router(wallets_router, prefix="/api/v1")
app.include_router(payouts_router, prefix="/api/v1")
app.include_router(escrows_router, prefix="/api/v1")
app.include_router(milestones_router, prefix="/api/v1")
app.include_router(disputes_router, prefix="/api/v1")
app.include_router(webhooks_router, prefix="/api/v1")


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Crypto payout, escrow and dispute settlement for skinbag.rent",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
    uvicorn.run("skinbag_settlement.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
