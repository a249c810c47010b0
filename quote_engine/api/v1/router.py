"""Root API router for v1 endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from quote_engine.api.v1 import admin, assignments, health, invoices, penalties, quotations, quote_requests, wallets
from quote_engine.core.config import get_config


def get_api_router() -> APIRouter:
    api_router = APIRouter(prefix=get_config().API_PREFIX)
    api_router.include_router(health.router)
    api_router.include_router(quote_requests.router)
    api_router.include_router(assignments.router)
    api_router.include_router(quotations.router)
    api_router.include_router(invoices.router)
    api_router.include_router(penalties.router)
    api_router.include_router(wallets.router)
    api_router.include_router(admin.router)
    return api_router
