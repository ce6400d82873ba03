"""
Top-level API router.
Combines all sub-routers into a single router.
"""

from fastapi import APIRouter

from expense_reports.api.health import router as health_router
from expense_reports.api.reports import router as reports_router
from expense_reports.api.receipts import router as receipts_router

api_router = APIRouter()

api_router.include_router(health_router)
api_router.include_router(reports_router)
api_router.include_router(receipts_router)
