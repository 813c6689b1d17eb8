"""Top-level API router for SpendLens.

Mounts the analytics routes; main.py includes this router under /api/v1.
"""

from fastapi import APIRouter

from spendlens.api.routes import router as analytics_router

router = APIRouter()
router.include_router(analytics_router)
