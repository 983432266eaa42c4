"""
Top-level API router.
Combines all sub-routers into a single router.
"""

from fastapi import APIRouter

from app.api.admin import router as admin_router
from app.api.claims import router as claims_router
from app.api.compensation import router as compensation_router
from app.api.consent import router as consent_router
from app.api.content import router as content_router
from app.api.esign import router as esign_router
from app.api.health import router as health_router
from app.api.users import router as users_router

api_router = APIRouter()

api_router.include_router(health_router)
api_router.include_router(claims_router)
api_router.include_router(compensation_router)
api_router.include_router(users_router)
api_router.include_router(content_router)
api_router.include_router(consent_router)
api_router.include_router(esign_router)
api_router.include_router(admin_router)
