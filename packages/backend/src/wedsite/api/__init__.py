"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: The super-admin check is applied at include_router level, which
protects every route in that router without touching the handlers.
Health, auth and the wedding routers do their own checks per route
because they mix public and authenticated endpoints.
"""

from fastapi import APIRouter, Depends

from wedsite.api.auth import router as auth_router
from wedsite.api.health import router as health_router
from wedsite.api.superadmin import router as superadmin_router
from wedsite.api.weddings import router as weddings_router
from wedsite.auth.dependencies import require_super_admin_identity

_super_admin = [Depends(require_super_admin_identity)]

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(weddings_router, tags=["weddings"])
api_router.include_router(
    superadmin_router, tags=["superadmin"], dependencies=_super_admin
)
