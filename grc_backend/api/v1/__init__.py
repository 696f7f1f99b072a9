"""
API v1 routes.
"""

from fastapi import APIRouter

from grc_backend.api.v1 import audit, auth, permissions, roles, tenants, users

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(roles.router, prefix="/roles", tags=["Roles"])
router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(permissions.router, prefix="/permissions", tags=["Permissions"])
router.include_router(tenants.router, prefix="/tenants", tags=["Tenants"])
router.include_router(audit.router, prefix="/audit", tags=["Audit"])
