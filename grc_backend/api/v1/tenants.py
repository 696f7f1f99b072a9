"""
Tenant endpoints.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from grc_backend.api.deps import AuthContext, DbSession, RequirePermission
from grc_backend.constants.permissions import TENANTS_VIEW
from grc_backend.kernel.models.tenant import Tenant
from grc_backend.schemas.tenant import TenantResponse

router = APIRouter()

CanViewTenant = Annotated[AuthContext, Depends(RequirePermission(TENANTS_VIEW))]


@router.get("/current", response_model=TenantResponse)
async def get_current_tenant(auth: CanViewTenant, db: DbSession):
    """The caller's tenant."""
    return await _get_tenant(db, auth.tenant_id)


@router.get("/{tenant_id}", response_model=TenantResponse)
async def get_tenant(tenant_id: uuid.UUID, auth: CanViewTenant, db: DbSession):
    """Get a tenant. Other tenants are reported as missing."""
    if tenant_id != auth.tenant_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    return await _get_tenant(db, tenant_id)


async def _get_tenant(db, tenant_id: uuid.UUID) -> TenantResponse:
    tenant = await db.get(Tenant, tenant_id)
    if tenant is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    return TenantResponse.model_validate(tenant)
