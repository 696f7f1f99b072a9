"""
Permission catalog endpoint.
"""

from typing import Annotated, List

from fastapi import APIRouter, Depends

from grc_backend.api.deps import AuthContext, RequirePermission, RoleRepo
from grc_backend.constants.permissions import ROLES_VIEW
from grc_backend.schemas.role import PermissionResponse

router = APIRouter()


@router.get("", response_model=List[PermissionResponse])
async def list_permissions(
    _: Annotated[AuthContext, Depends(RequirePermission(ROLES_VIEW))],
    roles: RoleRepo,
):
    """List every grantable permission."""
    return [PermissionResponse.model_validate(p) for p in await roles.list_permissions()]
