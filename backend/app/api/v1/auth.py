# backend/app/api/v1/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_principal
from app.api.deps.tenant import get_tenant_id
from app.core.security import Principal
from app.db.session import get_db
from app.schemas.acl import PermissionsOut
from app.services.permissions import PermissionResolver

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/permissions", response_model=PermissionsOut)
async def my_permissions(
    tenant_id: int | str = Depends(get_tenant_id),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> PermissionsOut:
    """
    Effective permissions of the caller in the tenant named by x-tenant-id.
    Always an array; a caller without a membership there gets [].
    """
    permissions = await PermissionResolver(db).resolve(principal.user_id, tenant_id)
    return PermissionsOut(permissions=permissions)
