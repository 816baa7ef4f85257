# app/api/v1/access.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.permissions import require_permissions
from app.api.deps.tenant import get_numeric_tenant_id, get_tenant_id
from app.auth.permissions import CATALOG, PERM
from app.db.base import MAX_INT_ID
from app.db.session import get_db
from app.schemas.acl import CatalogOut, OverrideDocument, OverrideWriteOut, PermissionsOut
from app.services.permissions import PermissionResolver

router = APIRouter(prefix="/settings/access", tags=["access"])

manage_access = require_permissions(PERM.SETTINGS_ACCESS_MANAGE)


# ---------------------------------------------------------
# Catalog (drives the role matrix / permission checkboxes)
# ---------------------------------------------------------
@router.get("/catalog", response_model=CatalogOut)
async def get_catalog(
    _tenant_id: int | str = Depends(get_tenant_id),
) -> CatalogOut:
    return CatalogOut(
        permissions=CATALOG.describe(),
        roles={role.value: sorted(CATALOG.defaults_for_role(role)) for role in CATALOG.roles()},
    )


# ---------------------------------------------------------
# Per-user overrides
# ---------------------------------------------------------
@router.get("/users/{user_id}/overrides", response_model=OverrideDocument)
async def get_user_overrides(
    user_id: int = Path(ge=0, le=MAX_INT_ID),
    tenant_id: int = Depends(get_numeric_tenant_id),
    _grants: list[str] = Depends(manage_access),
    db: AsyncSession = Depends(get_db),
) -> OverrideDocument:
    return await PermissionResolver(db).get_overrides(tenant_id, user_id)


@router.put("/users/{user_id}/overrides", response_model=OverrideWriteOut)
async def set_user_overrides(
    payload: OverrideDocument,
    user_id: int = Path(ge=0, le=MAX_INT_ID),
    tenant_id: int = Depends(get_numeric_tenant_id),
    _grants: list[str] = Depends(manage_access),
    db: AsyncSession = Depends(get_db),
):
    """
    Full replace of the user's {add, remove} document in this tenant.
    Returns the recomputed effective set so the UI can refresh in one round trip.
    """
    unknown = CATALOG.unknown_keys([*payload.add, *payload.remove])
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "code": "rbac_unknown_permission",
                "message": "Unknown permission keys.",
                "unknown": unknown,
            },
        )

    return await PermissionResolver(db).set_overrides(tenant_id, user_id, payload)


@router.get("/users/{user_id}/permissions", response_model=PermissionsOut)
async def get_user_permissions(
    user_id: int = Path(ge=0, le=MAX_INT_ID),
    tenant_id: int = Depends(get_numeric_tenant_id),
    _grants: list[str] = Depends(manage_access),
    db: AsyncSession = Depends(get_db),
) -> PermissionsOut:
    permissions = await PermissionResolver(db).resolve(user_id, tenant_id)
    return PermissionsOut(permissions=permissions)
