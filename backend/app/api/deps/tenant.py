from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_principal
from app.core.config import settings
from app.core.security import Principal
from app.core.tenant_guard import check_tenant_access, extract_tenant_claim
from app.crud.tenant_membership import resolve_tenant_id
from app.db.session import get_db


async def get_tenant_id(
    request: Request,
    x_tenant_id: Optional[str] = Header(default=None, alias="X-Tenant-Id"),
    tenant_id_query: Optional[str] = Query(default=None, alias="tenantId"),
    principal: Principal = Depends(get_current_principal),
) -> int | str:
    """
    Validate the claimed tenant against the principal's memberships and
    publish the normalized id as request.state.tenant_id.
    """
    claim = extract_tenant_claim(x_tenant_id, tenant_id_query)
    tenant_id = check_tenant_access(
        claim,
        principal.tenant_ids,
        allow_unscoped=settings.TENANT_GUARD_ALLOW_UNSCOPED_PRINCIPALS,
    )
    request.state.tenant_id = tenant_id
    return tenant_id


async def get_numeric_tenant_id(
    tenant_id: int | str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
) -> int:
    """Guarded tenant as a numeric id; tenant codes are looked up."""
    numeric = await resolve_tenant_id(db, tenant_id)
    if numeric is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Tenant not found",
        )
    return numeric
