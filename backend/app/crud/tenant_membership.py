# app/crud/tenant_membership.py
from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.roles import Role
from app.db.base import id_in_range
from app.db.errors import translate_store_errors
from app.models.tenant import Tenant
from app.models.tenant_membership import TenantMembership

logger = logging.getLogger(__name__)


async def resolve_role(db: AsyncSession, user_id: int, tenant_id: int) -> str | None:
    """
    Role name held by user_id in tenant_id, or None when there is no active
    membership. None is the normal "not a member" answer, not an error.

    The stored value is returned as-is; decoding it into a Role is the
    catalog's job so that drift surfaces as UnknownRoleError there.
    """
    if not (id_in_range(user_id) and id_in_range(tenant_id)):
        logger.debug("ids out of range (user=%s tenant=%s); not a member", user_id, tenant_id)
        return None

    stmt = (
        select(TenantMembership.role)
        .where(TenantMembership.tenant_id == tenant_id)
        .where(TenantMembership.user_id == user_id)
        .where(TenantMembership.is_active.is_(True))
    )
    with translate_store_errors("membership lookup"):
        role = (await db.execute(stmt)).scalar_one_or_none()

    if role is None:
        logger.debug("user %s is not a member of tenant %s", user_id, tenant_id)
    return role


async def resolve_tenant_id(db: AsyncSession, tenant: int | str) -> int | None:
    """Numeric id for a tenant claim; non-numeric claims are looked up by code."""
    if isinstance(tenant, int) and not isinstance(tenant, bool):
        return tenant if id_in_range(tenant) else None
    stmt = select(Tenant.id).where(Tenant.code == str(tenant))
    with translate_store_errors("tenant code lookup"):
        return (await db.execute(stmt)).scalar_one_or_none()


async def upsert_membership(
    db: AsyncSession,
    tenant_id: int,
    user_id: int,
    role: Role | str,
    *,
    is_active: bool = True,
) -> TenantMembership:
    """
    Provision a user into a tenant, or change their role there.
    A user holds exactly one role per tenant.
    """
    decoded = Role.parse(role)
    if decoded is None:
        raise ValueError(f"Unknown role: {role!r}. Allowed: {[r.value for r in Role]}")

    stmt = (
        select(TenantMembership)
        .where(TenantMembership.tenant_id == tenant_id)
        .where(TenantMembership.user_id == user_id)
    )
    with translate_store_errors("membership write"):
        membership = (await db.execute(stmt)).scalar_one_or_none()
        if membership is None:
            membership = TenantMembership(
                tenant_id=tenant_id,
                user_id=user_id,
                role=decoded.value,
                is_active=is_active,
            )
            db.add(membership)
        else:
            membership.role = decoded.value
            membership.is_active = is_active
        await db.commit()

    logger.info("membership tenant=%s user=%s role=%s active=%s", tenant_id, user_id, decoded.value, is_active)
    return membership


async def remove_membership(db: AsyncSession, tenant_id: int, user_id: int) -> bool:
    stmt = (
        delete(TenantMembership)
        .where(TenantMembership.tenant_id == tenant_id)
        .where(TenantMembership.user_id == user_id)
    )
    with translate_store_errors("membership delete"):
        res = await db.execute(stmt)
        await db.commit()
    return bool(res.rowcount)
