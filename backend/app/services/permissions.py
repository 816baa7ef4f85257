# backend/app/services/permissions.py
"""
Effective permission resolution.

effective = (role defaults + override.add) - override.remove

Membership is checked first and a non-member gets nothing, whatever overrides
exist for the key. Nothing is cached: every call re-reads membership and
overrides, so an override write is visible to the very next resolution.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AbstractSet, Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.permissions import CATALOG, PermissionCatalog
from app.core.config import settings
from app.core.errors import DependencyUnavailable, UnknownRoleError
from app.core.tenant_guard import normalize_tenant_id
from app.crud import acl_override as override_store
from app.crud import tenant_membership as membership_store
from app.schemas.acl import OverrideDocument

logger = logging.getLogger(__name__)


def apply_overrides(base: Iterable[str], doc: OverrideDocument) -> set[str]:
    """
    Layer an override document on a role baseline.
    All adds are applied before any remove, so a key listed in both ends up removed.
    """
    working = set(base)
    for key in doc.add:
        working.add(key)
    for key in doc.remove:
        working.discard(key)
    return working


class PermissionResolver:
    def __init__(self, db: AsyncSession, catalog: PermissionCatalog = CATALOG):
        self.db = db
        self.catalog = catalog

    async def resolve(
        self,
        user_id: int,
        tenant_id: int | str,
        *,
        timeout: float | None = None,
    ) -> list[str]:
        """
        Effective permissions of user_id in tenant_id, always a list (possibly empty).

        timeout defaults to PERMISSION_RESOLUTION_TIMEOUT_SECONDS; 0 disables it.
        On timeout the pending reads are cancelled and DependencyUnavailable is
        raised, never a partial set.
        """
        limit = settings.PERMISSION_RESOLUTION_TIMEOUT_SECONDS if timeout is None else timeout
        if not limit:
            effective = await self._resolve(user_id, tenant_id)
        else:
            try:
                effective = await asyncio.wait_for(self._resolve(user_id, tenant_id), limit)
            except asyncio.TimeoutError as exc:
                logger.warning(
                    "permission resolution timed out after %ss (user=%s tenant=%s)", limit, user_id, tenant_id
                )
                raise DependencyUnavailable("Permission resolution timed out") from exc
        return sorted(effective)

    async def _resolve(self, user_id: int, tenant_id: int | str) -> AbstractSet[str]:
        numeric_tenant = await membership_store.resolve_tenant_id(self.db, normalize_tenant_id(tenant_id))
        if numeric_tenant is None:
            logger.debug("unknown tenant code %r; no permissions", tenant_id)
            return frozenset()

        role = await membership_store.resolve_role(self.db, user_id, numeric_tenant)
        if role is None:
            return frozenset()

        try:
            base = self.catalog.defaults_for_role(role)
        except UnknownRoleError:
            logger.error(
                "membership tenant=%s user=%s has role %r which the catalog does not define",
                numeric_tenant,
                user_id,
                role,
            )
            raise

        doc = await override_store.get_overrides(self.db, numeric_tenant, user_id)
        effective = apply_overrides(base, doc)
        logger.debug(
            "resolved user=%s tenant=%s role=%s base=%d add=%d remove=%d effective=%d",
            user_id,
            numeric_tenant,
            role,
            len(base),
            len(doc.add),
            len(doc.remove),
            len(effective),
        )
        return effective

    async def get_overrides(self, tenant_id: int, user_id: int) -> OverrideDocument:
        return await override_store.get_overrides(self.db, tenant_id, user_id)

    async def set_overrides(self, tenant_id: int, user_id: int, doc: OverrideDocument) -> dict:
        """Replace the override document, then return the recomputed effective set."""
        await override_store.set_overrides(self.db, tenant_id, user_id, doc)
        permissions = await self.resolve(user_id, tenant_id)
        return {"ok": True, "permissions": permissions}


async def resolve_permissions(db: AsyncSession, user_id: int, tenant_id: int | str) -> list[str]:
    return await PermissionResolver(db).resolve(user_id, tenant_id)
