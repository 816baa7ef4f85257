# backend/app/core/tenant_guard.py
"""
Tenant access boundary.

A request names the tenant it wants to act in (x-tenant-id header, falling back
to the tenantId query parameter). The claim is checked against the tenants the
authenticated principal belongs to before anything tenant-scoped runs.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable

from app.core.errors import ForbiddenTenantAccess, MissingTenantClaim

logger = logging.getLogger(__name__)

TENANT_HEADER = "x-tenant-id"
TENANT_QUERY_PARAM = "tenantId"

_INT_RE = re.compile(r"[+-]?[0-9]+")


def normalize_tenant_id(raw: Any) -> int | str:
    """
    "42" -> 42, "acme-hotel" -> "acme-hotel".
    Only a full base-10 integer is coerced; anything else keeps its string form.
    """
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    text = str(raw).strip()
    if _INT_RE.fullmatch(text):
        return int(text)
    return text


def extract_tenant_claim(header_value: str | None, query_value: str | None) -> str | None:
    for candidate in (header_value, query_value):
        if candidate is not None and str(candidate).strip():
            return str(candidate).strip()
    return None


def normalize_memberships(value: Any) -> list:
    """Principals carry either a list of tenant ids or a single one."""
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return [v for v in value if v is not None and str(v).strip() != ""]
    if str(value).strip() == "":
        return []
    return [value]


def check_tenant_access(
    claim: str | None,
    memberships: Iterable[Any] | Any,
    *,
    allow_unscoped: bool,
) -> int | str:
    """
    Validate a tenant claim and return its normalized id.

    Raises MissingTenantClaim when there is no claim and ForbiddenTenantAccess
    when the principal's memberships do not include it. A principal with no
    recorded memberships passes only when allow_unscoped is set.
    """
    if claim is None or str(claim).strip() == "":
        logger.info("rejecting request without tenant claim")
        raise MissingTenantClaim()

    tenant_id = normalize_tenant_id(claim)
    allowed = normalize_memberships(memberships)

    if not allowed:
        if not allow_unscoped:
            logger.info("rejecting tenant %s: principal has no recorded memberships", tenant_id)
            raise ForbiddenTenantAccess(claim)
        logger.warning("tenant %s accepted for a principal without recorded memberships", tenant_id)
        return tenant_id

    wanted = str(tenant_id)
    if not any(str(normalize_tenant_id(t)) == wanted for t in allowed):
        logger.info("rejecting tenant %s: not among principal memberships", tenant_id)
        raise ForbiddenTenantAccess(claim)

    return tenant_id
