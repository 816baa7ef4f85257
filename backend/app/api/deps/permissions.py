from __future__ import annotations

from typing import Callable, Sequence

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_principal
from app.api.deps.tenant import get_tenant_id
from app.auth.permissions import can_all, can_any
from app.core.security import Principal
from app.db.session import get_db
from app.services.permissions import PermissionResolver


def require_permissions(
    required: str | Sequence[str],
    *,
    any_of: bool = False,
) -> Callable:
    """
    Enforce RBAC permissions in the guarded tenant using the caller's
    effective set (role defaults + overrides).

    Args:
      required: permission string OR list of permissions
      any_of: True => any required perm passes; False => all required perms required

    Returns the caller's effective permission list.
    """
    required_list = [required] if isinstance(required, str) else list(required)

    async def _checker(
        tenant_id: int | str = Depends(get_tenant_id),
        principal: Principal = Depends(get_current_principal),
        db: AsyncSession = Depends(get_db),
    ) -> list[str]:
        grants = await PermissionResolver(db).resolve(principal.user_id, tenant_id)

        allowed = can_any(grants, required_list) if any_of else can_all(grants, required_list)
        if not allowed:
            have = set(grants)
            missing = [p for p in required_list if p not in have]
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "code": "rbac_forbidden",
                    "message": "You do not have permission to perform this action.",
                    "required": required_list,
                    "missing": missing,
                },
            )

        return grants

    return _checker
