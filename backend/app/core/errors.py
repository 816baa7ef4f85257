# backend/app/core/errors.py
"""
Access-control error taxonomy.

Validation errors (missing / forbidden tenant claim) short-circuit a request
before any tenant-scoped work runs. UnknownRoleError is a data-integrity fault
and DependencyUnavailable is a transient store failure the caller may retry.
"Not a member" is deliberately absent: it is an empty permission set.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AccessControlError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "access_control_error"

    def __init__(self, message: str | None = None):
        self.message = message or self.__class__.__name__
        super().__init__(self.message)

    def to_detail(self) -> dict:
        return {"code": self.code, "message": self.message}


class MissingTenantClaim(AccessControlError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "tenant_claim_missing"

    def __init__(self, message: str = "Tenant ID is required (x-tenant-id header or tenantId query)."):
        super().__init__(message)


class ForbiddenTenantAccess(AccessControlError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "tenant_forbidden"

    def __init__(self, tenant_id: int | str):
        self.tenant_id = tenant_id
        super().__init__(f"Access to tenant {tenant_id} is not allowed for this user")


class UnknownRoleError(AccessControlError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "rbac_unknown_role"

    def __init__(self, role: object):
        self.role = role
        super().__init__(f"Unknown role: {role!r}")


class DependencyUnavailable(AccessControlError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "dependency_unavailable"


class CatalogIntegrityError(Exception):
    """Role defaults reference keys the catalog does not define (fatal at startup)."""


async def _access_control_error_handler(request: Request, exc: AccessControlError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AccessControlError, _access_control_error_handler)
