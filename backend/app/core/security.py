from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from fastapi import HTTPException, status
from fastapi.security import HTTPBearer
from jose import JWTError, jwt

from app.core.config import settings
from app.core.tenant_guard import normalize_memberships

bearer_scheme = HTTPBearer(auto_error=True)


@dataclass(frozen=True)
class Principal:
    """Authenticated caller as described by the access token."""

    user_id: int
    tenant_ids: list = field(default_factory=list)
    email: Optional[str] = None


def _normalize_token(token: str) -> str:
    """
    Make token decoding resilient to common Swagger / copy-paste issues:
    - Leading/trailing whitespace/newlines
    - Surrounding quotes
    - Accidentally including the 'Bearer ' prefix in the token field
    """
    if token is None:
        return ""

    t = token.strip()

    # remove surrounding quotes if present
    if (t.startswith('"') and t.endswith('"')) or (t.startswith("'") and t.endswith("'")):
        t = t[1:-1].strip()

    # remove accidental bearer prefix
    if t.lower().startswith("bearer "):
        t = t[7:].strip()

    return t


def create_access_token(
    subject: int | str,
    *,
    tenant_ids: Optional[Iterable[int | str]] = None,
    tenant_id: Optional[int | str] = None,
    email: Optional[str] = None,
    expires_minutes: Optional[int] = None,
) -> str:
    """
    Multi-tenant logins carry "tenantIds"; single-tenant ones carry "tenantId".
    Omitting both issues a token without recorded memberships.
    """
    now = datetime.now(timezone.utc)
    expire_dt = now + timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    # Use numeric timestamps for maximum compatibility
    to_encode: dict[str, Any] = {
        "sub": str(subject),
        "exp": int(expire_dt.timestamp()),
        "iat": int(now.timestamp()),
    }
    if tenant_ids is not None:
        to_encode["tenantIds"] = list(tenant_ids)
    elif tenant_id is not None:
        to_encode["tenantId"] = tenant_id
    if email:
        to_encode["email"] = email

    return jwt.encode(
        to_encode,
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


def _invalid(detail: str = "Invalid token") -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def decode_access_token(token: str) -> Principal:
    token = _normalize_token(token)
    if not token:
        raise _invalid()

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require_sub": True, "require_exp": True},
        )
    except JWTError:
        # Includes expired signature, bad format, bad signature, wrong algorithm, etc.
        raise _invalid()

    sub = payload.get("sub")
    if not sub:
        raise _invalid()
    try:
        user_id = int(str(sub))
    except ValueError:
        raise _invalid("Invalid token subject")

    memberships = payload.get("tenantIds")
    if memberships is None:
        memberships = payload.get("tenantId")

    return Principal(
        user_id=user_id,
        tenant_ids=normalize_memberships(memberships),
        email=payload.get("email"),
    )
