from __future__ import annotations

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials

from app.core.security import Principal, bearer_scheme, decode_access_token


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> Principal:
    """
    Dependency for protected endpoints.
    The principal's tenant memberships come from the token, not the database.
    """
    return decode_access_token(credentials.credentials)
