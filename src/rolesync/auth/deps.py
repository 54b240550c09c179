"""
rolesync.auth.deps

FastAPI dependency functions for authentication and authorization.

Responsibilities:
- Convert a bearer token into an `Operator`.
- Enforce scopes via a reusable dependency factory.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN

from rolesync.api.deps import settings_dep
from rolesync.auth.models import Operator, Scope
from rolesync.auth.tokens import TokenConfig, TokenError, read_operator_token
from rolesync.settings import Settings

_bearer = HTTPBearer(auto_error=False)


def get_operator(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(settings_dep),
) -> Operator:
    if creds is None or not creds.credentials:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    try:
        return read_operator_token(
            cfg=TokenConfig.from_settings(settings), token=creds.credentials
        )
    except TokenError as e:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}") from e


def require_scope(scope: Scope):
    def _dep(operator: Operator = Depends(get_operator)) -> Operator:
        if not operator.can(scope):
            raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail=f"Missing scope {scope}")
        return operator

    return _dep
