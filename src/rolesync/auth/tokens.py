"""
rolesync.auth.tokens

Operator token issuing and validation (HS256 JWT).

Responsibilities:
- Mint short-lived operator tokens (dev route, scripts).
- Decode tokens with strict registered-claim checks and return an `Operator`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from jwt import InvalidTokenError

from rolesync.auth.models import Operator
from rolesync.settings import Settings


@dataclass(frozen=True, slots=True)
class TokenConfig:
    alg: str
    issuer: str
    audience: str
    secret: str

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenConfig:
        return cls(
            alg=settings.jwt_alg,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            secret=settings.jwt_secret,
        )


class TokenError(Exception):
    pass


def issue_operator_token(
    *,
    cfg: TokenConfig,
    subject_id: str,
    scopes: list[str],
    ttl: timedelta = timedelta(hours=1),
) -> str:
    now = datetime.now(tz=UTC)
    payload: dict[str, Any] = {
        "iss": cfg.issuer,
        "aud": cfg.audience,
        "sub": subject_id,
        "scopes": sorted(set(scopes)),
        "iat": int(now.timestamp()),
        "exp": int((now + ttl).timestamp()),
    }
    return jwt.encode(payload, cfg.secret, algorithm=cfg.alg)


def read_operator_token(*, cfg: TokenConfig, token: str) -> Operator:
    try:
        payload = jwt.decode(
            token,
            cfg.secret,
            algorithms=[cfg.alg],
            issuer=cfg.issuer,
            audience=cfg.audience,
            options={"require": ["exp", "iat", "iss", "aud", "sub"]},
        )
    except InvalidTokenError as e:
        raise TokenError(str(e)) from e

    subject_id = str(payload.get("sub", "")).strip()
    scopes = payload.get("scopes", [])
    if not subject_id:
        raise TokenError("token subject is empty")
    if not isinstance(scopes, list):
        raise TokenError("token scopes must be a list")
    return Operator(subject_id=subject_id, scopes=frozenset(str(s) for s in scopes))
