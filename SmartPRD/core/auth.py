"""Идентичность вызывающего в рамках одного запроса.

Токены выдаёт внешний auth‑сервис (JWT, HS256). Сервис их только проверяет:
`sub` содержит идентификатор пользователя, `email` опционален. Контекст
`RequestContext` передаётся в сервисы явно, параметром.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import jwt

from SmartPRD.core.errors import UnauthenticatedError, UnauthorizedError
from SmartPRD.core.settings import settings


@dataclass(frozen=True)
class RequestContext:
    """Аутентифицированный пользователь текущего запроса."""

    user_id: str
    email: Optional[str] = None
    request_id: str = "-"


def decode_token(token: str) -> Dict[str, Any]:
    """Проверить подпись/срок/аудиторию токена и вернуть его claims."""
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=settings.jwt_algorithms,
            audience=settings.jwt_audience,
        )
    except jwt.PyJWTError as exc:
        raise UnauthenticatedError(f"Invalid token: {exc}") from exc


def context_from_authorization(authorization: Optional[str], *, request_id: str = "-") -> RequestContext:
    """Построить `RequestContext` из заголовка `Authorization: Bearer <jwt>`."""
    if not authorization:
        raise UnauthenticatedError()
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise UnauthenticatedError()
    claims = decode_token(token.strip())
    sub = claims.get("sub")
    if not sub:
        raise UnauthenticatedError("Token has no subject")
    return RequestContext(user_id=str(sub), email=claims.get("email"), request_id=request_id)


def require_owner(ctx: RequestContext, owner_id: str) -> None:
    if owner_id != ctx.user_id:
        raise UnauthorizedError()
