"""
Staff authentication helpers.

Identity arrives as an already-issued bearer JWT (HS256, signed with
JWT_SECRET). The token carries:
    sub    staff email
    name   display name (optional)
    role   "admin" | "staff"

Endpoints either require a token (require_actor / require_admin) or accept
an anonymous caller as the system actor (optional_actor, used by the payment
callback).
"""
import logging
from datetime import datetime, timezone, timedelta
from fastapi import Depends, Header
from typing import Optional

import jwt

from config import settings
from domain.errors import InternalError, PermissionDeniedError, UnauthorizedError
from services.audit_service import SYSTEM_ACTOR, Actor

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"
STAFF_ROLE = "staff"


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _parse_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    token = parts[1].strip()
    return token or None


def decode_access_token(token: str) -> dict:
    if not settings.jwt_secret:
        logger.error("JWT_SECRET is not configured; cannot verify access tokens")
        raise InternalError("Server auth misconfigured (JWT secret missing).")
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            issuer=settings.jwt_issuer,
            options={"require": ["exp", "iat", "iss", "sub"]},
        )
        return payload
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Access token expired.")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid access token.")


def issue_access_token(*, email: str, role: str = STAFF_ROLE, name: str | None = None) -> str:
    now = _now_utc()
    exp = now.replace(microsecond=0) + timedelta(minutes=settings.jwt_access_ttl_minutes)
    payload = {
        "iss": settings.jwt_issuer,
        "sub": email,
        "name": name or email,
        "role": role,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    if not settings.jwt_secret:
        raise InternalError("Server auth misconfigured (JWT secret missing).")
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


def actor_from_token(token: str) -> Actor:
    payload = decode_access_token(token)
    return Actor.user(
        name=payload.get("name") or payload["sub"],
        email=payload["sub"],
        role=payload.get("role", STAFF_ROLE),
    )


async def optional_actor(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> Actor:
    """
    Best-effort identity:
      - a valid bearer token becomes a user actor
      - no token at all is the system actor
      - a malformed or invalid token is still rejected
    """
    if authorization is None:
        return SYSTEM_ACTOR
    token = _parse_bearer_token(authorization)
    if not token:
        raise UnauthorizedError("Authorization header must be 'Bearer <token>'.")
    return actor_from_token(token)


async def require_actor(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> Actor:
    token = _parse_bearer_token(authorization)
    if not token:
        raise UnauthorizedError("Authentication required. Provide Authorization: Bearer <token>.")
    return actor_from_token(token)


async def require_admin(actor: Actor = Depends(require_actor)) -> Actor:
    """Dependency for configuration endpoints (mappings, statuses, schedule)."""
    if not actor.is_admin:
        logger.warning(f"Admin endpoint refused for {actor.email} (role={actor.role})")
        raise PermissionDeniedError("Admin role required for this endpoint.")
    return actor
