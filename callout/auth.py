"""
Caller identity and role capabilities.

Tokens are issued elsewhere; this module only verifies them and re-reads
the caller from the store so deactivated users and role changes take
effect immediately.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from callout.errors import Forbidden, Unauthorized
from callout.models import Role, User, user_key

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

bearer = HTTPBearer(auto_error=False)


def can_manage_schedule(role: Role) -> bool:
    return role in (Role.ADMIN, Role.SUPERVISOR)


def can_approve_leave(role: Role) -> bool:
    return role in (Role.ADMIN, Role.SUPERVISOR)


def is_admin(role: Role) -> bool:
    return role is Role.ADMIN


@dataclass(frozen=True, slots=True)
class Caller:
    id: UUID
    org_id: UUID
    role: Role


def require_schedule_manager(caller: Caller) -> None:
    if not can_manage_schedule(caller.role):
        raise Forbidden()


def create_access_token(
    user_id: UUID,
    org_id: UUID,
    role: Role,
    secret: str,
    *,
    expiry_hours: int = 12,
    now: datetime | None = None,
) -> str:
    now = now or datetime.now(UTC)
    claims = {
        "sub": str(user_id),
        "org_id": str(org_id),
        "role": role.value,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(hours=expiry_hours)).timestamp()),
    }
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def decode_access_token(token: str, secret: str) -> tuple[UUID, UUID]:
    """Return (user_id, org_id) from a valid token, else raise Unauthorized."""
    try:
        claims = jwt.decode(token, secret, algorithms=[ALGORITHM])
        return UUID(claims["sub"]), UUID(claims["org_id"])
    except (JWTError, KeyError, ValueError) as exc:
        logger.warning(f"JWT decode failed: {exc}")
        raise Unauthorized() from exc


async def get_current_caller(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> Caller:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise Unauthorized()

    user_id, org_id = decode_access_token(
        credentials.credentials, request.app.state.settings.jwt_secret
    )

    user = request.app.state.database.get(user_key(user_id))
    if not isinstance(user, User) or user.org_id != org_id or not user.is_active:
        raise Unauthorized()

    return Caller(id=user.id, org_id=user.org_id, role=user.role)
