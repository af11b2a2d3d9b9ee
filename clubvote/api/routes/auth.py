"""Bearer token verification for member and administrator routes."""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt  # type: ignore[import-untyped]
from pydantic import BaseModel, ValidationError

from clubvote.core.config import Settings, get_settings
from clubvote.services.elections import normalize_email

security_scheme = HTTPBearer(auto_error=True)


class TokenPayload(BaseModel):
    sub: str
    role: str = "MEMBER"
    type: str = "access"
    exp: datetime
    iat: datetime | None = None
    jti: str | None = None


@dataclass(frozen=True)
class AuthenticatedMember:
    email: str
    role: str


def _decode_token(*, token: str, settings: Settings) -> TokenPayload:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        ) from exc
    try:
        validated = TokenPayload(**payload)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        ) from exc
    return validated


def get_current_member(
    credentials: HTTPAuthorizationCredentials = Depends(security_scheme),
) -> AuthenticatedMember:
    settings = get_settings()
    payload = _decode_token(token=credentials.credentials, settings=settings)
    if payload.type != "access":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token type")
    email = normalize_email(payload.sub)
    if "@" not in email:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User email not available")
    return AuthenticatedMember(email=email, role=payload.role)


def require_role(*roles: str) -> Callable[..., AuthenticatedMember]:
    allowed_roles: set[str] = set(roles)

    def dependency(member: AuthenticatedMember = Depends(get_current_member)) -> AuthenticatedMember:
        if member.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return member

    return dependency


def require_election_admin(
    member: AuthenticatedMember = Depends(get_current_member),
) -> AuthenticatedMember:
    return require_role(get_settings().election_admin_role)(member)


__all__ = [
    "AuthenticatedMember",
    "TokenPayload",
    "get_current_member",
    "require_election_admin",
    "require_role",
]
