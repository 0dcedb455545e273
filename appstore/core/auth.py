"""Bearer-token identity: the core only needs a stable user id and a role."""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from fastapi import Header
from jose import JWTError, jwt

from appstore.config import moderator_ids, settings
from appstore.core.exceptions import UnauthorizedError

ROLES = ("user", "developer", "admin")


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: str = "user"

    @property
    def is_moderator(self) -> bool:
        return is_moderator(self.user_id, self.role)


def is_moderator(user_id: str | None, role: str | None) -> bool:
    if not user_id:
        return False
    return role == "admin" or user_id in moderator_ids()


def create_access_token(user_id: str, role: str = "user") -> str:
    """Create a JWT for a user. Used by tests and local tooling."""
    expire = datetime.now(timezone.utc) + timedelta(hours=settings.jwt_expire_hours)
    payload = {
        "sub": user_id,
        "role": role,
        "exp": expire,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT token. Returns the payload."""
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise UnauthorizedError("Invalid or expired token")
    if payload.get("sub") is None:
        raise UnauthorizedError("Token missing subject")
    if payload.get("role", "user") not in ROLES:
        raise UnauthorizedError("Token carries an unknown role")
    return payload


def get_current_principal(authorization: str = Header(None)) -> Principal:
    """FastAPI dependency that resolves the caller from the Authorization header."""
    if not authorization:
        raise UnauthorizedError("Missing Authorization header")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise UnauthorizedError("Authorization header must be: Bearer <token>")

    payload = decode_token(parts[1])
    return Principal(user_id=payload["sub"], role=payload.get("role", "user"))


def optional_principal(authorization: str = Header(None)) -> Principal | None:
    """FastAPI dependency that optionally resolves the caller (None if no auth)."""
    if not authorization:
        return None
    try:
        return get_current_principal(authorization)
    except UnauthorizedError:
        return None
