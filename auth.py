import logging
import os
from datetime import timedelta
from typing import Optional, Sequence

import jwt
from fastapi import Header, Request
from pydantic import BaseModel

from database import Store, hash_password, now_utc
from errors import Forbidden, Unauthorized
from schemas import User, UserRole

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"


class Identity(BaseModel):
    user_id: str
    role: UserRole


class TokenIssuer:
    """Signs and verifies bearer tokens carrying (user_id, role)."""

    def __init__(self, secret: Optional[str] = None, expire_hours: Optional[int] = None):
        self.secret = secret or os.getenv("JWT_SECRET", "marketplace-secret-key")
        self.expire_hours = expire_hours or int(os.getenv("TOKEN_EXPIRE_HOURS", 24))

    def issue(self, user: User) -> str:
        now = now_utc()
        payload = {
            "sub": user.id,
            "role": user.role,
            "iat": now,
            "exp": now + timedelta(hours=self.expire_hours),
        }
        return jwt.encode(payload, self.secret, algorithm=JWT_ALGORITHM)

    def verify(self, token: str) -> Identity:
        try:
            payload = jwt.decode(token, self.secret, algorithms=[JWT_ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise Unauthorized("Token has expired")
        except jwt.InvalidTokenError:
            raise Unauthorized("Invalid token")
        return Identity(user_id=payload["sub"], role=payload["role"])


def check_credentials(store: Store, user_id: str, password: str) -> User:
    user = store.get_user(user_id)
    if not user or user.password_hash != hash_password(password):
        logger.warning("Failed login for %s", user_id)
        raise Unauthorized("Invalid credentials")
    return user


def parse_bearer(authorization: Optional[str]) -> str:
    if not authorization:
        raise Unauthorized("Authorization header missing")
    scheme, _, token = authorization.partition(" ")
    if scheme != "Bearer" or not token:
        raise Unauthorized("Invalid authorization format")
    return token


def authorize(identity: Identity, roles: Sequence[str]) -> Identity:
    """Let the identity through when its role is one of `roles`; empty means any role."""
    if roles and identity.role not in roles:
        raise Forbidden(f"Requires role: {', '.join(roles)}")
    return identity


def require_roles(*roles: str):
    """Build a FastAPI dependency that authenticates the caller and checks its role."""

    def dependency(request: Request, authorization: str = Header(None)) -> Identity:
        tokens: TokenIssuer = request.app.state.tokens
        identity = tokens.verify(parse_bearer(authorization))
        return authorize(identity, roles)

    return dependency
