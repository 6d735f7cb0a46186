# estore/security.py
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.engine import Engine

from .accounts import get_user
from .config import Settings
from .errors import ForbiddenError, NotFoundError, UnauthorizedError
from .models import User

# Identity comes only from a signed token; roles are re-read from the users
# table on every request rather than trusted from the token or the body.

bearer = HTTPBearer(auto_error=False)


def create_token(user: User, settings: Settings) -> str:
    exp = datetime.now(timezone.utc) + timedelta(minutes=settings.token_ttl_minutes)
    payload = {"sub": str(user.id), "role": user.role, "exp": exp}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token expired")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid token")


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_engine(request: Request) -> Engine:
    return request.app.state.engine


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    engine: Engine = Depends(get_engine),
    settings: Settings = Depends(get_settings_dep),
) -> User:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError("Not authenticated")
    payload = decode_token(credentials.credentials, settings)
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise UnauthorizedError("Invalid token payload")
    try:
        return get_user(engine, user_id)
    except NotFoundError:
        raise UnauthorizedError("User not found")


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise ForbiddenError("Admins only")
    return user
