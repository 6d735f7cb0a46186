# estore/accounts.py
from typing import Optional

import bcrypt
import structlog
from sqlalchemy import insert, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from .database import connection, transaction, users
from .errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from .models import User

logger = structlog.get_logger(__name__)

# Passwords are stored as bcrypt hashes. Signup always creates a plain user;
# admins only come from create_admin (see estore.manage).

BCRYPT_ROUNDS = 12


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def _insert_user(engine: Engine, name: str, email: str, password: str, role: str) -> User:
    if not name or not email or not password:
        raise ValidationError("All fields are required")
    if len(password.encode("utf-8")) > 72:
        raise ValidationError("Password must be at most 72 bytes")

    email = email.strip().lower()
    with transaction(engine) as conn:
        try:
            user_id = conn.execute(
                insert(users).values(
                    name=name,
                    email=email,
                    password=hash_password(password),
                    role=role,
                )
            ).inserted_primary_key[0]
        except IntegrityError as exc:
            raise ConflictError("Email already registered") from exc

    logger.info("User registered", user_id=user_id, role=role)
    return User(id=user_id, name=name, email=email, role=role)


def signup(engine: Engine, name: Optional[str], email: Optional[str], password: Optional[str]) -> User:
    return _insert_user(engine, name, email, password, role="user")


def create_admin(engine: Engine, name: str, email: str, password: str) -> User:
    return _insert_user(engine, name, email, password, role="admin")


def authenticate(engine: Engine, email: Optional[str], password: Optional[str]) -> User:
    if not email or not password:
        raise ValidationError("Email and password are required")

    with connection(engine) as conn:
        row = conn.execute(
            select(users).where(users.c.email == email.strip().lower())
        ).mappings().first()

    if row is None:
        logger.warning("Login failed", email=email, reason="unknown email")
        raise UnauthorizedError("User not found")
    if not verify_password(password, row["password"]):
        logger.warning("Login failed", user_id=row["id"], reason="bad password")
        raise UnauthorizedError("Invalid password")
    return User.model_validate(dict(row))


def get_user(engine: Engine, user_id: int) -> User:
    with connection(engine) as conn:
        row = conn.execute(select(users).where(users.c.id == user_id)).mappings().first()
    if row is None:
        raise NotFoundError("user")
    return User.model_validate(dict(row))
