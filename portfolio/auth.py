"""
Account signup/login and bearer-token verification.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from portfolio.config import Settings
from portfolio.errors import UnauthorizedError, ValidationError
from portfolio.records import EMAIL_PATTERN, User
from portfolio.stores import ContentStore

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
MIN_PASSWORD_LENGTH = 8

# pbkdf2_sha256 draws a random salt per hash and embeds it in the result.
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        # Unrecognized or malformed stored hash.
        return False


class AuthService:
    """Issues and checks tokens for accounts kept in the content store."""

    def __init__(self, store: ContentStore, settings: Settings):
        self.store = store
        self.secret = settings.jwt_secret
        self.expiration = timedelta(minutes=settings.jwt_expiration_minutes)

    def create_token(self, user: User, expires_delta: Optional[timedelta] = None) -> str:
        issued_at = datetime.now(timezone.utc)
        claims = {
            "sub": user.id,
            "email": user.email,
            "iat": issued_at,
            "exp": issued_at + (expires_delta if expires_delta is not None else self.expiration),
        }
        return jwt.encode(claims, self.secret, algorithm=JWT_ALGORITHM)

    def signup(self, email: str, password: str, name: str) -> Tuple[str, User]:
        email = (email or "").strip().lower()
        name = (name or "").strip()
        if not email or not password or not name:
            raise ValidationError("Please provide email, password and name")
        if not EMAIL_PATTERN.match(email):
            raise ValidationError("Please provide a valid email")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        if not 2 <= len(name) <= 100:
            raise ValidationError("Name must be between 2 and 100 characters")

        user = self.store.create_user(email, name, hash_password(password))
        logger.info("Created account %s", user.email)
        return self.create_token(user), user

    def login(self, email: str, password: str) -> Tuple[str, User]:
        if not email or not password:
            raise ValidationError("Please provide email and password")
        user = self.store.get_user_by_email(email)
        # Unknown email and wrong password must be indistinguishable.
        if user is None or not verify_password(password, user.password_hash):
            raise UnauthorizedError(
                "Invalid email or password", reason="invalid_credentials"
            )
        return self.create_token(user), user

    def verify(self, token: str) -> User:
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[JWT_ALGORITHM],
                options={"require_exp": True, "require_sub": True},
            )
        except ExpiredSignatureError as exc:
            raise UnauthorizedError("Token expired", reason="token_expired") from exc
        except JWTError as exc:
            raise UnauthorizedError("Invalid token", reason="token_invalid") from exc

        user_id = claims.get("sub")
        if not user_id:
            raise UnauthorizedError("Invalid token", reason="token_invalid")
        user = self.store.get_user(str(user_id))
        if user is None:
            raise UnauthorizedError("User not found", reason="user_not_found")
        return user
