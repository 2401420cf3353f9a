"""Security utilities: password hashing, JWT access tokens and password rules."""

import re
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from jwt.exceptions import PyJWTError


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(
        plain_password.encode("utf-8"), hashed_password.encode("utf-8")
    )


def create_access_token(
    account_id: str,
    secret_key: str,
    algorithm: str = "HS256",
    expires_minutes: int = 60,
    **claims,
) -> str:
    """Create a JWT access token whose subject is the account id."""
    to_encode = {"sub": account_id, **claims}
    to_encode["exp"] = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    return jwt.encode(to_encode, secret_key, algorithm=algorithm)


def decode_access_token(
    token: str,
    secret_key: str,
    algorithm: str = "HS256",
) -> dict | None:
    """Decode and validate a JWT token. Returns None on failure."""
    try:
        return jwt.decode(token, secret_key, algorithms=[algorithm])
    except PyJWTError:
        return None


def validate_password_strength(password: str, min_length: int = 10) -> None:
    """Validate password meets strength requirements. Raises ValueError on failure."""
    errors = []
    if len(password) < min_length:
        errors.append(f"at least {min_length} characters")
    if not re.search(r"[A-Za-z]", password):
        errors.append("a letter")
    if not re.search(r"\d", password):
        errors.append("a digit")

    if errors:
        raise ValueError(f"Password must contain {', '.join(errors)}")
