from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext

from app.core.config import Settings
from app.core.errors import AuthError

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

ACCESS = "access"
REFRESH = "refresh"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_token(user_id: str, token_type: str, settings: Settings) -> str:
    now = datetime.now(timezone.utc)
    if token_type == REFRESH:
        expires = now + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    else:
        expires = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": user_id,
        "type": token_type,
        "iat": now,
        "exp": expires,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_token_pair(user_id: str, settings: Settings) -> dict:
    return {
        "accessToken": create_token(user_id, ACCESS, settings),
        "refreshToken": create_token(user_id, REFRESH, settings),
    }


def decode_token(token: str, settings: Settings, expected_type: str = ACCESS) -> str:
    """Return the user id carried by ``token`` or raise AuthError."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthError("Token has expired")
    except jwt.InvalidTokenError:
        raise AuthError("Invalid token")

    if payload.get("type") != expected_type or not payload.get("sub"):
        raise AuthError("Invalid token type")
    return payload["sub"]
