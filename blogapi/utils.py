from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from blogapi.config import Settings


class InvalidTokenError(Exception):
    """Raised for any token that is malformed, tampered with or expired."""


@dataclass(frozen=True)
class Principal:
    id: int
    username: str


DEFAULT_BCRYPT_ROUNDS = 10

pwd_context = CryptContext(
    schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=DEFAULT_BCRYPT_ROUNDS
)


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    context = pwd_context
    if rounds is not None and rounds != DEFAULT_BCRYPT_ROUNDS:
        context = pwd_context.copy(bcrypt__rounds=rounds)
    return context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(
    principal_id: int,
    principal_name: str,
    settings: Settings,
    expires_delta: Optional[timedelta] = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"id": principal_id, "username": principal_name, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_access_token(token: str, settings: Settings) -> Principal:
    """
    Decode ``token`` and return the principal it was issued for.

    Bad signatures, expired tokens and missing claims all raise
    ``InvalidTokenError`` so callers cannot tell them apart.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as exc:
        raise InvalidTokenError("Invalid token") from exc

    principal_id = payload.get("id")
    username = payload.get("username")
    if not isinstance(principal_id, int) or not isinstance(username, str):
        raise InvalidTokenError("Invalid token")
    return Principal(id=principal_id, username=username)
