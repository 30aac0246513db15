from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt

from drive_api.config import settings
from drive_api.core.errors import Unauthorized


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: str


class IdentityGate(ABC):
    """Resolves a bearer credential to the caller's identity."""

    @abstractmethod
    def verify(self, token: str) -> Identity:
        """Return the identity behind ``token`` or raise ``Unauthorized``."""


class JwtIdentityGate(IdentityGate):
    """Verifies tokens signed by the auth service with a shared secret."""

    def __init__(self, secret_key: str, algorithm: str, audience: str | None = None):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.audience = audience

    def verify(self, token: str) -> Identity:
        payload = decode_token(token, self.secret_key, self.algorithm, self.audience)
        if not payload:
            raise Unauthorized("Unauthorized")

        user_id = payload.get("sub")
        email = payload.get("email")
        if not user_id or not email:
            raise Unauthorized("Invalid token payload")

        return Identity(user_id=str(user_id), email=str(email).lower())


def decode_token(
        token: str,
        secret_key: str,
        algorithm: str,
        audience: str | None = None,
) -> Optional[dict]:
    try:
        return jwt.decode(
            token,
            secret_key,
            algorithms=[algorithm],
            audience=audience,
            options={"verify_aud": audience is not None},
        )
    except JWTError:
        return None


# tokens are normally issued by the external auth service; this mints
# compatible ones for local development and tests
def create_access_token(user_id: str, email: str, expires_delta: Optional[timedelta] = None) -> str:
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {"sub": user_id, "email": email, "exp": expire}
    if settings.JWT_AUDIENCE:
        to_encode["aud"] = settings.JWT_AUDIENCE

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
