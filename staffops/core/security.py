# staffops/core/security.py
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from staffops.config import Settings, settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


class TokenService:
    """Issues and reads JWTs with the secret/algorithm it was configured with."""

    def __init__(self, config: Settings):
        self.secret = config.SECRET_KEY
        self.algorithm = config.ALGORITHM
        self.access_ttl = timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)
        self.refresh_ttl = timedelta(days=config.REFRESH_TOKEN_EXPIRE_DAYS)

    def _encode(self, subject: Any, token_type: str, ttl: timedelta) -> str:
        expire = datetime.now(timezone.utc) + ttl
        return jwt.encode(
            {"exp": expire, "sub": str(subject), "type": token_type},
            self.secret,
            algorithm=self.algorithm,
        )

    def create_access_token(self, subject: Any) -> str:
        return self._encode(subject, "access", self.access_ttl)

    def create_refresh_token(self, subject: Any) -> str:
        return self._encode(subject, "refresh", self.refresh_ttl)

    def create_reset_token(self, subject: Any, ttl: timedelta) -> str:
        return self._encode(subject, "reset", ttl)

    def decode(self, token: str, token_type: str = "access") -> Optional[dict]:
        """Return payload dict if the token is valid and of *token_type*, else ``None``."""
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError:
            return None
        if payload.get("type") != token_type:
            return None
        return payload


token_service = TokenService(settings)


def get_token_service() -> TokenService:
    return token_service
