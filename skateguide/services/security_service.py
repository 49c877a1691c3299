"""
Security Service - password hashing and access tokens
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext

from skateguide.config import settings
from skateguide.exceptions import UnauthorizedError

logger = logging.getLogger(__name__)


class SecurityService:
    """bcrypt password hashes and HS256 bearer tokens"""

    def __init__(self):
        self.pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

    def hash_password(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def verify_password(self, password: Optional[str], password_hash: str) -> bool:
        if not password:
            return False
        return self.pwd_context.verify(password, password_hash)

    def create_access_token(
        self,
        user_id: int,
        expires_minutes: Optional[int] = None
    ) -> str:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )
        payload = {"sub": str(user_id), "exp": expire}
        return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    def decode_access_token(self, token: str) -> int:
        """Return the user id carried by a valid token"""
        try:
            payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
            subject = payload.get("sub")
            if subject is None:
                raise UnauthorizedError("Invalid token.")
            return int(subject)
        except (JWTError, ValueError) as e:
            logger.debug(f"Token rejected: {e}")
            raise UnauthorizedError("Invalid or expired token.") from e


# Singleton instance
security_service = SecurityService()
