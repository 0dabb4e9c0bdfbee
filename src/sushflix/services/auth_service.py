import logging
from datetime import timedelta
from typing import Optional
from uuid import UUID

from fastapi import HTTPException
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import ValidationError

from src.sushflix.core.config import settings
from src.sushflix.schemas.auth import AuthContext
from src.sushflix.schemas.enums import Role
from src.sushflix.utils.dates import utcnow


class AuthService:
    """Verifies bearer tokens issued by the identity provider."""

    def __init__(self, secret: Optional[str] = None, algorithm: Optional[str] = None):
        self.secret = secret or settings.JWT_SECRET
        self.algorithm = algorithm or settings.JWT_ALGORITHM
        self.logger = logging.getLogger(__name__)

    def verify_token(self, token: str) -> AuthContext:
        """Verify a JWT token and return the caller's identity.

        Args:
            token: JWT token to verify

        Returns:
            AuthContext: user id (``sub`` claim) and role (``role`` claim)

        Raises:
            HTTPException: If token is invalid or expired
        """
        try:
            self.logger.debug("Attempting to verify token")
            claims = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            self.logger.warning("Token verification failed: token has expired")
            raise HTTPException(status_code=401, detail="Token has expired")
        except JWTError as e:
            self.logger.warning(f"Token verification failed: {str(e)}")
            raise HTTPException(status_code=401, detail="Invalid token")

        try:
            context = AuthContext(
                user_id=claims.get("sub"),
                role=claims.get("role") or Role.USER,
            )
        except ValidationError:
            self.logger.error("Token carries no valid user id or role")
            raise HTTPException(status_code=401, detail="Invalid token claims")

        self.logger.debug(f"Token verified for user {context.user_id} ({context.role.value})")
        return context

    def create_access_token(
        self,
        user_id: UUID,
        role: Role = Role.USER,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """Mint a token. Used by development tooling and tests."""
        expire = utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
        claims = {"sub": str(user_id), "role": Role(role).value, "exp": expire}
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)
