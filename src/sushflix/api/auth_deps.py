"""Authentication dependencies for FastAPI endpoints."""
import logging
from typing import Annotated

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from src.sushflix.schemas.auth import AuthContext
from src.sushflix.services.auth_service import AuthService

logger = logging.getLogger(__name__)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

auth_service = AuthService()


def get_auth_service() -> AuthService:
    return auth_service


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> AuthContext:
    """Get the verified identity of the caller."""
    return service.verify_token(token)
