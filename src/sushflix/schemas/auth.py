from uuid import UUID

from pydantic import BaseModel

from .enums import Role


class AuthContext(BaseModel):
    """Verified identity of the caller, taken from the bearer token."""
    user_id: UUID
    role: Role = Role.USER
