from typing import Optional
from uuid import UUID

from pydantic import EmailStr, Field

from .base import BaseSchema, BaseResponseSchema
from .enums import Role


# request
class UserCreate(BaseSchema):
    """Schema for onboarding the profile of the authenticated user."""
    username: str = Field(..., min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_.-]+$")
    email: Optional[EmailStr] = None
    display_name: Optional[str] = Field(None, max_length=100)


class UserUpdate(BaseSchema):
    """Schema for updating a user."""
    display_name: Optional[str] = Field(None, max_length=100)


# out
class UserPublic(BaseSchema):
    """Public user schema without sensitive fields."""
    id: UUID
    username: str
    display_name: Optional[str] = None
    role: Role
    profile_image_url: Optional[str] = None
    cover_photo_url: Optional[str] = None


class UserResponse(UserPublic, BaseResponseSchema):
    """Schema for the caller's own profile."""
    email: Optional[EmailStr] = None


class ImageUploadResponse(BaseSchema):
    """Result of replacing a profile picture or cover photo."""
    url: str
    warning: Optional[str] = None


class FollowResponse(BaseSchema):
    creator_id: UUID
    following: bool
    followers: int
