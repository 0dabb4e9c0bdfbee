from .base import BaseSchema, TimestampSchema, IDSchema, BaseResponseSchema
from .enums import Role, MediaType, AssetClass, SubscriptionStatus
from .auth import AuthContext
from .user import UserCreate, UserUpdate, UserPublic, UserResponse, ImageUploadResponse, FollowResponse
from .subscription import SubscriptionCreate, SubscriptionLevelUpdate, SubscriptionResponse, ExpireStaleResponse
from .content import ContentCreate, ContentUpdate, ContentResponse, MediaUploadResponse
