from enum import Enum


class Role(str, Enum):
    """Roles carried in verified bearer tokens."""
    USER = "user"
    CREATOR = "creator"
    ADMIN = "admin"


class MediaType(str, Enum):
    """Kinds of media a content item can hold."""
    IMAGE = "image"
    VIDEO = "video"


class AssetClass(str, Enum):
    """Upload slots, each with its own size and type policy."""
    PROFILE_PICTURE = "profile_picture"
    COVER_PHOTO = "cover_photo"
    THUMBNAIL = "thumbnail"
    CONTENT_MEDIA = "content_media"


class SubscriptionStatus(str, Enum):
    """Lifecycle of a subscription. Cancelled and expired are terminal."""
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


# Tier bounds. 0 means "no paid subscription"; a subscription row always holds 1-3.
MIN_LEVEL = 0
MIN_PAID_LEVEL = 1
MAX_LEVEL = 3
