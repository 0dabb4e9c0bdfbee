from .base import Base
from .core import User, Follow
from .subscription import Subscription
from .content import Content, ContentLike

__all__ = [
    "Base",
    "User",
    "Follow",
    "Subscription",
    "Content",
    "ContentLike",
]
