from sqlalchemy import Column, ForeignKey, String, UniqueConstraint, Uuid as SQLUUID
from sqlalchemy.orm import relationship

from .base import Base


class User(Base):
    """User model. Identity itself lives with the auth provider; this is the profile."""
    __tablename__ = "users"

    username = Column(String, nullable=False, unique=True)
    email = Column(String, nullable=True, unique=True)
    display_name = Column(String, nullable=True)
    role = Column(String, nullable=False, default="user")  # "user", "creator", "admin"
    profile_image_url = Column(String, nullable=True)
    profile_image_key = Column(String, nullable=True)
    cover_photo_url = Column(String, nullable=True)
    cover_photo_key = Column(String, nullable=True)

    # Relationships
    contents = relationship("Content", back_populates="creator")
    subscriptions = relationship(
        "Subscription", back_populates="subscriber", foreign_keys="Subscription.subscriber_id"
    )


class Follow(Base):
    """Social follow relation. Never grants access to gated content."""
    __tablename__ = "follows"
    __table_args__ = (
        UniqueConstraint("follower_id", "creator_id", name="uq_follows_pair"),
    )

    follower_id = Column(SQLUUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    creator_id = Column(SQLUUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
