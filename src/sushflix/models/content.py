from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid as SQLUUID
from sqlalchemy.orm import relationship

from .base import Base


class Content(Base):
    """A published media item gated by required_level."""
    __tablename__ = "contents"
    __table_args__ = (
        CheckConstraint("required_level BETWEEN 0 AND 3", name="ck_contents_required_level"),
        CheckConstraint("likes >= 0 AND views >= 0", name="ck_contents_counters"),
    )

    creator_id = Column(SQLUUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    media_type = Column(String, nullable=False)  # "image", "video"
    media_url = Column(String, nullable=False)
    media_key = Column(String, nullable=False)
    thumbnail_url = Column(String, nullable=True)
    thumbnail_key = Column(String, nullable=True)
    required_level = Column(Integer, nullable=False, default=0, index=True)
    likes = Column(Integer, nullable=False, default=0)
    views = Column(Integer, nullable=False, default=0)

    # Relationships
    creator = relationship("User", back_populates="contents")


class ContentLike(Base):
    """Records who liked what, so a viewer's like is only counted once."""
    __tablename__ = "content_likes"
    __table_args__ = (
        UniqueConstraint("content_id", "user_id", name="uq_content_likes_pair"),
    )

    content_id = Column(SQLUUID, ForeignKey("contents.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(SQLUUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
