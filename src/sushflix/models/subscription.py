from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Uuid as SQLUUID, text
from sqlalchemy.orm import relationship

from .base import Base


class Subscription(Base):
    """One subscriber's paid relationship to one creator. Rows are never hard-deleted."""
    __tablename__ = "subscriptions"
    __table_args__ = (
        CheckConstraint("level BETWEEN 1 AND 3", name="ck_subscriptions_level"),
        # at most one active subscription per (subscriber, creator)
        Index(
            "uq_subscriptions_active_pair",
            "subscriber_id",
            "creator_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    subscriber_id = Column(SQLUUID, ForeignKey("users.id"), nullable=False, index=True)
    creator_id = Column(SQLUUID, ForeignKey("users.id"), nullable=False, index=True)
    level = Column(Integer, nullable=False)
    status = Column(String, nullable=False, default="active")  # "active", "cancelled", "expired"
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False, index=True)
    cancelled_at = Column(DateTime, nullable=True)

    # Relationships
    subscriber = relationship("User", back_populates="subscriptions", foreign_keys=[subscriber_id])
    creator = relationship("User", foreign_keys=[creator_id])
