import uuid

from sqlalchemy import Column, DateTime, Uuid as SQLUUID
from sqlalchemy.orm import DeclarativeBase, declared_attr

from src.sushflix.utils.dates import utcnow


class Base(DeclarativeBase):
    """Base class for all models."""

    @declared_attr.directive
    def __tablename__(cls) -> str:
        """Generate table name from class name."""
        return cls.__name__.lower() + "s"

    id = Column(SQLUUID, primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)
