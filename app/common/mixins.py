"""
Common mixins for POS models
"""
from sqlalchemy import Column, DateTime
from sqlalchemy.sql import func


class TimestampMixin:
    """Mixin for models that need timestamp tracking"""

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class CreatedAtMixin:
    """Mixin for immutable records (sales, movements): only creation time"""

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
