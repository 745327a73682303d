# File: agromarket/db/models/base.py
"""
Base models and mixins for the AgroMarket store.

This module provides the foundation for all database models, including:
- Base SQLAlchemy model class
- Timestamp mixin
- The validation error raised by model-level checks
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Any, Dict, Type

from sqlalchemy import Column, DateTime, Enum, Integer, MetaData
from sqlalchemy.orm import declarative_base

# Constraint names are stable across SQLite and PostgreSQL
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

Base = declarative_base(metadata=MetaData(naming_convention=NAMING_CONVENTION))


class ModelValidationError(ValueError):
    """
    Exception raised for model validation errors.

    Attributes:
        model: The model instance that failed validation
        field: The field that failed validation
        message: Explanation of the error
    """

    def __init__(self, model: Any, field: str, message: str):
        self.model = model
        self.field = field
        self.message = message
        super().__init__(
            f"Validation error in {model.__class__.__name__}.{field}: {message}"
        )


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def enum_column(enum_cls: Type[PyEnum], **kwargs) -> Column:
    """Column storing an enum by its lowercase value rather than its member name."""
    return Column(
        Enum(
            enum_cls,
            values_callable=lambda members: [m.value for m in members],
            native_enum=False,
            validate_strings=True,
            length=20,
        ),
        **kwargs,
    )


class TimestampMixin:
    """
    Mixin providing automatic timestamp functionality.

    Adds created_at and updated_at timestamps that are automatically
    maintained when records are created or updated.
    """

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )


class AbstractBase(Base):
    """
    Abstract base class for all model entities.

    Attributes:
        id: Primary key ID (auto-incremented)
    """

    __abstract__ = True

    id = Column(Integer, primary_key=True, autoincrement=True)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the model instance to a dictionary.

        Returns:
            Dictionary representation of the model instance
        """
        result = {}
        for column in self.__table__.columns:
            value = getattr(self, column.name)
            if isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, Decimal):
                value = str(value)
            elif isinstance(value, PyEnum):
                value = value.value
            result[column.name] = value
        return result

