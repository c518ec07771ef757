import enum
from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import Enum
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from autoblog.core.datetime_utils import utc_now


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    type_annotation_map: dict[type, Any] = {}


class TimestampMixin:
    """Mixin that adds created_at timestamp to models."""

    created_at: Mapped[datetime] = mapped_column(default=utc_now, index=True)


def new_id() -> str:
    return str(uuid4())


def enum_column(enum_cls: type[enum.Enum], name: str) -> Enum:
    """Store a str-enum by value in a VARCHAR column (portable across PG and SQLite)."""
    return Enum(
        enum_cls,
        values_callable=lambda e: [x.value for x in e],
        name=name,
        native_enum=False,
        length=20,
        validate_strings=True,
    )
