"""Soft-delete layer shared by every erasable entity.

Records are never physically removed. ``erase`` moves a record from
``RecordState.ACTIVE`` to ``RecordState.DELETED`` exactly once; a second erase
on the same record is an error, never a silent success.
"""

import enum
from datetime import datetime
from typing import Optional, TypeVar

from sqlalchemy import DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Select, String
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from libs.common.datetime_utils import utc_now
from libs.common.errors import AlreadyDeleted, NotFound


class RecordState(str, enum.Enum):
    ACTIVE = "active"
    DELETED = "deleted"


class SoftDeleteMixin:
    """Adds ``record_state``/``deleted_at``/``deleted_by`` to a model."""

    @declared_attr
    def record_state(cls) -> Mapped[RecordState]:
        return mapped_column(
            SAEnum(
                RecordState,
                name="record_state_enum",
                values_callable=lambda e: [m.value for m in e],
                validate_strings=True,
            ),
            default=RecordState.ACTIVE,
            nullable=False,
            index=True,
        )

    @declared_attr
    def deleted_at(cls) -> Mapped[Optional[datetime]]:
        return mapped_column(DateTime(timezone=True), nullable=True)

    @declared_attr
    def deleted_by(cls) -> Mapped[Optional[str]]:
        return mapped_column(String(255), nullable=True)

    @property
    def is_deleted(self) -> bool:
        return self.record_state == RecordState.DELETED


SoftDeletable = TypeVar("SoftDeletable", bound=SoftDeleteMixin)


def ensure_active(
    record: Optional[SoftDeletable], label: str
) -> SoftDeletable:
    """Return ``record`` if it exists and has not been erased."""
    if record is None:
        raise NotFound(f"{label} not found")
    if record.is_deleted:
        raise AlreadyDeleted(f"{label} has been deleted")
    return record


def erase(record: SoftDeletable, *, actor_id: str, label: str) -> SoftDeletable:
    """Mark ``record`` deleted. The caller commits."""
    if record.is_deleted:
        raise AlreadyDeleted(f"{label} is already deleted")
    record.record_state = RecordState.DELETED
    record.deleted_at = utc_now()
    record.deleted_by = actor_id
    return record


def only_active(query: Select, model: type[SoftDeleteMixin]) -> Select:
    """Restrict ``query`` to records that have not been erased."""
    return query.where(model.record_state == RecordState.ACTIVE)
