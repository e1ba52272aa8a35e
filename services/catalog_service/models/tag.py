"""Tag, moderation log and product/tag binding models."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.soft_delete import SoftDeleteMixin
from services.catalog_service.models.enums import (
    ModerationAction,
    TagStatus,
    enum_values,
)
from sqlalchemy import DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship


class Tag(SoftDeleteMixin, Base):
    __tablename__ = "catalog_tags"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[TagStatus] = mapped_column(
        SAEnum(
            TagStatus,
            name="catalog_tag_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=TagStatus.UNDER_REVIEW,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    moderations = relationship("TagModeration", back_populates="tag")

    def __repr__(self) -> str:
        return f"<Tag {self.name} status={self.status}>"


class TagModeration(SoftDeleteMixin, Base):
    """One moderation decision. Action and linkage never change."""

    __tablename__ = "catalog_tag_moderations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tag_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("catalog_tags.id"), nullable=False, index=True
    )
    moderated_by: Mapped[str] = mapped_column(String(255), nullable=False)
    action: Mapped[ModerationAction] = mapped_column(
        SAEnum(
            ModerationAction,
            name="catalog_moderation_action_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    tag = relationship("Tag", back_populates="moderations")


class ProductTag(SoftDeleteMixin, Base):
    __tablename__ = "catalog_product_tags"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("catalog_products.id"), nullable=False
    )
    tag_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("catalog_tags.id"), nullable=False
    )
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    product = relationship("Product", back_populates="tags")
    tag = relationship("Tag")

    __table_args__ = (
        Index("ix_catalog_product_tags_product_tag", "product_id", "tag_id"),
    )
