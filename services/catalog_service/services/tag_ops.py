"""Tag operations: tag lifecycle, moderation log and product bindings.

Every moderation decision is appended to ``TagModeration`` and applied to the
tag status in the same commit. Log entries keep their action and linkage for
good; only the written rationale can be amended afterwards.
"""

import uuid
from typing import Optional

from libs.auth.guard import ensure_owner, ensure_role, is_admin
from libs.auth.models import AuthUser, Role
from libs.common.errors import NotFound, ValidationFailed
from libs.common.logging import get_logger
from libs.common.pagination import fetch_page
from libs.db.soft_delete import ensure_active, erase, only_active
from services.catalog_service.models import (
    MODERATION_OUTCOME,
    ModerationAction,
    ProductTag,
    Tag,
    TagModeration,
    TagStatus,
)
from services.catalog_service.schemas import TagCreate, TagUpdate
from services.catalog_service.services.product_ops import get_product
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------


async def _load_tag(db: AsyncSession, tag_id: uuid.UUID) -> Optional[Tag]:
    result = await db.execute(select(Tag).where(Tag.id == tag_id))
    return result.scalar_one_or_none()


async def _ensure_unique_name(
    db: AsyncSession, name: str, exclude_id: Optional[uuid.UUID] = None
) -> None:
    query = select(Tag.id).where(Tag.name == name)
    if exclude_id is not None:
        query = query.where(Tag.id != exclude_id)
    if (await db.execute(query)).first():
        raise ValidationFailed(f"Tag '{name}' already exists")


async def create_tag(db: AsyncSession, user: AuthUser, body: TagCreate) -> Tag:
    """Create a tag. New tags wait for moderation."""
    ensure_role(user, Role.ADMIN)
    await _ensure_unique_name(db, body.name)

    tag = Tag(
        name=body.name,
        description=body.description,
        status=TagStatus.UNDER_REVIEW,
    )
    db.add(tag)
    await db.commit()
    await db.refresh(tag)
    logger.info("Tag %s (%s) created by %s", tag.id, tag.name, user.user_id)
    return tag


async def get_tag(db: AsyncSession, user: AuthUser, tag_id: uuid.UUID) -> Tag:
    tag = ensure_active(await _load_tag(db, tag_id), "Tag")
    if not is_admin(user) and tag.status != TagStatus.ACTIVE:
        raise NotFound("Tag not found")
    return tag


async def list_tags(
    db: AsyncSession,
    user: AuthUser,
    *,
    status: Optional[TagStatus] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[Tag], int]:
    query = only_active(select(Tag), Tag)
    if not is_admin(user):
        query = query.where(Tag.status == TagStatus.ACTIVE)
    elif status:
        query = query.where(Tag.status == status)
    if search:
        query = query.where(Tag.name.ilike(f"%{search}%"))
    return await fetch_page(db, query, skip=skip, limit=limit, order_by=(Tag.name,))


async def update_tag(
    db: AsyncSession, user: AuthUser, tag_id: uuid.UUID, body: TagUpdate
) -> Tag:
    ensure_role(user, Role.ADMIN)
    tag = ensure_active(await _load_tag(db, tag_id), "Tag")

    changes = body.model_dump(exclude_unset=True)
    if changes.get("name") and changes["name"] != tag.name:
        await _ensure_unique_name(db, changes["name"], exclude_id=tag.id)
    for field, value in changes.items():
        setattr(tag, field, value)

    await db.commit()
    await db.refresh(tag)
    return tag


async def erase_tag(db: AsyncSession, user: AuthUser, tag_id: uuid.UUID) -> Tag:
    ensure_role(user, Role.ADMIN)
    tag = await _load_tag(db, tag_id)
    if tag is None:
        raise NotFound("Tag not found")
    erase(tag, actor_id=user.user_id, label="Tag")
    await db.commit()
    logger.info("Tag %s erased by %s", tag.id, user.user_id)
    return tag


# ---------------------------------------------------------------------------
# Moderation log
# ---------------------------------------------------------------------------


async def moderate_tag(
    db: AsyncSession,
    user: AuthUser,
    tag_id: uuid.UUID,
    *,
    action: ModerationAction,
    reason: Optional[str] = None,
) -> TagModeration:
    """Record one moderation decision and apply it to the tag."""
    ensure_role(user, Role.ADMIN)
    result = await db.execute(select(Tag).where(Tag.id == tag_id).with_for_update())
    tag = ensure_active(result.scalar_one_or_none(), "Tag")

    entry = TagModeration(
        tag_id=tag.id,
        moderated_by=user.user_id,
        action=action,
        reason=reason,
    )
    db.add(entry)

    old_status = tag.status
    tag.status = MODERATION_OUTCOME[action]

    await db.commit()
    await db.refresh(entry)
    logger.info(
        "Tag %s moderated by %s: %s (%s -> %s)",
        tag.id,
        user.user_id,
        action.value,
        old_status.value,
        tag.status.value,
    )
    return entry


async def _load_moderation(
    db: AsyncSession, tag_id: uuid.UUID, moderation_id: uuid.UUID
) -> Optional[TagModeration]:
    result = await db.execute(
        select(TagModeration).where(
            TagModeration.id == moderation_id, TagModeration.tag_id == tag_id
        )
    )
    return result.scalar_one_or_none()


async def list_moderations(
    db: AsyncSession,
    user: AuthUser,
    tag_id: uuid.UUID,
    *,
    action: Optional[ModerationAction] = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[TagModeration], int]:
    ensure_role(user, Role.ADMIN)
    if await _load_tag(db, tag_id) is None:
        raise NotFound("Tag not found")

    query = only_active(
        select(TagModeration).where(TagModeration.tag_id == tag_id), TagModeration
    )
    if action:
        query = query.where(TagModeration.action == action)
    return await fetch_page(
        db,
        query,
        skip=skip,
        limit=limit,
        order_by=(TagModeration.created_at.desc(),),
    )


async def update_moderation(
    db: AsyncSession,
    user: AuthUser,
    tag_id: uuid.UUID,
    moderation_id: uuid.UUID,
    *,
    reason: str,
) -> TagModeration:
    """Amend the rationale of a recorded decision."""
    ensure_role(user, Role.ADMIN)
    entry = ensure_active(
        await _load_moderation(db, tag_id, moderation_id), "Moderation record"
    )
    entry.reason = reason
    await db.commit()
    await db.refresh(entry)
    return entry


async def erase_moderation(
    db: AsyncSession,
    user: AuthUser,
    tag_id: uuid.UUID,
    moderation_id: uuid.UUID,
) -> TagModeration:
    ensure_role(user, Role.ADMIN)
    entry = await _load_moderation(db, tag_id, moderation_id)
    if entry is None:
        raise NotFound("Moderation record not found")
    erase(entry, actor_id=user.user_id, label="Moderation record")
    await db.commit()
    logger.info("Moderation record %s erased by %s", entry.id, user.user_id)
    return entry


# ---------------------------------------------------------------------------
# Product tags
# ---------------------------------------------------------------------------


async def attach_tag(
    db: AsyncSession, user: AuthUser, product_id: uuid.UUID, tag_id: uuid.UUID
) -> ProductTag:
    product = await get_product(db, user, product_id)
    ensure_owner(user, product.seller_id, action="tag this product")

    tag = ensure_active(await _load_tag(db, tag_id), "Tag")
    if tag.status != TagStatus.ACTIVE:
        raise ValidationFailed("Only active tags can be attached to products")

    duplicate = await db.execute(
        only_active(
            select(ProductTag.id).where(
                ProductTag.product_id == product.id, ProductTag.tag_id == tag.id
            ),
            ProductTag,
        )
    )
    if duplicate.first():
        raise ValidationFailed("Tag is already attached to this product")

    binding = ProductTag(product_id=product.id, tag_id=tag.id, created_by=user.user_id)
    db.add(binding)
    await db.commit()
    await db.refresh(binding)
    return binding


async def list_product_tags(
    db: AsyncSession, user: AuthUser, product_id: uuid.UUID
) -> list[ProductTag]:
    product = await get_product(db, user, product_id)
    result = await db.execute(
        only_active(
            select(ProductTag).where(ProductTag.product_id == product.id), ProductTag
        ).order_by(ProductTag.created_at)
    )
    return list(result.scalars().all())


async def erase_product_tag(
    db: AsyncSession,
    user: AuthUser,
    product_id: uuid.UUID,
    product_tag_id: uuid.UUID,
) -> ProductTag:
    product = await get_product(db, user, product_id)
    ensure_owner(user, product.seller_id, action="untag this product")

    result = await db.execute(
        select(ProductTag).where(
            ProductTag.id == product_tag_id, ProductTag.product_id == product.id
        )
    )
    binding = result.scalar_one_or_none()
    if binding is None:
        raise NotFound("Product tag not found")
    erase(binding, actor_id=user.user_id, label="Product tag")
    await db.commit()
    logger.info("Product tag %s erased by %s", binding.id, user.user_id)
    return binding
