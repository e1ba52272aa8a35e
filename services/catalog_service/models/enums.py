"""Enum definitions for catalog service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class ProductStatus(str, enum.Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    SUSPENDED = "suspended"


class TagStatus(str, enum.Enum):
    UNDER_REVIEW = "under_review"
    ACTIVE = "active"
    SUSPENDED = "suspended"


class ModerationAction(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"
    FLAG = "flag"
    SUSPEND = "suspend"


# Tag status each moderation action leaves behind
MODERATION_OUTCOME = {
    ModerationAction.APPROVE: TagStatus.ACTIVE,
    ModerationAction.REJECT: TagStatus.SUSPENDED,
    ModerationAction.FLAG: TagStatus.UNDER_REVIEW,
    ModerationAction.SUSPEND: TagStatus.SUSPENDED,
}
