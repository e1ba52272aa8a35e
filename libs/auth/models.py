import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class Role(str, enum.Enum):
    ADMIN = "admin"
    SELLER = "seller"
    BUYER = "buyer"
    CUSTOMER = "customer"


class AuthUser(BaseModel):
    """
    The authenticated principal a request executes on behalf of.

    Immutable: switching roles means building a new principal, never
    mutating this one.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    user_id: str = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    role: Role = Role.BUYER
