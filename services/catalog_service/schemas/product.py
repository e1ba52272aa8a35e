"""Product request/response schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.catalog_service.models.enums import ProductStatus


class ProductCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=255, pattern=r"^[a-z0-9-]+$")
    description: Optional[str] = None
    price: int = Field(..., ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    status: ProductStatus = ProductStatus.ACTIVE


class ProductUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[int] = Field(None, ge=0)
    status: Optional[ProductStatus] = None


class ProductResponse(BaseModel):
    id: uuid.UUID
    seller_id: str
    title: str
    slug: str
    description: Optional[str] = None
    price: int
    currency: str
    status: ProductStatus
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
