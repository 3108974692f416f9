# cardshop/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RowModel(BaseModel):
    """Base for rows mirrored from a remote table."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: datetime


class Category(RowModel):
    name: Optional[str] = None
    active: Optional[bool] = None


class CategoryInsert(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    active: Optional[bool] = True


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    active: Optional[bool] = None


class Product(RowModel):
    name: Optional[str] = None
    price: Optional[Decimal] = None
    condition: Optional[str] = None
    category_id: Optional[str] = None
    media_url_front: Optional[str] = None
    media_url_back: Optional[str] = None


class ProductInsert(BaseModel):
    name: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0)
    condition: Optional[str] = None
    category_id: Optional[str] = None
    media_url_front: Optional[str] = None
    media_url_back: Optional[str] = None


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    price: Optional[Decimal] = Field(None, ge=0)
    condition: Optional[str] = None
    category_id: Optional[str] = None
    media_url_front: Optional[str] = None
    media_url_back: Optional[str] = None


class ProductWithCategory(Product):
    category: Optional[Category] = None


class Service(RowModel):
    name: Optional[str] = None
    price: Optional[Decimal] = None
    media_url: Optional[str] = None


class ServiceInsert(BaseModel):
    name: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0)
    media_url: Optional[str] = None


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    price: Optional[Decimal] = Field(None, ge=0)
    media_url: Optional[str] = None


class CartItem(RowModel):
    user_id: Optional[str] = None
    product_id: Optional[str] = None
    service_id: Optional[str] = None
    amount: Optional[int] = None


class CartItemUpdate(BaseModel):
    amount: int = Field(..., ge=1)


class CartItemInsert(BaseModel):
    """Exactly one of product_id / service_id."""

    product_id: Optional[str] = None
    service_id: Optional[str] = None
    amount: int = Field(1, ge=1)

    @model_validator(mode="after")
    def one_target(self):
        if (self.product_id is None) == (self.service_id is None):
            raise ValueError("exactly one of product_id, service_id must be set")
        return self


class WantToBuy(RowModel):
    user_id: Optional[str] = None
    card_name: Optional[str] = None
    condition: Optional[str] = None
    media_url: Optional[str] = None
    done: Optional[bool] = None


class WantToBuyInsert(BaseModel):
    card_name: str = Field(..., min_length=1)
    condition: Optional[str] = None
    media_url: Optional[str] = None


class WantToBuyUpdate(BaseModel):
    card_name: Optional[str] = Field(None, min_length=1)
    condition: Optional[str] = None
    media_url: Optional[str] = None
    done: Optional[bool] = None


Role = Literal["customer", "admin"]


class UserDetails(RowModel):
    user_id: Optional[str] = None
    role: Optional[str] = None


class UserDetailsUpdate(BaseModel):
    role: Optional[Role] = None


class ChangeEvent(BaseModel):
    """One row change as delivered on a table's change feed."""

    table: str
    op: Literal["INSERT", "UPDATE", "DELETE"]
    row: Dict[str, Any]


class CartLine(BaseModel):
    kind: Literal["product", "service"]
    cart_item_id: str
    target_id: str
    name: str
    price: Decimal
    amount: int
    image: Optional[str] = None

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.amount


class CartOut(BaseModel):
    items: List[CartLine]
    total: Decimal
    item_count: int


class QuantityIn(BaseModel):
    """New quantity; zero or less removes the line."""

    quantity: int


class HandoffOut(BaseModel):
    url: str
