# cardshop/domain/entities.py
"""Per-entity configuration for the generic container.

Everything that differs between the six mirrored tables lives here as data:
which table, which row schema, how the snapshot is sorted, which column is
searched and which column scopes rows to an owner.
"""
from dataclasses import dataclass
from typing import Optional, Type

from pydantic import BaseModel

from cardshop.domain import schemas


@dataclass(frozen=True)
class EntityConfig:
    label: str
    table: str
    row: Type[schemas.RowModel]
    insert: Optional[Type[BaseModel]] = None
    patch: Optional[Type[BaseModel]] = None
    order_by: str = "created_at"
    descending: bool = True
    # feed inserts are prepended; name-sorted mirrors re-sort instead
    keep_sorted: bool = False
    search_field: str = "name"
    owner_column: Optional[str] = None


PRODUCTS = EntityConfig(
    label="ProductContainer",
    table="products",
    row=schemas.Product,
    insert=schemas.ProductInsert,
    patch=schemas.ProductUpdate,
)

CATEGORIES = EntityConfig(
    label="CategoryContainer",
    table="categories",
    row=schemas.Category,
    insert=schemas.CategoryInsert,
    patch=schemas.CategoryUpdate,
    order_by="name",
    descending=False,
    keep_sorted=True,
)

SERVICES = EntityConfig(
    label="ServiceContainer",
    table="services",
    row=schemas.Service,
    insert=schemas.ServiceInsert,
    patch=schemas.ServiceUpdate,
)

CART = EntityConfig(
    label="CartContainer",
    table="carts",
    row=schemas.CartItem,
    insert=schemas.CartItemInsert,
    patch=schemas.CartItemUpdate,
    owner_column="user_id",
)

WANT_TO_BUY = EntityConfig(
    label="WantToBuyContainer",
    table="want_to_buy",
    row=schemas.WantToBuy,
    insert=schemas.WantToBuyInsert,
    patch=schemas.WantToBuyUpdate,
    search_field="card_name",
    owner_column="user_id",
)

USER_DETAILS = EntityConfig(
    label="UserDetailsContainer",
    table="user_details",
    row=schemas.UserDetails,
    patch=schemas.UserDetailsUpdate,
    order_by="created_at",
    descending=False,
    search_field="role",
    owner_column="user_id",
)
