# import all models so they register in Base.metadata

from cardshop.data.models.category import CategoryModel
from cardshop.data.models.product import ProductModel
from cardshop.data.models.service import ServiceModel
from cardshop.data.models.cart_item import CartItemModel
from cardshop.data.models.want_to_buy import WantToBuyModel
from cardshop.data.models.user_details import UserDetailsModel

# remote table name -> model
TABLES = {
    model.__tablename__: model
    for model in (
        CategoryModel,
        ProductModel,
        ServiceModel,
        CartItemModel,
        WantToBuyModel,
        UserDetailsModel,
    )
}

__all__ = [
    "CategoryModel",
    "ProductModel",
    "ServiceModel",
    "CartItemModel",
    "WantToBuyModel",
    "UserDetailsModel",
    "TABLES",
]
