# cardshop/services/catalog_service.py
from typing import List, Optional

from pydantic import ValidationError

from cardshop.domain import entities
from cardshop.domain.errors import ErrorKind, StoreError
from cardshop.domain.schemas import Category, Product, ProductWithCategory, Service
from cardshop.services.blob_storage import MediaPrefix, MediaUpload
from cardshop.services.entity_container import EntityContainer, Result
from cardshop.utils.logging import get_logger

logger = get_logger(__name__)


class CategoryContainer(EntityContainer[Category]):
    config = entities.CATEGORIES

    @staticmethod
    def is_active(category: Category) -> bool:
        # categories without a flag are shown
        return category.active is not False

    def active_categories(self) -> List[Category]:
        active, _ = self.partition_by_flag("active", default=True)
        return active

    def toggle_active(self, category_id: str) -> Result:
        category = self.find_by_id(category_id)
        if category is None:
            logger.error(f"{self.label} - Category {category_id} not found")
            return Result.fail(ErrorKind.NOT_FOUND, f"category {category_id} not found")
        return self.update(category_id, {"active": not self.is_active(category)})


class ProductContainer(EntityContainer[Product]):
    config = entities.PRODUCTS

    def by_category(self, category_id: str) -> List[Product]:
        return self.filter_by("category_id", category_id)

    def by_condition(self, condition: str) -> List[Product]:
        return self.filter_by("condition", condition)

    def with_category(self, categories: CategoryContainer) -> List[ProductWithCategory]:
        """Products joined with their category from the category mirror."""
        out = []
        for product in self.items:
            category = categories.find_by_id(product.category_id) if product.category_id else None
            out.append(ProductWithCategory(**product.model_dump(), category=category))
        return out

    def create_with_media(
        self,
        data,
        front: Optional[MediaUpload] = None,
        back: Optional[MediaUpload] = None,
    ) -> Result:
        """
        Upload card images, then create the product.
        A failed upload aborts before the row is written.
        """
        try:
            values = self._insert_values(data)
            if front is not None:
                values["media_url_front"] = self._upload(MediaPrefix.CARD_FRONT, front)
            if back is not None:
                values["media_url_back"] = self._upload(MediaPrefix.CARD_BACK, back)
        except (StoreError, ValidationError) as e:
            return self._fail("uploading images for", e)
        return self.create(values)


class ServiceContainer(EntityContainer[Service]):
    config = entities.SERVICES

    def by_price_range(self, min_price, max_price) -> List[Service]:
        return self.filter_by_range("price", min_price, max_price)

    def create_with_media(self, data, image: Optional[MediaUpload] = None) -> Result:
        try:
            values = self._insert_values(data)
            if image is not None:
                values["media_url"] = self._upload(MediaPrefix.SERVICE, image)
        except (StoreError, ValidationError) as e:
            return self._fail("uploading image for", e)
        return self.create(values)
