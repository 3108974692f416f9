# cardshop/services/cart_service.py
from decimal import Decimal
from typing import List

from cardshop.domain import entities
from cardshop.domain.errors import ErrorKind, StoreError
from cardshop.domain.schemas import CartItem, CartLine
from cardshop.services.entity_container import EntityContainer, Result
from cardshop.utils.logging import get_logger

logger = get_logger(__name__)

PRODUCT = "product_id"
SERVICE = "service_id"


class CartContainer(EntityContainer[CartItem]):
    """
    Koszyk jednego usera, wiersz na (user, produkt) lub (user, usluga).

    commands (add, set_quantity, remove, clear) ida przez atomowy upsert/delete
    na ograniczeniu unikalnosci, wiec dwa szybkie "dodaj" nie tworza duplikatu.
    query (lines, total, item_count) tylko odczyt lokalnego lustra
    """

    config = entities.CART

    def _require_user(self) -> Result | None:
        if self.owner_id is None:
            logger.error(f"{self.label} - No user logged in")
            return Result.fail(ErrorKind.UNAUTHORIZED, "No user logged in")
        return None

    def _existing(self, column: str, target_id: str) -> List[CartItem]:
        return [i for i in self.items if getattr(i, column) == target_id]

    # commands
    def _add(self, column: str, target_id: str, quantity: int) -> Result:
        denied = self._require_user()
        if denied:
            return denied
        if quantity < 1:
            return Result.fail(ErrorKind.INVALID, "Quantity must be at least 1")

        try:
            row = self.store.upsert(
                self.config.table,
                {"user_id": self.owner_id, column: target_id, "amount": quantity},
                conflict=("user_id", column),
                increment=("amount",),
            )
        except StoreError as e:
            return self._fail("adding to", e)

        item = self._parse(row)
        self._apply_update(item, insert_missing=True)
        logger.info(f"{self.label} - {column} {target_id} now x{item.amount} for user {self.owner_id}")
        return Result.ok(item)

    def add_product(self, product_id: str, quantity: int = 1) -> Result:
        return self._add(PRODUCT, product_id, quantity)

    def add_service(self, service_id: str, quantity: int = 1) -> Result:
        return self._add(SERVICE, service_id, quantity)

    def _set_quantity(self, column: str, target_id: str, quantity: int) -> Result:
        if quantity <= 0:
            return self._remove(column, target_id)

        denied = self._require_user()
        if denied:
            return denied

        try:
            row = self.store.upsert(
                self.config.table,
                {"user_id": self.owner_id, column: target_id, "amount": quantity},
                conflict=("user_id", column),
            )
        except StoreError as e:
            return self._fail("updating", e)

        item = self._parse(row)
        self._apply_update(item, insert_missing=True)
        return Result.ok(item)

    def set_quantity(self, product_id: str, quantity: int) -> Result:
        return self._set_quantity(PRODUCT, product_id, quantity)

    def set_service_quantity(self, service_id: str, quantity: int) -> Result:
        return self._set_quantity(SERVICE, service_id, quantity)

    def _remove(self, column: str, target_id: str) -> Result:
        denied = self._require_user()
        if denied:
            return denied

        try:
            rows = self.store.delete_where(
                self.config.table, {"user_id": self.owner_id, column: target_id}
            )
        except StoreError as e:
            return self._fail("removing from", e)

        removed = {r["id"] for r in rows} | {i.id for i in self._existing(column, target_id)}
        for item_id in removed:
            self._apply_delete(item_id)
        return Result.ok()

    def remove_product(self, product_id: str) -> Result:
        return self._remove(PRODUCT, product_id)

    def remove_service(self, service_id: str) -> Result:
        return self._remove(SERVICE, service_id)

    def clear(self) -> Result:
        denied = self._require_user()
        if denied:
            return denied

        try:
            self.store.delete_where(self.config.table, {"user_id": self.owner_id})
        except StoreError as e:
            return self._fail("clearing", e)

        with self._lock:
            if self.mounted:
                self._items = []
        return Result.ok()

    # queries
    def amount_of(self, product_id: str) -> int:
        return sum(i.amount or 0 for i in self._existing(PRODUCT, product_id))

    def item_count(self) -> int:
        return sum(i.amount or 0 for i in self.items)

    def lines(self, products, services) -> List[CartLine]:
        """Resolve cart rows against the product and service mirrors."""
        out = []
        for item in self.items:
            if item.product_id:
                product = products.find_by_id(item.product_id)
                out.append(CartLine(
                    kind="product",
                    cart_item_id=item.id,
                    target_id=item.product_id,
                    name=(product.name if product else None) or "Unknown Product",
                    price=(product.price if product else None) or Decimal("0"),
                    amount=item.amount or 1,
                    image=product.media_url_front if product else None,
                ))
            elif item.service_id:
                service = services.find_by_id(item.service_id)
                out.append(CartLine(
                    kind="service",
                    cart_item_id=item.id,
                    target_id=item.service_id,
                    name=(service.name if service else None) or "Unknown Service",
                    price=(service.price if service else None) or Decimal("0"),
                    amount=item.amount or 1,
                    image=service.media_url if service else None,
                ))
        return out

    @staticmethod
    def total(lines: List[CartLine]) -> Decimal:
        return sum((line.subtotal for line in lines), Decimal("0.00"))
