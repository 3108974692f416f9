# cardshop/api/routers/carts.py
from typing import Literal

from fastapi import APIRouter, Depends

from cardshop.api.deps import get_catalog, get_session, unwrap
from cardshop.domain.schemas import CartItemInsert, CartOut, HandoffOut, QuantityIn
from cardshop.services.order_handoff import order_handoff
from cardshop.services.session import Catalog, CustomerSession

router = APIRouter(prefix="/carts/me", tags=["carts"])


def _cart_out(session: CustomerSession, catalog: Catalog) -> CartOut:
    lines = session.cart.lines(catalog.products, catalog.services)
    return CartOut(
        items=lines,
        total=session.cart.total(lines),
        item_count=session.cart.item_count(),
    )


@router.get("", response_model=CartOut)
def get_cart(
    session: CustomerSession = Depends(get_session),
    catalog: Catalog = Depends(get_catalog),
):
    return _cart_out(session, catalog)


@router.post("/items", response_model=CartOut)
def add_item(
    payload: CartItemInsert,
    session: CustomerSession = Depends(get_session),
    catalog: Catalog = Depends(get_catalog),
):
    if payload.product_id:
        unwrap(session.cart.add_product(payload.product_id, payload.amount))
    else:
        unwrap(session.cart.add_service(payload.service_id, payload.amount))
    return _cart_out(session, catalog)


@router.put("/items/{target_id}", response_model=CartOut)
def set_quantity(
    target_id: str,
    payload: QuantityIn,
    kind: Literal["product", "service"] = "product",
    session: CustomerSession = Depends(get_session),
    catalog: Catalog = Depends(get_catalog),
):
    if kind == "product":
        unwrap(session.cart.set_quantity(target_id, payload.quantity))
    else:
        unwrap(session.cart.set_service_quantity(target_id, payload.quantity))
    return _cart_out(session, catalog)


@router.delete("/items/{target_id}", response_model=CartOut)
def remove_item(
    target_id: str,
    kind: Literal["product", "service"] = "product",
    session: CustomerSession = Depends(get_session),
    catalog: Catalog = Depends(get_catalog),
):
    if kind == "product":
        unwrap(session.cart.remove_product(target_id))
    else:
        unwrap(session.cart.remove_service(target_id))
    return _cart_out(session, catalog)


@router.delete("", response_model=CartOut)
def clear_cart(
    session: CustomerSession = Depends(get_session),
    catalog: Catalog = Depends(get_catalog),
):
    unwrap(session.cart.clear())
    return _cart_out(session, catalog)


@router.get("/checkout", response_model=HandoffOut)
def checkout(
    session: CustomerSession = Depends(get_session),
    catalog: Catalog = Depends(get_catalog),
):
    """Order summary deep-link; the order itself is completed over chat."""
    url = unwrap(order_handoff(session.cart, catalog.products, catalog.services))
    return HandoffOut(url=url)
