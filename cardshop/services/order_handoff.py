# cardshop/services/order_handoff.py
from decimal import Decimal
from typing import List, Optional
from urllib.parse import quote

from cardshop.domain.errors import ErrorKind
from cardshop.domain.schemas import CartLine
from cardshop.services.cart_service import CartContainer
from cardshop.services.entity_container import Result
from cardshop.utils.settings import WHATSAPP_NUMBER, ORDER_CURRENCY
from cardshop.utils.logging import get_logger

logger = get_logger(__name__)

WHATSAPP_BASE = "https://wa.me"


def _money(currency: str, value: Decimal) -> str:
    return f"{currency} ${value:,.2f}"


def build_order_message(lines: List[CartLine], currency: str = ORDER_CURRENCY) -> str:
    """Human readable order summary sent to the shop instead of a checkout."""
    total = CartContainer.total(lines)
    products = [line for line in lines if line.kind == "product"]
    services = [line for line in lines if line.kind == "service"]

    message = "Hello! I would like to order the following items:\n\n"

    if products:
        message += "*Products:*\n"
        for n, line in enumerate(products, start=1):
            message += f"{n}. {line.name}\n"
            message += f"   Quantity: {line.amount}\n"
            message += f"   Price: {_money(currency, line.price)} each\n"
            message += f"   Subtotal: {_money(currency, line.subtotal)}\n\n"

    if services:
        message += "*Services:*\n"
        for n, line in enumerate(services, start=1):
            message += f"{n}. {line.name}\n"
            message += f"   Price: {_money(currency, line.price)}\n\n"

    message += f"*Total Amount: {_money(currency, total)}*\n\n"
    message += "Please let me know the next steps. Thank you!"
    return message


def whatsapp_link(message: str, number: Optional[str] = None) -> str:
    # same escaping as encodeURIComponent
    text = quote(message, safe="-_.!~*'()")
    return f"{WHATSAPP_BASE}/{number or WHATSAPP_NUMBER}?text={text}"


def order_handoff(cart: CartContainer, products, services, number: Optional[str] = None) -> Result:
    """
    Build the messaging deep-link for the current cart.
    Result.data is the link; an empty cart yields INVALID.
    """
    lines = cart.lines(products, services)
    if not lines:
        return Result.fail(ErrorKind.INVALID, "Cart is empty")

    link = whatsapp_link(build_order_message(lines), number)
    logger.info(f"Order hand-off for user {cart.owner_id}: {len(lines)} lines, total {CartContainer.total(lines)}")
    return Result.ok(link)
