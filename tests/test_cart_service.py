from decimal import Decimal

import pytest

from cardshop.domain.errors import ErrorKind
from cardshop.services.cart_service import CartContainer
from cardshop.services.catalog_service import ProductContainer, ServiceContainer


@pytest.fixture
def cart(ctx):
    cart = CartContainer(ctx.restricted("alice"), owner_id="alice")
    cart.mount()
    yield cart
    cart.unmount()


@pytest.fixture
def catalog(admin_store):
    pikachu = admin_store.insert("products", {"name": "Pikachu", "price": Decimal("5.50"), "media_url_front": "front.png"})
    grading = admin_store.insert("services", {"name": "Grading", "price": Decimal("20")})
    products = ProductContainer(admin_store)
    services = ServiceContainer(admin_store)
    products.initialize()
    services.initialize()
    return products, services, pikachu["id"], grading["id"]


def test_adding_the_same_product_sums_quantities(cart, ctx):
    assert cart.add_product("p1", 2)
    assert cart.add_product("p1", 3)

    assert len(cart.items) == 1
    assert cart.amount_of("p1") == 5
    rows = ctx.restricted("alice").fetch("carts")
    assert [(r["product_id"], r["amount"]) for r in rows] == [("p1", 5)]


def test_two_stale_sessions_never_create_duplicate_rows(ctx):
    phone = CartContainer(ctx.restricted("alice"), owner_id="alice")
    laptop = CartContainer(ctx.restricted("alice"), owner_id="alice")
    phone.initialize()
    laptop.initialize()

    phone.add_product("p1")
    laptop.add_product("p1")

    rows = ctx.restricted("alice").fetch("carts")
    assert len(rows) == 1
    assert rows[0]["amount"] == 2
    assert laptop.amount_of("p1") == 2


def test_set_quantity_overwrites(cart):
    cart.add_product("p1", 4)
    result = cart.set_quantity("p1", 1)

    assert result.data.amount == 1
    assert cart.amount_of("p1") == 1


@pytest.mark.parametrize("quantity", [0, -1])
def test_non_positive_quantity_removes_the_line(cart, ctx, quantity):
    cart.add_product("p1", 2)
    assert cart.set_quantity("p1", quantity)

    assert cart.items == []
    assert ctx.restricted("alice").fetch("carts") == []


def test_add_rejects_non_positive_quantity(cart):
    result = cart.add_product("p1", 0)
    assert result.error is ErrorKind.INVALID
    assert cart.items == []


def test_services_are_kept_apart_from_products(cart):
    cart.add_service("s1")
    cart.add_service("s1", 2)
    cart.add_product("p1")

    assert len(cart.items) == 2
    assert cart.item_count() == 4

    assert cart.remove_service("s1")
    assert [i.product_id for i in cart.items] == ["p1"]


def test_lines_and_total(cart, catalog):
    products, services, pikachu_id, grading_id = catalog
    cart.add_product(pikachu_id, 2)
    cart.add_service(grading_id)
    cart.add_product("gone")

    lines = {line.target_id: line for line in cart.lines(products, services)}

    assert lines[pikachu_id].name == "Pikachu"
    assert lines[pikachu_id].image == "front.png"
    assert lines[pikachu_id].subtotal == Decimal("11.00")
    assert lines[grading_id].kind == "service"
    assert lines["gone"].name == "Unknown Product"
    assert lines["gone"].price == Decimal("0")
    assert CartContainer.total(list(lines.values())) == Decimal("31.00")


def test_clear_empties_only_this_users_cart(cart, ctx):
    bob = CartContainer(ctx.restricted("bob"), owner_id="bob")
    bob.add_product("p1")
    cart.add_product("p1")
    cart.add_service("s1")

    assert cart.clear()

    assert cart.items == []
    assert ctx.restricted("alice").fetch("carts") == []
    assert len(ctx.restricted("bob").fetch("carts")) == 1


def test_cart_without_user_is_unauthorized(public_store):
    cart = CartContainer(public_store)

    for result in (cart.add_product("p1"), cart.set_quantity("p1", 2), cart.remove_product("p1"), cart.clear()):
        assert result.error is ErrorKind.UNAUTHORIZED


def test_remote_cart_changes_arrive_on_sync(cart, ctx):
    other_tab = CartContainer(ctx.restricted("alice"), owner_id="alice")
    other_tab.add_product("p9", 3)

    cart.sync()
    assert cart.amount_of("p9") == 3

    other_tab.remove_product("p9")
    cart.sync()
    assert cart.items == []


def test_cart_patch_only_changes_amount(cart, ctx):
    item = cart.add_product("p1", 2).data

    moved = cart.update(item.id, {"user_id": "bob"})
    assert moved.error is ErrorKind.INVALID
    assert ctx.restricted("bob").fetch("carts") == []

    assert cart.update(item.id, {"amount": 4}).data.amount == 4
    assert cart.amount_of("p1") == 4


def test_deleted_product_leaves_the_cart_on_sync(cart, ctx, admin_store, foreign_keys):
    product = admin_store.insert("products", {"name": "Mew", "price": Decimal("10")})
    cart.add_product(product["id"], 2)

    admin_store.delete("products", product["id"])
    cart.sync()

    assert cart.items == []
    assert ctx.restricted("alice").fetch("carts") == []
