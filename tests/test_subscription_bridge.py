import threading
import time
from collections import deque
from datetime import datetime, timezone
from decimal import Decimal

from cardshop.domain.schemas import ChangeEvent
from cardshop.services.cart_service import CartContainer
from cardshop.services.catalog_service import CategoryContainer, ProductContainer
from cardshop.services.change_feed import Subscription, channel_for
from cardshop.services.subscription_bridge import ChangeBridge


def _row(**values):
    row = {"id": "p1", "name": "Charizard", "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc).isoformat()}
    row.update(values)
    return row


def test_same_insert_twice_is_not_duplicated(public_store):
    products = ProductContainer(public_store)
    event = ChangeEvent(table="products", op="INSERT", row=_row())

    products.apply_event(event)
    products.apply_event(event)

    assert [p.id for p in products.items] == ["p1"]


def test_update_replaces_and_unknown_update_is_dropped(public_store):
    products = ProductContainer(public_store)
    products.apply_event(ChangeEvent(table="products", op="INSERT", row=_row()))

    products.apply_event(ChangeEvent(table="products", op="UPDATE", row=_row(name="Charizard EX")))
    products.apply_event(ChangeEvent(table="products", op="UPDATE", row=_row(id="p2", name="Ghost")))

    assert [(p.id, p.name) for p in products.items] == [("p1", "Charizard EX")]


def test_delete_removes_and_is_idempotent(public_store):
    products = ProductContainer(public_store)
    products.apply_event(ChangeEvent(table="products", op="INSERT", row=_row()))

    products.apply_event(ChangeEvent(table="products", op="DELETE", row={"id": "p1"}))
    products.apply_event(ChangeEvent(table="products", op="DELETE", row={"id": "p1"}))

    assert products.items == []


def test_inserts_are_prepended(public_store):
    products = ProductContainer(public_store)
    products.apply_event(ChangeEvent(table="products", op="INSERT", row=_row(id="p1")))
    products.apply_event(ChangeEvent(table="products", op="INSERT", row=_row(id="p2")))
    assert [p.id for p in products.items] == ["p2", "p1"]


def test_category_feed_keeps_name_order(public_store):
    categories = CategoryContainer(public_store)
    for cid, name in (("c1", "Pokemon"), ("c2", "Digimon"), ("c3", "Yugioh")):
        categories.apply_event(ChangeEvent(table="categories", op="INSERT", row=_row(id=cid, name=name)))

    assert [c.name for c in categories.items] == ["Digimon", "Pokemon", "Yugioh"]


def test_remote_writes_from_other_clients_arrive_on_sync(public_store, admin_store):
    products = ProductContainer(public_store)
    products.mount()
    assert products.items == []

    row = admin_store.insert("products", {"name": "Mewtwo", "price": "12"})
    admin_store.update("products", row["id"], {"price": "15"})
    assert products.items == []

    assert products.sync() == 2
    assert [(p.name, p.price) for p in products.items] == [("Mewtwo", Decimal("15"))]

    admin_store.delete("products", row["id"])
    products.sync()
    assert products.items == []
    products.unmount()


def test_owner_filter_hides_other_users_rows(ctx):
    cart = CartContainer(ctx.restricted("alice"), owner_id="alice")
    cart.mount()

    ctx.restricted("bob").upsert("carts", {"product_id": "p1", "amount": 1}, conflict=("user_id", "product_id"))
    ctx.restricted("alice").upsert("carts", {"product_id": "p2", "amount": 1}, conflict=("user_id", "product_id"))

    cart.sync()
    assert [i.product_id for i in cart.items] == ["p2"]
    cart.unmount()


def test_malformed_messages_are_dropped(public_store, fake_redis):
    products = ProductContainer(public_store)
    products.mount()

    fake_redis.publish(channel_for("products"), "not json")
    fake_redis.publish(channel_for("products"), ChangeEvent(table="products", op="INSERT", row={"id": "x"}).model_dump_json())
    fake_redis.publish(channel_for("products"), ChangeEvent(table="products", op="INSERT", row=_row()).model_dump_json())

    products.sync()
    assert [p.id for p in products.items] == ["p1"]
    products.unmount()


def test_unmount_closes_the_feed(public_store, fake_redis):
    products = ProductContainer(public_store)
    products.mount()
    bridge = products.bridge
    products.unmount()

    assert bridge.closed
    assert fake_redis.subscribers[channel_for("products")] == []


class SlowPubSub:
    """Records whether two threads were ever inside get_message together."""

    def __init__(self, messages):
        self.messages = deque(messages)
        self.busy = False
        self.overlapped = False

    def get_message(self, ignore_subscribe_messages=False, timeout=0.0):
        if self.busy:
            self.overlapped = True
        self.busy = True
        time.sleep(0.002)
        message = self.messages.popleft() if self.messages else None
        self.busy = False
        return message

    def unsubscribe(self, *channels):
        pass

    def close(self):
        pass


def test_pump_from_several_threads_reads_the_feed_one_at_a_time(public_store):
    products = ProductContainer(public_store)
    pubsub = SlowPubSub(
        {"type": "message", "data": ChangeEvent(table="products", op="INSERT", row=_row(id=f"p{n}")).model_dump_json()}
        for n in range(20)
    )
    products.bridge = ChangeBridge(products, [Subscription(pubsub, "products")])

    threads = [threading.Thread(target=products.sync) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert not pubsub.overlapped
    assert len(products.items) == 20
