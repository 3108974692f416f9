from cardshop.services.change_feed import channel_for
from cardshop.services.session import CustomerSession, SessionRegistry


def test_remount_drops_the_previous_users_state(ctx, fake_redis):
    session = CustomerSession(ctx, "alice")
    session.mount()
    session.cart.add_product("p1")
    old_cart = session.cart

    session.remount("bob")

    assert old_cart.bridge is None
    assert session.cart.items == []
    assert session.profile.details.user_id == "bob"
    # one subscription per mounted container, none left over from alice
    assert len(fake_redis.subscribers[channel_for("carts")]) == 1
    session.close()


def test_customer_session_takes_role_from_profile(ctx, elevated):
    elevated.insert("user_details", {"user_id": "admin-1", "role": "admin"})
    session = CustomerSession(ctx, "admin-1")
    session.mount()

    assert session.is_admin
    assert session.cart.store.is_admin
    session.close()


def test_registry_reuses_sessions_and_gates_admin(ctx, elevated):
    elevated.insert("user_details", {"user_id": "admin-1", "role": "admin"})
    registry = SessionRegistry(ctx)

    assert registry.customer("alice") is registry.customer("alice")
    assert registry.admin("alice") is None
    console = registry.admin("admin-1")
    assert console is not None
    assert console.want_to_buy.store.elevated

    registry.close_all()
    assert registry.customers == {}
    assert registry.admins == {}
