import re

from cardshop.domain.errors import ErrorKind
from cardshop.services.blob_storage import MediaUpload
from cardshop.services.want_to_buy_service import WantToBuyContainer


def test_customer_sees_only_own_requests(ctx):
    alice = WantToBuyContainer(ctx.restricted("alice"), "alice")
    bob = WantToBuyContainer(ctx.restricted("bob"), "bob")
    alice.initialize()
    bob.initialize()

    created = alice.create({"card_name": "Pikachu Illustrator", "condition": "NM"})
    bob.create({"card_name": "Black Lotus"})

    assert created.data.user_id == "alice"
    assert [i.card_name for i in alice.items] == ["Pikachu Illustrator"]
    assert [r["card_name"] for r in ctx.restricted("alice").fetch("want_to_buy")] == ["Pikachu Illustrator"]


def test_create_without_user_is_unauthorized(public_store):
    requests_ = WantToBuyContainer(public_store)
    result = requests_.create({"card_name": "Mew"})
    assert result.error is ErrorKind.UNAUTHORIZED


def test_search_uses_card_name(ctx):
    alice = WantToBuyContainer(ctx.restricted("alice"), "alice")
    alice.create({"card_name": "Charizard Base Set"})
    alice.create({"card_name": "Blastoise"})

    assert [i.card_name for i in alice.search("base")] == ["Charizard Base Set"]


def test_admin_console_sees_and_completes_every_request(ctx, elevated):
    ctx.restricted("alice").insert("want_to_buy", {"card_name": "Pikachu"})
    ctx.restricted("bob").insert("want_to_buy", {"card_name": "Mew"})
    console = WantToBuyContainer(elevated)
    console.mount()

    assert len(console.items) == 2
    pikachu = console.search("pika")[0]
    assert console.mark_done(pikachu.id)

    assert [i.card_name for i in console.completed()] == ["Pikachu"]
    assert [i.card_name for i in console.pending()] == ["Mew"]
    assert [i.card_name for i in console.by_user("bob")] == ["Mew"]

    assert console.mark_pending(pikachu.id)
    assert len(console.pending()) == 2
    console.unmount()


def test_owner_sees_admin_status_change_on_sync(ctx, elevated):
    alice = WantToBuyContainer(ctx.restricted("alice"), "alice")
    alice.mount()
    item = alice.create({"card_name": "Pikachu"}).data

    elevated.update("want_to_buy", item.id, {"done": True})
    alice.sync()

    assert alice.find_by_id(item.id).done is True
    alice.unmount()


def test_requesters_resolves_profiles(ctx, elevated):
    for user in ("alice", "bob"):
        elevated.insert("user_details", {"user_id": user, "role": "customer"})
        ctx.restricted(user).insert("want_to_buy", {"card_name": f"{user}'s card"})
    console = WantToBuyContainer(elevated)
    console.initialize()

    requesters = console.requesters()

    assert sorted(requesters) == ["alice", "bob"]
    assert requesters["bob"].role == "customer"


def test_requesters_without_elevated_store_is_empty(ctx):
    ctx.restricted("bob").insert("want_to_buy", {"card_name": "Mew"})
    admin = WantToBuyContainer(ctx.restricted("admin-1", role="admin"))
    admin.initialize()

    assert [i.user_id for i in admin.items] == ["bob"]
    assert admin.requesters() == {}


def test_create_with_photo(ctx, fake_http):
    alice = WantToBuyContainer(ctx.restricted("alice"), "alice")
    result = alice.create_with_media({"card_name": "Mew"}, MediaUpload("mew.jpeg", b"img", "image/jpeg"))

    assert re.search(r"/public/media/want-to-buy/\d+-[0-9a-z]{11}\.jpeg$", result.data.media_url)
    assert fake_http.posts[0]["headers"]["Authorization"] == "Bearer anon"
