from collections import defaultdict, deque
from datetime import datetime, timedelta, timezone

import pytest
import redis
import requests
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from cardshop.data.database import Base, make_session_factory
import cardshop.data.models  # noqa: F401
from cardshop.services.blob_storage import BlobStorage
from cardshop.services.change_feed import ChangeFeed
from cardshop.services.session import StoreContext


class FakePubSub:
    def __init__(self, broker):
        self.broker = broker
        self.channels = set()
        self.queue = deque()

    def subscribe(self, *channels):
        for channel in channels:
            self.channels.add(channel)
            self.broker.subscribers[channel].append(self)

    def unsubscribe(self, *channels):
        for channel in channels or list(self.channels):
            self.channels.discard(channel)
            if self in self.broker.subscribers[channel]:
                self.broker.subscribers[channel].remove(self)

    def get_message(self, ignore_subscribe_messages=False, timeout=0.0):
        return self.queue.popleft() if self.queue else None

    def close(self):
        self.queue.clear()


class FakeRedis:
    """In-memory pub/sub with the redis-py call shapes the feed uses."""

    def __init__(self):
        self.subscribers = defaultdict(list)
        self.fail_publish = False
        self.published = []

    def publish(self, channel, message):
        if self.fail_publish:
            raise redis.ConnectionError("redis down")
        self.published.append((channel, message))
        receivers = list(self.subscribers[channel])
        for pubsub in receivers:
            pubsub.queue.append({"type": "message", "channel": channel, "data": message})
        return len(receivers)

    def pubsub(self, ignore_subscribe_messages=False):
        return FakePubSub(self)


class FakeResponse:
    def __init__(self, status_code=200):
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)


class FakeHttp:
    """Stands in for requests.Session in blob uploads."""

    def __init__(self):
        self.posts = []
        self.status_code = 200
        self.error = None

    def post(self, url, data=None, headers=None, timeout=None):
        self.posts.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return FakeResponse(self.status_code)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def foreign_keys(engine):
    """Enforce FK constraints on the shared in-memory connection."""
    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA foreign_keys=ON")


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def fake_http():
    return FakeHttp()


@pytest.fixture
def ctx(engine, fake_redis, fake_http):
    return StoreContext(
        session_factory=make_session_factory(engine),
        feed=ChangeFeed(client=fake_redis),
        blobs=BlobStorage(base_url="http://storage.test", api_key="anon", bucket="media", http=fake_http),
        admin_blobs=BlobStorage(base_url="http://storage.test", api_key="service", bucket="media", http=fake_http),
        engine=engine,
    )


@pytest.fixture
def broken_ctx(tmp_path):
    """A store whose database cannot be opened."""
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path}/missing/dir/shop.db")
    return StoreContext(session_factory=make_session_factory(engine), engine=engine)


@pytest.fixture
def elevated(ctx):
    return ctx.elevated()


@pytest.fixture
def admin_store(ctx):
    return ctx.restricted("admin-1", role="admin")


@pytest.fixture
def public_store(ctx):
    return ctx.restricted(None, role=None)


@pytest.fixture
def at():
    """Fixed timestamps so created_at ordering is deterministic."""

    def _at(minutes: int) -> datetime:
        return datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=minutes)

    return _at
