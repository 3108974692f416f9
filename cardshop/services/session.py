# cardshop/services/session.py
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from cardshop.data.database import Base, make_engine, make_session_factory
from cardshop.services.blob_storage import BlobStorage
from cardshop.services.cart_service import CartContainer
from cardshop.services.catalog_service import CategoryContainer, ProductContainer, ServiceContainer
from cardshop.services.change_feed import ChangeFeed
from cardshop.services.entity_container import EntityContainer
from cardshop.services.store_client import StoreClient
from cardshop.services.user_details_service import UserDetailsContainer
from cardshop.services.want_to_buy_service import WantToBuyContainer
from cardshop.utils.settings import STORE_ANON_KEY, STORE_SERVICE_ROLE_KEY
from cardshop.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class StoreContext:
    """Shared handles, built once at startup and passed down explicitly."""

    session_factory: object
    feed: Optional[ChangeFeed] = None
    blobs: Optional[BlobStorage] = None
    admin_blobs: Optional[BlobStorage] = None
    engine: object = None

    @classmethod
    def from_settings(cls) -> "StoreContext":
        engine = make_engine(pool_pre_ping=True)
        return cls(
            session_factory=make_session_factory(engine),
            engine=engine,
            feed=ChangeFeed(),
            blobs=BlobStorage(api_key=STORE_ANON_KEY),
            admin_blobs=BlobStorage(api_key=STORE_SERVICE_ROLE_KEY),
        )

    def create_schema(self):
        if self.engine is not None:
            Base.metadata.create_all(bind=self.engine)

    def restricted(self, user_id: Optional[str] = None, role: Optional[str] = "customer") -> StoreClient:
        return StoreClient(self.session_factory, self.feed, self.blobs, user_id=user_id, role=role)

    def elevated(self) -> StoreClient:
        return StoreClient(
            self.session_factory, self.feed, self.admin_blobs or self.blobs, elevated=True
        )


class _Group:
    """A set of containers mounted, synced and torn down together."""

    containers: List[EntityContainer]

    def mount(self):
        for c in self.containers:
            c.mount()

    def sync(self) -> int:
        return sum(c.sync() for c in self.containers)

    def close(self):
        for c in self.containers:
            c.unmount()


class Catalog(_Group):
    """Public product, category and service mirrors."""

    def __init__(self, store: StoreClient):
        self.products = ProductContainer(store)
        self.categories = CategoryContainer(store)
        self.services = ServiceContainer(store)
        self.containers = [self.categories, self.products, self.services]


class CustomerSession(_Group):
    """Profile, cart and card requests of one signed-in user."""

    def __init__(self, ctx: StoreContext, user_id: str):
        self.ctx = ctx
        self._build(user_id)

    def _build(self, user_id: str):
        self.user_id = user_id
        store = self.ctx.restricted(user_id)
        self.profile = UserDetailsContainer(store, user_id)
        self.cart = CartContainer(store, user_id)
        self.want_to_buy = WantToBuyContainer(store, user_id)
        self.containers = [self.profile, self.cart, self.want_to_buy]

    @property
    def is_admin(self) -> bool:
        return self.profile.is_admin

    def mount(self):
        self.profile.mount()
        # re-bind the owned containers with the role the profile grants
        store = self.ctx.restricted(self.user_id, self.profile.role or "customer")
        for c in (self.cart, self.want_to_buy):
            c.store = store
            c.mount()

    def remount(self, user_id: str):
        """Identity switch: drop every feed and mirror, then load the new user."""
        logger.info(f"Switching session {self.user_id} -> {user_id}")
        self.close()
        self._build(user_id)
        self.mount()


class AdminConsole(_Group):
    """Catalog management plus every user's card requests."""

    def __init__(self, ctx: StoreContext, user_id: str):
        store = ctx.restricted(user_id, role="admin")
        self.user_id = user_id
        self.products = ProductContainer(store)
        self.categories = CategoryContainer(store)
        self.services = ServiceContainer(store)
        self.want_to_buy = WantToBuyContainer(ctx.elevated())
        self.containers = [self.categories, self.products, self.services, self.want_to_buy]


@dataclass
class SessionRegistry:
    ctx: StoreContext
    customers: Dict[str, CustomerSession] = field(default_factory=dict)
    admins: Dict[str, AdminConsole] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def customer(self, user_id: str) -> CustomerSession:
        with self._lock:
            session = self.customers.get(user_id)
            if session is None:
                session = CustomerSession(self.ctx, user_id)
                session.mount()
                self.customers[user_id] = session
        session.sync()
        return session

    def admin(self, user_id: str) -> Optional[AdminConsole]:
        """The admin console for `user_id`, or None when the profile is not an admin."""
        if not self.customer(user_id).is_admin:
            return None
        with self._lock:
            console = self.admins.get(user_id)
            if console is None:
                console = AdminConsole(self.ctx, user_id)
                console.mount()
                self.admins[user_id] = console
        console.sync()
        return console

    def sign_out(self, user_id: str):
        with self._lock:
            session = self.customers.pop(user_id, None)
            console = self.admins.pop(user_id, None)
        for group in (session, console):
            if group is not None:
                group.close()

    def close_all(self):
        for user_id in list(self.customers):
            self.sign_out(user_id)
