# cardshop/services/entity_container.py
import threading
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

from pydantic import BaseModel, ValidationError

from cardshop.domain.entities import EntityConfig
from cardshop.domain.errors import ErrorKind, StoreError
from cardshop.domain.schemas import ChangeEvent
from cardshop.services import views
from cardshop.services.blob_storage import MediaPrefix, MediaUpload, blob_path
from cardshop.services.store_client import StoreClient
from cardshop.services.subscription_bridge import ChangeBridge
from cardshop.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class Result(Generic[T]):
    """Outcome of a container operation; truthy on success."""

    success: bool
    error: Optional[ErrorKind] = None
    data: Optional[T] = None
    message: str = ""

    def __bool__(self):
        return self.success

    @classmethod
    def ok(cls, data=None) -> "Result":
        return cls(True, data=data)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str = "") -> "Result":
        return cls(False, error=kind, message=message)


def _sort_key(value):
    if value is None:
        return ""
    if isinstance(value, str):
        return value.lower()
    return value


class EntityContainer(Generic[T]):
    """
    In-memory mirror of one remote table.

    Writes go through the store client and are applied locally as soon as
    the store confirms them. The change feed echo of our own write is then
    a no-op, because every fold is keyed by id.
    """

    config: EntityConfig

    def __init__(
        self,
        store: StoreClient,
        owner_id: Optional[str] = None,
        config: Optional[EntityConfig] = None,
    ):
        if config is not None:
            self.config = config
        self.store = store
        self.owner_id = owner_id
        self.loading = False
        self.mounted = True
        self.bridge: Optional[ChangeBridge] = None
        self._items: List[T] = []
        self._lock = threading.RLock()

    @property
    def label(self) -> str:
        return self.config.label

    @property
    def filters(self) -> Optional[Dict[str, Any]]:
        if self.config.owner_column and self.owner_id is not None:
            return {self.config.owner_column: self.owner_id}
        return None

    @property
    def items(self) -> List[T]:
        with self._lock:
            return list(self._items)

    def _parse(self, row: Dict[str, Any]) -> T:
        return self.config.row.model_validate(row)

    def _fail(self, action: str, e: Exception) -> Result:
        kind = e.kind if isinstance(e, StoreError) else ErrorKind.INVALID
        logger.error(f"{self.label} - Error {action} {self.config.table}: {e}")
        return Result.fail(kind, str(e))

    # lifecycle
    def initialize(self) -> Result:
        self.loading = True
        try:
            rows = self.store.fetch(
                self.config.table,
                self.filters,
                order_by=self.config.order_by,
                descending=self.config.descending,
            )
            items = [self._parse(r) for r in rows]
        except (StoreError, ValidationError) as e:
            with self._lock:
                if self.mounted:
                    self._items = []
            self.loading = False
            return self._fail("fetching", e)

        with self._lock:
            if self.mounted:
                self._items = items
        self.loading = False
        return Result.ok(items)

    def _open_bridge(self):
        if self.bridge is not None:
            return
        try:
            self.bridge = ChangeBridge.open(self)
        except StoreError as e:
            logger.warning(f"{self.label} - realtime unavailable, mirror will not follow remote changes: {e}")

    def mount(self) -> Result:
        """Open the change feed, then load the snapshot."""
        self.mounted = True
        self._open_bridge()
        return self.initialize()

    def unmount(self):
        self.mounted = False
        if self.bridge is not None:
            self.bridge.close()
            self.bridge = None

    def sync(self) -> int:
        """Apply any pending change events."""
        if self.bridge is None or not self.mounted:
            return 0
        return self.bridge.pump()

    # local folds, shared by optimistic writes and the change feed
    def _resort(self):
        self._items.sort(
            key=lambda i: _sort_key(getattr(i, self.config.order_by, None)),
            reverse=self.config.descending,
        )

    def _index(self, item_id: str) -> int:
        for n, item in enumerate(self._items):
            if item.id == item_id:
                return n
        return -1

    def _apply_insert(self, item: T):
        with self._lock:
            if not self.mounted or self._index(item.id) >= 0:
                return
            self._items.insert(0, item)
            if self.config.keep_sorted:
                self._resort()

    def _apply_update(self, item: T, insert_missing: bool = False):
        with self._lock:
            if not self.mounted:
                return
            n = self._index(item.id)
            if n < 0:
                if insert_missing:
                    self._items.insert(0, item)
                    if self.config.keep_sorted:
                        self._resort()
                return
            self._items[n] = item
            if self.config.keep_sorted:
                self._resort()

    def _apply_delete(self, item_id: str):
        with self._lock:
            if not self.mounted:
                return
            self._items = [i for i in self._items if i.id != item_id]

    def apply_event(self, event: ChangeEvent):
        if event.op == "DELETE":
            if "id" in event.row:
                self._apply_delete(event.row["id"])
            return
        try:
            item = self._parse(event.row)
        except ValidationError as e:
            logger.warning(f"{self.label} - dropping {event.op} event: {e}")
            return
        if event.op == "INSERT":
            self._apply_insert(item)
        else:
            self._apply_update(item)

    # write-through
    def _insert_values(self, data) -> Dict[str, Any]:
        schema = self.config.insert
        if isinstance(data, BaseModel):
            data = data.model_dump(exclude_unset=True)
        if schema is None:
            return dict(data)
        return schema.model_validate(data).model_dump(exclude_none=True)

    def _patch_values(self, patch) -> Dict[str, Any]:
        schema = self.config.patch
        if isinstance(patch, BaseModel):
            patch = patch.model_dump(exclude_unset=True)
        if schema is None:
            return dict(patch)
        return schema.model_validate(patch).model_dump(exclude_unset=True)

    def create(self, data) -> Result:
        try:
            values = self._insert_values(data)
            row = self.store.insert(self.config.table, values)
        except (StoreError, ValidationError) as e:
            return self._fail("creating", e)

        item = self._parse(row)
        self._apply_insert(item)
        logger.info(f"{self.label} - Successfully created {self.config.table} {item.id}")
        return Result.ok(item)

    def update(self, item_id: str, patch) -> Result:
        try:
            values = self._patch_values(patch)
            row = self.store.update(self.config.table, item_id, values)
        except (StoreError, ValidationError) as e:
            return self._fail("updating", e)

        item = self._parse(row)
        self._apply_update(item)
        logger.info(f"{self.label} - Successfully updated {self.config.table} {item.id}")
        return Result.ok(item)

    def delete(self, item_id: str) -> Result:
        try:
            self.store.delete(self.config.table, item_id)
        except StoreError as e:
            return self._fail("deleting", e)

        self._apply_delete(item_id)
        logger.info(f"{self.label} - Successfully deleted {self.config.table} {item_id}")
        return Result.ok()

    def _upload(self, prefix: MediaPrefix, media: MediaUpload) -> str:
        """Upload media, raising StoreError so the owning row is never written."""
        return self.store.upload_blob(
            blob_path(prefix, media.filename), media.content, media.content_type
        )

    # derived queries
    def find_by_id(self, item_id: str) -> Optional[T]:
        return views.find_by_id(self.items, item_id)

    def search(self, query: str) -> List[T]:
        return views.search(self.items, query, self.config.search_field)

    def filter_by(self, field: str, value: Any) -> List[T]:
        return views.filter_by(self.items, field, value)

    def filter_by_range(self, field: str, low, high) -> List[T]:
        return views.filter_by_range(self.items, field, low, high)

    def partition_by_flag(self, field: str, default: bool = False) -> Tuple[List[T], List[T]]:
        return views.partition_by_flag(self.items, field, default)
