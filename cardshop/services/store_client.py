# cardshop/services/store_client.py
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, OperationalError, InterfaceError, SQLAlchemyError

from cardshop.data.models import TABLES
from cardshop.domain.errors import ErrorKind, StoreError
from cardshop.domain.schemas import ChangeEvent
from cardshop.repos.table_repo import TableRepo, Row
from cardshop.services.blob_storage import BlobStorage
from cardshop.services.change_feed import ChangeFeed, Subscription
from cardshop.utils.logging import get_logger

logger = get_logger(__name__)

CATALOG_TABLES = frozenset({"products", "categories", "services"})
OWNED_TABLES = frozenset({"carts", "want_to_buy", "user_details"})
# owner-only even for the admin role
SELF_ONLY_TABLES = frozenset({"user_details"})

OWNER_COLUMN = "user_id"

# rows the database would otherwise change behind the change feed's back
DEPENDENTS = {
    "products": [("carts", "product_id", "delete")],
    "services": [("carts", "service_id", "delete")],
    "categories": [("products", "category_id", "detach")],
}


class StoreClient:
    """
    Jedyny punkt dostepu do tabel sklepu.

    -restricted: zwiazany z (user_id, role), wiersze wlasnosciowe zawezone do usera
    -elevated: bez zawezania, tylko do odczytow administracyjnych miedzy userami
    -po kazdym commicie publikuje zdarzenie zmiany na kanal tabeli
    """

    def __init__(
        self,
        session_factory,
        feed: ChangeFeed | None = None,
        blobs: BlobStorage | None = None,
        *,
        user_id: str | None = None,
        role: str | None = None,
        elevated: bool = False,
    ):
        self.session_factory = session_factory
        self.feed = feed
        self.blobs = blobs
        self.user_id = user_id
        self.role = role
        self.elevated = elevated

    def __repr__(self):
        tier = "elevated" if self.elevated else "restricted"
        return f"<StoreClient {tier} user={self.user_id} role={self.role}>"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def privileged(self) -> bool:
        return self.elevated or self.is_admin

    # row level security
    def _table(self, table: str):
        model = TABLES.get(table)
        if model is None:
            raise StoreError(ErrorKind.NOT_FOUND, f"Unknown table {table}")
        return model.__table__

    def _scope(self, table: str, filters: Optional[Dict[str, Any]], write: bool) -> Dict[str, Any]:
        filters = dict(filters or {})

        if table in CATALOG_TABLES:
            if write and not self.privileged:
                raise StoreError(ErrorKind.UNAUTHORIZED, f"Writing {table} requires the admin role")
            return filters

        if self.elevated:
            return filters
        if self.user_id is None:
            raise StoreError(ErrorKind.UNAUTHORIZED, f"{table} requires a signed-in user")
        if self.is_admin and table not in SELF_ONLY_TABLES:
            return filters

        requested = filters.get(OWNER_COLUMN, self.user_id)
        if requested != self.user_id:
            raise StoreError(ErrorKind.UNAUTHORIZED, f"No access to other users' {table}")
        filters[OWNER_COLUMN] = self.user_id
        return filters

    def _own_values(self, table: str, values: Dict[str, Any]) -> Dict[str, Any]:
        values = dict(values)
        if table not in OWNED_TABLES or self.elevated:
            return values
        values[OWNER_COLUMN] = self.user_id
        if table == "user_details" and values.get("role") not in (None, "customer"):
            raise StoreError(ErrorKind.UNAUTHORIZED, "Role changes require the elevated client")
        return values

    @contextmanager
    def _session(self, action: str, table: str):
        db = self.session_factory()
        try:
            yield db
        except StoreError:
            db.rollback()
            raise
        except IntegrityError as e:
            db.rollback()
            raise StoreError(ErrorKind.CONFLICT, f"{action} {table}: {e.orig}") from e
        except (OperationalError, InterfaceError) as e:
            db.rollback()
            raise StoreError(ErrorKind.UNAVAILABLE, f"{action} {table}: {e.orig}") from e
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreError(ErrorKind.UNKNOWN, f"{action} {table}: {e}") from e
        finally:
            db.close()

    def _clear_dependents(self, db, table: str, ids: List[str]) -> List[Tuple[str, str, List[Row]]]:
        """Delete or detach rows referencing `ids`. Returns (table, op, rows) to publish."""
        changes = []
        for child, column, action in DEPENDENTS.get(table, ()):
            repo = TableRepo(db, self._table(child))
            if action == "delete":
                changes.append((child, "DELETE", repo.delete_rows({column: ids})))
            else:
                changes.append((child, "UPDATE", repo.update_rows({column: ids}, {column: None})))
        return changes

    def _publish(self, table: str, op: str, rows: Iterable[Row]):
        if self.feed is None:
            return
        for row in rows:
            self.feed.publish(ChangeEvent(table=table, op=op, row=row))

    # queries
    def fetch(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Row]:
        t = self._table(table)
        scoped = self._scope(table, filters, write=False)
        with self._session("fetch", table) as db:
            return TableRepo(db, t).select_rows(scoped, order_by, descending)

    # commands
    def insert(self, table: str, row: Dict[str, Any]) -> Row:
        t = self._table(table)
        self._scope(table, None, write=True)
        values = self._own_values(table, row)

        with self._session("insert", table) as db:
            repo = TableRepo(db, t)
            created = repo.insert_row(values)
            repo.commit()

        logger.info(f"Inserted {table} {created['id']}")
        self._publish(table, "INSERT", [created])
        return created

    def update(self, table: str, row_id: str, patch: Dict[str, Any]) -> Row:
        t = self._table(table)
        if not patch:
            raise StoreError(ErrorKind.INVALID, f"Empty update for {table} {row_id}")
        if table == "user_details" and "role" in patch and not self.elevated:
            raise StoreError(ErrorKind.UNAUTHORIZED, "Role changes require the elevated client")
        if (
            table in OWNED_TABLES
            and not self.elevated
            and OWNER_COLUMN in patch
            and patch[OWNER_COLUMN] != self.user_id
        ):
            raise StoreError(ErrorKind.UNAUTHORIZED, f"Cannot hand {table} rows to another user")
        scoped = self._scope(table, {"id": row_id}, write=True)

        with self._session("update", table) as db:
            repo = TableRepo(db, t)
            rows = repo.update_rows(scoped, patch)
            if not rows:
                raise StoreError(ErrorKind.NOT_FOUND, f"{table} {row_id} not found")
            repo.commit()

        logger.info(f"Updated {table} {row_id}")
        self._publish(table, "UPDATE", rows)
        return rows[0]

    def delete(self, table: str, row_id: str) -> None:
        t = self._table(table)
        scoped = self._scope(table, {"id": row_id}, write=True)

        with self._session("delete", table) as db:
            repo = TableRepo(db, t)
            changes = self._clear_dependents(db, table, [row_id])
            rows = repo.delete_rows(scoped)
            if not rows:
                raise StoreError(ErrorKind.NOT_FOUND, f"{table} {row_id} not found")
            repo.commit()

        logger.info(f"Deleted {table} {row_id}")
        for child, op, child_rows in changes:
            self._publish(child, op, child_rows)
        self._publish(table, "DELETE", rows)

    def delete_where(self, table: str, filters: Dict[str, Any]) -> List[Row]:
        t = self._table(table)
        scoped = self._scope(table, filters, write=True)
        if not scoped:
            raise StoreError(ErrorKind.INVALID, f"Refusing unfiltered delete on {table}")

        with self._session("delete", table) as db:
            repo = TableRepo(db, t)
            changes = []
            if table in DEPENDENTS:
                ids = [r["id"] for r in repo.select_rows(scoped)]
                changes = self._clear_dependents(db, table, ids)
            rows = repo.delete_rows(scoped)
            repo.commit()

        logger.info(f"Deleted {len(rows)} {table} rows matching {sorted(scoped)}")
        for child, op, child_rows in changes:
            self._publish(child, op, child_rows)
        self._publish(table, "DELETE", rows)
        return rows

    def upsert(
        self,
        table: str,
        row: Dict[str, Any],
        conflict: Iterable[str],
        increment: Iterable[str] = (),
        update: bool = True,
    ) -> Row:
        """
        Atomic insert-or-update keyed by the unique constraint over `conflict`.
        Columns in `increment` are added to the stored value on conflict.
        With update=False an existing row is returned untouched.
        """
        t = self._table(table)
        self._scope(table, None, write=True)
        values = self._own_values(table, row)

        with self._session("upsert", table) as db:
            repo = TableRepo(db, t)
            stored, op = repo.upsert_row(values, conflict, tuple(increment), update)
            repo.commit()

        if op is not None:
            logger.info(f"Upsert {op.lower()} {table} {stored['id']}")
            self._publish(table, op, [stored])
        return stored

    # realtime
    def subscribe(self, table: str, filters: Optional[Dict[str, Any]] = None) -> Subscription:
        self._table(table)
        if self.feed is None:
            raise StoreError(ErrorKind.UNAVAILABLE, "No change feed configured")
        scoped = self._scope(table, filters, write=False)
        return self.feed.subscribe(table, scoped)

    # storage
    def upload_blob(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        if self.blobs is None:
            raise StoreError(ErrorKind.UNAVAILABLE, "No blob storage configured")
        if self.user_id is None and not self.elevated:
            raise StoreError(ErrorKind.UNAUTHORIZED, "Uploads require a signed-in user")
        return self.blobs.upload(path, data, content_type)
