# cardshop/repos/table_repo.py
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select, insert, update, delete, Table
from sqlalchemy.orm import Session
from sqlalchemy.dialects import postgresql, sqlite

from cardshop.data.database import new_id
from cardshop.domain.errors import ErrorKind, StoreError

Row = Dict[str, Any]

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class TableRepo:
    """Row-level access to one table. Commit/rollback is left to the caller."""

    def __init__(self, db: Session, table: Table):
        self.db = db
        self.table = table

    def _where(self, stmt, filters: Optional[Dict[str, Any]]):
        for column, value in (filters or {}).items():
            col = self.table.c[column]
            if isinstance(value, (list, tuple, set, frozenset)):
                stmt = stmt.where(col.in_(list(value)))
            elif value is None:
                stmt = stmt.where(col.is_(None))
            else:
                stmt = stmt.where(col == value)
        return stmt

    def select_rows(
        self,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Row]:
        stmt = self._where(select(self.table), filters)
        if order_by:
            col = self.table.c[order_by]
            stmt = stmt.order_by(col.desc() if descending else col.asc())
        return [dict(r) for r in self.db.execute(stmt).mappings().all()]

    def insert_row(self, values: Row) -> Row:
        stmt = insert(self.table).values(**values).returning(*self.table.c)
        return dict(self.db.execute(stmt).mappings().one())

    def update_rows(self, filters: Dict[str, Any], values: Row) -> List[Row]:
        stmt = (
            self._where(update(self.table), filters)
            .values(**values)
            .returning(*self.table.c)
        )
        return [dict(r) for r in self.db.execute(stmt).mappings().all()]

    def delete_rows(self, filters: Dict[str, Any]) -> List[Row]:
        stmt = self._where(delete(self.table), filters).returning(*self.table.c)
        return [dict(r) for r in self.db.execute(stmt).mappings().all()]

    def upsert_row(
        self,
        values: Row,
        conflict: Iterable[str],
        increment: Iterable[str] = (),
        update_existing: bool = True,
    ) -> tuple[Row, Optional[str]]:
        """
        INSERT ... ON CONFLICT on the unique constraint over `conflict`.

        Returns (row, op) where op is "INSERT", "UPDATE" or None when an
        existing row was kept untouched.
        """
        dialect = self.db.get_bind().dialect.name
        make_insert = _UPSERT_INSERTS.get(dialect)
        if make_insert is None:
            raise StoreError(ErrorKind.UNAVAILABLE, f"upsert not supported on {dialect}")

        conflict = list(conflict)
        values = dict(values)
        values.setdefault("id", new_id())
        stmt = make_insert(self.table).values(**values)

        set_ = {}
        if update_existing:
            for column in values:
                if column in conflict or column in ("id", "created_at"):
                    continue
                if column in increment:
                    set_[column] = self.table.c[column] + stmt.excluded[column]
                else:
                    set_[column] = stmt.excluded[column]
        if set_:
            stmt = stmt.on_conflict_do_update(index_elements=conflict, set_=set_)
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=conflict)

        got = self.db.execute(stmt.returning(*self.table.c)).mappings().first()
        if got is not None:
            row = dict(got)
            return row, "INSERT" if row["id"] == values["id"] else "UPDATE"

        # conflict with nothing to update: hand back the stored row
        existing = self.select_rows({c: values[c] for c in conflict})
        return existing[0], None

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
