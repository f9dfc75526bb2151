# Overview: Record store gateway over the SQLAlchemy session; every write commits on its own.

from __future__ import annotations

from typing import Any, Iterator, Sequence

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
"""
Record Store Contract (authoritative)

- Per-table insert (single / bulk), update-by-filter, delete-by-filter,
  select with equality / range / membership filters, ordering, offset+limit
  pagination, and exact counts.
- Each write is committed on its own. A failure rolls the session back and
  propagates; earlier writes of a multi-step operation stay written.
- Membership filters are split into chunks of STORE_ID_CHUNK_SIZE values.
- Full scans are paginated STORE_PAGE_SIZE rows at a time and check an
  optional cancellation signal before every page.
- The only join is a read-only inner join used for reporting filters.
"""

DEFAULT_ID_CHUNK_SIZE = 50
DEFAULT_PAGE_SIZE = 1000


class ExportCancelled(Exception):
    """Raised when a long-running read is cancelled by the caller."""


def chunked(values: Sequence[Any], size: int) -> Iterator[list[Any]]:
    size = max(1, int(size))
    for start in range(0, len(values), size):
        yield list(values[start:start + size])


def _raise_if_cancelled(cancel) -> None:
    if cancel is not None and cancel.is_set():
        raise ExportCancelled("Export cancelled")


class RecordStore:
    """
    Table gateway used by every service.

    Filters are plain dicts keyed by column name:
        eq={"status": "IN_STOCK"}        -> status = 'IN_STOCK' (None -> IS NULL)
        in_={"id": [...]}                -> id IN (...)
        gte={"date": d1}, lte={...}      -> inclusive range
        search=(["name", "memo"], "abc") -> case-insensitive substring on any column
        join=Transaction, join_eq={...}  -> inner join + equality on the joined table

    order_by takes column names; a leading "-" sorts descending. The primary
    key is always appended so pages are stable.
    """

    def __init__(self, session=None, *, id_chunk_size: int | None = None, page_size: int | None = None):
        self.session = session if session is not None else db.session
        self._id_chunk_size = id_chunk_size
        self._page_size = page_size

    @property
    def id_chunk_size(self) -> int:
        if self._id_chunk_size is not None:
            return self._id_chunk_size
        return int(current_app.config.get("STORE_ID_CHUNK_SIZE", DEFAULT_ID_CHUNK_SIZE))

    @property
    def page_size(self) -> int:
        if self._page_size is not None:
            return self._page_size
        return int(current_app.config.get("STORE_PAGE_SIZE", DEFAULT_PAGE_SIZE))

    # ------------------------------------------------------------------
    # query building
    # ------------------------------------------------------------------

    def _query(
        self,
        model,
        *,
        eq: dict | None = None,
        in_: dict | None = None,
        gte: dict | None = None,
        lte: dict | None = None,
        search: tuple[Sequence[str], str] | None = None,
        join=None,
        join_eq: dict | None = None,
    ):
        query = self.session.query(model)
        for key, value in (eq or {}).items():
            column = getattr(model, key)
            query = query.filter(column.is_(None) if value is None else column == value)
        for key, values in (in_ or {}).items():
            query = query.filter(getattr(model, key).in_(list(values)))
        for key, value in (gte or {}).items():
            query = query.filter(getattr(model, key) >= value)
        for key, value in (lte or {}).items():
            query = query.filter(getattr(model, key) <= value)
        if search:
            columns, text = search
            text = (text or "").strip()
            if text:
                pattern = f"%{text}%"
                query = query.filter(or_(*[getattr(model, c).ilike(pattern) for c in columns]))
        if join is not None:
            query = query.join(join)
            for key, value in (join_eq or {}).items():
                query = query.filter(getattr(join, key) == value)
        return query

    @staticmethod
    def _ordered(query, model, order_by: Sequence[str] | None):
        clauses = []
        keys = []
        for key in order_by or ():
            desc = key.startswith("-")
            name = key[1:] if desc else key
            column = getattr(model, name)
            clauses.append(column.desc() if desc else column.asc())
            keys.append(name)
        if "id" not in keys:
            clauses.append(model.id.asc())
        return query.order_by(*clauses)

    def _commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise

    def _membership_batches(self, in_: dict | None) -> Iterator[dict | None]:
        """Split the (single) membership filter into request-sized chunks."""
        if not in_:
            yield in_
            return
        if len(in_) != 1:
            yield in_
            return
        (key, values), = in_.items()
        values = list(values)
        if not values:
            return
        for chunk in chunked(values, self.id_chunk_size):
            yield {key: chunk}

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------

    def insert(self, model, values: dict):
        obj = model(**values)
        self.session.add(obj)
        try:
            self.session.flush()
        except SQLAlchemyError:
            self.session.rollback()
            raise
        self._commit()
        return obj

    def insert_many(self, model, rows: Sequence[dict]) -> list:
        objs = [model(**values) for values in rows]
        if not objs:
            return []
        self.session.add_all(objs)
        try:
            self.session.flush()
        except SQLAlchemyError:
            self.session.rollback()
            raise
        self._commit()
        return objs

    def update(self, model, values: dict, *, eq: dict | None = None, in_: dict | None = None) -> int:
        if not eq and not in_:
            raise ValueError("update requires a filter")
        updated = 0
        try:
            for batch in self._membership_batches(in_):
                query = self._query(model, eq=eq, in_=batch)
                updated += query.update(values, synchronize_session="fetch")
        except SQLAlchemyError:
            self.session.rollback()
            raise
        self._commit()
        return updated

    def delete(self, model, *, eq: dict | None = None, in_: dict | None = None) -> int:
        if not eq and not in_:
            raise ValueError("delete requires a filter")
        deleted = 0
        try:
            for batch in self._membership_batches(in_):
                query = self._query(model, eq=eq, in_=batch)
                deleted += query.delete(synchronize_session="fetch")
        except SQLAlchemyError:
            self.session.rollback()
            raise
        self._commit()
        return deleted

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    def get(self, model, record_id: str):
        if not record_id:
            return None
        return self.session.get(model, record_id)

    def select(
        self,
        model,
        *,
        order_by: Sequence[str] | None = None,
        offset: int | None = None,
        limit: int | None = None,
        **filters,
    ) -> list:
        query = self._ordered(self._query(model, **filters), model, order_by)
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def select_in(
        self,
        model,
        column: str,
        values: Sequence[Any],
        *,
        cancel=None,
        order_by: Sequence[str] | None = None,
        **filters,
    ) -> list:
        """Membership lookup, one request per chunk of ids."""
        unique = list(dict.fromkeys(v for v in values if v is not None))
        extra_in = dict(filters.pop("in_", None) or {})
        rows: list = []
        for chunk in chunked(unique, self.id_chunk_size):
            _raise_if_cancelled(cancel)
            rows.extend(
                self.select(model, in_={**extra_in, column: chunk}, order_by=order_by, **filters)
            )
        return rows

    def iter_pages(self, model, *, cancel=None, order_by: Sequence[str] | None = None, **filters) -> Iterator[list]:
        """Yield successive pages of a filtered scan."""
        size = self.page_size
        offset = 0
        while True:
            _raise_if_cancelled(cancel)
            page = self.select(model, order_by=order_by, offset=offset, limit=size, **filters)
            if not page:
                return
            yield page
            if len(page) < size:
                return
            offset += size

    def select_all(self, model, *, cancel=None, order_by: Sequence[str] | None = None, **filters) -> list:
        rows: list = []
        for page in self.iter_pages(model, cancel=cancel, order_by=order_by, **filters):
            rows.extend(page)
        return rows

    def count(self, model, **filters) -> int:
        return self._query(model, **filters).count()
