# hackmate/store/document_store.py
"""
Document store adapter.

Schemaless documents grouped in collections, persisted through SQLAlchemy in the
`documents` table. Every public operation is a coroutine; the blocking SQL work
runs in Starlette's threadpool so callers can race it against a timer.

Write transforms:
- SERVER_TIMESTAMP  -> commit time (UTC)
- ArrayUnion(...)   -> existing list plus the missing values
- UNSET             -> field stripped before writing (None is stored as-is)
"""

from __future__ import annotations

import copy
import logging
import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from hackmate.errors import DocumentNotFoundError, StoreUnavailableError
from hackmate.models.document import Document
from hackmate.store.watch import OnError, Unsubscribe, WatchRegistry

logger = logging.getLogger("hackmate.store")

_ID_ALPHABET = string.ascii_letters + string.digits
_DATETIME_TAG = "__datetime__"


class _Sentinel:
    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return self._name


SERVER_TIMESTAMP = _Sentinel("SERVER_TIMESTAMP")
UNSET = _Sentinel("UNSET")


class ArrayUnion:
    def __init__(self, *values: Any) -> None:
        self.values = values

    def __repr__(self) -> str:
        return f"ArrayUnion{self.values!r}"


class Filter(NamedTuple):
    field: str
    op: str
    value: Any

    def matches(self, data: Dict[str, Any]) -> bool:
        if self.field not in data:
            return False
        current = data[self.field]
        if self.op == "==":
            return current == self.value
        # array_contains
        return isinstance(current, list) and self.value in current


def where(field_path: str, op: str, value: Any) -> Filter:
    if op not in ("==", "array_contains"):
        raise ValueError(f"Unsupported filter operator: {op!r}")
    return Filter(field_path, op, value)


@dataclass(frozen=True)
class DocumentSnapshot:
    collection: str
    id: str
    _data: Optional[Dict[str, Any]] = field(default=None, repr=False)

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self._data)

    def get(self, key: str, default: Any = None) -> Any:
        return (self._data or {}).get(key, default)


# ----------------------------------------------------------------------
# JSON column encoding (datetimes survive the round trip)
# ----------------------------------------------------------------------
def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return {_DATETIME_TAG: value.isoformat()}
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode(v) for v in value]
    return value


def _decode(value: Any) -> Any:
    if isinstance(value, dict):
        if len(value) == 1 and _DATETIME_TAG in value:
            return datetime.fromisoformat(value[_DATETIME_TAG])
        return {k: _decode(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_decode(v) for v in value]
    return value


def _resolve(fields: Dict[str, Any], existing: Optional[Dict[str, Any]], now: datetime) -> Dict[str, Any]:
    existing = existing or {}
    out: Dict[str, Any] = {}
    for key, value in fields.items():
        if value is UNSET:
            continue
        if value is SERVER_TIMESTAMP:
            out[key] = now
        elif isinstance(value, ArrayUnion):
            current = existing.get(key)
            merged = list(current) if isinstance(current, list) else []
            for item in value.values:
                if item not in merged:
                    merged.append(item)
            out[key] = merged
        elif isinstance(value, dict):
            nested = existing.get(key)
            out[key] = _resolve(value, nested if isinstance(nested, dict) else None, now)
        else:
            out[key] = value
    return out


class _Op(NamedTuple):
    kind: str  # set | update | delete
    collection: str
    doc_id: str
    fields: Dict[str, Any]
    merge: bool


# ----------------------------------------------------------------------
# Batched writes
# ----------------------------------------------------------------------
class WriteBatch:
    """Collects writes and commits them in one all-or-nothing transaction."""

    def __init__(self, store: "DocumentStore") -> None:
        self._store = store
        self._ops: List[_Op] = []
        self._committed = False

    def __len__(self) -> int:
        return len(self._ops)

    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> "WriteBatch":
        self._ops.append(_Op("set", collection, doc_id, dict(data), merge))
        return self

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> "WriteBatch":
        self._ops.append(_Op("update", collection, doc_id, dict(fields), True))
        return self

    def delete(self, collection: str, doc_id: str) -> "WriteBatch":
        self._ops.append(_Op("delete", collection, doc_id, {}, False))
        return self

    async def commit(self) -> None:
        if self._committed:
            raise RuntimeError("Batch already committed")
        self._committed = True
        await self._store._commit(self._ops)


# ----------------------------------------------------------------------
# Store
# ----------------------------------------------------------------------
class DocumentStore:
    def __init__(self, session_factory: Callable[[], Any], *, verify: bool = True) -> None:
        self._session_factory = session_factory
        self._registry = WatchRegistry()
        self._closed = False

        if verify:
            try:
                with self._session_factory() as session:
                    session.execute(text("SELECT 1"))
            except SQLAlchemyError as exc:
                self._closed = True
                raise StoreUnavailableError(f"Document store unavailable: {exc}") from exc

    @staticmethod
    def new_id() -> str:
        return "".join(secrets.choice(_ID_ALPHABET) for _ in range(20))

    @property
    def active_watches(self) -> int:
        return len(self._registry)

    def close(self) -> None:
        self._closed = True
        self._registry.close()

    def batch(self) -> WriteBatch:
        self._ensure_open()
        return WriteBatch(self)

    # ---------------- reads ----------------
    async def get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        return await self._run(self._get, collection, doc_id)

    async def query(self, collection: str, *filters: Filter) -> List[DocumentSnapshot]:
        return await self._run(self._query, collection, filters)

    # ---------------- writes ----------------
    async def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        await self._commit([_Op("set", collection, doc_id, dict(data), merge)])

    async def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        await self._commit([_Op("update", collection, doc_id, dict(fields), True)])

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._commit([_Op("delete", collection, doc_id, {}, False)])

    # ---------------- subscriptions ----------------
    def on_document(
        self,
        collection: str,
        doc_id: str,
        on_next: Callable[[DocumentSnapshot], None],
        on_error: OnError = None,
    ) -> Unsubscribe:
        self._ensure_open()
        return self._registry.listen(
            ("document", collection, doc_id),
            lambda: self.get(collection, doc_id),
            on_next,
            on_error,
        )

    def on_query(
        self,
        collection: str,
        filters: Sequence[Filter],
        on_next: Callable[[List[DocumentSnapshot]], None],
        on_error: OnError = None,
    ) -> Unsubscribe:
        self._ensure_open()
        filters = tuple(filters)
        return self._registry.listen(
            ("query", collection, filters),
            lambda: self.query(collection, *filters),
            on_next,
            on_error,
        )

    # ---------------- internals ----------------
    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreUnavailableError("Document store is not available")

    async def _run(self, fn: Callable[..., Any], *args: Any) -> Any:
        self._ensure_open()
        return await run_in_threadpool(fn, *args)

    async def _commit(self, ops: Sequence[_Op]) -> None:
        if not ops:
            return
        changed = await self._run(self._write, list(ops))
        self._registry.notify(changed)

    def _get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        with self._session_factory() as session:
            row = self._row(session, collection, doc_id)
            data = _decode(row.data) if row is not None else None
        return DocumentSnapshot(collection, doc_id, data)

    def _query(self, collection: str, filters: Tuple[Filter, ...]) -> List[DocumentSnapshot]:
        with self._session_factory() as session:
            rows = session.execute(
                select(Document).where(Document.collection == collection).order_by(Document.id)
            ).scalars().all()
            snapshots = [DocumentSnapshot(collection, row.doc_id, _decode(row.data)) for row in rows]
        return [s for s in snapshots if all(f.matches(s._data) for f in filters)]

    def _write(self, ops: List[_Op]) -> List[Tuple[str, str]]:
        now = datetime.now(timezone.utc)
        with self._session_factory() as session:
            try:
                for op in ops:
                    self._apply(session, op, now)
                    session.flush()
                session.commit()
            except Exception:
                session.rollback()
                raise
        logger.debug("Committed %d write(s)", len(ops))
        return [(op.collection, op.doc_id) for op in ops]

    @staticmethod
    def _row(session: Any, collection: str, doc_id: str) -> Optional[Document]:
        return session.execute(
            select(Document).where(Document.collection == collection, Document.doc_id == doc_id)
        ).scalar_one_or_none()

    def _apply(self, session: Any, op: _Op, now: datetime) -> None:
        row = self._row(session, op.collection, op.doc_id)

        if op.kind == "delete":
            if row is not None:
                session.delete(row)
            return

        if op.kind == "update" and row is None:
            raise DocumentNotFoundError(op.collection, op.doc_id)

        current = _decode(row.data) if row is not None else {}
        if op.merge:
            data = {**current, **_resolve(op.fields, current, now)}
        else:
            data = _resolve(op.fields, None, now)

        if row is None:
            session.add(Document(collection=op.collection, doc_id=op.doc_id, data=_encode(data)))
        else:
            row.data = _encode(data)
