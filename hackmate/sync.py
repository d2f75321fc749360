# hackmate/sync.py
"""Helpers shared by the per-entity sync services."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Set, TypeVar

from pydantic import BaseModel, ValidationError

from hackmate.errors import StoreUnavailableError
from hackmate.store.document_store import DocumentSnapshot, DocumentStore, Filter
from hackmate.store.watch import Unsubscribe

logger = logging.getLogger("hackmate.sync")

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

_background: Set["asyncio.Task[Any]"] = set()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_datetime(value: Any) -> datetime:
    """Normalize a stored timestamp; anything unreadable becomes 'now'."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return utcnow()
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return utcnow()


async def with_timeout(awaitable: Awaitable[T], seconds: float, fallback: T) -> T:
    """Race `awaitable` against a timer; resolve to `fallback` when the timer wins.

    The losing read is cancelled without being awaited: a worker thread stuck on
    the database must not hold the caller past the bound.
    """
    task = asyncio.ensure_future(awaitable)
    done, _ = await asyncio.wait({task}, timeout=seconds)
    if task in done:
        return task.result()

    task.cancel()
    task.add_done_callback(_consume)
    logger.warning("Store read timed out after %.1fs, using fallback", seconds)
    return fallback


def _consume(task: "asyncio.Task[Any]") -> None:
    if not task.cancelled():
        task.exception()


def to_models(
    snapshots: List[DocumentSnapshot],
    model: Callable[[dict], M],
    timestamp_fields: tuple = (),
) -> List[M]:
    """Map snapshots to domain models, normalizing the given timestamp fields."""
    out: List[M] = []
    for snap in snapshots:
        item = to_model(snap, model, timestamp_fields)
        if item is not None:
            out.append(item)
    return out


def to_model(snapshot: DocumentSnapshot, model: Callable[[dict], M], timestamp_fields: tuple = ()):
    if not snapshot.exists:
        return None
    data = snapshot.to_dict()
    for name in timestamp_fields:
        data[name] = to_datetime(data.get(name))
    try:
        return model(data)
    except ValidationError as exc:
        logger.warning("Skipping malformed %s/%s: %s", snapshot.collection, snapshot.id, exc.errors()[:1])
        return None


def subscribe_collection(
    store: DocumentStore,
    collection: str,
    filters: Sequence[Filter],
    model: Callable[[dict], M],
    callback: Callable[[List[M]], None],
    *,
    timestamp_fields: tuple = (),
    sort_key: Optional[Callable[[M], Any]] = None,
    descending: bool = False,
    limit: Optional[int] = None,
) -> Unsubscribe:
    """Push the full, re-mapped, ordered result of a query on every change.

    A stream error delivers one empty list and ends the subscription.
    """

    def on_next(snapshots: List[DocumentSnapshot]) -> None:
        items = to_models(snapshots, model, timestamp_fields)
        if sort_key is not None:
            items.sort(key=sort_key, reverse=descending)
        if limit is not None:
            items = items[:limit]
        callback(items)

    def on_error(exc: BaseException) -> None:
        logger.error("Error subscribing to %s: %s", collection, exc)
        callback([])

    try:
        return store.on_query(collection, filters, on_next, on_error)
    except StoreUnavailableError as exc:
        logger.error("Cannot subscribe to %s: %s", collection, exc)
        callback([])
        return _noop


def _noop() -> None:
    return None


async def first_snapshot(
    subscribe: Callable[[Callable[[T], None]], Unsubscribe],
    seconds: float,
    fallback: T,
) -> T:
    """One-shot read through a subscription: wait for its first delivery, then close it."""
    delivered: "asyncio.Future[T]" = asyncio.get_running_loop().create_future()

    def callback(value: T) -> None:
        if not delivered.done():
            delivered.set_result(value)

    unsubscribe = subscribe(callback)
    try:
        return await with_timeout(delivered, seconds, fallback)
    finally:
        unsubscribe()


def fire_and_forget(coro: Awaitable[Any], what: str) -> "asyncio.Task[Any]":
    """Run a best-effort write in the background; failures are logged, never raised."""

    async def _guarded() -> None:
        try:
            await coro
        except Exception as exc:
            logger.warning("Background write failed (%s): %s", what, exc)

    task = asyncio.get_running_loop().create_task(_guarded())
    _background.add(task)
    task.add_done_callback(_background.discard)
    return task


async def wait_background() -> None:
    """Wait for every pending background write started on this loop."""
    loop = asyncio.get_running_loop()
    pending = [t for t in _background if t.get_loop() is loop]
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)
