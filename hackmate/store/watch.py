# hackmate/store/watch.py
"""
Change subscriptions for the document store.

A `Watch` owns one background task that re-reads its target whenever a commit
touches it and hands the full result to every listener. Watches live in a
`WatchRegistry` keyed by what they read, so identical subscriptions share one
watch; the watch stops when its last listener unsubscribes.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, Awaitable, Callable, Dict, Hashable, Iterable, Optional, Set, Tuple

logger = logging.getLogger("hackmate.store.watch")

OnNext = Callable[[Any], None]
OnError = Optional[Callable[[BaseException], None]]
Unsubscribe = Callable[[], None]

_MISSING = object()


class Watch:
    def __init__(
        self,
        key: Tuple[str, str, Hashable],
        fetch: Callable[[], Awaitable[Any]],
        on_closed: Callable[["Watch"], None],
    ) -> None:
        self.key = key
        self._fetch = fetch
        self._on_closed = on_closed
        self._listeners: Dict[int, Tuple[OnNext, OnError]] = {}
        self._latest: Any = _MISSING
        self._dirty = asyncio.Event()
        self._dirty.set()
        self._loop = asyncio.get_running_loop()
        self._task = self._loop.create_task(self._pump())

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def add(self, token: int, on_next: OnNext, on_error: OnError) -> None:
        self._listeners[token] = (on_next, on_error)
        if self._latest is not _MISSING and not self._dirty.is_set():
            # late joiners get the current snapshot without another read;
            # a dirty watch refetches and delivers to everyone anyway
            self._loop.call_soon(self._deliver_latest, token)

    def remove(self, token: int) -> bool:
        """Drop a listener; True when it was the last one."""
        if self._listeners.pop(token, None) is None:
            return False
        return not self._listeners

    def mark_dirty(self) -> None:
        self._dirty.set()

    def cancel(self) -> None:
        self._listeners.clear()
        self._task.cancel()

    def _deliver_latest(self, token: int) -> None:
        listener = self._listeners.get(token)
        if listener is not None:
            _safe_call(listener[0], self._latest)

    async def _pump(self) -> None:
        while True:
            await self._dirty.wait()
            self._dirty.clear()
            try:
                payload = await self._fetch()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("Watch %s failed, closing stream: %s", self.key, exc)
                self._fail(exc)
                return

            self._latest = payload
            for on_next, _ in list(self._listeners.values()):
                _safe_call(on_next, payload)

    def _fail(self, exc: BaseException) -> None:
        listeners = list(self._listeners.values())
        self._listeners.clear()
        self._on_closed(self)
        for _, on_error in listeners:
            if on_error is not None:
                _safe_call(on_error, exc)


def _safe_call(fn: Callable[[Any], None], arg: Any) -> None:
    try:
        fn(arg)
    except Exception:
        logger.exception("Snapshot listener raised")


class WatchRegistry:
    """Reference-counted watches keyed by (kind, collection, target)."""

    def __init__(self) -> None:
        self._watches: Dict[Tuple[str, str, Hashable], Watch] = {}
        self._tokens = itertools.count(1)

    def __len__(self) -> int:
        return len(self._watches)

    def listen(
        self,
        key: Tuple[str, str, Hashable],
        fetch: Callable[[], Awaitable[Any]],
        on_next: OnNext,
        on_error: OnError = None,
    ) -> Unsubscribe:
        watch = self._watches.get(key)
        if watch is None:
            watch = Watch(key, fetch, self._discard)
            self._watches[key] = watch
            logger.debug("Opened watch %s", key)

        token = next(self._tokens)
        watch.add(token, on_next, on_error)

        def unsubscribe() -> None:
            if watch.remove(token) and self._watches.get(key) is watch:
                del self._watches[key]
                watch.cancel()
                logger.debug("Closed watch %s", key)

        return unsubscribe

    def notify(self, changed: Iterable[Tuple[str, str]]) -> None:
        changed = set(changed)
        collections: Set[str] = {collection for collection, _ in changed}
        for (kind, collection, target), watch in list(self._watches.items()):
            if kind == "document":
                hit = (collection, target) in changed
            else:
                hit = collection in collections
            if hit:
                watch.mark_dirty()

    def close(self) -> None:
        for watch in list(self._watches.values()):
            watch.cancel()
        self._watches.clear()

    def _discard(self, watch: Watch) -> None:
        if self._watches.get(watch.key) is watch:
            del self._watches[watch.key]
