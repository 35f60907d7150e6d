"""Short-lived cache of RPC responses keyed by session and request id."""

from __future__ import annotations

import copy
import threading
from collections.abc import Callable
from typing import Any

__all__ = ["CacheError", "CacheEntry", "RequestCache"]


class CacheError(LookupError):
    """Raised when a response is not present in the cache."""


class CacheEntry:
    """A cached response that expires after ``timeout`` milliseconds.

    When the timer fires the entry is marked as timed out and
    ``on_timeout`` is called with no arguments.
    """

    def __init__(
        self,
        timeout: float,
        session_id: str,
        request_id: str,
        response: Any,
        on_timeout: Callable[[], None] | None = None,
    ) -> None:
        self.session_id = session_id
        self.request_id = request_id
        self._response = copy.deepcopy(response)
        self._on_timeout = on_timeout
        self._lock = threading.RLock()
        self._timed_out = False
        self._timer = threading.Timer(timeout / 1000.0, self._expire)
        self._timer.daemon = True
        self._timer.start()

    def _expire(self) -> None:
        with self._lock:
            self._timed_out = True
        if self._on_timeout is not None:
            self._on_timeout()

    @property
    def response(self) -> Any:
        """The cached response."""
        return self._response

    @property
    def timed_out(self) -> bool:
        """Whether the expiry timer has fired."""
        with self._lock:
            return self._timed_out

    def cancel(self) -> None:
        """Stop the expiry timer if it has not fired yet."""
        with self._lock:
            if not self._timed_out:
                self._timer.cancel()


class RequestCache:
    """Responses indexed by session id, then request id.

    Every entry is dropped ``timeout`` milliseconds after it was added;
    a session disappears with its last entry.
    """

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        self._cache: dict[str, dict[str, CacheEntry]] = {}
        self._lock = threading.RLock()

    def add_response(self, session_id: str, request_id: str, response: Any) -> None:
        """Store a copy of ``response`` for the given session and request."""
        with self._lock:
            entry: CacheEntry | None = None

            def expire() -> None:
                self._evict(session_id, request_id, entry)

            entry = CacheEntry(self.timeout, session_id, request_id, response, expire)
            requests = self._cache.setdefault(session_id, {})
            previous = requests.get(request_id)
            if previous is not None:
                previous.cancel()
            requests[request_id] = entry

    def _evict(self, session_id: str, request_id: str, entry: CacheEntry | None) -> None:
        with self._lock:
            requests = self._cache.get(session_id)
            if requests is None:
                return
            if requests.get(request_id) is not entry:
                return
            del requests[request_id]
            if not requests:
                del self._cache[session_id]

    def get_cached_response(self, session_id: str, request_id: str) -> Any:
        """Return a copy of the cached response or raise :class:`CacheError`."""
        with self._lock:
            requests = self._cache.get(session_id)
            if requests is None:
                raise CacheError("Session not cached")
            entry = requests.get(request_id)
            if entry is None:
                raise CacheError("Request not cached")
            return copy.deepcopy(entry.response)

    def clear(self) -> None:
        """Drop every entry and stop its timer."""
        with self._lock:
            for requests in self._cache.values():
                for entry in requests.values():
                    entry.cancel()
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return sum(len(requests) for requests in self._cache.values())