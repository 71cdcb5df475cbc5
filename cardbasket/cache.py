import threading
import time
from concurrent.futures import Future
from typing import Callable, Dict, Hashable, Optional, Tuple

from .config import logger


class QueryCache:
    """
    Keyed result cache with single-flight loading.

    While a key is being loaded, other callers asking for it wait on the same
    future instead of calling the loader again. Failed loads are not stored.
    Entries live until ``clear()`` or, when ``ttl`` is set, until they expire.
    """

    def __init__(self, ttl: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[Hashable, Tuple[float, object]] = {}
        self._in_flight: Dict[Hashable, Future] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self):
        with self._lock:
            return len(self._entries)

    def __contains__(self, key):
        with self._lock:
            return self._fresh(key)

    def _fresh(self, key) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        if self.ttl is not None and self._clock() - entry[0] >= self.ttl:
            del self._entries[key]
            return False
        return True

    def get_or_load(self, key: Hashable, loader: Callable[[], object]):
        with self._lock:
            if self._fresh(key):
                self.hits += 1
                logger.info(f"Using cached results for {key}")
                return self._entries[key][1]
            future = self._in_flight.get(key)
            owner = future is None
            if owner:
                self.misses += 1
                future = Future()
                self._in_flight[key] = future
            else:
                self.hits += 1

        if not owner:
            return future.result()

        try:
            value = loader()
        except BaseException as e:
            with self._lock:
                del self._in_flight[key]
            future.set_exception(e)
            raise

        with self._lock:
            self._entries[key] = (self._clock(), value)
            del self._in_flight[key]
        future.set_result(value)
        return value

    def clear(self):
        with self._lock:
            self._entries.clear()
