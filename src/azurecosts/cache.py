import asyncio
import threading

from azurecosts.models import SubscriptionWindow


class SubscriptionCache:
    """
    SubscriptionCache: Is a thread-safe store holding the last
    aggregated window per subscription id.

    There is no TTL, size bound or eviction; a window is replaced
    only when a query asks for different dates. Windows are fully
    built before store() and never mutated afterwards, so lookup()
    can hand out the stored reference.

    fetch_lock() gives one asyncio.Lock per subscription. Holding it
    across lookup, fetch and store keeps at most one upstream fetch
    in flight per subscription while other subscriptions proceed.
    """

    def __init__(self) -> "None":
        self._lock: "threading.Lock" = threading.Lock()
        self._windows: "dict[str, SubscriptionWindow]" = {}
        self._fetch_locks: "dict[str, asyncio.Lock]" = {}

    def lookup(self, subscription_id: "str") -> "SubscriptionWindow | None":
        """
        returns the stored window, if any. Dates are not checked.
        """
        with self._lock:
            return self._windows.get(subscription_id)

    def store(self, subscription_id: "str", window: "SubscriptionWindow") -> "None":
        """
        replaces any window stored for the subscription.
        """
        with self._lock:
            self._windows[subscription_id] = window

    def fetch_lock(self, subscription_id: "str") -> "asyncio.Lock":
        with self._lock:
            lock = self._fetch_locks.get(subscription_id)
            if lock is None:
                lock = asyncio.Lock()
                self._fetch_locks[subscription_id] = lock
            return lock

    def __len__(self) -> "int":
        with self._lock:
            return len(self._windows)

    def __contains__(self, subscription_id: "object") -> "bool":
        with self._lock:
            return subscription_id in self._windows
