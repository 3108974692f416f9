# cardshop/services/subscription_bridge.py
import threading
from typing import Iterable, List, Optional

from cardshop.services.change_feed import Subscription
from cardshop.utils.logging import get_logger

logger = get_logger(__name__)


class ChangeBridge:
    """
    Folds a container's change feeds into its local items.

    One subscription per table, scoped with the container's owner filter.
    Events are applied in delivery order each time pump() is called.
    pump() and close() hold one lock, a PubSub connection must never be
    read from two worker threads at once.
    """

    def __init__(self, container, subscriptions: List[Subscription]):
        self.container = container
        self.subscriptions = subscriptions
        self._lock = threading.Lock()

    @classmethod
    def open(cls, container, tables: Optional[Iterable[str]] = None) -> "ChangeBridge":
        tables = list(tables or [container.config.table])
        subscriptions = []
        try:
            for table in tables:
                subscriptions.append(container.store.subscribe(table, container.filters))
        except Exception:
            for sub in subscriptions:
                sub.close()
            raise
        return cls(container, subscriptions)

    @property
    def closed(self) -> bool:
        return all(s.closed for s in self.subscriptions)

    def pump(self) -> int:
        applied = 0
        with self._lock:
            for sub in self.subscriptions:
                for event in sub.poll():
                    self.container.apply_event(event)
                    applied += 1
        if applied:
            logger.debug(f"{self.container.config.label} - applied {applied} change events")
        return applied

    def close(self):
        with self._lock:
            for sub in self.subscriptions:
                sub.close()
