"""
Bounded memory of recently seen event ids.

Webhook platforms retry deliveries that were not acknowledged in time,
so the same message id can arrive more than once.
"""

from collections import OrderedDict


class RecentIds:
    """LRU set: remembers the last `capacity` ids."""

    def __init__(self, capacity: int = 1024):
        self.capacity = capacity
        self._ids: OrderedDict[str, None] = OrderedDict()

    def seen(self, event_id: str) -> bool:
        """Record event_id; True if it was already recorded."""
        if self.capacity <= 0:
            return False
        if event_id in self._ids:
            self._ids.move_to_end(event_id)
            return True
        self._ids[event_id] = None
        if len(self._ids) > self.capacity:
            self._ids.popitem(last=False)
        return False

    def __len__(self) -> int:
        return len(self._ids)
