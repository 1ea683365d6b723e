"""Stream identifier bookkeeping for open item subscriptions."""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Union

logger = logging.getLogger(__name__)

# Largest integer the feed can round-trip through a JSON number
MAX_ID = 2 ** 53 - 1

# Returned by release operations when nothing was open
NOT_FOUND = -1

Items = Union[str, Sequence[str]]
MessageCallback = Callable[[dict], None]


def item_key(name: str, domain: str) -> str:
    """Build the registry key for an item within a domain."""
    return f"{name}:{domain}"


@dataclass
class SubscriptionEntry:
    """One live subscription."""
    stream_id: int
    item_key: str
    callback: Optional[MessageCallback] = None


class SubscriptionRegistry:
    """
    Maps subscribed items to stream ids and back.

    Stream id 0 belongs to the login stream and is never handed out. The
    counter wraps from ``max_id`` back to 1. Re-subscribing an item that is
    already open supersedes the old id: the server closes the old stream and
    the old id stops resolving here.
    """

    def __init__(self, max_id: int = MAX_ID):
        if max_id < 1:
            raise ValueError("max_id must be at least 1")
        self.max_id = max_id
        self._last_id = 0
        self._entries: Dict[str, SubscriptionEntry] = {}
        self._items_by_id: Dict[int, str] = {}

    @property
    def last_id(self) -> int:
        return self._last_id

    def _advance(self) -> int:
        if self._last_id >= self.max_id:
            self._last_id = 0
        self._last_id += 1
        return self._last_id

    def _assign(self, key: str, stream_id: int, callback: Optional[MessageCallback]):
        previous = self._entries.get(key)
        if previous is not None:
            self._items_by_id.pop(previous.stream_id, None)
            logger.debug(f"Stream {previous.stream_id} for {key} superseded by {stream_id}")

        # A wrapped counter can land on an id that is still open
        stale_key = self._items_by_id.get(stream_id)
        if stale_key is not None and stale_key != key:
            logger.warning(f"Stream id {stream_id} reused while {stale_key} still open")
            self._entries.pop(stale_key, None)

        self._items_by_id[stream_id] = key
        self._entries[key] = SubscriptionEntry(stream_id, key, callback)

    def allocate(self, items: Items, domain: str,
                 callback: Optional[MessageCallback] = None) -> int:
        """
        Allocate stream ids for one item or a batch of items.

        For a single item name the new id is returned. For a batch the
        returned id is the batch request id and the items are bound, in order,
        to the ids that follow it.

        Args:
            items: Item name or sequence of item names
            domain: Domain the items are requested in
            callback: Handler bound to every allocated item

        Returns:
            Stream id to place in the outbound request
        """
        if isinstance(items, str):
            stream_id = self._advance()
            self._assign(item_key(items, domain), stream_id, callback)
            return stream_id

        batch_id = self._advance()
        for name in items:
            self._assign(item_key(name, domain), self._advance(), callback)
        return batch_id

    def resolve(self, stream_id: int) -> Optional[MessageCallback]:
        key = self._items_by_id.get(stream_id)
        if key is None:
            return None
        return self._entries[key].callback

    def item_for(self, stream_id: int) -> Optional[str]:
        return self._items_by_id.get(stream_id)

    def release(self, key: str) -> int:
        """Remove an item key from both tables, returning its id or NOT_FOUND."""
        entry = self._entries.pop(key, None)
        if entry is None:
            return NOT_FOUND
        self._items_by_id.pop(entry.stream_id, None)
        return entry.stream_id

    def release_by_id(self, stream_id: int) -> int:
        key = self._items_by_id.get(stream_id)
        if key is None:
            return NOT_FOUND
        return self.release(key)

    def open_ids(self) -> List[int]:
        return [entry.stream_id for entry in self._entries.values()]

    def clear(self):
        self._entries.clear()
        self._items_by_id.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
