"""Reassembly of multi-fragment news envelopes."""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .exceptions import OrphanFragmentError

logger = logging.getLogger(__name__)


def fragment_key(name: str, source: str, guid: str) -> str:
    """Key identifying one in-flight story: item name, MRN source and GUID."""
    return f"{name}:{source}:{guid}"


@dataclass
class FragmentBuffer:
    """Bytes collected so far for a story and the size it must reach."""
    total_size: int
    data: bytearray = field(default_factory=bytearray)


class FragmentAssembler:
    """
    Accumulates fragments per story key until the expected size is reached.

    Works on raw bytes only; decoding the completed payload is the caller's
    job. Buffers are never expired, so a story whose remaining fragments
    never arrive stays buffered until ``discard`` or ``clear``.
    """

    def __init__(self):
        self._buffers: Dict[str, FragmentBuffer] = {}

    def ingest(self, key: str, fragment: bytes, is_first: bool,
               total_size: int) -> Optional[bytes]:
        """
        Add one fragment to the story identified by ``key``.

        Args:
            key: Composite story key (see ``fragment_key``)
            fragment: Decoded fragment bytes
            is_first: True for the first fragment of the story
            total_size: Size of the complete payload in bytes

        Returns:
            The complete payload once all bytes are present, otherwise None

        Raises:
            OrphanFragmentError: A continuation arrived with no open buffer
        """
        if is_first:
            if len(fragment) >= total_size:
                return bytes(fragment)
            if key in self._buffers:
                logger.warning(f"Restarting envelope {key} on a new first fragment")
            self._buffers[key] = FragmentBuffer(total_size, bytearray(fragment))
            return None

        buffer = self._buffers.get(key)
        if buffer is None:
            raise OrphanFragmentError(key)

        buffer.data.extend(fragment)
        if len(buffer.data) < buffer.total_size:
            return None

        del self._buffers[key]
        return bytes(buffer.data)

    def discard(self, key: str) -> bool:
        return self._buffers.pop(key, None) is not None

    def pending_keys(self) -> List[str]:
        return list(self._buffers)

    def clear(self):
        self._buffers.clear()

    def __len__(self) -> int:
        return len(self._buffers)

    def __contains__(self, key: str) -> bool:
        return key in self._buffers
