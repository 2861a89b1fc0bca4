"""Pending requests of local workers and the process message store."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger("praasctl.messages")

ANY_PROCESS = "ANY"


class PendingKind(Enum):
    NONE = "none"
    GET = "get"
    INVOCATION = "invocation"


@dataclass
class PendingMessage:
    kind: PendingKind = PendingKind.NONE
    source: Optional[str] = None
    worker: Any = None


class PendingMessages:
    """GET and INVOCATION requests of local workers waiting to be answered.

    Several requests may wait under the same key; they are kept in arrival order.
    """

    def __init__(self) -> None:
        self._msgs: dict[str, list[PendingMessage]] = {}

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._msgs.values())

    def insert_get(self, key: str, source: str, worker: Any) -> None:
        logger.debug("Inserting worker pending for a message with name %s, from %s", key, source)
        self._msgs.setdefault(key, []).append(PendingMessage(PendingKind.GET, source, worker))

    def insert_invocation(self, key: str, worker: Any) -> None:
        self._msgs.setdefault(key, []).append(PendingMessage(PendingKind.INVOCATION, "", worker))

    def find_get(self, key: str, source: str) -> Any:
        """Remove and return the first worker waiting for this message, or None."""
        entries = self._msgs.get(key, [])
        for entry in entries:
            if entry.kind is PendingKind.GET and entry.source in (ANY_PROCESS, source):
                entries.remove(entry)
                if not entries:
                    del self._msgs[key]
                return entry.worker
        logger.debug("Did not find a worker waiting for message with name %s, from %s", key, source)
        return None

    def find_invocation(self, key: str) -> list[Any]:
        """Remove every request under the key and return their workers."""
        return [entry.worker for entry in self._msgs.pop(key, [])]


@dataclass
class StoredMessage:
    source: str
    data: bytes


class MessageStore:
    """Messages delivered to this process, and its state entries."""

    def __init__(self) -> None:
        self._msgs: dict[str, StoredMessage] = {}
        self._state_keys: list[tuple[str, float]] = []

    def __contains__(self, key: object) -> bool:
        return key in self._msgs

    @property
    def state_keys(self) -> list[tuple[str, float]]:
        """State keys with the time, in seconds, of their last update."""
        return list(self._state_keys)

    def put(self, key: str, source: str, payload: bytes) -> bool:
        """Store a message; False when the key is already taken."""
        if key in self._msgs:
            return False
        self._msgs[key] = StoredMessage(source, payload)
        return True

    def state(self, key: str, payload: bytes) -> bool:
        """Store or overwrite a state entry and record its update time."""
        emplaced = key not in self._msgs
        self._msgs[key] = StoredMessage("", payload)
        timestamp = (time.time_ns() // 1000) / 1000.0 / 1000.0

        if emplaced:
            self._state_keys.append((key, timestamp))
        else:
            for position, (name, _) in enumerate(self._state_keys):
                if name == key:
                    self._state_keys[position] = (key, timestamp)
                    break
        return True

    def try_get(self, key: str, source: str) -> Optional[bytes]:
        """Remove and return a message from the source (or ANY), or None."""
        message = self._msgs.get(key)
        if message is None:
            return None
        if source != ANY_PROCESS and message.source != source:
            return None
        del self._msgs[key]
        return message.data

    def try_state(self, key: str) -> Optional[bytes]:
        """Return a stored entry without removing it, or None."""
        message = self._msgs.get(key)
        return None if message is None else message.data