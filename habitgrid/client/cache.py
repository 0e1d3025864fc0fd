"""Keyed query cache shared by the client views."""

from __future__ import annotations

import copy
from typing import Any, Dict, Hashable, Iterable, List, Optional, Tuple

Key = Tuple[Hashable, ...]


def _matches(key: Key, prefix: Key) -> bool:
    return key[: len(prefix)] == prefix


class QueryCache:
    """Views keyed by tuples such as ``("habits", "2026-10-19", "2026-10-25")``.

    Besides plain storage the cache tracks in-flight mutations per key
    prefix, so a background refetch of a view can be skipped while a
    mutation against it has not settled yet.
    """

    def __init__(self) -> None:
        self._entries: Dict[Key, Any] = {}
        self._pending: Dict[Key, int] = {}

    def get(self, key: Key, default: Any = None) -> Any:
        return self._entries.get(tuple(key), default)

    def set(self, key: Key, value: Any) -> None:
        self._entries[tuple(key)] = value

    def keys(self, prefix: Key = ()) -> List[Key]:
        return [key for key in self._entries if _matches(key, tuple(prefix))]

    def invalidate(self, prefix: Key = ()) -> int:
        stale = self.keys(prefix)
        for key in stale:
            del self._entries[key]
        return len(stale)

    def snapshot(self, prefix: Key = ()) -> Dict[Key, Any]:
        return {key: copy.deepcopy(self._entries[key]) for key in self.keys(prefix)}

    def restore(self, snapshot: Dict[Key, Any], fields: Optional[Iterable[str]] = None) -> None:
        """Put snapshotted views back.

        With ``fields`` only those members of each dict view are restored and
        the rest of the live view is left alone. Views dropped from the cache
        since the snapshot stay dropped in that case.
        """
        for key, value in snapshot.items():
            value = copy.deepcopy(value)
            if fields is None:
                self._entries[key] = value
                continue
            current = self._entries.get(key)
            if not isinstance(current, dict):
                continue
            for field in fields:
                if field in value:
                    current[field] = value[field]

    # pending mutations

    def begin_mutation(self, prefix: Key) -> None:
        prefix = tuple(prefix)
        self._pending[prefix] = self._pending.get(prefix, 0) + 1

    def end_mutation(self, prefix: Key) -> None:
        prefix = tuple(prefix)
        remaining = self._pending.get(prefix, 0) - 1
        if remaining > 0:
            self._pending[prefix] = remaining
        else:
            self._pending.pop(prefix, None)

    def is_pending(self, key: Key) -> bool:
        return any(_matches(tuple(key), prefix) for prefix in self._pending)
