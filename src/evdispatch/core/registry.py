# src/evdispatch/core/registry.py
from __future__ import annotations

import functools
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Pattern

from evdispatch.core.contracts import EventName, ListenerFn

WILDCARD = "*"


def contains_wildcard(event: EventName) -> bool:
    return WILDCARD in event


@functools.lru_cache(maxsize=256)
def compile_wildcard(pattern: str) -> Pattern[str]:
    """`*` matches any substring (empty included); everything else is literal."""
    parts = (re.escape(p) for p in pattern.split(WILDCARD))
    return re.compile(".*".join(parts), re.DOTALL)


def matches_wildcard(event: EventName, pattern: str) -> bool:
    return compile_wildcard(pattern).fullmatch(event) is not None


@dataclass(frozen=True)
class Registration:
    """A resolved listener and the two-argument callable used to invoke it."""
    listener: Any
    call: ListenerFn


class ListenerRegistry:
    """Exact event name -> ordered, duplicate-free listeners.

    Duplicates are detected by identity of the resolved listener, so two
    equal-but-distinct instances are both kept.
    """

    def __init__(self) -> None:
        # dicts keep insertion order; keyed by id() of the listener, which
        # is stable while the entry holds a reference to it
        self._entries: Dict[str, Dict[int, Registration]] = {}

    def add(self, key: str, registration: Registration) -> bool:
        """Insert unless already present. Returns True when something was added."""
        bucket = self._entries.setdefault(key, {})
        ident = id(registration.listener)
        if ident in bucket:
            return False
        bucket[ident] = registration
        return True

    def remove(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def get(self, key: str) -> List[Registration]:
        return list(self._entries.get(key, {}).values())

    def count(self, key: str) -> int:
        return len(self._entries.get(key, ()))

    def total(self) -> int:
        return sum(len(bucket) for bucket in self._entries.values())

    def __contains__(self, key: object) -> bool:
        return bool(self._entries.get(key))  # type: ignore[arg-type]

    def __len__(self) -> int:
        return len(self._entries)


class WildcardRegistry(ListenerRegistry):
    """Pattern -> listeners; lookup goes through anchored wildcard matching."""

    def __init__(self) -> None:
        super().__init__()
        self._compiled: Dict[str, Pattern[str]] = {}

    def add(self, key: str, registration: Registration) -> bool:
        if key not in self._compiled:
            self._compiled[key] = compile_wildcard(key)
        return super().add(key, registration)

    def remove(self, key: str) -> bool:
        self._compiled.pop(key, None)
        return super().remove(key)

    def matching(self, event: EventName) -> List[Registration]:
        """Listeners of every pattern accepting `event`, in pattern registration order."""
        out: List[Registration] = []
        for pattern, bucket in self._entries.items():
            if bucket and self._compiled[pattern].fullmatch(event):
                out.extend(bucket.values())
        return out

    def any_match(self, event: EventName) -> bool:
        return any(
            bucket and self._compiled[pattern].fullmatch(event)
            for pattern, bucket in self._entries.items()
        )
