import asyncio
from collections import defaultdict
from typing import DefaultDict, Hashable


class KeyedLocks:
    """One asyncio.Lock per key, created on first use.

    The lock for a key is never dropped, so two callers asking for the same key
    always serialize on the same lock object. The map therefore only grows,
    one entry per distinct key (user id) seen during the life of the process.
    """

    def __init__(self) -> None:
        self._locks: DefaultDict[Hashable, asyncio.Lock] = defaultdict(asyncio.Lock)

    def __len__(self) -> int:
        return len(self._locks)

    def __call__(self, key: Hashable) -> asyncio.Lock:
        return self._locks[key]
