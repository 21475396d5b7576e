from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from ledger.errors import ConflictError, InvalidArgumentError
from ledger.models import Clock, DiscountCode
from utils.config import Settings
from utils.pure import random_token


class DiscountLedger:
    """
    Registry of discount codes and their usage.

    Entries are frozen DiscountCode records kept in creation order; redemption
    swaps the entry for a used copy, so readers only ever see whole records.
    A code flips to used at most once: the first redemption committed wins and
    later ones leave it untouched.
    """

    def __init__(self, settings: Settings, clock: Optional[Clock] = None) -> None:
        self._settings = settings
        self._clock = clock or datetime.now
        self._codes: List[DiscountCode] = []
        self._index: Dict[str, int] = {}  # code -> position in _codes
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._codes)

    def _new_code(self) -> str:
        """Draw random codes until one isn't already in use."""
        while True:
            code = self._settings.code_prefix + random_token(self._settings.code_length)
            if code not in self._index:
                return code

    async def generate(
        self, custom_code: Optional[str] = None, owner_user_id: Optional[str] = None
    ) -> DiscountCode:
        """
        Create a new unused code.

        custom_code is taken verbatim (case-sensitive) and must not already
        exist; otherwise `code_prefix` plus random uppercase alphanumerics.
        owner_user_id restricts redemption to that user; None means anyone.
        """
        if custom_code is not None and not custom_code.strip():
            raise InvalidArgumentError("Discount code cannot be blank.")
        async with self._lock:
            if custom_code is not None:
                if custom_code in self._index:
                    raise ConflictError(f"Discount code {custom_code!r} already exists")
                code = custom_code
            else:
                code = self._new_code()
            entry = DiscountCode(
                code=code,
                created_at=self._clock(),
                owner_user_id=owner_user_id,
            )
            self._index[code] = len(self._codes)
            self._codes.append(entry)
            return entry

    def get(self, code: str) -> Optional[DiscountCode]:
        """Lookup regardless of owner or usage."""
        pos = self._index.get(code)
        return None if pos is None else self._codes[pos]

    async def validate(self, code: str, requesting_user_id: str) -> Optional[DiscountCode]:
        """
        The entry for `code` if `requesting_user_id` may redeem it right now.
        Codes owned by another user are reported exactly like unknown ones.
        """
        entry = self.get(code)
        if entry is None or not entry.usable_by(requesting_user_id):
            return None
        return entry

    def _mark_used(self, code: str, order_id: str) -> Optional[DiscountCode]:
        pos = self._index.get(code)
        if pos is None or self._codes[pos].used:
            return None
        used = replace(
            self._codes[pos], used=True, order_id=order_id, used_at=self._clock()
        )
        self._codes[pos] = used
        return used

    async def redeem(self, code: str, order_id: str) -> Optional[DiscountCode]:
        """
        Mark `code` used by `order_id`, whoever owns it.
        Unknown or already used codes are left alone and None is returned.
        """
        async with self._lock:
            return self._mark_used(code, order_id)

    async def claim(
        self, code: str, user_id: str, order_id: str
    ) -> Optional[DiscountCode]:
        """Validate and redeem in one step; None when the user can't use the code."""
        async with self._lock:
            entry = self.get(code)
            if entry is None or not entry.usable_by(user_id):
                return None
            return self._mark_used(code, order_id)

    async def list_all(self) -> Tuple[DiscountCode, ...]:
        # sorted() is stable with reverse=True, equal timestamps keep insertion order
        return tuple(sorted(self._codes, key=lambda dc: dc.created_at, reverse=True))

    async def list_owned(self, user_id: str) -> Tuple[DiscountCode, ...]:
        return tuple(dc for dc in self._codes if dc.owner_user_id == user_id)

    async def list_available(self, user_id: str) -> Tuple[DiscountCode, ...]:
        """Personal codes of the user that are still unused."""
        return tuple(
            dc for dc in self._codes if dc.owner_user_id == user_id and not dc.used
        )
