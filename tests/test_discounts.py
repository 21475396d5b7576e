import asyncio
import os
import re
import sys
import unittest
from datetime import datetime, timedelta
from unittest import mock

# Ensure project src/ is on sys.path for imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from ledger.discounts import DiscountLedger
from ledger.errors import ConflictError, InvalidArgumentError
from utils.config import Settings


class TickingClock:
    """Returns a later time on every call, one second apart."""

    def __init__(self, start=datetime(2025, 11, 1, 12, 0, 0)):
        self.now = start

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


class DiscountLedgerTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.clock = TickingClock()
        self.ledger = DiscountLedger(Settings(), clock=self.clock)

    # ---------- generate ----------

    async def test_generated_code_format(self):
        seen = set()
        for _ in range(20):
            entry = await self.ledger.generate()
            self.assertRegex(entry.code, r"^DISCOUNT-[A-Z0-9]{6}$")
            self.assertFalse(entry.used)
            self.assertIsNone(entry.owner_user_id)
            self.assertIsNone(entry.order_id)
            self.assertIsNone(entry.used_at)
            seen.add(entry.code)
        self.assertEqual(len(seen), 20)
        self.assertEqual(len(self.ledger), 20)

    async def test_generated_code_respects_settings(self):
        ledger = DiscountLedger(Settings(code_prefix="VIP-", code_length=10))
        entry = await ledger.generate(owner_user_id="alice")
        self.assertTrue(re.fullmatch(r"VIP-[A-Z0-9]{10}", entry.code))
        self.assertEqual(entry.owner_user_id, "alice")
        self.assertTrue(entry.is_personal)

    async def test_generated_collision_is_redrawn(self):
        await self.ledger.generate("DISCOUNT-AAAAAA")
        with mock.patch(
            "ledger.discounts.random_token",
            side_effect=["AAAAAA", "AAAAAA", "BBBBBB"],
        ):
            entry = await self.ledger.generate()
        self.assertEqual(entry.code, "DISCOUNT-BBBBBB")

    async def test_custom_code_is_verbatim_and_case_sensitive(self):
        entry = await self.ledger.generate("SAVE10")
        self.assertEqual(entry.code, "SAVE10")
        self.assertIsNotNone(await self.ledger.validate("SAVE10", "alice"))
        self.assertIsNone(await self.ledger.validate("save10", "alice"))

    async def test_duplicate_custom_code_conflicts(self):
        await self.ledger.generate("SAVE10")
        with self.assertRaises(ConflictError):
            await self.ledger.generate("SAVE10")
        self.assertEqual(len(self.ledger), 1)
        # a different case is a different code
        await self.ledger.generate("Save10")
        self.assertEqual(len(self.ledger), 2)

    async def test_blank_custom_code_rejected(self):
        for blank in ("", "   "):
            with self.assertRaises(InvalidArgumentError):
                await self.ledger.generate(blank)

    # ---------- validate ----------

    async def test_owned_code_is_invisible_to_other_users(self):
        entry = await self.ledger.generate(owner_user_id="alice")
        self.assertEqual(await self.ledger.validate(entry.code, "alice"), entry)
        self.assertIsNone(await self.ledger.validate(entry.code, "bob"))
        # still listed for admins
        self.assertIn(entry.code, [dc.code for dc in await self.ledger.list_all()])

    async def test_unknown_code(self):
        self.assertIsNone(await self.ledger.validate("NOPE", "alice"))

    # ---------- redeem ----------

    async def test_redeem_marks_used_once(self):
        await self.ledger.generate("SAVE10")
        used = await self.ledger.redeem("SAVE10", "order-1")
        self.assertTrue(used.used)
        self.assertEqual(used.order_id, "order-1")
        self.assertIsNotNone(used.used_at)
        self.assertIsNone(await self.ledger.validate("SAVE10", "alice"))
        self.assertIsNone(await self.ledger.validate("SAVE10", "bob"))

        # first committed redemption wins
        self.assertIsNone(await self.ledger.redeem("SAVE10", "order-2"))
        entry = self.ledger.get("SAVE10")
        self.assertEqual(entry.order_id, "order-1")
        self.assertEqual(entry.used_at, used.used_at)

    async def test_redeem_ignores_owner(self):
        entry = await self.ledger.generate(owner_user_id="alice")
        used = await self.ledger.redeem(entry.code, "order-9")
        self.assertTrue(used.used)

    async def test_redeem_unknown_code_is_a_no_op(self):
        self.assertIsNone(await self.ledger.redeem("MISSING", "order-1"))
        self.assertEqual(len(self.ledger), 0)

    async def test_earlier_reads_are_not_mutated(self):
        before = await self.ledger.generate("SAVE10")
        listed = await self.ledger.list_all()
        await self.ledger.redeem("SAVE10", "order-1")
        self.assertFalse(before.used)
        self.assertFalse(listed[0].used)

    # ---------- claim ----------

    async def test_claim_checks_ownership(self):
        entry = await self.ledger.generate(owner_user_id="alice")
        self.assertIsNone(await self.ledger.claim(entry.code, "bob", "order-1"))
        self.assertFalse(self.ledger.get(entry.code).used)
        claimed = await self.ledger.claim(entry.code, "alice", "order-2")
        self.assertEqual(claimed.order_id, "order-2")

    async def test_concurrent_claims_of_one_code_have_one_winner(self):
        await self.ledger.generate("SAVE10")
        results = await asyncio.gather(
            *[self.ledger.claim("SAVE10", f"user-{i}", f"order-{i}") for i in range(10)]
        )
        winners = [r for r in results if r is not None]
        self.assertEqual(len(winners), 1)
        self.assertEqual(self.ledger.get("SAVE10").order_id, winners[0].order_id)

    # ---------- listings ----------

    async def test_list_all_newest_first(self):
        a = await self.ledger.generate("A")
        b = await self.ledger.generate("B")
        c = await self.ledger.generate("C")
        self.assertEqual(await self.ledger.list_all(), (c, b, a))

    async def test_list_all_ties_keep_insertion_order(self):
        fixed = datetime(2025, 11, 1)
        ledger = DiscountLedger(Settings(), clock=lambda: fixed)
        for code in ("A", "B", "C"):
            await ledger.generate(code)
        self.assertEqual([dc.code for dc in await ledger.list_all()], ["A", "B", "C"])

    async def test_owned_and_available_listings(self):
        await self.ledger.generate("ADMIN")
        a1 = await self.ledger.generate(owner_user_id="alice")
        a2 = await self.ledger.generate(owner_user_id="alice")
        await self.ledger.generate(owner_user_id="bob")
        await self.ledger.redeem(a1.code, "order-1")

        owned = await self.ledger.list_owned("alice")
        self.assertEqual([dc.code for dc in owned], [a1.code, a2.code])
        available = await self.ledger.list_available("alice")
        self.assertEqual(available, (a2,))
        self.assertEqual(await self.ledger.list_owned("carol"), ())
