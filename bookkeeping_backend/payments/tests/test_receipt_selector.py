# payments/tests/test_receipt_selector.py

from __future__ import annotations

from decimal import Decimal
from itertools import combinations

from django.test import SimpleTestCase

from payments.domain import EntryState
from payments.services.exceptions import PaymentValidationError
from payments.services.receipt_selector import (
    EXTRA_BASE_FINAL_QTY,
    EXTRA_BASE_NET_QTY,
    EXTRA_BASE_OUTSTANDING,
    SelectorLimits,
    find_combinations,
    official_amounts,
)


def _receipt(sr_no, amount, **kw):
    return EntryState(sr_no=sr_no, original_net_amount=Decimal(str(amount)), **kw)


def _pool(*amounts):
    entries = [_receipt(str(i + 1), a) for i, a in enumerate(amounts)]
    return official_amounts(entries, official_rate=Decimal("100"))


class OfficialAmountTests(SimpleTestCase):
    def test_extra_by_net_quantity(self):
        pool = official_amounts(
            [_receipt("1", 1000, net_weight=Decimal("50"))],
            official_rate=Decimal("100"),
            extra_rate_per_unit=Decimal("2"),
            extra_base=EXTRA_BASE_NET_QTY,
        )
        self.assertEqual(pool[0].extra_amount, Decimal("100.00"))
        self.assertEqual(pool[0].official_amount, Decimal("1100.00"))

    def test_extra_by_final_quantity(self):
        pool = official_amounts(
            [_receipt("1", 1000, net_weight=Decimal("50"), final_weight=Decimal("40"))],
            official_rate=Decimal("100"),
            extra_rate_per_unit=Decimal("2"),
            extra_base=EXTRA_BASE_FINAL_QTY,
        )
        self.assertEqual(pool[0].extra_amount, Decimal("80.00"))

    def test_extra_by_outstanding_and_compounded(self):
        entries = [_receipt("1", 1000)]

        simple = official_amounts(
            entries,
            official_rate=Decimal("100"),
            extra_rate_per_unit=Decimal("2"),
            extra_base=EXTRA_BASE_OUTSTANDING,
        )
        compounded = official_amounts(
            entries,
            official_rate=Decimal("100"),
            extra_rate_per_unit=Decimal("2"),
            extra_base=EXTRA_BASE_OUTSTANDING,
            compounded=True,
        )

        self.assertEqual(simple[0].extra_amount, Decimal("20.00"))
        self.assertEqual(compounded[0].extra_amount, Decimal("20.40"))

    def test_compounded_quantity_extra_uses_quantity_value(self):
        # 50 units at 100: (50 * 2 + 50 * 100) / 100 * 2, not based on the 1000 outstanding
        pool = official_amounts(
            [_receipt("1", 1000, net_weight=Decimal("50"))],
            official_rate=Decimal("100"),
            extra_rate_per_unit=Decimal("2"),
            extra_base=EXTRA_BASE_NET_QTY,
            compounded=True,
        )
        self.assertEqual(pool[0].normal_amount, Decimal("1000.00"))
        self.assertEqual(pool[0].extra_amount, Decimal("102.00"))
        self.assertEqual(pool[0].official_amount, Decimal("1102.00"))

    def test_settled_receipts_left_out_and_pool_sorted(self):
        entries = [
            _receipt("1", 2200),
            _receipt("2", 1000),
            _receipt("3", 500, total_paid=Decimal("499.99")),
            _receipt("4", 1500),
        ]

        pool = official_amounts(entries, official_rate=Decimal("100"))

        self.assertEqual([r.sr_no for r in pool], ["2", "4", "1"])

    def test_unknown_extra_base_rejected(self):
        with self.assertRaises(PaymentValidationError):
            official_amounts([_receipt("1", 100)], official_rate=Decimal("1"), extra_base="weight")


class FindCombinationTests(SimpleTestCase):
    def test_closest_reaching_combination_ranks_first(self):
        result = find_combinations(_pool(1000, 1500, 2200), Decimal("3000"))

        ranked = [(c.sr_nos, c.difference) for c in result.combinations]
        self.assertEqual(
            ranked,
            [
                (["1", "3"], Decimal("200.00")),
                (["2", "3"], Decimal("700.00")),
                (["1", "2", "3"], Decimal("1700.00")),
            ],
        )
        self.assertEqual(result.combinations[0].kind, "pair")
        self.assertFalse(result.best_effort)

    def test_matches_exhaustive_search(self):
        amounts = [120, 340, 560, 610, 790, 1030, 1270]
        target = Decimal("2000")
        pool = _pool(*amounts)

        result = find_combinations(pool, target, limits=SelectorLimits(max_combination_size=7))

        expected = []
        values = [r.official_amount for r in pool]
        for size in range(1, len(values) + 1):
            for combo in combinations(values, size):
                total = sum(combo)
                if total >= target:
                    expected.append((abs(total - target), size))
        expected.sort()

        self.assertEqual(
            [(abs(c.difference), c.size) for c in result.combinations],
            expected[: len(result.combinations)],
        )
        self.assertEqual(result.candidates_found, len(expected))

    def test_candidate_cap(self):
        result = find_combinations(
            _pool(1000, 1500, 2200),
            Decimal("3000"),
            limits=SelectorLimits(max_candidates=1),
        )

        self.assertTrue(result.candidate_cap_hit)
        self.assertEqual(result.candidates_found, 1)

    def test_node_budget(self):
        result = find_combinations(
            _pool(*range(100, 2100, 100)),
            Decimal("5000"),
            limits=SelectorLimits(node_budget=1),
        )

        self.assertTrue(result.budget_exhausted)
        self.assertLessEqual(result.nodes_visited, 2)

    def test_time_budget(self):
        ticks = iter(range(0, 10_000_000, 10))
        result = find_combinations(
            _pool(*range(100, 2100, 100)),
            Decimal("10000"),
            limits=SelectorLimits(max_candidates=100_000, time_budget_seconds=5),
            clock=lambda: next(ticks),
        )
        self.assertTrue(result.budget_exhausted)

    def test_best_effort_when_pool_cannot_reach_target(self):
        result = find_combinations(_pool(100, 200), Decimal("1000"))

        self.assertTrue(result.best_effort)
        self.assertEqual(len(result.combinations), 1)
        self.assertEqual(result.combinations[0].sr_nos, ["1", "2"])
        self.assertEqual(result.combinations[0].difference, Decimal("-700.00"))

    def test_empty_pool_and_bad_target(self):
        self.assertEqual(find_combinations([], Decimal("100")).combinations, ())
        with self.assertRaises(PaymentValidationError):
            find_combinations(_pool(100), Decimal("0"))

    def test_limits_from_settings_mapping(self):
        limits = SelectorLimits.from_mapping({"MAX_CANDIDATES": "5", "TIME_BUDGET_SECONDS": 0.5})

        self.assertEqual(limits.max_candidates, 5)
        self.assertEqual(limits.time_budget_seconds, 0.5)
        self.assertEqual(limits.max_combination_size, SelectorLimits().max_combination_size)
