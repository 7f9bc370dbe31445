# ledger/tests/test_balance_engine.py

from __future__ import annotations

from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal

from django.test import SimpleTestCase

from ledger.domain import (
    LINK_MIRROR,
    LINK_SAME,
    LinkResolution,
    PostingLine,
    closing_balance,
    counterpart_amounts,
    find_counterpart,
    rebalance,
    recalculate_balances,
    resolve_strategy,
    sort_for_calculation,
    sort_for_display,
    to_money,
)


def _ts(hour, minute=0):
    return datetime(2024, 1, 1, hour, minute, tzinfo=dt_timezone.utc)


def _line(pk, d, debit="0", credit="0", created=None, **kw):
    return PostingLine(
        id=pk,
        date=d,
        debit=Decimal(debit),
        credit=Decimal(credit),
        created_at=created,
        **kw,
    )


class MoneyCoercionTests(SimpleTestCase):
    def test_malformed_values_become_zero(self):
        for value in (None, "", "abc", "-", float("nan"), Decimal("NaN"), "Infinity"):
            with self.subTest(value=value):
                self.assertEqual(to_money(value), Decimal("0.00"))

    def test_currency_symbols_and_grouping_are_stripped(self):
        self.assertEqual(to_money("₹1,250.50"), Decimal("1250.50"))

    def test_rounds_half_away_from_zero(self):
        self.assertEqual(to_money("2.345"), Decimal("2.35"))
        self.assertEqual(to_money("-2.345"), Decimal("-2.35"))
        self.assertEqual(to_money(0.1), Decimal("0.10"))


class RunningBalanceTests(SimpleTestCase):
    """
    GUARANTEES:
    - balance = previous + debit - credit
    - rounding happens at every step
    - display order never changes the computed balances
    """

    def test_running_balance_accumulates_debit_minus_credit(self):
        lines = [
            _line(1, date(2024, 1, 1), debit="1000"),
            _line(2, date(2024, 1, 2), credit="250.50"),
            _line(3, date(2024, 1, 3), debit="100.25", credit="50"),
        ]

        out = recalculate_balances(lines)

        self.assertEqual(
            [line.balance for line in out],
            [Decimal("1000.00"), Decimal("749.50"), Decimal("799.75")],
        )

    def test_rounding_is_applied_per_step_not_only_at_the_end(self):
        lines = [_line(i, date(2024, 1, i), debit="0.005") for i in range(1, 4)]

        out = recalculate_balances(lines)

        # Each step rounds 0.005 up to 0.01; a single final rounding of
        # 0.015 would give 0.02 instead.
        self.assertEqual(
            [line.balance for line in out],
            [Decimal("0.01"), Decimal("0.02"), Decimal("0.03")],
        )

    def test_balance_equals_stepwise_reference(self):
        amounts = [("10.10", "0"), ("0", "3.33"), ("7.77", "1.11"), ("0", "20")]
        lines = [
            _line(i + 1, date(2024, 2, i + 1), debit=d, credit=c)
            for i, (d, c) in enumerate(amounts)
        ]

        expected = Decimal("0.00")
        for d, c in amounts:
            expected = (expected + Decimal(d) - Decimal(c)).quantize(Decimal("0.01"))

        self.assertEqual(recalculate_balances(lines)[-1].balance, expected)
        self.assertEqual(expected, Decimal("-6.57"))

    def test_recalculation_is_idempotent(self):
        lines = [
            _line(1, date(2024, 1, 1), debit="500"),
            _line(2, date(2024, 1, 1), credit="120.40", created=_ts(10)),
            _line(3, date(2024, 1, 5), debit="75.05"),
        ]
        first = recalculate_balances(sort_for_calculation(lines))

        # Re-derive debit/credit from the balances and run again.
        previous = Decimal("0.00")
        rederived = []
        for line in first:
            delta = line.balance - previous
            previous = line.balance
            rederived.append(
                _line(
                    line.id,
                    line.date,
                    debit=str(max(delta, Decimal("0"))),
                    credit=str(max(-delta, Decimal("0"))),
                    created=line.created_at,
                )
            )
        second = recalculate_balances(rederived)

        self.assertEqual([l.balance for l in first], [l.balance for l in second])

    def test_opening_balance_is_carried(self):
        out = recalculate_balances(
            [_line(1, date(2024, 1, 1), credit="40")],
            opening_balance=Decimal("100"),
        )
        self.assertEqual(out[0].balance, Decimal("60.00"))

    def test_rebalance_keeps_display_order_and_computes_oldest_first(self):
        newest_first = [
            _line(3, date(2024, 3, 1), credit="100"),
            _line(2, date(2024, 2, 1), debit="50"),
            _line(1, date(2024, 1, 1), debit="1000"),
        ]

        out = rebalance(newest_first)

        self.assertEqual([line.id for line in out], [3, 2, 1])
        self.assertEqual(
            [line.balance for line in out],
            [Decimal("950.00"), Decimal("1050.00"), Decimal("1000.00")],
        )

    def test_same_date_ties_break_on_creation_time_then_id(self):
        d = date(2024, 1, 1)
        lines = [
            _line(9, d, debit="1", created=_ts(12)),
            _line(5, d, debit="2", created=_ts(9)),
            _line(7, d, debit="3", created=_ts(9)),
        ]

        self.assertEqual([l.id for l in sort_for_calculation(lines)], [5, 7, 9])
        self.assertEqual([l.id for l in sort_for_display(lines)], [9, 7, 5])

    def test_closing_balance_of_empty_ledger_is_zero(self):
        self.assertEqual(closing_balance([]), Decimal("0.00"))


class LinkedPostingRuleTests(SimpleTestCase):
    def test_mirror_swaps_and_same_copies(self):
        self.assertEqual(
            counterpart_amounts("500", "0", LINK_MIRROR),
            (Decimal("0.00"), Decimal("500.00")),
        )
        self.assertEqual(
            counterpart_amounts("500", "0", LINK_SAME),
            (Decimal("500.00"), Decimal("0.00")),
        )

    def test_strategy_falls_back_source_then_counterpart_then_mirror(self):
        self.assertEqual(resolve_strategy("same", "mirror"), LINK_SAME)
        self.assertEqual(resolve_strategy(None, "same"), LINK_SAME)
        self.assertEqual(resolve_strategy(None, None), LINK_MIRROR)
        self.assertEqual(resolve_strategy("bogus"), LINK_MIRROR)

    def test_find_counterpart_searches_other_accounts_only(self):
        source = _line(1, date(2024, 1, 1), debit="10", account_id="A", link_group_id="g1")
        same_account_twin = _line(2, date(2024, 1, 1), credit="10", account_id="A", link_group_id="g1")
        other = _line(3, date(2024, 1, 1), credit="10", account_id="B", link_group_id="g1", link_strategy="same")

        res = find_counterpart(
            {"A": [source, same_account_twin], "B": [other]},
            source_account_id="A",
            source=source,
        )

        self.assertTrue(res.found)
        self.assertEqual(res.account_id, "B")
        self.assertEqual(res.counterpart.id, 3)
        self.assertEqual(res.strategy, LINK_SAME)

    def test_find_counterpart_reports_missing_and_unlinked(self):
        linked = _line(1, date(2024, 1, 1), debit="10", account_id="A", link_group_id="g2")
        plain = _line(2, date(2024, 1, 1), debit="10", account_id="A")

        missing = find_counterpart({"B": []}, source_account_id="A", source=linked)
        unlinked = find_counterpart({"B": []}, source_account_id="A", source=plain)

        self.assertTrue(missing.missing)
        self.assertEqual(missing.link_group_id, "g2")
        self.assertEqual(unlinked.status, LinkResolution.UNLINKED)
