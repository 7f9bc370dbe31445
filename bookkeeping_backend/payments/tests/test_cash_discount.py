# payments/tests/test_cash_discount.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.test import SimpleTestCase

from payments.domain import PAYMENT_FULL, PAYMENT_PARTIAL, AllocationLine, EntryState, PaymentRecord
from payments.services.cash_discount import (
    ON_FULL_AMOUNT,
    ON_PREVIOUSLY_PAID_NO_CD,
    ON_UNPAID_AMOUNT,
    PARTIAL_ON_PAID,
    PROPORTIONAL_CD,
    compute_discount,
    default_mode_for_payment_type,
)
from payments.services.exceptions import PaymentValidationError

PAY_DATE = date(2024, 3, 1)
DUE = date(2024, 3, 31)


def _entry(sr_no, original, *, due_date=DUE, **kw):
    return EntryState(
        sr_no=sr_no,
        original_net_amount=Decimal(str(original)),
        entry_date=date(2024, 1, 1),
        due_date=due_date,
        **kw,
    )


class DiscountModeTests(SimpleTestCase):
    def test_on_unpaid_amount(self):
        result = compute_discount(
            mode=ON_UNPAID_AMOUNT,
            percent="2",
            entries=[_entry("1", 10000)],
            payment_date=PAY_DATE,
        )

        self.assertTrue(result.eligible)
        self.assertEqual(result.base_amount, Decimal("10000.00"))
        self.assertEqual(result.amount, Decimal("200"))

    def test_partial_on_paid_uses_amount_paid_now(self):
        result = compute_discount(
            mode=PARTIAL_ON_PAID,
            percent="2",
            entries=[_entry("1", 7000)],
            payment_date=PAY_DATE,
            payment_type=PAYMENT_PARTIAL,
            settle_amount=Decimal("3000"),
            to_be_paid_amount=Decimal("3000"),
        )

        self.assertEqual(result.base_amount, Decimal("3000.00"))
        self.assertEqual(result.amount, Decimal("60"))

    def test_partial_on_paid_full_settlement_uses_outstanding(self):
        result = compute_discount(
            mode=PARTIAL_ON_PAID,
            percent="2",
            entries=[_entry("1", 7000)],
            payment_date=PAY_DATE,
            payment_type=PAYMENT_FULL,
            settle_amount=Decimal("6860"),
        )

        self.assertEqual(result.base_amount, Decimal("7000.00"))
        self.assertEqual(result.amount, Decimal("140"))

    def test_on_full_amount_offsets_prior_discount(self):
        entry = _entry("1", 10000, total_paid=Decimal("4900"), total_cd=Decimal("100"))
        history = [
            PaymentRecord(
                id="p1",
                payment_date=date(2024, 2, 1),
                amount=Decimal("4900"),
                cd_amount=Decimal("100"),
                cd_applied=True,
                lines=(AllocationLine(sr_no="1", amount=Decimal("4900"), cd_amount=Decimal("100")),),
            )
        ]

        for mode in (ON_FULL_AMOUNT, PROPORTIONAL_CD):
            result = compute_discount(
                mode=mode,
                percent="2",
                entries=[entry],
                payment_date=PAY_DATE,
                payment_history=history,
            )
            self.assertEqual(result.base_amount, Decimal("10000.00"))
            self.assertEqual(result.offset, Decimal("100.00"))
            self.assertEqual(result.amount, Decimal("100"))

    def test_on_previously_paid_no_cd(self):
        entry = _entry("1", 10000, total_paid=Decimal("3000"))
        history = [
            PaymentRecord(
                id="p1",
                payment_date=date(2024, 2, 1),
                amount=Decimal("3000"),
                lines=(AllocationLine(sr_no="1", amount=Decimal("3000")),),
            ),
            PaymentRecord(
                id="p2",
                payment_date=date(2024, 2, 10),
                amount=Decimal("500"),
                cd_amount=Decimal("10"),
                cd_applied=True,
                lines=(AllocationLine(sr_no="1", amount=Decimal("500"), cd_amount=Decimal("10")),),
            ),
        ]

        result = compute_discount(
            mode=ON_PREVIOUSLY_PAID_NO_CD,
            percent="2",
            entries=[entry],
            payment_date=PAY_DATE,
            payment_history=history,
        )

        self.assertEqual(result.base_amount, Decimal("3000.00"))
        self.assertEqual(result.amount, Decimal("60"))


class DiscountRulesTests(SimpleTestCase):
    def test_rounds_to_whole_currency(self):
        result = compute_discount(
            mode=ON_UNPAID_AMOUNT,
            percent="2",
            entries=[_entry("1", "1234.56")],
            payment_date=PAY_DATE,
        )
        self.assertEqual(result.amount, Decimal("25"))

    def test_manual_amount_clamped_to_max_available(self):
        result = compute_discount(
            mode=ON_UNPAID_AMOUNT,
            percent="2",
            entries=[_entry("1", "1000.75")],
            payment_date=PAY_DATE,
            manual_amount=Decimal("5000"),
        )

        self.assertEqual(result.max_available, Decimal("1000.75"))
        self.assertEqual(result.amount, Decimal("1000"))
        self.assertEqual(result.mode, ON_UNPAID_AMOUNT)

    def test_manual_amount_reports_equivalent_percent(self):
        result = compute_discount(
            mode=ON_UNPAID_AMOUNT,
            percent="2",
            entries=[_entry("1", 10000)],
            payment_date=PAY_DATE,
            manual_amount=Decimal("150"),
        )

        self.assertEqual(result.amount, Decimal("150"))
        self.assertEqual(result.percent, Decimal("1.50"))

    def test_total_outstanding_caps_discount(self):
        result = compute_discount(
            mode=ON_UNPAID_AMOUNT,
            percent="50",
            entries=[_entry("1", 10000)],
            payment_date=PAY_DATE,
            total_outstanding=Decimal("300"),
        )
        self.assertEqual(result.amount, Decimal("300"))

    def test_amount_never_negative_or_above_cap(self):
        entries = [_entry("1", "999.99"), _entry("2", "0.49")]
        for percent in ("-5", "0", "1", "33.3", "100", "250"):
            result = compute_discount(
                mode=ON_UNPAID_AMOUNT,
                percent=percent,
                entries=entries,
                payment_date=PAY_DATE,
            )
            self.assertGreaterEqual(result.amount, Decimal("0"))
            self.assertLessEqual(result.amount, result.max_available)

    def test_overdue_entries_are_not_eligible(self):
        result = compute_discount(
            mode=ON_UNPAID_AMOUNT,
            percent="2",
            entries=[_entry("1", 10000, due_date=date(2024, 2, 1))],
            payment_date=PAY_DATE,
        )

        self.assertFalse(result.eligible)
        self.assertEqual(result.amount, Decimal("0.00"))

    def test_entry_without_due_date_is_not_eligible(self):
        result = compute_discount(
            mode=ON_UNPAID_AMOUNT,
            percent="2",
            entries=[_entry("1", 10000, due_date=None)],
            payment_date=PAY_DATE,
        )
        self.assertFalse(result.eligible)

    def test_only_eligible_entries_form_the_base(self):
        result = compute_discount(
            mode=ON_UNPAID_AMOUNT,
            percent="10",
            entries=[_entry("1", 1000), _entry("2", 5000, due_date=date(2024, 1, 15))],
            payment_date=PAY_DATE,
        )

        self.assertEqual(result.base_amount, Decimal("1000.00"))
        self.assertEqual(result.amount, Decimal("100"))

    def test_due_date_on_payment_date_is_eligible(self):
        result = compute_discount(
            mode=ON_UNPAID_AMOUNT,
            percent="2",
            entries=[_entry("1", 1000, due_date=PAY_DATE)],
            payment_date=PAY_DATE,
        )
        self.assertTrue(result.eligible)

    def test_unknown_mode_rejected(self):
        with self.assertRaises(PaymentValidationError):
            compute_discount(mode="bogus", percent="2", entries=[_entry("1", 100)], payment_date=PAY_DATE)

    def test_mode_defaults_follow_payment_type(self):
        self.assertEqual(default_mode_for_payment_type(PAYMENT_FULL), ON_FULL_AMOUNT)
        self.assertEqual(default_mode_for_payment_type(PAYMENT_PARTIAL), PARTIAL_ON_PAID)
        self.assertEqual(default_mode_for_payment_type(None), ON_UNPAID_AMOUNT)

        result = compute_discount(
            mode=None,
            percent="2",
            entries=[_entry("1", 1000)],
            payment_date=PAY_DATE,
            payment_type=PAYMENT_FULL,
        )
        self.assertEqual(result.mode, ON_FULL_AMOUNT)
