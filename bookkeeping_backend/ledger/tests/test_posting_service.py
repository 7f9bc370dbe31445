# ledger/tests/test_posting_service.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.test import TestCase, override_settings

from ledger.models import Account, LedgerPosting
from ledger.services.exceptions import (
    CounterpartNotFoundError,
    LedgerValidationError,
    PostingNotFoundError,
)
from ledger.services.posting_service import (
    account_statement,
    create_posting,
    delete_posting,
    recalculate_account,
    update_posting,
)


def _balances(account):
    return [
        p.balance
        for p in LedgerPosting.objects.filter(account=account).order_by("date", "created_at", "id")
    ]


class LinkedPostingTests(TestCase):
    """
    GUARANTEES:
    - a linked posting creates its counterpart in the other account
    - edits and deletes propagate through the link group
    - both accounts are recalculated in the same operation
    """

    def setUp(self):
        self.party_a = Account.objects.create(name="Party A")
        self.party_b = Account.objects.create(name="Party B")

        create_posting(account_id=self.party_a.pk, date=date(2024, 1, 1), particulars="Opening", debit="100")
        create_posting(account_id=self.party_b.pk, date=date(2024, 1, 1), particulars="Opening", credit="50")

    def test_mirror_posting_round_trip(self):
        result = create_posting(
            account_id=self.party_a.pk,
            date=date(2024, 1, 10),
            particulars="Goods sold",
            debit="500",
            link_account_id=self.party_b.pk,
            link_strategy="mirror",
            link_group_factory=lambda: "grp-1",
        )

        self.assertIsNotNone(result.counterpart)
        self.assertEqual(result.counterpart.account_id, self.party_b.pk)
        self.assertEqual(result.counterpart.debit, Decimal("0.00"))
        self.assertEqual(result.counterpart.credit, Decimal("500.00"))
        self.assertEqual(result.posting.link_group_id, "grp-1")
        self.assertEqual(result.counterpart.link_group_id, "grp-1")

        self.assertEqual(_balances(self.party_a), [Decimal("100.00"), Decimal("600.00")])
        self.assertEqual(_balances(self.party_b), [Decimal("-50.00"), Decimal("-550.00")])

        deletion = delete_posting(result.posting.pk)

        self.assertEqual(deletion.counterpart_id, result.counterpart.pk)
        self.assertFalse(LedgerPosting.objects.filter(link_group_id="grp-1").exists())
        self.assertEqual(_balances(self.party_a), [Decimal("100.00")])
        self.assertEqual(_balances(self.party_b), [Decimal("-50.00")])

    def test_same_strategy_copies_sides(self):
        result = create_posting(
            account_id=self.party_a.pk,
            date=date(2024, 1, 10),
            credit="75",
            link_account_id=self.party_b.pk,
            link_strategy="same",
        )

        self.assertEqual(result.counterpart.credit, Decimal("75.00"))
        self.assertEqual(result.counterpart.debit, Decimal("0.00"))
        self.assertEqual(result.counterpart.link_strategy, "same")

    def test_edit_propagates_amounts_and_keeps_counterpart_remarks_when_cleared(self):
        result = create_posting(
            account_id=self.party_a.pk,
            date=date(2024, 1, 10),
            debit="500",
            remarks="first",
            link_account_id=self.party_b.pk,
        )
        LedgerPosting.objects.filter(pk=result.counterpart.pk).update(remarks="their note")

        updated = update_posting(
            result.posting.pk,
            debit=Decimal("300"),
            particulars="Corrected",
            remarks="",
        )

        self.assertEqual(updated.link.status, "found")
        self.assertEqual(updated.counterpart.credit, Decimal("300.00"))
        self.assertEqual(updated.counterpart.particulars, "Corrected")
        self.assertEqual(updated.counterpart.remarks, "their note")
        self.assertEqual(_balances(self.party_a)[-1], Decimal("400.00"))
        self.assertEqual(_balances(self.party_b)[-1], Decimal("-350.00"))

    def test_missing_counterpart_is_logged_and_source_still_edited(self):
        result = create_posting(
            account_id=self.party_a.pk,
            date=date(2024, 1, 10),
            debit="500",
            link_account_id=self.party_b.pk,
        )
        LedgerPosting.objects.filter(pk=result.counterpart.pk).delete()

        with self.assertLogs("ledger", level="WARNING"):
            updated = update_posting(result.posting.pk, debit=Decimal("200"), strict=False)

        self.assertTrue(updated.link.missing)
        self.assertIsNone(updated.counterpart)
        self.assertEqual(updated.posting.debit, Decimal("200.00"))

    @override_settings(LEDGER_STRICT_LINKS=True)
    def test_missing_counterpart_is_fatal_in_strict_mode(self):
        result = create_posting(
            account_id=self.party_a.pk,
            date=date(2024, 1, 10),
            debit="500",
            link_account_id=self.party_b.pk,
        )
        LedgerPosting.objects.filter(pk=result.counterpart.pk).delete()

        with self.assertRaises(CounterpartNotFoundError):
            delete_posting(result.posting.pk)

        self.assertTrue(LedgerPosting.objects.filter(pk=result.posting.pk).exists())


class PostingValidationTests(TestCase):
    def setUp(self):
        self.account = Account.objects.create(name="Cash Book")

    def test_zero_posting_is_rejected(self):
        with self.assertRaises(LedgerValidationError):
            create_posting(account_id=self.account.pk, date=date(2024, 1, 1))
        self.assertEqual(LedgerPosting.objects.count(), 0)

    def test_negative_amount_is_rejected(self):
        with self.assertRaises(LedgerValidationError):
            create_posting(account_id=self.account.pk, date=date(2024, 1, 1), debit="-5")

    def test_self_link_is_rejected(self):
        with self.assertRaises(LedgerValidationError):
            create_posting(
                account_id=self.account.pk,
                date=date(2024, 1, 1),
                debit="10",
                link_account_id=self.account.pk,
            )

    def test_unknown_link_account_is_rejected(self):
        with self.assertRaises(LedgerValidationError):
            create_posting(
                account_id=self.account.pk,
                date=date(2024, 1, 1),
                debit="10",
                link_account_id="7d5c9b9e-8d7f-4c44-9d4c-2a2f9d3b1e10",
            )
        self.assertEqual(LedgerPosting.objects.count(), 0)

    def test_blank_particulars_become_dash(self):
        result = create_posting(account_id=self.account.pk, date=date(2024, 1, 1), debit="10", particulars="  ")
        self.assertEqual(result.posting.particulars, "-")

    def test_edit_to_zero_is_rejected(self):
        result = create_posting(account_id=self.account.pk, date=date(2024, 1, 1), debit="10")
        with self.assertRaises(LedgerValidationError):
            update_posting(result.posting.pk, debit=Decimal("0"))

    def test_unknown_posting(self):
        with self.assertRaises(PostingNotFoundError):
            delete_posting(999999)


class StatementTests(TestCase):
    def setUp(self):
        self.account = Account.objects.create(name="Supplier")

    def test_back_dated_posting_reorders_balances(self):
        create_posting(account_id=self.account.pk, date=date(2024, 3, 1), credit="100")
        create_posting(account_id=self.account.pk, date=date(2024, 1, 1), debit="1000")

        statement = account_statement(self.account.pk)

        self.assertEqual([p.date for p in statement.postings], [date(2024, 3, 1), date(2024, 1, 1)])
        self.assertEqual([p.balance for p in statement.postings], [Decimal("900.00"), Decimal("1000.00")])
        self.assertEqual(statement.closing_balance, Decimal("900.00"))

    def test_recalculate_repairs_drifted_balances(self):
        result = create_posting(account_id=self.account.pk, date=date(2024, 1, 1), debit="10")
        LedgerPosting.objects.filter(pk=result.posting.pk).update(balance=Decimal("999.99"))

        self.assertEqual(recalculate_account(self.account.pk), 1)
        self.assertEqual(_balances(self.account), [Decimal("10.00")])
        self.assertEqual(recalculate_account(self.account.pk), 0)
