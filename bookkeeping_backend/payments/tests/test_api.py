# payments/tests/test_api.py

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from ledger.models import Account, LedgerPosting
from payments.models import OutstandingEntry, Payment

User = get_user_model()


class PaymentsApiTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="operator", password="pass")
        self.client = APIClient()
        self.client.force_authenticate(user=self.user)

        self.party = Account.objects.create(name="Supplier")
        self.cash = Account.objects.create(name="Cash")

    def _create_entry(self, sr_no, amount, **extra):
        payload = {
            "party": str(self.party.pk),
            "sr_no": sr_no,
            "entry_date": "2024-01-01",
            "due_date": "2024-03-31",
            "original_net_amount": str(amount),
            **extra,
        }
        res = self.client.post("/api/payments/entries/", payload, format="json")
        self.assertEqual(res.status_code, 201, res.data)
        return res.data

    def test_requires_authentication(self):
        res = APIClient().get("/api/payments/payments/")
        self.assertEqual(res.status_code, 401)

    def test_entry_lifecycle(self):
        entry = self._create_entry("1", "1000.00")
        self.assertEqual(entry["net_amount"], "1000.00")

        res = self.client.patch(
            f"/api/payments/entries/{entry['id']}/",
            {"description": "Lot 4"},
            format="json",
        )
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["description"], "Lot 4")

        res = self.client.get("/api/payments/entries/", {"party": str(self.party.pk), "open": "true"})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["count"], 1)

        res = self.client.delete(f"/api/payments/entries/{entry['id']}/")
        self.assertEqual(res.status_code, 204)
        self.assertTrue(OutstandingEntry.objects.get(pk=entry["id"]).is_deleted)

        res = self.client.get(f"/api/payments/entries/{entry['id']}/")
        self.assertEqual(res.status_code, 404)

    def test_entry_due_date_before_entry_date(self):
        res = self.client.post(
            "/api/payments/entries/",
            {
                "party": str(self.party.pk),
                "sr_no": "1",
                "entry_date": "2024-02-01",
                "due_date": "2024-01-01",
                "original_net_amount": "10.00",
            },
            format="json",
        )
        self.assertEqual(res.status_code, 400)

    def test_payment_lifecycle(self):
        entry = self._create_entry("1", "10000.00")

        res = self.client.post(
            "/api/payments/payments/",
            {
                "party": str(self.party.pk),
                "entries": [entry["id"]],
                "payment_date": "2024-03-01",
                "amount": "9800.00",
                "payment_type": "Full",
                "channel": "Cash",
                "cd_enabled": True,
                "cd_mode": "on_unpaid_amount",
                "cd_percent": "2.00",
                "ledger_account": str(self.cash.pk),
            },
            format="json",
        )
        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["payment"]["amount"], "9800.00")
        self.assertEqual(res.data["payment"]["cd_amount"], "200.00")
        self.assertEqual(res.data["discount"]["amount"], "200.00")
        self.assertEqual(len(res.data["payment"]["allocations"]), 1)
        payment_id = res.data["payment"]["id"]

        res = self.client.put(
            f"/api/payments/payments/{payment_id}/",
            {"amount": "5000.00", "payment_type": "Partial", "cd_enabled": False},
            format="json",
        )
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["payment"]["id"], payment_id)
        self.assertEqual(res.data["payment"]["cd_amount"], "0.00")
        self.assertEqual(OutstandingEntry.objects.get(pk=entry["id"]).net_amount, 5000)

        res = self.client.delete(f"/api/payments/payments/{payment_id}/")
        self.assertEqual(res.status_code, 204)
        self.assertFalse(Payment.objects.exists())
        self.assertFalse(LedgerPosting.objects.exists())

    def test_partial_over_outstanding_is_400(self):
        entry = self._create_entry("1", "100.00")

        res = self.client.post(
            "/api/payments/payments/",
            {
                "party": str(self.party.pk),
                "entries": [entry["id"]],
                "payment_date": "2024-03-01",
                "amount": "500.00",
                "payment_type": "Partial",
            },
            format="json",
        )
        self.assertEqual(res.status_code, 400)
        self.assertIn("detail", res.data)

    def test_unknown_payment_is_404(self):
        res = self.client.delete("/api/payments/payments/00000000-0000-0000-0000-000000000000/")
        self.assertEqual(res.status_code, 404)

    @override_settings(LEDGER_STRICT_LINKS=True)
    def test_delete_with_missing_ledger_counterpart_is_409(self):
        entry = self._create_entry("1", "1000.00")
        res = self.client.post(
            "/api/payments/payments/",
            {
                "party": str(self.party.pk),
                "entries": [entry["id"]],
                "payment_date": "2024-03-01",
                "amount": "400.00",
                "payment_type": "Partial",
                "ledger_account": str(self.cash.pk),
            },
            format="json",
        )
        self.assertEqual(res.status_code, 201, res.data)
        payment_id = res.data["payment"]["id"]
        LedgerPosting.objects.filter(account=self.cash).delete()

        res = self.client.delete(f"/api/payments/payments/{payment_id}/")

        self.assertEqual(res.status_code, 409)
        self.assertIn("detail", res.data)
        self.assertTrue(Payment.objects.filter(pk=payment_id).exists())
        self.assertEqual(OutstandingEntry.objects.get(pk=entry["id"]).net_amount, 600)

    def test_discount_preview(self):
        entry = self._create_entry("1", "10000.00")

        res = self.client.post(
            "/api/payments/discount-preview/",
            {
                "party": str(self.party.pk),
                "entries": [entry["id"]],
                "payment_date": "2024-03-01",
                "cd_mode": "on_unpaid_amount",
                "cd_percent": "3.00",
            },
            format="json",
        )
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["amount"], "300.00")
        self.assertTrue(res.data["eligible"])

    def test_receipt_combinations(self):
        for sr_no, amount in (("1", "1000.00"), ("2", "1500.00"), ("3", "2200.00")):
            self._create_entry(sr_no, amount)

        res = self.client.post(
            "/api/payments/receipt-combinations/",
            {
                "party": str(self.party.pk),
                "target_amount": "3000.00",
                "official_rate": "100.00",
            },
            format="json",
        )
        self.assertEqual(res.status_code, 200, res.data)
        best = res.data["combinations"][0]
        self.assertEqual([r["sr_no"] for r in best["receipts"]], ["1", "3"])
        self.assertEqual(best["difference"], "200.00")
        self.assertEqual(best["kind"], "pair")

    def test_payment_options(self):
        res = self.client.post(
            "/api/payments/payment-options/",
            {"target_amount": "1000.00", "min_rate": "10.00", "max_rate": "12.00"},
            format="json",
        )
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["options"][0]["remaining"], "0.00")

        res = self.client.post(
            "/api/payments/payment-options/",
            {"target_amount": "1000.00", "min_rate": "12.00", "max_rate": "10.00"},
            format="json",
        )
        self.assertEqual(res.status_code, 400)

    def test_party_summary(self):
        self._create_entry("1", "1000.00")
        self._create_entry("2", "250.50")

        res = self.client.get(f"/api/payments/parties/{self.party.pk}/summary/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["total_outstanding"], "1250.50")
        self.assertEqual(res.data["entry_count"], 2)
