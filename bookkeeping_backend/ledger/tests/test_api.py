# ledger/tests/test_api.py

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIClient

from ledger.models import Account, LedgerPosting

User = get_user_model()


class LedgerApiTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="operator", password="pass")
        self.client = APIClient()
        self.client.force_authenticate(user=self.user)

        self.party = Account.objects.create(name="Party")
        self.bank = Account.objects.create(name="Bank")

    def test_requires_authentication(self):
        anon = APIClient()
        res = anon.get("/api/ledger/accounts/")
        self.assertEqual(res.status_code, 401)

    def test_create_account(self):
        res = self.client.post(
            "/api/ledger/accounts/",
            {"name": "  New Party  ", "contact": "9999"},
            format="json",
        )
        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["name"], "New Party")

    def test_linked_posting_lifecycle(self):
        res = self.client.post(
            "/api/ledger/postings/",
            {
                "account": str(self.party.pk),
                "date": "2024-01-10",
                "particulars": "Receipt",
                "debit": "500.00",
                "link_account": str(self.bank.pk),
                "link_strategy": "mirror",
            },
            format="json",
        )
        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["link_status"], "found")
        self.assertEqual(res.data["counterpart"]["credit"], "500.00")
        posting_id = res.data["posting"]["id"]

        res = self.client.patch(f"/api/ledger/postings/{posting_id}/", {"debit": "450.00"}, format="json")
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["counterpart"]["credit"], "450.00")

        res = self.client.get(f"/api/ledger/accounts/{self.bank.pk}/statement/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["closing_balance"], "-450.00")
        self.assertEqual(len(res.data["postings"]), 1)

        res = self.client.delete(f"/api/ledger/postings/{posting_id}/")
        self.assertEqual(res.status_code, 204)
        self.assertEqual(LedgerPosting.objects.count(), 0)

    def test_zero_posting_is_400(self):
        res = self.client.post(
            "/api/ledger/postings/",
            {"account": str(self.party.pk), "date": "2024-01-10"},
            format="json",
        )
        self.assertEqual(res.status_code, 400)

    def test_unknown_posting_is_404(self):
        res = self.client.delete("/api/ledger/postings/424242/")
        self.assertEqual(res.status_code, 404)

    def test_postings_filter_by_account(self):
        self.client.post(
            "/api/ledger/postings/",
            {"account": str(self.party.pk), "date": "2024-01-10", "debit": "10"},
            format="json",
        )
        self.client.post(
            "/api/ledger/postings/",
            {"account": str(self.bank.pk), "date": "2024-01-10", "credit": "20"},
            format="json",
        )

        res = self.client.get("/api/ledger/postings/", {"account": str(self.bank.pk)})

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["count"], 1)
        self.assertEqual(res.data["results"][0]["credit"], "20.00")
