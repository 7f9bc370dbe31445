# payments/models/entry.py

"""
======================================================
PATH: payments/models/entry.py
======================================================
OUTSTANDING ENTRY MODEL

Invoice-like line owed by / to a party.

Guarantees:
- original_net_amount is fixed once any payment line references the entry
  (enforced by the entry service)
- net_amount = original + extra - total_paid - total_cd, written ONLY by
  the payment services (allocation, reversal, reconciliation)
- deletion is soft (is_deleted) and reverses the entry's payment lines
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from ledger.models.account import Account

MONEY = {"max_digits": 14, "decimal_places": 2, "default": Decimal("0.00")}


class OutstandingEntry(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    party = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="outstanding_entries",
    )

    sr_no = models.CharField(max_length=32, unique=True)
    description = models.CharField(max_length=255, blank=True, default="")

    entry_date = models.DateField()
    due_date = models.DateField(null=True, blank=True)

    rate = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    net_weight = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    final_weight = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    original_net_amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    net_amount = models.DecimalField(**MONEY, help_text="Current outstanding (derived)")
    total_paid = models.DecimalField(**MONEY)
    total_cd = models.DecimalField(**MONEY)
    extra_amount = models.DecimalField(**MONEY, help_text="Official-channel top-up on the original")

    is_deleted = models.BooleanField(default=False)
    deleted_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Outstanding Entry"
        verbose_name_plural = "Outstanding Entries"
        ordering = ["entry_date", "due_date", "sr_no"]
        indexes = [
            models.Index(fields=["party", "is_deleted"], name="pay_entry_party_del_idx"),
            models.Index(fields=["entry_date"], name="pay_entry_date_idx"),
            models.Index(fields=["due_date"], name="pay_entry_due_idx"),
        ]

    def __str__(self):
        return f"{self.sr_no} ({self.net_amount})"

    @property
    def adjusted_original(self) -> Decimal:
        return (self.original_net_amount or Decimal("0.00")) + (self.extra_amount or Decimal("0.00"))

    def clean(self):
        self.sr_no = (self.sr_no or "").strip()
        self.description = (self.description or "").strip()

        if not self.sr_no:
            raise ValidationError("sr_no is required")
        if self.original_net_amount is None or self.original_net_amount < 0:
            raise ValidationError("original_net_amount must be >= 0")
        if self.due_date and self.entry_date and self.due_date < self.entry_date:
            raise ValidationError("due_date cannot be before entry_date")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
