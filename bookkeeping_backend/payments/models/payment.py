# payments/models/payment.py

"""
======================================================
PATH: payments/models/payment.py
======================================================
PAYMENT + PAYMENT ALLOCATION MODELS

Payment: one settlement event for a party.
PaymentAllocation: one "paid for" line (entry, amount, discount).

RULES:
- sum(line.amount + line.cd_amount) is what the payment settled
- amount is the gross transferred; cd_amount the discount actually granted
- lines are rewritten (not patched) when a payment is edited
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from ledger.models.account import Account
from ledger.models.posting import LedgerPosting
from payments.models.entry import OutstandingEntry


class Payment(models.Model):
    TYPE_FULL = "Full"
    TYPE_PARTIAL = "Partial"

    TYPE_CHOICES = [
        (TYPE_FULL, "Full"),
        (TYPE_PARTIAL, "Partial"),
    ]

    CHANNEL_CASH = "Cash"
    CHANNEL_ONLINE = "Online"
    CHANNEL_RTGS = "RTGS"
    CHANNEL_GOV = "Gov."

    CHANNEL_CHOICES = [
        (CHANNEL_CASH, "Cash"),
        (CHANNEL_ONLINE, "Online"),
        (CHANNEL_RTGS, "RTGS"),
        (CHANNEL_GOV, "Gov."),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    payment_code = models.CharField(max_length=32, blank=True, default="")

    party = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="payments",
    )

    payment_date = models.DateField()

    amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    cd_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    cd_applied = models.BooleanField(default=False)
    cd_mode = models.CharField(max_length=32, blank=True, default="")
    cd_percent = models.DecimalField(max_digits=6, decimal_places=2, default=Decimal("0.00"))

    payment_type = models.CharField(max_length=10, choices=TYPE_CHOICES, default=TYPE_FULL)
    channel = models.CharField(max_length=10, choices=CHANNEL_CHOICES, default=CHANNEL_CASH)

    extra_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    notes = models.CharField(max_length=255, blank=True, default="")

    ledger_posting = models.ForeignKey(
        LedgerPosting,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payments",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-payment_date", "-created_at"]
        indexes = [
            models.Index(fields=["party", "payment_date"], name="pay_payment_party_date_idx"),
            models.Index(fields=["channel"], name="pay_payment_channel_idx"),
            models.Index(fields=["payment_code"], name="pay_payment_code_idx"),
        ]

    def __str__(self):
        return f"{self.payment_code or self.id} | {self.channel} | {self.amount}"

    def clean(self):
        if self.amount is None or self.amount < 0:
            raise ValidationError("Payment amount must be >= 0")
        if self.cd_amount is None or self.cd_amount < 0:
            raise ValidationError("Cash discount must be >= 0")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)


class PaymentAllocation(models.Model):
    payment = models.ForeignKey(
        Payment,
        on_delete=models.CASCADE,
        related_name="allocations",
    )
    entry = models.ForeignKey(
        OutstandingEntry,
        on_delete=models.PROTECT,
        related_name="allocations",
    )

    sr_no = models.CharField(max_length=32)
    position = models.PositiveIntegerField(default=0)

    amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    cd_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    cd_applied = models.BooleanField(default=False)

    # Official channel only
    adjusted_original = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    extra_amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)

    class Meta:
        ordering = ["payment", "position"]
        indexes = [
            models.Index(fields=["payment"], name="pay_alloc_payment_idx"),
            models.Index(fields=["entry"], name="pay_alloc_entry_idx"),
        ]

    def __str__(self):
        return f"{self.payment_id} → {self.sr_no} | {self.amount} + cd {self.cd_amount}"

    @property
    def settled(self) -> Decimal:
        return (self.amount or Decimal("0.00")) + (self.cd_amount or Decimal("0.00"))
