# ledger/models/posting.py

"""
======================================================
PATH: ledger/models/posting.py
======================================================
LEDGER POSTING MODEL

One debit/credit row in an account's ledger.

Guarantees:
- debit and credit are non-negative (2dp)
- balance is DERIVED: services overwrite it after every recalculation
- a linked posting shares link_group_id with exactly one counterpart
  in another account (associated, not owned)
- the auto-increment pk is the stable creation-order tie-breaker
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from ledger.models.account import Account


class LedgerPosting(models.Model):
    MIRROR = "mirror"
    SAME = "same"

    LINK_STRATEGIES = [
        (MIRROR, "Mirror (opposite side)"),
        (SAME, "Same side"),
    ]

    id = models.BigAutoField(primary_key=True)

    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="postings",
    )

    date = models.DateField()
    particulars = models.CharField(max_length=255, default="-")
    remarks = models.CharField(max_length=255, blank=True, default="")

    debit = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    credit = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    balance = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Running balance (derived; recomputed on every change)",
    )

    link_group_id = models.CharField(max_length=64, null=True, blank=True, db_index=True)
    link_strategy = models.CharField(
        max_length=10,
        choices=LINK_STRATEGIES,
        null=True,
        blank=True,
    )

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Ledger Posting"
        verbose_name_plural = "Ledger Postings"
        ordering = ["-date", "-created_at", "-id"]
        indexes = [
            models.Index(fields=["account", "date"], name="ledger_post_acct_date_idx"),
            models.Index(fields=["account", "date", "created_at"], name="ledger_post_acct_dt_ct_idx"),
        ]

    def __str__(self):
        return f"{self.date} {self.particulars} Dr {self.debit} Cr {self.credit}"

    @property
    def is_linked(self) -> bool:
        return bool(self.link_group_id)

    def clean(self):
        self.particulars = (self.particulars or "").strip() or "-"
        self.remarks = (self.remarks or "").strip()

        if self.debit is None or self.debit < 0:
            raise ValidationError("Debit must be >= 0")
        if self.credit is None or self.credit < 0:
            raise ValidationError("Credit must be >= 0")

        if self.link_strategy and not self.link_group_id:
            raise ValidationError("link_strategy requires link_group_id")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
