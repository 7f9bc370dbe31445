# ledger/models/account.py

from __future__ import annotations

import uuid

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q


class Account(models.Model):
    """
    A ledger party (supplier, customer, bank, cash book ...).

    Guarantees:
    - Name is normalized (trimmed) and never blank
    - Never deleted implicitly (postings PROTECT it); deactivate instead
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=150)
    address = models.CharField(max_length=255, blank=True, default="")
    contact = models.CharField(max_length=50, blank=True, default="")

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        verbose_name = "Account"
        verbose_name_plural = "Accounts"
        indexes = [
            models.Index(fields=["name"], name="ledger_account_name_idx"),
            models.Index(fields=["is_active"], name="ledger_account_active_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~Q(name=""),
                name="chk_ledger_account_name_not_blank",
            ),
        ]

    def __str__(self):
        return self.name

    def clean(self):
        self.name = (self.name or "").strip()
        self.address = (self.address or "").strip()
        self.contact = (self.contact or "").strip()

        if not self.name:
            raise ValidationError("Account name is required")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
