"""
======================================================
PATH: ledger/migrations/0001_initial.py
======================================================
MIGRATION: CREATE Account + LedgerPosting
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Account",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("name", models.CharField(max_length=150)),
                ("address", models.CharField(blank=True, default="", max_length=255)),
                ("contact", models.CharField(blank=True, default="", max_length=50)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Account",
                "verbose_name_plural": "Accounts",
                "ordering": ["name"],
                "indexes": [
                    models.Index(fields=["name"], name="ledger_account_name_idx"),
                    models.Index(fields=["is_active"], name="ledger_account_active_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("name", ""), _negated=True),
                        name="chk_ledger_account_name_not_blank",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="LedgerPosting",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("date", models.DateField()),
                ("particulars", models.CharField(default="-", max_length=255)),
                ("remarks", models.CharField(blank=True, default="", max_length=255)),
                (
                    "debit",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "credit",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "balance",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Running balance (derived; recomputed on every change)",
                        max_digits=14,
                    ),
                ),
                (
                    "link_group_id",
                    models.CharField(blank=True, db_index=True, max_length=64, null=True),
                ),
                (
                    "link_strategy",
                    models.CharField(
                        blank=True,
                        choices=[("mirror", "Mirror (opposite side)"), ("same", "Same side")],
                        max_length=10,
                        null=True,
                    ),
                ),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="postings",
                        to="ledger.account",
                    ),
                ),
            ],
            options={
                "verbose_name": "Ledger Posting",
                "verbose_name_plural": "Ledger Postings",
                "ordering": ["-date", "-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["account", "date"], name="ledger_post_acct_date_idx"),
                    models.Index(
                        fields=["account", "date", "created_at"],
                        name="ledger_post_acct_dt_ct_idx",
                    ),
                ],
            },
        ),
    ]
