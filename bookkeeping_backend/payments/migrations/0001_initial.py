"""
======================================================
PATH: payments/migrations/0001_initial.py
======================================================
MIGRATION: CREATE OutstandingEntry + Payment + PaymentAllocation
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


def _money(**kwargs):
    return models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14, **kwargs)


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("ledger", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="OutstandingEntry",
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
                ("sr_no", models.CharField(max_length=32, unique=True)),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("entry_date", models.DateField()),
                ("due_date", models.DateField(blank=True, null=True)),
                ("rate", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("net_weight", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("final_weight", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                (
                    "original_net_amount",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                ("net_amount", _money(help_text="Current outstanding (derived)")),
                ("total_paid", _money()),
                ("total_cd", _money()),
                ("extra_amount", _money(help_text="Official-channel top-up on the original")),
                ("is_deleted", models.BooleanField(default=False)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "party",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="outstanding_entries",
                        to="ledger.account",
                    ),
                ),
            ],
            options={
                "verbose_name": "Outstanding Entry",
                "verbose_name_plural": "Outstanding Entries",
                "ordering": ["entry_date", "due_date", "sr_no"],
                "indexes": [
                    models.Index(fields=["party", "is_deleted"], name="pay_entry_party_del_idx"),
                    models.Index(fields=["entry_date"], name="pay_entry_date_idx"),
                    models.Index(fields=["due_date"], name="pay_entry_due_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Payment",
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
                ("payment_code", models.CharField(blank=True, default="", max_length=32)),
                ("payment_date", models.DateField()),
                ("amount", _money()),
                ("cd_amount", _money()),
                ("cd_applied", models.BooleanField(default=False)),
                ("cd_mode", models.CharField(blank=True, default="", max_length=32)),
                ("cd_percent", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=6)),
                (
                    "payment_type",
                    models.CharField(
                        choices=[("Full", "Full"), ("Partial", "Partial")],
                        default="Full",
                        max_length=10,
                    ),
                ),
                (
                    "channel",
                    models.CharField(
                        choices=[("Cash", "Cash"), ("Online", "Online"), ("RTGS", "RTGS"), ("Gov.", "Gov.")],
                        default="Cash",
                        max_length=10,
                    ),
                ),
                ("extra_amount", _money()),
                ("notes", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "party",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="ledger.account",
                    ),
                ),
                (
                    "ledger_posting",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="payments",
                        to="ledger.ledgerposting",
                    ),
                ),
            ],
            options={
                "ordering": ["-payment_date", "-created_at"],
                "indexes": [
                    models.Index(fields=["party", "payment_date"], name="pay_payment_party_date_idx"),
                    models.Index(fields=["channel"], name="pay_payment_channel_idx"),
                    models.Index(fields=["payment_code"], name="pay_payment_code_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PaymentAllocation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("sr_no", models.CharField(max_length=32)),
                ("position", models.PositiveIntegerField(default=0)),
                ("amount", _money()),
                ("cd_amount", _money()),
                ("cd_applied", models.BooleanField(default=False)),
                (
                    "adjusted_original",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True),
                ),
                (
                    "extra_amount",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True),
                ),
                (
                    "payment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="allocations",
                        to="payments.payment",
                    ),
                ),
                (
                    "entry",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="allocations",
                        to="payments.outstandingentry",
                    ),
                ),
            ],
            options={
                "ordering": ["payment", "position"],
                "indexes": [
                    models.Index(fields=["payment"], name="pay_alloc_payment_idx"),
                    models.Index(fields=["entry"], name="pay_alloc_entry_idx"),
                ],
            },
        ),
    ]
