# payments/services/entry_service.py

"""
======================================================
PATH: payments/services/entry_service.py
======================================================
OUTSTANDING ENTRY SERVICE

Create, edit and soft-delete outstanding entries.

Rules:
- original_net_amount is frozen once a payment line references the entry
- net_amount is always re-derived from the stored totals
- soft delete reverses every payment line pointing at the entry:
    the payment shrinks by that line (amount and discount), a payment
    left without lines is removed together with its ledger posting
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.utils import timezone

from ledger.domain import ZERO, to_money
from ledger.models.account import Account
from ledger.services.exceptions import LedgerServiceError
from ledger.services.posting_service import delete_posting, update_posting
from payments.domain import EntryState
from payments.models import OutstandingEntry, Payment
from payments.services.exceptions import (
    EntryNotFoundError,
    PaymentPersistenceError,
    PaymentValidationError,
)
from payments.services.ledger_errors import payment_error_from_ledger
from payments.services.records import apply_entry_state, entry_state

logger = logging.getLogger("payments")

EDITABLE_FIELDS = (
    "description",
    "entry_date",
    "due_date",
    "rate",
    "net_weight",
    "final_weight",
    "original_net_amount",
)


@dataclass(frozen=True)
class EntryDeletion:
    entry: OutstandingEntry
    payments_updated: list
    payments_deleted: list


def _get_party(party_id) -> Account:
    try:
        return Account.objects.get(pk=party_id)
    except (Account.DoesNotExist, ValidationError, ValueError) as exc:
        raise EntryNotFoundError("Party not found") from exc


def _lock_entry(entry_id) -> OutstandingEntry:
    try:
        return OutstandingEntry.objects.select_for_update().get(pk=entry_id, is_deleted=False)
    except (OutstandingEntry.DoesNotExist, ValidationError, ValueError) as exc:
        raise EntryNotFoundError("Entry not found") from exc


def create_entry(
    *,
    party_id,
    sr_no: str,
    entry_date,
    original_net_amount,
    due_date=None,
    rate=ZERO,
    net_weight=ZERO,
    final_weight=ZERO,
    description: str = "",
) -> OutstandingEntry:
    sr_no = (sr_no or "").strip()
    if not sr_no:
        raise PaymentValidationError("sr_no is required")

    original = to_money(original_net_amount)
    if original < ZERO:
        raise PaymentValidationError("Original amount must not be negative")

    party = _get_party(party_id)

    if OutstandingEntry.objects.filter(sr_no=sr_no).exists():
        raise PaymentValidationError(f"Entry {sr_no} already exists")

    try:
        with transaction.atomic():
            entry = OutstandingEntry(
                party=party,
                sr_no=sr_no,
                description=description or "",
                entry_date=entry_date,
                due_date=due_date,
                rate=to_money(rate),
                net_weight=to_money(net_weight),
                final_weight=to_money(final_weight),
                original_net_amount=original,
                net_amount=original,
            )
            entry.save()
    except ValidationError as exc:
        raise PaymentValidationError("; ".join(exc.messages)) from exc
    except DatabaseError as exc:
        logger.exception("Entry persistence failed", extra={"sr_no": sr_no})
        raise PaymentPersistenceError("Could not save the entry") from exc

    logger.info(
        "Outstanding entry created",
        extra={"entry_id": str(entry.pk), "sr_no": sr_no, "party_id": str(party.pk)},
    )
    return entry


def edit_entry(entry_id, **fields) -> OutstandingEntry:
    unknown = set(fields) - set(EDITABLE_FIELDS)
    if unknown:
        raise PaymentValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

    try:
        with transaction.atomic():
            entry = _lock_entry(entry_id)

            if "original_net_amount" in fields:
                new_original = to_money(fields["original_net_amount"])
                if new_original != entry.original_net_amount and entry.allocations.exists():
                    raise PaymentValidationError(
                        "Original amount cannot change once payments reference the entry"
                    )
                fields["original_net_amount"] = new_original

            for name, value in fields.items():
                setattr(entry, name, value)

            entry.net_amount = entry_state(entry).outstanding
            entry.save()
    except ValidationError as exc:
        raise PaymentValidationError("; ".join(exc.messages)) from exc
    except DatabaseError as exc:
        logger.exception("Entry update failed", extra={"entry_id": str(entry_id)})
        raise PaymentPersistenceError("Could not update the entry") from exc

    logger.info(
        "Outstanding entry updated",
        extra={"entry_id": str(entry.pk), "fields": sorted(fields)},
    )
    return entry


def soft_delete_entry(entry_id) -> EntryDeletion:
    updated_payments: list = []
    deleted_payments: list = []

    try:
        with transaction.atomic():
            entry = _lock_entry(entry_id)

            payment_ids = list(
                entry.allocations.values_list("payment_id", flat=True).distinct()
            )
            payments = Payment.objects.select_for_update().filter(pk__in=payment_ids)

            for payment in payments:
                lines = list(payment.allocations.filter(entry=entry))
                amount = sum((row.amount for row in lines), ZERO)
                cd = sum((row.cd_amount for row in lines), ZERO)
                extra = sum((row.extra_amount or ZERO for row in lines), ZERO)

                payment.allocations.filter(entry=entry).delete()

                if not payment.allocations.exists():
                    posting_id = payment.ledger_posting_id
                    deleted_payments.append(payment.pk)
                    payment.delete()
                    if posting_id:
                        delete_posting(posting_id)
                    continue

                payment.amount = max(payment.amount - amount, ZERO)
                payment.cd_amount = max(payment.cd_amount - cd, ZERO)
                payment.extra_amount = max(payment.extra_amount - extra, ZERO)
                posting_id = payment.ledger_posting_id
                if posting_id and payment.amount <= ZERO:
                    payment.ledger_posting = None
                payment.save()
                if posting_id and payment.amount <= ZERO:
                    delete_posting(posting_id)
                elif posting_id:
                    update_posting(posting_id, debit=payment.amount)
                updated_payments.append(payment.pk)

            apply_entry_state(
                entry,
                EntryState(
                    sr_no=entry.sr_no,
                    original_net_amount=entry.original_net_amount,
                ),
            )
            entry.is_deleted = True
            entry.deleted_at = timezone.now()
            entry.save(update_fields=["is_deleted", "deleted_at", "updated_at"])
    except ValidationError as exc:
        raise PaymentValidationError("; ".join(exc.messages)) from exc
    except LedgerServiceError as exc:
        raise payment_error_from_ledger(exc) from exc
    except DatabaseError as exc:
        logger.exception("Entry delete failed", extra={"entry_id": str(entry_id)})
        raise PaymentPersistenceError("Could not delete the entry") from exc

    logger.info(
        "Outstanding entry soft-deleted",
        extra={
            "entry_id": str(entry.pk),
            "payments_updated": len(updated_payments),
            "payments_deleted": len(deleted_payments),
        },
    )
    return EntryDeletion(
        entry=entry,
        payments_updated=updated_payments,
        payments_deleted=deleted_payments,
    )
