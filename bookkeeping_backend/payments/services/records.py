# payments/services/records.py

"""
ORM <-> domain converters for the payments services.

Keep this module thin: no business rules, only field mapping.
"""

from __future__ import annotations

from decimal import Decimal

from django.db.models import Q

from payments.domain import AllocationLine, EntryState, PaymentRecord
from payments.models import OutstandingEntry, Payment, PaymentAllocation


def entry_state(entry: OutstandingEntry) -> EntryState:
    return EntryState(
        id=entry.pk,
        sr_no=entry.sr_no,
        original_net_amount=entry.original_net_amount,
        total_paid=entry.total_paid,
        total_cd=entry.total_cd,
        extra_amount=entry.extra_amount,
        entry_date=entry.entry_date,
        due_date=entry.due_date,
        rate=entry.rate,
        net_weight=entry.net_weight,
        final_weight=entry.final_weight,
    )


def allocation_line(row: PaymentAllocation) -> AllocationLine:
    return AllocationLine(
        sr_no=row.sr_no,
        entry_id=row.entry_id,
        amount=row.amount,
        cd_amount=row.cd_amount,
        cd_applied=row.cd_applied,
        adjusted_original=row.adjusted_original,
        extra_amount=row.extra_amount,
    )


def payment_record(payment: Payment) -> PaymentRecord:
    return PaymentRecord(
        id=payment.pk,
        payment_date=payment.payment_date,
        amount=payment.amount,
        cd_amount=payment.cd_amount,
        cd_applied=payment.cd_applied,
        channel=payment.channel,
        extra_amount=payment.extra_amount,
        lines=tuple(allocation_line(row) for row in payment.allocations.all()),
    )


def apply_entry_state(entry: OutstandingEntry, state: EntryState) -> None:
    entry.total_paid = state.total_paid
    entry.total_cd = state.total_cd
    entry.extra_amount = state.extra_amount
    entry.net_amount = state.outstanding
    entry.save(update_fields=["total_paid", "total_cd", "extra_amount", "net_amount", "updated_at"])


def party_history(party_id, *, exclude_payment_id=None, before=None) -> list[PaymentRecord]:
    """
    Payments of a party, oldest first, with their lines.

    before: (payment_date, created_at); keep only payments ordered earlier.
    """
    qs = (
        Payment.objects
        .filter(party_id=party_id)
        .prefetch_related("allocations")
        .order_by("payment_date", "created_at")
    )
    if exclude_payment_id is not None:
        qs = qs.exclude(pk=exclude_payment_id)
    if before is not None:
        payment_date, created_at = before
        qs = qs.filter(
            Q(payment_date__lt=payment_date)
            | Q(payment_date=payment_date, created_at__lt=created_at)
        )
    return [payment_record(p) for p in qs]


def as_decimal_map(values) -> dict:
    return {str(k): Decimal(str(v)) for k, v in (values or {}).items()}
