# payments/services/payment_service.py

"""
======================================================
PATH: payments/services/payment_service.py
======================================================
PAYMENT SERVICE (PERSISTENCE ORCHESTRATOR)

create_payment / update_payment / delete_payment.

Flow (one transaction each):
1) lock the party's selected entries (select_for_update)
2) cash discount from payments.services.cash_discount (optional)
3) validate + allocate with payments.services.allocation
4) write Payment + PaymentAllocation rows and the new entry totals
5) optionally mirror the payment into the ledger (party Dr, cash/bank Cr)

Editing is in place: same Payment row, old lines reversed, new lines
written. Deleting reverses the lines and removes the ledger posting (and
its linked counterpart).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction

from ledger.domain import LINK_MIRROR, ZERO, to_money
from ledger.models.account import Account
from ledger.services.exceptions import LedgerServiceError
from ledger.services.posting_service import create_posting, delete_posting, update_posting
from payments.domain import CHANNEL_CASH, CHANNEL_GOV, CHANNELS, PAYMENT_FULL, PAYMENT_TYPES, whole
from payments.models import OutstandingEntry, Payment, PaymentAllocation
from payments.services.allocation import (
    AllocationResult,
    allocate,
    reverse,
    validate_payment_request,
)
from payments.services.cash_discount import DiscountResult, compute_discount
from payments.services.exceptions import (
    EntryNotFoundError,
    PaymentNotFoundError,
    PaymentPersistenceError,
    PaymentValidationError,
)
from payments.services.ledger_errors import payment_error_from_ledger
from payments.services.records import (
    allocation_line,
    apply_entry_state,
    as_decimal_map,
    entry_state,
    party_history,
)

logger = logging.getLogger("payments")


@dataclass(frozen=True)
class PaymentOutcome:
    payment: Payment
    allocation: AllocationResult
    discount: DiscountResult


@dataclass(frozen=True)
class PaymentDeletion:
    payment_id: object
    entries_restored: int
    ledger_posting_id: int | None


# ============================================================
# HELPERS
# ============================================================


def _validate_choices(payment_type: str, channel: str) -> None:
    if payment_type not in PAYMENT_TYPES:
        raise PaymentValidationError(f"Invalid payment type: {payment_type}")
    if channel not in CHANNELS:
        raise PaymentValidationError(f"Invalid channel: {channel}")


def _get_party(party_id) -> Account:
    try:
        return Account.objects.get(pk=party_id)
    except (Account.DoesNotExist, ValidationError, ValueError) as exc:
        raise EntryNotFoundError("Party not found") from exc


def _lock_entries(party: Account, entry_ids) -> list[OutstandingEntry]:
    ids = list(dict.fromkeys(str(e) for e in (entry_ids or [])))
    if not ids:
        raise PaymentValidationError("Please select entries to pay")

    try:
        rows = list(
            OutstandingEntry.objects.select_for_update().filter(
                party=party, pk__in=ids, is_deleted=False
            )
        )
    except (ValidationError, ValueError) as exc:
        raise EntryNotFoundError("Invalid entry id") from exc

    if len(rows) != len(ids):
        found = {str(r.pk) for r in rows}
        missing = [i for i in ids if i not in found]
        raise EntryNotFoundError(f"Entries not found for this party: {', '.join(missing)}")
    return rows


def _lock_payment(payment_id) -> Payment:
    try:
        return Payment.objects.select_for_update().get(pk=payment_id)
    except (Payment.DoesNotExist, ValidationError, ValueError) as exc:
        raise PaymentNotFoundError("Payment not found") from exc


def _discount(
    states,
    *,
    history,
    payment_date,
    gross: Decimal,
    payment_type: str,
    cd_enabled: bool,
    cd_mode,
    cd_percent,
    manual_cd,
) -> DiscountResult:
    percent = cd_percent if cd_percent is not None else settings.CASH_DISCOUNT_DEFAULT_PERCENT
    if not cd_enabled:
        return DiscountResult.none(mode=cd_mode or "", percent=to_money(percent))

    return compute_discount(
        mode=cd_mode,
        percent=percent,
        entries=states,
        payment_date=payment_date,
        payment_type=payment_type,
        settle_amount=gross,
        to_be_paid_amount=gross,
        payment_history=history,
        manual_amount=manual_cd,
        default_mode=settings.CASH_DISCOUNT_DEFAULT_MODE,
    )


def _new_extras(extra_amounts, history, channel: str) -> dict:
    # The first Gov. payment covering an entry fixes its adjusted original;
    # `history` holds the payments ordered before the one being planned.
    if channel != CHANNEL_GOV:
        return {}
    covered = {
        line.sr_no
        for record in history
        if record.channel == CHANNEL_GOV
        for line in record.lines
    }
    return {sr: v for sr, v in as_decimal_map(extra_amounts).items() if sr not in covered}


def _plan(
    states,
    *,
    history,
    payment_date,
    amount,
    payment_type: str,
    channel: str,
    cd_enabled: bool,
    cd_mode,
    cd_percent,
    manual_cd,
    extra_amounts,
    gov_history,
) -> tuple[DiscountResult, AllocationResult]:
    gross = whole(amount)
    discount = _discount(
        states,
        history=history,
        payment_date=payment_date,
        gross=gross,
        payment_type=payment_type,
        cd_enabled=cd_enabled,
        cd_mode=cd_mode,
        cd_percent=cd_percent,
        manual_cd=manual_cd,
    )
    granted = discount.eligible and discount.amount > ZERO

    validate_payment_request(
        states,
        gross_amount=gross,
        discount_amount=discount.amount,
        discount_enabled=granted,
        payment_type=payment_type,
    )

    allocation = allocate(
        states,
        gross_amount=gross,
        discount_amount=discount.amount,
        discount_enabled=granted,
        channel=channel,
        extra_amounts=_new_extras(extra_amounts, gov_history, channel),
    )
    if not allocation.lines:
        raise PaymentValidationError("Selected entries have nothing outstanding")
    return discount, allocation


def _write_allocation(payment: Payment, rows: list[OutstandingEntry], allocation: AllocationResult) -> None:
    by_id = {row.pk: row for row in rows}

    PaymentAllocation.objects.bulk_create(
        [
            PaymentAllocation(
                payment=payment,
                entry=by_id[line.entry_id],
                sr_no=line.sr_no,
                position=position,
                amount=line.amount,
                cd_amount=to_money(line.cd_amount),
                cd_applied=line.cd_applied,
                adjusted_original=line.adjusted_original,
                extra_amount=line.extra_amount,
            )
            for position, line in enumerate(allocation.lines)
        ]
    )

    for row, state in zip(rows, allocation.entries):
        apply_entry_state(row, state)


def _line_extra_total(allocation: AllocationResult) -> Decimal:
    return sum((to_money(line.extra_amount) for line in allocation.lines), ZERO)


def _particulars(payment: Payment) -> str:
    code = payment.payment_code or str(payment.pk)[:8]
    return f"Payment {code} ({payment.channel})"


def _sync_ledger(payment: Payment, ledger_account_id) -> None:
    """Create, move or drop the ledger posting that mirrors `payment`."""
    if payment.ledger_posting_id:
        if payment.amount > ZERO:
            update_posting(
                payment.ledger_posting_id,
                date=payment.payment_date,
                particulars=_particulars(payment),
                debit=payment.amount,
                credit=ZERO,
            )
        else:
            posting_id = payment.ledger_posting_id
            payment.ledger_posting = None
            payment.save(update_fields=["ledger_posting", "updated_at"])
            delete_posting(posting_id)
        return

    if not ledger_account_id or payment.amount <= ZERO:
        return

    result = create_posting(
        account_id=payment.party_id,
        date=payment.payment_date,
        particulars=_particulars(payment),
        debit=payment.amount,
        credit=ZERO,
        remarks=payment.notes,
        link_account_id=ledger_account_id,
        link_strategy=LINK_MIRROR,
    )
    payment.ledger_posting = result.posting
    payment.save(update_fields=["ledger_posting", "updated_at"])


# ============================================================
# CREATE
# ============================================================


def create_payment(
    *,
    party_id,
    entry_ids,
    payment_date,
    amount,
    payment_type: str = PAYMENT_FULL,
    channel: str = CHANNEL_CASH,
    cd_enabled: bool = False,
    cd_mode: str | None = None,
    cd_percent=None,
    cd_amount=None,
    extra_amounts=None,
    payment_code: str = "",
    notes: str = "",
    ledger_account_id=None,
) -> PaymentOutcome:
    """
    Record a payment against the party's selected entries.

    cd_amount: manual discount (overrides the percentage).
    extra_amounts: Gov. channel top-ups keyed by sr_no.
    ledger_account_id: cash/bank account; when given the payment is also
    posted to the ledger as a linked mirror pair.
    """
    _validate_choices(payment_type, channel)
    if payment_date is None:
        raise PaymentValidationError("Payment date is required")

    logger.info(
        "Initiating payment",
        extra={
            "party_id": str(party_id),
            "entry_count": len(entry_ids or []),
            "amount": str(amount),
            "payment_type": payment_type,
            "channel": channel,
            "cd_enabled": bool(cd_enabled),
        },
    )

    party = _get_party(party_id)

    try:
        with transaction.atomic():
            rows = _lock_entries(party, entry_ids)
            states = [entry_state(row) for row in rows]
            history = party_history(party.pk)

            discount, allocation = _plan(
                states,
                history=history,
                payment_date=payment_date,
                amount=amount,
                payment_type=payment_type,
                channel=channel,
                cd_enabled=cd_enabled,
                cd_mode=cd_mode,
                cd_percent=cd_percent,
                manual_cd=cd_amount,
                extra_amounts=extra_amounts,
                gov_history=history,
            )

            payment = Payment(
                party=party,
                payment_code=(payment_code or "").strip(),
                payment_date=payment_date,
                amount=allocation.gross_amount,
                cd_amount=allocation.discount_amount,
                cd_applied=allocation.discount_amount > ZERO,
                cd_mode=discount.mode if cd_enabled else "",
                cd_percent=discount.percent if cd_enabled else ZERO,
                payment_type=payment_type,
                channel=channel,
                extra_amount=_line_extra_total(allocation),
                notes=(notes or "").strip(),
            )
            payment.save()

            _write_allocation(payment, rows, allocation)
            _sync_ledger(payment, ledger_account_id)
    except ValidationError as exc:
        raise PaymentValidationError("; ".join(exc.messages)) from exc
    except LedgerServiceError as exc:
        raise payment_error_from_ledger(exc) from exc
    except DatabaseError as exc:
        logger.exception("Payment persistence failed", extra={"party_id": str(party.pk)})
        raise PaymentPersistenceError("Could not save the payment") from exc

    if allocation.unallocated > ZERO:
        logger.warning(
            "Payment exceeds outstanding; remainder not allocated",
            extra={"payment_id": str(payment.pk), "unallocated": str(allocation.unallocated)},
        )

    logger.info(
        "Payment recorded",
        extra={
            "payment_id": str(payment.pk),
            "amount": str(payment.amount),
            "cd_amount": str(payment.cd_amount),
            "lines": len(allocation.lines),
        },
    )
    return PaymentOutcome(payment=payment, allocation=allocation, discount=discount)


# ============================================================
# UPDATE (IN PLACE)
# ============================================================


_KEEP = object()


def update_payment(
    payment_id,
    *,
    entry_ids=None,
    payment_date=None,
    amount=None,
    payment_type: str | None = None,
    channel: str | None = None,
    cd_enabled: bool | None = None,
    cd_mode=_KEEP,
    cd_percent=_KEEP,
    cd_amount=None,
    extra_amounts=None,
    payment_code: str | None = None,
    notes: str | None = None,
) -> PaymentOutcome:
    """
    Edit a payment in place. Arguments left as None keep the stored value.

    The old lines are reversed first, so the Partial-payment ceiling is
    measured against what is outstanding without this payment.
    extra_amounts=None keeps the Gov. extras the old lines carried.
    """
    try:
        with transaction.atomic():
            payment = _lock_payment(payment_id)
            old_rows = list(payment.allocations.select_related("entry"))
            old_lines = [allocation_line(row) for row in old_rows]

            new_ids = (
                [str(i) for i in entry_ids]
                if entry_ids is not None
                else [str(row.entry_id) for row in old_rows]
            )
            old_ids = [str(row.entry_id) for row in old_rows]

            payment_type = payment_type or payment.payment_type
            channel = channel or payment.channel
            _validate_choices(payment_type, channel)

            party = payment.party
            rows = _lock_entries(party, new_ids)
            touched = {str(row.pk) for row in rows}
            orphaned = list(
                OutstandingEntry.objects.select_for_update().filter(
                    pk__in=[i for i in old_ids if i not in touched]
                )
            )

            restored = reverse([entry_state(r) for r in rows + orphaned], old_lines)
            states = list(restored[: len(rows)])

            if cd_enabled is None:
                cd_enabled = bool(payment.cd_mode)
            payment_date = payment_date or payment.payment_date
            history = party_history(party.pk, exclude_payment_id=payment.pk)
            earlier = party_history(
                party.pk,
                exclude_payment_id=payment.pk,
                before=(payment_date, payment.created_at),
            )
            if extra_amounts is None:
                extra_amounts = {
                    line.sr_no: line.extra_amount
                    for line in old_lines
                    if line.extra_amount
                }

            discount, allocation = _plan(
                states,
                history=history,
                payment_date=payment_date,
                amount=payment.amount if amount is None else amount,
                payment_type=payment_type,
                channel=channel,
                cd_enabled=cd_enabled,
                cd_mode=(payment.cd_mode or None) if cd_mode is _KEEP else cd_mode,
                cd_percent=(payment.cd_percent if payment.cd_mode else None)
                if cd_percent is _KEEP
                else cd_percent,
                manual_cd=cd_amount,
                extra_amounts=extra_amounts,
                gov_history=earlier,
            )

            payment.allocations.all().delete()
            for row, state in zip(orphaned, restored[len(rows):]):
                apply_entry_state(row, state)
            _write_allocation(payment, rows, allocation)

            payment.payment_date = payment_date
            payment.payment_type = payment_type
            payment.channel = channel
            payment.amount = allocation.gross_amount
            payment.cd_amount = allocation.discount_amount
            payment.cd_applied = allocation.discount_amount > ZERO
            payment.cd_mode = discount.mode if cd_enabled else ""
            payment.cd_percent = discount.percent if cd_enabled else ZERO
            payment.extra_amount = _line_extra_total(allocation)
            if payment_code is not None:
                payment.payment_code = payment_code.strip()
            if notes is not None:
                payment.notes = notes.strip()
            payment.save()

            _sync_ledger(payment, None)
    except ValidationError as exc:
        raise PaymentValidationError("; ".join(exc.messages)) from exc
    except LedgerServiceError as exc:
        raise payment_error_from_ledger(exc) from exc
    except DatabaseError as exc:
        logger.exception("Payment update failed", extra={"payment_id": str(payment_id)})
        raise PaymentPersistenceError("Could not update the payment") from exc

    logger.info(
        "Payment updated",
        extra={
            "payment_id": str(payment.pk),
            "amount": str(payment.amount),
            "cd_amount": str(payment.cd_amount),
            "lines": len(allocation.lines),
        },
    )
    return PaymentOutcome(payment=payment, allocation=allocation, discount=discount)


# ============================================================
# DELETE
# ============================================================


def delete_payment(payment_id) -> PaymentDeletion:
    try:
        with transaction.atomic():
            payment = _lock_payment(payment_id)
            old_rows = list(payment.allocations.all())
            lines = [allocation_line(row) for row in old_rows]

            entries = list(
                OutstandingEntry.objects.select_for_update().filter(
                    pk__in={row.entry_id for row in old_rows}
                )
            )
            restored = reverse([entry_state(e) for e in entries], lines)
            for row, state in zip(entries, restored):
                apply_entry_state(row, state)

            posting_id = payment.ledger_posting_id
            pk = payment.pk
            payment.delete()

            if posting_id:
                delete_posting(posting_id)
    except LedgerServiceError as exc:
        raise payment_error_from_ledger(exc) from exc
    except DatabaseError as exc:
        logger.exception("Payment delete failed", extra={"payment_id": str(payment_id)})
        raise PaymentPersistenceError("Could not delete the payment") from exc

    logger.info(
        "Payment deleted",
        extra={"payment_id": str(pk), "entries_restored": len(entries), "ledger_posting_id": posting_id},
    )
    return PaymentDeletion(payment_id=pk, entries_restored=len(entries), ledger_posting_id=posting_id)
