# payments/services/allocation.py

"""
======================================================
PATH: payments/services/allocation.py
======================================================
PAYMENT ALLOCATION ENGINE (PURE)

allocate():
1) settlement = whole(gross) + whole(discount if enabled)
2) walk entries oldest-first (entry date, due date, sr_no); each entry
   takes min(outstanding, remaining settlement)
3) remainder after the last entry is NOT carried forward
4) discount actually granted = min(discount, settled); it is split across
   lines in proportion to each line's settled amount (2dp), last line
   absorbing the rounding remainder; line.amount = settled - line.cd

Gov. channel: a per-entry extra amount raises the entry's effective
original before its outstanding is measured; the line records
adjusted_original + extra_amount.

reverse() is the exact inverse of the entry-side effect of allocate().
Inputs are never mutated; new EntryState values are returned.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping, Sequence

from ledger.domain import TWOPLACES, ZERO, to_money
from payments.domain import (
    CHANNEL_GOV,
    PAYMENT_PARTIAL,
    TOLERANCE,
    AllocationLine,
    EntryState,
    sr_sort_key,
    whole,
)
from payments.services.exceptions import (
    InsufficientOutstandingError,
    PaymentValidationError,
)


@dataclass(frozen=True)
class AllocationResult:
    lines: tuple
    entries: tuple
    gross_amount: Decimal
    discount_amount: Decimal
    settlement: Decimal
    settled: Decimal
    unallocated: Decimal

    @property
    def line_amount_total(self) -> Decimal:
        return sum((line.amount for line in self.lines), ZERO)

    @property
    def line_cd_total(self) -> Decimal:
        return sum((to_money(line.cd_amount) for line in self.lines), ZERO)


def allocation_order_key(entry: EntryState) -> tuple:
    return (
        entry.entry_date or date.min,
        entry.due_date or date.max,
        sr_sort_key(entry.sr_no),
    )


def order_for_allocation(entries: Sequence[EntryState]) -> list[EntryState]:
    return sorted(entries, key=allocation_order_key)


def settlement_amount(gross_amount, discount_amount=ZERO, discount_enabled: bool = False) -> Decimal:
    settlement = whole(gross_amount)
    if discount_enabled:
        settlement += whole(discount_amount)
    return settlement


def validate_payment_request(
    entries: Sequence[EntryState],
    *,
    gross_amount,
    discount_amount=ZERO,
    discount_enabled: bool = False,
    payment_type: str,
    editing: bool = False,
) -> None:
    """Reject a payment before anything is mutated."""
    if not entries:
        raise PaymentValidationError("Please select entries to pay")

    if to_money(gross_amount) < ZERO or to_money(discount_amount) < ZERO:
        raise PaymentValidationError("Amounts must not be negative")

    settlement = settlement_amount(gross_amount, discount_amount, discount_enabled)
    if settlement <= ZERO:
        raise PaymentValidationError("Payment amount must be positive")

    if payment_type == PAYMENT_PARTIAL and not editing:
        outstanding = sum((e.payable for e in entries), ZERO)
        if settlement > outstanding + TOLERANCE:
            raise InsufficientOutstandingError(
                f"Partial payment of {settlement} cannot exceed outstanding {outstanding}"
            )


def split_discount(discount: Decimal, settled_amounts: Sequence[Decimal]) -> list[Decimal]:
    """
    Pro-rata 2dp split of `discount` over `settled_amounts`.

    Sum of the result equals `discount` exactly and no share exceeds its
    settled amount.
    """
    discount = to_money(discount)
    total = sum(settled_amounts, ZERO)
    if discount <= ZERO or total <= ZERO:
        return [ZERO for _ in settled_amounts]

    shares = [
        (discount * amount / total).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
        for amount in settled_amounts
    ]

    remainder = discount - sum(shares, ZERO)
    for i in range(len(shares) - 1, -1, -1):
        if remainder == ZERO:
            break
        adjusted = min(max(shares[i] + remainder, ZERO), settled_amounts[i])
        remainder -= adjusted - shares[i]
        shares[i] = adjusted

    return shares


def allocate(
    entries: Sequence[EntryState],
    *,
    gross_amount,
    discount_amount=ZERO,
    discount_enabled: bool = False,
    channel: str | None = None,
    extra_amounts: Mapping[str, Decimal] | None = None,
) -> AllocationResult:
    """
    Distribute a payment over `entries` oldest-first.

    Returns lines in walk order and entries in the caller's input order.
    """
    gross = whole(gross_amount)
    discount = whole(discount_amount) if discount_enabled else ZERO
    remaining = gross + discount

    is_gov = channel == CHANNEL_GOV
    extras = {str(k): to_money(v) for k, v in (extra_amounts or {}).items()} if is_gov else {}

    updated: dict[int, EntryState] = {}
    settled_rows: list[tuple[int, EntryState, Decimal, Decimal]] = []

    indexed = sorted(enumerate(entries), key=lambda pair: allocation_order_key(pair[1]))
    for position, entry in indexed:
        if remaining <= ZERO:
            break

        extra = extras.get(str(entry.sr_no), ZERO)
        effective = replace(entry, extra_amount=to_money(entry.extra_amount) + extra) if extra else entry

        applied = min(effective.payable, remaining)
        if applied <= ZERO:
            continue

        remaining -= applied
        settled_rows.append((position, effective, applied, extra))

    cd_total = min(discount, sum((row[2] for row in settled_rows), ZERO))
    cd_shares = split_discount(cd_total, [row[2] for row in settled_rows])

    lines = []
    for (position, effective, applied, extra), cd in zip(settled_rows, cd_shares):
        amount = applied - cd
        lines.append(
            AllocationLine(
                sr_no=effective.sr_no,
                entry_id=effective.id,
                amount=amount,
                cd_amount=cd,
                cd_applied=bool(discount_enabled),
                adjusted_original=effective.adjusted_original if is_gov else None,
                extra_amount=extra if is_gov else None,
            )
        )
        updated[position] = replace(
            effective,
            total_paid=to_money(effective.total_paid) + amount,
            total_cd=to_money(effective.total_cd) + cd,
        )

    settled = gross + discount - remaining
    return AllocationResult(
        lines=tuple(lines),
        entries=tuple(updated.get(i, e) for i, e in enumerate(entries)),
        gross_amount=gross,
        discount_amount=cd_total,
        settlement=gross + discount,
        settled=settled,
        unallocated=remaining,
    )


def reverse(
    entries: Sequence[EntryState],
    lines: Sequence[AllocationLine],
) -> tuple[EntryState, ...]:
    """
    Undo `lines` on `entries`: outstanding grows back by amount + cd, and a
    Gov. line's extra is removed from the entry again.
    """
    by_key: dict = {}
    for line in lines:
        key = line.entry_id if line.entry_id is not None else line.sr_no
        by_key.setdefault(key, []).append(line)

    out = []
    for entry in entries:
        matched = by_key.get(entry.id if entry.id is not None else entry.sr_no)
        if matched is None and entry.id is not None:
            matched = by_key.get(entry.sr_no)
        if not matched:
            out.append(entry)
            continue

        paid = to_money(entry.total_paid)
        cd = to_money(entry.total_cd)
        extra = to_money(entry.extra_amount)
        for line in matched:
            paid -= to_money(line.amount)
            cd -= to_money(line.cd_amount)
            extra -= to_money(line.extra_amount)

        out.append(replace(entry, total_paid=paid, total_cd=cd, extra_amount=extra))

    return tuple(out)


def reallocate(
    entries: Sequence[EntryState],
    previous_lines: Sequence[AllocationLine],
    **allocate_kwargs,
) -> AllocationResult:
    """In-place edit: reverse the old lines, then allocate the new request."""
    return allocate(reverse(entries, previous_lines), **allocate_kwargs)
