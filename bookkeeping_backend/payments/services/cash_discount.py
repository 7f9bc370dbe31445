# payments/services/cash_discount.py

"""
======================================================
PATH: payments/services/cash_discount.py
======================================================
CASH DISCOUNT CALCULATOR (PURE)

Modes:
- partial_on_paid          base = outstanding when the payment settles it
                           fully, else the amount being paid now
- on_unpaid_amount         base = outstanding of the eligible entries
- on_full_amount           base = ORIGINAL amount of the eligible entries,
- proportional_cd            minus discount already granted on them (offset)
- on_previously_paid_no_cd base = amounts paid earlier on the eligible
                           entries by payments WITHOUT discount

Rules:
- only entries with due_date >= payment_date are eligible; none eligible
  means no discount at all (result.eligible is False)
- amount is rounded to whole currency, then clamped to
  [0, floor(min(total outstanding, mode cap))]
- a manual amount overrides the percentage; the equivalent percent is
  reported back, the mode does not change
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence

from ledger.domain import TWOPLACES, ZERO, to_money
from payments.domain import (
    PAYMENT_FULL,
    PAYMENT_PARTIAL,
    TOLERANCE,
    EntryState,
    PaymentRecord,
    floor_whole,
    line_cd_share,
    whole,
)
from payments.services.exceptions import PaymentValidationError

PARTIAL_ON_PAID = "partial_on_paid"
ON_UNPAID_AMOUNT = "on_unpaid_amount"
ON_FULL_AMOUNT = "on_full_amount"
PROPORTIONAL_CD = "proportional_cd"
ON_PREVIOUSLY_PAID_NO_CD = "on_previously_paid_no_cd"

CD_MODES = (
    PARTIAL_ON_PAID,
    ON_UNPAID_AMOUNT,
    ON_FULL_AMOUNT,
    PROPORTIONAL_CD,
    ON_PREVIOUSLY_PAID_NO_CD,
)

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class DiscountResult:
    amount: Decimal
    base_amount: Decimal
    offset: Decimal
    max_available: Decimal
    eligible: bool
    percent: Decimal
    mode: str

    @classmethod
    def none(cls, *, mode: str, percent: Decimal) -> "DiscountResult":
        return cls(
            amount=ZERO,
            base_amount=ZERO,
            offset=ZERO,
            max_available=ZERO,
            eligible=False,
            percent=percent,
            mode=mode,
        )


def default_mode_for_payment_type(payment_type: str | None, fallback: str = ON_UNPAID_AMOUNT) -> str:
    if payment_type == PAYMENT_FULL:
        return ON_FULL_AMOUNT
    if payment_type == PAYMENT_PARTIAL:
        return PARTIAL_ON_PAID
    return fallback


def percent_for_amount(amount, base) -> Decimal:
    base = to_money(base)
    if base <= ZERO:
        return ZERO
    return (to_money(amount) / base * HUNDRED).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _prior_cd(entries: Iterable[EntryState], history: Sequence[PaymentRecord]) -> Decimal:
    sr_nos = {e.sr_no for e in entries}
    total = ZERO
    for payment in history:
        for line in payment.lines:
            if line.sr_no in sr_nos:
                total += line_cd_share(payment, line)
    return total


def _paid_without_cd(entries: Iterable[EntryState], history: Sequence[PaymentRecord]) -> Decimal:
    sr_nos = {e.sr_no for e in entries}
    total = ZERO
    for payment in history:
        if payment.cd_applied:
            continue
        for line in payment.lines:
            if line.sr_no in sr_nos:
                total += to_money(line.amount)
    return total


def compute_discount(
    *,
    mode: str | None,
    percent,
    entries: Sequence[EntryState],
    payment_date: date,
    payment_type: str | None = None,
    settle_amount=None,
    to_be_paid_amount=None,
    total_outstanding=None,
    payment_history: Sequence[PaymentRecord] = (),
    manual_amount=None,
    default_mode: str = ON_UNPAID_AMOUNT,
) -> DiscountResult:
    mode = mode or default_mode_for_payment_type(payment_type, fallback=default_mode)
    if mode not in CD_MODES:
        raise PaymentValidationError(f"Unknown cash discount mode: {mode}")

    pct = max(to_money(percent), ZERO)

    eligible = [e for e in entries if e.is_cd_eligible(payment_date)]
    if not eligible:
        return DiscountResult.none(mode=mode, percent=pct)

    if total_outstanding is None:
        total_outstanding = sum((e.payable for e in entries), ZERO)
    total_outstanding = max(to_money(total_outstanding), ZERO)

    offset = ZERO

    if mode == PARTIAL_ON_PAID:
        outstanding = sum((e.payable for e in eligible), ZERO)
        settle = to_money(settle_amount)
        if payment_type == PAYMENT_FULL or abs(settle - outstanding) <= TOLERANCE:
            base = outstanding
        else:
            base = to_money(to_be_paid_amount if to_be_paid_amount is not None else settle_amount)
        raw = base * pct / HUNDRED
        cap = base

    elif mode == ON_UNPAID_AMOUNT:
        base = sum((e.payable for e in eligible), ZERO)
        raw = base * pct / HUNDRED
        cap = base

    elif mode in (ON_FULL_AMOUNT, PROPORTIONAL_CD):
        base = sum((to_money(e.original_net_amount) for e in eligible), ZERO)
        offset = _prior_cd(eligible, payment_history)
        raw = max(base * pct / HUNDRED - offset, ZERO)
        cap = raw

    else:
        base = _paid_without_cd(eligible, payment_history)
        raw = base * pct / HUNDRED
        cap = base

    max_available = max(min(total_outstanding, to_money(cap)), ZERO)
    ceiling = floor_whole(max_available)

    if manual_amount is not None:
        amount = min(max(whole(manual_amount), ZERO), ceiling)
        pct = percent_for_amount(amount, base)
    else:
        amount = min(max(whole(raw), ZERO), ceiling)

    return DiscountResult(
        amount=amount,
        base_amount=to_money(base),
        offset=to_money(offset),
        max_available=max_available,
        eligible=True,
        percent=pct,
        mode=mode,
    )
