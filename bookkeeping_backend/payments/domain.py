# payments/domain.py

"""
======================================================
PATH: payments/domain.py
======================================================
PAYMENTS DOMAIN VALUES (FRAMEWORK-AGNOSTIC)

Frozen dataclasses shared by the pure payment modules:
- EntryState     one outstanding entry (invoice-like line)
- AllocationLine one "paid for" line of a payment
- PaymentRecord  a payment as seen by discount / derivation logic

No ORM imports. Services convert model rows to these values and back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import Any

from ledger.domain import TWOPLACES, ZERO, to_money

WHOLE = Decimal("1")
TOLERANCE = Decimal("0.01")

PAYMENT_FULL = "Full"
PAYMENT_PARTIAL = "Partial"
PAYMENT_TYPES = (PAYMENT_FULL, PAYMENT_PARTIAL)

CHANNEL_CASH = "Cash"
CHANNEL_ONLINE = "Online"
CHANNEL_RTGS = "RTGS"
CHANNEL_GOV = "Gov."
CHANNELS = (CHANNEL_CASH, CHANNEL_ONLINE, CHANNEL_RTGS, CHANNEL_GOV)


def whole(value) -> Decimal:
    """Round to whole currency units (half away from zero)."""
    return _exact(value).quantize(WHOLE, rounding=ROUND_HALF_UP)


def floor_whole(value) -> Decimal:
    return _exact(value).quantize(WHOLE, rounding=ROUND_DOWN)


def _exact(value) -> Decimal:
    # Unrounded Decimals pass through so whole() rounds once.
    if isinstance(value, Decimal) and value.is_finite():
        return value
    return to_money(value)


def clamp_outstanding(value) -> Decimal:
    """
    2dp outstanding; tiny negatives in [-0.01, 0) snap to zero.

    A larger negative is kept so overpayment stays visible.
    """
    amount = to_money(value)
    if -TOLERANCE <= amount < ZERO:
        return ZERO
    return amount


def sr_sort_key(sr_no) -> tuple:
    s = str(sr_no or "").strip()
    if s.isdigit():
        return (0, int(s), s)
    return (1, 0, s)


@dataclass(frozen=True)
class EntryState:
    sr_no: str
    original_net_amount: Decimal
    total_paid: Decimal = ZERO
    total_cd: Decimal = ZERO
    extra_amount: Decimal = ZERO
    entry_date: date | None = None
    due_date: date | None = None
    rate: Decimal = ZERO
    net_weight: Decimal = ZERO
    final_weight: Decimal = ZERO
    id: Any = None

    @property
    def adjusted_original(self) -> Decimal:
        return to_money(self.original_net_amount) + to_money(self.extra_amount)

    @property
    def outstanding(self) -> Decimal:
        return clamp_outstanding(
            self.adjusted_original - to_money(self.total_paid) - to_money(self.total_cd)
        )

    @property
    def payable(self) -> Decimal:
        """Outstanding floored at zero (what an allocation may still take)."""
        return max(self.outstanding, ZERO)

    def is_cd_eligible(self, payment_date: date | None) -> bool:
        # No due date: never eligible.
        if self.due_date is None or payment_date is None:
            return False
        return self.due_date >= payment_date


@dataclass(frozen=True)
class AllocationLine:
    sr_no: str
    amount: Decimal
    cd_amount: Decimal | None = ZERO
    cd_applied: bool = False
    adjusted_original: Decimal | None = None
    extra_amount: Decimal | None = None
    entry_id: Any = None

    @property
    def settled(self) -> Decimal:
        return to_money(self.amount) + to_money(self.cd_amount)


@dataclass(frozen=True)
class PaymentRecord:
    id: Any
    payment_date: date | None
    amount: Decimal
    cd_amount: Decimal = ZERO
    cd_applied: bool = False
    channel: str = CHANNEL_CASH
    extra_amount: Decimal = ZERO
    lines: tuple = field(default_factory=tuple)

    @property
    def line_total(self) -> Decimal:
        return sum((to_money(line.amount) for line in self.lines), ZERO)

    def lines_for(self, sr_no: str) -> list[AllocationLine]:
        return [line for line in self.lines if line.sr_no == sr_no]


def line_cd_share(payment: PaymentRecord, line: AllocationLine) -> Decimal:
    """
    Discount attributable to one line.

    Recorded cd_amount wins; otherwise the payment's discount is shared in
    proportion to line amount / payment line total.
    """
    if line.cd_amount is not None:
        return to_money(line.cd_amount)

    total = payment.line_total
    if total <= ZERO:
        return ZERO
    share = to_money(payment.cd_amount) * to_money(line.amount) / total
    return share.quantize(TWOPLACES, rounding=ROUND_HALF_UP)
