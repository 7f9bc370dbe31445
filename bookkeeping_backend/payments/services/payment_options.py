# payments/services/payment_options.py

"""
======================================================
PATH: payments/services/payment_options.py
======================================================
PAYMENT OPTION GENERATOR (PURE)

Lists (quantity, rate) pairs whose amount = quantity x rate fits under a
target amount.

Rules:
- quantity is a multiple of 0.10
- rate steps by 1 or 5; min is rounded UP and max DOWN to the step
- no paise: only whole-currency amounts qualify
- round figure: the (rupee-rounded) amount must be a multiple of 100
- bag size: quantity / bag size must be whole
- extra per unit: target += base quantity x extra
- sort: remaining asc, rate asc, quantity desc, amount desc

Arithmetic is done on integers (tenths of a unit, hundredths of currency)
so there is no float drift.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Sequence

from ledger.domain import TWOPLACES, ZERO, to_money
from payments.domain import EntryState
from payments.services.exceptions import PaymentValidationError
from payments.services.receipt_selector import (
    EXTRA_BASE_FINAL_QTY,
    EXTRA_BASE_NET_QTY,
    EXTRA_BASE_OUTSTANDING,
    EXTRA_BASES,
)

RATE_STEPS = (1, 5)
MAX_QUANTITY_TENTHS = 200_000


@dataclass(frozen=True)
class PaymentOption:
    quantity: Decimal
    rate: Decimal
    amount: Decimal
    remaining: Decimal
    bags: int | None = None


@dataclass(frozen=True)
class PaymentOptionsResult:
    target: Decimal
    adjusted_target: Decimal
    base_quantity: Decimal
    options: tuple


def _base_quantity(target: Decimal, min_rate: Decimal, extra_base: str, receipts: Sequence[EntryState]) -> Decimal:
    if receipts and extra_base == EXTRA_BASE_NET_QTY:
        return sum((to_money(r.net_weight) for r in receipts), ZERO)
    if receipts and extra_base == EXTRA_BASE_FINAL_QTY:
        return sum((to_money(r.final_weight) for r in receipts), ZERO)
    return target / min_rate if min_rate > ZERO else ZERO


def _to_step(value: Decimal, step: int, rounding) -> int:
    return int((value / step).quantize(Decimal("1"), rounding=rounding)) * step


def generate_payment_options(
    *,
    target_amount,
    min_rate,
    max_rate,
    rate_step: int = 1,
    allow_paise: bool = False,
    round_figure: bool = False,
    bag_size=None,
    extra_per_unit=ZERO,
    extra_base: str = EXTRA_BASE_OUTSTANDING,
    receipts: Sequence[EntryState] = (),
    limit: int = 2000,
) -> PaymentOptionsResult:
    target = to_money(target_amount)
    min_rate = to_money(min_rate)
    max_rate = to_money(max_rate)

    if target <= ZERO:
        raise PaymentValidationError("Target amount must be greater than 0")
    if min_rate <= ZERO:
        raise PaymentValidationError("Rate must be greater than 0")
    if min_rate > max_rate:
        raise PaymentValidationError("Minimum rate cannot exceed maximum rate")
    if rate_step not in RATE_STEPS:
        raise PaymentValidationError("rate_step must be 1 or 5")
    if extra_base not in EXTRA_BASES:
        raise PaymentValidationError(f"Unknown extra base: {extra_base}")

    base_quantity = _base_quantity(target, min_rate, extra_base, receipts)
    adjusted = target
    extra = to_money(extra_per_unit)
    if extra > ZERO:
        adjusted = (target + base_quantity * extra).quantize(TWOPLACES, rounding=ROUND_HALF_UP)

    low = _to_step(min_rate, rate_step, ROUND_CEILING)
    high = _to_step(max(max_rate, Decimal(low)), rate_step, ROUND_FLOOR)

    bag = to_money(bag_size) if bag_size else ZERO
    target_h = int(adjusted * 100)

    options: list[PaymentOption] = []
    for rate in range(low, high + 1, rate_step):
        if rate <= 0:
            continue

        # q (tenths) * rate * 10 <= target_h
        q_max = min(target_h // (rate * 10), MAX_QUANTITY_TENTHS)
        found_for_rate = 0

        for q in range(q_max, 0, -1):
            amount_h = q * rate * 10

            if allow_paise:
                if round_figure:
                    rupees = int((Decimal(amount_h) / 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
                    if rupees % 100:
                        continue
            else:
                if amount_h % 100:
                    continue
                if round_figure and amount_h % 10_000:
                    continue

            bags = None
            if bag > ZERO:
                ratio = Decimal(q) / 10 / bag
                if ratio != ratio.to_integral_value():
                    continue
                bags = int(ratio)

            remaining_h = target_h - amount_h
            if remaining_h <= 1:
                remaining_h = 0

            options.append(
                PaymentOption(
                    quantity=(Decimal(q) / 10).quantize(TWOPLACES),
                    rate=Decimal(rate),
                    amount=(Decimal(amount_h) / 100).quantize(TWOPLACES),
                    remaining=(Decimal(remaining_h) / 100).quantize(TWOPLACES),
                    bags=bags,
                )
            )
            found_for_rate += 1
            # Larger q means smaller remaining for this rate, so the first
            # `limit` hits are this rate's best.
            if found_for_rate >= limit:
                break

    options.sort(key=lambda o: (o.remaining, o.rate, -o.quantity, -o.amount))

    return PaymentOptionsResult(
        target=target,
        adjusted_target=adjusted,
        base_quantity=to_money(base_quantity),
        options=tuple(options[:limit]),
    )
