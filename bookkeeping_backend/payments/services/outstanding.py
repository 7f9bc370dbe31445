# payments/services/outstanding.py

"""
======================================================
PATH: payments/services/outstanding.py
======================================================
OUTSTANDING DERIVATION (PURE)

derive_entry_state(): rebuild an entry's paid / discount / extra totals
from the payment history alone. Used by reconciliation to detect drift
between the stored totals and the allocation lines.

summarize_party(): headline totals for one party.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Sequence

from ledger.domain import ZERO, to_money
from payments.domain import (
    CHANNEL_CASH,
    CHANNEL_GOV,
    EntryState,
    PaymentRecord,
    line_cd_share,
)


def derive_entry_state(entry: EntryState, payments: Sequence[PaymentRecord]) -> EntryState:
    """
    Totals for `entry` recomputed from every payment line that names it.

    Gov. payments: the FIRST one covering the entry fixes the adjusted
    original (line.adjusted_original, else original + line extra, else
    original + payment extra).
    """
    original = to_money(entry.original_net_amount)
    paid = ZERO
    cd = ZERO
    adjusted = None

    for payment in payments:
        lines = payment.lines_for(entry.sr_no)
        if not lines:
            continue

        for line in lines:
            paid += to_money(line.amount)
            cd += line_cd_share(payment, line)

            if payment.channel == CHANNEL_GOV and adjusted is None:
                if line.adjusted_original is not None:
                    adjusted = to_money(line.adjusted_original)
                elif line.extra_amount is not None:
                    adjusted = original + to_money(line.extra_amount)
                else:
                    adjusted = original + to_money(payment.extra_amount)

    extra = (adjusted - original) if adjusted is not None else ZERO

    return replace(
        entry,
        total_paid=to_money(paid),
        total_cd=to_money(cd),
        extra_amount=to_money(extra),
    )


@dataclass(frozen=True)
class PartySummary:
    total_original: Decimal
    total_outstanding: Decimal
    total_paid: Decimal
    total_discount: Decimal
    total_cash_paid: Decimal
    entry_count: int
    outstanding_entry_count: int


def summarize_party(entries: Sequence[EntryState], payments: Sequence[PaymentRecord]) -> PartySummary:
    outstanding = [e.payable for e in entries]

    return PartySummary(
        total_original=sum((to_money(e.original_net_amount) for e in entries), ZERO),
        total_outstanding=sum(outstanding, ZERO),
        total_paid=sum((to_money(p.amount) for p in payments), ZERO),
        total_discount=sum((to_money(p.cd_amount) for p in payments), ZERO),
        total_cash_paid=sum(
            (to_money(p.amount) for p in payments if p.channel == CHANNEL_CASH), ZERO
        ),
        entry_count=len(entries),
        outstanding_entry_count=sum(1 for value in outstanding if value > ZERO),
    )
