# ledger/domain.py

"""
======================================================
PATH: ledger/domain.py
======================================================
LEDGER BALANCE ENGINE (FRAMEWORK-AGNOSTIC)

Pure functions over PostingLine values. No ORM, no settings, no module state:
callers hand in the full posting list of one account and get new values back.

Rules:
- running balance = previous balance + debit - credit
- every step is rounded to 2dp (ROUND_HALF_UP), not only the final value
- calculation order is oldest-first: (date, created_at, id)
- display order is newest-first; balances never depend on display order
- linked postings: "mirror" swaps debit/credit on the counterpart,
  "same" copies them unchanged
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Hashable, Mapping, Sequence

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")

LINK_MIRROR = "mirror"
LINK_SAME = "same"
LINK_STRATEGIES = (LINK_MIRROR, LINK_SAME)

_NON_NUMERIC = re.compile(r"[^0-9.\-]")


def to_money(value) -> Decimal:
    """
    Coerce any amount-like value to a 2dp Decimal.

    Malformed input ("", None, "abc", NaN) becomes 0.00 instead of raising.
    Strings are stripped of currency symbols and grouping ("₹1,250.50").
    """
    if value is None or isinstance(value, bool):
        return ZERO

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            return ZERO
    else:
        cleaned = _NON_NUMERIC.sub("", str(value))
        if cleaned in ("", "-", ".", "-."):
            return ZERO
        try:
            amount = Decimal(cleaned)
        except InvalidOperation:
            return ZERO

    if not amount.is_finite():
        return ZERO

    return amount.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PostingLine:
    """
    One row of an account's ledger as seen by the balance engine.

    balance is derived; it is never an input to the calculation.
    """

    id: Any
    date: date | None
    debit: Decimal
    credit: Decimal
    created_at: datetime | None = None
    balance: Decimal = ZERO
    account_id: Any = None
    link_group_id: str | None = None
    link_strategy: str | None = None

    @property
    def movement(self) -> Decimal:
        return to_money(self.debit) - to_money(self.credit)


def _id_key(value) -> tuple:
    if isinstance(value, int) and not isinstance(value, bool):
        return (0, value, "")
    return (1, 0, "" if value is None else str(value))


def calculation_key(line: PostingLine) -> tuple:
    """Oldest-first ordering key: date, then creation time, then id."""
    created = line.created_at
    return (
        line.date or date.min,
        0 if created is None else 1,
        created.timestamp() if created is not None else 0.0,
        _id_key(line.id),
    )


def sort_for_calculation(lines: Sequence[PostingLine]) -> list[PostingLine]:
    return sorted(lines, key=calculation_key)


def sort_for_display(lines: Sequence[PostingLine]) -> list[PostingLine]:
    """Newest first (date desc, then creation desc)."""
    return sorted(lines, key=calculation_key, reverse=True)


def recalculate_balances(
    lines: Sequence[PostingLine],
    *,
    opening_balance: Decimal = ZERO,
) -> list[PostingLine]:
    """
    Annotate an oldest-first sequence with running balances.

    The caller owns ordering: this walks the input exactly as given.
    """
    running = to_money(opening_balance)
    out: list[PostingLine] = []

    for line in lines:
        running = (running + to_money(line.debit) - to_money(line.credit)).quantize(
            TWOPLACES, rounding=ROUND_HALF_UP
        )
        out.append(replace(line, balance=running))

    return out


def rebalance(lines: Sequence[PostingLine]) -> list[PostingLine]:
    """
    Recalculate balances for an arbitrarily ordered list.

    Sorts oldest-first internally, then returns the lines in the caller's
    original order (usually newest-first display order).
    """
    indexed = sorted(enumerate(lines), key=lambda pair: calculation_key(pair[1]))
    recalculated = recalculate_balances([line for _, line in indexed])

    balances_by_position = {
        position: line.balance
        for (position, _), line in zip(indexed, recalculated)
    }
    return [
        replace(line, balance=balances_by_position[position])
        for position, line in enumerate(lines)
    ]


def closing_balance(lines: Sequence[PostingLine]) -> Decimal:
    if not lines:
        return ZERO
    return recalculate_balances(sort_for_calculation(lines))[-1].balance


def changed_balances(
    before: Sequence[PostingLine],
    after: Sequence[PostingLine],
) -> list[PostingLine]:
    """Lines (from `after`) whose balance differs from the same id in `before`."""
    previous = {line.id: line.balance for line in before}
    return [line for line in after if previous.get(line.id) != line.balance]


# ============================================================
# LINKED POSTINGS
# ============================================================


def normalize_strategy(value) -> str | None:
    v = (value or "").strip().lower() if isinstance(value, str) else None
    return v if v in LINK_STRATEGIES else None


def resolve_strategy(
    source_strategy: str | None,
    counterpart_strategy: str | None = None,
) -> str:
    """Source wins, then counterpart, then mirror."""
    return (
        normalize_strategy(source_strategy)
        or normalize_strategy(counterpart_strategy)
        or LINK_MIRROR
    )


def counterpart_amounts(debit, credit, strategy: str | None) -> tuple[Decimal, Decimal]:
    """(debit, credit) for the counterpart posting of a linked pair."""
    debit = to_money(debit)
    credit = to_money(credit)
    if resolve_strategy(strategy) == LINK_SAME:
        return debit, credit
    return credit, debit


@dataclass(frozen=True)
class LinkResolution:
    """
    Outcome of looking up the counterpart of a linked posting.

    status:
    - "unlinked"  source has no link group (nothing to propagate)
    - "found"     counterpart located in account_id
    - "not_found" source is linked but no counterpart exists

    Callers decide whether "not_found" is fatal.
    """

    UNLINKED = "unlinked"
    FOUND = "found"
    NOT_FOUND = "not_found"

    status: str
    link_group_id: str | None = None
    account_id: Any = None
    counterpart: Any = None
    strategy: str | None = None

    @property
    def found(self) -> bool:
        return self.status == self.FOUND

    @property
    def missing(self) -> bool:
        return self.status == self.NOT_FOUND


def find_counterpart(
    postings_by_account: Mapping[Hashable, Sequence[PostingLine]],
    *,
    source_account_id,
    source: PostingLine,
) -> LinkResolution:
    """
    Search every other account's postings for the source's link group.

    First match wins (a link group pairs exactly two postings).
    """
    group = source.link_group_id
    if not group:
        return LinkResolution(status=LinkResolution.UNLINKED)

    for account_id, lines in postings_by_account.items():
        if account_id == source_account_id:
            continue
        for line in lines:
            if line.link_group_id == group:
                return LinkResolution(
                    status=LinkResolution.FOUND,
                    link_group_id=group,
                    account_id=account_id,
                    counterpart=line,
                    strategy=resolve_strategy(source.link_strategy, line.link_strategy),
                )

    return LinkResolution(
        status=LinkResolution.NOT_FOUND,
        link_group_id=group,
        strategy=resolve_strategy(source.link_strategy),
    )
