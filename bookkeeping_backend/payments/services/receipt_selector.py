# payments/services/receipt_selector.py

"""
======================================================
PATH: payments/services/receipt_selector.py
======================================================
COMBINATORIAL RECEIPT SELECTOR (PURE)

Official-channel payments must hit a mandated target. Each outstanding
receipt contributes official_amount = outstanding + extra, where

    extra = base x extra_rate_per_unit
    base  = net weight | final weight | outstanding / official_rate

and "compounded" recomputes extra once more on (extra + outstanding).

find_combinations() enumerates subsets of size 1..max_size (smallest
sizes first) keeping those whose official total reaches the target.
Stops on: candidate cap, node budget or wall-clock budget. Results are
ordered by excess over target, then by fewer receipts.

This is a bounded heuristic: when a cap is hit first, the true minimum
excess combination may be missed.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Mapping, Sequence

from ledger.domain import TWOPLACES, ZERO, to_money
from payments.domain import TOLERANCE, EntryState, sr_sort_key
from payments.services.exceptions import PaymentValidationError

EXTRA_BASE_NET_QTY = "net_qty"
EXTRA_BASE_FINAL_QTY = "final_qty"
EXTRA_BASE_OUTSTANDING = "outstanding"
EXTRA_BASES = (EXTRA_BASE_NET_QTY, EXTRA_BASE_FINAL_QTY, EXTRA_BASE_OUTSTANDING)

KIND_BY_SIZE = {1: "single", 2: "pair", 3: "triplet"}


@dataclass(frozen=True)
class ReceiptAmount:
    entry: EntryState
    normal_amount: Decimal
    extra_amount: Decimal
    official_amount: Decimal

    @property
    def sr_no(self) -> str:
        return self.entry.sr_no

    @property
    def quantity(self) -> Decimal:
        return to_money(self.entry.net_weight)


@dataclass(frozen=True)
class SelectorLimits:
    max_combination_size: int = 8
    max_candidates: int = 200
    max_results: int = 100
    node_budget: int = 250_000
    time_budget_seconds: float = 2.0

    @classmethod
    def from_mapping(cls, data: Mapping | None) -> "SelectorLimits":
        data = data or {}
        defaults = cls()
        return cls(
            max_combination_size=int(data.get("MAX_COMBINATION_SIZE", defaults.max_combination_size)),
            max_candidates=int(data.get("MAX_CANDIDATES", defaults.max_candidates)),
            max_results=int(data.get("MAX_RESULTS", defaults.max_results)),
            node_budget=int(data.get("NODE_BUDGET", defaults.node_budget)),
            time_budget_seconds=float(data.get("TIME_BUDGET_SECONDS", defaults.time_budget_seconds)),
        )


@dataclass(frozen=True)
class Combination:
    receipts: tuple
    total_official: Decimal
    total_normal: Decimal
    total_extra: Decimal
    total_quantity: Decimal
    difference: Decimal

    @property
    def size(self) -> int:
        return len(self.receipts)

    @property
    def kind(self) -> str:
        return KIND_BY_SIZE.get(self.size, "multiple")

    @property
    def sr_nos(self) -> list[str]:
        return [r.sr_no for r in self.receipts]


@dataclass(frozen=True)
class SelectionResult:
    target: Decimal
    combinations: tuple = field(default_factory=tuple)
    candidates_found: int = 0
    nodes_visited: int = 0
    candidate_cap_hit: bool = False
    budget_exhausted: bool = False
    best_effort: bool = False


# ============================================================
# OFFICIAL AMOUNTS
# ============================================================


def _q(value: Decimal) -> Decimal:
    return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def official_amounts(
    entries: Sequence[EntryState],
    *,
    official_rate,
    extra_rate_per_unit=ZERO,
    extra_base: str = EXTRA_BASE_OUTSTANDING,
    compounded: bool = False,
) -> list[ReceiptAmount]:
    """
    Pool of receipts with their official amounts, ascending.

    Receipts with outstanding <= 0.01 are left out.
    """
    if extra_base not in EXTRA_BASES:
        raise PaymentValidationError(f"Unknown extra base: {extra_base}")

    rate = to_money(official_rate)
    per_unit = to_money(extra_rate_per_unit)

    pool = []
    for entry in entries:
        normal = entry.outstanding
        if normal <= TOLERANCE:
            continue

        if extra_base == EXTRA_BASE_NET_QTY:
            base = to_money(entry.net_weight)
            base_value = base * rate
        elif extra_base == EXTRA_BASE_FINAL_QTY:
            base = to_money(entry.final_weight)
            base_value = base * rate
        else:
            base = normal / rate if rate > ZERO else ZERO
            base_value = normal

        extra = base * per_unit
        if compounded:
            # quantity bases are valued at the official rate before compounding
            extra = (extra + base_value) / rate * per_unit if rate > ZERO else ZERO
        extra = _q(extra)

        pool.append(
            ReceiptAmount(
                entry=entry,
                normal_amount=normal,
                extra_amount=extra,
                official_amount=normal + extra,
            )
        )

    pool.sort(key=lambda r: (r.official_amount, sr_sort_key(r.sr_no)))
    return pool


# ============================================================
# SEARCH
# ============================================================


def _combination(receipts: Sequence[ReceiptAmount], target: Decimal) -> Combination:
    total = sum((r.official_amount for r in receipts), ZERO)
    return Combination(
        receipts=tuple(receipts),
        total_official=total,
        total_normal=sum((r.normal_amount for r in receipts), ZERO),
        total_extra=sum((r.extra_amount for r in receipts), ZERO),
        total_quantity=sum((r.quantity for r in receipts), ZERO),
        difference=total - target,
    )


class _BudgetExceeded(Exception):
    pass


class _CapReached(Exception):
    pass


def find_combinations(
    pool: Sequence[ReceiptAmount],
    target,
    *,
    limits: SelectorLimits | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> SelectionResult:
    """
    `pool` must be sorted ascending by official amount (official_amounts()
    returns it that way); the pruning bound relies on it.
    """
    limits = limits or SelectorLimits()
    target = to_money(target)
    if target <= ZERO:
        raise PaymentValidationError("Target amount must be greater than zero")
    if not pool:
        return SelectionResult(target=target)

    amounts = [r.official_amount for r in pool]
    n_pool = len(amounts)

    prefix = [ZERO]
    for amount in amounts:
        prefix.append(prefix[-1] + amount)

    def top(k: int, start: int) -> Decimal | None:
        # Sum of the k largest amounts in amounts[start:], None if too few.
        if n_pool - start < k:
            return None
        return prefix[n_pool] - prefix[n_pool - k]

    found: list[Combination] = []
    state = {"nodes": 0}
    started = clock()

    def visit(size: int, start: int, picked: list[int], partial: Decimal) -> None:
        state["nodes"] += 1
        if state["nodes"] > limits.node_budget:
            raise _BudgetExceeded
        if state["nodes"] % 512 == 0 and clock() - started > limits.time_budget_seconds:
            raise _BudgetExceeded

        if len(picked) == size:
            if partial >= target and partial > ZERO:
                found.append(_combination([pool[i] for i in picked], target))
                if len(found) >= limits.max_candidates:
                    raise _CapReached
            return

        still_needed = size - len(picked) - 1
        for i in range(start, n_pool):
            best_rest = top(still_needed, i + 1)
            if best_rest is None:
                break

            new_total = partial + amounts[i]
            if new_total + best_rest < target:
                continue

            picked.append(i)
            visit(size, i + 1, picked, new_total)
            picked.pop()

    cap_hit = False
    budget_hit = False
    max_size = min(limits.max_combination_size, n_pool)
    try:
        for size in range(1, max_size + 1):
            visit(size, 0, [], ZERO)
    except _CapReached:
        cap_hit = True
    except _BudgetExceeded:
        budget_hit = True

    found.sort(key=lambda c: (abs(c.difference), c.size))
    combinations = found[: limits.max_results]

    best_effort = False
    if not combinations and prefix[n_pool] < target:
        combinations = [_combination(list(pool), target)]
        best_effort = True

    return SelectionResult(
        target=target,
        combinations=tuple(combinations),
        candidates_found=len(found),
        nodes_visited=state["nodes"],
        candidate_cap_hit=cap_hit,
        budget_exhausted=budget_hit,
        best_effort=best_effort,
    )
