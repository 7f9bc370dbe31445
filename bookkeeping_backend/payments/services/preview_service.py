# payments/services/preview_service.py

"""
Read-only helpers for the payment screen.

Nothing here writes: each call loads the party's live entries/payments and
hands them to the pure calculators.
"""

from __future__ import annotations

import logging

from django.conf import settings

from payments.models import OutstandingEntry
from payments.services.cash_discount import DiscountResult, compute_discount
from payments.services.exceptions import EntryNotFoundError
from payments.services.outstanding import PartySummary, summarize_party
from payments.services.payment_options import PaymentOptionsResult, generate_payment_options
from payments.services.receipt_selector import (
    EXTRA_BASE_OUTSTANDING,
    SelectionResult,
    SelectorLimits,
    find_combinations,
    official_amounts,
)
from payments.services.records import entry_state, party_history

logger = logging.getLogger("payments")


def _party_entries(party_id, entry_ids=None):
    qs = OutstandingEntry.objects.filter(party_id=party_id, is_deleted=False)
    if entry_ids is not None:
        ids = [str(i) for i in entry_ids]
        qs = qs.filter(pk__in=ids)
        rows = list(qs)
        if len(rows) != len(set(ids)):
            raise EntryNotFoundError("Some entries were not found for this party")
        return rows
    return list(qs)


def party_summary(party_id) -> PartySummary:
    entries = [entry_state(e) for e in _party_entries(party_id)]
    return summarize_party(entries, party_history(party_id))


def discount_preview(
    *,
    party_id,
    entry_ids,
    payment_date,
    amount=None,
    payment_type=None,
    cd_mode=None,
    cd_percent=None,
    cd_amount=None,
) -> DiscountResult:
    states = [entry_state(e) for e in _party_entries(party_id, entry_ids)]
    percent = cd_percent if cd_percent is not None else settings.CASH_DISCOUNT_DEFAULT_PERCENT

    return compute_discount(
        mode=cd_mode,
        percent=percent,
        entries=states,
        payment_date=payment_date,
        payment_type=payment_type,
        settle_amount=amount,
        to_be_paid_amount=amount,
        payment_history=party_history(party_id),
        manual_amount=cd_amount,
        default_mode=settings.CASH_DISCOUNT_DEFAULT_MODE,
    )


def propose_receipts(
    *,
    party_id,
    target_amount,
    official_rate,
    extra_rate_per_unit=0,
    extra_base: str = EXTRA_BASE_OUTSTANDING,
    compounded: bool = False,
    entry_ids=None,
) -> SelectionResult:
    states = [entry_state(e) for e in _party_entries(party_id, entry_ids)]
    pool = official_amounts(
        states,
        official_rate=official_rate,
        extra_rate_per_unit=extra_rate_per_unit,
        extra_base=extra_base,
        compounded=compounded,
    )

    result = find_combinations(
        pool,
        target_amount,
        limits=SelectorLimits.from_mapping(getattr(settings, "RECEIPT_SELECTOR", None)),
    )

    if result.candidate_cap_hit or result.budget_exhausted:
        logger.warning(
            "Receipt search stopped early",
            extra={
                "party_id": str(party_id),
                "pool_size": len(pool),
                "nodes_visited": result.nodes_visited,
                "candidate_cap_hit": result.candidate_cap_hit,
                "budget_exhausted": result.budget_exhausted,
            },
        )
    return result


def payment_options(*, party_id=None, entry_ids=None, **kwargs) -> PaymentOptionsResult:
    receipts = ()
    if party_id is not None and entry_ids:
        receipts = tuple(entry_state(e) for e in _party_entries(party_id, entry_ids))

    kwargs.setdefault("limit", getattr(settings, "PAYMENT_OPTIONS_LIMIT", 2000))
    return generate_payment_options(receipts=receipts, **kwargs)
