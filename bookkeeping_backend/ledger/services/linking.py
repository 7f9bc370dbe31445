# ledger/services/linking.py

"""
======================================================
PATH: ledger/services/linking.py
======================================================
LINKED POSTING RESOLUTION (ORM ADAPTER)

Loads the candidate rows for a link group and delegates the decision to
ledger.domain.find_counterpart. The result is explicit
(unlinked / found / not_found); callers decide what "not_found" means.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import replace

from django.conf import settings

from ledger.domain import LinkResolution, PostingLine, find_counterpart
from ledger.models.posting import LedgerPosting


def to_line(posting: LedgerPosting) -> PostingLine:
    return PostingLine(
        id=posting.pk,
        date=posting.date,
        debit=posting.debit,
        credit=posting.credit,
        created_at=posting.created_at,
        balance=posting.balance,
        account_id=posting.account_id,
        link_group_id=posting.link_group_id,
        link_strategy=posting.link_strategy,
    )


def strict_links_enabled(strict: bool | None = None) -> bool:
    if strict is not None:
        return bool(strict)
    return bool(getattr(settings, "LEDGER_STRICT_LINKS", False))


def resolve_counterpart(posting: LedgerPosting, *, for_update: bool = False) -> LinkResolution:
    """
    Find the posting in another account that shares `posting`'s link group.

    On success, `counterpart` is the LedgerPosting row (not the PostingLine).
    """
    if not posting.link_group_id:
        return LinkResolution(status=LinkResolution.UNLINKED)

    qs = (
        LedgerPosting.objects
        .filter(link_group_id=posting.link_group_id)
        .exclude(pk=posting.pk)
        .order_by("id")
    )
    if for_update:
        qs = qs.select_for_update()

    rows = {row.pk: row for row in qs}

    by_account: dict = defaultdict(list)
    for row in rows.values():
        by_account[row.account_id].append(to_line(row))

    resolution = find_counterpart(
        by_account,
        source_account_id=posting.account_id,
        source=to_line(posting),
    )
    if resolution.found:
        return replace(resolution, counterpart=rows[resolution.counterpart.id])
    return resolution
