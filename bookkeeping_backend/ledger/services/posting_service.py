# ledger/services/posting_service.py

"""
======================================================
PATH: ledger/services/posting_service.py
======================================================
LEDGER POSTING SERVICE (PERSISTENCE ORCHESTRATOR)

Create / edit / delete postings and keep running balances consistent.

Rules:
- One logical operation = one transaction. A linked pair (source +
  counterpart) and the recalculation of BOTH accounts commit together or
  not at all.
- Balances are recomputed from the full posting list of each touched
  account (ledger.domain.rebalance); only rows whose balance changed are
  written back.
- Missing counterpart on edit/delete:
    strict  -> CounterpartNotFoundError (nothing written)
    lenient -> proceed on the source side, log a WARNING
- Account rows are locked (select_for_update) so concurrent mutations on
  one account serialize.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date as date_type
from decimal import Decimal
from typing import Callable

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction

from ledger.domain import (
    ZERO,
    LinkResolution,
    changed_balances,
    counterpart_amounts,
    normalize_strategy,
    rebalance,
    resolve_strategy,
    sort_for_display,
    to_money,
)
from ledger.models.account import Account
from ledger.models.posting import LedgerPosting
from ledger.services.exceptions import (
    CounterpartNotFoundError,
    LedgerPersistenceError,
    LedgerValidationError,
    PostingNotFoundError,
)
from ledger.services.linking import resolve_counterpart, strict_links_enabled, to_line

logger = logging.getLogger("ledger")


@dataclass(frozen=True)
class PostingResult:
    posting: LedgerPosting
    counterpart: LedgerPosting | None
    link: LinkResolution


@dataclass(frozen=True)
class PostingDeletion:
    posting_id: int
    counterpart_id: int | None
    link: LinkResolution


@dataclass(frozen=True)
class AccountStatement:
    account: Account
    postings: list
    closing_balance: Decimal


# ============================================================
# BALANCES
# ============================================================


def recalculate_account(account_id) -> int:
    """
    Recompute running balances for one account.

    Returns the number of rows whose stored balance changed.
    """
    postings = list(LedgerPosting.objects.filter(account_id=account_id))
    if not postings:
        return 0

    before = [to_line(p) for p in postings]
    after = rebalance(before)
    changed = {line.id: line.balance for line in changed_balances(before, after)}

    if not changed:
        return 0

    dirty = []
    for posting in postings:
        if posting.pk in changed:
            posting.balance = changed[posting.pk]
            dirty.append(posting)

    LedgerPosting.objects.bulk_update(dirty, ["balance"])
    return len(dirty)


def recalculate_all(account_id=None) -> dict:
    """Recompute balances for one account or every account. {account_id: changed}."""
    qs = Account.objects.all()
    if account_id is not None:
        qs = qs.filter(pk=account_id)

    out = {}
    for account in qs.order_by("name"):
        with transaction.atomic():
            Account.objects.select_for_update().get(pk=account.pk)
            out[account.pk] = recalculate_account(account.pk)
    return out


def account_statement(account_id) -> AccountStatement:
    """
    Postings newest-first with freshly computed running balances.

    Read-only: stored balances are not touched.
    """
    try:
        account = Account.objects.get(pk=account_id)
    except Account.DoesNotExist as exc:
        raise PostingNotFoundError("Account not found") from exc

    postings = {p.pk: p for p in LedgerPosting.objects.filter(account=account)}
    lines = rebalance([to_line(p) for p in postings.values()])

    ordered = []
    for line in sort_for_display(lines):
        posting = postings[line.id]
        posting.balance = line.balance
        ordered.append(posting)

    closing = ordered[0].balance if ordered else ZERO
    return AccountStatement(account=account, postings=ordered, closing_balance=closing)


# ============================================================
# HELPERS
# ============================================================


def _lock_accounts(*account_ids) -> None:
    ids = sorted({str(a) for a in account_ids if a is not None})
    list(Account.objects.select_for_update().filter(pk__in=ids).order_by("pk"))


def _validated_amounts(debit, credit) -> tuple[Decimal, Decimal]:
    debit = to_money(debit)
    credit = to_money(credit)

    if debit < 0 or credit < 0:
        raise LedgerValidationError("Debit and credit must be >= 0")
    if debit == ZERO and credit == ZERO:
        raise LedgerValidationError("Either debit or credit must be greater than zero")

    return debit, credit


def _get_account(account_id, *, label: str = "Account") -> Account:
    try:
        return Account.objects.get(pk=account_id)
    except (Account.DoesNotExist, ValidationError, ValueError) as exc:
        raise LedgerValidationError(f"{label} not found") from exc


def _get_posting(posting_id) -> LedgerPosting:
    try:
        return LedgerPosting.objects.select_related("account").get(pk=posting_id)
    except (LedgerPosting.DoesNotExist, ValueError) as exc:
        raise PostingNotFoundError(f"Posting {posting_id} not found") from exc


def _handle_missing_counterpart(posting: LedgerPosting, link: LinkResolution, *, strict: bool, action: str):
    if not link.missing:
        return

    if strict:
        raise CounterpartNotFoundError(
            f"Linked counterpart for posting {posting.pk} (group {link.link_group_id}) not found"
        )

    logger.warning(
        "Linked counterpart missing; %s applied to source only",
        action,
        extra={
            "posting_id": str(posting.pk),
            "account_id": str(posting.account_id),
            "link_group_id": str(link.link_group_id),
        },
    )


# ============================================================
# CREATE
# ============================================================


def create_posting(
    *,
    account_id,
    date: date_type,
    particulars: str = "",
    debit=ZERO,
    credit=ZERO,
    remarks: str = "",
    link_account_id=None,
    link_strategy: str | None = None,
    link_group_factory: Callable[[], object] = uuid.uuid4,
) -> PostingResult:
    """
    Create a posting; with link_account_id also create its counterpart.

    mirror: counterpart debit/credit swapped. same: copied as-is.
    """
    if date is None:
        raise LedgerValidationError("Posting date is required")

    debit, credit = _validated_amounts(debit, credit)
    particulars = (particulars or "").strip() or "-"
    remarks = (remarks or "").strip()

    account = _get_account(account_id)

    link_account = None
    strategy = None
    if link_account_id:
        link_account = _get_account(link_account_id, label="Linked account")
        if link_account.pk == account.pk:
            raise LedgerValidationError("A posting cannot be linked to its own account")

        strategy = normalize_strategy(link_strategy)
        if link_strategy and strategy is None:
            raise LedgerValidationError(f"Invalid link strategy: {link_strategy}")
        strategy = resolve_strategy(strategy)
    elif link_strategy:
        raise LedgerValidationError("link_strategy requires a linked account")

    logger.info(
        "Creating ledger posting",
        extra={
            "account_id": str(account.pk),
            "debit": str(debit),
            "credit": str(credit),
            "link_account_id": str(link_account.pk) if link_account else None,
            "link_strategy": strategy,
        },
    )

    try:
        with transaction.atomic():
            _lock_accounts(account.pk, link_account.pk if link_account else None)

            group = str(link_group_factory()) if link_account else None

            source = LedgerPosting.objects.create(
                account=account,
                date=date,
                particulars=particulars,
                remarks=remarks,
                debit=debit,
                credit=credit,
                link_group_id=group,
                link_strategy=strategy,
            )

            counterpart = None
            if link_account:
                cp_debit, cp_credit = counterpart_amounts(debit, credit, strategy)
                counterpart = LedgerPosting.objects.create(
                    account=link_account,
                    date=date,
                    particulars=particulars,
                    remarks=remarks,
                    debit=cp_debit,
                    credit=cp_credit,
                    link_group_id=group,
                    link_strategy=strategy,
                )

            recalculate_account(account.pk)
            if link_account:
                recalculate_account(link_account.pk)
    except ValidationError as exc:
        raise LedgerValidationError("; ".join(exc.messages)) from exc
    except DatabaseError as exc:
        logger.exception(
            "Ledger posting persistence failed",
            extra={"account_id": str(account.pk)},
        )
        raise LedgerPersistenceError("Could not save the posting") from exc

    source.refresh_from_db()
    if counterpart is not None:
        counterpart.refresh_from_db()
        link = LinkResolution(
            status=LinkResolution.FOUND,
            link_group_id=group,
            account_id=link_account.pk,
            counterpart=counterpart,
            strategy=strategy,
        )
    else:
        link = LinkResolution(status=LinkResolution.UNLINKED)

    logger.info(
        "Ledger posting created",
        extra={
            "posting_id": str(source.pk),
            "counterpart_id": str(counterpart.pk) if counterpart else None,
        },
    )
    return PostingResult(posting=source, counterpart=counterpart, link=link)


# ============================================================
# UPDATE
# ============================================================


_UNSET = object()


def update_posting(
    posting_id,
    *,
    date=_UNSET,
    particulars=_UNSET,
    debit=_UNSET,
    credit=_UNSET,
    remarks=_UNSET,
    strict: bool | None = None,
) -> PostingResult:
    """
    Edit a posting and propagate the change to its linked counterpart.

    Only the fields passed are changed. The counterpart gets the same
    date/particulars and the strategy-transformed amounts; it keeps its
    own remarks when the edit clears them.
    """
    strict = strict_links_enabled(strict)

    try:
        with transaction.atomic():
            posting = _get_posting(posting_id)
            link = resolve_counterpart(posting, for_update=True)
            _handle_missing_counterpart(posting, link, strict=strict, action="edit")

            counterpart = link.counterpart if link.found else None
            _lock_accounts(posting.account_id, counterpart.account_id if counterpart else None)

            new_debit = posting.debit if debit is _UNSET else debit
            new_credit = posting.credit if credit is _UNSET else credit
            new_debit, new_credit = _validated_amounts(new_debit, new_credit)

            if date is not _UNSET:
                if date is None:
                    raise LedgerValidationError("Posting date is required")
                posting.date = date
            if particulars is not _UNSET:
                posting.particulars = (particulars or "").strip() or "-"
            if remarks is not _UNSET:
                posting.remarks = (remarks or "").strip()

            posting.debit = new_debit
            posting.credit = new_credit
            posting.save()

            if counterpart is not None:
                cp_debit, cp_credit = counterpart_amounts(new_debit, new_credit, link.strategy)
                counterpart.date = posting.date
                counterpart.particulars = posting.particulars
                if posting.remarks:
                    counterpart.remarks = posting.remarks
                counterpart.debit = cp_debit
                counterpart.credit = cp_credit
                counterpart.save()

            recalculate_account(posting.account_id)
            if counterpart is not None:
                recalculate_account(counterpart.account_id)
    except ValidationError as exc:
        raise LedgerValidationError("; ".join(exc.messages)) from exc
    except DatabaseError as exc:
        logger.exception(
            "Ledger posting update failed",
            extra={"posting_id": str(posting_id)},
        )
        raise LedgerPersistenceError("Could not update the posting") from exc

    posting.refresh_from_db()
    if counterpart is not None:
        counterpart.refresh_from_db()

    logger.info(
        "Ledger posting updated",
        extra={"posting_id": str(posting.pk), "link_status": link.status},
    )
    return PostingResult(posting=posting, counterpart=counterpart, link=link)


# ============================================================
# DELETE
# ============================================================


def delete_posting(posting_id, *, strict: bool | None = None) -> PostingDeletion:
    """
    Delete a posting and its linked counterpart; recalculate both accounts.
    """
    strict = strict_links_enabled(strict)

    try:
        with transaction.atomic():
            posting = _get_posting(posting_id)
            link = resolve_counterpart(posting, for_update=True)
            _handle_missing_counterpart(posting, link, strict=strict, action="delete")

            counterpart = link.counterpart if link.found else None
            account_id = posting.account_id
            counterpart_account_id = counterpart.account_id if counterpart else None
            counterpart_id = counterpart.pk if counterpart else None

            _lock_accounts(account_id, counterpart_account_id)

            posting.delete()
            if counterpart is not None:
                counterpart.delete()

            recalculate_account(account_id)
            if counterpart_account_id is not None:
                recalculate_account(counterpart_account_id)
    except DatabaseError as exc:
        logger.exception(
            "Ledger posting delete failed",
            extra={"posting_id": str(posting_id)},
        )
        raise LedgerPersistenceError("Could not delete the posting") from exc

    logger.info(
        "Ledger posting deleted",
        extra={
            "posting_id": str(posting_id),
            "counterpart_id": str(counterpart_id) if counterpart_id else None,
            "link_status": link.status,
        },
    )
    return PostingDeletion(posting_id=posting_id, counterpart_id=counterpart_id, link=link)
