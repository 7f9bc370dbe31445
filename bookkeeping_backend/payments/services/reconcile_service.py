# payments/services/reconcile_service.py

"""
======================================================
PATH: payments/services/reconcile_service.py
======================================================
OUTSTANDING RECONCILIATION

Rebuilds each entry's totals from the payment lines that reference it
(payments.services.outstanding.derive_entry_state) and reports / fixes
drift in the stored columns.

Use after manual data repair or an import; normal payment flows keep the
stored totals current.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from django.db import DatabaseError, transaction

from payments.models import OutstandingEntry
from payments.services.exceptions import PaymentPersistenceError
from payments.services.outstanding import derive_entry_state
from payments.services.records import apply_entry_state, entry_state, party_history

logger = logging.getLogger("payments")

CHECKED_FIELDS = ("total_paid", "total_cd", "extra_amount", "net_amount")


@dataclass(frozen=True)
class EntryDrift:
    entry_id: object
    sr_no: str
    changes: dict = field(default_factory=dict)


def _stored(entry: OutstandingEntry) -> dict:
    return {name: getattr(entry, name) for name in CHECKED_FIELDS}


def reconcile_outstanding(*, party_id=None, dry_run: bool = False) -> list[EntryDrift]:
    """Return the entries whose stored totals differ from their payment lines."""
    drifts: list[EntryDrift] = []

    try:
        with transaction.atomic():
            qs = OutstandingEntry.objects.select_for_update().filter(is_deleted=False)
            if party_id is not None:
                qs = qs.filter(party_id=party_id)

            histories: dict = {}
            for entry in qs.order_by("party_id", "entry_date", "sr_no"):
                if entry.party_id not in histories:
                    histories[entry.party_id] = party_history(entry.party_id)

                derived = derive_entry_state(entry_state(entry), histories[entry.party_id])
                expected = {
                    "total_paid": derived.total_paid,
                    "total_cd": derived.total_cd,
                    "extra_amount": derived.extra_amount,
                    "net_amount": derived.outstanding,
                }
                stored = _stored(entry)
                changes = {
                    name: (str(stored[name]), str(expected[name]))
                    for name in CHECKED_FIELDS
                    if stored[name] != expected[name]
                }
                if not changes:
                    continue

                drifts.append(EntryDrift(entry_id=entry.pk, sr_no=entry.sr_no, changes=changes))
                if not dry_run:
                    apply_entry_state(entry, derived)
    except DatabaseError as exc:
        logger.exception("Outstanding reconciliation failed")
        raise PaymentPersistenceError("Could not reconcile outstanding entries") from exc

    logger.info(
        "Outstanding reconciliation finished",
        extra={
            "party_id": str(party_id) if party_id else None,
            "drift_count": len(drifts),
            "dry_run": dry_run,
        },
    )
    return drifts
