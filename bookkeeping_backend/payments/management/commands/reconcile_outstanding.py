# payments/management/commands/reconcile_outstanding.py

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from ledger.models import Account
from payments.services.reconcile_service import reconcile_outstanding


class Command(BaseCommand):
    help = "Rebuild outstanding entry totals from their payment lines."

    def add_arguments(self, parser):
        parser.add_argument("--party", dest="party_id", help="Party account id (UUID). Default: all parties")
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Report drift without writing",
        )

    def handle(self, *args, **options):
        party_id = options.get("party_id")
        dry_run = options.get("dry_run", False)

        if party_id and not Account.objects.filter(pk=party_id).exists():
            raise CommandError(f"Party {party_id} not found")

        drifts = reconcile_outstanding(party_id=party_id, dry_run=dry_run)

        for drift in drifts:
            detail = ", ".join(
                f"{name} {stored} -> {expected}" for name, (stored, expected) in drift.changes.items()
            )
            self.stdout.write(f"{drift.sr_no}: {detail}")

        verb = "would be corrected" if dry_run else "corrected"
        self.stdout.write(self.style.SUCCESS(f"{len(drifts)} entr(y/ies) {verb}"))
