# ledger/management/commands/recalculate_ledger.py

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from ledger.models import Account
from ledger.services.posting_service import recalculate_all


class Command(BaseCommand):
    help = "Recompute stored running balances for one account or every account."

    def add_arguments(self, parser):
        parser.add_argument("--account", dest="account_id", help="Account id (UUID). Default: all accounts")

    def handle(self, *args, **options):
        account_id = options.get("account_id")

        if account_id and not Account.objects.filter(pk=account_id).exists():
            raise CommandError(f"Account {account_id} not found")

        results = recalculate_all(account_id=account_id)

        total = 0
        for acc_id, changed in results.items():
            total += changed
            if changed:
                self.stdout.write(f"{acc_id}: {changed} balance(s) corrected")

        self.stdout.write(
            self.style.SUCCESS(f"Recalculated {len(results)} account(s); {total} balance(s) corrected")
        )
