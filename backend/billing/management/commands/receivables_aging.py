from __future__ import annotations

import json

from django.core.management.base import BaseCommand, CommandError

from billing.constants import AGING_BUCKETS
from billing.services.receivables import STATUS_FILTERS, aging_bucket, due_status
from billing.services.reconciliation import ReconciliationService
from billing.services.utils import as_date


class Command(BaseCommand):
    help = "Print the accounts-receivable aging report (counts and collectible amount per bucket)."

    def add_arguments(self, parser):
        parser.add_argument("--as-of", type=str, help="Report date (YYYY-MM-DD); defaults to today")
        parser.add_argument("--status", type=str, choices=STATUS_FILTERS, help="Also list receivables with this status")
        parser.add_argument("--json", action="store_true", help="Emit the summary as JSON")

    def handle(self, *args, **options):
        try:
            as_of = as_date(options.get("as_of"))
        except ValueError:
            raise CommandError(f"Invalid --as-of date: {options.get('as_of')}. Use YYYY-MM-DD")

        service = ReconciliationService()
        summary = service.aging_summary(now=as_of)

        if options.get("json"):
            payload = {
                "receivable_count": summary.receivable_count,
                "paid_count": summary.paid_count,
                "overdue_count": summary.overdue_count,
                "undetermined_due_count": summary.undetermined_due_count,
                "total_billed": str(summary.total_billed),
                "total_collected": str(summary.total_collected),
                "total_collectible": str(summary.total_collectible),
                "total_profit": str(summary.total_profit),
                "aging": summary.aging,
                "collectible_by_bucket": {k: str(v) for k, v in summary.collectible_by_bucket.items()},
            }
            self.stdout.write(json.dumps(payload, indent=2))
        else:
            self.stdout.write(f"Receivables: {summary.receivable_count} ({summary.paid_count} paid)")
            self.stdout.write(f"Billed: {summary.total_billed}  Collected: {summary.total_collected}  "
                              f"Collectible: {summary.total_collectible}  Profit: {summary.total_profit}")
            for bucket in AGING_BUCKETS:
                self.stdout.write(f"  {bucket:>8}: {summary.aging[bucket]:>4}  {summary.collectible_by_bucket[bucket]}")
            if summary.undetermined_due_count:
                self.stdout.write(self.style.WARNING(
                    f"{summary.undetermined_due_count} receivable(s) have no due date yet"))
            if summary.overdue_count:
                self.stdout.write(self.style.WARNING(f"{summary.overdue_count} receivable(s) overdue"))

        status = options.get("status")
        if status:
            for ar in service.list_receivables(status=status, now=as_of):
                self.stdout.write(
                    f"booking={ar.booking_id} state={ar.state.value} collectible={ar.collectible_amount} "
                    f"due={ar.due_date or '-'} bucket={aging_bucket(ar.due_date, as_of) or '-'} "
                    f"{due_status(ar, as_of)}"
                )
