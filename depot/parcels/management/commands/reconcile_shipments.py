"""
Repair shipments whose packages are all delivered but which were never promoted.
"""

from django.core.management.base import BaseCommand, CommandError

from parcels.services import AggregationReconciler
from parcels.services.reconciler import SHIPMENT_NOT_FOUND


class Command(BaseCommand):
    help = "Promote shipments to delivered when every one of their packages is delivered."

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help="Report the shipments that would be promoted without changing them.",
        )
        parser.add_argument(
            '--shipment',
            help="Reconcile a single shipment by id.",
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']

        if options['shipment']:
            result = AggregationReconciler.reconcile(options['shipment'], dry_run=dry_run)
            if result.reason == SHIPMENT_NOT_FOUND:
                raise CommandError(f"Shipment {options['shipment']} not found")
            results = [result]
        else:
            results = AggregationReconciler.reconcile_all(dry_run=dry_run)

        verb = 'Would promote' if dry_run else 'Promoted'
        for result in results:
            if result.promoted:
                self.stdout.write(
                    f"{verb} shipment {result.shipment_id} "
                    f"({result.delivered_packages}/{result.total_packages} packages delivered)"
                )

        promoted = sum(1 for r in results if r.promoted)
        self.stdout.write(self.style.SUCCESS(f"{verb} {promoted} of {len(results)} shipments checked"))
