# products/management/commands/reconcile_stock.py

"""
RECONCILE PRODUCT STOCK (AUDIT SAFE)

Sets Product.total_stock to the sum of quantity_on_hand over the product's
ACTIVE batches wherever the two have drifted apart.

Rules:
- Products without batch records are skipped (total_stock is their ledger).
- Every correction writes one ADJUSTMENT movement.
- Idempotent: rerunning after a clean pass changes nothing.
- --dry-run reports drift without saving.
"""

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from products.models import Product
from products.services.exceptions import ReconciliationError
from products.services.stock_reconciliation import reconcile_all


class Command(BaseCommand):
    help = "Reconcile Product.total_stock with active batch quantities."

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would change without saving.",
        )
        parser.add_argument(
            "--product",
            type=str,
            default="",
            help="Limit to one product id.",
        )

    def handle(self, *args, **options):
        dry_run = bool(options.get("dry_run"))
        product_id = (options.get("product") or "").strip()

        qs = Product.objects.all()
        if product_id:
            qs = qs.filter(pk=product_id)
            if not qs.exists():
                raise CommandError(f"Unknown product: {product_id}")

        if dry_run:
            self.stdout.write("DRY RUN: no database changes will be saved.\n")

        try:
            results = reconcile_all(dry_run=dry_run, queryset=qs)
        except ReconciliationError as exc:
            raise CommandError(str(exc)) from exc

        drifted = [r for r in results if not r.skipped and r.drift != 0]
        skipped = sum(1 for r in results if r.skipped)

        for r in drifted:
            verb = "would set" if dry_run else "set"
            self.stdout.write(
                f"- {r.product_name} ({r.product_id}): {verb} total_stock "
                f"{r.recorded_stock} -> {r.batch_stock} (drift {r.drift:+d})"
            )

        self.stdout.write("\n=== SUMMARY ===")
        self.stdout.write(f"Checked: {len(results)}")
        self.stdout.write(f"Skipped (no batches): {skipped}")
        self.stdout.write(f"Drifted: {len(drifted)}")

        if drifted and not dry_run:
            self.stdout.write(self.style.SUCCESS(f"Reconciled {len(drifted)} product(s)."))
        elif not drifted:
            self.stdout.write(self.style.SUCCESS("All products consistent."))
