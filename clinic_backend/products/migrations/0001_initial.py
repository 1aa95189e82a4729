"""
======================================================
PATH: products/migrations/0001_initial.py
======================================================
MIGRATION: CREATE Product, ProductBatch, StockMovement
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(db_index=True, max_length=255)),
                ("category", models.CharField(blank=True, default="", max_length=100)),
                (
                    "unit",
                    models.CharField(
                        default="unit",
                        help_text="Dispensing unit, e.g. tablet, ml, vial, bag.",
                        max_length=32,
                    ),
                ),
                ("selling_price", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("cost_price", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("reorder_point", models.PositiveIntegerField(default=10)),
                (
                    "total_stock",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Aggregate on-hand quantity (service-managed only)",
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["name"],
                "indexes": [
                    models.Index(fields=["name"], name="products_pr_name_9ff0a3_idx"),
                    models.Index(fields=["category"], name="products_pr_categor_9c1b4e_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("total_stock__gte", 0)),
                        name="chk_product_total_stock_gte_zero",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ProductBatch",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "batch_id",
                    models.CharField(
                        help_text="Human-readable batch label (auto-generated on receipt when blank)",
                        max_length=64,
                    ),
                ),
                (
                    "lot_number",
                    models.CharField(blank=True, default="", help_text="Manufacturer lot number", max_length=128),
                ),
                ("expiry_date", models.DateField()),
                ("received_date", models.DateField(default=django.utils.timezone.localdate)),
                ("quantity_received", models.PositiveIntegerField(help_text="Quantity delivered (immutable)")),
                (
                    "quantity_on_hand",
                    models.PositiveIntegerField(default=0, help_text="Remaining quantity (service-managed only)"),
                ),
                ("cost_per_unit", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("supplier_invoice", models.CharField(blank=True, default="", max_length=128)),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("depleted", "Depleted")],
                        db_index=True,
                        default="active",
                        max_length=16,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="batches",
                        to="products.product",
                    ),
                ),
            ],
            options={
                "ordering": ["expiry_date", "received_date", "created_at"],
                "indexes": [
                    models.Index(fields=["product", "status", "expiry_date"], name="products_pr_product_5b7e21_idx"),
                    models.Index(fields=["expiry_date"], name="products_pr_expiry__0d4f6c_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("product", "batch_id"), name="unique_batch_label_per_product"),
                    models.CheckConstraint(
                        condition=models.Q(("quantity_received__gt", 0)),
                        name="chk_batch_qty_received_gt_zero",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("quantity_on_hand__lte", models.F("quantity_received"))),
                        name="chk_batch_on_hand_lte_received",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockMovement",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "movement_type",
                    models.CharField(
                        choices=[
                            ("sale", "Sale"),
                            ("receipt", "Stock Receipt"),
                            ("initial", "Initial Stock"),
                            ("adjustment", "Adjustment"),
                        ],
                        db_index=True,
                        max_length=16,
                    ),
                ),
                ("quantity", models.IntegerField(help_text="Signed quantity; negative for outflow")),
                (
                    "reference_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        default="",
                        help_text="Originating record id (invoice id for sales, batch label for receipts)",
                        max_length=64,
                    ),
                ),
                ("movement_date", models.DateField(default=django.utils.timezone.localdate)),
                (
                    "actor",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Display name of whoever triggered the movement",
                        max_length=255,
                    ),
                ),
                ("previous_stock", models.PositiveIntegerField()),
                ("new_stock", models.PositiveIntegerField()),
                ("note", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "batch",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_movements",
                        to="products.productbatch",
                    ),
                ),
                (
                    "performed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="stock_movements",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_movements",
                        to="products.product",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(fields=["created_at"], name="products_st_created_4e8a1d_idx"),
                    models.Index(fields=["product", "created_at"], name="products_st_product_7c2f90_idx"),
                    models.Index(fields=["batch", "created_at"], name="products_st_batch_i_3a9e52_idx"),
                    models.Index(fields=["reference_id", "movement_type"], name="products_st_referen_b61d07_idx"),
                ],
            },
        ),
    ]
