# products/tests/helpers.py

from datetime import timedelta
from decimal import Decimal

from django.utils import timezone

from products.models import Product, ProductBatch


def make_product(name="Amoxicillin 250mg", *, total_stock=0, reorder_point=5, **extra):
    return Product.objects.create(
        name=name,
        category=extra.pop("category", "Antibiotics"),
        unit=extra.pop("unit", "tablet"),
        selling_price=extra.pop("selling_price", Decimal("2.50")),
        cost_price=extra.pop("cost_price", Decimal("1.00")),
        reorder_point=reorder_point,
        total_stock=total_stock,
        **extra,
    )


def make_batch(product, label, *, on_hand, expires_in_days=90, received=None, **extra):
    today = timezone.localdate()
    return ProductBatch.objects.create(
        product=product,
        batch_id=label,
        lot_number=extra.pop("lot_number", f"LOT-{label}"),
        expiry_date=extra.pop("expiry_date", today + timedelta(days=expires_in_days)),
        received_date=extra.pop("received_date", today),
        quantity_received=received if received is not None else max(on_hand, 1),
        quantity_on_hand=on_hand,
        cost_per_unit=extra.pop("cost_per_unit", Decimal("1.00")),
        **extra,
    )
