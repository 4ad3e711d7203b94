from decimal import Decimal

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from products.models import Product, StockMovement
from products.services.stock_ledger import adjust_or_raise, available_quantity
from tenants.models import Tenant

DEMO_PRODUCTS = [
    ("ARROZ-1KG", "Arroz Diana 1kg", Decimal("4500.00"), Decimal("3200.00"), Decimal("0.00")),
    ("ACEITE-1L", "Aceite Girasol 1L", Decimal("12900.00"), Decimal("9800.00"), Decimal("19.00")),
    ("CAFE-500", "Café Molido 500g", Decimal("16500.00"), Decimal("11000.00"), Decimal("5.00")),
    ("JABON-3U", "Jabón de Baño x3", Decimal("8900.00"), Decimal("6100.00"), Decimal("19.00")),
    ("GASEOSA-15", "Gaseosa 1.5L", Decimal("5200.00"), Decimal("3600.00"), Decimal("19.00")),
]


class Command(BaseCommand):
    help = "Seed demo products with initial stock for a tenant"

    def add_arguments(self, parser):
        parser.add_argument("--tenant", required=True, help="Tenant slug")
        parser.add_argument("--quantity", type=int, default=50, help="Initial stock per product")

    @transaction.atomic
    def handle(self, *args, **options):
        slug = (options["tenant"] or "").strip().lower()
        tenant = Tenant.objects.filter(slug=slug).first()
        if tenant is None:
            raise CommandError(f"Tenant '{slug}' not found")

        quantity = int(options["quantity"])
        if quantity <= 0:
            raise CommandError("--quantity must be greater than zero")

        self.stdout.write(self.style.WARNING("Seeding products and stock..."))

        created_count = 0
        for sku, name, sale_price, cost_price, tax_rate in DEMO_PRODUCTS:
            product, created = Product.objects.get_or_create(
                tenant=tenant,
                sku=sku,
                defaults={
                    "name": name,
                    "sale_price": sale_price,
                    "cost_price": cost_price,
                    "tax_rate": tax_rate,
                },
            )
            created_count += int(created)

            # Only stock products that have none yet (idempotent re-runs)
            if available_quantity(product=product) == 0:
                adjust_or_raise(
                    product=product,
                    delta=quantity,
                    reason=StockMovement.Reason.INITIAL,
                    reference_type="Seed",
                    note="Initial demo stock",
                )

        self.stdout.write(
            self.style.SUCCESS(
                f"✅ Products seeded ({created_count} new, {len(DEMO_PRODUCTS) - created_count} already present)."
            )
        )
