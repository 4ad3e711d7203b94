# accounting/management/commands/seed_retail_chart.py

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from accounting.services.account_directory import provision_chart
from tenants.models import Tenant


class Command(BaseCommand):
    help = "Seed the retail chart of accounts for a tenant (idempotent)"

    def add_arguments(self, parser):
        parser.add_argument("--tenant", required=True, help="Tenant slug")

    @transaction.atomic
    def handle(self, *args, **options):
        slug = (options["tenant"] or "").strip().lower()
        tenant = Tenant.objects.filter(slug=slug).first()
        if tenant is None:
            raise CommandError(f"Tenant '{slug}' does not exist")

        self.stdout.write(f"Seeding retail chart of accounts for {tenant.name}...")

        created_count, existing_count = provision_chart(tenant)

        self.stdout.write(
            self.style.SUCCESS(
                f"✔ Retail chart seeded ({created_count} new accounts, {existing_count} already present)."
            )
        )
