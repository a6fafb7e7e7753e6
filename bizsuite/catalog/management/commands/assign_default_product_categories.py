"""
Django management command that gives every uncategorized product the
business's default "Other" category
"""
from django.core.management.base import BaseCommand
from django.db import transaction

from bizsuite.catalog.models import ProductCategory, Product
from bizsuite.core.models import Business


class Command(BaseCommand):
    help = 'Create the default product category per business and assign it to uncategorized products'

    def add_arguments(self, parser):
        parser.add_argument(
            '--business',
            type=int,
            help='Process a single business ID only',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report what would change without writing',
        )

    def handle(self, *args, **options):
        business_id = options.get('business')
        dry_run = options.get('dry_run', False)

        businesses = Business.objects.filter(products__isnull=False).distinct().order_by('id')
        if business_id:
            businesses = businesses.filter(id=business_id)

        total_assigned = 0
        for business in businesses:
            uncategorized = Product.objects.filter(business=business, category__isnull=True)
            count = uncategorized.count()

            if dry_run:
                self.stdout.write(f"{business.name}: {count} product(s) would be assigned")
                total_assigned += count
                continue

            with transaction.atomic():
                default_category = ProductCategory.objects.default_for(business)
                updated = uncategorized.update(category=default_category)
            total_assigned += updated
            self.stdout.write(f"{business.name}: assigned {updated} product(s) to '{default_category.name}'")

        prefix = "[dry run] " if dry_run else ""
        self.stdout.write(self.style.SUCCESS(f"{prefix}Done. {total_assigned} product(s) across {businesses.count()} business(es)"))
