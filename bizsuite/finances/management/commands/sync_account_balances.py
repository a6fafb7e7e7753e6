"""
Django management command to recompute account balances from transactions
"""
from django.core.management.base import BaseCommand, CommandError

from bizsuite.core.models import Business
from bizsuite.finances.services import sync_business_balances


class Command(BaseCommand):
    help = 'Recalculate current_balance for every account from its transactions'

    def add_arguments(self, parser):
        parser.add_argument(
            '--business',
            type=int,
            help='Sync a single business ID only',
        )

    def handle(self, *args, **options):
        business = None
        business_id = options.get('business')
        if business_id:
            business = Business.objects.filter(pk=business_id).first()
            if business is None:
                raise CommandError(f"Business {business_id} does not exist")

        results = sync_business_balances(business)
        for result in results:
            if result['changed']:
                self.stdout.write(
                    f"Account {result['account_id']} ({result['name']}): "
                    f"{result['old_balance']} -> {result['new_balance']}"
                )

        changed = sum(1 for r in results if r['changed'])
        self.stdout.write(self.style.SUCCESS(f"Synced {len(results)} account(s); {changed} balance(s) corrected"))
