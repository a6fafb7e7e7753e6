"""
Management command to create a demo business with accounts and sample products
"""
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from bizsuite.catalog.models import Product, ProductCategory
from bizsuite.core.models import Business, User
from bizsuite.finances.models import Account, AccountCategory

# (category type, account name, description, initial balance)
DEMO_ACCOUNTS = [
    ('asset', 'Cash', 'Cash on hand', Decimal('5000.00')),
    ('asset', 'Bank Account', 'Primary business checking account', Decimal('25000.00')),
    ('asset', 'Accounts Receivable', 'Money owed by customers', Decimal('0.00')),
    ('asset', 'Inventory', 'Products held for sale', Decimal('15000.00')),
    ('liability', 'Accounts Payable', 'Money owed to suppliers', Decimal('5000.00')),
    ('liability', 'Credit Card', 'Business credit card', Decimal('2500.00')),
    ('equity', "Owner's Capital", "Owner's investment in the business", Decimal('37500.00')),
    ('income', 'Online Sales', 'Revenue from online sales', Decimal('0.00')),
    ('income', 'In-Store Sales', 'Revenue from physical store', Decimal('0.00')),
    ('expense', 'Cost of Goods Sold', 'Direct costs of products sold', Decimal('0.00')),
    ('expense', 'Advertising', 'Marketing and advertising expenses', Decimal('0.00')),
    ('expense', 'Shipping & Fulfillment', 'Costs of shipping and order fulfillment', Decimal('0.00')),
]

DEMO_PRODUCTS = [
    {
        'name': 'Premium Cotton T-Shirt',
        'description': 'Super soft, premium cotton t-shirt with custom logo printing.',
        'price': Decimal('24.99'),
        'sku': 'TS-PREMIUM-001',
        'category': 'Apparel',
        'inventory': 250,
        'has_variants': True,
        'variants': [
            {'id': 'ts-sm-black', 'name': 'Small Black', 'inventory': 50, 'attributes': {'Color': 'Black', 'Size': 'Small'}},
            {'id': 'ts-md-black', 'name': 'Medium Black', 'inventory': 70, 'attributes': {'Color': 'Black', 'Size': 'Medium'}},
        ],
        'tags': ['t-shirt', 'apparel', 'cotton'],
        'is_featured': True,
    },
    {
        'name': 'Fleece Zip-Up Hoodie',
        'description': 'Cozy fleece hoodie with full-length zipper and kangaroo pockets.',
        'price': Decimal('49.99'),
        'sku': 'HD-FLEECE-001',
        'category': 'Apparel',
        'inventory': 120,
        'tags': ['hoodie', 'apparel', 'winter'],
        'is_featured': True,
        'is_on_sale': True,
        'sale_price': Decimal('39.99'),
    },
    {
        'name': 'Insulated Stainless Steel Water Bottle',
        'description': 'Double-walled vacuum insulated bottle, keeps drinks cold for 24 hours.',
        'price': Decimal('29.95'),
        'sku': 'WB-STEEL-001',
        'category': 'Accessories',
        'inventory': 80,
        'tags': ['water bottle', 'hydration'],
    },
    {
        'name': 'True Wireless Earbuds',
        'description': 'Bluetooth earbuds with charging case and noise isolation.',
        'price': Decimal('79.99'),
        'sku': 'EB-TWS-001',
        'category': 'Electronics',
        'inventory': 45,
        'tags': ['audio', 'wireless'],
        'is_featured': True,
    },
    {
        'name': 'Ceramic Coffee Mug',
        'description': 'Dishwasher safe 350ml ceramic mug with a glossy finish.',
        'price': Decimal('14.99'),
        'sku': 'MG-CER-001',
        'category': 'Home & Kitchen',
        'inventory': 150,
        'tags': ['mug', 'kitchen'],
    },
    {
        'name': 'Hardcover Lined Notebook',
        'description': 'A5 hardcover notebook with 192 lined pages and a ribbon marker.',
        'price': Decimal('12.99'),
        'sku': 'NB-A5-001',
        'category': 'Stationery',
        'inventory': 200,
        'tags': ['notebook', 'stationery'],
    },
]


class Command(BaseCommand):
    help = 'Create a demo business with an owner login, common accounts and sample products'

    def add_arguments(self, parser):
        parser.add_argument('--username', default='demo', help='Owner username (default: demo)')
        parser.add_argument('--password', default='password123', help='Owner password for a new user')
        parser.add_argument('--email', default='demo@example.com', help='Business and owner email')

    @transaction.atomic
    def handle(self, *args, **options):
        username = options['username']
        email = options['email']

        business, created = Business.objects.get_or_create(email=email, defaults={'name': 'Demo Business'})
        if created:
            self.stdout.write(self.style.SUCCESS(f"Created business: {business.name} (ID: {business.id})"))
        else:
            self.stdout.write(f"Using existing business: {business.name} (ID: {business.id})")

        if not User.objects.filter(username=username).exists():
            User.objects.create_user(username=username, email=email, password=options['password'], business=business)
            self.stdout.write(self.style.SUCCESS(f"Created owner login: {username}"))

        accounts_created = 0
        for category_type, name, description, balance in DEMO_ACCOUNTS:
            category = AccountCategory.objects.filter(business=business, type=category_type, is_system=True).first()
            _, was_created = Account.objects.get_or_create(
                business=business,
                category=category,
                name=name,
                defaults={'description': description, 'initial_balance': balance, 'current_balance': balance},
            )
            accounts_created += int(was_created)

        products_created = 0
        for data in DEMO_PRODUCTS:
            data = dict(data)
            category, _ = ProductCategory.objects.get_or_create(business=business, name=data.pop('category'))
            _, was_created = Product.objects.get_or_create(
                business=business,
                sku=data['sku'],
                defaults={**data, 'category': category},
            )
            products_created += int(was_created)

        self.stdout.write(f"Accounts created: {accounts_created}")
        self.stdout.write(f"Products created: {products_created}")
        self.stdout.write(self.style.SUCCESS("Demo data ready"))
