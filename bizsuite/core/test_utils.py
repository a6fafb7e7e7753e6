"""
Test utilities and factories for creating test data
"""
import random
import string
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from bizsuite.catalog.models import ProductCategory, Product
from bizsuite.chatbot.models import Conversation
from bizsuite.contacts.models import Contact
from bizsuite.core.models import Business
from bizsuite.finances import services
from bizsuite.finances.models import AccountCategory, Account, Transaction
from bizsuite.storefront.models import Template, Order

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_business(name=None, email=None):
        """Create a business; its system account categories are seeded by signal"""
        if not name:
            name = f'Business_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{name.lower()}@test.com'
        return Business.objects.create(name=name, email=email)

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', business=None,
                    with_business=True, is_staff=False):
        """Create a test user attached to a (new) business"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        if business is None and with_business:
            business = TestDataFactory.create_business()
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            business=business,
            is_staff=is_staff,
        )

    @staticmethod
    def create_product_category(business, name=None):
        if not name:
            name = f'Category_{TestDataFactory.random_string(6)}'
        return ProductCategory.objects.create(business=business, name=name)

    @staticmethod
    def create_product(business, name=None, price=Decimal('100.00'), category=None, **kwargs):
        """Create a test product"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        return Product.objects.create(
            business=business,
            name=name,
            description=kwargs.pop('description', f'Test description for {name}'),
            price=price,
            category=category,
            **kwargs
        )

    @staticmethod
    def create_contact(business, name=None, contact_type='vendor', **kwargs):
        if not name:
            name = f'Contact_{TestDataFactory.random_string(6)}'
        return Contact.objects.create(business=business, name=name, contact_type=contact_type, **kwargs)

    @staticmethod
    def get_account_category(business, category_type='asset'):
        """One of the seeded system categories"""
        return AccountCategory.objects.filter(business=business, type=category_type, is_system=True).first()

    @staticmethod
    def create_account(business, name=None, category_type='asset', initial_balance=Decimal('0.00')):
        """Create an account; current balance starts at the initial balance"""
        if not name:
            name = f'Account_{TestDataFactory.random_string(6)}'
        return Account.objects.create(
            business=business,
            category=TestDataFactory.get_account_category(business, category_type),
            name=name,
            initial_balance=initial_balance,
            current_balance=initial_balance,
        )

    @staticmethod
    def create_transaction(account, type='income', amount=Decimal('100.00'), date=None, **kwargs):
        """Create a plain transaction; balances follow through the save signal"""
        return Transaction.objects.create(
            business=account.business,
            account=account,
            type=type,
            amount=amount,
            category=kwargs.pop('category', 'General'),
            date=date or timezone.now().date(),
            **kwargs
        )

    @staticmethod
    def create_bill(account, items=None, payment_received=Decimal('0.00'), date=None, **kwargs):
        """
        Create a purchase bill with lines.

        ``items`` is a list of dicts with quantity, unit_price and optionally
        discount, tax_rate, quantity_received and product.
        """
        if items is None:
            items = [{'quantity': Decimal('2'), 'unit_price': Decimal('50.00')}]
        txn = Transaction.objects.create(
            business=account.business,
            account=account,
            type='expense',
            document_type='bill',
            category=kwargs.pop('category', 'Purchases'),
            date=date or timezone.now().date(),
            payment_received=payment_received,
            status='draft',
            **kwargs
        )
        lines = services.replace_items(txn, items)
        services.recalculate_totals(txn, lines)
        services.refresh_status(txn, lines)
        txn.document_number = services.generate_document_number(txn.business, 'bill', txn.date)
        txn.save()
        return txn

    @staticmethod
    def create_template(name=None, category='fashion', is_popular=False):
        if not name:
            name = f'Template_{TestDataFactory.random_string(6)}'
        return Template.objects.create(name=name, category=category, is_popular=is_popular,
                                       description=f'{name} template')

    @staticmethod
    def create_order(business, items=None, total=Decimal('100.00'), from_chatbot=False, status='pending'):
        """Create an order row directly (no revenue transaction)"""
        return Order.objects.create(
            business=business,
            customer_name='Test Customer',
            customer_email='customer@test.com',
            total=total,
            items=items or [],
            from_chatbot=from_chatbot,
            status=status,
        )

    @staticmethod
    def create_conversation(business, customer_name='Guest', messages=None):
        return Conversation.objects.create(business=business, customer_name=customer_name, messages=messages or [])


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
