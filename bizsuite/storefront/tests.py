"""
Test suite for the storefront module
Tests: public templates, websites, order placement and the revenue it posts
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from bizsuite.core.exceptions import BusinessRuleError
from bizsuite.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from bizsuite.finances.models import Account, Transaction
from bizsuite.storefront.models import Order, Template, Website
from bizsuite.storefront.services import place_order, price_order_items, update_order_status


class TemplateAPITests(TestCase):

    def setUp(self):
        self.client = APIClient()

    def test_stock_templates_are_seeded(self):
        names = set(Template.objects.values_list('name', flat=True))
        self.assertIn('Modern Shop', names)
        self.assertIn('Electronics', names)

    def test_list_is_public(self):
        response = self.client.get('/api/v1/templates/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), Template.objects.count())

    def test_filter_by_category(self):
        TestDataFactory.create_template(name='Boutique', category='fashion')
        response = self.client.get('/api/v1/templates/?category=fashion')
        self.assertTrue(response.data)
        self.assertTrue(all(t['category'] == 'fashion' for t in response.data))

    def test_missing_template(self):
        response = self.client.get('/api/v1/templates/999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class WebsiteAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.business = self.user.business
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.template = TestDataFactory.create_template()

    def test_create_and_update_website(self):
        data = {'template': self.template.id, 'name': 'My Shop', 'customizations': {'color': 'teal'}}
        response = self.client.post('/api/v1/websites/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['template_name'], self.template.name)
        website_id = response.data['id']

        response = self.client.patch(f'/api/v1/websites/{website_id}/', {'is_active': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Website.objects.get(pk=website_id).is_active)

    def test_customizations_must_be_object(self):
        data = {'template': self.template.id, 'name': 'My Shop', 'customizations': ['red']}
        response = self.client.post('/api/v1/websites/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_other_business_website_is_forbidden(self):
        website = Website.objects.create(
            business=TestDataFactory.create_business(), template=self.template, name='Theirs'
        )
        response = self.client.get(f'/api/v1/websites/{website.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class OrderServiceTests(TestCase):
    """Order placement writes the order and its revenue together"""

    def setUp(self):
        self.business = TestDataFactory.create_business()
        self.shirt = TestDataFactory.create_product(self.business, name='Shirt', price=Decimal('40.00'))
        self.mug = TestDataFactory.create_product(
            self.business, name='Mug', price=Decimal('20.00'), sale_price=Decimal('15.00'), is_on_sale=True
        )

    def test_prices_come_from_catalog(self):
        lines, total = price_order_items(self.business, [
            {'product_id': self.shirt.id, 'quantity': 2, 'price': '1.00'},
            {'product_id': self.mug.id},
        ])
        self.assertEqual(total, Decimal('95.00'))
        self.assertEqual(lines[0]['price'], '40.00')
        self.assertEqual(lines[1]['quantity'], 1)

    def test_place_order_posts_online_sales_income(self):
        order = place_order(self.business, 'Jane', 'jane@example.com', [{'product_id': self.shirt.id, 'quantity': 1}])
        self.assertEqual(order.total, Decimal('40.00'))

        account = Account.objects.get(business=self.business, name='Online Sales')
        self.assertEqual(account.category.type, 'income')
        self.assertEqual(account.current_balance, Decimal('40.00'))

        txn = Transaction.objects.get(order=order)
        self.assertEqual(txn.type, 'income')
        self.assertEqual(txn.amount, Decimal('40.00'))

    def test_second_order_reuses_online_sales_account(self):
        place_order(self.business, 'Jane', 'jane@example.com', [{'product_id': self.shirt.id}])
        place_order(self.business, 'Joe', 'joe@example.com', [{'product_id': self.mug.id}])
        self.assertEqual(Account.objects.filter(business=self.business, name='Online Sales').count(), 1)

    def test_foreign_product_rejected(self):
        foreign = TestDataFactory.create_product(TestDataFactory.create_business())
        with self.assertRaises(BusinessRuleError):
            place_order(self.business, 'Jane', 'jane@example.com', [{'product_id': foreign.id}])
        self.assertFalse(Order.objects.exists())

    def test_bad_quantities_rejected(self):
        for quantity in (0, -1, 1.5, '2', True):
            with self.assertRaises(BusinessRuleError):
                price_order_items(self.business, [{'product_id': self.shirt.id, 'quantity': quantity}])

    def test_out_of_stock_rejected(self):
        self.shirt.in_stock = False
        self.shirt.save()
        with self.assertRaises(BusinessRuleError):
            place_order(self.business, 'Jane', 'jane@example.com', [{'product_id': self.shirt.id}])

    def test_empty_order_rejected(self):
        with self.assertRaises(BusinessRuleError):
            place_order(self.business, 'Jane', 'jane@example.com', [])

    def test_cancel_cancels_revenue(self):
        order = place_order(self.business, 'Jane', 'jane@example.com', [{'product_id': self.shirt.id}])
        update_order_status(order, 'cancelled')

        self.assertEqual(Transaction.objects.get(order=order).status, 'cancelled')
        account = Account.objects.get(business=self.business, name='Online Sales')
        self.assertEqual(account.current_balance, Decimal('0.00'))

        with self.assertRaises(BusinessRuleError):
            update_order_status(order, 'pending')


class OrderAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.business = self.user.business
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product(self.business, price=Decimal('25.00'))

    def test_create_order(self):
        data = {
            'customer_name': 'Jane',
            'customer_email': 'jane@example.com',
            'items': [{'product_id': self.product.id, 'quantity': 2}],
        }
        response = self.client.post('/api/v1/orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(str(response.data['total'])), Decimal('50.00'))
        self.assertFalse(response.data['from_chatbot'])

    def test_create_order_invalid_email(self):
        data = {'customer_name': 'Jane', 'customer_email': 'nope', 'items': [{'product_id': self.product.id}]}
        response = self.client.post('/api/v1/orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_order_unknown_product(self):
        data = {'customer_name': 'Jane', 'customer_email': 'jane@example.com', 'items': [{'product_id': 999999}]}
        response = self.client.post('/api/v1/orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('message', response.data)

    def test_list_filter_by_status(self):
        TestDataFactory.create_order(self.business, status='pending')
        TestDataFactory.create_order(self.business, status='shipped')
        TestDataFactory.create_order(TestDataFactory.create_business())
        response = self.client.get('/api/v1/orders/?status=shipped')
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['status'], 'shipped')

    def test_status_change(self):
        order = TestDataFactory.create_order(self.business)
        response = self.client.patch(f'/api/v1/orders/{order.id}/status/', {'status': 'processing'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'processing')

        response = self.client.patch(f'/api/v1/orders/{order.id}/status/', {'status': 'lost'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_other_business_order_is_forbidden(self):
        order = TestDataFactory.create_order(TestDataFactory.create_business())
        response = self.client.get(f'/api/v1/orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
