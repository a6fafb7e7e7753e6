"""
Test suite for the core module
Tests: registration, JWT login, business profile, tenant scoping, audit logs, helpers
"""
from decimal import Decimal
from io import StringIO

from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase, RequestFactory
from rest_framework import status
from rest_framework.test import APIClient

from bizsuite.catalog.models import Product
from bizsuite.core.cache_utils import cached_report, report_cache_key, invalidate_reports_cache
from bizsuite.core.models import AuditLog, Business, User
from bizsuite.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from bizsuite.core.utils import to_decimal, quantize_money, get_client_ip, create_audit_log
from bizsuite.finances.models import Account, AccountCategory


class AuthTests(TestCase):
    """Registration and token endpoints"""

    def setUp(self):
        self.client = APIClient()

    def register(self, **overrides):
        data = {
            'username': 'owner',
            'email': 'owner@shop.com',
            'password': 'secret123',
            'business_name': 'Corner Shop',
        }
        data.update(overrides)
        return self.client.post('/api/v1/auth/register/', data, format='json')

    def test_register_creates_business_and_user(self):
        response = self.register()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['business']['name'], 'Corner Shop')

        user = User.objects.get(username='owner')
        self.assertEqual(user.business.name, 'Corner Shop')
        self.assertTrue(user.check_password('secret123'))
        self.assertNotEqual(user.password, 'secret123')

    def test_register_seeds_system_account_categories(self):
        self.register()
        business = Business.objects.get(email='owner@shop.com')
        categories = AccountCategory.objects.filter(business=business, is_system=True)
        self.assertEqual(categories.count(), 5)
        self.assertEqual(
            set(categories.values_list('type', flat=True)),
            {'asset', 'liability', 'equity', 'income', 'expense'},
        )

    def test_register_duplicate_username(self):
        self.register()
        response = self.register(email='other@shop.com')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Username already exists')

    def test_register_duplicate_email(self):
        self.register()
        response = self.register(username='another')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('email', response.data)

    def test_register_short_password(self):
        response = self.register(password='123')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('password', response.data)

    def test_login_returns_tokens_and_user(self):
        self.register()
        response = self.client.post('/api/v1/auth/login/', {'username': 'owner', 'password': 'secret123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['user']['username'], 'owner')

    def test_login_wrong_password(self):
        self.register()
        response = self.client.post('/api/v1/auth/login/', {'username': 'owner', 'password': 'wrong'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_token(self):
        tokens = self.register().data
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_refresh_with_garbage_token(self):
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': 'not-a-token'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_requires_authentication(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class BusinessAPITests(TestCase):
    """Business profile and tenant checks"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_me(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['business']['id'], self.user.business_id)

    def test_get_business(self):
        response = self.client.get('/api/v1/business/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], self.user.business.name)

    def test_update_business_writes_audit_log(self):
        response = self.client.patch('/api/v1/business/', {'name': 'Renamed Shop'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Renamed Shop')
        self.assertTrue(AuditLog.objects.filter(
            business=self.user.business, action='update', model_name='Business'
        ).exists())

    def test_update_business_rejects_non_object_chatbot_settings(self):
        response = self.client.patch('/api/v1/business/', {'chatbot_settings': ['nope']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_user_without_business_is_forbidden(self):
        loner = TestDataFactory.create_user(with_business=False)
        client = AuthenticatedAPIClient().authenticate_user(loner)
        response = client.get('/api/v1/business/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertIn('message', response.data)


class AuditLogAPITests(TestCase):
    """Audit log listing is scoped to the caller's business"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.other_user = TestDataFactory.create_user()

    def test_list_only_own_business(self):
        create_audit_log(action='create', model_name='Product', object_id='1', user=self.user)
        create_audit_log(action='create', model_name='Product', object_id='2', user=self.other_user)

        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['object_id'], '1')

    def test_filter_by_action(self):
        create_audit_log(action='create', model_name='Product', object_id='1', user=self.user)
        create_audit_log(action='delete', model_name='Product', object_id='1', user=self.user)
        response = self.client.get('/api/v1/audit-logs/?action=delete')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['action'], 'delete')

    def test_invalid_date_filter(self):
        response = self.client.get('/api/v1/audit-logs/?date_from=yesterday')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_detail_of_other_business_is_forbidden(self):
        log = create_audit_log(action='create', model_name='Product', object_id='9', user=self.other_user)
        response = self.client.get(f'/api/v1/audit-logs/{log.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_missing_fields_skip_audit_log(self):
        self.assertIsNone(create_audit_log(action='create', model_name=None, object_id='1', user=self.user))
        self.assertEqual(AuditLog.objects.count(), 0)


class UtilsTests(TestCase):
    """Numeric coercion, IP extraction and report caching"""

    def test_to_decimal_fallbacks(self):
        self.assertEqual(to_decimal('12.50'), Decimal('12.50'))
        self.assertEqual(to_decimal(None), Decimal('0'))
        self.assertEqual(to_decimal(''), Decimal('0'))
        self.assertEqual(to_decimal('abc'), Decimal('0'))
        self.assertEqual(to_decimal('NaN'), Decimal('0'))
        self.assertEqual(to_decimal('Infinity', Decimal('1')), Decimal('1'))
        self.assertEqual(to_decimal(True), Decimal('0'))

    def test_quantize_money_rounds_half_up(self):
        self.assertEqual(quantize_money('2.345'), Decimal('2.35'))
        self.assertEqual(quantize_money('2.344'), Decimal('2.34'))

    def test_client_ip_prefers_forwarded_header(self):
        request = RequestFactory().get('/', HTTP_X_FORWARDED_FOR='10.0.0.1, 10.0.0.2', REMOTE_ADDR='127.0.0.1')
        self.assertEqual(get_client_ip(request), '10.0.0.1')
        request = RequestFactory().get('/', REMOTE_ADDR='127.0.0.1')
        self.assertEqual(get_client_ip(request), '127.0.0.1')

    def test_cached_report_hits_cache_until_invalidated(self):
        cache.clear()
        business = TestDataFactory.create_business()
        calls = []

        @cached_report('test_report')
        def build(business, value=None):
            calls.append(value)
            return {'value': value}

        self.assertEqual(build(business, value=1), {'value': 1})
        self.assertEqual(build(business, value=1), {'value': 1})
        self.assertEqual(len(calls), 1)

        build(business, value=2)
        self.assertEqual(len(calls), 2)

        invalidate_reports_cache(business.id)
        build(business, value=1)
        self.assertEqual(len(calls), 3)

    def test_report_cache_keys_are_scoped_by_business(self):
        key_a = report_cache_key('cash_flow', 1, date_from='2024-01-01')
        key_b = report_cache_key('cash_flow', 2, date_from='2024-01-01')
        self.assertNotEqual(key_a, key_b)
        self.assertTrue(key_a.startswith('reports:1:cash_flow'))


class SeedDemoDataCommandTests(TestCase):

    def test_seed_is_idempotent(self):
        out = StringIO()
        call_command('seed_demo_data', stdout=out)
        business = Business.objects.get(email='demo@example.com')
        self.assertTrue(User.objects.get(username='demo').check_password('password123'))
        self.assertEqual(Account.objects.filter(business=business).count(), 12)
        self.assertEqual(Product.objects.filter(business=business).count(), 6)

        cash = Account.objects.get(business=business, name='Cash')
        self.assertEqual(cash.current_balance, Decimal('5000.00'))
        self.assertEqual(cash.category.type, 'asset')

        out = StringIO()
        call_command('seed_demo_data', stdout=out)
        self.assertIn('Accounts created: 0', out.getvalue())
        self.assertEqual(Product.objects.filter(business=business).count(), 6)
