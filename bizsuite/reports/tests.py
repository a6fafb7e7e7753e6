"""
Test suite for the reports module
Tests: cash flow, profit and loss, balance sheet, bills summary, dashboard,
date handling and cache invalidation
"""
from datetime import timedelta
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from bizsuite.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from bizsuite.storefront.services import place_order, update_order_status


class ReportTestCase(TestCase):

    def setUp(self):
        # Business ids can repeat across tests, so start with an empty cache
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.business = self.user.business
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.today = timezone.now().date()
        self.cash = TestDataFactory.create_account(self.business, name='Cash', initial_balance=Decimal('1000.00'))


class CashFlowReportTests(ReportTestCase):

    def test_inflows_and_outflows(self):
        TestDataFactory.create_transaction(self.cash, type='income', amount=Decimal('300.00'), category='Sales')
        TestDataFactory.create_transaction(self.cash, type='expense', amount=Decimal('120.00'), category='Rent')
        TestDataFactory.create_transaction(self.cash, type='expense', amount=Decimal('50.00'), category='Rent',
                                           status='cancelled')

        response = self.client.get('/api/v1/reports/cash-flow/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        summary = response.data['summary']
        self.assertEqual(summary['total_inflows'], 300.0)
        self.assertEqual(summary['total_outflows'], 120.0)
        self.assertEqual(summary['net_cash_flow'], 180.0)
        self.assertEqual(response.data['outflows_by_category'], [{'category': 'Rent', 'total': 120.0, 'count': 1}])
        self.assertEqual(response.data['daily_breakdown'][0]['net'], 180.0)

    def test_transfers_count_as_cash_movement(self):
        bank = TestDataFactory.create_account(self.business, name='Bank')
        TestDataFactory.create_transaction(self.cash, type='transfer_out', amount=Decimal('40.00'))
        TestDataFactory.create_transaction(bank, type='transfer_in', amount=Decimal('40.00'))
        response = self.client.get('/api/v1/reports/cash-flow/')
        self.assertEqual(response.data['summary']['net_cash_flow'], 0.0)
        self.assertEqual(response.data['summary']['total_inflows'], 40.0)

    def test_period_bounds(self):
        TestDataFactory.create_transaction(self.cash, amount=Decimal('10.00'), date=self.today - timedelta(days=60))
        response = self.client.get('/api/v1/reports/cash-flow/')
        self.assertEqual(response.data['summary']['total_inflows'], 0.0)

        date_from = (self.today - timedelta(days=90)).isoformat()
        response = self.client.get(f'/api/v1/reports/cash-flow/?date_from={date_from}')
        self.assertEqual(response.data['summary']['total_inflows'], 10.0)
        self.assertEqual(response.data['period']['from'], date_from)

    def test_invalid_dates(self):
        response = self.client.get('/api/v1/reports/cash-flow/?date_from=2024-13-01')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('date_from', response.data['message'])

        response = self.client.get('/api/v1/reports/cash-flow/?date_from=2024-02-01&date_to=2024-01-01')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/v1/reports/cash-flow/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_new_transaction_invalidates_cached_report(self):
        TestDataFactory.create_transaction(self.cash, amount=Decimal('100.00'))
        first = self.client.get('/api/v1/reports/cash-flow/').data
        self.assertEqual(first['summary']['total_inflows'], 100.0)

        TestDataFactory.create_transaction(self.cash, amount=Decimal('25.00'))
        second = self.client.get('/api/v1/reports/cash-flow/').data
        self.assertEqual(second['summary']['total_inflows'], 125.0)


class ProfitLossReportTests(ReportTestCase):

    def test_net_profit_and_margin(self):
        TestDataFactory.create_transaction(self.cash, type='income', amount=Decimal('400.00'), category='Sales')
        TestDataFactory.create_transaction(self.cash, type='income', amount=Decimal('100.00'), category='Services')
        TestDataFactory.create_transaction(self.cash, type='expense', amount=Decimal('150.00'), category='Rent')
        TestDataFactory.create_transaction(self.cash, type='transfer_out', amount=Decimal('75.00'))

        response = self.client.get('/api/v1/reports/profit-loss/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['income']['total'], 500.0)
        self.assertEqual(response.data['expenses']['total'], 150.0)
        self.assertEqual(response.data['net_profit'], 350.0)
        self.assertEqual(response.data['profit_margin'], 70.0)
        self.assertEqual([c['category'] for c in response.data['income']['by_category']], ['Sales', 'Services'])

    def test_no_income_gives_zero_margin(self):
        TestDataFactory.create_transaction(self.cash, type='expense', amount=Decimal('10.00'))
        response = self.client.get('/api/v1/reports/profit-loss/')
        self.assertEqual(response.data['net_profit'], -10.0)
        self.assertEqual(response.data['profit_margin'], 0.0)


class BalanceSheetReportTests(ReportTestCase):

    def test_sections_and_retained_earnings(self):
        loan = TestDataFactory.create_account(
            self.business, name='Loan', category_type='liability', initial_balance=Decimal('300.00')
        )
        TestDataFactory.create_account(
            self.business, name='Owner Capital', category_type='equity', initial_balance=Decimal('700.00')
        )
        TestDataFactory.create_account(self.business, name='Sales', category_type='income')
        TestDataFactory.create_transaction(self.cash, type='income', amount=Decimal('200.00'))
        TestDataFactory.create_transaction(self.cash, type='expense', amount=Decimal('50.00'))

        response = self.client.get('/api/v1/reports/balance-sheet/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data
        self.assertEqual(data['assets']['total'], 1150.0)
        self.assertEqual(data['liabilities']['accounts'][0]['id'], loan.id)
        self.assertEqual(data['total_liabilities'], 300.0)
        self.assertEqual(data['retained_earnings'], 150.0)
        self.assertEqual(data['total_equity'], 850.0)
        self.assertEqual(data['total_liabilities_and_equity'], 1150.0)
        self.assertNotIn('Sales', [a['name'] for a in data['assets']['accounts']])

    def test_as_of_date(self):
        TestDataFactory.create_account(
            self.business, name='Owner Capital', category_type='equity', initial_balance=Decimal('1000.00')
        )
        TestDataFactory.create_transaction(self.cash, type='income', amount=Decimal('200.00'))
        yesterday = (self.today - timedelta(days=1)).isoformat()
        response = self.client.get(f'/api/v1/reports/balance-sheet/?date_to={yesterday}')
        data = response.data
        self.assertEqual(data['as_of'], yesterday)
        self.assertEqual(data['retained_earnings'], 0.0)
        self.assertEqual(data['assets']['accounts'][0]['balance'], 1000.0)
        self.assertEqual(data['total_assets'], 1000.0)
        self.assertEqual(data['total_assets'], data['total_liabilities_and_equity'])

    def test_as_of_date_ignores_later_transfers_and_cancelled(self):
        bank = TestDataFactory.create_account(self.business, name='Bank', initial_balance=Decimal('500.00'))
        TestDataFactory.create_account(
            self.business, name='Owner Capital', category_type='equity', initial_balance=Decimal('1500.00')
        )
        last_week = self.today - timedelta(days=7)
        TestDataFactory.create_transaction(self.cash, type='transfer_out', amount=Decimal('100.00'), date=last_week)
        TestDataFactory.create_transaction(bank, type='transfer_in', amount=Decimal('100.00'), date=last_week)
        TestDataFactory.create_transaction(self.cash, type='expense', amount=Decimal('30.00'), date=last_week,
                                           status='cancelled')
        TestDataFactory.create_transaction(self.cash, type='expense', amount=Decimal('80.00'))

        yesterday = (self.today - timedelta(days=1)).isoformat()
        data = self.client.get(f'/api/v1/reports/balance-sheet/?date_to={yesterday}').data
        balances = {a['name']: a['balance'] for a in data['assets']['accounts']}
        self.assertEqual(balances, {'Bank': 600.0, 'Cash': 900.0})
        self.assertEqual(data['total_assets'], 1500.0)
        self.assertEqual(data['total_liabilities_and_equity'], 1500.0)


class BillsSummaryReportTests(ReportTestCase):

    def test_summary(self):
        # 2 x 50 = 100 each
        TestDataFactory.create_bill(self.cash)
        TestDataFactory.create_bill(self.cash, payment_received=Decimal('40.00'))
        overdue = TestDataFactory.create_bill(self.cash, due_date=self.today - timedelta(days=3))
        cancelled = TestDataFactory.create_bill(self.cash)
        cancelled.status = 'cancelled'
        cancelled.save()

        response = self.client.get('/api/v1/reports/bills-summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data
        self.assertEqual(data['count'], 4)
        self.assertEqual(data['status_counts']['draft'], 2)
        self.assertEqual(data['status_counts']['partial'], 1)
        self.assertEqual(data['status_counts']['cancelled'], 1)
        self.assertEqual(data['total_billed'], 300.0)
        self.assertEqual(data['total_paid'], 40.0)
        self.assertEqual(data['outstanding'], 260.0)
        self.assertEqual(data['overdue_count'], 1)
        self.assertEqual(data['overdue_amount'], float(overdue.amount))

    def test_plain_expenses_are_not_bills(self):
        TestDataFactory.create_transaction(self.cash, type='expense', amount=Decimal('10.00'))
        response = self.client.get('/api/v1/reports/bills-summary/')
        self.assertEqual(response.data['count'], 0)
        self.assertEqual(response.data['total_billed'], 0.0)


class DashboardReportTests(ReportTestCase):

    def test_dashboard(self):
        shirt = TestDataFactory.create_product(self.business, name='Shirt', price=Decimal('30.00'))
        hat = TestDataFactory.create_product(self.business, name='Hat', price=Decimal('10.00'))
        place_order(self.business, 'Ann', 'ann@example.com', [{'product_id': shirt.id, 'quantity': 1}])
        place_order(self.business, 'Bob', 'bob@example.com', [{'product_id': hat.id, 'quantity': 3}],
                    from_chatbot=True)
        cancelled = place_order(self.business, 'Cy', 'cy@example.com', [{'product_id': shirt.id, 'quantity': 5}])
        update_order_status(cancelled, 'cancelled')
        TestDataFactory.create_transaction(self.cash, type='expense', amount=Decimal('20.00'))
        TestDataFactory.create_conversation(self.business)

        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data
        self.assertEqual(data['total_revenue'], 60.0)
        self.assertEqual(data['current_month_revenue'], 60.0)
        self.assertEqual(data['total_expenses'], 20.0)
        self.assertEqual(data['net_profit'], 40.0)
        self.assertEqual(data['order_count'], 2)
        self.assertEqual(data['revenue_by_source'], {'direct': 30.0, 'chatbot': 30.0})
        self.assertEqual(data['conversation_count'], 1)
        self.assertEqual([p['name'] for p in data['top_products']], ['Hat', 'Shirt'])
        self.assertEqual(data['top_products'][0]['quantity'], 3)

    def test_empty_business(self):
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.data['total_revenue'], 0.0)
        self.assertEqual(response.data['top_products'], [])
        self.assertEqual(response.data['profit_margin'], 0.0)
