"""
Test suite for the finances module
Tests: bill arithmetic, account balances, purchase bills, payments, receipts,
versions and restore, transfers, account categories and the balance sync command
"""
from decimal import Decimal
from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase, TestCase
from django.utils import timezone
from rest_framework import status

from bizsuite.core.models import AuditLog
from bizsuite.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from bizsuite.finances import billing, services
from bizsuite.finances.models import Account, AccountCategory, Transaction, TransactionVersion, Transfer


class BillingCalculationTests(SimpleTestCase):
    """Pure bill arithmetic, no database"""

    def test_line_amount_applies_line_discount(self):
        self.assertEqual(billing.line_amount(2, '50.00', 10), Decimal('90.00'))
        self.assertEqual(billing.line_amount('3', '9.99'), Decimal('29.97'))

    def test_exclusive_tax_is_added(self):
        totals = billing.calculate_bill_totals([{'quantity': 2, 'unit_price': '100', 'tax_rate': '10'}])
        self.assertEqual(totals['subtotal'], Decimal('200.00'))
        self.assertEqual(totals['tax_amount'], Decimal('20.00'))
        self.assertEqual(totals['total'], Decimal('220.00'))

    def test_percentage_discount_before_tax(self):
        totals = billing.calculate_bill_totals(
            [{'quantity': 2, 'unit_price': '100', 'tax_rate': '10'}],
            discount_type='percentage', discount_value='10',
        )
        self.assertEqual(totals['discount_amount'], Decimal('20.00'))
        self.assertEqual(totals['tax_amount'], Decimal('18.00'))
        self.assertEqual(totals['total'], Decimal('198.00'))

    def test_inclusive_tax_is_extracted(self):
        totals = billing.calculate_bill_totals(
            [{'quantity': 1, 'unit_price': '110', 'tax_rate': '10'}], tax_type='inclusive'
        )
        self.assertEqual(totals['tax_amount'], Decimal('10.00'))
        self.assertEqual(totals['total'], Decimal('110.00'))

    def test_no_tax(self):
        totals = billing.calculate_bill_totals(
            [{'quantity': 1, 'unit_price': '110', 'tax_rate': '10'}], tax_type='none'
        )
        self.assertEqual(totals['tax_amount'], Decimal('0.00'))
        self.assertEqual(totals['total'], Decimal('110.00'))

    def test_flat_discount_is_capped_at_subtotal(self):
        totals = billing.calculate_bill_totals(
            [{'quantity': 1, 'unit_price': '100'}], discount_type='flat', discount_value='500'
        )
        self.assertEqual(totals['discount_amount'], Decimal('100.00'))
        self.assertEqual(totals['total'], Decimal('0.00'))

    def test_empty_bill(self):
        totals = billing.calculate_bill_totals([])
        self.assertEqual(totals['total'], Decimal('0.00'))
        self.assertEqual(totals['line_amounts'], [])

    def test_received_quantity_is_clamped(self):
        self.assertEqual(billing.clamp_received_quantity(-1, 10), Decimal('0'))
        self.assertEqual(billing.clamp_received_quantity(15, 10), Decimal('10'))
        self.assertEqual(billing.clamp_received_quantity('abc', 10), Decimal('0'))
        self.assertEqual(billing.clamp_received_quantity('4', 10), Decimal('4'))

    def test_bill_status_derivation(self):
        items = [{'quantity': 2, 'quantity_received': 0}]
        self.assertEqual(billing.derive_bill_status('100', '0', items), 'draft')
        self.assertEqual(billing.derive_bill_status('100', '40', items), 'partial')

        half_received = [{'quantity': 2, 'quantity_received': 1}]
        self.assertEqual(billing.derive_bill_status('100', '0', half_received), 'partial')

        all_received = [{'quantity': 2, 'quantity_received': 2}]
        self.assertEqual(billing.derive_bill_status('100', '100', all_received), 'completed')
        self.assertEqual(billing.derive_bill_status('100', '99.99', all_received), 'partial')
        self.assertEqual(billing.derive_bill_status('100', '100', all_received, cancelled=True), 'cancelled')


class AccountBalanceTests(TestCase):
    """Balances follow transactions through signals"""

    def setUp(self):
        self.business = TestDataFactory.create_business()
        self.account = TestDataFactory.create_account(self.business, initial_balance=Decimal('100.00'))

    def balance(self, account=None):
        return Account.objects.get(pk=(account or self.account).pk).current_balance

    def test_income_and_expense_update_balance(self):
        TestDataFactory.create_transaction(self.account, type='income', amount=Decimal('50.00'))
        TestDataFactory.create_transaction(self.account, type='expense', amount=Decimal('30.00'))
        self.assertEqual(self.balance(), Decimal('120.00'))

    def test_cancelled_transactions_do_not_count(self):
        txn = TestDataFactory.create_transaction(self.account, type='expense', amount=Decimal('30.00'))
        self.assertEqual(self.balance(), Decimal('70.00'))
        txn.status = 'cancelled'
        txn.save()
        self.assertEqual(self.balance(), Decimal('100.00'))

    def test_delete_restores_balance(self):
        txn = TestDataFactory.create_transaction(self.account, type='income', amount=Decimal('25.00'))
        txn.delete()
        self.assertEqual(self.balance(), Decimal('100.00'))

    def test_moving_transaction_resyncs_both_accounts(self):
        other = TestDataFactory.create_account(self.business)
        txn = TestDataFactory.create_transaction(self.account, type='income', amount=Decimal('40.00'))
        txn.account = other
        txn.save()
        self.assertEqual(self.balance(), Decimal('100.00'))
        self.assertEqual(self.balance(other), Decimal('40.00'))

    def test_sync_business_balances_corrects_drift(self):
        TestDataFactory.create_transaction(self.account, type='income', amount=Decimal('10.00'))
        Account.objects.filter(pk=self.account.pk).update(current_balance=Decimal('999.00'))
        results = services.sync_business_balances(self.business)
        self.assertEqual(len(results), 1)
        self.assertTrue(results[0]['changed'])
        self.assertEqual(self.balance(), Decimal('110.00'))

    def test_sync_command(self):
        Account.objects.filter(pk=self.account.pk).update(current_balance=Decimal('0.00'))
        out = StringIO()
        call_command('sync_account_balances', '--business', str(self.business.pk), stdout=out)
        self.assertEqual(self.balance(), Decimal('100.00'))
        self.assertIn('1 balance(s) corrected', out.getvalue())

    def test_sync_command_unknown_business(self):
        with self.assertRaises(CommandError):
            call_command('sync_account_balances', '--business', '999999', stdout=StringIO())

    def test_document_numbers_are_sequential_per_day(self):
        first = TestDataFactory.create_bill(self.account)
        second = TestDataFactory.create_bill(self.account)
        stem = f"BILL-{timezone.now().date().strftime('%Y%m%d')}-"
        self.assertEqual(first.document_number, f'{stem}0001')
        self.assertEqual(second.document_number, f'{stem}0002')


class AccountAPITests(TestCase):
    """Account categories and accounts"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.business = self.user.business
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_list_seeded_categories(self):
        response = self.client.get('/api/v1/account-categories/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 5)

    def test_system_category_cannot_be_changed(self):
        category = TestDataFactory.get_account_category(self.business, 'asset')
        response = self.client.patch(f'/api/v1/account-categories/{category.id}/', {'name': 'Stuff'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.delete(f'/api/v1/account-categories/{category.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_custom_category_lifecycle(self):
        response = self.client.post('/api/v1/account-categories/', {'name': 'Loans', 'type': 'liability'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['is_system'])
        category_id = response.data['id']

        self.client.post('/api/v1/accounts/', {'name': 'Bank Loan', 'category_id': category_id}, format='json')
        response = self.client.delete(f'/api/v1/account-categories/{category_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        Account.objects.filter(category_id=category_id).delete()
        response = self.client.delete(f'/api/v1/account-categories/{category_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_create_account_starts_at_initial_balance(self):
        category = TestDataFactory.get_account_category(self.business, 'asset')
        data = {'name': 'Cash Drawer', 'category_id': category.id, 'initial_balance': '250.00'}
        response = self.client.post('/api/v1/accounts/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(str(response.data['current_balance'])), Decimal('250.00'))

    def test_changing_initial_balance_resyncs(self):
        account = TestDataFactory.create_account(self.business, initial_balance=Decimal('100.00'))
        TestDataFactory.create_transaction(account, type='income', amount=Decimal('50.00'))
        response = self.client.patch(f'/api/v1/accounts/{account.id}/', {'initial_balance': '200.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(str(response.data['current_balance'])), Decimal('250.00'))

    def test_category_of_other_business_rejected(self):
        foreign = TestDataFactory.get_account_category(TestDataFactory.create_business(), 'asset')
        response = self.client.post('/api/v1/accounts/', {'name': 'Sneaky', 'category_id': foreign.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_account_with_transactions_cannot_be_deleted(self):
        account = TestDataFactory.create_account(self.business)
        TestDataFactory.create_transaction(account)
        response = self.client.delete(f'/api/v1/accounts/{account.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_sync_balances_endpoint(self):
        account = TestDataFactory.create_account(self.business, initial_balance=Decimal('10.00'))
        Account.objects.filter(pk=account.pk).update(current_balance=Decimal('0.00'))
        response = self.client.post('/api/v1/accounts/sync-balances/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['updated'], 1)
        account.refresh_from_db()
        self.assertEqual(account.current_balance, Decimal('10.00'))

    def test_other_business_account_is_forbidden(self):
        account = TestDataFactory.create_account(TestDataFactory.create_business())
        response = self.client.get(f'/api/v1/accounts/{account.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class TransactionAPITests(TestCase):
    """Plain transactions, listing and invoices"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.business = self.user.business
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.account = TestDataFactory.create_account(self.business)
        self.today = timezone.now().date().isoformat()

    def create(self, **overrides):
        data = {
            'account_id': self.account.id,
            'type': 'income',
            'category': 'Consulting',
            'amount': '100.00',
            'date': self.today,
        }
        data.update(overrides)
        return self.client.post('/api/v1/transactions/', data, format='json')

    def test_create_transaction_records_version_and_audit(self):
        response = self.create()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        txn = Transaction.objects.get(pk=response.data['id'])
        self.assertEqual(txn.created_by, self.user)
        self.assertEqual(txn.versions.count(), 1)
        self.assertEqual(txn.versions.first().change_type, 'create')
        self.assertTrue(AuditLog.objects.filter(model_name='Transaction', action='create').exists())
        self.account.refresh_from_db()
        self.assertEqual(self.account.current_balance, Decimal('100.00'))

    def test_amount_required_without_items(self):
        response = self.create(amount='0')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('amount', response.data)

    def test_transfer_types_rejected(self):
        response = self.create(type='transfer_in')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('type', response.data)

    def test_account_of_other_business_rejected(self):
        foreign = TestDataFactory.create_account(TestDataFactory.create_business())
        response = self.create(account_id=foreign.id)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_is_paginated(self):
        for _ in range(3):
            TestDataFactory.create_transaction(self.account)
        response = self.client.get('/api/v1/transactions/?limit=2')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 3)
        self.assertEqual(len(response.data['results']), 2)
        self.assertEqual(response.data['total_pages'], 2)
        self.assertEqual(response.data['next'], 2)

    def test_list_filters(self):
        TestDataFactory.create_transaction(self.account, type='income', description='Website job')
        TestDataFactory.create_transaction(self.account, type='expense', description='Paper')
        response = self.client.get('/api/v1/transactions/?type=expense')
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/transactions/?search=website')
        self.assertEqual(response.data['count'], 1)

    def test_invalid_date_filter(self):
        response = self.client.get('/api/v1/transactions/?date_from=not-a-date')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invoice_status_follows_payments(self):
        response = self.create(document_type='invoice')
        self.assertEqual(response.data['status'], 'pending')
        self.assertTrue(response.data['document_number'].startswith('INV-'))
        txn_id = response.data['id']

        response = self.client.post(f'/api/v1/transactions/{txn_id}/payments/', {'amount': '40'}, format='json')
        self.assertEqual(response.data['status'], 'partial')
        response = self.client.post(f'/api/v1/transactions/{txn_id}/payments/', {'amount': '60'}, format='json')
        self.assertEqual(response.data['status'], 'paid')

    def test_cancel_excludes_from_balance(self):
        txn_id = self.create().data['id']
        response = self.client.post(f'/api/v1/transactions/{txn_id}/cancel/', {'reason': 'Duplicate'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'cancelled')
        self.account.refresh_from_db()
        self.assertEqual(self.account.current_balance, Decimal('0.00'))

        response = self.client.post(f'/api/v1/transactions/{txn_id}/cancel/', format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_transaction(self):
        txn_id = self.create().data['id']
        response = self.client.delete(f'/api/v1/transactions/{txn_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.account.refresh_from_db()
        self.assertEqual(self.account.current_balance, Decimal('0.00'))


class PurchaseBillAPITests(TestCase):
    """Purchase bills: line totals, receiving goods and payments"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.business = self.user.business
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.account = TestDataFactory.create_account(self.business, initial_balance=Decimal('1000.00'))
        self.vendor = TestDataFactory.create_contact(self.business, contact_type='vendor')
        self.product = TestDataFactory.create_product(self.business)

    def create_bill(self, items=None, **overrides):
        data = {
            'account_id': self.account.id,
            'type': 'expense',
            'document_type': 'bill',
            'category': 'Purchases',
            'date': timezone.now().date().isoformat(),
            'contact_id': self.vendor.id,
            'items': items or [
                {'product': self.product.id, 'quantity': '2', 'unit_price': '50.00', 'tax_rate': '10'},
            ],
        }
        data.update(overrides)
        return self.client.post('/api/v1/transactions/', data, format='json')

    def test_create_bill_computes_totals(self):
        response = self.create_bill()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(str(response.data['subtotal'])), Decimal('100.00'))
        self.assertEqual(Decimal(str(response.data['tax_amount'])), Decimal('10.00'))
        self.assertEqual(Decimal(str(response.data['amount'])), Decimal('110.00'))
        self.assertEqual(response.data['status'], 'draft')
        self.assertTrue(response.data['document_number'].startswith('BILL-'))
        self.assertEqual(response.data['items'][0]['product_name'], self.product.name)

        self.account.refresh_from_db()
        self.assertEqual(self.account.current_balance, Decimal('890.00'))

    def test_bill_line_product_must_belong_to_business(self):
        foreign = TestDataFactory.create_product(TestDataFactory.create_business())
        response = self.create_bill(items=[{'product': foreign.id, 'quantity': '1', 'unit_price': '5'}])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_bill_line_quantity_must_be_positive(self):
        response = self.create_bill(items=[{'quantity': '0', 'unit_price': '5'}])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_percentage_discount_over_100_rejected(self):
        response = self.create_bill(discount_type='percentage', discount_value='150')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('discount_value', response.data)

    def test_receive_and_pay_completes_bill(self):
        bill = self.create_bill().data
        item_id = bill['items'][0]['id']

        response = self.client.post(
            f"/api/v1/transactions/{bill['id']}/receive/",
            {'items': [{'id': item_id, 'quantity_received': '1'}]},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'partial')

        # Over-receiving is clamped to the ordered quantity
        response = self.client.post(
            f"/api/v1/transactions/{bill['id']}/receive/",
            {'items': [{'id': item_id, 'quantity_received': '5'}]},
            format='json',
        )
        self.assertEqual(Decimal(str(response.data['items'][0]['quantity_received'])), Decimal('2'))
        self.assertEqual(response.data['status'], 'partial')

        response = self.client.post(f"/api/v1/transactions/{bill['id']}/payments/", {'amount': '110.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'completed')
        self.assertTrue(AuditLog.objects.filter(action='payment').exists())
        self.assertTrue(AuditLog.objects.filter(action='receive').exists())

    def test_receive_unknown_item(self):
        bill = self.create_bill().data
        response = self.client.post(
            f"/api/v1/transactions/{bill['id']}/receive/",
            {'items': [{'id': 999999, 'quantity_received': '1'}]},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_overpayment_rejected(self):
        bill = self.create_bill().data
        response = self.client.post(f"/api/v1/transactions/{bill['id']}/payments/", {'amount': '500'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('message', response.data)

    def test_zero_payment_rejected(self):
        bill = self.create_bill().data
        response = self.client.post(f"/api/v1/transactions/{bill['id']}/payments/", {'amount': '0'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_editing_lines_keeps_received_quantity(self):
        bill = self.create_bill().data
        item = bill['items'][0]
        self.client.post(
            f"/api/v1/transactions/{bill['id']}/receive/",
            {'items': [{'id': item['id'], 'quantity_received': '2'}]},
            format='json',
        )
        response = self.client.patch(
            f"/api/v1/transactions/{bill['id']}/",
            {'items': [{'id': item['id'], 'product': self.product.id, 'quantity': '3', 'unit_price': '50.00', 'tax_rate': '10'}]},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(str(response.data['items'][0]['quantity_received'])), Decimal('2'))
        self.assertEqual(Decimal(str(response.data['amount'])), Decimal('165.00'))
        self.assertEqual(response.data['status'], 'partial')

    def test_discount_only_edit_recalculates_totals(self):
        bill = self.create_bill().data
        response = self.client.patch(
            f"/api/v1/transactions/{bill['id']}/",
            {'discount_type': 'percentage', 'discount_value': '50'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(str(response.data['subtotal'])), Decimal('100.00'))
        self.assertEqual(Decimal(str(response.data['discount_amount'])), Decimal('50.00'))
        self.assertEqual(Decimal(str(response.data['tax_amount'])), Decimal('5.00'))
        self.assertEqual(Decimal(str(response.data['amount'])), Decimal('55.00'))

        self.account.refresh_from_db()
        self.assertEqual(self.account.current_balance, Decimal('945.00'))

    def test_tax_type_edit_recalculates_totals(self):
        bill = self.create_bill().data
        response = self.client.patch(f"/api/v1/transactions/{bill['id']}/", {'tax_type': 'none'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(str(response.data['tax_amount'])), Decimal('0.00'))
        self.assertEqual(Decimal(str(response.data['amount'])), Decimal('100.00'))

    def test_amount_of_bill_with_lines_cannot_be_set(self):
        bill = self.create_bill().data
        response = self.client.patch(f"/api/v1/transactions/{bill['id']}/", {'amount': '5.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('amount', response.data)

        txn = Transaction.objects.get(pk=bill['id'])
        self.assertEqual(txn.amount, Decimal('110.00'))
        self.account.refresh_from_db()
        self.assertEqual(self.account.current_balance, Decimal('890.00'))

        # Sending back the computed amount unchanged is accepted
        response = self.client.patch(f"/api/v1/transactions/{bill['id']}/", {'amount': '110.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_discount_below_payments_received_rejected(self):
        bill = self.create_bill().data
        self.client.post(f"/api/v1/transactions/{bill['id']}/payments/", {'amount': '110.00'}, format='json')
        response = self.client.patch(
            f"/api/v1/transactions/{bill['id']}/",
            {'discount_type': 'flat', 'discount_value': '20'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('payment_received', response.data)
        txn = Transaction.objects.get(pk=bill['id'])
        self.assertEqual(txn.amount, Decimal('110.00'))
        self.assertEqual(txn.discount_value, Decimal('0.00'))

    def test_receive_rejected_for_non_bill(self):
        txn = TestDataFactory.create_transaction(self.account, type='expense', amount=Decimal('30.00'))
        response = self.client.post(
            f'/api/v1/transactions/{txn.id}/receive/',
            {'items': [{'id': 1, 'quantity_received': '1'}]},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Only purchase bills have goods to receive')

    def test_duplicate_document_number_rejected(self):
        first = self.create_bill().data
        response = self.create_bill(document_number=first['document_number'])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('document_number', response.data)

        second = self.create_bill().data
        response = self.client.patch(
            f"/api/v1/transactions/{second['id']}/",
            {'document_number': first['document_number']},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_document_number_clash_is_retried(self):
        existing = TestDataFactory.create_bill(self.account)
        next_number = services.generate_document_number(self.business, 'bill')
        txn = Transaction(
            business=self.business, account=self.account, type='expense', document_type='bill',
            amount=Decimal('10.00'), date=timezone.now().date(),
        )
        # Another writer took the number between generating and saving
        with mock.patch.object(services, 'generate_document_number',
                               side_effect=[existing.document_number, next_number]):
            services.save_with_document_number(txn)

        txn.refresh_from_db()
        self.assertEqual(txn.document_number, next_number)
        self.assertNotEqual(txn.document_number, existing.document_number)

    def test_document_numbers_are_unique_per_business_only(self):
        bill = TestDataFactory.create_bill(self.account)
        other_account = TestDataFactory.create_account(TestDataFactory.create_business())
        other_bill = TestDataFactory.create_bill(other_account)
        self.assertEqual(bill.document_number, other_bill.document_number)

    def test_restore_bill_brings_back_lines(self):
        bill = self.create_bill().data
        item = bill['items'][0]
        self.client.post(
            f"/api/v1/transactions/{bill['id']}/receive/",
            {'items': [{'id': item['id'], 'quantity_received': '1'}]},
            format='json',
        )
        response = self.client.patch(
            f"/api/v1/transactions/{bill['id']}/",
            {'items': [{'id': item['id'], 'product': self.product.id, 'quantity': '3', 'unit_price': '50.00', 'tax_rate': '10'}]},
            format='json',
        )
        self.assertEqual(Decimal(str(response.data['amount'])), Decimal('165.00'))
        self.assertEqual(response.data['status'], 'partial')

        first = TransactionVersion.objects.get(transaction_id=bill['id'], version=1)
        response = self.client.post(f"/api/v1/transactions/{bill['id']}/versions/{first.id}/restore/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(str(response.data['amount'])), Decimal('110.00'))
        self.assertEqual(response.data['status'], 'draft')
        self.assertEqual(len(response.data['items']), 1)
        line = response.data['items'][0]
        self.assertEqual(line['product'], self.product.id)
        self.assertEqual(Decimal(str(line['quantity'])), Decimal('2'))
        self.assertEqual(Decimal(str(line['quantity_received'])), Decimal('0'))
        self.assertEqual(Decimal(str(line['amount'])), Decimal('100.00'))

        self.account.refresh_from_db()
        self.assertEqual(self.account.current_balance, Decimal('890.00'))

        # The pre-restore backup still holds the edited lines
        backup = TransactionVersion.objects.get(transaction_id=bill['id'], change_type='pre-restore')
        self.assertEqual(backup.data['amount'], '165.00')
        self.assertEqual(Decimal(backup.data['items'][0]['quantity_received']), Decimal('1'))

    def test_restore_clamps_received_and_drops_foreign_products(self):
        bill = Transaction.objects.get(pk=self.create_bill().data['id'])
        foreign = TestDataFactory.create_product(TestDataFactory.create_business())
        data = services.snapshot_transaction(bill)
        data['items'][0]['quantity_received'] = '9'
        data['items'][0]['product_id'] = foreign.id
        version = services.record_version(bill, self.user, 'update', data=data)

        services.restore_version(bill, version, self.user)
        line = bill.items.get()
        self.assertEqual(line.quantity_received, Decimal('2'))
        self.assertIsNone(line.product)
        self.assertEqual(line.quantity, Decimal('2'))


class TransactionVersionTests(TestCase):
    """Version history and restore"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.business = self.user.business
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.account = TestDataFactory.create_account(self.business)
        response = self.client.post('/api/v1/transactions/', {
            'account_id': self.account.id,
            'type': 'income',
            'category': 'Sales',
            'amount': '100.00',
            'description': 'Original',
            'date': timezone.now().date().isoformat(),
        }, format='json')
        self.txn_id = response.data['id']
        self.client.patch(f'/api/v1/transactions/{self.txn_id}/', {'amount': '150.00', 'description': 'Edited'}, format='json')

    def test_versions_newest_first(self):
        response = self.client.get(f'/api/v1/transactions/{self.txn_id}/versions/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([v['version'] for v in response.data], [2, 1])
        self.assertEqual([v['change_type'] for v in response.data], ['update', 'create'])

    def test_restore_version(self):
        first = TransactionVersion.objects.get(transaction_id=self.txn_id, version=1)
        response = self.client.post(f'/api/v1/transactions/{self.txn_id}/versions/{first.id}/restore/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(str(response.data['amount'])), Decimal('100.00'))
        self.assertEqual(response.data['description'], 'Original')

        versions = list(TransactionVersion.objects.filter(transaction_id=self.txn_id).order_by('version'))
        self.assertEqual([v.change_type for v in versions], ['create', 'update', 'pre-restore', 'restore'])
        self.assertEqual(versions[2].data['amount'], '150.00')
        self.assertTrue(versions[3].important)

        self.account.refresh_from_db()
        self.assertEqual(self.account.current_balance, Decimal('100.00'))
        self.assertTrue(AuditLog.objects.filter(action='restore').exists())

    def test_version_of_other_transaction_not_found(self):
        other = TestDataFactory.create_transaction(self.account)
        version = services.record_version(other, self.user, 'create')
        response = self.client.post(f'/api/v1/transactions/{self.txn_id}/versions/{version.id}/restore/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_mark_important(self):
        version = TransactionVersion.objects.get(transaction_id=self.txn_id, version=2)
        url = f'/api/v1/transactions/{self.txn_id}/versions/{version.id}/important/'
        response = self.client.patch(url, {'important': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['important'])

        response = self.client.patch(url, {'important': 'yes'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class TransferAPITests(TestCase):
    """Transfers create two linked entries"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.business = self.user.business
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.cash = TestDataFactory.create_account(self.business, name='Cash', initial_balance=Decimal('100.00'))
        self.bank = TestDataFactory.create_account(self.business, name='Bank')

    def transfer(self, **overrides):
        data = {'from_account_id': self.cash.id, 'to_account_id': self.bank.id, 'amount': '40.00'}
        data.update(overrides)
        return self.client.post('/api/v1/transfers/', data, format='json')

    def test_transfer_moves_money(self):
        response = self.transfer()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.cash.refresh_from_db()
        self.bank.refresh_from_db()
        self.assertEqual(self.cash.current_balance, Decimal('60.00'))
        self.assertEqual(self.bank.current_balance, Decimal('40.00'))

        transfer = Transfer.objects.get(pk=response.data['id'])
        self.assertEqual(
            sorted(transfer.transactions.values_list('type', flat=True)),
            ['transfer_in', 'transfer_out'],
        )

    def test_same_account_rejected(self):
        response = self.transfer(to_account_id=self.cash.id)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_non_positive_amount_rejected(self):
        response = self.transfer(amount='0')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_transfer_legs_cannot_be_edited(self):
        transfer_id = self.transfer().data['id']
        leg = Transaction.objects.filter(transfer_id=transfer_id).first()
        response = self.client.patch(f'/api/v1/transactions/{leg.id}/', {'amount': '1.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.delete(f'/api/v1/transactions/{leg.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_transfer_restores_balances(self):
        transfer_id = self.transfer().data['id']
        response = self.client.delete(f'/api/v1/transfers/{transfer_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Transaction.objects.filter(transfer_id=transfer_id).exists())
        self.cash.refresh_from_db()
        self.bank.refresh_from_db()
        self.assertEqual(self.cash.current_balance, Decimal('100.00'))
        self.assertEqual(self.bank.current_balance, Decimal('0.00'))

    def test_seeded_categories_are_untouched_by_transfers(self):
        self.transfer()
        self.assertEqual(AccountCategory.objects.filter(business=self.business).count(), 5)
