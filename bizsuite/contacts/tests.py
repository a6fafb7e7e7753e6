"""
Test suite for the contacts module
Tests: contact CRUD, filtering, tenant scoping, deactivate-instead-of-delete
"""
from django.test import TestCase
from rest_framework import status

from bizsuite.contacts.models import Contact
from bizsuite.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class ContactAPITests(TestCase):
    """Test Contact API endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.business = self.user.business
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_contact(self):
        data = {'name': 'Acme Supplies', 'contact_type': 'vendor', 'email': 'sales@acme.com', 'phone': '+1 (555) 010-2030'}
        response = self.client.post('/api/v1/contacts/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Contact.objects.get(pk=response.data['id']).business, self.business)

    def test_invalid_phone_rejected(self):
        response = self.client.post('/api/v1/contacts/', {'name': 'Bob', 'phone': 'call me'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('phone', response.data)

    def test_short_name_rejected(self):
        response = self.client.post('/api/v1/contacts/', {'name': 'B'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_filters_by_type_and_search(self):
        TestDataFactory.create_contact(self.business, name='Acme Supplies', contact_type='vendor')
        TestDataFactory.create_contact(self.business, name='Jane Buyer', contact_type='customer')
        TestDataFactory.create_contact(TestDataFactory.create_business(), name='Acme Elsewhere')

        response = self.client.get('/api/v1/contacts/')
        self.assertEqual(len(response.data), 2)

        response = self.client.get('/api/v1/contacts/?type=vendor')
        self.assertEqual([c['name'] for c in response.data], ['Acme Supplies'])

        response = self.client.get('/api/v1/contacts/?search=jane')
        self.assertEqual([c['name'] for c in response.data], ['Jane Buyer'])

    def test_list_reports_transaction_count(self):
        contact = TestDataFactory.create_contact(self.business)
        account = TestDataFactory.create_account(self.business)
        TestDataFactory.create_transaction(account, contact=contact)
        response = self.client.get('/api/v1/contacts/')
        self.assertEqual(response.data[0]['transaction_count'], 1)

    def test_update_contact(self):
        contact = TestDataFactory.create_contact(self.business)
        response = self.client.patch(f'/api/v1/contacts/{contact.id}/', {'notes': 'Pays on time'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        contact.refresh_from_db()
        self.assertEqual(contact.notes, 'Pays on time')

    def test_delete_contact_without_transactions(self):
        contact = TestDataFactory.create_contact(self.business)
        response = self.client.delete(f'/api/v1/contacts/{contact.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Contact.objects.filter(pk=contact.pk).exists())

    def test_delete_contact_with_transactions_deactivates(self):
        contact = TestDataFactory.create_contact(self.business)
        account = TestDataFactory.create_account(self.business)
        TestDataFactory.create_transaction(account, contact=contact)

        response = self.client.delete(f'/api/v1/contacts/{contact.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        contact.refresh_from_db()
        self.assertFalse(contact.is_active)

    def test_other_business_contact_is_forbidden(self):
        contact = TestDataFactory.create_contact(TestDataFactory.create_business())
        response = self.client.patch(f'/api/v1/contacts/{contact.id}/', {'name': 'Hijacked'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
