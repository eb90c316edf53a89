# ===== CRM APP TEST SUITE =====
"""
Test suite for the CRM app
File: crm/tests.py

Test Coverage:
- Client / owner CRUD and email validation
- Property link replacement for clients and owners
- Client contact history
- Financial transaction CRUD, filters and summary
"""

import uuid
from datetime import date
from decimal import Decimal

from django.test import TestCase

from rest_framework.test import APITestCase, APIClient
from rest_framework import status

from properties.models import Property
from .models import Client, Owner, ClientProperty, FinancialTransaction


def make_property(title='Casa', slug=None):
    return Property.objects.create(
        title=title,
        slug=slug or f"casa-{uuid.uuid4().hex[:8]}",
        description='Descrição',
        property_type='casa',
        status='venda',
        price=Decimal('100000.00'),
    )


class CRMAPITestCase(APITestCase):
    """Base test case for CRM API tests (admin session)"""

    def setUp(self):
        """Set up an admin session"""
        self.client = APIClient()
        session = self.client.session
        session['is_admin'] = True
        session.save()


# =============================================================================
# MODEL TESTS
# =============================================================================

class PartyModelTest(TestCase):
    """Test client and owner link behaviour"""

    def test_links_disappear_with_property(self):
        """Test deleting a property removes its client links"""
        client = Client.objects.create(name='Ana')
        prop = make_property()
        ClientProperty.objects.create(client=client, property=prop)

        prop.delete()

        self.assertEqual(ClientProperty.objects.count(), 0)
        self.assertTrue(Client.objects.filter(pk=client.pk).exists())


# =============================================================================
# CLIENT & OWNER API TESTS
# =============================================================================

class ClientAPITest(CRMAPITestCase):
    """Test client endpoints"""

    def test_requires_admin_session(self):
        """Test anonymous access is refused"""
        response = APIClient().get('/api/admin/clients/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_create_normalizes_email(self):
        """Test emails are lower-cased on create"""
        response = self.client.post('/api/admin/clients/', {
            'name': 'Maria Silva',
            'email': ' Maria@Example.COM ',
            'phone': '12 99999-0000',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['email'], 'maria@example.com')

    def test_invalid_email_rejected(self):
        """Test invalid emails give 400 with a message"""
        response = self.client.post('/api/admin/clients/', {'name': 'João', 'email': 'nao-e-email'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('email', response.data['message'])

    def test_blank_name_rejected(self):
        """Test the name is required"""
        response = self.client.post('/api/admin/clients/', {'name': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_property_links_are_replaced(self):
        """Test POST properties/ replaces the whole link set"""
        client = Client.objects.create(name='Carlos')
        first, second = make_property('Casa 1'), make_property('Casa 2')
        url = f'/api/admin/clients/{client.pk}/properties/'

        self.client.post(url, {'property_ids': [str(first.pk)]}, format='json')
        response = self.client.post(url, {'property_ids': [str(second.pk)]}, format='json')
        self.assertEqual(response.data['message'], 'Properties updated successfully')

        response = self.client.get(url)
        self.assertEqual(response.data, [str(second.pk)])

    def test_property_links_reject_unknown_ids(self):
        """Test unknown property ids are refused"""
        client = Client.objects.create(name='Carlos')
        response = self.client.post(
            f'/api/admin/clients/{client.pk}/properties/', {'property_ids': [str(uuid.uuid4())]}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_contact_history(self):
        """Test recording and listing contact history"""
        client = Client.objects.create(name='Beatriz')
        url = f'/api/admin/clients/{client.pk}/history/'

        response = self.client.post(url, {'contact_type': 'whatsapp', 'notes': 'Pediu fotos'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.get(url)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['contact_type'], 'whatsapp')

    def test_delete_client(self):
        """Test delete message and 404 afterwards"""
        client = Client.objects.create(name='Temporário')
        response = self.client.delete(f'/api/admin/clients/{client.pk}/')
        self.assertEqual(response.data['message'], 'Client deleted successfully')

        response = self.client.get(f'/api/admin/clients/{client.pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['message'], 'Client not found')


class OwnerAPITest(CRMAPITestCase):
    """Test owner endpoints"""

    def test_owner_crud(self):
        """Test owner create, update and property links"""
        response = self.client.post('/api/admin/owners/', {'name': 'Pedro'}, format='json')
        owner_id = response.data['id']

        response = self.client.patch(f'/api/admin/owners/{owner_id}/', {'phone': '11 98888-7777'}, format='json')
        self.assertEqual(response.data['phone'], '11 98888-7777')

        prop = make_property()
        self.client.post(f'/api/admin/owners/{owner_id}/properties/', {'property_ids': [str(prop.pk)]}, format='json')
        self.assertEqual(list(Owner.objects.get(pk=owner_id).properties.all()), [prop])


# =============================================================================
# FINANCIAL API TESTS
# =============================================================================

class FinancialTransactionAPITest(CRMAPITestCase):
    """Test financial transaction endpoints"""

    def setUp(self):
        """Set up transactions"""
        super().setUp()
        FinancialTransaction.objects.create(
            description='Comissão venda', amount=Decimal('50000.00'), type='receita', date=date(2025, 3, 10)
        )
        FinancialTransaction.objects.create(
            description='Aluguel escritório', amount=Decimal('3000.00'), type='despesa', date=date(2025, 4, 1),
            frequency_type='mensal', day_of_month=1,
        )

    def test_list_newest_first(self):
        """Test ordering by date descending"""
        response = self.client.get('/api/admin/financials/')
        self.assertEqual([t['description'] for t in response.data], ['Aluguel escritório', 'Comissão venda'])

    def test_filters(self):
        """Test type and date window filters"""
        response = self.client.get('/api/admin/financials/', {'type': 'receita'})
        self.assertEqual(len(response.data), 1)

        response = self.client.get('/api/admin/financials/', {'start_date': '2025-03-15', 'end_date': '2025-04-30'})
        self.assertEqual([t['description'] for t in response.data], ['Aluguel escritório'])

    def test_summary(self):
        """Test revenue, expense and balance totals"""
        response = self.client.get('/api/admin/financials/summary/')
        self.assertEqual(response.data, {'total_revenue': 50000.0, 'total_expenses': 3000.0, 'balance': 47000.0})

    def test_day_of_month_range(self):
        """Test recurrence day validation"""
        response = self.client.post('/api/admin/financials/', {
            'description': 'Condomínio',
            'amount': '800.00',
            'type': 'despesa',
            'date': '2025-05-05',
            'frequency_type': 'mensal',
            'day_of_month': 32,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
