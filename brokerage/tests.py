# ===== PROJECT-LEVEL TEST SUITE =====
"""
Test suite for project-wide endpoints and plumbing
File: brokerage/tests.py

Test Coverage:
- Admin login / check / logout session flow
- Health check and API info endpoints
- Error envelope produced by the exception handler
- Initial schema migrations for the local apps
"""

from django.db import connection
from django.db.migrations.loader import MigrationLoader
from django.test import TestCase, override_settings

from rest_framework.test import APITestCase, APIClient
from rest_framework import status
from rest_framework.settings import api_settings

from .auth import AdminSessionAuthentication
from .exceptions import first_error_message


# =============================================================================
# AUTHENTICATION TESTS
# =============================================================================

@override_settings(ADMIN_LOGIN='gestor', ADMIN_PASSWORD='segredo')
class AdminAuthTest(APITestCase):
    """Test the session based admin login"""

    def setUp(self):
        """Set up test client"""
        self.client = APIClient()

    def test_login_check_logout(self):
        """Test a full login cycle"""
        response = self.client.get('/api/auth/check/')
        self.assertEqual(response.data, {'isAdmin': False})

        response = self.client.post('/api/auth/login/', {'username': 'gestor', 'password': 'segredo'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'success': True})

        response = self.client.get('/api/auth/check/')
        self.assertEqual(response.data, {'isAdmin': True})

        response = self.client.get('/api/admin/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.client.post('/api/auth/logout/')
        response = self.client.get('/api/auth/check/')
        self.assertEqual(response.data, {'isAdmin': False})

    def test_wrong_password(self):
        """Test invalid credentials are refused"""
        response = self.client.post('/api/auth/login/', {'username': 'gestor', 'password': 'errada'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['message'], 'Invalid credentials')

    @override_settings(ADMIN_LOGIN='', ADMIN_PASSWORD='')
    def test_unconfigured_credentials(self):
        """Test login is impossible without configured credentials"""
        response = self.client.post('/api/auth/login/', {'username': '', 'password': ''}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_session_key_cycled_on_login(self):
        """Test the pre-login session id is not reused"""
        session = self.client.session
        session['visited'] = True
        session.save()
        before = session.session_key

        self.client.post('/api/auth/login/', {'username': 'gestor', 'password': 'segredo'}, format='json')

        self.assertNotEqual(self.client.session.session_key, before)

    def test_auth_backend_resolves_from_settings(self):
        """Test DRF loads the session backend named in settings"""
        self.assertEqual(api_settings.DEFAULT_AUTHENTICATION_CLASSES, [AdminSessionAuthentication])


# =============================================================================
# SYSTEM ENDPOINT TESTS
# =============================================================================

class SystemEndpointTest(APITestCase):
    """Test health and info endpoints"""

    def test_health_check(self):
        """Test database connectivity is reported"""
        response = self.client.get('/api/health/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'healthy')
        self.assertEqual(response.json()['database'], 'connected')

    def test_api_info(self):
        """Test the endpoint directory"""
        response = self.client.get('/api/info/')
        self.assertEqual(response.status_code, 200)
        self.assertIn('authentication', response.json()['endpoints'])


# =============================================================================
# ERROR ENVELOPE TESTS
# =============================================================================

class ErrorMessageTest(TestCase):
    """Test first_error_message flattening"""

    def test_field_errors_are_prefixed(self):
        """Test field names prefix their message"""
        self.assertEqual(first_error_message({'email': ['Enter a valid email address.']}),
                         'email: Enter a valid email address.')

    def test_general_errors_are_not_prefixed(self):
        """Test non-field errors keep their plain message"""
        self.assertEqual(first_error_message({'non_field_errors': ['Oops']}), 'Oops')
        self.assertEqual(first_error_message(['Primeiro', 'Segundo']), 'Primeiro')
        self.assertEqual(first_error_message({}), '')


# =============================================================================
# MIGRATION TESTS
# =============================================================================

class MigrationTest(TestCase):
    """Test every local app ships its schema migrations"""

    def test_initial_migrations_present(self):
        """Test the loader finds an initial migration per app"""
        loader = MigrationLoader(connection)
        for app_label in ('properties', 'content', 'crm', 'intelligence'):
            self.assertIn((app_label, '0001_initial'), loader.disk_migrations)

    def test_crm_depends_on_properties(self):
        """Test CRM tables are created after the property table"""
        loader = MigrationLoader(connection)
        migration = loader.disk_migrations[('crm', '0001_initial')]
        self.assertIn(('properties', '0001_initial'), migration.dependencies)
