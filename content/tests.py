# ===== CONTENT APP TEST SUITE =====
"""
Test suite for the content app
File: content/tests.py

Test Coverage:
- Banner listing and admin CRUD
- About section upsert
- Settings map, single lookup, single / bulk upsert
- Contact form submission and admin inbox
"""

from django.test import TestCase

from rest_framework.test import APITestCase, APIClient
from rest_framework import status

from .models import Banner, AboutContent, Setting, ContactMessage


class ContentAPITestCase(APITestCase):
    """Base test case for content API tests"""

    def setUp(self):
        """Set up clients"""
        self.client = APIClient()

    def login_admin(self):
        session = self.client.session
        session['is_admin'] = True
        session.save()


# =============================================================================
# SETTING MANAGER TESTS
# =============================================================================

class SettingManagerTest(TestCase):
    """Test Setting.objects helpers"""

    def test_upsert_keeps_description_when_omitted(self):
        """Test a value-only upsert keeps the existing description"""
        Setting.objects.upsert('companyName', 'Imobiliária A', 'Nome exibido no site')
        setting = Setting.objects.upsert('companyName', 'Imobiliária B')

        self.assertEqual(setting.value, 'Imobiliária B')
        self.assertEqual(setting.description, 'Nome exibido no site')
        self.assertEqual(Setting.objects.count(), 1)

    def test_get_value_default(self):
        """Test defaults for missing keys"""
        self.assertEqual(Setting.objects.get_value('missing', 'fallback'), 'fallback')


# =============================================================================
# PUBLIC ENDPOINT TESTS
# =============================================================================

class PublicContentAPITest(ContentAPITestCase):
    """Test the public content endpoints"""

    def test_banners_hide_inactive(self):
        """Test banner ordering and that inactive banners are hidden"""
        Banner.objects.create(title='Segundo', image_url='/b.jpg', order=2)
        Banner.objects.create(title='Primeiro', image_url='/a.jpg', order=1)
        Banner.objects.create(title='Oculto', image_url='/c.jpg', order=0, is_active=False)

        response = self.client.get('/api/banners/')
        self.assertEqual([b['title'] for b in response.data], ['Primeiro', 'Segundo'])

    def test_settings_map_and_detail(self):
        """Test settings as a flat map and by key"""
        Setting.objects.upsert('phone', '12 3333-4444')

        response = self.client.get('/api/settings/')
        self.assertEqual(response.data, {'phone': '12 3333-4444'})

        response = self.client.get('/api/settings/phone/')
        self.assertEqual(response.data['value'], '12 3333-4444')

        response = self.client.get('/api/settings/unknown/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['message'], 'Setting not found')

    def test_contact_form(self):
        """Test contact submissions are stored unread"""
        response = self.client.post('/api/contact-messages/', {
            'name': 'Lucas',
            'email': 'Lucas@Example.com',
            'phone': '11 91234-5678',
            'message': 'Gostaria de visitar a casa.',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['email'], 'lucas@example.com')
        self.assertFalse(response.data['is_read'])

    def test_contact_form_requires_fields(self):
        """Test missing fields are rejected"""
        response = self.client.post('/api/contact-messages/', {'name': 'Lucas'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('message', response.data)


# =============================================================================
# ADMIN ENDPOINT TESTS
# =============================================================================

class AdminContentAPITest(ContentAPITestCase):
    """Test the admin content endpoints"""

    def test_admin_endpoints_require_session(self):
        """Test anonymous admin requests get 401"""
        response = self.client.post('/api/admin/settings/', {'key': 'a', 'value': 'b'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_about_upsert(self):
        """Test posting an existing section updates it"""
        self.login_admin()
        AboutContent.objects.create(section='historia', title='Antigo', content='Texto antigo')

        response = self.client.post('/api/admin/about/', {
            'section': 'historia', 'title': 'Nossa história', 'content': 'Desde 1990',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(AboutContent.objects.count(), 1)
        self.assertEqual(AboutContent.objects.get().title, 'Nossa história')

    def test_single_and_bulk_settings(self):
        """Test single and bulk settings upserts"""
        self.login_admin()

        response = self.client.post('/api/admin/settings/', {'key': 'email', 'value': 'a@b.com'}, format='json')
        self.assertEqual(response.data['value'], 'a@b.com')

        response = self.client.post('/api/admin/settings/', {'settings': [
            {'key': 'email', 'value': 'c@d.com'},
            {'key': 'whatsapp', 'value': '5512999990000'},
        ]}, format='json')
        self.assertEqual(len(response.data), 2)
        self.assertEqual(Setting.objects.get_value('email'), 'c@d.com')

    def test_setting_requires_value(self):
        """Test the value is required on PUT"""
        self.login_admin()
        response = self.client.put('/api/admin/settings/email/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Value is required')

    def test_contact_inbox(self):
        """Test listing, marking read and deleting messages"""
        self.login_admin()
        contact = ContactMessage.objects.create(name='Ana', email='ana@x.com', phone='1', message='Olá')

        response = self.client.patch(f'/api/admin/contact-messages/{contact.pk}/read/')
        self.assertTrue(response.data['is_read'])

        response = self.client.delete(f'/api/admin/contact-messages/{contact.pk}/')
        self.assertEqual(response.data, {'success': True})
        self.assertFalse(ContactMessage.objects.exists())

    def test_banner_delete_message(self):
        """Test banner delete response"""
        self.login_admin()
        banner = Banner.objects.create(title='Promo', image_url='/p.jpg')
        response = self.client.delete(f'/api/admin/banners/{banner.pk}/')
        self.assertEqual(response.data['message'], 'Banner deleted successfully')
