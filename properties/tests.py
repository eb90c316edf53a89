# ===== PROPERTIES APP TEST SUITE =====
"""
Test suite for the properties app
File: properties/tests.py

Test Coverage:
- Property and Neighborhood models
- Slug generation on create / rename
- Public listing, pagination, filters, detail by id or slug, similar listings
- Admin CRUD, visibility toggle, display ordering and slug regeneration
- Management commands
"""

import uuid
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase

from rest_framework.test import APITestCase, APIClient
from rest_framework import status

from .models import Property, Neighborhood
from .serializers import PropertySerializer, NeighborhoodSerializer


def make_property(**overrides):
    """Create a property with sensible defaults."""
    data = {
        'title': 'Casa na praia',
        'slug': f"casa-{uuid.uuid4().hex[:8]}",
        'description': 'Casa a 50 metros do mar',
        'property_type': 'casa',
        'status': 'venda',
        'price': Decimal('1000000.00'),
        'bedrooms': 3,
        'bathrooms': 2,
    }
    data.update(overrides)
    return Property.objects.create(**data)


# =============================================================================
# MODEL TESTS
# =============================================================================

class PropertyModelTest(TestCase):
    """Test Property and Neighborhood model basics"""

    def setUp(self):
        """Set up test data"""
        self.neighborhood = Neighborhood.objects.create(name='Camburi', slug='camburi')
        self.prop = make_property(title='Casa em Camburi', neighborhood=self.neighborhood)

    def test_defaults(self):
        """Test default values of a new property"""
        self.assertTrue(self.prop.is_active)
        self.assertFalse(self.prop.is_featured)
        self.assertEqual(self.prop.images, [])
        self.assertEqual(self.prop.amenities, [])
        self.assertIsNotNone(self.prop.created_at)

    def test_string_representation(self):
        """Test __str__ of both models"""
        self.assertEqual(str(self.prop), 'Casa em Camburi')
        self.assertEqual(str(self.neighborhood), 'Camburi')

    def test_deleting_neighborhood_keeps_properties(self):
        """Test properties survive their neighborhood being deleted"""
        self.neighborhood.delete()
        self.prop.refresh_from_db()
        self.assertIsNone(self.prop.neighborhood_id)


# =============================================================================
# SERIALIZER TESTS
# =============================================================================

class PropertySerializerTest(TestCase):
    """Test slug and display order handling in the write serializers"""

    def test_create_generates_slug_and_display_order(self):
        """Test a new property gets a slug and goes to the top of the list"""
        make_property(display_order=7)
        serializer = PropertySerializer(data={
            'title': 'Apartamento Frente ao Mar',
            'description': 'Vista para o mar',
            'property_type': 'apartamento',
            'status': 'venda',
            'price': '850000.00',
        })
        self.assertTrue(serializer.is_valid(), serializer.errors)
        prop = serializer.save()

        self.assertEqual(prop.slug, 'apartamento-frente-ao-mar')
        self.assertEqual(prop.display_order, 8)

    def test_duplicate_titles_get_numbered_slugs(self):
        """Test slug collisions are resolved with a numeric suffix"""
        make_property(title='Casa Duplicada', slug='casa-duplicada')
        serializer = PropertySerializer(data={
            'title': 'Casa Duplicada',
            'description': 'Outra',
            'property_type': 'casa',
            'status': 'venda',
            'price': '100.00',
        })
        self.assertTrue(serializer.is_valid(), serializer.errors)
        self.assertEqual(serializer.save().slug, 'casa-duplicada-2')

    def test_rename_regenerates_slug(self):
        """Test renaming a property changes its slug"""
        prop = make_property(title='Antigo', slug='antigo')
        serializer = PropertySerializer(prop, data={'title': 'Novo Título'}, partial=True)
        self.assertTrue(serializer.is_valid(), serializer.errors)
        self.assertEqual(serializer.save().slug, 'novo-titulo')

    def test_negative_area_rejected(self):
        """Test cross-field validation of areas"""
        serializer = PropertySerializer(data={
            'title': 'Terreno',
            'description': 'Terreno plano',
            'property_type': 'terreno',
            'status': 'venda',
            'price': '100.00',
            'area': '-10',
        })
        self.assertFalse(serializer.is_valid())
        self.assertIn('area', serializer.errors)

    def test_neighborhood_slug_follows_name(self):
        """Test neighborhood slugs drop accents"""
        serializer = NeighborhoodSerializer(data={'name': 'Boiçucanga'})
        self.assertTrue(serializer.is_valid(), serializer.errors)
        self.assertEqual(serializer.save().slug, 'boicucanga')


# =============================================================================
# API TESTS
# =============================================================================

class PropertiesAPITestCase(APITestCase):
    """Base test case for properties API tests"""

    def setUp(self):
        """Set up API test data"""
        self.client = APIClient()
        self.neighborhood = Neighborhood.objects.create(name='Maresias', slug='maresias')
        self.featured = make_property(
            title='Casa Destaque', slug='casa-destaque', is_featured=True,
            neighborhood=self.neighborhood, display_order=10,
        )
        self.apartment = make_property(
            title='Apartamento Centro', slug='apartamento-centro', property_type='apartamento',
            price=Decimal('500000.00'), bedrooms=1, display_order=5,
        )

    def login_admin(self):
        session = self.client.session
        session['is_admin'] = True
        session.save()


class PublicPropertyAPITest(PropertiesAPITestCase):
    """Test the public property endpoints"""

    def test_list_is_paginated(self):
        """Test the listing envelope"""
        response = self.client.get('/api/properties/', {'limit': 1})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 2)
        self.assertEqual(response.data['page'], 1)
        self.assertEqual(response.data['total_pages'], 2)
        self.assertEqual(len(response.data['properties']), 1)
        self.assertEqual(response.data['properties'][0]['title'], 'Casa Destaque')

    def test_page_past_the_end_is_empty(self):
        """Test out of range pages return an empty list"""
        response = self.client.get('/api/properties/', {'page': 9})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['properties'], [])

    def test_unpaginated_listing(self):
        """Test ?paginated=false returns a plain array"""
        response = self.client.get('/api/properties/', {'paginated': 'false'})
        self.assertIsInstance(response.data, list)
        self.assertEqual(len(response.data), 2)

    def test_filters(self):
        """Test type, price, bedroom and featured filters"""
        response = self.client.get('/api/properties/', {'property_type': 'apartamento'})
        self.assertEqual([p['title'] for p in response.data['properties']], ['Apartamento Centro'])

        response = self.client.get('/api/properties/', {'min_price': 600000})
        self.assertEqual(response.data['total'], 1)

        response = self.client.get('/api/properties/', {'bedrooms': 2})
        self.assertEqual([p['title'] for p in response.data['properties']], ['Casa Destaque'])

        response = self.client.get('/api/properties/', {'is_featured': 'true'})
        self.assertEqual(response.data['total'], 1)

    def test_detail_by_id_and_slug(self):
        """Test detail lookup by uuid and by slug"""
        by_id = self.client.get(f'/api/properties/{self.featured.pk}/')
        by_slug = self.client.get('/api/properties/casa-destaque/')

        self.assertEqual(by_id.status_code, status.HTTP_200_OK)
        self.assertEqual(by_slug.data['id'], str(self.featured.pk))
        self.assertEqual(by_slug.data['neighborhood']['name'], 'Maresias')

    def test_detail_not_found(self):
        """Test unknown slugs give 404 with a message"""
        response = self.client.get('/api/properties/nao-existe/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['message'], 'Property not found')

    def test_similar_properties(self):
        """Test similar listings share type and neighborhood and are priced within 30%"""
        close = make_property(title='Casa Parecida', neighborhood=self.neighborhood, price=Decimal('1200000.00'))
        make_property(title='Casa Cara', neighborhood=self.neighborhood, price=Decimal('5000000.00'))

        response = self.client.get(f'/api/properties/{self.featured.slug}/similar/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['id'] for p in response.data], [str(close.pk)])

    def test_neighborhood_endpoints(self):
        """Test neighborhood list, slug and id lookups"""
        response = self.client.get('/api/neighborhoods/')
        self.assertEqual(response.data[0]['property_count'], 1)

        response = self.client.get('/api/neighborhoods/maresias/properties/')
        self.assertEqual([p['title'] for p in response.data], ['Casa Destaque'])

        response = self.client.get(f'/api/neighborhoods/id/{self.neighborhood.pk}/')
        self.assertEqual(response.data['slug'], 'maresias')


class AdminPropertyAPITest(PropertiesAPITestCase):
    """Test the admin property endpoints"""

    def test_requires_admin_session(self):
        """Test anonymous requests are rejected"""
        response = self.client.get('/api/admin/properties/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['message'], 'Unauthorized')

    def test_create_and_delete(self):
        """Test admin create and delete"""
        self.login_admin()
        response = self.client.post('/api/admin/properties/', {
            'title': 'Terreno Novo',
            'description': 'Terreno amplo',
            'property_type': 'terreno',
            'status': 'venda',
            'price': '300000.00',
            'neighborhood_id': str(self.neighborhood.pk),
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['slug'], 'terreno-novo')
        self.assertEqual(response.data['neighborhood_name'], 'Maresias')

        response = self.client.delete(f"/api/admin/properties/{response.data['id']}/")
        self.assertEqual(response.data['message'], 'Property deleted successfully')
        self.assertFalse(Property.objects.filter(slug='terreno-novo').exists())

    def test_toggle_active(self):
        """Test the visibility toggle"""
        self.login_admin()
        response = self.client.patch(f'/api/admin/properties/{self.apartment.pk}/toggle-active/')
        self.assertFalse(response.data['is_active'])

    def test_order_rejects_negative_values(self):
        """Test single display order validation"""
        self.login_admin()
        response = self.client.patch(
            f'/api/admin/properties/{self.apartment.pk}/order/', {'display_order': -1}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Invalid displayOrder value')

    def test_bulk_order(self):
        """Test bulk display order updates"""
        self.login_admin()
        response = self.client.post('/api/admin/properties/bulk-order/', {
            'updates': [
                {'id': str(self.apartment.pk), 'display_order': 20},
                {'id': str(self.featured.pk), 'display_order': 1},
            ]
        }, format='json')

        self.assertEqual(response.data['updated_count'], 2)
        self.apartment.refresh_from_db()
        self.assertEqual(self.apartment.display_order, 20)

    def test_bulk_order_unknown_property(self):
        """Test bulk order fails as a whole when a property is missing"""
        self.login_admin()
        response = self.client.post('/api/admin/properties/bulk-order/', {
            'updates': [
                {'id': str(self.apartment.pk), 'display_order': 20},
                {'id': str(uuid.uuid4()), 'display_order': 1},
            ]
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.apartment.refresh_from_db()
        self.assertEqual(self.apartment.display_order, 5)

    def test_regenerate_slugs(self):
        """Test slug regeneration endpoint"""
        Property.objects.filter(pk=self.apartment.pk).update(slug='slug-velho')
        self.login_admin()

        response = self.client.post('/api/admin/properties/regenerate-slugs/')

        self.assertEqual(response.data['updated'], 1)
        self.apartment.refresh_from_db()
        self.assertEqual(self.apartment.slug, 'apartamento-centro')

    def test_unknown_admin_property(self):
        """Test admin lookups of unknown ids"""
        self.login_admin()
        response = self.client.get(f'/api/admin/properties/{uuid.uuid4()}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['message'], 'Property not found')


# =============================================================================
# MANAGEMENT COMMAND TESTS
# =============================================================================

class ManagementCommandTest(TestCase):
    """Test the maintenance management commands"""

    def test_regenerate_slugs_command(self):
        """Test regenerate_slugs output and effect"""
        prop = make_property(title='Casa Azul', slug='errado')
        out = StringIO()

        call_command('regenerate_slugs', stdout=out)

        prop.refresh_from_db()
        self.assertEqual(prop.slug, 'casa-azul')
        self.assertIn('1 slugs updated', out.getvalue())

    def test_fix_property_data_command(self):
        """Test fix_property_data retypes condominium houses"""
        prop = make_property(title='Casa em condomínio fechado')
        out = StringIO()

        call_command('fix_property_data', '--only', 'condominiums', stdout=out)

        prop.refresh_from_db()
        self.assertEqual(prop.property_type, 'condominio')
        self.assertIn('Condominium types: 1 updated', out.getvalue())
