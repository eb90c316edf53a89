# ===== SERVICES LAYER TEST SUITE =====
"""
Test suite for the services layer
File: services/tests.py

Test Coverage:
- Slug generation and listing data fixes
- Property type inference
- Dashboard stats and analytics aggregation
- Base64 image storage
- Document upload validation and endpoint
- Admin-only document download
"""

import base64
import shutil
import tempfile
import uuid
from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import patch

from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from django.utils import timezone

from rest_framework.test import APITestCase, APIClient
from rest_framework import status

from content.models import Banner
from crm.models import Client, Owner, OwnerProperty, FinancialTransaction
from properties.models import Property, Neighborhood
from services import DocumentUploadError

from .analytics import (
    admin_analytics,
    admin_stats,
    client_stats,
    financial_stats,
    month_label,
    owner_stats,
    property_stats,
    status_label,
    type_label,
)
from .business_logic import (
    fix_condominium_types,
    fix_neighborhood_names,
    generate_unique_property_slug,
    infer_property_type,
    slugify,
)
from .documents import MAX_DOCUMENT_SIZE, storage_name_for, stored_document_name, validate_documents
from .media import MediaStorageError, folder_name_for, store_base64_image


def make_property(**overrides):
    data = {
        'title': 'Casa',
        'slug': f"casa-{uuid.uuid4().hex[:8]}",
        'description': 'Descrição',
        'property_type': 'casa',
        'status': 'venda',
        'price': Decimal('100000.00'),
    }
    data.update(overrides)
    return Property.objects.create(**data)


# =============================================================================
# BUSINESS LOGIC TESTS
# =============================================================================

class BusinessLogicTest(TestCase):
    """Test slugs, type inference and data fixes"""

    def test_slugify(self):
        """Test accents, punctuation and whitespace handling"""
        self.assertEqual(slugify('Casa em Boiçucanga!'), 'casa-em-boicucanga')
        self.assertEqual(slugify('  Apto   #12 - Vista Mar '), 'apto-12-vista-mar')
        self.assertEqual(slugify(''), '')

    def test_unique_slug_excludes_self(self):
        """Test a property keeps its own slug on regeneration"""
        prop = make_property(title='Casa Verde', slug='casa-verde')
        self.assertEqual(generate_unique_property_slug('Casa Verde', exclude_id=prop.pk), 'casa-verde')
        self.assertEqual(generate_unique_property_slug('Casa Verde'), 'casa-verde-2')

    def test_infer_property_type(self):
        """Test keyword based type inference"""
        self.assertEqual(infer_property_type('Apto com vista'), 'apartamento')
        self.assertEqual(infer_property_type('Terreno plano'), 'terreno')
        self.assertEqual(infer_property_type('Sala comercial no centro'), 'comercial')
        self.assertEqual(infer_property_type('Sobrado'), 'casa')

    def test_fix_condominium_types(self):
        """Test condominium houses are retyped once"""
        prop = make_property(title='Casa no Condomínio Costa Verde')
        make_property(title='Casa de praia')

        result = fix_condominium_types()

        self.assertEqual(result['updated_count'], 1)
        self.assertEqual(result['updates'][0]['id'], str(prop.pk))
        self.assertEqual(fix_condominium_types()['updated_count'], 0)

    def test_fix_neighborhood_names(self):
        """Test misspellings are fixed and the neighborhood assigned"""
        camburi = Neighborhood.objects.create(name='Camburi', slug='camburi')
        prop = make_property(title='Casa em Cambury', description='Perto da praia de Cambury')

        result = fix_neighborhood_names()

        prop.refresh_from_db()
        self.assertEqual(result['updated_count'], 1)
        self.assertEqual(prop.title, 'Casa em Camburi')
        self.assertEqual(prop.description, 'Perto da praia de Camburi')
        self.assertEqual(prop.neighborhood_id, camburi.pk)


# =============================================================================
# ANALYTICS TESTS
# =============================================================================

class AnalyticsTest(TestCase):
    """Test dashboard aggregation"""

    def setUp(self):
        """Set up catalogue, CRM and financial data"""
        self.neighborhood = Neighborhood.objects.create(name='Juquehy', slug='juquehy')
        make_property(status='venda', property_type='casa', price=Decimal('100.00'), neighborhood=self.neighborhood)
        make_property(status='aluguel', property_type='apartamento', price=Decimal('300.00'))
        make_property(status='vendido', property_type='apto', price=Decimal('9999.00'))
        Banner.objects.create(title='B', image_url='/b.jpg')

    def test_labels(self):
        """Test status, type and month labels"""
        self.assertEqual(status_label('ambos'), 'Venda/Aluguel')
        self.assertEqual(status_label('arquivado'), 'Inativo')
        self.assertEqual(type_label('APTO'), 'Apartamento')
        self.assertEqual(type_label(None), 'Outro')
        self.assertEqual(month_label('2025-03'), 'mar 2025')

    def test_admin_stats(self):
        """Test entity counts"""
        Client.objects.create(name='Ana')
        self.assertEqual(admin_stats(), {'properties': 3, 'neighborhoods': 1, 'clients': 1, 'banners': 1})

    def test_property_stats(self):
        """Test breakdowns and price range"""
        stats = property_stats()

        self.assertIn({'type': 'Apartamento', 'count': 2}, stats['by_type'])
        self.assertIn({'status': 'Vendido', 'count': 1}, stats['by_status'])
        self.assertIn({'neighborhood': 'Sem bairro', 'count': 2}, stats['by_neighborhood'])
        # Sold listings are left out of the price range
        self.assertEqual(stats['price_range'], {'min': 100.0, 'max': 300.0, 'avg': 200.0})
        self.assertEqual(sum(row['count'] for row in stats['recent']), 3)

    def test_financial_stats(self):
        """Test monthly series, totals and categories"""
        FinancialTransaction.objects.create(
            description='Comissão', amount=Decimal('1000'), type='receita', category='Vendas', date=date(2025, 1, 5)
        )
        FinancialTransaction.objects.create(
            description='Anúncio', amount=Decimal('200'), type='despesa', date=date(2025, 1, 20)
        )
        FinancialTransaction.objects.create(
            description='Taxa', amount=Decimal('50'), type='receita', date=date(2025, 2, 1)
        )

        stats = financial_stats()

        self.assertEqual(stats['by_month'][0], {'month': '2025-01', 'label': 'jan 2025', 'revenue': 1000.0, 'expense': 200.0})
        self.assertEqual(stats['totals'], {'revenue': 1050.0, 'expense': 200.0, 'balance': 850.0})
        self.assertEqual(stats['by_category'][0], {'category': 'Vendas', 'amount': 1000.0})
        self.assertEqual(stats['by_category'][1], {'category': 'Sem categoria', 'amount': 50.0})

    def test_client_and_owner_stats(self):
        """Test client growth and owner coverage"""
        old = Client.objects.create(name='Antigo')
        Client.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(days=60))
        Client.objects.create(name='Novo')

        self.assertEqual(client_stats(), {'total': 2, 'recent': 1, 'growth': 50.0})

        owner = Owner.objects.create(name='Dono')
        Owner.objects.create(name='Sem imóvel')
        OwnerProperty.objects.create(owner=owner, property=Property.objects.first())
        self.assertEqual(owner_stats(), {'total': 2, 'with_properties': 1})

    def test_admin_analytics_blocks(self):
        """Test the analytics payload keys"""
        self.assertEqual(set(admin_analytics()), {'property_stats', 'financial_stats', 'client_stats', 'owner_stats'})


# =============================================================================
# MEDIA & DOCUMENT TESTS
# =============================================================================

class MediaStorageTest(TestCase):
    """Test base64 image storage"""

    @patch('services.media.default_storage')
    def test_store_data_url(self, mock_storage):
        """Test data URLs are decoded and named from the MIME type"""
        mock_storage.save.side_effect = lambda name, content: name
        mock_storage.url.side_effect = lambda name: f"/media/{name}"
        payload = 'data:image/png;base64,' + base64.b64encode(b'fake-png').decode()

        url = store_base64_image(payload, 'foto frente.jpeg', 'casa-azul')

        saved_name, content = mock_storage.save.call_args[0]
        self.assertTrue(saved_name.startswith('properties/casa-azul/foto_frente-'))
        self.assertTrue(saved_name.endswith('.png'))
        self.assertEqual(content.read(), b'fake-png')
        self.assertEqual(url, f"/media/{saved_name}")

    def test_invalid_base64(self):
        """Test invalid payloads raise MediaStorageError"""
        with self.assertRaises(MediaStorageError):
            store_base64_image('not base64 at all!', 'a.jpg', 'x')

    def test_folder_name(self):
        """Test storage folders derived from titles"""
        self.assertEqual(folder_name_for('Casa Azul #3'), 'casa-azul-3')
        self.assertTrue(folder_name_for('').startswith('property-'))


class DocumentValidationTest(TestCase):
    """Test document upload validation"""

    def test_rejects_empty_batch(self):
        """Test an empty upload"""
        with self.assertRaisesMessage(DocumentUploadError, 'Nenhum arquivo enviado'):
            validate_documents([])

    def test_rejects_type_and_size(self):
        """Test MIME type and size limits"""
        script = SimpleUploadedFile('run.sh', b'echo', content_type='text/x-sh')
        with self.assertRaises(DocumentUploadError):
            validate_documents([script])

        big = SimpleUploadedFile('big.pdf', b'0' * (MAX_DOCUMENT_SIZE + 1), content_type='application/pdf')
        with self.assertRaisesMessage(DocumentUploadError, 'Arquivo muito grande'):
            validate_documents([big])

    def test_storage_name(self):
        """Test stored names are sanitized and unique"""
        name = storage_name_for('Contrato de Venda.PDF')
        self.assertTrue(name.startswith('documents/Contrato_de_Venda-'))
        self.assertTrue(name.endswith('.pdf'))
        self.assertNotEqual(name, storage_name_for('Contrato de Venda.PDF'))


# =============================================================================
# SERVICE ENDPOINT TESTS
# =============================================================================

class ServicesAPITest(APITestCase):
    """Test the admin service endpoints"""

    def setUp(self):
        """Set up an admin session"""
        self.client = APIClient()
        session = self.client.session
        session['is_admin'] = True
        session.save()

    def test_stats_requires_admin(self):
        """Test anonymous access is refused"""
        response = APIClient().get('/api/admin/stats/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_analytics_is_not_cached(self):
        """Test analytics carries no-cache headers"""
        response = self.client.get('/api/admin/analytics/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Cache-Control'], 'no-cache, no-store, must-revalidate')
        self.assertEqual(response['Expires'], '0')

    def test_fix_condominium_endpoint(self):
        """Test the condominium fix endpoint"""
        make_property(title='Casa em condomínio')
        response = self.client.post('/api/admin/fix-condominium-types/')
        self.assertEqual(response.data['updated_count'], 1)

    @patch('services.documents.default_storage')
    def test_upload_documents(self, mock_storage):
        """Test a valid document upload"""
        mock_storage.save.side_effect = lambda name, content: name
        mock_storage.url.side_effect = lambda name: f"/media/{name}"
        upload = SimpleUploadedFile('contrato.pdf', b'%PDF-1.4', content_type='application/pdf')

        response = self.client.post('/api/uploads/documents/', {'documents': [upload]}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['filename'], 'contrato.pdf')
        self.assertEqual(response.data[0]['mimetype'], 'application/pdf')
        self.assertTrue(response.data[0]['url'].startswith('/media/documents/contrato-'))

    def test_upload_without_files(self):
        """Test the empty upload message"""
        response = self.client.post('/api/uploads/documents/', {}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Nenhum arquivo enviado')


class DocumentDownloadTest(APITestCase):
    """Test stored documents are only served to the admin"""

    def setUp(self):
        """Set up a stored document in a temporary media root"""
        media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, media_root, ignore_errors=True)
        media_settings = self.settings(MEDIA_ROOT=media_root)
        media_settings.enable()
        self.addCleanup(media_settings.disable)

        saved = default_storage.save('documents/contrato-1700000000000-42.pdf', ContentFile(b'%PDF-1.4'))
        self.name = saved.split('/', 1)[1]

        self.admin = APIClient()
        session = self.admin.session
        session['is_admin'] = True
        session.save()

    def test_admin_downloads_document(self):
        """Test the admin receives the stored bytes"""
        response = self.admin.get(f'/uploads/documents/{self.name}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(b''.join(response.streaming_content), b'%PDF-1.4')

    def test_anonymous_download_refused(self):
        """Test documents are private"""
        response = APIClient().get(f'/uploads/documents/{self.name}')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_unknown_document(self):
        """Test missing and malformed names give 404"""
        self.assertEqual(self.admin.get('/uploads/documents/nada.pdf').status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(self.admin.get('/uploads/documents/..').status_code, status.HTTP_404_NOT_FOUND)
        self.assertIsNone(stored_document_name('.env'))
