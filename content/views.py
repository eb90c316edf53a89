"""
Views for the content app.

Public endpoints serve the marketing site's banners, about sections and
settings, and accept contact form submissions. Admin endpoints manage all
of them.
"""

import logging

from django.db import transaction
from rest_framework import mixins, viewsets, status
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.response import Response

from brokerage.auth import IsAdminSession
from brokerage.mixins import AdminViewSetMixin
from .models import Banner, AboutContent, Setting, ContactMessage
from .serializers import (
    AboutContentSerializer,
    BannerSerializer,
    ContactMessageSerializer,
    SettingInputSerializer,
    SettingSerializer,
    SettingValueSerializer,
)

logger = logging.getLogger(__name__)


# =============================================================================
# BANNERS
# =============================================================================

@api_view(['GET'])
def banner_list(request):
    """Active carousel banners ordered by ``order``."""
    queryset = Banner.objects.filter(is_active=True)
    return Response(BannerSerializer(queryset, many=True).data)


class AdminBannerViewSet(AdminViewSetMixin, viewsets.ModelViewSet):
    """Back-office CRUD for banners."""
    queryset = Banner.objects.all()
    serializer_class = BannerSerializer
    entity_label = 'Banner'


# =============================================================================
# ABOUT CONTENT
# =============================================================================

@api_view(['GET'])
def about_list(request):
    """All about-page sections."""
    return Response(AboutContentSerializer(AboutContent.objects.all(), many=True).data)


class AdminAboutViewSet(AdminViewSetMixin,
                        mixins.ListModelMixin,
                        mixins.CreateModelMixin,
                        viewsets.GenericViewSet):
    """
    Back-office about sections.

    POST upserts by ``section`` and always answers 201.
    """
    queryset = AboutContent.objects.all()
    serializer_class = AboutContentSerializer
    entity_label = 'About section'


# =============================================================================
# SETTINGS
# =============================================================================

@api_view(['GET'])
def settings_map(request):
    """All settings as a flat ``{key: value}`` object."""
    return Response({setting.key: setting.value for setting in Setting.objects.all()})


@api_view(['GET'])
def setting_detail(request, key):
    """A single setting row."""
    setting = Setting.objects.filter(key=key).first()
    if setting is None:
        raise NotFound('Setting not found')
    return Response(SettingSerializer(setting).data)


@api_view(['POST'])
@permission_classes([IsAdminSession])
def admin_settings_upsert(request):
    """
    Create or update settings.

    Body is either a single ``{key, value, description?}`` or
    ``{settings: [{key, value, description?}, ...]}`` for a bulk update.
    """
    bulk = request.data.get('settings') if hasattr(request.data, 'get') else None

    if isinstance(bulk, list):
        serializer = SettingInputSerializer(data=bulk, many=True)
        serializer.is_valid(raise_exception=True)
        with transaction.atomic():
            results = [
                Setting.objects.upsert(item['key'], item['value'], item.get('description'))
                for item in serializer.validated_data
            ]
        logger.info(f"Bulk upserted {len(results)} settings")
        return Response(SettingSerializer(results, many=True).data)

    serializer = SettingInputSerializer(data=request.data)
    if not serializer.is_valid():
        raise ValidationError({'message': 'Key and value are required'})
    data = serializer.validated_data
    setting = Setting.objects.upsert(data['key'], data['value'], data.get('description'))
    return Response(SettingSerializer(setting).data)


@api_view(['PUT'])
@permission_classes([IsAdminSession])
def admin_setting_update(request, key):
    """Create or update the setting named in the URL."""
    serializer = SettingValueSerializer(data=request.data)
    if not serializer.is_valid():
        raise ValidationError({'message': 'Value is required'})
    data = serializer.validated_data
    setting = Setting.objects.upsert(key, data['value'], data.get('description'))
    return Response(SettingSerializer(setting).data)


# =============================================================================
# CONTACT MESSAGES
# =============================================================================

@api_view(['POST'])
def contact_message_create(request):
    """Public contact form submission."""
    serializer = ContactMessageSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    contact = serializer.save()
    logger.info(f"Contact message received from {contact.email}")
    return Response(ContactMessageSerializer(contact).data, status=status.HTTP_201_CREATED)


class AdminContactMessageViewSet(AdminViewSetMixin,
                                 mixins.ListModelMixin,
                                 mixins.RetrieveModelMixin,
                                 mixins.DestroyModelMixin,
                                 viewsets.GenericViewSet):
    """Back-office inbox for contact form messages, newest first."""
    queryset = ContactMessage.objects.all().order_by('-created_at')
    serializer_class = ContactMessageSerializer
    entity_label = 'Message'

    def destroy(self, request, *args, **kwargs):
        self.perform_destroy(self.get_object())
        return Response({'success': True})

    @action(detail=True, methods=['patch'])
    def read(self, request, pk=None):
        """Mark the message as read."""
        contact = self.get_object()
        contact.is_read = True
        contact.save(update_fields=['is_read'])
        return Response(self.get_serializer(contact).data)
