"""
API Serializers for site content.
"""

from rest_framework import serializers

from .models import Banner, AboutContent, Setting, ContactMessage


class BannerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Banner
        fields = ['id', 'title', 'image_url', 'link', 'is_active', 'order', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']


class AboutContentSerializer(serializers.ModelSerializer):
    """
    About section serializer.

    The unique validator on ``section`` is dropped because saving an existing
    section is an upsert, not a conflict.
    """

    section = serializers.CharField(max_length=50)

    class Meta:
        model = AboutContent
        fields = ['id', 'section', 'title', 'content', 'image_url', 'updated_at']
        read_only_fields = ['id', 'updated_at']

    def create(self, validated_data):
        section = validated_data.pop('section')
        about, _ = AboutContent.objects.update_or_create(section=section, defaults=validated_data)
        return about


class SettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Setting
        fields = ['id', 'key', 'value', 'description', 'updated_at']
        read_only_fields = ['id', 'updated_at']


class SettingInputSerializer(serializers.Serializer):
    """A single ``{key, value, description?}`` upsert request."""

    key = serializers.CharField(max_length=100)
    value = serializers.CharField(allow_blank=True, trim_whitespace=False)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class SettingValueSerializer(serializers.Serializer):
    """Body of ``PUT /api/admin/settings/<key>/``."""

    value = serializers.CharField(allow_blank=True, trim_whitespace=False)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class ContactMessageSerializer(serializers.ModelSerializer):
    class Meta:
        model = ContactMessage
        fields = ['id', 'name', 'email', 'phone', 'message', 'is_read', 'created_at']
        read_only_fields = ['id', 'is_read', 'created_at']

    def validate_email(self, value):
        value = value.strip().lower()
        serializers.EmailField().run_validation(value)
        return value
