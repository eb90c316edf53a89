"""
API Serializers for brokerage Properties.

This module defines the serialization layer between the catalogue models and
the REST API:
- Neighborhood serializer (slug handled on create/update)
- Property list/detail serializers for the public site
- Property write serializer for the back office and the intelligence assistant

Key Features:
- Slugs are generated on create and regenerated when the title/name changes
- New properties default to the top of the display order
- Input validation with meaningful error messages
"""

import logging

from rest_framework import serializers

from services.business_logic import (
    generate_unique_property_slug,
    generate_unique_neighborhood_slug,
    next_display_order,
)
from services.media import MediaStorageError, folder_name_for, resolve_property_images
from .models import Property, Neighborhood

logger = logging.getLogger(__name__)


def _validate_string_list(value, field_label):
    """Ensure ``value`` is a list of non-empty strings."""
    if value in (None, ''):
        return []
    if not isinstance(value, list):
        raise serializers.ValidationError(f"{field_label} must be a list.")
    cleaned = []
    for item in value:
        if not isinstance(item, str):
            raise serializers.ValidationError(f"{field_label} must contain only strings.")
        if item.strip():
            cleaned.append(item.strip())
    return cleaned


# =============================================================================
# NEIGHBORHOOD SERIALIZERS
# =============================================================================

class NeighborhoodSerializer(serializers.ModelSerializer):
    """
    Neighborhood serializer for list, detail and admin CRUD.

    The slug is read-only: it follows the name.
    """

    property_count = serializers.SerializerMethodField()

    class Meta:
        model = Neighborhood
        fields = [
            'id', 'name', 'slug', 'description', 'image_url',
            'property_count', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'slug', 'created_at', 'updated_at']

    def get_property_count(self, obj):
        """Number of active properties in the neighborhood."""
        annotated = getattr(obj, 'active_property_count', None)
        if annotated is not None:
            return annotated
        return obj.properties.filter(is_active=True).count()

    def validate_name(self, value):
        value = (value or '').strip()
        if not value:
            raise serializers.ValidationError("Name is required.")
        return value

    def create(self, validated_data):
        validated_data['slug'] = generate_unique_neighborhood_slug(validated_data['name'])
        neighborhood = super().create(validated_data)
        logger.info(f"Created neighborhood {neighborhood.name} ({neighborhood.slug})")
        return neighborhood

    def update(self, instance, validated_data):
        new_name = validated_data.get('name')
        if new_name and new_name != instance.name:
            validated_data['slug'] = generate_unique_neighborhood_slug(new_name, exclude_id=instance.pk)
        return super().update(instance, validated_data)


class NeighborhoodSummarySerializer(serializers.ModelSerializer):
    """Compact neighborhood representation nested inside property details."""

    class Meta:
        model = Neighborhood
        fields = ['id', 'name', 'slug']


# =============================================================================
# PROPERTY SERIALIZERS
# =============================================================================

class PropertySerializer(serializers.ModelSerializer):
    """
    Property serializer for list views and admin CRUD.

    ``neighborhood_id`` is writable; ``neighborhood_name`` is a display helper.
    Slug and display order are assigned on create when not supplied.
    """

    neighborhood_id = serializers.PrimaryKeyRelatedField(
        source='neighborhood',
        queryset=Neighborhood.objects.all(),
        allow_null=True,
        required=False,
    )
    neighborhood_name = serializers.SerializerMethodField()
    display_order = serializers.IntegerField(min_value=0, required=False)
    images = serializers.JSONField(required=False)
    amenities = serializers.JSONField(required=False)

    class Meta:
        model = Property
        fields = [
            'id', 'title', 'slug', 'description',
            'property_type', 'status', 'price',
            'bedrooms', 'bathrooms', 'parking_spaces', 'area', 'land_area',
            'neighborhood_id', 'neighborhood_name',
            'is_featured', 'is_active', 'display_order',
            'images', 'amenities', 'external_id', 'source_url',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'slug', 'created_at', 'updated_at']

    def get_neighborhood_name(self, obj):
        """Name of the linked neighborhood, if any."""
        return obj.neighborhood.name if obj.neighborhood_id else None

    def validate_title(self, value):
        value = (value or '').strip()
        if not value:
            raise serializers.ValidationError("Title is required.")
        return value

    def validate_images(self, value):
        """Image URLs, or ``{base64_data, filename}`` objects still to be stored."""
        if value in (None, ''):
            return []
        if not isinstance(value, list):
            raise serializers.ValidationError("Images must be a list.")
        for item in value:
            if isinstance(item, dict):
                if not isinstance(item.get('base64_data'), str):
                    raise serializers.ValidationError("Image uploads need base64_data.")
            elif not isinstance(item, str):
                raise serializers.ValidationError("Images must be URLs or uploads.")
        return value

    def _store_images(self, validated_data, title):
        if 'images' not in validated_data:
            return
        folder = self.initial_data.get('property_folder') if hasattr(self, 'initial_data') else None
        try:
            validated_data['images'] = resolve_property_images(
                validated_data['images'], folder or folder_name_for(title)
            )
        except MediaStorageError as e:
            raise serializers.ValidationError({'images': [str(e)]})

    def validate_amenities(self, value):
        return _validate_string_list(value, "Amenities")

    def validate(self, data):
        """Cross-field validation."""
        errors = {}

        area = data.get('area')
        land_area = data.get('land_area')
        if area is not None and area < 0:
            errors['area'] = "Area cannot be negative."
        if land_area is not None and land_area < 0:
            errors['land_area'] = "Land area cannot be negative."

        if errors:
            raise serializers.ValidationError(errors)

        return data

    def create(self, validated_data):
        validated_data['slug'] = generate_unique_property_slug(validated_data['title'])
        if validated_data.get('display_order') is None:
            validated_data['display_order'] = next_display_order()
        self._store_images(validated_data, validated_data['title'])

        prop = super().create(validated_data)
        logger.info(f"Created property {prop.pk} ({prop.slug})")
        return prop

    def update(self, instance, validated_data):
        new_title = validated_data.get('title')
        if new_title and new_title != instance.title:
            validated_data['slug'] = generate_unique_property_slug(new_title, exclude_id=instance.pk)
        self._store_images(validated_data, new_title or instance.title)
        return super().update(instance, validated_data)


class PropertyDetailSerializer(PropertySerializer):
    """Full property representation with the nested neighborhood."""

    neighborhood = NeighborhoodSummarySerializer(read_only=True)

    class Meta(PropertySerializer.Meta):
        fields = PropertySerializer.Meta.fields + ['neighborhood']


# =============================================================================
# ORDERING SERIALIZERS
# =============================================================================

class DisplayOrderSerializer(serializers.Serializer):
    """Single display-order change."""

    display_order = serializers.IntegerField(
        min_value=0,
        error_messages={
            'invalid': 'Invalid displayOrder value',
            'min_value': 'Invalid displayOrder value',
            'required': 'Invalid displayOrder value',
            'null': 'Invalid displayOrder value',
        },
    )


class BulkOrderItemSerializer(DisplayOrderSerializer):
    """One entry of a bulk display-order request."""

    id = serializers.UUIDField()


class BulkOrderSerializer(serializers.Serializer):
    """Bulk display-order request: ``{updates: [{id, display_order}, ...]}``."""

    updates = BulkOrderItemSerializer(many=True, allow_empty=False)
