"""
Properties models for the brokerage application.

This module implements the core catalogue entities:
- Neighborhood: Areas the brokerage operates in, each with its own landing page
- Property: Listings shown on the public site and managed from the back office

Design Philosophy: Simple, predictable, no automatic behaviors.
Slugs and display order are assigned by services.business_logic when the
API creates or updates a row, never by model hooks.
"""

import uuid
import logging

from django.db import models
from django.core.validators import MinValueValidator

logger = logging.getLogger(__name__)


# =============================================================================
# LISTING CLASSIFICATION
# =============================================================================

PROPERTY_TYPE_CHOICES = [
    ('casa', 'Casa'),
    ('apartamento', 'Apartamento'),
    ('terreno', 'Terreno'),
    ('comercial', 'Comercial'),
    ('condominio', 'Casa em condomínio'),
]

PROPERTY_STATUS_CHOICES = [
    ('venda', 'Para Venda'),
    ('aluguel', 'Para Aluguel'),
    ('ambos', 'Venda/Aluguel'),
    ('vendido', 'Vendido'),
]


# =============================================================================
# NEIGHBORHOOD MODEL
# =============================================================================

class Neighborhood(models.Model):
    """
    A neighborhood listings can belong to.

    The slug is derived from the name and regenerated whenever the name
    changes, so public URLs follow renames.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100)
    slug = models.SlugField(
        max_length=100,
        unique=True,
        help_text="URL identifier generated from the name"
    )
    description = models.TextField(blank=True, null=True)
    image_url = models.CharField(max_length=500, blank=True, null=True)

    # Metadata
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'neighborhoods'
        ordering = ['name']
        verbose_name = 'Neighborhood'
        verbose_name_plural = 'Neighborhoods'

    def __str__(self):
        return self.name

    def __repr__(self):
        return f"<Neighborhood: {self.name}>"


# =============================================================================
# PROPERTY MODEL
# =============================================================================

class Property(models.Model):
    """
    A real estate listing.

    Core Principle: the public site only shows active properties, ordered by
    the admin-curated display_order (highest first) and then by recency.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Identification
    title = models.CharField(max_length=200)
    slug = models.SlugField(
        max_length=250,
        unique=True,
        help_text="URL identifier generated from the title"
    )
    description = models.TextField()

    # Classification
    property_type = models.CharField(max_length=50, choices=PROPERTY_TYPE_CHOICES)
    status = models.CharField(max_length=20, choices=PROPERTY_STATUS_CHOICES)

    # Pricing & Characteristics
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(0)]
    )
    bedrooms = models.PositiveIntegerField(default=0)
    bathrooms = models.PositiveIntegerField(default=0)
    parking_spaces = models.PositiveIntegerField(default=0)
    area = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        blank=True,
        null=True,
        help_text="Built area in m²"
    )
    land_area = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        blank=True,
        null=True,
        help_text="Land area in m²"
    )

    # Location
    neighborhood = models.ForeignKey(
        Neighborhood,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='properties'
    )

    # Visibility
    is_featured = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    display_order = models.IntegerField(
        default=0,
        help_text="Higher values are listed first"
    )

    # Media & Features
    images = models.JSONField(default=list, blank=True, help_text="Image URLs")
    amenities = models.JSONField(default=list, blank=True)

    # Source tracking for listings imported from the legacy site
    external_id = models.CharField(max_length=100, blank=True, null=True)
    source_url = models.TextField(blank=True, null=True)

    # Metadata
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'properties'
        ordering = ['-display_order', '-created_at']
        verbose_name = 'Property'
        verbose_name_plural = 'Properties'

        indexes = [
            models.Index(fields=['property_type']),
            models.Index(fields=['status']),
            models.Index(fields=['is_active', 'is_featured']),
            models.Index(fields=['-display_order', '-created_at']),
        ]

    def __str__(self):
        return self.title

    def __repr__(self):
        return f"<Property: {self.title} ({self.property_type})>"
