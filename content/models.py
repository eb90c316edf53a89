"""
Site content models for the brokerage application.

This module implements the editable pieces of the public site:
- Banner: Home page carousel slides
- AboutContent: "About us" sections, one row per section key
- Setting: Key/value site settings (company name, contact info, colors...)
- ContactMessage: Messages submitted through the public contact form
"""

import uuid

from django.db import models


# =============================================================================
# BANNER MODEL
# =============================================================================

class Banner(models.Model):
    """Home page carousel slide."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=200)
    image_url = models.CharField(max_length=500)
    link = models.CharField(max_length=500, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    order = models.IntegerField(default=0, help_text="Lower values are shown first")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'banners'
        ordering = ['order', 'created_at']
        verbose_name = 'Banner'
        verbose_name_plural = 'Banners'

    def __str__(self):
        return self.title


# =============================================================================
# ABOUT CONTENT MODEL
# =============================================================================

class AboutContent(models.Model):
    """
    One section of the "About" page (e.g. company, realtor).

    Sections are unique; saving an existing section replaces its content.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    section = models.CharField(max_length=50, unique=True)
    title = models.CharField(max_length=200)
    content = models.TextField()
    image_url = models.CharField(max_length=500, blank=True, null=True)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'about_content'
        ordering = ['section']
        verbose_name = 'About Section'
        verbose_name_plural = 'About Sections'

    def __str__(self):
        return f"{self.section}: {self.title}"


# =============================================================================
# SETTING MODEL
# =============================================================================

class SettingManager(models.Manager):
    """Key/value helpers used by the API and the intelligence assistant."""

    def upsert(self, key, value, description=None):
        """Create or update a setting; description is only replaced when given."""
        defaults = {'value': value}
        if description is not None:
            defaults['description'] = description
        setting, _ = self.update_or_create(key=key, defaults=defaults)
        return setting

    def get_value(self, key, default=None):
        """Value of ``key``, or ``default`` when it is not set."""
        value = self.filter(key=key).values_list('value', flat=True).first()
        return value if value is not None else default


class Setting(models.Model):
    """Global site setting."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.TextField(blank=True, null=True)

    updated_at = models.DateTimeField(auto_now=True)

    objects = SettingManager()

    class Meta:
        db_table = 'settings'
        ordering = ['key']
        verbose_name = 'Setting'
        verbose_name_plural = 'Settings'

    def __str__(self):
        return self.key


# =============================================================================
# CONTACT MESSAGE MODEL
# =============================================================================

class ContactMessage(models.Model):
    """Message sent through the public contact form."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    email = models.CharField(max_length=200)
    phone = models.CharField(max_length=50)
    message = models.TextField()
    is_read = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'contact_messages'
        ordering = ['-created_at']
        verbose_name = 'Contact Message'
        verbose_name_plural = 'Contact Messages'
        indexes = [
            models.Index(fields=['is_read', '-created_at']),
        ]

    def __str__(self):
        return f"{self.name} <{self.email}>"
