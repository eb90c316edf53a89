"""
CRM models for the brokerage application.

This module implements the back-office relationship data:
- Client: Prospective buyers/tenants and the properties they are interested in
- Owner: Property owners and the properties they own
- ContactHistory: Log of interactions with a client
- FinancialTransaction: Brokerage revenue and expenses

Property links are explicit through-models so a (party, property) pair can
only exist once and disappears with either side.
"""

import uuid

from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models

from properties.models import Property


# =============================================================================
# CLIENT & OWNER MODELS
# =============================================================================

class Party(models.Model):
    """Fields shared by clients and owners."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    email = models.CharField(max_length=200, blank=True, null=True)
    phone = models.CharField(max_length=50, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    documents = models.JSONField(default=list, blank=True, help_text="Document URLs")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ['-created_at']

    def __str__(self):
        return self.name


class Client(Party):
    """A client of the brokerage."""

    properties = models.ManyToManyField(
        Property,
        through='ClientProperty',
        related_name='interested_clients',
        blank=True
    )

    class Meta(Party.Meta):
        db_table = 'clients'
        verbose_name = 'Client'
        verbose_name_plural = 'Clients'

    def __repr__(self):
        return f"<Client: {self.name}>"


class Owner(Party):
    """A property owner."""

    properties = models.ManyToManyField(
        Property,
        through='OwnerProperty',
        related_name='owners',
        blank=True
    )

    class Meta(Party.Meta):
        db_table = 'owners'
        verbose_name = 'Owner'
        verbose_name_plural = 'Owners'

    def __repr__(self):
        return f"<Owner: {self.name}>"


class ClientProperty(models.Model):
    """Property a client is interested in."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    client = models.ForeignKey(Client, on_delete=models.CASCADE)
    property = models.ForeignKey(Property, on_delete=models.CASCADE)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'client_properties'
        unique_together = [['client', 'property']]


class OwnerProperty(models.Model):
    """Property owned by an owner."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(Owner, on_delete=models.CASCADE)
    property = models.ForeignKey(Property, on_delete=models.CASCADE)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'owner_properties'
        unique_together = [['owner', 'property']]


# =============================================================================
# CONTACT HISTORY MODEL
# =============================================================================

class ContactHistory(models.Model):
    """A recorded interaction with a client."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='contact_history')
    contact_type = models.CharField(
        max_length=50,
        help_text="email, phone, meeting, whatsapp, ..."
    )
    notes = models.TextField(blank=True, null=True)
    contact_date = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'contact_history'
        ordering = ['-contact_date']
        verbose_name = 'Contact History Entry'
        verbose_name_plural = 'Contact History'

    def __str__(self):
        return f"{self.contact_type} with {self.client.name}"


# =============================================================================
# FINANCIAL TRANSACTION MODEL
# =============================================================================

TRANSACTION_TYPE_CHOICES = [
    ('receita', 'Receita'),
    ('despesa', 'Despesa'),
]

FREQUENCY_TYPE_CHOICES = [
    ('unico', 'Único'),
    ('semanal', 'Semanal'),
    ('mensal', 'Mensal'),
    ('anual', 'Anual'),
]


class FinancialTransaction(models.Model):
    """
    A revenue or expense entry.

    Recurring entries record their schedule (weekday for weekly, day of
    month for monthly); nothing is generated from it server-side.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    description = models.CharField(max_length=200)
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(0)]
    )
    type = models.CharField(max_length=20, choices=TRANSACTION_TYPE_CHOICES)
    category = models.CharField(max_length=50, blank=True, null=True)
    date = models.DateField()

    # Recurrence
    frequency_type = models.CharField(
        max_length=20,
        choices=FREQUENCY_TYPE_CHOICES,
        default='unico'
    )
    day_of_month = models.PositiveSmallIntegerField(
        blank=True,
        null=True,
        validators=[MinValueValidator(1), MaxValueValidator(31)]
    )
    day_of_week = models.PositiveSmallIntegerField(
        blank=True,
        null=True,
        validators=[MinValueValidator(0), MaxValueValidator(6)],
        help_text="0 = Sunday"
    )

    documents = models.JSONField(default=list, blank=True, help_text="Document URLs")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'financial_transactions'
        ordering = ['-date', '-created_at']
        verbose_name = 'Financial Transaction'
        verbose_name_plural = 'Financial Transactions'
        indexes = [
            models.Index(fields=['type', 'date']),
        ]

    def __str__(self):
        return f"{self.description} ({self.type}: {self.amount})"
