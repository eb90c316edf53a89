"""
API Serializers for the CRM app.

Key Features:
- Client/Owner serializers with document URL lists
- Property link replacement payload ({property_ids: [...]})
- Financial transactions with recurrence validation
"""

from rest_framework import serializers

from properties.models import Property
from .models import Client, Owner, ContactHistory, FinancialTransaction


def _validate_documents(value):
    if value in (None, ''):
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise serializers.ValidationError("Documents must be a list of URLs.")
    return value


# =============================================================================
# CLIENT & OWNER SERIALIZERS
# =============================================================================

class PartySerializer(serializers.ModelSerializer):
    """Shared validation for clients and owners."""

    documents = serializers.JSONField(required=False)

    class Meta:
        fields = ['id', 'name', 'email', 'phone', 'notes', 'documents', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate_name(self, value):
        value = (value or '').strip()
        if not value:
            raise serializers.ValidationError("Name is required.")
        return value

    def validate_email(self, value):
        if not value:
            return value
        value = value.strip().lower()
        serializers.EmailField().run_validation(value)
        return value

    def validate_documents(self, value):
        return _validate_documents(value)


class ClientSerializer(PartySerializer):
    class Meta(PartySerializer.Meta):
        model = Client


class OwnerSerializer(PartySerializer):
    class Meta(PartySerializer.Meta):
        model = Owner


class PropertyLinksSerializer(serializers.Serializer):
    """Replacement set of property ids for a client or owner."""

    property_ids = serializers.ListField(
        child=serializers.UUIDField(),
        allow_empty=True,
        error_messages={'not_a_list': 'property_ids must be an array'},
    )

    def validate_property_ids(self, value):
        unique_ids = list(dict.fromkeys(value))
        found = set(Property.objects.filter(pk__in=unique_ids).values_list('pk', flat=True))
        missing = [str(pk) for pk in unique_ids if pk not in found]
        if missing:
            raise serializers.ValidationError(f"Unknown properties: {', '.join(missing)}")
        return unique_ids


# =============================================================================
# CONTACT HISTORY SERIALIZERS
# =============================================================================

class ContactHistorySerializer(serializers.ModelSerializer):
    client_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = ContactHistory
        fields = ['id', 'client_id', 'contact_type', 'notes', 'contact_date']
        read_only_fields = ['id', 'client_id', 'contact_date']


# =============================================================================
# FINANCIAL TRANSACTION SERIALIZERS
# =============================================================================

class FinancialTransactionSerializer(serializers.ModelSerializer):
    """
    Financial transaction serializer.

    ``day_of_month`` applies to monthly entries and ``day_of_week`` to
    weekly ones; both are validated against their ranges.
    """

    documents = serializers.JSONField(required=False)
    day_of_month = serializers.IntegerField(min_value=1, max_value=31, required=False, allow_null=True)
    day_of_week = serializers.IntegerField(min_value=0, max_value=6, required=False, allow_null=True)

    class Meta:
        model = FinancialTransaction
        fields = [
            'id', 'description', 'amount', 'type', 'category', 'date',
            'frequency_type', 'day_of_month', 'day_of_week', 'documents', 'created_at',
        ]
        read_only_fields = ['id', 'created_at']

    def validate_description(self, value):
        value = (value or '').strip()
        if not value:
            raise serializers.ValidationError("Description is required.")
        return value

    def validate_documents(self, value):
        return _validate_documents(value)


class FinancialSummarySerializer(serializers.Serializer):
    total_revenue = serializers.FloatField()
    total_expenses = serializers.FloatField()
    balance = serializers.FloatField()
