"""
Intelligence Serializers - Brokerage Backend API
"""

from rest_framework import serializers

from .models import IntelligenceAuditLog
from .sanitizers import sanitize_input


class ChatImageSerializer(serializers.Serializer):
    base64_data = serializers.CharField(trim_whitespace=False)
    filename = serializers.CharField(max_length=255, required=False, default='image.jpg')


class ChatMessageSerializer(serializers.Serializer):
    """Body of POST chat/: the admin's message and optional listing images."""

    message = serializers.CharField(min_length=1, max_length=5000, trim_whitespace=False)
    images = ChatImageSerializer(many=True, required=False)

    def validate_message(self, value):
        value = sanitize_input(value)
        if not value:
            raise serializers.ValidationError("Mensagem não pode estar vazia")
        return value


class StrictBooleanField(serializers.Field):
    """Accepts only JSON true/false."""

    default_error_messages = {
        'invalid': 'confirmed deve ser um valor booleano',
    }

    def to_internal_value(self, data):
        if not isinstance(data, bool):
            self.fail('invalid')
        return data

    def to_representation(self, value):
        return bool(value)


class ExecuteActionSerializer(serializers.Serializer):
    """Body of POST execute/."""

    message_id = serializers.CharField(
        max_length=100,
        error_messages={'required': 'message_id é obrigatório', 'blank': 'message_id é obrigatório'},
    )
    confirmed = StrictBooleanField(error_messages={'required': 'confirmed é obrigatório'})


class AuditLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = IntelligenceAuditLog
        fields = [
            'id', 'user_id', 'action', 'entity_type', 'entity_id', 'details',
            'user_message', 'ai_response', 'status', 'error_message', 'created_at',
        ]
        read_only_fields = fields
