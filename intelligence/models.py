"""
Intelligence models for the brokerage application.

Only the audit trail is persistent; conversations, pending actions and
rate-limit counters live in the ``intelligence`` cache (see context.py and
rate_limiter.py).
"""

import uuid

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models


AUDIT_STATUS_CHOICES = [
    ('success', 'Success'),
    ('failed', 'Failed'),
    ('cancelled', 'Cancelled'),
]


class IntelligenceAuditLog(models.Model):
    """
    One executed, failed or cancelled assistant action.

    ``details`` holds the action payload plus a before/after (updates) or
    created/deleted (creates, deletes) snapshot of the affected record.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user_id = models.CharField(max_length=100, blank=True, null=True)
    action = models.CharField(max_length=50, help_text="e.g. update_property")
    entity_type = models.CharField(max_length=50, help_text="e.g. property")
    entity_id = models.CharField(max_length=100, blank=True, null=True)
    details = models.JSONField(blank=True, null=True, encoder=DjangoJSONEncoder)
    user_message = models.TextField(blank=True, null=True)
    ai_response = models.TextField(blank=True, null=True)
    status = models.CharField(max_length=20, choices=AUDIT_STATUS_CHOICES)
    error_message = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'intelligence_audit_logs'
        ordering = ['-created_at']
        verbose_name = 'Intelligence Audit Log'
        verbose_name_plural = 'Intelligence Audit Logs'
        indexes = [
            models.Index(fields=['created_at']),
            models.Index(fields=['user_id']),
            models.Index(fields=['action']),
            models.Index(fields=['status']),
        ]

    def __str__(self):
        return f"{self.action} ({self.status})"
