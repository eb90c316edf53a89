import uuid

import django.core.serializers.json
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='IntelligenceAuditLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('user_id', models.CharField(blank=True, max_length=100, null=True)),
                ('action', models.CharField(help_text='e.g. update_property', max_length=50)),
                ('entity_type', models.CharField(help_text='e.g. property', max_length=50)),
                ('entity_id', models.CharField(blank=True, max_length=100, null=True)),
                ('details', models.JSONField(blank=True, encoder=django.core.serializers.json.DjangoJSONEncoder, null=True)),
                ('user_message', models.TextField(blank=True, null=True)),
                ('ai_response', models.TextField(blank=True, null=True)),
                ('status', models.CharField(choices=[('success', 'Success'), ('failed', 'Failed'), ('cancelled', 'Cancelled')], max_length=20)),
                ('error_message', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Intelligence Audit Log',
                'verbose_name_plural': 'Intelligence Audit Logs',
                'db_table': 'intelligence_audit_logs',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['created_at'], name='intelligenc_created_cc0736_idx'),
                    models.Index(fields=['user_id'], name='intelligenc_user_id_659bcc_idx'),
                    models.Index(fields=['action'], name='intelligenc_action_c43168_idx'),
                    models.Index(fields=['status'], name='intelligenc_status_764f19_idx'),
                ],
            },
        ),
    ]
