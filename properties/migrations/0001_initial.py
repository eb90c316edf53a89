import uuid

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Neighborhood',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=100)),
                ('slug', models.SlugField(help_text='URL identifier generated from the name', max_length=100, unique=True)),
                ('description', models.TextField(blank=True, null=True)),
                ('image_url', models.CharField(blank=True, max_length=500, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Neighborhood',
                'verbose_name_plural': 'Neighborhoods',
                'db_table': 'neighborhoods',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Property',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=200)),
                ('slug', models.SlugField(help_text='URL identifier generated from the title', max_length=250, unique=True)),
                ('description', models.TextField()),
                ('property_type', models.CharField(choices=[('casa', 'Casa'), ('apartamento', 'Apartamento'), ('terreno', 'Terreno'), ('comercial', 'Comercial'), ('condominio', 'Casa em condomínio')], max_length=50)),
                ('status', models.CharField(choices=[('venda', 'Para Venda'), ('aluguel', 'Para Aluguel'), ('ambos', 'Venda/Aluguel'), ('vendido', 'Vendido')], max_length=20)),
                ('price', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(0)])),
                ('bedrooms', models.PositiveIntegerField(default=0)),
                ('bathrooms', models.PositiveIntegerField(default=0)),
                ('parking_spaces', models.PositiveIntegerField(default=0)),
                ('area', models.DecimalField(blank=True, decimal_places=2, help_text='Built area in m²', max_digits=10, null=True)),
                ('land_area', models.DecimalField(blank=True, decimal_places=2, help_text='Land area in m²', max_digits=10, null=True)),
                ('is_featured', models.BooleanField(default=False)),
                ('is_active', models.BooleanField(default=True)),
                ('display_order', models.IntegerField(default=0, help_text='Higher values are listed first')),
                ('images', models.JSONField(blank=True, default=list, help_text='Image URLs')),
                ('amenities', models.JSONField(blank=True, default=list)),
                ('external_id', models.CharField(blank=True, max_length=100, null=True)),
                ('source_url', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('neighborhood', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='properties', to='properties.neighborhood')),
            ],
            options={
                'verbose_name': 'Property',
                'verbose_name_plural': 'Properties',
                'db_table': 'properties',
                'ordering': ['-display_order', '-created_at'],
                'indexes': [
                    models.Index(fields=['property_type'], name='properties_propert_f38ecc_idx'),
                    models.Index(fields=['status'], name='properties_status_e6008a_idx'),
                    models.Index(fields=['is_active', 'is_featured'], name='properties_is_acti_3aaee6_idx'),
                    models.Index(fields=['-display_order', '-created_at'], name='properties_display_d9cbd0_idx'),
                ],
            },
        ),
    ]
