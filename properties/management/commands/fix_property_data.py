"""
Django management command to run the listing data fixes.

Retypes condominium houses and corrects neighborhood spellings and
assignments, the same fixes exposed under /api/admin/.

Usage:
    python manage.py fix_property_data
    python manage.py fix_property_data --only condominiums
    python manage.py fix_property_data --only neighborhoods
"""

from django.core.management.base import BaseCommand

from services.business_logic import fix_condominium_types, fix_neighborhood_names


class Command(BaseCommand):
    help = 'Fix condominium property types and neighborhood names'

    def add_arguments(self, parser):
        parser.add_argument(
            '--only',
            choices=['condominiums', 'neighborhoods'],
            help='Run a single fix instead of both',
        )

    def handle(self, *args, **options):
        only = options.get('only')

        if only in (None, 'condominiums'):
            result = fix_condominium_types()
            for update in result['updates']:
                self.stdout.write(
                    f"  {update['title']}: {update['old_type']} -> condominio ({update['matched_in']})"
                )
            self.stdout.write(self.style.SUCCESS(f"Condominium types: {result['updated_count']} updated"))

        if only in (None, 'neighborhoods'):
            result = fix_neighborhood_names()
            for correction in result['corrections']:
                self.stdout.write(f"  {correction['old_title']} -> {correction['new_title']}")
            self.stdout.write(self.style.SUCCESS(f"Neighborhood names: {result['updated_count']} corrected"))
