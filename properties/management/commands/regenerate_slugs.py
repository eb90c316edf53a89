"""
Django management command to recompute every property slug from its title.

Usage:
    python manage.py regenerate_slugs
"""

from django.core.management.base import BaseCommand

from services.business_logic import regenerate_all_slugs


class Command(BaseCommand):
    help = 'Regenerate property slugs from their titles'

    def handle(self, *args, **options):
        self.stdout.write("Regenerating property slugs...")

        result = regenerate_all_slugs()

        for error in result.errors:
            self.stdout.write(self.style.WARNING(f"  {error}"))

        self.stdout.write(self.style.SUCCESS(
            f"{result.updated} slugs updated ({len(result.errors)} errors)"
        ))
