#!/usr/bin/env python
"""
Django's command-line utility for administrative tasks.

Brokerage Backend Management Script
===================================

Entry point for the administrative tasks of the brokerage site and back
office.

Usage Examples:
===============

Development:
  python manage.py runserver                    # Start development server
  python manage.py runserver 0.0.0.0:8000       # Start server on all interfaces

Database Operations:
  python manage.py migrate                      # Apply migrations
  python manage.py showmigrations               # Show migration status

Development Tools:
  python manage.py shell_plus                   # Shell with models imported (django-extensions)
  python manage.py check                        # System check
  python manage.py test                         # Run tests

Production:
  python manage.py collectstatic --noinput      # Collect static files

Brokerage Specific Commands:
  python manage.py regenerate_slugs             # Recompute property slugs from titles
  python manage.py fix_property_data            # Retype condominiums, fix neighborhood names
"""

import os
import sys


def main():
    """Run administrative tasks."""

    # Set the default Django settings module
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'brokerage.settings')

    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        error_msg = (
            "Couldn't import Django. This usually means:\n"
            "  1. Django is not installed - run: pip install -e .\n"
            "  2. Virtual environment is not activated\n"
            "  3. PYTHONPATH is not set correctly\n\n"
            f"Current Python path: {sys.executable}\n"
            f"Current working directory: {os.getcwd()}\n"
            f"DJANGO_SETTINGS_MODULE: {os.environ.get('DJANGO_SETTINGS_MODULE', 'Not set')}\n"
        )
        raise ImportError(error_msg) from exc

    try:
        execute_from_command_line(sys.argv)
    except Exception as exc:
        # Context for failures outside the command's own error reporting
        print(f"\nError executing Django command: {exc}", file=sys.stderr)
        print(f"Command attempted: {' '.join(sys.argv)}", file=sys.stderr)
        raise


if __name__ == '__main__':
    main()
