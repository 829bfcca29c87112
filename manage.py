#!/usr/bin/env python
"""
Command line entry point for the Blood Warriors API.

Common tasks::

    python manage.py migrate --run-syncdb
    python manage.py seed_data
    python manage.py ensure_test_users
    python manage.py runserver
"""
import os
import sys


def main() -> None:
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'bloodwarriors.settings')
    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        raise ImportError(
            "Couldn't import Django. Install the project first (pip install -e .) "
            "and activate its virtual environment."
        ) from exc
    execute_from_command_line(sys.argv)


if __name__ == '__main__':
    main()
