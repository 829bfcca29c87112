from django.core.management.base import BaseCommand

from core.services import public_data


class Command(BaseCommand):
    help = "Rebuild the cached public reference data (blood groups and components)."

    def handle(self, *args, **options):
        counts = public_data.warm()
        for key, n in counts.items():
            self.stdout.write(f"{key}: {n}")
        self.stdout.write(self.style.SUCCESS("Public data caches warmed."))
