# core/management/commands/ensure_test_users.py
from django.core.management.base import BaseCommand
from django.db import transaction

from core.models import BloodGroup, Donor, Patient, User

TEST_PASSWORD = "Blood!Warr1or"

TEST_SET = [
    ("patient@bloodwarriors.test", "Test Patient", User.TYPE_PATIENT),
    ("donor@bloodwarriors.test", "Test Donor", User.TYPE_DONOR),
    ("admin@bloodwarriors.test", "Test Admin", User.TYPE_ADMIN),
]


class Command(BaseCommand):
    help = f"Ensure a verified patient, donor and admin exist with password {TEST_PASSWORD} (idempotent)."

    @transaction.atomic
    def handle(self, *args, **opts):
        group = BloodGroup.objects.order_by("id").first()
        if group is None:
            group = BloodGroup.objects.create(group_name="O+")
        for email, name, user_type in TEST_SET:
            u = User.objects.filter(email=email).first()
            if u is None:
                u = User.objects.create_user(email=email, password=TEST_PASSWORD, full_name=name,
                                             phone_number="9999999999", user_type=user_type)
            # reset credentials, activation and lockout
            u.set_password(TEST_PASSWORD)
            u.user_type = user_type
            u.is_active = True
            u.is_verified = True
            u.failed_login_attempts = 0
            u.locked_until = None
            u.is_staff = u.is_superuser = user_type == User.TYPE_ADMIN
            u.save()
            if user_type == User.TYPE_PATIENT:
                Patient.objects.get_or_create(user=u, defaults={"blood_group": group})
            elif user_type == User.TYPE_DONOR:
                Donor.objects.get_or_create(user=u, defaults={"blood_group": group})
            self.stdout.write(self.style.SUCCESS(f"ok: {email} ({user_type})"))
        self.stdout.write(self.style.SUCCESS("All test users ensured."))
