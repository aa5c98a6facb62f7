# care/management/commands/ensure_test_users.py
from datetime import date

from django.core.management.base import BaseCommand

from care.models import DoctorProfile, GuardianProfile, User
from care.services.accounts import create_account

PASSWORD = "Clinic-Test-123"

TEST_SET = [
    ("admin@clinic.test", "admin", {}),
    ("doctor@clinic.test", "doctor", {"specialty": "General practice", "license_number": "TEST-DOC-1"}),
    ("guardian@clinic.test", "guardian", {"relationship": "parent", "birth_date": date(1980, 1, 1)}),
    ("patient@clinic.test", "patient", {}),
]


class Command(BaseCommand):
    help = f"Ensure one account per role exists with password={PASSWORD} (idempotent)."

    def handle(self, *args, **opts):
        for email, role, extra in TEST_SET:
            u = User.objects.filter(email=email).first()
            if u is None:
                fields = dict(extra)
                if role == "patient":
                    fields["guardian"] = GuardianProfile.objects.get(user__email="guardian@clinic.test")
                    fields["doctor"] = DoctorProfile.objects.get(user__email="doctor@clinic.test")
                create_account(role=role, password=PASSWORD, name=f"Test {role}", email=email, **fields)
            else:
                # reset password, activation and role on existing accounts
                u.set_password(PASSWORD)
                u.role = role
                u.is_active = True
                u.save(update_fields=["password", "role", "is_active"])
            self.stdout.write(self.style.SUCCESS(f"ok: {email} ({role})"))
        self.stdout.write(self.style.SUCCESS("All test users ensured."))
