# scheduling/management/commands/ensure_test_users.py
from django.core.management.base import BaseCommand
from django.contrib.auth.hashers import make_password
from scheduling.models import User
from scheduling.services.clinicians import invalidate_clinicians_cache

TEST_SET = [
    ("admin1", "admin", "Ada", "Admin"),
    ("clinician1", "clinician", "Chris", "Carter"),
    ("staff1", "staff", "Sam", "Desk"),
    ("tech1", "technician", "Tara", "Lab"),
    ("patient1", "patient", "Pat", "Doe"),
]

class Command(BaseCommand):
    help = "Ensure one test user per role exists with password=123456 (idempotent)."

    def handle(self, *args, **opts):
        for username, role, first, last in TEST_SET:
            u, created = User.objects.get_or_create(
                username=username,
                defaults={"role": role, "first_name": first, "last_name": last,
                          "password": make_password("123456"), "is_active": True},
            )
            if not created:
                # reset password, role and active flag
                u.password = make_password("123456")
                u.role = role
                u.is_active = True
                u.save(update_fields=["password", "role", "is_active"])
            self.stdout.write(self.style.SUCCESS(f"ok: {username} ({role})"))
        invalidate_clinicians_cache()
        self.stdout.write(self.style.SUCCESS("All test users ensured."))
