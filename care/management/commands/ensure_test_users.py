# care/management/commands/ensure_test_users.py
from django.core.management.base import BaseCommand
from django.contrib.auth.hashers import make_password

from care.models import User
from care.services.accounts import role_profile

TEST_SET = [
    ("admin@example.com", "Test Admin", "admin"),
    ("doctor@example.com", "Test Doctor", "doctor"),
    ("patient@example.com", "Test Patient", "patient"),
]


class Command(BaseCommand):
    help = "Ensure one test user per role exists with password=123456 (idempotent)."

    def handle(self, *args, **opts):
        for email, name, role in TEST_SET:
            u, created = User.objects.get_or_create(
                username=email,
                defaults={"email": email, "name": name, "role": role,
                          "password": make_password("123456"), "is_active": True},
            )
            if not created:
                # role is fixed per account; only the password and active flag are reset
                u.password = make_password("123456")
                u.is_active = True
                u.save(update_fields=["password", "is_active"])
            role_profile(u)
            self.stdout.write(self.style.SUCCESS(f"ok: {email} ({u.role})"))
        self.stdout.write(self.style.SUCCESS("All test users ensured."))
