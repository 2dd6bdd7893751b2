import uuid

from django.db import migrations, models

import authentication.managers


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="User",
            fields=[
                ("last_login", models.DateTimeField(blank=True, null=True, verbose_name="last login")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("username", models.CharField(max_length=30, unique=True)),
                ("email", models.EmailField(max_length=254, unique=True)),
                ("password_hash", models.CharField(blank=True, max_length=128, null=True)),
                (
                    "role",
                    models.CharField(
                        choices=[("user", "User"), ("admin", "Admin"), ("super-admin", "Super admin")],
                        default="user",
                        max_length=20,
                    ),
                ),
                ("is_verified", models.BooleanField(default=False)),
                ("verification_token", models.CharField(blank=True, db_index=True, max_length=64, null=True)),
                ("verification_token_expires", models.DateTimeField(blank=True, null=True)),
                ("reset_password_token", models.CharField(blank=True, db_index=True, max_length=64, null=True)),
                ("reset_password_expires", models.DateTimeField(blank=True, null=True)),
                ("refresh_token_hash", models.CharField(blank=True, max_length=64, null=True, unique=True)),
                ("refresh_token_expires", models.DateTimeField(blank=True, null=True)),
                ("google_id", models.CharField(blank=True, max_length=255, null=True, unique=True)),
                ("avatar", models.CharField(blank=True, max_length=500)),
                ("avatar_public_id", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("role", "super-admin")),
                        fields=("role",),
                        name="single_super_admin",
                    )
                ],
            },
            managers=[
                ("objects", authentication.managers.UserManager()),
            ],
        ),
    ]
