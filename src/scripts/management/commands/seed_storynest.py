"""Seed default categories and promote the configured super-admin."""

import logging

from django.conf import settings
from django.core.management.base import BaseCommand
from django.db import transaction

from access_control.roles import Role
from authentication.models import User
from categories.models import Category
from core import cache
from core.slugs import unique_slug

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    "Uncategorized",
    "Fiction",
    "Non-Fiction",
    "Poetry",
    "Fantasy",
    "Science Fiction",
    "Mystery",
    "Romance",
]


def create_seed_categories(names=DEFAULT_CATEGORIES) -> list[Category]:
    """Create missing categories by name; existing ones are left untouched."""
    created = []
    for name in names:
        if Category.objects.filter(name__iexact=name).exists():
            continue
        created.append(Category.objects.create(name=name, slug=unique_slug(Category, name)))
    if created:
        cache.invalidate(cache.CATEGORY_LIST)
    return created


@transaction.atomic
def promote_super_admin(email: str | None) -> str:
    """Make the registered account ``email`` the super-admin.

    Returns a short outcome code; refuses when another account already holds
    the role, since there is at most one super-admin.
    """
    if not email:
        logger.warning("SUPER_ADMIN_EMAIL is not set. Skipping super-admin seeding.")
        return "skipped"

    user = User.objects.filter(email__iexact=email).first()
    if user is None:
        logger.info("Super-admin %s not found. The account must register first.", email)
        return "missing"
    if user.role == Role.SUPER_ADMIN:
        return "unchanged"

    holder = User.objects.filter(role=Role.SUPER_ADMIN).exclude(pk=user.pk).first()
    if holder is not None:
        logger.error("Cannot promote %s: %s is already the super-admin.", email, holder.email)
        return "conflict"

    user.role = Role.SUPER_ADMIN
    user.is_verified = True
    user.save(update_fields=["role", "is_verified", "updated_at"])
    logger.info("Promoted %s to super-admin.", email)
    return "promoted"


class Command(BaseCommand):
    """Management command to seed categories and the super-admin."""

    help = (
        "Create the default story categories and promote SUPER_ADMIN_EMAIL to super-admin. "
        "Use --reset to remove unused default categories first."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--reset",
            action="store_true",
            help="Delete default categories no story uses before seeding.",
        )
        parser.add_argument(
            "--super-admin-email",
            default=None,
            help="Override SUPER_ADMIN_EMAIL for this run.",
        )

    def handle(self, *args, **options):
        """Entrypoint for the management command."""
        if options.get("reset"):
            self._reset_seeded_data()

        self.stdout.write("Seeding StoryNest data...")
        created = create_seed_categories()
        self.stdout.write(f"Categories created: {len(created)}")

        email = options.get("super_admin_email") or settings.SUPER_ADMIN_EMAIL
        outcome = promote_super_admin(email)
        if outcome == "conflict":
            self.stdout.write(self.style.ERROR(f"Another account is already the super-admin; {email} left as is."))
        else:
            self.stdout.write(f"Super-admin: {outcome}")
        self.stdout.write(self.style.SUCCESS("StoryNest seed completed."))

    def _reset_seeded_data(self) -> None:
        """Remove default categories that no story references."""
        self.stdout.write("Resetting default categories...")
        deleted, _ = (
            Category.objects.filter(name__in=DEFAULT_CATEGORIES, stories__isnull=True).delete()
        )
        cache.invalidate(cache.CATEGORY_LIST)
        self.stdout.write(self.style.WARNING(f"Removed {deleted} unused categories."))
