"""Unique slug assignment shared by stories and categories."""

import secrets

from django.db import models
from django.utils.text import slugify


def base_slug(text: str) -> str:
    """Lowercase, hyphenated slug for ``text``; random hex when nothing survives."""
    slug = slugify(text or "")
    return slug or secrets.token_hex(6)


def unique_slug(model: type[models.Model], text: str, exclude_pk=None, field: str = "slug") -> str:
    """Derive a slug from ``text`` that no other ``model`` row uses.

    On collision a random 8-hex suffix is appended.
    """
    slug = base_slug(text)
    queryset = model._default_manager.filter(**{field: slug})
    if exclude_pk is not None:
        queryset = queryset.exclude(pk=exclude_pk)
    if queryset.exists():
        slug = f"{slug}-{secrets.token_hex(4)}"
    return slug


__all__ = ["base_slug", "unique_slug"]
