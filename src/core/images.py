"""Image hosting for story covers and avatars.

Views only talk to :class:`ImageHost`; the concrete backend is chosen with
``settings.IMAGE_HOST_BACKEND``. The bundled backend keeps files in Django's
default storage, so swapping in a remote storage (S3, GCS, ...) needs no code
change here.
"""

from __future__ import annotations

import logging
import os
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import IO

from django.conf import settings
from django.core.files.storage import Storage, default_storage
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png"}
ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/png"}

COVERS_FOLDER = "storynest_covers"
AVATARS_FOLDER = "storynest_avatars"


class UnsupportedImage(ValueError):
    """Raised for uploads that are not JPEG or PNG images."""


@dataclass(frozen=True)
class HostedImage:
    """Where an uploaded image can be fetched, and the id used to release it."""

    url: str
    public_id: str


def check_image(file_obj: IO[bytes]) -> None:
    """Reject anything but JPEG/PNG by extension and declared content type."""

    name = getattr(file_obj, "name", "") or ""
    extension = os.path.splitext(name)[1].lower()
    if extension not in ALLOWED_EXTENSIONS:
        raise UnsupportedImage("Only JPEG and PNG images are allowed.")
    content_type = getattr(file_obj, "content_type", None)
    if content_type and content_type not in ALLOWED_CONTENT_TYPES:
        raise UnsupportedImage("Only JPEG and PNG images are allowed.")


class ImageHost(ABC):
    """Interface for image hosting backends."""

    @abstractmethod
    def upload(self, file_obj: IO[bytes], folder: str) -> HostedImage:
        """Persist an image and return its public URL and id."""

    @abstractmethod
    def destroy(self, public_id: str) -> None:
        """Release a previously uploaded image."""


class StorageImageHost(ImageHost):
    """Keep images in a Django storage under ``<folder>/<random>.<ext>``."""

    def __init__(self, storage: Storage | None = None):
        self.storage = storage or default_storage

    def upload(self, file_obj: IO[bytes], folder: str) -> HostedImage:
        check_image(file_obj)
        extension = os.path.splitext(file_obj.name)[1].lower()
        name = self.storage.save(f"{folder}/{secrets.token_hex(12)}{extension}", file_obj)
        return HostedImage(url=self.storage.url(name), public_id=name)

    def destroy(self, public_id: str) -> None:
        if public_id and self.storage.exists(public_id):
            self.storage.delete(public_id)


def get_image_host() -> ImageHost:
    """Instantiate the configured image host backend."""
    return import_string(settings.IMAGE_HOST_BACKEND)()


def release_image(public_id: str | None) -> None:
    """Best-effort removal of a hosted image; failures are logged, not raised."""

    if not public_id:
        return
    try:
        get_image_host().destroy(public_id)
    except Exception:
        logger.exception("Could not release hosted image %s", public_id)


__all__ = [
    "ImageHost",
    "StorageImageHost",
    "HostedImage",
    "UnsupportedImage",
    "check_image",
    "get_image_host",
    "release_image",
    "COVERS_FOLDER",
    "AVATARS_FOLDER",
]
