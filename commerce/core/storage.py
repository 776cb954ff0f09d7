# commerce/core/storage.py
import logging
import uuid
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any

from commerce.core.config import get_settings
from commerce.core.supabase_client import supabase_admin

settings = get_settings()
logger = logging.getLogger(__name__)

# Key layout relied on by image ownership:
#   products/<product_id>/thumbnails/<uuid>.<ext>
#   products/<product_id>/images/<uuid>.<ext>
#   manufacturers/<slug>/logo-<uuid>.<ext>
PRODUCT_PREFIX = "products"
MANUFACTURER_PREFIX = "manufacturers"


def generate_filename(ext: str) -> str:
    """
    Generate a random filename using UUID4.

    Args:
        ext: File extension without dot (e.g. "png", "jpg")

    Returns:
        A filename like "<uuid4>.png"
    """
    return f"{uuid.uuid4()}.{ext}"


def product_thumbnail_key(product_id: uuid.UUID, ext: str) -> str:
    return f"{PRODUCT_PREFIX}/{product_id}/thumbnails/{generate_filename(ext)}"


def product_image_key(product_id: uuid.UUID, ext: str) -> str:
    return f"{PRODUCT_PREFIX}/{product_id}/images/{generate_filename(ext)}"


def manufacturer_logo_key(slug: str, ext: str) -> str:
    return f"{MANUFACTURER_PREFIX}/{slug}/logo-{generate_filename(ext)}"


class SupabaseObjectStorage:
    """
    Object storage collaborator backed by a private Supabase Storage bucket.

    Contract used by the services:
      - upload(key, bytes, content_type) -> key
      - exists(key) -> bool
      - delete(key) -> bool
      - delete_batch(keys) -> list of keys that could not be deleted
      - generate_read_url(key, ttl_minutes) -> {"url", "expires_at"}

    The Supabase client is created lazily so importing this module never
    requires storage credentials.
    """

    def __init__(self, bucket: str | None = None):
        self.bucket = bucket or settings.STORAGE_BUCKET

    def _bucket(self):
        return supabase_admin().storage.from_(self.bucket)

    def upload(self, key: str, file_bytes: bytes, content_type: str) -> str:
        """
        Upload raw bytes to the bucket under `key`.

        Existing objects at the same key are overwritten ('upsert').
        """
        self._bucket().upload(
            key,
            file_bytes,
            {"content-type": content_type, "upsert": "true"},
        )
        logger.debug("Uploaded object %s (%d bytes)", key, len(file_bytes))
        return key

    def exists(self, key: str) -> bool:
        """
        Check whether an object exists by listing its folder.
        """
        if not key:
            return False
        folder, _, name = key.rpartition("/")
        entries: list[dict[str, Any]] = self._bucket().list(
            folder, {"search": name, "limit": 100}
        )
        return any(entry.get("name") == name for entry in entries or [])

    def delete(self, key: str) -> bool:
        return not self.delete_batch([key])

    def delete_batch(self, keys: list[str]) -> list[str]:
        """
        Delete several objects in one call.

        Returns the keys that were NOT removed (missing or failed).
        """
        if not keys:
            return []
        try:
            removed = self._bucket().remove(list(keys)) or []
        except Exception as exc:
            logger.warning("Bulk delete of %d objects failed: %s", len(keys), exc)
            return list(keys)

        removed_names = {entry.get("name") for entry in removed}
        failed = [key for key in keys if key not in removed_names]
        if failed:
            logger.warning("Objects not removed from storage: %s", failed)
        return failed

    def generate_read_url(self, key: str, ttl_minutes: int) -> dict[str, Any]:
        """
        Create a signed read URL valid for `ttl_minutes`.
        """
        response = self._bucket().create_signed_url(key, ttl_minutes * 60)
        url = response.get("signedURL") or response.get("signedUrl")
        if not url:
            raise RuntimeError(f"Storage returned no signed URL for {key}")
        return {
            "url": url,
            "expires_at": datetime.now(timezone.utc) + timedelta(minutes=ttl_minutes),
        }


@lru_cache
def get_storage() -> SupabaseObjectStorage:
    """
    FastAPI dependency returning the shared storage collaborator.

    Tests override this with an in-memory implementation.
    """
    return SupabaseObjectStorage()
