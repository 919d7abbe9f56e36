"""Supabase Storage client for file uploads."""
import uuid
from typing import Optional

from supabase import create_client

from app.config import settings


class StorageClient:
    """Client for Supabase Storage operations."""

    _client = None

    @classmethod
    def is_configured(cls) -> bool:
        return bool(settings.SUPABASE_URL and settings.SUPABASE_SERVICE_KEY)

    @classmethod
    def get_client(cls):
        """Get or create Supabase client."""
        if cls._client is None:
            if not cls.is_configured():
                raise ValueError(
                    "Supabase credentials not configured. "
                    "Set SUPABASE_URL and SUPABASE_SERVICE_KEY environment variables."
                )
            cls._client = create_client(
                settings.SUPABASE_URL,
                settings.SUPABASE_SERVICE_KEY
            )
        return cls._client

    @classmethod
    def get_bucket(cls):
        """Get the storage bucket."""
        client = cls.get_client()
        return client.storage.from_(settings.SUPABASE_STORAGE_BUCKET)

    @classmethod
    def upload(
        cls,
        content: bytes,
        path: str,
        content_type: str
    ) -> str:
        """
        Upload file to Supabase Storage.

        Args:
            content: File content as bytes
            path: Storage path (e.g., "medicine-bookings/package-images/ab12.jpg")
            content_type: MIME type (e.g., "image/png")

        Returns:
            Public URL of the uploaded file
        """
        bucket = cls.get_bucket()

        bucket.upload(
            path=path,
            file=content,
            file_options={"content-type": content_type, "upsert": "true"}
        )

        return cls.get_public_url(path)

    @classmethod
    def delete(cls, path: str) -> bool:
        """
        Delete file from Supabase Storage.

        Args:
            path: Storage path or full URL

        Returns:
            True if a delete was issued
        """
        if path.startswith("http"):
            path = cls.extract_path_from_url(path)

        if not path:
            return False

        cls.get_bucket().remove([path])
        return True

    @classmethod
    def get_public_url(cls, path: str) -> str:
        return cls.get_bucket().get_public_url(path)

    @classmethod
    def extract_path_from_url(cls, url: str) -> Optional[str]:
        """Storage path from a public object URL, or None for foreign URLs."""
        if not url:
            return None

        # https://xxx.supabase.co/storage/v1/object/public/uploads/path/file.ext
        marker = f"/storage/v1/object/public/{settings.SUPABASE_STORAGE_BUCKET}/"
        if marker in url:
            return url.split(marker)[1]

        return None

    @classmethod
    def generate_unique_filename(cls, original_filename: str, prefix: str = "") -> str:
        """
        Generate a unique filename to prevent collisions.

        Args:
            original_filename: Original file name
            prefix: Folder, e.g. "medicine-bookings/invoice-images"

        Returns:
            Unique filename with path
        """
        ext = ""
        if "." in original_filename:
            ext = "." + original_filename.rsplit(".", 1)[1].lower()

        unique_id = uuid.uuid4().hex[:12]

        if prefix:
            return f"{prefix}/{unique_id}{ext}"
        return f"{unique_id}{ext}"
