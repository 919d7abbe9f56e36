"""Upload service for booking image validation and storage."""
import io
import logging
from typing import List, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from app.core.errors import UploadError
from app.core.storage import StorageClient

logger = logging.getLogger(__name__)


# Allowed MIME types and the Pillow format each must decode as
ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "JPEG",
    "image/jpg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
}

MAX_IMAGE_SIZE = 5 * 1024 * 1024  # 5MB
MAX_FILES_PER_FIELD = 10

PACKAGE_IMAGES_FOLDER = "medicine-bookings/package-images"
INVOICE_IMAGES_FOLDER = "medicine-bookings/invoice-images"


class UploadService:
    """Service for handling booking image uploads."""

    @staticmethod
    def validate_image(
        content: bytes,
        content_type: str,
        filename: str
    ) -> Tuple[bool, Optional[str]]:
        """
        Validate image file.

        Args:
            content: File content as bytes
            content_type: MIME type
            filename: Original filename

        Returns:
            Tuple of (is_valid, error_message)
        """
        expected_format = ALLOWED_IMAGE_TYPES.get((content_type or "").lower())
        if expected_format is None:
            return False, f"Invalid image type for {filename}: {content_type}. Allowed: JPEG, PNG, WEBP"

        if not content:
            return False, f"{filename} is empty"

        if len(content) > MAX_IMAGE_SIZE:
            max_mb = MAX_IMAGE_SIZE / (1024 * 1024)
            actual_mb = len(content) / (1024 * 1024)
            return False, f"Image too large: {actual_mb:.1f}MB. Maximum: {max_mb:.0f}MB"

        try:
            img = Image.open(io.BytesIO(content))
            actual_format = img.format
            img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError):
            return False, f"{filename} is not a valid image"

        if actual_format != expected_format:
            return False, f"{filename} content does not match {content_type}"

        return True, None

    @classmethod
    def upload_image(
        cls,
        content: bytes,
        filename: str,
        content_type: str,
        folder: str
    ) -> dict:
        """
        Validate and store one image.

        Returns:
            Dict with url, fileName, fileSize, mimeType
        """
        is_valid, error = cls.validate_image(content, content_type, filename)
        if not is_valid:
            raise UploadError(error)

        path = StorageClient.generate_unique_filename(filename, folder)
        try:
            url = StorageClient.upload(content, path, content_type)
        except Exception as e:
            logger.error(f"Storage upload failed for {path}: {e}")
            raise UploadError("Failed to store uploaded image") from e

        return {
            "url": url,
            "fileName": filename,
            "fileSize": len(content),
            "mimeType": content_type,
        }

    @classmethod
    def upload_booking_images(
        cls,
        package_files: List[Tuple[bytes, str, str]],
        invoice_files: List[Tuple[bytes, str, str]],
    ) -> dict:
        """
        Upload package and invoice images of one booking submission.

        Args:
            package_files: (content, filename, content_type) tuples
            invoice_files: (content, filename, content_type) tuples

        Returns:
            {"packageImages": [...], "invoiceImages": [...]}
        """
        if not package_files and not invoice_files:
            raise UploadError("No files uploaded")

        for label, files in (("package", package_files), ("invoice", invoice_files)):
            if len(files) > MAX_FILES_PER_FIELD:
                raise UploadError(f"Too many {label} images. Maximum: {MAX_FILES_PER_FIELD}")

        # Validate everything before storing anything
        for content, filename, content_type in package_files + invoice_files:
            is_valid, error = cls.validate_image(content, content_type, filename)
            if not is_valid:
                raise UploadError(error)

        stored: list[dict] = []
        result: dict = {"packageImages": [], "invoiceImages": []}
        try:
            for key, folder, files in (
                ("packageImages", PACKAGE_IMAGES_FOLDER, package_files),
                ("invoiceImages", INVOICE_IMAGES_FOLDER, invoice_files),
            ):
                for content, filename, content_type in files:
                    image = cls.upload_image(content, filename, content_type, folder)
                    stored.append(image)
                    result[key].append(image)
        except UploadError:
            cls.discard(stored)
            raise

        logger.info(
            f"Stored {len(result['packageImages'])} package and "
            f"{len(result['invoiceImages'])} invoice images"
        )
        return result

    @staticmethod
    def discard(images: List[dict]) -> None:
        """Remove images already stored by a submission that failed part way."""
        for image in images:
            try:
                StorageClient.delete(image["url"])
            except Exception as e:
                logger.warning(f"Could not remove orphaned upload {image['url']}: {e}")
