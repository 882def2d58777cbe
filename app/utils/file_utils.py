"""
File upload utilities for validating photos and documents before they are
forwarded to the marketplace upload endpoints.
"""

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from PIL import Image, UnidentifiedImageError
from fastapi import UploadFile

from app.config import get_settings
from app.utils.exceptions import FileUploadError

settings = get_settings()


@dataclass
class ValidatedUpload:
    """An upload that passed validation, ready to be forwarded."""
    filename: str
    content_type: str
    content: bytes
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class UploadRules:
    """Constraints for one kind of upload."""
    kind: str
    allowed_types: Tuple[str, ...]
    max_size: int
    min_width: int = 0
    min_height: int = 0


# MIME type -> extensions and the PIL format name
SUPPORTED_FORMATS: Dict[str, Tuple[List[str], Optional[str]]] = {
    'image/jpeg': (['.jpg', '.jpeg'], 'jpeg'),
    'image/png': (['.png'], 'png'),
    'image/webp': (['.webp'], 'webp'),
    'application/pdf': (['.pdf'], None),
}


def photo_rules() -> UploadRules:
    return UploadRules(
        kind="photo",
        allowed_types=tuple(settings.allowed_image_types),
        max_size=settings.max_photo_size,
        min_width=FileValidator.MIN_WIDTH,
        min_height=FileValidator.MIN_HEIGHT,
    )


def profile_photo_rules() -> UploadRules:
    return UploadRules(
        kind="profile_photo",
        allowed_types=tuple(settings.allowed_image_types),
        max_size=settings.max_profile_photo_size,
    )


def document_rules() -> UploadRules:
    return UploadRules(
        kind="document",
        allowed_types=tuple(settings.allowed_document_types),
        max_size=settings.max_document_size,
    )


class FileValidator:
    """Utility class for file validation operations."""

    # Listing photo dimension constraints
    MIN_WIDTH = 200
    MIN_HEIGHT = 200
    MAX_WIDTH = 10000
    MAX_HEIGHT = 10000

    @classmethod
    def validate_mime_type(cls, mime_type: str, allowed_types: Tuple[str, ...]) -> str:
        """
        Validate MIME type.

        Args:
            mime_type: MIME type to validate
            allowed_types: MIME types accepted for this upload

        Returns:
            Validated MIME type

        Raises:
            FileUploadError: If MIME type is not supported
        """
        if not mime_type:
            raise FileUploadError("File type could not be determined")

        if mime_type not in allowed_types:
            raise FileUploadError(
                f"File type '{mime_type}' not supported. "
                f"Supported types: {', '.join(allowed_types)}"
            )

        return mime_type

    @classmethod
    def validate_file_extension(cls, filename: str, mime_type: str) -> str:
        """Check that the filename extension matches the declared MIME type."""
        extension = Path(filename).suffix.lower()
        expected_extensions = SUPPORTED_FORMATS.get(mime_type, ([], None))[0]
        if extension not in expected_extensions:
            raise FileUploadError(
                f"File extension '{extension or '(none)'}' doesn't match file type '{mime_type}'"
            )
        return extension

    @classmethod
    def validate_file_size(cls, file_size: int, max_size: int) -> int:
        """
        Validate file size.

        Args:
            file_size: Size of the file in bytes
            max_size: Maximum allowed size in bytes

        Returns:
            Validated file size

        Raises:
            FileUploadError: If file is empty or exceeds the limit
        """
        if file_size <= 0:
            raise FileUploadError("File is empty")

        if file_size > max_size:
            max_mb = max_size / (1024 * 1024)
            actual_mb = file_size / (1024 * 1024)
            raise FileUploadError(
                f"File size ({actual_mb:.1f}MB) exceeds maximum allowed size ({max_mb:.0f}MB)"
            )

        return file_size

    @classmethod
    def validate_image_content(cls, content: bytes, mime_type: str, rules: UploadRules) -> Tuple[int, int]:
        """
        Decode the image with Pillow and check its format and dimensions.

        Args:
            content: Raw file bytes
            mime_type: Declared MIME type
            rules: Upload constraints

        Returns:
            Tuple of (width, height)

        Raises:
            FileUploadError: If the image cannot be decoded or has invalid dimensions
        """
        try:
            with Image.open(io.BytesIO(content)) as img:
                width, height = img.size
                pil_format = img.format.lower() if img.format else ""
        except (UnidentifiedImageError, OSError) as e:
            raise FileUploadError(f"Invalid image file: {str(e)}")

        expected_format = SUPPORTED_FORMATS.get(mime_type, ([], None))[1]
        if expected_format and pil_format != expected_format:
            raise FileUploadError(f"Image format '{pil_format}' doesn't match file type '{mime_type}'")

        if width < rules.min_width or height < rules.min_height:
            raise FileUploadError(
                f"Image ({width}x{height}px) is below the minimum size "
                f"({rules.min_width}x{rules.min_height}px)"
            )
        if width > cls.MAX_WIDTH or height > cls.MAX_HEIGHT:
            raise FileUploadError(
                f"Image ({width}x{height}px) exceeds the maximum size ({cls.MAX_WIDTH}x{cls.MAX_HEIGHT}px)"
            )

        return width, height

    @classmethod
    def validate_content(
        cls,
        filename: str,
        content_type: str,
        content: bytes,
        rules: UploadRules
    ) -> ValidatedUpload:
        """
        Validate raw upload content against a set of rules.

        Raises:
            FileUploadError: If any validation fails
        """
        if not filename:
            raise FileUploadError("Filename is required")

        mime_type = cls.validate_mime_type(content_type, rules.allowed_types)
        cls.validate_file_extension(filename, mime_type)
        cls.validate_file_size(len(content), rules.max_size)

        width = height = None
        if mime_type.startswith("image/"):
            width, height = cls.validate_image_content(content, mime_type, rules)

        return ValidatedUpload(
            filename=Path(filename).name,
            content_type=mime_type,
            content=content,
            width=width,
            height=height,
        )

    @classmethod
    async def validate_upload_file(cls, file: UploadFile, rules: UploadRules) -> ValidatedUpload:
        """
        Comprehensive validation of an uploaded file.

        Args:
            file: FastAPI UploadFile object
            rules: Upload constraints

        Returns:
            ValidatedUpload holding the file content

        Raises:
            FileUploadError: If any validation fails
        """
        await file.seek(0)
        content = await file.read()
        return cls.validate_content(file.filename or "", file.content_type or "", content, rules)
