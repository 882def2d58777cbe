"""
Upload service forwarding validated files to the marketplace upload endpoints.
"""

from dataclasses import dataclass
from typing import Optional
import logging

from fastapi import UploadFile

from app.services.api_client import MarketplaceAPIClient
from app.utils.exceptions import FileUploadError
from app.utils.file_utils import (
    FileValidator,
    UploadRules,
    ValidatedUpload,
    document_rules,
    photo_rules,
    profile_photo_rules,
)

logger = logging.getLogger(__name__)


@dataclass
class UploadedPhoto:
    image_url: str
    thumbnail_url: Optional[str] = None


class UploadService:
    """
    Validates uploads locally with Pillow, then forwards them as multipart
    requests. The API stores the file and answers with its public URL.
    """

    def __init__(self, api: MarketplaceAPIClient):
        self.api = api

    async def _forward(
        self,
        path: str,
        upload: ValidatedUpload,
        fields: dict,
        token: Optional[str]
    ) -> dict:
        payload = await self.api.post(
            path,
            token=token,
            files={"file": (upload.filename, upload.content, upload.content_type)},
            data=fields
        )
        if not isinstance(payload, dict):
            raise FileUploadError("Upload failed, no file URL returned")
        return payload

    async def _validate(self, file: UploadFile, rules: UploadRules) -> ValidatedUpload:
        return await FileValidator.validate_upload_file(file, rules)

    async def upload_listing_photo(self, file: UploadFile, agent_id: str, token: str) -> UploadedPhoto:
        """
        Upload one listing photo.

        Args:
            file: Uploaded image
            agent_id: Owning agent
            token: Agent bearer token

        Returns:
            Stored photo URLs

        Raises:
            FileUploadError: If the image is invalid or the API returns no URL
        """
        upload = await self._validate(file, photo_rules())
        payload = await self._forward(
            "/api/upload/photo",
            upload,
            {"photo_type": "property", "agent_id": agent_id},
            token
        )
        image_url = payload.get("image_url") or payload.get("photo_url") or payload.get("url")
        if not image_url:
            raise FileUploadError("Upload failed, no file URL returned")
        logger.info(
            f"Listing photo uploaded: {upload.filename}",
            extra={"size": upload.size, "width": upload.width, "height": upload.height}
        )
        return UploadedPhoto(image_url=image_url, thumbnail_url=payload.get("thumbnail_url"))

    async def upload_profile_photo(self, file: UploadFile, token: Optional[str] = None) -> str:
        upload = await self._validate(file, profile_photo_rules())
        payload = await self._forward("/api/upload/photo", upload, {"photo_type": "profile"}, token)
        url = payload.get("photo_url") or payload.get("image_url") or payload.get("url")
        if not url:
            raise FileUploadError("Upload failed, no file URL returned")
        return url

    async def upload_document(
        self,
        file: UploadFile,
        document_type: str = "license",
        token: Optional[str] = None
    ) -> str:
        """
        Upload a document such as an agent license or a contact attachment.

        Returns:
            Stored document URL
        """
        upload = await self._validate(file, document_rules())
        payload = await self._forward(
            "/api/upload/document",
            upload,
            {"document_type": document_type},
            token
        )
        url = payload.get("document_url") or payload.get("url")
        if not url:
            raise FileUploadError("Upload failed, no file URL returned")
        logger.info(f"Document uploaded: {upload.filename}", extra={"document_type": document_type})
        return url
