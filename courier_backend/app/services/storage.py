"""
Storage Service - S3-compatible object storage

Package images for shipments.
Supports AWS S3, Cloudflare R2, MinIO, and other S3-compatible services.

Two upload paths:
- server-side: base64 / data URI or multipart bytes → put_object
- client-side: presigned POST issued by generate_upload_signature()
"""
import base64
import binascii
import hashlib
import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Optional, Tuple

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings
from app.core.exceptions import StorageError

logger = logging.getLogger(__name__)

PACKAGE_IMAGES_FOLDER = "courier/package_images"

UPLOAD_FAILED_MESSAGE = "Upload failed"

DATA_URI_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.+)$", re.DOTALL)


@dataclass
class UploadResult:
    """Result of a file upload."""
    success: bool
    url: Optional[str] = None
    key: Optional[str] = None
    error: Optional[str] = None
    content_type: Optional[str] = None
    size_bytes: Optional[int] = None


def sniff_image_type(content: bytes) -> Optional[str]:
    """MIME type from magic bytes, for the formats we accept."""
    if content.startswith(b"\x89PNG"):
        return "image/png"
    if content.startswith(b"\xff\xd8"):
        return "image/jpeg"
    if content.startswith(b"GIF8"):
        return "image/gif"
    if content[:4] == b"RIFF" and content[8:12] == b"WEBP":
        return "image/webp"
    return None


def decode_base64_image(data: str) -> Tuple[bytes, Optional[str]]:
    """
    Decode a data URI or bare base64 string.

    Returns (content, declared_or_sniffed_content_type).
    Raises ValueError for undecodable input.
    """
    declared_type = None
    match = DATA_URI_PATTERN.match(data.strip())
    if match:
        declared_type = match.group("mime").lower()
        payload = match.group("data")
    else:
        payload = data.strip()

    try:
        content = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError("Invalid base64 file data") from e

    if not content:
        raise ValueError("Empty file")

    return content, declared_type or sniff_image_type(content)


class StorageService:
    """
    S3-compatible storage service.

    Handles uploads to AWS S3, Cloudflare R2, or any S3-compatible service.
    The object key doubles as the image's public_id.
    """
    _validation_lock: Lock = Lock()
    _bucket_validated: bool = False

    ALLOWED_IMAGE_TYPES = {
        'image/png': '.png',
        'image/jpeg': '.jpg',
        'image/gif': '.gif',
        'image/webp': '.webp',
    }
    ALLOWED_FORMATS = ["jpg", "jpeg", "png", "gif", "webp"]

    MAX_PACKAGE_IMAGE_SIZE = 5 * 1024 * 1024  # 5MB
    PRESIGNED_POST_EXPIRES = 600  # seconds

    def __init__(self):
        self._client = None
        self._bucket = settings.S3_BUCKET
        self._region = settings.S3_REGION
        self._validate_configuration_once()

    @property
    def client(self):
        """Lazy-load S3 client."""
        if self._client is None:
            config = Config(
                signature_version='s3v4',
                retries={'max_attempts': 3, 'mode': 'standard'}
            )

            client_kwargs = {
                'service_name': 's3',
                'region_name': self._region,
                'config': config,
            }
            # Missing keys fall back to boto3's default credential chain (IAM roles)
            if settings.S3_ACCESS_KEY:
                client_kwargs['aws_access_key_id'] = settings.S3_ACCESS_KEY
                client_kwargs['aws_secret_access_key'] = settings.S3_SECRET_KEY

            # Custom endpoint for R2/MinIO
            if settings.S3_ENDPOINT:
                client_kwargs['endpoint_url'] = settings.S3_ENDPOINT

            self._client = boto3.client(**client_kwargs)

        return self._client

    def _get_public_url(self, key: str) -> str:
        """Get public URL for an uploaded object."""
        if settings.S3_PUBLIC_URL:
            return f"{settings.S3_PUBLIC_URL.rstrip('/')}/{key}"
        if settings.S3_ENDPOINT:
            endpoint = settings.S3_ENDPOINT.rstrip('/')
            return f"{endpoint}/{self._bucket}/{key}"
        return f"https://{self._bucket}.s3.{self._region}.amazonaws.com/{key}"

    def get_public_url(self, key: str) -> str:
        return self._get_public_url(key)

    def _generate_key(self, folder: str, filename: str, content: bytes, content_type: str) -> str:
        """Generate unique key for uploaded file."""
        content_hash = hashlib.md5(content).hexdigest()[:8]
        timestamp = datetime.now(timezone.utc).strftime('%Y%m%d')

        stem, _ = os.path.splitext(filename or "image")
        safe_stem = "".join(c for c in stem if c.isalnum() or c in '-_').lower() or "image"
        extension = self.ALLOWED_IMAGE_TYPES.get(content_type, "")

        return f"{folder}/{timestamp}_{content_hash}_{safe_stem}{extension}"

    def _validate_configuration_once(self):
        """Run storage validation a single time per process."""
        if StorageService._bucket_validated:
            return

        with StorageService._validation_lock:
            if StorageService._bucket_validated:
                return
            self._validate_configuration()
            StorageService._bucket_validated = True

    def _validate_configuration(self):
        """
        Verify bucket access in production.

        Requires s3:ListBucket (head_bucket) permission on the bucket.
        """
        if not self.is_configured():
            if settings.ENVIRONMENT.lower() != "production":
                logger.warning("S3 storage not configured; uploads will fail")
                return
            raise RuntimeError("S3 storage not configured. Set S3_BUCKET or S3_BUCKET_NAME.")

        if settings.ENVIRONMENT.lower() != "production":
            return

        try:
            self.client.head_bucket(Bucket=self._bucket)
            logger.info(
                "S3 bucket validated: bucket=%s region=%s endpoint=%s",
                self._bucket,
                self._region,
                settings.S3_ENDPOINT or "aws",
            )
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', 'Unknown')
            error_msg = e.response.get('Error', {}).get('Message', str(e))
            detail = f"S3 bucket validation failed for '{self._bucket}': {error_code} - {error_msg}"
            if error_code in ("InvalidAccessKeyId", "SignatureDoesNotMatch", "AccessDenied"):
                detail += " (hint: credentials/role are missing access to this bucket)"
            raise RuntimeError(detail) from e

    def _validate_image(
        self,
        content: bytes,
        content_type: Optional[str],
        max_size: int,
    ) -> Tuple[bool, Optional[str]]:
        """Validate image file."""
        if content_type not in self.ALLOWED_IMAGE_TYPES:
            return False, f"Invalid file type. Allowed: {', '.join(self.ALLOWED_FORMATS)}"

        if len(content) > max_size:
            max_mb = max_size / (1024 * 1024)
            actual_mb = len(content) / (1024 * 1024)
            return False, f"File too large: {actual_mb:.1f}MB. Max: {max_mb:.0f}MB"

        # Declared type must match the bytes
        if sniff_image_type(content) != content_type:
            return False, f"File content does not match {content_type}"

        return True, None

    async def upload_package_image(
        self,
        content: bytes,
        content_type: Optional[str],
        filename: Optional[str] = None,
    ) -> UploadResult:
        """
        Upload a package image to S3.

        Returns:
            UploadResult with URL and key on success
        """
        is_valid, error = self._validate_image(
            content, content_type, self.MAX_PACKAGE_IMAGE_SIZE
        )
        if not is_valid:
            return UploadResult(success=False, error=error)

        key = self._generate_key(PACKAGE_IMAGES_FOLDER, filename or "image", content, content_type)

        try:
            self.client.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=content,
                ContentType=content_type,
                CacheControl='public, max-age=31536000',  # keys are content-addressed
            )

            url = self._get_public_url(key)
            logger.info(f"Uploaded package image: {key}")

            return UploadResult(
                success=True,
                url=url,
                key=key,
                content_type=content_type,
                size_bytes=len(content),
            )

        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', 'Unknown')
            error_msg = e.response.get('Error', {}).get('Message', str(e))
            logger.error(f"S3 upload failed: {error_code} - {error_msg}")
            return UploadResult(success=False, error=UPLOAD_FAILED_MESSAGE)

        except BotoCoreError as e:
            logger.error(f"Storage upload error: {e}")
            return UploadResult(success=False, error=UPLOAD_FAILED_MESSAGE)

    async def upload_base64_image(self, data: str, filename: Optional[str] = None) -> UploadResult:
        """Upload from a data URI or bare base64 string."""
        try:
            content, content_type = decode_base64_image(data)
        except ValueError as e:
            return UploadResult(success=False, error=str(e))
        return await self.upload_package_image(content, content_type, filename)

    async def delete_file(self, key: str) -> bool:
        """
        Delete an object from S3.

        A missing object counts as deleted. Raises StorageError otherwise.
        """
        try:
            self.client.delete_object(Bucket=self._bucket, Key=key)
            logger.info(f"Deleted object: {key}")
            return True
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', 'Unknown')
            if error_code in ("NoSuchKey", "404"):
                return True
            logger.error(f"Delete failed for {key}: {error_code}")
            raise StorageError("Failed to delete file", details={"key": key, "code": error_code}) from e
        except BotoCoreError as e:
            logger.error(f"Delete failed for {key}: {e}")
            raise StorageError("Failed to delete file", details={"key": key}) from e

    def get_upload_constraints(self) -> dict:
        return {
            "allowed_formats": list(self.ALLOWED_FORMATS),
            "max_bytes": self.MAX_PACKAGE_IMAGE_SIZE,
        }

    def generate_upload_signature(self, folder: str = PACKAGE_IMAGES_FOLDER) -> dict:
        """
        Presigned POST for a direct browser upload.

        The client substitutes its filename for ${filename} in the key.
        """
        timestamp = datetime.now(timezone.utc).strftime('%Y%m%d%H%M%S')
        key = f"{folder}/{timestamp}_${{filename}}"
        try:
            presigned = self.client.generate_presigned_post(
                Bucket=self._bucket,
                Key=key,
                Conditions=[
                    ["content-length-range", 1, self.MAX_PACKAGE_IMAGE_SIZE],
                    ["starts-with", "$Content-Type", "image/"],
                ],
                ExpiresIn=self.PRESIGNED_POST_EXPIRES,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Presigned POST generation failed: {e}")
            raise StorageError("Failed to generate upload signature") from e

        return {
            "url": presigned["url"],
            "fields": presigned["fields"],
            "folder": folder,
            "key": key,
            "expires_in": self.PRESIGNED_POST_EXPIRES,
            "constraints": self.get_upload_constraints(),
        }

    def is_configured(self) -> bool:
        """
        Check if S3 is configured.

        Missing access/secret keys are allowed (IAM/role-based auth).
        """
        return bool(settings.S3_BUCKET)


_storage_service: Optional[StorageService] = None


def get_storage_service() -> StorageService:
    """Process-wide StorageService (FastAPI dependency)."""
    global _storage_service
    if _storage_service is None:
        _storage_service = StorageService()
    return _storage_service
