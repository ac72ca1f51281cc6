"""
Pydantic schemas for uploads
"""
from typing import List, Optional

from pydantic import Field

from app.schemas.common import CamelModel


class UploadRequest(CamelModel):
    """
    JSON upload body.

    With `file` (base64 or data URI) the image is uploaded server-side;
    without it a presigned client-side upload is issued instead.
    """
    file: Optional[str] = None
    filename: Optional[str] = Field(None, max_length=255)
    shipment_id: Optional[int] = None


class UploadedImage(CamelModel):
    url: str
    public_id: str
    filename: Optional[str] = None


class UploadConstraints(CamelModel):
    allowed_formats: List[str]
    max_bytes: int


class UploadSignature(CamelModel):
    url: str
    fields: dict
    folder: str
    key: str
    expires_in: int
    constraints: UploadConstraints
