"""
Pydantic schemas for transactional email
"""
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from app.models.email_log import EmailStatus
from app.schemas.common import CamelModel


class SendEmailRequest(CamelModel):
    to: EmailStr
    subject: str = Field(..., min_length=1, max_length=200)
    html_content: str = Field(..., min_length=1)
    related_shipment_id: Optional[int] = None


class EmailLogResponse(CamelModel):
    id: int
    to: str
    subject: str
    related_shipment_id: Optional[int] = None
    sent_by: Optional[int] = None
    status: EmailStatus
    error_message: Optional[str] = None
    provider_message_id: Optional[str] = None
    created_at: datetime
