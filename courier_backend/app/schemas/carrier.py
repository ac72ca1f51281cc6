"""
Pydantic schemas for carriers
"""
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from app.schemas.common import CamelModel


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


def _check_url(v: Optional[str]) -> Optional[str]:
    if v is not None and not v.startswith(("http://", "https://")):
        raise ValueError("Invalid URL")
    return v


class CarrierCreate(CamelModel):
    name: str = Field(..., min_length=2, max_length=100)
    code: str = Field(..., min_length=2, max_length=20)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=30)
    website: Optional[str] = Field(None, max_length=500)
    tracking_url_template: Optional[str] = Field(None, max_length=500)
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def uppercase_code(cls, v):
        return v.upper()

    @field_validator("contact_email", "contact_phone", "website", "tracking_url_template", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return _blank_to_none(v)

    @field_validator("website")
    @classmethod
    def check_website(cls, v):
        return _check_url(v)


class CarrierUpdate(CamelModel):
    """Only fields present in the body are applied; "" clears optional contact fields."""
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    code: Optional[str] = Field(None, min_length=2, max_length=20)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=30)
    website: Optional[str] = Field(None, max_length=500)
    tracking_url_template: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None

    @field_validator("code")
    @classmethod
    def uppercase_code(cls, v):
        return v.upper() if v else v

    @field_validator("contact_email", "contact_phone", "website", "tracking_url_template", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return _blank_to_none(v)

    @field_validator("website")
    @classmethod
    def check_website(cls, v):
        return _check_url(v)


class CarrierResponse(CamelModel):
    id: int
    name: str
    code: str
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    website: Optional[str] = None
    tracking_url_template: Optional[str] = None
    is_active: bool
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime
