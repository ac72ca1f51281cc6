"""
Pydantic schemas for company settings and password change
"""
from typing import Optional

from pydantic import ConfigDict, Field, field_validator

from app.schemas.common import CamelModel


class CompanySettingsResponse(CamelModel):
    company_name: str
    office_address: str
    phone: str
    email: str
    website: str


class CompanySettingsUpdate(CamelModel):
    """Empty strings are allowed and clear the field."""
    company_name: Optional[str] = Field(None, min_length=1, max_length=200)
    office_address: Optional[str] = Field(None, max_length=500)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    website: Optional[str] = Field(None, max_length=500)

    @field_validator("email")
    @classmethod
    def email_or_blank(cls, v):
        if v and ("@" not in v or v.startswith("@") or v.endswith("@")):
            raise ValueError("Invalid email address")
        return v

    @field_validator("website")
    @classmethod
    def url_or_blank(cls, v):
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("Invalid URL")
        return v


class PasswordChange(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=False)

    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)
    confirm_password: str = Field(..., min_length=1)
