"""
Company settings model

Single row holding the contact details shown on the public site and in
email footers.
"""
from sqlalchemy import Column, Integer, String, DateTime

from app.core.database import Base
from app.core.utils import utcnow

DEFAULT_COMPANY_NAME = "Courier Express"


class CompanySettings(Base):
    __tablename__ = "company_settings"

    id = Column(Integer, primary_key=True)

    company_name = Column(String(200), default=DEFAULT_COMPANY_NAME, nullable=False)
    office_address = Column(String(500), default="", nullable=False)
    phone = Column(String(50), default="", nullable=False)
    email = Column(String(255), default="", nullable=False)
    website = Column(String(500), default="", nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
