"""
Email log model

One row per send attempt, successful or not.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, Enum as SQLEnum
import enum

from app.core.database import Base
from app.core.utils import utcnow


class EmailStatus(str, enum.Enum):
    SENT = "SENT"
    FAILED = "FAILED"


class EmailLog(Base):
    __tablename__ = "email_logs"

    id = Column(Integer, primary_key=True, index=True)

    to = Column(String(255), nullable=False)
    subject = Column(String(200), nullable=False)
    html_content = Column(Text, nullable=False)

    # Weak references: the shipment or admin may be gone later
    related_shipment_id = Column(Integer, nullable=True, index=True)
    sent_by = Column(Integer, nullable=True)

    status = Column(SQLEnum(EmailStatus, native_enum=False, length=10), nullable=False)
    error_message = Column(Text, nullable=True)
    provider_message_id = Column(String(100), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
