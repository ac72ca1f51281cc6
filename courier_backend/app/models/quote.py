"""
Quote request model

Submitted from the public site with a computed estimate; an admin responds
once (PENDING → RESPONDED).
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, JSON, Text, ForeignKey, Enum as SQLEnum
import enum

from app.core.database import Base
from app.core.utils import utcnow
from app.models.shipment import ServiceType


class QuoteStatus(str, enum.Enum):
    PENDING = "PENDING"
    RESPONDED = "RESPONDED"
    CONVERTED = "CONVERTED"


class Quote(Base):
    __tablename__ = "quotes"

    id = Column(Integer, primary_key=True, index=True)

    # Requester
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=False)

    origin = Column(String(200), nullable=False)
    destination = Column(String(200), nullable=False)

    # {weight, dimensions{length,width,height}, value?, description?}
    package_details = Column(JSON, nullable=False)
    service_type = Column(SQLEnum(ServiceType, native_enum=False, length=20), nullable=False)

    estimated_price = Column(Float, nullable=True)

    status = Column(
        SQLEnum(QuoteStatus, native_enum=False, length=20),
        default=QuoteStatus.PENDING,
        nullable=False,
        index=True,
    )
    admin_response = Column(Text, nullable=True)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    responded_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
