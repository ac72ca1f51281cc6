"""
Audit log model

Persistent trail of admin actions. Rows are written by AuditService and
never updated.
"""
from sqlalchemy import Column, BigInteger, Integer, String, DateTime, JSON, Index, Enum as SQLEnum
import enum

from app.core.database import Base
from app.core.utils import utcnow


class AuditAction(str, enum.Enum):
    SHIPMENT_CREATED = "SHIPMENT_CREATED"
    SHIPMENT_UPDATED = "SHIPMENT_UPDATED"
    SHIPMENT_DELETED = "SHIPMENT_DELETED"
    SHIPMENT_STATUS_CHANGED = "SHIPMENT_STATUS_CHANGED"
    QUOTE_CREATED = "QUOTE_CREATED"
    QUOTE_RESPONDED = "QUOTE_RESPONDED"
    QUOTE_CONVERTED = "QUOTE_CONVERTED"
    CARRIER_CREATED = "CARRIER_CREATED"
    CARRIER_UPDATED = "CARRIER_UPDATED"
    CARRIER_DELETED = "CARRIER_DELETED"
    PAYMENT_RECORDED = "PAYMENT_RECORDED"
    PAYMENT_UPDATED = "PAYMENT_UPDATED"
    EMAIL_SENT = "EMAIL_SENT"
    EMAIL_FAILED = "EMAIL_FAILED"
    USER_LOGIN = "USER_LOGIN"
    USER_LOGOUT = "USER_LOGOUT"
    USER_LOGIN_FAILED = "USER_LOGIN_FAILED"
    FILE_UPLOADED = "FILE_UPLOADED"
    FILE_DELETED = "FILE_DELETED"


class AuditLog(Base):
    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
        Index("ix_audit_logs_created_at", "created_at"),
    )

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)

    action = Column(SQLEnum(AuditAction, native_enum=False, length=40), nullable=False, index=True)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(50), nullable=True)

    user_id = Column(Integer, nullable=True)
    user_email = Column(String(255), nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(200), nullable=True)

    previous_data = Column(JSON, nullable=True)
    new_data = Column(JSON, nullable=True)
    # "metadata" is reserved on declarative classes
    event_metadata = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
