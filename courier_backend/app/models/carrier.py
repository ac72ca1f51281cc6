"""
Carrier model

Third-party carriers a shipment can be handed to. Shipments keep a weak
carrier_id; carriers are deleted without touching them.
"""
from typing import Optional

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Index

from app.core.database import Base
from app.core.utils import utcnow

TRACKING_CODE_PLACEHOLDER = "{trackingCode}"


class Carrier(Base):
    __tablename__ = "carriers"
    __table_args__ = (
        Index("ix_carriers_active", "is_active"),
    )

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(100), nullable=False)
    code = Column(String(20), unique=True, index=True, nullable=False)  # stored uppercase

    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(30), nullable=True)
    website = Column(String(500), nullable=True)

    # e.g. "https://carrier.example/track?n={trackingCode}"
    tracking_url_template = Column(String(500), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def get_tracking_url(self, tracking_code: str) -> Optional[str]:
        """Carrier's public tracking page for a code, if a template is set."""
        if not self.tracking_url_template:
            return None
        return self.tracking_url_template.replace(TRACKING_CODE_PLACEHOLDER, tracking_code)

    def __repr__(self):
        return f"<Carrier {self.code}>"
