"""
Shipment and TrackingEvent models

A shipment is one row; its nested value objects (contact blocks, package,
locations, images, freight charges) live in JSON columns. Tracking events
reference their shipment and are read newest first (created_at, then id).
"""
from sqlalchemy import (
    Column, Integer, String, Date, DateTime, JSON, Text,
    ForeignKey, Index, Enum as SQLEnum
)
import enum

from app.core.database import Base
from app.core.utils import utcnow


class ShipmentStatus(str, enum.Enum):
    """Shipment lifecycle status. Any status may follow any other."""
    CREATED = "CREATED"
    PICKUP_SCHEDULED = "PICKUP_SCHEDULED"
    PICKED_UP = "PICKED_UP"
    RECEIVED_AT_ORIGIN_HUB = "RECEIVED_AT_ORIGIN_HUB"
    STORED = "STORED"
    READY_FOR_DISPATCH = "READY_FOR_DISPATCH"
    IN_TRANSIT = "IN_TRANSIT"
    ARRIVED_AT_DESTINATION_HUB = "ARRIVED_AT_DESTINATION_HUB"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    ON_HOLD = "ON_HOLD"
    DELIVERY_FAILED = "DELIVERY_FAILED"
    RETURNED_TO_SENDER = "RETURNED_TO_SENDER"
    CANCELLED = "CANCELLED"
    DAMAGED = "DAMAGED"
    SEIZED = "SEIZED"


class ServiceType(str, enum.Enum):
    ECONOMY = "ECONOMY"
    STANDARD = "STANDARD"
    EXPRESS = "EXPRESS"
    PRIORITY = "PRIORITY"
    SAME_DAY = "SAME_DAY"
    NEXT_DAY = "NEXT_DAY"
    OVERNIGHT = "OVERNIGHT"


class ShipmentType(str, enum.Enum):
    DOMESTIC = "DOMESTIC"
    INTERNATIONAL = "INTERNATIONAL"
    LOCAL = "LOCAL"
    IMPORT = "IMPORT"
    EXPORT = "EXPORT"


class ShipmentMode(str, enum.Enum):
    AIR = "AIR"
    SEA = "SEA"
    ROAD = "ROAD"
    RAIL = "RAIL"
    COURIER = "COURIER"
    MULTIMODAL = "MULTIMODAL"


class ConsignmentType(str, enum.Enum):
    SHIPMENT = "SHIPMENT"
    CONSIGNMENT = "CONSIGNMENT"


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    BANK_TRANSFER = "BANK_TRANSFER"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    PAYPAL = "PAYPAL"
    STRIPE = "STRIPE"
    CRYPTO = "CRYPTO"
    INVOICE = "INVOICE"
    COD = "COD"  # cash on delivery
    POD = "POD"  # pay on delivery
    PREPAID = "PREPAID"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    PARTIAL = "PARTIAL"
    REFUNDED = "REFUNDED"
    FAILED = "FAILED"


class Currency(str, enum.Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    CAD = "CAD"
    AUD = "AUD"
    JPY = "JPY"
    CNY = "CNY"
    INR = "INR"
    NGN = "NGN"
    ZAR = "ZAR"
    AED = "AED"
    SGD = "SGD"
    CHF = "CHF"
    BRL = "BRL"
    MXN = "MXN"


# Event text used when the admin leaves the description blank
DEFAULT_EVENT_DESCRIPTIONS = {
    ShipmentStatus.CREATED: "Shipment has been created",
    ShipmentStatus.PICKUP_SCHEDULED: "Pickup has been scheduled",
    ShipmentStatus.PICKED_UP: "Package has been picked up",
    ShipmentStatus.RECEIVED_AT_ORIGIN_HUB: "Package received at origin hub",
    ShipmentStatus.STORED: "Package is stored in warehouse",
    ShipmentStatus.READY_FOR_DISPATCH: "Package is ready for dispatch",
    ShipmentStatus.IN_TRANSIT: "Package is in transit",
    ShipmentStatus.ARRIVED_AT_DESTINATION_HUB: "Package has arrived at destination hub",
    ShipmentStatus.OUT_FOR_DELIVERY: "Package is out for delivery",
    ShipmentStatus.DELIVERED: "Package has been delivered",
    ShipmentStatus.ON_HOLD: "Package is on hold",
    ShipmentStatus.DELIVERY_FAILED: "Delivery attempt failed",
    ShipmentStatus.RETURNED_TO_SENDER: "Package has been returned to sender",
    ShipmentStatus.CANCELLED: "Shipment has been cancelled",
    ShipmentStatus.DAMAGED: "Package has been reported as damaged",
    ShipmentStatus.SEIZED: "Package has been seized by customs or authorities",
}

MAX_PACKAGE_IMAGES = 5


def _enum_column(enum_cls, default, length=40):
    return Column(SQLEnum(enum_cls, native_enum=False, length=length), default=default, nullable=False)


class Shipment(Base):
    """
    A consignment moving through the network.

    tracking_code is the public identifier and never changes.
    carrier_id is a weak reference (no FK): deleting a carrier leaves it dangling.
    """
    __tablename__ = "shipments"
    __table_args__ = (
        Index("ix_shipments_status", "status"),
        Index("ix_shipments_created_at", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tracking_code = Column(String(20), unique=True, index=True, nullable=False)

    # Classification
    consignment_type = _enum_column(ConsignmentType, ConsignmentType.SHIPMENT)
    shipment_type = _enum_column(ShipmentType, ShipmentType.DOMESTIC)
    shipment_mode = _enum_column(ShipmentMode, ShipmentMode.ROAD)
    service_type = _enum_column(ServiceType, ServiceType.STANDARD)

    # Parties: {name, phone, email, address, coordinates?{lat,lng}}
    sender = Column(JSON, nullable=False)
    receiver = Column(JSON, nullable=False)

    # {weight, dimensions{length,width,height}, value?, currency?, description?}
    package = Column(JSON, nullable=False)

    # Route
    origin = Column(String(200), nullable=False)
    destination = Column(String(200), nullable=False)
    origin_location = Column(JSON, nullable=True)  # {city, state, country, coordinates?}
    destination_location = Column(JSON, nullable=True)

    status = _enum_column(ShipmentStatus, ShipmentStatus.CREATED)
    current_location = Column(String(200), nullable=True)
    estimated_delivery_date = Column(Date, nullable=True)  # date only, UTC

    # [{url, public_id, uploaded_at}], at most MAX_PACKAGE_IMAGES
    package_images = Column(JSON, default=list, nullable=False)

    freight_charges = Column(JSON, nullable=True)

    carrier_id = Column(Integer, nullable=True, index=True)
    carrier_tracking_code = Column(String(100), nullable=True)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<Shipment {self.tracking_code} {self.status}>"


class TrackingEvent(Base):
    """One entry in a shipment's public timeline."""
    __tablename__ = "tracking_events"
    __table_args__ = (
        Index("ix_tracking_events_shipment_created", "shipment_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    shipment_id = Column(Integer, ForeignKey("shipments.id"), nullable=False)

    status = _enum_column(ShipmentStatus, ShipmentStatus.CREATED)
    location = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<TrackingEvent {self.shipment_id} {self.status}>"
