from app.models.user import User, UserRole
from app.models.shipment import (
    Shipment,
    TrackingEvent,
    ShipmentStatus,
    ServiceType,
    ShipmentType,
    ShipmentMode,
    ConsignmentType,
    PaymentMethod,
    PaymentStatus,
    Currency,
    DEFAULT_EVENT_DESCRIPTIONS,
    MAX_PACKAGE_IMAGES,
)
from app.models.quote import Quote, QuoteStatus
from app.models.carrier import Carrier
from app.models.company_settings import CompanySettings
from app.models.email_log import EmailLog, EmailStatus
from app.models.audit_log import AuditLog, AuditAction
