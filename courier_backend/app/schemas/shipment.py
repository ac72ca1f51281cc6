"""
Pydantic schemas for shipments and tracking events

Nested value objects are stored as snake_case JSON on the Shipment row and
rendered camelCase on the wire.
"""
from datetime import date, datetime
from typing import Any, List, Optional

from pydantic import AliasChoices, EmailStr, Field, field_validator, model_validator

from app.core.utils import parse_date_only
from app.models.shipment import (
    ConsignmentType,
    Currency,
    PaymentMethod,
    PaymentStatus,
    ServiceType,
    ShipmentMode,
    ShipmentStatus,
    ShipmentType,
)
from app.schemas.common import CamelModel


def normalize_coordinates(value: Any) -> Optional[dict]:
    """
    Accept {lat, lng} or {latitude, longitude}; always yield {lat, lng}.

    Incomplete coordinates are dropped rather than rejected.
    """
    if value is None:
        return None
    if not isinstance(value, dict):
        return value
    lat = value.get("lat", value.get("latitude"))
    lng = value.get("lng", value.get("longitude"))
    if lat is None or lng is None:
        return None
    return {"lat": lat, "lng": lng}


def _parse_optional_date(value: Any) -> Any:
    if isinstance(value, str):
        if not value.strip():
            return None
        return parse_date_only(value)
    return value


class Coordinates(CamelModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class _HasCoordinates(CamelModel):
    coordinates: Optional[Coordinates] = None

    @field_validator("coordinates", mode="before")
    @classmethod
    def normalize(cls, v):
        return normalize_coordinates(v)


class ContactInfo(_HasCoordinates):
    name: str = Field(..., min_length=2, max_length=100)
    phone: str = Field(..., min_length=5, max_length=20)
    email: EmailStr
    address: str = Field(..., min_length=5, max_length=500)


class LocationInfo(_HasCoordinates):
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)


class Dimensions(CamelModel):
    """Centimetres."""
    length: float = Field(..., gt=0)
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)


class PackageDetails(CamelModel):
    """Weight in kg, declared value in `currency`."""
    weight: float = Field(..., gt=0)
    dimensions: Dimensions
    value: Optional[float] = Field(None, ge=0)
    currency: Optional[Currency] = None
    description: Optional[str] = Field(None, max_length=500)


class PackageImageInput(CamelModel):
    url: str = Field(..., min_length=1, max_length=1000)
    public_id: str = Field(..., min_length=1, max_length=500)


class PackageImage(PackageImageInput):
    uploaded_at: Optional[datetime] = None


class FreightCharges(CamelModel):
    base_charge: float = Field(..., ge=0)
    fuel_surcharge: Optional[float] = Field(None, ge=0)
    handling_fee: Optional[float] = Field(None, ge=0)
    insurance_fee: Optional[float] = Field(None, ge=0)
    customs_duty: Optional[float] = Field(None, ge=0)
    tax: Optional[float] = Field(None, ge=0)
    discount: Optional[float] = Field(None, ge=0)
    total: float = Field(..., ge=0)
    currency: Currency = Currency.USD
    is_paid: bool = False
    payment_method: Optional[PaymentMethod] = None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    paid_at: Optional[datetime] = None
    payment_reference: Optional[str] = Field(None, max_length=100)

    @field_validator("paid_at", mode="before")
    @classmethod
    def blank_paid_at(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


_CARRIER_ID_ALIASES = AliasChoices("carrierId", "carrier_id", "carrier")


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


class ShipmentCreate(CamelModel):
    consignment_type: ConsignmentType = ConsignmentType.SHIPMENT
    shipment_type: ShipmentType = ShipmentType.DOMESTIC
    shipment_mode: ShipmentMode = ShipmentMode.ROAD
    service_type: ServiceType = ServiceType.STANDARD

    sender: ContactInfo
    receiver: ContactInfo
    package: PackageDetails

    origin: str = Field(..., min_length=2, max_length=200)
    destination: str = Field(..., min_length=2, max_length=200)
    origin_location: Optional[LocationInfo] = None
    destination_location: Optional[LocationInfo] = None

    estimated_delivery_date: Optional[date] = None
    # More than five images are accepted; only the first five are kept
    package_images: List[PackageImageInput] = Field(default_factory=list)

    freight_charges: Optional[FreightCharges] = None
    carrier_id: Optional[int] = Field(None, validation_alias=_CARRIER_ID_ALIASES)
    carrier_tracking_code: Optional[str] = Field(None, max_length=100)

    send_notification: bool = True

    @field_validator("estimated_delivery_date", mode="before")
    @classmethod
    def parse_eta(cls, v):
        return _parse_optional_date(v)

    @field_validator("carrier_id", "carrier_tracking_code", mode="before")
    @classmethod
    def blank_carrier(cls, v):
        return _blank_to_none(v)


class ShipmentUpdate(CamelModel):
    """
    Partial update: only fields present in the request body are applied.

    An empty carrierId clears the carrier.
    """
    consignment_type: Optional[ConsignmentType] = None
    shipment_type: Optional[ShipmentType] = None
    shipment_mode: Optional[ShipmentMode] = None
    service_type: Optional[ServiceType] = None

    sender: Optional[ContactInfo] = None
    receiver: Optional[ContactInfo] = None
    package: Optional[PackageDetails] = None

    origin: Optional[str] = Field(None, min_length=2, max_length=200)
    destination: Optional[str] = Field(None, min_length=2, max_length=200)
    origin_location: Optional[LocationInfo] = None
    destination_location: Optional[LocationInfo] = None

    current_location: Optional[str] = Field(None, max_length=200)
    estimated_delivery_date: Optional[date] = None
    package_images: Optional[List[PackageImageInput]] = None

    freight_charges: Optional[FreightCharges] = None
    carrier_id: Optional[int] = Field(None, validation_alias=_CARRIER_ID_ALIASES)
    carrier_tracking_code: Optional[str] = Field(None, max_length=100)

    @field_validator("estimated_delivery_date", mode="before")
    @classmethod
    def parse_eta(cls, v):
        return _parse_optional_date(v)

    @field_validator("carrier_id", mode="before")
    @classmethod
    def blank_carrier(cls, v):
        return _blank_to_none(v)


class StatusUpdate(CamelModel):
    status: ShipmentStatus
    location: str = Field(..., min_length=2, max_length=200)
    description: Optional[str] = Field(None, max_length=500)


class TrackingEventUpdate(CamelModel):
    location: Optional[str] = Field(None, min_length=2, max_length=200)
    description: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def require_a_field(self):
        if self.location is None and self.description is None:
            raise ValueError("Provide a location or description to update")
        return self


# ----- Responses -----

class TrackingEventResponse(CamelModel):
    id: int
    shipment_id: int
    status: ShipmentStatus
    location: str
    description: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class UserSummary(CamelModel):
    id: int
    name: str
    email: str


class CarrierSummary(CamelModel):
    id: int
    name: str
    code: str
    tracking_url: Optional[str] = None


class ShipmentResponse(CamelModel):
    """Admin view of a shipment."""
    id: int
    tracking_code: str
    consignment_type: ConsignmentType
    shipment_type: ShipmentType
    shipment_mode: ShipmentMode
    service_type: ServiceType
    sender: ContactInfo
    receiver: ContactInfo
    package: PackageDetails
    origin: str
    destination: str
    origin_location: Optional[LocationInfo] = None
    destination_location: Optional[LocationInfo] = None
    status: ShipmentStatus
    current_location: Optional[str] = None
    estimated_delivery_date: Optional[date] = None
    package_images: List[PackageImage] = Field(default_factory=list)
    freight_charges: Optional[FreightCharges] = None
    carrier_id: Optional[int] = None
    carrier_tracking_code: Optional[str] = None
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class ShipmentDetailResponse(ShipmentResponse):
    events: List[TrackingEventResponse] = Field(default_factory=list)
    carrier: Optional[CarrierSummary] = None
    creator: Optional[UserSummary] = None


# ----- Public tracking -----

class PublicTrackingEvent(CamelModel):
    status: ShipmentStatus
    location: str
    description: str
    timestamp: datetime


class PublicContact(CamelModel):
    name: str
    address: str
    phone: Optional[str] = None
    email: Optional[str] = None


class PublicFreight(CamelModel):
    base_charge: float
    fuel_surcharge: Optional[float] = None
    insurance: Optional[float] = None
    handling_fee: Optional[float] = None
    customs_duty: Optional[float] = None
    tax: Optional[float] = None
    discount: Optional[float] = None
    total: float
    currency: Currency = Currency.USD


class PublicTrackingResponse(CamelModel):
    """
    Customer-facing snapshot: no creator, internal ids, carrier id or
    payment reference.
    """
    tracking_code: str
    status: ShipmentStatus
    origin: str
    destination: str
    current_location: Optional[str] = None
    estimated_delivery_date: Optional[date] = None
    sender: PublicContact
    receiver: PublicContact
    package: PackageDetails
    service_type: ServiceType
    consignment_type: ConsignmentType
    shipment_type: ShipmentType
    shipment_mode: ShipmentMode
    origin_location: Optional[LocationInfo] = None
    destination_location: Optional[LocationInfo] = None
    package_images: List[PackageImage] = Field(default_factory=list)
    freight: Optional[PublicFreight] = None
    payment_status: Optional[PaymentStatus] = None
    payment_method: Optional[PaymentMethod] = None
    carrier_tracking_code: Optional[str] = None
    events: List[PublicTrackingEvent] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
