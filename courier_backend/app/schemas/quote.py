"""
Pydantic schemas for quote requests
"""
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from app.models.quote import QuoteStatus
from app.models.shipment import ServiceType
from app.schemas.common import CamelModel
from app.schemas.shipment import PackageDetails


class QuoteCreate(CamelModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    phone: str = Field(..., min_length=5, max_length=20)
    origin: str = Field(..., min_length=2, max_length=200)
    destination: str = Field(..., min_length=2, max_length=200)
    package_details: PackageDetails
    service_type: ServiceType


class QuoteRespond(CamelModel):
    estimated_price: float = Field(..., gt=0)
    admin_response: str = Field(..., min_length=1, max_length=1000)


class DeliveryWindow(CamelModel):
    """Business days."""
    min: int
    max: int


class QuoteSubmitted(CamelModel):
    id: int
    status: QuoteStatus
    estimated_price: float
    estimated_delivery: DeliveryWindow
    message: str


class QuoteResponse(CamelModel):
    id: int
    name: str
    email: str
    phone: str
    origin: str
    destination: str
    package_details: PackageDetails
    service_type: ServiceType
    estimated_price: Optional[float] = None
    status: QuoteStatus
    admin_response: Optional[str] = None
    responded_at: Optional[datetime] = None
    responded_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime
