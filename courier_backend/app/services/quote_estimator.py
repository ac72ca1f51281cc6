"""
Quote estimation

Price = max(chargeable weight × base rate × service multiplier, tier minimum)
        + 2% insurance on declared value
        + flat high-value handling fee above 1000

Chargeable weight is the greater of actual and dimensional weight
(L × W × H in cm / 5000). Pure functions, no I/O.
"""
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Mapping, Optional, Tuple, Union

from app.core.utils import utc_today
from app.models.shipment import ServiceType

BASE_RATES: Dict[ServiceType, float] = {
    ServiceType.ECONOMY: 3.5,
    ServiceType.STANDARD: 5.0,
    ServiceType.EXPRESS: 12.0,
    ServiceType.PRIORITY: 15.0,
    ServiceType.SAME_DAY: 25.0,
    ServiceType.NEXT_DAY: 18.0,
    ServiceType.OVERNIGHT: 20.0,
}

SERVICE_MULTIPLIERS: Dict[ServiceType, float] = {
    ServiceType.ECONOMY: 0.8,
    ServiceType.STANDARD: 1.0,
    ServiceType.EXPRESS: 1.5,
    ServiceType.PRIORITY: 1.8,
    ServiceType.SAME_DAY: 2.5,
    ServiceType.NEXT_DAY: 2.0,
    ServiceType.OVERNIGHT: 2.2,
}

MINIMUM_CHARGES: Dict[ServiceType, float] = {
    ServiceType.ECONOMY: 10.0,
    ServiceType.STANDARD: 15.0,
    ServiceType.EXPRESS: 35.0,
    ServiceType.PRIORITY: 45.0,
    ServiceType.SAME_DAY: 75.0,
    ServiceType.NEXT_DAY: 50.0,
    ServiceType.OVERNIGHT: 60.0,
}

# (min, max) business days
DELIVERY_DAYS: Dict[ServiceType, Tuple[int, int]] = {
    ServiceType.SAME_DAY: (0, 1),
    ServiceType.NEXT_DAY: (1, 2),
    ServiceType.OVERNIGHT: (1, 2),
    ServiceType.EXPRESS: (1, 3),
    ServiceType.PRIORITY: (2, 4),
    ServiceType.STANDARD: (5, 10),
    ServiceType.ECONOMY: (10, 21),
}
DEFAULT_DELIVERY_DAYS = (5, 10)

DIM_WEIGHT_DIVISOR = 5000  # cm³ per kg
INSURANCE_RATE = 0.02
HIGH_VALUE_THRESHOLD = 1000
HIGH_VALUE_HANDLING_FEE = 25.0

def round_money(value: float) -> float:
    """Round half-up to 2 decimal places."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _dim(dimensions, name: str) -> float:
    if isinstance(dimensions, Mapping):
        return float(dimensions[name])
    return float(getattr(dimensions, name))


def _tier(service_type: Union[ServiceType, str]) -> ServiceType:
    return ServiceType(service_type)


@dataclass
class BreakdownLine:
    label: str
    amount: float


@dataclass
class EstimationResult:
    base_charge: float
    dimensional_weight: float
    chargeable_weight: float
    insurance_fee: float
    handling_fee: float
    total_estimate: float
    breakdown: List[BreakdownLine] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "baseCharge": self.base_charge,
            "dimensionalWeight": self.dimensional_weight,
            "chargeableWeight": self.chargeable_weight,
            "insuranceFee": self.insurance_fee,
            "handlingFee": self.handling_fee,
            "totalEstimate": self.total_estimate,
            "breakdown": [{"label": line.label, "amount": line.amount} for line in self.breakdown],
        }


def calculate_dimensional_weight(dimensions) -> float:
    return (
        _dim(dimensions, "length") * _dim(dimensions, "width") * _dim(dimensions, "height")
    ) / DIM_WEIGHT_DIVISOR


def get_chargeable_weight(weight: float, dimensions) -> float:
    return max(float(weight), calculate_dimensional_weight(dimensions))


def _floored_base_charge(chargeable_weight: float, service_type: ServiceType) -> float:
    raw = chargeable_weight * BASE_RATES[service_type] * SERVICE_MULTIPLIERS[service_type]
    return max(raw, MINIMUM_CHARGES[service_type])


def calculate_estimate(package, service_type: Union[ServiceType, str]) -> EstimationResult:
    """
    Full estimate for a package.

    `package` is a PackageDetails schema or a dict with weight, dimensions
    and optional value.
    """
    tier = _tier(service_type)
    if isinstance(package, Mapping):
        weight, dimensions, value = package["weight"], package["dimensions"], package.get("value")
    else:
        weight, dimensions, value = package.weight, package.dimensions, package.value

    dimensional_weight = calculate_dimensional_weight(dimensions)
    chargeable_weight = max(float(weight), dimensional_weight)
    base_charge = _floored_base_charge(chargeable_weight, tier)

    declared_value = float(value or 0)
    insurance_fee = declared_value * INSURANCE_RATE
    handling_fee = HIGH_VALUE_HANDLING_FEE if declared_value > HIGH_VALUE_THRESHOLD else 0.0
    total = base_charge + insurance_fee + handling_fee

    breakdown = [
        BreakdownLine("Shipping charge", round_money(base_charge)),
        BreakdownLine("Insurance (2%)", round_money(insurance_fee)),
    ]
    if handling_fee > 0:
        breakdown.append(BreakdownLine("High-value handling", round_money(handling_fee)))

    return EstimationResult(
        base_charge=round_money(base_charge),
        dimensional_weight=round_money(dimensional_weight),
        chargeable_weight=round_money(chargeable_weight),
        insurance_fee=round_money(insurance_fee),
        handling_fee=round_money(handling_fee),
        total_estimate=round_money(total),
        breakdown=breakdown,
    )


def get_quick_estimate(weight: float, dimensions, service_type: Union[ServiceType, str]) -> float:
    """Floored base charge only (no insurance or handling)."""
    tier = _tier(service_type)
    return round_money(_floored_base_charge(get_chargeable_weight(weight, dimensions), tier))


def get_estimated_delivery_days(service_type: Union[ServiceType, str]) -> Tuple[int, int]:
    try:
        tier = _tier(service_type)
    except ValueError:
        return DEFAULT_DELIVERY_DAYS
    return DELIVERY_DAYS.get(tier, DEFAULT_DELIVERY_DAYS)


def calculate_estimated_delivery_date(
    service_type: Union[ServiceType, str],
    today: Optional[date] = None,
) -> date:
    """UTC today plus the tier's maximum delivery days."""
    _, max_days = get_estimated_delivery_days(service_type)
    return (today or utc_today()) + timedelta(days=max_days)
