"""
Tracking code generation

Format: CRR-XXXXXXXX-XX
- XXXXXXXX: first 8 hex characters of a UUID4, uppercased
- XX: 2 random characters from [A-Z0-9]

Uniqueness against stored shipments is the caller's job
(see ShipmentService.create_shipment).
"""
import re
import secrets
import string
import uuid

PREFIX = "CRR"
ALPHANUMERIC = string.ascii_uppercase + string.digits
MAX_TRACKING_CODE_ATTEMPTS = 5

TRACKING_CODE_PATTERN = re.compile(r"^CRR-[A-Z0-9]{8}-[A-Z0-9]{2}$")


def generate_tracking_code() -> str:
    uuid_part = uuid.uuid4().hex[:8].upper()
    suffix = "".join(secrets.choice(ALPHANUMERIC) for _ in range(2))
    return f"{PREFIX}-{uuid_part}-{suffix}"


def normalize_tracking_code(code: str) -> str:
    return code.strip().upper()


def is_valid_tracking_code(code: str) -> bool:
    return bool(TRACKING_CODE_PATTERN.match(code.upper()))
