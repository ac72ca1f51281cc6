"""
Request utility functions

Client identification shared by the rate limiter, auth and audit logging.
"""
from typing import Optional
from fastapi import Request

UNKNOWN_CLIENT = "unknown"


def extract_client_ip(request: Request) -> Optional[str]:
    """
    Extract client IP from request, handling proxy headers.

    Checks X-Forwarded-For first (for requests behind load balancers), then
    X-Real-IP. Returns None when neither header is present.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        # X-Forwarded-For can contain multiple IPs; first is the original client
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return None


def get_client_identifier(request: Request) -> str:
    """
    Rate-limit bucket identity for a request.

    Clients without proxy headers all share the "unknown" bucket.
    """
    return extract_client_ip(request) or UNKNOWN_CLIENT


def extract_user_agent(request: Request) -> Optional[str]:
    """Extract user agent string from request."""
    return request.headers.get("user-agent")
