"""
Core Utilities

Shared helpers used across the application.
"""
from datetime import date, datetime, timezone


def utcnow() -> datetime:
    """
    Return timezone-aware UTC datetime.

    Use this instead of datetime.utcnow() which returns naive datetime.
    """
    return datetime.now(timezone.utc)


def utc_today() -> date:
    return utcnow().date()


def parse_date_only(value: str) -> date:
    """Parse a YYYY-MM-DD string (a full ISO timestamp is cut to its date part)."""
    return date.fromisoformat(value.strip()[:10])


def escape_like(value: str, escape_char: str = "\\") -> str:
    """Escape LIKE wildcards so user search terms match literally."""
    return (
        value.replace(escape_char, escape_char * 2)
        .replace("%", f"{escape_char}%")
        .replace("_", f"{escape_char}_")
    )
