import re
from datetime import date
from typing import Optional

EMAIL_RE = re.compile(r"^[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}$", re.IGNORECASE)
AU_PHONE_RE = re.compile(r"^(?:\+?61|0)[2-478](?:[ -]?[0-9]){8}$")
POSTCODE_RE = re.compile(r"^[0-9]{4}$")


def validate_required(value: str, message: str) -> Optional[str]:
    return None if (value or "").strip() else message


def validate_email(value: str) -> Optional[str]:
    if not (value or "").strip():
        return "Email is required"
    if not EMAIL_RE.match(value.strip()):
        return "Invalid email address"
    return None


def validate_phone(value: str) -> Optional[str]:
    if not (value or "").strip():
        return "Phone number is required"
    if not AU_PHONE_RE.match(value.strip()):
        return "Invalid Australian phone number"
    return None


def validate_postcode(value: str) -> Optional[str]:
    if not (value or "").strip():
        return "Postcode is required"
    if not POSTCODE_RE.match(value.strip()):
        return "Invalid postcode"
    return None


def parse_date(value: str) -> Optional[date]:
    try:
        return date.fromisoformat((value or "").strip())
    except ValueError:
        return None


def validate_preferred_date(value: str) -> Optional[str]:
    if not (value or "").strip():
        return "Preferred date is required"
    if parse_date(value) is None:
        return "Invalid date"
    return None
