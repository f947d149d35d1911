"""
utils/otp_utils.py

Purpose: OTP row parsing helpers

- OTP code extraction from SMS text
- Phone masking for public broadcasts
- Country name cleanup
"""

import re

OTP_PATTERN = re.compile(r"\b\d{3,4}[-\s]?\d{3,4}\b|\b\d{4,8}\b", re.ASCII)


def extract_otp(message: str) -> str:
    """
    Extracts the first OTP-looking code from an SMS body.

    Accepts split codes ("123-456", "123 456") as well as plain
    4 to 8 digit runs.

    Returns:
        The matched code, or "" when none is present
    """
    if not message:
        return ""
    match = OTP_PATTERN.search(message)
    return match.group(0) if match else ""


def mask_phone_number(phone: str) -> str:
    """
    Hides the middle of a phone number: "923001234567" -> "923•••4567".
    Numbers shorter than 6 characters are returned unchanged.
    """
    if len(phone) < 6:
        return phone
    return f"{phone[:3]}•••{phone[-4:]}"


def clean_country_name(name: str) -> str:
    """
    Reduces a panel country label to its first word.

    "Pakistan - Jazz" -> "Pakistan", "" -> "Unknown"
    """
    if not name:
        return "Unknown"
    parts = name.split("-", 1)[0].split()
    if parts:
        return parts[0]
    return "Unknown"


def flatten_message(message: str) -> str:
    """Puts a multi-line SMS on one line."""
    return message.replace("\n", " ").replace("\r", "")


def as_text(value) -> str:
    """
    Renders a JSON cell as text.

    Integral floats lose their ".0" so phone numbers and epoch times
    sent as JSON numbers keep their digits.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
