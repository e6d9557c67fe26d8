"""
Input validation utilities for the client.

Mirrors the checks the mobile apps run before hitting the backend so that
obviously bad input never costs a round trip. Every validator returns the
normalized value or raises domain.errors.ValidationError.
"""
import re

from domain.errors import ValidationError

MOBILE_PATTERN = re.compile(r"^[6-9]\d{9}$")
OTP_PATTERN = re.compile(r"^\d{6}$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def format_mobile_number(mobile: str) -> str:
    """Strip everything but digits."""
    return re.sub(r"\D", "", mobile or "")


def validate_mobile_number(mobile: str) -> str:
    """
    Validate an Indian mobile number (10 digits starting with 6-9).

    Returns:
        The digits-only mobile number
    """
    digits = format_mobile_number(mobile)
    if not MOBILE_PATTERN.match(digits):
        raise ValidationError("Please enter a valid 10-digit mobile number", code="invalid_mobile")
    return digits


def validate_otp(otp: str) -> str:
    otp = (otp or "").strip()
    if not OTP_PATTERN.match(otp):
        raise ValidationError("OTP must be 6 digits", code="invalid_otp")
    return otp


def validate_email_or_phone(value: str) -> str:
    """Admin login accepts either an email address or a mobile number."""
    value = (value or "").strip()
    if EMAIL_PATTERN.match(value):
        return value
    return validate_mobile_number(value)


def validate_coordinates(latitude: float, longitude: float) -> tuple[float, float]:
    if not -90 <= latitude <= 90:
        raise ValidationError(f"Latitude out of range: {latitude}", code="invalid_latitude")
    if not -180 <= longitude <= 180:
        raise ValidationError(f"Longitude out of range: {longitude}", code="invalid_longitude")
    return float(latitude), float(longitude)
