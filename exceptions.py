"""
Custom exception classes for device-side operations.
"""


class LocationProviderError(Exception):
    """Raised when the position source cannot produce a fix."""
    pass
