"""
Error types for the MediGuardia hospital locator
Whole-query failures raise; per-element problems are filtered, never raised
"""

from typing import Dict, Optional

from config import Settings


class MediGuardiaError(Exception):
    """Base exception for MediGuardia errors."""
    pass


class APIError(MediGuardiaError):
    """Exception for API-related errors."""
    def __init__(self, message: str, api_name: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.api_name = api_name
        self.status_code = status_code


class FacilityQueryFailed(APIError):
    """The Overpass query could not be completed (transport, timeout, non-2xx)."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, "overpass", status_code)


class BackendUnavailableError(APIError):
    """The remote hospital API could not be reached or answered with an error."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, "hospital_api", status_code)


class InvalidQueryParameters(MediGuardiaError):
    """Malformed or out-of-range search parameters, rendered as HTTP 400."""
    def __init__(self, error: str, message: str):
        super().__init__(message)
        self.error = error
        self.message = message


class AuthenticationFailed(MediGuardiaError):
    """Missing or rejected bearer credential, rendered as HTTP 401."""
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def check_service_configuration(settings: Settings) -> Dict[str, bool]:
    """
    Check which external services are configured.

    Returns:
        Dict mapping service names to availability status
    """
    return {
        "overpass": bool(settings.overpass_url),
        "identity": settings.identity_configured,
        "hospital_api": bool(settings.hospital_api_base_url),
    }
