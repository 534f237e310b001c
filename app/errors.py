"""
Custom domain exceptions for the inventory cache.
Every error has a name, not chaos.
"""
from typing import Optional


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


class ExternalServiceError(Exception):
    """Raised when an external service (Veeqo) fails."""
    pass


class UpstreamError(ExternalServiceError):
    """
    Raised when the inventory API answers with a non-success status,
    a malformed body, or cannot be reached at all.
    """

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class DataContractError(Exception):
    """Raised when upstream data doesn't conform to internal model."""
    pass


class AggregationError(Exception):
    """Raised when raw records cannot be turned into a snapshot."""
    pass
