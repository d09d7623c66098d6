"""Custom exceptions for the market intelligence engine."""
from typing import Optional


class IntelligenceError(Exception):
    """Base exception for all market intelligence errors."""

    def __init__(
        self,
        message: str,
        correlation_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        super().__init__(message)
        self.message = message
        self.correlation_id = correlation_id
        self.details = details or {}


class ConfigurationError(IntelligenceError):
    """Raised when configuration is invalid or missing."""
    pass


class ValidationError(IntelligenceError):
    """Raised when analyzer input validation fails."""
    pass


class MarketDataError(IntelligenceError):
    """Raised when upstream market data calls fail."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        correlation_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        super().__init__(message, correlation_id, details)
        self.status_code = status_code


class AnalyticsError(IntelligenceError):
    """Raised when an analyzer cannot produce a result."""
    pass
