"""Base analyzer class with common functionality."""
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from config.settings import AppConfig, get_config
from models.market_data import MarketMeta
from sources.base import MetricsSource
from utils.cache import ComputationCache
from utils.exceptions import AnalyticsError


def iso_timestamp(epoch_seconds: Optional[float] = None) -> str:
    """Format epoch seconds (default: now) as an ISO-8601 UTC string."""
    if epoch_seconds is None:
        epoch_seconds = time.time()
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).isoformat().replace("+00:00", "Z")


class BaseAnalyzer:
    """Base class for all analyzers in the engine."""

    def __init__(
        self,
        source: MetricsSource,
        cache: ComputationCache,
        config: Optional[AppConfig] = None,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        Initialize the base analyzer.

        Args:
            source: Upstream metrics source
            cache: Shared computation cache
            config: Application configuration. If None, loads from environment.
            clock: Wall-clock time source (epoch seconds). Defaults to time.time.
        """
        self.source = source
        self.cache = cache
        self.config = config or get_config()
        self.clock = clock or time.time
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._correlation_id: Optional[str] = None

    @property
    def correlation_id(self) -> Optional[str]:
        """Get the current correlation ID."""
        return self._correlation_id

    @correlation_id.setter
    def correlation_id(self, value: Optional[str]) -> None:
        """Set the correlation ID for request tracing."""
        self._correlation_id = value

    def generate_correlation_id(self) -> str:
        """Generate a new correlation ID."""
        self._correlation_id = str(uuid.uuid4())
        return self._correlation_id

    @property
    def computed_ttl(self) -> int:
        return self.config.cache.computed_ttl

    def record_header(self, market: MarketMeta, ttl: int) -> Dict[str, Any]:
        """Identity and freshness fields shared by every output record."""
        return {
            "market_id": market.market_id,
            "market_name": market.ticker,
            "market_type": market.market_type,
            "timestamp": iso_timestamp(self.clock()),
            "cache_ttl_seconds": ttl,
            "data_source": self.config.data_source,
        }

    def _log(self, level: int, message: str, **kwargs: Any) -> None:
        """Internal logging method with correlation ID."""
        extra = {"correlation_id": self._correlation_id}
        extra.update(kwargs)
        self.logger.log(level, message, extra=extra)

    def log_debug(self, message: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, **kwargs)

    def log_info(self, message: str, **kwargs: Any) -> None:
        self._log(logging.INFO, message, **kwargs)

    def log_warning(self, message: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, **kwargs)

    def log_error(self, message: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, **kwargs)

    def log_exception(self, message: str, exc: Exception, **kwargs: Any) -> None:
        """Log an exception with traceback."""
        extra = {"correlation_id": self._correlation_id}
        extra.update(kwargs)
        self.logger.exception(message, extra=extra, exc_info=exc)

    def handle_error(
        self,
        error: Exception,
        context: Optional[Dict[str, Any]] = None
    ) -> AnalyticsError:
        """
        Convert an exception to an AnalyticsError with context.

        Args:
            error: The original exception
            context: Additional context information

        Returns:
            AnalyticsError with correlation ID and details
        """
        context = context or {}
        analytics_error = AnalyticsError(
            message=str(error),
            correlation_id=self._correlation_id,
            details=context
        )
        self.log_exception(f"Error in {self.__class__.__name__}", error, **context)
        return analytics_error

    def health_check(self) -> Dict[str, Any]:
        """
        Check the health of the analyzer.

        Returns:
            Dictionary with health status and cache statistics
        """
        return {
            "analyzer": self.__class__.__name__,
            "status": "healthy",
            "source": self.source.name,
            "cache": self.cache.stats(),
            "correlation_id": self._correlation_id
        }
