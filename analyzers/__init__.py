"""Market intelligence analyzers."""
from analyzers.base import BaseAnalyzer
from analyzers.liquidity import LiquidityAnalyzer
from analyzers.volatility import VolatilityAnalyzer
from analyzers.microstructure import MicrostructureAnalyzer
from analyzers.health import HealthAggregator

__all__ = [
    "BaseAnalyzer",
    "LiquidityAnalyzer",
    "VolatilityAnalyzer",
    "MicrostructureAnalyzer",
    "HealthAggregator",
]
