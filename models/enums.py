"""Enums for market intelligence models."""
from enum import Enum


class MarketType(str, Enum):
    """Market type."""
    SPOT = "spot"
    DERIVATIVE = "derivative"


class TradeDirection(str, Enum):
    """Trade direction (aggressor side)."""
    BUY = "buy"
    SELL = "sell"

    @classmethod
    def from_string(cls, value: str) -> "TradeDirection":
        """Convert string to TradeDirection."""
        try:
            return cls(value.lower())
        except (ValueError, AttributeError):
            raise ValueError(f"Invalid trade direction: {value}. Must be 'buy' or 'sell'")


class ExecutionRole(str, Enum):
    """Execution side of a fill."""
    MAKER = "maker"
    TAKER = "taker"


class VolatilityRegime(str, Enum):
    """Volatility regime buckets."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EXTREME = "extreme"


class LiquidityLabel(str, Enum):
    """Liquidity score buckets."""
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"
    CRITICAL = "Critical"


class MomentumLabel(str, Enum):
    """Momentum score buckets."""
    STRONG_BEARISH = "strong_bearish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"
    BULLISH = "bullish"
    STRONG_BULLISH = "strong_bullish"


class FlowDirection(str, Enum):
    """Dominant side of recent order flow."""
    BUY_DOMINANT = "buy_dominant"
    SELL_DOMINANT = "sell_dominant"
    NEUTRAL = "neutral"


class VolumeTrend(str, Enum):
    """Volume trend between the older and newer halves of a trade batch."""
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class AlertSeverity(str, Enum):
    """Summary alert severity."""
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"
