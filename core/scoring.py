"""Score normalizers, composite formulas and label buckets."""
import math

from core.indicators import clamp, round_to, weighted_avg
from models.enums import LiquidityLabel, MomentumLabel, VolatilityRegime

LIQUIDITY_WEIGHTS = (0.4, 0.35, 0.25)
MOMENTUM_WEIGHTS = (0.3, 0.3, 0.2, 0.2)
HEALTH_WEIGHTS = (0.5, 0.3, 0.2)

# (regime, lower bound inclusive, upper bound exclusive)
REGIME_BANDS = (
    (VolatilityRegime.LOW, 0.0, 20.0),
    (VolatilityRegime.MEDIUM, 20.0, 50.0),
    (VolatilityRegime.HIGH, 50.0, 80.0),
    (VolatilityRegime.EXTREME, 80.0, 200.0),
)


def sigmoid_score(value: float, midpoint: float, steepness: float = 1.0) -> float:
    """
    Map an unbounded metric onto [0, 100] with a logistic curve.

    ``value == midpoint`` scores 50; steepness is relative to the midpoint.
    """
    if midpoint <= 0:
        return 50.0
    x = steepness * (value - midpoint) / midpoint
    x = clamp(x, -700.0, 700.0)
    return round_to(clamp(100 / (1 + math.exp(-x)), 0, 100))


def linear_score(value: float, lower: float, upper: float, invert: bool = False) -> float:
    """
    Map ``value`` linearly from [lower, upper] onto [0, 100], clamped.

    ``invert`` flips the direction so ``lower`` scores 100.
    """
    if upper == lower:
        return 50.0
    normalized = (value - lower) / (upper - lower) * 100
    if invert:
        normalized = 100 - normalized
    return round_to(clamp(normalized, 0, 100))


def composite_liquidity_score(depth: float, spread: float, resilience: float) -> float:
    return round_to(weighted_avg([depth, spread, resilience], LIQUIDITY_WEIGHTS))


def liquidity_label(score: float) -> LiquidityLabel:
    if score >= 80:
        return LiquidityLabel.EXCELLENT
    if score >= 60:
        return LiquidityLabel.GOOD
    if score >= 40:
        return LiquidityLabel.FAIR
    if score >= 20:
        return LiquidityLabel.POOR
    return LiquidityLabel.CRITICAL


def volatility_regime(volatility: float) -> VolatilityRegime:
    """Classify annualized volatility (%) into half-open regime bands."""
    if volatility < 20:
        return VolatilityRegime.LOW
    if volatility < 50:
        return VolatilityRegime.MEDIUM
    if volatility < 80:
        return VolatilityRegime.HIGH
    return VolatilityRegime.EXTREME


def regime_confidence(volatility: float) -> float:
    """
    Confidence in the regime classification.

    1.0 at the band center, 0.0 at either edge.
    """
    regime = volatility_regime(volatility)
    _, lower, upper = next(band for band in REGIME_BANDS if band[0] == regime)
    half_width = (upper - lower) / 2
    distance = min(volatility - lower, upper - volatility)
    return round_to(clamp(distance / half_width, 0, 1), 3)


def regime_thresholds() -> dict:
    """Band boundaries in the shape reported by the regime endpoint."""
    return {
        "low": {"max": 20},
        "medium": {"min": 20, "max": 50},
        "high": {"min": 50, "max": 80},
        "extreme": {"min": 80},
    }


def volatility_score(volatility: float) -> float:
    return linear_score(volatility, 0, 150)


def momentum_score(change_5m: float, change_1h: float, change_24h: float, flow_bias: float) -> float:
    """
    Composite momentum in [-100, 100].

    Args:
        change_5m: 5 minute price change (%)
        change_1h: 1 hour price change (%)
        change_24h: 24 hour price change (%)
        flow_bias: Buy/sell trade count bias in [-1, 1]
    """
    composite = weighted_avg(
        [change_5m * 10, change_1h * 5, change_24h * 2, flow_bias * 50],
        MOMENTUM_WEIGHTS,
    )
    return round_to(clamp(composite, -100, 100))


def momentum_label(score: float) -> MomentumLabel:
    if score <= -50:
        return MomentumLabel.STRONG_BEARISH
    if score <= -15:
        return MomentumLabel.BEARISH
    if score <= 15:
        return MomentumLabel.NEUTRAL
    if score <= 50:
        return MomentumLabel.BULLISH
    return MomentumLabel.STRONG_BULLISH


def overall_health_score(liquidity: float, volatility: float, momentum: float) -> float:
    """
    Blend liquidity, volatility and momentum scores into one health figure.

    Args:
        liquidity: Liquidity score [0, 100]
        volatility: Volatility score [0, 100]; lower is healthier
        momentum: Momentum score [-100, 100]
    """
    volatility_health = linear_score(volatility, 0, 100, invert=True)
    momentum_health = 50 + abs(50 - abs(momentum)) * 0.5
    return round_to(clamp(
        weighted_avg([liquidity, volatility_health, momentum_health], HEALTH_WEIGHTS),
        0, 100,
    ))
