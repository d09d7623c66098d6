"""Pydantic schemas for analyzer output records.

Field names are part of the external contract and must stay stable.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.enums import (
    AlertSeverity,
    FlowDirection,
    LiquidityLabel,
    MarketType,
    MomentumLabel,
    TradeDirection,
    VolatilityRegime,
    VolumeTrend,
)


class MarketRecord(BaseModel):
    """Identity and freshness fields shared by every per-market record."""
    model_config = ConfigDict(use_enum_values=True, populate_by_name=True)

    market_id: str
    market_name: str
    market_type: MarketType
    timestamp: str
    cache_ttl_seconds: int
    data_source: str


# ---- Liquidity ----

class LiquidityComponents(BaseModel):
    depth_score: float
    spread_score: float
    resilience_score: float


class LiquidityMetrics(BaseModel):
    bid_depth_usd: float
    ask_depth_usd: float
    depth_imbalance_pct: float
    spread_bps: float
    spread_percentile_24h: float
    estimated_slippage_1k_bps: float
    estimated_slippage_10k_bps: float
    estimated_slippage_50k_bps: float


class LiquidityScore(MarketRecord):
    liquidity_score: float = Field(ge=0, le=100)
    score_label: LiquidityLabel
    components: LiquidityComponents
    metrics: LiquidityMetrics


class DepthLevel(BaseModel):
    distance_from_mid_pct: float
    bid_volume_usd: float
    ask_volume_usd: float
    cumulative_bid_usd: float
    cumulative_ask_usd: float


class DepthAnalysis(MarketRecord):
    levels: List[DepthLevel]
    total_bid_depth_usd: float
    total_ask_depth_usd: float


class SlippageEstimate(MarketRecord):
    trade_size_usd: float
    side: TradeDirection
    estimated_slippage_bps: float
    estimated_avg_price: float
    mid_price: float
    effective_price_impact_pct: float
    fillable: bool


class SpreadAnalysis(MarketRecord):
    current_spread_bps: float
    mid_price: float
    best_bid: float
    best_ask: float
    average_spread_1h_bps: float
    average_spread_24h_bps: float
    spread_stability_score: float


# ---- Volatility ----

class VolatilityMetrics(BaseModel):
    volatility_1h_annualized: float
    volatility_24h_annualized: float
    volatility_7d_annualized: float
    current_return_1h_pct: float
    max_drawdown_24h_pct: float


class VolatilityCurrent(MarketRecord):
    volatility_score: float = Field(ge=0, le=100)
    regime: VolatilityRegime
    regime_confidence: float = Field(ge=0, le=1)
    metrics: VolatilityMetrics


class RegimeMetrics(BaseModel):
    volatility_1h_annualized: float
    volatility_24h_annualized: float
    volatility_7d_annualized: float
    regime_thresholds: Dict[str, Dict[str, float]]


class PreviousRegime(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    regime: VolatilityRegime
    ended_at: str
    duration_hours: float


class VolatilityRegimeReport(MarketRecord):
    regime: VolatilityRegime
    regime_confidence: float = Field(ge=0, le=1)
    regime_since: str
    regime_duration_hours: float
    metrics: RegimeMetrics
    previous_regime: Optional[PreviousRegime] = None


class VolatilityPoint(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    timestamp: str
    volatility_annualized: float
    regime: VolatilityRegime
    price: float


class VolatilityHistory(MarketRecord):
    period: str
    data_points: List[VolatilityPoint]


# ---- Microstructure ----

class FlowWindow(BaseModel):
    buy_volume_usd: float
    sell_volume_usd: float
    buy_count: int
    sell_count: int
    net_flow_usd: float
    imbalance_ratio: float


class FlowWindows(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    window_5m: FlowWindow = Field(alias="5m")
    window_1h: FlowWindow = Field(alias="1h")
    window_24h: FlowWindow = Field(alias="24h")


class FlowAnalysis(MarketRecord):
    flow_score: float
    flow_direction: FlowDirection
    windows: FlowWindows
    whale_trades_1h: int
    whale_threshold_usd: float


class WhaleTrade(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    timestamp: str
    side: TradeDirection
    quantity: float
    price: float
    volume_usd: float
    size_multiple: float


class WhaleReport(MarketRecord):
    whale_threshold_usd: float
    period_hours: float
    total_whale_trades: int
    whale_buy_volume_usd: float
    whale_sell_volume_usd: float
    trades: List[WhaleTrade]


class MomentumIndicators(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    price_change_5m_pct: float
    price_change_1h_pct: float
    price_change_24h_pct: float
    volume_trend: VolumeTrend
    trade_flow_bias: float


class MomentumReport(MarketRecord):
    momentum_score: float = Field(ge=-100, le=100)
    momentum_label: MomentumLabel
    indicators: MomentumIndicators


# ---- Health / summary ----

class ScoreSet(BaseModel):
    liquidity: float
    volatility: float
    momentum: float
    overall_health: float


class QuickStats(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    price_usd: float
    change_24h_pct: float
    volume_24h_usd: float
    spread_bps: float
    volatility_regime: VolatilityRegime


class Alert(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    type: str
    message: str
    severity: AlertSeverity


class MarketSummaryReport(MarketRecord):
    scores: ScoreSet
    quick_stats: QuickStats
    alerts: List[Alert]


class RankingEntry(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    rank: int
    market_id: str
    market_name: str
    market_type: MarketType
    score: float


class Rankings(BaseModel):
    metric: str
    market_type_filter: Optional[str] = None
    count: int
    timestamp: str
    rankings: List[RankingEntry]


class CompareStats(BaseModel):
    price_usd: float
    volume_24h_usd: float
    spread_bps: float


class CompareEntry(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    market_id: str
    market_name: str
    market_type: MarketType
    scores: ScoreSet
    quick_stats: CompareStats


class Comparison(BaseModel):
    count: int
    timestamp: str
    markets: List[CompareEntry]
