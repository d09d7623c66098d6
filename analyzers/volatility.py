"""Volatility analyzer: annualized volatility, regime tracking and history."""
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

from analyzers.base import BaseAnalyzer, iso_timestamp
from config.settings import AppConfig
from core.indicators import (
    HOURLY_PERIODS_PER_YEAR,
    annualized_volatility,
    log_returns,
    max_drawdown,
    round_to,
)
from core.regime_tracker import RegimeState, RegimeTracker
from core.scoring import (
    regime_confidence,
    regime_thresholds,
    volatility_regime,
    volatility_score,
)
from models.enums import VolatilityRegime
from models.market_data import MarketMeta, Trade
from models.schemas import (
    PreviousRegime,
    RegimeMetrics,
    VolatilityCurrent,
    VolatilityHistory,
    VolatilityMetrics,
    VolatilityPoint,
    VolatilityRegimeReport,
)
from sources.base import MetricsSource
from utils.cache import ComputationCache


@dataclass(frozen=True)
class VolatilityWindow:
    """Volatility of one fixed-size window of the price series."""
    timestamp: int  # closing trade, epoch seconds
    volatility: float
    regime: VolatilityRegime
    close: float


def price_series(trades: Sequence[Trade]) -> List[Tuple[int, float]]:
    """Chronological (oldest-first) (timestamp, price) pairs of priced trades."""
    return [(t.timestamp, t.price) for t in reversed(trades) if t.price > 0]


def volatility_windows(
    series: Sequence[Tuple[int, float]],
    window_size: int = 20,
    periods_per_year: int = HOURLY_PERIODS_PER_YEAR
) -> Iterator[VolatilityWindow]:
    """
    Yield volatility for consecutive complete windows of a chronological series.

    Calling the function again restarts the sequence from the beginning.

    Args:
        series: (timestamp, price) pairs, oldest first
        window_size: Samples per window
        periods_per_year: Annualization factor
    """
    if window_size < 2:
        raise ValueError(f"window_size must be at least 2, got {window_size}")
    for end in range(window_size, len(series) + 1, window_size):
        window = series[end - window_size:end]
        prices = [price for _, price in window]
        vol = annualized_volatility(log_returns(prices), periods_per_year)
        yield VolatilityWindow(
            timestamp=window[-1][0],
            volatility=vol,
            regime=volatility_regime(vol),
            close=prices[-1],
        )


@dataclass(frozen=True)
class VolatilitySnapshot:
    """Volatility figures computed from one trade batch."""
    vol_1h: float
    vol_24h: float
    vol_7d: float
    return_1h_pct: float
    drawdown_pct: float


class VolatilityAnalyzer(BaseAnalyzer):
    """
    Analyzer for realized volatility and volatility regimes.

    Every current/regime evaluation feeds the injected RegimeTracker, which
    keeps the per-market regime state machine.
    """

    TRADE_LIMIT = 500
    HISTORY_WINDOW = 20

    def __init__(
        self,
        source: MetricsSource,
        cache: ComputationCache,
        regime_tracker: RegimeTracker,
        config: Optional[AppConfig] = None,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        Initialize the volatility analyzer.

        Args:
            source: Upstream metrics source
            cache: Shared computation cache
            regime_tracker: Shared per-market regime state machine
            config: Application configuration
            clock: Wall-clock time source (epoch seconds)
        """
        super().__init__(source, cache, config, clock)
        self.regime_tracker = regime_tracker

    async def get_current(self, market: MarketMeta) -> VolatilityCurrent:
        return await self.cache.get_or_compute(
            f"vol:cur:{market.market_id}", lambda: self._current(market), self.computed_ttl
        )

    async def get_regime(self, market: MarketMeta) -> VolatilityRegimeReport:
        return await self.cache.get_or_compute(
            f"vol:reg:{market.market_id}", lambda: self._regime(market), self.computed_ttl
        )

    async def get_history(self, market: MarketMeta, period: str = "7d") -> VolatilityHistory:
        return await self.cache.get_or_compute(
            f"vol:hist:{market.market_id}:{period}",
            lambda: self._history(market, period),
            self.computed_ttl * 2,
        )

    def snapshot(self, trades: Sequence[Trade]) -> VolatilitySnapshot:
        """Compute 1h/24h volatility, 1h return and drawdown from a trade batch."""
        now = self.clock()
        prices = [price for _, price in price_series(trades)]
        recent = [t for t in trades if t.timestamp > now - 3600]
        recent_prices = [price for _, price in price_series(recent)]

        vol_1h = annualized_volatility(log_returns(recent_prices))
        vol_24h = annualized_volatility(log_returns(prices))
        return_1h = 0.0
        if len(recent_prices) >= 2:
            return_1h = (recent_prices[-1] - recent_prices[0]) / recent_prices[0] * 100

        return VolatilitySnapshot(
            vol_1h=vol_1h,
            vol_24h=vol_24h,
            # A 500-trade batch never spans 7 days; the 24h estimate stands in
            vol_7d=vol_24h,
            return_1h_pct=return_1h,
            drawdown_pct=max_drawdown(prices),
        )

    async def _current(self, market: MarketMeta) -> VolatilityCurrent:
        trades = await self.source.fetch_trades(market, self.TRADE_LIMIT)
        snap = self.snapshot(trades)
        state = self.regime_tracker.observe_volatility(market.market_id, snap.vol_24h)

        return VolatilityCurrent(
            **self.record_header(market, self.computed_ttl),
            volatility_score=volatility_score(snap.vol_24h),
            regime=state.current_regime,
            regime_confidence=regime_confidence(snap.vol_24h),
            metrics=VolatilityMetrics(
                volatility_1h_annualized=round_to(snap.vol_1h, 1),
                volatility_24h_annualized=round_to(snap.vol_24h, 1),
                volatility_7d_annualized=round_to(snap.vol_7d, 1),
                current_return_1h_pct=round_to(snap.return_1h_pct),
                max_drawdown_24h_pct=round_to(snap.drawdown_pct),
            ),
        )

    async def _regime(self, market: MarketMeta) -> VolatilityRegimeReport:
        trades = await self.source.fetch_trades(market, self.TRADE_LIMIT)
        snap = self.snapshot(trades)
        state = self.regime_tracker.observe_volatility(market.market_id, snap.vol_24h)

        return VolatilityRegimeReport(
            **self.record_header(market, self.computed_ttl),
            regime=state.current_regime,
            regime_confidence=regime_confidence(snap.vol_24h),
            regime_since=iso_timestamp(state.since),
            regime_duration_hours=round_to(state.duration_hours(self.regime_tracker.now())),
            metrics=RegimeMetrics(
                volatility_1h_annualized=round_to(snap.vol_1h, 1),
                volatility_24h_annualized=round_to(snap.vol_24h, 1),
                volatility_7d_annualized=round_to(snap.vol_7d, 1),
                regime_thresholds=regime_thresholds(),
            ),
            previous_regime=self._previous_regime(state),
        )

    @staticmethod
    def _previous_regime(state: RegimeState) -> Optional[PreviousRegime]:
        transition = state.previous_transition
        if transition is None:
            return None
        return PreviousRegime(
            regime=transition.regime,
            ended_at=iso_timestamp(transition.ended_at),
            duration_hours=round_to(transition.duration_hours),
        )

    async def _history(self, market: MarketMeta, period: str) -> VolatilityHistory:
        trades = await self.source.fetch_trades(market, self.TRADE_LIMIT)
        points = [
            VolatilityPoint(
                timestamp=iso_timestamp(window.timestamp),
                volatility_annualized=round_to(window.volatility, 1),
                regime=window.regime,
                price=round_to(window.close, 4),
            )
            for window in volatility_windows(price_series(trades), self.HISTORY_WINDOW)
        ]
        return VolatilityHistory(
            **self.record_header(market, self.computed_ttl * 2),
            period=period,
            data_points=points,
        )
