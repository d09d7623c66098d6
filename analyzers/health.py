"""Health aggregator: market summaries, rankings and comparisons."""
import asyncio
from typing import Callable, List, Optional, Sequence

from analyzers.base import BaseAnalyzer, iso_timestamp
from analyzers.liquidity import LiquidityAnalyzer
from analyzers.microstructure import MicrostructureAnalyzer
from analyzers.volatility import VolatilityAnalyzer
from config.settings import AppConfig
from core.indicators import round_to
from core.scoring import overall_health_score
from models.enums import AlertSeverity, MarketType, VolatilityRegime
from models.market_data import MarketMeta
from models.schemas import (
    Alert,
    CompareEntry,
    CompareStats,
    Comparison,
    LiquidityScore,
    MarketSummaryReport,
    MomentumReport,
    QuickStats,
    RankingEntry,
    Rankings,
    ScoreSet,
    VolatilityCurrent,
)
from utils.exceptions import IntelligenceError, ValidationError

LOW_LIQUIDITY_SCORE = 30
STRONG_MOMENTUM_SCORE = 60


def build_alerts(
    liquidity: LiquidityScore,
    volatility: VolatilityCurrent,
    momentum: MomentumReport
) -> List[Alert]:
    alerts = []
    if liquidity.liquidity_score < LOW_LIQUIDITY_SCORE:
        alerts.append(Alert(
            type="low_liquidity",
            message=f"Liquidity score is {liquidity.liquidity_score} ({liquidity.score_label})",
            severity=AlertSeverity.WARNING,
        ))
    if volatility.regime == VolatilityRegime.EXTREME.value:
        alerts.append(Alert(
            type="extreme_volatility",
            message="Market is in extreme volatility regime",
            severity=AlertSeverity.CRITICAL,
        ))
    if abs(momentum.momentum_score) > STRONG_MOMENTUM_SCORE:
        alerts.append(Alert(
            type="strong_momentum",
            message=f"Strong {momentum.momentum_label} momentum (score: {momentum.momentum_score})",
            severity=AlertSeverity.INFO,
        ))
    return alerts


def rank(scored: Sequence[RankingEntry]) -> List[RankingEntry]:
    """Sort entries by score, highest first, and assign 1-based ranks."""
    ordered = sorted(scored, key=lambda entry: entry.score, reverse=True)
    return [entry.model_copy(update={"rank": i + 1}) for i, entry in enumerate(ordered)]


class HealthAggregator(BaseAnalyzer):
    """
    Combines liquidity, volatility and momentum into per-market health.

    Holds no state of its own; every figure comes from the injected analyzers,
    so their caches and the shared regime tracker are reused.
    """

    def __init__(
        self,
        liquidity: LiquidityAnalyzer,
        volatility: VolatilityAnalyzer,
        microstructure: MicrostructureAnalyzer,
        config: Optional[AppConfig] = None,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        Initialize the health aggregator.

        Args:
            liquidity: Liquidity analyzer
            volatility: Volatility analyzer
            microstructure: Microstructure analyzer
            config: Application configuration
            clock: Wall-clock time source (epoch seconds)
        """
        super().__init__(liquidity.source, liquidity.cache, config or liquidity.config, clock)
        self.liquidity = liquidity
        self.volatility = volatility
        self.microstructure = microstructure

    @staticmethod
    def overall_health(liquidity: float, volatility: float, momentum: float) -> float:
        return overall_health_score(liquidity, volatility, momentum)

    async def get_summary(self, market: MarketMeta) -> MarketSummaryReport:
        """
        Summarize a market's scores, quick stats and alerts.

        Raises:
            AnalyticsError: If any analyzer fails unexpectedly
        """
        liquidity, volatility, momentum, summary = await self._gather_market(market)

        report = MarketSummaryReport(
            **self.record_header(market, self.computed_ttl),
            scores=self._scores(liquidity, volatility, momentum),
            quick_stats=QuickStats(
                price_usd=round_to(summary.price, 6),
                change_24h_pct=round_to(momentum.indicators.price_change_24h_pct),
                volume_24h_usd=round_to(summary.volume),
                spread_bps=liquidity.metrics.spread_bps,
                volatility_regime=volatility.regime,
            ),
            alerts=build_alerts(liquidity, volatility, momentum),
        )
        for alert in report.alerts:
            self.log_info(f"{market.ticker}: {alert.message}", market_id=market.market_id, alert=alert.type)
        return report

    async def rank_liquidity(
        self,
        markets: Sequence[MarketMeta],
        market_type: Optional[MarketType] = None
    ) -> Rankings:
        """Rank markets by liquidity score, highest first."""
        selected = self._filter(markets, market_type)
        scores = await asyncio.gather(*(self.liquidity.get_score(m) for m in selected))
        return self._rankings(
            "liquidity", market_type, selected, [s.liquidity_score for s in scores]
        )

    async def rank_volatility(
        self,
        markets: Sequence[MarketMeta],
        market_type: Optional[MarketType] = None
    ) -> Rankings:
        """Rank markets by volatility score, most volatile first."""
        selected = self._filter(markets, market_type)
        current = await asyncio.gather(*(self.volatility.get_current(m) for m in selected))
        return self._rankings(
            "volatility", market_type, selected, [c.volatility_score for c in current]
        )

    async def compare(self, markets: Sequence[MarketMeta]) -> Comparison:
        """
        Compare scores and quick stats side by side.

        Raises:
            ValidationError: If fewer than two markets are given
        """
        if len(markets) < 2:
            raise ValidationError(
                "Provide at least 2 markets to compare",
                correlation_id=self.correlation_id,
                details={"count": len(markets)},
            )
        entries = await asyncio.gather(*(self._compare_entry(m) for m in markets))
        return Comparison(count=len(entries), timestamp=iso_timestamp(self.clock()), markets=list(entries))

    async def _compare_entry(self, market: MarketMeta) -> CompareEntry:
        liquidity, volatility, momentum, summary = await self._gather_market(market)
        return CompareEntry(
            market_id=market.market_id,
            market_name=market.ticker,
            market_type=market.market_type,
            scores=self._scores(liquidity, volatility, momentum),
            quick_stats=CompareStats(
                price_usd=round_to(summary.price, 6),
                volume_24h_usd=round_to(summary.volume),
                spread_bps=liquidity.metrics.spread_bps,
            ),
        )

    async def _gather_market(self, market: MarketMeta):
        try:
            return await asyncio.gather(
                self.liquidity.get_score(market),
                self.volatility.get_current(market),
                self.microstructure.get_momentum(market),
                self.source.fetch_market_summary(market),
            )
        except IntelligenceError:
            raise
        except Exception as e:
            raise self.handle_error(e, {"market_id": market.market_id}) from e

    def _scores(
        self,
        liquidity: LiquidityScore,
        volatility: VolatilityCurrent,
        momentum: MomentumReport
    ) -> ScoreSet:
        return ScoreSet(
            liquidity=liquidity.liquidity_score,
            volatility=volatility.volatility_score,
            momentum=momentum.momentum_score,
            overall_health=self.overall_health(
                liquidity.liquidity_score, volatility.volatility_score, momentum.momentum_score
            ),
        )

    @staticmethod
    def _filter(markets: Sequence[MarketMeta], market_type: Optional[MarketType]) -> List[MarketMeta]:
        if market_type is None:
            return list(markets)
        return [m for m in markets if m.market_type == market_type]

    def _rankings(
        self,
        metric: str,
        market_type: Optional[MarketType],
        markets: Sequence[MarketMeta],
        scores: Sequence[float]
    ) -> Rankings:
        entries = rank([
            RankingEntry(
                rank=0,
                market_id=m.market_id,
                market_name=m.ticker,
                market_type=m.market_type,
                score=score,
            )
            for m, score in zip(markets, scores)
        ])
        return Rankings(
            metric=metric,
            market_type_filter=market_type.value if market_type else None,
            count=len(entries),
            timestamp=iso_timestamp(self.clock()),
            rankings=entries,
        )
