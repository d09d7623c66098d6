"""Main entry point for the market intelligence engine."""
import argparse
import asyncio
import json
import logging
import sys
from dataclasses import dataclass
from typing import List, Optional, Sequence

from analyzers import (
    HealthAggregator,
    LiquidityAnalyzer,
    MicrostructureAnalyzer,
    VolatilityAnalyzer,
)
from config.settings import AppConfig, get_config
from core.regime_tracker import RegimeTracker
from models.market_data import MarketMeta
from sources.base import MetricsSource
from sources.indexer import IndexerMetricsSource
from utils.cache import ComputationCache
from utils.exceptions import IntelligenceError
from utils.logging import setup_logging

logger = logging.getLogger(__name__)


@dataclass
class Engine:
    """Wired analyzer stack sharing one cache, source and regime tracker."""
    config: AppConfig
    cache: ComputationCache
    regime_tracker: RegimeTracker
    source: MetricsSource
    liquidity: LiquidityAnalyzer
    volatility: VolatilityAnalyzer
    microstructure: MicrostructureAnalyzer
    health: HealthAggregator

    async def close(self) -> None:
        await self.source.close()


def build_engine(config: AppConfig, source: Optional[MetricsSource] = None) -> Engine:
    """
    Build the analyzer stack.

    Args:
        config: Application configuration
        source: Metrics source; defaults to the Injective indexer

    Returns:
        Engine with every analyzer wired to the shared cache and tracker
    """
    cache = ComputationCache(
        default_ttl=config.cache.computed_ttl,
        single_flight=config.cache.single_flight,
    )
    regime_tracker = RegimeTracker()
    source = source or IndexerMetricsSource(config.indexer, cache, config.cache)

    liquidity = LiquidityAnalyzer(source, cache, config)
    volatility = VolatilityAnalyzer(source, cache, regime_tracker, config)
    microstructure = MicrostructureAnalyzer(source, cache, config)
    health = HealthAggregator(liquidity, volatility, microstructure, config)

    return Engine(
        config=config,
        cache=cache,
        regime_tracker=regime_tracker,
        source=source,
        liquidity=liquidity,
        volatility=volatility,
        microstructure=microstructure,
        health=health,
    )


def resolve_market(markets: Sequence[MarketMeta], key: str) -> MarketMeta:
    """Find a configured market by id or ticker; unknown keys become ad-hoc spot markets."""
    for market in markets:
        if key in (market.market_id, market.ticker):
            return market
    return MarketMeta(market_id=key, ticker=key)


async def run(config: AppConfig, market_keys: List[str], compare: bool) -> str:
    """Run the requested analysis and return it as a JSON document."""
    markets = [resolve_market(config.markets, key) for key in market_keys] or list(config.markets)
    engine = build_engine(config)
    engine.health.generate_correlation_id()
    try:
        if compare:
            result = (await engine.health.compare(markets)).model_dump(by_alias=True)
        else:
            summaries = await asyncio.gather(*(engine.health.get_summary(m) for m in markets))
            result = [s.model_dump(by_alias=True) for s in summaries]
    finally:
        await engine.close()
    return json.dumps(result, indent=2, default=str)


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the market intelligence engine."""
    parser = argparse.ArgumentParser(description="Market intelligence analytics")
    parser.add_argument(
        "--market", action="append", default=[],
        help="Market id or ticker (repeatable); defaults to the configured MARKETS"
    )
    parser.add_argument("--compare", action="store_true", help="Compare the selected markets")
    args = parser.parse_args(argv)

    try:
        config = get_config()
        setup_logging(config, stream=sys.stderr)
        logger.info(
            f"Configuration loaded: network={config.indexer.network.value}, "
            f"markets={len(config.markets)}, single_flight={config.cache.single_flight}"
        )
        print(asyncio.run(run(config, args.market, args.compare)))
    except IntelligenceError as e:
        logger.error(
            f"Market intelligence error: {e.message}",
            extra={"correlation_id": e.correlation_id, "details": str(e.details)}
        )
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user")
        sys.exit(0)


if __name__ == "__main__":
    main()
