"""Configuration management for the market intelligence engine."""
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List
from dotenv import load_dotenv

from models.enums import MarketType
from models.market_data import MarketMeta
from utils.exceptions import ConfigurationError

# Load environment variables once at module level
load_dotenv()


class Network(str, Enum):
    """Injective network options."""
    MAINNET = "mainnet"
    TESTNET = "testnet"
    DEVNET = "devnet"


class LogLevel(str, Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


DEFAULT_INDEXER_URLS = {
    Network.MAINNET: "https://sentry.exchange.grpc-web.injective.network",
    Network.TESTNET: "https://testnet.sentry.exchange.grpc-web.injective.network",
    Network.DEVNET: "https://devnet.api.injective.dev",
}


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class CacheConfig:
    """TTLs (seconds) per metric class."""
    orderbook_ttl: int = 10
    trades_ttl: int = 15
    computed_ttl: int = 30
    single_flight: bool = True

    @classmethod
    def from_env(cls) -> "CacheConfig":
        """Load cache config from environment variables."""
        return cls(
            orderbook_ttl=int(os.getenv("CACHE_TTL_ORDERBOOK", "10")),
            trades_ttl=int(os.getenv("CACHE_TTL_TRADES", "15")),
            computed_ttl=int(os.getenv("CACHE_TTL_COMPUTED", "30")),
            single_flight=_env_bool("CACHE_SINGLE_FLIGHT", "true"),
        )


@dataclass
class IndexerConfig:
    """Injective indexer connection settings."""
    network: Network = Network.MAINNET
    base_url: Optional[str] = None
    timeout_seconds: float = 10.0
    max_retries: int = 3

    def __post_init__(self):
        if not self.base_url:
            self.base_url = DEFAULT_INDEXER_URLS[self.network]

    @classmethod
    def from_env(cls) -> "IndexerConfig":
        """Load indexer config from environment variables."""
        network_name = os.getenv("NETWORK", "mainnet").lower()
        try:
            network = Network(network_name)
        except ValueError:
            raise ConfigurationError(
                f"Unknown NETWORK '{network_name}'. Must be one of: "
                + ", ".join(n.value for n in Network)
            )

        return cls(
            network=network,
            base_url=os.getenv("INDEXER_BASE_URL"),
            timeout_seconds=float(os.getenv("INDEXER_TIMEOUT_SECONDS", "10")),
            max_retries=int(os.getenv("INDEXER_MAX_RETRIES", "3")),
        )


def parse_markets(raw: str) -> List[MarketMeta]:
    """
    Parse a MARKETS string into market metadata.

    Format: comma separated ``market_id|ticker|type`` entries, e.g.
    ``0xa508...|INJ/USDT|spot,0x9b9...|BTC/USDT PERP|derivative``.
    Ticker and type are optional (type defaults to spot).
    """
    markets = []
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        parts = [p.strip() for p in entry.split("|")]
        market_id = parts[0]
        ticker = parts[1] if len(parts) > 1 and parts[1] else market_id
        type_name = parts[2].lower() if len(parts) > 2 and parts[2] else MarketType.SPOT.value
        try:
            market_type = MarketType(type_name)
        except ValueError:
            raise ConfigurationError(
                f"Invalid market type '{type_name}' for market {market_id}",
                details={"entry": entry},
            )
        base, _, quote = ticker.split(" ")[0].partition("/")
        markets.append(MarketMeta(
            market_id=market_id,
            ticker=ticker,
            market_type=market_type,
            base_symbol=base or ticker,
            quote_symbol=quote or "USDT",
        ))
    return markets


@dataclass
class AppConfig:
    """Main application configuration."""
    log_level: LogLevel = LogLevel.INFO
    log_format: str = "text"
    cache: CacheConfig = field(default_factory=CacheConfig)
    indexer: IndexerConfig = field(default_factory=IndexerConfig)
    markets: List[MarketMeta] = field(default_factory=list)

    @property
    def data_source(self) -> str:
        """Label reported in every output record."""
        return f"injective-{self.indexer.network.value}"

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load all configuration from environment variables."""
        log_level = LogLevel(
            os.getenv("LOG_LEVEL", "INFO").upper()
        )

        return cls(
            log_level=log_level,
            log_format=os.getenv("LOG_FORMAT", "text").lower(),
            cache=CacheConfig.from_env(),
            indexer=IndexerConfig.from_env(),
            markets=parse_markets(os.getenv("MARKETS", "")),
        )


# Global config instance (lazy-loaded)
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global application configuration."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config
