"""
Unified configuration state management.

This module provides a single source of truth for all application configuration,
combining hierarchical YAML files with environment overrides, type validation,
and sensible defaults.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from tw_quant.infrastructure.impls.system import ProjectConfigPathResolver
from tw_quant.shared.models.enums import Fidelity

logger = logging.getLogger(__name__)

HOLIDAY_SOURCE_URL = (
    "https://staging.data.ntpc.gov.tw/api/datasets/"
    "308dcd75-6434-45bc-a95f-584da4fed251/json"
)

KNOWN_HOLIDAYS = [
    # 2024
    "2024-01-01",
    "2024-02-08",
    "2024-02-09",
    "2024-02-10",
    "2024-02-11",
    "2024-02-12",
    "2024-02-13",
    "2024-02-14",
    "2024-02-28",
    "2024-04-04",
    "2024-04-05",
    "2024-05-01",
    "2024-06-10",
    "2024-09-17",
    "2024-10-10",
    # 2025
    "2025-01-01",
    "2025-01-28",
    "2025-01-29",
    "2025-01-30",
    "2025-01-31",
    "2025-02-01",
    "2025-02-02",
    "2025-02-03",
    "2025-02-28",
    "2025-04-04",
    "2025-04-05",
    "2025-05-01",
    "2025-05-31",
    "2025-10-06",
    "2025-10-10",
]

# Cron expressions (minute hour day month weekday), exchange-local time
DEFAULT_SCHEDULE = {
    "twse_indices_quotes": "0 14 * * 1-5",
    "tpex_indices_quotes": "0 14 * * 1-5",
    "twse_market_trades": "30 14 * * 1-5",
    "tpex_market_trades": "30 14 * * 1-5",
    "twse_indices_trades": "0 15 * * 1-5",
    "tpex_indices_trades": "0 15 * * 1-5",
    "twse_equities_quotes": "30 15-21/2 * * 1-5",
    "tpex_equities_quotes": "30 15-21/2 * * 1-5",
    "twse_equities_inst_investors_trades": "30 16 * * 1-5",
    "tpex_equities_inst_investors_trades": "30 16 * * 1-5",
    "market_stats": "0 20 * * 1-5",
    "technical_indicators": "0 22 * * 1-5",
}


# =============================================================================
# PYDANTIC MODELS - Type-Safe Configuration
# =============================================================================


class DatabaseConfig(BaseModel):
    """Document store connection configuration."""

    url: str = Field(default="memory://")
    min_pool_size: int = Field(default=1, ge=1, le=100)
    max_pool_size: int = Field(default=10, ge=1, le=500)
    command_timeout: float = Field(default=30.0, gt=0)
    tickers_collection: str = Field(default="tickers")
    market_stats_collection: str = Field(default="market_stats")
    technical_indicators_collection: str = Field(default="technical_indicators")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Only the in-memory store and PostgreSQL are supported."""
        if v.startswith(("memory://", "postgresql://", "postgres://")):
            return v
        raise ValueError("Database URL must start with memory:// or postgresql://")

    class Config:
        extra = "allow"


class FeedEndpointConfig(BaseModel):
    """One normalized feed endpoint (TWSE, TPEx or TAIFEX)."""

    base_url: str
    timeout: float = Field(default=30.0, gt=0)
    # dataset name -> path below base_url
    datasets: dict[str, str] = Field(default_factory=dict)

    class Config:
        extra = "allow"


class FeedsConfig(BaseModel):
    """Feed endpoints serving canonical records."""

    twse: FeedEndpointConfig = Field(
        default_factory=lambda: FeedEndpointConfig(base_url="http://localhost:8081/twse")
    )
    tpex: FeedEndpointConfig = Field(
        default_factory=lambda: FeedEndpointConfig(base_url="http://localhost:8081/tpex")
    )
    taifex: FeedEndpointConfig = Field(
        default_factory=lambda: FeedEndpointConfig(base_url="http://localhost:8081/taifex")
    )

    class Config:
        extra = "allow"


class HolidaysConfig(BaseModel):
    """Holiday oracle configuration."""

    source_url: str | None = Field(default=HOLIDAY_SOURCE_URL)
    timeout: float = Field(default=5.0, gt=0)
    cache_ttl_hours: float = Field(default=24.0, gt=0)
    known: list[str] = Field(default_factory=lambda: list(KNOWN_HOLIDAYS))

    class Config:
        extra = "allow"


class CalendarConfig(BaseModel):
    """Trading calendar resolution."""

    timezone: str = Field(default="Asia/Taipei")
    ticker_cutoff_hour: int = Field(default=14, ge=0, le=23)
    market_stats_cutoff_hour: int = Field(default=15, ge=0, le=23)
    max_lookback_days: int = Field(default=30, ge=1, le=366)

    class Config:
        extra = "allow"


class OrchestrationConfig(BaseModel):
    """Delays between groups, tasks and dates."""

    ticker_group_delay_seconds: float = Field(default=5.0, ge=0)
    market_task_delay_seconds: float = Field(default=2.0, ge=0)
    backfill_date_delay_seconds: float = Field(default=1.0, ge=0)
    scheduler_poll_seconds: float = Field(default=30.0, gt=0)

    class Config:
        extra = "allow"


class IndicatorsConfig(BaseModel):
    """Technical indicator engine settings."""

    lookback: int = Field(default=250, ge=5, le=2000)
    min_history: int = Field(default=5, ge=1)
    fidelity: Fidelity = Field(default=Fidelity.SIMPLIFIED)
    rsi_overbought: float = Field(default=70.0, gt=0, le=100)
    rsi_oversold: float = Field(default=30.0, ge=0, lt=100)
    volume_breakout_ratio: float = Field(default=2.0, gt=0)

    class Config:
        extra = "allow"


class ScheduleConfig(BaseModel):
    """Job name -> cron expression."""

    jobs: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_SCHEDULE))

    class Config:
        extra = "allow"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO")
    json_logs: bool = Field(default=True)
    include_timestamp: bool = Field(default=True)

    class Config:
        extra = "allow"


class ConfigState(BaseModel):
    """
    Root configuration state - single source of truth for all app config.
    """

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    feeds: FeedsConfig = Field(default_factory=FeedsConfig)
    holidays: HolidaysConfig = Field(default_factory=HolidaysConfig)
    calendar: CalendarConfig = Field(default_factory=CalendarConfig)
    orchestration: OrchestrationConfig = Field(default_factory=OrchestrationConfig)
    indicators: IndicatorsConfig = Field(default_factory=IndicatorsConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Environment metadata
    env: str = Field(default="dev")
    config_dir: str = Field(default="config")

    class Config:
        extra = "allow"


# =============================================================================
# CONFIG LOADER - Clean, Validated Loading
# =============================================================================


class ConfigLoader:
    """
    Load and validate configuration from hierarchical YAML files.

    Merges:
      1. Global defaults (hardcoded)
      2. YAML files from config_dir
      3. env/<TWQ_ENV>.yaml
      4. Environment variable overrides
    """

    CONFIG_FILES = (
        "database.yaml",
        "feeds.yaml",
        "calendar.yaml",
        "orchestration.yaml",
        "indicators.yaml",
        "schedule.yaml",
    )

    def __init__(self, config_dir: str | Path | None = None):
        self.paths = ProjectConfigPathResolver(config_dir)
        self.config_dir = self.paths.resolve_config_dir()
        self._yaml_cache: dict[Path, Any] = {}
        self.env = os.getenv("TWQ_ENV", "dev")

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        """Load YAML file with caching."""
        if path in self._yaml_cache:
            return self._yaml_cache[path]

        if not path.exists():
            logger.debug(f"Config file not found (using defaults): {path}")
            return {}

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load {path}: {e}")
            return {}

        self._yaml_cache[path] = data
        logger.debug(f"Loaded config: {path.name}")
        return data

    def _apply_env_overrides(self, config: dict[str, Any]) -> dict[str, Any]:
        """Apply environment variable overrides to config."""
        if db_url := os.getenv("TWQ_DATABASE_URL"):
            config.setdefault("database", {})["url"] = db_url

        feeds = config.setdefault("feeds", {})
        for name in ("twse", "tpex", "taifex"):
            if base_url := os.getenv(f"TWQ_{name.upper()}_BASE_URL"):
                feeds.setdefault(name, {})["base_url"] = base_url

        if timeout := os.getenv("TWQ_FEED_TIMEOUT"):
            for name in ("twse", "tpex", "taifex"):
                feed = feeds.setdefault(name, {})
                feed["timeout"] = float(timeout)
                # keep the default base_url when only the timeout is overridden
                feed.setdefault("base_url", FeedsConfig().model_dump()[name]["base_url"])

        if group_delay_ms := os.getenv("TWQ_GROUP_DELAY_MS"):
            config.setdefault("orchestration", {})["ticker_group_delay_seconds"] = (
                float(group_delay_ms) / 1000
            )

        if cutoff := os.getenv("TWQ_CUTOFF_HOUR"):
            calendar = config.setdefault("calendar", {})
            calendar["ticker_cutoff_hour"] = int(cutoff)
            calendar["market_stats_cutoff_hour"] = int(cutoff)

        if lookback := os.getenv("TWQ_LOOKBACK"):
            config.setdefault("indicators", {})["lookback"] = int(lookback)

        if log_level := os.getenv("LOG_LEVEL"):
            config.setdefault("logging", {})["level"] = log_level

        return config

    def _merge_dicts(self, base: dict, override: dict) -> dict:
        """Deep merge override into base dict."""
        result = base.copy()
        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._merge_dicts(result[key], value)
            else:
                result[key] = value
        return result

    def load(self) -> ConfigState:
        """
        Load complete configuration state.

        Returns:
            ConfigState: Validated configuration object

        Raises:
            ValidationError: If configuration is invalid
        """
        logger.info(f"Loading configuration from {self.config_dir} (env: {self.env})")

        config: dict[str, Any] = {}

        for config_file in self.CONFIG_FILES:
            file_config = self._load_yaml(self.config_dir / config_file)
            config = self._merge_dicts(config, file_config)

        env_config = self._load_yaml(self.paths.resolve_env_config_file(self.env))
        config = self._merge_dicts(config, env_config)

        config = self._apply_env_overrides(config)

        try:
            state = ConfigState(env=self.env, config_dir=str(self.config_dir), **config)
        except Exception as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

        logger.info(
            f"Configuration loaded: db={state.database.url.split('://')[0]}, "
            f"lookback={state.indicators.lookback}, "
            f"fidelity={state.indicators.fidelity.value}, "
            f"jobs={len(state.schedule.jobs)}"
        )
        return state


def get_config(config_dir: str | Path | None = None) -> ConfigState:
    """
    Load and return the configuration state.

    Args:
        config_dir: Override config directory. Defaults to TWQ_CONFIG_DIR or <project>/config

    Returns:
        ConfigState: Validated configuration object
    """
    if config_dir is not None and not Path(config_dir).exists():
        logger.warning(f"Config directory not found at {config_dir}, using defaults")

    loader = ConfigLoader(config_dir=config_dir)
    return loader.load()


__all__ = [
    "CalendarConfig",
    "ConfigLoader",
    "ConfigState",
    "DatabaseConfig",
    "FeedEndpointConfig",
    "FeedsConfig",
    "HolidaysConfig",
    "IndicatorsConfig",
    "LoggingConfig",
    "OrchestrationConfig",
    "ScheduleConfig",
    "get_config",
]
