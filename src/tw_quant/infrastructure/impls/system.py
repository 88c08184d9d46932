"""Default implementations of infrastructure abstractions."""

import os
from datetime import UTC, datetime, tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo

from tw_quant.infrastructure.ports.system import IClock, IConfigPathResolver

DEFAULT_TIMEZONE = "Asia/Taipei"

# src/tw_quant/infrastructure/impls/system.py -> project root
PROJECT_ROOT = Path(__file__).resolve().parents[4]


class SystemClock(IClock):
    """System time viewed from the exchange timezone."""

    def __init__(self, timezone: str | tzinfo = DEFAULT_TIMEZONE):
        self._tz = ZoneInfo(timezone) if isinstance(timezone, str) else timezone

    @property
    def timezone(self) -> tzinfo:
        return self._tz

    def now(self) -> datetime:
        return datetime.now(self._tz)

    def utcnow(self) -> datetime:
        return datetime.now(UTC)


class ProjectConfigPathResolver(IConfigPathResolver):
    """Resolve the configuration tree.

    Precedence: explicit ``config_dir``, then ``TWQ_CONFIG_DIR``, then
    ``<project_root>/config``.
    """

    def __init__(self, config_dir: Path | str | None = None, project_root: Path = PROJECT_ROOT):
        if config_dir is None and (env_dir := os.getenv("TWQ_CONFIG_DIR")):
            config_dir = env_dir
        self._config_dir = Path(config_dir) if config_dir else project_root / "config"

    def resolve_config_dir(self) -> Path:
        return self._config_dir

    def resolve_env_config_file(self, env: str) -> Path:
        return self._config_dir / "env" / f"{env}.yaml"
