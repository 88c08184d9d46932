"""Ports for wall-clock time and configuration file lookup."""

from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path


class IClock(ABC):
    """Source of the current time.

    ``now()`` is exchange-local (Asia/Taipei): the calendar resolver and the
    scheduler compare its hour and weekday against trading cutoffs.
    """

    @abstractmethod
    def now(self) -> datetime: ...

    @abstractmethod
    def utcnow(self) -> datetime:
        """Timezone-aware UTC time, used for ``createdAt``/``updatedAt`` stamps."""
        ...


class IConfigPathResolver(ABC):
    """Where the YAML configuration tree lives."""

    @abstractmethod
    def resolve_config_dir(self) -> Path: ...

    @abstractmethod
    def resolve_env_config_file(self, env: str) -> Path:
        """Per-environment override file, e.g. ``config/env/prod.yaml``."""
        ...
