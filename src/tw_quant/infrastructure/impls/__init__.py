from .system import DEFAULT_TIMEZONE, ProjectConfigPathResolver, SystemClock

__all__ = ["DEFAULT_TIMEZONE", "ProjectConfigPathResolver", "SystemClock"]
