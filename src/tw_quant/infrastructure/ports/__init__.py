from .system import IClock, IConfigPathResolver

__all__ = ["IClock", "IConfigPathResolver"]
