"""filabuild — incremental asset compilation tasks for Filament tools."""

from filabuild.version import __version__

__all__ = ["__version__"]
