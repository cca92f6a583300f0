"""logcheck - incremental multi-line log file checks for Nagios/Icinga."""

from logcheck.__version__ import __version__


__all__ = ['__version__']
