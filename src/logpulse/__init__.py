"""logpulse - incremental access log monitor"""

from logpulse.__version__ import __version__


__all__ = ['__version__']
