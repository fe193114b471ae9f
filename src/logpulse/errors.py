"""Exceptions raised by logpulse"""


class LogpulseError(Exception):
    """Base class for logpulse errors."""


class ConfigurationError(LogpulseError, ValueError):
    """Invalid or missing configuration; nothing was scanned and no state changed."""


class LogReadError(LogpulseError):
    """The access log could not be read; the watermark was left unchanged."""

    def __init__(self, path: str, cause: OSError):
        self.path = path
        self.cause = cause
        super().__init__(f'Unable to read {path}: {cause.strerror or cause}')


class StateError(LogpulseError):
    """The state file could not be read, written or deleted."""

    def __init__(self, path, cause: OSError, action: str = 'write'):
        self.path = path
        self.cause = cause
        super().__init__(f'Unable to {action} state file {path}: {cause.strerror or cause}')
