"""Exception hierarchy for awos."""


class AWOSError(Exception):
    """Base class for errors raised by awos itself (never by a backend SDK)."""


class ConfigurationError(AWOSError):
    """Raised at construction time when required options are missing or inconsistent."""


class InvalidOptionsError(ConfigurationError):
    """Raised when the storage type is missing or not recognized."""

    def __init__(self, message: str = "invalid options!"):
        super().__init__(message)


class InvalidArgumentError(AWOSError, ValueError):
    """Raised when a caller breaks an input contract, before any request is sent."""
