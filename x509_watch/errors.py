"""Custom exceptions for x509-watch."""


class X509WatchError(Exception):
    """Base exception for all x509-watch errors."""

    pass


class ConfigurationError(X509WatchError):
    """Raised when configuration is invalid."""

    pass
