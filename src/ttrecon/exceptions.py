"""Exceptions raised by ttrecon."""


class ReconstructionError(Exception):
    """Base exception for all reconstruction errors."""

    pass


class ConfigurationError(ReconstructionError, ValueError):
    """Raised when a configuration value is unsupported or inconsistent."""

    pass


class DimensionMismatchError(ConfigurationError):
    """Raised when an input array does not match the configured dimensionality."""

    pass
