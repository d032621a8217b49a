"""
Domain-level exceptions.
"""


class ConfigurationError(Exception):
    """Raised when mapper configuration is invalid or unsupported."""
    pass
