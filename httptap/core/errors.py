"""Exception hierarchy for httptap."""


class HttpTapError(Exception):
    """Base class for all httptap errors."""

    pass


class ConfigurationError(HttpTapError):
    """Raised when configuration loading or validation fails."""

    pass
