"""Exceptions raised by the kana trainer."""


class KanaTrainerError(Exception):
    """Base class for all kana trainer errors."""


class ConfigurationError(KanaTrainerError):
    """Raised for unknown kana types, practice modes or unusable catalogs."""


class NoItemAvailableError(ConfigurationError):
    """Raised when selection has nothing to draw from.

    Happens for an empty catalog or a weight vector with no positive entry.
    """


class InvalidAttemptError(KanaTrainerError):
    """Raised when an attempt outcome violates the caller contract (negative or NaN latency)."""


class PersistenceError(KanaTrainerError):
    """Raised when a stored snapshot cannot be read back."""
