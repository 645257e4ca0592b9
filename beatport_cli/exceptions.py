"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class BeatportCliError(Exception):
    """Base exception for all application-specific errors."""


class AuthenticationError(BeatportCliError):
    """Raised when a login fails or a store rejects the account's access token."""


class RateLimitError(BeatportCliError):
    """Raised when a store answers with 429 "Too Many Requests"."""


class NoAccountsError(BeatportCliError):
    """Raised when no configured account could be authenticated."""


class InvalidURLError(BeatportCliError):
    """Raised when a URL does not point to a supported Beatport/Beatsource item."""


class NotDownloadableError(BeatportCliError):
    """Raised when the store does not provide a download location for a track."""


class ConfigurationError(BeatportCliError):
    """Raised for issues related to configuration loading or validation."""


class FileIntegrityError(BeatportCliError):
    """Raised when a downloaded file is empty or could not be moved into place."""


# Errors that trigger a switch to the next configured account.
FAILOVER_ERRORS = (AuthenticationError, RateLimitError)
