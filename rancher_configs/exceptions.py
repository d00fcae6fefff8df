"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class RancherConfigsError(Exception):
    """Base exception for all application-specific errors."""


class UnexpectedResponseError(RancherConfigsError):
    """Raised when the API answers a token request with a different token name."""


class MalformedResponseError(RancherConfigsError):
    """Raised when an API response is not JSON or does not match its schema."""


class RegistrationError(RancherConfigsError):
    """Raised when a new registration token is not in the 'registering' state."""


class TokenTimeoutError(RegistrationError):
    """
    Raised when a bounded poll policy gives up on a token that is still registering.
    """


class EmptyTokenError(RancherConfigsError):
    """Raised when a registration token leaves 'registering' without a value."""


class TokenNotFoundError(EmptyTokenError):
    """Raised when the polled token list no longer contains the requested name."""


class ConfigurationError(RancherConfigsError):
    """Raised for issues related to configuration loading or validation."""


class CredentialsError(RancherConfigsError):
    """Raised when no API key pair can be supplied for a request."""
