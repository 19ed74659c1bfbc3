"""
Defines custom exception classes for the application.
"""

class AIFixException(Exception):
    """Base exception class for aifix application."""
    pass

class ConfigError(AIFixException):
    """Raised when there is a configuration error."""
    pass

class CheckoutError(AIFixException):
    """Raised when a file in the repository checkout cannot be read or written."""
    pass

class ProviderError(AIFixException):
    """Raised when an error occurs with an LLM provider."""
    pass

class GitError(AIFixException):
    """Raised when a git command fails."""
    pass

class HostingError(AIFixException):
    """Raised when the source-hosting (GitHub) API returns an error."""
    pass

class TrackerError(AIFixException):
    """Raised when the issue-tracker (Linear) API returns an error."""
    pass

class FormatterError(AIFixException):
    """Raised when a template cannot be rendered."""
    pass
