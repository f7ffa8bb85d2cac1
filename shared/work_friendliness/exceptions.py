"""
Exception hierarchy for work_friendliness library.

All exceptions inherit from WorkFriendlinessError for easy catching of library-specific errors.
"""


class WorkFriendlinessError(Exception):
    """Base exception for work_friendliness library."""

    pass


class ConfigurationError(WorkFriendlinessError):
    """Raised when configuration is invalid or missing.

    Examples:
        - Missing scoring config file
        - Invalid JSON in config files
        - Weights or thresholds that don't make sense
    """

    pass


class ReviewSourceError(WorkFriendlinessError):
    """Raised when reviews cannot be obtained from the upstream provider.

    Examples:
        - HTTP error or timeout talking to Outscraper
        - Provider returned no place for the id
        - Malformed provider response
    """

    pass


class SummaryGenerationError(WorkFriendlinessError):
    """Raised when the generative summarizer output can't be used.

    Examples:
        - Response is not valid JSON after stripping code fences
        - JSON doesn't match the expected summary schema
    """

    pass


class SummaryTimeoutError(SummaryGenerationError):
    """Raised when the generative model call times out."""

    pass


class StorageError(WorkFriendlinessError):
    """Raised when database operations fail.

    Examples:
        - Database connection errors
        - Schema version mismatch
        - Write operation failures
    """

    pass


class PipelineError(WorkFriendlinessError):
    """Raised when a batch run has to stop (fail_fast mode)."""

    pass
