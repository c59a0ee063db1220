class SchemaForgeError(Exception):
    """Base class for errors raised inside schemaforge."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(SchemaForgeError):
    """The generation endpoint credential is missing."""


class RateLimitError(SchemaForgeError):
    status_code = 429

    def __init__(self, message: str, retry_after: float = 0.0):
        super().__init__(message)
        self.retry_after = retry_after


class UpstreamError(SchemaForgeError):
    """The generation endpoint failed or returned an unusable payload."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.status_code = status_code


class MarkupParseError(SchemaForgeError):
    status_code = 422


class StorageUnavailableError(SchemaForgeError):
    status_code = 503



class SchedulerUnavailableError(SchemaForgeError):
    """No event loop is available to run a delayed callback."""
