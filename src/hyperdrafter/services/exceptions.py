"""Custom exceptions for HyperDrafter services."""


class ConfigurationError(Exception):
    """Raised when the reasoning service cannot be called as configured.

    Typically a missing API key. Surfaced to the caller immediately; no
    highlight is touched and the request is never retried.

    Attributes:
        setting: Name of the offending setting
        message: Human-readable error message
    """

    def __init__(self, setting: str, message: str = "Required setting is not configured"):
        """Initialize ConfigurationError.

        Args:
            setting: Name of the offending setting (e.g. "llm.api_key")
            message: Human-readable error message
        """
        self.setting = setting
        self.message = message
        super().__init__(f"{message}: {setting}")


class ReasoningServiceError(Exception):
    """Raised when the reasoning service reports an error inside a 200 response.

    Streaming APIs can emit an error event after the HTTP status has already
    been sent; this surfaces it the same way as an HTTP error.

    Attributes:
        error_type: Error type reported by the service (if any)
    """

    def __init__(self, message: str, error_type: str = "unknown"):
        self.error_type = error_type
        super().__init__(f"{error_type}: {message}")


class AnalysisCancelledError(Exception):
    """Raised inside an analysis when its cancellation token has fired.

    Cancellation is not a failure: callers discard the result silently.

    Attributes:
        reason: Why the analysis was cancelled (e.g. "superseded", "edited")
    """

    def __init__(self, reason: str = "cancelled"):
        self.reason = reason
        super().__init__(f"Analysis cancelled: {reason}")
