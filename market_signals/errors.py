"""Error taxonomy for the research pipeline and its collaborators."""

from enum import StrEnum


INVALID_API_KEY_MESSAGE = (
    "Invalid API key. Please check your GEMINI_API_KEY configuration."
)
RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please wait a moment before trying again."


class GatewayErrorStatus(StrEnum):
    """Status category of a failed backend call."""

    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    EMPTY = "empty"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class MarketSignalsError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(MarketSignalsError):
    """A required secret is missing or still set to a placeholder."""

    def __init__(self, secret: str, message: str | None = None) -> None:
        self.secret = secret
        super().__init__(
            message
            or (
                f"{secret} is missing or empty. Please add '{secret}' to your "
                "environment or .env file and restart."
            )
        )


class GatewayError(MarketSignalsError):
    """The model backend call failed."""

    default_status = GatewayErrorStatus.UNKNOWN

    def __init__(
        self, message: str, status: GatewayErrorStatus | None = None
    ) -> None:
        self.status = status or self.default_status
        super().__init__(message)


class EmptyResponseError(GatewayError):
    """The backend returned no text (blocked prompt or soft unavailability)."""

    default_status = GatewayErrorStatus.EMPTY


class InvalidCredentialError(GatewayError):
    """The backend rejected the API key (401/403)."""

    default_status = GatewayErrorStatus.UNAUTHORIZED


class RateLimitError(GatewayError):
    """The backend rate-limited the request (429)."""

    default_status = GatewayErrorStatus.RATE_LIMITED


class ResponseParseError(MarketSignalsError):
    """The backend returned text that is not valid JSON."""


class SchemaViolationError(MarketSignalsError):
    """Parsed output does not conform to the declared schema."""


class RunCancelledError(MarketSignalsError):
    """The caller cancelled the run before it completed."""


class RunInProgressError(MarketSignalsError):
    """A different run is already in flight for this session."""


class ProfileStoreError(MarketSignalsError):
    """The profile store request failed."""


class StageError(MarketSignalsError):
    """A pipeline stage failed; wraps the underlying cause with stage context."""

    stage = "Pipeline"

    def __init__(self, cause: Exception) -> None:
        self.cause = cause
        self.status: GatewayErrorStatus | None = getattr(cause, "status", None)
        super().__init__(self.describe(cause))

    @classmethod
    def describe(cls, cause: Exception) -> str:
        """
        Build the most specific user-facing message for a stage failure.

        Args:
            cause (Exception): The underlying error.

        Returns:
            str: Message naming the failed stage.
        """
        status = getattr(cause, "status", None)
        if status == GatewayErrorStatus.UNAUTHORIZED:
            return f"{cls.stage} failed: {INVALID_API_KEY_MESSAGE}"
        if status == GatewayErrorStatus.RATE_LIMITED:
            return f"{cls.stage} failed: {RATE_LIMIT_MESSAGE}"
        return f"{cls.stage} failed: {cause}"


class PlanningError(StageError):
    stage = "Research Planning"


class ResearchExecutionError(StageError):
    stage = "Research Execution"


class SignalAnalysisError(StageError):
    stage = "Signal Analysis"
