"""
Custom exceptions for the Entity Consistency Engine.

All exceptions inherit from ConsistencyEngineError to enable unified error
handling across the application. Each exception carries an ErrorCode which
the API layer maps to an HTTP status and the retry policy uses to decide
whether a failure is transient.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Stable error identifiers shared by the engine and the API."""

    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    DIMENSION_MISMATCH = "DIMENSION_MISMATCH"
    ZERO_VECTOR = "ZERO_VECTOR"
    MALFORMED_EMBEDDING = "MALFORMED_EMBEDDING"
    NO_ENTITIES = "NO_ENTITIES"

    EXTERNAL_API_ERROR = "EXTERNAL_API_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    TIMEOUT = "TIMEOUT"

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


ERROR_STATUS_CODES: dict[ErrorCode, int] = {
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.DIMENSION_MISMATCH: 422,
    ErrorCode.ZERO_VECTOR: 422,
    ErrorCode.MALFORMED_EMBEDDING: 422,
    ErrorCode.NO_ENTITIES: 422,
    ErrorCode.EXTERNAL_API_ERROR: 502,
    ErrorCode.CONNECTION_ERROR: 503,
    ErrorCode.RATE_LIMIT_EXCEEDED: 429,
    ErrorCode.SERVICE_UNAVAILABLE: 503,
    ErrorCode.TIMEOUT: 504,
    ErrorCode.CONFIGURATION_ERROR: 500,
    ErrorCode.DATABASE_ERROR: 500,
    ErrorCode.UNKNOWN_ERROR: 500,
}

# Failure kinds caused outside the engine that may succeed on a later attempt
RETRYABLE_CODES: frozenset[ErrorCode] = frozenset({
    ErrorCode.TIMEOUT,
    ErrorCode.SERVICE_UNAVAILABLE,
    ErrorCode.CONNECTION_ERROR,
    ErrorCode.RATE_LIMIT_EXCEEDED,
})


class ConsistencyEngineError(Exception):
    """Base exception for all Entity Consistency Engine errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
        code: ErrorCode classifying the failure.
    """

    code: ErrorCode = ErrorCode.UNKNOWN_ERROR

    def __init__(self, message: str, details: dict | None = None) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    @property
    def http_status(self) -> int:
        """HTTP status the API layer reports for this error."""
        return ERROR_STATUS_CODES.get(self.code, 500)

    @property
    def retryable(self) -> bool:
        """Whether a later attempt could succeed."""
        return self.code in RETRYABLE_CODES

    def __str__(self) -> str:
        """Return string representation of the exception."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(ConsistencyEngineError):
    """Raised when configuration loading or validation fails.

    Examples:
        - Missing required configuration file
        - Invalid YAML syntax
        - Invalid threshold ordering
    """

    code = ErrorCode.CONFIGURATION_ERROR


class ScoringError(ConsistencyEngineError):
    """Base class for deterministic failures in the scoring math.

    These never succeed on retry.
    """


class DimensionMismatchError(ScoringError):
    """Raised when two vectors being compared differ in length."""

    code = ErrorCode.DIMENSION_MISMATCH


class ZeroVectorError(ScoringError):
    """Raised when a vector has zero magnitude (cosine is undefined)."""

    code = ErrorCode.ZERO_VECTOR


class MalformedEmbeddingError(ScoringError):
    """Raised when a stored or extracted embedding is not a usable vector.

    When it concerns a single entity's reference vector the scorer records
    that entity as 0 instead of aborting the analysis.
    """

    code = ErrorCode.MALFORMED_EMBEDDING


class NoEntitiesError(ScoringError):
    """Raised when there is nothing to score or average."""

    code = ErrorCode.NO_ENTITIES


class NotFoundError(ConsistencyEngineError):
    """Raised when a requested record does not exist.

    Attributes:
        resource: Kind of record that was looked up.
    """

    code = ErrorCode.NOT_FOUND

    def __init__(
        self,
        message: str,
        resource: str,
        details: dict | None = None,
    ) -> None:
        self.resource = resource
        super().__init__(message, details)


class GenerationNotFoundError(NotFoundError):
    """Raised when a generation or its entity set is missing."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message, resource="generation", details=details)


class APIError(ConsistencyEngineError):
    """Raised when an external service call fails.

    This exception wraps errors from external services (OpenAI, the vector
    store) to provide consistent error handling across the application.

    Attributes:
        service: Name of the external service that failed.
        status_code: Upstream HTTP status code if applicable.
        code: ErrorCode of this particular failure.
    """

    def __init__(
        self,
        message: str,
        service: str,
        code: ErrorCode = ErrorCode.EXTERNAL_API_ERROR,
        status_code: int | None = None,
        details: dict | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            service: Name of the external service that failed.
            code: Failure classification.
            status_code: Upstream HTTP status code if applicable.
            details: Optional dictionary with additional error context.
        """
        self.service = service
        self.code = code
        self.status_code = status_code
        super().__init__(message, details)

    def __str__(self) -> str:
        """Return string representation of the exception."""
        status = f" (HTTP {self.status_code})" if self.status_code else ""
        base = f"[{self.service}]{status} {self.message}"
        if self.details:
            return f"{base} | Details: {self.details}"
        return base


class EmbeddingExtractionError(APIError):
    """Raised when the content embedding could not be extracted."""

    def __init__(
        self,
        message: str,
        service: str = "embedding-extractor",
        code: ErrorCode = ErrorCode.EXTERNAL_API_ERROR,
        status_code: int | None = None,
        details: dict | None = None,
    ) -> None:
        super().__init__(message, service, code, status_code, details)


class VectorStoreUnavailableError(APIError):
    """Raised when reference embeddings cannot be read from the store."""

    def __init__(
        self,
        message: str,
        service: str = "vector-store",
        code: ErrorCode = ErrorCode.SERVICE_UNAVAILABLE,
        status_code: int | None = None,
        details: dict | None = None,
    ) -> None:
        super().__init__(message, service, code, status_code, details)


class DataManagerError(ConsistencyEngineError):
    """Raised when data I/O operations fail.

    Examples:
        - Failed to read the entity/generation catalog
        - Failed to persist a consistency score
        - Failed to write an analysis report
    """

    code = ErrorCode.DATABASE_ERROR
