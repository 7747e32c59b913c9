from enum import Enum
from typing import Any, TypedDict


class ErrorType(Enum):
    """
    Enumeration for various error types used in the application.

    Attributes:
        VALIDATION_ERROR: Represents a request that failed parameter validation.
        NOT_FOUND: Represents a lookup of an artist or track that does not exist.
        UNAUTHORIZED: Represents a request without an authenticated identity.
        FORBIDDEN: Represents an authenticated request lacking the required role.
        DATABASE_ERROR: Represents an error related to database operations.
        REDIS_ERROR: Represents an error related to Redis operations.
        CONFIG_ERROR: Represents an invalid scoring or service configuration.
    """

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    DATABASE_ERROR = "DATABASE_ERROR"
    REDIS_ERROR = "REDIS_ERROR"
    CONFIG_ERROR = "CONFIG_ERROR"


class JobStatus(Enum):
    """Lifecycle states of a batch recalculation job."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class SuccessResponseBody(TypedDict):
    """
    Body of a successful API response.

    Attributes:
        success (bool): Always True.
        data (Any): The data payload of the response.
    """

    success: bool
    data: Any


class ErrorResponseBody(TypedDict):
    """
    Body of an error API response.

    Attributes:
        error (str): Human-readable error message.
    """

    error: str

