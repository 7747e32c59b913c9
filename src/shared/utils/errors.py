"""
Error handling for the application.
"""

from shared.utils.types import ErrorType


class DatabaseError(Exception):
    """Custom exception for when the event, rollup or score stores error.

    Common status codes:
    - 503: Service Unavailable (default) - Database is down or unreachable
    - 500: Internal Server Error - Query or upsert failed
    - 409: Conflict - Constraint violation
    """

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.DATABASE_ERROR,
        status_code: int = 503,
    ):
        """
        Initialize a DatabaseError.

        Args:
            message (str): A human-readable error message.
            error_type (ErrorType): The category of the error (default: DATABASE_ERROR).
            status_code (int): HTTP-style status code associated with the error (default: 503).
        """
        self.message = message
        self.error_type = error_type
        self.status_code = status_code
        super().__init__(self.message)


class RedisError(Exception):
    """Custom exception for Redis errors.

    Common status codes:
    - 503: Service Unavailable (default) - Redis service is down or unreachable
    """

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.REDIS_ERROR,
        status_code: int = 503,
    ):
        """
        Initialize a RedisError.

        Args:
            message (str): A human-readable error message.
            error_type (ErrorType): The category of the error (default: REDIS_ERROR).
            status_code (int): HTTP-style status code associated with the error (default: 503).
        """
        self.message = message
        self.error_type = error_type
        self.status_code = status_code
        super().__init__(self.message)


class ValidationError(Exception):
    """Custom exception for request parameters that cannot be defaulted.

    Common status codes:
    - 400: Bad Request (default) - e.g. limit outside 1-100, non-numeric minScore
    """

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.VALIDATION_ERROR,
        status_code: int = 400,
    ):
        self.message = message
        self.error_type = error_type
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundError(Exception):
    """Custom exception for lookups of artists or tracks that do not exist."""

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.NOT_FOUND,
        status_code: int = 404,
    ):
        self.message = message
        self.error_type = error_type
        self.status_code = status_code
        super().__init__(self.message)


class AuthorizationError(Exception):
    """Custom exception for missing identity or insufficient role.

    Common status codes:
    - 401: Unauthorized (default) - No identity supplied by the gateway
    - 403: Forbidden - Identity present but not an admin
    """

    def __init__(
        self,
        message: str = "Unauthorized",
        error_type: ErrorType = ErrorType.UNAUTHORIZED,
        status_code: int = 401,
    ):
        self.message = message
        self.error_type = error_type
        self.status_code = status_code
        super().__init__(self.message)


class ConfigurationError(Exception):
    """Custom exception for invalid scoring weights or thresholds."""

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.CONFIG_ERROR,
        status_code: int = 500,
    ):
        self.message = message
        self.error_type = error_type
        self.status_code = status_code
        super().__init__(self.message)


# Errors the HTTP layer maps directly onto their status code
SERVICE_ERRORS = (
    DatabaseError,
    RedisError,
    ValidationError,
    NotFoundError,
    AuthorizationError,
    ConfigurationError,
)
