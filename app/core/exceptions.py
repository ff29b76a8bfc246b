from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base exception for application errors, carries a machine-readable code."""

    code: str = "APP_ERROR"

    def __init__(self, status_code: int, detail: str):
        super().__init__(status_code=status_code, detail=detail)


class ConfigurationError(AppException):
    """Exception raised when a required secret or setting is missing."""

    code = "CONFIGURATION_ERROR"

    def __init__(self, detail: str = "Server configuration error"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail
        )


class ValidationError(AppException):
    """Exception raised when caller input fails a precondition."""

    code = "VALIDATION_ERROR"

    def __init__(self, detail: str = "Invalid request"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail
        )


class UnauthorizedError(AppException):
    """Exception raised when the request carries no valid credentials."""

    code = "UNAUTHORIZED"

    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail
        )
        self.headers = {"WWW-Authenticate": "Bearer"}


class ForbiddenError(AppException):
    """Exception raised when a visible resource is not accessible to the user."""

    code = "FORBIDDEN"

    def __init__(self, detail: str = "Forbidden"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail
        )


class NotFoundError(AppException):
    """Exception raised when a resource is missing or hidden from the user."""

    code = "NOT_FOUND"

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail
        )


class DecryptionError(AppException):
    """Exception raised when an encrypted blob cannot be authenticated or parsed."""

    code = "DECRYPTION_ERROR"

    def __init__(self, detail: str = "Failed to decrypt data"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail
        )
