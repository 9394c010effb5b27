from fastapi import HTTPException, status


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR CODES: machine-readable constants for the web client
# ═══════════════════════════════════════════════════════════════════════════════
class ErrorCode:
    VALIDATION_FAILED     = "validation_failed"
    INVALID_PARAMETER     = "invalid_parameter"
    UNAUTHORIZED          = "unauthorized"
    INVALID_CREDENTIALS   = "invalid_credentials"
    INVALID_TOKEN         = "invalid_token"
    TOKEN_EXPIRED         = "token_expired"
    NOT_FOUND             = "not_found"
    DUPLICATE_ENTRY       = "duplicate_entry"
    PERSISTENCE_ERROR     = "persistence_error"
    INTERNAL_SERVER_ERROR = "internal_server_error"


# ═══════════════════════════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════════════════════════
class AppException(HTTPException):
    """
    Base exception for all application-level errors.
    Carries a machine-readable error code; the HTTP layer renders it.
    """
    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: str,
        details: list | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details
        super().__init__(status_code=status_code, detail={
            "code": error_code,
            "message": message,
            "details": details,
        })


# ═══════════════════════════════════════════════════════════════════════════════
# CONCRETE EXCEPTIONS
# ═══════════════════════════════════════════════════════════════════════════════

class UnauthorizedError(AppException):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(status.HTTP_401_UNAUTHORIZED, message, ErrorCode.UNAUTHORIZED)


class InvalidCredentialsError(AppException):
    def __init__(self):
        super().__init__(status.HTTP_401_UNAUTHORIZED, "Invalid email or password",
                         ErrorCode.INVALID_CREDENTIALS)


class InvalidTokenError(AppException):
    # Message stays generic: never tell the caller why a token was rejected
    def __init__(self):
        super().__init__(status.HTTP_401_UNAUTHORIZED, "Token is invalid", ErrorCode.INVALID_TOKEN)


class TokenExpiredError(AppException):
    def __init__(self):
        super().__init__(status.HTTP_401_UNAUTHORIZED, "Token has expired", ErrorCode.TOKEN_EXPIRED)


class NotFoundError(AppException):
    def __init__(self, resource: str = "Resource"):
        super().__init__(status.HTTP_404_NOT_FOUND, f"{resource} not found", ErrorCode.NOT_FOUND)


class ValidationError(AppException):
    """One or more record invariants failed; `details` lists every violation."""
    def __init__(self, details: list, message: str = "Validation failed"):
        super().__init__(status.HTTP_422_UNPROCESSABLE_ENTITY, message,
                         ErrorCode.VALIDATION_FAILED, details=details)


class InvalidParameterError(AppException):
    def __init__(self, message: str):
        super().__init__(status.HTTP_422_UNPROCESSABLE_ENTITY, message, ErrorCode.INVALID_PARAMETER)


class DuplicateEntryError(AppException):
    def __init__(self, message: str = "Record already exists", field: str | None = None):
        details = [{"field": field, "code": "taken", "message": message}] if field else None
        super().__init__(status.HTTP_409_CONFLICT, message, ErrorCode.DUPLICATE_ENTRY, details=details)


class PersistenceError(AppException):
    """Storage-level failure the caller may retry (e.g. a random token collision)."""
    def __init__(self, message: str = "Could not save the record, please retry"):
        super().__init__(status.HTTP_503_SERVICE_UNAVAILABLE, message, ErrorCode.PERSISTENCE_ERROR)
