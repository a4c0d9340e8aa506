"""
VCD-Lib Exceptions
"""

from typing import Any, Optional, Union

ERROR_ENTITY_NOT_FOUND = "[ENF] entity not found"


class VCDError(Exception):
    """Base exception for all VCD-Lib errors"""
    def __init__(self, message, code=None, details=None):
        super().__init__(message)
        self.code = code
        self.details = details or {}


class EntityNotFoundError(VCDError):
    """Requested entity does not exist or is not visible to the caller"""
    def __init__(self, message=None, code=None, details=None):
        if not message:
            message = ERROR_ENTITY_NOT_FOUND
        elif ERROR_ENTITY_NOT_FOUND not in message:
            message = f"{ERROR_ENTITY_NOT_FOUND}: {message}"
        super().__init__(message, code, details)


class ApiError(VCDError):
    """Error body returned by the legacy XML API"""
    def __init__(self, message: str, major_error_code: int = 0,
                 minor_error_code: str = "", vendor_specific_error_code: str = "",
                 stack_trace: str = ""):
        self.message = message
        self.major_error_code = major_error_code
        self.minor_error_code = minor_error_code
        self.vendor_specific_error_code = vendor_specific_error_code
        self.stack_trace = stack_trace
        super().__init__(f"API Error: {major_error_code}: {message}", code=major_error_code)


class OpenApiError(VCDError):
    """Error body returned by the OpenAPI (cloudapi) endpoints"""
    def __init__(self, minor_error_code: str = "", message: str = "", stack_trace: str = ""):
        self.minor_error_code = minor_error_code
        self.message = message
        self.stack_trace = stack_trace
        super().__init__(f"{minor_error_code} - {message}", code=minor_error_code)

    def error_with_stack(self) -> str:
        return f"{self.minor_error_code} - {self.message}. Stack: {self.stack_trace}"


class TaskError(VCDError):
    """Task finished in error state"""
    pass


class TimeoutError(VCDError):
    """Operation timeout"""
    pass


class ConnectionError(VCDError):
    """Transport level errors"""
    pass


class AuthenticationError(VCDError):
    """Authentication failure"""
    pass


class UnsupportedVersionError(VCDError):
    """Endpoint requires a newer API version than the server offers"""
    pass


class ConfigError(VCDError):
    """Invalid client configuration"""
    pass


def contains_not_found(err: Optional[Union[BaseException, str, Any]]) -> bool:
    """Return True if the error (or any error it wraps) carries the not-found sentinel"""
    if err is None:
        return False
    if isinstance(err, EntityNotFoundError):
        return True
    if ERROR_ENTITY_NOT_FOUND in str(err):
        return True
    cause = getattr(err, "__cause__", None)
    if cause is not None and cause is not err:
        return contains_not_found(cause)
    return False


def is_not_found(err: Optional[Union[BaseException, str]]) -> bool:
    """Return True only when the error is exactly the bare sentinel"""
    if err is None:
        return False
    return str(err) == ERROR_ENTITY_NOT_FOUND


_PRESERVED_ERRORS = (TaskError, TimeoutError, ConnectionError, AuthenticationError,
                     UnsupportedVersionError, ConfigError)


def wrap_error(message: str, err: BaseException) -> VCDError:
    """Build an error carrying message that keeps the category of err.

    Not-found errors stay EntityNotFoundError so callers can still test
    for them after any number of wraps.
    """
    if contains_not_found(err):
        wrapped: VCDError = EntityNotFoundError(message)
    elif isinstance(err, _PRESERVED_ERRORS):
        wrapped = type(err)(message)
    else:
        wrapped = VCDError(message)
    wrapped.__cause__ = err
    return wrapped
