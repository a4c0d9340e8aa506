"""
VCD-Lib - client library for VMware Cloud Director
Covers the legacy XML API and the OpenAPI (cloudapi) JSON surface
"""

__version__ = "0.1.0"
__author__ = "VCD-Lib Development Team"

from .client import VCDClient
from .config import VCDConfig
from .exceptions import (
    ApiError,
    AuthenticationError,
    EntityNotFoundError,
    OpenApiError,
    TaskError,
    VCDError,
    contains_not_found,
)
from .util.http_logging import init_logging

init_logging()

__all__ = [
    "VCDClient",
    "VCDConfig",
    "VCDError",
    "ApiError",
    "OpenApiError",
    "EntityNotFoundError",
    "TaskError",
    "AuthenticationError",
    "contains_not_found",
]
