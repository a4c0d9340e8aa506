"""
HTTP request/response logging with secret masking
"""

import inspect
import logging
import os
import re
import sys
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, Mapping, Optional
from urllib.parse import urlencode

ENV_USE_LOG = "VCDLIB_LOG"
ENV_LOG_FILE_NAME = "VCDLIB_LOG_FILE"
ENV_LOG_ON_SCREEN = "VCDLIB_LOG_ON_SCREEN"
ENV_LOG_PASSWORDS = "VCDLIB_LOG_PASSWORDS"
ENV_LOG_SKIP_HTTP_REQ = "VCDLIB_LOG_SKIP_HTTP_REQ"
ENV_LOG_SKIP_HTTP_RESP = "VCDLIB_LOG_SKIP_HTTP_RESP"

DEFAULT_LOG_FILE_NAME = "vcd-lib.log"
HTTP_STACK_SIZE = 4
MASK = "********"

SENSITIVE_HEADERS = {
    "authorization",
    "x-vcloud-authorization",
    "x-vmware-vcloud-access-token",
    "config-secret",
}

_PASSWORD_RE = re.compile(r'("[^"]*[Pp]assword"\s*:\s*)"[^"]+"')
_CONTENT_RANGE_RE = re.compile(r"content-range", re.IGNORECASE)
_MULTIPART_RE = re.compile(r"multipart/form", re.IGNORECASE)
_MEDIA_XML_RE = re.compile(r"media\+xml;", re.IGNORECASE)

_DASH_LINE = "-" * 80
_HASH_LINE = "#" * 80

http_logger = logging.getLogger("vcdlib.http")


@dataclass
class OperationRecord:
    """A single HTTP operation kept for post-mortem logging"""
    op_type: str
    caller: str
    operation: str = ""
    url: str = ""
    data: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    status: str = ""


@dataclass
class LogSettings:
    enabled: bool = False
    log_passwords: bool = False
    log_http_request: bool = True
    log_http_response: bool = True
    log_file_name: Optional[str] = DEFAULT_LOG_FILE_NAME
    log_on_screen: str = ""
    enable_http_stack: bool = True
    http_stack: Deque[OperationRecord] = field(
        default_factory=lambda: deque(maxlen=HTTP_STACK_SIZE))


settings = LogSettings()
_handler: Optional[logging.Handler] = None


def init_logging() -> LogSettings:
    """Read the VCDLIB_LOG* environment toggles and configure the library logger"""
    global _handler

    if os.getenv(ENV_LOG_SKIP_HTTP_REQ):
        settings.log_http_request = False
    if os.getenv(ENV_LOG_SKIP_HTTP_RESP):
        settings.log_http_response = False
    if os.getenv(ENV_LOG_PASSWORDS):
        settings.enabled = True
        settings.log_passwords = True
    if os.getenv(ENV_LOG_FILE_NAME):
        settings.enabled = True
        settings.log_file_name = os.getenv(ENV_LOG_FILE_NAME)

    settings.log_on_screen = os.getenv(ENV_LOG_ON_SCREEN, "")
    if settings.log_on_screen:
        settings.log_file_name = None
        settings.enabled = True

    if os.getenv(ENV_USE_LOG):
        settings.enabled = True

    library_logger = logging.getLogger("vcdlib")
    if _handler is not None:
        library_logger.removeHandler(_handler)
        _handler = None

    if settings.enabled:
        if settings.log_on_screen:
            stream = sys.stderr if settings.log_on_screen in ("stderr", "err") else sys.stdout
            _handler = logging.StreamHandler(stream)
        else:
            _handler = logging.FileHandler(settings.log_file_name or DEFAULT_LOG_FILE_NAME)
        _handler.setFormatter(logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s"))
        library_logger.addHandler(_handler)
        library_logger.setLevel(logging.DEBUG)
        settings.enable_http_stack = False
    else:
        settings.http_stack.clear()
        settings.enable_http_stack = True

    return settings


def hide_passwords(text: str, on_screen: bool = False) -> str:
    """Mask JSON password fields unless password logging is requested"""
    if not on_screen and settings.log_passwords:
        return text
    return _PASSWORD_RE.sub(lambda m: f'{m.group(1)}"{MASK}"', text)


def is_binary(headers: Mapping[str, Any]) -> bool:
    """Guess from the headers whether a payload is binary"""
    for key, value in headers.items():
        if _CONTENT_RANGE_RE.search(key) or _MULTIPART_RE.search(key):
            return True
        if _MEDIA_XML_RE.search(str(value)):
            return True
    return False


def sanitize_headers(headers: Mapping[str, Any]) -> Dict[str, str]:
    """Return a copy of the headers with token-bearing values masked"""
    result = {}
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADERS and not settings.log_passwords:
            result[key] = MASK
        else:
            result[key] = str(value)
    return result


def _log_headers(title: str, headers: Mapping[str, Any]) -> None:
    http_logger.debug(title)
    for key, value in sanitize_headers(headers).items():
        http_logger.debug(f"\t{key}: {value}")


def process_request_output(caller: str, operation: str, url: str, payload: str,
                           headers: Mapping[str, Any]) -> None:
    """Log the essentials of an HTTP request"""
    if settings.enable_http_stack:
        settings.http_stack.append(OperationRecord(
            op_type="request", caller=caller, operation=operation, url=url,
            data=payload, headers=dict(headers)))
    if not settings.log_http_request:
        return

    http_logger.debug(_DASH_LINE)
    http_logger.debug(f"Request caller: {caller}")
    http_logger.debug(f"{operation} {url}")
    http_logger.debug(_DASH_LINE)
    data_size = len(payload)
    if is_binary(headers):
        payload = "[binary data]"
    if data_size > 0:
        http_logger.debug(f"Request data: [{data_size}] {hide_passwords(payload)}")
    _log_headers("Req header:", headers)


def process_response_output(caller: str, status: str, headers: Mapping[str, Any],
                            result: str) -> None:
    """Log the essentials of an HTTP response"""
    if settings.enable_http_stack:
        settings.http_stack.append(OperationRecord(
            op_type="response", caller=caller, data=result,
            headers=dict(headers), status=status))
    if not settings.log_http_response:
        return

    http_logger.debug(_HASH_LINE)
    http_logger.debug(f"Response caller {caller}")
    http_logger.debug(f"Response status {status}")
    http_logger.debug(_HASH_LINE)
    _log_headers("Response header:", headers)
    http_logger.debug(f"Response text: [{len(result)}] {hide_passwords(result)}")


def log_http_operations() -> None:
    """Dump the stored HTTP operations, most recent first"""
    if not settings.enable_http_stack or not settings.http_stack:
        return

    stored = list(settings.http_stack)
    settings.http_stack.clear()
    settings.enable_http_stack = False
    try:
        http_logger.debug(_HASH_LINE)
        http_logger.debug(f"THERE ARE {len(stored)} STORED HTTP OPERATIONS (Lower numbers are most recent)")
        http_logger.debug(_HASH_LINE)
        for index, record in enumerate(reversed(stored)):
            http_logger.debug(_DASH_LINE)
            http_logger.debug(f"STORED OPERATION ({record.op_type}) # {len(stored) - index}")
            http_logger.debug(_DASH_LINE)
            if record.op_type == "request":
                process_request_output(record.caller, record.operation, record.url,
                                       record.data, record.headers)
            else:
                process_response_output(record.caller, record.status, record.headers,
                                        record.data)
    finally:
        settings.enable_http_stack = True


def caller_name(depth: int = 2) -> str:
    """Name of the function depth frames above the one calling this"""
    frame = inspect.currentframe()
    for _ in range(depth):
        if frame is None:
            break
        frame = frame.f_back
    return frame.f_code.co_name if frame is not None else "unknown"


def body_text(body: Any) -> str:
    """Render a request body as loggable text"""
    if body is None:
        return ""
    if isinstance(body, bytes):
        try:
            return body.decode("utf-8")
        except UnicodeDecodeError:
            return "[binary data]"
    if isinstance(body, str):
        return body
    return urlencode(body) if isinstance(body, Mapping) else str(body)
