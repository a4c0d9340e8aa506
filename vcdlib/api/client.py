"""
HTTP client shared by every Cloud Director resource
"""

import json
import logging
import os
import re
from typing import Any, Callable, Dict, Mapping, Optional, Type
from urllib.parse import urlsplit

import requests
from lxml import etree

from ..exceptions import (
    ApiError,
    ConfigError,
    ConnectionError,
    EntityNotFoundError,
    OpenApiError,
    VCDError,
    wrap_error,
)
from ..types.xml import TaskType, parse_api_error, parse_xml, to_xml_bytes
from ..util.http_logging import (
    body_text,
    caller_name,
    log_http_operations,
    process_request_output,
    process_response_output,
)
from ..util.http_logging import settings as log_settings
from .endpoints import EndpointsMixin
from .filters import merge_query
from .openapi import OpenApiMixin
from .task import Task
from .versions import VersionsMixin

logger = logging.getLogger(__name__)

BODY_TYPE_XML = "xml"
BODY_TYPE_JSON = "json"

DEFAULT_API_VERSION = "37.0"
DEFAULT_USER_AGENT = "vcd-lib"
DEFAULT_HTTP_TIMEOUT = 600
DEFAULT_MAX_RETRY_TIMEOUT = 60
ENV_API_VERSION = "VCDLIB_API_VERSION"

AUTH_HEADER = "X-Vcloud-Authorization"
REQUEST_ID_HEADER = "X-VMWARE-VCLOUD-CLIENT-REQUEST-ID"

SUCCESS_STATUS_CODES = (200, 201, 202, 204)
ERROR_STATUS_CODES = (400, 401, 403, 404, 405, 406, 409, 415, 500, 503, 504)

_API_VERSION_RE = re.compile(r"^\d+\.\d+(\.\d+)?$")


def serialize_xml(payload: Any) -> Optional[bytes]:
    """Serialize an XML payload object, element, or pre-rendered document"""
    if payload is None:
        return None
    if isinstance(payload, (bytes, str)):
        return payload.encode("utf-8") if isinstance(payload, str) else payload
    if hasattr(payload, "to_element"):
        return to_xml_bytes(payload.to_element())
    if isinstance(payload, etree._Element):
        return to_xml_bytes(payload)
    raise VCDError(f"cannot serialize payload of type {type(payload).__name__} as XML")


class Client(VersionsMixin, EndpointsMixin, OpenApiMixin):
    """Low level Cloud Director API client.

    Holds the HTTP session, the authentication token and the API version
    used for requests. Resources share one instance.
    """

    def __init__(self, vcd_href: str, insecure: bool = False, api_version: Optional[str] = None,
                 http_timeout: int = DEFAULT_HTTP_TIMEOUT,
                 max_retry_timeout: int = DEFAULT_MAX_RETRY_TIMEOUT,
                 user_agent: str = DEFAULT_USER_AGENT,
                 custom_header: Optional[Dict[str, str]] = None,
                 request_id_func: Optional[Callable[[], str]] = None,
                 session: Optional[requests.Session] = None):
        self.vcd_href = vcd_href.rstrip("/")
        self.api_version = self._resolve_api_version(api_version)
        self.http_timeout = http_timeout
        self.max_retry_timeout = max_retry_timeout
        self.user_agent = user_agent
        self.custom_header: Dict[str, str] = dict(custom_header or {})
        self.request_id_func = request_id_func

        self.session = session or requests.Session()
        self.session.verify = not insecure
        self.insecure = insecure

        self.vcd_token = ""
        self.vcd_auth_header = ""
        self.is_sys_admin = False
        self.using_bearer_token = False
        self.using_access_token = False
        self.supported_versions = None
        self.query_href = ""

    @staticmethod
    def _resolve_api_version(api_version: Optional[str]) -> str:
        version = os.getenv(ENV_API_VERSION) or api_version or DEFAULT_API_VERSION
        if not _API_VERSION_RE.match(version):
            raise ConfigError(f"invalid API version '{version}'")
        return version

    @property
    def host_url(self) -> str:
        """scheme://host part of the API URL"""
        parts = urlsplit(self.vcd_href)
        return f"{parts.scheme}://{parts.netloc}"

    def set_custom_header(self, headers: Mapping[str, str]) -> None:
        self.custom_header = dict(headers)

    def remove_custom_header(self) -> None:
        self.custom_header = {}

    def _auth_headers(self) -> Dict[str, str]:
        headers = {}
        if self.vcd_auth_header and self.vcd_token:
            headers[self.vcd_auth_header] = self.vcd_token
            # Legacy session tokens are 32 characters, bearer tokens much longer
            if len(self.vcd_token) > 32:
                headers["Authorization"] = f"bearer {self.vcd_token}"
                headers["X-Vmware-Vcloud-Token-Type"] = "Bearer"
        return headers

    def _finish_headers(self, headers: Dict[str, str]) -> None:
        if self.user_agent:
            headers["User-Agent"] = self.user_agent
        if self.request_id_func is not None:
            headers[REQUEST_ID_HEADER] = self.request_id_func()

    def new_request(self, params: Optional[Mapping[str, Any]], method: str, url: str,
                    body: Any = None, api_version: Optional[str] = None,
                    content_type: Optional[str] = None,
                    additional_headers: Optional[Mapping[str, str]] = None) -> requests.Request:
        """Build an XML API request carrying authentication and version headers.

        Args:
            params: Query parameters merged into the URL
            method: HTTP method
            url: Absolute request URL
            body: Serialized request body
            api_version: Version for the Accept header, defaults to the client's
            content_type: Content-Type header value
            additional_headers: Headers applied last

        Returns:
            An unsent requests.Request
        """
        full_url = merge_query(url, params)
        version = api_version or self.api_version

        headers = self._auth_headers()
        has_auth = bool(headers) or bool(additional_headers and additional_headers.get("Authorization"))
        if has_auth:
            headers["Accept"] = f"application/*+xml;version={version}"
        if content_type:
            headers["Content-Type"] = content_type
        headers.update(self.custom_header)
        if additional_headers:
            headers.update(additional_headers)
        self._finish_headers(headers)

        process_request_output(caller_name(), method, full_url, body_text(body), headers)
        return requests.Request(method, full_url, data=body, headers=headers)

    def do(self, request: requests.Request, mask_response: bool = False) -> requests.Response:
        """Send a request through the shared session.

        With mask_response the body is logged as asterisks unless password
        logging is on.
        """
        prepared = self.session.prepare_request(request)
        try:
            resp = self.session.send(prepared, timeout=self.http_timeout)
        except requests.RequestException as err:
            log_http_operations()
            raise ConnectionError(f"error performing {request.method} {request.url}: {err}") from err
        logged = resp.text
        if mask_response and not log_settings.log_passwords:
            logged = "[" + "*" * 10 + "]"
        process_response_output(caller_name(), f"{resp.status_code} {resp.reason or ''}".strip(),
                                resp.headers, logged)
        return resp

    def check_response(self, resp: requests.Response, body_type: str = BODY_TYPE_XML,
                       error_type: Optional[Type[VCDError]] = None) -> requests.Response:
        """Return the response when its status is a success, raise otherwise.

        Raises:
            EntityNotFoundError: XML 403/404, wrapping the parsed error body
            ApiError: XML error body
            OpenApiError: JSON error body
            VCDError: Unexpected status code
        """
        status = resp.status_code
        if status in SUCCESS_STATUS_CODES:
            return resp

        log_http_operations()
        if status in ERROR_STATUS_CODES:
            error = self.parse_error(resp, body_type, error_type)
            if body_type == BODY_TYPE_XML and status in (403, 404) and error_type is None:
                raise EntityNotFoundError(str(error), code=status, details={"error": error}) from error
            raise error

        raise VCDError(f"unhandled API response, please report this issue, status code: "
                       f"{status} {resp.reason or ''}".strip(), code=status)

    def parse_error(self, resp: requests.Response, body_type: str = BODY_TYPE_XML,
                    error_type: Optional[Type[VCDError]] = None) -> Exception:
        """Turn an error response body into an exception instance"""
        if error_type is not None:
            return error_type(resp.text)

        if body_type == BODY_TYPE_JSON:
            try:
                data = resp.json()
            except ValueError:
                return OpenApiError(str(resp.status_code), resp.text or resp.reason or "")
            return OpenApiError(minor_error_code=data.get("minorErrorCode", ""),
                                message=data.get("message", ""),
                                stack_trace=data.get("stackTrace", ""))

        try:
            return parse_api_error(parse_xml(resp.content))
        except etree.XMLSyntaxError:
            return ApiError(resp.text or resp.reason or "", major_error_code=resp.status_code)

    def decode_body(self, resp: requests.Response, body_type: str = BODY_TYPE_XML, out: Any = None) -> Any:
        """Deserialize a response body.

        XML bodies are parsed with lxml into `out.from_element`; JSON bodies are
        validated into the pydantic model `out`, element-wise for lists. With
        no `out`, the parsed element or decoded JSON is returned as is.
        """
        if body_type == BODY_TYPE_XML:
            element = parse_xml(resp.content)
            return out.from_element(element) if out is not None else element

        data = resp.json() if resp.content else None
        if out is None or out is dict or data is None:
            return data
        if isinstance(data, list):
            return [out.model_validate(item) for item in data]
        return out.model_validate(data)

    def _execute_xml(self, url: str, method: str, content_type: str = "", payload: Any = None,
                     params: Optional[Mapping[str, Any]] = None, api_version: Optional[str] = None,
                     error_type: Optional[Type[VCDError]] = None,
                     additional_headers: Optional[Mapping[str, str]] = None) -> requests.Response:
        request = self.new_request(params, method, url, serialize_xml(payload), api_version,
                                   content_type or None, additional_headers)
        return self.check_response(self.do(request), BODY_TYPE_XML, error_type)

    @staticmethod
    def _check_message(error_message: str) -> None:
        if "%s" not in error_message:
            raise ValueError("error message has to include place holder for error")

    def execute_request(self, url: str, method: str, content_type: str, error_message: str,
                        payload: Any = None, out_type: Any = None,
                        api_version: Optional[str] = None,
                        additional_headers: Optional[Mapping[str, str]] = None) -> Any:
        """Run an XML request and decode its body into out_type"""
        self._check_message(error_message)
        if method not in ("GET", "POST", "PUT"):
            raise ValueError(f"method {method} is not allowed for execute_request")

        try:
            resp = self._execute_xml(url, method, content_type, payload, api_version=api_version,
                                     additional_headers=additional_headers)
        except VCDError as err:
            raise wrap_error(error_message % err, err) from err

        try:
            return self.decode_body(resp, BODY_TYPE_XML, out_type)
        except (etree.XMLSyntaxError, ValueError) as err:
            raise VCDError(f"error decoding response: {err}") from err

    def execute_task_request(self, url: str, method: str, content_type: str, error_message: str,
                             payload: Any = None, api_version: Optional[str] = None) -> Task:
        """Run an XML request that answers with a Task"""
        self._check_message(error_message)
        if method not in ("DELETE", "POST", "PUT"):
            raise ValueError(f"method {method} is not allowed for execute_task_request")

        try:
            resp = self._execute_xml(url, method, content_type, payload, api_version=api_version)
        except VCDError as err:
            raise wrap_error(error_message % err, err) from err

        try:
            return Task(self, self.decode_body(resp, BODY_TYPE_XML, TaskType))
        except (etree.XMLSyntaxError, ValueError) as err:
            raise VCDError(f"error decoding Task response: {err}") from err

    def execute_request_without_response(self, url: str, method: str, content_type: str,
                                         error_message: str, payload: Any = None,
                                         api_version: Optional[str] = None) -> None:
        """Run an XML request whose body is not needed, waiting on any returned task"""
        self._check_message(error_message)
        if method not in ("DELETE", "POST", "PUT"):
            raise ValueError(f"method {method} is not allowed for execute_request_without_response")

        try:
            resp = self._execute_xml(url, method, content_type, payload, api_version=api_version)
        except VCDError as err:
            raise wrap_error(error_message % err, err) from err

        if resp.status_code == 202 and resp.content:
            Task(self, self.decode_body(resp, BODY_TYPE_XML, TaskType)).wait_task_completion()

    def execute_param_request_with_custom_error(self, url: str, params: Optional[Mapping[str, Any]],
                                                method: str, content_type: str, error_message: str,
                                                payload: Any = None,
                                                error_type: Optional[Type[VCDError]] = None) -> requests.Response:
        """Run an XML request with query parameters and a caller-chosen error class"""
        self._check_message(error_message)
        if method not in ("GET", "POST", "PUT", "DELETE"):
            raise ValueError(f"method {method} is not allowed")

        try:
            return self._execute_xml(url, method, content_type, payload, params=params,
                                     error_type=error_type)
        except VCDError as err:
            raise wrap_error(error_message % err, err) from err

    def send_json(self, method: str, url: str, payload: Any, api_version: Optional[str] = None,
                  additional_headers: Optional[Mapping[str, str]] = None) -> requests.Response:
        """Send a JSON body outside the cloudapi helpers, such as to /oauth"""
        body = json.dumps(payload, indent=2)
        headers = {"Content-Type": "application/json"}
        headers.update(additional_headers or {})
        request = self.new_request(None, method, url, body, api_version, additional_headers=headers)
        return self.do(request)
