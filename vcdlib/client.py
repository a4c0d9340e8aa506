"""
VCDClient: authentication, session handling and entry points to resources
"""

import json
import logging
import os
from datetime import datetime
from typing import Callable, Dict, Mapping, Optional

import requests

from .api.client import (
    AUTH_HEADER,
    BODY_TYPE_JSON,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_MAX_RETRY_TIMEOUT,
    DEFAULT_USER_AGENT,
    Client,
)
from .api.endpoints import ENDPOINT_SESSION_CURRENT, PATH_VERSION_1_0_0
from .api.openapi import FORM_MIME
from .api.query import cumulative_query
from .config import TOKEN_TYPE_API_TOKEN, TOKEN_TYPE_SESSION, VCDConfig
from .exceptions import AuthenticationError, EntityNotFoundError, VCDError, wrap_error
from .resources.org import AdminOrg, Org
from .tenant_context import extract_uuid
from .types.openapi import ApiTokenParams, ApiTokenRefresh, CurrentSessionInfo
from .types.xml import AdminOrgType, OrgList, OrgType, QueryResultRecords
from .util.http_logging import settings as log_settings
from .util.request_id import default_request_id

logger = logging.getLogger(__name__)

BEARER_TOKEN_HEADER = "X-VMWARE-VCLOUD-ACCESS-TOKEN"
API_TOKEN_HEADER = "API-token"
ENV_SKIP_LOG_TRACING = "VCDLIB_SKIP_LOG_TRACING"

_TOKEN_HEADERS = {
    TOKEN_TYPE_API_TOKEN: API_TOKEN_HEADER,
    TOKEN_TYPE_SESSION: AUTH_HEADER,
}


def _status(resp: requests.Response) -> str:
    return f"{resp.status_code} {resp.reason or ''}".strip()


class VCDClient:
    """Entry point to a Cloud Director installation.

    Wraps the low level Client, which every resource object shares, and
    knows how to open and close a session.
    """

    def __init__(self, endpoint: str, insecure: bool = False,
                 max_retry_timeout: int = DEFAULT_MAX_RETRY_TIMEOUT,
                 api_version: Optional[str] = None,
                 http_timeout: int = DEFAULT_HTTP_TIMEOUT,
                 user_agent: str = DEFAULT_USER_AGENT,
                 http_headers: Optional[Dict[str, str]] = None,
                 request_id_func: Optional[Callable[[], str]] = None,
                 session: Optional[requests.Session] = None):
        if request_id_func is None and not os.getenv(ENV_SKIP_LOG_TRACING):
            request_id_func = default_request_id

        self.client = Client(endpoint, insecure=insecure, api_version=api_version,
                             http_timeout=http_timeout, max_retry_timeout=max_retry_timeout,
                             user_agent=user_agent, custom_header=http_headers,
                             request_id_func=request_id_func, session=session)
        self.session_href = ""

    def __repr__(self) -> str:
        return f"VCDClient(href={self.client.vcd_href!r}, api_version={self.client.api_version!r})"

    @classmethod
    def from_config(cls, config: VCDConfig, authenticate: bool = True) -> "VCDClient":
        """Build a client from a VCDConfig and, unless told otherwise, log in"""
        vcd = cls(config.url, insecure=config.insecure, max_retry_timeout=config.max_retry_timeout,
                  api_version=config.api_version, http_timeout=config.http_timeout,
                  user_agent=config.user_agent or DEFAULT_USER_AGENT,
                  http_headers=config.http_headers or None)
        if not authenticate:
            return vcd

        if config.api_token_file is not None:
            if config.service_account:
                vcd.set_service_account_api_token(config.org, str(config.api_token_file))
            else:
                vcd.set_api_token_from_file(config.org, str(config.api_token_file))
        elif config.token is not None:
            header = _TOKEN_HEADERS.get(config.token_type, BEARER_TOKEN_HEADER)
            vcd.set_token(config.org, header, config.token_value())
        else:
            vcd.authenticate(config.user or "", config.password_value(), config.org)
        return vcd

    def _login_url(self) -> str:
        try:
            return self.client.vcd_login_url()
        except VCDError as err:
            raise wrap_error(f"error finding LoginUrl: {err}", err) from err

    def _set_session_state(self, org: str) -> None:
        self.client.is_sys_admin = org.lower() == "system"
        self.client.query_href = f"{self.client.vcd_href}/query"

    def _cloudapi_authorize(self, user: str, password: str, org: str) -> requests.Response:
        missing = [name for name, value in (("user", user), ("password", password), ("org", org)) if not value]
        if missing:
            raise AuthenticationError(f"authorization is not possible because of these missing items: {missing}")

        logger.debug("Connecting to VCD using cloudapi")
        url = self.client.open_api_build_endpoint(PATH_VERSION_1_0_0, "sessions")
        # Provider logins need their own endpoint
        if org.lower() == "system":
            url += "/provider"
        self.session_href = url

        request = self.client.new_request(
            None, "POST", url, additional_headers={"Accept": f"application/*;version={self.client.api_version}"})
        request.auth = (f"{user}@{org}", password)
        resp = self.client.do(request)

        if resp.status_code == 401:
            raise AuthenticationError(f"received response HTTP {resp.status_code} (Unauthorized). "
                                      f"Please check if your credentials are valid")
        self.client.check_response(resp, BODY_TYPE_JSON)

        self.client.vcd_token = resp.headers.get(BEARER_TOKEN_HEADER, "")
        self.client.vcd_auth_header = BEARER_TOKEN_HEADER
        self._set_session_state(org)
        return resp

    def get_auth_response(self, user: str, password: str, org: str) -> requests.Response:
        """Log in with user and password, returning the raw session response"""
        self.session_href = self._login_url()
        try:
            resp = self._cloudapi_authorize(user, password, org)
        except VCDError as err:
            raise wrap_error(f"error authorizing: {err}", err) from err

        self.log_session_info()
        return resp

    def authenticate(self, user: str, password: str, org: str) -> None:
        self.get_auth_response(user, password, org)

    def set_token(self, org: str, auth_header: str, token: str) -> None:
        """Use an existing token instead of logging in.

        An API token (auth_header "API-token") is first exchanged for a
        bearer token. The token is checked by listing organizations.
        """
        if auth_header == API_TOKEN_HEADER:
            logger.debug("Attempt authentication using API token")
            try:
                refreshed = self.get_bearer_token_from_api_token(org, token)
            except VCDError as err:
                logger.debug(f"Authentication using API token was UNSUCCESSFUL: {err}")
                raise
            token = refreshed.access_token or ""
            auth_header = BEARER_TOKEN_HEADER
            self.client.using_access_token = True
            logger.debug("Authentication using API token was SUCCESSFUL")

        if not self.client.using_access_token:
            self.client.using_bearer_token = True
        self.client.vcd_auth_header = auth_header
        self.client.vcd_token = token

        self.session_href = self._login_url()
        self._set_session_state(org)

        # Any token holder can list orgs, so this certifies the token
        self.client.execute_request(f"{self.client.vcd_href}/org", "GET", "",
                                    "error connecting to vCD using token: %s", None, OrgList)
        self.log_session_info()

    def set_api_token(self, org: str, api_token: str) -> ApiTokenRefresh:
        """Like set_token for an API token, returning the refreshed token details"""
        refreshed = self.get_bearer_token_from_api_token(org, api_token)
        self.set_token(org, BEARER_TOKEN_HEADER, refreshed.access_token or "")
        return refreshed

    def set_api_token_from_file(self, org: str, api_token_file: str) -> ApiTokenRefresh:
        """Authenticate with the refresh_token stored in a JSON file"""
        stored = _read_token_file(api_token_file)
        return self.set_api_token(org, stored.refresh_token or "")

    def set_service_account_api_token(self, org: str, api_token_file: str) -> None:
        """Authenticate as a service account.

        Service account tokens are single use: the file is rewritten with the
        new refresh token and nothing else.
        """
        if self.client.api_vcd_max_version_is("< 37.0"):
            raise VCDError(self._minimum_version_message("Service Account authentication", "10.4", "37.0"))

        refreshed = self.set_api_token_from_file(org, api_token_file)
        kept = ApiTokenRefresh(refresh_token=refreshed.refresh_token, token_type="Service Account",
                               updated_by=self.client.user_agent,
                               updated_on=datetime.now().astimezone().isoformat(timespec="seconds"))
        _write_token_file(api_token_file, kept)

    def _minimum_version_message(self, feature: str, vcd_version: str, api_version: str) -> str:
        try:
            detected = self.client.get_vcd_full_version()
        except VCDError:
            return f"minimum API version for {feature} is {api_version} - Version detected: {self.client.api_version}"
        return f"minimum version for {feature} is {vcd_version} - Version detected: {detected}"

    def _oauth_url(self, org: str, endpoint: str) -> str:
        tenant = "provider" if org.lower() == "system" else f"tenant/{org}"
        return f"{self.client.host_url}/oauth/{tenant}/{endpoint}"

    def get_bearer_token_from_api_token(self, org: str, token: str) -> ApiTokenRefresh:
        """Exchange an API token for a bearer token with the refresh_token grant"""
        if self.client.api_vcd_max_version_is("< 36.1"):
            raise VCDError(self._minimum_version_message("API token", "10.3.1", "36.1"))

        data = f"grant_type=refresh_token&refresh_token={token}"
        request = self.client.new_request(None, "POST", self._oauth_url(org, "token"), data,
                                          content_type=FORM_MIME,
                                          additional_headers={"Accept": "application/*;version=36.1"})
        resp = self.client.do(request, mask_response=True)

        if not resp.content:
            raise AuthenticationError(f"refresh token was empty: {_status(resp)}")
        try:
            body = resp.json()
        except ValueError as err:
            raise AuthenticationError(f"error decoding token text: {err}") from err

        refreshed = ApiTokenRefresh.model_validate(body) if isinstance(body, dict) else ApiTokenRefresh()
        if not refreshed.access_token:
            # The body of a failed exchange is a set of error fields
            if isinstance(body, dict):
                message = "".join(f"{key}: {value} -  " for key, value in body.items()
                                  if value not in (None, "", "null"))
                raise AuthenticationError(f"{message}: {_status(resp)}")
            raise AuthenticationError(f"access token retrieved from API token was empty - "
                                      f"{_status(resp)} {resp.text}")
        return refreshed

    def _register_token(self, org: str, api_version: str, params: ApiTokenParams) -> ApiTokenParams:
        resp = self.client.send_json("POST", self._oauth_url(org, "register"), params.to_payload(),
                                     api_version, {"Accept": f"application/*;version={api_version}"})
        self.client.check_response(resp, BODY_TYPE_JSON)
        try:
            return ApiTokenParams.model_validate(resp.json())
        except ValueError as err:
            raise VCDError(f"error decoding token registration: {err}") from err

    def register_api_token(self, org: str, token_name: str) -> ApiTokenParams:
        if self.client.api_vcd_max_version_is("< 36.1"):
            raise VCDError(self._minimum_version_message("API token", "10.3.1", "36.1"))
        return self._register_token(org, "36.1", ApiTokenParams(client_name=token_name))

    def register_service_account(self, org: str, name: str, scope: str, software_id: str,
                                 software_version: str) -> ApiTokenParams:
        if self.client.api_vcd_max_version_is("< 37.1"):
            raise VCDError(self._minimum_version_message("Service Accounts", "10.4.0", "37.0"))
        params = ApiTokenParams(client_name=name, scope=scope, software_id=software_id,
                                software_version=software_version)
        return self._register_token(org, "37.0", params)

    def disconnect(self) -> None:
        """Close the session on the server"""
        if not self.client.vcd_token and not self.client.vcd_auth_header:
            raise VCDError("cannot disconnect, client is not authenticated")

        headers = {"Accept": f"application/xml;version={self.client.api_version}"}
        if self.client.vcd_auth_header:
            headers[self.client.vcd_auth_header] = self.client.vcd_token
        request = self.client.new_request(None, "DELETE", self.session_href, additional_headers=headers)
        try:
            self.client.check_response(self.client.do(request))
        except VCDError as err:
            raise wrap_error(f"error processing session delete for VMware Cloud Director: {err}", err) from err

    def get_session_info(self) -> CurrentSessionInfo:
        endpoint = PATH_VERSION_1_0_0 + ENDPOINT_SESSION_CURRENT
        api_version = self.client.check_open_api_endpoint_compatibility(endpoint)
        url = self.client.open_api_build_endpoint(endpoint)
        return self.client.open_api_get_item(api_version, url, None, CurrentSessionInfo)

    def log_session_info(self) -> None:
        """Log who the session belongs to, when library logging is on"""
        if not log_settings.enabled:
            return
        try:
            info = self.get_session_info()
        except VCDError as err:
            logger.debug(f"no session info available: {err}")
            return

        user = info.user.name if info.user else ""
        org = info.org.name if info.org else ""
        logger.debug(f"session user: {user}, org: {org}, roles: {info.roles}")
        logger.debug(f"API version: {self.client.api_version}, sys admin: {self.client.is_sys_admin}, "
                     f"bearer token: {self.client.using_bearer_token}, "
                     f"access token: {self.client.using_access_token}")

    def get_org_list(self) -> OrgList:
        return self.client.execute_request(f"{self.client.vcd_href}/org", "GET", "",
                                           "error retrieving org list: %s", None, OrgList)

    def _org_href(self, name: str) -> str:
        for org in self.get_org_list().orgs:
            if org.name == name:
                return org.href
        raise EntityNotFoundError(f"couldn't find org with name: {name}")

    def get_org_by_name(self, name: str) -> Org:
        org = self.client.execute_request(self._org_href(name), "GET", "", "error retrieving org: %s",
                                          None, OrgType)
        return Org(self.client, org)

    def get_admin_org_by_name(self, name: str) -> AdminOrg:
        org_uuid = self._org_href(name).split("/org/")[-1]
        return self._get_admin_org(org_uuid)

    def get_org_by_id(self, org_id: str) -> Org:
        """Accepts an URN or a bare UUID"""
        org_uuid = extract_uuid(org_id)
        if not org_uuid:
            raise VCDError(f"invalid org ID '{org_id}'")
        org = self.client.execute_request(f"{self.client.vcd_href}/org/{org_uuid}", "GET", "",
                                          "error retrieving org: %s", None, OrgType)
        return Org(self.client, org)

    def get_admin_org_by_id(self, org_id: str) -> AdminOrg:
        org_uuid = extract_uuid(org_id)
        if not org_uuid:
            raise VCDError(f"invalid org ID '{org_id}'")
        return self._get_admin_org(org_uuid)

    def _get_admin_org(self, org_uuid: str) -> AdminOrg:
        org = self.client.execute_request(f"{self.client.vcd_href}/admin/org/{org_uuid}", "GET", "",
                                          "error retrieving admin org: %s", None, AdminOrgType)
        return AdminOrg(self.client, org)

    def query(self, params: Mapping[str, str]) -> QueryResultRecords:
        """Run a legacy query over all pages. params must hold the query type."""
        raw = dict(params)
        query_type = raw.pop("type", "")
        if not query_type:
            raise VCDError("query type is required")
        return cumulative_query(self.client, query_type, None, raw)


def _read_token_file(filename: str) -> ApiTokenRefresh:
    try:
        with open(os.path.normpath(filename)) as f:
            data = f.read()
    except OSError as err:
        raise VCDError(f"failed to read from file: {err}") from err
    try:
        return ApiTokenRefresh.model_validate(json.loads(data))
    except ValueError as err:
        raise VCDError(f"failed to unmarshal file contents to the object: {err}") from err


def _write_token_file(filename: str, token: ApiTokenRefresh) -> None:
    data = json.dumps(token.to_payload(), indent=1)
    try:
        fd = os.open(filename, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            f.write(data)
        os.chmod(filename, 0o600)
    except OSError as err:
        raise VCDError(f"error writing to the file: {err}") from err
