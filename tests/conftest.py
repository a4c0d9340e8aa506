"""
Shared test fixtures and configuration for VCD-Lib tests
"""

import json
import re
from urllib.parse import parse_qs, urlsplit

import pytest
import requests
from requests.structures import CaseInsensitiveDict
from unittest.mock import Mock

from vcdlib.api.client import Client
from vcdlib.client import VCDClient
from vcdlib.types.xml import VersionInfo
from vcdlib.util.http_logging import settings as log_settings

VCD_HOST = "https://vcd.example.com"
VCD_API = VCD_HOST + "/api"
ORG_UUID = "11111111-2222-3333-4444-555555555555"
ORG_URN = f"urn:vcloud:org:{ORG_UUID}"
BEARER_TOKEN = "b" * 64


def make_response(status=200, body=None, json_body=None, headers=None, reason="OK"):
    """Build a real requests.Response with canned content"""
    resp = requests.Response()
    resp.status_code = status
    resp.reason = reason
    if json_body is not None:
        body = json.dumps(json_body)
        headers = dict(headers or {})
        headers.setdefault("Content-Type", "application/json")
    if isinstance(body, str):
        body = body.encode("utf-8")
    resp._content = body or b""
    resp.headers = CaseInsensitiveDict(headers or {})
    return resp


def xml_doc(body: str) -> str:
    """Wrap an element in the vcloud default namespace"""
    return re.sub(r"^<(\w+)", r'<\1 xmlns="http://www.vmware.com/vcloud/v1.5"', body, count=1)


def task_xml(status="success", href=VCD_API + "/task/t1", error_message=""):
    error = f'<Error message="{error_message}" majorErrorCode="500"/>' if error_message else ""
    return xml_doc(f'<Task href="{href}" status="{status}" operation="op">{error}</Task>')


class FakeVCD:
    """Answers prepared requests from responses queued by method and path.

    The last queued response of a route is reused for any further request.
    """

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, method, path, status=200, body=None, json_body=None, headers=None, reason="OK"):
        response = make_response(status, body, json_body, headers, reason)
        self.routes.setdefault((method, path), []).append(response)
        return response

    def send(self, prepared, timeout=None, **kwargs):
        self.requests.append(prepared)
        path = urlsplit(prepared.url).path
        queue = self.routes.get((prepared.method, path))
        if not queue:
            raise AssertionError(f"unexpected request {prepared.method} {prepared.url}")
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def sent(self, method, path):
        return [r for r in self.requests if r.method == method and urlsplit(r.url).path == path]

    @staticmethod
    def query(prepared):
        return {key: values[0] for key, values in parse_qs(urlsplit(prepared.url).query).items()}


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep user VCDLIB_* settings and logging state out of the tests"""
    for name in ("VCDLIB_API_VERSION", "VCDLIB_SKIP_LOG_TRACING", "VCDLIB_URL", "VCDLIB_USER",
                 "VCDLIB_PASSWORD", "VCDLIB_ORG", "VCDLIB_TOKEN", "VCDLIB_TOKEN_TYPE",
                 "VCDLIB_API_TOKEN_FILE", "VCDLIB_INSECURE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(log_settings, "enabled", False)
    monkeypatch.setattr(log_settings, "log_passwords", False)


@pytest.fixture
def fake_vcd():
    """Fake Cloud Director endpoint"""
    return FakeVCD()


@pytest.fixture
def mock_session(fake_vcd):
    """requests.Session mock that routes to fake_vcd"""
    session = Mock(spec=requests.Session)
    session.prepare_request.side_effect = lambda request: request.prepare()
    session.send.side_effect = fake_vcd.send
    return session


@pytest.fixture
def supported_versions():
    return [
        VersionInfo(version="36.0", login_url=VCD_API + "/sessions"),
        VersionInfo(version="37.0", login_url=VCD_API + "/sessions"),
        VersionInfo(version="38.0", login_url=VCD_API + "/sessions"),
    ]


@pytest.fixture
def client(mock_session, supported_versions):
    """Authenticated low level Client talking to fake_vcd"""
    api_client = Client(VCD_API, session=mock_session)
    api_client.supported_versions = supported_versions
    api_client.vcd_auth_header = "X-VMWARE-VCLOUD-ACCESS-TOKEN"
    api_client.vcd_token = BEARER_TOKEN
    api_client.is_sys_admin = True
    return api_client


@pytest.fixture
def vcd_client(mock_session, supported_versions):
    """Unauthenticated VCDClient talking to fake_vcd"""
    vcd = VCDClient(VCD_API, session=mock_session)
    vcd.client.supported_versions = supported_versions
    return vcd


@pytest.fixture
def mock_client():
    """Mock Client for resource tests"""
    api_client = Mock(spec=Client)
    api_client.vcd_href = VCD_API
    api_client.api_version = "37.0"
    api_client.is_sys_admin = True
    api_client.open_api_build_endpoint.side_effect = lambda *parts: f"{VCD_HOST}/cloudapi/{''.join(parts)}"
    api_client.check_open_api_endpoint_compatibility.return_value = "37.0"
    api_client.get_open_api_highest_elevated_version.return_value = "37.0"
    api_client.api_vcd_max_version_is.return_value = True
    return api_client


# Test data fixtures
@pytest.fixture
def org_list_xml():
    return xml_doc(
        '<OrgList>'
        f'<Org href="{VCD_API}/org/{ORG_UUID}" name="acme" type="application/vnd.vmware.vcloud.org+xml"/>'
        '</OrgList>')


@pytest.fixture
def org_xml():
    return xml_doc(
        f'<Org href="{VCD_API}/org/{ORG_UUID}" id="{ORG_URN}" name="acme">'
        f'<Link rel="down" href="{VCD_API}/vdc/v1" name="vdc1" type="application/vnd.vmware.vcloud.vdc+xml"/>'
        f'<Link rel="down" href="{VCD_API}/catalog/c1" name="cat1" '
        'type="application/vnd.vmware.vcloud.catalog+xml"/>'
        '<FullName>Acme Corp</FullName>'
        '</Org>')


@pytest.fixture
def admin_org_xml():
    return xml_doc(
        f'<AdminOrg href="{VCD_API}/admin/org/{ORG_UUID}" id="{ORG_URN}" name="acme">'
        '<Description>tenant</Description>'
        '<FullName>Acme Corp</FullName>'
        '<IsEnabled>true</IsEnabled>'
        '<Settings><OrgGeneralSettings/></Settings>'
        f'<Catalogs><CatalogReference href="{VCD_API}/admin/catalog/c1" name="cat1"/></Catalogs>'
        f'<Vdcs><Vdc href="{VCD_API}/vdc/v1" name="vdc1"/></Vdcs>'
        '</AdminOrg>')


@pytest.fixture
def vdc_xml():
    return xml_doc(
        f'<Vdc href="{VCD_API}/vdc/v1" id="urn:vcloud:vdc:v1" name="vdc1" status="1">'
        f'<Link rel="add" href="{VCD_API}/vdc/v1/disk" '
        'type="application/vnd.vmware.vcloud.diskCreateParams+xml"/>'
        '<AllocationModel>Flex</AllocationModel>'
        '<ResourceEntities>'
        f'<ResourceEntity href="{VCD_API}/vApp/vapp-1" name="app1" type="application/vnd.vmware.vcloud.vApp+xml"/>'
        f'<ResourceEntity href="{VCD_API}/disk/d1" name="data" type="application/vnd.vmware.vcloud.disk+xml"/>'
        '</ResourceEntities>'
        '</Vdc>')


@pytest.fixture
def xml():
    """Helper that puts an XML snippet in the vcloud namespace"""
    return xml_doc


@pytest.fixture
def task_body():
    """Helper that renders a Task document"""
    return task_xml
