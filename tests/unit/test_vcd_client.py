"""
Unit tests for VCDClient authentication, sessions and entry points
"""

import base64
import json
import os
import stat

import pytest
from unittest.mock import patch

from vcdlib.client import API_TOKEN_HEADER, BEARER_TOKEN_HEADER, VCDClient
from vcdlib.config import VCDConfig
from vcdlib.exceptions import AuthenticationError, EntityNotFoundError, VCDError
from vcdlib.resources.org import AdminOrg, Org
from vcdlib.types.xml import VersionInfo

HOST = "https://vcd.example.com"
API = HOST + "/api"
ORG_UUID = "11111111-2222-3333-4444-555555555555"
TOKEN = "t" * 64
TOKEN_PATH = "/oauth/tenant/acme/token"


class TestAuthenticate:
    """Test cases for user and password logins"""

    def test_provider_login(self, vcd_client, fake_vcd):
        """Test a System login through the provider sessions endpoint"""
        fake_vcd.add("POST", "/cloudapi/1.0.0/sessions/provider", json_body={"id": "s1"},
                     headers={BEARER_TOKEN_HEADER: TOKEN})

        vcd_client.authenticate("admin", "secret", "System")

        sent = fake_vcd.requests[0]
        expected = base64.b64encode(b"admin@System:secret").decode()
        assert sent.headers["Authorization"] == f"Basic {expected}"
        assert sent.headers["Accept"] == "application/*;version=37.0"
        assert vcd_client.client.vcd_token == TOKEN
        assert vcd_client.client.vcd_auth_header == BEARER_TOKEN_HEADER
        assert vcd_client.client.is_sys_admin is True
        assert vcd_client.client.query_href == API + "/query"
        assert vcd_client.session_href == HOST + "/cloudapi/1.0.0/sessions/provider"

    def test_tenant_login(self, vcd_client, fake_vcd):
        """Test that tenants use the plain sessions endpoint"""
        fake_vcd.add("POST", "/cloudapi/1.0.0/sessions", json_body={"id": "s1"},
                     headers={BEARER_TOKEN_HEADER: TOKEN})

        vcd_client.authenticate("bob", "secret", "acme")

        assert vcd_client.client.is_sys_admin is False

    def test_missing_items(self, vcd_client):
        """Test that missing credentials are listed"""
        with pytest.raises(AuthenticationError) as exc_info:
            vcd_client.authenticate("", "", "acme")

        assert "missing items: ['user', 'password']" in str(exc_info.value)
        assert str(exc_info.value).startswith("error authorizing:")

    def test_unauthorized(self, vcd_client, fake_vcd):
        """Test that HTTP 401 is an authentication error"""
        fake_vcd.add("POST", "/cloudapi/1.0.0/sessions", status=401, reason="Unauthorized")

        with pytest.raises(AuthenticationError) as exc_info:
            vcd_client.authenticate("bob", "wrong", "acme")

        assert "HTTP 401 (Unauthorized)" in str(exc_info.value)

    def test_server_error(self, vcd_client, fake_vcd):
        """Test that other failures are raised as well"""
        fake_vcd.add("POST", "/cloudapi/1.0.0/sessions", status=500,
                     json_body={"minorErrorCode": "INTERNAL_SERVER_ERROR", "message": "down"})

        with pytest.raises(VCDError) as exc_info:
            vcd_client.authenticate("bob", "pw", "acme")

        assert "INTERNAL_SERVER_ERROR - down" in str(exc_info.value)

    def test_unsupported_api_version(self, vcd_client):
        """Test that a client version missing on the server fails before login"""
        vcd_client.client.supported_versions = [VersionInfo(version="36.0")]

        with pytest.raises(VCDError) as exc_info:
            vcd_client.authenticate("bob", "pw", "acme")

        assert "error finding LoginUrl" in str(exc_info.value)


class TestTokens:
    """Test cases for token based authentication"""

    def test_set_bearer_token(self, vcd_client, fake_vcd, org_list_xml):
        """Test using a bearer token checked against /org"""
        fake_vcd.add("GET", "/api/org", body=org_list_xml)

        vcd_client.set_token("System", BEARER_TOKEN_HEADER, TOKEN)

        assert vcd_client.client.using_bearer_token is True
        assert vcd_client.client.using_access_token is False
        assert vcd_client.session_href == API + "/sessions"
        assert fake_vcd.requests[0].headers["Authorization"] == f"bearer {TOKEN}"

    def test_set_invalid_token(self, vcd_client, fake_vcd, xml):
        """Test that a rejected token raises with context"""
        fake_vcd.add("GET", "/api/org", status=401,
                     body=xml('<Error majorErrorCode="401" message="not authenticated"/>'))

        with pytest.raises(VCDError) as exc_info:
            vcd_client.set_token("System", BEARER_TOKEN_HEADER, TOKEN)

        assert "error connecting to vCD using token" in str(exc_info.value)

    def test_api_token_exchange(self, vcd_client, fake_vcd, org_list_xml):
        """Test that an API token is traded for a bearer token"""
        fake_vcd.add("POST", TOKEN_PATH, json_body={"access_token": TOKEN, "token_type": "Bearer",
                                                    "expires_in": 2592000})
        fake_vcd.add("GET", "/api/org", body=org_list_xml)

        vcd_client.set_token("acme", API_TOKEN_HEADER, "refresh-me")

        exchange = fake_vcd.requests[0]
        assert exchange.body == "grant_type=refresh_token&refresh_token=refresh-me"
        assert exchange.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert exchange.headers["Accept"] == "application/*;version=36.1"
        assert vcd_client.client.using_access_token is True
        assert vcd_client.client.using_bearer_token is False
        assert vcd_client.client.vcd_auth_header == BEARER_TOKEN_HEADER
        assert vcd_client.client.vcd_token == TOKEN

    def test_api_token_error_body(self, vcd_client, fake_vcd):
        """Test that OAuth error fields end up in the message"""
        fake_vcd.add("POST", TOKEN_PATH, status=400, reason="Bad Request",
                     json_body={"error": "invalid_grant", "error_description": "expired", "error_uri": None})

        with pytest.raises(AuthenticationError) as exc_info:
            vcd_client.get_bearer_token_from_api_token("acme", "old")

        assert str(exc_info.value) == "error: invalid_grant -  error_description: expired -  : 400 Bad Request"

    def test_api_token_empty_body(self, vcd_client, fake_vcd):
        """Test that an empty answer is refused"""
        fake_vcd.add("POST", TOKEN_PATH)

        with pytest.raises(AuthenticationError) as exc_info:
            vcd_client.get_bearer_token_from_api_token("acme", "old")

        assert "refresh token was empty: 200 OK" in str(exc_info.value)

    def test_api_token_bad_json(self, vcd_client, fake_vcd):
        """Test that an undecodable answer is refused"""
        fake_vcd.add("POST", TOKEN_PATH, body="<html/>")

        with pytest.raises(AuthenticationError) as exc_info:
            vcd_client.get_bearer_token_from_api_token("acme", "old")

        assert "error decoding token text" in str(exc_info.value)

    def test_api_token_needs_new_server(self, vcd_client, fake_vcd, xml):
        """Test the version gate and its message"""
        vcd_client.client.supported_versions = [VersionInfo(version="36.0")]
        fake_vcd.add("GET", "/api/admin", body=xml(
            '<VCloud name="vcd"><Description>10.3.0.18000 Mon Oct 16 2023 12:34:56 UTC</Description></VCloud>'))

        with pytest.raises(VCDError) as exc_info:
            vcd_client.get_bearer_token_from_api_token("acme", "old")

        assert str(exc_info.value) == "minimum version for API token is 10.3.1 - Version detected: 10.3.0.18000"

    def test_provider_oauth_url(self, vcd_client):
        """Test the OAuth URL for System"""
        assert vcd_client._oauth_url("System", "token") == HOST + "/oauth/provider/token"

    def test_api_token_from_file(self, vcd_client, fake_vcd, org_list_xml, tmp_path):
        """Test reading the refresh token from a file"""
        token_file = tmp_path / "token.json"
        token_file.write_text(json.dumps({"refresh_token": "from-file"}))
        fake_vcd.add("POST", TOKEN_PATH, json_body={"access_token": TOKEN})
        fake_vcd.add("GET", "/api/org", body=org_list_xml)

        refreshed = vcd_client.set_api_token_from_file("acme", str(token_file))

        assert refreshed.access_token == TOKEN
        assert fake_vcd.requests[0].body.endswith("refresh_token=from-file")

    def test_missing_token_file(self, vcd_client, tmp_path):
        """Test that unreadable token files raise"""
        with pytest.raises(VCDError) as exc_info:
            vcd_client.set_api_token_from_file("acme", str(tmp_path / "absent.json"))

        assert "failed to read from file" in str(exc_info.value)

    def test_service_account_rewrites_file(self, vcd_client, fake_vcd, org_list_xml, tmp_path):
        """Test that the new refresh token replaces the old one with owner-only access"""
        token_file = tmp_path / "sa.json"
        token_file.write_text(json.dumps({"refresh_token": "first", "access_token": "stale"}))
        fake_vcd.add("POST", TOKEN_PATH, json_body={"access_token": TOKEN, "refresh_token": "second"})
        fake_vcd.add("GET", "/api/org", body=org_list_xml)

        vcd_client.set_service_account_api_token("acme", str(token_file))

        stored = json.loads(token_file.read_text())
        assert stored["refresh_token"] == "second"
        assert stored["token_type"] == "Service Account"
        assert stored["updated_by"] == "vcd-lib"
        assert "access_token" not in stored
        assert stat.S_IMODE(os.stat(token_file).st_mode) == 0o600

    def test_register_api_token(self, vcd_client, fake_vcd):
        """Test registering a named API token"""
        fake_vcd.add("POST", "/oauth/tenant/acme/register",
                     json_body={"client_name": "ci", "client_id": "c1", "grant_types": ["refresh_token"]})

        params = vcd_client.register_api_token("acme", "ci")

        assert params.client_id == "c1"
        assert json.loads(fake_vcd.requests[0].body) == {"client_name": "ci"}

    def test_register_service_account(self, vcd_client, fake_vcd):
        """Test registering a service account"""
        fake_vcd.add("POST", "/oauth/provider/register", json_body={"client_name": "sa", "client_id": "c2"})

        params = vcd_client.register_service_account("System", "sa", "urn:vcloud:role:x", "sw", "1.0")

        assert params.client_id == "c2"
        sent = fake_vcd.requests[0]
        assert sent.headers["Accept"] == "application/*;version=37.0"
        assert json.loads(sent.body)["software_id"] == "sw"


class TestSession:
    """Test cases for session information and logout"""

    def test_disconnect(self, vcd_client, fake_vcd):
        """Test deleting the session"""
        vcd_client.client.vcd_auth_header = BEARER_TOKEN_HEADER
        vcd_client.client.vcd_token = TOKEN
        vcd_client.session_href = HOST + "/cloudapi/1.0.0/sessions/provider"
        fake_vcd.add("DELETE", "/cloudapi/1.0.0/sessions/provider", status=204)

        vcd_client.disconnect()

        sent = fake_vcd.requests[0]
        assert sent.headers["Accept"] == "application/xml;version=37.0"
        assert sent.headers[BEARER_TOKEN_HEADER] == TOKEN

    def test_disconnect_unauthenticated(self, vcd_client):
        """Test that there is nothing to close without a token"""
        with pytest.raises(VCDError):
            vcd_client.disconnect()

    def test_session_info(self, vcd_client, fake_vcd):
        """Test reading the current session"""
        fake_vcd.add("GET", "/cloudapi/1.0.0/sessions/current",
                     json_body={"id": "s1", "user": {"name": "admin"}, "org": {"name": "System"},
                                "roles": ["System Administrator"]})

        info = vcd_client.get_session_info()

        assert info.user.name == "admin"
        assert info.roles == ["System Administrator"]

    def test_request_ids(self, mock_session):
        """Test that request ids are added unless tracing is skipped"""
        assert VCDClient(API, session=mock_session).client.request_id_func is not None

    def test_skip_request_ids(self, mock_session, monkeypatch):
        """Test the environment switch for request ids"""
        monkeypatch.setenv("VCDLIB_SKIP_LOG_TRACING", "1")

        assert VCDClient(API, session=mock_session).client.request_id_func is None


class TestOrgEntryPoints:
    """Test cases for organization lookups"""

    def test_get_org_by_name(self, vcd_client, fake_vcd, org_list_xml, org_xml):
        """Test finding an org through the org list"""
        fake_vcd.add("GET", "/api/org", body=org_list_xml)
        fake_vcd.add("GET", f"/api/org/{ORG_UUID}", body=org_xml)

        org = vcd_client.get_org_by_name("acme")

        assert isinstance(org, Org)
        assert org.org.full_name == "Acme Corp"

    def test_get_org_by_name_missing(self, vcd_client, fake_vcd, org_list_xml):
        """Test that an unknown name is not-found"""
        fake_vcd.add("GET", "/api/org", body=org_list_xml)

        with pytest.raises(EntityNotFoundError) as exc_info:
            vcd_client.get_org_by_name("nobody")

        assert "couldn't find org with name: nobody" in str(exc_info.value)

    def test_get_admin_org_by_name(self, vcd_client, fake_vcd, org_list_xml, admin_org_xml):
        """Test that admin orgs are read from /admin/org"""
        fake_vcd.add("GET", "/api/org", body=org_list_xml)
        fake_vcd.add("GET", f"/api/admin/org/{ORG_UUID}", body=admin_org_xml)

        org = vcd_client.get_admin_org_by_name("acme")

        assert isinstance(org, AdminOrg)
        assert [c.name for c in org.admin_org.catalogs] == ["cat1"]

    def test_get_org_by_id(self, vcd_client, fake_vcd, org_xml, admin_org_xml):
        """Test lookups by URN"""
        fake_vcd.add("GET", f"/api/org/{ORG_UUID}", body=org_xml)
        fake_vcd.add("GET", f"/api/admin/org/{ORG_UUID}", body=admin_org_xml)

        assert vcd_client.get_org_by_id(f"urn:vcloud:org:{ORG_UUID}").org.name == "acme"
        assert vcd_client.get_admin_org_by_id(ORG_UUID).org.name == "acme"

    def test_get_org_by_bad_id(self, vcd_client):
        """Test that ids without UUID are refused"""
        with pytest.raises(VCDError):
            vcd_client.get_org_by_id("acme")

    def test_query(self, vcd_client, fake_vcd, xml):
        """Test running a query by type"""
        fake_vcd.add("GET", "/api/query", body=xml(
            '<QueryResultRecords total="1" page="1"><OrgRecord name="acme"/></QueryResultRecords>'))

        result = vcd_client.query({"type": "organization", "filter": "name==acme"})

        assert result.records[0]["name"] == "acme"
        assert fake_vcd.query(fake_vcd.requests[0])["type"] == "organization"

    def test_query_requires_type(self, vcd_client):
        """Test that the query type is mandatory"""
        with pytest.raises(VCDError):
            vcd_client.query({"filter": "name==acme"})


class TestFromConfig:
    """Test cases for building clients from configuration"""

    @patch.object(VCDClient, "authenticate")
    def test_password_login(self, mock_authenticate):
        """Test that user and password trigger a login"""
        config = VCDConfig(url=HOST, user="admin", password="secret")

        vcd = VCDClient.from_config(config)

        mock_authenticate.assert_called_once_with("admin", "secret", "System")
        assert vcd.client.vcd_href == API

    @patch.object(VCDClient, "set_token")
    def test_token_type(self, mock_set_token):
        """Test the token header chosen for each token type"""
        VCDClient.from_config(VCDConfig(url=HOST, token="abc", token_type="api_token", org="acme"))
        VCDClient.from_config(VCDConfig(url=HOST, token="abc"))

        assert mock_set_token.call_args_list[0][0] == ("acme", API_TOKEN_HEADER, "abc")
        assert mock_set_token.call_args_list[1][0] == ("System", BEARER_TOKEN_HEADER, "abc")

    @patch.object(VCDClient, "set_service_account_api_token")
    def test_service_account_file(self, mock_service_account, tmp_path):
        """Test that service account files use the rotating login"""
        token_file = tmp_path / "sa.json"
        VCDClient.from_config(VCDConfig(url=HOST, api_token_file=token_file, service_account=True, org="acme"))

        mock_service_account.assert_called_once_with("acme", str(token_file))

    @patch.object(VCDClient, "authenticate")
    def test_without_login(self, mock_authenticate):
        """Test building an unauthenticated client"""
        vcd = VCDClient.from_config(VCDConfig(url=HOST, user="a", password="b", insecure=True),
                                    authenticate=False)

        mock_authenticate.assert_not_called()
        assert vcd.client.insecure is True
