"""
Unit tests for API version handling and endpoint negotiation
"""

from datetime import datetime

import pytest

from vcdlib.api.endpoints import ENDPOINT_MIN_API_VERSIONS
from vcdlib.api.versions import (
    compare_versions,
    int_list_to_version,
    parse_version,
    version_matches_constraint,
)
from vcdlib.exceptions import UnsupportedVersionError, VCDError
from vcdlib.types.xml import VersionInfo

ADMIN_PATH = "/api/admin"


def admin_body(xml, description):
    return xml(f'<VCloud href="https://vcd.example.com/api/admin" name="vcd">'
               f'<Description>{description}</Description></VCloud>')


class TestVersionHelpers:
    """Test cases for version parsing and comparison"""

    def test_parse_version(self):
        """Test parsing dotted versions"""
        assert parse_version("10.5.1.22000") == (10, 5, 1, 22000)

    def test_parse_version_invalid(self):
        """Test that non-numeric parts raise"""
        with pytest.raises(VCDError):
            parse_version("37.x")

    def test_compare_pads_digits(self):
        """Test that missing digits compare as zero"""
        assert compare_versions("37", "37.0") == 0
        assert compare_versions("37.1", "37.0.9") == 1
        assert compare_versions("9.7", "10.0") == -1

    @pytest.mark.parametrize("version,constraint,expected", [
        ("37.0", ">= 36.0", True),
        ("37.0", "< 37.0", False),
        ("37.0", "37.0", True),
        ("37.0", "= 37", True),
        ("31.0", ">= 27.0, < 32.0", True),
        ("32.0", ">= 27.0, < 32.0", False),
        ("36.1", "!= 36.1", False),
    ])
    def test_constraints(self, version, constraint, expected):
        """Test constraint matching"""
        assert version_matches_constraint(version, constraint) is expected

    @pytest.mark.parametrize("constraint", ["", "~> 37.0", ">= abc"])
    def test_bad_constraint(self, constraint):
        """Test that unparseable constraints raise"""
        with pytest.raises(VCDError):
            version_matches_constraint("37.0", constraint)

    def test_int_list_to_version(self):
        """Test zeroing trailing digits"""
        assert int_list_to_version([10, 5, 1, 22000], 2) == "10.5.0.0"
        assert int_list_to_version([10, 5, 1], 3) == "10.5.1"


class TestClientVersions:
    """Test cases for the client's version methods"""

    def test_max_supported_version(self, client):
        """Test picking the highest listed version"""
        client.supported_versions.append(VersionInfo(version="38.0.1"))

        assert client.max_supported_version() == "38.0.1"

    def test_fetch_versions_once(self, client, fake_vcd, xml):
        """Test that /versions is fetched and cached"""
        client.supported_versions = None
        fake_vcd.add("GET", "/api/versions", body=xml(
            '<SupportedVersions>'
            '<VersionInfo><Version>37.0</Version><LoginUrl>https://vcd.example.com/api/sessions</LoginUrl>'
            '</VersionInfo>'
            '<VersionInfo deprecated="true"><Version>33.0</Version></VersionInfo>'
            '</SupportedVersions>'))

        client.vcd_fetch_supported_versions()
        versions = client.vcd_fetch_supported_versions()

        assert [v.version for v in versions] == ["37.0", "33.0"]
        assert versions[1].deprecated is True
        assert len(fake_vcd.sent("GET", "/api/versions")) == 1
        assert client.vcd_login_url() == "https://vcd.example.com/api/sessions"

    def test_max_version_is(self, client):
        """Test constraints against the server maximum"""
        assert client.api_vcd_max_version_is(">= 38.0")
        assert not client.api_vcd_max_version_is("< 37.0")

    def test_max_version_is_false_on_error(self, client):
        """Test that a bad constraint yields False instead of raising"""
        assert client.api_vcd_max_version_is("bogus") is False

    def test_client_version_is(self, client):
        """Test constraints against the client version"""
        assert client.api_client_version_is("= 37.0")
        assert not client.api_client_version_is("> 37.0")

    def test_validate_unsupported(self, client):
        """Test that a client version the server does not list is rejected"""
        client.api_version = "35.0"

        with pytest.raises(UnsupportedVersionError):
            client.validate_api_version()

    def test_specific_version_on_condition(self, client):
        """Test choosing a version by server capability"""
        assert client.get_specific_api_version_on_condition(">= 38.0", "38.0") == "38.0"
        assert client.get_specific_api_version_on_condition(">= 39.0", "39.0") == "37.0"

    def test_vcd_version(self, client, fake_vcd, xml):
        """Test reading the product version from /admin"""
        fake_vcd.add("GET", ADMIN_PATH, body=admin_body(xml, "10.5.1.22000 Mon Oct 16 2023 12:34:56 UTC"))

        version, built = client.get_vcd_version()

        assert version == "10.5.1.22000"
        assert built == datetime(2023, 10, 16, 12, 34, 56)
        assert client.get_vcd_short_version() == "10.5.1"
        assert str(client.get_vcd_full_version()) == "10.5.1.22000"

    def test_vcd_version_bad_date(self, client, fake_vcd, xml):
        """Test that an unreadable build date raises"""
        fake_vcd.add("GET", ADMIN_PATH, body=admin_body(xml, "10.5.1.22000 sometime"))

        with pytest.raises(VCDError) as exc_info:
            client.get_vcd_version()

        assert "could not convert date" in str(exc_info.value)

    def test_version_equal_or_greater(self, client, fake_vcd, xml):
        """Test comparing VCD versions on some digits"""
        fake_vcd.add("GET", ADMIN_PATH, body=admin_body(xml, "10.5.1.22000 Mon Oct 16 2023 12:34:56 UTC"))

        assert client.version_equal_or_greater("10.5.0", 2)
        assert client.version_equal_or_greater("10.5.1.20000", 4)
        assert not client.version_equal_or_greater("10.6.0", 3)


class TestEndpointCompatibility:
    """Test cases for endpoint version negotiation"""

    def test_client_version_wins_when_higher(self, client):
        """Test that a newer client version is used as is"""
        assert client.check_open_api_endpoint_compatibility("1.0.0/roles/") == "37.0"

    def test_minimum_when_client_lower(self, client):
        """Test that the endpoint minimum is used when the client is older"""
        client.api_version = "36.0"

        assert client.check_open_api_endpoint_compatibility("1.0.0/serviceAccounts/") == "37.0"

    def test_unsupported_endpoint(self, client):
        """Test that an endpoint newer than the server raises"""
        with pytest.raises(UnsupportedVersionError) as exc_info:
            client.check_open_api_endpoint_compatibility("1.0.0/users/")

        assert "'40.0'" in str(exc_info.value)
        assert "'38.0'" in str(exc_info.value)

    def test_unknown_endpoint(self, client):
        """Test that unregistered endpoints raise"""
        with pytest.raises(VCDError):
            client.check_open_api_endpoint_compatibility("1.0.0/nothing/")

    def test_elevated_version(self, client):
        """Test that the highest elevated version both sides allow is chosen"""
        client.api_version = "36.0"

        assert client.get_open_api_highest_elevated_version("1.0.0/edgeGateways/%s/nat/rules/") == "36.0"

    def test_elevated_falls_back_to_minimum(self, client):
        """Test endpoints without elevated versions"""
        assert client.get_open_api_highest_elevated_version("1.0.0/roles/") == "37.0"

    def test_every_minimum_parses(self):
        """Test that the registry only holds valid versions"""
        for version in ENDPOINT_MIN_API_VERSIONS.values():
            assert parse_version(version)
