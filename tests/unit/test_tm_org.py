"""
Unit tests for Tenant Manager organizations and IP spaces
"""

import pytest

from vcdlib.exceptions import EntityNotFoundError, VCDError
from vcdlib.resources.ip_space import (
    IpSpace,
    create_ip_space,
    get_ip_space_by_name,
    get_ip_space_by_name_and_org_id,
)
from vcdlib.resources.tm_org import TmOrg, create_tm_org, get_tm_org_by_name
from vcdlib.types.openapi import IpSpace as IpSpaceType
from vcdlib.types.openapi import TmOrg as TmOrgType

HOST = "https://vcd.example.com"
ORG_ID = "urn:vcloud:org:11111111-2222-3333-4444-555555555555"


class TestTmOrg:
    """Test cases for Tenant Manager organizations"""

    def test_create(self, mock_client):
        """Test creating an organization"""
        mock_client.open_api_post_item.return_value = TmOrgType(id=ORG_ID, name="acme")

        org = create_tm_org(mock_client, TmOrgType(name="acme", display_name="Acme"))

        assert isinstance(org, TmOrg)
        assert org.tm_org.id == ORG_ID
        assert mock_client.open_api_post_item.call_args[0][1] == f"{HOST}/cloudapi/1.0.0/orgs/"

    def test_get_by_name_reads_by_id(self, mock_client):
        """Test that the name match is read again by id"""
        mock_client.open_api_get_all_items.return_value = [TmOrgType(id=ORG_ID, name="acme")]
        mock_client.open_api_get_item_and_headers.return_value = (
            TmOrgType(id=ORG_ID, name="acme", is_enabled=True), {})

        org = get_tm_org_by_name(mock_client, "acme")

        assert org.tm_org.is_enabled is True
        assert mock_client.open_api_get_all_items.call_args[0][2] == {"filter": "name==acme"}
        assert mock_client.open_api_get_item_and_headers.call_args[0][1] == f"{HOST}/cloudapi/1.0.0/orgs/{ORG_ID}"

    def test_get_by_name_not_found(self, mock_client):
        """Test that no match raises EntityNotFoundError"""
        mock_client.open_api_get_all_items.return_value = []

        with pytest.raises(EntityNotFoundError):
            get_tm_org_by_name(mock_client, "ghost")

    def test_get_by_name_requires_name(self, mock_client):
        """Test that an empty name is rejected"""
        with pytest.raises(VCDError):
            get_tm_org_by_name(mock_client, "")

    def test_disable(self, mock_client):
        """Test that disabling sends an update with is_enabled off"""
        mock_client.open_api_put_item_and_get_headers.side_effect = \
            lambda version, url, params, payload, out, headers: (payload, {})
        org = TmOrg(mock_client, TmOrgType(id=ORG_ID, name="acme", is_enabled=True))

        org.disable()

        args = mock_client.open_api_put_item_and_get_headers.call_args[0]
        assert args[1] == f"{HOST}/cloudapi/1.0.0/orgs/{ORG_ID}"
        assert args[3].is_enabled is False
        assert org.tm_org.is_enabled is False

    def test_disable_failure_keeps_state(self, mock_client):
        """Test that a rejected update leaves the organization enabled"""
        mock_client.open_api_put_item_and_get_headers.side_effect = VCDError("org is busy")
        org = TmOrg(mock_client, TmOrgType(id=ORG_ID, name="acme", is_enabled=True))

        with pytest.raises(VCDError):
            org.disable()

        assert org.tm_org.is_enabled is True

    def test_delete(self, mock_client):
        """Test deleting an organization"""
        TmOrg(mock_client, TmOrgType(id=ORG_ID, name="acme")).delete()

        assert mock_client.open_api_delete_item.call_args[0][1] == f"{HOST}/cloudapi/1.0.0/orgs/{ORG_ID}"


class TestIpSpace:
    """Test cases for IP spaces"""

    def test_create(self, mock_client):
        """Test creating an IP space"""
        mock_client.open_api_post_item.return_value = IpSpaceType(id="ips-1", name="public", type="PUBLIC")

        space = create_ip_space(mock_client, IpSpaceType(name="public", type="PUBLIC"))

        assert space.ip_space.id == "ips-1"
        assert mock_client.open_api_post_item.call_args[0][1] == f"{HOST}/cloudapi/1.0.0/ipSpaces/"

    def test_get_by_name_uses_summaries(self, mock_client):
        """Test that the name is searched in summaries and read by id"""
        mock_client.open_api_get_all_items.return_value = [IpSpaceType(id="ips-1", name="public")]
        mock_client.open_api_get_item.return_value = IpSpaceType(id="ips-1", name="public", type="PUBLIC")

        space = get_ip_space_by_name(mock_client, "public")

        assert space.ip_space.type == "PUBLIC"
        assert mock_client.open_api_get_all_items.call_args[0][1] == \
            f"{HOST}/cloudapi/1.0.0/ipSpaces/summaries"
        assert mock_client.open_api_get_item.call_args[0][1] == f"{HOST}/cloudapi/1.0.0/ipSpaces/ips-1"

    def test_get_by_name_and_org(self, mock_client):
        """Test that private IP spaces are filtered by org"""
        mock_client.open_api_get_all_items.return_value = [IpSpaceType(id="ips-2", name="private")]
        mock_client.open_api_get_item.return_value = IpSpaceType(id="ips-2", name="private", type="PRIVATE")

        get_ip_space_by_name_and_org_id(mock_client, "private", ORG_ID)

        assert mock_client.open_api_get_all_items.call_args[0][2] == \
            {"filter": f"name==private;orgRef.id=={ORG_ID}"}

    def test_get_by_name_and_org_requires_both(self, mock_client):
        """Test that name and org id are required"""
        with pytest.raises(VCDError) as exc_info:
            get_ip_space_by_name_and_org_id(mock_client, "private", "")

        assert "requires name and Org ID" in str(exc_info.value)

    def test_update_keeps_id(self, mock_client):
        """Test that updates are sent for the existing id"""
        mock_client.open_api_put_item.side_effect = lambda version, url, params, payload, out: payload
        space = IpSpace(mock_client, IpSpaceType(id="ips-1", name="public"))

        updated = space.update(IpSpaceType(name="renamed", type="PUBLIC"))

        assert updated.ip_space.id == "ips-1"
        assert mock_client.open_api_put_item.call_args[0][1] == f"{HOST}/cloudapi/1.0.0/ipSpaces/ips-1"

    def test_delete_requires_id(self, mock_client):
        """Test that IP spaces without id cannot be deleted"""
        with pytest.raises(VCDError) as exc_info:
            IpSpace(mock_client, IpSpaceType(name="public")).delete()

        assert "IP Space must have ID" in str(exc_info.value)
