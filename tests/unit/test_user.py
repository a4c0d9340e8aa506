"""
Unit tests for OpenAPI users
"""

import pytest

from vcdlib.exceptions import EntityNotFoundError, OpenApiError, VCDError
from vcdlib.resources.user import User, create_user, get_user_by_name
from vcdlib.tenant_context import HEADER_AUTH_CONTEXT, HEADER_TENANT_CONTEXT, TenantContext
from vcdlib.types.openapi import OpenApiUser, UserPasswordChange

HOST = "https://vcd.example.com"
USER_ID = "urn:vcloud:user:u1"
TENANT = TenantContext(org_id="11111111-2222-3333-4444-555555555555", org_name="acme")
TENANT_HEADERS = {HEADER_TENANT_CONTEXT: TENANT.org_id, HEADER_AUTH_CONTEXT: "acme"}


class TestUserLookup:
    """Test cases for finding users by name"""

    def test_fast_search(self, mock_client):
        """Test that plain names use an encoded server-side filter"""
        mock_client.open_api_get_all_items.return_value = [OpenApiUser(id=USER_ID, username="bob")]
        mock_client.open_api_get_item_and_headers.return_value = (
            OpenApiUser(id=USER_ID, username="bob", email="bob@example.com"), {})

        user = get_user_by_name(mock_client, "bob", TENANT)

        assert user.user.email == "bob@example.com"
        assert user.tenant_context == TENANT
        list_args = mock_client.open_api_get_all_items.call_args[0]
        assert list_args[2] == {"filter": "username==bob", "filterEncoded": "true"}
        assert list_args[4] == TENANT_HEADERS
        get_args = mock_client.open_api_get_item_and_headers.call_args[0]
        assert get_args[1] == f"{HOST}/cloudapi/1.0.0/users/{USER_ID}"

    def test_slow_search(self, mock_client):
        """Test that names with spaces are matched locally"""
        mock_client.open_api_get_all_items.return_value = [
            OpenApiUser(id="urn:vcloud:user:u0", username="bob"),
            OpenApiUser(id=USER_ID, username="bob smith"),
        ]
        mock_client.open_api_get_item_and_headers.return_value = (OpenApiUser(id=USER_ID, username="bob smith"), {})

        user = get_user_by_name(mock_client, "bob smith")

        assert user.user.id == USER_ID
        assert mock_client.open_api_get_all_items.call_args[0][2] is None
        assert mock_client.open_api_get_item_and_headers.call_args[0][1].endswith(USER_ID)

    def test_not_found(self, mock_client):
        """Test that no match raises EntityNotFoundError"""
        mock_client.open_api_get_all_items.return_value = []

        with pytest.raises(EntityNotFoundError):
            get_user_by_name(mock_client, "ghost")

    def test_slow_search_not_found(self, mock_client):
        """Test that a local scan without match raises EntityNotFoundError"""
        mock_client.open_api_get_all_items.return_value = [OpenApiUser(id=USER_ID, username="bob")]

        with pytest.raises(EntityNotFoundError):
            get_user_by_name(mock_client, "bob smith")

    def test_empty_name(self, mock_client):
        """Test that a username is required"""
        with pytest.raises(VCDError) as exc_info:
            get_user_by_name(mock_client, "")

        assert "User lookup requires username" in str(exc_info.value)


class TestUserChanges:
    """Test cases for user operations"""

    def test_create_user(self, mock_client):
        """Test creating a user in a tenant"""
        mock_client.open_api_post_item.return_value = OpenApiUser(id=USER_ID, username="alice")

        user = create_user(mock_client, OpenApiUser(username="alice", password="pw"), TENANT)

        assert isinstance(user, User)
        assert user.tenant_context == TENANT
        args = mock_client.open_api_post_item.call_args[0]
        assert args[1] == f"{HOST}/cloudapi/1.0.0/users/"
        assert args[4] is OpenApiUser
        assert args[5] == TENANT_HEADERS

    def test_change_password(self, mock_client):
        """Test posting a password change"""
        user = User(mock_client, OpenApiUser(id=USER_ID, username="alice"), TENANT)

        user.change_password("new-secret", "old-secret")

        args = mock_client.open_api_post_item.call_args[0]
        assert args[1] == f"{HOST}/cloudapi/1.0.0/users/{USER_ID}/password"
        assert args[3] == UserPasswordChange(new_password="new-secret", old_password="old-secret")
        assert args[4] is dict
        assert args[5] == TENANT_HEADERS

    def test_change_password_error(self, mock_client):
        """Test that password errors keep the API error as cause"""
        cause = OpenApiError(minor_error_code="BAD_REQUEST", message="weak password")
        mock_client.open_api_post_item.side_effect = cause
        user = User(mock_client, OpenApiUser(id=USER_ID, username="alice"))

        with pytest.raises(VCDError) as exc_info:
            user.change_password("x")

        assert "error updating User password" in str(exc_info.value)
        assert exc_info.value.__cause__ is cause

    def test_unlock(self, mock_client):
        """Test that unlocking posts an empty body"""
        User(mock_client, OpenApiUser(id=USER_ID, username="alice")).unlock()

        args = mock_client.open_api_post_item.call_args[0]
        assert args[1] == f"{HOST}/cloudapi/1.0.0/users/{USER_ID}/unlock"
        assert args[3] is None

    def test_delete(self, mock_client):
        """Test deleting a user"""
        User(mock_client, OpenApiUser(id=USER_ID, username="alice")).delete()

        assert mock_client.open_api_delete_item.call_args[0][1] == f"{HOST}/cloudapi/1.0.0/users/{USER_ID}"
