"""
OpenAPI users, always addressed through a tenant context
"""

import logging
from typing import List, Mapping, Optional

from ..api.endpoints import ENDPOINT_USERS, ENDPOINT_USERS_PASSWORD, ENDPOINT_USERS_UNLOCK, PATH_VERSION_1_0_0
from ..api.filters import should_do_slow_search
from ..api.generic import (
    CrudConfig,
    OuterEntity,
    create_inner_entity,
    create_outer_entity,
    delete_entity_by_id,
    generic_local_filter_one_or_error,
    get_all_outer_entities,
    get_outer_entity,
    one_or_error,
    update_outer_entity,
)
from ..exceptions import VCDError, wrap_error
from ..tenant_context import TenantContext, get_tenant_context_header
from ..types.openapi import OpenApiUser, UserPasswordChange

logger = logging.getLogger(__name__)

LABEL_USER = "User"


def _config(tenant_context: Optional[TenantContext], *endpoint_params: str,
            endpoint: str = PATH_VERSION_1_0_0 + ENDPOINT_USERS,
            query_parameters: Optional[Mapping[str, str]] = None) -> CrudConfig:
    return CrudConfig(entity_label=LABEL_USER, endpoint=endpoint,
                      endpoint_params=list(endpoint_params) or None,
                      query_parameters=dict(query_parameters) if query_parameters else None,
                      additional_header=get_tenant_context_header(tenant_context))


class User(OuterEntity):
    inner_type = OpenApiUser

    def __init__(self, client, inner: Optional[OpenApiUser] = None,
                 tenant_context: Optional[TenantContext] = None):
        super().__init__(client, inner)
        self.tenant_context = tenant_context

    def wrap(self, inner: OpenApiUser) -> "User":
        return User(self.client, inner, self.tenant_context)

    def __repr__(self) -> str:
        return f"User(username={getattr(self.inner, 'username', None)!r})"

    @property
    def user(self) -> OpenApiUser:
        return self.inner

    def update(self, config: OpenApiUser) -> "User":
        return update_outer_entity(self.client, self, _config(self.tenant_context, self.inner.id), config)

    def delete(self) -> None:
        delete_entity_by_id(self.client, _config(self.tenant_context, self.inner.id))

    def change_password(self, new_password: str, old_password: Optional[str] = None) -> None:
        config = _config(self.tenant_context, self.inner.id,
                         endpoint=PATH_VERSION_1_0_0 + ENDPOINT_USERS_PASSWORD)
        payload = UserPasswordChange(new_password=new_password, old_password=old_password)
        try:
            create_inner_entity(self.client, config, payload, dict)
        except VCDError as err:
            raise wrap_error(f"error updating {LABEL_USER} password: {err}", err) from err

    def unlock(self) -> None:
        """Unlock a user locked out after failed logins"""
        config = _config(self.tenant_context, self.inner.id, endpoint=PATH_VERSION_1_0_0 + ENDPOINT_USERS_UNLOCK)
        try:
            create_inner_entity(self.client, config, None, dict)
        except VCDError as err:
            raise wrap_error(f"error unlocking {LABEL_USER} {self.inner.username}: {err}", err) from err


def create_user(client, config: OpenApiUser, tenant_context: Optional[TenantContext] = None) -> User:
    return create_outer_entity(client, User(client, tenant_context=tenant_context), _config(tenant_context),
                               config)


def get_all_users(client, query_parameters: Optional[Mapping[str, str]] = None,
                  tenant_context: Optional[TenantContext] = None) -> List[User]:
    return get_all_outer_entities(client, User(client, tenant_context=tenant_context),
                                  _config(tenant_context, query_parameters=query_parameters))


def get_user_by_id(client, user_id: str, tenant_context: Optional[TenantContext] = None) -> User:
    return get_outer_entity(client, User(client, tenant_context=tenant_context), _config(tenant_context, user_id))


def get_user_by_name(client, username: str, tenant_context: Optional[TenantContext] = None) -> User:
    """Find a user by username.

    Names FIQL cannot express are matched client-side over all users. The
    match is read again by id for the full payload.
    """
    if not username:
        raise VCDError(f"{LABEL_USER} lookup requires username")

    slow_search, params = should_do_slow_search("username", username)
    if slow_search:
        users = get_all_users(client, None, tenant_context)
        if not users:
            return one_or_error("username", username, users)
        found = generic_local_filter_one_or_error([u.inner for u in users], "username", username, LABEL_USER)
        return get_user_by_id(client, found.id, tenant_context)

    users = get_all_users(client, params, tenant_context)
    single = one_or_error("username", username, users)
    return get_user_by_id(client, single.inner.id, tenant_context)
