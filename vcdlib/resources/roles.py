"""
Roles, global roles and rights
"""

import logging
from typing import Dict, List, Mapping, Optional

from ..api.endpoints import ENDPOINT_GLOBAL_ROLES, ENDPOINT_RIGHTS, ENDPOINT_ROLES, PATH_VERSION_1_0_0
from ..api.filters import query_parameter_filter_and
from ..api.generic import (
    CrudConfig,
    OuterEntity,
    create_outer_entity,
    delete_entity_by_id,
    get_all_outer_entities,
    get_outer_entity,
    one_or_error,
    update_outer_entity,
)
from ..exceptions import EntityNotFoundError, VCDError, wrap_error
from ..tenant_context import TenantContext, get_tenant_context_from_header, get_tenant_context_header
from ..types.openapi import GlobalRole as GlobalRoleType
from ..types.openapi import OpenApiItems, OpenApiPages, OpenApiReference, Right
from ..types.openapi import Role as RoleType

logger = logging.getLogger(__name__)

VCLOUD_UNDEFINED_KEY = "com.vmware.vcloud.undefined.key"

_ROLES_ENDPOINT = PATH_VERSION_1_0_0 + ENDPOINT_ROLES
_GLOBAL_ROLES_ENDPOINT = PATH_VERSION_1_0_0 + ENDPOINT_GLOBAL_ROLES
_RIGHTS_ENDPOINT = PATH_VERSION_1_0_0 + ENDPOINT_RIGHTS
_ROLE_RIGHTS_ENDPOINT = PATH_VERSION_1_0_0 + ENDPOINT_ROLES + ENDPOINT_RIGHTS


class Role(OuterEntity):
    """A tenant role, bound to the tenant context it was read with"""
    inner_type = RoleType

    def __init__(self, client, inner: Optional[RoleType] = None,
                 tenant_context: Optional[TenantContext] = None):
        super().__init__(client, inner)
        self.tenant_context = tenant_context

    def wrap(self, inner: RoleType) -> "Role":
        return Role(self.client, inner, self.tenant_context)

    @property
    def role(self) -> RoleType:
        return self.inner

    def _headers(self) -> Optional[Dict[str, str]]:
        return get_tenant_context_header(self.tenant_context)

    def update(self) -> "Role":
        """PUT the current role definition and return the stored one"""
        api_version = self.client.check_open_api_endpoint_compatibility(_ROLES_ENDPOINT)
        if not self.inner.id:
            raise VCDError("cannot update role without id")

        url = self.client.open_api_build_endpoint(_ROLES_ENDPOINT, self.inner.id)
        try:
            updated = self.client.open_api_put_item(api_version, url, None, self.inner, RoleType, self._headers())
        except VCDError as err:
            raise wrap_error(f"error updating role: {err}", err) from err
        return self.wrap(updated)

    def delete(self) -> None:
        api_version = self.client.check_open_api_endpoint_compatibility(_ROLES_ENDPOINT)
        if not self.inner.id:
            raise VCDError("cannot delete role without id")

        url = self.client.open_api_build_endpoint(_ROLES_ENDPOINT, self.inner.id)
        try:
            self.client.open_api_delete_item(api_version, url, None, self._headers())
        except VCDError as err:
            raise wrap_error(f"error deleting role: {err}", err) from err

    def get_rights(self, query_parameters: Optional[Mapping[str, str]] = None) -> List[Right]:
        return get_role_rights(self.client, self.inner.id, _ROLES_ENDPOINT, query_parameters, self._headers())

    def add_rights(self, rights: List[OpenApiReference]) -> None:
        add_rights_to_role(self.client, "Role", self.inner.name, self.inner.id, _ROLES_ENDPOINT, rights,
                           self._headers())

    def update_rights(self, rights: List[OpenApiReference]) -> None:
        update_rights_in_role(self.client, "Role", self.inner.name, self.inner.id, _ROLES_ENDPOINT, rights,
                              self._headers())

    def remove_rights(self, rights: List[OpenApiReference]) -> None:
        remove_rights_from_role(self.client, "Role", self.inner.name, self.inner.id, _ROLES_ENDPOINT, rights,
                                self._headers())

    def remove_all_rights(self) -> None:
        update_rights_in_role(self.client, "Role", self.inner.name, self.inner.id, _ROLES_ENDPOINT, [],
                              self._headers())


def get_role_by_id(client, role_id: str, tenant_context: Optional[TenantContext] = None) -> Role:
    api_version = client.check_open_api_endpoint_compatibility(_ROLES_ENDPOINT)
    if not role_id:
        raise VCDError("empty role id")

    url = client.open_api_build_endpoint(_ROLES_ENDPOINT, role_id)
    role = client.open_api_get_item(api_version, url, None, RoleType, get_tenant_context_header(tenant_context))
    return Role(client, role, tenant_context)


def get_all_roles(client, query_parameters: Optional[Mapping[str, str]] = None,
                  tenant_context: Optional[TenantContext] = None) -> List[Role]:
    """Return every role, as the tenant when a context is given or as provider otherwise"""
    api_version = client.check_open_api_endpoint_compatibility(_ROLES_ENDPOINT)
    url = client.open_api_build_endpoint(_ROLES_ENDPOINT)
    headers = get_tenant_context_header(tenant_context)
    roles = client.open_api_get_all_items(api_version, url, query_parameters, RoleType, headers)

    context = get_tenant_context_from_header(headers)
    return [Role(client, role, context) for role in roles]


def get_role_by_name(client, name: str, tenant_context: Optional[TenantContext] = None) -> Role:
    roles = get_all_roles(client, {"filter": f"name=={name}"}, tenant_context)
    if not roles:
        raise EntityNotFoundError(f"role '{name}' not found")
    if len(roles) > 1:
        raise VCDError(f"more than one role found with name '{name}'")
    return roles[0]


def create_role(client, new_role: RoleType, tenant_context: Optional[TenantContext] = None) -> Role:
    """Create a role; an empty bundle key is replaced by the undefined key"""
    api_version = client.check_open_api_endpoint_compatibility(_ROLES_ENDPOINT)
    if not new_role.bundle_key:
        new_role.bundle_key = VCLOUD_UNDEFINED_KEY

    url = client.open_api_build_endpoint(_ROLES_ENDPOINT)
    try:
        created = client.open_api_post_item(api_version, url, None, new_role, RoleType,
                                            get_tenant_context_header(tenant_context))
    except VCDError as err:
        raise wrap_error(f"error creating role: {err}", err) from err
    return Role(client, created, tenant_context)


def _check_role_identity(role_type: str, name: str, role_id: str) -> None:
    if not role_id:
        raise VCDError(f"cannot update {role_type} without id")
    if not name:
        raise VCDError(f"empty name given for {role_type} {role_id}")


def _as_items(rights: List[OpenApiReference]) -> OpenApiItems:
    return OpenApiItems(values=[OpenApiReference(name=right.name, id=right.id) for right in rights])


def get_role_rights(client, role_id: str, endpoint: str, query_parameters: Optional[Mapping[str, str]] = None,
                    additional_header: Optional[Mapping[str, str]] = None) -> List[Right]:
    """Return the rights of the role or global role role_id below endpoint"""
    api_version = client.check_open_api_endpoint_compatibility(endpoint + ENDPOINT_RIGHTS)
    if not role_id:
        raise VCDError("empty role id")
    url = client.open_api_build_endpoint(endpoint, role_id, "/rights")
    return client.open_api_get_all_items(api_version, url, query_parameters, Right, additional_header)


def add_rights_to_role(client, role_type: str, name: str, role_id: str, endpoint: str,
                       rights: List[OpenApiReference],
                       additional_header: Optional[Mapping[str, str]] = None) -> None:
    """Add rights to a role. Rights the role already has are ignored by the server."""
    api_version = client.check_open_api_endpoint_compatibility(endpoint)
    _check_role_identity(role_type, name, role_id)

    url = client.open_api_build_endpoint(endpoint, role_id, "/rights")
    try:
        client.open_api_post_item(api_version, url, None, _as_items(rights), OpenApiPages, additional_header)
    except VCDError as err:
        raise wrap_error(f"error adding rights to {role_type} {name}: {err}", err) from err


def update_rights_in_role(client, role_type: str, name: str, role_id: str, endpoint: str,
                          rights: List[OpenApiReference],
                          additional_header: Optional[Mapping[str, str]] = None) -> None:
    """Replace the rights of a role with rights"""
    api_version = client.check_open_api_endpoint_compatibility(endpoint)
    _check_role_identity(role_type, name, role_id)

    url = client.open_api_build_endpoint(endpoint, role_id, "/rights")
    try:
        client.open_api_put_item(api_version, url, None, _as_items(rights), OpenApiPages, additional_header)
    except VCDError as err:
        raise wrap_error(f"error updating rights in {role_type} {name}: {err}", err) from err


def remove_rights_from_role(client, role_type: str, name: str, role_id: str, endpoint: str,
                            rights: List[OpenApiReference],
                            additional_header: Optional[Mapping[str, str]] = None) -> None:
    """Remove rights from a role.

    Every right to remove must currently belong to the role, otherwise
    nothing is changed and the missing names are reported.
    """
    api_version = client.check_open_api_endpoint_compatibility(endpoint)
    _check_role_identity(role_type, name, role_id)

    current = get_role_rights(client, role_id, endpoint, None, additional_header)

    remove_ids = {right.id for right in rights}
    found = {right.name: False for right in rights}
    for right in current:
        if right.id in remove_ids:
            found[right.name] = True

    not_found = [f'"{right_name}"' for right_name, was_found in found.items() if not was_found]
    if not_found:
        raise VCDError(f"rights in {role_type} {name} not found for deletion: [{', '.join(not_found)}]")

    remaining = [OpenApiReference(name=right.name, id=right.id) for right in current
                 if right.name not in found]
    url = client.open_api_build_endpoint(endpoint, role_id, "/rights")
    try:
        client.open_api_put_item(api_version, url, None, OpenApiItems(values=remaining), OpenApiPages,
                                 additional_header)
    except VCDError as err:
        raise wrap_error(f"error updating rights in {role_type} {name}: {err}", err) from err


def get_all_rights(client, query_parameters: Optional[Mapping[str, str]] = None,
                   tenant_context: Optional[TenantContext] = None) -> List[Right]:
    api_version = client.check_open_api_endpoint_compatibility(_RIGHTS_ENDPOINT)
    url = client.open_api_build_endpoint(_RIGHTS_ENDPOINT)
    return client.open_api_get_all_items(api_version, url, query_parameters, Right,
                                         get_tenant_context_header(tenant_context))


def get_right_by_name(client, name: str, tenant_context: Optional[TenantContext] = None) -> Right:
    rights = get_all_rights(client, query_parameter_filter_and(f"name=={name}", None), tenant_context)
    return one_or_error("name", name, rights)


def find_missing_implied_rights(client, rights: List[OpenApiReference]) -> List[OpenApiReference]:
    """Return the rights implied by rights which rights does not already contain"""
    requested = {right.name for right in rights}
    implied: Dict[str, OpenApiReference] = {}
    for right in rights:
        full_right = get_right_by_name(client, right.name)
        for implied_right in full_right.implied_rights or []:
            if implied_right.name in requested or implied_right.name in implied:
                continue
            implied[implied_right.name] = OpenApiReference(name=implied_right.name, id=implied_right.id)
    return list(implied.values())


def _global_roles_config(*endpoint_params: str) -> CrudConfig:
    return CrudConfig(entity_label="Global Role", endpoint=_GLOBAL_ROLES_ENDPOINT,
                      endpoint_params=list(endpoint_params) or None)


def _require_sys_admin(client) -> None:
    if not client.is_sys_admin:
        raise VCDError("only system administrator can handle global roles")


class GlobalRole(OuterEntity):
    """A role template published to tenants. System administrators only."""
    inner_type = GlobalRoleType

    @property
    def global_role(self) -> GlobalRoleType:
        return self.inner

    def update(self) -> "GlobalRole":
        if not self.inner.id:
            raise VCDError("cannot update GlobalRole without id")
        return update_outer_entity(self.client, self, _global_roles_config(self.inner.id), self.inner)

    def delete(self) -> None:
        if not self.inner.id:
            raise VCDError("cannot delete GlobalRole without id")
        delete_entity_by_id(self.client, _global_roles_config(self.inner.id))

    def get_rights(self, query_parameters: Optional[Mapping[str, str]] = None) -> List[Right]:
        return get_role_rights(self.client, self.inner.id, _GLOBAL_ROLES_ENDPOINT, query_parameters)

    def add_rights(self, rights: List[OpenApiReference]) -> None:
        add_rights_to_role(self.client, "GlobalRole", self.inner.name, self.inner.id, _GLOBAL_ROLES_ENDPOINT,
                           rights)

    def update_rights(self, rights: List[OpenApiReference]) -> None:
        update_rights_in_role(self.client, "GlobalRole", self.inner.name, self.inner.id,
                              _GLOBAL_ROLES_ENDPOINT, rights)

    def remove_rights(self, rights: List[OpenApiReference]) -> None:
        remove_rights_from_role(self.client, "GlobalRole", self.inner.name, self.inner.id,
                                _GLOBAL_ROLES_ENDPOINT, rights)

    def remove_all_rights(self) -> None:
        update_rights_in_role(self.client, "GlobalRole", self.inner.name, self.inner.id,
                              _GLOBAL_ROLES_ENDPOINT, [])


def get_all_global_roles(client, query_parameters: Optional[Mapping[str, str]] = None) -> List[GlobalRole]:
    _require_sys_admin(client)
    config = _global_roles_config()
    config.query_parameters = dict(query_parameters or {}) or None
    return get_all_outer_entities(client, GlobalRole(client), config)


def get_global_role_by_id(client, role_id: str) -> GlobalRole:
    _require_sys_admin(client)
    if not role_id:
        raise VCDError("empty GlobalRole id")
    return get_outer_entity(client, GlobalRole(client), _global_roles_config(role_id))


def get_global_role_by_name(client, name: str) -> GlobalRole:
    roles = get_all_global_roles(client, {"filter": f"name=={name}"})
    return one_or_error("name", name, roles)


def create_global_role(client, new_role: GlobalRoleType) -> GlobalRole:
    _require_sys_admin(client)
    if not new_role.bundle_key:
        new_role.bundle_key = VCLOUD_UNDEFINED_KEY
    return create_outer_entity(client, GlobalRole(client), _global_roles_config(), new_role)
