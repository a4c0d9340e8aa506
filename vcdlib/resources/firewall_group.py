"""
NSX-T firewall groups: IP sets, static and dynamic security groups
"""

import logging
from typing import List, Mapping, Optional

from ..api.endpoints import ENDPOINT_FIREWALL_GROUPS, PATH_VERSION_1_0_0
from ..api.filters import copy_or_new_url_values, query_parameter_filter_and
from ..api.generic import OuterEntity
from ..exceptions import EntityNotFoundError, VCDError, wrap_error
from ..types.openapi import NsxtFirewallGroup as NsxtFirewallGroupType
from ..types.openapi import NsxtFirewallGroupMemberVms

logger = logging.getLogger(__name__)

FIREWALL_GROUP_TYPE_IP_SET = "IP_SET"
FIREWALL_GROUP_TYPE_SECURITY_GROUP = "SECURITY_GROUP"
# typeValue variants from API 36.0
FIREWALL_GROUP_TYPE_STATIC_MEMBERS = "STATIC_MEMBERS"
FIREWALL_GROUP_TYPE_VM_CRITERIA = "VM_CRITERIA"

_ENDPOINT = PATH_VERSION_1_0_0 + ENDPOINT_FIREWALL_GROUPS


class NsxtFirewallGroup(OuterEntity):
    inner_type = NsxtFirewallGroupType

    @property
    def firewall_group(self) -> NsxtFirewallGroupType:
        return self.inner

    def is_security_group(self) -> bool:
        """True for static security groups"""
        return (self.inner.type == FIREWALL_GROUP_TYPE_SECURITY_GROUP
                or self.inner.type_value == FIREWALL_GROUP_TYPE_STATIC_MEMBERS)

    def is_dynamic_security_group(self) -> bool:
        return self.inner.type_value == FIREWALL_GROUP_TYPE_VM_CRITERIA

    def is_ip_set(self) -> bool:
        return FIREWALL_GROUP_TYPE_IP_SET in (self.inner.type, self.inner.type_value)

    def update(self, config: NsxtFirewallGroupType) -> "NsxtFirewallGroup":
        api_version = self.client.get_open_api_highest_elevated_version(_ENDPOINT)
        if not config.id:
            raise VCDError("cannot update NSX-T Firewall Group without ID")

        url = self.client.open_api_build_endpoint(_ENDPOINT, config.id)
        try:
            updated = self.client.open_api_put_item(api_version, url, None, config, NsxtFirewallGroupType)
        except VCDError as err:
            raise wrap_error(f"error updating NSX-T firewall group: {err}", err) from err
        return self.wrap(updated)

    def delete(self) -> None:
        api_version = self.client.get_open_api_highest_elevated_version(_ENDPOINT)
        if not self.inner.id:
            raise VCDError("cannot delete NSX-T Firewall Group without ID")

        url = self.client.open_api_build_endpoint(_ENDPOINT, self.inner.id)
        try:
            self.client.open_api_delete_item(api_version, url)
        except VCDError as err:
            raise wrap_error(f"error deleting NSX-T Firewall Group: {err}", err) from err

    def get_associated_vms(self) -> List[NsxtFirewallGroupMemberVms]:
        """Return the VMs a static or dynamic security group currently matches"""
        api_version = self.client.get_open_api_highest_elevated_version(_ENDPOINT)
        if not self.inner.id:
            raise VCDError("cannot retrieve associated VMs for NSX-T Firewall Group without ID")
        if not self.is_security_group() and not self.is_dynamic_security_group():
            raise VCDError(f"only Security Groups have associated VMs. This Firewall Group has type "
                           f"'{self.inner.type_value or self.inner.type}'")

        url = self.client.open_api_build_endpoint(_ENDPOINT, self.inner.id, "/associatedVMs")
        try:
            return self.client.open_api_get_all_items(api_version, url, None, NsxtFirewallGroupMemberVms)
        except VCDError as err:
            raise wrap_error(f"error retrieving associated VMs: {err}", err) from err


def _typed_params(query_parameters: Optional[Mapping[str, str]], firewall_group_type: str):
    params = copy_or_new_url_values(query_parameters)
    if firewall_group_type:
        params = query_parameter_filter_and(f"typeValue=={firewall_group_type}", params)
    return params


def get_all_nsxt_firewall_groups(client, query_parameters: Optional[Mapping[str, str]] = None,
                                 firewall_group_type: str = "") -> List[NsxtFirewallGroup]:
    """Return firewall group summaries, optionally limited to one type.

    Summaries can miss fields such as ip_addresses; read a group by id for
    its full definition.
    """
    api_version = client.get_open_api_highest_elevated_version(_ENDPOINT)
    # Collection reads live under firewallGroups/summaries
    url = client.open_api_build_endpoint(_ENDPOINT, "summaries")
    groups = client.open_api_get_all_items(api_version, url, _typed_params(query_parameters, firewall_group_type),
                                           NsxtFirewallGroupType)
    return [NsxtFirewallGroup(client, group) for group in groups]


def get_nsxt_firewall_group_by_id(client, group_id: str) -> NsxtFirewallGroup:
    api_version = client.get_open_api_highest_elevated_version(_ENDPOINT)
    if not group_id:
        raise VCDError("empty NSX-T Firewall Group ID specified")

    url = client.open_api_build_endpoint(_ENDPOINT, group_id)
    return NsxtFirewallGroup(client, client.open_api_get_item(api_version, url, None, NsxtFirewallGroupType))


def get_nsxt_firewall_group_by_name(client, name: str, query_parameters: Optional[Mapping[str, str]] = None,
                                    firewall_group_type: str = "") -> NsxtFirewallGroup:
    """Find exactly one firewall group by name and read it again by id.

    An IP set and a security group may share a name; pass firewall_group_type
    to tell them apart.
    """
    params = query_parameter_filter_and(f"name=={name}", _typed_params(query_parameters, firewall_group_type))
    try:
        groups = get_all_nsxt_firewall_groups(client, params)
    except VCDError as err:
        raise wrap_error(f"could not find NSX-T Firewall Group with name '{name}': {err}", err) from err

    if not groups:
        raise EntityNotFoundError(f"expected exactly one NSX-T Firewall Group with name '{name}'. Got 0")
    if len(groups) > 1:
        raise VCDError(f"expected exactly one NSX-T Firewall Group with name '{name}'. Got {len(groups)}")
    return get_nsxt_firewall_group_by_id(client, groups[0].inner.id)


def create_nsxt_firewall_group(client, config: NsxtFirewallGroupType) -> NsxtFirewallGroup:
    api_version = client.get_open_api_highest_elevated_version(_ENDPOINT)
    url = client.open_api_build_endpoint(_ENDPOINT)
    try:
        created = client.open_api_post_item(api_version, url, None, config, NsxtFirewallGroupType)
    except VCDError as err:
        raise wrap_error(f"error creating NSX-T Firewall Group: {err}", err) from err
    return NsxtFirewallGroup(client, created)
