"""
VDC groups
"""

import logging
from typing import List, Mapping, Optional

from ..api.endpoints import ENDPOINT_VDC_GROUPS, ENDPOINT_VDC_GROUPS_CANDIDATE_VDCS, PATH_VERSION_1_0_0
from ..api.filters import copy_or_new_url_values, query_parameter_filter_and, should_do_slow_search
from ..exceptions import EntityNotFoundError, VCDError, wrap_error
from ..tenant_context import TenantContext, get_tenant_context_header
from ..types.openapi import CandidateVdc, OpenApiReference, ParticipatingOrgVdcs
from ..types.openapi import VdcGroup as VdcGroupType

logger = logging.getLogger(__name__)

_ENDPOINT = PATH_VERSION_1_0_0 + ENDPOINT_VDC_GROUPS
_CANDIDATES_ENDPOINT = PATH_VERSION_1_0_0 + ENDPOINT_VDC_GROUPS_CANDIDATE_VDCS


class VdcGroup:
    """A VDC group of one organization"""

    def __init__(self, client, vdc_group: Optional[VdcGroupType] = None,
                 tenant_context: Optional[TenantContext] = None, href: str = ""):
        self.client = client
        self.vdc_group = vdc_group or VdcGroupType()
        self.tenant_context = tenant_context
        self.href = href

    def __repr__(self) -> str:
        return f"VdcGroup(name={self.vdc_group.name!r})"

    def update(self, name: str, description: str, participating_vdc_ids: List[str]) -> "VdcGroup":
        """Change name, description and member VDCs, the only settings the API accepts"""
        self.vdc_group.name = name
        self.vdc_group.description = description
        self.vdc_group.participating_org_vdcs = compose_participating_org_vdcs(
            self.client, self.vdc_group.id, participating_vdc_ids, self.tenant_context)
        return self.generic_update()

    def generic_update(self) -> "VdcGroup":
        """PUT the current definition as is"""
        api_version = self.client.check_open_api_endpoint_compatibility(_ENDPOINT)
        if not self.vdc_group.id:
            raise VCDError("cannot update VDC group without id")

        url = self.client.open_api_build_endpoint(_ENDPOINT, self.vdc_group.id)
        try:
            updated = self.client.open_api_put_item(api_version, url, None, self.vdc_group, VdcGroupType,
                                                    get_tenant_context_header(self.tenant_context))
        except VCDError as err:
            raise wrap_error(f"error updating VDC group: {err}", err) from err
        return VdcGroup(self.client, updated, self.tenant_context, self.href)

    def delete(self) -> None:
        api_version = self.client.check_open_api_endpoint_compatibility(_ENDPOINT)
        if not self.vdc_group.id:
            raise VCDError("cannot delete VDC group without id")

        url = self.client.open_api_build_endpoint(_ENDPOINT, self.vdc_group.id)
        try:
            self.client.open_api_delete_item(api_version, url)
        except VCDError as err:
            raise wrap_error(f"error deleting VDC group: {err}", err) from err


def get_all_vdc_group_candidates(client, query_parameters: Optional[Mapping[str, str]] = None,
                                 tenant_context: Optional[TenantContext] = None) -> List[CandidateVdc]:
    api_version = client.check_open_api_endpoint_compatibility(_CANDIDATES_ENDPOINT)
    url = client.open_api_build_endpoint(_CANDIDATES_ENDPOINT)
    return client.open_api_get_all_items(api_version, url, query_parameters, CandidateVdc,
                                         get_tenant_context_header(tenant_context))


def get_all_nsxt_vdc_group_candidates(client, starting_vdc_id: str,
                                      query_parameters: Optional[Mapping[str, str]] = None,
                                      tenant_context: Optional[TenantContext] = None) -> List[CandidateVdc]:
    """Return the local NSX-T VDCs that can share a group with starting_vdc_id"""
    params = query_parameter_filter_and("_context==LOCAL", copy_or_new_url_values(query_parameters))
    params = query_parameter_filter_and(f"_context=={starting_vdc_id}", params)
    params["filterEncoded"] = "true"
    params["links"] = "true"
    return get_all_vdc_group_candidates(client, params, tenant_context)


def compose_participating_org_vdcs(client, starting_vdc_id: str, participating_vdc_ids: List[str],
                                   tenant_context: Optional[TenantContext] = None) -> List[ParticipatingOrgVdcs]:
    """Build group members from candidates; every requested VDC must be a candidate"""
    candidates = get_all_nsxt_vdc_group_candidates(client, starting_vdc_id, None, tenant_context)

    participating = []
    found_ids = []
    for candidate in candidates:
        if candidate.id in participating_vdc_ids:
            participating.append(ParticipatingOrgVdcs(
                org_ref=candidate.org_ref, site_ref=candidate.site_ref,
                vdc_ref=OpenApiReference(id=candidate.id),
                fault_domain_tag=candidate.fault_domain_tag,
                network_provider_scope=candidate.network_provider_scope))
            found_ids.append(candidate.id)

    if len(participating) != len(participating_vdc_ids):
        not_found = [vdc_id for vdc_id in participating_vdc_ids if vdc_id not in found_ids]
        raise VCDError(f"VDC IDs are not found as Candidate VDCs: {not_found}")
    return participating


def create_vdc_group(client, config: VdcGroupType, tenant_context: Optional[TenantContext] = None) -> VdcGroup:
    api_version = client.check_open_api_endpoint_compatibility(_ENDPOINT)
    url = client.open_api_build_endpoint(_ENDPOINT)
    created = client.open_api_post_item(api_version, url, None, config, VdcGroupType,
                                        get_tenant_context_header(tenant_context))
    return VdcGroup(client, created, tenant_context, url)


def create_nsxt_vdc_group(client, org_id: str, name: str, description: str, starting_vdc_id: str,
                          participating_vdc_ids: List[str],
                          tenant_context: Optional[TenantContext] = None) -> VdcGroup:
    """Create a local NSX-T VDC group from candidate VDC ids"""
    participating = compose_participating_org_vdcs(client, starting_vdc_id, participating_vdc_ids,
                                                   tenant_context)
    config = VdcGroupType(org_id=org_id, name=name, description=description,
                          participating_org_vdcs=participating, local_egress=False,
                          universal_networking_enabled=False, network_provider_type="NSX_T",
                          type="LOCAL")
    return create_vdc_group(client, config, tenant_context)


def get_all_vdc_groups(client, query_parameters: Optional[Mapping[str, str]] = None,
                       tenant_context: Optional[TenantContext] = None) -> List[VdcGroup]:
    api_version = client.check_open_api_endpoint_compatibility(_ENDPOINT)
    url = client.open_api_build_endpoint(_ENDPOINT)
    groups = client.open_api_get_all_items(api_version, url, query_parameters, VdcGroupType,
                                           get_tenant_context_header(tenant_context))
    return [VdcGroup(client, group, tenant_context, client.open_api_build_endpoint(_ENDPOINT, group.id or ""))
            for group in groups]


def get_vdc_group_by_id(client, group_id: str, tenant_context: Optional[TenantContext] = None) -> VdcGroup:
    api_version = client.check_open_api_endpoint_compatibility(_ENDPOINT)
    if not group_id:
        raise VCDError("empty VDC group ID")

    url = client.open_api_build_endpoint(_ENDPOINT, group_id)
    group = client.open_api_get_item(api_version, url, None, VdcGroupType, get_tenant_context_header(tenant_context))
    return VdcGroup(client, group, tenant_context, url)


def get_vdc_group_by_name(client, name: str, tenant_context: Optional[TenantContext] = None) -> VdcGroup:
    """Find a VDC group by name.

    Names FIQL cannot express are matched client-side over all groups.
    """
    slow_search, params = should_do_slow_search("name", name)
    groups = get_all_vdc_groups(client, params, tenant_context)
    if slow_search:
        groups = [group for group in groups if group.vdc_group.name == name]

    if not groups:
        raise EntityNotFoundError()
    if len(groups) > 1:
        raise VCDError(f"more than one VDC group found with name '{name}'")
    return groups[0]
