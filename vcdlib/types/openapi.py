"""
Pydantic models for OpenAPI (cloudapi) payloads
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class OpenApiModel(BaseModel):
    """Base for cloudapi payloads: camelCase on the wire, unknown fields kept"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class OAuthModel(BaseModel):
    """Base for /oauth payloads, which use snake_case field names"""
    model_config = ConfigDict(extra="allow")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class OpenApiReference(OpenApiModel):
    name: Optional[str] = None
    id: Optional[str] = None


class OpenApiPages(OpenApiModel):
    """One page of a paginated cloudapi collection"""
    result_total: int = 0
    page_count: int = 0
    page: int = 0
    page_size: int = 0
    values: List[Any] = Field(default_factory=list)

    @field_validator("result_total", "page_count", "page", "page_size", mode="before")
    @classmethod
    def _null_count(cls, value):
        # some endpoints send null page and pageCount
        return 0 if value is None else value

    @field_validator("values", mode="before")
    @classmethod
    def _null_values(cls, value):
        return [] if value is None else value


class OpenApiItems(OpenApiModel):
    values: List[OpenApiReference] = Field(default_factory=list)


class Role(OpenApiModel):
    id: Optional[str] = None
    name: str = ""
    description: str = ""
    bundle_key: Optional[str] = None
    read_only: Optional[bool] = None


class GlobalRole(OpenApiModel):
    id: Optional[str] = None
    name: str = ""
    description: str = ""
    bundle_key: Optional[str] = None
    read_only: Optional[bool] = None
    publish_all: Optional[bool] = None


class Right(OpenApiModel):
    id: Optional[str] = None
    name: str = ""
    description: Optional[str] = None
    bundle_key: Optional[str] = None
    category: Optional[str] = None
    service_namespace: Optional[str] = None
    right_type: Optional[str] = None
    implied_rights: Optional[List[OpenApiReference]] = None


class CurrentSessionInfo(OpenApiModel):
    id: Optional[str] = None
    user: Optional[OpenApiReference] = None
    org: Optional[OpenApiReference] = None
    operating_org: Optional[OpenApiReference] = None
    location: Optional[str] = None
    roles: List[str] = Field(default_factory=list)
    role_refs: List[OpenApiReference] = Field(default_factory=list)
    session_id_token: Optional[str] = None


class VdcCapability(OpenApiModel):
    name: str = ""
    value: Any = None
    type: Optional[str] = None
    category: Optional[str] = None


class TmOrg(OpenApiModel):
    """Tenant Manager organization"""
    id: Optional[str] = None
    name: str = ""
    display_name: Optional[str] = None
    description: Optional[str] = None
    is_enabled: Optional[bool] = None
    is_classic_tenant: Optional[bool] = None
    can_manage_orgs: Optional[bool] = None
    can_publish: Optional[bool] = None
    managed_by: Optional[OpenApiReference] = None
    org_vdc_count: Optional[int] = None
    catalog_count: Optional[int] = None
    vapp_count: Optional[int] = None
    running_vm_count: Optional[int] = None
    user_count: Optional[int] = None
    disk_count: Optional[int] = None
    directly_managed_org_count: Optional[int] = None


class OpenApiUser(OpenApiModel):
    id: Optional[str] = None
    username: str = ""
    full_name: Optional[str] = None
    description: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None
    org_entity_ref: Optional[OpenApiReference] = None
    role_entity_refs: List[OpenApiReference] = Field(default_factory=list)
    provider_type: Optional[str] = None
    name_in_source: Optional[str] = None
    is_group_role: Optional[bool] = None
    enabled: Optional[bool] = None
    locked: Optional[bool] = None
    stranded: Optional[bool] = None
    deployed_vm_quota: Optional[int] = None
    stored_vm_quota: Optional[int] = None


class UserPasswordChange(OpenApiModel):
    new_password: str = ""
    old_password: Optional[str] = None


class IpSpaceRangeValues(OpenApiModel):
    id: Optional[str] = None
    start_ip_address: str = ""
    end_ip_address: str = ""
    total_ip_count: Optional[str] = None
    allocated_ip_count: Optional[str] = None
    allocated_ip_percentage: Optional[float] = None


class IpSpaceRanges(OpenApiModel):
    ip_ranges: List[IpSpaceRangeValues] = Field(default_factory=list)
    default_floating_ip_quota: Optional[int] = None


class IpSpacePrefixSequence(OpenApiModel):
    id: Optional[str] = None
    start_prefix_ip: str = ""
    prefix_length: int = 0
    total_prefix_count: int = 0
    allocated_prefix_count: Optional[int] = None


class IpSpacePrefixes(OpenApiModel):
    ip_prefix_sequence: List[IpSpacePrefixSequence] = Field(default_factory=list)
    default_quota_for_prefix_length: Optional[int] = None


class IpSpace(OpenApiModel):
    id: Optional[str] = None
    name: str = ""
    description: Optional[str] = None
    # PUBLIC, SHARED_SERVICES or PRIVATE
    type: str = ""
    org_ref: Optional[OpenApiReference] = None
    utilization: Optional[Dict[str, Any]] = None
    ip_space_ranges: Optional[IpSpaceRanges] = None
    ip_space_prefixes: List[IpSpacePrefixes] = Field(default_factory=list)
    ip_space_internal_scope: List[str] = Field(default_factory=list)
    ip_space_external_scope: Optional[str] = None
    route_advertisement_enabled: Optional[bool] = None
    default_gateway_service_config: Optional[Dict[str, Any]] = None


class EdgeGatewayUplinks(OpenApiModel):
    uplink_id: Optional[str] = None
    uplink_name: Optional[str] = None
    # NSXT_TIER0, NSXT_VRF_TIER0 or IMPORTED_T_LOGICAL_SWITCH
    backing_type: Optional[str] = None
    subnets: Optional[Dict[str, Any]] = None
    connected: Optional[bool] = None
    dedicated: Optional[bool] = None
    using_ip_space: Optional[bool] = None


class OpenAPIEdgeGateway(OpenApiModel):
    id: Optional[str] = None
    name: str = ""
    description: Optional[str] = None
    status: Optional[str] = None
    owner_ref: Optional[OpenApiReference] = None
    org_vdc: Optional[OpenApiReference] = None
    org_ref: Optional[OpenApiReference] = None
    edge_gateway_uplinks: List[EdgeGatewayUplinks] = Field(default_factory=list)
    dist_routing_enabled: Optional[bool] = None
    gateway_backing: Optional[Dict[str, Any]] = None
    edge_cluster_config: Optional[Dict[str, Any]] = None


class GatewayUsedIpAddress(OpenApiModel):
    network_ref: Optional[OpenApiReference] = None
    ip_address: str = ""
    category: Optional[str] = None


class NsxtFirewallGroupMemberVms(OpenApiModel):
    vm_ref: Optional[OpenApiReference] = None
    vapp_ref: Optional[OpenApiReference] = None
    vdc_ref: Optional[OpenApiReference] = None
    org_ref: Optional[OpenApiReference] = None


class NsxtFirewallGroup(OpenApiModel):
    id: Optional[str] = None
    name: str = ""
    description: Optional[str] = None
    # IP_SET or SECURITY_GROUP before API 36.0
    type: Optional[str] = None
    # IP_SET, STATIC_MEMBERS or VM_CRITERIA from API 36.0
    type_value: Optional[str] = None
    owner_ref: Optional[OpenApiReference] = None
    edge_gateway_ref: Optional[OpenApiReference] = None
    ip_addresses: Optional[List[str]] = None
    members: Optional[List[OpenApiReference]] = None
    vm_criteria: Optional[List[Dict[str, Any]]] = None
    status: Optional[str] = None


class NsxtNatRule(OpenApiModel):
    id: Optional[str] = None
    name: str = ""
    description: str = ""
    enabled: bool = False
    # DNAT, NO_DNAT, SNAT, NO_SNAT or REFLEXIVE
    rule_type: Optional[str] = None
    external_addresses: str = ""
    internal_addresses: str = ""
    application_port_profile: Optional[OpenApiReference] = None
    internal_port: Optional[str] = None
    dnat_external_port: str = ""
    snat_destination_addresses: str = ""
    logging: Optional[bool] = None
    system_rule: Optional[bool] = None
    firewall_match: Optional[str] = None
    priority: Optional[int] = None
    version: Optional[Dict[str, Any]] = None


class ParticipatingOrgVdcs(OpenApiModel):
    vdc_ref: Optional[OpenApiReference] = None
    org_ref: Optional[OpenApiReference] = None
    site_ref: Optional[OpenApiReference] = None
    network_provider_scope: Optional[str] = None
    fault_domain_tag: Optional[str] = None
    remote_org: Optional[bool] = None
    status: Optional[str] = None


class CandidateVdc(OpenApiModel):
    """A VDC that can join a VDC group"""
    id: Optional[str] = None
    name: str = ""
    org_ref: Optional[OpenApiReference] = None
    site_ref: Optional[OpenApiReference] = None
    fault_domain_tag: Optional[str] = None
    network_provider_scope: Optional[str] = None


class VdcGroup(OpenApiModel):
    id: Optional[str] = None
    name: str = ""
    description: Optional[str] = None
    org_id: Optional[str] = None
    local_egress: Optional[bool] = None
    participating_org_vdcs: List[ParticipatingOrgVdcs] = Field(default_factory=list)
    universal_networking_enabled: Optional[bool] = None
    network_pool_id: Optional[str] = None
    network_provider_type: Optional[str] = None
    type: Optional[str] = None
    status: Optional[str] = None
    dfw_enabled: Optional[bool] = None
    error_message: Optional[str] = None


class SecurityTag(OpenApiModel):
    """A tag and the full list of entity ids which carry it"""
    tag: str = ""
    entities: List[str] = Field(default_factory=list)


class SecurityTagValue(OpenApiModel):
    tag: str = ""


class EntitySecurityTags(OpenApiModel):
    """Tags of one entity, such as a VM"""
    tags: List[str] = Field(default_factory=list)


class SecurityTaggedEntity(OpenApiModel):
    id: Optional[str] = None
    name: str = ""
    parent_ref: Optional[OpenApiReference] = None
    owner_ref: Optional[OpenApiReference] = None
    entity_type: Optional[str] = None


class ApiTokenRefresh(OAuthModel):
    access_token: Optional[str] = None
    token_type: Optional[str] = None
    expires_in: Optional[int] = None
    refresh_token: Optional[str] = None
    updated_by: Optional[str] = None
    updated_on: Optional[str] = None


class ApiTokenParams(OAuthModel):
    client_name: str
    client_id: Optional[str] = None
    grant_types: Optional[List[str]] = None
    token_endpoint_auth_method: Optional[str] = None
    client_uri: Optional[str] = None
    software_id: Optional[str] = None
    software_version: Optional[str] = None
    scope: Optional[str] = None
