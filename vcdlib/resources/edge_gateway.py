"""
NSX-T edge gateways
"""

import logging
from typing import List, Mapping, Optional

from ..api.endpoints import ENDPOINT_EDGE_GATEWAY_USED_IP_ADDRESSES, ENDPOINT_EDGE_GATEWAYS, PATH_VERSION_1_0_0
from ..api.filters import query_parameter_filter_and
from ..api.generic import OuterEntity
from ..exceptions import EntityNotFoundError, VCDError, wrap_error
from ..types.openapi import EdgeGatewayUplinks, GatewayUsedIpAddress, OpenAPIEdgeGateway, OpenApiReference
from ..types.openapi import NsxtFirewallGroup as NsxtFirewallGroupType
from ..types.openapi import NsxtNatRule as NsxtNatRuleType
from . import firewall_group, nat_rule

logger = logging.getLogger(__name__)

NSXT_BACKED = "NSXT_BACKED"
T0_BACKING_TYPES = ("NSXT_TIER0", "NSXT_VRF_TIER0")

_ENDPOINT = PATH_VERSION_1_0_0 + ENDPOINT_EDGE_GATEWAYS


def reorder_edge_gateway_uplinks(uplinks: List[EdgeGatewayUplinks]) -> List[EdgeGatewayUplinks]:
    """Move the Tier-0 backed uplink to position 0, where the API expects it"""
    if len(uplinks) <= 1:
        return uplinks
    if uplinks[0].backing_type in T0_BACKING_TYPES:
        return uplinks

    for index, uplink in enumerate(uplinks):
        if uplink.backing_type in T0_BACKING_TYPES:
            uplinks[0], uplinks[index] = uplinks[index], uplinks[0]
            break
    return uplinks


def _gateway_type(edge: OpenAPIEdgeGateway) -> str:
    return (edge.gateway_backing or {}).get("gatewayType", "")


class NsxtEdgeGateway(OuterEntity):
    """An NSX-T backed edge gateway"""
    inner_type = OpenAPIEdgeGateway

    @property
    def edge_gateway(self) -> OpenAPIEdgeGateway:
        return self.inner

    def reorder_uplinks(self) -> None:
        if self.inner is None:
            raise VCDError("edge gateway cannot be nil")
        if not self.inner.edge_gateway_uplinks:
            raise VCDError("no uplinks present in Edge Gateway")
        self.inner.edge_gateway_uplinks = reorder_edge_gateway_uplinks(self.inner.edge_gateway_uplinks)

    def refresh(self) -> None:
        if self.inner is None or not self.inner.id:
            raise VCDError("cannot refresh Edge Gateway without ID")
        try:
            refreshed = get_nsxt_edge_gateway_by_id(self.client, self.inner.id)
        except VCDError as err:
            raise wrap_error(f"error refreshing NSX-T Edge Gateway: {err}", err) from err
        self.inner = refreshed.inner

    def update(self, config: OpenAPIEdgeGateway) -> "NsxtEdgeGateway":
        """Replace the gateway configuration. System administrators only."""
        if not self.client.is_sys_admin:
            raise VCDError("only System Administrator can update Edge Gateway")
        api_version = self.client.get_open_api_highest_elevated_version(_ENDPOINT)
        if not config.id:
            raise VCDError("cannot update Edge Gateway without ID")

        url = self.client.open_api_build_endpoint(_ENDPOINT, config.id)
        try:
            updated = self.client.open_api_put_item(api_version, url, None, config, OpenAPIEdgeGateway)
        except VCDError as err:
            raise wrap_error(f"error updating Edge Gateway: {err}", err) from err

        result = self.wrap(updated)
        result.reorder_uplinks()
        return result

    def delete(self) -> None:
        if not self.client.is_sys_admin:
            raise VCDError("only Provider can delete Edge Gateway")
        api_version = self.client.get_open_api_highest_elevated_version(_ENDPOINT)
        if not self.inner.id:
            raise VCDError("cannot delete Edge Gateway without ID")

        url = self.client.open_api_build_endpoint(_ENDPOINT, self.inner.id)
        try:
            self.client.open_api_delete_item(api_version, url)
        except VCDError as err:
            raise wrap_error(f"error deleting Edge Gateway: {err}", err) from err

    def move_to_vdc_or_vdc_group(self, owner_id: str) -> "NsxtEdgeGateway":
        config = self.inner.model_copy(deep=True)
        config.owner_ref = OpenApiReference(id=owner_id)
        config.org_vdc = None
        return self.update(config)

    def get_used_ip_addresses(self, query_parameters: Optional[Mapping[str, str]] = None
                              ) -> List[GatewayUsedIpAddress]:
        if self.inner is None or not self.inner.id:
            raise VCDError("edge gateway ID must be set to retrieve used IP addresses")

        endpoint = PATH_VERSION_1_0_0 + ENDPOINT_EDGE_GATEWAY_USED_IP_ADDRESSES
        api_version = self.client.get_open_api_highest_elevated_version(endpoint)
        url = self.client.open_api_build_endpoint(endpoint % self.inner.id)
        return self.client.open_api_get_all_items(api_version, url, query_parameters, GatewayUsedIpAddress)

    def _context_params(self, query_parameters: Optional[Mapping[str, str]] = None):
        return query_parameter_filter_and(f"_context=={self.inner.id}", query_parameters)

    def get_all_nsxt_firewall_groups(self, query_parameters: Optional[Mapping[str, str]] = None,
                                     firewall_group_type: str = "") -> List[firewall_group.NsxtFirewallGroup]:
        """Return the firewall groups available to this edge gateway"""
        return firewall_group.get_all_nsxt_firewall_groups(self.client, self._context_params(query_parameters),
                                                           firewall_group_type)

    def get_nsxt_firewall_group_by_name(self, name: str, firewall_group_type: str = ""
                                        ) -> firewall_group.NsxtFirewallGroup:
        return firewall_group.get_nsxt_firewall_group_by_name(self.client, name, self._context_params(),
                                                              firewall_group_type)

    def create_nsxt_firewall_group(self, config: NsxtFirewallGroupType) -> firewall_group.NsxtFirewallGroup:
        return firewall_group.create_nsxt_firewall_group(self.client, config)

    def get_all_nat_rules(self, query_parameters: Optional[Mapping[str, str]] = None
                          ) -> List[nat_rule.NsxtNatRule]:
        return nat_rule.get_all_nat_rules(self.client, self.inner.id, query_parameters)

    def get_nat_rule_by_name(self, name: str) -> nat_rule.NsxtNatRule:
        return nat_rule.get_nat_rule_by_name(self.client, self.inner.id, name)

    def get_nat_rule_by_id(self, rule_id: str) -> nat_rule.NsxtNatRule:
        return nat_rule.get_nat_rule_by_id(self.client, self.inner.id, rule_id)

    def create_nat_rule(self, config: NsxtNatRuleType) -> nat_rule.NsxtNatRule:
        return nat_rule.create_nat_rule(self.client, self.inner.id, config)


def get_nsxt_edge_gateway_by_id(client, edge_id: str,
                                query_parameters: Optional[Mapping[str, str]] = None) -> NsxtEdgeGateway:
    api_version = client.get_open_api_highest_elevated_version(_ENDPOINT)
    if not edge_id:
        raise VCDError("empty Edge Gateway ID")

    url = client.open_api_build_endpoint(_ENDPOINT, edge_id)
    edge = NsxtEdgeGateway(client, client.open_api_get_item(api_version, url, query_parameters,
                                                              OpenAPIEdgeGateway))
    if _gateway_type(edge.inner) != NSXT_BACKED:
        raise EntityNotFoundError(f"this is not NSX-T Edge Gateway ({_gateway_type(edge.inner)})")

    try:
        edge.reorder_uplinks()
    except VCDError as err:
        raise VCDError("error reordering Edge Gateway Uplink after API retrieval") from err
    return edge


def filter_only_nsxt_edges(edges: List[NsxtEdgeGateway]) -> List[NsxtEdgeGateway]:
    return [edge for edge in edges if edge is not None and edge.inner is not None
            and _gateway_type(edge.inner) == NSXT_BACKED]


def return_single_nsxt_edge_gateway(name: str, edges: List[NsxtEdgeGateway]) -> NsxtEdgeGateway:
    if len(edges) > 1:
        raise VCDError(f"got more than 1 Edge Gateway by name '{name}' {len(edges)}")
    if not edges:
        raise EntityNotFoundError(f"got 0 Edge Gateways by name '{name}'")
    return edges[0]


def get_all_nsxt_edge_gateways(client, query_parameters: Optional[Mapping[str, str]] = None
                               ) -> List[NsxtEdgeGateway]:
    """Return every NSX-T backed edge gateway visible to the client"""
    api_version = client.get_open_api_highest_elevated_version(_ENDPOINT)
    url = client.open_api_build_endpoint(_ENDPOINT)
    responses = client.open_api_get_all_items(api_version, url, query_parameters, OpenAPIEdgeGateway)

    edges = filter_only_nsxt_edges([NsxtEdgeGateway(client, edge) for edge in responses])
    for edge in edges:
        try:
            edge.reorder_uplinks()
        except VCDError as err:
            raise VCDError(f"error reordering NSX-T Edge Gateway Uplinks for gateway "
                           f"'{edge.inner.name}' ('{edge.inner.id}'): {err}") from err
    return edges


def get_nsxt_edge_gateway_by_name(client, name: str,
                                  query_parameters: Optional[Mapping[str, str]] = None) -> NsxtEdgeGateway:
    """Find exactly one NSX-T edge gateway by name within the optional extra filter"""
    params = query_parameter_filter_and(f"name=={name}", query_parameters)
    try:
        edges = get_all_nsxt_edge_gateways(client, params)
    except VCDError as err:
        raise wrap_error(f"unable to retrieve Edge Gateway by name '{name}': {err}", err) from err
    return return_single_nsxt_edge_gateway(name, edges)


def create_nsxt_edge_gateway(client, config: OpenAPIEdgeGateway) -> NsxtEdgeGateway:
    if not client.is_sys_admin:
        raise VCDError("only System Administrator can create Edge Gateway")

    api_version = client.get_open_api_highest_elevated_version(_ENDPOINT)
    url = client.open_api_build_endpoint(_ENDPOINT)
    try:
        created = client.open_api_post_item(api_version, url, None, config, OpenAPIEdgeGateway)
    except VCDError as err:
        raise wrap_error(f"error creating Edge Gateway: {err}", err) from err

    edge = NsxtEdgeGateway(client, created)
    edge.reorder_uplinks()
    return edge
