"""
NSX-T NAT rules of an edge gateway
"""

import logging
from typing import List, Mapping, Optional

from ..api.endpoints import ENDPOINT_NSXT_NAT_RULES, PATH_VERSION_1_0_0
from ..exceptions import EntityNotFoundError, VCDError, wrap_error
from ..types.openapi import NsxtNatRule as NsxtNatRuleType

logger = logging.getLogger(__name__)

NAT_RULE_TYPE_DNAT = "DNAT"
NAT_RULE_TYPE_NO_DNAT = "NO_DNAT"
NAT_RULE_TYPE_SNAT = "SNAT"
NAT_RULE_TYPE_NO_SNAT = "NO_SNAT"
NAT_RULE_TYPE_REFLEXIVE = "REFLEXIVE"

# firewallMatch and priority need this version
NAT_ELEVATED_API_VERSION = "35.2"

_ENDPOINT = PATH_VERSION_1_0_0 + ENDPOINT_NSXT_NAT_RULES


def _nat_api_version(client) -> str:
    api_version = client.check_open_api_endpoint_compatibility(_ENDPOINT)
    if client.api_vcd_max_version_is(f">= {NAT_ELEVATED_API_VERSION}"):
        return NAT_ELEVATED_API_VERSION
    return api_version


def nat_rules_equal(first: NsxtNatRuleType, second: NsxtNatRuleType) -> bool:
    """Compare two rules on every user-set field except the ID.

    logging is left out because org users always read it as False.
    """
    logger.debug(f"comparing NAT rule: {first!r} against: {second!r}")

    first_profile, second_profile = first.application_port_profile, second.application_port_profile
    if first_profile is None or second_profile is None:
        profiles_equal = first_profile is None and second_profile is None
    else:
        profiles_equal = first_profile.id == second_profile.id

    return (first.name == second.name
            and first.enabled == second.enabled
            and first.description == second.description
            and first.dnat_external_port == second.dnat_external_port
            and first.snat_destination_addresses == second.snat_destination_addresses
            and first.external_addresses == second.external_addresses
            and first.internal_addresses == second.internal_addresses
            and profiles_equal)


class NsxtNatRule:
    """A NAT rule bound to the edge gateway whose path it lives under"""

    def __init__(self, client, rule: Optional[NsxtNatRuleType] = None, edge_gateway_id: str = ""):
        self.client = client
        self.rule = rule or NsxtNatRuleType()
        self.edge_gateway_id = edge_gateway_id

    def __repr__(self) -> str:
        return f"NsxtNatRule(name={self.rule.name!r}, rule_type={self.rule.rule_type!r})"

    def is_equal_to(self, other: NsxtNatRuleType) -> bool:
        return nat_rules_equal(self.rule, other)

    def update(self, config: NsxtNatRuleType) -> "NsxtNatRule":
        api_version = _nat_api_version(self.client)
        if not self.rule.id:
            raise VCDError("cannot update NSX-T NAT Rule without ID")

        url = self.client.open_api_build_endpoint(_ENDPOINT % self.edge_gateway_id, self.rule.id)
        try:
            updated = self.client.open_api_put_item(api_version, url, None, config, NsxtNatRuleType)
        except VCDError as err:
            raise wrap_error(f"error updating NSX-T NAT Rule: {err}", err) from err
        return NsxtNatRule(self.client, updated, self.edge_gateway_id)

    def delete(self) -> None:
        api_version = _nat_api_version(self.client)
        if not self.rule.id:
            raise VCDError("cannot delete NSX-T NAT rule without ID")

        url = self.client.open_api_build_endpoint(_ENDPOINT % self.edge_gateway_id, self.rule.id)
        try:
            self.client.open_api_delete_item(api_version, url)
        except VCDError as err:
            raise wrap_error(f"error deleting NSX-T NAT Rule: {err}", err) from err


def get_all_nat_rules(client, edge_gateway_id: str,
                      query_parameters: Optional[Mapping[str, str]] = None) -> List[NsxtNatRule]:
    api_version = _nat_api_version(client)
    url = client.open_api_build_endpoint(_ENDPOINT % edge_gateway_id)
    rules = client.open_api_get_all_items(api_version, url, query_parameters, NsxtNatRuleType)
    return [NsxtNatRule(client, rule, edge_gateway_id) for rule in rules]


def get_nat_rule_by_name(client, edge_gateway_id: str, name: str) -> NsxtNatRule:
    """Find a rule by name. Names are not unique and the endpoint takes no filters."""
    try:
        rules = get_all_nat_rules(client, edge_gateway_id)
    except VCDError as err:
        raise wrap_error(f"error retrieving all NSX-T NAT rules: {err}", err) from err

    found = [rule for rule in rules if rule.rule.name == name]
    if len(found) > 1:
        raise VCDError(f"error - found {len(found)} NSX-T NAT rules with name '{name}'. Expected 1")
    if not found:
        raise EntityNotFoundError()
    return found[0]


def get_nat_rule_by_id(client, edge_gateway_id: str, rule_id: str) -> NsxtNatRule:
    try:
        rules = get_all_nat_rules(client, edge_gateway_id)
    except VCDError as err:
        raise wrap_error(f"error retrieving all NSX-T NAT rules: {err}", err) from err

    for rule in rules:
        if rule.rule.id == rule_id:
            return rule
    raise EntityNotFoundError()


def create_nat_rule(client, edge_gateway_id: str, config: NsxtNatRuleType) -> NsxtNatRule:
    """Create a rule and return it with its ID.

    The API does not return the ID of a new rule, so all rules are read back
    and the first one equal to config is returned.
    """
    api_version = _nat_api_version(client)
    url = client.open_api_build_endpoint(_ENDPOINT % edge_gateway_id)

    try:
        task = client.open_api_post_item_async(api_version, url, None, config)
    except VCDError as err:
        raise wrap_error(f"error creating NSX-T NAT rule: {err}", err) from err

    try:
        task.wait_task_completion()
    except VCDError as err:
        raise wrap_error(f"task failed while creating NSX-T NAT rule: {err}", err) from err

    for rule in get_all_nat_rules(client, edge_gateway_id):
        if rule.is_equal_to(config):
            return rule
    raise VCDError(f"rule '{config.name}' of type '{config.rule_type}' not found after creation")
