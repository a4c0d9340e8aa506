"""
Unit tests for NSX-T NAT rules
"""

import pytest

from vcdlib.exceptions import EntityNotFoundError, TaskError, VCDError
from vcdlib.resources.nat_rule import (
    NAT_ELEVATED_API_VERSION,
    NsxtNatRule,
    create_nat_rule,
    get_all_nat_rules,
    get_nat_rule_by_id,
    get_nat_rule_by_name,
    nat_rules_equal,
)
from vcdlib.types.openapi import NsxtNatRule as NsxtNatRuleType
from vcdlib.types.openapi import OpenApiReference

HOST = "https://vcd.example.com"
EDGE_ID = "urn:vcloud:gateway:e1"
RULES_URL = f"{HOST}/cloudapi/1.0.0/edgeGateways/{EDGE_ID}/nat/rules/"


def dnat(name="web", rule_id=None, **kwargs):
    values = dict(name=name, id=rule_id, rule_type="DNAT", enabled=True, external_addresses="1.1.1.1",
                  internal_addresses="10.0.0.5", dnat_external_port="8080")
    values.update(kwargs)
    return NsxtNatRuleType(**values)


class TestNatRuleEquality:
    """Test cases for comparing NAT rules"""

    def test_id_and_logging_ignored(self):
        """Test that server-set fields do not affect equality"""
        assert nat_rules_equal(dnat(rule_id="r1", logging=True), dnat(logging=False))

    def test_fields_compared(self):
        """Test that user-set fields are compared"""
        assert not nat_rules_equal(dnat(), dnat(internal_addresses="10.0.0.6"))
        assert not nat_rules_equal(dnat(), dnat(enabled=False))

    def test_port_profiles(self):
        """Test that profiles compare by id and missing profiles match only each other"""
        profile = OpenApiReference(id="app-1", name="HTTP")

        assert nat_rules_equal(dnat(application_port_profile=profile),
                               dnat(application_port_profile=OpenApiReference(id="app-1")))
        assert not nat_rules_equal(dnat(application_port_profile=profile), dnat())
        assert nat_rules_equal(dnat(), dnat())


class TestNatRuleLookup:
    """Test cases for reading NAT rules"""

    def test_get_all_uses_elevated_version(self, mock_client):
        """Test that newer servers are asked with the elevated version"""
        mock_client.open_api_get_all_items.return_value = [dnat(rule_id="r1")]

        rules = get_all_nat_rules(mock_client, EDGE_ID)

        assert rules[0].edge_gateway_id == EDGE_ID
        args = mock_client.open_api_get_all_items.call_args[0]
        assert args[0] == NAT_ELEVATED_API_VERSION
        assert args[1] == RULES_URL

    def test_get_all_on_older_server(self, mock_client):
        """Test that older servers get the compatible version"""
        mock_client.api_vcd_max_version_is.return_value = False
        mock_client.check_open_api_endpoint_compatibility.return_value = "34.0"
        mock_client.open_api_get_all_items.return_value = []

        get_all_nat_rules(mock_client, EDGE_ID)

        assert mock_client.open_api_get_all_items.call_args[0][0] == "34.0"

    def test_get_by_name(self, mock_client):
        """Test picking a rule by name"""
        mock_client.open_api_get_all_items.return_value = [dnat("a", "r1"), dnat("b", "r2")]

        assert get_nat_rule_by_name(mock_client, EDGE_ID, "b").rule.id == "r2"

    def test_get_by_name_duplicates(self, mock_client):
        """Test that rules sharing a name raise"""
        mock_client.open_api_get_all_items.return_value = [dnat("a", "r1"), dnat("a", "r2")]

        with pytest.raises(VCDError) as exc_info:
            get_nat_rule_by_name(mock_client, EDGE_ID, "a")

        assert "found 2 NSX-T NAT rules with name 'a'" in str(exc_info.value)

    def test_get_by_id_not_found(self, mock_client):
        """Test that an unknown id raises EntityNotFoundError"""
        mock_client.open_api_get_all_items.return_value = [dnat("a", "r1")]

        with pytest.raises(EntityNotFoundError):
            get_nat_rule_by_id(mock_client, EDGE_ID, "r9")


class TestNatRuleChanges:
    """Test cases for creating and changing NAT rules"""

    def test_create_finds_new_rule(self, mock_client):
        """Test that the created rule is found again by its fields"""
        mock_client.open_api_get_all_items.return_value = [dnat("other", "r1", internal_addresses="10.0.0.9"),
                                                           dnat("web", "r2")]

        rule = create_nat_rule(mock_client, EDGE_ID, dnat("web"))

        assert rule.rule.id == "r2"
        args = mock_client.open_api_post_item_async.call_args[0]
        assert args[1] == RULES_URL
        mock_client.open_api_post_item_async.return_value.wait_task_completion.assert_called_once()

    def test_create_task_failure(self, mock_client):
        """Test that a failed task is reported"""
        task = mock_client.open_api_post_item_async.return_value
        task.wait_task_completion.side_effect = TaskError("rule conflict")

        with pytest.raises(TaskError) as exc_info:
            create_nat_rule(mock_client, EDGE_ID, dnat("web"))

        assert "task failed while creating NSX-T NAT rule: rule conflict" in str(exc_info.value)

    def test_create_not_found_after_creation(self, mock_client):
        """Test that a missing rule after creation raises"""
        mock_client.open_api_get_all_items.return_value = []

        with pytest.raises(VCDError) as exc_info:
            create_nat_rule(mock_client, EDGE_ID, dnat("web"))

        assert "rule 'web' of type 'DNAT' not found after creation" in str(exc_info.value)

    def test_update(self, mock_client):
        """Test updating a rule below its gateway"""
        mock_client.open_api_put_item.side_effect = lambda version, url, params, payload, out: payload
        rule = NsxtNatRule(mock_client, dnat(rule_id="r1"), EDGE_ID)

        updated = rule.update(dnat(rule_id="r1", enabled=False))

        assert updated.rule.enabled is False
        assert updated.edge_gateway_id == EDGE_ID
        assert mock_client.open_api_put_item.call_args[0][1] == RULES_URL + "r1"

    def test_delete_requires_id(self, mock_client):
        """Test that rules without id cannot be deleted"""
        with pytest.raises(VCDError):
            NsxtNatRule(mock_client, dnat(), EDGE_ID).delete()

        mock_client.open_api_delete_item.assert_not_called()
