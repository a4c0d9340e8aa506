"""
OpenAPI endpoint registry and per-endpoint version negotiation
"""

import logging

from ..exceptions import UnsupportedVersionError, VCDError, wrap_error
from .versions import parse_version

logger = logging.getLogger(__name__)

PATH_VERSION_1_0_0 = "1.0.0/"
PATH_VERSION_2_0_0 = "2.0.0/"

ENDPOINT_ROLES = "roles/"
ENDPOINT_RIGHTS = "rights/"
ENDPOINT_RIGHTS_BUNDLES = "rightsBundles/"
ENDPOINT_RIGHTS_CATEGORIES = "rightsCategories/"
ENDPOINT_GLOBAL_ROLES = "globalRoles/"
ENDPOINT_USERS = "users/"
ENDPOINT_USERS_PASSWORD = "users/%s/password"
ENDPOINT_USERS_UNLOCK = "users/%s/unlock"
ENDPOINT_AUDIT_TRAIL = "auditTrail/"
ENDPOINT_SESSIONS = "sessions"
ENDPOINT_SESSION_CURRENT = "sessions/current"
ENDPOINT_TOKENS = "tokens/"
ENDPOINT_SERVICE_ACCOUNTS = "serviceAccounts/"
ENDPOINT_ORGS = "orgs/"
ENDPOINT_VDC_CAPABILITIES = "vdcs/%s/capabilities"
ENDPOINT_EDGE_GATEWAYS = "edgeGateways/"
ENDPOINT_EDGE_GATEWAY_USED_IP_ADDRESSES = "edgeGateways/%s/usedIpAddresses"
ENDPOINT_FIREWALL_GROUPS = "firewallGroups/"
ENDPOINT_NSXT_NAT_RULES = "edgeGateways/%s/nat/rules/"
ENDPOINT_ORG_VDC_NETWORKS = "orgVdcNetworks/"
ENDPOINT_VDC_GROUPS = "vdcGroups/"
ENDPOINT_VDC_GROUPS_CANDIDATE_VDCS = "vdcGroups/networkingCandidateVdcs"
ENDPOINT_SECURITY_TAGS = "securityTags/"
ENDPOINT_IP_SPACES = "ipSpaces/"
ENDPOINT_IP_SPACE_SUMMARIES = "ipSpaces/summaries"
ENDPOINT_IP_SPACE_UPLINKS = "ipSpaceUplinks/"

# Minimum API version each endpoint needs
ENDPOINT_MIN_API_VERSIONS = {
    PATH_VERSION_1_0_0 + ENDPOINT_RIGHTS: "31.0",
    PATH_VERSION_1_0_0 + ENDPOINT_RIGHTS_BUNDLES: "31.0",
    PATH_VERSION_1_0_0 + ENDPOINT_RIGHTS_CATEGORIES: "31.0",
    PATH_VERSION_1_0_0 + ENDPOINT_ROLES: "31.0",
    PATH_VERSION_1_0_0 + ENDPOINT_GLOBAL_ROLES: "31.0",
    PATH_VERSION_1_0_0 + ENDPOINT_ROLES + ENDPOINT_RIGHTS: "31.0",
    PATH_VERSION_1_0_0 + ENDPOINT_GLOBAL_ROLES + ENDPOINT_RIGHTS: "31.0",
    PATH_VERSION_1_0_0 + ENDPOINT_USERS: "40.0",
    PATH_VERSION_1_0_0 + ENDPOINT_USERS_PASSWORD: "40.0",
    PATH_VERSION_1_0_0 + ENDPOINT_USERS_UNLOCK: "40.0",
    PATH_VERSION_1_0_0 + ENDPOINT_AUDIT_TRAIL: "33.0",
    PATH_VERSION_1_0_0 + ENDPOINT_SESSION_CURRENT: "34.0",
    PATH_VERSION_1_0_0 + ENDPOINT_VDC_CAPABILITIES: "32.0",
    PATH_VERSION_1_0_0 + ENDPOINT_EDGE_GATEWAYS: "34.0",
    PATH_VERSION_1_0_0 + ENDPOINT_EDGE_GATEWAY_USED_IP_ADDRESSES: "34.0",
    PATH_VERSION_1_0_0 + ENDPOINT_FIREWALL_GROUPS: "34.0",
    PATH_VERSION_1_0_0 + ENDPOINT_NSXT_NAT_RULES: "34.0",
    PATH_VERSION_1_0_0 + ENDPOINT_ORG_VDC_NETWORKS: "32.0",
    PATH_VERSION_1_0_0 + ENDPOINT_VDC_GROUPS: "35.0",
    PATH_VERSION_1_0_0 + ENDPOINT_VDC_GROUPS_CANDIDATE_VDCS: "35.0",
    PATH_VERSION_1_0_0 + ENDPOINT_SECURITY_TAGS: "36.0",
    PATH_VERSION_1_0_0 + ENDPOINT_IP_SPACES: "37.1",
    PATH_VERSION_1_0_0 + ENDPOINT_IP_SPACE_SUMMARIES: "37.1",
    PATH_VERSION_1_0_0 + ENDPOINT_IP_SPACE_UPLINKS: "37.1",
    PATH_VERSION_1_0_0 + ENDPOINT_TOKENS: "36.1",
    PATH_VERSION_1_0_0 + ENDPOINT_SERVICE_ACCOUNTS: "37.0",
    PATH_VERSION_1_0_0 + ENDPOINT_ORGS: "37.0",
}

# Higher versions that unlock extra fields, used when both sides allow them
ENDPOINT_ELEVATED_API_VERSIONS = {
    PATH_VERSION_1_0_0 + ENDPOINT_NSXT_NAT_RULES: [
        "35.2",  # firewallMatch and priority
        "36.0",  # REFLEXIVE rule type
    ],
    PATH_VERSION_1_0_0 + ENDPOINT_FIREWALL_GROUPS: [
        "36.0",  # typeValue replaces type, dynamic security groups
    ],
    PATH_VERSION_1_0_0 + ENDPOINT_EDGE_GATEWAYS: [
        "37.1",  # usingIpSpace on uplinks
        "39.0",  # DISTRIBUTED_ONLY deployment mode
    ],
    PATH_VERSION_1_0_0 + ENDPOINT_IP_SPACES: [
        "38.0",  # defaultGatewayServiceConfig
    ],
    PATH_VERSION_1_0_0 + ENDPOINT_IP_SPACE_UPLINKS: [
        "38.0",  # Tier-0 interfaces
    ],
    PATH_VERSION_1_0_0 + ENDPOINT_ORGS: [
        "40.0",  # Tenant Manager orgs
    ],
}


class EndpointsMixin:
    """Endpoint compatibility checks for Client"""

    def check_open_api_endpoint_compatibility(self, endpoint: str) -> str:
        """Return the API version to call endpoint with.

        Raises:
            VCDError: If the endpoint has no known minimum version
            UnsupportedVersionError: If the server is too old for the endpoint
        """
        minimum = ENDPOINT_MIN_API_VERSIONS.get(endpoint)
        if minimum is None:
            raise VCDError(f"minimum API version for endpoint '{endpoint}' is not defined")

        if self.api_vcd_max_version_is(f"< {minimum}"):
            try:
                max_version = self.max_supported_version()
            except VCDError as err:
                raise VCDError(f"error reading maximum supported API version: {err}") from err
            raise UnsupportedVersionError(
                f"endpoint '{endpoint}' requires API version to support at least '{minimum}'. "
                f"Maximum supported version in this instance: '{max_version}'")

        if self.api_client_version_is(f"> {minimum}"):
            return self.api_version
        return minimum

    def get_open_api_highest_elevated_version(self, endpoint: str) -> str:
        """Return the highest elevated version usable for endpoint.

        Falls back to the minimum from check_open_api_endpoint_compatibility
        when no elevated version is registered or none is supported.
        """
        logger.debug(f"Checking if elevated API versions are defined for endpoint '{endpoint}'")
        try:
            minimum = self.check_open_api_endpoint_compatibility(endpoint)
        except VCDError as err:
            raise wrap_error(f"error getting minimum required API version: {err}", err) from err

        elevated = ENDPOINT_ELEVATED_API_VERSIONS.get(endpoint)
        if not elevated:
            logger.debug(f"No elevated API versions are defined for endpoint '{endpoint}'. Using minimum '{minimum}'")
            return minimum

        for version in sorted(elevated, key=parse_version, reverse=True):
            if (self.api_vcd_max_version_is(f">= {version}")
                    and not self.api_client_version_is(f"> {version}")):
                logger.debug(f"Elevated version '{version}' is supported by VCD instance for endpoint '{endpoint}'")
                return version

        logger.debug(f"No elevated version is supported for endpoint '{endpoint}'. Using minimum '{minimum}'")
        return minimum
