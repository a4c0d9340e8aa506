"""
NSX-T security tags
"""

from typing import List, Optional

from ..api.endpoints import ENDPOINT_SECURITY_TAGS, PATH_VERSION_1_0_0
from ..exceptions import VCDError, wrap_error
from ..tenant_context import TenantContext, get_tenant_context_header
from ..types.openapi import EntitySecurityTags, SecurityTag, SecurityTaggedEntity, SecurityTagValue

_ENDPOINT = PATH_VERSION_1_0_0 + ENDPOINT_SECURITY_TAGS


def get_security_tagged_entities(client, filter_text: str) -> List[SecurityTaggedEntity]:
    """Return the entities carrying at least one tag.

    filter_text accepts entityType and tag, e.g. "tag==Web;entityType==vm".
    """
    api_version = client.get_open_api_highest_elevated_version(_ENDPOINT)
    url = client.open_api_build_endpoint(_ENDPOINT, "entities")
    return client.open_api_get_all_items(api_version, url, {"filter": filter_text}, SecurityTaggedEntity)


def get_security_tag_values(client, filter_text: str = "",
                            tenant_context: Optional[TenantContext] = None) -> List[SecurityTagValue]:
    """Return the tags defined in the organization.

    The endpoint answers for org users only, so a system administrator
    must pass the tenant context of the organization.
    """
    api_version = client.get_open_api_highest_elevated_version(_ENDPOINT)
    url = client.open_api_build_endpoint(_ENDPOINT, "values")
    params = {"filter": filter_text} if filter_text else None
    headers = get_tenant_context_header(tenant_context) if client.is_sys_admin else None
    return client.open_api_get_all_items(api_version, url, params, SecurityTagValue, headers)


def update_security_tag(client, security_tag: SecurityTag) -> None:
    """Set the complete list of entities carrying a tag. Entities left out are untagged."""
    if not security_tag.tag:
        raise VCDError("security tag name must be set")

    api_version = client.get_open_api_highest_elevated_version(_ENDPOINT)
    url = client.open_api_build_endpoint(_ENDPOINT, "tag")
    try:
        client.open_api_put_item(api_version, url, None, security_tag, dict)
    except VCDError as err:
        raise wrap_error(f"error updating security tag {security_tag.tag}: {err}", err) from err


def get_vm_security_tags(client, vm_id: str) -> EntitySecurityTags:
    api_version = client.get_open_api_highest_elevated_version(_ENDPOINT)
    url = client.open_api_build_endpoint(_ENDPOINT, f"vm/{vm_id}")
    return client.open_api_get_item(api_version, url, None, EntitySecurityTags)


def update_vm_security_tags(client, vm_id: str, tags: EntitySecurityTags) -> EntitySecurityTags:
    """Replace the tags of a VM; an empty list removes them all"""
    api_version = client.get_open_api_highest_elevated_version(_ENDPOINT)
    url = client.open_api_build_endpoint(_ENDPOINT, f"vm/{vm_id}")
    return client.open_api_put_item(api_version, url, None, tags, EntitySecurityTags)
