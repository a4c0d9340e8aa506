"""
Tenant context headers for acting inside an organization as a system administrator
"""

import re
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from .exceptions import VCDError

HEADER_TENANT_CONTEXT = "X-VMWARE-VCLOUD-TENANT-CONTEXT"
HEADER_AUTH_CONTEXT = "X-VMWARE-VCLOUD-AUTH-CONTEXT"

_UUID = r"[a-fA-F0-9]{8}-[a-fA-F0-9]{4}-[a-fA-F0-9]{4}-[a-fA-F0-9]{4}-[a-fA-F0-9]{12}"
_BARE_ID_RE = re.compile(rf"^[\w-]+:[\w-]+:[\w-]+:({_UUID})$")
_UUID_RE = re.compile(rf"({_UUID})")


@dataclass
class TenantContext:
    """Organization whose context a request runs in"""
    org_id: str  # bare UUID, without URN prefix
    org_name: str


def get_bare_entity_uuid(entity_id: str) -> str:
    """Return the UUID part of an URN such as urn:vcloud:org:<uuid>"""
    match = _BARE_ID_RE.match(entity_id or "")
    if not match:
        raise VCDError(f"error extracting ID from '{entity_id}'")
    return match.group(1)


def extract_uuid(text: str) -> str:
    """Return the last UUID found in text, or an empty string"""
    found = _UUID_RE.findall(text or "")
    return found[-1] if found else ""


def get_tenant_context_header(tenant_context: Optional[TenantContext]) -> Optional[Dict[str, str]]:
    """Headers that switch a request into the tenant's context.

    Returns None for no context and for the System organization.
    """
    if tenant_context is None:
        return None
    if not tenant_context.org_name or tenant_context.org_name.lower() == "system":
        return None
    return {
        HEADER_TENANT_CONTEXT: tenant_context.org_id,
        HEADER_AUTH_CONTEXT: tenant_context.org_name,
    }


def get_tenant_context_from_header(header: Optional[Mapping[str, str]]) -> Optional[TenantContext]:
    if not header:
        return None
    if HEADER_TENANT_CONTEXT in header and HEADER_AUTH_CONTEXT in header:
        return TenantContext(org_id=header[HEADER_TENANT_CONTEXT], org_name=header[HEADER_AUTH_CONTEXT])
    return None
