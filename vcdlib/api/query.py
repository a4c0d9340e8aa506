"""
Typed queries against the legacy /api/query service
"""

import logging
from typing import Dict, Mapping, Optional
from urllib.parse import quote, urlencode

from ..exceptions import VCDError
from ..types.xml import QueryResultRecords

logger = logging.getLogger(__name__)

QT_VM = "vm"
QT_ADMIN_VM = "adminVM"
QT_VAPP = "vApp"
QT_ADMIN_VAPP = "adminVApp"
QT_VAPP_TEMPLATE = "vAppTemplate"
QT_ADMIN_VAPP_TEMPLATE = "adminVAppTemplate"
QT_CATALOG = "catalog"
QT_ADMIN_CATALOG = "adminCatalog"
QT_CATALOG_ITEM = "catalogItem"
QT_ADMIN_CATALOG_ITEM = "adminCatalogItem"
QT_ORG_VDC = "orgVdc"
QT_ADMIN_ORG_VDC = "adminOrgVdc"
QT_EDGE_GATEWAY = "edgeGateway"
QT_ORG_VDC_NETWORK = "orgVdcNetwork"
QT_MEDIA = "media"
QT_ADMIN_MEDIA = "adminMedia"
QT_DISK = "disk"
QT_ADMIN_DISK = "adminDisk"
QT_TASK = "task"
QT_ADMIN_TASK = "adminTask"
QT_ORG = "organization"

SUPPORTED_QUERY_TYPES = (
    QT_VM, QT_ADMIN_VM, QT_VAPP, QT_ADMIN_VAPP, QT_VAPP_TEMPLATE, QT_ADMIN_VAPP_TEMPLATE,
    QT_CATALOG, QT_ADMIN_CATALOG, QT_CATALOG_ITEM, QT_ADMIN_CATALOG_ITEM, QT_ORG_VDC,
    QT_ADMIN_ORG_VDC, QT_EDGE_GATEWAY, QT_ORG_VDC_NETWORK, QT_MEDIA, QT_ADMIN_MEDIA,
    QT_DISK, QT_ADMIN_DISK, QT_TASK, QT_ADMIN_TASK, QT_ORG,
)

# Tenant query type -> type a system administrator has to use
ADMIN_QUERY_TYPES = {
    QT_VM: QT_ADMIN_VM,
    QT_VAPP: QT_ADMIN_VAPP,
    QT_VAPP_TEMPLATE: QT_ADMIN_VAPP_TEMPLATE,
    QT_CATALOG: QT_ADMIN_CATALOG,
    QT_CATALOG_ITEM: QT_ADMIN_CATALOG_ITEM,
    QT_ORG_VDC: QT_ADMIN_ORG_VDC,
    QT_MEDIA: QT_ADMIN_MEDIA,
    QT_DISK: QT_ADMIN_DISK,
    QT_TASK: QT_ADMIN_TASK,
}

DEFAULT_QUERY_PAGE_SIZE = "128"


def query_type_for(client, query_type: str) -> str:
    """Return the admin variant of query_type when the client is a system administrator"""
    if client.is_sys_admin:
        return ADMIN_QUERY_TYPES.get(query_type, query_type)
    return query_type


def query_with_not_encoded_params(client, params: Optional[Mapping[str, str]],
                                  not_encoded_params: Optional[Mapping[str, str]],
                                  headers: Optional[Mapping[str, str]] = None) -> QueryResultRecords:
    """Run one query page.

    params are URL encoded. not_encoded_params are passed through as they
    are, so that FIQL filters keep their operators.
    """
    parts = []
    if params:
        parts.append(urlencode(params))
    for key, value in (not_encoded_params or {}).items():
        parts.append(f"{key}={quote(str(value), safe='=;,*:/()@<>!%')}")

    url = f"{client.vcd_href}/query"
    if parts:
        url = f"{url}?{'&'.join(parts)}"

    return client.execute_request(url, "GET", "", "error retrieving query: %s", None, QueryResultRecords,
                                  additional_headers=headers)


def cumulative_query(client, query_type: str, params: Optional[Mapping[str, str]] = None,
                     not_encoded_params: Optional[Mapping[str, str]] = None,
                     headers: Optional[Mapping[str, str]] = None) -> QueryResultRecords:
    """Run a query and gather the records of every page.

    Args:
        client: Client to query with
        query_type: One of SUPPORTED_QUERY_TYPES
        params: Encoded query parameters
        not_encoded_params: Raw query parameters such as filter
        headers: Extra request headers, such as a tenant context

    Returns:
        The first page with the records of all pages appended
    """
    if query_type not in SUPPORTED_QUERY_TYPES:
        raise VCDError(f"[cumulative_query] query type {query_type} not supported")

    raw: Dict[str, str] = dict(not_encoded_params or {})
    raw["type"] = query_type
    raw.setdefault("format", "records")
    raw.setdefault("pageSize", DEFAULT_QUERY_PAGE_SIZE)

    result = query_with_not_encoded_params(client, params, raw, headers)
    wanted = result.total
    page = result.page or 1

    while len(result.records) < wanted:
        page += 1
        raw["page"] = str(page)
        next_page = query_with_not_encoded_params(client, params, raw, headers)
        if not next_page.records:
            logger.debug(f"Query {query_type} page {page} returned no records, "
                         f"stopping at {len(result.records)} of {wanted}")
            break
        result.records.extend(next_page.records)

    return result
