"""
Catalogs, in the tenant and administrator views
"""

import logging
from typing import Dict, List, Optional
from urllib.parse import quote

from ..api.filters import merge_query
from ..api.query import QT_CATALOG_ITEM, cumulative_query, query_type_for
from ..api.task import Task
from ..exceptions import EntityNotFoundError, VCDError, wrap_error
from ..tenant_context import TenantContext, get_bare_entity_uuid, get_tenant_context_header
from ..types.xml import MIME_ADMIN_CATALOG, CatalogType, Reference

logger = logging.getLogger(__name__)


class Catalog:
    """A catalog as seen by organization users"""

    def __init__(self, client, catalog: Optional[CatalogType] = None, parent=None):
        self.client = client
        self.catalog = catalog or CatalogType()
        self.parent = parent

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.catalog.name!r})"

    def tenant_context(self) -> TenantContext:
        if self.parent is None:
            raise VCDError(f"catalog {self.catalog.name} has no parent")
        return self.parent.tenant_context()

    def refresh(self) -> None:
        if not self.catalog.href:
            raise VCDError("cannot refresh, Object is empty or HREF is empty")
        self.catalog = self.client.execute_request(self.catalog.href, "GET", "",
                                                   "error refreshing catalog: %s", None, CatalogType)

    def _admin_href(self) -> str:
        return f"{self.client.vcd_href}/admin/catalog/{get_bare_entity_uuid(self.catalog.id)}"

    def delete(self, force: bool = False, recursive: bool = False) -> None:
        """Delete the catalog, waiting for the deletion task if the server starts one"""
        if not self.catalog.id:
            raise VCDError("cannot delete catalog without ID")

        url = merge_query(self._admin_href(),
                          {"force": str(force).lower(), "recursive": str(recursive).lower()})
        self.client.execute_request_without_response(url, "DELETE", "",
                                                     f"error deleting Catalog {self.catalog.id}: %s")

    def find_catalog_item_reference(self, name: str) -> Reference:
        for item in self.catalog.catalog_items:
            if item.name == name:
                return item
        raise EntityNotFoundError(f"can't find catalog item: {name}")

    def query_catalog_item_list(self) -> List[Dict[str, str]]:
        """Return the catalog item query records of this catalog"""
        query_type = query_type_for(self.client, QT_CATALOG_ITEM)
        headers = None
        if self.parent is not None:
            headers = get_tenant_context_header(self.tenant_context())

        filter_text = f"catalog=={quote(self.catalog.href, safe='')}"
        try:
            result = cumulative_query(self.client, query_type, None,
                                      {"filter": filter_text, "filterEncoded": "true"}, headers)
        except VCDError as err:
            raise wrap_error(f"error getting catalog item list: {err}", err) from err
        return result.records


class AdminCatalog(Catalog):
    """A catalog as seen by administrators, which can also be updated"""

    def update(self) -> None:
        """Send name, description and publishing state, then reload from the answer"""
        payload = CatalogType(name=self.catalog.name, description=self.catalog.description,
                              is_published=self.catalog.is_published)
        self.catalog = self.client.execute_request(self.catalog.href, "PUT", MIME_ADMIN_CATALOG,
                                                   "error updating catalog: %s", payload, CatalogType)

    def wait_creation(self) -> None:
        """Wait for the tasks a freshly created catalog carries"""
        for task in self.catalog.tasks:
            Task(self.client, task).wait_task_completion()
        if self.catalog.tasks:
            self.refresh()
