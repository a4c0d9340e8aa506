"""
Organizations, in the tenant and administrator views
"""

import logging
from typing import Optional, Union

from ..api.filters import merge_query
from ..api.task import Task
from ..exceptions import EntityNotFoundError, VCDError, wrap_error
from ..tenant_context import TenantContext, get_bare_entity_uuid
from ..types.xml import (
    MIME_ADMIN_CATALOG,
    MIME_ADMIN_ORG,
    MIME_CATALOG,
    MIME_VDC,
    AdminOrgType,
    CatalogType,
    OrgType,
    VdcType,
)
from .catalog import AdminCatalog, Catalog
from .vdc import Vdc

logger = logging.getLogger(__name__)


class Org:
    """An organization as seen by its users"""

    org_type = OrgType

    def __init__(self, client, org: Optional[Union[OrgType, AdminOrgType]] = None, parent=None):
        self.client = client
        self.org = org or self.org_type()
        self.parent = parent
        self._tenant_context: Optional[TenantContext] = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.org.name!r})"

    def tenant_context(self) -> TenantContext:
        """Return the tenant context of this organization, computed once"""
        if self._tenant_context is None:
            try:
                org_id = get_bare_entity_uuid(self.org.id)
            except VCDError as err:
                raise VCDError(f"error retrieving tenant context for org {self.org.name}: {err}") from err
            self._tenant_context = TenantContext(org_id=org_id, org_name=self.org.name)
        return self._tenant_context

    def refresh(self) -> None:
        if not self.org.href:
            raise VCDError("cannot refresh, Object is empty")
        self.org = self.client.execute_request(self.org.href, "GET", "",
                                               "error refreshing organization: %s", None, self.org_type)

    def get_vdc_by_name(self, name: str) -> Vdc:
        for link in self.org.links:
            if link.type == MIME_VDC and link.name == name:
                vdc = self.client.execute_request(link.href, "GET", "", "error retrieving vdc: %s",
                                                  None, VdcType)
                return Vdc(self.client, vdc, self)
        raise EntityNotFoundError(f"vdc '{name}' not found in org {self.org.name}")

    def get_catalog_by_name(self, name: str) -> Catalog:
        for link in self.org.links:
            if link.rel == "down" and link.type == MIME_CATALOG and link.name == name:
                catalog = self.client.execute_request(link.href, "GET", "", "error retrieving catalog: %s",
                                                      None, CatalogType)
                return Catalog(self.client, catalog, self)
        raise EntityNotFoundError(f"catalog '{name}' not found in org {self.org.name}")


class AdminOrg(Org):
    """An organization as seen by administrators.

    Update, disable and delete need system administrator rights.
    """

    org_type = AdminOrgType

    @property
    def admin_org(self) -> AdminOrgType:
        return self.org

    def update(self) -> Task:
        """Send the current settings and return the update task"""
        return self.client.execute_task_request(self.org.href, "PUT", MIME_ADMIN_ORG,
                                                "error updating Org: %s", self.org)

    def disable(self) -> None:
        self.client.execute_request_without_response(f"{self.org.href}/action/disable", "POST", "",
                                                     "error disabling Org: %s")

    def delete(self, force: bool = False, recursive: bool = False) -> None:
        """Delete the organization.

        With both force and recursive, catalogs and VDCs are removed first.
        The organization is disabled before the DELETE is sent.
        """
        if force and recursive:
            self._remove_catalogs()
            self._remove_all_vdcs()

        try:
            self.disable()
        except VCDError as err:
            raise wrap_error(f"error disabling Org {self.org.name}: {err}", err) from err

        url = merge_query(self.org.href, {"force": str(force).lower(), "recursive": str(recursive).lower()})
        self.client.execute_request_without_response(url, "DELETE", "",
                                                     f"error deleting Organization {self.org.name}: %s")

    def _remove_catalogs(self) -> None:
        for reference in self.org.catalogs:
            catalog = self.get_admin_catalog_by_name(reference.name)
            logger.debug(f"Removing catalog {reference.name} of org {self.org.name}")
            catalog.delete(force=True, recursive=True)

    def _remove_all_vdcs(self) -> None:
        for reference in self.org.vdcs:
            vdc = self.get_vdc_by_name(reference.name)
            logger.debug(f"Removing VDC {reference.name} of org {self.org.name}")
            vdc.delete_wait(force=True, recursive=True)

    def create_catalog(self, name: str, description: str = "") -> AdminCatalog:
        """Create a catalog and wait for its creation tasks"""
        payload = CatalogType(name=name, description=description)
        created = self.client.execute_request(f"{self.org.href}/catalogs", "POST", MIME_ADMIN_CATALOG,
                                              "error creating catalog: %s", payload, CatalogType)
        catalog = AdminCatalog(self.client, created, self)
        try:
            catalog.wait_creation()
        except VCDError as err:
            raise wrap_error(f"error waiting for catalog {name} creation: {err}", err) from err
        return catalog

    def get_admin_catalog_by_name(self, name: str) -> AdminCatalog:
        for reference in self.org.catalogs:
            if reference.name == name:
                catalog = self.client.execute_request(reference.href, "GET", "",
                                                      "error retrieving catalog: %s", None, CatalogType)
                return AdminCatalog(self.client, catalog, self)
        raise EntityNotFoundError(f"catalog '{name}' not found in org {self.org.name}")

    def get_catalog_by_name(self, name: str) -> Catalog:
        for reference in self.org.catalogs:
            if reference.name == name:
                href = reference.href.replace("/admin", "", 1)
                catalog = self.client.execute_request(href, "GET", "", "error retrieving catalog: %s",
                                                      None, CatalogType)
                return Catalog(self.client, catalog, self)
        raise EntityNotFoundError(f"catalog '{name}' not found in org {self.org.name}")

    def get_vdc_by_name(self, name: str) -> Vdc:
        for reference in self.org.vdcs:
            if reference.name == name:
                href = reference.href.replace("/admin", "", 1)
                vdc = self.client.execute_request(href, "GET", "", "error retrieving vdc: %s", None, VdcType)
                return Vdc(self.client, vdc, self)
        raise EntityNotFoundError(f"vdc '{name}' not found in org {self.org.name}")
