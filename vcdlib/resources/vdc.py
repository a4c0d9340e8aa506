"""
Organization virtual data centers
"""

import logging
from typing import Dict, List, Optional
from urllib.parse import quote

from ..api.endpoints import ENDPOINT_VDC_CAPABILITIES, PATH_VERSION_1_0_0
from ..api.filters import merge_query
from ..api.query import QT_VM, cumulative_query, query_type_for
from ..api.task import Task, TaskStatus
from ..exceptions import TaskError, VCDError, wrap_error
from ..tenant_context import TenantContext
from ..types.openapi import VdcCapability
from ..types.xml import MIME_DISK, MIME_VAPP, DiskCreateParams, ResourceReference, VdcType
from .disk import Disk, create_disk, find_disk_by_href
from .edge_gateway import NsxtEdgeGateway, get_nsxt_edge_gateway_by_name

logger = logging.getLogger(__name__)

NETWORK_PROVIDER_NSXT = "NSX_T"
NETWORK_PROVIDER_NSXV = "NSX_V"


class VmQueryFilter:
    """Which VMs a VM query returns"""
    ALL = ""
    DEPLOYED = "isVAppTemplate==false"
    NOT_DEPLOYED = "isVAppTemplate==true"


def get_capability_value(capabilities: List[VdcCapability], name: str) -> str:
    for capability in capabilities:
        if capability.name == name:
            return str(capability.value)
    return ""


class Vdc:
    """An org VDC in the tenant view"""

    def __init__(self, client, vdc: Optional[VdcType] = None, parent=None):
        self.client = client
        self.vdc = vdc or VdcType()
        self.parent = parent

    def __repr__(self) -> str:
        return f"Vdc(name={self.vdc.name!r})"

    def tenant_context(self) -> TenantContext:
        if self.parent is None:
            raise VCDError(f"VDC {self.vdc.name} has no parent")
        return self.parent.tenant_context()

    def refresh(self) -> None:
        if not self.vdc.href:
            raise VCDError("cannot refresh, Object is empty")
        self.vdc = self.client.execute_request(self.vdc.href, "GET", "", "error refreshing vDC: %s",
                                               None, VdcType)

    def delete(self, force: bool = False, recursive: bool = False) -> Task:
        """Start deleting the VDC and return the deletion task"""
        logger.debug(f"Deleting VDC {self.vdc.name} with force: {force}, recursive: {recursive}")
        if not self.vdc.href:
            raise VCDError("cannot delete, Object is empty")

        url = merge_query(self.vdc.href, {"force": str(force).lower(), "recursive": str(recursive).lower()})
        task = self.client.execute_task_request(url, "DELETE", "", "error deleting vdc: %s")

        if task.task.status == TaskStatus.ERROR:
            raise TaskError("vdc not properly destroyed")
        return task

    def delete_wait(self, force: bool = False, recursive: bool = False) -> None:
        task = self.delete(force, recursive)
        try:
            task.wait_task_completion()
        except VCDError as err:
            raise wrap_error(f"couldn't finish removing vdc {err}", err) from err

    def get_capabilities(self) -> List[VdcCapability]:
        if not self.vdc.id:
            raise VCDError("VDC ID must be set to get capabilities")

        endpoint = PATH_VERSION_1_0_0 + ENDPOINT_VDC_CAPABILITIES
        api_version = self.client.check_open_api_endpoint_compatibility(endpoint)
        url = self.client.open_api_build_endpoint(endpoint % self.vdc.id)
        return self.client.open_api_get_all_items(api_version, url, None, VdcCapability)

    def is_nsxt(self) -> bool:
        """True when the VDC is backed by an NSX-T provider VDC, False on any error"""
        try:
            capabilities = self.get_capabilities()
        except VCDError as err:
            logger.debug(f"could not read capabilities of VDC {self.vdc.name}: {err}")
            return False
        return get_capability_value(capabilities, "networkProvider") == NETWORK_PROVIDER_NSXT

    def is_nsxv(self) -> bool:
        try:
            capabilities = self.get_capabilities()
        except VCDError as err:
            logger.debug(f"could not read capabilities of VDC {self.vdc.name}: {err}")
            return False
        return get_capability_value(capabilities, "networkProvider") == NETWORK_PROVIDER_NSXV

    def query_vm_list(self, vm_filter: str = VmQueryFilter.ALL) -> List[Dict[str, str]]:
        """Return the VM query records of this VDC"""
        query_type = query_type_for(self.client, QT_VM)
        filter_text = f"vdc=={quote(self.vdc.href, safe='')}"
        if vm_filter:
            filter_text = f"{vm_filter};{filter_text}"

        try:
            result = cumulative_query(self.client, query_type, None,
                                      {"filter": filter_text, "filterEncoded": "true"})
        except VCDError as err:
            raise wrap_error(f"error getting VM list : {err}", err) from err
        return result.records

    def get_vapp_list(self) -> List[ResourceReference]:
        return [entity for entity in self.vdc.resource_entities if entity.type == MIME_VAPP]

    def get_nsxt_edge_gateway_by_name(self, name: str) -> NsxtEdgeGateway:
        """Find an NSX-T edge gateway owned by this VDC"""
        return get_nsxt_edge_gateway_by_name(self.client, name, {"filter": f"ownerRef.id=={self.vdc.id}"})

    def create_disk(self, params: DiskCreateParams) -> Disk:
        return create_disk(self.client, self, params)

    def get_disks_by_name(self, name: str) -> List[Disk]:
        """Return every independent disk of this VDC called name"""
        disks = []
        for entity in self.vdc.resource_entities:
            if entity.type == MIME_DISK and entity.name == name:
                disks.append(find_disk_by_href(self.client, entity.href))
        return disks
