"""
Independent disks
"""

import logging
from typing import Optional

from ..api.task import Task
from ..exceptions import VCDError, wrap_error
from ..types.xml import MIME_DISK, MIME_DISK_CREATE_PARAMS, MIME_VMS, DiskCreateParams, DiskType, Reference, VmsType

logger = logging.getLogger(__name__)


class Disk:
    """An independent disk, which can be attached to at most one VM"""

    def __init__(self, client, disk: Optional[DiskType] = None):
        self.client = client
        self.disk = disk or DiskType()

    def __repr__(self) -> str:
        return f"Disk(name={self.disk.name!r}, size_mb={self.disk.size_mb})"

    def _link(self, rel: Optional[str], mime_type: Optional[str] = None) -> str:
        for link in self.disk.links:
            if (rel is None or link.rel == rel) and (mime_type is None or link.type == mime_type):
                return link.href
        raise VCDError("exec link not found")

    def refresh(self) -> None:
        self.disk = find_disk_by_href(self.client, self.disk.href).disk

    def update(self, new_disk_info: DiskType) -> Task:
        """Change name, description, size or storage profile. Returns the update task."""
        href = self._link("edit", MIME_DISK)
        payload = DiskType(name=new_disk_info.name, description=new_disk_info.description,
                           size_mb=new_disk_info.size_mb, storage_profile=new_disk_info.storage_profile)
        return self.client.execute_task_request(href, "PUT", MIME_DISK, "error updating disk: %s", payload)

    def delete(self) -> Task:
        """Start removing the disk. The task fails while the disk is attached to a VM."""
        href = self._link("remove")
        return self.client.execute_task_request(href, "DELETE", "", "error delete disk: %s")

    def attached_vm(self) -> Optional[Reference]:
        """Return the VM the disk is attached to, or None"""
        href = self._link(None, MIME_VMS)
        vms = self.client.execute_request(href, "GET", MIME_VMS, "error attached vms: %s", None, VmsType)
        if not vms.vms:
            return None
        return vms.vms[0]


def find_disk_by_href(client, href: str) -> Disk:
    return Disk(client, client.execute_request(href, "GET", "", "error find disk: %s", None, DiskType))


def create_disk(client, vdc, params: DiskCreateParams) -> Disk:
    """Create an independent disk in vdc and wait until it is ready.

    Args:
        client: Client to use
        vdc: Vdc carrying the add link for disk creation
        params: Name, size and optional storage profile of the new disk

    Returns:
        The created disk, refreshed after its creation tasks finished
    """
    href = ""
    for link in vdc.vdc.links:
        if link.rel == "add" and link.type == MIME_DISK_CREATE_PARAMS:
            href = link.href
            break
    if not href:
        raise VCDError("exec link not found")

    created = client.execute_request(href, "POST", MIME_DISK_CREATE_PARAMS, "error create disk: %s",
                                     params, DiskType)
    disk = Disk(client, created)

    for task in created.tasks:
        try:
            Task(client, task).wait_task_completion()
        except VCDError as err:
            raise wrap_error(f"error waiting for disk {created.name} creation: {err}", err) from err

    if created.tasks:
        disk.refresh()
    return disk
