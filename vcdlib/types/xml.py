"""
Typed payloads for the legacy XML API
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from lxml import etree

from ..exceptions import ApiError

VCLOUD_NS = "http://www.vmware.com/vcloud/v1.5"
VERSIONS_NS = "http://www.vmware.com/vcloud/versions"

MIME_ORG = "application/vnd.vmware.vcloud.org+xml"
MIME_ADMIN_ORG = "application/vnd.vmware.admin.organization+xml"
MIME_VDC = "application/vnd.vmware.vcloud.vdc+xml"
MIME_ADMIN_VDC = "application/vnd.vmware.admin.vdc+xml"
MIME_CATALOG = "application/vnd.vmware.vcloud.catalog+xml"
MIME_ADMIN_CATALOG = "application/vnd.vmware.admin.catalog+xml"
MIME_VAPP = "application/vnd.vmware.vcloud.vApp+xml"
MIME_DISK = "application/vnd.vmware.vcloud.disk+xml"
MIME_DISK_CREATE_PARAMS = "application/vnd.vmware.vcloud.diskCreateParams+xml"
MIME_TASK = "application/vnd.vmware.vcloud.task+xml"
MIME_VMS = "application/vnd.vmware.vcloud.vms+xml"


def qname(tag: str, namespace: str = VCLOUD_NS) -> str:
    return f"{{{namespace}}}{tag}"


def find_child(element, tag: str):
    """Find a direct child by local name, ignoring its namespace"""
    return element.find(f"{{*}}{tag}")


def child_text(element, tag: str, default: str = "") -> str:
    child = find_child(element, tag)
    if child is None or child.text is None:
        return default
    return child.text.strip()


def child_bool(element, tag: str) -> Optional[bool]:
    text = child_text(element, tag)
    if not text:
        return None
    return text.lower() == "true"


def attr_bool(element, name: str) -> Optional[bool]:
    value = element.get(name)
    if value is None:
        return None
    return value.lower() == "true"


def parse_xml(content: bytes):
    """Parse an XML document, refusing external entities"""
    parser = etree.XMLParser(resolve_entities=False, no_network=True, remove_blank_text=True)
    return etree.fromstring(content, parser=parser)


def to_xml_bytes(element) -> bytes:
    return etree.tostring(element, xml_declaration=True, encoding="UTF-8")


@dataclass
class Link:
    """A typed hyperlink to a related resource"""
    href: str
    rel: str = ""
    type: str = ""
    name: str = ""

    @classmethod
    def from_element(cls, element) -> "Link":
        return cls(href=element.get("href", ""), rel=element.get("rel", ""),
                   type=element.get("type", ""), name=element.get("name", ""))


@dataclass
class Reference:
    """Reference to another entity"""
    href: str = ""
    id: str = ""
    type: str = ""
    name: str = ""

    @classmethod
    def from_element(cls, element) -> "Reference":
        return cls(href=element.get("href", ""), id=element.get("id", ""),
                   type=element.get("type", ""), name=element.get("name", ""))


def parse_links(element) -> List[Link]:
    return [Link.from_element(link) for link in element.findall("{*}Link")]


def find_link(links: List[Link], rel: str, mime_type: Optional[str] = None) -> Optional[Link]:
    for link in links:
        if link.rel == rel and (mime_type is None or link.type == mime_type):
            return link
    return None


def parse_api_error(element) -> ApiError:
    """Build an ApiError from a legacy <Error> element"""
    try:
        major = int(element.get("majorErrorCode", "0"))
    except ValueError:
        major = 0
    return ApiError(
        message=element.get("message", ""),
        major_error_code=major,
        minor_error_code=element.get("minorErrorCode", ""),
        vendor_specific_error_code=element.get("vendorSpecificErrorCode", ""),
        stack_trace=element.get("stackTrace", ""),
    )


@dataclass
class TaskType:
    """Server representation of an asynchronous task"""
    href: str = ""
    id: str = ""
    name: str = ""
    type: str = MIME_TASK
    status: str = ""
    operation: str = ""
    operation_name: str = ""
    operation_key: str = ""
    cancel_requested: Optional[bool] = None
    start_time: str = ""
    end_time: str = ""
    expiry_time: str = ""
    progress: int = 0
    description: str = ""
    details: str = ""
    owner: Optional[Reference] = None
    user: Optional[Reference] = None
    organization: Optional[Reference] = None
    error: Optional[ApiError] = None
    result: Optional[Dict[str, str]] = None
    links: List[Link] = field(default_factory=list)

    @classmethod
    def from_element(cls, element) -> "TaskType":
        task = cls(
            href=element.get("href", ""),
            id=element.get("id", ""),
            name=element.get("name", ""),
            type=element.get("type", MIME_TASK),
            status=element.get("status", ""),
            operation=element.get("operation", ""),
            operation_name=element.get("operationName", ""),
            operation_key=element.get("operationKey", ""),
            cancel_requested=attr_bool(element, "cancelRequested"),
            start_time=element.get("startTime", ""),
            end_time=element.get("endTime", ""),
            expiry_time=element.get("expiryTime", ""),
            description=child_text(element, "Description"),
            details=child_text(element, "Details"),
            links=parse_links(element),
        )
        progress = child_text(element, "Progress")
        if progress:
            task.progress = int(progress)
        for tag, attr in (("Owner", "owner"), ("User", "user"), ("Organization", "organization")):
            child = find_child(element, tag)
            if child is not None:
                setattr(task, attr, Reference.from_element(child))
        error = find_child(element, "Error")
        if error is not None:
            task.error = parse_api_error(error)
        result = find_child(element, "Result")
        if result is not None:
            task.result = {etree.QName(child).localname: (child.text or "").strip() for child in result}
        return task


@dataclass
class VersionInfo:
    """One entry of the /api/versions list"""
    version: str
    login_url: str = ""
    deprecated: Optional[bool] = None

    @classmethod
    def from_element(cls, element) -> "VersionInfo":
        return cls(version=child_text(element, "Version"),
                   login_url=child_text(element, "LoginUrl"),
                   deprecated=attr_bool(element, "deprecated"))


@dataclass
class SupportedVersions:
    versions: List[VersionInfo] = field(default_factory=list)

    @classmethod
    def from_element(cls, element) -> "SupportedVersions":
        return cls(versions=[VersionInfo.from_element(v) for v in element.findall("{*}VersionInfo")])


@dataclass
class VCloud:
    """The /api/admin entry point"""
    href: str = ""
    name: str = ""
    description: str = ""

    @classmethod
    def from_element(cls, element) -> "VCloud":
        return cls(href=element.get("href", ""), name=element.get("name", ""),
                   description=child_text(element, "Description"))


@dataclass
class OrgList:
    orgs: List[Reference] = field(default_factory=list)

    @classmethod
    def from_element(cls, element) -> "OrgList":
        return cls(orgs=[Reference.from_element(o) for o in element.findall("{*}Org")])


@dataclass
class OrgType:
    """Tenant view of an organization"""
    href: str = ""
    id: str = ""
    name: str = ""
    type: str = MIME_ORG
    full_name: str = ""
    description: str = ""
    is_enabled: Optional[bool] = None
    links: List[Link] = field(default_factory=list)

    @classmethod
    def from_element(cls, element) -> "OrgType":
        return cls(href=element.get("href", ""), id=element.get("id", ""),
                   name=element.get("name", ""), type=element.get("type", MIME_ORG),
                   full_name=child_text(element, "FullName"),
                   description=child_text(element, "Description"),
                   is_enabled=child_bool(element, "IsEnabled"),
                   links=parse_links(element))


@dataclass
class AdminOrgType(OrgType):
    """Administrator view of an organization.

    The parsed element is retained so that an update sends back every
    setting, including those this class does not model.
    """
    type: str = MIME_ADMIN_ORG
    vdcs: List[Reference] = field(default_factory=list)
    catalogs: List[Reference] = field(default_factory=list)
    element: Any = field(default=None, repr=False, compare=False)

    @classmethod
    def from_element(cls, element) -> "AdminOrgType":
        base = OrgType.from_element(element)
        org = cls(href=base.href, id=base.id, name=base.name,
                  type=element.get("type", MIME_ADMIN_ORG), full_name=base.full_name,
                  description=base.description, is_enabled=base.is_enabled,
                  links=base.links, element=element)
        vdcs = find_child(element, "Vdcs")
        if vdcs is not None:
            org.vdcs = [Reference.from_element(v) for v in vdcs.findall("{*}Vdc")]
        catalogs = find_child(element, "Catalogs")
        if catalogs is not None:
            org.catalogs = [Reference.from_element(c) for c in catalogs.findall("{*}CatalogReference")]
        return org

    def to_element(self):
        """Serialize for PUT, carrying over unmodelled settings"""
        if self.element is None:
            element = etree.Element(qname("AdminOrg"), nsmap={None: VCLOUD_NS})
        else:
            element = etree.fromstring(etree.tostring(self.element))
            for tag in ("Link", "Vdcs", "Catalogs", "Users", "Groups", "Networks", "Tasks"):
                for child in element.findall(f"{{*}}{tag}"):
                    element.remove(child)
        element.set("name", self.name)
        _set_child_text(element, "Description", self.description, position=0)
        _set_child_text(element, "FullName", self.full_name, position=1)
        if self.is_enabled is not None:
            _set_child_text(element, "IsEnabled", str(self.is_enabled).lower(), position=2)
        return element


def _set_child_text(element, tag: str, text: str, position: int) -> None:
    child = find_child(element, tag)
    if child is None:
        child = etree.Element(qname(tag))
        element.insert(min(position, len(element)), child)
    child.text = text


@dataclass
class ResourceReference(Reference):
    pass


@dataclass
class VdcType:
    """An organization virtual data center"""
    href: str = ""
    id: str = ""
    name: str = ""
    type: str = MIME_VDC
    status: int = 0
    description: str = ""
    allocation_model: str = ""
    is_enabled: Optional[bool] = None
    resource_entities: List[ResourceReference] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)

    @classmethod
    def from_element(cls, element) -> "VdcType":
        vdc = cls(href=element.get("href", ""), id=element.get("id", ""),
                  name=element.get("name", ""), type=element.get("type", MIME_VDC),
                  description=child_text(element, "Description"),
                  allocation_model=child_text(element, "AllocationModel"),
                  is_enabled=child_bool(element, "IsEnabled"),
                  links=parse_links(element))
        status = element.get("status")
        if status:
            vdc.status = int(status)
        entities = find_child(element, "ResourceEntities")
        if entities is not None:
            vdc.resource_entities = [
                ResourceReference.from_element(e) for e in entities.findall("{*}ResourceEntity")
            ]
        return vdc


@dataclass
class CatalogType:
    """A catalog, in either the tenant or the administrator view"""
    href: str = ""
    id: str = ""
    name: str = ""
    type: str = MIME_CATALOG
    description: str = ""
    is_published: Optional[bool] = None
    catalog_items: List[Reference] = field(default_factory=list)
    tasks: List[TaskType] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)

    @classmethod
    def from_element(cls, element) -> "CatalogType":
        catalog = cls(href=element.get("href", ""), id=element.get("id", ""),
                      name=element.get("name", ""), type=element.get("type", MIME_CATALOG),
                      description=child_text(element, "Description"),
                      is_published=child_bool(element, "IsPublished"),
                      links=parse_links(element))
        items = find_child(element, "CatalogItems")
        if items is not None:
            catalog.catalog_items = [Reference.from_element(i) for i in items.findall("{*}CatalogItem")]
        tasks = find_child(element, "Tasks")
        if tasks is not None:
            catalog.tasks = [TaskType.from_element(t) for t in tasks.findall("{*}Task")]
        return catalog

    def to_element(self):
        element = etree.Element(qname("AdminCatalog"), nsmap={None: VCLOUD_NS})
        element.set("name", self.name)
        etree.SubElement(element, qname("Description")).text = self.description
        if self.is_published is not None:
            etree.SubElement(element, qname("IsPublished")).text = str(self.is_published).lower()
        return element


@dataclass
class DiskType:
    """An independent disk"""
    href: str = ""
    id: str = ""
    name: str = ""
    type: str = MIME_DISK
    status: int = 0
    description: str = ""
    size_mb: int = 0
    bus_type: str = ""
    bus_sub_type: str = ""
    storage_profile: Optional[Reference] = None
    owner: Optional[Reference] = None
    tasks: List[TaskType] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)

    @classmethod
    def from_element(cls, element) -> "DiskType":
        disk = cls(href=element.get("href", ""), id=element.get("id", ""),
                   name=element.get("name", ""), type=element.get("type", MIME_DISK),
                   bus_type=element.get("busType", ""),
                   bus_sub_type=element.get("busSubType", ""),
                   description=child_text(element, "Description"),
                   links=parse_links(element))
        if element.get("status"):
            disk.status = int(element.get("status"))
        if element.get("sizeMb"):
            disk.size_mb = int(element.get("sizeMb"))
        profile = find_child(element, "StorageProfile")
        if profile is not None:
            disk.storage_profile = Reference.from_element(profile)
        owner = find_child(element, "Owner")
        if owner is not None:
            user = find_child(owner, "User")
            if user is not None:
                disk.owner = Reference.from_element(user)
        tasks = find_child(element, "Tasks")
        if tasks is not None:
            disk.tasks = [TaskType.from_element(t) for t in tasks.findall("{*}Task")]
        return disk

    def to_element(self, tag: str = "Disk"):
        element = etree.Element(qname(tag), nsmap={None: VCLOUD_NS})
        element.set("name", self.name)
        element.set("sizeMb", str(self.size_mb))
        if self.bus_type:
            element.set("busType", self.bus_type)
        if self.bus_sub_type:
            element.set("busSubType", self.bus_sub_type)
        etree.SubElement(element, qname("Description")).text = self.description
        if self.storage_profile is not None:
            profile = etree.SubElement(element, qname("StorageProfile"))
            profile.set("href", self.storage_profile.href)
        return element


@dataclass
class DiskCreateParams:
    disk: DiskType

    def to_element(self):
        element = etree.Element(qname("DiskCreateParams"), nsmap={None: VCLOUD_NS})
        element.append(self.disk.to_element())
        return element


@dataclass
class VmsType:
    """Reference list returned by a disk's attachedVms link"""
    vms: List[Reference] = field(default_factory=list)

    @classmethod
    def from_element(cls, element) -> "VmsType":
        return cls(vms=[Reference.from_element(v) for v in element.findall("{*}VmReference")])


@dataclass
class QueryResultRecords:
    """One page of a typed query in records format.

    Each record is the dict of its XML attributes, plus the record element
    name under "record_type".
    """
    total: int = 0
    page: int = 0
    page_size: int = 0
    records: List[Dict[str, str]] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)

    @classmethod
    def from_element(cls, element) -> "QueryResultRecords":
        result = cls(total=int(element.get("total", "0")), page=int(element.get("page", "0")),
                     page_size=int(element.get("pageSize", "0")), links=parse_links(element))
        for child in element:
            if not isinstance(child.tag, str):
                continue
            name = etree.QName(child).localname
            if name == "Link":
                continue
            record = dict(child.attrib)
            record["record_type"] = name
            result.records.append(record)
        return result
