"""
Cloud Director resources: legacy XML entities and OpenAPI entities
"""

from .catalog import AdminCatalog, Catalog
from .disk import Disk
from .edge_gateway import NsxtEdgeGateway
from .firewall_group import NsxtFirewallGroup
from .ip_space import IpSpace
from .nat_rule import NsxtNatRule
from .org import AdminOrg, Org
from .roles import GlobalRole, Role
from .tm_org import TmOrg
from .user import User
from .vdc import Vdc
from .vdc_group import VdcGroup

__all__ = [
    'AdminCatalog',
    'AdminOrg',
    'Catalog',
    'Disk',
    'GlobalRole',
    'IpSpace',
    'NsxtEdgeGateway',
    'NsxtFirewallGroup',
    'NsxtNatRule',
    'Org',
    'Role',
    'TmOrg',
    'User',
    'Vdc',
    'VdcGroup',
]
