"""
Tenant Manager organizations
"""

from typing import List, Mapping, Optional

from ..api.endpoints import ENDPOINT_ORGS, PATH_VERSION_1_0_0
from ..api.generic import (
    CrudConfig,
    OuterEntity,
    create_outer_entity,
    delete_entity_by_id,
    get_all_outer_entities,
    get_outer_entity,
    one_or_error,
    update_outer_entity,
)
from ..exceptions import VCDError
from ..types.openapi import TmOrg as TmOrgType

LABEL_ORGANIZATION = "Organization"


def _config(*endpoint_params: str, query_parameters: Optional[Mapping[str, str]] = None) -> CrudConfig:
    return CrudConfig(entity_label=LABEL_ORGANIZATION, endpoint=PATH_VERSION_1_0_0 + ENDPOINT_ORGS,
                      endpoint_params=list(endpoint_params) or None,
                      query_parameters=dict(query_parameters) if query_parameters else None)


class TmOrg(OuterEntity):
    inner_type = TmOrgType

    @property
    def tm_org(self) -> TmOrgType:
        return self.inner

    def update(self, config: TmOrgType) -> "TmOrg":
        return update_outer_entity(self.client, self, _config(self.inner.id), config)

    def delete(self) -> None:
        delete_entity_by_id(self.client, _config(self.inner.id))

    def disable(self) -> None:
        """Shortcut for an update with is_enabled turned off"""
        self.inner = self.update(self.inner.model_copy(update={"is_enabled": False})).inner


def create_tm_org(client, config: TmOrgType) -> TmOrg:
    return create_outer_entity(client, TmOrg(client), _config(), config)


def get_all_tm_orgs(client, query_parameters: Optional[Mapping[str, str]] = None) -> List[TmOrg]:
    return get_all_outer_entities(client, TmOrg(client), _config(query_parameters=query_parameters))


def get_tm_org_by_id(client, org_id: str) -> TmOrg:
    return get_outer_entity(client, TmOrg(client), _config(org_id))


def get_tm_org_by_name(client, name: str) -> TmOrg:
    """Find the organization by name, then read it again by id for the full payload"""
    if not name:
        raise VCDError(f"{LABEL_ORGANIZATION} lookup requires name")

    found = get_all_tm_orgs(client, {"filter": f"name=={name}"})
    single = one_or_error("name", name, found)
    return get_tm_org_by_id(client, single.inner.id)
