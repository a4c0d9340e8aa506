"""
IP spaces
"""

from typing import List, Mapping, Optional

from ..api.endpoints import ENDPOINT_IP_SPACE_SUMMARIES, ENDPOINT_IP_SPACES, PATH_VERSION_1_0_0
from ..api.filters import query_parameter_filter_and
from ..api.generic import OuterEntity, one_or_error
from ..exceptions import VCDError, wrap_error
from ..types.openapi import IpSpace as IpSpaceType

_ENDPOINT = PATH_VERSION_1_0_0 + ENDPOINT_IP_SPACES
_SUMMARIES_ENDPOINT = PATH_VERSION_1_0_0 + ENDPOINT_IP_SPACE_SUMMARIES


class IpSpace(OuterEntity):
    inner_type = IpSpaceType

    @property
    def ip_space(self) -> IpSpaceType:
        return self.inner

    def update(self, config: IpSpaceType) -> "IpSpace":
        """Replace the IP space definition; the id of this IP space is kept"""
        api_version = self.client.get_open_api_highest_elevated_version(_ENDPOINT)
        config.id = self.inner.id
        url = self.client.open_api_build_endpoint(_ENDPOINT, config.id)
        try:
            updated = self.client.open_api_put_item(api_version, url, None, config, IpSpaceType)
        except VCDError as err:
            raise wrap_error(f"error updating IP Space: {err}", err) from err
        return self.wrap(updated)

    def delete(self) -> None:
        if self.inner is None or not self.inner.id:
            raise VCDError("IP Space must have ID")

        api_version = self.client.get_open_api_highest_elevated_version(_ENDPOINT)
        url = self.client.open_api_build_endpoint(_ENDPOINT, self.inner.id)
        try:
            self.client.open_api_delete_item(api_version, url)
        except VCDError as err:
            raise wrap_error(f"error deleting IP space: {err}", err) from err


def create_ip_space(client, config: IpSpaceType) -> IpSpace:
    api_version = client.get_open_api_highest_elevated_version(_ENDPOINT)
    url = client.open_api_build_endpoint(_ENDPOINT)
    return IpSpace(client, client.open_api_post_item(api_version, url, None, config, IpSpaceType))


def get_all_ip_space_summaries(client, query_parameters: Optional[Mapping[str, str]] = None) -> List[IpSpace]:
    """Return IP space summaries.

    Summaries lack some fields; use get_ip_space_by_id for the full definition.
    """
    api_version = client.get_open_api_highest_elevated_version(_SUMMARIES_ENDPOINT)
    url = client.open_api_build_endpoint(_SUMMARIES_ENDPOINT)
    summaries = client.open_api_get_all_items(api_version, url, query_parameters, IpSpaceType)
    return [IpSpace(client, summary) for summary in summaries]


def get_ip_space_by_id(client, ip_space_id: str) -> IpSpace:
    if not ip_space_id:
        raise VCDError("IP Space lookup requires ID")

    api_version = client.get_open_api_highest_elevated_version(_ENDPOINT)
    url = client.open_api_build_endpoint(_ENDPOINT, ip_space_id)
    return IpSpace(client, client.open_api_get_item(api_version, url, None, IpSpaceType))


def get_ip_space_by_name(client, name: str) -> IpSpace:
    if not name:
        raise VCDError("IP Space lookup requires name")

    try:
        found = get_all_ip_space_summaries(client, {"filter": f"name=={name}"})
    except VCDError as err:
        raise wrap_error(f"error getting IP Spaces: {err}", err) from err
    return get_ip_space_by_id(client, one_or_error("name", name, found).inner.id)


def get_ip_space_by_name_and_org_id(client, name: str, org_id: str) -> IpSpace:
    """Find a PRIVATE IP space, the only kind that belongs to an org"""
    if not name or not org_id:
        raise VCDError("IP Space lookup requires name and Org ID")

    params = query_parameter_filter_and(f"orgRef.id=={org_id}", {"filter": f"name=={name}"})
    try:
        found = get_all_ip_space_summaries(client, params)
    except VCDError as err:
        raise wrap_error(f"error getting IP Spaces: {err}", err) from err
    return get_ip_space_by_id(client, one_or_error("name", name, found).inner.id)
