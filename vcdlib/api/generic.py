"""
Generic CRUD helpers shared by the OpenAPI resources
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Type

from ..exceptions import EntityNotFoundError, VCDError, wrap_error

logger = logging.getLogger(__name__)


@dataclass
class CrudConfig:
    """Settings for one generic CRUD call.

    entity_label and endpoint are mandatory. endpoint_params first fill the
    '%s' placeholders of endpoint in order and are appended to it afterwards.
    """
    entity_label: str = ""
    endpoint: str = ""
    endpoint_params: Optional[List[str]] = None
    query_parameters: Optional[Dict[str, str]] = None
    additional_header: Optional[Dict[str, str]] = None

    def validate(self) -> None:
        # Missing label or endpoint is a bug in the calling resource, not user input
        if not self.entity_label:
            raise ValueError("'entity_label' must always be specified when initializing CrudConfig")
        if not self.endpoint:
            raise ValueError("'endpoint' must always be specified when initializing CrudConfig")

        for value in self.endpoint_params or []:
            if not value:
                raise VCDError(f'endpointParams were specified but they contain empty value "" '
                               f'for {self.entity_label}. {self.endpoint_params!r}')


def url_from_endpoint(endpoint: str, endpoint_params: Optional[Sequence[str]]) -> str:
    """Fill the '%s' placeholders of endpoint, then append leftover params"""
    params = list(endpoint_params or [])
    placeholders = endpoint.count("%s")
    if len(params) < placeholders:
        raise VCDError(f"endpoint '{endpoint}' has unpopulated placeholders")

    for value in params:
        if placeholders > 0:
            endpoint = endpoint.replace("%s", value, 1)
            placeholders -= 1
            continue
        endpoint += value
    return endpoint


def _prepare(client, config: CrudConfig, action: str) -> Tuple[str, str]:
    """Validate config and return (api_version, url) for it"""
    config.validate()

    try:
        api_version = client.get_open_api_highest_elevated_version(config.endpoint)
    except VCDError as err:
        raise wrap_error(f"error getting API version for {action}entity '{config.entity_label}': {err}",
                         err) from err

    try:
        exact_endpoint = url_from_endpoint(config.endpoint, config.endpoint_params)
    except VCDError as err:
        raise VCDError(f"error building endpoint '{config.endpoint}' with given params "
                       f"'{','.join(config.endpoint_params or [])}' for entity "
                       f"'{config.entity_label}': {err}") from err

    return api_version, client.open_api_build_endpoint(exact_endpoint)


def create_inner_entity(client, config: CrudConfig, inner_config: Any, out_type: Optional[Type] = None) -> Any:
    """POST inner_config and return the created entity as out_type.

    out_type defaults to the type of inner_config.
    """
    api_version, url = _prepare(client, config, "creating ")
    try:
        return client.open_api_post_item(api_version, url, config.query_parameters, inner_config,
                                         out_type or type(inner_config), config.additional_header)
    except VCDError as err:
        raise wrap_error(f"error creating entity of type '{config.entity_label}': {err}", err) from err


def update_inner_entity(client, config: CrudConfig, inner_config: Any, out_type: Optional[Type] = None) -> Any:
    entity, _ = update_inner_entity_with_headers(client, config, inner_config, out_type)
    return entity


def update_inner_entity_with_headers(client, config: CrudConfig, inner_config: Any,
                                     out_type: Optional[Type] = None) -> Tuple[Any, Mapping[str, str]]:
    api_version, url = _prepare(client, config, "updating ")
    try:
        return client.open_api_put_item_and_get_headers(api_version, url, config.query_parameters,
                                                        inner_config, out_type or type(inner_config),
                                                        config.additional_header)
    except VCDError as err:
        raise wrap_error(f"error updating entity of type '{config.entity_label}': {err}", err) from err


def get_inner_entity(client, config: CrudConfig, out_type: Optional[Type] = None) -> Any:
    entity, _ = get_inner_entity_with_headers(client, config, out_type)
    return entity


def get_inner_entity_with_headers(client, config: CrudConfig,
                                  out_type: Optional[Type] = None) -> Tuple[Any, Mapping[str, str]]:
    api_version, url = _prepare(client, config, "")
    try:
        return client.open_api_get_item_and_headers(api_version, url, config.query_parameters, out_type,
                                                    config.additional_header)
    except VCDError as err:
        raise wrap_error(f"error retrieving entity of type '{config.entity_label}': {err}", err) from err


def get_all_inner_entities(client, config: CrudConfig, out_type: Optional[Type] = None) -> List[Any]:
    api_version, url = _prepare(client, config, "")
    try:
        return client.open_api_get_all_items(api_version, url, config.query_parameters, out_type,
                                             config.additional_header)
    except VCDError as err:
        raise wrap_error(f"error retrieving all entities of type '{config.entity_label}': {err}",
                         err) from err


def delete_entity_by_id(client, config: CrudConfig) -> None:
    """DELETE the entity addressed by config"""
    api_version, url = _prepare(client, config, "deleting ")
    try:
        client.open_api_delete_item(api_version, url, config.query_parameters, config.additional_header)
    except VCDError as err:
        raise wrap_error(f"error deleting {config.entity_label}: {err}", err) from err


class OuterEntity:
    """Base for resource objects wrapping a single OpenAPI payload.

    Subclasses set inner_type to their pydantic model. wrap() returns a new
    object of the same class bound to the same client.
    """
    inner_type: Type = dict

    def __init__(self, client, inner: Any = None):
        self.client = client
        self.inner = inner

    def wrap(self, inner: Any) -> "OuterEntity":
        return type(self)(self.client, inner)

    def __repr__(self) -> str:
        name = getattr(self.inner, "name", None)
        return f"{type(self).__name__}(name={name!r})"


def create_outer_entity(client, outer: OuterEntity, config: CrudConfig, inner_config: Any) -> OuterEntity:
    if inner_config is None:
        raise VCDError(f"entity config '{config.entity_label}' cannot be empty for create operation")
    return outer.wrap(create_inner_entity(client, config, inner_config, outer.inner_type))


def update_outer_entity(client, outer: OuterEntity, config: CrudConfig, inner_config: Any) -> OuterEntity:
    if inner_config is None:
        raise VCDError(f"entity config '{config.entity_label}' cannot be empty for update operation")
    return outer.wrap(update_inner_entity(client, config, inner_config, outer.inner_type))


def get_outer_entity(client, outer: OuterEntity, config: CrudConfig) -> OuterEntity:
    return outer.wrap(get_inner_entity(client, config, outer.inner_type))


def get_all_outer_entities(client, outer: OuterEntity, config: CrudConfig) -> List[OuterEntity]:
    return [outer.wrap(inner) for inner in get_all_inner_entities(client, config, outer.inner_type)]


def one_or_error(key: str, name: str, items: Sequence[Any]) -> Any:
    """Return the only item, raising when there are none or several"""
    if len(items) > 1:
        raise VCDError(f"got more than one entity by {key} '{name}' {len(items)}")
    if not items:
        raise EntityNotFoundError(f"got zero entities by {key} '{name}'")
    return items[0]


def generic_get_single_bare_entity(client, endpoint: str, exact_endpoint: str,
                                   query_parameters: Optional[Mapping[str, str]],
                                   entity_label: str, out_type: Optional[Type] = None) -> Any:
    """GET one entity from exact_endpoint, negotiating the version on endpoint"""
    try:
        api_version = client.get_open_api_highest_elevated_version(endpoint)
    except VCDError as err:
        raise wrap_error(f"error getting API version for entity '{entity_label}': {err}", err) from err

    url = client.open_api_build_endpoint(exact_endpoint)
    try:
        return client.open_api_get_item(api_version, url, query_parameters, out_type)
    except VCDError as err:
        raise wrap_error(f"error retrieving entity of type '{entity_label}': {err}", err) from err


def generic_get_all_bare_filtered_entities(client, endpoint: str, exact_endpoint: str,
                                           query_parameters: Optional[Mapping[str, str]],
                                           entity_label: str, out_type: Optional[Type] = None) -> List[Any]:
    try:
        api_version = client.get_open_api_highest_elevated_version(endpoint)
    except VCDError as err:
        raise wrap_error(f"error getting API version for entity '{entity_label}': {err}", err) from err

    url = client.open_api_build_endpoint(exact_endpoint)
    try:
        return client.open_api_get_all_items(api_version, url, query_parameters, out_type)
    except VCDError as err:
        raise wrap_error(f"error retrieving all entities of type '{entity_label}': {err}", err) from err


def generic_local_filter(entities: Sequence[Any], field_name: str, expected_value: str,
                         entity_label: str) -> List[Any]:
    """Keep the entities whose string attribute field_name equals expected_value.

    Used where the API cannot filter on the field. Models are checked for
    the field by their declared fields, unset optional strings never match.
    """
    if not entities:
        raise VCDError("zero entities provided for filtering")

    filtered = []
    for entity in entities:
        if entity is None:
            raise VCDError(f"given entity for {entity_label} is None")

        fields = getattr(type(entity), "model_fields", None)
        if fields is not None and field_name not in fields:
            raise VCDError(f"the struct for {entity_label} does not have the field '{field_name}'")
        if fields is None and not hasattr(entity, field_name):
            raise VCDError(f"the struct for {entity_label} does not have the field '{field_name}'")

        value = getattr(entity, field_name, None)
        if value is not None and not isinstance(value, str):
            raise VCDError(f"field '{field_name}' is not string type, it has type '{type(value).__name__}'")

        if value == expected_value:
            filtered.append(entity)
    return filtered


def generic_local_filter_one_or_error(entities: Sequence[Any], field_name: str, expected_value: str,
                                      entity_label: str) -> Any:
    if not field_name or not expected_value:
        raise VCDError(f"expected field name and value must be specified to filter {entity_label}")
    return one_or_error(field_name, expected_value,
                        generic_local_filter(entities, field_name, expected_value, entity_label))
