"""
Low level helpers for the OpenAPI (cloudapi) JSON surface
"""

import json
import logging
import math
from typing import Any, List, Mapping, Optional, Tuple
from urllib.parse import urlencode

import requests
from pydantic import BaseModel, ValidationError

from ..exceptions import EntityNotFoundError, VCDError, wrap_error
from ..types.openapi import OpenApiPages
from ..util.http_logging import body_text, caller_name, process_request_output
from .filters import copy_or_new_url_values, default_page_size, find_rel_link, merge_query
from .task import Task

logger = logging.getLogger(__name__)

JSON_MIME = "application/json"
FORM_MIME = "application/x-www-form-urlencoded"
DEFAULT_OPENAPI_PAGE_SIZE = "128"


def to_json_payload(payload: Any) -> Any:
    """Convert models, and lists of them, to JSON-ready structures"""
    if isinstance(payload, BaseModel):
        return payload.to_payload() if hasattr(payload, "to_payload") else payload.model_dump(by_alias=True)
    if isinstance(payload, (list, tuple)):
        return [to_json_payload(item) for item in payload]
    return payload


class OpenApiMixin:
    """cloudapi request helpers for Client"""

    def _require_open_api(self) -> None:
        if not self.open_api_is_supported():
            raise VCDError("OpenAPI is not supported on this VCD version")

    def open_api_build_endpoint(self, *parts: str) -> str:
        """Return scheme://host/cloudapi/ followed by the joined parts"""
        return f"{self.host_url}/cloudapi/{''.join(parts)}"

    def new_open_api_request(self, api_version: str, params: Optional[Mapping[str, Any]], method: str,
                             url: str, body: Any = None,
                             additional_headers: Optional[Mapping[str, str]] = None) -> requests.Request:
        """Build a cloudapi request with JSON defaults"""
        full_url = merge_query(url, params)
        headers = self._auth_headers()
        if headers:
            headers["Accept"] = f"{JSON_MIME};version={api_version}"
        headers.update(self.custom_header)
        if additional_headers:
            headers.update(additional_headers)
        if not any(key.lower() == "content-type" for key in headers):
            headers["Content-Type"] = JSON_MIME
        self._finish_headers(headers)

        process_request_output(caller_name(), method, full_url, body_text(body), headers)
        return requests.Request(method, full_url, data=body, headers=headers)

    def _decode_json(self, resp: requests.Response, out_type: Any, action: str) -> Any:
        try:
            return self.decode_body(resp, "json", out_type)
        except (ValueError, ValidationError) as err:
            raise VCDError(f"error decoding JSON response after {action}: {err}") from err

    def _perform_post_put(self, method: str, api_version: str, url: str,
                          params: Optional[Mapping[str, Any]], payload: Any,
                          additional_headers: Optional[Mapping[str, str]] = None) -> requests.Response:
        body = None
        if payload is not None:
            body = json.dumps(to_json_payload(payload), indent=2)
        request = self.new_open_api_request(api_version, params, method, url, body, additional_headers)
        resp = self.do(request)
        try:
            return self.check_response(resp, "json")
        except VCDError as err:
            raise wrap_error(f"error in HTTP {method} request: {err}", err) from err

    def _wait_location_task(self, resp: requests.Response) -> Task:
        task_url = resp.headers.get("Location", "")
        logger.debug(f"Asynchronous task detected, tracking task with HREF: {task_url}")
        task = Task.from_href(self, task_url)
        try:
            task.wait_task_completion()
        except VCDError as err:
            raise wrap_error(f"error waiting completion of task ({task_url}): {err}", err) from err
        return task

    def open_api_get_item(self, api_version: str, url: str, params: Optional[Mapping[str, Any]] = None,
                          out_type: Any = None, additional_headers: Optional[Mapping[str, str]] = None) -> Any:
        """GET a single item; HTTP 403 becomes EntityNotFoundError"""
        item, _ = self.open_api_get_item_and_headers(api_version, url, params, out_type, additional_headers)
        return item

    def open_api_get_item_and_headers(self, api_version: str, url: str,
                                      params: Optional[Mapping[str, Any]] = None, out_type: Any = None,
                                      additional_headers: Optional[Mapping[str, str]] = None
                                      ) -> Tuple[Any, Mapping[str, str]]:
        logger.debug(f"Getting item from endpoint {url}")
        self._require_open_api()

        resp = self.do(self.new_open_api_request(api_version, params, "GET", url, None, additional_headers))
        if resp.status_code == 403:
            error = self.parse_error(resp, "json")
            raise EntityNotFoundError(str(error), code=403, details={"error": error}) from error

        try:
            self.check_response(resp, "json")
        except VCDError as err:
            raise wrap_error(f"error in HTTP GET request: {err}", err) from err

        return self._decode_json(resp, out_type, "GET"), resp.headers

    def open_api_get_all_items(self, api_version: str, url: str, params: Optional[Mapping[str, Any]] = None,
                               out_type: Any = None,
                               additional_headers: Optional[Mapping[str, str]] = None) -> List[Any]:
        """GET every page of a collection and return all values.

        Args:
            api_version: Version for the Accept header
            url: Collection endpoint
            params: Query parameters; pageSize defaults to 128
            out_type: pydantic model for each value, raw dicts when None
            additional_headers: Extra request headers

        Returns:
            All values across pages, in server order
        """
        logger.debug(f"Getting all items from endpoint {url}")
        self._require_open_api()

        new_params = default_page_size(params, DEFAULT_OPENAPI_PAGE_SIZE)
        try:
            values = self._open_api_get_all_pages(api_version, url, new_params, [], additional_headers)
        except VCDError as err:
            raise wrap_error(f"error getting all pages for endpoint {url}: {err}", err) from err

        if out_type is None or out_type is dict:
            return values
        try:
            return [out_type.model_validate(value) for value in values]
        except ValidationError as err:
            raise VCDError(f"error decoding values into type: {err}") from err

    def _open_api_get_all_pages(self, api_version: str, url: str, params: Mapping[str, Any],
                                accumulated: List[Any],
                                additional_headers: Optional[Mapping[str, str]]) -> List[Any]:
        resp = self.do(self.new_open_api_request(api_version, params, "GET", url, None, additional_headers))
        try:
            self.check_response(resp, "json")
        except VCDError as err:
            raise wrap_error(f"error in HTTP GET request: {err}", err) from err

        try:
            pages = OpenApiPages.model_validate(resp.json())
        except (ValueError, ValidationError) as err:
            raise VCDError(f"error decoding JSON page response: {err}") from err
        accumulated.extend(pages.values)

        try:
            next_page = find_rel_link("nextPage", resp.headers)
        except EntityNotFoundError:
            next_page = None

        if next_page:
            try:
                return self._open_api_get_all_pages(api_version, next_page, {}, accumulated, additional_headers)
            except VCDError as err:
                raise wrap_error(f"got error on page {pages.page}: {err}", err) from err

        # Some endpoints omit the nextPage link even when more pages exist
        if pages.page_size and pages.page:
            page_count = math.ceil(pages.result_total / pages.page_size)
            if pages.page < page_count:
                next_params = copy_or_new_url_values(params)
                next_params["page"] = str(pages.page + 1)
                try:
                    return self._open_api_get_all_pages(api_version, url, next_params, accumulated,
                                                        additional_headers)
                except VCDError as err:
                    raise wrap_error(f"got error on page {pages.page + 1}: {err}", err) from err

        return accumulated

    def open_api_post_item_sync(self, api_version: str, url: str, params: Optional[Mapping[str, Any]],
                                payload: Any, out_type: Any = None) -> Any:
        """POST expecting an immediate 200 or 201 answer"""
        self._require_open_api()
        resp = self._perform_post_put("POST", api_version, url, params, payload)
        if resp.status_code not in (200, 201):
            logger.debug(f"Synchronous task expected (HTTP status code 200 or 201). Got {resp.status_code}")
            raise VCDError(f"POST request expected sync task (HTTP response 200 or 201), got {resp.status_code}")
        return self._decode_json(resp, out_type, "POST")

    def open_api_post_item_async(self, api_version: str, url: str, params: Optional[Mapping[str, Any]],
                                 payload: Any, additional_headers: Optional[Mapping[str, str]] = None) -> Task:
        """POST expecting 202 and return the Task named by the Location header"""
        self._require_open_api()
        resp = self._perform_post_put("POST", api_version, url, params, payload, additional_headers)
        if resp.status_code != 202:
            raise VCDError(f"POST request expected async task (HTTP response 202), got {resp.status_code}")
        task_url = resp.headers.get("Location", "")
        if not task_url:
            raise VCDError("unexpected empty task HREF")
        return Task.from_href(self, task_url)

    def open_api_post_item(self, api_version: str, url: str, params: Optional[Mapping[str, Any]],
                           payload: Any, out_type: Any = None,
                           additional_headers: Optional[Mapping[str, str]] = None) -> Any:
        item, _ = self.open_api_post_item_and_get_headers(api_version, url, params, payload, out_type,
                                                          additional_headers)
        return item

    def open_api_post_item_and_get_headers(self, api_version: str, url: str,
                                           params: Optional[Mapping[str, Any]], payload: Any,
                                           out_type: Any = None,
                                           additional_headers: Optional[Mapping[str, str]] = None
                                           ) -> Tuple[Any, Mapping[str, str]]:
        """POST an item and return the created entity.

        A 202 answer is followed by waiting for the task and fetching the
        entity the task owns; 200 and 201 answers are decoded directly.
        """
        logger.debug(f"Posting item to endpoint {url}")
        self._require_open_api()
        resp = self._perform_post_put("POST", api_version, url, params, payload, additional_headers)

        result = None
        if resp.status_code == 202:
            task = self._wait_location_task(resp)
            owner_id = task.task.owner.id if task.task.owner else ""
            try:
                result = self.open_api_get_item(api_version, url + owner_id, None, out_type, additional_headers)
            except VCDError as err:
                raise wrap_error(f"error retrieving item after creation: {err}", err) from err
        elif resp.status_code in (200, 201):
            result = self._decode_json(resp, out_type, "POST")
        return result, resp.headers

    def open_api_post_url_encoded(self, api_version: str, url: str, params: Optional[Mapping[str, Any]],
                                  payload: Mapping[str, str], out_type: Any = None,
                                  additional_headers: Optional[Mapping[str, str]] = None) -> Any:
        """POST a form-encoded body"""
        headers = dict(additional_headers or {})
        headers["Content-Type"] = FORM_MIME
        request = self.new_open_api_request(api_version, params, "POST", url, urlencode(payload), headers)
        resp = self.do(request)
        try:
            self.check_response(resp, "json")
        except VCDError as err:
            raise wrap_error(f"error in HTTP POST request: {err}", err) from err
        if resp.status_code != 200:
            logger.debug(f"HTTP status code 200 expected. Got {resp.status_code}")
        return self._decode_json(resp, out_type, "POST")

    def open_api_put_item_sync(self, api_version: str, url: str, params: Optional[Mapping[str, Any]],
                               payload: Any, out_type: Any = None,
                               additional_headers: Optional[Mapping[str, str]] = None) -> Any:
        self._require_open_api()
        resp = self._perform_post_put("PUT", api_version, url, params, payload, additional_headers)
        if resp.status_code != 201:
            logger.debug(f"Synchronous task expected (HTTP status code 201). Got {resp.status_code}")
        return self._decode_json(resp, out_type, "PUT")

    def open_api_put_item_async(self, api_version: str, url: str, params: Optional[Mapping[str, Any]],
                                payload: Any, additional_headers: Optional[Mapping[str, str]] = None) -> Task:
        self._require_open_api()
        resp = self._perform_post_put("PUT", api_version, url, params, payload, additional_headers)
        if resp.status_code != 202:
            raise VCDError(f"PUT request expected async task (HTTP response 202), got {resp.status_code}")
        task_url = resp.headers.get("Location", "")
        if not task_url:
            raise VCDError("unexpected empty task HREF")
        return Task.from_href(self, task_url)

    def open_api_put_item(self, api_version: str, url: str, params: Optional[Mapping[str, Any]],
                          payload: Any, out_type: Any = None,
                          additional_headers: Optional[Mapping[str, str]] = None) -> Any:
        item, _ = self.open_api_put_item_and_get_headers(api_version, url, params, payload, out_type,
                                                         additional_headers)
        return item

    def open_api_put_item_and_get_headers(self, api_version: str, url: str,
                                          params: Optional[Mapping[str, Any]], payload: Any,
                                          out_type: Any = None,
                                          additional_headers: Optional[Mapping[str, str]] = None
                                          ) -> Tuple[Any, Mapping[str, str]]:
        """PUT an item and return its new state, waiting on 202 tasks"""
        logger.debug(f"Putting item to endpoint {url}")
        self._require_open_api()
        resp = self._perform_post_put("PUT", api_version, url, params, payload, additional_headers)

        result = None
        if resp.status_code == 202:
            self._wait_location_task(resp)
            try:
                result = self.open_api_get_item(api_version, url, None, out_type, additional_headers)
            except VCDError as err:
                raise wrap_error(f"error retrieving item after updating: {err}", err) from err
        elif resp.status_code == 200:
            result = self._decode_json(resp, out_type, "PUT")
        return result, resp.headers

    def open_api_delete_item(self, api_version: str, url: str, params: Optional[Mapping[str, Any]] = None,
                             additional_headers: Optional[Mapping[str, str]] = None) -> None:
        """DELETE an item, waiting for the task when the server answers 202"""
        logger.debug(f"Deleting item at endpoint {url}")
        self._require_open_api()

        resp = self.do(self.new_open_api_request(api_version, params, "DELETE", url, None, additional_headers))
        try:
            self.check_response(resp, "json")
        except VCDError as err:
            raise wrap_error(f"error in HTTP DELETE request: {err}", err) from err

        if resp.status_code == 202:
            self._wait_location_task(resp)

