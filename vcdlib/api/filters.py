"""
Query parameter helpers for OpenAPI filtering and paging
"""

import re
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from requests.utils import parse_header_links

from ..exceptions import EntityNotFoundError

# Characters which FIQL filters cannot carry safely in a value
SLOW_SEARCH_CHARACTERS = (",", ";", " ", "+", "*")


def copy_or_new_url_values(params: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """Return a mutable copy of the query parameters, or a new empty dict"""
    if not params:
        return {}
    return dict(params)


def query_parameter_filter_and(filter_text: str, params: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """Add a FIQL filter to a copy of params, ANDing it with any existing filter"""
    new_params = copy_or_new_url_values(params)
    existing = new_params.get("filter", "")
    if not existing:
        new_params["filter"] = filter_text
    else:
        new_params["filter"] = f"{existing};{filter_text}"
    return new_params


def default_page_size(params: Optional[Mapping[str, str]], page_size: str) -> Dict[str, str]:
    """Set pageSize on a copy of params unless the caller already chose one"""
    new_params = copy_or_new_url_values(params)
    if "pageSize" not in new_params:
        new_params["pageSize"] = page_size
    return new_params


def should_do_slow_search(filter_key: str, filter_value: str) -> Tuple[bool, Optional[Dict[str, str]]]:
    """Decide whether a value can be matched with a server-side FIQL filter.

    Args:
        filter_key: Field name to filter on
        filter_value: Value to match exactly

    Returns:
        (True, None) when the value contains characters FIQL cannot express and
        a client-side scan is needed, otherwise (False, params) with an encoded
        filter ready for the request
    """
    if any(char in filter_value for char in SLOW_SEARCH_CHARACTERS):
        return True, None
    return False, {"filter": f"{filter_key}=={filter_value}", "filterEncoded": "true"}


def _split_links(link_header: str) -> List[Tuple[str, str]]:
    """Split a Link header into (url, params) pairs.

    URLs may carry raw ';' and ',' from FIQL filters, so each entry is cut at
    the last '>' rather than at the first ';'.
    """
    links = []
    for entry in re.split(r",\s*(?=<)", link_header.strip()):
        entry = entry.strip()
        if not entry.startswith("<"):
            continue
        url, _, link_params = entry[1:].rpartition(">")
        links.append((url, link_params))
    return links


def find_rel_link(rel: str, headers: Mapping[str, str]) -> str:
    """Return the URL of the Link header entry with the given rel.

    A rel value may hold several space-separated names, as in
    'lastPage nextPage'.

    Raises:
        EntityNotFoundError: If no link carries the rel
    """
    link_header = headers.get("Link") or headers.get("link") or ""
    for url, link_params in _split_links(link_header):
        # params only; the URL is already separated
        for link in parse_header_links(f"<>{link_params}"):
            names = link.get("rel", "").split(" ")
            if rel in names:
                return url
    raise EntityNotFoundError()


def merge_query(url: str, params: Optional[Mapping[str, Any]]) -> str:
    """Return url with params appended to any query string it already has"""
    if not params:
        return url
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend((key, str(value)) for key, value in params.items())
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))
