"""
API version discovery and constraint matching
"""

import logging
import operator
import re
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from ..exceptions import UnsupportedVersionError, VCDError
from ..types.xml import SupportedVersions, VCloud, VersionInfo

logger = logging.getLogger(__name__)

# Maximum API version of each VCD release
API_VERSION_TO_VCD_VERSION = {
    "29.0": "9.0",
    "30.0": "9.1",
    "31.0": "9.5",
    "32.0": "9.7",
    "33.0": "10.0",
    "34.0": "10.1",
    "35.0": "10.2",
    "36.0": "10.3",
    "37.0": "10.4",
    "38.0": "10.5",
    "39.0": "10.6",
    "40.0": "10.7",
}

VCD_VERSION_TO_API_VERSION = {vcd: api for api, vcd in API_VERSION_TO_VCD_VERSION.items()}

_OPERATORS = {
    "=": operator.eq,
    "==": operator.eq,
    "!=": operator.ne,
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
}
_CONSTRAINT_RE = re.compile(r"^\s*(==|=|!=|>=|<=|>|<)?\s*(\d+(?:\.\d+)*)\s*$")
_DESCRIPTION_RE = re.compile(r"^\s*(\S+)\s+(.*)")
_DATE_FORMATS = (
    "%a %b %d %Y %H:%M:%S %Z",
    "%a %b %d %H:%M:%S %Z %Y",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%d %H:%M:%S",
)


def parse_version(version: str) -> Tuple[int, ...]:
    """Turn '37.0' or '10.5.1.22000' into a tuple of integers"""
    try:
        return tuple(int(part) for part in version.strip().split("."))
    except ValueError as err:
        raise VCDError(f"unable to parse version {version}: {err}") from err


def _padded(first: Sequence[int], second: Sequence[int]) -> Tuple[Tuple[int, ...], Tuple[int, ...]]:
    size = max(len(first), len(second))
    return (tuple(first) + (0,) * (size - len(first)),
            tuple(second) + (0,) * (size - len(second)))


def compare_versions(first: str, second: str) -> int:
    """Return -1, 0 or 1 as first is lower, equal or higher than second"""
    left, right = _padded(parse_version(first), parse_version(second))
    return (left > right) - (left < right)


def version_matches_constraint(version: str, constraint: str) -> bool:
    """Check a version against a constraint such as '>= 27.0, < 32.0'.

    Terms separated by commas must all hold. A term without operator
    means equality.
    """
    checked = parse_version(version)
    terms = [term for term in constraint.split(",") if term.strip()]
    if not terms:
        raise VCDError(f"unable to parse given version constraint '{constraint}'")

    for term in terms:
        match = _CONSTRAINT_RE.match(term)
        if not match:
            raise VCDError(f"unable to parse given version constraint '{constraint}'")
        op = _OPERATORS[match.group(1) or "="]
        left, right = _padded(checked, parse_version(match.group(2)))
        if not op(left, right):
            logger.debug(f"API version {version} does not satisfy constraints '{constraint}'")
            return False
    return True


def int_list_to_version(digits: Sequence[int], at_most: int) -> str:
    """Join digits with dots, replacing every digit past at_most with 0"""
    return ".".join(str(digit) if index < at_most else "0" for index, digit in enumerate(digits))


@dataclass
class VcdVersion:
    version: Tuple[int, ...]
    time: datetime

    def __str__(self) -> str:
        return ".".join(str(digit) for digit in self.version)


class VersionsMixin:
    """Version handling for Client"""

    supported_versions: Optional[List[VersionInfo]]

    def vcd_fetch_supported_versions(self) -> List[VersionInfo]:
        """Fetch /api/versions once and cache the result"""
        if self.supported_versions:
            logger.debug(f"skipping fetch of versions because {len(self.supported_versions)} are stored")
            return self.supported_versions

        result = self.execute_request(f"{self.vcd_href}/versions", "GET", "",
                                      "error fetching versions: %s", None, SupportedVersions)
        self.supported_versions = result.versions
        logger.debug(f"supported API versions : {','.join(v.version for v in self.supported_versions)}")
        return self.supported_versions

    def max_supported_version(self) -> str:
        """Return the highest API version the server lists"""
        self.vcd_fetch_supported_versions()
        versions = [info.version for info in self.supported_versions or []]
        if not versions:
            raise VCDError("could not identify supported versions")
        return max(versions, key=lambda v: _padded(parse_version(v), (0, 0, 0, 0))[0])

    def api_vcd_max_version_is(self, constraint: str) -> bool:
        """Test the server's highest API version against a constraint.

        Does not require authentication. Returns False, after logging, when
        the versions cannot be retrieved or the constraint cannot be parsed.
        """
        try:
            max_version = self.max_supported_version()
            return version_matches_constraint(max_version, constraint)
        except VCDError as err:
            logger.error(f"could not check max API version against '{constraint}': {err}")
            return False

    def api_client_version_is(self, constraint: str) -> bool:
        """Test the client's API version against a constraint"""
        try:
            return version_matches_constraint(self.api_version, constraint)
        except VCDError as err:
            logger.error(f"unable to check client API version: {err}")
            return False

    def check_supported_version_constraint(self, constraint: str) -> None:
        for info in self.supported_versions or []:
            if version_matches_constraint(info.version, constraint):
                return
        raise UnsupportedVersionError(f"version {constraint} is not supported")

    def validate_api_version(self) -> None:
        """Make sure the server lists the client's API version"""
        try:
            self.vcd_fetch_supported_versions()
        except VCDError as err:
            raise VCDError(f"could not retrieve supported versions: {err}") from err

        try:
            self.check_supported_version_constraint(f"= {self.api_version}")
        except UnsupportedVersionError as err:
            raise UnsupportedVersionError(f"API version {self.api_version} is not supported: {err}") from err

    def vcd_login_url(self) -> str:
        """Return the login URL for the client's API version"""
        self.validate_api_version()
        for info in self.supported_versions or []:
            if compare_versions(info.version, self.api_version) == 0:
                return info.login_url
        raise UnsupportedVersionError(f"could not find login URL for API version {self.api_version}")

    def open_api_is_supported(self) -> bool:
        return self.api_vcd_max_version_is(">= 31.0")

    def get_specific_api_version_on_condition(self, condition: str, wanted_version: str) -> str:
        """Return wanted_version when the server satisfies condition, else the client version"""
        if self.api_vcd_max_version_is(condition):
            return wanted_version
        return self.api_version

    def get_vcd_version(self) -> Tuple[str, datetime]:
        """Read the product version and build date from /api/admin"""
        admin = self.execute_request(f"{self.vcd_href}/admin", "GET", "",
                                     "error retrieving admin info: %s", None, VCloud)
        description = admin.description
        if not description:
            raise VCDError("no version information found")

        match = _DESCRIPTION_RE.match(description)
        if not match:
            raise VCDError(f"error getting version information from description {description}")

        version, version_date = match.group(1), match.group(2).strip()
        for date_format in _DATE_FORMATS:
            try:
                return version, datetime.strptime(version_date, date_format)
            except ValueError:
                continue
        raise VCDError(f"[version {version}] could not convert date {version_date} to formal date")

    def get_vcd_full_version(self) -> VcdVersion:
        version, version_time = self.get_vcd_version()
        digits = parse_version(version)
        if len(digits) < 4:
            raise VCDError(f"error getting version digits from version {version}")
        return VcdVersion(version=digits, time=version_time)

    def get_vcd_short_version(self) -> str:
        """Return the first three digits of the VCD version, without build"""
        try:
            full = self.get_vcd_full_version()
        except VCDError as err:
            raise VCDError(f"error getting version digits: {err}") from err
        return ".".join(str(digit) for digit in full.version[:3])

    def version_equal_or_greater(self, compare_to: str, how_many_digits: int) -> bool:
        """Compare the VCD version with compare_to on the first how_many_digits digits.

        With four digits or more the build number takes part in the comparison.
        """
        current = self.get_vcd_full_version().version
        other = parse_version(compare_to)
        if how_many_digits < 4:
            current = parse_version(int_list_to_version(current, how_many_digits))
            other = parse_version(int_list_to_version(other, how_many_digits))
        left, right = _padded(current, other)
        return left >= right
