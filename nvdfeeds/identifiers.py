"""CVE identifier helpers.

Pure functions, no I/O: validation, normalization and year extraction for
IDs shaped like ``CVE-2024-12345``.
"""

import re
from collections.abc import Iterable

from .exceptions import InvalidIdentifierError

CVE_ID_RE = re.compile(r"^CVE-([0-9]{4})-[0-9]{4,}$", flags=re.IGNORECASE)

# Pseudo-feeds aggregating recent changes across every year.
ROLLING_FEEDS = ("CVE-Modified", "CVE-Recent")

# The first archived feed holds 1999 through 2002.
LEGACY_FEED = "CVE-2002"
LEGACY_YEARS = ("1999", "2000", "2001")


def is_cve_id(value: object) -> bool:
    """Return True if ``value`` is a string shaped like a CVE ID."""
    return isinstance(value, str) and CVE_ID_RE.fullmatch(value) is not None


def normalize_cve_id(value: object) -> str:
    """Validate a CVE ID and return it upper-cased.

    Args:
        value: Candidate ID, case-insensitive.

    Returns:
        The upper-cased ID.

    Raises:
        InvalidIdentifierError: If ``value`` is not a string or does not
            match ``CVE-YYYY-NNNN+``.
    """
    if not isinstance(value, str):
        raise InvalidIdentifierError(f"the provided argument ({value!r}) is not a String", identifier=value)
    if not CVE_ID_RE.fullmatch(value):
        raise InvalidIdentifierError(f"bad CVE name ({value})", identifier=value)
    return value.upper()


def normalize_cve_ids(values: Iterable[object]) -> list[str]:
    """Validate every ID and return them upper-cased and sorted.

    Duplicates are collapsed. A bare string is rejected so that
    ``"CVE-2010-0001"`` is never iterated character by character.
    """
    if isinstance(values, (str, bytes)):
        raise InvalidIdentifierError(f"expected a collection of CVE IDs, got {values!r}", identifier=values)
    return sorted({normalize_cve_id(v) for v in values})


def cve_year(cve_id: str) -> str:
    """Return the four-digit year embedded in a CVE ID.

    Raises:
        InvalidIdentifierError: If the ID is malformed.
    """
    return normalize_cve_id(cve_id)[4:8]


def normalize_feed_name(name: str) -> str:
    """Upper-case the ``CVE`` prefix of a feed name, preserving the rest.

    ``cve-2010`` becomes ``CVE-2010`` while ``CVE-Modified`` is untouched.
    """
    return name[:3].upper() + name[3:]


def is_rolling_feed(name: str) -> bool:
    return name in ROLLING_FEEDS
