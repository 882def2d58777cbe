"""
Query string helpers shared by the filter codecs.
Parses the loose values browsers send and serializes filters back into URLs.
"""

from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import urlencode, urlsplit


TRUE_VALUES = {"true", "1", "on", "yes"}
FALSE_VALUES = {"false", "0", "off", "no"}


def parse_csv(value: Optional[str]) -> List[str]:
    """
    Split a comma separated parameter, dropping blanks and duplicates.

    Args:
        value: Raw parameter value

    Returns:
        Ordered list of distinct non-empty items
    """
    if not value:
        return []
    items: List[str] = []
    for item in value.split(","):
        item = item.strip()
        if item and item not in items:
            items.append(item)
    return items


def join_csv(values: Iterable[str]) -> Optional[str]:
    """Join items into a comma separated value, None when empty."""
    values = [v for v in values if v]
    return ",".join(values) if values else None


def parse_optional_float(value: Optional[str]) -> Optional[float]:
    """Parse a number, ignoring blanks and garbage."""
    if value is None or str(value).strip() == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number


def parse_optional_int(value: Optional[str]) -> Optional[int]:
    """Parse an integer, accepting "3.0" style values."""
    number = parse_optional_float(value)
    return int(number) if number is not None else None


def parse_tristate(value: Optional[str]) -> Optional[bool]:
    """Parse "true"/"false" into a bool; anything else means "no preference"."""
    if value is None:
        return None
    lowered = str(value).strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    return None


def parse_flag(value: Optional[str]) -> Optional[bool]:
    """Parse an opt-in flag: only a truthy value turns it on."""
    return True if parse_tristate(value) else None


def format_number(value: Optional[float]) -> Optional[str]:
    """Render a number without a trailing ".0" for integral values."""
    if value is None:
        return None
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def parse_sort(
    value: Optional[str],
    allowed_fields: Sequence[str],
    default: Tuple[str, str] = ("created_at", "desc")
) -> Tuple[str, str]:
    """
    Parse a `<field>_<order>` sort key such as `created_at_desc`.

    The field itself may contain underscores, so the order is split off the end.
    Unknown fields or orders fall back to the default.

    Args:
        value: Raw sort key
        allowed_fields: Sortable field names
        default: (field, order) used when the key is missing or invalid

    Returns:
        Tuple of (sort_by, sort_order)
    """
    if not value:
        return default
    field, _, order = value.rpartition("_")
    if field in allowed_fields and order in ("asc", "desc"):
        return field, order
    return default


def format_sort(sort_by: str, sort_order: str) -> str:
    return f"{sort_by}_{sort_order}"


def build_query_string(params: Mapping[str, Any]) -> str:
    """
    Encode parameters, skipping None and empty values.

    Args:
        params: Parameter mapping; list values are encoded as repeated keys

    Returns:
        Encoded query string without the leading "?"
    """
    clean = {}
    for key, value in params.items():
        if value is None or value == "" or value == []:
            continue
        clean[key] = value
    return urlencode(clean, doseq=True)


def with_query(path: str, params: Mapping[str, Any]) -> str:
    """Append encoded parameters to a path."""
    query = build_query_string(params)
    return f"{path}?{query}" if query else path


def safe_redirect_target(value: Optional[str], default: str = "/") -> str:
    """
    Accept only local absolute paths as post-login redirect targets.

    Args:
        value: Candidate target from the `redirect` parameter
        default: Fallback path

    Returns:
        A path on this site
    """
    if not value or not value.startswith("/") or value.startswith("//"):
        return default
    parts = urlsplit(value)
    if parts.scheme or parts.netloc or "\\" in value:
        return default
    return value


def merge_repeated(params: Any, csv_keys: Iterable[str]) -> dict:
    """
    Flatten a multi-valued query (e.g. checkbox groups sent as repeated keys)
    into a plain mapping, joining repeated `csv_keys` with commas.

    Args:
        params: Starlette QueryParams or FormData
        csv_keys: Keys whose repeated values are joined

    Returns:
        Mapping of key to a single string value
    """
    csv_keys = set(csv_keys)
    merged = {}
    for key in dict.fromkeys(params.keys()):
        values = [v for v in params.getlist(key) if isinstance(v, str)]
        if key in csv_keys:
            merged[key] = join_csv(v for value in values for v in parse_csv(value)) or ""
        elif values:
            merged[key] = values[-1]
    return merged
