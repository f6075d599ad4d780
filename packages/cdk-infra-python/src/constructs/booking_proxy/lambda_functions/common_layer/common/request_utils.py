"""
Request parsing and value normalization for the booking proxy handlers.

Handlers receive API Gateway REST proxy events. Parameters may arrive in the
query string, in a JSON body, or in a form-encoded body; the chat tool is not
consistent about which, so everything is merged into one flat dictionary and
normalized here before any upstream call is made.
"""

import base64
import json
import re
import unicodedata
from .errors import InputError
from datetime import date, datetime, timedelta, timezone
from typing import Any
from urllib.parse import parse_qsl


DATE_PREFIX = re.compile(r"^(\d{4}-\d{2}-\d{2})")
INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")
CURRENCY_CODE = re.compile(r"^[a-z]{3}$")
TRUTHY = {"1", "true", "yes", "y", "on"}


def to_str(value: Any) -> str:
    """Return the value as a stripped string, or an empty string for None."""
    if value is None:
        return ""
    return str(value).strip()


def to_int(value: Any, default: int | None = 0) -> int | None:
    """
    Parse a leading integer the lenient way the chat tool needs.

    "3", " 3 ", "3 nights" and 3.7 all give 3. Anything without a leading
    integer gives the default.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return default
        return int(value)
    match = INT_PREFIX.match(str(value))
    return int(match.group(1)) if match else default


def to_num(value: Any, default: float = 0.0) -> float:
    """Parse a decimal number, accepting a comma as the decimal separator."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(",", ".", 1)
        if not text:
            return default
        try:
            number = float(text)
        except ValueError:
            return default
    if number != number or number in (float("inf"), float("-inf")):
        return default
    return number


def to_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUTHY


def normalize_date(value: Any) -> str:
    """
    Normalize a date-ish value to YYYY-MM-DD.

    Accepts plain dates, ISO timestamps (the date part is kept as written) and
    epoch milliseconds. Returns an empty string when the value is missing or
    cannot be read as a calendar date.
    """
    if value is None or value == "" or isinstance(value, bool):
        return ""

    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc).date().isoformat()
        except (OverflowError, OSError, ValueError):
            return ""

    text = str(value).strip()
    match = DATE_PREFIX.match(text)
    if match:
        try:
            return date.fromisoformat(match.group(1)).isoformat()
        except ValueError:
            return ""

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return ""
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date().isoformat()


def normalize_currency(value: Any) -> str:
    """Return a lowercase three-letter currency code, or an empty string."""
    text = to_str(value).lower()
    return text if CURRENCY_CODE.match(text) else ""


def normalize_text(value: Any) -> str:
    """Lowercase, strip accents and collapse whitespace for fuzzy name comparison."""
    text = to_str(value).lower()
    text = unicodedata.normalize("NFD", text)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return re.sub(r"\s+", " ", text).strip()


def parse_ymd(value: str) -> date | None:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def nights_between(checkin: str, checkout: str) -> int:
    """Whole nights between two YYYY-MM-DD dates; 0 when either is unreadable."""
    start = parse_ymd(checkin)
    end = parse_ymd(checkout)
    if start is None or end is None:
        return 0
    return (end - start).days


def add_days(ymd: str, days: int) -> str:
    return (date.fromisoformat(ymd) + timedelta(days=days)).isoformat()


def http_method(event: dict[str, Any]) -> str:
    """Return the request method for REST (v1) or HTTP API (v2) proxy events."""
    method = event.get("httpMethod") or (event.get("requestContext") or {}).get("http", {}).get("method")
    return (method or "GET").upper()


def get_header(event: dict[str, Any], name: str) -> str:
    """Case-insensitive header lookup."""
    headers = event.get("headers") or {}
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value or ""
    return ""


def parse_body(event: dict[str, Any]) -> dict[str, Any]:
    """
    Decode the request body into a dictionary.

    Args:
        event: API Gateway proxy event

    Returns:
        Parsed JSON or form fields; an empty dict when there is no body

    Raises:
        InputError: If the body is not a JSON object or valid form data
    """
    body = event.get("body")
    if body is None or body == "":
        return {}
    if isinstance(body, dict):
        return body

    if event.get("isBase64Encoded"):
        try:
            body = base64.b64decode(body).decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            raise InputError("Request body could not be decoded") from e

    content_type = get_header(event, "Content-Type").lower()
    if "application/x-www-form-urlencoded" in content_type:
        return dict(parse_qsl(body, keep_blank_values=True))

    try:
        parsed = json.loads(body)
    except json.JSONDecodeError as e:
        raise InputError("Request body is not valid JSON") from e

    if not isinstance(parsed, dict):
        raise InputError("Request body must be a JSON object")
    return parsed


def get_params(event: dict[str, Any]) -> dict[str, Any]:
    """Merge query string parameters and body fields; body fields win."""
    params: dict[str, Any] = dict(event.get("queryStringParameters") or {})
    params.update(parse_body(event))
    return params


def first_value(params: dict[str, Any], *names: str) -> Any:
    """Return the first parameter among names that is present and not empty."""
    for name in names:
        value = params.get(name)
        if value is not None and value != "":
            return value
    return None


def require(**fields: Any) -> None:
    """Raise InputError listing every field whose value is empty."""
    missing = [name for name, value in fields.items() if value is None or value == ""]
    if missing:
        raise InputError(missing_fields=missing)


def parse_stay_params(params: dict[str, Any], default_adults: int = 2) -> dict[str, Any]:
    """
    Read the stay parameters most handlers share.

    Returns:
        Dictionary with property_id, checkin, checkout, adults and children.
        Dates are normalized to YYYY-MM-DD or left empty when unreadable.
    """
    return {
        "property_id": to_str(first_value(params, "propertyID", "propertyId")),
        "checkin": normalize_date(first_value(params, "startDate", "checkin", "checkInDate")),
        "checkout": normalize_date(first_value(params, "endDate", "checkout", "checkOutDate")),
        "adults": to_int(first_value(params, "adults", "numAdults"), default_adults),
        "children": to_int(first_value(params, "children", "numChildren"), 0),
    }
