"""
Cloudbeds API client.

Each method performs one HTTP call (the availability probe is a short fixed
sequence) and either returns parsed data or raises ProviderError carrying the
upstream message. There are no retries; timeouts are whatever the configured
request timeout allows.
"""

import logging
import requests
from .config import ProviderConfig
from .errors import ProviderError
from .request_utils import to_int, to_str
from .stay_rules import NightlyRate
from typing import Any


# Configure logging
logger = logging.getLogger(__name__)

# Accounts differ in which API host, version and route casing they answer on.
AVAILABILITY_BASES = (
    "https://api.cloudbeds.com/api/v1.3",
    "https://hotels.cloudbeds.com/api/v1.3",
    "https://api.cloudbeds.com/api/v1.2",
    "https://hotels.cloudbeds.com/api/v1.2",
)
AVAILABILITY_ROUTES = ("getAvailableRoomTypes", "getavailableroomtypes")
ROOM_TYPE_LIST_KEYS = ("data", "roomTypes", "availableRoomTypes", "rooms")
AVAILABLE_COUNT_KEYS = ("availableRooms", "availability", "remainingRooms", "roomsAvailable", "available", "qty")
MAX_GUEST_KEYS = ("maxGuests", "occupancy", "max_occupancy")


def find_room_types(payload: Any) -> list[dict[str, Any]] | None:
    """Return the room-type list from an availability payload, wherever Cloudbeds put it."""
    if not isinstance(payload, dict):
        return None
    for key in ROOM_TYPE_LIST_KEYS:
        value = payload.get(key)
        if isinstance(value, list):
            return value
    return None


def _first_present(row: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if row.get(key) is not None:
            return row[key]
    return None


def normalize_room_type(row: Any) -> dict[str, Any]:
    """
    Reduce an availability row to roomTypeID, roomTypeName, available and maxGuests.

    maxGuests is None when the row does not report an occupancy limit.
    """
    if not isinstance(row, dict):
        row = {}
    return {
        "roomTypeID": to_str(row.get("roomTypeID") or row.get("room_type_id") or row.get("id")),
        "roomTypeName": to_str(row.get("roomTypeName") or row.get("name")),
        "available": to_int(_first_present(row, AVAILABLE_COUNT_KEYS), 0),
        "maxGuests": to_int(_first_present(row, MAX_GUEST_KEYS), None),
    }


def upstream_message(payload: Any, default: str) -> str:
    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("error")
        if message:
            return str(message)
    return default


class CloudbedsClient:
    """Client for one Cloudbeds provider (credential + API base + property)."""

    def __init__(self, provider: ProviderConfig, timeout: float = 8.0, session: requests.Session | None = None):
        self.provider = provider
        self.timeout = timeout
        self.session = session or requests.Session()

    def _url(self, route: str, base: str | None = None) -> str:
        return f"{(base or self.provider.api_base).rstrip('/')}/{route}"

    def _stay_params(self, checkin: str, checkout: str, adults: int, children: int) -> dict[str, str]:
        params = {
            "startDate": checkin,
            "endDate": checkout,
            "adults": str(adults),
            "children": str(children),
        }
        if self.provider.property_id:
            params = {"propertyID": self.provider.property_id, **params}
        return params

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        headers = {"Accept": "application/json", **self.provider.auth_headers(), **kwargs.pop("headers", {})}
        logger.info(f"Cloudbeds {method} {url} ({self.provider.name})")
        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout as e:
            raise ProviderError(f"Cloudbeds request timed out after {self.timeout} seconds", endpoint=url) from e
        except requests.exceptions.ConnectionError as e:
            raise ProviderError("Failed to connect to Cloudbeds", endpoint=url) from e
        except requests.exceptions.RequestException as e:
            raise ProviderError(f"Cloudbeds request failed: {str(e)}", endpoint=url) from e
        logger.info(f"Cloudbeds response status: {response.status_code}")
        return response

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return {"raw": response.text}

    def _request(self, method: str, route: str, base: str | None = None, **kwargs) -> Any:
        """
        Call a Cloudbeds route and return the decoded JSON payload.

        Raises:
            ProviderError: On network failure, a non-2xx status, or ``success: false``
        """
        url = self._url(route, base)
        response = self._send(method, url, **kwargs)
        payload = self._decode(response)
        self._check(response.status_code, payload, url)
        return payload

    @staticmethod
    def _check(status_code: int, payload: Any, endpoint: str) -> None:
        failed_flag = isinstance(payload, dict) and payload.get("success") is False
        if 200 <= status_code < 300 and not failed_flag:
            return
        message = upstream_message(payload, f"Cloudbeds HTTP {status_code}")
        raise ProviderError(message, status_code=status_code, payload=payload, endpoint=endpoint)

    def get_rate_plans(
        self, checkin: str, checkout: str, adults: int = 2, children: int = 0, promo_code: str = ""
    ) -> list[dict[str, Any]]:
        """
        List rate plans with nightly detail for a stay.

        Args:
            checkin: Check-in date (YYYY-MM-DD)
            checkout: Check-out date (YYYY-MM-DD)
            adults: Number of adults
            children: Number of children
            promo_code: Optional promotion code

        Returns:
            The plans under ``data`` (empty list when there are none)
        """
        params = self._stay_params(checkin, checkout, adults, children)
        params["detailedRates"] = "true"
        if promo_code:
            params["promoCode"] = promo_code
        payload = self._request("GET", "getRatePlans", params=params)
        plans = payload.get("data") if isinstance(payload, dict) else None
        return [plan for plan in plans if isinstance(plan, dict)] if isinstance(plans, list) else []

    def fetch_nightly_rates(
        self, checkin: str, checkout: str, adults: int = 2, children: int = 0
    ) -> list[NightlyRate]:
        """Return the nightly records of the first rate plan for a stay; unreadable entries are dropped."""
        plans = self.get_rate_plans(checkin, checkout, adults, children)
        if not plans:
            return []
        return plan_nightly_rates(plans[0])

    def get_available_room_types(
        self, checkin: str, checkout: str, adults: int = 2, children: int = 0, room_type_id: str = ""
    ) -> tuple[list[dict[str, Any]] | None, Any]:
        """
        List available room types for a stay.

        Returns:
            Tuple of (room-type rows or None when no list was found, raw payload)
        """
        params = self._stay_params(checkin, checkout, adults, children)
        if room_type_id:
            params["roomTypeID"] = room_type_id
        payload = self._request("GET", "getAvailableRoomTypes", params=params)
        return find_room_types(payload), payload

    def probe_available_room_types(
        self, checkin: str, checkout: str, adults: int = 2, children: int = 0, room_type_id: str = ""
    ) -> tuple[list[dict[str, Any]] | None, Any, str]:
        """
        Find the availability route this account answers on and query it.

        Tries the configured base first, then the known host/version variants,
        each with both route spellings, and uses the first answer that is not
        a 404.

        Returns:
            Tuple of (room-type rows or None, raw payload, endpoint used)

        Raises:
            ProviderError: If every variant answers 404, or the answering variant fails
        """
        params = self._stay_params(checkin, checkout, adults, children)
        params.update({"checkInDate": checkin, "checkOutDate": checkout})
        if room_type_id:
            params["roomTypeID"] = room_type_id

        bases = [self.provider.api_base] + [b for b in AVAILABILITY_BASES if b != self.provider.api_base]
        for base in bases:
            for route in AVAILABILITY_ROUTES:
                url = self._url(route, base)
                response = self._send("GET", url, params=params)
                if response.status_code == 404:
                    continue
                payload = self._decode(response)
                self._check(response.status_code, payload, url)
                return find_room_types(payload), payload, url

        raise ProviderError("Availability endpoint not found (404 on all variants).", status_code=502)

    def get_reservations(self, filters: dict[str, str]) -> Any:
        """List reservations matching the given Cloudbeds query filters."""
        params = {key: value for key, value in filters.items() if value}
        return self._request("GET", "getReservations", params=params)

    def post_reservation(self, fields: list[tuple[str, str]]) -> Any:
        """
        Create a reservation.

        Args:
            fields: Ordered form fields; repeated bracketed keys such as
                ``rooms[0][roomTypeID]`` are sent as multipart/form-data

        Returns:
            Decoded Cloudbeds payload
        """
        files = [(name, (None, value)) for name, value in fields]
        return self._request("POST", "postReservation", files=files)


def plan_nightly_rates(plan: dict[str, Any]) -> list[NightlyRate]:
    """Parse a plan's ``roomRateDetailed`` entries, skipping unreadable ones."""
    records = []
    for entry in plan.get("roomRateDetailed") or []:
        try:
            records.append(NightlyRate.from_dict(entry))
        except (AttributeError, TypeError, ValueError):
            logger.warning(f"Skipping unreadable nightly rate entry: {entry!r}")
    return records
