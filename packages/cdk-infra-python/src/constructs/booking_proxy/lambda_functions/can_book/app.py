import logging
import os
from common.cloudbeds_client import CloudbedsClient, normalize_room_type
from common.config import get_config
from common.errors import ConfigurationError, InputError, ProviderError
from common.request_utils import (
    first_value,
    get_params,
    http_method,
    nights_between,
    parse_stay_params,
    require,
    to_int,
    to_str,
)
from common.response_utils import build_error_response, build_success_response
from typing import Any


logger = logging.getLogger()
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))


def is_bookable(room_type: dict[str, Any], room_type_id: str, quantity: int, party: int) -> bool:
    """
    A room type can take the booking when it is the requested type (if any),
    has enough free units, and fits the party when it reports a guest limit.
    """
    if room_type_id and room_type["roomTypeID"] != room_type_id:
        return False
    if room_type["available"] < quantity:
        return False
    max_guests = room_type["maxGuests"]
    if max_guests is not None and max_guests * quantity < party:
        return False
    return True


def decide(rows: list[Any], room_type_id: str, quantity: int, party: int) -> dict[str, Any]:
    """Return the canBook verdict body for a list of availability rows."""
    room_types = [normalize_room_type(row) for row in rows]
    bookable = [room for room in room_types if is_bookable(room, room_type_id, quantity, party)]

    if bookable:
        reason = f"{len(bookable)} room type(s) can take {quantity} room(s) for {party} guest(s)."
    elif room_type_id and not any(room["roomTypeID"] == room_type_id for room in room_types):
        reason = f"Room type {room_type_id} is not available for these dates."
    else:
        reason = "No room type has enough availability for this party."

    return {"canBook": bool(bookable), "reason": reason, "roomTypes": bookable or room_types}


def handler(event, context):  # noqa: ARG001
    """
    Handler for GET /api/can-book.

    Answers whether a party can book ``quantity`` rooms (optionally of one room
    type) at a property for the dates, probing the availability routes the
    account answers on.

    Returns:
        {success, canBook, reason, roomTypes}
    """
    if http_method(event) != "GET":
        return build_error_response(405, "Use GET.")

    try:
        config = get_config()
        params = get_params(event)
        stay = parse_stay_params(params)
        require(propertyID=stay["property_id"], startDate=stay["checkin"], endDate=stay["checkout"])
        if nights_between(stay["checkin"], stay["checkout"]) <= 0:
            raise InputError("endDate must be after startDate.")

        room_type_id = to_str(first_value(params, "roomTypeID", "roomTypeId"))
        quantity = max(to_int(params.get("quantity"), 1), 1)

        provider = config.registry.resolve(stay["property_id"])
        client = CloudbedsClient(provider, timeout=config.request_timeout)
        rows, payload, endpoint = client.probe_available_room_types(
            stay["checkin"], stay["checkout"], stay["adults"], stay["children"], room_type_id
        )
        logger.info(f"Availability answered on {endpoint}")

        if rows is None:
            return build_success_response(
                {"canBook": False, "reason": "Could not read availability list from Cloudbeds.", "raw": payload}
            )

        return build_success_response(decide(rows, room_type_id, quantity, stay["adults"] + stay["children"]))

    except InputError as e:
        return build_error_response(400, e.message)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return build_error_response(500, str(e))
    except ProviderError as e:
        logger.warning(f"Cloudbeds error: {e.message}")
        return build_error_response(e.status_code or 502, e.message, extra={"cloudbeds": e.payload})
    except Exception as e:
        logger.exception("Unexpected error checking bookability")
        return build_error_response(500, str(e))
