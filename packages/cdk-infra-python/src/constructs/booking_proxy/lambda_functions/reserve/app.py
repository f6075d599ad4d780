import logging
import os
import re
from common.cloudbeds_client import CloudbedsClient
from common.config import get_config
from common.errors import ConfigurationError, InputError, ProviderError
from common.request_utils import get_header, http_method, nights_between, parse_body, to_num, to_str
from common.response_utils import build_response
from typing import Any


logger = logging.getLogger()
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))

STRICT_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def cors_headers(allowed_origin: str) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": allowed_origin or "*",
        "Access-Control-Allow-Methods": "POST,OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type,Authorization,X-Chatbase-Token",
    }


def missing_fields(body: dict[str, Any]) -> list[str]:
    """List the required reservation fields absent from the request body."""
    guest = body.get("guest") if isinstance(body.get("guest"), dict) else {}
    missing = [field for field in ("propertyID", "startDate", "endDate", "paymentMethod") if not body.get(field)]
    missing += [f"guest.{field}" for field in ("firstName", "lastName", "email", "country") if not guest.get(field)]
    rooms = body.get("rooms")
    if not isinstance(rooms, list) or not rooms:
        missing.append("rooms[0]")
    return missing


def build_reservation_fields(body: dict[str, Any]) -> list[tuple[str, str]]:
    """
    Translate a reservation request into Cloudbeds postReservation form fields.

    Each room contributes ``rooms[i][...]`` and ``adults[i][...]`` fields, and
    ``children[i][...]`` when it has children.

    Raises:
        InputError: If required fields are missing, dates are malformed, or a
            room has no adults
    """
    missing = missing_fields(body)
    if missing:
        raise InputError(missing_fields=missing)

    start_date = to_str(body["startDate"])
    end_date = to_str(body["endDate"])
    if not STRICT_DATE.match(start_date) or not STRICT_DATE.match(end_date):
        raise InputError("Dates must be YYYY-MM-DD.")
    if nights_between(start_date, end_date) <= 0:
        raise InputError("endDate must be after startDate.")

    guest = body["guest"]
    fields = [
        ("startDate", start_date),
        ("endDate", end_date),
        ("guestFirstName", to_str(guest["firstName"])),
        ("guestLastName", to_str(guest["lastName"])),
        ("guestCountry", to_str(guest["country"])),
    ]
    if guest.get("zip"):
        fields.append(("guestZip", to_str(guest["zip"])))
    fields.append(("guestEmail", to_str(guest["email"])))
    if guest.get("phone"):
        fields.append(("guestPhone", to_str(guest["phone"])))
    fields.append(("paymentMethod", to_str(body["paymentMethod"])))
    fields.append(("propertyID", to_str(body["propertyID"])))

    for i, room in enumerate(body["rooms"]):
        if not isinstance(room, dict):
            raise InputError(f"rooms[{i}] must be an object.")
        room_type_id = to_str(room.get("roomTypeID"))
        room_id = to_str(room.get("roomID"))
        quantity = room.get("quantity")
        fields.append((f"rooms[{i}][roomTypeID]", room_type_id))
        if room_id:
            fields.append((f"rooms[{i}][roomID]", room_id))
        fields.append((f"rooms[{i}][quantity]", to_str(1 if quantity is None else quantity)))
        if room.get("roomRateID"):
            fields.append((f"rooms[{i}][roomRateID]", to_str(room["roomRateID"])))

        adults = to_num(room.get("adults"), 0.0)
        if adults <= 0:
            raise InputError(f"rooms[{i}].adults must be a positive number (Cloudbeds requires adults[]).")
        fields.append((f"adults[{i}][roomTypeID]", room_type_id))
        if room_id:
            fields.append((f"adults[{i}][roomID]", room_id))
        fields.append((f"adults[{i}][quantity]", _count(adults)))

        children = to_num(room.get("children"), 0.0)
        if children > 0:
            fields.append((f"children[{i}][roomTypeID]", room_type_id))
            if room_id:
                fields.append((f"children[{i}][roomID]", room_id))
            fields.append((f"children[{i}][quantity]", _count(children)))

    return fields


def _count(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def handler(event, context):  # noqa: ARG001
    """
    Handler for POST /api/reserve.

    Validates a JSON reservation request and forwards it to Cloudbeds
    postReservation as multipart form data. Answers CORS preflight.

    Returns:
        {success: true, data} on success; {success: false, error} otherwise
    """
    allowed_origin = "*"
    try:
        config = get_config()
        allowed_origin = config.allowed_origin
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return build_response(500, {"success": False, "error": str(e)}, cors_headers(allowed_origin))
    except Exception:
        logger.exception("Unexpected error loading configuration")
        return build_response(
            500, {"success": False, "error": "Unexpected server error."}, cors_headers(allowed_origin)
        )

    headers = cors_headers(allowed_origin)
    method = http_method(event)
    if method == "OPTIONS":
        return {"statusCode": 204, "headers": headers, "body": ""}
    if method != "POST":
        return build_response(405, {"success": False, "error": "Use POST."}, headers)

    try:
        if "application/json" not in get_header(event, "Content-Type").lower():
            return build_response(415, {"success": False, "error": "Send JSON (application/json)."}, headers)

        body = parse_body(event)
        fields = build_reservation_fields(body)

        provider = config.registry.resolve(to_str(body["propertyID"]))
        client = CloudbedsClient(provider, timeout=config.request_timeout)
        data = client.post_reservation(fields)
        logger.info(f"Reservation created for property {body['propertyID']}")
        return build_response(200, {"success": True, "data": data}, headers)

    except InputError as e:
        return build_response(400, {"success": False, "error": e.message}, headers)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return build_response(500, {"success": False, "error": str(e)}, headers)
    except ProviderError as e:
        logger.warning(f"Cloudbeds error: {e.message}")
        return build_response(
            e.status_code or 502, {"success": False, "error": e.message, "cloudbeds": e.payload}, headers
        )
    except Exception as e:
        logger.exception("Unexpected error creating reservation")
        return build_response(500, {"success": False, "error": str(e) or "Unexpected server error."}, headers)
