import logging
import os
from common.cloudbeds_client import CloudbedsClient, normalize_room_type
from common.config import get_config
from common.errors import ConfigurationError, InputError, ProviderError
from common.request_utils import get_params, http_method, nights_between, parse_stay_params, require
from common.response_utils import build_error_response, build_response, build_success_response


logger = logging.getLogger()
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))


def handler(event, context):  # noqa: ARG001
    """
    Handler for GET /api/check-availability.

    Simple property-level vacancy check: the property is available when any
    room type reports at least one free unit for the dates.

    Returns:
        {success, available, reason, details}
    """
    if http_method(event) != "GET":
        return build_error_response(405, "Use GET.")

    try:
        config = get_config()
        stay = parse_stay_params(get_params(event))
        require(startDate=stay["checkin"], endDate=stay["checkout"])
        if nights_between(stay["checkin"], stay["checkout"]) <= 0:
            raise InputError("endDate must be after startDate")

        provider = config.registry.resolve(stay["property_id"] or config.default_property_id)
        client = CloudbedsClient(provider, timeout=config.request_timeout)
        rows, payload = client.get_available_room_types(
            stay["checkin"], stay["checkout"], stay["adults"], stay["children"]
        )

        if rows is None:
            logger.warning("Availability response carried no room-type list")
            return build_success_response(
                {"available": False, "reason": "No room-types list in Cloudbeds response.", "raw": payload}
            )

        available = any(normalize_room_type(row)["available"] > 0 for row in rows)
        details = {"startDate": stay["checkin"], "endDate": stay["checkout"]}
        if stay["property_id"]:
            details["propertyID"] = stay["property_id"]

        return build_success_response(
            {
                "available": available,
                "reason": (
                    "At least one room type has availability."
                    if available
                    else "No available room types for these dates."
                ),
                "details": details,
            }
        )

    except InputError as e:
        return build_error_response(400, e.message)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return build_error_response(500, str(e))
    except ProviderError as e:
        logger.warning(f"Cloudbeds error: {e.message}")
        return build_response(
            e.status_code or 502,
            {"success": False, "available": False, "reason": e.message, "cloudbeds": e.payload},
        )
    except Exception as e:
        logger.exception("Unexpected error checking availability")
        return build_response(500, {"success": False, "available": False, "reason": str(e)})
