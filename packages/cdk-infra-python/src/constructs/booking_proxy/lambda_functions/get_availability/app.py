import logging
import os
from common.cloudbeds_client import CloudbedsClient
from common.config import get_config
from common.errors import ConfigurationError, InputError, ProviderError
from common.request_utils import get_params, parse_stay_params
from common.response_utils import build_error_response, build_response


logger = logging.getLogger()
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))


def handler(event, context):  # noqa: ARG001
    """
    Handler for GET/POST /api/get-availability.

    Passes the Cloudbeds getAvailableRoomTypes payload through unchanged,
    with the upstream status on failure.
    """
    try:
        config = get_config()
        params = get_params(event)
        stay = parse_stay_params(params)
        if not stay["checkin"] or not stay["checkout"]:
            return build_error_response(
                400,
                "startDate and endDate are required (YYYY-MM-DD or ISO).",
                extra={"received": {"startDate": params.get("startDate"), "endDate": params.get("endDate")}},
            )

        provider = config.registry.resolve(stay["property_id"] or config.default_property_id)
        client = CloudbedsClient(provider, timeout=config.request_timeout)
        _, payload = client.get_available_room_types(
            stay["checkin"], stay["checkout"], stay["adults"], stay["children"]
        )
        return build_response(200, payload)

    except InputError as e:
        return build_error_response(400, e.message)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return build_error_response(500, str(e))
    except ProviderError as e:
        logger.warning(f"Cloudbeds error: {e.message}")
        if e.payload is not None:
            return build_response(e.status_code or 502, e.payload)
        return build_error_response(e.status_code or 502, e.message)
    except Exception as e:
        logger.exception("Unexpected error fetching availability")
        return build_error_response(500, str(e))
