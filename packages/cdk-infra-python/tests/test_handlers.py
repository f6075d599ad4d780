"""Tests for the Lambda handlers."""

import pytest
from common.errors import ConfigurationError, ProviderError
from dataclasses import replace
from unittest.mock import MagicMock


STAY = {"propertyID": "111", "startDate": "2025-10-17", "endDate": "2025-10-19"}


@pytest.fixture
def setup_handler(load_handler, app_config, monkeypatch):
    """
    Load a handler with the test config and a mock Cloudbeds client.

    Returns (module, client) where client is the mock CloudbedsClient instance.
    """

    def _setup(name: str, config=app_config):
        module = load_handler(name)
        monkeypatch.setattr(module, "get_config", lambda: config)
        client_class = MagicMock()
        if hasattr(module, "CloudbedsClient"):
            monkeypatch.setattr(module, "CloudbedsClient", client_class)
        return module, client_class.return_value

    return _setup


# =============================================================================
# get_reservation
# =============================================================================


class TestGetReservation:
    def test_valid_stay(self, setup_handler, make_event, make_plan, make_nights, body_of):
        module, client = setup_handler("get_reservation")
        client.get_rate_plans.return_value = [make_plan(nights=make_nights("2025-10-17", 2, minLos=2))]

        response = module.handler(make_event(query=STAY), None)

        assert response["statusCode"] == 200
        assert body_of(response) == {"valid": True, "minimumNightsRequiredToStay": 2}

    def test_closed_to_arrival(self, setup_handler, make_event, make_plan, make_nights, body_of):
        module, client = setup_handler("get_reservation")
        nights = make_nights("2025-10-17", 2, minLos=2)
        nights[0]["closedToArrival"] = True
        client.get_rate_plans.return_value = [make_plan(nights=nights)]

        body = body_of(module.handler(make_event(query=STAY), None))

        assert body["valid"] is False
        assert "arrival" in body["reason"]

    def test_bad_dates_skip_cloudbeds(self, setup_handler, make_event, body_of):
        module, client = setup_handler("get_reservation")

        response = module.handler(make_event(query={**STAY, "endDate": "2025-10-16"}), None)

        assert response["statusCode"] == 200
        assert body_of(response)["valid"] is False
        client.get_rate_plans.assert_not_called()

    def test_missing_dates(self, setup_handler, make_event, body_of):
        module, client = setup_handler("get_reservation")

        body = body_of(module.handler(make_event(query={"propertyID": "111"}), None))

        assert body["valid"] is False
        assert "check-in" in body["reason"]
        client.get_rate_plans.assert_not_called()

    def test_no_plans(self, setup_handler, make_event, body_of):
        module, client = setup_handler("get_reservation")
        client.get_rate_plans.return_value = []

        body = body_of(module.handler(make_event(query=STAY), None))

        assert body == {
            "valid": False,
            "minimumNightsRequiredToStay": 1,
            "reason": "no rate plans available for these dates",
        }

    def test_provider_error_stays_200(self, setup_handler, make_event, body_of):
        module, client = setup_handler("get_reservation")
        client.get_rate_plans.side_effect = ProviderError("Invalid token", status_code=401)

        response = module.handler(make_event(query=STAY), None)

        assert response["statusCode"] == 200
        assert "Invalid token" in body_of(response)["reason"]

    def test_spanish_reasons(self, setup_handler, app_config, make_event, make_plan, make_nights, body_of):
        module, client = setup_handler("get_reservation", replace(app_config, response_language="es"))
        client.get_rate_plans.return_value = [make_plan(nights=make_nights("2025-10-17", 2, minLos=4))]

        body = body_of(module.handler(make_event(query=STAY), None))

        assert body["reason"] == "La estadía mínima es de 4 noches."
        assert body["minimumNightsRequiredToStay"] == 4

    def test_spanish_missing_dates(self, setup_handler, app_config, make_event, body_of):
        module, _ = setup_handler("get_reservation", replace(app_config, response_language="es"))

        body = body_of(module.handler(make_event(query={"propertyID": "111"}), None))

        assert body["reason"] == "Fechas inválidas: faltan check-in o check-out (usar YYYY-MM-DD)."

    def test_spanish_configuration_error(self, setup_handler, app_config, make_event, body_of):
        module, client = setup_handler("get_reservation", replace(app_config, providers=(), response_language="es"))

        body = body_of(module.handler(make_event(query=STAY), None))

        assert body["reason"] == "Configuración del servidor faltante."
        client.get_rate_plans.assert_not_called()

    def test_post_body(self, setup_handler, make_event, make_plan, body_of):
        module, client = setup_handler("get_reservation")
        client.get_rate_plans.return_value = [make_plan(count=2)]

        event = make_event("POST", body={"checkin": "2025-10-17", "checkout": "2025-10-19"})

        body = body_of(module.handler(event, None))

        assert body["valid"] is True
        client.get_rate_plans.assert_called_once_with("2025-10-17", "2025-10-19", 2, 0)


# =============================================================================
# get_rates_lite and get_reservation_summary
# =============================================================================


class TestRatesLite:
    def test_rate_and_min_los(self, setup_handler, make_event, make_plan, make_nights, body_of):
        module, client = setup_handler("get_rates_lite")
        client.get_rate_plans.return_value = [make_plan(room_rate=180, nights=make_nights("2025-10-17", 2, minLos=2))]

        response = module.handler(make_event(query=STAY), None)

        assert response["statusCode"] == 200
        assert body_of(response) == {"success": True, "roomRate": 180, "minLos": 2}

    def test_no_plans(self, setup_handler, make_event, body_of):
        module, client = setup_handler("get_rates_lite")
        client.get_rate_plans.return_value = []

        assert body_of(module.handler(make_event(query=STAY), None)) == {"success": True, "roomRate": 0, "minLos": 1}

    def test_provider_error_is_502(self, setup_handler, make_event, body_of):
        module, client = setup_handler("get_rates_lite")
        client.get_rate_plans.side_effect = ProviderError("Cloudbeds HTTP 500", status_code=500)

        response = module.handler(make_event(query=STAY), None)

        assert response["statusCode"] == 502
        assert body_of(response) == {"success": False, "message": "Cloudbeds HTTP 500"}

    def test_missing_dates_is_400(self, setup_handler, make_event, body_of):
        module, _ = setup_handler("get_rates_lite")

        response = module.handler(make_event(query={"propertyID": "111"}), None)

        assert response["statusCode"] == 400
        assert body_of(response)["message"] == "Missing required fields: startDate, endDate"

    def test_missing_configuration_is_500(self, setup_handler, app_config, make_event):
        module, _ = setup_handler("get_rates_lite", replace(app_config, providers=()))

        assert module.handler(make_event(query=STAY), None)["statusCode"] == 500


class TestReservationSummary:
    def test_summary(self, setup_handler, make_event, make_plan, body_of):
        module, client = setup_handler("get_reservation_summary")
        client.get_rate_plans.return_value = [make_plan(count=2, room_rate=0, rateID="R0"), make_plan(count=2)]

        body = body_of(module.handler(make_event(query={**STAY, "adults": "3"}), None))

        assert body["success"] is True
        assert body["nights"] == 2
        assert body["adults"] == 3
        assert body["rateID"] == "R1"
        assert body["roomRate"] == 200
        assert len(body["nightly"]) == 2

    def test_checkout_before_checkin(self, setup_handler, make_event, body_of):
        module, client = setup_handler("get_reservation_summary")

        response = module.handler(make_event(query={**STAY, "endDate": "2025-10-17"}), None)

        assert response["statusCode"] == 200
        assert body_of(response)["success"] is False
        client.get_rate_plans.assert_not_called()


# =============================================================================
# get_price
# =============================================================================


class TestGetPrice:
    def test_price_for_room_type(self, setup_handler, make_event, make_plan, body_of):
        module, client = setup_handler("get_price")
        client.get_rate_plans.return_value = [
            make_plan(count=2, roomTypeID="RT1", room_rate=150),
            make_plan(count=2, roomTypeID="RT2", roomTypeName="Cabaña", room_rate=240),
        ]

        body = body_of(module.handler(make_event(query={**STAY, "roomTypeName": "cabana"}), None))

        assert body == {"totalPrice": 240}

    def test_unknown_property_is_zero(self, setup_handler, make_event, body_of):
        module, client = setup_handler("get_price")

        response = module.handler(make_event(query={**STAY, "propertyID": "999"}), None)

        assert response["statusCode"] == 200
        assert body_of(response) == {"totalPrice": 0}
        client.get_rate_plans.assert_not_called()

    def test_provider_error_is_zero(self, setup_handler, make_event, body_of):
        module, client = setup_handler("get_price")
        client.get_rate_plans.side_effect = ProviderError("boom")

        assert body_of(module.handler(make_event(query=STAY), None)) == {"totalPrice": 0}

    def test_unbookable_is_zero(self, setup_handler, make_event, make_plan, make_nights, body_of):
        module, client = setup_handler("get_price")
        client.get_rate_plans.return_value = [make_plan(nights=make_nights("2025-10-17", 2, roomsAvailable=0))]

        assert body_of(module.handler(make_event(query=STAY), None)) == {"totalPrice": 0}


# =============================================================================
# build_booking_link
# =============================================================================


class TestBuildBookingLink:
    @pytest.fixture
    def link_client(self, monkeypatch):
        client_class = MagicMock()
        monkeypatch.setattr("common.booking_links.CloudbedsClient", client_class)
        return client_class.return_value

    def test_links_for_every_bookable_provider(self, setup_handler, link_client, make_event, make_plan, body_of):
        module, _ = setup_handler("build_booking_link")
        link_client.get_rate_plans.return_value = [make_plan(count=2)]

        body = body_of(module.handler(make_event(query={**STAY, "currency": "USD"}), None))

        links = body["url"].split(" || ")
        assert body["success"] is True
        assert len(links) == 2
        assert links[0].startswith("https://hotels.cloudbeds.com/reservation/UNO?")
        assert "currency=usd" in links[0]

    def test_requested_provider_first(self, setup_handler, link_client, make_event, make_plan, body_of):
        module, _ = setup_handler("build_booking_link")
        link_client.get_rate_plans.return_value = [make_plan(count=2)]

        body = body_of(module.handler(make_event(query={**STAY, "propertyID": "222"}), None))

        assert body["url"].startswith("https://hotels.cloudbeds.com/reservation/DOS?")

    def test_errors_listed_per_provider(self, setup_handler, link_client, make_event, body_of):
        module, _ = setup_handler("build_booking_link")
        link_client.get_rate_plans.return_value = []

        body = body_of(module.handler(make_event(query=STAY), None))

        assert body["url"] == "ERROR: Hotel Uno: No plans found | Hotel Dos: No plans found"

    def test_no_fallback(self, setup_handler, link_client, make_event, body_of):
        module, _ = setup_handler("build_booking_link")
        link_client.get_rate_plans.return_value = []

        body = body_of(module.handler(make_event(query={**STAY, "fallback": "false"}), None))

        assert body["url"] == "ERROR: Hotel Uno: No plans found"

    def test_missing_dates(self, setup_handler, make_event, body_of):
        module, _ = setup_handler("build_booking_link")

        response = module.handler(make_event(query={"propertyID": "111"}), None)

        assert response["statusCode"] == 200
        assert body_of(response) == {"success": True, "url": "ERROR: Missing check-in or check-out (YYYY-MM-DD)."}

    def test_checkout_not_after_checkin(self, setup_handler, make_event, body_of):
        module, _ = setup_handler("build_booking_link")

        body = body_of(module.handler(make_event(query={**STAY, "endDate": "2025-10-17"}), None))

        assert body["url"] == "ERROR: checkout must be after checkin"

    def test_no_providers(self, setup_handler, app_config, make_event, body_of):
        module, _ = setup_handler("build_booking_link", replace(app_config, providers=()))

        assert body_of(module.handler(make_event(query=STAY), None))["url"] == "ERROR: No providers configured."


# =============================================================================
# check_availability and can_book
# =============================================================================


class TestCheckAvailability:
    def test_available(self, setup_handler, make_event, body_of):
        module, client = setup_handler("check_availability")
        client.get_available_room_types.return_value = ([{"availableRooms": 0}, {"availableRooms": 2}], {})

        body = body_of(module.handler(make_event(query=STAY), None))

        assert body["success"] is True
        assert body["available"] is True
        assert body["reason"] == "At least one room type has availability."
        assert body["details"] == {"startDate": "2025-10-17", "endDate": "2025-10-19", "propertyID": "111"}

    def test_sold_out(self, setup_handler, make_event, body_of):
        module, client = setup_handler("check_availability")
        client.get_available_room_types.return_value = ([{"roomsAvailable": 0}], {})

        body = body_of(module.handler(make_event(query=STAY), None))

        assert body["available"] is False
        assert body["reason"] == "No available room types for these dates."

    def test_no_list(self, setup_handler, make_event, body_of):
        module, client = setup_handler("check_availability")
        client.get_available_room_types.return_value = (None, {"success": True, "message": "ok"})

        body = body_of(module.handler(make_event(query=STAY), None))

        assert body["success"] is True
        assert body["available"] is False
        assert body["reason"] == "No room-types list in Cloudbeds response."

    def test_get_only(self, setup_handler, make_event):
        module, _ = setup_handler("check_availability")

        assert module.handler(make_event("POST", body=STAY), None)["statusCode"] == 405

    def test_upstream_status_is_kept(self, setup_handler, make_event, body_of):
        module, client = setup_handler("check_availability")
        client.get_available_room_types.side_effect = ProviderError(
            "Unauthorized", status_code=401, payload={"success": False, "message": "Unauthorized"}
        )

        response = module.handler(make_event(query=STAY), None)

        assert response["statusCode"] == 401
        assert body_of(response)["reason"] == "Unauthorized"


class TestCanBook:
    ROWS = [
        {"roomTypeID": "RT1", "roomTypeName": "Doble", "availableRooms": 2, "maxGuests": 2},
        {"roomTypeID": "RT2", "roomTypeName": "Familiar", "availableRooms": 1, "maxGuests": 5},
    ]

    def test_room_type_fits_party(self, setup_handler, make_event, body_of):
        module, client = setup_handler("can_book")
        client.probe_available_room_types.return_value = (self.ROWS, {}, "https://x/getAvailableRoomTypes")

        event = make_event(query={**STAY, "roomTypeID": "RT1", "quantity": "2", "adults": "4"})

        body = body_of(module.handler(event, None))

        assert body["success"] is True
        assert body["canBook"] is True
        assert [r["roomTypeID"] for r in body["roomTypes"]] == ["RT1"]

    def test_party_too_large(self, setup_handler, make_event, body_of):
        module, client = setup_handler("can_book")
        client.probe_available_room_types.return_value = (self.ROWS, {}, "https://x")

        body = body_of(module.handler(make_event(query={**STAY, "roomTypeID": "RT1", "adults": "3"}), None))

        assert body["canBook"] is False

    def test_not_enough_units(self, setup_handler, make_event, body_of):
        module, client = setup_handler("can_book")
        client.probe_available_room_types.return_value = (self.ROWS, {}, "https://x")

        body = body_of(module.handler(make_event(query={**STAY, "roomTypeID": "RT2", "quantity": "2"}), None))

        assert body["canBook"] is False

    def test_unknown_room_type(self, setup_handler, make_event, body_of):
        module, client = setup_handler("can_book")
        client.probe_available_room_types.return_value = (self.ROWS, {}, "https://x")

        body = body_of(module.handler(make_event(query={**STAY, "roomTypeID": "RT9"}), None))

        assert body["canBook"] is False
        assert "RT9" in body["reason"]

    def test_property_required(self, setup_handler, make_event, body_of):
        module, _ = setup_handler("can_book")

        response = module.handler(make_event(query={"startDate": "2025-10-17", "endDate": "2025-10-19"}), None)

        assert response["statusCode"] == 400
        assert body_of(response)["message"] == "Missing required fields: propertyID"

    def test_no_route_found(self, setup_handler, make_event):
        module, client = setup_handler("can_book")
        client.probe_available_room_types.side_effect = ProviderError(
            "Availability endpoint not found (404 on all variants).", status_code=502
        )

        assert module.handler(make_event(query=STAY), None)["statusCode"] == 502


# =============================================================================
# get_availability and get_reservations
# =============================================================================


class TestGetAvailability:
    def test_passthrough(self, setup_handler, make_event, body_of):
        module, client = setup_handler("get_availability")
        payload = {"success": True, "data": [{"roomTypeID": "RT1"}], "roomCount": 1}
        client.get_available_room_types.return_value = (payload["data"], payload)

        response = module.handler(make_event(query=STAY), None)

        assert response["statusCode"] == 200
        assert body_of(response) == payload

    def test_upstream_failure_passthrough(self, setup_handler, make_event, body_of):
        module, client = setup_handler("get_availability")
        payload = {"success": False, "message": "Invalid propertyID"}
        client.get_available_room_types.side_effect = ProviderError(
            "Invalid propertyID", status_code=400, payload=payload
        )

        response = module.handler(make_event(query=STAY), None)

        assert response["statusCode"] == 400
        assert body_of(response) == payload

    def test_dates_required(self, setup_handler, make_event, body_of):
        module, _ = setup_handler("get_availability")

        response = module.handler(make_event(query={"startDate": "someday"}), None)

        assert response["statusCode"] == 400
        assert body_of(response)["received"] == {"startDate": "someday", "endDate": None}


class TestGetReservations:
    def test_filters_forwarded(self, setup_handler, make_event, body_of):
        module, client = setup_handler("get_reservations")
        client.get_reservations.return_value = {"success": True, "data": [{"reservationID": "ABC"}]}

        query = {"status": "confirmed", "startDate": "2025-10-17T00:00:00Z", "email": "", "limit": "10"}
        body = body_of(module.handler(make_event(query=query), None))

        assert body == {"success": True, "data": {"success": True, "data": [{"reservationID": "ABC"}]}}
        client.get_reservations.assert_called_once_with(
            {"startDate": "2025-10-17", "status": "confirmed", "limit": "10"}
        )

    def test_get_only(self, setup_handler, make_event):
        module, _ = setup_handler("get_reservations")

        assert module.handler(make_event("POST", body={}), None)["statusCode"] == 405

    def test_configuration_error(self, setup_handler, make_event, body_of, monkeypatch):
        module, _ = setup_handler("get_reservations")

        def broken():
            raise ConfigurationError("Failed to load configuration from Parameter Store")

        monkeypatch.setattr(module, "get_config", broken)

        response = module.handler(make_event(query={}), None)

        assert response["statusCode"] == 500
        assert body_of(response)["success"] is False
