"""Shared fixtures for the booking proxy tests."""

import importlib.util
import json
import pytest
from common.config import AppConfig, ProviderConfig
from datetime import date, timedelta
from pathlib import Path
from unittest.mock import MagicMock


HANDLERS_DIR = Path(__file__).resolve().parents[1] / "src" / "constructs" / "booking_proxy" / "lambda_functions"


# =============================================================================
# Providers and config
# =============================================================================


@pytest.fixture
def provider():
    """Slot 1 provider with an API key."""
    return ProviderConfig(
        slot="1",
        name="Hotel Uno",
        property_id="111",
        api_key="key-111",
        api_base="https://api.cloudbeds.com/api/v1.3",
        booking_base="https://hotels.cloudbeds.com/reservation/UNO",
    )


@pytest.fixture
def second_provider():
    """Slot 2 provider using an OAuth access token."""
    return ProviderConfig(
        slot="2",
        name="Hotel Dos",
        property_id="222",
        api_key="cbat_token222",
        api_base="https://api.cloudbeds.com/api/v1.3",
        booking_base="https://hotels.cloudbeds.com/reservation/DOS",
        auth_style="bearer",
    )


@pytest.fixture
def app_config(provider, second_provider):
    return AppConfig(
        providers=(provider, second_provider),
        default_property_id="111",
        response_language="en",
        request_timeout=5.0,
        allowed_origin="https://chat.example.com",
    )


# =============================================================================
# Rate data
# =============================================================================


@pytest.fixture
def make_nights():
    """
    Build ``roomRateDetailed`` entries for consecutive nights.

    Usage: make_nights("2025-10-17", 3, rate=100, minLos=2)
    """

    def _make(start: str, count: int, **overrides):
        first = date.fromisoformat(start)
        nights = []
        for i in range(count):
            night = {
                "date": (first + timedelta(days=i)).isoformat(),
                "rate": 100,
                "roomsAvailable": 3,
                "minLos": 1,
                "closedToArrival": False,
                "closedToDeparture": False,
            }
            night.update(overrides)
            nights.append(night)
        return nights

    return _make


@pytest.fixture
def make_plan(make_nights):
    """Build a rate plan covering count nights from start."""

    def _make(start: str = "2025-10-17", count: int = 3, room_rate=None, **plan_fields):
        nights = plan_fields.pop("nights", None) or make_nights(start, count)
        plan = {
            "rateID": "R1",
            "roomTypeID": "RT1",
            "roomTypeName": "Suite Deluxe",
            "roomsAvailable": 3,
            "roomRate": room_rate if room_rate is not None else sum(n["rate"] for n in nights),
            "roomRateDetailed": nights,
        }
        plan.update(plan_fields)
        return plan

    return _make


# =============================================================================
# HTTP and API Gateway events
# =============================================================================


@pytest.fixture
def mock_response():
    """Factory for a mock ``requests`` response."""

    def _make(status_code: int = 200, payload=None, text=None):
        response = MagicMock()
        response.status_code = status_code
        if payload is None:
            response.json.side_effect = ValueError("No JSON")
            response.text = text or ""
        else:
            response.json.return_value = payload
            response.text = json.dumps(payload)
        return response

    return _make


@pytest.fixture
def make_event():
    """Factory for API Gateway REST proxy events."""

    def _make(method: str = "GET", query=None, body=None, headers=None):
        if isinstance(body, dict):
            body = json.dumps(body)
            headers = {"Content-Type": "application/json", **(headers or {})}
        return {
            "httpMethod": method,
            "path": "/api/test",
            "headers": headers or {},
            "queryStringParameters": query,
            "body": body,
            "isBase64Encoded": False,
        }

    return _make


@pytest.fixture
def load_handler():
    """Import a handler's ``app.py`` by directory name."""

    def _load(name: str):
        path = HANDLERS_DIR / name / "app.py"
        spec = importlib.util.spec_from_file_location(f"{name}_app", path)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return module

    return _load


def response_body(response: dict):
    """Decode an API Gateway response body."""
    return json.loads(response["body"])


@pytest.fixture
def body_of():
    return response_body
