from datetime import datetime, timezone
from decimal import Decimal

import pytest

from flight_checker.config import Settings, load_settings
from flight_checker.models import FlightOffer

REQUIRED_ENV = {
    "TRAVELPAYOUTS_API_KEY": "tp-token",
    "TELEGRAM_BOT_TOKEN": "123:abc",
    "TELEGRAM_CHAT_ID": "-1001234567890",
    "TELEGRAM_DEVLOGS_TOPIC_ID": "1",
    "TELEGRAM_FOUND_TOPIC_ID": "42",
    "ORIGIN": "MOW",
    "DESTINATION": "LED",
    "START_DATE": "2024-06-01",
    "END_DATE": "2024-06-10",
}


@pytest.fixture
def env(monkeypatch):
    """A clean environment holding only the required variables."""
    for field in Settings.model_fields.values():
        monkeypatch.delenv(field.alias, raising=False)
    for key, value in REQUIRED_ENV.items():
        monkeypatch.setenv(key, value)
    monkeypatch.setenv("LOG_FILE", "")
    return dict(REQUIRED_ENV)


@pytest.fixture
def settings(env):
    return load_settings()


def _offer(**overrides) -> FlightOffer:
    fields = dict(
        origin="MOW",
        destination="LED",
        origin_airport="SVO",
        destination_airport="LED",
        departure_at=datetime(2024, 6, 5, 8, 30, tzinfo=timezone.utc),
        price=Decimal("3000"),
        currency="RUB",
        airline="SU",
        flight_number="30",
        transfers=0,
        duration_min=85,
        deep_link="https://www.aviasales.ru/search/MOW0506LED1",
    )
    fields.update(overrides)
    return FlightOffer(**fields)


@pytest.fixture
def make_offer():
    """Factory for offers on the default MOW ➔ LED route."""
    return _offer
