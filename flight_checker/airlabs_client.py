from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

import requests

from .errors import RateLimitError, RequestError, ResponseError
from .models import FlightOffer

logger = logging.getLogger(__name__)


class AirLabsClient:
    """Thin wrapper around the AirLabs v9 lookup endpoints."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://airlabs.co/api/v9",
        timeout: float = 15,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _get(self, endpoint: str, **params: str) -> Any:
        """GET *endpoint* and return the ``response`` member of the body."""
        params["api_key"] = self.api_key
        try:
            resp = requests.get(
                f"{self.base_url}/{endpoint}", params=params, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise RequestError(f"AirLabs request failed: {exc}") from exc

        if resp.status_code == 429:
            raise RateLimitError("AirLabs rate limit hit")
        if not 200 <= resp.status_code < 300:
            raise ResponseError(
                f"AirLabs HTTP {resp.status_code} – {resp.text[:120]}",
                status_code=resp.status_code,
            )

        try:
            body = resp.json()
        except ValueError as exc:
            raise ResponseError(f"AirLabs returned malformed JSON: {resp.text[:120]}") from exc
        if not isinstance(body, dict):
            raise ResponseError("AirLabs payload is not an object")

        error = body.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else error
            raise ResponseError(f"AirLabs API error: {message}")

        return body.get("response")

    @staticmethod
    def _first(response: Any) -> Optional[Dict[str, Any]]:
        if isinstance(response, list):
            return response[0] if response and isinstance(response[0], dict) else None
        if isinstance(response, dict) and response:
            return response
        return None

    def airline_name(self, code: str) -> Optional[str]:
        row = self._first(self._get("airlines", iata_code=code))
        return (row or {}).get("name") or None

    def airport_name(self, code: str) -> Optional[str]:
        row = self._first(self._get("airports", iata_code=code))
        return (row or {}).get("name") or None

    def flight_info(self, airline: str, flight_number: str) -> Optional[Dict[str, Any]]:
        """Schedule details for one flight (status, aircraft type, seats)."""
        return self._first(self._get("flight", flight_iata=f"{airline}{flight_number}"))


class OfferEnricher:
    """Best-effort enrichment of offers with human readable names.

    Each lookup degrades on its own: a failed or empty name lookup leaves
    the raw IATA code as the display name, a failed flight lookup leaves
    aircraft and status unset. Nothing here raises to the caller.
    """

    def __init__(self, client: AirLabsClient) -> None:
        self.client = client
        self._names: Dict[tuple[str, str], str] = {}

    def _name(self, kind: str, code: str, lookup: Callable[[str], Optional[str]]) -> Optional[str]:
        key = (kind, code)
        if key in self._names:
            return self._names[key]
        try:
            name = lookup(code)
        except (RequestError, ResponseError) as exc:
            logger.warning("%s lookup for %s failed: %s", kind, code, exc)
            return None
        if name:
            self._names[key] = name
        return name

    def enrich(self, offer: FlightOffer) -> bool:
        """Fill display fields on *offer* in place.

        Returns ``True`` when every name lookup produced a real name.
        """
        airline = self._name("airline", offer.airline, self.client.airline_name)
        origin = self._name("airport", offer.origin_airport, self.client.airport_name)
        destination = self._name(
            "airport", offer.destination_airport, self.client.airport_name
        )

        offer.airline_name = airline or offer.airline
        offer.origin_airport_name = origin or offer.origin_airport
        offer.destination_airport_name = destination or offer.destination_airport

        if offer.flight_number:
            try:
                info = self.client.flight_info(offer.airline, offer.flight_number)
            except (RequestError, ResponseError) as exc:
                logger.warning("flight lookup for %s failed: %s", offer.flight_code, exc)
                info = None
            if info:
                offer.aircraft = info.get("aircraft_icao")
                offer.flight_status = info.get("status")
                offer.seats_economy = _seat_count(info.get("seats_economy"))
                offer.seats_business = _seat_count(info.get("seats_business"))
                offer.seats_first = _seat_count(info.get("seats_first"))

        return bool(airline and origin and destination)


def _seat_count(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


__all__ = ["AirLabsClient", "OfferEnricher"]
