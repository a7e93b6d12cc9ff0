from __future__ import annotations

import datetime as dt
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Iterator

import requests

from .errors import RateLimitError, RequestError, ResponseError
from .models import FlightOffer

logger = logging.getLogger(__name__)


def months_between(start: dt.date, end: dt.date) -> Iterator[str]:
    """Yield ``YYYY-MM`` for every calendar month touched by [start, end]."""
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        yield f"{year:04d}-{month:02d}"
        month += 1
        if month > 12:
            year, month = year + 1, 1


class AviasalesFetcher:
    """
    Client for the Travelpayouts Flight Data API v3 (*/aviasales/v3*),
    restricted to direct one-way fares.
    """

    def __init__(
        self,
        token: str,
        *,
        base_url: str = "https://api.travelpayouts.com/aviasales/v3",
        domain: str = "https://www.aviasales.ru",
        timeout: float = 15,
        currency: str = "rub",
    ) -> None:
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.domain = domain.rstrip("/")
        self.timeout = timeout
        self.currency = currency.lower()

    # ──────────────────────────────────────────────────────────

    def search_range(
        self,
        origin: str,
        destination: str,
        start: dt.date,
        end: dt.date,
    ) -> list[FlightOffer]:
        """Return direct offers departing between *start* and *end* inclusive.

        The API takes a single day or month per call, so one request is made
        per calendar month of the range and the results are filtered here.
        """
        offers: list[FlightOffer] = []
        for month in months_between(start, end):
            offers.extend(self.search_prices(origin, destination, month))

        kept = [
            off
            for off in offers
            if start <= off.departure_date <= end and off.transfers == 0
        ]
        logger.info(
            "%s ➔ %s %s..%s: %d offers, %d within range",
            origin,
            destination,
            start,
            end,
            len(offers),
            len(kept),
        )
        return kept

    def search_prices(
        self,
        origin: str,
        destination: str,
        departure_at: str,
        *,
        limit: int = 1000,
    ) -> list[FlightOffer]:
        """Return offers for one route and one ``YYYY-MM[-DD]`` departure."""
        params = {
            "origin": origin,
            "destination": destination,
            "departure_at": departure_at,
            "one_way": "true",
            "direct": "true",
            "currency": self.currency,
            "sorting": "price",
            "limit": limit,
            "page": 1,
            "token": self.token,
        }
        logger.debug("Fetching %s ➔ %s on %s", origin, destination, departure_at)

        try:
            resp = requests.get(
                f"{self.base_url}/prices_for_dates",
                params=params,
                timeout=self.timeout,
                headers={"Accept-Encoding": "gzip"},
            )
        except requests.RequestException as exc:
            raise RequestError(f"Travelpayouts request failed: {exc}") from exc

        if resp.status_code == 429:
            raise RateLimitError(
                "Travelpayouts rate limit hit",
                retry_after=_retry_after(resp.headers.get("Retry-After")),
            )
        if not 200 <= resp.status_code < 300:
            raise ResponseError(
                f"HTTP {resp.status_code} – {resp.text[:120]}",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise ResponseError(f"Malformed JSON: {resp.text[:120]}") from exc

        if not isinstance(data, dict):
            raise ResponseError(f"Unexpected payload type: {type(data).__name__}")
        if not data.get("success"):
            raise ResponseError(f"API error: {data.get('error')}")

        items = data.get("data") or []
        if not isinstance(items, list):
            raise ResponseError("API payload 'data' is not a list")

        currency = str(data.get("currency") or self.currency).upper()
        offers = [self._to_offer(item, currency) for item in items]
        return [off for off in offers if off]

    def _to_offer(self, item: Any, currency: str) -> FlightOffer | None:
        """Map a JSON record onto a FlightOffer, or ``None`` if it is unusable."""
        if not isinstance(item, dict):
            logger.warning("Skipping non-object row: %r", item)
            return None

        try:
            departure_at = dt.datetime.fromisoformat(item["departure_at"])
            price = Decimal(str(item["price"]))
            origin = item["origin"]
            destination = item["destination"]
            airline = item["airline"]
            transfers = int(item.get("transfers") or 0)
            duration = item.get("duration_to", item.get("duration"))
            duration_min = int(duration) if duration is not None else None
        except (KeyError, TypeError, ValueError, InvalidOperation) as exc:
            logger.warning("Skipping incomplete row (%s): %r", exc, item)
            return None

        if departure_at.tzinfo is None:
            departure_at = departure_at.replace(tzinfo=dt.timezone.utc)

        link = item.get("link") or ""
        deep_link = f"{self.domain}{link}" if link else (
            f"{self.domain}/search/"
            f"{origin}{departure_at.strftime('%d%m')}{destination}1"
        )

        return FlightOffer(
            origin=origin,
            destination=destination,
            origin_airport=item.get("origin_airport") or origin,
            destination_airport=item.get("destination_airport") or destination,
            departure_at=departure_at,
            price=price,
            currency=currency,
            airline=airline,
            flight_number=str(item.get("flight_number") or ""),
            transfers=transfers,
            duration_min=duration_min,
            deep_link=deep_link,
        )


def _retry_after(raw: str | None) -> float | None:
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


__all__ = ["AviasalesFetcher", "months_between"]
