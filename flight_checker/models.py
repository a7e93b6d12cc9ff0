"""Data models used throughout the project."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, Optional


@dataclass(slots=True)
class FlightOffer:
    origin: str
    destination: str
    origin_airport: str
    destination_airport: str
    departure_at: datetime
    price: Decimal
    currency: str
    airline: str
    flight_number: str
    transfers: int
    duration_min: Optional[int]
    deep_link: str
    # filled in by OfferEnricher
    airline_name: Optional[str] = None
    origin_airport_name: Optional[str] = None
    destination_airport_name: Optional[str] = None
    aircraft: Optional[str] = None
    flight_status: Optional[str] = None
    seats_economy: Optional[int] = None
    seats_business: Optional[int] = None
    seats_first: Optional[int] = None

    @property
    def departure_date(self) -> date:
        return self.departure_at.date()

    @property
    def flight_code(self) -> str:
        return f"{self.airline}{self.flight_number}"

    @property
    def seats(self) -> Dict[str, int]:
        """Known seat counts by cabin, in cabin order."""
        cabins = (
            ("economy", self.seats_economy),
            ("business", self.seats_business),
            ("first", self.seats_first),
        )
        return {cabin: count for cabin, count in cabins if count is not None}

    @property
    def has_seat_info(self) -> bool:
        return bool(self.seats)


class CheckerState(enum.Enum):
    IDLE = "idle"
    POLLING = "polling"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class CycleStats:
    """Counters for a single poll cycle. Never carried over to the next one."""

    started_at: datetime = field(default_factory=_utcnow)
    finished_at: Optional[datetime] = None
    attempts: int = 0
    offers_found: int = 0
    offers_notified: int = 0
    delivery_failures: int = 0
    enrichment_misses: int = 0
    seat_alerts: int = 0
    backoff_s: float = 0.0
    abandoned: bool = False
    stopped: bool = False
    error: Optional[str] = None

    @property
    def duration(self) -> timedelta:
        end = self.finished_at or _utcnow()
        return end - self.started_at

    def finish(self) -> None:
        self.finished_at = _utcnow()
