"""Telegram message texts (HTML parse mode)."""

from __future__ import annotations

import html
from datetime import date, datetime

from .config import Settings
from .models import CycleStats, FlightOffer
from .names import airline_name, city_name


def _e(value: object) -> str:
    return html.escape(str(value), quote=False)


def format_date_range(start: date, end: date) -> str:
    if start == end:
        return start.isoformat()
    return f"{start.isoformat()} – {end.isoformat()}"


def _fmt_duration(minutes: int) -> str:
    hours, rest = divmod(minutes, 60)
    return f"{hours} h {rest} min" if hours else f"{rest} min"


def _fmt_ts(ts: datetime) -> str:
    return ts.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


def _named(code: str, name: str | None) -> str:
    if name and name != code:
        return f"{_e(name)} ({_e(code)})"
    return _e(code)


def _route(origin: str, destination: str) -> str:
    return f"{_named(origin, city_name(origin))} → {_named(destination, city_name(destination))}"


def format_offer(offer: FlightOffer) -> str:
    """One found-flight alert. Always carries price, date and airline code."""
    # an enriched name (or the raw code it fell back to) wins over the built-in table
    if offer.airline_name is not None:
        airline = _named(offer.airline, offer.airline_name)
    else:
        airline = _named(offer.airline, airline_name(offer.airline))

    lines = [
        f"✈️ <b>{_e(offer.flight_code)}</b>: {_route(offer.origin, offer.destination)}",
        f"🛫 {_named(offer.origin_airport, offer.origin_airport_name)}"
        f" → {_named(offer.destination_airport, offer.destination_airport_name)}",
        f"📅 {offer.departure_at.strftime('%Y-%m-%d %H:%M')}",
        f"🏢 {airline}",
        f"💰 <b>{_e(offer.price)} {_e(offer.currency)}</b>",
    ]
    if offer.duration_min:
        lines.append(f"⏱ {_fmt_duration(offer.duration_min)}")
    if offer.aircraft:
        lines.append(f"🛩 {_e(offer.aircraft)}")
    if offer.flight_status:
        lines.append(f"🚦 {_e(offer.flight_status)}")
    for cabin, count in offer.seats.items():
        lines.append(f"💺 Seats in {cabin}: {count}")
    if offer.deep_link:
        lines.append(f'<a href="{html.escape(offer.deep_link)}">Book on Aviasales</a>')
    return "\n".join(lines)


def format_seat_alert(offer: FlightOffer) -> str:
    """Separate alert sent when AirLabs reports seat availability."""
    lines = [
        "🚨 <b>Seat availability</b> 🚨",
        "",
        f"✈️ <b>{_e(offer.flight_code)}</b>: {_route(offer.origin, offer.destination)}",
        f"📅 {offer.departure_at.strftime('%Y-%m-%d %H:%M')}",
    ]
    lines += [f"💺 {cabin.capitalize()}: <b>{count}</b>" for cabin, count in offer.seats.items()]
    return "\n".join(lines)


def format_startup(settings: Settings) -> str:
    enrichment = "on" if settings.enrichment_enabled else "off"
    return (
        "🛫 <b>Flight checker started</b>\n\n"
        f"Direct flights <b>{_route(settings.origin, settings.destination)}</b>, "
        f"{format_date_range(settings.start_date, settings.end_date)}.\n"
        f"Checking every {settings.poll_interval_h} h, enrichment {enrichment}.\n\n"
        "<i>This message is updated after every search cycle.</i>"
    )


def format_cycle_started(stats: CycleStats, settings: Settings) -> str:
    return (
        "🛫 <b>Flight checker</b>\n\n"
        f"{_route(settings.origin, settings.destination)}, "
        f"{format_date_range(settings.start_date, settings.end_date)}\n"
        f"🔍 Search cycle started: {_fmt_ts(stats.started_at)}\n\n"
        "<i>Status will be updated when the cycle ends.</i>"
    )


def format_shutdown() -> str:
    return "🛬 <b>Flight checker stopped</b>"


def format_cycle_abandoned(stats: CycleStats) -> str:
    return (
        "⚠️ <b>Search cycle abandoned</b>\n\n"
        f"🕒 Started: {_fmt_ts(stats.started_at)}\n"
        f"🔁 Attempts: {stats.attempts}\n"
        f"❌ Error: {_e(stats.error or 'unknown')}\n\n"
        "<i>Will try again on the next cycle.</i>"
    )


def format_cycle_summary(stats: CycleStats, settings: Settings) -> str:
    """Body of the live status message in the devlogs topic."""
    seconds = int(stats.duration.total_seconds())
    minutes, seconds = divmod(seconds, 60)
    if stats.abandoned:
        status = "❌ abandoned"
    elif stats.stopped:
        status = "⏹ stopped early"
    else:
        status = "✅ completed"
    lines = [
        "🛫 <b>Flight checker</b>",
        "",
        f"{_route(settings.origin, settings.destination)}, "
        f"{format_date_range(settings.start_date, settings.end_date)}",
        f"Last cycle: {status}",
        f"🕒 Started: {_fmt_ts(stats.started_at)}",
        f"⏱ Duration: {minutes} min {seconds} s",
        f"🎫 Offers found: {stats.offers_found}",
        f"📨 Notified: {stats.offers_notified}",
    ]
    if stats.delivery_failures:
        lines.append(f"⚠️ Delivery failures: {stats.delivery_failures}")
    if stats.seat_alerts:
        lines.append(f"💺 Seat alerts: {stats.seat_alerts}")
    if stats.enrichment_misses:
        lines.append(f"❔ Offers with raw codes: {stats.enrichment_misses}")
    if stats.backoff_s:
        lines.append(f"⏳ Waited after failures: {stats.backoff_s:.0f} s")
    if stats.error:
        lines.append(f"❌ Error: {_e(stats.error)}")
    lines += ["", f"🔄 Next cycle in <b>{settings.poll_interval_h} h</b>"]
    return "\n".join(lines)


__all__ = [
    "format_date_range",
    "format_offer",
    "format_seat_alert",
    "format_cycle_started",
    "format_startup",
    "format_shutdown",
    "format_cycle_abandoned",
    "format_cycle_summary",
]
