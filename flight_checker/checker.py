from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

from .airlabs_client import OfferEnricher
from .aviasales_fetcher import AviasalesFetcher
from .backoff import retry_call
from .config import Settings
from .errors import DeliveryError, RequestError, ResponseError
from .messages import (
    format_cycle_abandoned,
    format_cycle_started,
    format_cycle_summary,
    format_offer,
    format_seat_alert,
    format_shutdown,
    format_startup,
)
from .models import CheckerState, CycleStats, FlightOffer
from .notifier import TelegramNotifier

logger = logging.getLogger(__name__)


class FlightChecker:
    """One route, one date range: fetch → filter → enrich → notify.

    Cycles are independent; nothing about offers survives from one cycle
    to the next, so an offer still on sale is announced again.

    ``run_cycle`` normally runs on a scheduler worker thread while
    ``shutdown`` is called from the main thread, so shutdown first asks the
    running cycle to stop and waits for it before posting.
    """

    def __init__(
        self,
        settings: Settings,
        fetcher: AviasalesFetcher,
        notifier: TelegramNotifier,
        enricher: Optional[OfferEnricher] = None,
        *,
        sleep: Optional[Callable[[float], object]] = None,
    ) -> None:
        self.settings = settings
        self.fetcher = fetcher
        self.notifier = notifier
        self.enricher = enricher
        self.state = CheckerState.IDLE
        self.status_message_id: Optional[int] = None
        self._stop = threading.Event()
        self._cycle_lock = threading.Lock()
        # backoff waits end early once a stop is requested
        self._sleep = sleep if sleep is not None else self._stop.wait

    # ────────────────────────────────────────────────────────────────
    # Lifecycle
    # ────────────────────────────────────────────────────────────────

    def startup(self) -> None:
        """Announce the start in devlogs; that message becomes the live status."""
        logger.info(
            "Starting checker for %s ➔ %s (%s..%s)",
            self.settings.origin,
            self.settings.destination,
            self.settings.start_date,
            self.settings.end_date,
        )
        try:
            self.status_message_id = self.notifier.devlog(format_startup(self.settings))
        except DeliveryError as exc:
            logger.error("Could not post startup message: %s", exc)

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    def shutdown(self, timeout: float = 30.0) -> None:
        """Stop any running cycle, post the shutdown message and close the bot."""
        logger.info("Shutting down")
        self._stop.set()
        finished = self._cycle_lock.acquire(timeout=timeout)
        if not finished:
            logger.warning("Cycle still running after %.0fs; shutting down anyway", timeout)
        try:
            self.notifier.devlog(format_shutdown())
        except DeliveryError as exc:
            logger.error("Could not post shutdown message: %s", exc)
        finally:
            self.notifier.close()
            if finished:
                self._cycle_lock.release()

    # ────────────────────────────────────────────────────────────────
    # Poll cycle
    # ────────────────────────────────────────────────────────────────

    def _fetch(self, stats: CycleStats) -> List[FlightOffer]:
        s = self.settings

        def attempt() -> List[FlightOffer]:
            stats.attempts += 1
            return self.fetcher.search_range(
                s.origin, s.destination, s.start_date, s.end_date
            )

        def waited(attempt_no: int, exc: BaseException, delay: float) -> None:
            stats.backoff_s += delay

        return retry_call(
            attempt,
            attempts=s.retry_max_attempts,
            base_delay=s.retry_base_delay_s,
            max_delay=s.retry_max_delay_s,
            retry_on=(RequestError, ResponseError),
            sleep=self._sleep,
            on_retry=waited,
        )

    def _post(self, text: str, stats: CycleStats, what: str) -> bool:
        try:
            self.notifier.found(text)
        except DeliveryError as exc:
            stats.delivery_failures += 1
            logger.warning("Failed to deliver %s: %s", what, exc)
            return False
        return True

    def _notify_offer(self, offer: FlightOffer, stats: CycleStats) -> None:
        if self.enricher is not None and not self.enricher.enrich(offer):
            stats.enrichment_misses += 1
        if self._post(format_offer(offer), stats, offer.flight_code):
            stats.offers_notified += 1
        if offer.has_seat_info:
            if self._post(format_seat_alert(offer), stats, f"seats for {offer.flight_code}"):
                stats.seat_alerts += 1

    def _update_status(self, text: str) -> None:
        if self.status_message_id is None:
            return
        try:
            self.notifier.edit(self.status_message_id, text)
        except DeliveryError as exc:
            logger.warning("Failed to update status message: %s", exc)

    def run_cycle(self) -> CycleStats:
        """Run one poll cycle. Runtime errors never escape."""
        stats = CycleStats()
        with self._cycle_lock:
            if self.stopping:
                logger.info("Stop requested; skipping cycle")
                stats.stopped = True
                return stats
            self.state = CheckerState.POLLING
            try:
                self._run_cycle(stats)
            finally:
                self.state = CheckerState.IDLE
        return stats

    def _run_cycle(self, stats: CycleStats) -> None:
        self._update_status(format_cycle_started(stats, self.settings))
        try:
            offers = self._fetch(stats)
        except (RequestError, ResponseError) as exc:
            stats.abandoned = True
            stats.error = str(exc)
            stats.finish()
            logger.error("Cycle abandoned after %d attempts: %s", stats.attempts, exc)
            try:
                self.notifier.devlog(format_cycle_abandoned(stats))
            except DeliveryError as send_exc:
                logger.error("Could not report abandoned cycle: %s", send_exc)
            self._update_status(format_cycle_summary(stats, self.settings))
            return

        stats.offers_found = len(offers)
        logger.info("Found %d offers", len(offers))
        for index, offer in enumerate(offers):
            if self.stopping:
                stats.stopped = True
                logger.info("Stop requested; %d offers left unsent", len(offers) - index)
                break
            self._notify_offer(offer, stats)

        stats.finish()
        logger.info(
            "Cycle done: %d/%d notified in %s",
            stats.offers_notified,
            stats.offers_found,
            stats.duration,
        )
        self._update_status(format_cycle_summary(stats, self.settings))


__all__ = ["FlightChecker"]
