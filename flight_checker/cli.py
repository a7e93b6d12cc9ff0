from __future__ import annotations

import logging
import signal
import sys
from typing import List

import click

from .airlabs_client import AirLabsClient, OfferEnricher
from .aviasales_fetcher import AviasalesFetcher
from .checker import FlightChecker
from .config import Settings, load_settings
from .errors import ConfigError
from .notifier import TelegramNotifier
from .scheduler import build_scheduler

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str, log_file: str) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.insert(0, logging.FileHandler(log_file))
    logging.basicConfig(level=level, handlers=handlers, format=LOG_FORMAT, force=True)


def build_checker(settings: Settings) -> FlightChecker:
    """Wire every component from *settings*."""
    fetcher = AviasalesFetcher(
        settings.travelpayouts_token,
        timeout=settings.request_timeout_s,
        currency=settings.currency,
    )
    enricher = None
    if settings.enrichment_enabled:
        enricher = OfferEnricher(
            AirLabsClient(settings.airlabs_api_key, timeout=settings.request_timeout_s)
        )
    else:
        logger.info("AIRLABS_API_KEY not set – enrichment disabled")
    notifier = TelegramNotifier(
        settings.telegram_token,
        settings.telegram_chat_id,
        settings.devlogs_topic_id,
        settings.found_topic_id,
        send_interval_s=settings.send_interval_s,
    )
    return FlightChecker(settings, fetcher, notifier, enricher)


@click.command()
@click.option("--once", is_flag=True, help="Run a single search cycle and exit")
def cli(once: bool) -> None:
    """Watch the configured route for direct flights and post them to Telegram."""
    try:
        settings = load_settings()
    except ConfigError as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(2)

    setup_logging(settings.log_level, settings.log_file)
    checker = build_checker(settings)

    checker.startup()
    try:
        if once:
            checker.run_cycle()
            return

        sched = build_scheduler(checker, settings.poll_interval_h)
        signal.signal(signal.SIGTERM, lambda signum, frame: sched.shutdown(wait=False))
        try:
            sched.start()
        except (KeyboardInterrupt, SystemExit):
            logger.info("Interrupted")
            if sched.running:
                sched.shutdown(wait=False)
    finally:
        checker.shutdown()


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
