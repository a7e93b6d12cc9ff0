from __future__ import annotations

import asyncio
import logging
import threading
import time
from datetime import timedelta
from typing import Any, Awaitable, Callable, Optional, TypeVar

from telegram import Bot, LinkPreviewOptions
from telegram.constants import ParseMode
from telegram.error import RetryAfter, TelegramError

from .backoff import retry_call
from .errors import DeliveryError, RateLimitError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Forum "General" topic: posting there must omit message_thread_id.
_GENERAL_TOPICS = {"", "1"}


def thread_id(topic_id: str) -> Optional[int]:
    """Return the ``message_thread_id`` for *topic_id*, or ``None`` for General."""
    topic_id = (topic_id or "").strip()
    if topic_id in _GENERAL_TOPICS:
        return None
    return int(topic_id)


def _seconds(value: Any) -> float:
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


class TelegramNotifier:
    """Posts messages to a Telegram forum chat with two topics.

    ``devlogs`` receives lifecycle and diagnostic messages, ``found``
    receives flight alerts. The python-telegram-bot coroutines run on a
    private event loop so callers stay synchronous.
    """

    def __init__(
        self,
        token: str,
        chat_id: str,
        devlogs_topic_id: str,
        found_topic_id: str,
        *,
        bot: Any = None,
        max_attempts: int = 6,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        send_interval_s: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.bot = bot if bot is not None else Bot(token=token)
        self.chat_id = chat_id
        self.devlogs_topic_id = devlogs_topic_id
        self.found_topic_id = found_topic_id
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.send_interval_s = send_interval_s
        self._sleep = sleep
        self._loop = asyncio.new_event_loop()
        self._initialized = False
        self._closed = False
        # the loop is driven by whichever thread posts; one call at a time
        self._lock = threading.RLock()

    # ──────────────────────────────────────────────────────────

    def _run(self, factory: Callable[[], Awaitable[T]]) -> T:
        """Run one Bot API call, retrying on Telegram rate limits."""

        def attempt() -> T:
            with self._lock:
                if self._closed:
                    raise DeliveryError("Telegram notifier is closed")
                return self._call(factory)

        try:
            return retry_call(
                attempt,
                attempts=self.max_attempts,
                base_delay=self.base_delay,
                max_delay=self.max_delay,
                retry_on=(RateLimitError,),
                sleep=self._sleep,
            )
        except RateLimitError as exc:
            raise DeliveryError(
                f"Exceeded {self.max_attempts} attempts against Telegram rate limit"
            ) from exc

    def _call(self, factory: Callable[[], Awaitable[T]]) -> T:
        try:
            if not self._initialized:
                self._loop.run_until_complete(self.bot.initialize())
                self._initialized = True
            return self._loop.run_until_complete(factory())
        except RetryAfter as exc:
            raise RateLimitError(
                f"Telegram flood control: {exc}",
                retry_after=_seconds(exc.retry_after),
            ) from exc
        except TelegramError as exc:
            raise DeliveryError(f"Telegram API error: {exc}") from exc

    def send(self, text: str, topic_id: str) -> int:
        """Post *text* to *topic_id* and return the new message id."""
        message = self._run(
            lambda: self.bot.send_message(
                chat_id=self.chat_id,
                text=text,
                parse_mode=ParseMode.HTML,
                link_preview_options=LinkPreviewOptions(is_disabled=True),
                message_thread_id=thread_id(topic_id),
            )
        )
        # stay below Telegram's per-chat flood limits
        if self.send_interval_s:
            self._sleep(self.send_interval_s)
        return message.message_id

    def edit(self, message_id: int, text: str) -> None:
        """Replace the text of an already posted message."""
        self._run(
            lambda: self.bot.edit_message_text(
                text=text,
                chat_id=self.chat_id,
                message_id=message_id,
                parse_mode=ParseMode.HTML,
                link_preview_options=LinkPreviewOptions(is_disabled=True),
            )
        )

    def devlog(self, text: str) -> int:
        return self.send(text, self.devlogs_topic_id)

    def found(self, text: str) -> int:
        return self.send(text, self.found_topic_id)

    def close(self) -> None:
        """Shut the bot down. Later posts raise :class:`DeliveryError`."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            try:
                if self._initialized:
                    self._loop.run_until_complete(self.bot.shutdown())
            except TelegramError as exc:
                logger.warning("Telegram shutdown failed: %s", exc)
            finally:
                self._initialized = False
                self._loop.close()


__all__ = ["TelegramNotifier", "thread_id"]
