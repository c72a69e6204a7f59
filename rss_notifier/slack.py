"""Slack notifier for RSS Translate Notifier."""

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from functools import partial

import requests
from dateutil import tz

from .config import SlackConfig
from .logging_config import ExecutionLogger, create_execution_logger
from .models import SlackAttachment, SlackField, SlackMessage, TranslationResult
from .pipeline import SUMMARY_PLACEHOLDER

SLACK_POST_MESSAGE_URL = "https://slack.com/api/chat.postMessage"
MAX_BATCH_ARTICLES = 5
FOOTER = "RSS Translate Notifier"


class NotificationError(RuntimeError):
    """Raised when Slack rejects or fails to receive a message."""


@dataclass
class DeliveryStrategy:
    """One delivery tier: a name and a zero-argument send callable."""

    name: str
    send: Callable[[], None]


def deliver_with_fallback(
    strategies: list[DeliveryStrategy], logger: ExecutionLogger, **context
) -> str | None:
    """Try each strategy in order until one succeeds.

    Returns:
        Name of the tier that delivered, or None when every tier failed
    """
    for position, strategy in enumerate(strategies):
        try:
            strategy.send()
        except NotificationError as e:
            logger.error(
                f"{strategy.name} notification failed: {e}",
                tier=strategy.name,
                error=str(e),
                **context,
            )
            if position + 1 < len(strategies):
                logger.info(
                    f"Falling back to {strategies[position + 1].name} notification",
                    tier=strategies[position + 1].name,
                    **context,
                )
            continue

        if position > 0:
            logger.info(
                f"Fallback {strategy.name} notification sent",
                tier=strategy.name,
                **context,
            )
        else:
            logger.info(
                f"{strategy.name} notification sent", tier=strategy.name, **context
            )
        return strategy.name

    logger.error("All notification tiers failed", **context)
    return None


def truncate_text(text: str, max_len: int) -> str:
    """Truncate ``text`` to ``max_len``, preferring a word boundary.

    The cut moves back to the last space when that space lies beyond half
    of ``max_len``. An ellipsis is appended to truncated text.
    """
    if len(text) <= max_len:
        return text

    truncated = text[:max_len]
    last_space = truncated.rfind(" ")
    if last_space > max_len // 2:
        truncated = truncated[:last_space]

    return truncated + "..."


class SlackNotifier:
    """Formats translation results and delivers them to Slack."""

    def __init__(
        self,
        config: SlackConfig,
        notify_delay: float | None = None,
        execution_id: str | None = None,
    ):
        """Initialize the notifier.

        Args:
            config: Slack configuration
            notify_delay: Seconds between individual sends (default 2s
                threaded, 1s flat)
            execution_id: Execution ID for logging context
        """
        self.config = config
        self.logger = create_execution_logger("slack_notifier", execution_id)
        self.session = requests.Session()
        self.timezone = tz.gettz(config.timezone) or UTC

        # A webhook reply is a bare "ok": no message ts to thread under.
        self.threads_enabled = config.use_threads and bool(config.bot_token)
        if config.use_threads and not config.bot_token:
            self.logger.warning(
                "Threaded notifications need SLACK_BOT_TOKEN; "
                "webhook delivery will post flat messages"
            )

        if notify_delay is None:
            notify_delay = 2.0 if self.threads_enabled else 1.0
        self.notify_delay = notify_delay

        self.logger.info(
            "SlackNotifier initialized",
            channel=config.channel,
            threads_enabled=self.threads_enabled,
            notify_delay=notify_delay,
        )

    def single_strategies(self, result: TranslationResult) -> list[DeliveryStrategy]:
        """Ordered delivery tiers for one article."""
        strategies = []
        if self.threads_enabled:
            strategies.append(
                DeliveryStrategy("threaded", partial(self.send_threaded, result))
            )
        strategies.append(DeliveryStrategy("flat", partial(self.send_flat, result)))
        return strategies

    def send_single(self, result: TranslationResult, **context) -> bool:
        """Deliver one article, falling back from threaded to flat."""
        tier = deliver_with_fallback(
            self.single_strategies(result),
            self.logger,
            item_title=result.translated_title,
            **context,
        )
        return tier is not None

    def send_batch(self, results: list[TranslationResult]) -> bool:
        """Deliver several articles as one message, else one by one."""
        if not results:
            return True

        strategies = [
            DeliveryStrategy("batch", partial(self.send_batch_message, results)),
            DeliveryStrategy("individual", partial(self.send_individually, results)),
        ]
        tier = deliver_with_fallback(strategies, self.logger, total=len(results))
        return tier is not None

    def send_individually(self, results: list[TranslationResult]) -> None:
        """Send each article with the single-article tiers, pacing the sends.

        Raises:
            NotificationError: If no article could be delivered
        """
        delivered = 0
        total = len(results)
        for index, result in enumerate(results, start=1):
            if index > 1:
                time.sleep(self.notify_delay)
            if self.send_single(result, index=index, total=total):
                delivered += 1
            else:
                self.logger.error(
                    f"Article {index}/{total} notification failed",
                    index=index,
                    total=total,
                    item_title=result.translated_title,
                )

        if delivered == 0:
            raise NotificationError(f"none of {total} articles could be delivered")
        self.logger.info(
            f"Delivered {delivered}/{total} articles individually",
            delivered=delivered,
            total=total,
        )

    def send_error(self, error_message: str) -> bool:
        """Post an error notification. Best effort: failures are logged only."""
        message = self._message(
            icon_emoji=":warning:",
            attachments=[
                SlackAttachment(
                    color="danger",
                    title="RSS notifier encountered an error",
                    text=error_message,
                    fields=[SlackField("Occurred at", self._now_text(), short=True)],
                    footer=FOOTER,
                    ts=int(time.time()),
                    mrkdwn_in=["text"],
                )
            ],
        )
        try:
            self.post_webhook(message)
        except NotificationError as e:
            self.logger.warning(f"Failed to send error notification: {e}", error=str(e))
            return False
        return True

    def send_startup(self, feed_urls: list[str] | None = None) -> bool:
        """Announce that monitoring has started."""
        fields = [SlackField("Started at", self._now_text(), short=True)]
        if feed_urls:
            fields.append(SlackField("Feed URLs", "\n".join(feed_urls), short=True))

        message = self._message(
            icon_emoji=":rocket:",
            attachments=[
                SlackAttachment(
                    color="good",
                    title="RSS notifier started",
                    text="Feed monitoring has started.",
                    fields=fields,
                    footer=FOOTER,
                    ts=int(time.time()),
                    mrkdwn_in=["text"],
                )
            ],
        )
        try:
            self.post_webhook(message)
        except NotificationError as e:
            self.logger.warning(
                f"Failed to send startup notification: {e}", error=str(e)
            )
            return False
        return True

    def test_connection(self) -> None:
        """Post a connectivity check message.

        Raises:
            NotificationError: If the webhook does not answer "ok"
        """
        self.logger.info("Testing Slack connection")
        self.post_webhook(
            self._message(
                icon_emoji=":white_check_mark:",
                text="RSS notifier connection test. If you can read this, "
                "notifications are working.",
            )
        )

    def send_flat(self, result: TranslationResult) -> None:
        """Post one message with title, summary and detail fields."""
        self.post_webhook(self.build_article_message(result))

    def send_threaded(self, result: TranslationResult) -> None:
        """Post the title, then the summary as a reply in its thread."""
        thread_ts = self.post_api(self.build_title_message(result))
        summary_message = self.build_summary_message(result)
        summary_message.thread_ts = thread_ts
        self.post_api(summary_message)

    def send_batch_message(self, results: list[TranslationResult]) -> None:
        self.post_webhook(self.build_batch_message(results))

    def build_article_message(self, result: TranslationResult) -> SlackMessage:
        return self._message(
            icon_emoji=":newspaper:",
            text=":newspaper: *New article published!*",
            attachments=[
                SlackAttachment(
                    color="#36a64f",
                    title=result.translated_title,
                    title_link=result.link,
                    text=f"*Summary*\n{result.summary or SUMMARY_PLACEHOLDER}",
                    fields=[
                        SlackField("Original title", result.original_title),
                        SlackField(
                            "Details",
                            truncate_text(result.translated_description, 300),
                        ),
                    ],
                    footer=FOOTER,
                    ts=int(time.time()),
                    mrkdwn_in=["text", "fields"],
                )
            ],
        )

    def build_title_message(self, result: TranslationResult) -> SlackMessage:
        return self._message(
            icon_emoji=":newspaper:",
            text=":newspaper: *New article published!*",
            attachments=[
                SlackAttachment(
                    color="#36a64f",
                    title=result.translated_title,
                    title_link=result.link,
                    fields=[SlackField("Original title", result.original_title)],
                    footer=f"{FOOTER} - see the thread below for the summary",
                    ts=int(time.time()),
                    mrkdwn_in=["text", "fields"],
                )
            ],
        )

    def build_summary_message(self, result: TranslationResult) -> SlackMessage:
        return self._message(
            icon_emoji=":memo:",
            text=f"*Article summary*\n{result.summary or SUMMARY_PLACEHOLDER}",
            attachments=[
                SlackAttachment(
                    color="#2196F3",
                    title="Details",
                    text=truncate_text(result.translated_description, 600),
                    fields=[
                        SlackField(
                            "Article link",
                            f"<{result.link}|Read the article>",
                            short=True,
                        )
                    ],
                    footer=FOOTER,
                    ts=int(time.time()),
                    mrkdwn_in=["text", "fields"],
                )
            ],
        )

    def build_batch_message(self, results: list[TranslationResult]) -> SlackMessage:
        """Header attachment plus at most MAX_BATCH_ARTICLES article attachments."""
        attachments = [
            SlackAttachment(
                color="#36a64f",
                title=f":newspaper: {len(results)} new articles published!",
                footer=FOOTER,
                ts=int(time.time()),
                mrkdwn_in=["text"],
            )
        ]

        shown = results[:MAX_BATCH_ARTICLES]
        for index, result in enumerate(shown):
            text = result.summary or SUMMARY_PLACEHOLDER
            if index < len(shown) - 1:
                text += "\n---"
            attachments.append(
                SlackAttachment(
                    color="#2196F3",
                    title=result.translated_title,
                    title_link=result.link,
                    text=text,
                    fields=[SlackField("Original title", result.original_title)],
                    mrkdwn_in=["text"],
                )
            )

        return self._message(icon_emoji=":newspaper:", attachments=attachments)

    def post_webhook(self, message: SlackMessage) -> None:
        """POST a message to the incoming webhook.

        Raises:
            NotificationError: Unless Slack answers HTTP 200 with body "ok"
        """
        try:
            response = self.session.post(
                self.config.webhook_url,
                json=message.to_payload(),
                timeout=self.config.timeout,
            )
        except requests.RequestException as e:
            raise NotificationError(f"failed to send request: {e}") from e

        if response.status_code != 200:
            raise NotificationError(
                f"Slack API error: status={response.status_code}, body={response.text}"
            )
        if response.text.strip() != "ok":
            raise NotificationError(f"unexpected Slack response: {response.text}")

    def post_api(self, message: SlackMessage) -> str:
        """POST a message through chat.postMessage and return its ts.

        Raises:
            NotificationError: If the call fails or Slack reports ok=false
        """
        try:
            response = self.session.post(
                SLACK_POST_MESSAGE_URL,
                json=message.to_payload(),
                headers={"Authorization": f"Bearer {self.config.bot_token}"},
                timeout=self.config.timeout,
            )
        except requests.RequestException as e:
            raise NotificationError(f"failed to send request: {e}") from e

        if response.status_code != 200:
            raise NotificationError(
                f"Slack API error: status={response.status_code}, body={response.text}"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise NotificationError(f"unexpected Slack response: {response.text}") from e

        if not body.get("ok") or not body.get("ts"):
            raise NotificationError(f"Slack API error: {body.get('error', body)}")
        return body["ts"]

    def _message(self, **kwargs) -> SlackMessage:
        return SlackMessage(
            channel=self.config.channel, username=self.config.username, **kwargs
        )

    def _now_text(self) -> str:
        return datetime.now(self.timezone).strftime("%Y-%m-%d %H:%M:%S %Z")
