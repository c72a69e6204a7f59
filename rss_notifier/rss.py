"""RSS feed polling for RSS Translate Notifier."""

import calendar
import re
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

import feedparser
import requests
from bs4 import BeautifulSoup, ParserRejectedMarkup
from dateutil import parser as date_parser

from .logging_config import create_execution_logger
from .models import FeedItem
from .state import SeenItemState

BR_PATTERN = re.compile(r"<br\s*/?>", re.IGNORECASE)


def resolve_item_id(guid: str | None, link: str | None) -> str:
    """Return the dedup identifier: the GUID when present, else the link.

    Whitespace runs collapse to a single space so the identifier fits on one
    line of the state file.
    """
    for value in (guid, link):
        if value and value.strip():
            return " ".join(value.split())
    return ""


def strip_tags(text: str) -> str:
    """Remove every ``<...>`` span, including nested or malformed ones."""
    while True:
        start = text.find("<")
        if start == -1:
            return text
        end = text.find(">", start)
        if end == -1:
            return text
        text = text[:start] + text[end + 1 :]


def clean_text(text: str | None) -> str:
    """Strip HTML markup and collapse blank lines.

    ``<br>`` variants become line breaks, every line is trimmed and empty
    lines are dropped. The result never contains a ``<...>`` span.
    """
    if not text:
        return ""

    text = BR_PATTERN.sub("\n", text)

    if "<" in text and ">" in text:
        try:
            soup = BeautifulSoup(text, "html.parser")
        except ParserRejectedMarkup:
            soup = None
        if soup is not None:
            for script in soup(["script", "style"]):
                script.decompose()
            text = soup.get_text()

    text = strip_tags(text)

    lines = (line.strip() for line in text.splitlines())
    return "\n".join(line for line in lines if line)


class SelectionPolicy:
    """Decides which parsed feed items are handed to the pipeline."""

    name = "base"

    def accept(self, item: FeedItem) -> bool:
        raise NotImplementedError


class NoveltyPolicy(SelectionPolicy):
    """Accept items whose identifier was never seen, marking them as seen."""

    name = "novelty"

    def __init__(self, state: SeenItemState):
        self.state = state

    def accept(self, item: FeedItem) -> bool:
        if self.state.is_seen(item.guid):
            return False
        self.state.mark_seen(item.guid)
        return True


class RecencyPolicy(SelectionPolicy):
    """Accept items published within a lookback window, without any state."""

    name = "recency"

    def __init__(self, window: timedelta = timedelta(hours=24), now=None):
        """Initialize the policy.

        Args:
            window: Maximum age of an accepted item
            now: Optional clock returning an aware datetime (for tests)
        """
        self.window = window
        self._now = now or (lambda: datetime.now(UTC))

    def accept(self, item: FeedItem) -> bool:
        return self._now() - item.published <= self.window


class FeedPoller:
    """Fetches feeds, normalizes entries and applies a selection policy."""

    def __init__(
        self,
        policy: SelectionPolicy,
        max_items_per_feed: int = 10,
        timeout: int = 30,
        execution_id: str | None = None,
    ):
        """Initialize FeedPoller.

        Args:
            policy: Selection policy deciding which items are new
            max_items_per_feed: Maximum number of selected items per feed
            timeout: HTTP request timeout in seconds
            execution_id: Execution ID for logging context
        """
        self.policy = policy
        self.max_items_per_feed = max_items_per_feed
        self.timeout = timeout
        self.logger = create_execution_logger("feed_poller", execution_id)
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": "RSS-Translate-Notifier/1.0"})
        self.last_errors: dict[str, str] = {}

        self.logger.info(
            "FeedPoller initialized",
            policy=policy.name,
            max_items_per_feed=max_items_per_feed,
            timeout=timeout,
        )

    def poll(self, feed_urls: list[str]) -> list[FeedItem]:
        """Fetch every feed and return the selected items, in feed order.

        A failing feed is logged, recorded in ``last_errors`` and skipped.
        """
        self.last_errors = {}
        selected: list[FeedItem] = []

        for feed_url in feed_urls:
            try:
                items = self.fetch_feed(feed_url)
            except Exception as e:
                self.logger.error(
                    f"Failed to fetch feed {feed_url}: {e}",
                    feed_url=feed_url,
                    error=str(e),
                )
                self.last_errors[feed_url] = str(e)
                continue

            new_items = self.select(items)
            self.logger.info(
                f"Processed feed: {len(new_items)} new items of {len(items)}",
                feed_url=feed_url,
                items_count=len(items),
                new_items_count=len(new_items),
            )
            selected.extend(new_items)

        return selected

    def select(self, items: list[FeedItem]) -> list[FeedItem]:
        """Apply the policy to one feed's items, up to the per-feed cap."""
        selected = []
        for item in items:
            if len(selected) >= self.max_items_per_feed:
                break
            if self.policy.accept(item):
                selected.append(item)
                self.logger.info("New item found", item_title=item.title)
        return selected

    def fetch_feed(self, feed_url: str) -> list[FeedItem]:
        """Download and parse a single feed.

        Raises:
            requests.RequestException: If the download fails
        """
        self.logger.info("Downloading feed content", feed_url=feed_url)
        response = self.session.get(feed_url, timeout=self.timeout)
        response.raise_for_status()

        feed = feedparser.parse(response.content)
        if feed.bozo and not feed.entries:
            raise ValueError(
                f"Unable to parse feed {feed_url}: {feed.get('bozo_exception')}"
            )
        if feed.bozo:
            self.logger.warning(
                f"Feed parsing warning for {feed_url}: {feed.get('bozo_exception')}",
                feed_url=feed_url,
            )

        items = []
        for entry in feed.entries:
            try:
                items.append(self.normalize_item(entry, feed_url))
            except Exception as e:
                self.logger.warning(
                    f"Failed to normalize entry from {feed_url}: {e}",
                    feed_url=feed_url,
                    error=str(e),
                )

        self.logger.info(
            f"Found {len(items)} items in feed",
            feed_url=feed_url,
            total_entries=len(feed.entries),
        )
        return items

    def normalize_item(self, entry: Mapping[str, Any], feed_url: str) -> FeedItem:
        """Normalize a raw feedparser entry into a FeedItem."""
        link = entry.get("link") or ""
        guid = entry.get("id") or entry.get("guid") or ""

        description = entry.get("summary") or entry.get("description") or ""
        if not description and entry.get("content"):
            description = entry["content"][0].get("value", "")

        return FeedItem(
            title=clean_text(entry.get("title") or ""),
            description=clean_text(description),
            link=link,
            published=self.resolve_published(entry),
            guid=resolve_item_id(guid, link),
            feed_url=feed_url,
        )

    def resolve_published(self, entry: Mapping[str, Any]) -> datetime:
        """Resolve the publish time: published, then updated, then now."""
        for key in ("published_parsed", "updated_parsed"):
            parsed = entry.get(key)
            if parsed:
                return datetime.fromtimestamp(calendar.timegm(parsed), UTC)

        for key in ("published", "updated"):
            raw = entry.get(key)
            if not raw:
                continue
            try:
                published = date_parser.parse(raw)
            except (ValueError, OverflowError):
                continue
            if published.tzinfo is None:
                published = published.replace(tzinfo=UTC)
            return published

        return datetime.now(UTC)
