"""Data models for RSS Translate Notifier."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class FeedItem:
    """Represents a single RSS/Atom feed item."""

    title: str
    description: str
    link: str
    published: datetime
    guid: str  # GUID, or the link when the feed omits it
    feed_url: str


@dataclass(frozen=True)
class TranslationResult:
    """Translated and summarized article, ready for notification."""

    original_title: str
    translated_title: str
    original_description: str
    translated_description: str
    summary: str
    link: str


@dataclass
class SlackField:
    """A title/value pair rendered inside an attachment."""

    title: str
    value: str
    short: bool = False

    def to_payload(self) -> dict[str, Any]:
        return {"title": self.title, "value": self.value, "short": self.short}


@dataclass
class SlackAttachment:
    """Slack legacy message attachment."""

    color: str = ""
    title: str = ""
    title_link: str = ""
    text: str = ""
    fields: list[SlackField] = field(default_factory=list)
    footer: str = ""
    ts: int | None = None
    mrkdwn_in: list[str] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "color": self.color,
            "title": self.title,
            "title_link": self.title_link,
            "text": self.text,
            "footer": self.footer,
            "ts": self.ts,
            "mrkdwn_in": self.mrkdwn_in,
        }
        if self.fields:
            payload["fields"] = [f.to_payload() for f in self.fields]
        return {key: value for key, value in payload.items() if value}


@dataclass
class SlackMessage:
    """Payload posted to the Slack webhook or Web API."""

    channel: str = ""
    username: str = ""
    icon_emoji: str = ""
    text: str = ""
    attachments: list[SlackAttachment] = field(default_factory=list)
    thread_ts: str = ""

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "channel": self.channel,
            "username": self.username,
            "icon_emoji": self.icon_emoji,
            "text": self.text,
            "thread_ts": self.thread_ts,
        }
        if self.attachments:
            payload["attachments"] = [a.to_payload() for a in self.attachments]
        return {key: value for key, value in payload.items() if value}
