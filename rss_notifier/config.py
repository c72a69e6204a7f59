"""Configuration management for RSS Translate Notifier."""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from .logging_config import create_execution_logger

DEFAULT_FEED_URL = "https://blog.bytebytego.com/feed"

TRUE_VALUES = {"true", "t", "yes", "y", "1", "on", "enable", "enabled"}
FALSE_VALUES = {"false", "f", "no", "n", "0", "off", "disable", "disabled"}


class ConfigError(ValueError):
    """Raised when a required setting is missing or invalid."""


@dataclass
class DeepLConfig:
    """Configuration for the DeepL translation API."""

    api_key: str
    api_url: str = "https://api-free.deepl.com/v2/translate"
    source_lang: str = "EN"
    target_lang: str = "JA"
    timeout: int = 30


@dataclass
class SummaryConfig:
    """Configuration for the summarization provider."""

    provider: str = "openai"
    openai_api_key: str = ""
    openai_model: str = "gpt-3.5-turbo"
    openai_base_url: str = "https://api.openai.com/v1"
    bedrock_model_id: str = "amazon.nova-micro-v1:0"
    region: str = "us-east-1"
    max_tokens: int = 200
    temperature: float = 0.3
    target_lang: str = "JA"
    timeout: int = 30


@dataclass
class SlackConfig:
    """Configuration for Slack delivery."""

    webhook_url: str
    channel: str = "#general"
    username: str = "RSS Notifier Bot"
    use_threads: bool = True
    bot_token: str = ""
    timezone: str = "Asia/Tokyo"
    timeout: int = 30


@dataclass
class PollConfig:
    """Configuration for feed polling and scheduling."""

    feed_urls: list[str] = field(default_factory=lambda: [DEFAULT_FEED_URL])
    check_interval_minutes: int = 30
    max_items_per_feed: int = 10
    lookback_hours: int = 24
    state_file: str = "last_checked_state.txt"
    state_max_entries: int = 1000
    selection_policy: str = ""  # empty: chosen by run mode
    item_delay_seconds: float = 1.0


class Config:
    """Main configuration manager."""

    def __init__(self, env: dict[str, str] | None = None, load_env_file: bool = True):
        """Initialize configuration from environment variables.

        Args:
            env: Mapping to read settings from (defaults to os.environ)
            load_env_file: Load a .env file into os.environ first, when present
        """
        self.logger = create_execution_logger("config")
        if env is None:
            if load_env_file and not load_dotenv():
                self.logger.info(".env file not found, using environment variables")
            env = dict(os.environ)
        self.env = env

        self.log_level = self._get("LOG_LEVEL", "INFO").upper()
        self.deepl = DeepLConfig(
            api_key=self._require("DEEPL_API_KEY"),
            api_url=self._get("DEEPL_API_URL", DeepLConfig.api_url),
            source_lang=self._get("SOURCE_LANG", "EN").upper(),
            target_lang=self._get("TARGET_LANG", "JA").upper(),
        )

        provider = self._get("SUMMARY_PROVIDER", "openai").lower()
        if provider not in ("openai", "bedrock"):
            raise ConfigError(
                f"SUMMARY_PROVIDER must be 'openai' or 'bedrock', got: {provider}"
            )
        self.summary = SummaryConfig(
            provider=provider,
            openai_api_key=(
                self._require("OPENAI_API_KEY")
                if provider == "openai"
                else self._get("OPENAI_API_KEY", "")
            ),
            openai_model=self._get("OPENAI_MODEL", SummaryConfig.openai_model),
            openai_base_url=self._get(
                "OPENAI_BASE_URL", SummaryConfig.openai_base_url
            ),
            bedrock_model_id=self._get(
                "BEDROCK_MODEL_ID", SummaryConfig.bedrock_model_id
            ),
            region=self._get(
                "AWS_REGION", self._get("AWS_DEFAULT_REGION", SummaryConfig.region)
            ),
            target_lang=self.deepl.target_lang,
        )

        self.slack = SlackConfig(
            webhook_url=self._require("SLACK_WEBHOOK_URL"),
            channel=self._get("SLACK_CHANNEL", SlackConfig.channel),
            username=self._get("SLACK_USERNAME", SlackConfig.username),
            use_threads=self._get_bool("SLACK_USE_THREADS", True),
            bot_token=self._get("SLACK_BOT_TOKEN", ""),
            timezone=self._get("TIMEZONE", SlackConfig.timezone),
        )

        policy = self._get("SELECTION_POLICY", "").lower()
        if policy not in ("", "novelty", "recency"):
            raise ConfigError(
                f"SELECTION_POLICY must be 'novelty' or 'recency', got: {policy}"
            )
        self.poll = PollConfig(
            feed_urls=self.get_feed_urls(),
            check_interval_minutes=self._get_int("CHECK_INTERVAL_MINUTES", 30),
            max_items_per_feed=self._get_int("MAX_ITEMS_PER_FEED", 10),
            lookback_hours=self._get_int("LOOKBACK_HOURS", 24),
            state_file=self._get("STATE_FILE", PollConfig.state_file),
            state_max_entries=self._get_int("STATE_MAX_ENTRIES", 1000),
            selection_policy=policy,
            item_delay_seconds=self._get_float("ITEM_DELAY_SECONDS", 1.0),
        )
        self.validate()

    @classmethod
    def from_env(cls) -> "Config":
        """Build configuration from the process environment and .env file."""
        return cls()

    def validate(self) -> None:
        """Check cross-field constraints."""
        if self.poll.check_interval_minutes <= 0:
            raise ConfigError("CHECK_INTERVAL_MINUTES must be greater than 0")
        if self.poll.max_items_per_feed <= 0:
            raise ConfigError("MAX_ITEMS_PER_FEED must be greater than 0")
        if self.poll.lookback_hours <= 0:
            raise ConfigError("LOOKBACK_HOURS must be greater than 0")
        if self.poll.state_max_entries <= 0:
            raise ConfigError("STATE_MAX_ENTRIES must be greater than 0")

    def get_feed_urls(self) -> list[str]:
        """Get feed URLs from FEED_URLS (comma separated) or FEED_URL."""
        raw = self._get("FEED_URLS", "") or self._get("FEED_URL", "")
        if not raw:
            return [DEFAULT_FEED_URL]

        urls = [url.strip() for url in raw.split(",") if url.strip()]
        if not urls:
            raise ConfigError("FEED_URLS does not contain any URL")
        return urls

    def _get(self, key: str, default: str) -> str:
        value = self.env.get(key, "")
        return value.strip() if value and value.strip() else default

    def _require(self, key: str) -> str:
        value = self.env.get(key, "").strip()
        if not value:
            raise ConfigError(f"Environment variable {key} is required but not set")
        return value

    def _get_int(self, key: str, default: int) -> int:
        raw = self._get(key, "")
        if not raw:
            return default
        try:
            return int(raw)
        except ValueError:
            self.logger.warning(
                f"Invalid value for {key}, using default: {default}",
                key=key,
                value=raw,
            )
            return default

    def _get_float(self, key: str, default: float) -> float:
        raw = self._get(key, "")
        if not raw:
            return default
        try:
            return float(raw)
        except ValueError:
            self.logger.warning(
                f"Invalid value for {key}, using default: {default}",
                key=key,
                value=raw,
            )
            return default

    def _get_bool(self, key: str, default: bool) -> bool:
        raw = self._get(key, "").lower()
        if not raw:
            return default
        if raw in TRUE_VALUES:
            return True
        if raw in FALSE_VALUES:
            return False
        self.logger.warning(
            f"Invalid boolean value for {key}: {raw}, using default: {default}",
            key=key,
            value=raw,
        )
        return default
