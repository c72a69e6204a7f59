"""Unit tests for configuration management."""

import os
from unittest.mock import patch

import pytest

from rss_notifier.config import DEFAULT_FEED_URL, Config, ConfigError

REQUIRED_ENV = {
    "DEEPL_API_KEY": "deepl-key",
    "OPENAI_API_KEY": "openai-key",
    "SLACK_WEBHOOK_URL": "https://hooks.slack.com/services/T000/B000/XXX",
}


def make_config(**overrides) -> Config:
    return Config(env={**REQUIRED_ENV, **overrides})


class TestConfigUnit:
    """Unit tests for Config class."""

    def test_defaults(self):
        """Optional settings fall back to their documented defaults."""
        config = make_config()

        assert config.poll.feed_urls == [DEFAULT_FEED_URL]
        assert config.poll.check_interval_minutes == 30
        assert config.poll.max_items_per_feed == 10
        assert config.poll.lookback_hours == 24
        assert config.poll.state_file == "last_checked_state.txt"
        assert config.poll.state_max_entries == 1000
        assert config.poll.selection_policy == ""
        assert config.deepl.api_url == "https://api-free.deepl.com/v2/translate"
        assert config.deepl.source_lang == "EN"
        assert config.deepl.target_lang == "JA"
        assert config.summary.provider == "openai"
        assert config.summary.openai_model == "gpt-3.5-turbo"
        assert config.slack.channel == "#general"
        assert config.slack.use_threads is True
        assert config.slack.bot_token == ""
        assert config.log_level == "INFO"

    @pytest.mark.parametrize(
        "missing", ["DEEPL_API_KEY", "OPENAI_API_KEY", "SLACK_WEBHOOK_URL"]
    )
    def test_missing_required_setting_is_fatal(self, missing):
        env = {k: v for k, v in REQUIRED_ENV.items() if k != missing}

        with pytest.raises(ConfigError, match=missing):
            Config(env=env)

    def test_blank_required_setting_is_fatal(self):
        with pytest.raises(ConfigError, match="SLACK_WEBHOOK_URL"):
            make_config(SLACK_WEBHOOK_URL="   ")

    def test_bedrock_provider_does_not_need_openai_key(self):
        env = {k: v for k, v in REQUIRED_ENV.items() if k != "OPENAI_API_KEY"}
        env.update(SUMMARY_PROVIDER="bedrock", AWS_REGION="eu-west-1")

        config = Config(env=env)

        assert config.summary.provider == "bedrock"
        assert config.summary.region == "eu-west-1"

    def test_unknown_provider_rejected(self):
        with pytest.raises(ConfigError, match="SUMMARY_PROVIDER"):
            make_config(SUMMARY_PROVIDER="llama")

    def test_unknown_selection_policy_rejected(self):
        with pytest.raises(ConfigError, match="SELECTION_POLICY"):
            make_config(SELECTION_POLICY="random")

    def test_feed_urls_comma_separated(self):
        config = make_config(
            FEED_URLS=" https://a.example.com/feed , https://b.example.com/rss,, "
        )

        assert config.poll.feed_urls == [
            "https://a.example.com/feed",
            "https://b.example.com/rss",
        ]

    def test_single_feed_url_variable(self):
        config = make_config(FEED_URL="https://single.example.com/feed")

        assert config.poll.feed_urls == ["https://single.example.com/feed"]

    def test_feed_urls_with_only_separators_rejected(self):
        with pytest.raises(ConfigError):
            make_config(FEED_URLS=", ,")

    def test_invalid_integer_falls_back_to_default(self):
        config = make_config(CHECK_INTERVAL_MINUTES="soon", MAX_ITEMS_PER_FEED="x")

        assert config.poll.check_interval_minutes == 30
        assert config.poll.max_items_per_feed == 10

    def test_non_positive_interval_rejected(self):
        with pytest.raises(ConfigError, match="CHECK_INTERVAL_MINUTES"):
            make_config(CHECK_INTERVAL_MINUTES="0")

    def test_languages_are_uppercased_and_shared(self):
        config = make_config(SOURCE_LANG="en", TARGET_LANG="de")

        assert config.deepl.source_lang == "EN"
        assert config.deepl.target_lang == "DE"
        assert config.summary.target_lang == "DE"

    def test_from_env_reads_process_environment(self):
        env = {**REQUIRED_ENV, "SLACK_CHANNEL": "#news"}

        with (
            patch.dict(os.environ, env, clear=True),
            patch("rss_notifier.config.load_dotenv", return_value=False),
        ):
            config = Config.from_env()

        assert config.slack.channel == "#news"
