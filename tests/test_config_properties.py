"""Property-based tests for configuration management."""

from hypothesis import given
from hypothesis import strategies as st

from rss_notifier.config import FALSE_VALUES, TRUE_VALUES, Config

REQUIRED_ENV = {
    "DEEPL_API_KEY": "deepl-key",
    "OPENAI_API_KEY": "openai-key",
    "SLACK_WEBHOOK_URL": "https://hooks.slack.com/services/T000/B000/XXX",
}


def case_variants(values):
    return st.sampled_from(sorted(values)).flatmap(
        lambda v: st.sampled_from([v, v.upper(), v.capitalize()])
    )


class TestConfigProperties:
    """Property-based tests for Config class."""

    @given(
        st.lists(
            st.text(
                alphabet=st.characters(whitelist_categories=("Ll", "Nd")),
                min_size=1,
                max_size=20,
            ).map(lambda name: f"https://{name}.example.com/feed"),
            min_size=1,
            max_size=10,
        )
    )
    def test_configured_feeds_are_used_exactly(self, feed_urls):
        """The configured feed list is returned unchanged and in order."""
        config = Config(env={**REQUIRED_ENV, "FEED_URLS": ",".join(feed_urls)})

        assert config.poll.feed_urls == feed_urls

    @given(case_variants(TRUE_VALUES))
    def test_truthy_thread_flags(self, raw):
        config = Config(env={**REQUIRED_ENV, "SLACK_USE_THREADS": raw})

        assert config.slack.use_threads is True

    @given(case_variants(FALSE_VALUES))
    def test_falsy_thread_flags(self, raw):
        config = Config(env={**REQUIRED_ENV, "SLACK_USE_THREADS": raw})

        assert config.slack.use_threads is False

    @given(
        st.text(
            alphabet=st.characters(whitelist_categories=("Ll",)),
            min_size=1,
            max_size=12,
        ).filter(lambda s: s not in TRUE_VALUES and s not in FALSE_VALUES)
    )
    def test_unrecognized_thread_flag_keeps_default(self, raw):
        config = Config(env={**REQUIRED_ENV, "SLACK_USE_THREADS": raw})

        assert config.slack.use_threads is True

    @given(st.integers(min_value=1, max_value=10_000))
    def test_positive_interval_accepted(self, minutes):
        config = Config(
            env={**REQUIRED_ENV, "CHECK_INTERVAL_MINUTES": str(minutes)}
        )

        assert config.poll.check_interval_minutes == minutes
