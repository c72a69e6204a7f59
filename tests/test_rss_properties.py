"""Property-based tests for the feed poller."""

import re
import tempfile
from datetime import UTC, datetime, timedelta
from pathlib import Path

from hypothesis import given
from hypothesis import strategies as st

from rss_notifier.models import FeedItem
from rss_notifier.rss import (
    FeedPoller,
    NoveltyPolicy,
    RecencyPolicy,
    clean_text,
    resolve_item_id,
    strip_tags,
)
from rss_notifier.state import SeenItemState

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)
TAG_SPAN = re.compile(r"<[^>]*>")

markup = st.text(
    alphabet=st.sampled_from(list("<>/ab pbr\n\t&;\"'=")) | st.characters(),
    max_size=200,
)

links = st.text(
    alphabet=st.characters(whitelist_categories=("Ll", "Nd")), min_size=1, max_size=20
).map(lambda path: f"https://example.com/{path}")


def make_item(guid: str, published: datetime = NOW) -> FeedItem:
    return FeedItem(
        title=f"Title {guid}",
        description="",
        link=f"https://example.com/{guid}",
        published=published,
        guid=guid,
        feed_url="https://example.com/feed",
    )


class TestFeedPollerProperties:
    """Property-based tests for FeedPoller."""

    @given(markup)
    def test_clean_text_leaves_no_tag_spans(self, text):
        """Cleaning terminates on any markup and leaves no <...> span."""
        cleaned = clean_text(text)

        assert TAG_SPAN.search(cleaned) is None

    @given(markup)
    def test_strip_tags_leaves_no_tag_spans(self, text):
        assert TAG_SPAN.search(strip_tags(text)) is None

    @given(markup)
    def test_clean_text_has_no_blank_or_padded_lines(self, text):
        cleaned = clean_text(text)

        for line in cleaned.split("\n") if cleaned else []:
            assert line
            assert line == line.strip()

    @given(links, st.sampled_from(["", None, "   "]))
    def test_empty_guid_uses_link(self, link, guid):
        assert resolve_item_id(guid, link) == link

    @given(st.text(min_size=1, max_size=50), links)
    def test_identifier_survives_state_file(self, guid, link):
        """A resolved identifier reloads from the state file unchanged."""
        item_id = resolve_item_id(guid, link)
        assert len(item_id.splitlines()) == 1

        with tempfile.TemporaryDirectory() as tmp_dir:
            path = Path(tmp_dir) / "state.txt"
            state = SeenItemState(path)
            state.mark_seen(item_id)
            state.save()

            reloaded = SeenItemState(path)
            reloaded.load()

        assert reloaded.ids() == [item_id]

    @given(
        st.lists(
            st.text(
                alphabet=st.characters(whitelist_categories=("Ll", "Nd")),
                min_size=1,
                max_size=10,
            ),
            max_size=20,
        )
    )
    def test_novelty_is_idempotent(self, guids):
        """A second pass over unchanged items selects nothing."""
        items = [make_item(guid) for guid in guids]
        poller = FeedPoller(
            NoveltyPolicy(SeenItemState(None)), max_items_per_feed=100
        )

        first = poller.select(items)
        second = poller.select(items)

        assert [item.guid for item in first] == list(dict.fromkeys(guids))
        assert second == []

    @given(st.lists(st.integers(min_value=0, max_value=72 * 60), max_size=20))
    def test_recency_selects_only_items_inside_window(self, ages_in_minutes):
        items = [
            make_item(str(i), NOW - timedelta(minutes=age))
            for i, age in enumerate(ages_in_minutes)
        ]
        poller = FeedPoller(
            RecencyPolicy(timedelta(hours=24), now=lambda: NOW),
            max_items_per_feed=100,
        )

        selected = poller.select(items)

        expected = [str(i) for i, age in enumerate(ages_in_minutes) if age <= 24 * 60]
        assert [item.guid for item in selected] == expected

    @given(st.integers(min_value=1, max_value=10), st.integers(min_value=0, max_value=20))
    def test_per_feed_cap(self, cap, count):
        items = [make_item(str(i)) for i in range(count)]
        poller = FeedPoller(RecencyPolicy(now=lambda: NOW), max_items_per_feed=cap)

        assert len(poller.select(items)) == min(cap, count)
