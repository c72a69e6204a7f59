"""RSS Translate Notifier: feed polling, translation, summaries and Slack notifications."""

__version__ = "1.0.0"
