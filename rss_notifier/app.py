"""Orchestrator for RSS Translate Notifier: run-once and continuous modes."""

import argparse
import json
import os
import signal
import threading
import time
from datetime import UTC, datetime, timedelta
from typing import Any

from .config import Config, ConfigError
from .logging_config import create_execution_logger, setup_structured_logging
from .models import TranslationResult
from .pipeline import ArticleProcessor
from .rss import FeedPoller, NoveltyPolicy, RecencyPolicy, SelectionPolicy
from .slack import NotificationError, SlackNotifier
from .state import SeenItemState
from .summarize import SummarizationError, Summarizer
from .translate import DeepLTranslator, TranslationError

MODE_ONCE = "once"
MODE_CONTINUOUS = "continuous"
DEFAULT_POLICIES = {MODE_ONCE: "recency", MODE_CONTINUOUS: "novelty"}


class ConnectionCheckError(RuntimeError):
    """Raised when an external collaborator fails its startup check."""


class App:
    """Wires the poller, pipeline and notifier together."""

    def __init__(
        self,
        config: Config,
        mode: str = MODE_CONTINUOUS,
        policy_name: str | None = None,
        execution_id: str | None = None,
    ):
        """Build every component from configuration.

        Args:
            config: Loaded configuration
            mode: MODE_ONCE or MODE_CONTINUOUS
            policy_name: 'novelty' or 'recency'; defaults to the config
                setting, then to the mode's default policy
            execution_id: Execution ID for logging context
        """
        if mode not in DEFAULT_POLICIES:
            raise ValueError(f"Unknown mode: {mode}")

        self.config = config
        self.mode = mode
        self.execution_id = (
            execution_id or f"run_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}"
        )
        self.logger = create_execution_logger("main", self.execution_id)
        self.policy_name = (
            policy_name or config.poll.selection_policy or DEFAULT_POLICIES[mode]
        )

        self.state: SeenItemState | None = None
        self.policy = self._build_policy()
        self.poller = FeedPoller(
            self.policy,
            max_items_per_feed=config.poll.max_items_per_feed,
            execution_id=self.execution_id,
        )
        self.translator = DeepLTranslator(config.deepl, execution_id=self.execution_id)
        self.summarizer = Summarizer(config.summary, execution_id=self.execution_id)
        self.processor = ArticleProcessor(
            self.translator, self.summarizer, execution_id=self.execution_id
        )
        self.notifier = SlackNotifier(config.slack, execution_id=self.execution_id)

        self.logger.info(
            "Application initialized",
            mode=mode,
            policy=self.policy_name,
            feed_urls=config.poll.feed_urls,
            check_interval_minutes=config.poll.check_interval_minutes,
        )

    def _build_policy(self) -> SelectionPolicy:
        if self.policy_name == "novelty":
            self.state = SeenItemState(
                self.config.poll.state_file,
                max_entries=self.config.poll.state_max_entries,
                execution_id=self.execution_id,
            )
            return NoveltyPolicy(self.state)
        if self.policy_name == "recency":
            return RecencyPolicy(timedelta(hours=self.config.poll.lookback_hours))
        raise ValueError(f"Unknown selection policy: {self.policy_name}")

    @property
    def interval_seconds(self) -> float:
        return self.config.poll.check_interval_minutes * 60

    def test_connections(self) -> None:
        """Check every external service, stopping at the first failure.

        Raises:
            ConnectionCheckError: If any service check fails
        """
        self.logger.info("Testing external service connections")
        checks = [
            ("DeepL", self.translator.test_connection),
            ("Summarization", self.summarizer.test_connection),
            ("Slack", self.notifier.test_connection),
        ]
        for name, check in checks:
            self.logger.info(f"Testing {name} connection")
            try:
                check()
            except (TranslationError, SummarizationError, NotificationError) as e:
                self.logger.error(f"{name} connection test failed: {e}", error=str(e))
                raise ConnectionCheckError(
                    f"{name} connection test failed: {e}"
                ) from e
            self.logger.info(f"{name} connection succeeded")
        self.logger.info("All connection tests passed")

    def run_pass(self) -> dict[str, Any]:
        """Poll, process and notify once. Returns the pass metrics."""
        self.logger.log_execution_start(policy=self.policy_name)
        metrics: dict[str, Any] = {
            "feeds_checked": len(self.config.poll.feed_urls),
            "feeds_failed": 0,
            "items_found": 0,
            "items_processed": 0,
            "notification_sent": False,
            "errors": [],
        }

        items = self.poller.poll(self.config.poll.feed_urls)
        if self.state is not None:
            self.state.save()

        for feed_url, error in self.poller.last_errors.items():
            error_msg = f"Failed to check RSS feed {feed_url}: {error}"
            metrics["feeds_failed"] += 1
            metrics["errors"].append(error_msg)
            self.notifier.send_error(error_msg)

        metrics["items_found"] = len(items)
        if not items:
            self.logger.info("No new articles found")
            self.logger.log_execution_end(success=True, metrics=metrics)
            return metrics

        self.logger.info(f"Found {len(items)} new articles", total=len(items))
        results: list[TranslationResult] = []
        for index, item in enumerate(items, start=1):
            if index > 1:
                time.sleep(self.config.poll.item_delay_seconds)
            self.logger.info(
                f"Processing article {index}/{len(items)}: {item.title}",
                index=index,
                total=len(items),
                item_title=item.title,
            )
            try:
                results.append(self.processor.process(item))
            except Exception as e:
                error_msg = f"Failed to translate and summarize article: {item.title} - error: {e}"
                self.logger.error(
                    error_msg, item_title=item.title, index=index, error=str(e)
                )
                metrics["errors"].append(error_msg)
                self.notifier.send_error(error_msg)
                continue

        metrics["items_processed"] = len(results)
        metrics["notification_sent"] = self.notify(results)
        self.logger.log_metrics(metrics)
        self.logger.log_execution_end(success=not metrics["errors"], metrics=metrics)
        return metrics

    def notify(self, results: list[TranslationResult]) -> bool:
        """Send one article on its own, several as a batch."""
        if not results:
            return False
        self.logger.info(f"Sending notifications for {len(results)} articles")
        if len(results) == 1:
            return self.notifier.send_single(results[0])
        return self.notifier.send_batch(results)

    def run_once(self) -> dict[str, Any]:
        """Check connections, run a single pass and return its metrics."""
        self.test_connections()
        if self.state is not None:
            self.state.load()
        return self.run_pass()

    def run_forever(self, cancel: threading.Event) -> None:
        """Run passes every check interval until ``cancel`` is set.

        The wait only starts after a pass finishes, so passes never overlap.
        A pass in progress is not interrupted by cancellation.
        """
        self.test_connections()
        if self.state is not None:
            self.state.load()
        self.notifier.send_startup(self.config.poll.feed_urls)

        self.logger.info(
            "Starting feed monitoring",
            interval_seconds=self.interval_seconds,
        )
        while not cancel.is_set():
            try:
                self.run_pass()
            except Exception as e:
                error_msg = f"Polling pass failed: {e}"
                self.logger.error(error_msg, error=str(e))
                self.notifier.send_error(error_msg)
            if cancel.wait(self.interval_seconds):
                break
        self.logger.info("Cancellation received, stopping feed monitoring")


def install_signal_handlers(cancel: threading.Event) -> None:
    """Set ``cancel`` on SIGINT or SIGTERM."""
    logger = create_execution_logger("main")

    def handle_signal(signum, frame):
        logger.info(
            f"Received signal {signal.Signals(signum).name}, shutting down gracefully"
        )
        cancel.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Scheduled run-once entry point for serverless deployment."""
    setup_structured_logging(os.getenv("LOG_LEVEL", "INFO"))
    execution_id = f"lambda_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}"
    logger = create_execution_logger("main", execution_id)
    logger.log_execution_start(
        lambda_request_id=getattr(context, "aws_request_id", "unknown")
    )

    try:
        app = App(Config(load_env_file=False), mode=MODE_ONCE, execution_id=execution_id)
        metrics = app.run_once()
    except Exception as e:
        error_msg = f"Critical error in Lambda handler: {e}"
        logger.error(error_msg, error=str(e))
        logger.log_execution_end(success=False, error=error_msg)
        return {
            "statusCode": 500,
            "body": json.dumps(
                {
                    "message": "RSS notifier execution failed",
                    "execution_id": execution_id,
                    "error": error_msg,
                }
            ),
        }

    logger.log_execution_end(success=True, metrics=metrics)
    return {
        "statusCode": 200,
        "body": json.dumps(
            {
                "message": "RSS notifier execution completed",
                "execution_id": execution_id,
                "metrics": metrics,
            }
        ),
    }


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="rss-notifier",
        description="Poll RSS feeds, translate and summarize new articles, "
        "and post them to Slack",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  rss-notifier                    # Monitor feeds every CHECK_INTERVAL_MINUTES
  rss-notifier --once             # Single pass over the last LOOKBACK_HOURS
  rss-notifier --once --policy novelty  # Single pass using the state file
        """,
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run one polling pass and exit instead of monitoring continuously",
    )
    parser.add_argument(
        "--policy",
        choices=["novelty", "recency"],
        help="Item selection policy (default: recency with --once, else novelty)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: LOG_LEVEL or INFO)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point. Returns the process exit status."""
    args = parse_arguments(argv)
    setup_structured_logging(args.log_level or os.getenv("LOG_LEVEL", "INFO"))
    logger = create_execution_logger("main")
    logger.info("Starting RSS notifier")

    try:
        config = Config.from_env()
    except ConfigError as e:
        logger.error(f"Configuration error: {e}", error=str(e))
        return 1

    if not args.log_level:
        setup_structured_logging(config.log_level)

    mode = MODE_ONCE if args.once else MODE_CONTINUOUS
    app = App(config, mode=mode, policy_name=args.policy)

    try:
        if mode == MODE_ONCE:
            app.run_once()
        else:
            cancel = threading.Event()
            install_signal_handlers(cancel)
            app.run_forever(cancel)
    except ConnectionCheckError as e:
        logger.error(f"Startup aborted: {e}", error=str(e))
        return 1

    logger.info("RSS notifier stopped")
    return 0
