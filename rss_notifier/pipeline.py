"""Per-article translate-then-summarize pipeline."""

from .logging_config import create_execution_logger
from .models import FeedItem, TranslationResult
from .summarize import SummarizationError, Summarizer
from .translate import DeepLTranslator, TranslationError

SUMMARY_PLACEHOLDER = "Summary unavailable."
MAX_SUMMARY_LINES = 3


def limit_lines(text: str, max_lines: int = MAX_SUMMARY_LINES) -> str:
    """Keep only the first ``max_lines`` lines of ``text``."""
    lines = text.split("\n")
    if len(lines) > max_lines:
        return "\n".join(lines[:max_lines])
    return text


class ArticleProcessor:
    """Runs translation and summarization for one item, degrading on failure.

    Each stage has its own fallback: a failed translation keeps the original
    text, a failed summary is replaced by ``SUMMARY_PLACEHOLDER``.
    """

    def __init__(
        self,
        translator: DeepLTranslator,
        summarizer: Summarizer,
        execution_id: str | None = None,
    ):
        self.translator = translator
        self.summarizer = summarizer
        self.logger = create_execution_logger("pipeline", execution_id)

    def process(self, item: FeedItem) -> TranslationResult:
        """Translate and summarize a feed item. Never raises for stage errors."""
        self.logger.info("Translating and summarizing", item_title=item.title)

        translated_title = self._translate(item.title, "title", item)
        translated_description = self._translate(
            item.description, "description", item
        )

        try:
            summary = self.summarizer.summarize(
                translated_title, translated_description
            )
            summary = limit_lines(summary.strip())
        except SummarizationError as e:
            self.logger.warning(
                f"Summary generation failed: {e}",
                item_title=item.title,
                error=str(e),
            )
            summary = SUMMARY_PLACEHOLDER

        self.logger.log_item_processing(item.title, "processed", link=item.link)
        return TranslationResult(
            original_title=item.title,
            translated_title=translated_title,
            original_description=item.description,
            translated_description=translated_description,
            summary=summary,
            link=item.link,
        )

    def _translate(self, text: str, field_name: str, item: FeedItem) -> str:
        try:
            return self.translator.translate(text)
        except TranslationError as e:
            self.logger.warning(
                f"{field_name.capitalize()} translation failed, using original: {e}",
                item_title=item.title,
                field=field_name,
                error=str(e),
            )
            return text
