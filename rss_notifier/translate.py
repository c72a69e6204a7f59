"""DeepL translation client for RSS Translate Notifier."""

import requests

from .config import DeepLConfig
from .logging_config import create_execution_logger


class TranslationError(RuntimeError):
    """Raised when the translation provider cannot translate a text."""


class DeepLTranslator:
    """Translates text with the DeepL REST API."""

    def __init__(self, config: DeepLConfig, execution_id: str | None = None):
        """Initialize the translator with DeepL configuration."""
        self.config = config
        self.logger = create_execution_logger("translator", execution_id)
        self.session = requests.Session()
        self.session.headers.update(
            {"Authorization": f"DeepL-Auth-Key {config.api_key}"}
        )

        self.logger.info(
            "DeepLTranslator initialized",
            api_url=config.api_url,
            source_lang=config.source_lang,
            target_lang=config.target_lang,
        )

    def translate(self, text: str) -> str:
        """Translate a single text.

        Empty or whitespace-only text is returned as an empty string
        without calling the API.

        Raises:
            TranslationError: If the request fails or returns no translation
        """
        if not text or not text.strip():
            return ""

        payload = {
            "text": [text],
            "target_lang": self.config.target_lang,
            "source_lang": self.config.source_lang,
        }
        return self._post(json=payload)

    def translate_form(self, text: str) -> str:
        """Translate using the form-encoded variant of the API."""
        if not text or not text.strip():
            return ""

        data = {
            "text": text,
            "target_lang": self.config.target_lang,
            "source_lang": self.config.source_lang,
        }
        return self._post(data=data)

    def test_connection(self) -> None:
        """Check the API with a short text, trying JSON then form encoding.

        Raises:
            TranslationError: If both request styles fail
        """
        test_text = "Hello, World!"
        try:
            self.translate(test_text)
            return
        except TranslationError as json_error:
            self.logger.warning(
                f"DeepL JSON request failed, trying form data: {json_error}"
            )
            try:
                self.translate_form(test_text)
            except TranslationError as form_error:
                raise TranslationError(
                    f"DeepL connection test failed (JSON: {json_error}, "
                    f"FormData: {form_error})"
                ) from form_error

    def _post(self, **kwargs) -> str:
        try:
            response = self.session.post(
                self.config.api_url, timeout=self.config.timeout, **kwargs
            )
        except requests.RequestException as e:
            raise TranslationError(f"failed to send request: {e}") from e

        if response.status_code != 200:
            raise TranslationError(
                f"DeepL API error: status={response.status_code}, body={response.text}"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise TranslationError(f"failed to decode response: {e}") from e

        translations = body.get("translations") if isinstance(body, dict) else None
        if not translations:
            raise TranslationError("no translations returned from DeepL")

        entry = translations[0] if isinstance(translations, list) else None
        text = entry.get("text") if isinstance(entry, dict) else None
        if not isinstance(text, str):
            raise TranslationError(f"unexpected DeepL response: {body!r}")
        return text
