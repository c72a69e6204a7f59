"""Summarization module using OpenAI chat completions or Amazon Bedrock."""

import json
import time

import boto3
import openai
from botocore.exceptions import BotoCoreError, ClientError

from .config import SummaryConfig
from .logging_config import create_execution_logger

LANGUAGE_NAMES = {
    "JA": "Japanese",
    "EN": "English",
    "EN-US": "English",
    "EN-GB": "English",
    "DE": "German",
    "FR": "French",
    "ES": "Spanish",
    "IT": "Italian",
    "PT": "Portuguese",
    "ZH": "Chinese",
    "KO": "Korean",
}

SYSTEM_PROMPT = (
    "You are an assistant who excels at summarizing technical articles. "
    "Summarize the given article in {language} in no more than 3 lines."
)

USER_PROMPT = """Summarize the following technical article in {language} in no more than 3 lines. Include the key points and what the reader can learn, and keep it concise.

Title: {title}

Content: {description}

Summary:"""


class SummarizationError(RuntimeError):
    """Raised when the summarization provider returns no usable text."""


class Summarizer:
    """Generates short article summaries with a chat-completion model."""

    def __init__(self, config: SummaryConfig, execution_id: str | None = None):
        """Initialize the summarizer for the configured provider."""
        self.config = config
        self.logger = create_execution_logger("summarizer", execution_id)
        self.language = LANGUAGE_NAMES.get(
            config.target_lang.upper(), config.target_lang
        )
        self.client = None
        self.bedrock_client = None

        if config.provider == "bedrock":
            self.bedrock_client = boto3.client(
                "bedrock-runtime", region_name=config.region
            )
            self.logger.info(
                "Initialized Bedrock client",
                region=config.region,
                model=config.bedrock_model_id,
            )
        else:
            self.client = openai.OpenAI(
                api_key=config.openai_api_key,
                base_url=config.openai_base_url,
                timeout=config.timeout,
                max_retries=0,
            )
            self.logger.info(
                "Initialized OpenAI client",
                base_url=config.openai_base_url,
                model=config.openai_model,
            )

    @property
    def model(self) -> str:
        if self.config.provider == "bedrock":
            return self.config.bedrock_model_id
        return self.config.openai_model

    def summarize(self, title: str, description: str) -> str:
        """Summarize an article from its (translated) title and description.

        Raises:
            SummarizationError: If the provider fails or returns empty text
        """
        system = SYSTEM_PROMPT.format(language=self.language)
        prompt = USER_PROMPT.format(
            language=self.language, title=title, description=description
        )

        start_time = time.time()
        text = self.complete(
            system, prompt, self.config.max_tokens, self.config.temperature
        )
        response_time_ms = int((time.time() - start_time) * 1000)

        text = text.strip()
        if not text:
            raise SummarizationError(f"no summary generated by {self.model}")

        self.logger.info(
            "Summary generated",
            item_title=title,
            model=self.model,
            response_length=len(text),
            response_time_ms=response_time_ms,
        )
        return text

    def test_connection(self) -> None:
        """Send a minimal request to verify credentials and model access."""
        self.complete(None, "Hello, this is a connection test.", 10, None)

    def complete(
        self,
        system: str | None,
        prompt: str,
        max_tokens: int,
        temperature: float | None,
    ) -> str:
        """Run one chat completion with the configured provider."""
        if self.config.provider == "bedrock":
            return self._bedrock_complete(system, prompt, max_tokens, temperature)
        return self._openai_complete(system, prompt, max_tokens, temperature)

    def _openai_complete(
        self,
        system: str | None,
        prompt: str,
        max_tokens: int,
        temperature: float | None,
    ) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        params = {
            "model": self.config.openai_model,
            "messages": messages,
            "max_tokens": max_tokens,
        }
        if temperature is not None:
            params["temperature"] = temperature

        try:
            response = self.client.chat.completions.create(**params)
        except openai.APIStatusError as e:
            raise SummarizationError(
                f"OpenAI API error: status={e.status_code}, message={e.message}"
            ) from e
        except openai.OpenAIError as e:
            raise SummarizationError(f"OpenAI request failed: {e}") from e

        if not response.choices:
            raise SummarizationError("no choices returned by OpenAI")

        content = response.choices[0].message.content
        return content if isinstance(content, str) else ""

    def _bedrock_complete(
        self,
        system: str | None,
        prompt: str,
        max_tokens: int,
        temperature: float | None,
    ) -> str:
        inference_config = {"maxTokens": max_tokens}
        if temperature is not None:
            inference_config["temperature"] = temperature

        request_body = {
            "messages": [{"role": "user", "content": [{"text": prompt}]}],
            "inferenceConfig": inference_config,
        }
        if system:
            request_body["system"] = [{"text": system}]

        try:
            response = self.bedrock_client.invoke_model(
                modelId=self.config.bedrock_model_id,
                body=json.dumps(request_body),
                contentType="application/json",
                accept="application/json",
            )
            response_body = json.loads(response["body"].read())
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            error_message = e.response.get("Error", {}).get("Message", "")
            raise SummarizationError(
                f"Bedrock client error: {error_code} - {error_message}"
            ) from e
        except (BotoCoreError, ValueError) as e:
            raise SummarizationError(f"Bedrock request failed: {e}") from e

        return self._bedrock_text(response_body)

    @staticmethod
    def _bedrock_text(response_body) -> str:
        """Extract output.message.content[0].text from a Converse-style body."""
        if not isinstance(response_body, dict):
            raise SummarizationError("Bedrock response missing content")
        output = response_body.get("output")
        message = output.get("message") if isinstance(output, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, list) or not content:
            raise SummarizationError("Bedrock response missing content")

        block = content[0]
        text = block.get("text") if isinstance(block, dict) else None
        if not isinstance(text, str):
            raise SummarizationError(f"unexpected Bedrock content block: {block!r}")
        return text
