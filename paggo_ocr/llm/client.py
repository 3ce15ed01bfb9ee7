"""LLM client used to answer questions about a document.

Wraps any LangChain chat model behind a small interface, and builds the
Gemini or OpenAI chat model selected in the configuration.
"""

import os
from dataclasses import dataclass
from typing import Literal, Protocol

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from paggo_ocr.exceptions import LLMUnavailableError
from paggo_ocr.utils.config import LLMConfig
from paggo_ocr.utils.logger import get_logger

from .retry import retry_with_backoff

logger = get_logger(__name__)

DEFAULT_MODELS = {
    "gemini": "gemini-2.5-flash",
    "openai": "gpt-4o-mini",
}

_API_KEY_ENV = {
    "gemini": ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    "openai": ("OPENAI_API_KEY",),
}


@dataclass(frozen=True)
class LLMMessage:
    role: Literal["user", "assistant"]
    content: str


class LLMClient(Protocol):
    def answer_with_context(self, instructions: str, messages: list[LLMMessage]) -> str: ...


def _content_text(message: BaseMessage) -> str:
    content = message.content
    if isinstance(content, str):
        return content
    # Some providers return a list of content parts.
    parts = []
    for part in content:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(str(part.get("text", "")))
    return "".join(parts)


class ChatModelClient:
    """``LLMClient`` backed by a LangChain chat model.

    Args:
        chat_model: Any LangChain chat model.
        retries: Retries after the first failed call.
        base_delay: Delay before the first retry, in seconds.
        max_delay: Cap for a single retry delay, in seconds.
    """

    def __init__(
        self,
        chat_model: BaseChatModel,
        retries: int = 3,
        base_delay: float = 0.6,
        max_delay: float = 3.0,
    ) -> None:
        self.chat_model = chat_model
        self.retries = retries
        self.base_delay = base_delay
        self.max_delay = max_delay

    def answer_with_context(self, instructions: str, messages: list[LLMMessage]) -> str:
        """Send the instructions and conversation, return the model's answer.

        Raises:
            LLMUnavailableError: If every attempt failed.
        """
        prompt: list[BaseMessage] = [SystemMessage(content=instructions)]
        for message in messages:
            if message.role == "user":
                prompt.append(HumanMessage(content=message.content))
            else:
                prompt.append(AIMessage(content=message.content))

        try:
            response = retry_with_backoff(
                lambda: self.chat_model.invoke(prompt),
                retries=self.retries,
                base_delay=self.base_delay,
                max_delay=self.max_delay,
            )
        except Exception as exc:
            raise LLMUnavailableError(f"LLM request failed: {exc}") from exc

        return _content_text(response).strip()


def _api_key(config: LLMConfig) -> str | None:
    if config.api_key:
        return config.api_key
    for name in _API_KEY_ENV.get(config.provider, ()):
        value = os.environ.get(name)
        if value:
            return value
    return None


def build_llm_client(config: LLMConfig) -> ChatModelClient | None:
    """Build the configured LLM client.

    Args:
        config: LLM configuration.

    Returns:
        A ready client, or ``None`` when the provider is disabled or has
        no API key.
    """
    if config.provider == "none":
        return None

    api_key = _api_key(config)
    if not api_key:
        logger.warning("No API key configured for LLM provider %s", config.provider)
        return None

    model = config.model or DEFAULT_MODELS[config.provider]
    if config.provider == "openai":
        from langchain_openai import ChatOpenAI

        chat_model: BaseChatModel = ChatOpenAI(
            model=model, api_key=api_key, max_tokens=config.max_output_tokens
        )
    else:
        from langchain_google_genai import ChatGoogleGenerativeAI

        chat_model = ChatGoogleGenerativeAI(
            model=model,
            google_api_key=api_key,
            max_output_tokens=config.max_output_tokens,
        )

    logger.info("Using %s model %s for document questions", config.provider, model)
    return ChatModelClient(
        chat_model,
        retries=config.retries,
        base_delay=config.base_delay_seconds,
        max_delay=config.max_delay_seconds,
    )
