"""Chat model factory and call helper for the model-backed stages."""
from typing import Any, List, Optional, Tuple, Union

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage

# Try to import various LLM providers
try:
    from langchain_openai import ChatOpenAI
    OPENAI_AVAILABLE = True
except ImportError:
    OPENAI_AVAILABLE = False

try:
    from langchain_google_genai import ChatGoogleGenerativeAI
    GOOGLE_AVAILABLE = True
except ImportError:
    GOOGLE_AVAILABLE = False

try:
    from langchain_ollama import ChatOllama
    OLLAMA_AVAILABLE = True
except ImportError:
    OLLAMA_AVAILABLE = False

from canonizer.agents.exceptions import ModelUnavailableError
from canonizer.agents.interfaces import TokenUsage
from canonizer.agents.parsing import message_text
from canonizer.app.config import Settings
from canonizer.app.logger import logger

PROVIDER_ORDER = ("openai", "google", "ollama")

DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "google": "gemini-2.5-flash",
    "ollama": "llama3.2",
}


def _build_provider(
    provider: str,
    settings: Settings,
    model: Optional[str],
    max_tokens: int,
    temperature: float,
) -> Optional[BaseChatModel]:
    model_name = model or DEFAULT_MODELS[provider]
    try:
        if provider == "openai" and OPENAI_AVAILABLE and settings.openai_api_key:
            return ChatOpenAI(
                model=model_name,
                temperature=temperature,
                max_tokens=max_tokens,
                api_key=settings.openai_api_key,
            )
        if provider == "google" and GOOGLE_AVAILABLE and settings.google_api_key:
            return ChatGoogleGenerativeAI(
                model=model_name,
                temperature=temperature,
                max_output_tokens=max_tokens,
                google_api_key=settings.google_api_key,
            )
        if provider == "ollama" and OLLAMA_AVAILABLE:
            return ChatOllama(model=model_name, temperature=temperature, num_predict=max_tokens)
    except Exception as e:
        logger.warning(f"⚠ {provider} chat model ({model_name}) failed to initialize: {e}")
    return None


def create_chat_model(
    settings: Settings,
    model: Optional[str] = None,
    max_tokens: int = 8000,
    temperature: float = 0.2,
) -> BaseChatModel:
    """Create a chat model, falling back across providers under ``auto``.

    Raises:
        ModelUnavailableError: when no provider could be initialized
    """
    if settings.llm_provider == "auto":
        providers = PROVIDER_ORDER
    elif settings.llm_provider in DEFAULT_MODELS:
        providers = (settings.llm_provider,)
    else:
        raise ModelUnavailableError(f"Unknown LLM provider '{settings.llm_provider}'")

    for provider in providers:
        llm = _build_provider(provider, settings, model, max_tokens, temperature)
        if llm is not None:
            logger.info(f"✓ {provider} chat model ({model or DEFAULT_MODELS[provider]}) initialized")
            return llm

    logger.warning("⚠ No LLM available. Set OPENAI_API_KEY, GEMINI_API_KEY, or install Ollama")
    raise ModelUnavailableError()


def model_name_of(llm: Any) -> Optional[str]:
    return getattr(llm, "model_name", None) or getattr(llm, "model", None)


def usage_from_message(message: BaseMessage, default_model: Optional[str] = None) -> TokenUsage:
    """Read token counts from a model reply's usage metadata."""
    usage = getattr(message, "usage_metadata", None) or {}
    response_metadata = getattr(message, "response_metadata", None) or {}
    return TokenUsage(
        input_tokens=int(usage.get("input_tokens") or 0),
        output_tokens=int(usage.get("output_tokens") or 0),
        model=response_metadata.get("model_name") or default_model,
    )


class ChatModelClient:
    """A chat model created on first use, plus a single-message call helper."""

    def __init__(
        self,
        settings: Settings,
        model: Optional[str] = None,
        max_tokens: int = 8000,
        llm: Optional[BaseChatModel] = None,
    ):
        self.settings = settings
        self.model = model
        self.max_tokens = max_tokens
        self._llm = llm

    @property
    def llm(self) -> BaseChatModel:
        if self._llm is None:
            self._llm = create_chat_model(self.settings, self.model, self.max_tokens)
        return self._llm

    async def complete(self, content: Union[str, List[dict]]) -> Tuple[str, TokenUsage]:
        """Send one user message and return the reply text and its token usage."""
        llm = self.llm
        response = await llm.ainvoke([HumanMessage(content=content)])
        return message_text(response.content), usage_from_message(response, model_name_of(llm))
