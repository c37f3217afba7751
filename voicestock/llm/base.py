"""
Base classes for LLM providers.

Provides a unified interface over the text-generation backends used by the
remote matchers (ModelScope, Groq, Ollama). Every provider makes exactly
one request per call and translates its transport's failures into the
remote-match error taxonomy, so callers never see vendor exceptions.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..errors import RemoteParseError


class ProviderStatus(str, Enum):
    """Status of an LLM provider after its last call."""
    AVAILABLE = "available"
    AUTH_FAILED = "auth_failed"
    RATE_LIMITED = "rate_limited"
    ERROR = "error"
    NOT_CONFIGURED = "not_configured"


@dataclass
class LLMConfig:
    """Configuration for an LLM provider."""
    provider_name: str
    model: str
    base_url: Optional[str] = None
    temperature: float = 0.2
    max_tokens: int = 1024
    timeout: float = 30.0
    extra_params: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Message:
    """A single message in a conversation."""
    role: str  # "system", "user", "assistant"
    content: str

    def as_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class LLMResponse:
    """Response from an LLM provider."""
    content: str
    model: str
    provider: str
    usage: Dict[str, int] = field(default_factory=dict)  # tokens used
    finish_reason: str = "stop"
    raw_response: Optional[Any] = None

    @property
    def tokens_used(self) -> int:
        """Total tokens used in this request."""
        return self.usage.get("total_tokens", 0)


class LLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    The API key is passed per call rather than held by the provider, so a
    key changed by the user is picked up by the very next request.
    """

    requires_api_key: bool = True

    def __init__(self, config: LLMConfig):
        self.config = config
        self._status = ProviderStatus.NOT_CONFIGURED

    @property
    def name(self) -> str:
        """Provider name."""
        return self.config.provider_name

    @property
    def model(self) -> str:
        """Current model."""
        return self.config.model

    @property
    def is_local(self) -> bool:
        """True for backends that need no internet access."""
        info = PROVIDER_INFO.get(self.name)
        return bool(info and info.is_local)

    @property
    def status(self) -> ProviderStatus:
        """Status after the most recent call."""
        return self._status

    @abstractmethod
    def chat(
        self,
        messages: List[Message],
        api_key: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> LLMResponse:
        """
        Send a single chat completion request.

        Args:
            messages: List of conversation messages
            api_key: Credential for this call
            temperature: Override default temperature
            max_tokens: Override default max tokens
            **kwargs: Provider-specific parameters

        Returns:
            LLMResponse with the model's response

        Raises:
            RemoteAuthError: credentials rejected (HTTP 401)
            RemoteNetworkError: unreachable, timed out, or other HTTP failure
            RemoteParseError: response envelope missing the message content
        """

    def _content_from_choices(self, choices: Any) -> str:
        """First choice's message content from an OpenAI-style envelope."""
        if not choices:
            self._status = ProviderStatus.ERROR
            raise RemoteParseError(f"{self.name} returned no choices", self.name)
        first = choices[0]
        message = first.get("message") if isinstance(first, dict) else getattr(first, "message", None)
        if message is None:
            self._status = ProviderStatus.ERROR
            raise RemoteParseError(f"{self.name} returned a choice without a message", self.name)
        content = message.get("content") if isinstance(message, dict) else getattr(message, "content", None)
        return content or ""


@dataclass
class ProviderInfo:
    """Static facts about a backend."""
    name: str
    default_model: str
    default_base_url: Optional[str]
    is_local: bool
    requires_api_key: bool


PROVIDER_INFO = {
    "modelscope": ProviderInfo(
        name="modelscope",
        default_model="deepseek-ai/DeepSeek-V3.2",
        default_base_url="https://api-inference.modelscope.cn/v1",
        is_local=False,
        requires_api_key=True,
    ),
    "groq": ProviderInfo(
        name="groq",
        default_model="llama-3.3-70b-versatile",
        default_base_url=None,
        is_local=False,
        requires_api_key=True,
    ),
    "ollama": ProviderInfo(
        name="ollama",
        default_model="qwen2.5:7b",
        default_base_url="http://localhost:11434",
        is_local=True,
        requires_api_key=False,
    ),
}
