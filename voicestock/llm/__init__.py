"""
LLM Provider modules for the remote product matchers.

Supported backends:
- ModelScope (primary, OpenAI-compatible API, DeepSeek/Qwen models)
- Groq (secondary, cloud-based, free tier)
- Ollama (optional, local network, no key)
"""

from .base import LLMProvider, LLMResponse, LLMConfig, Message, ProviderStatus, PROVIDER_INFO
from .openai_provider import OpenAICompatibleProvider, ModelScopeProvider
from .groq_provider import GroqProvider
from .ollama_provider import OllamaProvider
from .factory import create_provider

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "LLMConfig",
    "Message",
    "ProviderStatus",
    "PROVIDER_INFO",
    "OpenAICompatibleProvider",
    "ModelScopeProvider",
    "GroqProvider",
    "OllamaProvider",
    "create_provider"
]
