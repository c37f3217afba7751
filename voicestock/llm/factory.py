"""Build providers from matcher configuration."""

from ..config import MatcherConfig
from .base import LLMProvider
from .groq_provider import GroqProvider
from .ollama_provider import OllamaProvider
from .openai_provider import ModelScopeProvider, OpenAICompatibleProvider


def create_provider(config: MatcherConfig) -> LLMProvider:
    """
    Instantiate the provider named by `config.backend`.

    Raises:
        ValueError: for an unknown backend name
    """
    options = {
        "temperature": config.temperature,
        "max_tokens": config.max_tokens,
        "timeout": config.timeout,
    }
    backend = config.backend.lower()

    if backend == "modelscope":
        return ModelScopeProvider(model=config.model, base_url=config.base_url, **options)
    if backend == "groq":
        return GroqProvider(model=config.model, base_url=config.base_url, **options)
    if backend == "ollama":
        return OllamaProvider(model=config.model, host=config.base_url, **options)
    if backend == "openai":
        return OpenAICompatibleProvider(
            model=config.model,
            base_url=config.base_url,
            provider_name="openai",
            **options
        )

    raise ValueError(f"Unknown matcher backend: {config.backend}")
