"""
OpenAI-compatible chat providers.

ModelScope's inference API speaks the OpenAI chat-completions protocol, so
it is served by the official OpenAI SDK pointed at a different base URL.

Supports:
- ModelScope API-Inference (primary matcher backend)
- Any other OpenAI-compatible endpoint via OpenAICompatibleProvider
"""

import os
from typing import List, Optional

import openai
from loguru import logger

from ..errors import RemoteAuthError, RemoteNetworkError
from ..log import mask_key
from .base import PROVIDER_INFO, LLMConfig, LLMProvider, LLMResponse, Message, ProviderStatus


class OpenAICompatibleProvider(LLMProvider):
    """
    Chat provider for endpoints implementing POST {base_url}/chat/completions.

    A client is built per call from the key supplied by the caller.
    """

    def __init__(
        self,
        model: str,
        base_url: Optional[str] = None,
        provider_name: str = "openai",
        **kwargs
    ):
        """
        Initialize the provider.

        Args:
            model: Model identifier understood by the endpoint
            base_url: API root, e.g. https://api-inference.modelscope.cn/v1
            provider_name: Name used in logs and errors
            **kwargs: temperature, max_tokens, timeout overrides
        """
        config = LLMConfig(
            provider_name=provider_name,
            model=model,
            base_url=base_url,
            temperature=kwargs.get("temperature", 0.2),
            max_tokens=kwargs.get("max_tokens", 1024),
            timeout=kwargs.get("timeout", 30.0),
        )
        super().__init__(config)
        self._status = ProviderStatus.AVAILABLE

    def _build_client(self, api_key: Optional[str]) -> openai.OpenAI:
        client_kwargs = {
            "api_key": api_key or "",
            "timeout": self.config.timeout,
            "max_retries": 0,  # Single attempt; the resolver owns fallback
        }
        if self.config.base_url:
            client_kwargs["base_url"] = self.config.base_url
        return openai.OpenAI(**client_kwargs)

    def chat(
        self,
        messages: List[Message],
        api_key: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> LLMResponse:
        """Send a chat completion request."""
        if self.requires_api_key and not api_key:
            self._status = ProviderStatus.NOT_CONFIGURED
            raise RemoteAuthError(f"No API key configured for {self.name}", self.name)

        client = self._build_client(api_key)

        try:
            response = client.chat.completions.create(
                model=self.config.model,
                messages=[m.as_dict() for m in messages],
                temperature=self.config.temperature if temperature is None else temperature,
                max_tokens=max_tokens or self.config.max_tokens,
                **kwargs
            )
        except openai.AuthenticationError as e:
            self._status = ProviderStatus.AUTH_FAILED
            logger.warning("{} rejected key {} (401)", self.name, mask_key(api_key or ""))
            raise RemoteAuthError(f"{self.name}: API key invalid or expired (401)", self.name) from e
        except openai.APIConnectionError as e:
            # Includes APITimeoutError
            self._status = ProviderStatus.ERROR
            raise RemoteNetworkError(f"{self.name}: could not reach endpoint: {e}", self.name) from e
        except openai.APIStatusError as e:
            self._status = ProviderStatus.RATE_LIMITED if e.status_code == 429 else ProviderStatus.ERROR
            raise RemoteNetworkError(f"{self.name} API error: {e.status_code}", self.name) from e

        content = self._content_from_choices(response.choices)
        usage = {}
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        self._status = ProviderStatus.AVAILABLE
        return LLMResponse(
            content=content,
            model=response.model or self.config.model,
            provider=self.name,
            usage=usage,
            finish_reason=response.choices[0].finish_reason or "stop",
            raw_response=response
        )


class ModelScopeProvider(OpenAICompatibleProvider):
    """
    ModelScope API-Inference (https://modelscope.cn).

    Hosts DeepSeek and Qwen chat models behind an OpenAI-compatible API.
    Instruction-tuned general models cope well with homophones and partial
    product names, which is what the matcher needs.
    """

    DEFAULT_MODEL = PROVIDER_INFO["modelscope"].default_model
    DEFAULT_BASE_URL = PROVIDER_INFO["modelscope"].default_base_url

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        base_url: Optional[str] = None,
        **kwargs
    ):
        super().__init__(
            model=model,
            base_url=base_url or os.environ.get("MODELSCOPE_BASE_URL") or self.DEFAULT_BASE_URL,
            provider_name="modelscope",
            **kwargs
        )
