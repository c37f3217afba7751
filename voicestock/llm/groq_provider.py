"""
Groq LLM Provider.

Groq offers very fast inference with a generous free tier:
- 1,000 requests/day
- 6,000 tokens/minute
- No credit card required

Sign up at: https://console.groq.com
"""

from typing import List, Optional

import groq
from loguru import logger

from ..errors import RemoteAuthError, RemoteNetworkError
from ..log import mask_key
from .base import PROVIDER_INFO, LLMConfig, LLMProvider, LLMResponse, Message, ProviderStatus


class GroqProvider(LLMProvider):
    """
    Groq LLM Provider using their Python SDK.

    Used as the secondary matcher backend: a different vendor and a
    different key, so it still works when the primary family is down or
    its key is rejected.
    """

    DEFAULT_MODEL = PROVIDER_INFO["groq"].default_model

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        base_url: Optional[str] = None,
        **kwargs
    ):
        """
        Initialize Groq provider.

        Args:
            model: Model to use (default: llama-3.3-70b-versatile)
            base_url: Override the SDK's default endpoint
            **kwargs: temperature, max_tokens, timeout overrides
        """
        config = LLMConfig(
            provider_name="groq",
            model=model,
            base_url=base_url,
            temperature=kwargs.get("temperature", 0.2),
            max_tokens=kwargs.get("max_tokens", 1024),
            timeout=kwargs.get("timeout", 30.0)
        )
        super().__init__(config)
        self._status = ProviderStatus.AVAILABLE

    def _build_client(self, api_key: str) -> groq.Groq:
        client_kwargs = {
            "api_key": api_key,
            "timeout": self.config.timeout,
            "max_retries": 0,
        }
        if self.config.base_url:
            client_kwargs["base_url"] = self.config.base_url
        return groq.Groq(**client_kwargs)

    def chat(
        self,
        messages: List[Message],
        api_key: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> LLMResponse:
        """
        Send a chat completion request to Groq.

        Args:
            messages: List of conversation messages
            api_key: Groq API key for this call
            temperature: Override default temperature (0-2)
            max_tokens: Override default max tokens
            **kwargs: Additional parameters

        Returns:
            LLMResponse with the model's response
        """
        if not api_key:
            self._status = ProviderStatus.NOT_CONFIGURED
            raise RemoteAuthError("No API key configured for groq", "groq")

        client = self._build_client(api_key)

        try:
            response = client.chat.completions.create(
                model=self.config.model,
                messages=[m.as_dict() for m in messages],
                temperature=self.config.temperature if temperature is None else temperature,
                max_tokens=max_tokens or self.config.max_tokens,
                **kwargs
            )
        except groq.AuthenticationError as e:
            self._status = ProviderStatus.AUTH_FAILED
            logger.warning("groq rejected key {} (401)", mask_key(api_key))
            raise RemoteAuthError("groq: API key invalid or expired (401)", "groq") from e
        except groq.APIConnectionError as e:
            self._status = ProviderStatus.ERROR
            raise RemoteNetworkError(f"groq: could not reach endpoint: {e}", "groq") from e
        except groq.APIStatusError as e:
            if e.status_code == 429:
                self._status = ProviderStatus.RATE_LIMITED
                raise RemoteNetworkError("Groq rate limit exceeded", "groq") from e
            self._status = ProviderStatus.ERROR
            raise RemoteNetworkError(f"groq API error: {e.status_code}", "groq") from e

        content = self._content_from_choices(response.choices)
        usage = {}
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens
            }

        self._status = ProviderStatus.AVAILABLE
        return LLMResponse(
            content=content,
            model=response.model or self.config.model,
            provider="groq",
            usage=usage,
            finish_reason=response.choices[0].finish_reason or "stop",
            raw_response=response
        )
