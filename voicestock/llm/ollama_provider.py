"""
Ollama LLM Provider.

Ollama runs LLMs locally - no API key and no rate limits, but it still
goes through HTTP, so it sits in the remote-matcher chain rather than
replacing the local scorer.

Install: brew install ollama (or download from https://ollama.ai)
Pull a model: ollama pull qwen2.5:7b
"""

import os
from typing import List, Optional

import requests

from ..errors import RemoteAuthError, RemoteNetworkError, RemoteParseError
from .base import PROVIDER_INFO, LLMConfig, LLMProvider, LLMResponse, Message, ProviderStatus


class OllamaProvider(LLMProvider):
    """
    Ollama LLM Provider for local model inference.

    Qwen models handle Chinese product names noticeably better than the
    other small models, hence the default.
    """

    DEFAULT_MODEL = PROVIDER_INFO["ollama"].default_model
    DEFAULT_HOST = PROVIDER_INFO["ollama"].default_base_url

    requires_api_key = False

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        host: Optional[str] = None,
        **kwargs
    ):
        """
        Initialize Ollama provider.

        Args:
            model: Model to use (default: qwen2.5:7b)
            host: Ollama server URL (default: http://localhost:11434)
            **kwargs: temperature, max_tokens, timeout overrides
        """
        self.host = (host or os.environ.get("OLLAMA_HOST") or self.DEFAULT_HOST).rstrip("/")

        config = LLMConfig(
            provider_name="ollama",
            model=model,
            base_url=self.host,
            temperature=kwargs.get("temperature", 0.2),
            max_tokens=kwargs.get("max_tokens", 1024),
            timeout=kwargs.get("timeout", 120.0)  # Local inference can be slower
        )
        super().__init__(config)
        self._status = ProviderStatus.AVAILABLE

    def chat(
        self,
        messages: List[Message],
        api_key: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> LLMResponse:
        """
        Send a chat completion request to Ollama.

        Args:
            messages: List of conversation messages
            api_key: Only sent when Ollama sits behind an authenticating proxy
            temperature: Override default temperature
            max_tokens: Override default max tokens
            **kwargs: Additional top-level request fields

        Returns:
            LLMResponse with the model's response
        """
        payload = {
            "model": self.config.model,
            "messages": [m.as_dict() for m in messages],
            "stream": False,
            "format": "json",
            "options": {
                "temperature": self.config.temperature if temperature is None else temperature,
                "num_predict": max_tokens or self.config.max_tokens
            },
            **kwargs
        }
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        try:
            response = requests.post(
                f"{self.host}/api/chat",
                json=payload,
                headers=headers,
                timeout=self.config.timeout
            )
        except requests.exceptions.Timeout as e:
            self._status = ProviderStatus.ERROR
            raise RemoteNetworkError(
                f"Ollama request timed out after {self.config.timeout}s", "ollama"
            ) from e
        except requests.exceptions.RequestException as e:
            self._status = ProviderStatus.ERROR
            raise RemoteNetworkError(f"Ollama request failed: {e}", "ollama") from e

        if response.status_code == 401:
            self._status = ProviderStatus.AUTH_FAILED
            raise RemoteAuthError("ollama: request rejected (401)", "ollama")
        if response.status_code >= 400:
            self._status = ProviderStatus.ERROR
            raise RemoteNetworkError(
                f"Ollama API error: {response.status_code} - {response.text[:200]}", "ollama"
            )

        try:
            data = response.json()
            content = data["message"]["content"]
        except (ValueError, KeyError, TypeError) as e:
            self._status = ProviderStatus.ERROR
            raise RemoteParseError(f"Ollama returned an unexpected envelope: {e}", "ollama") from e

        self._status = ProviderStatus.AVAILABLE
        return LLMResponse(
            content=content or "",
            model=data.get("model", self.config.model),
            provider="ollama",
            usage={
                "prompt_tokens": data.get("prompt_eval_count", 0),
                "completion_tokens": data.get("eval_count", 0),
                "total_tokens": data.get("prompt_eval_count", 0) + data.get("eval_count", 0)
            },
            finish_reason=data.get("done_reason", "stop"),
            raw_response=data
        )

    def list_local_models(self) -> List[str]:
        """List all locally available models (empty when the server is down)."""
        try:
            response = requests.get(f"{self.host}/api/tags", timeout=5)
        except requests.exceptions.RequestException:
            return []
        if response.status_code != 200:
            return []
        return [m.get("name", "") for m in response.json().get("models", [])]
