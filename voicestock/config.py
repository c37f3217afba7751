"""
Runtime configuration for voice capture and product matching.

Values come from the environment (and a `.env` file in the working
directory when present). Every field has a default so the package works
with nothing configured: without API keys the resolver simply runs the
local scorer.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dotenv import load_dotenv

TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number") from exc


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in TRUE_VALUES


@dataclass
class CaptureConfig:
    """Timing and language settings for a capture session."""
    max_duration: float = 15.0      # Hard deadline per session (seconds)
    tick_interval: float = 1.0      # Visual countdown resolution
    restart_delay: float = 0.1      # Pause before re-starting a dropped engine
    stop_grace: float = 1.5         # Wait for the engine's end event after stop()
    language: str = "zh"
    dedupe_cumulative: bool = False # Engine repeats earlier sub-attempts in its results
    ascii_spacing: bool = False     # Space between chunks that meet at ASCII words

    # Whisper engine settings
    whisper_model: str = "base"
    silence_threshold: float = 0.01
    silence_duration: float = 1.2   # Silence that ends a sub-attempt
    no_speech_timeout: float = 5.0  # Sub-attempt with no speech at all
    interim_interval: float = 1.0   # How often interim results are produced

    def __post_init__(self):
        if self.max_duration <= 0:
            raise ValueError("max_duration must be positive")
        if self.tick_interval <= 0:
            raise ValueError("tick_interval must be positive")
        if self.restart_delay < 0 or self.stop_grace < 0:
            raise ValueError("restart_delay and stop_grace must not be negative")


@dataclass
class MatcherConfig:
    """One remote matcher in the fallback chain."""
    backend: str                     # Provider name: modelscope, groq, ollama
    model: str
    family: Optional[str] = None     # Matchers sharing credentials; defaults to backend
    base_url: Optional[str] = None
    suggestion_limit: int = 20
    temperature: float = 0.2
    max_tokens: int = 1024
    timeout: float = 30.0

    @property
    def family_name(self) -> str:
        return self.family or self.backend


@dataclass
class ResolverConfig:
    """How the resolver walks its fallback chain."""
    use_remote: bool = True
    local_suggestion_limit: int = 5
    confident_score: int = 40
    check_connectivity: bool = True
    matchers: List[MatcherConfig] = field(default_factory=list)


@dataclass
class AppConfig:
    """Everything the CLI needs, assembled from the environment."""
    capture: CaptureConfig
    resolver: ResolverConfig
    log_level: str = "INFO"
    credential_env: Dict[str, str] = field(default_factory=lambda: {
        "modelscope": "MODELSCOPE_API_KEY",
        "groq": "GROQ_API_KEY",
        "ollama": "OLLAMA_API_KEY",
    })

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "AppConfig":
        """
        Build an AppConfig from environment variables.

        Supported variables:
            - VOICESTOCK_CAPTURE_SECONDS: Session deadline (default: 15)
            - VOICESTOCK_RESTART_DELAY: Engine restart pause (default: 0.1)
            - VOICESTOCK_STOP_GRACE: Wait for engine end after stop (default: 1.5)
            - VOICESTOCK_LANGUAGE: Recognition language (default: zh)
            - VOICESTOCK_WHISPER_MODEL: faster-whisper model size (default: base)
            - VOICESTOCK_DEDUPE_CUMULATIVE: Collapse results repeated across restarts (default: false)
            - VOICESTOCK_ASCII_SPACING: Space between English chunks (default: false)
            - VOICESTOCK_USE_REMOTE: Use AI matchers (default: true)
            - VOICESTOCK_LOCAL_SUGGESTIONS: Local suggestion cap (default: 5)
            - VOICESTOCK_REMOTE_SUGGESTIONS: Remote suggestion cap (default: 20)
            - VOICESTOCK_CONFIDENT_SCORE: Local acceptance threshold (default: 40)
            - VOICESTOCK_REQUEST_TIMEOUT: Remote timeout in seconds (default: 30)
            - VOICESTOCK_CHECK_CONNECTIVITY: Probe network before remote calls (default: true)
            - MODELSCOPE_BASE_URL / MODELSCOPE_MODEL / MODELSCOPE_FALLBACK_MODEL
            - GROQ_MODEL
            - OLLAMA_HOST / OLLAMA_MODEL (the Ollama matcher is added only when OLLAMA_MODEL is set)
            - LOG_LEVEL (default: INFO)

        API keys are not read here; they are looked up per call through a
        credential store.
        """
        load_dotenv(dotenv_path)

        capture = CaptureConfig(
            max_duration=_env_float("VOICESTOCK_CAPTURE_SECONDS", 15.0),
            restart_delay=_env_float("VOICESTOCK_RESTART_DELAY", 0.1),
            stop_grace=_env_float("VOICESTOCK_STOP_GRACE", 1.5),
            language=os.environ.get("VOICESTOCK_LANGUAGE", "zh").strip() or "zh",
            whisper_model=os.environ.get("VOICESTOCK_WHISPER_MODEL", "base").strip() or "base",
            dedupe_cumulative=_env_bool("VOICESTOCK_DEDUPE_CUMULATIVE", False),
            ascii_spacing=_env_bool("VOICESTOCK_ASCII_SPACING", False),
        )

        remote_limit = _env_int("VOICESTOCK_REMOTE_SUGGESTIONS", 20)
        timeout = _env_float("VOICESTOCK_REQUEST_TIMEOUT", 30.0)

        modelscope_url = os.environ.get("MODELSCOPE_BASE_URL") or None
        matchers = [
            MatcherConfig(
                backend="modelscope",
                model=os.environ.get("MODELSCOPE_MODEL", "deepseek-ai/DeepSeek-V3.2"),
                base_url=modelscope_url,
                suggestion_limit=remote_limit,
                timeout=timeout,
            )
        ]
        fallback_model = os.environ.get("MODELSCOPE_FALLBACK_MODEL")
        if fallback_model:
            matchers.append(MatcherConfig(
                backend="modelscope",
                model=fallback_model,
                base_url=modelscope_url,
                suggestion_limit=remote_limit,
                timeout=timeout,
            ))
        matchers.append(MatcherConfig(
            backend="groq",
            model=os.environ.get("GROQ_MODEL", "llama-3.3-70b-versatile"),
            suggestion_limit=remote_limit,
            timeout=timeout,
        ))
        ollama_model = os.environ.get("OLLAMA_MODEL")
        if ollama_model:
            matchers.append(MatcherConfig(
                backend="ollama",
                model=ollama_model,
                base_url=os.environ.get("OLLAMA_HOST") or None,
                suggestion_limit=remote_limit,
                timeout=max(timeout, 120.0),  # Local inference is slower
            ))

        resolver = ResolverConfig(
            use_remote=_env_bool("VOICESTOCK_USE_REMOTE", True),
            local_suggestion_limit=_env_int("VOICESTOCK_LOCAL_SUGGESTIONS", 5),
            confident_score=_env_int("VOICESTOCK_CONFIDENT_SCORE", 40),
            check_connectivity=_env_bool("VOICESTOCK_CHECK_CONNECTIVITY", True),
            matchers=matchers,
        )

        return cls(
            capture=capture,
            resolver=resolver,
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )
