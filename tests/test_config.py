"""
Tests for environment-driven configuration and credential stores.
"""

import pytest

from voicestock.config import AppConfig, CaptureConfig
from voicestock.credentials import EnvCredentialStore, MemoryCredentialStore
from voicestock.log import mask_key

ENV_VARS = [
    "VOICESTOCK_CAPTURE_SECONDS", "VOICESTOCK_RESTART_DELAY", "VOICESTOCK_STOP_GRACE",
    "VOICESTOCK_LANGUAGE", "VOICESTOCK_WHISPER_MODEL", "VOICESTOCK_USE_REMOTE",
    "VOICESTOCK_LOCAL_SUGGESTIONS", "VOICESTOCK_REMOTE_SUGGESTIONS", "VOICESTOCK_CONFIDENT_SCORE",
    "VOICESTOCK_REQUEST_TIMEOUT", "VOICESTOCK_CHECK_CONNECTIVITY", "VOICESTOCK_DEDUPE_CUMULATIVE",
    "VOICESTOCK_ASCII_SPACING", "MODELSCOPE_BASE_URL", "MODELSCOPE_MODEL", "MODELSCOPE_FALLBACK_MODEL",
    "GROQ_MODEL", "OLLAMA_HOST", "OLLAMA_MODEL", "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        # setenv first so whatever load_dotenv writes is undone afterwards
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    # No stray .env from the working directory
    monkeypatch.chdir(tmp_path)
    return monkeypatch


class TestAppConfig:

    def test_defaults(self, clean_env, tmp_path):
        config = AppConfig.from_env(str(tmp_path / "missing.env"))

        assert config.capture.max_duration == 15.0
        assert config.capture.restart_delay == 0.1
        assert config.capture.language == "zh"
        assert config.resolver.use_remote is True
        assert config.resolver.local_suggestion_limit == 5
        assert config.resolver.confident_score == 40
        assert [(m.backend, m.model) for m in config.resolver.matchers] == [
            ("modelscope", "deepseek-ai/DeepSeek-V3.2"),
            ("groq", "llama-3.3-70b-versatile"),
        ]
        assert all(m.suggestion_limit == 20 for m in config.resolver.matchers)
        assert config.log_level == "INFO"

    def test_fallback_model_shares_family(self, clean_env, tmp_path):
        clean_env.setenv("MODELSCOPE_FALLBACK_MODEL", "Qwen/Qwen2.5-72B-Instruct")
        matchers = AppConfig.from_env(str(tmp_path / "missing.env")).resolver.matchers

        assert [m.model for m in matchers][:2] == ["deepseek-ai/DeepSeek-V3.2", "Qwen/Qwen2.5-72B-Instruct"]
        assert matchers[0].family_name == matchers[1].family_name == "modelscope"
        assert matchers[2].backend == "groq"

    def test_ollama_only_when_model_set(self, clean_env, tmp_path):
        clean_env.setenv("OLLAMA_MODEL", "qwen2.5:7b")
        clean_env.setenv("OLLAMA_HOST", "http://gpu-box:11434")
        matchers = AppConfig.from_env(str(tmp_path / "missing.env")).resolver.matchers

        assert matchers[-1].backend == "ollama"
        assert matchers[-1].base_url == "http://gpu-box:11434"
        assert matchers[-1].timeout >= 120.0

    def test_overrides(self, clean_env, tmp_path):
        clean_env.setenv("VOICESTOCK_CAPTURE_SECONDS", "10")
        clean_env.setenv("VOICESTOCK_USE_REMOTE", "no")
        clean_env.setenv("VOICESTOCK_REMOTE_SUGGESTIONS", "12")
        clean_env.setenv("VOICESTOCK_DEDUPE_CUMULATIVE", "yes")
        clean_env.setenv("LOG_LEVEL", "debug")
        config = AppConfig.from_env(str(tmp_path / "missing.env"))

        assert config.capture.max_duration == 10.0
        assert config.capture.dedupe_cumulative is True
        assert config.resolver.use_remote is False
        assert config.resolver.matchers[0].suggestion_limit == 12
        assert config.log_level == "DEBUG"

    def test_dotenv_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("VOICESTOCK_LANGUAGE=en\nGROQ_MODEL=llama-3.1-8b-instant\n")
        config = AppConfig.from_env(str(env_file))

        assert config.capture.language == "en"
        assert config.resolver.matchers[-1].model == "llama-3.1-8b-instant"

    def test_invalid_number_names_variable(self, clean_env, tmp_path):
        clean_env.setenv("VOICESTOCK_CAPTURE_SECONDS", "fifteen")
        with pytest.raises(ValueError, match="VOICESTOCK_CAPTURE_SECONDS"):
            AppConfig.from_env(str(tmp_path / "missing.env"))


class TestCaptureConfig:

    @pytest.mark.parametrize("kwargs", [
        {"max_duration": 0},
        {"tick_interval": -1},
        {"restart_delay": -0.1},
    ])
    def test_validation(self, kwargs):
        with pytest.raises(ValueError):
            CaptureConfig(**kwargs)


class TestCredentials:

    def test_env_store_reads_at_call_time(self, monkeypatch):
        store = EnvCredentialStore({"groq": "GROQ_API_KEY"})
        monkeypatch.delenv("GROQ_API_KEY", raising=False)
        assert store.get_api_key("groq") is None

        monkeypatch.setenv("GROQ_API_KEY", "  gsk-new  ")
        assert store.get_api_key("groq") == "gsk-new"
        assert store.get_api_key("modelscope") is None

    def test_memory_store(self):
        store = MemoryCredentialStore()
        store.set_api_key("modelscope", "ms-key")
        assert store.get_api_key("modelscope") == "ms-key"
        store.set_api_key("modelscope", "  ")
        assert store.get_api_key("modelscope") is None

    def test_mask_key(self):
        assert mask_key("ms-1234567890abcdef") == "ms-12345..."
        assert mask_key("") == "<none>"
