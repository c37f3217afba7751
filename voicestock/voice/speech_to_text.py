"""
Speech-to-Text using faster-whisper.

Provides local, offline speech recognition:
- explicit model loading with progress reporting (the first load downloads
  the weights, which takes a while on a slow connection)
- in-memory audio (from the microphone) and audio file transcription
- Chinese by default, any Whisper language on request
"""

from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np
from loguru import logger

ProgressCallback = Callable[[float], None]


@dataclass
class TranscriptionResult:
    """Result from speech-to-text transcription."""
    text: str
    language: str = "zh"
    confidence: float = 0.0
    duration: float = 0.0


class SpeechToText:
    """
    Speech-to-Text engine using faster-whisper.

    faster-whisper is a reimplementation of OpenAI's Whisper model
    using CTranslate2, which is up to 4x faster than the original.

    Models (smallest to largest):
    - tiny: ~75MB, fastest, lower accuracy
    - base: ~150MB, good balance
    - small: ~500MB, better accuracy
    - medium: ~1.5GB, high accuracy
    - large-v3: ~3GB, best accuracy

    Usage:
        stt = SpeechToText("base", language="zh")
        stt.load(on_progress=lambda pct: print(f"{pct:.0f}%"))
        result = stt.transcribe(audio)
        stt.unload()
    """

    AVAILABLE_MODELS = ["tiny", "base", "small", "medium", "large-v3"]

    def __init__(
        self,
        model_size: str = "base",
        device: str = "auto",
        compute_type: str = "auto",
        language: str = "zh"
    ):
        """
        Initialize the speech-to-text engine.

        Args:
            model_size: Whisper model size (tiny, base, small, medium, large-v3)
            device: Device to use (auto, cpu, cuda)
            compute_type: Computation type (auto, int8, float16, float32)
            language: Default language for transcription
        """
        self.model_size = model_size
        self.device = device
        self.compute_type = compute_type
        self.language = language
        self._model = None

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    def load(self, on_progress: Optional[ProgressCallback] = None):
        """
        Load the Whisper model, downloading it on first use.

        Loading twice returns the already loaded model.

        Args:
            on_progress: Called with a percentage from 0 to 100

        Raises:
            RuntimeError: the model could not be downloaded or loaded
        """
        if self._model is not None:
            self._report(on_progress, 100.0)
            return self._model

        logger.info("Loading Whisper model '{}'...", self.model_size)
        self._report(on_progress, 0.0)
        try:
            from faster_whisper import WhisperModel, download_model

            model_path = download_model(self.model_size)
            self._report(on_progress, 60.0)

            # Auto-detect best settings
            if self.device == "auto":
                self.device = "cuda" if self._cuda_available() else "cpu"

            if self.compute_type == "auto":
                self.compute_type = "float16" if self.device == "cuda" else "int8"

            self._model = WhisperModel(
                model_path,
                device=self.device,
                compute_type=self.compute_type
            )
        except Exception as e:
            raise RuntimeError(f"Failed to load Whisper model: {e}") from e

        self._report(on_progress, 100.0)
        logger.info("Whisper model loaded on {}", self.device)
        return self._model

    def unload(self) -> None:
        """Drop the model so its memory can be reclaimed."""
        if self._model is not None:
            logger.debug("Unloading Whisper model '{}'", self.model_size)
        self._model = None

    def _report(self, on_progress: Optional[ProgressCallback], value: float) -> None:
        if on_progress is None:
            return
        try:
            on_progress(max(0.0, min(100.0, value)))
        except Exception as e:
            logger.debug("Progress callback raised: {}", e)

    def _cuda_available(self) -> bool:
        """Check if CUDA is available."""
        try:
            import ctranslate2
            return ctranslate2.get_cuda_device_count() > 0
        except Exception:
            return False

    def transcribe(
        self,
        audio_data: np.ndarray,
        sample_rate: int = 16000,
        language: Optional[str] = None
    ) -> TranscriptionResult:
        """
        Transcribe audio data to text.

        Args:
            audio_data: Audio samples as numpy array (float32, mono, 16kHz)
            sample_rate: Sample rate of the audio (Whisper expects 16kHz)
            language: Language code (None for the default language)

        Returns:
            TranscriptionResult with transcribed text
        """
        if sample_rate != 16000:
            raise ValueError("Whisper expects 16kHz audio")

        model = self.load()

        if audio_data.size == 0:
            return TranscriptionResult(text="", language=language or self.language)

        # Ensure audio is float32 and normalized
        if audio_data.dtype != np.float32:
            audio_data = audio_data.astype(np.float32)

        if np.abs(audio_data).max() > 1.0:
            audio_data = audio_data / 32768.0  # Normalize from int16

        segments, info = model.transcribe(
            audio_data,
            language=language or self.language,
            beam_size=5,
            vad_filter=True,  # Filter out silence
            vad_parameters=dict(min_silence_duration_ms=500)
        )

        return self._result(segments, info)

    def transcribe_file(self, audio_path: str, language: Optional[str] = None) -> TranscriptionResult:
        """
        Transcribe an audio file.

        Args:
            audio_path: Path to audio file (wav, mp3, etc.)
            language: Language code (None for the default language)

        Returns:
            TranscriptionResult with transcribed text
        """
        model = self.load()

        segments, info = model.transcribe(
            audio_path,
            language=language or self.language,
            beam_size=5,
            vad_filter=True
        )

        return self._result(segments, info)

    def _result(self, segments, info) -> TranscriptionResult:
        # Whisper segments carry their own spacing for English; Chinese has none
        separator = "" if info.language in ("zh", "ja") else " "
        text_parts = [segment.text.strip() for segment in segments]

        return TranscriptionResult(
            text=separator.join(p for p in text_parts if p),
            language=info.language,
            confidence=info.language_probability,
            duration=info.duration
        )
