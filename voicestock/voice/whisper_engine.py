"""
Recognition engine on top of sounddevice capture and local Whisper.

Each sub-attempt records on a worker thread until the speaker pauses,
transcribing what it has so far every `interim_interval` seconds. Like a
browser recognizer it ends on its own after a pause (or after hearing
nothing for `no_speech_timeout`), and the capture session restarts it.

All listener callbacks are posted to the asyncio loop, so the session
only ever runs on the loop's thread.
"""

import asyncio
import threading
import time
from typing import Callable, List, Optional

import numpy as np
from loguru import logger

from ..config import CaptureConfig
from . import engine as codes
from .engine import EngineListener
from .speech_to_text import SpeechToText

BLOCK_SIZE = 1024

# Worst-case CPU time for the final beam-search pass over a full-length
# sub-attempt, per model size. stop() waits this long for the final result.
FINAL_PASS_SECONDS = {
    "tiny": 3.0,
    "base": 5.0,
    "small": 10.0,
    "medium": 25.0,
    "large-v3": 45.0,
}


class WhisperEngine:
    """
    RecognitionEngine that records with sounddevice and transcribes with faster-whisper.

    Usage:
        stt = SpeechToText("base", language="zh")
        stt.load()
        engine = WhisperEngine(stt, loop, config.capture)
    """

    def __init__(
        self,
        stt: SpeechToText,
        loop: asyncio.AbstractEventLoop,
        config: Optional[CaptureConfig] = None,
        sample_rate: int = 16000,
    ):
        """
        Args:
            stt: Loaded (or lazily loading) transcriber
            loop: Event loop the capture session runs on
            config: Silence and timing thresholds
            sample_rate: Audio sample rate (16000 recommended for Whisper)
        """
        self.stt = stt
        self.loop = loop
        self.config = config or CaptureConfig()
        self.sample_rate = sample_rate
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def stop_grace(self) -> float:
        """
        How long a session should wait for on_end after stop().

        The final result only arrives after a full transcription pass, so
        the configured grace is raised to the model's worst case.
        """
        worst_case = FINAL_PASS_SECONDS.get(self.stt.model_size, max(FINAL_PASS_SECONDS.values()))
        return max(self.config.stop_grace, worst_case)

    def start(self, listener: EngineListener) -> None:
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            args=(listener, self._stop_event),
            name="whisper-engine",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        # The worker flushes a final result and reports on_end itself
        if self._stop_event is not None:
            self._stop_event.set()

    def _post(self, callback: Callable, *args) -> None:
        try:
            self.loop.call_soon_threadsafe(callback, *args)
        except RuntimeError:
            logger.debug("Event loop closed; dropping engine callback")

    def _run(self, listener: EngineListener, stop_event: threading.Event) -> None:
        try:
            self._record(listener, stop_event)
        except Exception as e:
            code = self._classify(e)
            logger.warning("Whisper engine error ({}): {}", code, e)
            self._post(listener.on_error, code)
        finally:
            self._post(listener.on_end)

    def _classify(self, error: Exception) -> str:
        message = str(error).lower()
        if "permission" in message or "not authorized" in message:
            return codes.NOT_ALLOWED
        return codes.AUDIO_CAPTURE

    def _record(self, listener: EngineListener, stop_event: threading.Event) -> None:
        import sounddevice as sd

        cfg = self.config
        audio_chunks: List[np.ndarray] = []
        silence_blocks = 0
        speech_started = False
        blocks_for_silence = max(1, int(cfg.silence_duration * self.sample_rate / BLOCK_SIZE))

        def callback(indata, frames, time_info, status):
            nonlocal silence_blocks, speech_started

            if status:
                logger.debug("Audio status: {}", status)

            chunk = indata.copy().flatten()
            rms = np.sqrt(np.mean(chunk ** 2))

            if rms > cfg.silence_threshold:
                speech_started = True
                silence_blocks = 0
                audio_chunks.append(chunk)
            elif speech_started:
                silence_blocks += 1
                audio_chunks.append(chunk)  # Include some silence

        with sd.InputStream(
            samplerate=self.sample_rate,
            channels=1,
            dtype="float32",
            blocksize=BLOCK_SIZE,
            callback=callback
        ):
            self._post(listener.on_start)
            started_at = time.monotonic()
            last_interim = started_at

            while not stop_event.is_set():
                sd.sleep(100)
                now = time.monotonic()

                if speech_started and silence_blocks >= blocks_for_silence:
                    logger.debug("Pause detected; ending sub-attempt")
                    break

                if not speech_started and now - started_at >= cfg.no_speech_timeout:
                    self._post(listener.on_error, codes.NO_SPEECH)
                    return

                if speech_started and now - last_interim >= cfg.interim_interval:
                    last_interim = now
                    text = self._transcribe(list(audio_chunks))
                    if text:
                        self._post(listener.on_result, text, False)

        # Final pass over the whole sub-attempt, stop() included
        text = self._transcribe(audio_chunks)
        if text:
            self._post(listener.on_result, text, True)

    def _transcribe(self, chunks: List[np.ndarray]) -> str:
        if not chunks:
            return ""
        result = self.stt.transcribe(np.concatenate(chunks), sample_rate=self.sample_rate)
        return result.text.strip()
