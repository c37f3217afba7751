"""
Voice capture for spoken stock entry.

Components:
- CaptureSession: bounded capture with automatic engine restarts
- WhisperEngine: microphone + faster-whisper recognition engine
- SpeechToText: local Whisper model with explicit load/unload
- Microphone: exclusive audio input resource
- AsyncioScheduler: timers on the asyncio event loop
"""

from .state import Phase, SessionState, StitchPolicy, join_chunks
from .engine import EngineListener, RecognitionEngine, is_fatal
from .scheduler import AsyncioScheduler, Scheduler, TimerHandle
from .microphone import Microphone, has_input_device
from .session import CaptureSession
from .speech_to_text import SpeechToText, TranscriptionResult
from .whisper_engine import WhisperEngine

__all__ = [
    "Phase",
    "SessionState",
    "StitchPolicy",
    "join_chunks",
    "EngineListener",
    "RecognitionEngine",
    "is_fatal",
    "AsyncioScheduler",
    "Scheduler",
    "TimerHandle",
    "Microphone",
    "has_input_device",
    "CaptureSession",
    "SpeechToText",
    "TranscriptionResult",
    "WhisperEngine"
]
