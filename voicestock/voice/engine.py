"""
Recognition engine interface.

An engine turns microphone audio into text and reports through a listener:

    on_start()                      audio capture began
    on_result(text, is_final)       cumulative text for the current sub-attempt
    on_error(code)                  something went wrong; on_end usually follows
    on_end()                        the sub-attempt is over

Engines end on their own (silence, network drops). That is normal, not an
error, and the capture session restarts them.
"""

from typing import Protocol

from ..errors import EngineUnsupported, PermissionDenied

# Error codes, named after the Web Speech API's
NOT_ALLOWED = "not-allowed"
SERVICE_NOT_ALLOWED = "service-not-allowed"
NO_SPEECH = "no-speech"
NETWORK = "network"
ABORTED = "aborted"
AUDIO_CAPTURE = "audio-capture"
UNSUPPORTED = "unsupported"

FATAL_CODES = frozenset({NOT_ALLOWED, SERVICE_NOT_ALLOWED, UNSUPPORTED})


class EngineListener(Protocol):
    def on_start(self) -> None: ...

    def on_result(self, text: str, is_final: bool) -> None: ...

    def on_error(self, code: str) -> None: ...

    def on_end(self) -> None: ...


class RecognitionEngine(Protocol):
    """
    One recognizer, restartable per sub-attempt.

    An engine whose final result needs extra time after stop() may expose
    a `stop_grace` attribute in seconds; sessions wait at least that long.
    """

    def start(self, listener: EngineListener) -> None:
        """Begin a sub-attempt reporting to `listener`. May raise CaptureError."""

    def stop(self) -> None:
        """End the running sub-attempt; on_end follows (possibly later)."""


def is_fatal(code: str) -> bool:
    """True for error codes that end the session instead of restarting."""
    return code in FATAL_CODES


def error_for_code(code: str):
    """Categorized error for a fatal engine code."""
    if code == UNSUPPORTED:
        return EngineUnsupported(f"Recognition engine unsupported ({code})")
    return PermissionDenied(f"Recognition refused by engine ({code})")
