"""
Error taxonomy for voice capture and product matching.

Only errors that need a user decision cross the package boundary:
- PermissionDenied / EngineUnsupported: the microphone cannot be used
- RemoteAuthError: the API key must be corrected
- NoSpeechDetected: the session ended with nothing to resolve

Everything else (engine drops, network hiccups, unparseable AI replies)
is recovered internally.
"""


class VoicestockError(Exception):
    """Base class for all package errors."""


# ── Capture ──────────────────────────────────────────────────────────────────

class CaptureError(VoicestockError):
    """Raised or reported by a capture session."""

    user_message = "Voice capture failed."


class EngineUnsupported(CaptureError):
    """No usable recognition engine or audio input on this device."""

    user_message = "Speech recognition is not supported on this device."


class PermissionDenied(CaptureError):
    """Microphone or recognition service access was refused."""

    user_message = "Microphone permission was denied. Allow it in your settings."


class SessionBusy(CaptureError):
    """A capture session is already active."""

    user_message = "Already listening."


class NoSpeechDetected(CaptureError):
    """The session ended without any recognized text. Not fatal."""

    user_message = "No speech detected. Try again."


class TransientEngineInterruption(VoicestockError):
    """
    An engine dropped out mid-session (silence timeout, network blip).

    Recovered by restarting the engine; never surfaced to callers.
    """


# ── Remote matching ──────────────────────────────────────────────────────────

class RemoteMatchError(VoicestockError):
    """A remote matcher could not produce a result."""

    def __init__(self, message: str, backend: str = ""):
        super().__init__(message)
        self.backend = backend


class RemoteAuthError(RemoteMatchError):
    """The backend rejected the credentials (HTTP 401)."""

    user_message = "The API key is invalid or expired. Update it in settings."


class RemoteNetworkError(RemoteMatchError):
    """The backend was unreachable, timed out, or returned a non-auth HTTP error."""


class RemoteParseError(RemoteMatchError):
    """The backend replied with something that is not a usable JSON result."""


# Short names used throughout the matching code
AuthError = RemoteAuthError
NetworkError = RemoteNetworkError
ParseError = RemoteParseError
