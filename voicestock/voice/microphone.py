"""
The audio input as an exclusive resource.

Only one capture session may own the microphone at a time. Device
detection goes through sounddevice, imported lazily so the matching side
of the package works without audio libraries installed.
"""

from typing import Any, Optional

from loguru import logger

from ..errors import EngineUnsupported, SessionBusy


def has_input_device() -> bool:
    """Check if a microphone is available."""
    try:
        import sounddevice as sd
        devices = sd.query_devices()
    except Exception as e:
        logger.debug("Audio device query failed: {}", e)
        return False
    return any(d["max_input_channels"] > 0 for d in devices)


class Microphone:
    """
    Exclusive handle on the audio input.

    Usage:
        mic = Microphone()
        mic.acquire(session)
        ...
        mic.release(session)
    """

    def __init__(self, check_device: bool = True):
        self.check_device = check_device
        self._owner: Optional[Any] = None

    @property
    def owner(self) -> Optional[Any]:
        return self._owner

    @property
    def in_use(self) -> bool:
        return self._owner is not None

    def acquire(self, owner: Any) -> None:
        """
        Take the microphone for `owner`.

        Raises:
            SessionBusy: another owner holds it
            EngineUnsupported: no input device is present
        """
        if self._owner is not None and self._owner is not owner:
            raise SessionBusy("Microphone is in use by another session")
        if self.check_device and not has_input_device():
            raise EngineUnsupported("No microphone found")
        self._owner = owner
        logger.debug("Microphone acquired")

    def release(self, owner: Any) -> None:
        """Give the microphone back; releasing something not held is a no-op."""
        if self._owner is owner:
            self._owner = None
            logger.debug("Microphone released")
