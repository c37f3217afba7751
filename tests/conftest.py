"""
Shared fixtures: a manual clock for timers, a scripted recognition engine
and a small pet-supplies catalog.
"""

import sys
from pathlib import Path
from typing import Callable, List, Optional

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from voicestock.config import CaptureConfig
from voicestock.llm.base import LLMConfig, LLMProvider, LLMResponse
from voicestock.schemas.catalog import build_catalog


class FakeTimer:
    def __init__(self, due: float, seq: int, callback: Callable[[], None]):
        self.due = due
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Timers fire only when the test advances the clock."""

    def __init__(self):
        self.now = 0.0
        self._seq = 0
        self.timers: List[FakeTimer] = []

    def time(self) -> float:
        return self.now

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        self._seq += 1
        timer = FakeTimer(self.now + delay, self._seq, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> List[FakeTimer]:
        return [t for t in self.timers if not t.cancelled]

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due timers in order."""
        target = self.now + seconds
        while True:
            due = [t for t in self.pending if t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due, t.seq))
            self.timers.remove(timer)
            self.now = max(self.now, timer.due)
            timer.callback()
        self.now = target


class FakeEngine:
    """
    Records every listener it is started with.

    Tests drive recognition through `listener` (the latest sub-attempt).
    With end_on_stop, stop() reports on_end synchronously like most engines.
    """

    def __init__(self, end_on_stop: bool = True):
        self.end_on_stop = end_on_stop
        self.listeners: list = []
        self.stop_calls = 0
        self.start_error: Optional[Exception] = None

    @property
    def listener(self):
        return self.listeners[-1]

    @property
    def start_calls(self) -> int:
        return len(self.listeners)

    def start(self, listener) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.listeners.append(listener)
        listener.on_start()

    def stop(self) -> None:
        self.stop_calls += 1
        if self.end_on_stop and self.listeners:
            self.listeners[-1].on_end()

    def say(self, text: str, is_final: bool = False) -> None:
        self.listener.on_result(text, is_final)

    def drop(self, code: Optional[str] = None) -> None:
        """Spontaneous end of the current sub-attempt."""
        if code:
            self.listener.on_error(code)
        self.listener.on_end()


class ScriptedProvider(LLMProvider):
    """Returns canned content (or raises) and records its calls."""

    def __init__(self, name="modelscope", reply="{}", error=None, requires_key=True):
        super().__init__(LLMConfig(provider_name=name, model="test-model"))
        self.reply = reply
        self.error = error
        self.requires_api_key = requires_key
        self.calls = []

    def chat(self, messages, api_key=None, temperature=None, max_tokens=None, **kwargs):
        self.calls.append({"messages": messages, "api_key": api_key})
        if self.error is not None:
            raise self.error
        return LLMResponse(content=self.reply, model="test-model", provider=self.name)


PRODUCTS = [
    {"id": "D001S", "name": "狗套S", "category": "服装", "unit": "件", "price": 25.0},
    {"id": "D001M", "name": "狗套M", "category": "服装", "unit": "件", "price": 28.0},
    {"id": "C001", "name": "护膝", "category": "护具", "unit": "副", "price": 15.0},
    {"id": "P200", "name": "贴皮裙甲A黑", "category": "护具", "unit": "件", "price": 120.0},
    {"id": "L010", "name": "dog collar xl", "category": "accessories", "unit": "pc", "price": 9.5},
]


@pytest.fixture
def catalog():
    return build_catalog(PRODUCTS)


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def capture_config():
    return CaptureConfig(max_duration=15.0, tick_interval=1.0, restart_delay=0.1, stop_grace=1.5)
