"""
Capture session - one bounded voice capture attempt.

    IDLE -> LISTENING -> (RESTARTING <-> LISTENING)* -> FINALIZING -> IDLE

The engine drops out whenever it hears silence or loses the network. While
the session is live those drops are absorbed: the chunk recognized so far
is committed and the engine restarts after a short pause. Only the
deadline or stop() ends the session, which then emits exactly one
transcript (or NoSpeechDetected).

Everything runs on one thread; engines that work in the background must
deliver their callbacks through the scheduler's loop.
"""

import math
from typing import Callable, Optional

from loguru import logger

from ..config import CaptureConfig
from ..errors import CaptureError, EngineUnsupported, NoSpeechDetected, SessionBusy
from . import state as fsm
from .engine import RecognitionEngine, error_for_code, is_fatal
from .microphone import Microphone
from .scheduler import Scheduler, TimerHandle
from .state import Phase, SessionState, StitchPolicy


class _AttemptListener:
    """
    Listener for a single engine sub-attempt.

    A new one is handed to the engine on every (re)start; callbacks from a
    listener that is no longer current are dropped, so a late on_end from
    an old sub-attempt cannot commit or restart anything.
    """

    def __init__(self, session: "CaptureSession", attempt: int):
        self._session = session
        self.attempt = attempt

    @property
    def current(self) -> bool:
        return self._session._listener is self

    def on_start(self) -> None:
        if self.current:
            self._session._handle_start(self)

    def on_result(self, text: str, is_final: bool = False) -> None:
        if self.current:
            self._session._handle_result(self, text, is_final)

    def on_error(self, code: str) -> None:
        if self.current:
            self._session._handle_error(self, code)

    def on_end(self) -> None:
        if self.current:
            self._session._handle_end(self)


class CaptureSession:
    """
    State machine around a recognition engine.

    Usage:
        session = CaptureSession(
            engine, AsyncioScheduler(loop), Microphone(),
            on_transcript=handle_text,
            on_error=show_error,
        )
        session.start()
        ...
        session.stop()

    start() raises SessionBusy, EngineUnsupported or PermissionDenied when
    capture cannot begin at all. Errors that happen later (a permission
    revoked mid-session, nothing heard) arrive through on_error.
    """

    def __init__(
        self,
        engine: RecognitionEngine,
        scheduler: Scheduler,
        microphone: Optional[Microphone] = None,
        config: Optional[CaptureConfig] = None,
        on_transcript: Optional[Callable[[str], None]] = None,
        on_error: Optional[Callable[[CaptureError], None]] = None,
        on_tick: Optional[Callable[[int], None]] = None,
    ):
        self.engine = engine
        self.scheduler = scheduler
        self.microphone = microphone or Microphone(check_device=False)
        self.config = config or CaptureConfig()
        self.policy = StitchPolicy(
            dedupe_cumulative=self.config.dedupe_cumulative,
            ascii_spacing=self.config.ascii_spacing,
        )

        self.on_transcript = on_transcript
        self.on_error = on_error
        self.on_tick = on_tick

        self._state = SessionState()
        self._generation = 0
        self._attempts = 0
        self._listener: Optional[_AttemptListener] = None

        self._tick_timer: Optional[TimerHandle] = None
        self._deadline_timer: Optional[TimerHandle] = None
        self._restart_timer: Optional[TimerHandle] = None
        self._grace_timer: Optional[TimerHandle] = None

    # ── Introspection ────────────────────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def is_active(self) -> bool:
        return self._state.phase.is_active

    @property
    def attempts(self) -> int:
        """Engine sub-attempts started in the current (or last) session."""
        return self._attempts

    @property
    def stop_grace(self) -> float:
        """Seconds to wait for the engine's end after stop()."""
        engine_grace = getattr(self.engine, "stop_grace", None) or 0.0
        return max(self.config.stop_grace, engine_grace)

    def remaining_seconds(self) -> int:
        """Whole seconds until the deadline, 0 when idle."""
        if not self.is_active:
            return 0
        return max(0, math.ceil(self._state.deadline - self.scheduler.time()))

    # ── Commands ─────────────────────────────────────────────────────────────

    def start(self) -> None:
        """
        Begin capturing.

        Raises:
            SessionBusy: a session is already running, or the microphone is taken
            EngineUnsupported: no engine or no input device
            PermissionDenied: the engine refused to start
        """
        if self.is_active:
            raise SessionBusy("Capture session already active")

        self.microphone.acquire(self)

        self._generation += 1
        self._attempts = 0
        self._state = fsm.begin(self.scheduler.time() + self.config.max_duration)
        logger.debug("Capture session {} started ({}s)", self._generation, self.config.max_duration)

        generation = self._generation
        self._tick_timer = self.scheduler.call_later(
            self.config.tick_interval, lambda: self._on_tick(generation)
        )
        self._deadline_timer = self.scheduler.call_later(
            self.config.max_duration, lambda: self._on_deadline(generation)
        )

        try:
            self._launch_engine()
        except CaptureError:
            self._state = fsm.abort(self._state)
            self._teardown()
            raise
        except Exception as exc:
            self._state = fsm.abort(self._state)
            self._teardown()
            raise EngineUnsupported(f"Recognition engine failed to start: {exc}") from exc

        if self.is_active:
            self._emit_tick()

    def stop(self) -> None:
        """
        Stop capturing and emit the transcript.

        Safe to call at any time: a no-op when idle or already stopping.
        """
        phase = self._state.phase
        if phase in (Phase.IDLE, Phase.FINALIZING):
            return

        logger.debug("Capture session {} stopping from {}", self._generation, phase.value)
        self._state = fsm.request_stop(self._state)
        self._cancel_session_timers()

        if phase is Phase.RESTARTING or self._listener is None:
            # Engine is not running; there is no end event to wait for
            self._finalize()
            return

        generation = self._generation
        self._grace_timer = self.scheduler.call_later(
            self.stop_grace, lambda: self._on_grace_expired(generation)
        )
        try:
            self.engine.stop()
        except Exception as exc:
            logger.warning("Engine stop failed: {}", exc)
            if self._state.phase is Phase.FINALIZING:
                self._listener = None
                self._finalize()

    # ── Engine callbacks ─────────────────────────────────────────────────────

    def _handle_start(self, listener: _AttemptListener) -> None:
        logger.debug("Engine sub-attempt {} running", listener.attempt)

    def _handle_result(self, listener: _AttemptListener, text: str, is_final: bool) -> None:
        if self._state.phase in (Phase.LISTENING, Phase.FINALIZING):
            self._state = fsm.record_result(self._state, text)

    def _handle_error(self, listener: _AttemptListener, code: str) -> None:
        if is_fatal(code):
            logger.warning("Engine reported fatal error: {}", code)
            self._fail(error_for_code(code))
            return
        # Transient: the engine's on_end follows and triggers a restart
        logger.debug("Engine sub-attempt {} interrupted: {}", listener.attempt, code)

    def _handle_end(self, listener: _AttemptListener) -> None:
        self._listener = None
        phase = self._state.phase

        if phase is Phase.LISTENING and not self._state.manual_stop_requested:
            self._state = fsm.interrupt(self._state, self.policy)
            self._schedule_restart()
        elif phase is Phase.FINALIZING:
            self._finalize()

    # ── Timers ───────────────────────────────────────────────────────────────

    def _on_tick(self, generation: int) -> None:
        if generation != self._generation or self._state.phase not in (Phase.LISTENING, Phase.RESTARTING):
            return
        self._tick_timer = None
        self._emit_tick()
        if self.remaining_seconds() > 0:
            self._tick_timer = self.scheduler.call_later(
                self.config.tick_interval, lambda: self._on_tick(generation)
            )

    def _on_deadline(self, generation: int) -> None:
        if generation != self._generation or not self.is_active:
            return
        self._deadline_timer = None
        logger.info("Capture deadline reached after {}s", self.config.max_duration)
        self.stop()

    def _on_grace_expired(self, generation: int) -> None:
        if generation != self._generation or self._state.phase is not Phase.FINALIZING:
            return
        self._grace_timer = None
        logger.warning("Engine did not report its end within {}s; finalizing", self.stop_grace)
        self._listener = None
        self._finalize()

    def _schedule_restart(self) -> None:
        generation = self._generation
        logger.debug("Restarting engine in {}s", self.config.restart_delay)
        self._restart_timer = self.scheduler.call_later(
            self.config.restart_delay, lambda: self._restart(generation)
        )

    def _restart(self, generation: int) -> None:
        if generation != self._generation or self._state.phase is not Phase.RESTARTING:
            return
        self._restart_timer = None
        self._state = fsm.resume(self._state)
        try:
            self._launch_engine()
        except CaptureError as exc:
            self._fail(exc)
        except Exception as exc:
            logger.warning("Engine restart failed, retrying: {}", exc)
            self._listener = None
            self._state = fsm.interrupt(self._state, self.policy)
            self._schedule_restart()

    # ── Internals ────────────────────────────────────────────────────────────

    def _launch_engine(self) -> None:
        self._attempts += 1
        listener = _AttemptListener(self, self._attempts)
        self._listener = listener
        self.engine.start(listener)

    def _finalize(self) -> None:
        transcript = fsm.final_transcript(self._state, self.policy)
        self._state = fsm.finish(self._state, self.policy)
        self._teardown()

        if transcript:
            logger.info("Capture finished: {!r}", transcript)
            self._emit(self.on_transcript, transcript)
        else:
            logger.info("Capture finished without speech")
            self._emit(self.on_error, NoSpeechDetected("No speech detected"))

    def _fail(self, error: CaptureError) -> None:
        running = self._listener is not None
        self._listener = None
        self._state = fsm.abort(self._state)
        if running:
            try:
                self.engine.stop()
            except Exception as exc:
                logger.debug("Engine stop after failure raised: {}", exc)
        self._teardown()
        self._emit(self.on_error, error)

    def _teardown(self) -> None:
        self._cancel_session_timers()
        if self._grace_timer is not None:
            self._grace_timer.cancel()
            self._grace_timer = None
        self._listener = None
        self.microphone.release(self)

    def _cancel_session_timers(self) -> None:
        for name in ("_tick_timer", "_deadline_timer", "_restart_timer"):
            timer = getattr(self, name)
            if timer is not None:
                timer.cancel()
                setattr(self, name, None)

    def _emit_tick(self) -> None:
        self._emit(self.on_tick, self.remaining_seconds())

    def _emit(self, callback: Optional[Callable], value) -> None:
        if callback is None:
            return
        try:
            callback(value)
        except Exception as exc:
            logger.exception("Capture session callback raised: {}", exc)
