"""
Tests for the capture session state machine.

Engines and timers are scripted (see conftest), so every transition runs
without audio hardware.
"""

from unittest.mock import MagicMock

import pytest

from conftest import FakeEngine, FakeScheduler

from voicestock.config import CaptureConfig
from voicestock.errors import (
    EngineUnsupported,
    NoSpeechDetected,
    PermissionDenied,
    SessionBusy,
)
from voicestock.voice.microphone import Microphone
from voicestock.voice.session import CaptureSession
from voicestock.voice.state import Phase


@pytest.fixture
def mic():
    return Microphone(check_device=False)


@pytest.fixture
def callbacks():
    return MagicMock()


@pytest.fixture
def session(engine, scheduler, mic, capture_config, callbacks):
    return CaptureSession(
        engine=engine,
        scheduler=scheduler,
        microphone=mic,
        config=capture_config,
        on_transcript=callbacks.transcript,
        on_error=callbacks.error,
        on_tick=callbacks.tick,
    )


def _errors(callbacks):
    return [c.args[0] for c in callbacks.error.call_args_list]


# ═══════════════════════════════════════════════════════════════
# START
# ═══════════════════════════════════════════════════════════════

class TestStart:

    def test_start_enters_listening(self, session, engine, mic):
        session.start()
        assert session.phase is Phase.LISTENING
        assert engine.start_calls == 1
        assert mic.owner is session
        assert session.state.deadline == 15.0
        assert session.state.accumulated_text == ""
        assert session.state.manual_stop_requested is False

    def test_start_while_active_fails_fast(self, session, engine):
        session.start()
        with pytest.raises(SessionBusy):
            session.start()
        assert engine.start_calls == 1
        assert session.phase is Phase.LISTENING

    def test_second_session_cannot_take_microphone(self, session, scheduler, mic):
        other = CaptureSession(FakeEngine(), scheduler, microphone=mic)
        session.start()
        with pytest.raises(SessionBusy):
            other.start()
        assert other.phase is Phase.IDLE

    def test_unsupported_engine_never_starts(self, session, engine, scheduler, mic, callbacks):
        engine.start_error = RuntimeError("no recognizer")
        with pytest.raises(EngineUnsupported):
            session.start()
        assert session.phase is Phase.IDLE
        assert not mic.in_use
        assert scheduler.pending == []
        callbacks.transcript.assert_not_called()

    def test_permission_refused_at_start(self, session, engine, scheduler, mic):
        engine.start_error = PermissionDenied("denied")
        with pytest.raises(PermissionDenied):
            session.start()
        assert session.phase is Phase.IDLE
        assert not mic.in_use
        assert scheduler.pending == []

    def test_missing_microphone_is_unsupported(self, engine, scheduler, monkeypatch):
        monkeypatch.setattr("voicestock.voice.microphone.has_input_device", lambda: False)
        session = CaptureSession(engine, scheduler, microphone=Microphone(check_device=True))
        with pytest.raises(EngineUnsupported):
            session.start()
        assert engine.start_calls == 0

    def test_restart_after_previous_session(self, session, engine, callbacks):
        session.start()
        engine.say("两个狗套")
        session.stop()
        session.start()
        assert session.phase is Phase.LISTENING
        assert session.state.accumulated_text == ""
        assert session.state.current_chunk_text == ""


# ═══════════════════════════════════════════════════════════════
# STOP / DEADLINE
# ═══════════════════════════════════════════════════════════════

class TestStop:

    def test_stop_emits_transcript_once(self, session, engine, mic, callbacks):
        session.start()
        engine.say("两个")
        engine.say("两个狗套")
        session.stop()

        callbacks.transcript.assert_called_once_with("两个狗套")
        callbacks.error.assert_not_called()
        assert session.phase is Phase.IDLE
        assert not mic.in_use

    def test_stop_does_not_restart(self, session, engine, scheduler):
        session.start()
        engine.say("护膝")
        session.stop()
        scheduler.advance(5)
        assert engine.start_calls == 1

    def test_stop_clears_all_timers(self, session, engine, scheduler):
        session.start()
        session.stop()
        assert scheduler.pending == []

    def test_stop_when_idle_is_noop(self, session, engine, callbacks):
        session.stop()
        assert engine.stop_calls == 0
        callbacks.transcript.assert_not_called()
        callbacks.error.assert_not_called()

    def test_stop_is_idempotent(self, session, engine, callbacks):
        session.start()
        engine.say("狗套")
        session.stop()
        session.stop()
        session.stop()
        assert engine.stop_calls == 1
        callbacks.transcript.assert_called_once_with("狗套")

    def test_stop_while_finalizing_is_noop(self, scheduler, mic, callbacks):
        engine = FakeEngine(end_on_stop=False)
        session = CaptureSession(engine, scheduler, microphone=mic, on_transcript=callbacks.transcript)
        session.start()
        engine.say("狗套")
        session.stop()
        assert session.phase is Phase.FINALIZING
        session.stop()
        assert engine.stop_calls == 1

        engine.listener.on_end()
        callbacks.transcript.assert_called_once_with("狗套")

    def test_deadline_stops_session(self, session, engine, scheduler, callbacks):
        session.start()
        engine.say("三个护膝")
        scheduler.advance(14.9)
        assert session.phase is Phase.LISTENING
        scheduler.advance(0.2)

        assert engine.stop_calls == 1
        assert session.phase is Phase.IDLE
        callbacks.transcript.assert_called_once_with("三个护膝")

    def test_transcript_is_trimmed(self, session, engine, callbacks):
        session.start()
        engine.say("  狗套M  ")
        session.stop()
        callbacks.transcript.assert_called_once_with("狗套M")

    def test_empty_transcript_reports_no_speech(self, session, engine, callbacks):
        session.start()
        engine.say("   ")
        session.stop()

        callbacks.transcript.assert_not_called()
        [error] = _errors(callbacks)
        assert isinstance(error, NoSpeechDetected)

    def test_final_result_after_stop_is_kept(self, scheduler, mic, callbacks):
        engine = FakeEngine(end_on_stop=False)
        session = CaptureSession(engine, scheduler, microphone=mic, on_transcript=callbacks.transcript)
        session.start()
        engine.say("两个")
        session.stop()
        engine.say("两个狗套", is_final=True)
        engine.listener.on_end()
        callbacks.transcript.assert_called_once_with("两个狗套")

    def test_grace_timer_finalizes_silent_engine(self, scheduler, mic, capture_config, callbacks):
        engine = FakeEngine(end_on_stop=False)
        session = CaptureSession(
            engine, scheduler, microphone=mic, config=capture_config,
            on_transcript=callbacks.transcript,
        )
        session.start()
        engine.say("护膝")
        session.stop()
        callbacks.transcript.assert_not_called()

        scheduler.advance(1.5)
        callbacks.transcript.assert_called_once_with("护膝")
        assert session.phase is Phase.IDLE
        assert not mic.in_use

        # The engine's late end event changes nothing
        engine.listener.on_end()
        callbacks.transcript.assert_called_once()

    def test_slow_final_result_within_engine_grace(self, scheduler, mic, capture_config, callbacks):
        engine = FakeEngine(end_on_stop=False)
        engine.stop_grace = 5.0
        session = CaptureSession(
            engine, scheduler, microphone=mic, config=capture_config,
            on_transcript=callbacks.transcript,
        )
        session.start()
        engine.say("两个")
        session.stop()
        assert session.stop_grace == 5.0

        # Past the configured 1.5s grace, the final pass is still running
        scheduler.advance(3.0)
        callbacks.transcript.assert_not_called()

        engine.say("两个狗套", is_final=True)
        engine.listener.on_end()
        callbacks.transcript.assert_called_once_with("两个狗套")
        assert session.phase is Phase.IDLE

    def test_configured_grace_wins_over_shorter_engine_grace(self, scheduler, mic, capture_config):
        engine = FakeEngine(end_on_stop=False)
        engine.stop_grace = 0.5
        session = CaptureSession(engine, scheduler, microphone=mic, config=capture_config)
        assert session.stop_grace == 1.5


# ═══════════════════════════════════════════════════════════════
# RESTARTS
# ═══════════════════════════════════════════════════════════════

class TestRestart:

    def test_spontaneous_end_restarts_after_delay(self, session, engine, scheduler):
        session.start()
        engine.say("两个")
        engine.drop()

        assert session.phase is Phase.RESTARTING
        assert session.state.accumulated_text == "两个"
        assert session.state.current_chunk_text == ""
        assert engine.start_calls == 1

        scheduler.advance(0.1)
        assert session.phase is Phase.LISTENING
        assert engine.start_calls == 2

    def test_chunks_are_stitched_in_order(self, session, engine, scheduler, callbacks):
        session.start()
        engine.say("两")
        engine.say("两个")
        engine.drop("no-speech")
        scheduler.advance(0.1)
        engine.say("狗")
        engine.say("狗套")
        engine.drop("network")
        scheduler.advance(0.1)
        engine.say("S")
        session.stop()

        callbacks.transcript.assert_called_once_with("两个狗套S")
        callbacks.error.assert_not_called()
        assert engine.start_calls == 3

    def test_restart_is_invisible_to_caller(self, session, engine, scheduler, callbacks):
        session.start()
        for _ in range(5):
            engine.drop("no-speech")
            scheduler.advance(0.1)
        callbacks.error.assert_not_called()
        callbacks.transcript.assert_not_called()
        assert session.phase is Phase.LISTENING

    def test_stop_while_restarting_finalizes_immediately(self, session, engine, scheduler, callbacks):
        session.start()
        engine.say("狗套M")
        engine.drop()
        session.stop()

        assert session.phase is Phase.IDLE
        assert engine.stop_calls == 0
        callbacks.transcript.assert_called_once_with("狗套M")
        scheduler.advance(1)
        assert engine.start_calls == 1

    def test_deadline_during_restart_delay(self, engine, scheduler, mic, callbacks):
        config = CaptureConfig(max_duration=2.0, restart_delay=0.5)
        session = CaptureSession(
            engine, scheduler, microphone=mic, config=config,
            on_transcript=callbacks.transcript,
        )
        session.start()
        engine.say("护膝")
        scheduler.advance(1.8)
        engine.drop()
        scheduler.advance(0.3)

        callbacks.transcript.assert_called_once_with("护膝")
        assert engine.start_calls == 1
        assert scheduler.pending == []

    def test_stale_listener_is_ignored(self, session, engine, scheduler, callbacks):
        session.start()
        first = engine.listener
        engine.say("两个")
        engine.drop()
        scheduler.advance(0.1)

        # A late duplicate end from the first sub-attempt
        first.on_result("garbage", False)
        first.on_end()
        assert session.phase is Phase.LISTENING
        assert session.state.accumulated_text == "两个"

        engine.say("狗套")
        session.stop()
        callbacks.transcript.assert_called_once_with("两个狗套")

    def test_failed_restart_is_retried(self, session, engine, scheduler):
        session.start()
        engine.drop()
        engine.start_error = OSError("device busy")
        scheduler.advance(0.1)
        assert session.phase is Phase.RESTARTING

        engine.start_error = None
        scheduler.advance(0.1)
        assert session.phase is Phase.LISTENING
        assert engine.start_calls == 2

    def test_cumulative_engine_dedupe(self, engine, scheduler, mic, callbacks):
        config = CaptureConfig(dedupe_cumulative=True)
        session = CaptureSession(
            engine, scheduler, microphone=mic, config=config,
            on_transcript=callbacks.transcript,
        )
        session.start()
        engine.say("两个")
        engine.drop()
        scheduler.advance(0.1)
        engine.say("两个狗套")
        session.stop()
        callbacks.transcript.assert_called_once_with("两个狗套")


# ═══════════════════════════════════════════════════════════════
# FATAL ERRORS
# ═══════════════════════════════════════════════════════════════

class TestFatalErrors:

    @pytest.mark.parametrize("code", ["not-allowed", "service-not-allowed"])
    def test_permission_error_aborts_without_transcript(self, session, engine, scheduler, mic, callbacks, code):
        session.start()
        engine.say("两个狗套")
        engine.drop(code)

        assert session.phase is Phase.IDLE
        assert not mic.in_use
        assert scheduler.pending == []
        callbacks.transcript.assert_not_called()
        [error] = _errors(callbacks)
        assert isinstance(error, PermissionDenied)

        scheduler.advance(20)
        assert engine.start_calls == 1

    def test_permission_error_on_restart(self, session, engine, scheduler, callbacks):
        session.start()
        engine.drop()
        engine.start_error = PermissionDenied("revoked")
        scheduler.advance(0.1)

        assert session.phase is Phase.IDLE
        [error] = _errors(callbacks)
        assert isinstance(error, PermissionDenied)
        callbacks.transcript.assert_not_called()

    def test_callback_errors_do_not_break_session(self, engine, scheduler, mic):
        def explode(_):
            raise ValueError("ui bug")

        session = CaptureSession(engine, scheduler, microphone=mic, on_transcript=explode, on_tick=explode)
        session.start()
        engine.say("护膝")
        session.stop()
        assert session.phase is Phase.IDLE
        assert not mic.in_use


# ═══════════════════════════════════════════════════════════════
# COUNTDOWN
# ═══════════════════════════════════════════════════════════════

class TestCountdown:

    def test_tick_counts_down_each_second(self, session, scheduler, callbacks):
        session.start()
        scheduler.advance(3)
        ticks = [c.args[0] for c in callbacks.tick.call_args_list]
        assert ticks == [15, 14, 13, 12]

    def test_remaining_seconds(self, session, scheduler):
        assert session.remaining_seconds() == 0
        session.start()
        scheduler.advance(4.5)
        assert session.remaining_seconds() == 11

    def test_ticks_stop_after_session(self, session, scheduler, callbacks):
        session.start()
        scheduler.advance(2)
        session.stop()
        count = callbacks.tick.call_count
        scheduler.advance(10)
        assert callbacks.tick.call_count == count

    def test_ticks_continue_through_restarts(self, session, engine, scheduler, callbacks):
        session.start()
        engine.drop()
        scheduler.advance(1)
        ticks = [c.args[0] for c in callbacks.tick.call_args_list]
        assert ticks == [15, 14]
