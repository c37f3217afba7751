"""
Capture session state and its pure transitions.

A session's text lives in two places:
- accumulated_text: chunks from sub-attempts that already ended
- current_chunk_text: what the running sub-attempt has recognized so far

Each transition returns a new SessionState; the session object holds the
single current value. Every chunk is committed exactly once, when its
sub-attempt ends.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum


class Phase(str, Enum):
    """Where a capture session is in its lifecycle."""
    IDLE = "idle"
    LISTENING = "listening"
    RESTARTING = "restarting"  # Engine dropped out; restart is pending
    FINALIZING = "finalizing"  # Stop requested; waiting for the engine to end

    @property
    def is_active(self) -> bool:
        return self is not Phase.IDLE


@dataclass(frozen=True)
class SessionState:
    """Everything a capture session knows."""
    phase: Phase = Phase.IDLE
    accumulated_text: str = ""
    current_chunk_text: str = ""
    deadline: float = 0.0
    manual_stop_requested: bool = False


@dataclass(frozen=True)
class StitchPolicy:
    """
    How committed chunks are joined.

    dedupe_cumulative: engines that report text cumulative across restarts
        (instead of per sub-attempt) repeat everything said so far; with this
        on, a chunk that starts with the whole accumulated text replaces it.
    ascii_spacing: insert one space where two chunks meet between ASCII
        letters/digits ("hello" + "world" -> "hello world").
    """
    dedupe_cumulative: bool = False
    ascii_spacing: bool = False


PLAIN = StitchPolicy()


def _is_ascii_word_char(char: str) -> bool:
    return char.isascii() and char.isalnum()


def join_chunks(accumulated: str, chunk: str, policy: StitchPolicy = PLAIN) -> str:
    """
    Append a committed chunk to the accumulated text.

    With the default policy this is plain concatenation, which is what CJK
    text and engines with per-sub-attempt results need.
    """
    if not chunk:
        return accumulated
    if not accumulated:
        return chunk

    if policy.dedupe_cumulative:
        head = accumulated.strip()
        if head and chunk.lstrip().startswith(head):
            return chunk

    if policy.ascii_spacing and _is_ascii_word_char(accumulated[-1]) and _is_ascii_word_char(chunk[0]):
        return f"{accumulated} {chunk}"
    return accumulated + chunk


def begin(deadline: float) -> SessionState:
    """IDLE -> LISTENING with empty accumulators and the stop flag cleared."""
    return SessionState(phase=Phase.LISTENING, deadline=deadline)


def record_result(state: SessionState, cumulative_text: str) -> SessionState:
    """Replace the in-flight chunk with the engine's cumulative text."""
    return replace(state, current_chunk_text=cumulative_text or "")


def commit_chunk(state: SessionState, policy: StitchPolicy = PLAIN) -> SessionState:
    """Move the in-flight chunk into the accumulated text."""
    return replace(
        state,
        accumulated_text=join_chunks(state.accumulated_text, state.current_chunk_text, policy),
        current_chunk_text="",
    )


def interrupt(state: SessionState, policy: StitchPolicy = PLAIN) -> SessionState:
    """Engine ended on its own mid-session: commit and wait for a restart."""
    return replace(commit_chunk(state, policy), phase=Phase.RESTARTING)


def resume(state: SessionState) -> SessionState:
    """Restart delay elapsed: the engine is running again."""
    return replace(state, phase=Phase.LISTENING)


def request_stop(state: SessionState) -> SessionState:
    """Deadline or caller stop: no more restarts."""
    return replace(state, phase=Phase.FINALIZING, manual_stop_requested=True)


def final_transcript(state: SessionState, policy: StitchPolicy = PLAIN) -> str:
    """Trimmed text of every sub-attempt, in order."""
    return join_chunks(state.accumulated_text, state.current_chunk_text, policy).strip()


def finish(state: SessionState, policy: StitchPolicy = PLAIN) -> SessionState:
    """FINALIZING -> IDLE with the last chunk committed."""
    return replace(commit_chunk(state, policy), phase=Phase.IDLE)


def abort(state: SessionState) -> SessionState:
    """Fatal error: straight to IDLE, text discarded."""
    return SessionState(phase=Phase.IDLE, manual_stop_requested=True)
