# run_state.py
"""
Explicit run-state values and the discrete input events the core reacts to.

The input collaborator (the pygame visualizer, or a test) never touches
simulation fields directly; it submits InputEvent values that the Simulation
applies at the start of its next tick.
"""
from enum import Enum
from typing import NamedTuple, Optional, Tuple


class RunState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"

    def toggled(self) -> "RunState":
        return RunState.STOPPED if self is RunState.RUNNING else RunState.RUNNING


class ReplayMode(Enum):
    LIVE = "live"
    REPLAY = "replay"


class InputKind(Enum):
    TOGGLE_RUNNING = "toggle_running"
    REQUEST_GENERATE = "request_generate"
    CLEAR = "clear"
    CLEAR_EVENTS = "clear_events"
    SAVE = "save"
    LOAD = "load"
    TOGGLE_REPLAY = "toggle_replay"
    TOGGLE_STOP_ON_SUBDIVISION = "toggle_stop_on_subdivision"
    DEBUG = "debug"


class InputEvent(NamedTuple):
    kind: InputKind
    # World-space point for REQUEST_GENERATE, unused otherwise.
    position: Optional[Tuple[float, float]] = None
