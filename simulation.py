# simulation.py
"""
Drives a wave particle model one fixed tick at a time.

This module defines the Simulation class (the stepper). It owns the run
state, turns discrete input events into model operations, records and
replays generation events, and evaluates growth once per tick. It works the
same way over the unbounded ParticleStore and the fixed-capacity ParticlePool.
"""
import logging
from collections import deque
from typing import Deque, Dict, Any, Optional, Union

from event_log import EventLog, EventLogError, GenerationEvent
from particle import ParticleStore, RenderSnapshot
from particle_pool import ParticlePool
from run_state import InputEvent, InputKind, ReplayMode, RunState
from utils import ConfigurationError

# --- Data Contracts ---
#
# class Simulation:
#   - __init__(self, model, params: Dict[str, Any], event_log: Optional[EventLog] = None):
#     - Inputs:
#       - model: a ParticleStore or ParticlePool.
#       - params: validated simulation parameters.
#         - "delta_time": float, default tick length.
#         - "stop_on_subdivision": bool
#         - "events_file": str, path used by SAVE / LOAD inputs.
#     - Side Effects: None beyond storing references.
#
#   - step(self, dt: Optional[float] = None) -> int:
#     - Outputs: number of particles subdivided during the tick.
#     - Order within a tick:
#       1. queued inputs, 2. time advance (Running only), 3. collect,
#       4. generation (pending request, then due replay events),
#       5. growth check (Running only), 6. stop-on-subdivision,
#       7. subdivisions. A tick that stops on subdivision leaves its
#          candidates un-split; they split on the next running tick.
#     - Invariants: a particle generated during a tick is never subdivided
#       in that same tick.

Model = Union[ParticleStore, ParticlePool]


class Simulation:
    """
    The stepper: run state, input handling, event recording and replay.
    """
    def __init__(self, model: Model, params: Dict[str, Any], event_log: Optional[EventLog] = None):
        self.model = model
        self.delta_time = float(params['delta_time'])
        self.stop_on_subdivision = bool(params.get('stop_on_subdivision', False))
        self.events_file = params.get('events_file', 'events.bin')
        self.event_log = event_log if event_log is not None else EventLog()

        self.state = RunState.STOPPED
        self.mode = ReplayMode.LIVE
        self.tick_count = 0
        self.min_amplitude: Optional[float] = None
        self.last_subdivided = 0
        self.last_error: Optional[Exception] = None

        self._inputs: Deque[InputEvent] = deque()
        self._pending_generate = None
        self._replay_queue: Deque[GenerationEvent] = deque()

        logging.info(
            f"Simulation initialized with {type(model).__name__} "
            f"(delta_time={self.delta_time}, stop_on_subdivision={self.stop_on_subdivision})."
        )

    @property
    def current_time(self) -> float:
        return self.model.current_time

    @property
    def running(self) -> bool:
        return self.state is RunState.RUNNING

    @property
    def replaying(self) -> bool:
        return self.mode is ReplayMode.REPLAY

    # --- Input handling ---

    def submit(self, event: InputEvent) -> None:
        """Queues an input event; it is applied at the start of the next tick."""
        self._inputs.append(event)

    def handle_input(self, event: InputEvent) -> None:
        kind = event.kind
        if kind is InputKind.TOGGLE_RUNNING:
            self.toggle_running()
        elif kind is InputKind.REQUEST_GENERATE:
            self.request_generate(event.position)
        elif kind is InputKind.CLEAR:
            self.clear()
        elif kind is InputKind.CLEAR_EVENTS:
            self.clear_events()
        elif kind is InputKind.SAVE:
            self.save_events()
        elif kind is InputKind.LOAD:
            self.load_events()
        elif kind is InputKind.TOGGLE_REPLAY:
            self.toggle_replay()
        elif kind is InputKind.TOGGLE_STOP_ON_SUBDIVISION:
            self.stop_on_subdivision = not self.stop_on_subdivision
            logging.info(f"Stop on subdivision set to {self.stop_on_subdivision}.")
        elif kind is InputKind.DEBUG:
            self.log_particles()

    def _apply_queued_inputs(self) -> None:
        while self._inputs:
            event = self._inputs.popleft()
            try:
                self.handle_input(event)
            except EventLogError as e:
                # The log is left as it was; the failure is kept for the UI.
                self.last_error = e
                logging.error(f"Input {event.kind.value} failed: {e}")

    def toggle_running(self) -> None:
        self.state = self.state.toggled()
        logging.info(f"Simulation {self.state.value}.")

    def request_generate(self, position) -> None:
        """Generation happens at the current time during the next tick."""
        self._pending_generate = (float(position[0]), float(position[1]))

    def clear(self) -> None:
        self.model.reset()
        self._pending_generate = None
        self.min_amplitude = None
        logging.info("Particles cleared.")

    def clear_events(self) -> None:
        self.event_log.clear()
        self._stop_replay()

    def save_events(self, path: Optional[str] = None) -> int:
        return self.event_log.save(path or self.events_file)

    def load_events(self, path: Optional[str] = None) -> int:
        return self.event_log.load(path or self.events_file)

    def toggle_replay(self) -> None:
        if self.replaying:
            self._stop_replay()
        else:
            self.start_replay()

    def start_replay(self) -> bool:
        """
        Resets the model and rewinds time to just before the first recorded
        event. Returns False when there is nothing to replay.
        """
        if not self.event_log:
            logging.warning("Replay requested with an empty event log.")
            return False
        self.model.reset()
        self.model.current_time = self.event_log.first_time() - 1.0
        self._replay_queue = self.event_log.replay_queue()
        self._pending_generate = None
        self.mode = ReplayMode.REPLAY
        logging.info(
            f"Replay started: {len(self._replay_queue)} events from t={self.model.current_time:.3f}."
        )
        return True

    def _stop_replay(self) -> None:
        if self.replaying:
            logging.info(f"Replay finished ({len(self._replay_queue)} events left unplayed).")
        self._replay_queue.clear()
        self.mode = ReplayMode.LIVE

    # --- Generation ---

    def generate(self, time: float, position) -> int:
        """
        Spawns a ring on the model. Live generations are recorded, replayed
        ones are not.
        """
        created = self.model.generate(time, position)
        if not self.replaying:
            self.event_log.record(time, position)
        return created

    def _generate_safely(self, time: float, position) -> None:
        try:
            self.generate(time, position)
        except ConfigurationError as e:
            self.last_error = e
            logging.error(f"Generation at {position} rejected: {e}")

    def _run_generation(self) -> None:
        if self._pending_generate is not None:
            self._generate_safely(self.current_time, self._pending_generate)
            self._pending_generate = None

        if self.running and self.replaying:
            t = self.current_time
            while self._replay_queue and self._replay_queue[0].time < t:
                event = self._replay_queue.popleft()
                self._generate_safely(event.time, event.position)
            if not self._replay_queue:
                logging.info("Replay queue drained.")
                self._stop_replay()

    # --- Tick ---

    def step(self, dt: Optional[float] = None) -> int:
        """
        Executes one tick of the simulation.
        """
        dt = self.delta_time if dt is None else dt

        self._apply_queued_inputs()

        if self.running:
            self.model.current_time += dt

        self.model.collect()
        self._run_generation()

        subdivided = 0
        if self.running:
            candidates = self.model.subdivision_candidates()
            self._track_min_amplitude()

            if self.stop_on_subdivision and len(candidates) > 0:
                # Leave the frontier un-split so it can be inspected.
                self.state = RunState.STOPPED
                logging.info(
                    f"Stopped on subdivision: {len(candidates)} candidates, "
                    f"{self.model.live_count} particles."
                )
            else:
                subdivided = self.model.apply_subdivisions(candidates)

        self.last_subdivided = subdivided
        self.tick_count += 1
        return subdivided

    def _track_min_amplitude(self) -> None:
        min_amplitude = self.model.min_amplitude()
        if min_amplitude is not None and min_amplitude < 1.0 and min_amplitude != self.min_amplitude:
            logging.debug(f"Minimum amplitude {min_amplitude:.6g} at t={self.current_time:.3f}.")
        self.min_amplitude = min_amplitude

    # --- Read-only views ---

    def render_snapshot(self) -> RenderSnapshot:
        return self.model.render_snapshot(self.current_time)

    def log_particles(self) -> None:
        for particle in self.model.debug_particles():
            logging.debug(f"{particle} -> {particle.position_at(self.current_time).tolist()}")
        logging.info(f"Dumped {self.model.live_count} particles at t={self.current_time:.3f}.")

    def status(self) -> Dict[str, Any]:
        status = {
            "state": self.state.value,
            "mode": self.mode.value,
            "time": self.current_time,
            "particles": self.model.live_count,
            "events": len(self.event_log),
            "stop_on_subdivision": self.stop_on_subdivision,
        }
        if isinstance(self.model, ParticlePool):
            status["free_slots"] = self.model.free_count
        if self.last_error is not None:
            status["last_error"] = str(self.last_error)
        return status
