"""
Tests for the stepper: run state, inputs, recording and replay.
"""
import numpy as np
import pytest

from event_log import EventLog, EventLogError
from particle import ParticleStore
from particle_pool import ParticlePool
from run_state import InputEvent, InputKind, ReplayMode, RunState
from simulation import Simulation
from utils import ConfigurationError, validate_simulation_params


def make_params(**overrides):
    params = {'particle_radius': 1.0, 'wave_radius': 2.2, 'pool_capacity': 64, 'delta_time': 0.5}
    params.update(overrides)
    return validate_simulation_params(params)


@pytest.fixture(params=['store', 'pool'])
def sim(request):
    params = make_params(model=request.param)
    model = ParticleStore(params) if request.param == 'store' else ParticlePool(params)
    return Simulation(model, params)


class TestRunState:
    """Stopped / Running transitions."""

    def test_starts_stopped(self, sim):
        assert sim.state is RunState.STOPPED
        sim.step()
        assert sim.current_time == 0.0

    def test_toggle_input(self, sim):
        sim.submit(InputEvent(InputKind.TOGGLE_RUNNING))
        sim.step()
        assert sim.running
        assert sim.current_time == 0.5

    def test_stop_on_subdivision_leaves_frontier_unsplit(self):
        params = make_params(stop_on_subdivision=True)
        sim = Simulation(ParticleStore(params), params)
        sim.toggle_running()
        sim.request_generate((0.0, 0.0))
        for _ in range(20):
            sim.step()
            if not sim.running:
                break

        # Born at t=0.5, chord exceeds 1 once t - 0.5 > 3.86
        assert sim.state is RunState.STOPPED
        assert sim.current_time == 4.5
        assert sim.model.live_count == 6

        sim.step()
        assert sim.current_time == 4.5
        assert sim.model.live_count == 6

    def test_stop_on_subdivision_toggle(self, sim):
        sim.submit(InputEvent(InputKind.TOGGLE_STOP_ON_SUBDIVISION))
        sim.step()
        assert sim.stop_on_subdivision


class TestGeneration:
    """Live generation requests."""

    def test_generated_ring_not_split_in_birth_tick(self, sim):
        sim.toggle_running()
        sim.request_generate((0.0, 0.0))
        assert sim.step(10.0) == 0
        assert sim.model.live_count == 6
        # Next tick the chord is 10 * sin(pi/12) > 1.
        assert sim.step(10.0) == 6
        assert sim.model.live_count == 18

    def test_scenario_particle_count_grows_by_twice_subdivisions(self, sim):
        sim.toggle_running()
        sim.generate(0.0, (0.0, 0.0))
        total = 0
        for _ in range(8):
            total += sim.step(0.5)
        assert total == 6
        assert sim.model.live_count == 6 + 2 * total

    def test_generation_while_stopped(self, sim):
        sim.request_generate((1.0, 2.0))
        sim.step()
        assert sim.model.live_count == 6
        assert len(sim.event_log) == 1

    def test_generation_is_recorded(self, sim):
        sim.toggle_running()
        sim.submit(InputEvent(InputKind.REQUEST_GENERATE, (1.0, 2.0)))
        sim.step()
        assert len(sim.event_log) == 1
        event = sim.event_log.events[0]
        assert event.time == 0.5
        assert event.position == (1.0, 2.0)

    def test_invalid_radii_rejected_at_generation(self):
        params = make_params(wave_radius=1.0)
        sim = Simulation(ParticleStore(params), params)
        with pytest.raises(ConfigurationError):
            sim.generate(0.0, (0.0, 0.0))

        sim.request_generate((0.0, 0.0))
        sim.step()
        assert isinstance(sim.last_error, ConfigurationError)
        assert sim.model.live_count == 0
        assert len(sim.event_log) == 0

    @pytest.mark.parametrize("wave_radius,particle_radius", [
        (float('inf'), 1.0),
        (2.2, float('nan')),
    ])
    def test_non_finite_radii_do_not_break_the_tick(self, wave_radius, particle_radius):
        store = ParticleStore({'particle_radius': particle_radius, 'wave_radius': wave_radius})
        sim = Simulation(store, make_params())
        sim.toggle_running()
        sim.request_generate((0.0, 0.0))
        sim.step()
        assert isinstance(sim.last_error, ConfigurationError)
        assert store.live_count == 0
        assert len(sim.event_log) == 0

    def test_clear(self, sim):
        sim.toggle_running()
        sim.generate(0.0, (0.0, 0.0))
        sim.step()
        sim.submit(InputEvent(InputKind.CLEAR))
        sim.step()
        assert sim.model.live_count == 0
        assert sim.current_time == 0.5
        assert sim.running


class TestReplay:
    """Deterministic replay of recorded events."""

    @pytest.fixture
    def recorded(self, sim):
        sim.event_log.record(1.0, (0.0, 0.0))
        sim.event_log.record(2.0, (5.0, 5.0))
        return sim

    def test_replay_fires_events_in_order(self, recorded):
        sim = recorded
        assert sim.start_replay()
        assert sim.mode is ReplayMode.REPLAY
        assert sim.current_time == 0.0
        sim.toggle_running()

        sim.step()  # t=0.5
        sim.step()  # t=1.0, event at 1.0 not yet strictly before
        assert sim.model.live_count == 0
        sim.step()  # t=1.5
        assert sim.model.live_count == 6
        sim.step()  # t=2.0
        sim.step()  # t=2.5
        assert sim.model.live_count == 12
        assert sim.mode is ReplayMode.LIVE

        particles = sim.model.debug_particles()
        assert sorted({p.birth_time for p in particles}) == [1.0, 2.0]
        # Replayed generations are not recorded again.
        assert len(sim.event_log) == 2

    def test_replay_waits_while_stopped(self, recorded):
        sim = recorded
        sim.submit(InputEvent(InputKind.TOGGLE_REPLAY))
        for _ in range(5):
            sim.step()
        assert sim.replaying
        assert sim.model.live_count == 0

    def test_replay_resets_model(self, recorded):
        sim = recorded
        sim.generate(0.0, (9.0, 9.0))
        sim.start_replay()
        assert sim.model.live_count == 0

    def test_replay_with_empty_log(self, sim):
        assert not sim.start_replay()
        assert sim.mode is ReplayMode.LIVE

    def test_clear_events_cancels_replay(self, recorded):
        sim = recorded
        sim.start_replay()
        sim.submit(InputEvent(InputKind.CLEAR_EVENTS))
        sim.step()
        assert sim.mode is ReplayMode.LIVE
        assert len(sim.event_log) == 0

    def test_replay_is_deterministic(self, recorded):
        sim = recorded
        snapshots = []
        for _ in range(2):
            sim.start_replay()
            if not sim.running:
                sim.toggle_running()
            for _ in range(12):
                sim.step()
            snapshots.append(np.array(sim.render_snapshot().positions))
        assert snapshots[0].shape == snapshots[1].shape
        assert np.allclose(snapshots[0], snapshots[1])


class TestPersistenceInputs:
    """SAVE / LOAD inputs."""

    def test_save_then_load(self, sim, tmp_path):
        sim.events_file = str(tmp_path / "events.bin")
        sim.generate(0.25, (1.0, -1.0))
        sim.submit(InputEvent(InputKind.SAVE))
        sim.step()

        sim.clear_events()
        sim.submit(InputEvent(InputKind.LOAD))
        sim.step()
        assert len(sim.event_log) == 1
        assert sim.event_log.events[0].time == 0.25

    def test_failed_load_keeps_log(self, sim, tmp_path):
        sim.events_file = str(tmp_path / "missing.bin")
        sim.event_log.record(1.0, (0.0, 0.0))
        sim.submit(InputEvent(InputKind.LOAD))
        sim.step()
        assert isinstance(sim.last_error, EventLogError)
        assert len(sim.event_log) == 1
        assert 'last_error' in sim.status()

    def test_direct_load_raises(self, sim, tmp_path):
        with pytest.raises(EventLogError):
            sim.load_events(str(tmp_path / "missing.bin"))


class TestPoolUnderLoad:
    """Sustained generation against a small pool."""

    def test_invariant_holds_every_tick(self):
        params = make_params(model='pool', wave_radius=10.0, pool_capacity=64,
                             decay_amplitude=0.2, delta_time=1.0)
        pool = ParticlePool(params)
        sim = Simulation(pool, params, EventLog())
        sim.toggle_running()
        for tick in range(60):
            if tick % 5 == 0:
                sim.request_generate((float(tick), 0.0))
            sim.step()
            assert pool.free_count + pool.live_count == pool.capacity
        assert pool.live_count > 0
        assert sim.min_amplitude is not None
