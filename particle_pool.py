# particle_pool.py
"""
The fixed-capacity wave particle model.

Particles live in N slots stored as flat NumPy arrays (one array per field).
A shared free-list hands out unused slot indices. Per-slot passes (collect,
growth evaluation) are written as Numba kernels over the index range [0, N)
with no dependency between slots; the free-list is the only shared mutable
resource and is guarded by a lock.

Running out of slots is an expected steady state under sustained generation:
rings are truncated and subdivisions are deferred, nothing is ever raised.
"""
import logging
import threading
import numpy as np
from typing import Dict, Any, List, Optional
from numba import jit

import geometry
from constants import RING_AMPLITUDE, SUBDIVISION_FACTOR
from particle import RenderSnapshot, WaveParticle
from ring import ring_directions, ring_particle_count

# --- Data Contracts ---
#
# class FreeList:
#   - push(index: int) -> None: returns a slot index to the stack.
#     Raises ValueError if the stack is already full.
#   - try_pop() -> Optional[int]: takes one index, None when empty.
#   - try_pop_many(k: int) -> Optional[np.ndarray]: takes k indices
#     atomically, or none at all.
#
# class ParticlePool:
#   - __init__(self, params: Dict[str, Any]):
#     - Inputs:
#       - params: validated simulation parameters.
#         - "particle_radius": float
#         - "wave_radius": float
#         - "pool_capacity": int
#         - "decay_amplitude": float, collect() threshold.
#   - release(index: int) -> bool: frees a live slot; a slot that is
#     already free is left alone and False is returned.
#   - Invariants:
#     - len(self.free_list) + self.live_count == self.capacity at all times.
#     - A slot is live iff self.alive[i] and i is not in the free-list.
#     - Field arrays have a leading dimension of self.capacity.


class FreeList:
    """
    A stack of unused slot indices with atomic acquire/release.
    """
    def __init__(self, capacity: int):
        self.capacity = capacity
        self._stack = np.empty(capacity, dtype=np.int64)
        self._count = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return self._count

    def reset(self, indices) -> None:
        indices = np.asarray(indices, dtype=np.int64)
        if indices.shape[0] > self.capacity:
            raise ValueError(
                f"Cannot hold {indices.shape[0]} indices in a free-list of capacity {self.capacity}."
            )
        with self._lock:
            self._count = indices.shape[0]
            self._stack[:self._count] = indices

    def push(self, index: int) -> None:
        with self._lock:
            if self._count >= self.capacity:
                raise ValueError(f"Free-list overflow while releasing slot {index}.")
            self._stack[self._count] = index
            self._count += 1

    def try_pop(self) -> Optional[int]:
        with self._lock:
            if self._count == 0:
                return None
            self._count -= 1
            return int(self._stack[self._count])

    def try_pop_many(self, k: int) -> Optional[np.ndarray]:
        with self._lock:
            if self._count < k:
                return None
            self._count -= k
            return self._stack[self._count:self._count + k][::-1].copy()

    def indices(self) -> np.ndarray:
        with self._lock:
            return self._stack[:self._count].copy()


@jit(nopython=True)
def _collect_numba(alive, amplitudes, decay_amplitude):
    """
    Numba-jitted pass that retires every live slot whose amplitude has
    decayed below the threshold. Returns the number of slots retired.
    """
    released = 0
    for i in range(alive.shape[0]):
        if alive[i] and amplitudes[i] < decay_amplitude:
            alive[i] = False
            released += 1
    return released

@jit(nopython=True)
def _growth_mask_numba(alive, birth_times, dispersion_angles, current_time, particle_radius):
    """
    Numba-jitted growth evaluation. Marks live slots whose chord
    approximation exceeds the particle radius.
    """
    n = alive.shape[0]
    mask = np.zeros(n, dtype=np.bool_)
    for i in range(n):
        if alive[i]:
            chord = (current_time - birth_times[i]) * np.sin(dispersion_angles[i] / 4.0)
            if chord > particle_radius:
                mask[i] = True
    return mask


class ParticlePool:
    """
    A fixed number of particle slots recycled through a free-list.
    """
    def __init__(self, params: Dict[str, Any]):
        self.capacity = int(params['pool_capacity'])
        self.particle_radius = float(params['particle_radius'])
        self.wave_radius = float(params['wave_radius'])
        self.decay_amplitude = float(params['decay_amplitude'])

        # Structure-of-arrays slot storage.
        self.birth_positions = np.zeros((self.capacity, 2), dtype=np.float64)
        self.directions = np.zeros((self.capacity, 2), dtype=np.float64)
        self.amplitudes = np.zeros(self.capacity, dtype=np.float64)
        self.dispersion_angles = np.zeros(self.capacity, dtype=np.float64)
        self.birth_times = np.zeros(self.capacity, dtype=np.float64)
        self.alive = np.zeros(self.capacity, dtype=np.bool_)

        self.free_list = FreeList(self.capacity)
        self.current_time = 0.0
        self._last_free_count = -1
        self.reset()

        logging.info(
            f"ParticlePool initialized with {self.capacity} slots "
            f"(particle_radius={self.particle_radius}, wave_radius={self.wave_radius}, "
            f"decay_amplitude={self.decay_amplitude})."
        )

    def __len__(self) -> int:
        return self.live_count

    @property
    def live_count(self) -> int:
        return int(np.count_nonzero(self.alive))

    @property
    def free_count(self) -> int:
        return len(self.free_list)

    def reset(self) -> None:
        """Frees every slot and rewinds time to 0."""
        self.alive[:] = False
        self.amplitudes[:] = 0.0
        self._rebuild_free_list()
        self.current_time = 0.0
        logging.info("ParticlePool reset.")

    def _rebuild_free_list(self) -> None:
        # Highest index at the bottom of the stack so pops hand out low slots first.
        self.free_list.reset(np.flatnonzero(~self.alive)[::-1])

    def collect(self) -> int:
        """
        Retires decayed slots and rebuilds the free-list from every dead slot.

        A slot has decayed once its amplitude falls below `decay_amplitude`.
        Running this twice without an intervening tick leaves the free-list
        unchanged.
        """
        released = _collect_numba(self.alive, self.amplitudes, self.decay_amplitude)
        self._rebuild_free_list()

        free = self.free_count
        if free != self._last_free_count:
            logging.debug(f"Free-list count = {free} ({released} slots collected).")
        self._last_free_count = free
        return released

    def _write_slot(self, index: int, position, direction, amplitude: float,
                    dispersion_angle: float, birth_time: float) -> None:
        self.birth_positions[index] = position
        self.directions[index] = direction
        self.amplitudes[index] = amplitude
        self.dispersion_angles[index] = dispersion_angle
        self.birth_times[index] = birth_time
        self.alive[index] = True

    def release(self, index: int) -> bool:
        """
        Returns a live slot to the free-list. Releasing a slot that is
        already free does nothing and returns False.
        """
        if not self.alive[index]:
            return False
        self.alive[index] = False
        self.free_list.push(index)
        return True

    def generate(self, time: float, position) -> int:
        """
        Allocates one slot per ring member. Members that find the free-list
        empty are dropped. Returns the number of particles created.
        """
        n = ring_particle_count(self.wave_radius, self.particle_radius)
        directions, delta = ring_directions(n)
        position = np.asarray(position, dtype=np.float64)

        created = 0
        for direction in directions:
            index = self.free_list.try_pop()
            if index is None:
                break
            self._write_slot(index, position, direction, RING_AMPLITUDE, delta, time)
            created += 1

        if created < n:
            logging.debug(
                f"Pool exhausted during generation: created {created}/{n} ring particles, "
                f"dropped {n - created}."
            )
        else:
            logging.debug(f"Generated ring of {n} particles at {tuple(position)} (t={time:.3f}).")
        return created

    def subdivision_candidates(self) -> np.ndarray:
        """Read phase: slot indices whose chord exceeds the particle radius."""
        mask = _growth_mask_numba(
            self.alive, self.birth_times, self.dispersion_angles,
            self.current_time, self.particle_radius
        )
        return np.flatnonzero(mask)

    def subdivide_slot(self, index: int) -> bool:
        """
        Splits the particle in slot `index`, keeping the parent in its own
        slot. Returns False, leaving the slot untouched, when two free slots
        are not available.
        """
        children = self.free_list.try_pop_many(2)
        if children is None:
            return False

        angle = self.dispersion_angles[index]
        direction = self.directions[index]
        sc = geometry.half_angle_basis(angle)
        amplitude = self.amplitudes[index] / SUBDIVISION_FACTOR
        new_angle = angle / SUBDIVISION_FACTOR
        position = self.birth_positions[index].copy()
        birth_time = self.birth_times[index]

        self._write_slot(children[0], position, geometry.rotate_cw(direction, sc),
                         amplitude, new_angle, birth_time)
        self._write_slot(children[1], position, geometry.rotate_ccw(direction, sc),
                         amplitude, new_angle, birth_time)
        self.amplitudes[index] = amplitude
        self.dispersion_angles[index] = new_angle
        return True

    def apply_subdivisions(self, indices) -> int:
        """
        Write phase. Candidates that cannot get two slots are left as they
        are and qualify again on a later tick.
        """
        subdivided = 0
        deferred = 0
        for index in indices:
            if self.subdivide_slot(int(index)):
                subdivided += 1
            else:
                deferred += 1
        if deferred:
            logging.debug(f"Pool exhausted: deferred {deferred} subdivisions to a later tick.")
        return subdivided

    def subdivide_all(self) -> int:
        """Splits every live slot that qualifies, as far as capacity allows."""
        return self.apply_subdivisions(self.subdivision_candidates())

    def min_amplitude(self) -> Optional[float]:
        if not self.alive.any():
            return None
        return float(self.amplitudes[self.alive].min())

    def render_snapshot(self, time: Optional[float] = None) -> RenderSnapshot:
        t = self.current_time if time is None else time
        live = self.alive
        positions = geometry.position_at(
            self.birth_positions[live], self.directions[live], self.birth_times[live], t
        )
        amplitudes = self.amplitudes[live].copy()
        positions.setflags(write=False)
        amplitudes.setflags(write=False)
        return RenderSnapshot(positions, amplitudes, self.particle_radius)

    def debug_particles(self) -> List[WaveParticle]:
        """Reads every live slot back as a WaveParticle."""
        return [
            WaveParticle(self.birth_positions[i], self.directions[i], self.amplitudes[i],
                         self.dispersion_angles[i], self.birth_times[i])
            for i in np.flatnonzero(self.alive)
        ]
