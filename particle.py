# particle.py
"""
Wave particles and the unbounded, append-only particle store.

A wave particle is a point sample of an expanding circular wavefront. It
travels in a straight line from its birth position; the curvature of the
front only emerges from many particles with different directions. When a
particle's angular wedge grows too wide for the target resolution it splits
into three: the parent keeps its direction and two children are rotated to
either side, each covering a third of the original wedge.

This module holds the simple CPU model, in which particles are never deleted
and memory grows with every subdivision.
"""
import logging
import numpy as np
from typing import Dict, Any, List, NamedTuple, Optional, Tuple

import geometry
from constants import RING_AMPLITUDE, SUBDIVISION_FACTOR
from ring import ring_directions, ring_particle_count
from run_state import RunState

# --- Data Contracts ---
#
# class ParticleStore:
#   - __init__(self, params: Dict[str, Any]):
#     - Inputs:
#       - params: validated simulation parameters.
#         - "particle_radius": float, subdivision threshold.
#         - "wave_radius": float, initial ring radius.
#     - Side Effects: Creates an empty particle sequence at time 0.
#
#   - create_particle(...) -> int:
#     - Outputs: the index of the appended particle. Indices are stable.
#
#   - subdivide(particle) -> Tuple[WaveParticle, WaveParticle]:
#     - Side Effects: appends two children, divides the parent's amplitude
#       and dispersion angle by 3 in place.
#     - Invariants: children share the parent's birth position and time.
#
#   - step(dt, state) -> int:
#     - Outputs: number of particles subdivided during the tick.
#     - Invariants: no particle is ever removed.


class WaveParticle:
    """A single point sample of a wavefront."""

    __slots__ = ('birth_position', 'direction', 'amplitude', 'dispersion_angle', 'birth_time')

    def __init__(self, birth_position, direction, amplitude: float,
                 dispersion_angle: float, birth_time: float):
        self.birth_position = np.array(birth_position, dtype=np.float64)
        self.direction = np.array(direction, dtype=np.float64)
        self.amplitude = float(amplitude)
        self.dispersion_angle = float(dispersion_angle)
        self.birth_time = float(birth_time)

    def position_at(self, t: float) -> np.ndarray:
        return geometry.position_at(self.birth_position, self.direction, self.birth_time, t)

    def rotated_position_at(self, t: float, angle: float) -> np.ndarray:
        return geometry.rotated_position_at(
            self.birth_position, self.direction, self.birth_time, t, angle
        )

    def subdivision_metric(self, t: float) -> float:
        return float(geometry.subdivision_metric(t - self.birth_time, self.dispersion_angle))

    def split(self) -> Tuple["WaveParticle", "WaveParticle"]:
        """
        Shrinks this particle in place and returns its two new siblings.

        The children are rotated by half the current dispersion angle to
        either side of this particle's direction.
        """
        sc = geometry.half_angle_basis(self.dispersion_angle)
        amplitude = self.amplitude / SUBDIVISION_FACTOR
        angle = self.dispersion_angle / SUBDIVISION_FACTOR

        child_a = WaveParticle(self.birth_position, geometry.rotate_cw(self.direction, sc),
                               amplitude, angle, self.birth_time)
        child_b = WaveParticle(self.birth_position, geometry.rotate_ccw(self.direction, sc),
                               amplitude, angle, self.birth_time)

        self.amplitude = amplitude
        self.dispersion_angle = angle
        return child_a, child_b

    def __repr__(self) -> str:
        return (
            f"WaveParticle(birth_position={self.birth_position.tolist()}, "
            f"direction={self.direction.tolist()}, amplitude={self.amplitude:.6g}, "
            f"dispersion_angle={self.dispersion_angle:.6g}, birth_time={self.birth_time:.6g})"
        )


class RenderSnapshot(NamedTuple):
    """Read-only view of the live particles handed to the renderer."""
    positions: np.ndarray   # (M, 2)
    amplitudes: np.ndarray  # (M,)
    radius: float

    @property
    def count(self) -> int:
        return int(self.positions.shape[0])


def snapshot_from_particles(particles: List[WaveParticle], time: float, radius: float) -> RenderSnapshot:
    if not particles:
        return RenderSnapshot(np.zeros((0, 2)), np.zeros(0), radius)
    positions = np.array([p.position_at(time) for p in particles])
    amplitudes = np.array([p.amplitude for p in particles])
    positions.setflags(write=False)
    amplitudes.setflags(write=False)
    return RenderSnapshot(positions, amplitudes, radius)


class ParticleStore:
    """
    The unbounded model: an append-only list of particles.
    """
    def __init__(self, params: Dict[str, Any]):
        self.particle_radius = float(params['particle_radius'])
        self.wave_radius = float(params['wave_radius'])
        self.particles: List[WaveParticle] = []
        self.current_time = 0.0

        logging.info(
            f"ParticleStore initialized (particle_radius={self.particle_radius}, "
            f"wave_radius={self.wave_radius}, unbounded)."
        )

    def __len__(self) -> int:
        return len(self.particles)

    @property
    def live_count(self) -> int:
        return len(self.particles)

    def reset(self) -> None:
        self.particles.clear()
        self.current_time = 0.0
        logging.info("ParticleStore reset.")

    def collect(self) -> int:
        # Particles persist forever in this model.
        return 0

    def create_particle(self, source_position, direction, amplitude: float,
                        dispersion_angle: float, birth_time: float) -> int:
        index = len(self.particles)
        self.particles.append(
            WaveParticle(source_position, direction, amplitude, dispersion_angle, birth_time)
        )
        return index

    def subdivide(self, particle: WaveParticle) -> Tuple[WaveParticle, WaveParticle]:
        child_a, child_b = particle.split()
        self.particles.append(child_a)
        self.particles.append(child_b)
        return child_a, child_b

    def generate(self, time: float, position) -> int:
        """
        Spawns the initial ring for a generation event at `position`.

        Every ring member starts at the generation point itself.
        """
        n = ring_particle_count(self.wave_radius, self.particle_radius)
        directions, delta = ring_directions(n)
        for direction in directions:
            self.create_particle(position, direction, RING_AMPLITUDE, delta, time)
        logging.debug(f"Generated ring of {n} particles at {tuple(position)} (t={time:.3f}).")
        return n

    def subdivision_candidates(self) -> List[int]:
        """Read phase: indices of every particle whose chord exceeds the radius."""
        t = self.current_time
        return [
            i for i, p in enumerate(self.particles)
            if p.subdivision_metric(t) > self.particle_radius
        ]

    def apply_subdivisions(self, indices: List[int]) -> int:
        """Write phase: splits the particles selected by the read phase."""
        # Children are appended past the end, so the indices stay valid.
        for i in indices:
            self.subdivide(self.particles[i])
        return len(indices)

    def min_amplitude(self) -> Optional[float]:
        if not self.particles:
            return None
        return min(p.amplitude for p in self.particles)

    def step(self, dt: float, state: RunState = RunState.RUNNING) -> int:
        if state is not RunState.RUNNING:
            return 0
        self.current_time += dt
        return self.apply_subdivisions(self.subdivision_candidates())

    def render_snapshot(self, time: Optional[float] = None) -> RenderSnapshot:
        t = self.current_time if time is None else time
        return snapshot_from_particles(self.particles, t, self.particle_radius)

    def debug_particles(self) -> List[WaveParticle]:
        return list(self.particles)
