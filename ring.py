# ring.py
"""
Derives the initial ring of wave particles spawned by a generation event.

The ring is sized so that neighbouring particles, once they have travelled
`wave_radius`, are no more than `2 * particle_radius` apart. The wedge each
particle covers is then re-derived as 2*pi/n so the ring tiles the circle
exactly.
"""
import logging
import math
import numpy as np

from utils import ConfigurationError

# --- Data Contracts ---
#
# ring_particle_count(wave_radius: float, particle_radius: float) -> int:
#   - Raises: ConfigurationError when wave_radius <= particle_radius or
#     either radius is not positive.
#   - Invariants: result >= 1.
#
# ring_directions(n: int) -> Tuple[np.ndarray, float]:
#   - Outputs: (n, 2) array of unit directions (cos(i*d), sin(i*d)) and the
#     wedge d = 2*pi/n shared by every ring member.


def ring_angle(wave_radius: float, particle_radius: float) -> float:
    """
    Angle between neighbouring ring members from the half-angle triangle.
    """
    if (not math.isfinite(wave_radius) or not math.isfinite(particle_radius)
            or particle_radius <= 0 or wave_radius <= particle_radius):
        msg = (
            f"Configuration error: wave_radius ({wave_radius}) must exceed "
            f"particle_radius ({particle_radius}) and both must be finite and positive."
        )
        logging.error(msg)
        raise ConfigurationError(msg)

    length = math.sqrt(wave_radius * wave_radius - particle_radius * particle_radius)
    h = particle_radius * length / wave_radius
    return 2.0 * math.atan2(h, math.sqrt(length * length - h * h))


def ring_particle_count(wave_radius: float, particle_radius: float) -> int:
    angle = ring_angle(wave_radius, particle_radius)
    n = int(math.floor(2.0 * math.pi / angle))
    logging.debug(
        f"Ring derivation: wave_radius={wave_radius} particle_radius={particle_radius} "
        f"angle={angle:.6f} n={n}"
    )
    return n


def ring_directions(n: int):
    delta = 2.0 * math.pi / n
    angles = np.arange(n, dtype=np.float64) * delta
    directions = np.stack((np.cos(angles), np.sin(angles)), axis=1)
    return directions, delta
