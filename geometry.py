# geometry.py
"""
2D vector helpers shared by both particle models.

Every function here is total over its valid domain: no helper raises, all
fallibility lives at the boundaries (pool capacity, file I/O, configuration).
Vectors are NumPy arrays whose last axis has length 2, so the same helpers
work for a single particle or for a whole slot array.
"""
import numpy as np

# --- Data Contracts ---
#
# rotate_cw(v, sc) -> np.ndarray:
#   - Inputs: v, a 2D vector; sc, the (sin, cos) pair of the rotation angle.
#   - Outputs: v rotated by the angle encoded in sc.
#
# rotate_ccw(v, sc) -> np.ndarray:
#   - Outputs: rotate_cw(v, sc) mirrored about v. For a unit v this is the
#     rotation by the opposite angle.
#
# subdivision_metric(elapsed, dispersion_angle) -> float | np.ndarray:
#   - The chord approximation that drives subdivision:
#     elapsed * sin(dispersion_angle / 4).


def rotate(v, angle):
    """Rotates v by `angle` radians."""
    v = np.asarray(v, dtype=np.float64)
    c = np.cos(angle)
    s = np.sin(angle)
    return np.stack((v[..., 0] * c - v[..., 1] * s,
                     v[..., 0] * s + v[..., 1] * c), axis=-1)


def rotate_cw(v, sc):
    v = np.asarray(v, dtype=np.float64)
    s, c = sc[0], sc[1]
    return np.stack((v[..., 0] * c - v[..., 1] * s,
                     v[..., 0] * s + v[..., 1] * c), axis=-1)


def reflect(v, n):
    """Reflects v across the line through the origin spanned by unit vector n."""
    v = np.asarray(v, dtype=np.float64)
    n = np.asarray(n, dtype=np.float64)
    d = np.sum(v * n, axis=-1, keepdims=True)
    return 2.0 * d * n - v


def rotate_ccw(v, sc):
    return reflect(rotate_cw(v, sc), v)


def half_angle_basis(dispersion_angle):
    """(sin, cos) of half the dispersion angle, the split rotation basis."""
    half = dispersion_angle / 2.0
    return np.array([np.sin(half), np.cos(half)])


def chord_length(r, angle):
    """Exact chord of a circle of radius r subtending `angle`."""
    return 2.0 * r * np.sin(angle / 2.0)


def subdivision_metric(elapsed, dispersion_angle):
    # Approximation in effect; chord_length() is the exact alternative.
    return elapsed * np.sin(dispersion_angle / 4.0)


def position_at(birth_position, direction, birth_time, t):
    """Straight-line position of a particle (or array of particles) at time t."""
    elapsed = np.asarray(t - birth_time, dtype=np.float64)
    return np.asarray(birth_position) + np.asarray(direction) * elapsed[..., np.newaxis]


def rotated_position_at(birth_position, direction, birth_time, t, angle):
    return position_at(birth_position, rotate(direction, angle), birth_time, t)
