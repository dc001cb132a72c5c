"""
Tests for initial ring derivation.
"""
import numpy as np
import pytest

from ring import ring_angle, ring_directions, ring_particle_count
from utils import ConfigurationError


class TestRingCount:
    """Number of particles spawned per generation event."""

    def test_reference_configuration(self):
        n = ring_particle_count(10.0, 1.0)
        assert n == 31
        _, delta = ring_directions(n)
        assert np.isclose(n * delta, 2 * np.pi)

    def test_angle_is_twice_asin_of_radius_ratio(self):
        assert np.isclose(ring_angle(10.0, 1.0), 2 * np.arcsin(0.1))

    def test_six_particle_ring(self):
        assert ring_particle_count(2.2, 1.0) == 6

    def test_neighbours_within_twice_particle_radius(self):
        wave_radius, particle_radius = 10.0, 1.0
        n = ring_particle_count(wave_radius, particle_radius)
        directions, _ = ring_directions(n)
        gap = np.linalg.norm(directions[1] - directions[0]) * wave_radius
        # Re-deriving the wedge as 2*pi/n only ever widens it slightly.
        assert gap >= 2 * particle_radius * 0.99
        assert gap <= 2 * particle_radius * (n + 1) / n

    @pytest.mark.parametrize("wave_radius,particle_radius", [(1.0, 1.0), (0.5, 1.0), (10.0, 0.0)])
    def test_invalid_radii_rejected(self, wave_radius, particle_radius):
        with pytest.raises(ConfigurationError):
            ring_particle_count(wave_radius, particle_radius)


class TestRingDirections:
    """Directions and wedge of ring members."""

    def test_directions_are_unit_length(self):
        directions, _ = ring_directions(ring_particle_count(10.0, 1.0))
        assert np.allclose(np.linalg.norm(directions, axis=1), 1.0)

    def test_directions_follow_wedge(self):
        directions, delta = ring_directions(6)
        assert np.isclose(delta, np.pi / 3)
        assert np.allclose(directions[0], [1.0, 0.0])
        assert np.allclose(directions[1], [np.cos(np.pi / 3), np.sin(np.pi / 3)])


class TestNonFiniteRadii:
    """Non-finite radii are a configuration error, not NaN particles."""

    @pytest.mark.parametrize("wave_radius,particle_radius", [
        (float('inf'), 1.0),
        (10.0, float('nan')),
        (float('nan'), 1.0),
        (float('inf'), float('inf')),
    ])
    def test_rejected(self, wave_radius, particle_radius):
        with pytest.raises(ConfigurationError):
            ring_particle_count(wave_radius, particle_radius)
