"""
Tests for the 2D vector helpers.
"""
import numpy as np

import geometry


class TestRotation:
    """Half-angle rotations used by subdivision."""

    def test_rotate_cw_by_half_angle(self):
        sc = geometry.half_angle_basis(np.pi / 2)
        rotated = geometry.rotate_cw(np.array([1.0, 0.0]), sc)
        assert np.allclose(rotated, [np.cos(np.pi / 4), np.sin(np.pi / 4)])

    def test_rotate_ccw_mirrors_about_original_direction(self):
        direction = np.array([np.cos(0.3), np.sin(0.3)])
        sc = geometry.half_angle_basis(0.8)
        a = geometry.rotate_cw(direction, sc)
        b = geometry.rotate_ccw(direction, sc)

        assert np.isclose(np.linalg.norm(a), 1.0)
        assert np.isclose(np.linalg.norm(b), 1.0)
        # Symmetric about the original direction, 0.4 rad to either side.
        assert np.allclose(a + b, 2.0 * np.cos(0.4) * direction)
        assert np.isclose(np.dot(a, direction), np.cos(0.4))
        assert np.isclose(np.dot(b, direction), np.cos(0.4))

    def test_rotate_matches_rotate_cw(self):
        v = np.array([0.6, -0.8])
        angle = 1.1
        sc = np.array([np.sin(angle), np.cos(angle)])
        assert np.allclose(geometry.rotate(v, angle), geometry.rotate_cw(v, sc))

    def test_rotate_works_on_arrays(self):
        vs = np.array([[1.0, 0.0], [0.0, 1.0]])
        rotated = geometry.rotate(vs, np.pi / 2)
        assert np.allclose(rotated, [[0.0, 1.0], [-1.0, 0.0]])


class TestChord:
    """Exact chord and the subdivision approximation."""

    def test_chord_length(self):
        assert np.isclose(geometry.chord_length(1.0, np.pi), 2.0)
        assert np.isclose(geometry.chord_length(3.0, np.pi / 3), 3.0)

    def test_subdivision_metric_is_approximation(self):
        angle = 2 * np.pi / 6
        assert np.isclose(geometry.subdivision_metric(4.0, angle), 4.0 * np.sin(angle / 4))
        assert not np.isclose(geometry.subdivision_metric(4.0, angle),
                              geometry.chord_length(4.0, angle))

    def test_subdivision_metric_zero_at_birth(self):
        assert geometry.subdivision_metric(0.0, 1.0) == 0.0


class TestPosition:
    """Straight-line trajectories."""

    def test_position_at_birth_time_is_birth_position(self):
        pos = geometry.position_at(np.array([2.0, -1.0]), np.array([0.0, 1.0]), 5.0, 5.0)
        assert np.allclose(pos, [2.0, -1.0])

    def test_position_is_affine_in_time(self):
        birth = np.array([1.0, 1.0])
        direction = np.array([np.cos(0.7), np.sin(0.7)])
        p1 = geometry.position_at(birth, direction, 0.5, 1.5)
        p2 = geometry.position_at(birth, direction, 0.5, 2.5)
        p3 = geometry.position_at(birth, direction, 0.5, 3.5)
        assert np.allclose(p2 - p1, p3 - p2)
        assert np.allclose(p2 - p1, direction)

    def test_position_at_for_many_particles(self):
        births = np.zeros((3, 2))
        directions = np.array([[1.0, 0.0], [0.0, 1.0], [-1.0, 0.0]])
        times = np.array([0.0, 1.0, 2.0])
        positions = geometry.position_at(births, directions, times, 3.0)
        assert np.allclose(positions, [[3.0, 0.0], [0.0, 2.0], [-1.0, 0.0]])

    def test_rotated_position(self):
        pos = geometry.rotated_position_at(np.zeros(2), np.array([1.0, 0.0]), 0.0, 2.0, np.pi / 2)
        assert np.allclose(pos, [0.0, 2.0])
