import numpy as np
import pytest

from spaceflight.core.vehicle import AttitudeState
from spaceflight.geometry import quaternion as quat
from spaceflight.geometry.frames import (
    AttitudeHold,
    FrameTransform,
    hold_direction,
    hold_quaternion,
    inertial_to_lvlh,
    lvlh_to_inertial,
    thrust_direction,
)


def test_attitude_state_accepts_int_array_and_normalizes():
    # Int array previously caused in-place division casting error
    att = AttitudeState(quaternion=np.array([2, 0, 0, 0], dtype=int))

    assert att.quaternion.dtype.kind == "f"
    assert np.isclose(np.linalg.norm(att.quaternion), 1.0)


def test_normalize_zero_quaternion_is_identity():
    assert np.allclose(quat.normalize(np.zeros(4)), quat.IDENTITY)


def test_axis_angle_rotates_x_onto_y():
    q = quat.from_axis_angle([0, 0, 1], np.pi / 2)
    assert np.allclose(quat.rotate(q, [1, 0, 0]), [0, 1, 0], atol=1e-12)


def test_multiply_composes_rotations():
    q1 = quat.from_axis_angle([0, 0, 1], 0.3)
    q2 = quat.from_axis_angle([0, 0, 1], 0.4)
    q = quat.multiply(q1, q2)
    assert np.allclose(q, quat.from_axis_angle([0, 0, 1], 0.7))


def test_from_two_vectors_including_antiparallel():
    for target in ([0, 1, 0], [1, 1, 1], [0, 0, -1], [0, 0, 1]):
        q = quat.from_two_vectors([0, 0, 1], target)
        expected = np.asarray(target, dtype=float) / np.linalg.norm(target)
        assert np.allclose(quat.rotate(q, [0, 0, 1]), expected, atol=1e-9)
        assert np.isclose(np.linalg.norm(q), 1.0)


def test_integrate_constant_rate_matches_axis_angle():
    omega = np.array([0.0, 0.0, 0.1])
    q = quat.IDENTITY.copy()
    for _ in range(100):
        q = quat.integrate(q, omega, 0.1)
    assert np.allclose(q, quat.from_axis_angle([0, 0, 1], 1.0), atol=1e-8)


def test_frame_transform_inverse_and_chain():
    t1 = FrameTransform(np.array([1.0, 2.0, 3.0]), np.array([0.1, 0.0, 0.0]))
    t2 = FrameTransform(np.array([-5.0, 0.0, 1.0]), np.array([0.0, 0.2, 0.0]))

    r, v = t1.then(t2).apply([0.0, 0.0, 0.0], [0.0, 0.0, 0.0])
    assert np.allclose(r, [-4.0, 2.0, 4.0])
    assert np.allclose(v, [0.1, 0.2, 0.0])

    r_back, v_back = t1.inverse().apply(*t1.apply([7.0, 8.0, 9.0], [1.0, 1.0, 1.0]))
    assert np.allclose(r_back, [7.0, 8.0, 9.0])
    assert np.allclose(v_back, [1.0, 1.0, 1.0])


def test_lvlh_axes_for_circular_orbit():
    r = np.array([7e6, 0.0, 0.0])
    v = np.array([0.0, 7.5e3, 0.0])

    # Along-track, opposite orbit normal, nadir
    assert np.allclose(inertial_to_lvlh(v / np.linalg.norm(v), r, v), [1, 0, 0])
    assert np.allclose(inertial_to_lvlh([0, 0, 1], r, v), [0, -1, 0])
    assert np.allclose(inertial_to_lvlh(-r / np.linalg.norm(r), r, v), [0, 0, 1])
    assert np.allclose(lvlh_to_inertial([0, 0, 1], r, v), [-1, 0, 0])


def test_hold_directions():
    r = np.array([7e6, 0.0, 0.0])
    v = np.array([0.0, 7.5e3, 0.0])

    assert np.allclose(hold_direction(AttitudeHold.PROGRADE, r, v), [0, 1, 0])
    assert np.allclose(hold_direction(AttitudeHold.RETROGRADE, r, v), [0, -1, 0])
    assert np.allclose(hold_direction(AttitudeHold.NORMAL, r, v), [0, 0, 1])
    assert np.allclose(hold_direction(AttitudeHold.RADIAL_IN, r, v), [-1, 0, 0])


def test_hold_quaternion_points_thrust_axis():
    r = np.array([7e6, 0.0, 0.0])
    v = np.array([0.0, 7.5e3, 0.0])
    q = hold_quaternion(AttitudeHold.PROGRADE, r, v)
    assert np.allclose(thrust_direction(q), [0, 1, 0], atol=1e-12)


def test_hold_undefined_for_zero_velocity():
    with pytest.raises(ValueError):
        hold_direction(AttitudeHold.PROGRADE, [7e6, 0, 0], [0, 0, 0])
