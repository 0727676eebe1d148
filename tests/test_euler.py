import numpy as np
import pytest

from rigexport.core.euler import (
    ORDERS,
    ORDERS_BY_NAME,
    XYZ_ROTATING,
    Axis,
    Frame,
    Parity,
    Repeat,
    compose,
    decompose,
    equivalent_angles,
    order_from_name,
)
from rigexport.core.transforms import quaternion_to_matrix


def rx(a):
    c, s = np.cos(a), np.sin(a)
    return np.array([[1, 0, 0], [0, c, -s], [0, s, c]])


def ry(a):
    c, s = np.cos(a), np.sin(a)
    return np.array([[c, 0, s], [0, 1, 0], [-s, 0, c]])


def rz(a):
    c, s = np.cos(a), np.sin(a)
    return np.array([[c, -s, 0], [s, c, 0], [0, 0, 1]])


def random_rotations(rng, count):
    return [quaternion_to_matrix(rng.normal(size=4)) for _ in range(count)]


class TestEulerOrder:

    def test_there_are_24_distinct_orders(self):
        assert len(ORDERS) == 24
        assert len(ORDERS_BY_NAME) == 24

    def test_rotating_xyz_fields(self):
        assert XYZ_ROTATING.axis == Axis.Z
        assert XYZ_ROTATING.parity == Parity.ODD
        assert XYZ_ROTATING.repeat == Repeat.NO
        assert XYZ_ROTATING.frame == Frame.ROTATING
        assert XYZ_ROTATING.axes() == (2, 1, 0)

    def test_axes_are_a_permutation_for_every_order(self):
        for order in ORDERS:
            assert sorted(order.axes()) == [0, 1, 2]

    def test_lookup_by_name(self):
        assert order_from_name("XYZr") is XYZ_ROTATING
        assert order_from_name("ZXZs").repeat == Repeat.YES

    def test_unknown_name_raises(self):
        with pytest.raises(ValueError):
            order_from_name("XYQs")


class TestCompose:

    def test_rotating_xyz_is_x_then_new_y_then_new_z(self):
        a0, a1, a2 = 0.3, -0.7, 1.1
        M = compose(a0, a1, a2, XYZ_ROTATING)
        np.testing.assert_allclose(M[:, :3], rx(a0) @ ry(a1) @ rz(a2), atol=1e-12)

    def test_static_xyz_applies_x_first(self):
        a0, a1, a2 = 0.3, -0.7, 1.1
        M = compose(a0, a1, a2, order_from_name("XYZs"))
        np.testing.assert_allclose(M[:, :3], rz(a2) @ ry(a1) @ rx(a0), atol=1e-12)

    def test_translation_is_zero(self):
        for order in ORDERS:
            np.testing.assert_array_equal(compose(0.1, 0.2, 0.3, order)[:, 3], 0.0)

    def test_result_is_orthonormal(self):
        for order in ORDERS:
            R = compose(0.4, 1.2, -2.0, order)[:, :3]
            np.testing.assert_allclose(R @ R.T, np.eye(3), atol=1e-12)
            assert np.linalg.det(R) == pytest.approx(1.0)


class TestDecompose:

    def test_round_trip_all_orders(self, rng):
        for M in random_rotations(rng, 20):
            for order in ORDERS:
                angles = decompose(M, order)
                np.testing.assert_allclose(compose(*angles, order)[:, :3], M, atol=1e-9)

    def test_accepts_3x4_transform(self, rng):
        R = random_rotations(rng, 1)[0]
        tm = np.hstack([R, [[5.0], [6.0], [7.0]]])
        assert np.allclose(decompose(tm), decompose(R))

    @pytest.mark.parametrize("order", [o for o in ORDERS if o.repeat == Repeat.YES], ids=str)
    @pytest.mark.parametrize("middle", [0.0, 1e-15, 1e-8, 1e-3, np.pi - 1e-8, np.pi])
    def test_repeated_axis_round_trip_near_lock(self, order, middle):
        M = compose(0.6, middle, -0.4, order)
        angles = decompose(M, order)
        np.testing.assert_allclose(compose(*angles, order)[:, :3], M[:, :3], atol=1e-7)

    @pytest.mark.parametrize("order", [o for o in ORDERS if o.repeat == Repeat.NO], ids=str)
    @pytest.mark.parametrize("middle", [np.pi / 2, -np.pi / 2, np.pi / 2 - 1e-6])
    def test_distinct_axis_round_trip_near_lock(self, order, middle):
        M = compose(0.6, middle, -0.4, order)
        angles = decompose(M, order)
        np.testing.assert_allclose(compose(*angles, order)[:, :3], M[:, :3], atol=1e-7)

    def test_gimbal_lock_zeroes_last_raw_angle(self):
        order = order_from_name("XYZs")
        a0, a1, a2 = decompose(compose(0.5, np.pi / 2, 0.2, order), order)
        assert a1 == pytest.approx(np.pi / 2)
        assert a2 == pytest.approx(0.0, abs=1e-12)

    def test_keeps_float32_precision(self):
        M = compose(0.1, 0.2, 0.3).astype(np.float32)
        angles = decompose(M)
        assert all(np.asarray(a).dtype == np.float32 for a in angles)
        np.testing.assert_allclose(angles, [0.1, 0.2, 0.3], atol=1e-5)

    def test_rotation_about_x(self):
        angles = decompose(rx(np.radians(179.0)))
        np.testing.assert_allclose(angles, [np.radians(179.0), 0.0, 0.0], atol=1e-12)


class TestRotatingXyzCleanup:

    def test_prefers_smaller_equivalent_triple(self):
        a = np.pi - 0.1
        angles = decompose(compose(a, 0.1, a, XYZ_ROTATING), XYZ_ROTATING)
        np.testing.assert_allclose(angles, [-0.1, np.pi - 0.1, -0.1], atol=1e-9)

    def test_result_is_never_larger_than_its_equivalent(self, rng):
        for M in random_rotations(rng, 50):
            angles = np.array(decompose(M, XYZ_ROTATING))
            alt = equivalent_angles(angles)
            assert np.dot(angles, angles) <= np.dot(alt, alt) + 1e-9

    def test_other_orders_keep_middle_angle_in_half_range(self, rng):
        orders = [o for o in ORDERS if o.repeat == Repeat.NO and o != XYZ_ROTATING]
        for M in random_rotations(rng, 20):
            for order in orders:
                assert abs(decompose(M, order)[1]) <= np.pi / 2 + 1e-12

    def test_equivalent_angles_describe_the_same_rotation(self):
        angles = (0.4, -1.0, 2.5)
        alt = equivalent_angles(angles)
        np.testing.assert_allclose(compose(*alt)[:, :3], compose(*angles)[:, :3], atol=1e-12)
