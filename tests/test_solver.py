"""
Tests for the MPDATA solvers.
"""

import numpy as np
import jax.numpy as jnp
import pytest

from pyadvect.core.axis import advect_x, advect_y, advect_z
from pyadvect.core.operators import upwind_step
from pyadvect.core.solver import (
    ROTATIONS,
    advect3d,
    advect3d_alternating,
    smooth_lateral_boundaries,
)
from pyadvect.exceptions import ValidationError


def winds(shape, u=0.0, v=0.0, w=0.0):
    nx, nz, ny = shape
    return (
        jnp.full((nx - 1, nz, ny), u),
        jnp.full((nx, nz, ny - 1), v),
        jnp.full((nx, nz, ny), w),
    )


def tent_row(nx, centre, half_width, ny=3):
    """Tent profile along x on the middle y row of a one-level grid."""
    i = np.arange(nx)
    profile = np.maximum(0.0, 1.0 - np.abs(i - centre) / half_width)
    return jnp.zeros((nx, 1, ny)).at[:, 0, ny // 2].set(profile)


class TestAdvect3D:
    """Tests for the multi-pass 3D scheme."""

    def test_order_one_is_upwind(self):
        rng = np.random.default_rng(0)
        q = jnp.asarray(rng.uniform(0.0, 1.0, size=(6, 3, 5)))
        u, v, w = winds(q.shape, 0.3, -0.2, 0.1)

        np.testing.assert_allclose(
            advect3d(q, u, v, w, order=1), upwind_step(q, u, v, w), rtol=1e-14
        )

    def test_single_cell_scenario(self):
        """One cell of 10 in a rightward Courant number of 0.5."""
        q = jnp.zeros((5, 1, 5)).at[2, 0, 2].set(10.0)
        u, v, w = winds(q.shape, 0.5)

        new = advect3d(q, u, v, w, order=2, fct=True)

        assert float(jnp.max(new)) < 10.0
        assert float(jnp.sum(new)) == pytest.approx(10.0, rel=1e-12)
        assert float(jnp.min(new)) >= 0.0
        np.testing.assert_allclose(new[:, 0, 2], [0.0, 0.0, 5.0, 5.0, 0.0], atol=1e-12)

    def test_mpdata_less_diffusive_than_upwind(self):
        q = tent_row(24, 5, 3.0)
        u, v, w = winds(q.shape, 0.5)

        q_up, q_mp = q, q
        for _ in range(10):
            q_up = advect3d(q_up, u, v, w, order=1)
            q_mp = advect3d(q_mp, u, v, w, order=2, fct=True)

        assert float(jnp.max(q_mp)) > float(jnp.max(q_up))
        assert float(jnp.sum(q_mp)) == pytest.approx(float(jnp.sum(q)), rel=1e-10)
        assert float(jnp.sum(q_up)) == pytest.approx(float(jnp.sum(q)), rel=1e-10)

    @pytest.mark.parametrize("order", [2, 3])
    def test_fct_stays_within_initial_bounds(self, order):
        """A box profile never over- or undershoots with FCT."""
        q = jnp.zeros((24, 1, 3)).at[4:9, 0, 1].set(1.0)
        u, v, w = winds(q.shape, 0.4)

        for _ in range(10):
            q = advect3d(q, u, v, w, order=order, fct=True)

        assert float(jnp.max(q)) <= 1.0 + 1e-12
        assert float(jnp.min(q)) >= -1e-12

    def test_vertical_mass_conservation(self):
        """Closed bottom and top: column mass is conserved in 3D."""
        q = jnp.zeros((5, 6, 5)).at[2, 1:3, 2].set(1.0)
        u, v, w = winds(q.shape, w=0.3)
        w = w.at[:, -1, :].set(0.0)

        new = advect3d(q, u, v, w, order=2, fct=True)

        assert float(jnp.sum(new)) == pytest.approx(2.0, rel=1e-12)
        assert float(jnp.min(new)) >= -1e-12

    def test_zero_wind_is_identity(self):
        rng = np.random.default_rng(5)
        q = jnp.asarray(rng.uniform(0.0, 1.0, size=(5, 2, 5)))
        u, v, w = winds(q.shape)

        np.testing.assert_allclose(advect3d(q, u, v, w, order=3), q)

    @pytest.mark.parametrize("order", [0, -1, 1.5, True])
    def test_invalid_order(self, order):
        q = jnp.ones((4, 1, 4))
        u, v, w = winds(q.shape)
        with pytest.raises(ValidationError):
            advect3d(q, u, v, w, order=order)

    def test_order_is_required(self):
        q = jnp.ones((4, 1, 4))
        u, v, w = winds(q.shape)
        with pytest.raises(ValidationError):
            advect3d(q, u, v, w)


class TestAlternating:
    """Tests for the operator-split scheme."""

    def test_rotation_orders(self):
        assert ROTATIONS == (("x", "y", "z"), ("y", "z", "x"), ("z", "x", "y"))

    @pytest.mark.parametrize("rotation", [0, 1, 2])
    def test_matches_sequential_axis_passes(self, rotation):
        rng = np.random.default_rng(rotation)
        q = jnp.asarray(rng.uniform(0.5, 1.5, size=(6, 3, 5)))
        u, v, w = winds(q.shape, 0.3, -0.2, 0.1)
        ops = {"x": (advect_x, u), "y": (advect_y, v), "z": (advect_z, w)}

        expected = q
        for axis in ROTATIONS[rotation]:
            op, c = ops[axis]
            expected = op(expected, c, fct=True)

        np.testing.assert_allclose(
            advect3d_alternating(q, u, v, w, rotation=rotation, fct=True), expected, rtol=1e-12
        )

    def test_mass_conserved(self):
        q = jnp.zeros((10, 3, 10)).at[4:6, 0:2, 4:6].set(1.0)
        u, v, w = winds(q.shape, 0.3, 0.2, 0.1)
        w = w.at[:, -1, :].set(0.0)

        new = advect3d_alternating(q, u, v, w, rotation=1)

        assert float(jnp.sum(new)) == pytest.approx(float(jnp.sum(q)), rel=1e-12)
        assert float(jnp.min(new)) >= -1e-12

    def test_smooth_lateral_boundaries(self):
        rng = np.random.default_rng(2)
        q = jnp.asarray(rng.uniform(size=(6, 2, 6)))

        s = smooth_lateral_boundaries(q)

        np.testing.assert_allclose(s[-2, :, 3], (s[-1, :, 3] + s[-3, :, 3]) / 2)
        np.testing.assert_allclose(s[:, :, 1], (s[:, :, 0] + s[:, :, 2]) / 2)
        np.testing.assert_array_equal(s[0, :, 3], q[0, :, 3])

    def test_boundary_buffer_option(self):
        rng = np.random.default_rng(4)
        q = jnp.asarray(rng.uniform(size=(6, 2, 6)))
        u, v, w = winds(q.shape, 0.2)

        plain = advect3d_alternating(q, u, v, w)
        buffered = advect3d_alternating(q, u, v, w, boundary_buffer=True)

        np.testing.assert_allclose(buffered, smooth_lateral_boundaries(plain))
