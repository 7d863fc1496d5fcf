"""
Tests for the scalar transport driver, field registry and debug checks.
"""

import jax
import numpy as np
import jax.numpy as jnp
import pytest

from pyadvect.exceptions import ConfigurationError, GridError, NumericalError, ValidationError
from pyadvect.io import RunConfig
from pyadvect.transport import (
    DomainState,
    SanityThresholds,
    SolverState,
    TRANSPORTED_FIELDS,
    TransportSolver,
    check_after,
    check_before,
    fields_for,
    interior_faces,
    mpdata,
    mpdata_init,
)

WARM_FIELDS = ["qv", "cloud", "qrain", "qsnow", "th"]
ALL_FIELDS = WARM_FIELDS + ["ice", "qgrau", "nice", "nrain"]


def make_domain(shape=(6, 3, 5), u=0.0, v=0.0, w=0.0, dx=1000.0, fields=ALL_FIELDS, **kwargs):
    """Domain with fully staggered uniform winds and zero scalars."""
    nx, nz, ny = shape
    scalars = {name: jnp.zeros(shape) for name in fields}
    return DomainState(
        scalars=scalars,
        u=jnp.full((nx + 1, nz, ny), u),
        v=jnp.full((nx, nz, ny + 1), v),
        w=jnp.full((nx, nz, ny), w),
        dx=dx,
        **kwargs,
    )


class TestFieldRegistry:
    """Tests for the list of advected fields."""

    def test_thompson_advects_everything(self):
        assert [f.name for f in fields_for("thompson")] == ALL_FIELDS

    @pytest.mark.parametrize("scheme", ["simple", "kessler", "KESSLER"])
    def test_warm_schemes_skip_ice(self, scheme):
        assert [f.name for f in fields_for(scheme)] == WARM_FIELDS

    def test_number_concentrations_skip_ceiling(self):
        unchecked = {f.name for f in TRANSPORTED_FIELDS if not f.check_ceiling}
        assert unchecked == {"nice", "nrain"}


class TestInteriorFaces:
    """Tests for wind staggering conversion."""

    def test_fully_staggered(self):
        u = jnp.arange(7.0)[:, None, None] * jnp.ones((7, 2, 3))
        faces = interior_faces(u, 0, 6)
        assert faces.shape == (5, 2, 3)
        np.testing.assert_array_equal(faces[:, 0, 0], [1.0, 2.0, 3.0, 4.0, 5.0])

    def test_interior_only(self):
        v = jnp.ones((6, 2, 4))
        assert interior_faces(v, 2, 5) is v

    def test_wrong_length(self):
        with pytest.raises(GridError):
            interior_faces(jnp.ones((6, 2, 5)), 0, 6)


class TestSolverConstruction:
    """Tests for TransportSolver options."""

    @pytest.mark.parametrize(
        "kwargs",
        [{"order": 0}, {"order": 2.0}, {"scheme": "rk3"}, {"microphysics": "morrison"}],
    )
    def test_invalid_options(self, kwargs):
        with pytest.raises(ConfigurationError):
            TransportSolver(**kwargs)

    def test_from_config(self):
        config = RunConfig.from_dict(
            {
                "advection": {"mpdata_order": 3, "flux_corrected_transport": False,
                              "scheme": "alternating"},
                "physics": {"microphysics": "kessler"},
                "debug": {"enabled": True, "ceiling": 400.0},
            }
        )

        solver = TransportSolver.from_config(config)

        assert solver.order == 3
        assert not solver.fct
        assert solver.scheme == "alternating"
        assert solver.debug
        assert solver.thresholds.ceiling == 400.0
        assert [f.name for f in solver.fields] == WARM_FIELDS

    def test_initialize(self):
        domain = make_domain()
        state = TransportSolver().initialize(domain)

        assert state.rotation == 0
        assert state.timestep == 1
        assert state.u_courant.shape == (5, 3, 5)
        assert state.v_courant.shape == (6, 3, 4)
        assert state.w_courant.shape == (6, 3, 5)


class TestCourantNumbers:
    """Tests for wind scaling."""

    def test_plain_winds(self):
        domain = make_domain(u=10.0, v=-5.0, w=2.0)

        u, v, w = TransportSolver().courant_numbers(domain, 10.0)

        np.testing.assert_allclose(u, 0.1)
        np.testing.assert_allclose(v, -0.05)
        np.testing.assert_allclose(w, 0.02)
        assert u.shape == (5, 3, 5)
        assert v.shape == (6, 3, 4)

    def test_density_weighted_winds(self):
        """Density-weighted winds are scaled by dt/dx**2."""
        nx, nz, ny = 6, 3, 5
        domain = make_domain(
            u=99.0,
            rho=jnp.ones((nx, nz, ny)),
            ur=jnp.full((nx + 1, nz, ny), 10.0 * 1000.0),
            vr=jnp.full((nx, nz, ny + 1), 0.0),
            wr=jnp.full((nx, nz, ny), 0.0),
        )

        u, _, _ = TransportSolver(advect_density=True).courant_numbers(domain, 10.0)

        np.testing.assert_allclose(u, 0.1)

    def test_density_winds_required(self):
        with pytest.raises(ConfigurationError):
            TransportSolver(advect_density=True).courant_numbers(make_domain(), 10.0)


class TestStep:
    """Tests for the per-timestep driver."""

    def test_step_advances_counters(self):
        solver = TransportSolver()
        domain = make_domain(u=10.0)
        state = solver.initialize(domain)

        rotations = []
        for _ in range(4):
            domain, state, reports = solver.step(domain, state, 10.0)
            rotations.append(state.rotation)

        assert rotations == [1, 2, 0, 1]
        assert state.timestep == 5
        assert domain.step == 4
        assert domain.time == pytest.approx(40.0)
        assert [r.field for r in reports] == ALL_FIELDS
        np.testing.assert_allclose(state.u_courant, 0.1)

    def test_step_moves_scalar_and_conserves_mass(self):
        solver = TransportSolver(microphysics="kessler")
        domain = make_domain(shape=(12, 1, 3), u=10.0, fields=WARM_FIELDS)
        qv = jnp.zeros((12, 1, 3)).at[3:6, 0, 1].set(1e-3)
        domain = domain.update_scalars({"qv": qv})
        state = solver.initialize(domain)

        new, _, _ = solver.step(domain, state, 10.0)

        assert float(jnp.sum(new.scalars["qv"])) == pytest.approx(3e-3, rel=1e-12)
        assert not np.allclose(new.scalars["qv"], qv)
        # the input domain is not modified
        np.testing.assert_array_equal(domain.scalars["qv"], qv)

    def test_only_microphysics_fields_advected(self):
        solver = TransportSolver(microphysics="kessler")
        domain = make_domain(u=10.0)
        ice = jnp.zeros(domain.shape).at[2, 1, 2].set(1.0)
        domain = domain.update_scalars({"ice": ice})

        new, _, reports = solver.step(domain, solver.initialize(domain), 10.0)

        np.testing.assert_array_equal(new.scalars["ice"], ice)
        assert [r.field for r in reports] == WARM_FIELDS

    def test_missing_field(self):
        solver = TransportSolver()
        domain = make_domain(fields=WARM_FIELDS)
        with pytest.raises(ConfigurationError):
            solver.step(domain, solver.initialize(domain), 10.0)

    def test_bad_wind_shape(self):
        solver = TransportSolver()
        domain = make_domain()._replace(u=jnp.zeros((6, 3, 5)))
        with pytest.raises(GridError):
            solver.step(domain, solver.initialize(domain), 10.0)

    @pytest.mark.parametrize("dt", [0.0, -1.0, float("nan")])
    def test_invalid_timestep(self, dt):
        solver = TransportSolver()
        domain = make_domain()
        with pytest.raises(ValidationError):
            solver.step(domain, solver.initialize(domain), dt)

    def test_alternating_scheme(self):
        solver = TransportSolver(scheme="alternating", microphysics="simple",
                                 boundary_buffer=False)
        domain = make_domain(shape=(10, 2, 10), u=10.0, v=10.0, fields=WARM_FIELDS)
        qv = jnp.zeros((10, 2, 10)).at[4:6, :, 4:6].set(1.0)
        domain = domain.update_scalars({"qv": qv})

        new, state, _ = solver.step(domain, solver.initialize(domain), 10.0)

        assert state.rotation == 1
        assert float(jnp.sum(new.scalars["qv"])) == pytest.approx(8.0, rel=1e-12)

    def test_mpdata_wrappers(self):
        config = RunConfig.from_dict({"physics": {"microphysics": "simple"}})
        domain = make_domain(u=5.0, fields=WARM_FIELDS)

        solver, state = mpdata_init(domain, config)
        domain, state = mpdata(domain, state, solver, 10.0)

        assert isinstance(solver, TransportSolver)
        assert isinstance(state, SolverState)
        assert state.timestep == 2
        assert domain.step == 1


class TestDebugChecks:
    """Tests for the sanity checks and their error codes."""

    def test_check_before_negative(self):
        q = jnp.ones((3, 1, 3)).at[1, 0, 1].set(-2.0)

        fixed, code = check_before(q)

        assert code == -1
        assert float(fixed[1, 0, 1]) == 0.0

    def test_check_before_nan(self):
        q = jnp.full((3, 1, 3), 0.5).at[1, 0, 1].set(jnp.nan)

        fixed, code = check_before(q)

        assert code == -4
        assert float(fixed[1, 0, 1]) == 0.5

    def test_check_before_both(self):
        q = jnp.ones((3, 1, 3)).at[1, 0, 1].set(jnp.nan).at[2, 0, 2].set(-1.0)
        _, code = check_before(q)
        assert code == -5

    def test_check_before_clean(self):
        q = jnp.ones((3, 1, 3))
        fixed, code = check_before(q)
        assert code == 0
        np.testing.assert_array_equal(fixed, q)

    def test_check_after_small_negative_clamped(self):
        q = jnp.ones((3, 1, 3)).at[1, 0, 1].set(-1e-8)

        fixed, code = check_after(q, -1, SanityThresholds())

        assert code == 0
        assert float(jnp.min(fixed)) == 0.0

    def test_check_after_keeps_warning_code(self):
        _, code = check_after(jnp.ones((3, 1, 3)), -1, SanityThresholds())
        assert code == -1

    def test_check_after_large_negative(self):
        q = jnp.ones((3, 1, 3)).at[1, 0, 1].set(-1e-3)
        _, code = check_after(q, -4, SanityThresholds())
        assert code == 1

    def test_check_after_ceiling(self):
        q = jnp.full((3, 1, 3), 7000.0)

        _, code = check_after(q, 0, SanityThresholds())
        assert code == 2

        _, code = check_after(q, 0, SanityThresholds(), check_ceiling=False)
        assert code == 0

    def test_number_concentration_problems_stay_fatal(self):
        """Skipping the ceiling does not silence negatives or NaNs."""
        field = next(f for f in TRANSPORTED_FIELDS if f.name == "nrain")

        q = jnp.ones((3, 1, 3)).at[1, 0, 1].set(-1e-3)
        _, code = check_after(q, 0, SanityThresholds(), check_ceiling=field.check_ceiling)
        assert code == 1

        q = jnp.ones((3, 1, 3)).at[0, 0, 0].set(jnp.nan)
        _, code = check_after(q, 0, SanityThresholds(), check_ceiling=field.check_ceiling)
        assert code == 4

    def test_check_after_nan(self):
        q = jnp.ones((3, 1, 3)).at[0, 0, 0].set(jnp.nan)
        _, code = check_after(q, 0, SanityThresholds())
        assert code == 4

    def test_invalid_thresholds(self):
        with pytest.raises(ValueError):
            SanityThresholds(negative_tolerance=-1.0)
        with pytest.raises(ValueError):
            SanityThresholds(ceiling=0.0)

    def test_fatal_code_raises(self):
        solver = TransportSolver(debug=True, microphysics="kessler")
        domain = make_domain(fields=WARM_FIELDS)
        domain = domain.update_scalars({"qv": jnp.full(domain.shape, 1e4)})

        with pytest.raises(NumericalError) as excinfo:
            solver.step(domain, solver.initialize(domain), 10.0)

        assert excinfo.value.field == "qv"
        assert excinfo.value.code == 2

    def test_warning_code_is_reported(self):
        solver = TransportSolver(debug=True, microphysics="kessler")
        domain = make_domain(fields=WARM_FIELDS)
        qv = jnp.zeros(domain.shape).at[2, 1, 2].set(-1.0)
        domain = domain.update_scalars({"qv": qv})

        new, _, reports = solver.step(domain, solver.initialize(domain), 10.0)

        assert reports[0].field == "qv"
        assert reports[0].code == -1
        assert not reports[0].fatal
        assert float(jnp.min(new.scalars["qv"])) == 0.0

    def test_number_concentration_above_ceiling_is_fine(self):
        solver = TransportSolver(debug=True)
        domain = make_domain()
        domain = domain.update_scalars({"nice": jnp.full(domain.shape, 1e8)})

        _, _, reports = solver.step(domain, solver.initialize(domain), 10.0)

        assert all(r.code == 0 for r in reports)

    def test_checks_off_by_default(self):
        solver = TransportSolver(microphysics="kessler")
        domain = make_domain(fields=WARM_FIELDS)
        domain = domain.update_scalars({"qv": jnp.full(domain.shape, 1e4)})

        _, _, reports = solver.step(domain, solver.initialize(domain), 10.0)

        assert reports[0].code == 0


class TestDomainState:
    """Tests for the domain container."""

    def test_dict_round_trip(self):
        nx, nz, ny = 6, 3, 5
        domain = make_domain(u=3.0, rho=jnp.ones((nx, nz, ny)), time=5.0, step=2)

        restored = DomainState.from_dict(domain.to_dict())

        assert set(restored.scalars) == set(domain.scalars)
        np.testing.assert_array_equal(restored.u, domain.u)
        np.testing.assert_array_equal(restored.rho, domain.rho)
        assert restored.ur is None
        assert restored.time == 5.0
        assert restored.step == 2
        assert restored.dx == 1000.0

    def test_get_scalar(self):
        domain = make_domain(fields=["qv"])
        assert domain.get_scalar("qv").shape == (6, 3, 5)
        with pytest.raises(KeyError):
            domain.get_scalar("ice")

    def test_pytree(self):
        domain = make_domain(fields=["qv", "th"], u=1.0)

        doubled = jax.tree_util.tree_map(lambda a: 2 * a, domain)

        assert isinstance(doubled, DomainState)
        assert len(jax.tree_util.tree_leaves(domain)) == 5
        np.testing.assert_allclose(doubled.u, 2.0)
        assert doubled.dx == domain.dx
