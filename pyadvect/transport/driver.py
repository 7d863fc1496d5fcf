"""
Scalar transport driver.

This module provides the TransportSolver class, the per-timestep entry
point that converts the domain winds to Courant numbers and advects every
transported scalar field with MPDATA.
"""

from typing import Dict, List, Optional, Tuple

import jax
import jax.numpy as jnp

from pyadvect.core.solver import advect3d, advect3d_alternating
from pyadvect.exceptions import ConfigurationError, GridError, NumericalError
from pyadvect.transport.checks import AdvectionReport, SanityThresholds, check_after, check_before
from pyadvect.transport.fields import MICROPHYSICS_SCHEMES, TransportedField, fields_for
from pyadvect.transport.state import DomainState, SolverState
from pyadvect.utils.logging import get_logger
from pyadvect.validation import max_courant_number, validate_staggered_winds, validate_timestep

logger = get_logger("pyadvect.transport")

SCHEMES = ("mpdata3d", "alternating")


def interior_faces(wind: jnp.ndarray, axis: int, n: int, name: str = "wind") -> jnp.ndarray:
    """Return the n-1 interior faces of a wind component staggered along ``axis``.

    Fully staggered input (n+1 faces, lateral boundary faces included) has
    its outermost faces dropped; interior-only input (n-1 faces) is
    returned as is.

    Raises:
        GridError: If the staggered dimension has any other length
    """
    size = wind.shape[axis]
    if size == n + 1:
        return jax.lax.slice_in_dim(wind, 1, n, axis=axis)
    if size == n - 1:
        return wind
    raise GridError(f"{name} has {size} faces along axis {axis}, expected {n + 1} or {n - 1}")


class TransportSolver:
    """
    Advects all transported scalars of a domain once per timestep.

    Attributes:
        order: Number of MPDATA passes (1 = upwind)
        fct: Use flux-corrected transport
        scheme: "mpdata3d" (simultaneous 3D update) or "alternating"
            (operator-split, axis order rotating every call)
        boundary_buffer: Smooth next-to-boundary cells (alternating scheme only)
        debug: Run sanity checks around every field
        advect_density: Use density-weighted winds ``ur, vr, wr``
        microphysics: Microphysics scheme name; decides which fields are advected
        thresholds: Limits used by the debug checks
    """

    def __init__(
        self,
        order: int = 2,
        fct: bool = True,
        scheme: str = "mpdata3d",
        boundary_buffer: bool = False,
        debug: bool = False,
        advect_density: bool = False,
        microphysics: str = "thompson",
        thresholds: Optional[SanityThresholds] = None,
    ):
        if isinstance(order, bool) or not isinstance(order, int) or order < 1:
            raise ConfigurationError(f"order must be an integer >= 1, got {order!r}")
        if scheme not in SCHEMES:
            raise ConfigurationError(f"Unknown advection scheme: {scheme}")
        if microphysics.lower() not in MICROPHYSICS_SCHEMES:
            raise ConfigurationError(f"Unknown microphysics scheme: {microphysics}")

        self.order = order
        self.fct = fct
        self.scheme = scheme
        self.boundary_buffer = boundary_buffer
        self.debug = debug
        self.advect_density = advect_density
        self.microphysics = microphysics.lower()
        self.thresholds = thresholds if thresholds is not None else SanityThresholds()

    @classmethod
    def from_config(cls, config) -> "TransportSolver":
        """Build a solver from a RunConfig."""
        adv = config.advection
        return cls(
            order=adv.mpdata_order,
            fct=adv.flux_corrected_transport,
            scheme=adv.scheme,
            boundary_buffer=adv.boundary_buffer,
            debug=config.debug.enabled,
            advect_density=adv.advect_density,
            microphysics=config.physics.microphysics,
            thresholds=SanityThresholds(
                negative_tolerance=config.debug.negative_tolerance,
                ceiling=config.debug.ceiling,
            ),
        )

    @property
    def fields(self) -> Tuple[TransportedField, ...]:
        """Fields advected by this solver, in order."""
        return fields_for(self.microphysics)

    def initialize(self, domain: DomainState) -> SolverState:
        """
        Create the solver state for a domain.

        Parameters:
            domain: Domain whose grid sizes the Courant buffers

        Returns:
            SolverState with rotation 0 and timestep 1
        """
        return SolverState.allocate(domain.shape)

    def courant_numbers(
        self, domain: DomainState, dt: float
    ) -> Tuple[jnp.ndarray, jnp.ndarray, jnp.ndarray]:
        """
        Scale the domain winds to Courant numbers on the interior faces.

        The vertical wind is derived from the horizontal divergence, so it
        is already expressed in dx/dz units and shares the dt/dx scaling.

        Parameters:
            domain: Domain state
            dt: Timestep [s]

        Returns:
            (u, v, w) Courant numbers with shapes (nx-1, nz, ny),
            (nx, nz, ny-1) and (nx, nz, ny)
        """
        nx, _, ny = domain.shape

        if self.advect_density:
            if domain.ur is None or domain.vr is None or domain.wr is None:
                raise ConfigurationError(
                    "advect_density requires density-weighted winds ur, vr and wr"
                )
            u, v, w = domain.ur, domain.vr, domain.wr
            scale = dt / domain.dx**2
        else:
            u, v, w = domain.u, domain.v, domain.w
            scale = dt / domain.dx

        u_c = interior_faces(u, 0, nx, "u") * scale
        v_c = interior_faces(v, 2, ny, "v") * scale
        w_c = w * scale
        return u_c, v_c, w_c

    def advect_field(
        self,
        q: jnp.ndarray,
        courant: Tuple[jnp.ndarray, jnp.ndarray, jnp.ndarray],
        rotation: int = 0,
        field: Optional[TransportedField] = None,
    ) -> Tuple[jnp.ndarray, AdvectionReport]:
        """
        Advect one scalar field, with debug checks when enabled.

        Parameters:
            q: Scalar field, shape (nx, nz, ny)
            courant: (u, v, w) Courant numbers
            rotation: Axis-order counter for the alternating scheme
            field: Registry entry of the field (name and ceiling policy)

        Returns:
            (advected field, report)
        """
        name = field.name if field is not None else "field"
        check_ceiling = field.check_ceiling if field is not None else True
        u, v, w = courant
        code = 0

        if self.debug:
            q, code = check_before(q, name)

        if self.scheme == "mpdata3d":
            q = advect3d(q, u, v, w, order=self.order, fct=self.fct)
        else:
            q = advect3d_alternating(
                q, u, v, w, rotation=rotation, fct=self.fct, boundary_buffer=self.boundary_buffer
            )

        if self.debug:
            q, code = check_after(q, code, self.thresholds, check_ceiling, name)

        report = AdvectionReport(
            field=name, code=code, minimum=float(jnp.min(q)), maximum=float(jnp.max(q))
        )
        return q, report

    def step(
        self, domain: DomainState, state: SolverState, dt: float
    ) -> Tuple[DomainState, SolverState, List[AdvectionReport]]:
        """
        Advance every transported scalar by one timestep.

        Parameters:
            domain: Current domain state
            state: Solver state from :meth:`initialize` or a previous step
            dt: Timestep [s]

        Returns:
            (new domain, new solver state, per-field reports)

        Raises:
            NumericalError: If a field's problem code is positive
            ConfigurationError: If a field to advect is missing from the domain
        """
        dt = validate_timestep(dt)
        courant = self.courant_numbers(domain, dt)

        c_max = max_courant_number(*courant)
        if c_max > 1.0:
            logger.warning(f"Courant number {c_max:.3f} exceeds 1; upwind step is unstable")

        updated: Dict[str, jnp.ndarray] = {}
        reports: List[AdvectionReport] = []

        for field in self.fields:
            if field.name not in domain.scalars:
                raise ConfigurationError(
                    f"Field '{field.name}' required by {self.microphysics} microphysics "
                    "is missing from the domain"
                )
            q = domain.scalars[field.name]
            validate_staggered_winds(q, *courant)

            q_new, report = self.advect_field(q, courant, state.rotation, field)
            reports.append(report)

            if report.code != 0:
                if report.fatal:
                    logger.error(f"{field.name}: advection error code {report.code}")
                    raise NumericalError(
                        f"MPDATA error in {field.name} (code {report.code})",
                        field=field.name,
                        code=report.code,
                    )
                logger.warning(f"{field.name}: advection warning code {report.code}")

            logger.debug(
                f"{field.name}: min={report.minimum:.4e} max={report.maximum:.4e} "
                f"total={float(jnp.sum(q_new)):.6e}"
            )
            updated[field.name] = q_new

        new_domain = domain.update_scalars(updated)._replace(
            time=domain.time + dt, step=domain.step + 1
        )
        new_state = state._replace(
            rotation=(state.rotation + 1) % 3,
            timestep=state.timestep + 1,
            u_courant=courant[0],
            v_courant=courant[1],
            w_courant=courant[2],
        )
        return new_domain, new_state, reports


def mpdata_init(domain: DomainState, config) -> Tuple[TransportSolver, SolverState]:
    """Create a solver from a RunConfig and its initial state for ``domain``."""
    solver = TransportSolver.from_config(config)
    return solver, solver.initialize(domain)


def mpdata(
    domain: DomainState, state: SolverState, solver: TransportSolver, dt: float
) -> Tuple[DomainState, SolverState]:
    """Advect all scalars of ``domain`` by one timestep (reports are logged, not returned)."""
    domain, state, _ = solver.step(domain, state, dt)
    return domain, state
