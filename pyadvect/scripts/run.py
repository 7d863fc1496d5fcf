"""Main script to run pyAdvect transport simulations from YAML configuration files."""

import signal
import sys
import time
from pathlib import Path

import click
import jax.numpy as jnp

from pyadvect.core.grid import make_grid
from pyadvect.exceptions import NumericalError
from pyadvect.io import (
    load_checkpoint,
    load_config,
    save_checkpoint,
    save_diagnostics,
    save_output,
)
from pyadvect.transport import DomainState, SolverState, TransportSolver, fields_for
from pyadvect.utils import setup_logging, summarize_fields
from pyadvect.validation import max_courant_number


# Global flag for graceful shutdown
shutdown_requested = False


def signal_handler(signum, frame):
    """Handle Ctrl+C for graceful shutdown."""
    global shutdown_requested
    shutdown_requested = True
    if hasattr(signal_handler, "logger"):
        signal_handler.logger.warning("Shutdown requested. Saving checkpoint before exiting...")


def setup_output_directories(output_dir: Path, config, logger) -> dict:
    """Create output directory structure."""
    output_dir.mkdir(parents=True, exist_ok=True)

    dirs = {
        "checkpoints": output_dir / "checkpoints",
        "fields": output_dir / "fields",
        "diagnostics": output_dir / "diagnostics",
    }

    for dir_path in dirs.values():
        dir_path.mkdir(exist_ok=True)

    # Save configuration for reference
    config.to_yaml(output_dir / "config.yml")
    logger.info(f"Configuration saved to {output_dir / 'config.yml'}")

    return dirs


def initial_blob(config, grid) -> jnp.ndarray:
    """Shape of the initial perturbation on the scalar grid (peak value ``amplitude``)."""
    ic = config.initial_condition
    shape = grid.shape

    if ic.type == "uniform":
        return jnp.full(shape, ic.amplitude)

    if ic.center is None:
        center = [(n - 1) / 2 for n in shape]
    else:
        center = list(ic.center)

    i, k, j = jnp.meshgrid(
        jnp.arange(shape[0]), jnp.arange(shape[1]), jnp.arange(shape[2]), indexing="ij"
    )
    offsets = [i - center[0], k - center[1], j - center[2]]

    if ic.type == "gaussian":
        r2 = sum(d**2 for d in offsets)
        return ic.amplitude * jnp.exp(-r2 / (2 * ic.width**2))

    inside = jnp.ones(shape, dtype=bool)
    for d in offsets:
        inside = inside & (jnp.abs(d) <= ic.width)
    return jnp.where(inside, ic.amplitude, 0.0)


def build_domain(config, grid) -> DomainState:
    """Build the initial domain: uniform winds on fully staggered faces plus initial scalars.

    Every field advected under the configured microphysics is created,
    starting from its background value; the fields listed in the initial
    condition get the blob added on top.
    """
    ic = config.initial_condition
    nx, nz, ny = grid.shape
    blob = initial_blob(config, grid)

    scalars = {}
    for field in fields_for(config.physics.microphysics):
        q = jnp.full(grid.shape, float(ic.backgrounds.get(field.name, 0.0)))
        if field.name in ic.fields:
            q = q + blob
        scalars[field.name] = q

    u = jnp.full((nx + 1, nz, ny), config.wind.u)
    v = jnp.full((nx, nz, ny + 1), config.wind.v)
    # Courant numbers share the dt/dx scaling, so w is stored in dx/dz units
    w = jnp.full((nx, nz, ny), config.wind.w * grid.dx / grid.dz)

    extra = {}
    if config.advection.advect_density:
        rho = jnp.ones(grid.shape)
        extra = {
            "rho": rho,
            "ur": u * grid.dx,
            "vr": v * grid.dx,
            "wr": w * rho * grid.dx,
        }

    return DomainState(scalars=scalars, u=u, v=v, w=w, dx=grid.dx, **extra)


def initialize_simulation(config, checkpoint_path, logger):
    """Initialize simulation from config or checkpoint."""
    grid = make_grid(config.grid.nx, config.grid.nz, config.grid.ny,
                     config.grid.dx, config.grid.dz)
    solver = TransportSolver.from_config(config)

    if checkpoint_path:
        logger.info(f"Loading checkpoint: {checkpoint_path}")
        domain, counters, _ = load_checkpoint(checkpoint_path)
        state = solver.initialize(domain)
        state = state._replace(
            rotation=counters.get("rotation", state.rotation),
            timestep=counters.get("timestep", state.timestep),
        )
        logger.info(f"Resuming from t={domain.time:.2f}, step={domain.step}")
    else:
        domain = build_domain(config, grid)
        state = solver.initialize(domain)
        logger.info(
            f"Initialized {config.initial_condition.type} initial condition "
            f"for {', '.join(config.initial_condition.fields)}"
        )

    return grid, solver, domain, state


def compute_diagnostics(domain: DomainState, state: SolverState) -> dict:
    """Compute diagnostic quantities."""
    courant_max = max_courant_number(state.u_courant, state.v_courant, state.w_courant)
    return summarize_fields(domain.scalars, courant_max)


def write_fields(domain, grid, config, dirs, logger, prefix="fields"):
    """Write the configured output fields of ``domain`` to a NetCDF file."""
    data = {name: domain.scalars[name] for name in config.output.fields
            if name in domain.scalars}
    missing = set(config.output.fields) - set(data)
    if missing:
        logger.warning(f"Output fields not advected under this microphysics: {sorted(missing)}")

    output_file = dirs["fields"] / f"{prefix}_{domain.step:08d}.nc"
    metadata = {
        "step": int(domain.step),
        "scheme": config.advection.scheme,
        "mpdata_order": int(config.advection.mpdata_order),
        "fct": bool(config.advection.flux_corrected_transport),
    }
    save_output(data, grid, domain.time, metadata, output_file,
                compress=config.output.compress)
    logger.log_output(output_file, domain.time, domain.step)
    return output_file


@click.command()
@click.argument("config", type=click.Path(exists=True))
@click.option("--checkpoint", type=click.Path(exists=True),
              help="Path to checkpoint file to resume from")
@click.option("--output-dir", type=click.Path(), default="./output",
              help="Directory for output files")
@click.option("--dry-run", is_flag=True,
              help="Validate configuration without running")
@click.option("--log-level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
              default="INFO", help="Console logging level")
def main(config, checkpoint, output_dir, dry_run, log_level):
    """Run a pyAdvect simulation from a YAML configuration file.

    Example:
        pyadvect-run config.yml
        pyadvect-run config.yml --checkpoint=output/checkpoints/step_00000100.h5
    """
    global shutdown_requested
    shutdown_requested = False

    run_config = load_config(config)

    output_dir = Path(output_dir)
    if not dry_run:
        output_dir.mkdir(parents=True, exist_ok=True)
    logger = setup_logging(output_dir if not dry_run else None, console_level=log_level)

    signal_handler.logger = logger

    logger.info(f"Loading configuration: {config}")

    if dry_run:
        logger.info("Dry run mode - validating configuration only")
        TransportSolver.from_config(run_config)
        logger.info("Configuration validated successfully!")
        logger.info(
            f"Grid: {run_config.grid.nx}x{run_config.grid.nz}x{run_config.grid.ny}, "
            f"dx={run_config.grid.dx}"
        )
        logger.info(f"Advection: {run_config.advection.scheme}, "
                    f"order={run_config.advection.mpdata_order}")
        logger.info(f"Steps: {run_config.simulation.n_steps} x dt={run_config.simulation.dt}")
        return

    dirs = setup_output_directories(output_dir, run_config, logger)

    signal.signal(signal.SIGINT, signal_handler)

    logger.info("Initializing simulation...")
    grid, solver, domain, state = initialize_simulation(run_config, checkpoint, logger)

    logger.log_simulation_start(run_config)

    sim = run_config.simulation
    t_start = time.time()
    first_step = domain.step
    last_step = first_step + sim.n_steps

    logger.info(f"Starting simulation from step {first_step} to step {last_step}")
    logger.info("Press Ctrl+C to save and exit gracefully")

    while domain.step < last_step and not shutdown_requested:
        try:
            new_domain, state, _ = solver.step(domain, state, sim.dt)
        except NumericalError as err:
            checkpoint_file = dirs["checkpoints"] / f"failed_step_{domain.step:08d}.h5"
            save_checkpoint(domain, run_config, checkpoint_file, solver_state=state)
            logger.error(f"Simulation aborted: {err}", field=err.field, code=err.code)
            logger.info(f"Last good state saved to {checkpoint_file}")
            sys.exit(1)
        domain = new_domain

        if domain.step % sim.log_interval == 0:
            diagnostics = compute_diagnostics(domain, state)
            logger.log_progress(domain.time, domain.step, sim.dt, diagnostics)
            save_diagnostics(diagnostics, domain.time, dirs["diagnostics"] / "timeseries.h5")

        if domain.step % sim.output_interval == 0:
            write_fields(domain, grid, run_config, dirs, logger)

        if domain.step % sim.checkpoint_interval == 0:
            checkpoint_file = dirs["checkpoints"] / f"step_{domain.step:08d}.h5"
            save_checkpoint(domain, run_config, checkpoint_file, solver_state=state)
            logger.log_checkpoint(checkpoint_file, domain.time, domain.step)

    logger.info("Saving final state...")

    checkpoint_file = dirs["checkpoints"] / f"final_step_{domain.step:08d}.h5"
    save_checkpoint(domain, run_config, checkpoint_file, solver_state=state)
    logger.info(f"Final checkpoint saved: {checkpoint_file}")

    if domain.step % sim.output_interval != 0:
        output_file = write_fields(domain, grid, run_config, dirs, logger, prefix="fields_final")
        logger.info(f"Final output saved: {output_file}")

    elapsed = time.time() - t_start
    logger.log_simulation_complete(domain.time, domain.step, elapsed)
    logger.info(f"Output saved to: {output_dir}")


if __name__ == "__main__":
    main()
