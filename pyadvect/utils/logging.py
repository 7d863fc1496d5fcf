"""Logging utilities for pyAdvect simulations.

This module provides structured logging capabilities with support for
both console and file output and per-step progress reporting.
"""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional


class SimulationLogger:
    """Logger for pyAdvect simulations with structured output."""

    def __init__(
        self,
        name: str = "pyadvect",
        console_level: str = "INFO",
        file_path: Optional[Path] = None,
        file_level: str = "DEBUG",
    ):
        """Initialize simulation logger.

        Args:
            name: Logger name
            console_level: Logging level for console output
            file_path: Optional path for log file
            file_level: Logging level for file output
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)  # Capture all messages

        # Remove existing handlers
        self.logger.handlers = []

        # Console handler with custom formatter
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, console_level.upper()))
        console_formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(message)s", datefmt="%H:%M:%S"
        )
        console_handler.setFormatter(console_formatter)
        self.logger.addHandler(console_handler)

        # File handler if requested
        if file_path:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(file_path)
            file_handler.setLevel(getattr(logging, file_level.upper()))
            file_formatter = logging.Formatter(
                "%(asctime)s | %(name)s | %(levelname)-8s | %(message)s"
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

        # Store metadata for structured logging
        self.metadata: Dict[str, Any] = {}

    def set_metadata(self, **kwargs):
        """Set metadata that will be included in structured log messages."""
        self.metadata.update(kwargs)

    def _format(self, message: str, kwargs: Dict[str, Any]) -> str:
        extra_data = {**self.metadata, **kwargs}
        if extra_data:
            message = f"{message} | {json.dumps(extra_data, default=str)}"
        return message

    def info(self, message: str, **kwargs):
        """Log info message with optional structured data."""
        self.logger.info(self._format(message, kwargs))

    def debug(self, message: str, **kwargs):
        """Log debug message with optional structured data."""
        self.logger.debug(self._format(message, kwargs))

    def warning(self, message: str, **kwargs):
        """Log warning message with optional structured data."""
        self.logger.warning(self._format(message, kwargs))

    def error(self, message: str, **kwargs):
        """Log error message with optional structured data."""
        self.logger.error(self._format(message, kwargs))

    def log_simulation_start(self, config):
        """Log simulation start with configuration details."""
        self.info("=" * 60)
        self.info("pyAdvect Simulation Starting")
        self.info(
            f"Grid: {config.grid.nx}×{config.grid.nz}×{config.grid.ny}, "
            f"dx={config.grid.dx:.1f}, dz={config.grid.dz:.1f}"
        )
        self.info(
            f"Advection: scheme={config.advection.scheme}, "
            f"order={config.advection.mpdata_order}, "
            f"FCT={config.advection.flux_corrected_transport}"
        )
        self.info(f"Microphysics: {config.physics.microphysics}")
        self.info(f"Time: dt={config.simulation.dt}, steps={config.simulation.n_steps}")
        self.info("=" * 60)

    def log_progress(self, time: float, step: int, dt: float, diagnostics: Dict[str, float]):
        """Log simulation progress with diagnostics."""
        msg_parts = [f"t={time:10.1f}", f"step={step:6d}", f"dt={dt:.2e}"]

        if "courant_max" in diagnostics:
            msg_parts.append(f"C_max={diagnostics['courant_max']:.3f}")
        for name in ("qv", "th"):
            if f"{name}_total" in diagnostics:
                msg_parts.append(f"Σ{name}={diagnostics[f'{name}_total']:.4e}")
            if f"{name}_min" in diagnostics:
                msg_parts.append(f"min({name})={diagnostics[f'{name}_min']:.3e}")

        self.info(" | ".join(msg_parts))

    def log_checkpoint(self, checkpoint_path: Path, time: float, step: int):
        """Log checkpoint save."""
        self.info(f"Checkpoint saved: {checkpoint_path.name}", time=time, step=step)

    def log_output(self, output_path: Path, time: float, step: int):
        """Log output save."""
        self.debug(f"Output saved: {output_path.name}", time=time, step=step)

    def log_simulation_complete(self, final_time: float, total_steps: int, wall_time: float):
        """Log simulation completion."""
        self.info("=" * 60)
        self.info("Simulation Complete!")
        self.info(f"Final time: {final_time:.1f}")
        self.info(f"Total steps: {total_steps}")
        self.info(f"Wall time: {wall_time:.1f} seconds")
        if wall_time > 0:
            self.info(f"Performance: {total_steps/wall_time:.1f} steps/second")
        self.info("=" * 60)


def setup_logging(
    output_dir: Optional[Path] = None, console_level: str = "INFO", file_level: str = "DEBUG"
) -> SimulationLogger:
    """Set up logging for a simulation run.

    Args:
        output_dir: Directory for log files (if None, no file logging)
        console_level: Console logging level
        file_level: File logging level

    Returns:
        Configured SimulationLogger instance
    """
    log_file = None
    if output_dir:
        output_dir = Path(output_dir)
        log_dir = output_dir / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)

        # Create timestamped log file
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_dir / f"simulation_{timestamp}.log"

    logger = SimulationLogger(
        console_level=console_level, file_path=log_file, file_level=file_level
    )

    return logger


def get_logger(name: str = "pyadvect") -> logging.Logger:
    """Get a standard logger instance.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
