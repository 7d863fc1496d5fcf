"""Tests for diagnostics and logging utilities."""

import logging
import tempfile
from pathlib import Path

import jax.numpy as jnp
import numpy as np
import pytest

from pyadvect.io import RunConfig
from pyadvect.utils import (
    SimulationLogger,
    field_extrema,
    get_logger,
    interior_mass,
    setup_logging,
    summarize_fields,
    total_mass,
)


class TestDiagnostics:
    """Test field statistics."""

    def test_total_mass(self):
        q = jnp.full((3, 2, 3), 2.0)
        assert float(total_mass(q)) == pytest.approx(36.0)
        assert float(total_mass(q, jnp.full((3, 2, 3), 0.5))) == pytest.approx(18.0)

    def test_interior_mass(self):
        q = jnp.ones((4, 2, 5))
        assert interior_mass(q) == pytest.approx(2 * 2 * 3)

    def test_field_extrema(self):
        q = jnp.array([[[1.0, jnp.nan, -2.0]]])

        stats = field_extrema(q)

        assert stats["min"] == -2.0
        assert stats["max"] == 1.0
        assert stats["mean"] == pytest.approx(-0.5)
        assert stats["has_nan"]

    def test_summarize_fields(self):
        scalars = {"qv": jnp.full((3, 1, 3), 1e-3), "th": jnp.full((3, 1, 3), 300.0)}

        diagnostics = summarize_fields(scalars, courant_max=0.4)

        assert diagnostics["qv_total"] == pytest.approx(9e-3)
        assert diagnostics["th_min"] == 300.0
        assert diagnostics["th_max"] == 300.0
        assert diagnostics["courant_max"] == 0.4
        assert "courant_max" not in summarize_fields(scalars)


class TestLogging:
    """Test the simulation logger."""

    def test_setup_logging_writes_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            logger = setup_logging(Path(tmpdir), console_level="WARNING")
            logger.info("hello", step=3)
            logger.log_simulation_start(RunConfig())
            logger.log_progress(10.0, 1, 10.0, {"courant_max": 0.1, "qv_total": 1.0,
                                                "qv_min": 0.0})
            for handler in logger.logger.handlers:
                handler.flush()

            log_files = list((Path(tmpdir) / "logs").glob("simulation_*.log"))
            assert len(log_files) == 1
            text = log_files[0].read_text()

            for handler in logger.logger.handlers:
                handler.close()
            logger.logger.handlers = []

        assert 'hello | {"step": 3}' in text
        assert "mpdata3d" in text
        assert "C_max=0.100" in text

    def test_console_only(self):
        logger = SimulationLogger(name="pyadvect.test")
        assert len(logger.logger.handlers) == 1
        logger.logger.handlers = []

    def test_get_logger(self):
        logger = get_logger("pyadvect.transport")
        assert isinstance(logger, logging.Logger)
        assert logger.name == "pyadvect.transport"
