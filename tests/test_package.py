"""
Tests for package import side effects.
"""

import importlib
import warnings

import jax.numpy as jnp

import pyadvect


class TestImport:
    """Tests for importing the package."""

    def test_import_emits_no_runtime_warning(self):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            importlib.reload(pyadvect)

        runtime = [w for w in caught if issubclass(w.category, RuntimeWarning)]
        assert runtime == []

    def test_double_precision_enabled(self):
        importlib.reload(pyadvect)
        assert jnp.zeros(1).dtype == jnp.float64

    def test_version(self):
        assert pyadvect.__version__ == "0.1.0"
