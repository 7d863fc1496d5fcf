"""Configuration system for pyAdvect simulations.

This module provides dataclasses for configuring all aspects of a pyAdvect run,
including grid parameters, advection options, microphysics, debug checks,
winds, initial conditions and output. Configuration files are written in
YAML and converted to these dataclasses.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union
import yaml
from pathlib import Path

from pyadvect.transport.fields import MICROPHYSICS_SCHEMES, TRANSPORTED_FIELDS

_FIELD_NAMES = {f.name for f in TRANSPORTED_FIELDS}


@dataclass
class GridConfig:
    """Configuration for the computational grid.

    Attributes:
        nx: Number of cells in x (>= 3)
        nz: Number of model levels (>= 1)
        ny: Number of cells in y (>= 3)
        dx: Horizontal grid spacing [m]
        dz: Layer thickness [m]
    """
    nx: int = 40
    nz: int = 10
    ny: int = 40
    dx: float = 1000.0
    dz: float = 500.0

    def __post_init__(self):
        if self.nx < 3 or self.ny < 3:
            raise ValueError(f"nx and ny must be at least 3, got nx={self.nx}, ny={self.ny}")
        if self.nz < 1:
            raise ValueError(f"nz must be at least 1, got {self.nz}")
        if self.dx <= 0:
            raise ValueError(f"dx must be positive, got {self.dx}")
        if self.dz <= 0:
            raise ValueError(f"dz must be positive, got {self.dz}")


@dataclass
class AdvectionConfig:
    """Configuration for the advection scheme.

    Attributes:
        scheme: 'mpdata3d' (simultaneous 3D passes) or 'alternating'
            (operator-split 1D passes with rotating axis order)
        mpdata_order: Number of MPDATA passes (1 = upwind)
        flux_corrected_transport: Limit antidiffusive velocities (FCT)
        boundary_buffer: Smooth cells next to the lateral boundaries
            (alternating scheme only)
        advect_density: Advect with density-weighted winds
    """
    scheme: str = "mpdata3d"
    mpdata_order: int = 2
    flux_corrected_transport: bool = True
    boundary_buffer: bool = False
    advect_density: bool = False

    def __post_init__(self):
        if self.scheme not in ["mpdata3d", "alternating"]:
            raise ValueError(f"Unknown advection scheme: {self.scheme}")
        if isinstance(self.mpdata_order, bool) or not isinstance(self.mpdata_order, int):
            raise ValueError(f"mpdata_order must be an integer, got {self.mpdata_order!r}")
        if self.mpdata_order < 1:
            raise ValueError(f"mpdata_order must be >= 1, got {self.mpdata_order}")


@dataclass
class PhysicsConfig:
    """Configuration of the physics packages that call the advection.

    Attributes:
        microphysics: Microphysics scheme ('simple', 'kessler' or 'thompson');
            only 'thompson' carries ice, graupel and number concentrations
    """
    microphysics: str = "thompson"

    def __post_init__(self):
        if self.microphysics.lower() not in MICROPHYSICS_SCHEMES:
            raise ValueError(f"Unknown microphysics scheme: {self.microphysics}")


@dataclass
class DebugConfig:
    """Configuration of the debug sanity checks.

    Attributes:
        enabled: Run the checks around every advected field
        negative_tolerance: Post-advection negatives shallower than this are clamped
        ceiling: Largest plausible value of a mixing ratio or temperature
    """
    enabled: bool = False
    negative_tolerance: float = 1e-6
    ceiling: float = 6000.0

    def __post_init__(self):
        if self.negative_tolerance < 0:
            raise ValueError(
                f"negative_tolerance must be non-negative, got {self.negative_tolerance}"
            )
        if self.ceiling <= 0:
            raise ValueError(f"ceiling must be positive, got {self.ceiling}")


@dataclass
class WindConfig:
    """Uniform background wind used to build a domain [m/s].

    Attributes:
        u: x wind
        v: y wind
        w: vertical wind
    """
    u: float = 10.0
    v: float = 0.0
    w: float = 0.0


@dataclass
class InitialConditionConfig:
    """Configuration for initial scalar fields.

    Attributes:
        type: Shape of the initial blob ('gaussian', 'box' or 'uniform')
        fields: Names of the fields that receive the blob
        amplitude: Peak value of the blob
        center: Blob centre as (x, z, y) cell indices (domain centre if None)
        width: Gaussian e-folding width / box half-width in cells
        backgrounds: Value added everywhere, per field (default 0)
    """
    type: str = "gaussian"
    fields: List[str] = field(default_factory=lambda: ["qv"])
    amplitude: float = 1.0e-3
    center: Optional[List[float]] = None
    width: float = 3.0
    backgrounds: Dict[str, float] = field(default_factory=lambda: {"th": 300.0})

    def __post_init__(self):
        if self.type not in ["gaussian", "box", "uniform"]:
            raise ValueError(f"Unknown initial condition type: {self.type}")
        unknown = (set(self.fields) | set(self.backgrounds)) - _FIELD_NAMES
        if unknown:
            raise ValueError(f"Unknown fields: {unknown}")
        if self.amplitude < 0:
            raise ValueError(f"amplitude must be non-negative, got {self.amplitude}")
        if self.width <= 0:
            raise ValueError(f"width must be positive, got {self.width}")
        if self.center is not None and len(self.center) != 3:
            raise ValueError(f"center must have three entries (x, z, y), got {self.center}")


@dataclass
class SimulationConfig:
    """Configuration for simulation control (intervals are in steps).

    Attributes:
        dt: Timestep [s]
        n_steps: Number of timesteps to run
        output_interval: Steps between field outputs
        checkpoint_interval: Steps between checkpoints
        log_interval: Steps between progress messages
    """
    dt: float = 10.0
    n_steps: int = 10
    output_interval: int = 5
    checkpoint_interval: int = 10
    log_interval: int = 1

    def __post_init__(self):
        if self.dt <= 0:
            raise ValueError(f"dt must be positive, got {self.dt}")
        if self.n_steps < 0:
            raise ValueError(f"n_steps must be non-negative, got {self.n_steps}")
        for name in ("output_interval", "checkpoint_interval", "log_interval"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")


@dataclass
class OutputConfig:
    """Configuration for output.

    Attributes:
        fields: Scalar fields written to the NetCDF outputs
        compress: Whether to use compression
    """
    fields: List[str] = field(default_factory=lambda: ["qv"])
    compress: bool = True

    def __post_init__(self):
        invalid = set(self.fields) - _FIELD_NAMES
        if invalid:
            raise ValueError(f"Unknown fields: {invalid}")


@dataclass
class RunConfig:
    """Main configuration for a pyAdvect simulation run.

    This is the top-level configuration that includes all sub-configurations.
    """
    grid: GridConfig = field(default_factory=GridConfig)
    advection: AdvectionConfig = field(default_factory=AdvectionConfig)
    physics: PhysicsConfig = field(default_factory=PhysicsConfig)
    debug: DebugConfig = field(default_factory=DebugConfig)
    wind: WindConfig = field(default_factory=WindConfig)
    initial_condition: InitialConditionConfig = field(default_factory=InitialConditionConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "RunConfig":
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            RunConfig instance
        """
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: dict) -> "RunConfig":
        """Create configuration from dictionary.

        Args:
            data: Dictionary with configuration data

        Returns:
            RunConfig instance
        """
        sections = {
            "grid": GridConfig,
            "advection": AdvectionConfig,
            "physics": PhysicsConfig,
            "debug": DebugConfig,
            "wind": WindConfig,
            "initial_condition": InitialConditionConfig,
            "simulation": SimulationConfig,
            "output": OutputConfig,
        }
        unknown = set(data) - set(sections)
        if unknown:
            raise ValueError(f"Unknown configuration sections: {unknown}")

        return cls(**{name: section(**(data.get(name) or {}))
                      for name, section in sections.items()})

    def to_yaml(self, path: Union[str, Path]) -> None:
        """Save configuration to YAML file.

        Args:
            path: Path to save YAML file
        """
        data = self.to_dict()
        with open(path, 'w') as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    def to_dict(self) -> dict:
        """Convert configuration to dictionary.

        Returns:
            Dictionary representation of configuration
        """
        from dataclasses import asdict

        data = asdict(self)

        # Remove None values
        def clean_dict(d):
            if isinstance(d, dict):
                return {k: clean_dict(v) for k, v in d.items() if v is not None}
            return d

        return clean_dict(data)


def load_config(path: Union[str, Path]) -> RunConfig:
    """Load configuration from YAML file.

    Args:
        path: Path to YAML configuration file

    Returns:
        RunConfig instance
    """
    return RunConfig.from_yaml(path)
