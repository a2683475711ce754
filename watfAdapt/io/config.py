"""
Configuration of the adaptivity layer.

Parameters can be set in code or loaded from a JSON file:

    {
      "adaptivity": {
        "local_refinement_algorithm": "red_green",
        "point_tolerance": 1e-10,
        "log_level": "INFO"
      }
    }

The module-level `parameters` object holds the defaults used by the
refiners when no explicit parameters are passed.
"""

import json
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Dict, Union

from ..discretization.refinement import LOCAL_ALGORITHMS


@dataclass
class AdaptivityParameters:
    """
    Parameters controlling refinement.

    Attributes:
        local_refinement_algorithm: Closure used for marked refinement
            ("red_green" or "red")
        point_tolerance: Barycentric tolerance when locating points during
            interpolation between meshes
        log_level: Level applied by setup_logging in scripts
    """
    local_refinement_algorithm: str = "red_green"
    point_tolerance: float = 1e-10
    log_level: str = "WARNING"

    def __post_init__(self):
        if self.local_refinement_algorithm not in LOCAL_ALGORITHMS:
            raise ValueError(
                f"Unknown refinement algorithm: {self.local_refinement_algorithm}. "
                f"Use one of {LOCAL_ALGORITHMS}."
            )
        if not self.point_tolerance >= 0:
            raise ValueError(f"point_tolerance must be non-negative, got {self.point_tolerance}")
        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {self.log_level}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(filename: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a configuration dictionary from a JSON file.

    Parameters:
        filename: Path to the JSON file

    Returns:
        Parsed configuration
    """
    with open(filename, 'r', encoding='utf-8') as f:
        config = json.load(f)
    if not isinstance(config, dict):
        raise ValueError(f"Configuration in {filename} must be a JSON object")
    return config


def parameters_from_config(config: Dict[str, Any]) -> AdaptivityParameters:
    """
    Build parameters from the "adaptivity" section of a configuration.

    Missing keys keep their defaults; unknown keys raise ValueError.
    """
    section = config.get("adaptivity", {})
    known = {f.name for f in fields(AdaptivityParameters)}
    unknown = set(section) - known
    if unknown:
        raise ValueError(f"Unknown adaptivity parameters: {sorted(unknown)}")
    return AdaptivityParameters(**section)


def load_parameters(filename: Union[str, Path]) -> AdaptivityParameters:
    """Load parameters from a JSON configuration file."""
    return parameters_from_config(load_config(filename))


parameters = AdaptivityParameters()
