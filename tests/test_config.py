"""
Tests for adaptivity parameters and JSON configuration.
"""

import json

import pytest

from watfAdapt.adaptivity import adapt_mesh
from watfAdapt.geometry.primitives import make_unit_square_mesh
from watfAdapt.io import config
from watfAdapt.io.config import (
    AdaptivityParameters, load_config, load_parameters, parameters_from_config,
)


def write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestAdaptivityParameters:

    def test_defaults(self):
        params = AdaptivityParameters()
        assert params.local_refinement_algorithm == "red_green"
        assert params.point_tolerance == 1e-10
        assert params.to_dict()["log_level"] == "WARNING"

    def test_invalid_algorithm(self):
        with pytest.raises(ValueError):
            AdaptivityParameters(local_refinement_algorithm="longest_edge")

    def test_invalid_tolerance(self):
        with pytest.raises(ValueError):
            AdaptivityParameters(point_tolerance=-1.0)

    def test_invalid_log_level(self):
        with pytest.raises(ValueError):
            AdaptivityParameters(log_level="LOUD")

    def test_module_parameters_used(self, monkeypatch):
        """Refiners fall back to the module-level parameters."""
        monkeypatch.setattr(config, "parameters", AdaptivityParameters(local_refinement_algorithm="red"))
        fine = adapt_mesh(make_unit_square_mesh(1, 1), [True, False])
        assert fine.num_cells == 8


class TestLoadConfig:

    def test_load_parameters(self, tmp_path):
        path = write_json(tmp_path / "config.json", {
            "adaptivity": {"local_refinement_algorithm": "red", "log_level": "DEBUG"}
        })
        params = load_parameters(path)
        assert params.local_refinement_algorithm == "red"
        assert params.log_level == "DEBUG"
        assert params.point_tolerance == 1e-10

    def test_missing_section(self, tmp_path):
        path = write_json(tmp_path / "config.json", {"output": {"directory": "results"}})
        assert load_parameters(path) == AdaptivityParameters()

    def test_unknown_key(self):
        with pytest.raises(ValueError):
            parameters_from_config({"adaptivity": {"max_levels": 3}})

    def test_not_an_object(self, tmp_path):
        path = write_json(tmp_path / "config.json", [1, 2, 3])
        with pytest.raises(ValueError):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.json")
