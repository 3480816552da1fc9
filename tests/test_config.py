"""
Tests for configuration module.
"""

import pytest
from facet_oracle import config
from facet_oracle.config import OracleConfig


class TestConstants:
    """Numerical constants."""

    def test_tolerance(self):
        assert config.POLYTOPE_EPS == 1e-9

    def test_lambda_boundary_factor(self):
        """Lambda below 10 * tolerance means the interior point is on the boundary."""
        assert config.LAMBDA_BOUNDARY_FACTOR == 10.0

    def test_limits(self):
        """Defaults are above the honored minimums."""
        assert config.DEFAULT_ITERATION_LIMIT >= config.MIN_ITERATION_LIMIT
        assert config.DEFAULT_TIME_LIMIT >= config.MIN_TIME_LIMIT


class TestOracleConfig:
    """Validation of the oracle configuration."""

    def test_defaults(self):
        cfg = OracleConfig()
        assert cfg.validate() is cfg
        assert cfg.method == "primal"
        assert cfg.pricing == "steepest"
        assert cfg.scale and not cfg.shuffle and not cfg.round_facets

    @pytest.mark.parametrize("kwargs", [
        {"tolerance": 0.0},
        {"tolerance": -1e-9},
        {"message_level": 4},
        {"method": "barrier"},
        {"pricing": "devex"},
        {"ratio_test": "textbook"},
        {"iteration_limit": -1},
        {"time_limit": -5},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            OracleConfig(**kwargs).validate()

    def test_zero_limits_allowed(self):
        OracleConfig(iteration_limit=0, time_limit=0).validate()
