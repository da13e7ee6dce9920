"""Tests for configuration management."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from auditsampler.config import AuditSamplerConfig


class TestConfig:
    def test_default_config(self) -> None:
        config = AuditSamplerConfig()
        assert config.benford.significance_level == 0.05
        assert config.benford.suspicious_threshold_pct == 30.0
        assert config.sampling.default_confidence_level == 95
        assert config.sampling.default_seed is None
        assert config.sampling.fpc_population_limit == 100_000

    def test_load_from_yaml(self, tmp_path: Path) -> None:
        yaml_content = {
            "benford": {"significance_level": 0.01},
            "sampling": {"default_confidence_level": 99, "default_seed": 20240131},
            "value_column": "balance",
        }
        config_file = tmp_path / "auditsampler.yaml"
        config_file.write_text(yaml.dump(yaml_content))

        config = AuditSamplerConfig.load(str(config_file))
        assert config.benford.significance_level == 0.01
        assert config.sampling.default_confidence_level == 99
        assert config.sampling.default_seed == 20240131
        assert config.value_column == "balance"

    def test_load_with_overrides(self) -> None:
        config = AuditSamplerConfig.load(
            None,
            sampling={"default_seed": 7},
            currency="EUR",
        )
        assert config.sampling.default_seed == 7
        assert config.currency == "EUR"

    def test_env_var_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AUDITSAMPLER_SIGNIFICANCE", "0.10")
        monkeypatch.setenv("AUDITSAMPLER_CONFIDENCE", "90")
        monkeypatch.setenv("AUDITSAMPLER_SEED", "42")

        config = AuditSamplerConfig.load()
        assert config.benford.significance_level == 0.10
        assert config.sampling.default_confidence_level == 90
        assert config.sampling.default_seed == 42

    def test_env_beats_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_file = tmp_path / "auditsampler.yaml"
        config_file.write_text(yaml.dump({"sampling": {"default_seed": 1, "expected_error_rate": 2.0}}))
        monkeypatch.setenv("AUDITSAMPLER_SEED", "99")

        config = AuditSamplerConfig.load(str(config_file))
        assert config.sampling.default_seed == 99
        assert config.sampling.expected_error_rate == 2.0

    def test_invalid_confidence_rejected(self) -> None:
        with pytest.raises(ValidationError):
            AuditSamplerConfig.load(None, sampling={"default_confidence_level": 80})

    def test_missing_config_file(self) -> None:
        config = AuditSamplerConfig.load("/nonexistent/config.yaml")
        # Should use defaults without error
        assert config.benford.significance_level == 0.05
