"""
auditsampler configuration management.

Supports loading from YAML files, environment variables, and keyword overrides.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator


class BenfordConfig(BaseModel):
    """Benford's Law test settings."""

    significance_level: float = Field(default=0.05, gt=0.0, lt=1.0, description="Chi-square test alpha")
    suspicious_threshold_pct: float = Field(
        default=30.0,
        gt=0.0,
        description="Relative deviation (%) above which a digit is flagged",
    )


class SamplingConfig(BaseModel):
    """Sample selection and sizing defaults."""

    default_confidence_level: int = Field(default=95, description="Confidence level: 90, 95 or 99")
    default_seed: int | None = Field(default=None, description="Seed recorded for reproducible selections")
    expected_error_rate: float = Field(default=1.0, ge=0.0, le=100.0)
    tolerable_error_rate: float = Field(default=5.0, ge=0.0, le=100.0)
    fpc_population_limit: int = Field(default=100_000, ge=1)

    @field_validator("default_confidence_level")
    @classmethod
    def _supported_confidence(cls, value: int) -> int:
        if value not in (90, 95, 99):
            raise ValueError("confidence level must be 90, 95 or 99")
        return value


class AuditSamplerConfig(BaseModel):
    """Root configuration for auditsampler."""

    benford: BenfordConfig = Field(default_factory=BenfordConfig)
    sampling: SamplingConfig = Field(default_factory=SamplingConfig)

    value_column: str | None = Field(default=None, description="CSV column holding amounts (auto-detect if unset)")
    id_column: str | None = Field(default=None, description="CSV column holding item identifiers")
    currency: str = Field(default="USD")

    @classmethod
    def load(cls, config_path: str | None = None, **overrides: Any) -> AuditSamplerConfig:
        """Load configuration from file, env vars, and overrides.

        Priority: overrides > env vars > config file > defaults.
        """
        data: dict[str, Any] = {}

        # 1. Load from YAML file if provided
        if config_path:
            path = Path(config_path)
            if path.exists():
                with open(path) as f:
                    data = yaml.safe_load(f) or {}

        # 2. Override from environment variables
        env_significance = os.environ.get("AUDITSAMPLER_SIGNIFICANCE")
        env_confidence = os.environ.get("AUDITSAMPLER_CONFIDENCE")
        env_seed = os.environ.get("AUDITSAMPLER_SEED")

        if env_significance:
            benford = data.get("benford", {})
            benford["significance_level"] = float(env_significance)
            data["benford"] = benford

        if env_confidence or env_seed:
            sampling = data.get("sampling", {})
            if env_confidence:
                sampling["default_confidence_level"] = int(env_confidence)
            if env_seed:
                sampling["default_seed"] = int(env_seed)
            data["sampling"] = sampling

        # 3. Apply keyword overrides
        data.update(overrides)

        return cls.model_validate(data)
