"""Run settings for RFM segmentation."""

from __future__ import annotations

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field

from customer_rfm.foundation.rfm import DEFAULT_PERCENTILE

ENV_PREFIX = "RFM_"

_TRUE_VALUES = {"1", "true", "yes", "on"}


class RFMSettings(BaseModel):
    """Settings for one RFM segmentation run."""

    lookback_years: int = Field(
        default=2, ge=1, description="Trailing window of order history, in years"
    )
    percentile: float = Field(
        default=DEFAULT_PERCENTILE,
        ge=0.0,
        le=1.0,
        description="Population percentile used as the scoring cutoff (0.2 = 20th)",
    )
    parallel: bool = Field(
        default=True, description="Enable parallel aggregation for large populations"
    )
    parallel_threshold: int = Field(
        default=10_000_000,
        ge=1,
        description="Customer count at which aggregation switches to a process pool",
    )
    n_workers: Optional[int] = Field(
        default=None, ge=1, description="Worker processes (default: CPU count)"
    )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "RFMSettings":
        """Build settings from ``RFM_*`` environment variables.

        Unset variables keep their defaults. Values are validated by the
        model, so a malformed variable raises ``pydantic.ValidationError``.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        for name in cls.model_fields:
            raw = env.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is None or raw.strip() == "":
                continue
            if name == "parallel":
                values[name] = raw.strip().lower() in _TRUE_VALUES
            else:
                values[name] = raw.strip()
        return cls(**values)
