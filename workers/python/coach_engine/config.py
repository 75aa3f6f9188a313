"""
Engine Configuration

Tunable constants for terrain analysis and pace profiling. Defaults match the
values the analyzers were calibrated with; deployments may override them
through COACH_ENGINE_* environment variables.
"""

import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


@dataclass(frozen=True)
class EngineConfig:
    """Configuration shared by the analyzers and the profile cache"""

    # Rolling window sizing for grade calculation (meters)
    terrain_window_m: float = 150.0
    min_window_m: float = 10.0

    # Moving average half-width (2 = 5-point window)
    smoothing_half_width: int = 2

    # Pace profile cache staleness window
    profile_ttl_days: int = 7

    # Flat pace percentile policy: accurate / conservative / fast
    flat_pace_mode: str = "accurate"
    # Explicit percentile (0-1) overriding flat_pace_mode when set
    flat_percentile: Optional[float] = None

    @property
    def profile_ttl(self) -> timedelta:
        return timedelta(days=self.profile_ttl_days)

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build configuration from COACH_ENGINE_* environment variables"""
        flat_percentile = os.getenv("COACH_ENGINE_FLAT_PERCENTILE")

        config = cls(
            terrain_window_m=_env_float("COACH_ENGINE_TERRAIN_WINDOW_M", 150.0),
            min_window_m=_env_float("COACH_ENGINE_MIN_WINDOW_M", 10.0),
            smoothing_half_width=_env_int("COACH_ENGINE_SMOOTHING_HALF_WIDTH", 2),
            profile_ttl_days=_env_int("COACH_ENGINE_PROFILE_TTL_DAYS", 7),
            flat_pace_mode=os.getenv("COACH_ENGINE_FLAT_PACE_MODE", "accurate"),
            flat_percentile=(
                _env_float("COACH_ENGINE_FLAT_PERCENTILE", 0.3)
                if flat_percentile
                else None
            ),
        )
        config.validate()
        return config

    def validate(self) -> None:
        if self.terrain_window_m <= 0:
            raise ValueError("terrain_window_m must be positive")
        if self.min_window_m < 0 or self.min_window_m > self.terrain_window_m:
            raise ValueError("min_window_m must be between 0 and terrain_window_m")
        if self.smoothing_half_width < 0:
            raise ValueError("smoothing_half_width must not be negative")
        if self.profile_ttl_days < 0:
            raise ValueError("profile_ttl_days must not be negative")
        if self.flat_percentile is not None and not 0 <= self.flat_percentile <= 1:
            raise ValueError("flat_percentile must be between 0 and 1")


DEFAULT_CONFIG = EngineConfig()
