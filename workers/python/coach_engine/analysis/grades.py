"""
Grade Buckets

Fixed partition of percent-grade space used by terrain segmentation and pace
profiling. Every finite grade maps to exactly one bucket; boundary values are
assigned to the steeper bucket (2.0% is gentle uphill, -2.0% gentle downhill).
"""

import math
from enum import Enum
from typing import Dict


class TerrainType(Enum):
    """Coarse terrain types"""

    UPHILL = "uphill"
    DOWNHILL = "downhill"
    FLAT = "flat"


class GradeBucket(Enum):
    """Grade buckets, values are the persisted keys"""

    CLIMBING = "climbing"  # >= 20%
    EXTREME_UPHILL = "extreme_uphill"  # 15-20%
    VERY_STEEP_UPHILL = "very_steep_uphill"  # 12-15%
    STEEP_UPHILL = "steep_uphill"  # 10-12%
    HARD_UPHILL = "hard_uphill"  # 8-10%
    MODERATE_UPHILL = "moderate_uphill"  # 6-8%
    EASY_UPHILL = "easy_uphill"  # 4-6%
    GENTLE_UPHILL = "gentle_uphill"  # 2-4%
    FLAT = "flat"  # -2% to 2%
    GENTLE_DOWNHILL = "gentle_downhill"  # -2 to -4%
    EASY_DOWNHILL = "easy_downhill"  # -4 to -6%
    MODERATE_DOWNHILL = "moderate_downhill"  # -6 to -8%
    HARD_DOWNHILL = "hard_downhill"  # -8 to -10%
    STEEP_DOWNHILL = "steep_downhill"  # -10 to -12%
    VERY_STEEP_DOWNHILL = "very_steep_downhill"  # -12 to -15%
    EXTREME_DOWNHILL = "extreme_downhill"  # -15 to -20%
    TECHNICAL_DESCENT = "technical_descent"  # <= -20%

    @property
    def label(self) -> str:
        return GRADE_BUCKET_LABELS[self]

    @property
    def terrain_type(self) -> TerrainType:
        if self is GradeBucket.FLAT:
            return TerrainType.FLAT
        if self.value.endswith("uphill") or self is GradeBucket.CLIMBING:
            return TerrainType.UPHILL
        return TerrainType.DOWNHILL

    @property
    def effort_multiplier(self) -> float:
        return EFFORT_MULTIPLIERS[self]


GRADE_BUCKET_LABELS: Dict[GradeBucket, str] = {
    GradeBucket.CLIMBING: "Climbing (20%+)",
    GradeBucket.EXTREME_UPHILL: "Extreme Uphill (15-20%)",
    GradeBucket.VERY_STEEP_UPHILL: "Very Steep Uphill (12-15%)",
    GradeBucket.STEEP_UPHILL: "Steep Uphill (10-12%)",
    GradeBucket.HARD_UPHILL: "Hard Uphill (8-10%)",
    GradeBucket.MODERATE_UPHILL: "Moderate Uphill (6-8%)",
    GradeBucket.EASY_UPHILL: "Easy Uphill (4-6%)",
    GradeBucket.GENTLE_UPHILL: "Gentle Uphill (2-4%)",
    GradeBucket.FLAT: "Flat (±2%)",
    GradeBucket.GENTLE_DOWNHILL: "Gentle Downhill (-2 to -4%)",
    GradeBucket.EASY_DOWNHILL: "Easy Downhill (-4 to -6%)",
    GradeBucket.MODERATE_DOWNHILL: "Moderate Downhill (-6 to -8%)",
    GradeBucket.HARD_DOWNHILL: "Hard Downhill (-8 to -10%)",
    GradeBucket.STEEP_DOWNHILL: "Steep Downhill (-10 to -12%)",
    GradeBucket.VERY_STEEP_DOWNHILL: "Very Steep Downhill (-12 to -15%)",
    GradeBucket.EXTREME_DOWNHILL: "Extreme Downhill (-15 to -20%)",
    GradeBucket.TECHNICAL_DESCENT: "Technical Descent (-20%+)",
}

# Pace cost relative to flat running, used to allocate activity time across
# segments. Empirically tuned values, keep in sync with stored analyses.
# Steep descents cost more than gentle ones: braking is not free speed.
EFFORT_MULTIPLIERS: Dict[GradeBucket, float] = {
    GradeBucket.CLIMBING: 2.5,
    GradeBucket.EXTREME_UPHILL: 2.2,
    GradeBucket.VERY_STEEP_UPHILL: 1.9,
    GradeBucket.STEEP_UPHILL: 1.7,
    GradeBucket.HARD_UPHILL: 1.5,
    GradeBucket.MODERATE_UPHILL: 1.3,
    GradeBucket.EASY_UPHILL: 1.15,
    GradeBucket.GENTLE_UPHILL: 1.05,
    GradeBucket.FLAT: 1.0,
    GradeBucket.GENTLE_DOWNHILL: 0.92,
    GradeBucket.EASY_DOWNHILL: 0.88,
    GradeBucket.MODERATE_DOWNHILL: 0.9,
    GradeBucket.HARD_DOWNHILL: 0.95,
    GradeBucket.STEEP_DOWNHILL: 1.1,
    GradeBucket.VERY_STEEP_DOWNHILL: 1.2,
    GradeBucket.EXTREME_DOWNHILL: 1.3,
    GradeBucket.TECHNICAL_DESCENT: 1.3,
}

# Coarse terrain thresholds (percent grade)
UPHILL_THRESHOLD = 2.0
DOWNHILL_THRESHOLD = -2.0


def _require_finite_grade(grade_percent: float) -> None:
    if grade_percent is None or not math.isfinite(grade_percent):
        raise ValueError(f"Grade must be a finite number, got {grade_percent!r}")


def classify_grade_bucket(grade_percent: float) -> GradeBucket:
    """Classify a percent grade into its bucket"""
    _require_finite_grade(grade_percent)

    if grade_percent >= 20:
        return GradeBucket.CLIMBING
    if grade_percent <= -20:
        return GradeBucket.TECHNICAL_DESCENT

    if grade_percent >= 15:
        return GradeBucket.EXTREME_UPHILL
    if grade_percent >= 12:
        return GradeBucket.VERY_STEEP_UPHILL
    if grade_percent >= 10:
        return GradeBucket.STEEP_UPHILL
    if grade_percent >= 8:
        return GradeBucket.HARD_UPHILL
    if grade_percent >= 6:
        return GradeBucket.MODERATE_UPHILL
    if grade_percent >= 4:
        return GradeBucket.EASY_UPHILL
    if grade_percent >= 2:
        return GradeBucket.GENTLE_UPHILL

    if grade_percent <= -15:
        return GradeBucket.EXTREME_DOWNHILL
    if grade_percent <= -12:
        return GradeBucket.VERY_STEEP_DOWNHILL
    if grade_percent <= -10:
        return GradeBucket.STEEP_DOWNHILL
    if grade_percent <= -8:
        return GradeBucket.HARD_DOWNHILL
    if grade_percent <= -6:
        return GradeBucket.MODERATE_DOWNHILL
    if grade_percent <= -4:
        return GradeBucket.EASY_DOWNHILL
    if grade_percent <= -2:
        return GradeBucket.GENTLE_DOWNHILL

    return GradeBucket.FLAT


def classify_terrain_type(grade_percent: float) -> TerrainType:
    """Coarse 3-way classification: > 2% uphill, < -2% downhill, else flat"""
    _require_finite_grade(grade_percent)

    if grade_percent > UPHILL_THRESHOLD:
        return TerrainType.UPHILL
    if grade_percent < DOWNHILL_THRESHOLD:
        return TerrainType.DOWNHILL
    return TerrainType.FLAT


def effort_multiplier(grade_percent: float) -> float:
    """Effort multiplier for a percent grade"""
    return classify_grade_bucket(grade_percent).effort_multiplier
