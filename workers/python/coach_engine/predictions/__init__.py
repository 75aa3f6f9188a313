"""
Predictions Module

Ultra-distance fatigue modeling and finish time adjustment.
"""

from .ultra_fatigue import (
    calculate_confidence_score,
    calculate_experience_discount,
    calculate_segment_fatigue_progression,
    calculate_ultra_fatigue,
    estimate_ultra_finish_time,
    FinishTimeEstimate,
    get_ultra_distance_category,
    SegmentFatigueAdjustment,
    UltraFatigueParams,
    UltraFatigueResult,
)

__all__ = [
    "calculate_ultra_fatigue",
    "calculate_experience_discount",
    "calculate_confidence_score",
    "estimate_ultra_finish_time",
    "calculate_segment_fatigue_progression",
    "get_ultra_distance_category",
    "UltraFatigueParams",
    "UltraFatigueResult",
    "SegmentFatigueAdjustment",
    "FinishTimeEstimate",
]
