"""
Coach Engine Worker Tasks Package
"""

from ..celery_app import app

# Import all tasks to ensure they're registered with Celery
from .analysis_tasks import (
    analyze_activity_climbs,
    analyze_activity_file,
    analyze_activity_terrain,
    calculate_pace_profile,
    smooth_elevation,
)
from .prediction_tasks import (
    calculate_segment_fatigue_progression,
    estimate_ultra_finish_time,
    predict_ultra_fatigue,
)

__all__ = [
    "app",
    "analyze_activity_climbs",
    "analyze_activity_file",
    "analyze_activity_terrain",
    "calculate_pace_profile",
    "smooth_elevation",
    "calculate_segment_fatigue_progression",
    "estimate_ultra_finish_time",
    "predict_ultra_fatigue",
]
