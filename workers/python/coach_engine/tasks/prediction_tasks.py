"""
Ultra Fatigue Prediction Tasks

Fatigue factor, finish time and per-segment fatigue progression for
ultra-distance races.
"""

import logging
from typing import Any, Dict, List, Optional

from ..predictions import ultra_fatigue
from ..predictions.ultra_fatigue import UltraFatigueParams
from . import app

logger = logging.getLogger(__name__)


@app.task(name='predict_ultra_fatigue')
def predict_ultra_fatigue(params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Predict the pace-decay factor for a race scenario.

    Args:
        params: Dict with distance_km, elapsed_time_hours, elevation_gain_m,
            temperature_c, humidity, readiness_score and optionally
            athlete_longest_ultra_km, athlete_ultra_count, is_night_section

    Returns:
        Dict with the fatigue result and the race distance category
    """
    try:
        fatigue_params = UltraFatigueParams.from_dict(params)
        result = ultra_fatigue.calculate_ultra_fatigue(fatigue_params)

        return {
            'success': True,
            'fatigue': result.to_dict(),
            'category': ultra_fatigue.get_ultra_distance_category(fatigue_params.distance_km),
        }

    except Exception as e:
        logger.error(f"Error predicting ultra fatigue: {e}", exc_info=True)
        return {'success': False, 'error': str(e)}


@app.task(name='estimate_ultra_finish_time')
def estimate_ultra_finish_time(
    base_time_minutes: float,
    distance_km: float,
    elevation_gain_m: float,
    temperature_c: float,
    humidity: float,
    readiness_score: float,
    has_night_section: bool = False,
    aid_station_count: int = 0,
    aid_station_avg_minutes: Optional[float] = None,
    athlete_longest_ultra_km: Optional[float] = None,
    athlete_ultra_count: int = 0,
) -> Dict[str, Any]:
    """
    Adjust a baseline finish time for fatigue, aid stations and conditions.

    Returns:
        Dict with the estimate, its breakdown and formatted times
    """
    try:
        estimate = ultra_fatigue.estimate_ultra_finish_time(
            base_time_minutes,
            distance_km,
            elevation_gain_m,
            temperature_c,
            humidity,
            readiness_score,
            has_night_section=has_night_section,
            aid_station_count=aid_station_count,
            aid_station_avg_minutes=aid_station_avg_minutes,
            athlete_longest_ultra_km=(
                athlete_longest_ultra_km
                if athlete_longest_ultra_km is not None
                else ultra_fatigue.MARATHON_KM
            ),
            athlete_ultra_count=athlete_ultra_count,
        )

        result = estimate.to_dict()
        result['success'] = True
        result['adjusted_time_formatted'] = format_time(estimate.adjusted_time_minutes)
        result['adjusted_pace_formatted'] = format_pace(
            estimate.adjusted_time_minutes / distance_km
        )
        return result

    except Exception as e:
        logger.error(f"Error estimating ultra finish time: {e}", exc_info=True)
        return {'success': False, 'error': str(e)}


@app.task(name='calculate_segment_fatigue_progression')
def calculate_segment_fatigue_progression(
    total_distance_km: float,
    total_elevation_gain_m: float,
    segment_distances_km: List[float],
    temperature_c: float,
    humidity: float,
    readiness_score: float,
    athlete_longest_ultra_km: Optional[float] = None,
    athlete_ultra_count: int = 0,
    is_night_section: bool = False,
) -> Dict[str, Any]:
    """
    Fatigue state and warning level at the end of each course segment.

    Returns:
        Dict with one entry per segment
    """
    try:
        progression = ultra_fatigue.calculate_segment_fatigue_progression(
            total_distance_km,
            total_elevation_gain_m,
            segment_distances_km,
            temperature_c,
            humidity,
            readiness_score,
            athlete_longest_ultra_km=(
                athlete_longest_ultra_km
                if athlete_longest_ultra_km is not None
                else ultra_fatigue.MARATHON_KM
            ),
            athlete_ultra_count=athlete_ultra_count,
            is_night_section=is_night_section,
        )

        return {
            'success': True,
            'segments': [s.to_dict() for s in progression],
        }

    except Exception as e:
        logger.error(f"Error calculating segment fatigue progression: {e}", exc_info=True)
        return {'success': False, 'error': str(e)}


def format_time(minutes: float) -> str:
    """Format minutes as HH:MM:SS"""
    hours = int(minutes // 60)
    mins = int(minutes % 60)
    secs = int((minutes * 60) % 60)
    return f"{hours:02d}:{mins:02d}:{secs:02d}"


def format_pace(pace_min_km: float) -> str:
    """Format pace as M:SS /km"""
    mins = int(pace_min_km)
    secs = int((pace_min_km - mins) * 60)
    return f"{mins}:{secs:02d} /km"
