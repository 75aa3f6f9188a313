"""
Activity Analysis Tasks

Celery tasks for smoothing elevation, segmenting terrain, finding climbs and
building pace profiles from activity streams and GPX/FIT uploads.
"""

import base64
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..analysis import (
    ClimbAnalyzer,
    parse_fit_to_streams,
    StreamTriple,
    TerrainSegmentAnalyzer,
)
from ..analysis import preprocessing
from ..config import EngineConfig
from ..profiles import pace_profile
from . import app

logger = logging.getLogger(__name__)

config = EngineConfig.from_env()


@app.task(name="smooth_elevation")
def smooth_elevation(
    elevations: List[float], half_width: int = 2, method: str = "moving_average"
) -> Dict[str, Any]:
    """
    Smooth an elevation stream.

    Args:
        elevations: Raw elevation samples in meters
        half_width: Samples on each side of the center point
        method: "moving_average" or "savgol"

    Returns:
        Dict with the smoothed samples, same length as the input
    """
    try:
        smoothed = preprocessing.smooth_elevation(elevations, half_width, method)
        return {"success": True, "smoothed": smoothed}

    except Exception as e:
        return {"success": False, "error": str(e)}


@app.task(name="analyze_activity_terrain", bind=True)
def analyze_activity_terrain(self, streams: Dict[str, Any]) -> Dict[str, Any]:
    """
    Break an activity into grade-bucket terrain segments.

    Args:
        streams: Activity-record payload with distance_m, elevation_m,
            optional heart_rate, total_duration_min, total_distance_km,
            activity_id and activity_date

    Returns:
        Dict with "analysis" (None when the activity has no terrain signal)
    """
    activity_id = streams.get("activity_id", "unknown")
    logger.info(f"[Task {self.request.id}] Starting terrain analysis for activity_id={activity_id}")

    try:
        result = TerrainSegmentAnalyzer(StreamTriple.from_dict(streams), config).analyze()

        if result is None:
            logger.info(f"[Task {self.request.id}] No terrain signal for {activity_id}")
            return {"success": True, "has_terrain_signal": False, "analysis": None}

        logger.info(
            f"[Task {self.request.id}] Terrain analysis complete: "
            f"{len(result.segments)} segments, {result.total_distance_km:.2f}km"
        )
        return {"success": True, "has_terrain_signal": True, "analysis": result.to_dict()}

    except Exception as e:
        logger.error(
            f"[Task {self.request.id}] Error analyzing terrain for {activity_id}: {e}",
            exc_info=True,
        )
        return {"success": False, "error": str(e)}


@app.task(name="analyze_activity_climbs", bind=True)
def analyze_activity_climbs(self, streams: Dict[str, Any]) -> Dict[str, Any]:
    """
    Find significant climbs and their VAM.

    Args:
        streams: Activity-record payload (see analyze_activity_terrain)

    Returns:
        Dict with "climbs" (None when the streams are unusable)
    """
    activity_id = streams.get("activity_id", "unknown")
    logger.info(f"[Task {self.request.id}] Starting climb analysis for activity_id={activity_id}")

    try:
        result = ClimbAnalyzer(StreamTriple.from_dict(streams), config).analyze()
        return {
            "success": True,
            "climbs": result.to_dict() if result is not None else None,
        }

    except Exception as e:
        logger.error(
            f"[Task {self.request.id}] Error analyzing climbs for {activity_id}: {e}",
            exc_info=True,
        )
        return {"success": False, "error": str(e)}


@app.task(name="analyze_activity_file", bind=True)
def analyze_activity_file(
    self,
    activity_id: str,
    file_content: str,
    file_type: str = "gpx",
    activity_date: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Run terrain and climb analysis on an uploaded activity file.

    Args:
        activity_id: Unique ID for the activity
        file_content: Raw file content (GPX as string, FIT as base64-encoded string)
        file_type: "gpx" or "fit"
        activity_date: ISO date overriding the file's start time

    Returns:
        Dict with "terrain" and "climbs" (either may be None)
    """
    logger.info(
        f"[Task {self.request.id}] Starting analyze_activity_file for activity_id={activity_id}, "
        f"type: {file_type}, {len(file_content)} chars"
    )

    try:
        if file_type.lower() == "fit":
            streams = parse_fit_to_streams(base64.b64decode(file_content), activity_id)
        elif file_type.lower() == "gpx":
            streams = StreamTriple.from_gpx(file_content, activity_id)
        else:
            raise ValueError(f"Unsupported file type {file_type!r}, expected 'gpx' or 'fit'")

        if activity_date:
            streams.activity_date = datetime.fromisoformat(activity_date.replace("Z", "+00:00"))

        logger.info(
            f"[Task {self.request.id}] Parsed {len(streams.distance_m)} samples, "
            f"{streams.total_distance_km or 0:.2f}km"
        )

        terrain = TerrainSegmentAnalyzer(streams, config).analyze()
        climbs = ClimbAnalyzer(streams, config).analyze()

        return {
            "success": True,
            "has_terrain_signal": terrain is not None,
            "terrain": terrain.to_dict() if terrain is not None else None,
            "climbs": climbs.to_dict() if climbs is not None else None,
        }

    except Exception as e:
        logger.error(
            f"[Task {self.request.id}] Error analyzing activity {activity_id}: {e}",
            exc_info=True,
        )
        return {"success": False, "error": str(e)}


@app.task(name="calculate_pace_profile", bind=True)
def calculate_pace_profile(
    self,
    athlete_id: str,
    analyses: List[Dict[str, Any]],
    flat_pace_mode: Optional[str] = None,
    flat_percentile: Optional[float] = None,
    now_iso: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build a pace profile from stored terrain analyses.

    Args:
        athlete_id: Athlete the profile belongs to
        analyses: Terrain analysis records as returned by analyze_activity_terrain
        flat_pace_mode: accurate / conservative / fast (defaults from config)
        flat_percentile: Explicit flat percentile overriding the mode
        now_iso: Reference time for recency weighting (defaults to now)

    Returns:
        Dict with "profile" (None when history is insufficient)
    """
    logger.info(
        f"[Task {self.request.id}] Calculating pace profile for {athlete_id} "
        f"from {len(analyses)} analyses"
    )

    try:
        now = datetime.fromisoformat(now_iso.replace("Z", "+00:00")) if now_iso else None
        profile = pace_profile.calculate_pace_profile(
            athlete_id,
            analyses,
            now=now,
            flat_pace_mode=flat_pace_mode or config.flat_pace_mode,
            flat_percentile=(
                flat_percentile if flat_percentile is not None else config.flat_percentile
            ),
        )

        if profile is None:
            return {
                "success": True,
                "profile": None,
                "data_quality": "insufficient",
                "message": "Insufficient history for a pace profile",
            }

        return {
            "success": True,
            "profile": profile.to_dict(),
            "data_quality": profile.data_quality,
        }

    except Exception as e:
        logger.error(
            f"[Task {self.request.id}] Error calculating pace profile for {athlete_id}: {e}",
            exc_info=True,
        )
        return {"success": False, "error": str(e)}
