"""
Terrain Segment Analyzer

Breaks an activity into contiguous terrain segments keyed by grade bucket:
- Grades come from rolling windows sized by distance (GPS sampling is irregular)
- A new segment starts whenever the grade bucket changes
- Activity time is allocated to segments by effort (distance x grade
  multiplier), not by raw distance, so climbing time is not under-credited

Activities without enough elevation variation yield no analysis at all
rather than a degenerate all-flat result.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..config import DEFAULT_CONFIG, EngineConfig
from .grades import GradeBucket, TerrainType, classify_grade_bucket
from .preprocessing import moving_average
from .streams import StreamTriple

logger = logging.getLogger(__name__)


@dataclass
class GradeWindow:
    """A stretch of stream spanning roughly the target window distance"""

    start_idx: int
    end_idx: int
    start_distance_m: float
    end_distance_m: float
    elevation_change_m: float
    grade_percent: float
    grade_bucket: GradeBucket

    @property
    def distance_m(self) -> float:
        return self.end_distance_m - self.start_distance_m

    @property
    def effort(self) -> float:
        return (self.distance_m / 1000) * self.grade_bucket.effort_multiplier


@dataclass
class TerrainSegment:
    """A maximal run of windows sharing one grade bucket"""

    segment_index: int
    terrain_type: str  # uphill, downhill, flat
    grade_bucket: str  # gentle_uphill, flat, etc.
    start_distance_km: float
    end_distance_km: float
    distance_km: float
    average_grade_percent: float
    elevation_gain_m: float
    elevation_loss_m: float
    duration_min: float
    pace_min_km: float
    effort_multiplier: float
    average_heart_rate: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TerrainSegment":
        return cls(
            segment_index=int(data.get("segment_index", 0)),
            terrain_type=data["terrain_type"],
            grade_bucket=data["grade_bucket"],
            start_distance_km=float(data.get("start_distance_km", 0.0)),
            end_distance_km=float(data.get("end_distance_km", 0.0)),
            distance_km=float(data["distance_km"]),
            average_grade_percent=float(data.get("average_grade_percent", 0.0)),
            elevation_gain_m=float(data.get("elevation_gain_m", 0.0)),
            elevation_loss_m=float(data.get("elevation_loss_m", 0.0)),
            duration_min=float(data["duration_min"]),
            pace_min_km=float(data["pace_min_km"]),
            effort_multiplier=float(data.get("effort_multiplier", 1.0)),
            average_heart_rate=data.get("average_heart_rate"),
        )


@dataclass
class TerrainSegmentAnalysisResult:
    """Terrain analysis record for one activity"""

    activity_id: str
    activity_date: Optional[str]
    total_distance_km: float
    total_duration_min: float
    total_elevation_gain_m: float
    total_elevation_loss_m: float
    average_grade_percent: float
    uphill_distance_km: float
    downhill_distance_km: float
    flat_distance_km: float
    uphill_pace_min_km: Optional[float]
    downhill_pace_min_km: Optional[float]
    flat_pace_min_km: Optional[float]
    segments: List[TerrainSegment]
    summary: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["segments"] = [s.to_dict() for s in self.segments]
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TerrainSegmentAnalysisResult":
        return cls(
            activity_id=data.get("activity_id", "unknown"),
            activity_date=data.get("activity_date"),
            total_distance_km=data.get("total_distance_km", 0.0),
            total_duration_min=data.get("total_duration_min", 0.0),
            total_elevation_gain_m=data.get("total_elevation_gain_m", 0.0),
            total_elevation_loss_m=data.get("total_elevation_loss_m", 0.0),
            average_grade_percent=data.get("average_grade_percent", 0.0),
            uphill_distance_km=data.get("uphill_distance_km", 0.0),
            downhill_distance_km=data.get("downhill_distance_km", 0.0),
            flat_distance_km=data.get("flat_distance_km", 0.0),
            uphill_pace_min_km=data.get("uphill_pace_min_km"),
            downhill_pace_min_km=data.get("downhill_pace_min_km"),
            flat_pace_min_km=data.get("flat_pace_min_km"),
            segments=[TerrainSegment.from_dict(s) for s in data.get("segments", [])],
            summary=data.get("summary", {}),
        )


def build_grade_windows(
    distance_m: Sequence[float],
    elevation_m: Sequence[float],
    target_window_m: float = 150.0,
    min_window_m: float = 10.0,
) -> List[GradeWindow]:
    """
    Walk the stream with windows grown until they span the target distance.

    Windows are contiguous: each starts where the previous one ended. Only
    the trailing window can fall short of the target; it is dropped when
    shorter than ``min_window_m``.

    Args:
        distance_m: Cumulative distance samples (non-decreasing)
        elevation_m: Elevation samples (already smoothed)
        target_window_m: Distance each window should reach
        min_window_m: Windows shorter than this carry too little signal

    Returns:
        Ordered list of GradeWindow
    """
    windows: List[GradeWindow] = []
    n = len(distance_m)
    start = 0

    while start < n - 1:
        end = start + 1
        while end < n - 1 and distance_m[end] - distance_m[start] < target_window_m:
            end += 1

        span = distance_m[end] - distance_m[start]
        if span > 0 and span >= min_window_m:
            elevation_change = elevation_m[end] - elevation_m[start]
            grade = elevation_change / span * 100
            windows.append(
                GradeWindow(
                    start_idx=start,
                    end_idx=end,
                    start_distance_m=distance_m[start],
                    end_distance_m=distance_m[end],
                    elevation_change_m=elevation_change,
                    grade_percent=grade,
                    grade_bucket=classify_grade_bucket(grade),
                )
            )

        start = end

    return windows


def elevation_gain_loss(
    elevation_m: Sequence[float], start_idx: int, end_idx: int
) -> "tuple[float, float]":
    """Sum positive and negative sample-to-sample changes in [start, end]"""
    gain = 0.0
    loss = 0.0
    for i in range(start_idx + 1, end_idx + 1):
        diff = elevation_m[i] - elevation_m[i - 1]
        if diff > 0:
            gain += diff
        else:
            loss -= diff
    return gain, loss


def prepare_grade_windows(
    streams: StreamTriple, config: EngineConfig = DEFAULT_CONFIG
) -> "tuple[List[float], List[GradeWindow]]":
    """Smooth elevation and build grade windows for a validated stream"""
    smoothed = moving_average(streams.elevation_m, config.smoothing_half_width)
    windows = build_grade_windows(
        streams.distance_m,
        smoothed,
        target_window_m=config.terrain_window_m,
        min_window_m=config.min_window_m,
    )
    return smoothed, windows


class TerrainSegmentAnalyzer:
    """
    Analyzes activity streams and breaks them into grade-bucket segments.

    Returns None from analyze() when the activity has no usable terrain
    signal: missing or mismatched streams, or an elevation range below
    max(10m, 10m per km).
    """

    def __init__(self, streams: StreamTriple, config: EngineConfig = DEFAULT_CONFIG):
        """
        Initialize analyzer with activity streams.

        Args:
            streams: Distance/elevation/heart-rate streams with activity scalars
            config: Window sizing and smoothing configuration
        """
        self.streams = streams
        self.config = config
        self.activity_id = streams.activity_id
        self._smoothed: List[float] = []
        self._windows: List[GradeWindow] = []

    def _group_windows(self) -> List[List[GradeWindow]]:
        """Merge consecutive windows sharing a grade bucket"""
        groups: List[List[GradeWindow]] = []
        for window in self._windows:
            if groups and groups[-1][-1].grade_bucket is window.grade_bucket:
                groups[-1].append(window)
            else:
                groups.append([window])
        return groups

    def _average_heart_rate(self, start_idx: int, end_idx: int) -> Optional[float]:
        if self.streams.heart_rate is None:
            return None
        samples = [
            hr for hr in self.streams.heart_rate[start_idx:end_idx + 1] if hr > 0
        ]
        if not samples:
            return None
        return round(sum(samples) / len(samples), 1)

    def analyze(self) -> Optional[TerrainSegmentAnalysisResult]:
        """
        Perform terrain segment analysis.

        Returns:
            TerrainSegmentAnalysisResult, or None when there is no terrain signal

        Raises:
            ValueError: if the streams contain non-finite values or the
                distance stream decreases
        """
        reason = self.streams.insufficiency_reason()
        if reason is not None:
            logger.info(f"Skipping terrain analysis for {self.activity_id}: {reason}")
            return None

        self.streams.validate_numbers()

        if not self.streams.has_elevation_signal():
            logger.info(
                f"Skipping terrain analysis for {self.activity_id}: elevation range "
                f"{self.streams.elevation_range_m():.1f}m below "
                f"{self.streams.minimum_elevation_range_m():.1f}m (flat or bad data)"
            )
            return None

        self._smoothed, self._windows = prepare_grade_windows(self.streams, self.config)
        groups = self._group_windows()

        total_effort = sum(w.effort for w in self._windows)
        if total_effort <= 0:
            logger.info(f"Skipping terrain analysis for {self.activity_id}: no usable windows")
            return None

        total_duration = self.streams.total_duration_min
        segments: List[TerrainSegment] = []

        stats = {
            terrain: {"distance_km": 0.0, "duration_min": 0.0, "segment_count": 0}
            for terrain in TerrainType
        }

        for idx, group in enumerate(groups):
            bucket = group[0].grade_bucket
            start_idx = group[0].start_idx
            end_idx = group[-1].end_idx
            distance_m = sum(w.distance_m for w in group)
            distance_km = distance_m / 1000
            elevation_change = self._smoothed[end_idx] - self._smoothed[start_idx]
            gain, loss = elevation_gain_loss(self._smoothed, start_idx, end_idx)

            effort = sum(w.effort for w in group)
            duration_min = total_duration * (effort / total_effort)
            terrain_type = bucket.terrain_type

            segments.append(
                TerrainSegment(
                    segment_index=idx,
                    terrain_type=terrain_type.value,
                    grade_bucket=bucket.value,
                    start_distance_km=group[0].start_distance_m / 1000,
                    end_distance_km=group[-1].end_distance_m / 1000,
                    distance_km=distance_km,
                    average_grade_percent=round(elevation_change / distance_m * 100, 2),
                    elevation_gain_m=round(gain, 1),
                    elevation_loss_m=round(loss, 1),
                    duration_min=duration_min,
                    pace_min_km=duration_min / distance_km,
                    effort_multiplier=bucket.effort_multiplier,
                    average_heart_rate=self._average_heart_rate(start_idx, end_idx),
                )
            )

            stats[terrain_type]["distance_km"] += distance_km
            stats[terrain_type]["duration_min"] += duration_min
            stats[terrain_type]["segment_count"] += 1

        def pace(terrain: TerrainType) -> Optional[float]:
            distance = stats[terrain]["distance_km"]
            if distance <= 0:
                return None
            return stats[terrain]["duration_min"] / distance

        summary: Dict[str, Any] = {
            terrain.value: {
                "total_distance_km": round(stats[terrain]["distance_km"], 3),
                "total_duration_min": round(stats[terrain]["duration_min"], 2),
                "average_pace_min_km": (
                    round(pace(terrain), 2) if pace(terrain) is not None else None
                ),
                "segment_count": stats[terrain]["segment_count"],
            }
            for terrain in TerrainType
        }
        summary["total_segments"] = len(segments)

        total_distance_km = self.streams.total_distance_km
        total_gain, total_loss = elevation_gain_loss(
            self._smoothed, 0, len(self._smoothed) - 1
        )
        net_change = self.streams.elevation_m[-1] - self.streams.elevation_m[0]
        average_grade = net_change / (total_distance_km * 1000) * 100

        activity_date = self.streams.activity_date
        logger.debug(
            f"Terrain analysis for {self.activity_id}: {len(segments)} segments "
            f"from {len(self._windows)} windows"
        )

        return TerrainSegmentAnalysisResult(
            activity_id=self.activity_id,
            activity_date=activity_date.isoformat() if activity_date else None,
            total_distance_km=round(total_distance_km, 3),
            total_duration_min=total_duration,
            total_elevation_gain_m=round(total_gain, 1),
            total_elevation_loss_m=round(total_loss, 1),
            average_grade_percent=round(average_grade, 2),
            uphill_distance_km=round(stats[TerrainType.UPHILL]["distance_km"], 3),
            downhill_distance_km=round(stats[TerrainType.DOWNHILL]["distance_km"], 3),
            flat_distance_km=round(stats[TerrainType.FLAT]["distance_km"], 3),
            uphill_pace_min_km=pace(TerrainType.UPHILL),
            downhill_pace_min_km=pace(TerrainType.DOWNHILL),
            flat_pace_min_km=pace(TerrainType.FLAT),
            segments=segments,
            summary=summary,
        )


def analyze_activity_terrain(
    streams: StreamTriple, config: EngineConfig = DEFAULT_CONFIG
) -> Optional[Dict[str, Any]]:
    """
    Convenience function to analyze terrain segments from activity streams.

    Args:
        streams: Activity streams
        config: Analysis configuration

    Returns:
        Dictionary with terrain segment analysis results, or None when the
        activity has no terrain signal
    """
    result = TerrainSegmentAnalyzer(streams, config).analyze()
    return result.to_dict() if result is not None else None
