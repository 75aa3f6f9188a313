"""
Activity Streams

The Stream Triple consumed by the terrain and climb analyzers: parallel
distance / elevation / heart-rate samples plus activity scalars. Streams
normally arrive from the activity-record store; GPX uploads can be converted
here with gpxpy.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Union

import gpxpy

ActivityDate = Union[date, datetime]

# Minimum elevation variation for terrain analysis: 10m, or 10m per km
MIN_ELEVATION_RANGE_M = 10.0
MIN_ELEVATION_RANGE_PER_KM = 10.0


def _check_finite_sequence(name: str, values: Sequence[float]) -> None:
    for i, value in enumerate(values):
        if value is None or not math.isfinite(value):
            raise ValueError(f"{name}[{i}] must be a finite number, got {value!r}")


def _check_finite_scalar(name: str, value: Optional[float]) -> None:
    if value is not None and not math.isfinite(value):
        raise ValueError(f"{name} must be a finite number, got {value!r}")


@dataclass
class StreamTriple:
    """Parallel activity streams with activity-level scalars"""

    distance_m: List[float]
    elevation_m: List[float]
    total_duration_min: float
    heart_rate: Optional[List[float]] = None
    total_distance_km: Optional[float] = None
    activity_id: str = "unknown"
    activity_date: Optional[ActivityDate] = None
    name: Optional[str] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.total_distance_km is None and self.distance_m:
            self.total_distance_km = self.distance_m[-1] / 1000

    def insufficiency_reason(self) -> Optional[str]:
        """
        Describe why the streams cannot support analysis.

        Returns None when the streams are usable. Insufficient data is a
        normal outcome, not an error.
        """
        if not self.distance_m or not self.elevation_m:
            return "missing distance or elevation stream"
        if len(self.distance_m) < 2 or len(self.elevation_m) < 2:
            return "fewer than 2 samples"
        if len(self.distance_m) != len(self.elevation_m):
            return (
                f"stream length mismatch (distance={len(self.distance_m)}, "
                f"elevation={len(self.elevation_m)})"
            )
        if self.heart_rate is not None and len(self.heart_rate) != len(self.distance_m):
            return (
                f"stream length mismatch (distance={len(self.distance_m)}, "
                f"heart_rate={len(self.heart_rate)})"
            )
        if not self.total_duration_min or self.total_duration_min <= 0:
            return "missing activity duration"
        if not self.total_distance_km or self.total_distance_km <= 0:
            return "missing activity distance"
        if self.distance_m[-1] - self.distance_m[0] <= 0:
            return "no distance covered"
        return None

    def validate_numbers(self) -> None:
        """
        Fail fast on malformed numeric input.

        Raises:
            ValueError: naming the field that is non-finite, or when the
                distance stream decreases
        """
        _check_finite_sequence("distance_m", self.distance_m)
        _check_finite_sequence("elevation_m", self.elevation_m)
        if self.heart_rate is not None:
            _check_finite_sequence("heart_rate", self.heart_rate)
        _check_finite_scalar("total_duration_min", self.total_duration_min)
        _check_finite_scalar("total_distance_km", self.total_distance_km)

        for i in range(1, len(self.distance_m)):
            if self.distance_m[i] < self.distance_m[i - 1]:
                raise ValueError(
                    f"distance_m must be non-decreasing, but distance_m[{i}]="
                    f"{self.distance_m[i]} < distance_m[{i - 1}]={self.distance_m[i - 1]}"
                )

    def elevation_range_m(self) -> float:
        if not self.elevation_m:
            return 0.0
        return max(self.elevation_m) - min(self.elevation_m)

    def minimum_elevation_range_m(self) -> float:
        """Required elevation range: max(10m, 10m per km)"""
        return max(
            MIN_ELEVATION_RANGE_M,
            (self.total_distance_km or 0.0) * MIN_ELEVATION_RANGE_PER_KM,
        )

    def has_elevation_signal(self) -> bool:
        return self.elevation_range_m() >= self.minimum_elevation_range_m()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StreamTriple":
        """Build streams from the activity-record payload (JSON form)"""
        activity_date = data.get("activity_date")
        if isinstance(activity_date, str):
            activity_date = datetime.fromisoformat(activity_date.replace("Z", "+00:00"))

        return cls(
            distance_m=list(data.get("distance_m") or []),
            elevation_m=list(data.get("elevation_m") or []),
            heart_rate=data.get("heart_rate"),
            total_duration_min=data.get("total_duration_min") or 0.0,
            total_distance_km=data.get("total_distance_km"),
            activity_id=str(data.get("activity_id", "unknown")),
            activity_date=activity_date,
            name=data.get("name"),
        )

    @classmethod
    def from_gpx(cls, gpx_content: str, activity_id: str = "unknown") -> "StreamTriple":
        """
        Build streams from GPX content.

        Args:
            gpx_content: Raw GPX file content
            activity_id: Optional ID for tracking

        Returns:
            StreamTriple with haversine cumulative distance within each
            track segment, raw elevation and duration taken from the first
            and last timestamps
        """
        gpx = gpxpy.parse(gpx_content)

        distances: List[float] = []
        elevations: List[float] = []
        start_time = None
        end_time = None
        name = None
        cumulative_distance = 0.0

        for track in gpx.tracks:
            if name is None and track.name:
                name = track.name
            for segment in track.segments:
                # no distance across the gap between recorded segments
                prev_point = None
                for point in segment.points:
                    if prev_point is not None:
                        cumulative_distance += haversine_distance(
                            prev_point.latitude,
                            prev_point.longitude,
                            point.latitude,
                            point.longitude,
                        )

                    distances.append(cumulative_distance)
                    elevations.append(point.elevation or 0.0)

                    if point.time is not None:
                        if start_time is None:
                            start_time = point.time
                        end_time = point.time
                    prev_point = point

        duration_min = 0.0
        if start_time is not None and end_time is not None:
            duration_min = (end_time - start_time).total_seconds() / 60

        return cls(
            distance_m=distances,
            elevation_m=elevations,
            total_duration_min=duration_min,
            activity_id=activity_id,
            activity_date=start_time,
            name=name,
        )


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate great-circle distance in meters"""
    R = 6371000
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.asin(min(1.0, math.sqrt(a)))

    return R * c
