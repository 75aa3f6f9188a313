"""
Climb Analyzer

Identifies sustained climbs in an activity and measures how fast the athlete
ascended each one (VAM, meters of ascent per hour). Unlike terrain segments,
a climb is a state that survives short interruptions:

1. Raw detection: contiguous stretches where the grade over a 50m span
   around each sample is > 3%
2. Candidates shorter than 50m are dropped, then candidates separated by
   less than 50m of non-climb are merged
3. Only significant climbs (>= 80m gain and >= 400m distance) are kept

Across the climbs of one activity a distance-weighted VAM trend is reported
as a fatigue signal.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ..config import DEFAULT_CONFIG, EngineConfig
from .grades import effort_multiplier
from .terrain_segment_analyzer import elevation_gain_loss, prepare_grade_windows
from .streams import StreamTriple

logger = logging.getLogger(__name__)

CLIMB_GRADE_THRESHOLD = 3.0  # percent, strictly greater
MIN_CANDIDATE_DISTANCE_M = 50.0
CLIMB_GRADE_SPAN_M = 50.0
MERGE_GAP_M = 50.0
MIN_CLIMB_GAIN_M = 80.0
MIN_CLIMB_DISTANCE_M = 400.0
MIN_CLIMBS_FOR_FATIGUE = 3

CLIMB_CATEGORIES = ("easy", "moderate", "hard", "extreme")


@dataclass
class ClimbCandidate:
    """Sample index span of a raw or merged climb"""

    start_idx: int
    end_idx: int
    start_distance_m: float
    end_distance_m: float

    @property
    def distance_m(self) -> float:
        return self.end_distance_m - self.start_distance_m


@dataclass
class ClimbSegment:
    """A significant climb with its ascent rate"""

    climb_number: int
    start_distance_m: float
    end_distance_m: float
    distance_km: float
    elevation_gain_m: float
    average_grade_percent: float
    duration_min: float
    vam_m_per_hour: float
    category: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ClimbAnalysisResult:
    """Climbs of one activity plus activity-level VAM statistics"""

    activity_id: str
    climbs: List[ClimbSegment]
    significant_climb_count: int
    total_climbing_distance_km: float
    total_climbing_gain_m: float
    total_climbing_time_min: float
    peak_vam: Optional[float] = None
    average_vam: Optional[float] = None
    first_climb_vam: Optional[float] = None
    last_climb_vam: Optional[float] = None
    # Only present with 3+ climbs; None means "not measurable", not "no fatigue"
    vam_fatigue_slope_pct: Optional[float] = None
    vam_first_to_last_dropoff_pct: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["climbs"] = [c.to_dict() for c in self.climbs]
        return result


def span_grades(
    distance_m: Sequence[float],
    elevation_m: Sequence[float],
    span_m: float = CLIMB_GRADE_SPAN_M,
) -> List[Optional[float]]:
    """
    Grade at each sample measured over a centered distance span.

    The span reaches ``span_m / 2`` to either side of the sample and is
    truncated at the ends of the stream. Samples whose span covers no
    distance get None.
    """
    half = span_m / 2
    n = len(distance_m)
    grades: List[Optional[float]] = []
    lo = 0
    hi = 0

    for i in range(n):
        while distance_m[i] - distance_m[lo] > half:
            lo += 1
        while hi + 1 < n and distance_m[hi + 1] - distance_m[i] <= half:
            hi += 1

        run = distance_m[hi] - distance_m[lo]
        if run <= 0:
            grades.append(None)
        else:
            grades.append((elevation_m[hi] - elevation_m[lo]) / run * 100)

    return grades


def detect_climb_candidates(
    distance_m: Sequence[float],
    elevation_m: Sequence[float],
    grade_threshold: float = CLIMB_GRADE_THRESHOLD,
    min_distance_m: float = MIN_CANDIDATE_DISTANCE_M,
    span_m: float = CLIMB_GRADE_SPAN_M,
) -> List[ClimbCandidate]:
    """
    Find contiguous runs of samples whose span grade is above the threshold.

    A candidate closes at the first sample whose span grade drops to the
    threshold or below. Samples without a grade neither open nor close a
    candidate.
    """
    candidates: List[ClimbCandidate] = []
    start: Optional[int] = None
    end: Optional[int] = None

    def close() -> None:
        if start is not None and end is not None:
            span = distance_m[end] - distance_m[start]
            if span >= min_distance_m:
                candidates.append(
                    ClimbCandidate(start, end, distance_m[start], distance_m[end])
                )

    for i, grade in enumerate(span_grades(distance_m, elevation_m, span_m)):
        if grade is None:
            continue

        if grade > grade_threshold:
            if start is None:
                start = i
            end = i
        elif start is not None:
            close()
            start = end = None

    close()
    return candidates


def merge_climb_candidates(
    candidates: Sequence[ClimbCandidate], max_gap_m: float = MERGE_GAP_M
) -> List[ClimbCandidate]:
    """
    Merge candidates separated by less than ``max_gap_m`` of non-climb.

    Idempotent: every gap in the output is at least ``max_gap_m``, so
    merging the output again returns it unchanged.
    """
    merged: List[ClimbCandidate] = []
    for candidate in sorted(candidates, key=lambda c: c.start_distance_m):
        if merged and candidate.start_distance_m - merged[-1].end_distance_m < max_gap_m:
            last = merged[-1]
            if candidate.end_idx > last.end_idx:
                merged[-1] = ClimbCandidate(
                    start_idx=last.start_idx,
                    end_idx=candidate.end_idx,
                    start_distance_m=last.start_distance_m,
                    end_distance_m=candidate.end_distance_m,
                )
        else:
            merged.append(candidate)
    return merged


def is_significant_climb(elevation_gain_m: float, distance_m: float) -> bool:
    return elevation_gain_m >= MIN_CLIMB_GAIN_M and distance_m >= MIN_CLIMB_DISTANCE_M


def categorize_climb(average_grade_percent: float, elevation_gain_m: float) -> str:
    """Difficulty from an equal blend of steepness and height"""
    score = 0.5 * average_grade_percent + 0.5 * (elevation_gain_m / 100)
    if score < 4:
        return "easy"
    if score < 7:
        return "moderate"
    if score < 10:
        return "hard"
    return "extreme"


def vam_fatigue_trend(climbs: Sequence[ClimbSegment]) -> "tuple[Optional[float], Optional[float]]":
    """
    VAM trend across successive climbs.

    Returns:
        (slope_pct, dropoff_pct): slope of a distance-weighted linear fit of
        VAM against climb order as a percentage of mean VAM per climb, and
        the first-to-last VAM drop in percent. Both None with fewer than 3
        climbs that have a positive VAM.
    """
    usable = [c for c in climbs if c.vam_m_per_hour > 0]
    if len(usable) < MIN_CLIMBS_FOR_FATIGUE:
        return None, None

    x = np.arange(1, len(usable) + 1, dtype=float)
    y = np.array([c.vam_m_per_hour for c in usable], dtype=float)
    w = np.array([c.distance_km for c in usable], dtype=float)
    if w.sum() <= 0:
        w = np.ones_like(x)

    x_mean = np.average(x, weights=w)
    y_mean = np.average(y, weights=w)
    denominator = float(np.sum(w * (x - x_mean) ** 2))
    if denominator == 0:
        return None, None
    slope = float(np.sum(w * (x - x_mean) * (y - y_mean))) / denominator

    mean_vam = float(y.mean())
    slope_pct = slope / mean_vam * 100
    dropoff_pct = (y[0] - y[-1]) / y[0] * 100

    return round(slope_pct, 2), round(float(dropoff_pct), 2)


class ClimbAnalyzer:
    """
    Finds significant climbs and computes VAM per climb.

    analyze() returns None only when the streams cannot be analyzed at all;
    a flat activity produces a result with an empty climb list.
    """

    def __init__(self, streams: StreamTriple, config: EngineConfig = DEFAULT_CONFIG):
        self.streams = streams
        self.config = config
        self.activity_id = streams.activity_id

    def analyze(self) -> Optional[ClimbAnalysisResult]:
        reason = self.streams.insufficiency_reason()
        if reason is not None:
            logger.info(f"Skipping climb analysis for {self.activity_id}: {reason}")
            return None

        self.streams.validate_numbers()

        smoothed, windows = prepare_grade_windows(self.streams, self.config)
        total_effort = sum(w.effort for w in windows)
        distance = self.streams.distance_m

        candidates = detect_climb_candidates(distance, smoothed)
        merged = merge_climb_candidates(candidates)

        climbs: List[ClimbSegment] = []
        total_duration = self.streams.total_duration_min

        for candidate in merged:
            gain, _ = elevation_gain_loss(smoothed, candidate.start_idx, candidate.end_idx)
            if not is_significant_climb(gain, candidate.distance_m):
                continue

            net_change = smoothed[candidate.end_idx] - smoothed[candidate.start_idx]
            average_grade = net_change / candidate.distance_m * 100
            distance_km = candidate.distance_m / 1000

            duration_min = 0.0
            if total_effort > 0:
                effort = distance_km * effort_multiplier(average_grade)
                duration_min = min(total_duration, total_duration * effort / total_effort)

            vam = gain / (duration_min / 60) if duration_min > 0 else 0.0

            climbs.append(
                ClimbSegment(
                    climb_number=len(climbs) + 1,
                    start_distance_m=round(candidate.start_distance_m, 1),
                    end_distance_m=round(candidate.end_distance_m, 1),
                    distance_km=round(distance_km, 3),
                    elevation_gain_m=round(gain, 1),
                    average_grade_percent=round(average_grade, 2),
                    duration_min=round(duration_min, 2),
                    vam_m_per_hour=round(vam, 1),
                    category=categorize_climb(average_grade, gain),
                )
            )

        logger.debug(
            f"Climb analysis for {self.activity_id}: {len(candidates)} candidates, "
            f"{len(merged)} after merge, {len(climbs)} significant"
        )

        result = ClimbAnalysisResult(
            activity_id=self.activity_id,
            climbs=climbs,
            significant_climb_count=len(climbs),
            total_climbing_distance_km=round(sum(c.distance_km for c in climbs), 3),
            total_climbing_gain_m=round(sum(c.elevation_gain_m for c in climbs), 1),
            total_climbing_time_min=round(sum(c.duration_min for c in climbs), 2),
        )

        vams = [c.vam_m_per_hour for c in climbs if c.vam_m_per_hour > 0]
        if vams:
            result.peak_vam = max(vams)
            result.average_vam = round(sum(vams) / len(vams), 1)
            result.first_climb_vam = vams[0]
            result.last_climb_vam = vams[-1]

        result.vam_fatigue_slope_pct, result.vam_first_to_last_dropoff_pct = (
            vam_fatigue_trend(climbs)
        )
        return result


def analyze_activity_climbs(
    streams: StreamTriple, config: EngineConfig = DEFAULT_CONFIG
) -> Optional[Dict[str, Any]]:
    """Convenience wrapper returning the climb analysis as a dict, or None"""
    result = ClimbAnalyzer(streams, config).analyze()
    return result.to_dict() if result is not None else None
