"""
Pace Profile Aggregator

Builds a personalized pace-by-grade profile from the terrain analyses of an
athlete's recent activities:

1. Recency weighting (2x for the last 30 days, 1x to 90 days, older ignored)
2. Pool weighted segments by grade bucket
3. IQR outlier rejection per bucket
4. Weighted percentile selection: a configurable low percentile for flat
   terrain (race-capable speed), the median for graded terrain
5. Buckets with fewer than 3 samples are left out; consumers fall back to
   the coarse uphill/downhill adjustment factors
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from ..analysis.grades import classify_grade_bucket, GradeBucket, TerrainType
from ..analysis.terrain_segment_analyzer import TerrainSegmentAnalysisResult

logger = logging.getLogger(__name__)

RECENT_DAYS = 30
RECENT_WEIGHT = 2.0
MEDIUM_DAYS = 90
MEDIUM_WEIGHT = 1.0

MIN_ACTIVITIES = 3
MIN_SEGMENTS_PER_TYPE = 5
MIN_BUCKET_SAMPLES = 3
EXCELLENT_MIN_ACTIVITIES = 10

GRADED_PERCENTILE = 0.5
DEFAULT_UPHILL_FACTOR = 1.3
DEFAULT_DOWNHILL_FACTOR = 0.85

# Segments outside this range are GPS glitches or stops, not running
MIN_REALISTIC_PACE = 2.5
MAX_REALISTIC_PACE = 30.0

ActivityDate = Union[date, datetime, str]


class FlatPaceMode(Enum):
    """Which percentile of flat-segment pace represents the athlete"""

    ACCURATE = "accurate"  # 30th percentile, race-capable speed
    CONSERVATIVE = "conservative"  # median
    FAST = "fast"  # 20th percentile, aggressive predictions

    @property
    def percentile(self) -> float:
        return FLAT_PACE_PERCENTILES[self]


FLAT_PACE_PERCENTILES: Dict[FlatPaceMode, float] = {
    FlatPaceMode.ACCURATE: 0.30,
    FlatPaceMode.CONSERVATIVE: 0.50,
    FlatPaceMode.FAST: 0.20,
}


@dataclass
class WeightedPace:
    """A segment pace with its recency weight"""

    pace_min_km: float
    weight: float


@dataclass
class GradeBucketPace:
    """Profile entry for one grade bucket"""

    bucket: str
    pace_min_km: float
    sample_size: int
    confidence: str  # high, medium, low

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bucket": self.bucket,
            "pace_min_km": self.pace_min_km,
            "sample_size": self.sample_size,
            "confidence": self.confidence,
        }


@dataclass
class PaceProfile:
    """Per-athlete pace profile"""

    athlete_id: str
    base_flat_pace_min_km: float
    uphill_adjustment_factor: float
    downhill_adjustment_factor: float
    grade_bucket_paces: Dict[str, GradeBucketPace]
    segment_counts: Dict[str, int]
    sample_size: int
    last_calculated_at: datetime
    has_minimum_data: bool
    data_quality: str  # excellent, good, fair, insufficient
    flat_percentile: float = FlatPaceMode.ACCURATE.percentile
    calculation_period_days: int = MEDIUM_DAYS

    def pace_for_grade(self, grade_percent: float) -> float:
        """Bucket pace when the profile has one, else the coarse factor fallback"""
        bucket = classify_grade_bucket(grade_percent)
        entry = self.grade_bucket_paces.get(bucket.value)
        if entry is not None:
            return entry.pace_min_km

        terrain = bucket.terrain_type
        if terrain is TerrainType.UPHILL:
            return self.base_flat_pace_min_km * self.uphill_adjustment_factor
        if terrain is TerrainType.DOWNHILL:
            return self.base_flat_pace_min_km * self.downhill_adjustment_factor
        return self.base_flat_pace_min_km

    def age(self, now: Optional[datetime] = None) -> timedelta:
        now = now or datetime.now(timezone.utc)
        return _as_aware(now) - _as_aware(self.last_calculated_at)

    def is_stale(self, ttl: timedelta, now: Optional[datetime] = None) -> bool:
        """True once the profile is older than the staleness window"""
        return self.age(now) > ttl

    def to_dict(self) -> Dict[str, Any]:
        return {
            "athlete_id": self.athlete_id,
            "base_flat_pace_min_km": self.base_flat_pace_min_km,
            "uphill_adjustment_factor": self.uphill_adjustment_factor,
            "downhill_adjustment_factor": self.downhill_adjustment_factor,
            "grade_bucket_paces": {
                key: entry.to_dict() for key, entry in self.grade_bucket_paces.items()
            },
            "segment_counts": dict(self.segment_counts),
            "sample_size": self.sample_size,
            "last_calculated_at": self.last_calculated_at.isoformat(),
            "has_minimum_data": self.has_minimum_data,
            "data_quality": self.data_quality,
            "flat_percentile": self.flat_percentile,
            "calculation_period_days": self.calculation_period_days,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PaceProfile":
        bucket_paces = {
            key: GradeBucketPace(
                bucket=entry.get("bucket", key),
                pace_min_km=float(entry["pace_min_km"]),
                sample_size=int(entry["sample_size"]),
                confidence=entry.get("confidence") or determine_confidence(
                    int(entry["sample_size"])
                ),
            )
            for key, entry in (data.get("grade_bucket_paces") or {}).items()
        }
        return cls(
            athlete_id=data["athlete_id"],
            base_flat_pace_min_km=float(data["base_flat_pace_min_km"]),
            uphill_adjustment_factor=float(data["uphill_adjustment_factor"]),
            downhill_adjustment_factor=float(data["downhill_adjustment_factor"]),
            grade_bucket_paces=bucket_paces,
            segment_counts=dict(data.get("segment_counts") or {}),
            sample_size=int(data.get("sample_size", 0)),
            last_calculated_at=_parse_datetime(data["last_calculated_at"]),
            has_minimum_data=bool(data.get("has_minimum_data", True)),
            data_quality=data.get("data_quality", "good"),
            flat_percentile=float(
                data.get("flat_percentile", FlatPaceMode.ACCURATE.percentile)
            ),
            calculation_period_days=int(data.get("calculation_period_days", MEDIUM_DAYS)),
        )


def _parse_datetime(value: Union[str, datetime]) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _as_aware(value: datetime) -> datetime:
    # Naive timestamps are treated as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def days_old(activity_date: ActivityDate, now: datetime) -> int:
    """Whole days elapsed between the activity and now"""
    if isinstance(activity_date, str):
        activity_date = _parse_datetime(activity_date)

    if isinstance(activity_date, datetime):
        return (_as_aware(now) - _as_aware(activity_date)).days

    reference = now.date() if isinstance(now, datetime) else now
    return (reference - activity_date).days


def recency_weight(activity_date: ActivityDate, now: datetime) -> float:
    """2.0 within 30 days, 1.0 within 90 days, 0.0 beyond"""
    age_days = days_old(activity_date, now)
    if age_days <= RECENT_DAYS:
        return RECENT_WEIGHT
    if age_days <= MEDIUM_DAYS:
        return MEDIUM_WEIGHT
    return 0.0


def filter_outliers(samples: Sequence[WeightedPace]) -> List[WeightedPace]:
    """
    Drop paces outside [Q1 - 1.5*IQR, Q3 + 1.5*IQR].

    Buckets with fewer than 4 samples are returned unfiltered since the
    quartiles are meaningless at that size.
    """
    if len(samples) < 4:
        return list(samples)

    paces = sorted(s.pace_min_km for s in samples)
    q1 = paces[int(len(paces) * 0.25)]
    q3 = paces[int(len(paces) * 0.75)]
    iqr = q3 - q1
    lower = q1 - 1.5 * iqr
    upper = q3 + 1.5 * iqr

    filtered = [s for s in samples if lower <= s.pace_min_km <= upper]
    if len(filtered) < len(samples):
        logger.debug(
            f"Filtered {len(samples) - len(filtered)} outliers "
            f"(bounds: {lower:.2f}-{upper:.2f} min/km)"
        )
    return filtered


def weighted_percentile(samples: Sequence[WeightedPace], percentile: float = 0.5) -> Optional[float]:
    """
    Percentile of pace where each sample's weight acts as a repeat count.

    Returns the first pace (ascending) whose cumulative weight reaches
    ``percentile`` of the total weight, or None for no samples.
    """
    if not 0.0 <= percentile <= 1.0:
        raise ValueError(f"percentile must be within [0, 1], got {percentile}")
    if not samples:
        return None

    ordered = sorted(samples, key=lambda s: s.pace_min_km)
    total_weight = sum(s.weight for s in ordered)
    target = total_weight * percentile

    cumulative = 0.0
    for sample in ordered:
        cumulative += sample.weight
        if cumulative >= target:
            return sample.pace_min_km

    index = min(int(len(ordered) * percentile), len(ordered) - 1)
    return ordered[index].pace_min_km


def determine_confidence(sample_size: int) -> str:
    if sample_size >= 15:
        return "high"
    if sample_size >= 8:
        return "medium"
    return "low"


def determine_data_quality(segment_counts: Dict[str, int], activity_count: int) -> str:
    """
    excellent: every terrain type has 5+ segments and there are 10+ activities
    good: every terrain type has 5+ segments
    fair: at least 3 activities
    """
    has_minimum = all(
        segment_counts.get(t.value, 0) >= MIN_SEGMENTS_PER_TYPE for t in TerrainType
    )
    if has_minimum and activity_count >= EXCELLENT_MIN_ACTIVITIES:
        return "excellent"
    if has_minimum:
        return "good"
    if activity_count >= MIN_ACTIVITIES:
        return "fair"
    return "insufficient"


def resolve_flat_percentile(
    flat_pace_mode: Union[FlatPaceMode, str] = FlatPaceMode.ACCURATE,
    flat_percentile: Optional[float] = None,
) -> float:
    """An explicit percentile overrides the mode"""
    if flat_percentile is not None:
        if not 0.0 <= flat_percentile <= 1.0:
            raise ValueError(f"flat_percentile must be within [0, 1], got {flat_percentile}")
        return flat_percentile
    return FlatPaceMode(flat_pace_mode).percentile


def calculate_pace_profile(
    athlete_id: str,
    analyses: Iterable[Union[TerrainSegmentAnalysisResult, Dict[str, Any]]],
    now: Optional[datetime] = None,
    flat_pace_mode: Union[FlatPaceMode, str] = FlatPaceMode.ACCURATE,
    flat_percentile: Optional[float] = None,
) -> Optional[PaceProfile]:
    """
    Calculate a pace profile from historical terrain analyses.

    Args:
        athlete_id: Athlete the profile belongs to
        analyses: Terrain analysis records (objects or their dict form); each
            needs an activity_date
        now: Reference time for recency weighting (defaults to UTC now)
        flat_pace_mode: Percentile policy for flat terrain
        flat_percentile: Explicit flat percentile, overrides the mode

    Returns:
        PaceProfile, or None when there are fewer than 3 activities inside
        the 90-day window or no usable segments
    """
    now = now or datetime.now(timezone.utc)
    percentile = resolve_flat_percentile(flat_pace_mode, flat_percentile)

    by_bucket: Dict[str, List[WeightedPace]] = {}
    by_type: Dict[str, List[WeightedPace]] = {t.value: [] for t in TerrainType}
    all_samples: List[WeightedPace] = []
    activity_count = 0
    skipped_unrealistic = 0

    for raw in analyses:
        analysis = (
            raw if isinstance(raw, TerrainSegmentAnalysisResult)
            else TerrainSegmentAnalysisResult.from_dict(raw)
        )
        if not analysis.activity_date:
            logger.debug(f"Ignoring analysis {analysis.activity_id}: no activity date")
            continue

        weight = recency_weight(analysis.activity_date, now)
        if weight == 0:
            continue
        activity_count += 1

        for segment in analysis.segments:
            if not MIN_REALISTIC_PACE <= segment.pace_min_km <= MAX_REALISTIC_PACE:
                skipped_unrealistic += 1
                continue
            sample = WeightedPace(segment.pace_min_km, weight)
            by_bucket.setdefault(segment.grade_bucket, []).append(sample)
            by_type.setdefault(segment.terrain_type, []).append(sample)
            all_samples.append(sample)

    if activity_count < MIN_ACTIVITIES:
        logger.info(
            f"Insufficient history for {athlete_id}: {activity_count} activities "
            f"in the last {MEDIUM_DAYS} days (need {MIN_ACTIVITIES})"
        )
        return None

    if not all_samples:
        logger.info(f"Insufficient history for {athlete_id}: no usable segments")
        return None

    if skipped_unrealistic:
        logger.debug(f"Skipped {skipped_unrealistic} segments with unrealistic pace")

    bucket_paces: Dict[str, GradeBucketPace] = {}
    for bucket_key, samples in by_bucket.items():
        filtered = filter_outliers(samples)
        if len(filtered) < MIN_BUCKET_SAMPLES:
            continue
        bucket_percentile = (
            percentile if bucket_key == GradeBucket.FLAT.value else GRADED_PERCENTILE
        )
        pace = weighted_percentile(filtered, bucket_percentile)
        bucket_paces[bucket_key] = GradeBucketPace(
            bucket=bucket_key,
            pace_min_km=round(pace, 2),
            sample_size=len(filtered),
            confidence=determine_confidence(len(filtered)),
        )

    def type_pace(terrain: TerrainType, type_percentile: float) -> Optional[float]:
        samples = by_type[terrain.value]
        if not samples:
            return None
        return weighted_percentile(filter_outliers(samples), type_percentile)

    uphill_pace = type_pace(TerrainType.UPHILL, GRADED_PERCENTILE)
    downhill_pace = type_pace(TerrainType.DOWNHILL, GRADED_PERCENTILE)
    base_flat_pace = type_pace(TerrainType.FLAT, percentile)
    if not base_flat_pace:
        base_flat_pace = weighted_percentile(all_samples, GRADED_PERCENTILE)

    uphill_factor = (
        uphill_pace / base_flat_pace if uphill_pace else DEFAULT_UPHILL_FACTOR
    )
    downhill_factor = (
        downhill_pace / base_flat_pace if downhill_pace else DEFAULT_DOWNHILL_FACTOR
    )

    segment_counts = {t.value: len(by_type[t.value]) for t in TerrainType}
    data_quality = determine_data_quality(segment_counts, activity_count)
    has_minimum_data = data_quality in ("excellent", "good")

    logger.info(
        f"Pace profile for {athlete_id}: base flat {base_flat_pace:.2f} min/km, "
        f"{len(bucket_paces)} buckets from {activity_count} activities ({data_quality})"
    )

    return PaceProfile(
        athlete_id=athlete_id,
        base_flat_pace_min_km=round(base_flat_pace, 2),
        uphill_adjustment_factor=round(uphill_factor, 3),
        downhill_adjustment_factor=round(downhill_factor, 3),
        grade_bucket_paces=bucket_paces,
        segment_counts=segment_counts,
        sample_size=activity_count,
        last_calculated_at=now,
        has_minimum_data=has_minimum_data,
        data_quality=data_quality,
        flat_percentile=percentile,
    )
