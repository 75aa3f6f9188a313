"""
Ultra Fatigue Model

Predicts pace decay for ultra-distance efforts from race and athlete scalars.
Six sub-factors each follow their own curve:
- Distance: linear to the marathon, steeper to 50K, then power law with a
  larger exponent past each ultra threshold
- Time: linear to 6 hours, power law beyond
- Elevation: per 1000m of gain, heavier on steep courses
- Heat: excess temperature and humidity, compounding with hours out
- Night: flat penalty, larger on long courses
- Inexperience: grows with the gap between the longest ultra and the race

They are blended with fixed weights, amplified for low readiness, discounted
for proven ultra runners, and capped at a 60% pace penalty.
"""

import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

MARATHON_KM = 42.195
ULTRA_KM = 50.0
EXTREME_ULTRA_KM = 100.0

BASE_FATIGUE_RATE = 0.008
ULTRA_FATIGUE_EXPONENT = 1.35
EXTREME_ULTRA_EXPONENT = 1.5

TIME_THRESHOLD_HOURS = 6.0
TIME_FATIGUE_RATE = 0.02

ELEVATION_FATIGUE_PER_1000M = 0.08
STEEP_COURSE_RATIO = 0.05  # 50m of gain per km

HEAT_THRESHOLD_C = 20.0
HEAT_FATIGUE_RATE = 0.015
HUMIDITY_THRESHOLD = 60.0
HUMIDITY_FATIGUE_RATE = 0.008

NIGHT_PACE_PENALTY = 0.12
NIGHT_TECHNICAL_PENALTY = 0.18

GLYCOGEN_DEPLETION_RATE = 0.012

INEXPERIENCE_PENALTY_BASE = 0.15
INEXPERIENCE_EXPONENT = 0.7

FACTOR_WEIGHTS = {
    "distance": 0.30,
    "time": 0.25,
    "elevation": 0.20,
    "heat": 0.15,
    "night": 0.05,
    "inexperience": 0.05,
}

MAX_COMBINED_FATIGUE = 0.60
MIN_EXPERIENCE_DISCOUNT = 0.35
MIN_CONFIDENCE = 20
MAX_CONFIDENCE = 95

# Segment progression assumes a typical ultra pace when none is supplied
DEFAULT_PROGRESSION_PACE_MIN_KM = 7.0


@dataclass
class UltraFatigueParams:
    """Race scenario and athlete context"""

    distance_km: float
    elapsed_time_hours: float
    elevation_gain_m: float
    temperature_c: float
    humidity: float
    readiness_score: float
    athlete_longest_ultra_km: float = MARATHON_KM
    athlete_ultra_count: int = 0
    is_night_section: bool = False

    def validate(self) -> None:
        """
        Raises:
            ValueError: naming the first non-finite or out-of-range input
        """
        for name in (
            "distance_km",
            "elapsed_time_hours",
            "elevation_gain_m",
            "temperature_c",
            "humidity",
            "readiness_score",
            "athlete_longest_ultra_km",
        ):
            value = getattr(self, name)
            if value is None or not math.isfinite(value):
                raise ValueError(f"{name} must be a finite number, got {value!r}")

        if self.distance_km <= 0:
            raise ValueError(f"distance_km must be positive, got {self.distance_km}")
        if self.elapsed_time_hours < 0:
            raise ValueError(
                f"elapsed_time_hours must not be negative, got {self.elapsed_time_hours}"
            )
        if self.elevation_gain_m < 0:
            raise ValueError(
                f"elevation_gain_m must not be negative, got {self.elevation_gain_m}"
            )
        if self.athlete_longest_ultra_km < 0:
            raise ValueError(
                f"athlete_longest_ultra_km must not be negative, "
                f"got {self.athlete_longest_ultra_km}"
            )
        if self.athlete_ultra_count < 0:
            raise ValueError(
                f"athlete_ultra_count must not be negative, got {self.athlete_ultra_count}"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UltraFatigueParams":
        longest = data.get("athlete_longest_ultra_km")
        return cls(
            distance_km=data["distance_km"],
            elapsed_time_hours=data["elapsed_time_hours"],
            elevation_gain_m=data.get("elevation_gain_m", 0.0),
            temperature_c=data.get("temperature_c", HEAT_THRESHOLD_C),
            humidity=data.get("humidity", HUMIDITY_THRESHOLD),
            readiness_score=data.get("readiness_score", 75.0),
            athlete_longest_ultra_km=MARATHON_KM if longest is None else longest,
            athlete_ultra_count=data.get("athlete_ultra_count") or 0,
            is_night_section=bool(data.get("is_night_section", False)),
        )


@dataclass
class UltraFatigueResult:
    """Fatigue prediction for one race scenario"""

    fatigue_factor: float  # 1.0 - 1.6 pace multiplier
    pace_decay_percent: float
    glycogen_depletion_percent: float
    muscular_fatigue_percent: float
    mental_fatigue_percent: float
    night_penalty_percent: float
    heat_accumulation_factor: float
    confidence_score: int
    experience_discount: float
    readiness_multiplier: float
    breakdown_by_factor: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SegmentFatigueAdjustment:
    """Fatigue state at the end of one course segment"""

    segment_index: int
    distance_from_start_km: float
    cumulative_fatigue_factor: float
    adjusted_pace_multiplier: float
    estimated_glycogen_percent: float
    warning_level: str
    recommendation: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FinishTimeEstimate:
    """Baseline finish time adjusted for fatigue, aid stations and conditions"""

    base_time_minutes: float
    adjusted_time_minutes: float
    fatigue_penalty_minutes: float
    aid_station_minutes: float
    night_penalty_minutes: float
    weather_penalty_minutes: float
    total_adjustment_percent: float
    fatigue: UltraFatigueResult

    @property
    def breakdown(self) -> Dict[str, float]:
        return {
            "base_time": self.base_time_minutes,
            "fatigue_penalty": self.fatigue_penalty_minutes,
            "aid_stations": self.aid_station_minutes,
            "night_penalty": self.night_penalty_minutes,
            "weather_penalty": self.weather_penalty_minutes,
            "total": self.adjusted_time_minutes,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_time_minutes": self.base_time_minutes,
            "adjusted_time_minutes": self.adjusted_time_minutes,
            "fatigue_penalty_minutes": self.fatigue_penalty_minutes,
            "aid_station_minutes": self.aid_station_minutes,
            "night_penalty_minutes": self.night_penalty_minutes,
            "weather_penalty_minutes": self.weather_penalty_minutes,
            "total_adjustment_percent": self.total_adjustment_percent,
            "breakdown": self.breakdown,
            "fatigue": self.fatigue.to_dict(),
        }


def distance_fatigue(distance_km: float) -> float:
    marathon = MARATHON_KM * BASE_FATIGUE_RATE * 0.5
    if distance_km <= MARATHON_KM:
        return distance_km * BASE_FATIGUE_RATE * 0.5

    if distance_km <= ULTRA_KM:
        return marathon + (distance_km - MARATHON_KM) * BASE_FATIGUE_RATE

    to_50k = (ULTRA_KM - MARATHON_KM) * BASE_FATIGUE_RATE
    if distance_km <= EXTREME_ULTRA_KM:
        portion = distance_km - ULTRA_KM
        return marathon + to_50k + (portion / 50) ** ULTRA_FATIGUE_EXPONENT * 0.15

    to_100k = ((EXTREME_ULTRA_KM - ULTRA_KM) / 50) ** ULTRA_FATIGUE_EXPONENT * 0.15
    beyond = distance_km - EXTREME_ULTRA_KM
    return marathon + to_50k + to_100k + (beyond / 60) ** EXTREME_ULTRA_EXPONENT * 0.20


def time_fatigue(elapsed_time_hours: float) -> float:
    if elapsed_time_hours <= TIME_THRESHOLD_HOURS:
        return elapsed_time_hours * TIME_FATIGUE_RATE * 0.3

    base = TIME_THRESHOLD_HOURS * TIME_FATIGUE_RATE * 0.3
    extra_hours = elapsed_time_hours - TIME_THRESHOLD_HOURS
    return base + (extra_hours / 10) ** 1.3 * 0.12


def elevation_fatigue(elevation_gain_m: float, distance_km: float) -> float:
    base = (elevation_gain_m / 1000) * ELEVATION_FATIGUE_PER_1000M
    steepness = elevation_gain_m / (distance_km * 1000)
    return base * (1.2 if steepness > STEEP_COURSE_RATIO else 1.0)


def heat_accumulation(hours: float) -> float:
    """Heat stress compounds with time out, up to double"""
    return min(2.0, 1 + hours * 0.03)


def heat_fatigue(temperature_c: float, humidity: float, hours: float) -> float:
    fatigue = 0.0
    if temperature_c > HEAT_THRESHOLD_C:
        fatigue += (temperature_c - HEAT_THRESHOLD_C) * HEAT_FATIGUE_RATE
    if humidity > HUMIDITY_THRESHOLD:
        fatigue += (humidity - HUMIDITY_THRESHOLD) * HUMIDITY_FATIGUE_RATE * 0.01
    return fatigue * heat_accumulation(hours)


def night_penalty(distance_km: float) -> float:
    if distance_km < ULTRA_KM:
        return NIGHT_PACE_PENALTY * 0.5
    technical = NIGHT_TECHNICAL_PENALTY * 0.3 if distance_km > 80 else 0.0
    return NIGHT_PACE_PENALTY + technical


def inexperience_penalty(race_distance_km: float, longest_ultra_km: float) -> float:
    if longest_ultra_km >= race_distance_km:
        return 0.0
    gap_ratio = (race_distance_km - longest_ultra_km) / race_distance_km
    return INEXPERIENCE_PENALTY_BASE * gap_ratio ** INEXPERIENCE_EXPONENT


def calculate_experience_discount(
    race_distance_km: float, longest_ultra_km: float, ultra_count: int
) -> float:
    """
    Fraction of computed fatigue that applies to this athlete (0.35 - 1.0).

    Runners who have never gone past the marathon get no discount. Otherwise
    the discount steps with how much of the race distance they have already
    covered, then tightens further with the number of ultras finished.
    """
    if longest_ultra_km <= MARATHON_KM:
        return 1.0

    ratio = longest_ultra_km / race_distance_km
    if ratio >= 1.2:
        discount = 0.50
    elif ratio >= 1.0:
        discount = 0.60
    elif ratio >= 0.8:
        discount = 0.75
    elif ratio >= 0.6:
        discount = 0.85
    elif longest_ultra_km > ULTRA_KM:
        discount = 0.90
    else:
        discount = 1.0

    if ultra_count >= 10:
        discount *= 0.85
    elif ultra_count >= 5:
        discount *= 0.90
    elif ultra_count >= 3:
        discount *= 0.95

    return max(MIN_EXPERIENCE_DISCOUNT, discount)


def calculate_confidence_score(
    distance_km: float, longest_ultra_km: float, readiness_score: float
) -> int:
    confidence = 80

    ratio = longest_ultra_km / distance_km
    if ratio >= 1.0:
        confidence += 15
    elif ratio >= 0.7:
        confidence += 5
    elif ratio >= 0.5:
        confidence -= 10
    else:
        confidence -= 25

    if distance_km > 100:
        confidence -= 10
    if distance_km > 160:
        confidence -= 15
    if readiness_score < 60:
        confidence -= 10

    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, confidence))


def readiness_multiplier(readiness_score: float) -> float:
    """Amplifies fatigue below a readiness of 75"""
    return 1 + max(0.0, (75 - readiness_score) / 200)


def calculate_ultra_fatigue(params: UltraFatigueParams) -> UltraFatigueResult:
    """
    Predict the fatigue factor for a race scenario.

    Raises:
        ValueError: if an input is non-finite or out of range
    """
    params.validate()
    distance = params.distance_km

    factors = {
        "distance": distance_fatigue(distance),
        "time": time_fatigue(params.elapsed_time_hours),
        "elevation": elevation_fatigue(params.elevation_gain_m, distance),
        "heat": heat_fatigue(params.temperature_c, params.humidity, params.elapsed_time_hours),
        "night": night_penalty(distance) if params.is_night_section else 0.0,
        "inexperience": inexperience_penalty(distance, params.athlete_longest_ultra_km),
    }

    readiness = readiness_multiplier(params.readiness_score)
    discount = calculate_experience_discount(
        distance, params.athlete_longest_ultra_km, params.athlete_ultra_count
    )

    weighted = sum(factors[name] * weight for name, weight in FACTOR_WEIGHTS.items())
    combined = weighted * readiness * discount

    fatigue_factor = 1 + min(combined, MAX_COMBINED_FATIGUE)

    glycogen = min(100.0, distance * GLYCOGEN_DEPLETION_RATE * 100 * (1 + factors["heat"] * 0.5))
    muscular = min(100.0, (factors["distance"] + factors["elevation"] * 1.5) * 100)
    mental = min(100.0, (factors["time"] * 0.6 + factors["night"] * 0.4) * 100)

    return UltraFatigueResult(
        fatigue_factor=fatigue_factor,
        pace_decay_percent=(fatigue_factor - 1) * 100,
        glycogen_depletion_percent=glycogen,
        muscular_fatigue_percent=muscular,
        mental_fatigue_percent=mental,
        night_penalty_percent=factors["night"] * 100,
        heat_accumulation_factor=1 + factors["heat"],
        confidence_score=calculate_confidence_score(
            distance, params.athlete_longest_ultra_km, params.readiness_score
        ),
        experience_discount=discount,
        readiness_multiplier=readiness,
        breakdown_by_factor={name: value * 100 for name, value in factors.items()},
    )


def default_aid_station_minutes(distance_km: float) -> float:
    if distance_km > 100:
        return 5.0
    if distance_km > 50:
        return 4.0
    return 3.0


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
    athlete_longest_ultra_km: float = MARATHON_KM,
    athlete_ultra_count: int = 0,
) -> FinishTimeEstimate:
    """
    Adjust a baseline (unfatigued) finish time for an ultra.

    Args:
        base_time_minutes: Finish time at steady, unfatigued pace
        distance_km: Race distance
        elevation_gain_m: Total course gain
        temperature_c: Expected temperature
        humidity: Expected relative humidity (%)
        readiness_score: Athlete readiness 0-100
        has_night_section: Whether the race runs through the night
        aid_station_count: Number of aid stops
        aid_station_avg_minutes: Minutes per stop (defaults by distance)
        athlete_longest_ultra_km: Longest completed ultra
        athlete_ultra_count: Number of ultras completed

    Returns:
        FinishTimeEstimate with penalty breakdown
    """
    if base_time_minutes is None or not math.isfinite(base_time_minutes) or base_time_minutes <= 0:
        raise ValueError(f"base_time_minutes must be a positive number, got {base_time_minutes!r}")
    if aid_station_count < 0:
        raise ValueError(f"aid_station_count must not be negative, got {aid_station_count}")

    fatigue = calculate_ultra_fatigue(
        UltraFatigueParams(
            distance_km=distance_km,
            elapsed_time_hours=base_time_minutes / 60,
            elevation_gain_m=elevation_gain_m,
            temperature_c=temperature_c,
            humidity=humidity,
            readiness_score=readiness_score,
            athlete_longest_ultra_km=athlete_longest_ultra_km,
            athlete_ultra_count=athlete_ultra_count,
            is_night_section=has_night_section,
        )
    )

    fatigue_penalty = base_time_minutes * (fatigue.fatigue_factor - 1)
    per_stop = aid_station_avg_minutes or default_aid_station_minutes(distance_km)
    aid_station_minutes = aid_station_count * per_stop
    night_penalty_minutes = (
        base_time_minutes * fatigue.night_penalty_percent / 100 if has_night_section else 0.0
    )
    weather_penalty = base_time_minutes * (fatigue.heat_accumulation_factor - 1) * 0.5

    adjusted = (
        base_time_minutes
        + fatigue_penalty
        + aid_station_minutes
        + night_penalty_minutes
        + weather_penalty
    )

    return FinishTimeEstimate(
        base_time_minutes=base_time_minutes,
        adjusted_time_minutes=adjusted,
        fatigue_penalty_minutes=fatigue_penalty,
        aid_station_minutes=aid_station_minutes,
        night_penalty_minutes=night_penalty_minutes,
        weather_penalty_minutes=weather_penalty,
        total_adjustment_percent=(adjusted - base_time_minutes) / base_time_minutes * 100,
        fatigue=fatigue,
    )


def calculate_segment_fatigue_progression(
    total_distance_km: float,
    total_elevation_gain_m: float,
    segment_distances_km: List[float],
    temperature_c: float,
    humidity: float,
    readiness_score: float,
    athlete_longest_ultra_km: float = MARATHON_KM,
    athlete_ultra_count: int = 0,
    is_night_section: bool = False,
    base_pace_min_km: float = DEFAULT_PROGRESSION_PACE_MIN_KM,
) -> List[SegmentFatigueAdjustment]:
    """
    Walk the course segment by segment and report accumulated fatigue.

    Elapsed time is estimated at ``base_pace_min_km``; elevation is spread
    evenly over the course. Sections beyond 12 hours are treated as night,
    as are sections beyond 6 hours when the race has a night section.
    """
    if total_distance_km is None or not math.isfinite(total_distance_km) or total_distance_km <= 0:
        raise ValueError(f"total_distance_km must be a positive number, got {total_distance_km!r}")
    for i, length in enumerate(segment_distances_km):
        if length is None or not math.isfinite(length) or length <= 0:
            raise ValueError(f"segment_distances_km[{i}] must be a positive number, got {length!r}")

    elevation_per_km = total_elevation_gain_m / total_distance_km
    results: List[SegmentFatigueAdjustment] = []
    cumulative_km = 0.0

    for index, length in enumerate(segment_distances_km):
        cumulative_km += length
        hours = cumulative_km * base_pace_min_km / 60
        at_night = hours > 12 or (hours > 6 and is_night_section)

        fatigue = calculate_ultra_fatigue(
            UltraFatigueParams(
                distance_km=cumulative_km,
                elapsed_time_hours=hours,
                elevation_gain_m=elevation_per_km * cumulative_km,
                temperature_c=temperature_c,
                humidity=humidity,
                readiness_score=readiness_score,
                athlete_longest_ultra_km=athlete_longest_ultra_km,
                athlete_ultra_count=athlete_ultra_count,
                is_night_section=at_night,
            )
        )

        warning_level = "none"
        recommendation = None
        if fatigue.glycogen_depletion_percent > 80:
            warning_level = "critical"
            recommendation = "Critical glycogen depletion - increase fueling immediately"
        elif fatigue.pace_decay_percent > 40:
            warning_level = "warning"
            recommendation = "Significant pace decay expected - consider walking breaks"
        elif fatigue.pace_decay_percent > 25:
            warning_level = "caution"
            recommendation = "Moderate fatigue accumulating - maintain conservative effort"

        results.append(
            SegmentFatigueAdjustment(
                segment_index=index,
                distance_from_start_km=cumulative_km,
                cumulative_fatigue_factor=fatigue.fatigue_factor,
                adjusted_pace_multiplier=fatigue.fatigue_factor,
                estimated_glycogen_percent=100 - fatigue.glycogen_depletion_percent,
                warning_level=warning_level,
                recommendation=recommendation,
            )
        )

    return results


def get_ultra_distance_category(distance_km: float) -> Dict[str, Any]:
    """Race category with typical finish window (minutes) and fatigue range"""
    if distance_km <= MARATHON_KM:
        category, label, finish, fatigue = "marathon", "Marathon", (180, 420), (1.0, 1.15)
    elif distance_km <= 55:
        category, label, finish, fatigue = "50k", "50K Ultra", (240, 600), (1.05, 1.25)
    elif distance_km <= 85:
        category, label, finish, fatigue = "50m", "50 Mile Ultra", (420, 900), (1.10, 1.35)
    elif distance_km <= 110:
        category, label, finish, fatigue = "100k", "100K Ultra", (540, 1080), (1.15, 1.45)
    elif distance_km <= 170:
        category, label, finish, fatigue = "100m", "100 Mile Ultra", (900, 1800), (1.25, 1.60)
    else:
        category, label, finish, fatigue = "multi-day", "Multi-Day Ultra", (1440, 4320), (1.35, 1.80)

    return {
        "category": category,
        "label": label,
        "typical_finish_time_range": {"min": finish[0], "max": finish[1]},
        "fatigue_multiplier_range": {"min": fatigue[0], "max": fatigue[1]},
    }
