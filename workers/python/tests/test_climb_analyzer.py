"""
Tests for Climb Analyzer

Climb detection, merging, significance, categories and VAM fatigue trend.
"""

import numpy as np
import pytest
from coach_engine.analysis.climb_analyzer import (
    analyze_activity_climbs,
    categorize_climb,
    ClimbAnalyzer,
    ClimbCandidate,
    ClimbSegment,
    detect_climb_candidates,
    is_significant_climb,
    merge_climb_candidates,
    span_grades,
    vam_fatigue_trend,
)
from coach_engine.analysis.streams import StreamTriple


def build_streams(sections, step_m=10.0, start_elevation=100.0, pace_min_km=6.0):
    """Synthetic stream from (length_m, grade_pct) sections"""
    distance = [0.0]
    elevation = [start_elevation]
    for length_m, grade in sections:
        for _ in range(int(round(length_m / step_m))):
            distance.append(distance[-1] + step_m)
            elevation.append(elevation[-1] + grade / 100 * step_m)

    return StreamTriple(
        distance_m=distance,
        elevation_m=elevation,
        total_duration_min=distance[-1] / 1000 * pace_min_km,
        activity_id="climbs",
    )

def noisy_streams(noise_m, seed=7):
    """1Hz-like recording: 3m spacing with Gaussian elevation noise"""
    streams = build_streams([(500, 0.0), (1500, 8.0), (500, 0.0)], step_m=3.0)
    rng = np.random.default_rng(seed)
    noise = rng.normal(0.0, noise_m, len(streams.elevation_m))
    streams.elevation_m = [e + float(n) for e, n in zip(streams.elevation_m, noise)]
    return streams


def make_climb(number, vam, distance_km=1.5):
    return ClimbSegment(
        climb_number=number,
        start_distance_m=0.0,
        end_distance_m=distance_km * 1000,
        distance_km=distance_km,
        elevation_gain_m=120.0,
        average_grade_percent=8.0,
        duration_min=10.0,
        vam_m_per_hour=vam,
        category="moderate",
    )


class TestClimbDetection:
    """Raw candidate detection on span grades"""

    def test_detects_steady_climb(self):
        """A 100m stretch at 10% is one candidate"""
        distance = [i * 10.0 for i in range(21)]
        elevation = [0.0] * 6 + [float(k) for k in range(1, 11)] + [10.0] * 5

        candidates = detect_climb_candidates(distance, elevation)

        assert len(candidates) == 1
        assert candidates[0].start_idx == 5
        assert candidates[0].end_idx == 15
        assert candidates[0].distance_m == pytest.approx(100.0)

    def test_short_bump_is_dropped(self):
        """Candidates shorter than 50m never become climbs"""
        distance = [i * 10.0 for i in range(11)]
        elevation = [0.0, 0.0, 0.0, 1.0, 2.0, 3.0, 3.0, 3.0, 3.0, 3.0, 3.0]

        assert detect_climb_candidates(distance, elevation) == []

    def test_gentle_grade_is_not_a_climb(self):
        """2% is below the climb threshold"""
        distance = [i * 10.0 for i in range(50)]
        elevation = [0.2 * i for i in range(50)]

        assert detect_climb_candidates(distance, elevation) == []

    def test_zero_length_interval_ignored(self):
        """Repeated distance samples do not break a climb"""
        distance = [0.0, 20.0, 40.0, 40.0, 60.0, 80.0]
        elevation = [0.0, 2.0, 4.0, 4.0, 6.0, 8.0]

        candidates = detect_climb_candidates(distance, elevation)

        assert len(candidates) == 1
        assert candidates[0].distance_m == pytest.approx(80.0)

    def test_span_grade_is_centered(self):
        """Each sample sees 25m to either side, truncated at the ends"""
        distance = [i * 10.0 for i in range(6)]
        elevation = [0.0, 0.0, 1.0, 2.0, 3.0, 4.0]

        grades = span_grades(distance, elevation)

        assert grades[0] == pytest.approx(1.0 / 20 * 100)
        assert grades[2] == pytest.approx(3.0 / 40 * 100)
        assert grades[5] == pytest.approx(2.0 / 20 * 100)

    def test_span_without_distance_has_no_grade(self):
        assert span_grades([5.0, 5.0], [1.0, 2.0]) == [None, None]

    def test_sawtooth_noise_does_not_split_climb(self):
        """±0.6m alternating jitter at 3m spacing still gives one climb"""
        distance = []
        elevation = []
        base = 0.0
        # 150m flat, 612m at 9%, 150m flat
        for i in range(305):
            if 50 < i <= 254:
                base += 0.27
            distance.append(i * 3.0)
            elevation.append(base + (0.6 if i % 2 else -0.6))

        candidates = detect_climb_candidates(distance, elevation)

        assert len(candidates) == 1
        assert candidates[0].start_idx == 48
        assert candidates[0].end_idx == 256


class TestClimbMerging:
    """Merging candidates across short non-climb gaps"""

    def test_short_gap_is_merged(self):
        """A 30m gap is bridged"""
        candidates = [
            ClimbCandidate(0, 10, 0.0, 100.0),
            ClimbCandidate(13, 30, 130.0, 300.0),
        ]

        merged = merge_climb_candidates(candidates)

        assert merged == [ClimbCandidate(0, 30, 0.0, 300.0)]

    def test_gap_at_threshold_is_not_merged(self):
        """A gap of exactly 50m keeps climbs separate"""
        candidates = [
            ClimbCandidate(0, 10, 0.0, 100.0),
            ClimbCandidate(15, 30, 150.0, 300.0),
        ]

        assert len(merge_climb_candidates(candidates)) == 2

    def test_chain_of_short_gaps(self):
        """Several close candidates collapse into one"""
        candidates = [
            ClimbCandidate(0, 10, 0.0, 100.0),
            ClimbCandidate(12, 20, 120.0, 200.0),
            ClimbCandidate(24, 40, 240.0, 400.0),
        ]

        assert merge_climb_candidates(candidates) == [ClimbCandidate(0, 40, 0.0, 400.0)]

    def test_merge_is_idempotent(self):
        """Merging an already merged list changes nothing"""
        candidates = [
            ClimbCandidate(0, 10, 0.0, 100.0),
            ClimbCandidate(13, 30, 130.0, 300.0),
            ClimbCandidate(40, 50, 400.0, 500.0),
            ClimbCandidate(54, 60, 540.0, 600.0),
            ClimbCandidate(80, 90, 800.0, 900.0),
        ]

        once = merge_climb_candidates(candidates)

        assert merge_climb_candidates(once) == once
        assert len(once) == 3


class TestSignificanceAndCategory:
    """Tests for the significance filter and difficulty categories"""

    def test_thresholds_are_inclusive(self):
        assert is_significant_climb(80.0, 400.0)

    def test_just_below_thresholds(self):
        assert not is_significant_climb(79.9, 400.0)
        assert not is_significant_climb(80.0, 399.9)

    def test_categories(self):
        assert categorize_climb(2.0, 100.0) == "easy"
        assert categorize_climb(6.0, 200.0) == "moderate"
        assert categorize_climb(10.0, 800.0) == "hard"
        assert categorize_climb(15.0, 1000.0) == "extreme"

    def test_category_boundaries_go_up(self):
        """Scores of exactly 4 and 7 fall into the harder category"""
        assert categorize_climb(6.0, 200.0) == "moderate"
        assert categorize_climb(10.0, 400.0) == "hard"
        assert categorize_climb(12.0, 800.0) == "extreme"


class TestVamFatigueTrend:
    """Distance-weighted VAM trend across climbs"""

    def test_declining_vam(self):
        """Equal-length climbs losing 100 m/h each"""
        climbs = [make_climb(1, 1000.0), make_climb(2, 900.0), make_climb(3, 800.0)]

        slope, dropoff = vam_fatigue_trend(climbs)

        assert slope == pytest.approx(-11.11)
        assert dropoff == pytest.approx(20.0)

    def test_fewer_than_three_climbs(self):
        """Two climbs are not enough to measure a trend"""
        climbs = [make_climb(1, 1000.0), make_climb(2, 800.0)]

        assert vam_fatigue_trend(climbs) == (None, None)

    def test_zero_vam_climbs_ignored(self):
        climbs = [make_climb(1, 1000.0), make_climb(2, 0.0), make_climb(3, 800.0)]

        assert vam_fatigue_trend(climbs) == (None, None)

    def test_longer_climbs_weigh_more(self):
        """Distance weighting changes the fitted slope"""
        equal = [make_climb(1, 1000.0), make_climb(2, 700.0), make_climb(3, 800.0)]
        weighted = [
            make_climb(1, 1000.0, distance_km=1.0),
            make_climb(2, 700.0, distance_km=1.0),
            make_climb(3, 800.0, distance_km=4.0),
        ]

        assert vam_fatigue_trend(equal)[0] == pytest.approx(-12.0)
        assert vam_fatigue_trend(weighted)[0] == pytest.approx(-8.57)

    def test_improving_vam(self):
        climbs = [make_climb(1, 700.0), make_climb(2, 800.0), make_climb(3, 900.0)]

        slope, dropoff = vam_fatigue_trend(climbs)

        assert slope > 0
        assert dropoff < 0


class TestClimbAnalyzer:
    """End-to-end climb analysis"""

    def test_single_climb(self):
        """One 1.5km climb at 8% gives one climb and no trend"""
        streams = build_streams([(500, 0.0), (1500, 8.0), (500, 0.0)])

        result = ClimbAnalyzer(streams).analyze()

        assert result.significant_climb_count == 1
        climb = result.climbs[0]
        assert climb.climb_number == 1
        assert climb.elevation_gain_m == pytest.approx(120.0, abs=1.0)
        assert climb.distance_km == pytest.approx(1.5, abs=0.05)
        assert 0 < climb.duration_min < streams.total_duration_min
        assert climb.vam_m_per_hour > 0
        assert result.peak_vam == climb.vam_m_per_hour
        assert result.vam_fatigue_slope_pct is None
        assert result.vam_first_to_last_dropoff_pct is None

    def test_fading_climbs_show_negative_trend(self):
        """Climbs at 13%, 9% and 7% ascend progressively slower"""
        streams = build_streams([
            (500, 0.0), (1500, 13.0),
            (500, 0.0), (1500, 9.0),
            (500, 0.0), (1500, 7.0),
            (500, 0.0),
        ])

        result = ClimbAnalyzer(streams).analyze()

        assert result.significant_climb_count == 3
        vams = [c.vam_m_per_hour for c in result.climbs]
        assert vams[0] > vams[1] > vams[2]
        assert result.first_climb_vam == vams[0]
        assert result.last_climb_vam == vams[2]
        assert result.vam_fatigue_slope_pct < 0
        assert result.vam_first_to_last_dropoff_pct > 0

    def test_noisy_gps_keeps_single_climb(self):
        """Half a meter of elevation noise at 3m spacing does not break the climb"""
        result = ClimbAnalyzer(noisy_streams(0.5)).analyze()

        assert result.significant_climb_count == 1
        climb = result.climbs[0]
        assert 450 < climb.start_distance_m < 550
        assert 1950 < climb.end_distance_m < 2050
        assert 100 < climb.elevation_gain_m < 150
        assert climb.vam_m_per_hour > 0

    def test_very_noisy_gps_keeps_single_climb(self):
        result = ClimbAnalyzer(noisy_streams(1.0, seed=11)).analyze()

        assert result.significant_climb_count == 1
        assert result.climbs[0].elevation_gain_m >= 80

    def test_small_hill_is_not_significant(self):
        """A 300m climb at 10% gains only 30m"""
        streams = build_streams([(500, 0.0), (300, 10.0), (500, 0.0)])

        result = ClimbAnalyzer(streams).analyze()

        assert result.climbs == []

    def test_flat_activity_has_no_climbs(self):
        """A flat run yields an empty climb list, not None"""
        result = ClimbAnalyzer(build_streams([(5000, 0.0)])).analyze()

        assert result is not None
        assert result.climbs == []
        assert result.significant_climb_count == 0
        assert result.peak_vam is None
        assert result.vam_fatigue_slope_pct is None

    def test_insufficient_streams(self):
        streams = StreamTriple([0.0], [100.0], total_duration_min=1.0, total_distance_km=1.0)

        assert ClimbAnalyzer(streams).analyze() is None

    def test_climb_time_never_exceeds_activity(self):
        """A run that is one long climb cannot allocate more than its duration"""
        streams = build_streams([(2000, 12.0)])

        result = ClimbAnalyzer(streams).analyze()

        assert result.total_climbing_time_min <= streams.total_duration_min

    def test_convenience_function(self):
        result = analyze_activity_climbs(build_streams([(500, 0.0), (1500, 8.0), (500, 0.0)]))

        assert result["significant_climb_count"] == 1
        assert isinstance(result["climbs"][0], dict)
        assert result["climbs"][0]["category"] in ("easy", "moderate", "hard", "extreme")
