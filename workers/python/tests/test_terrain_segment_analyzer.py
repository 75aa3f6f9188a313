"""
Tests for Terrain Segment Analyzer

Rolling-window grade classification, segment merging by grade bucket and
effort-weighted time allocation.
"""

import math

import pytest
from coach_engine.analysis.grades import GradeBucket
from coach_engine.analysis.streams import StreamTriple
from coach_engine.analysis.terrain_segment_analyzer import (
    analyze_activity_terrain,
    build_grade_windows,
    TerrainSegmentAnalysisResult,
    TerrainSegmentAnalyzer,
)
from coach_engine.config import EngineConfig


def build_streams(sections, step_m=10.0, start_elevation=100.0, pace_min_km=6.0,
                  heart_rate=None, activity_id="synthetic"):
    """
    Synthetic stream from (length_m, grade_pct) sections sampled every step_m.
    """
    distance = [0.0]
    elevation = [start_elevation]
    for length_m, grade in sections:
        for _ in range(int(round(length_m / step_m))):
            distance.append(distance[-1] + step_m)
            elevation.append(elevation[-1] + grade / 100 * step_m)

    total_km = distance[-1] / 1000
    hr = [heart_rate] * len(distance) if heart_rate is not None else None
    return StreamTriple(
        distance_m=distance,
        elevation_m=elevation,
        heart_rate=hr,
        total_duration_min=total_km * pace_min_km,
        activity_id=activity_id,
    )


HILLY_SECTIONS = [(1000, 0.0), (1000, 9.0), (1000, 0.0), (1000, -9.0), (1000, 0.0)]


class TestBuildGradeWindows:
    """Tests for distance-based rolling windows"""

    def test_windows_are_contiguous(self):
        """Each window starts where the previous one ended"""
        distance = [i * 10.0 for i in range(101)]
        windows = build_grade_windows(distance, [0.0] * 101)

        for prev, window in zip(windows, windows[1:]):
            assert window.start_idx == prev.end_idx

    def test_windows_reach_target_distance(self):
        """All but the trailing window span at least 150m"""
        distance = [i * 7.0 for i in range(200)]
        windows = build_grade_windows(distance, [0.0] * 200)

        for window in windows[:-1]:
            assert window.distance_m >= 150.0

    def test_irregular_sampling(self):
        """Sparse samples produce fewer, longer windows"""
        distance = [0.0, 40.0, 400.0, 420.0, 700.0]
        elevation = [0.0, 2.0, 20.0, 21.0, 35.0]
        windows = build_grade_windows(distance, elevation)

        assert [(w.start_idx, w.end_idx) for w in windows] == [(0, 2), (2, 4)]
        assert windows[0].grade_percent == pytest.approx(5.0)

    def test_short_tail_window_skipped(self):
        """A trailing window under 10m is dropped"""
        windows = build_grade_windows([0.0, 150.0, 155.0], [0.0, 0.0, 1.0])

        assert len(windows) == 1
        assert windows[0].end_idx == 1

    def test_window_grade_bucket(self):
        """Windows are classified into grade buckets"""
        distance = [0.0, 150.0]
        windows = build_grade_windows(distance, [0.0, 30.0])

        assert windows[0].grade_percent == pytest.approx(20.0)
        assert windows[0].grade_bucket == GradeBucket.CLIMBING


class TestTerrainSegmentAnalyzer:
    """Tests for TerrainSegmentAnalyzer"""

    def test_analyze_returns_result(self):
        result = TerrainSegmentAnalyzer(build_streams(HILLY_SECTIONS, activity_id="hilly")).analyze()

        assert isinstance(result, TerrainSegmentAnalysisResult)
        assert result.activity_id == "hilly"
        assert result.total_distance_km == pytest.approx(5.0)

    def test_durations_sum_to_activity_duration(self):
        """Allocated segment time always adds up to the recorded time"""
        streams = build_streams(HILLY_SECTIONS, pace_min_km=6.5)
        result = TerrainSegmentAnalyzer(streams).analyze()

        total = sum(s.duration_min for s in result.segments)
        assert total == pytest.approx(streams.total_duration_min, rel=1e-9)

    def test_durations_sum_with_irregular_sampling(self):
        """The allocation invariant holds for uneven sample spacing"""
        distance = [0.0]
        elevation = [50.0]
        for i in range(1, 400):
            distance.append(distance[-1] + (3.0 if i % 3 else 17.0))
            elevation.append(50.0 + 40.0 * math.sin(i / 40.0))
        streams = StreamTriple(distance, elevation, total_duration_min=41.3)

        result = TerrainSegmentAnalyzer(streams).analyze()

        assert sum(s.duration_min for s in result.segments) == pytest.approx(41.3)

    def test_time_allocated_by_effort_not_distance(self):
        """Pace divided by the effort multiplier is the same for every segment"""
        result = TerrainSegmentAnalyzer(build_streams(HILLY_SECTIONS)).analyze()

        normalized = [s.pace_min_km / s.effort_multiplier for s in result.segments]
        for value in normalized:
            assert value == pytest.approx(normalized[0])

        uphill = [s for s in result.segments if s.grade_bucket == "hard_uphill"]
        flat = [s for s in result.segments if s.grade_bucket == "flat"]
        assert uphill[0].pace_min_km > flat[0].pace_min_km

    def test_identifies_buckets(self):
        """A 9% climb and descent land in the hard buckets"""
        result = TerrainSegmentAnalyzer(build_streams(HILLY_SECTIONS)).analyze()
        buckets = {s.grade_bucket for s in result.segments}

        assert "hard_uphill" in buckets
        assert "hard_downhill" in buckets
        assert "flat" in buckets

    def test_consecutive_segments_differ_in_bucket(self):
        """A new segment starts only when the bucket changes"""
        result = TerrainSegmentAnalyzer(build_streams(HILLY_SECTIONS)).analyze()

        for prev, segment in zip(result.segments, result.segments[1:]):
            assert prev.grade_bucket != segment.grade_bucket
            assert segment.start_distance_km == pytest.approx(prev.end_distance_km)

    def test_segment_terrain_type_follows_bucket(self):
        result = TerrainSegmentAnalyzer(build_streams(HILLY_SECTIONS)).analyze()

        for segment in result.segments:
            assert segment.terrain_type == GradeBucket(segment.grade_bucket).terrain_type.value

    def test_summary_per_terrain_type(self):
        result = TerrainSegmentAnalyzer(build_streams(HILLY_SECTIONS)).analyze()

        for terrain in ("uphill", "downhill", "flat"):
            assert terrain in result.summary
            assert result.summary[terrain]["segment_count"] > 0
        assert result.summary["total_segments"] == len(result.segments)
        assert result.uphill_pace_min_km > result.flat_pace_min_km

    def test_elevation_gain_and_loss(self):
        """A 90m climb and 90m descent are measured on the smoothed stream"""
        result = TerrainSegmentAnalyzer(build_streams(HILLY_SECTIONS)).analyze()

        assert result.total_elevation_gain_m == pytest.approx(90.0, abs=0.5)
        assert result.total_elevation_loss_m == pytest.approx(90.0, abs=0.5)

    def test_average_heart_rate(self):
        result = TerrainSegmentAnalyzer(build_streams(HILLY_SECTIONS, heart_rate=152.0)).analyze()

        for segment in result.segments:
            assert segment.average_heart_rate == pytest.approx(152.0)

    def test_no_heart_rate(self):
        result = TerrainSegmentAnalyzer(build_streams(HILLY_SECTIONS)).analyze()

        assert all(s.average_heart_rate is None for s in result.segments)

    def test_config_window_size(self):
        """Larger windows produce no more segments than small ones"""
        streams = build_streams(HILLY_SECTIONS)
        small = TerrainSegmentAnalyzer(streams, EngineConfig(terrain_window_m=50.0)).analyze()
        large = TerrainSegmentAnalyzer(streams, EngineConfig(terrain_window_m=500.0)).analyze()

        assert len(large.segments) <= len(small.segments)

    def test_to_dict_round_trip(self):
        """Persisted records can be read back for profiling"""
        result = TerrainSegmentAnalyzer(build_streams(HILLY_SECTIONS)).analyze()
        restored = TerrainSegmentAnalysisResult.from_dict(result.to_dict())

        assert restored.segments == result.segments
        assert restored.total_duration_min == result.total_duration_min


class TestNoTerrainSignal:
    """Insufficient signal yields None, never a degenerate result"""

    def test_constant_elevation(self):
        """A 10km run with no elevation change has no terrain analysis"""
        streams = build_streams([(10000, 0.0)])

        assert TerrainSegmentAnalyzer(streams).analyze() is None

    def test_ten_meters_over_ten_km_is_insufficient(self):
        """10m of range is below the 100m required for 10km"""
        n = 1001
        streams = StreamTriple(
            distance_m=[i * 10.0 for i in range(n)],
            elevation_m=[10.0 * i / (n - 1) for i in range(n)],
            total_duration_min=55.0,
        )

        assert TerrainSegmentAnalyzer(streams).analyze() is None

    def test_exactly_threshold_range_is_analyzed(self):
        """A 100m range over exactly 10km meets the threshold; 1% is all flat"""
        n = 1001
        streams = StreamTriple(
            distance_m=[i * 10.0 for i in range(n)],
            elevation_m=[100.0 * i / (n - 1) for i in range(n)],
            total_duration_min=55.0,
        )

        result = TerrainSegmentAnalyzer(streams).analyze()

        assert result is not None
        assert {s.grade_bucket for s in result.segments} == {"flat"}
        assert result.flat_distance_km == pytest.approx(10.0)
        assert result.uphill_distance_km == 0
        assert result.uphill_pace_min_km is None
        assert result.downhill_pace_min_km is None
        assert result.flat_pace_min_km == pytest.approx(5.5)

    def test_ten_meters_over_one_km_is_borderline(self):
        """For short activities the 10m floor applies"""
        n = 101
        streams = StreamTriple(
            distance_m=[i * 10.0 for i in range(n)],
            elevation_m=[10.0 * i / (n - 1) for i in range(n)],
            total_duration_min=6.0,
        )

        assert TerrainSegmentAnalyzer(streams).analyze() is not None

    def test_single_sample(self):
        streams = StreamTriple([0.0], [100.0], total_duration_min=1.0, total_distance_km=1.0)
        assert TerrainSegmentAnalyzer(streams).analyze() is None

    def test_mismatched_streams(self):
        streams = StreamTriple([0.0, 100.0, 200.0], [100.0, 150.0], total_duration_min=1.0)
        assert TerrainSegmentAnalyzer(streams).analyze() is None

    def test_convenience_function_returns_none(self):
        assert analyze_activity_terrain(build_streams([(2000, 0.0)])) is None

    def test_non_finite_input_raises(self):
        """Malformed numbers are a fault, not missing data"""
        streams = build_streams(HILLY_SECTIONS)
        streams.elevation_m[10] = math.nan

        with pytest.raises(ValueError, match="elevation_m"):
            TerrainSegmentAnalyzer(streams).analyze()
