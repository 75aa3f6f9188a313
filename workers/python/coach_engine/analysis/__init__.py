"""
Analysis Module

Activity stream preprocessing, terrain segmentation and climb analysis.
"""

from .climb_analyzer import (
    analyze_activity_climbs,
    categorize_climb,
    ClimbAnalysisResult,
    ClimbAnalyzer,
    ClimbSegment,
    is_significant_climb,
    merge_climb_candidates,
)
from .fit_parser import FitActivityData, parse_fit_content, parse_fit_to_streams
from .grades import (
    classify_grade_bucket,
    classify_terrain_type,
    effort_multiplier,
    GradeBucket,
    TerrainType,
)
from .preprocessing import moving_average, smooth_elevation
from .streams import StreamTriple
from .terrain_segment_analyzer import (
    analyze_activity_terrain,
    build_grade_windows,
    TerrainSegment,
    TerrainSegmentAnalysisResult,
    TerrainSegmentAnalyzer,
)

__all__ = [
    "StreamTriple",
    "moving_average",
    "smooth_elevation",
    "GradeBucket",
    "TerrainType",
    "classify_grade_bucket",
    "classify_terrain_type",
    "effort_multiplier",
    "build_grade_windows",
    "TerrainSegmentAnalyzer",
    "TerrainSegment",
    "TerrainSegmentAnalysisResult",
    "analyze_activity_terrain",
    "ClimbAnalyzer",
    "ClimbSegment",
    "ClimbAnalysisResult",
    "analyze_activity_climbs",
    "categorize_climb",
    "is_significant_climb",
    "merge_climb_candidates",
    "FitActivityData",
    "parse_fit_content",
    "parse_fit_to_streams",
]
