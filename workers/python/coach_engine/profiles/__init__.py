"""
Profiles Module

Personalized pace-by-grade profiles and their cache.
"""

from .cache import PaceProfileCache, PaceProfileService
from .pace_profile import (
    calculate_pace_profile,
    FlatPaceMode,
    GradeBucketPace,
    PaceProfile,
)
from .store import (
    InMemoryPaceProfileStore,
    InMemoryTerrainAnalysisStore,
    PaceProfileStore,
    TerrainAnalysisStore,
)

__all__ = [
    "calculate_pace_profile",
    "FlatPaceMode",
    "GradeBucketPace",
    "PaceProfile",
    "PaceProfileCache",
    "PaceProfileService",
    "PaceProfileStore",
    "TerrainAnalysisStore",
    "InMemoryPaceProfileStore",
    "InMemoryTerrainAnalysisStore",
]
