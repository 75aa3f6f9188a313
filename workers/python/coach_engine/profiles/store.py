"""
Persistence boundary for terrain analyses and pace profiles.

The hosted backend owns the real tables; the worker only depends on these
protocols. Both records are keyed uniquely (activity id, athlete id) and
saved by upsert, so re-analysis overwrites instead of duplicating.
"""

import threading
from typing import Any, Dict, List, Optional, Protocol

from .pace_profile import PaceProfile


class TerrainAnalysisStore(Protocol):
    def save_analysis(self, athlete_id: str, analysis: Dict[str, Any]) -> None:
        ...

    def list_analyses(self, athlete_id: str) -> List[Dict[str, Any]]:
        ...


class PaceProfileStore(Protocol):
    def load_profile(self, athlete_id: str) -> Optional[Dict[str, Any]]:
        ...

    def save_profile(self, profile: PaceProfile) -> None:
        ...


class InMemoryTerrainAnalysisStore:
    """Terrain analysis records keyed by (athlete, activity)"""

    def __init__(self):
        self._records: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def save_analysis(self, athlete_id: str, analysis: Dict[str, Any]) -> None:
        activity_id = analysis["activity_id"]
        with self._lock:
            self._records.setdefault(athlete_id, {})[activity_id] = dict(analysis)

    def list_analyses(self, athlete_id: str) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._records.get(athlete_id, {}).values())


class InMemoryPaceProfileStore:
    """One pace profile record per athlete"""

    def __init__(self):
        self._profiles: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def load_profile(self, athlete_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._profiles.get(athlete_id)
            return dict(record) if record is not None else None

    def save_profile(self, profile: PaceProfile) -> None:
        with self._lock:
            self._profiles[profile.athlete_id] = profile.to_dict()
