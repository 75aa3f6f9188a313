"""
Pace profile cache with a staleness window.

A stale profile is still served immediately; a single background
recomputation is submitted and the caller never waits on it. Read and write
faults against the store are logged and degrade to a cache miss so a full
recomputation is always possible.
"""

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, Optional, Set

from ..config import DEFAULT_CONFIG, EngineConfig
from .pace_profile import calculate_pace_profile, PaceProfile
from .store import PaceProfileStore

logger = logging.getLogger(__name__)

# athlete_id -> that athlete's stored terrain analyses
HistorySource = Callable[[str], Iterable[Dict[str, Any]]]


class PaceProfileCache:
    """Explicit TTL cache in front of a PaceProfileStore"""

    def __init__(self, store: PaceProfileStore, ttl: timedelta = DEFAULT_CONFIG.profile_ttl):
        self.store = store
        self.ttl = ttl

    def get(self, athlete_id: str) -> Optional[PaceProfile]:
        try:
            record = self.store.load_profile(athlete_id)
        except Exception as e:
            logger.warning(f"Pace profile read failed for {athlete_id}, treating as miss: {e}")
            return None

        if record is None:
            return None

        try:
            return PaceProfile.from_dict(record)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable pace profile for {athlete_id}: {e}")
            return None

    def put(self, profile: PaceProfile) -> bool:
        try:
            self.store.save_profile(profile)
        except Exception as e:
            logger.warning(f"Pace profile write failed for {profile.athlete_id}: {e}")
            return False
        return True

    def is_stale(self, profile: PaceProfile, now: Optional[datetime] = None) -> bool:
        return profile.is_stale(self.ttl, now)


class PaceProfileService:
    """
    Get-or-calculate entry point for pace profiles.

    Fresh cached profiles are returned as is. Stale ones are returned
    while a recomputation runs on the executor. On a miss the profile is
    computed synchronously.
    """

    def __init__(
        self,
        cache: PaceProfileCache,
        history_source: HistorySource,
        executor: Optional[Executor] = None,
        config: EngineConfig = DEFAULT_CONFIG,
    ):
        self.cache = cache
        self.history_source = history_source
        self.config = config
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="pace-profile"
        )
        self._pending: Set[str] = set()
        self._lock = threading.Lock()

    def get_profile(self, athlete_id: str, now: Optional[datetime] = None) -> Optional[PaceProfile]:
        cached = self.cache.get(athlete_id)
        if cached is None:
            return self.recalculate(athlete_id, now)

        if self.cache.is_stale(cached, now):
            logger.info(f"Pace profile for {athlete_id} is stale, scheduling recalculation")
            self.schedule_recalculation(athlete_id)

        return cached

    def recalculate(self, athlete_id: str, now: Optional[datetime] = None) -> Optional[PaceProfile]:
        """Compute the profile from history and save it"""
        analyses = list(self.history_source(athlete_id))
        profile = calculate_pace_profile(
            athlete_id,
            analyses,
            now=now,
            flat_pace_mode=self.config.flat_pace_mode,
            flat_percentile=self.config.flat_percentile,
        )
        if profile is not None:
            self.cache.put(profile)
        return profile

    def schedule_recalculation(self, athlete_id: str) -> Optional[Future]:
        """Submit one background recomputation unless one is already queued"""
        with self._lock:
            if athlete_id in self._pending:
                return None
            self._pending.add(athlete_id)
        try:
            return self._executor.submit(self._recalculate_in_background, athlete_id)
        except Exception:
            logger.exception(f"Could not schedule pace profile recalculation for {athlete_id}")
            with self._lock:
                self._pending.discard(athlete_id)
            return None

    def _recalculate_in_background(self, athlete_id: str) -> None:
        try:
            self.recalculate(athlete_id)
        except Exception:
            logger.exception(f"Background pace profile recalculation failed for {athlete_id}")
        finally:
            with self._lock:
                self._pending.discard(athlete_id)
