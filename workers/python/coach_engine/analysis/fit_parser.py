"""
FIT File Parser

Parses Garmin/ANT+ FIT files into the StreamTriple consumed by the terrain
and climb analyzers.

Uses the fitparse library to decode FIT files.
"""

import io
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from fitparse import FitFile

from .streams import StreamTriple

logger = logging.getLogger(__name__)


@dataclass
class FitRecord:
    """A single record sample extracted from a FIT file"""
    distance_m: Optional[float]
    elevation_m: Optional[float]
    time: Optional[datetime]
    heart_rate: Optional[int] = None


@dataclass
class FitActivityData:
    """Activity data extracted from a FIT file"""
    activity_type: Optional[str]
    start_time: Optional[datetime]
    total_distance_m: float
    total_elapsed_time_s: float
    total_timer_time_s: float
    records: List[FitRecord]


def parse_fit_content(fit_content: bytes) -> FitActivityData:
    """
    Parse FIT file content and extract session totals and record samples.

    Args:
        fit_content: Raw FIT file content as bytes

    Returns:
        FitActivityData containing all extracted data
    """
    fitfile = FitFile(io.BytesIO(fit_content))

    activity_type = None
    start_time = None
    total_distance_m = 0.0
    total_elapsed_time_s = 0.0
    total_timer_time_s = 0.0
    records: List[FitRecord] = []

    for record in fitfile.get_messages():
        record_type = record.name

        if record_type == 'session':
            for field in record.fields:
                if field.name == 'sport':
                    activity_type = str(field.value) if field.value else None
                elif field.name == 'start_time':
                    start_time = field.value
                elif field.name == 'total_distance':
                    total_distance_m = float(field.value) if field.value else 0.0
                elif field.name == 'total_elapsed_time':
                    total_elapsed_time_s = float(field.value) if field.value else 0.0
                elif field.name == 'total_timer_time':
                    total_timer_time_s = float(field.value) if field.value else 0.0

        elif record_type == 'record':
            distance = None
            elevation = None
            timestamp = None
            hr = None

            for field in record.fields:
                if field.name == 'distance':
                    distance = float(field.value) if field.value is not None else None
                elif field.name == 'altitude' or field.name == 'enhanced_altitude':
                    if field.value is not None:
                        elevation = float(field.value)
                elif field.name == 'timestamp':
                    timestamp = field.value
                elif field.name == 'heart_rate':
                    hr = int(field.value) if field.value is not None else None

            records.append(FitRecord(
                distance_m=distance,
                elevation_m=elevation,
                time=timestamp,
                heart_rate=hr,
            ))

    return FitActivityData(
        activity_type=activity_type,
        start_time=start_time,
        total_distance_m=total_distance_m,
        total_elapsed_time_s=total_elapsed_time_s,
        total_timer_time_s=total_timer_time_s,
        records=records,
    )


def fit_to_streams(fit_data: FitActivityData, activity_id: str = "unknown") -> StreamTriple:
    """
    Convert parsed FIT data to a StreamTriple.

    Records without distance or elevation are dropped. The heart-rate stream
    is only kept when every retained record carries a heart rate.

    Args:
        fit_data: Parsed FIT activity data
        activity_id: Optional ID for tracking

    Returns:
        StreamTriple for terrain analysis
    """
    usable = [
        r for r in fit_data.records
        if r.distance_m is not None and r.elevation_m is not None
    ]
    dropped = len(fit_data.records) - len(usable)
    if dropped:
        logger.debug(f"Dropped {dropped} FIT records without distance/elevation")

    heart_rate: Optional[List[float]] = None
    if usable and all(r.heart_rate is not None for r in usable):
        heart_rate = [float(r.heart_rate) for r in usable]

    duration_s = fit_data.total_timer_time_s or fit_data.total_elapsed_time_s
    if not duration_s:
        times = [r.time for r in usable if r.time is not None]
        if len(times) >= 2:
            duration_s = (times[-1] - times[0]).total_seconds()

    total_distance_km = None
    if fit_data.total_distance_m:
        total_distance_km = fit_data.total_distance_m / 1000

    return StreamTriple(
        distance_m=[r.distance_m for r in usable],
        elevation_m=[r.elevation_m for r in usable],
        heart_rate=heart_rate,
        total_duration_min=(duration_s or 0.0) / 60,
        total_distance_km=total_distance_km,
        activity_id=activity_id,
        activity_date=fit_data.start_time,
    )


def parse_fit_to_streams(fit_content: bytes, activity_id: str = "unknown") -> StreamTriple:
    """
    Parse a FIT file and convert it to activity streams.

    This is the main entry point for FIT file processing.

    Args:
        fit_content: Raw FIT file content as bytes
        activity_id: Optional ID for tracking

    Returns:
        StreamTriple for terrain analysis
    """
    fit_data = parse_fit_content(fit_content)
    return fit_to_streams(fit_data, activity_id)
