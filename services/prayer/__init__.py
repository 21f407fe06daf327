"""
Prayer-time service exports.
"""

from .resolver import (
    CITY_IDS,
    DEFAULT_CITY_ID,
    PrayerTimeResolver,
    PrayerTimes,
    PrayerTimesUnavailable,
    city_id_for,
    format_prayer_times,
)

__all__ = [
    "PrayerTimeResolver",
    "PrayerTimes",
    "PrayerTimesUnavailable",
    "CITY_IDS",
    "DEFAULT_CITY_ID",
    "city_id_for",
    "format_prayer_times",
]
