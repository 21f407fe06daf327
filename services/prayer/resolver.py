"""
Prayer-time resolver.

Primary source: Aladhan (timingsByCity).
Fallback source: MyQuran (city id lookup, Indonesian cities only).

Any primary failure (network error, non-200, missing fields) falls through
to the fallback. If both fail, PrayerTimesUnavailable carries both errors.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

# MyQuran city ids
CITY_IDS: Dict[str, str] = {
    "jakarta": "1301",
    "bandung": "3273",
    "surabaya": "3578",
    "medan": "1275",
    "semarang": "3374",
}
DEFAULT_CITY_ID = "1301"

# Display name → Aladhan timing key
ALADHAN_TIMINGS = {
    "subuh": "Fajr",
    "dzuhur": "Dhuhr",
    "ashar": "Asr",
    "maghrib": "Maghrib",
    "isya": "Isha",
}
PRAYER_NAMES = tuple(ALADHAN_TIMINGS)


class PrayerTimesUnavailable(Exception):
    """Both prayer-time sources failed."""

    def __init__(self, city: str, primary_error: str, fallback_error: str):
        self.city = city
        self.primary_error = primary_error
        self.fallback_error = fallback_error
        super().__init__(
            f"Prayer times unavailable for {city}: "
            f"aladhan: {primary_error}; myquran: {fallback_error}"
        )


@dataclass
class PrayerTimes:
    city: str
    date: str
    source: str  # aladhan | myquran
    timings: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def city_id_for(city: str) -> str:
    """MyQuran city id; case-insensitive, unmapped cities use Jakarta."""
    return CITY_IDS.get((city or "").strip().lower(), DEFAULT_CITY_ID)


def format_prayer_times(times: PrayerTimes) -> str:
    """Chat-friendly rendering of a prayer schedule."""
    t = times.timings
    return (
        f"🕌 *Jadwal Sholat {times.city.title()}*\n"
        f"📅 {times.date}\n\n"
        f"🌅 Subuh: {t.get('subuh', '-')}\n"
        f"☀️ Dzuhur: {t.get('dzuhur', '-')}\n"
        f"🌤️ Ashar: {t.get('ashar', '-')}\n"
        f"🌇 Maghrib: {t.get('maghrib', '-')}\n"
        f"🌙 Isya: {t.get('isya', '-')}\n\n"
        f"_Sumber: {times.source}_"
    )


class PrayerTimeResolver:
    """Resolve today's prayer times for a city, with fallback."""

    def __init__(
        self,
        primary_base: str = "https://api.aladhan.com/v1",
        fallback_base: str = "https://api.myquran.com/v2",
        timeout: float = 10.0,
        country: str = "ID",
        method: int = 2,
    ):
        self.primary_base = primary_base.rstrip("/")
        self.fallback_base = fallback_base.rstrip("/")
        self.timeout = timeout
        self.country = country
        self.method = method

    async def resolve(self, city: str, on_date: Optional[date] = None) -> PrayerTimes:
        """
        Raises:
            PrayerTimesUnavailable: both sources failed
        """
        try:
            return await self._from_aladhan(city)
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as e:
            primary_error = str(e) or type(e).__name__
            logger.warning(f"Aladhan lookup failed for {city}, trying MyQuran: {primary_error}")

        try:
            return await self._from_myquran(city, on_date or date.today())
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as e:
            fallback_error = str(e) or type(e).__name__
            logger.error(f"MyQuran lookup failed for {city}: {fallback_error}")
            raise PrayerTimesUnavailable(city, primary_error, fallback_error)

    async def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(url, params=params)
        response.raise_for_status()
        return response.json()

    async def _from_aladhan(self, city: str) -> PrayerTimes:
        body = await self._get_json(
            f"{self.primary_base}/timingsByCity",
            params={"city": city, "country": self.country, "method": self.method},
        )
        data = body.get("data") or {}
        if body.get("code") != 200 or not data.get("timings"):
            raise ValueError(f"Unexpected Aladhan response (code={body.get('code')})")

        timings = data["timings"]
        return PrayerTimes(
            city=city,
            date=data.get("date", {}).get("readable", ""),
            source="aladhan",
            timings={name: timings[key] for name, key in ALADHAN_TIMINGS.items()},
        )

    async def _from_myquran(self, city: str, day: date) -> PrayerTimes:
        city_id = city_id_for(city)
        body = await self._get_json(
            f"{self.fallback_base}/sholat/jadwal/{city_id}/{day.year}/{day.month:02d}/{day.day:02d}"
        )
        data = body.get("data")
        if not body.get("status") or not data:
            raise ValueError("Unexpected MyQuran response")

        schedule = data.get("jadwal", data)
        return PrayerTimes(
            city=city,
            date=f"{day.day:02d}/{day.month:02d}/{day.year}",
            source="myquran",
            timings={name: schedule[name] for name in PRAYER_NAMES},
        )
