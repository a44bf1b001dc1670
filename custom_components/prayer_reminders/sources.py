"""HTTP clients for the regional and global prayer time sources."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import date

import aiohttp

from .const import (
    ALADHAN_URL,
    DEFAULT_METHOD,
    NAME_MAP,
    PRAYER_ORDER,
    REGIONAL_URL,
    REQUEST_TIMEOUT,
    USER_AGENT,
)
from .exceptions import SourceUnavailableError
from .models import Coordinate, JuristicSchool

_LOGGER = logging.getLogger(__name__)


@dataclass
class SourceResponse:
    """Raw answer from one source, times still as the source wrote them."""

    timings: dict[str, str]
    date: str = ""
    timezone: str | None = None
    hijri_date: str = ""
    gregorian_date: str = ""


class PrayerTimeSource:
    """Shared HTTP plumbing for prayer time sources."""

    name = "source"

    def __init__(self, session: aiohttp.ClientSession | None = None) -> None:
        """Use the given session, or open one per request."""
        self._session = session

    async def _async_get(self, url: str, params: dict, *, as_json: bool):
        try:
            if self._session is not None:
                return await self._async_request(self._session, url, params, as_json)
            async with aiohttp.ClientSession() as session:
                return await self._async_request(session, url, params, as_json)
        except (aiohttp.ClientError, asyncio.TimeoutError) as err:
            raise SourceUnavailableError(f"{self.name} request failed: {err}") from err
        except ValueError as err:
            # Undecodable body or invalid JSON on a 200 response
            raise SourceUnavailableError(
                f"{self.name} returned an unreadable body: {err}"
            ) from err

    async def _async_request(
        self, session: aiohttp.ClientSession, url: str, params: dict, as_json: bool
    ):
        _LOGGER.debug("%s: GET %s params=%s", self.name, url, params)
        async with session.get(
            url,
            params=params,
            headers={"User-Agent": USER_AGENT},
            timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT),
        ) as resp:
            resp.raise_for_status()
            if as_json:
                return await resp.json(content_type=None)
            return await resp.text()


class RegionalTimeSource(PrayerTimeSource):
    """Qatar MOI portal. Returns an HTML table of prayer names and times."""

    name = "qatar_moi"

    def __init__(
        self, session: aiohttp.ClientSession | None = None, key: str | None = None
    ) -> None:
        super().__init__(session)
        self._key = key

    async def async_fetch(self, day: date) -> SourceResponse:
        """Fetch the day's table. Times are returned uncorrected."""
        params = {"date": day.isoformat()}
        if self._key:
            params["key"] = self._key
        html = await self._async_get(REGIONAL_URL, params, as_json=False)
        return self.parse(html)

    @staticmethod
    def parse(html: str) -> SourceResponse:
        """Pair table headers with cells and normalize prayer names."""
        headers = [
            re.sub(r"<[^>]+>", "", m).strip()
            for m in re.findall(r"<th[^>]*>(.*?)</th>", html, re.DOTALL)
            if re.sub(r"<[^>]+>", "", m).strip()
        ]
        cells = [
            re.sub(r"<[^>]+>", "", m).strip()
            for m in re.findall(r"<td[^>]*>(.*?)</td>", html, re.DOTALL)
        ]

        times: dict[str, str] = {}
        calendar_date = ""
        for i, header in enumerate(headers):
            if i >= len(cells):
                break
            key = NAME_MAP.get(header.lower(), header)
            if key == "Date":
                calendar_date = cells[i]
            elif key in PRAYER_ORDER:
                times[key] = cells[i]

        if not times:
            raise SourceUnavailableError("Qatar MOI returned no prayer times")

        return SourceResponse(timings=times, date=calendar_date)


class GlobalTimeSource(PrayerTimeSource):
    """AlAdhan API. Authoritative for any coordinate."""

    name = "aladhan"

    def __init__(
        self, session: aiohttp.ClientSession | None = None, method: int = DEFAULT_METHOD
    ) -> None:
        super().__init__(session)
        self._method = method

    async def async_fetch(
        self, coordinate: Coordinate, school: JuristicSchool, day: date
    ) -> SourceResponse:
        """Fetch timings, dates and timezone for a coordinate."""
        url = ALADHAN_URL.format(date=day.strftime("%d-%m-%Y"))
        params = {
            "latitude": coordinate.latitude,
            "longitude": coordinate.longitude,
            "method": self._method,
            "school": int(school),
        }
        data = await self._async_get(url, params, as_json=True)
        return self.parse(data)

    @staticmethod
    def parse(data: dict) -> SourceResponse:
        """Extract cleaned timings plus Hijri/Gregorian labels and timezone."""
        if not isinstance(data, dict) or data.get("code") != 200 or not data.get("data"):
            raise SourceUnavailableError("AlAdhan returned an invalid response")

        payload = data["data"]
        raw_timings = payload.get("timings") or {}
        timings = {
            name: str(raw_timings[name]).split(" ")[0]
            for name in PRAYER_ORDER
            if raw_timings.get(name)
        }
        if not timings:
            raise SourceUnavailableError("AlAdhan returned no prayer times")

        dates = payload.get("date") or {}
        hijri = dates.get("hijri") or {}
        gregorian = dates.get("gregorian") or {}
        meta = payload.get("meta") or {}

        return SourceResponse(
            timings=timings,
            date=gregorian.get("date", ""),
            timezone=meta.get("timezone") or None,
            hijri_date=_date_label(hijri),
            gregorian_date=_date_label(gregorian),
        )


def _date_label(part: dict) -> str:
    """Format {"day": "1", "month": {"en": "Ramadan"}, "year": "1445"}."""
    if not part:
        return ""
    month = (part.get("month") or {}).get("en", "")
    return f"{part.get('day', '')} {month} {part.get('year', '')}".strip()
