"""Tests for the HTTP time sources."""

from datetime import date

import aiohttp
import pytest

from homeassistant.core import HomeAssistant
from homeassistant.helpers.aiohttp_client import async_get_clientsession
from pytest_homeassistant_custom_component.test_util.aiohttp import AiohttpClientMocker

from custom_components.prayer_reminders.const import ALADHAN_URL, REGIONAL_URL
from custom_components.prayer_reminders.exceptions import SourceUnavailableError
from custom_components.prayer_reminders.models import JuristicSchool
from custom_components.prayer_reminders.sources import (
    GlobalTimeSource,
    RegionalTimeSource,
)

from .common import ALADHAN_PAYLOAD, LONDON, REGIONAL_HTML

DAY = date(2024, 3, 15)


def test_parse_aladhan() -> None:
    response = GlobalTimeSource.parse(ALADHAN_PAYLOAD)
    assert response.timings == {
        "Fajr": "05:10",
        "Sunrise": "06:50",
        "Dhuhr": "12:05",
        "Asr": "15:30",
        "Maghrib": "18:02",
        "Isha": "19:30",
    }
    assert response.timezone == "America/Los_Angeles"
    assert response.hijri_date == "5 Ramadan 1445"
    assert response.gregorian_date == "15 March 2024"
    assert response.date == "15-03-2024"


@pytest.mark.parametrize(
    "payload",
    [
        None,
        {"code": 400, "data": "Invalid date"},
        {"code": 200, "data": {"timings": {}}},
    ],
)
def test_parse_aladhan_rejects_bad_payload(payload) -> None:
    with pytest.raises(SourceUnavailableError):
        GlobalTimeSource.parse(payload)


def test_parse_regional_table() -> None:
    response = RegionalTimeSource.parse(REGIONAL_HTML)
    assert response.timings == {
        "Fajr": "04:15",
        "Sunrise": "05:35",
        "Dhuhr": "11:37",
        "Asr": "03:00",
        "Maghrib": "05:42",
        "Isha": "07:12",
    }
    assert response.date == "15/03/2024"
    assert response.timezone is None


def test_parse_regional_without_times() -> None:
    with pytest.raises(SourceUnavailableError):
        RegionalTimeSource.parse("<html><body>Service unavailable</body></html>")


async def test_global_fetch_sends_location_and_school(
    hass: HomeAssistant, aioclient_mock: AiohttpClientMocker
) -> None:
    aioclient_mock.get(ALADHAN_URL.format(date="15-03-2024"), json=ALADHAN_PAYLOAD)
    source = GlobalTimeSource(async_get_clientsession(hass), method=3)

    response = await source.async_fetch(LONDON, JuristicSchool.SHAFI, DAY)

    assert response.timings["Maghrib"] == "18:02"
    assert aioclient_mock.call_count == 1
    url = aioclient_mock.mock_calls[0][1]
    assert url.query["method"] == "3"
    assert url.query["school"] == "0"
    assert float(url.query["latitude"]) == pytest.approx(LONDON.latitude)


async def test_regional_fetch_sends_date_and_key(
    hass: HomeAssistant, aioclient_mock: AiohttpClientMocker
) -> None:
    aioclient_mock.get(REGIONAL_URL, text=REGIONAL_HTML)
    source = RegionalTimeSource(async_get_clientsession(hass), key="secret")

    response = await source.async_fetch(DAY)

    assert response.timings["Fajr"] == "04:15"
    url = aioclient_mock.mock_calls[0][1]
    assert url.query["date"] == "2024-03-15"
    assert url.query["key"] == "secret"


@pytest.mark.parametrize(
    "mock_kwargs",
    [
        {"status": 500},
        {"exc": aiohttp.ClientError("boom")},
        {"exc": TimeoutError()},
    ],
)
async def test_fetch_errors_become_source_unavailable(
    hass: HomeAssistant, aioclient_mock: AiohttpClientMocker, mock_kwargs: dict
) -> None:
    aioclient_mock.get(REGIONAL_URL, **mock_kwargs)
    source = RegionalTimeSource(async_get_clientsession(hass))

    with pytest.raises(SourceUnavailableError):
        await source.async_fetch(DAY)


async def test_non_json_global_body_is_source_unavailable(
    hass: HomeAssistant, aioclient_mock: AiohttpClientMocker
) -> None:
    aioclient_mock.get(
        ALADHAN_URL.format(date="15-03-2024"), text="<html>maintenance</html>"
    )
    source = GlobalTimeSource(async_get_clientsession(hass))

    with pytest.raises(SourceUnavailableError):
        await source.async_fetch(LONDON, JuristicSchool.HANAFI, DAY)


async def test_undecodable_regional_page_is_source_unavailable(
    hass: HomeAssistant, aioclient_mock: AiohttpClientMocker
) -> None:
    aioclient_mock.get(REGIONAL_URL, content=b"\xff\xfe\xfa<table>")
    source = RegionalTimeSource(async_get_clientsession(hass))

    with pytest.raises(SourceUnavailableError):
        await source.async_fetch(DAY)
