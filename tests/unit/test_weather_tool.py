"""Tests for the getWeather tool."""

import httpx
import pytest

from backend.app.tools.weather import fetch_weather

FORECAST = {
    "latitude": 48.86,
    "longitude": 2.35,
    "current": {"time": "2025-12-01T10:00", "temperature_2m": 9.4},
    "hourly": {"time": ["2025-12-01T00:00", "2025-12-01T01:00"], "temperature_2m": [7.1, 6.8]},
    "daily": {"time": ["2025-12-01"], "sunrise": ["2025-12-01T08:21"], "sunset": ["2025-12-01T16:56"]},
}


@pytest.mark.asyncio
async def test_fetch_weather_returns_open_meteo_body() -> None:
    """The response body is handed to the model unchanged."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=FORECAST)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

    result = await fetch_weather(48.8566, 2.3522, client=client)

    assert result == FORECAST
    params = seen[0].url.params
    assert params["latitude"] == "48.8566"
    assert params["longitude"] == "2.3522"
    assert params["current"] == "temperature_2m"
    assert params["hourly"] == "temperature_2m"
    assert params["daily"] == "sunrise,sunset"
    assert params["timezone"] == "auto"
    assert seen[0].url.host == "api.open-meteo.com"


@pytest.mark.asyncio
async def test_fetch_weather_uses_configured_base_url() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.host == "weather.internal"
        return httpx.Response(200, json={})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

    assert await fetch_weather(0.0, 0.0, base_url="http://weather.internal/v1/forecast", client=client) == {}


@pytest.mark.asyncio
async def test_fetch_weather_raises_on_http_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"reason": "maintenance"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

    with pytest.raises(httpx.HTTPStatusError):
        await fetch_weather(48.8566, 2.3522, client=client)
