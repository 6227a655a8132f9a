"""getWeather tool backed by Open-Meteo (keyless, free tier)."""

from typing import Any

import httpx
from pydantic import BaseModel

from backend.app.tools.context import ToolContext


class GetWeatherArgs(BaseModel):
    latitude: float
    longitude: float


async def fetch_weather(
    latitude: float,
    longitude: float,
    base_url: str = "https://api.open-meteo.com/v1/forecast",
    client: httpx.AsyncClient | None = None,
    timeout: float = 4.0,
) -> dict[str, Any]:
    """Fetch current, hourly and daily weather for a location.

    Args:
        latitude: Latitude in degrees
        longitude: Longitude in degrees
        base_url: Open-Meteo API base URL
        client: Optional httpx client (for testing with mocks)
        timeout: Request timeout in seconds when no client is given

    Returns:
        The Open-Meteo response body

    Raises:
        httpx.HTTPError: On network or HTTP errors
    """
    # Docs: https://open-meteo.com/en/docs
    params: dict[str, str | float] = {
        "latitude": latitude,
        "longitude": longitude,
        "current": "temperature_2m",
        "hourly": "temperature_2m",
        "daily": "sunrise,sunset",
        "timezone": "auto",
    }

    close_client = False
    if client is None:
        client = httpx.AsyncClient(timeout=timeout)
        close_client = True

    try:
        response = await client.get(base_url, params=params)
        response.raise_for_status()
        return response.json()
    finally:
        if close_client:
            await client.aclose()


async def get_weather(tools: ToolContext, args: GetWeatherArgs) -> dict[str, Any]:
    return await fetch_weather(
        args.latitude,
        args.longitude,
        base_url=tools.settings.weather_base_url,
        client=tools.http_client,
        timeout=tools.settings.weather_timeout_seconds,
    )
