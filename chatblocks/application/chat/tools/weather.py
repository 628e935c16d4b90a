"""getWeather tool: current, hourly and daily forecast for a coordinate."""

import logging
from typing import Any, Dict

import httpx
from pydantic import BaseModel, Field

from chatblocks.domain.errors import ToolError

from .registry import ToolContext

logger = logging.getLogger(__name__)

DESCRIPTION = "Get the current weather at a location"


class GetWeatherArgs(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class WeatherTool:
    """Fetches forecast JSON from an Open-Meteo compatible API."""

    def __init__(self, api_url: str, timeout: float = 10.0):
        self.api_url = api_url
        self.timeout = timeout

    async def __call__(self, context: ToolContext, args: GetWeatherArgs) -> Dict[str, Any]:
        params = {
            "latitude": args.latitude,
            "longitude": args.longitude,
            "current": "temperature_2m",
            "hourly": "temperature_2m",
            "daily": "sunrise,sunset",
            "timezone": "auto",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.api_url, params=params)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPError as exc:
            logger.error("Weather lookup failed: %s", exc, exc_info=True)
            raise ToolError("Weather lookup failed") from exc
