from __future__ import annotations

import hashlib
import logging
import time
from typing import Any

import httpx
from django.conf import settings
from django.core.cache import cache

from refuel_planner.exceptions import ExternalServiceError, GeocodeError, InvalidAddressError
from refuel_planner.services.types import AddressText, Coordinates, GeoPoint, Location

logger = logging.getLogger(__name__)


class GeocodingClient:
    def __init__(self, api_key: str | None = None) -> None:
        self.api_key = settings.GOOGLE_MAPS_API_KEY if api_key is None else api_key
        self.google_url = settings.GOOGLE_GEOCODING_URL
        self.nominatim_url = settings.GEOCODING_BASE_URL.rstrip("/")
        self.timeout = settings.GEOCODING_TIMEOUT_SECONDS
        self.retry_count = settings.GEOCODING_RETRY_COUNT
        self.user_agent = settings.GEOCODING_USER_AGENT
        self.language = settings.GEOCODING_LANGUAGE

    @property
    def provider(self) -> str:
        return "google" if self.api_key else "nominatim"

    def resolve(self, location: Location) -> GeoPoint:
        if isinstance(location, Coordinates):
            return location.point
        if isinstance(location, AddressText):
            return self.geocode(location.formatted())
        raise TypeError(f"Unsupported location: {location!r}")

    def geocode(self, address: str) -> GeoPoint:
        if not address or not address.strip():
            raise InvalidAddressError("Address is empty and cannot be geocoded")

        provider = self.provider
        cache_key = self._cache_key(address, provider)
        cached = cache.get(cache_key)
        if cached:
            return GeoPoint(latitude=cached["latitude"], longitude=cached["longitude"])

        if provider == "nominatim":
            logger.debug("No Google key configured, geocoding %r with Nominatim", address)

        for attempt in range(self.retry_count + 1):
            try:
                if provider == "google":
                    point = self._geocode_google(address)
                else:
                    point = self._geocode_nominatim(address)
                cache.set(
                    cache_key,
                    {"latitude": point.latitude, "longitude": point.longitude},
                    timeout=settings.GEOCODE_CACHE_TTL_SECONDS,
                )
                return point
            except GeocodeError:
                raise
            except httpx.HTTPError as exc:
                if attempt >= self.retry_count:
                    raise ExternalServiceError("Geocoding request failed") from exc
                time.sleep(0.3 * (attempt + 1))
            except ValueError as exc:
                raise ExternalServiceError("Geocoding response is not valid JSON") from exc

        raise ExternalServiceError("Geocoding request failed")

    def _geocode_google(self, address: str) -> GeoPoint:
        response = httpx.get(
            self.google_url,
            params={"address": address, "key": self.api_key},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return self._parse_google(response.json())

    def _geocode_nominatim(self, address: str) -> GeoPoint:
        response = httpx.get(
            f"{self.nominatim_url}/search",
            params={
                "q": address,
                "format": "json",
                "limit": 1,
                "accept-language": self.language,
            },
            timeout=self.timeout,
            headers={
                "Accept": "application/json",
                "User-Agent": self.user_agent,
            },
        )
        response.raise_for_status()
        return self._parse_nominatim(response.json())

    @staticmethod
    def _cache_key(address: str, provider: str) -> str:
        digest = hashlib.sha256(f"{address.strip().lower()}|{provider}".encode()).hexdigest()
        return f"geocode:{digest}"

    @staticmethod
    def _parse_google(payload: Any) -> GeoPoint:
        results = payload.get("results") if isinstance(payload, dict) else None
        if not results:
            raise GeocodeError("Address could not be geocoded (Google)")

        try:
            location = results[0]["geometry"]["location"]
            return GeoPoint(latitude=float(location["lat"]), longitude=float(location["lng"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise GeocodeError("Invalid geocoding response (Google)") from exc

    @staticmethod
    def _parse_nominatim(payload: Any) -> GeoPoint:
        if not isinstance(payload, list) or not payload:
            raise GeocodeError("Address could not be geocoded (Nominatim)")

        first = payload[0]
        try:
            return GeoPoint(latitude=float(first["lat"]), longitude=float(first["lon"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise GeocodeError("Invalid geocoding response (Nominatim)") from exc
