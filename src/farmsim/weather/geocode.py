"""Reverse geocoding of the farm location (OpenStreetMap Nominatim)."""

from __future__ import annotations

from typing import Any, Dict

import requests

from farmsim.core.debug import DebugCollector, NullDebugCollector

FALLBACK_LABEL = "Unknown location"


def format_place(payload: Dict[str, Any]) -> str:
    """Prefer ``display_name``; else ``"<city|town|village|Unknown>, <country>"``."""
    name = payload.get("display_name")
    if name:
        return str(name)
    address = payload.get("address") or {}
    place = address.get("city") or address.get("town") or address.get("village") or "Unknown"
    country = address.get("country") or ""
    return f"{place}, {country}".strip().rstrip(",")


class NominatimReverseGeocoder:
    def __init__(
        self,
        base_url: str = "https://nominatim.openstreetmap.org/reverse",
        debug: DebugCollector | None = None,
        session: requests.Session | None = None,
        user_agent: str = "farmsim/0.1 (educational farm game)",
        timeout: float = 10.0,
    ):
        self.base_url = base_url
        self.debug = debug or NullDebugCollector()
        self.session = session or requests.Session()
        self.user_agent = user_agent
        self.timeout = timeout

    def reverse(self, lat: float, lon: float) -> str:
        """Display name for a coordinate. Never raises; failures yield FALLBACK_LABEL."""
        params = {"lat": str(lat), "lon": str(lon), "format": "json"}
        try:
            resp = self.session.get(
                self.base_url,
                params=params,
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            payload = resp.json()
            if not isinstance(payload, dict) or "error" in payload:
                raise ValueError(f"unexpected reverse geocode payload: {payload!r}"[:200])
            name = format_place(payload)
        except Exception as exc:
            self.debug.emit("geocode.failed", {"lat": lat, "lon": lon, "error": str(exc)}, ts=None)
            return FALLBACK_LABEL
        self.debug.emit("geocode.resolved", {"lat": lat, "lon": lon, "name": name}, ts=None)
        return name


__all__ = ["NominatimReverseGeocoder", "format_place", "FALLBACK_LABEL"]
