from farmsim.core.debug import ListDebugCollector
from farmsim.weather.geocode import FALLBACK_LABEL, NominatimReverseGeocoder, format_place


class Resp:
    def __init__(self, payload, ok=True):
        self.payload = payload
        self.ok = ok

    def raise_for_status(self):
        if not self.ok:
            raise ValueError("HTTP 429")

    def json(self):
        return self.payload


def _geocoder(get, debug=None):
    geocoder = NominatimReverseGeocoder(debug=debug)
    geocoder.session = type("S", (), {"get": staticmethod(get)})()
    return geocoder


def test_format_place_prefers_display_name():
    assert format_place({"display_name": "Ibadan, Oyo, Nigeria", "address": {"city": "X"}}) == "Ibadan, Oyo, Nigeria"


def test_format_place_from_address_parts():
    assert format_place({"address": {"town": "Ede", "country": "Nigeria"}}) == "Ede, Nigeria"
    assert format_place({"address": {"village": "Iseyin"}}) == "Iseyin"
    assert format_place({}) == "Unknown"


def test_reverse_sends_user_agent_and_params():
    seen = {}

    def fake_get(url, params=None, headers=None, timeout=None):
        seen.update(url=url, params=params, headers=headers)
        return Resp({"display_name": "Kano, Nigeria"})

    debug = ListDebugCollector()
    name = _geocoder(fake_get, debug).reverse(12.0, 8.5)
    assert name == "Kano, Nigeria"
    assert seen["params"] == {"lat": "12.0", "lon": "8.5", "format": "json"}
    assert "User-Agent" in seen["headers"]
    assert debug.stages() == ["geocode.resolved"]


def test_failures_yield_generic_label():
    def boom(*_a, **_k):
        raise ConnectionError("offline")

    debug = ListDebugCollector()
    assert _geocoder(boom, debug).reverse(0, 0) == FALLBACK_LABEL
    assert debug.stages() == ["geocode.failed"]
    assert _geocoder(lambda *_a, **_k: Resp({}, ok=False)).reverse(0, 0) == FALLBACK_LABEL
    assert _geocoder(lambda *_a, **_k: Resp({"error": "Unable to geocode"})).reverse(0, 0) == FALLBACK_LABEL
