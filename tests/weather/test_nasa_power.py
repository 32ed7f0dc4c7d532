import datetime as dt
import json
from pathlib import Path

import pytest

from farmsim.core.debug import ListDebugCollector
from farmsim.weather.base import UpstreamDataUnavailable
from farmsim.weather.nasa_power import NasaPowerWeatherProvider

FIXTURE = Path(__file__).parents[1] / "fixtures" / "nasa_power_daily.json"
START = dt.date(2025, 10, 1)
END = dt.date(2025, 10, 5)


class Resp:
    def __init__(self, payload=None, ok=True):
        self.payload = payload
        self.ok = ok

    def raise_for_status(self):
        if not self.ok:
            raise ValueError("HTTP 500")

    def json(self):
        return self.payload


def _session(get):
    return type("S", (), {"get": staticmethod(get)})()


def test_build_params():
    params = NasaPowerWeatherProvider()._build_params(6.5, 3.4, START, END)
    assert params == {
        "parameters": "T2M_MAX,T2M_MIN,PRECTOTCORR",
        "community": "AG",
        "start": "20251001",
        "end": "20251005",
        "latitude": "6.5",
        "longitude": "3.4",
        "format": "JSON",
    }


def test_parse_fixture():
    payload = json.loads(FIXTURE.read_text())
    df = NasaPowerWeatherProvider()._parse(payload, START, END)
    assert list(df.columns) == ["date", "precip_mm", "tmin_c", "tmax_c"]
    assert df["date"].tolist() == ["2025-10-01", "2025-10-02", "2025-10-03", "2025-10-04", "2025-10-05"]
    assert df["precip_mm"].tolist() == [0.0, 1.4, 7.9, 22.5, 0.0]
    # -999 is the fill value, so day 4 has no max temperature
    assert df["tmax_c"].isna().tolist() == [False, False, False, True, False]
    assert df["tmin_c"].notna().all()


def test_parse_accepts_legacy_precip_key():
    payload = {"properties": {"parameter": {"PRECTOT": {"20251001": 3.3}, "T2M_MAX": {}, "T2M_MIN": {}}}}
    df = NasaPowerWeatherProvider()._parse(payload, START, START)
    assert df["precip_mm"].tolist() == [3.3]


def test_parse_missing_days_default():
    payload = {"properties": {"parameter": {}}}
    df = NasaPowerWeatherProvider()._parse(payload, START, dt.date(2025, 10, 2))
    assert df["precip_mm"].tolist() == [0.0, 0.0]
    assert df["tmin_c"].isna().all()


def test_parse_rejects_payload_without_parameters():
    with pytest.raises(UpstreamDataUnavailable):
        NasaPowerWeatherProvider()._parse({"messages": ["bad request"]}, START, END)


def test_get_daily_sends_params_and_emits(monkeypatch):
    payload = json.loads(FIXTURE.read_text())
    seen = {}

    def fake_get(url, params=None, timeout=None):
        seen["url"] = url
        seen["params"] = params
        return Resp(payload)

    debug = ListDebugCollector()
    provider = NasaPowerWeatherProvider(debug=debug, session=_session(fake_get))
    df = provider.get_daily(6.5, 3.4, START, END)
    assert len(df) == 5
    assert seen["url"].endswith("/api/temporal/daily/point")
    assert seen["params"]["community"] == "AG"
    assert debug.stages() == ["weather.request", "weather.summary"]


def test_retries_then_succeeds(monkeypatch):
    payload = json.loads(FIXTURE.read_text())
    calls = {"count": 0}
    sleeps = []

    def fake_get(*_a, **_k):
        calls["count"] += 1
        if calls["count"] < 3:
            raise ValueError("boom")
        return Resp(payload)

    monkeypatch.setattr("farmsim.weather.nasa_power.time.sleep", lambda s: sleeps.append(s))
    debug = ListDebugCollector()
    provider = NasaPowerWeatherProvider(debug=debug, session=_session(fake_get))
    df = provider.get_daily(6.5, 3.4, START, END)
    assert calls["count"] == 3
    assert sleeps == [0.5, 1.0]
    assert not df.empty
    assert debug.stages().count("weather.retry") == 2


def test_final_failure_raises(monkeypatch):
    monkeypatch.setattr("farmsim.weather.nasa_power.time.sleep", lambda s: None)
    provider = NasaPowerWeatherProvider(session=_session(lambda *_a, **_k: Resp(ok=False)))
    with pytest.raises(UpstreamDataUnavailable):
        provider.get_daily(6.5, 3.4, START, END)


def test_end_before_start():
    with pytest.raises(ValueError):
        NasaPowerWeatherProvider().get_daily(0, 0, END, START)
