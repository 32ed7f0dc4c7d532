"""Structured debug events for the game and its weather pipeline.

Every stage of a run (weather request, preprocessing, each player action, each
day change) can emit a JSON-safe event. Collectors decide where events go:
nowhere, an in-memory list (tests), a JSONL stream or a single JSON document.
"""
from __future__ import annotations

import datetime as _dt
import enum
import json
import math
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol


class DebugCollector(Protocol):
    def emit(self, stage: str, payload: Dict[str, Any], *, ts: Any, farm: Optional[str] = None, day: Optional[int] = None) -> None:
        ...


def _json_safe_scalar(val: Any) -> Any:
    """Convert common non-JSON types to safe representations."""
    if isinstance(val, enum.Enum):
        return val.value
    if isinstance(val, float) and math.isnan(val):
        return None
    if isinstance(val, (_dt.datetime, _dt.date, _dt.time)) or hasattr(val, "isoformat"):
        try:
            return val.isoformat()
        except Exception:
            return str(val)
    if hasattr(val, "item") and not isinstance(val, (str, bytes)):
        # numpy scalars
        try:
            return val.item()
        except Exception:
            return str(val)
    return val


def _ordered(obj: Any) -> Any:
    """Recursively order mappings for deterministic JSON dumps."""
    if isinstance(obj, dict):
        return {str(k): _ordered(obj[k]) for k in sorted(obj, key=str)}
    if isinstance(obj, (list, tuple)):
        return [_ordered(v) for v in obj]
    return _json_safe_scalar(obj)


def _event(stage: str, payload: Dict[str, Any], ts: Any, farm: Optional[str], day: Optional[int]) -> Dict[str, Any]:
    return {
        "stage": stage,
        "ts": _json_safe_scalar(ts),
        "farm": farm,
        "day": day,
        "payload": _ordered(payload),
    }


class NullDebugCollector:
    def emit(self, stage: str, payload: Dict[str, Any], *, ts: Any, farm: Optional[str] = None, day: Optional[int] = None) -> None:  # noqa: D401
        """Discard events (no-op)."""
        return


@dataclass
class ListDebugCollector:
    events: List[Dict[str, Any]] = field(default_factory=list)

    def emit(self, stage: str, payload: Dict[str, Any], *, ts: Any, farm: Optional[str] = None, day: Optional[int] = None) -> None:
        self.events.append(_event(stage, payload, ts, farm, day))

    def stages(self) -> List[str]:
        return [e["stage"] for e in self.events]


class JsonlDebugWriter:
    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = self.path.open("a", encoding="utf-8")
        # live-weather fetches emit from a worker thread
        self._lock = threading.Lock()

    def emit(self, stage: str, payload: Dict[str, Any], *, ts: Any, farm: Optional[str] = None, day: Optional[int] = None) -> None:
        line = json.dumps(_event(stage, payload, ts, farm, day), sort_keys=True)
        with self._lock:
            self._fh.write(line + "\n")
            self._fh.flush()

    def close(self) -> None:
        if not self._fh.closed:
            self._fh.close()

    def __del__(self):  # pragma: no cover - best effort cleanup
        try:
            self.close()
        except Exception:
            pass


class JsonDebugWriter:
    """Collect all events in memory then write a single JSON array.

    Used when ``--debug`` ends with ``.json`` so one finished game is one
    self-contained document.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._events: List[Dict[str, Any]] = []

    def emit(self, stage: str, payload: Dict[str, Any], *, ts: Any, farm: Optional[str] = None, day: Optional[int] = None) -> None:
        self._events.append(_event(stage, payload, ts, farm, day))

    def finalize(self) -> None:
        """Write collected events as a single JSON document."""
        self.path.write_text(json.dumps(self._events, indent=2))

    def close(self) -> None:
        self.finalize()

    def __del__(self):  # pragma: no cover - best effort
        try:
            self.finalize()
        except Exception:
            pass


def build_debug_collector(path: str | Path | None) -> DebugCollector:
    """Factory: None → NullDebugCollector, .json → JsonDebugWriter, otherwise JSONL."""
    if path is None:
        return NullDebugCollector()
    if str(path).lower().endswith(".json"):
        return JsonDebugWriter(path)
    return JsonlDebugWriter(path)


class ScopedDebugCollector:
    """Wrapper that injects a fixed farm/day context into every emit."""

    def __init__(self, inner: DebugCollector, *, farm: Optional[str] = None, day: Optional[int] = None):
        self.inner = inner
        self.farm = farm
        self.day = day

    def emit(self, stage: str, payload: Dict[str, Any], *, ts: Any, farm: Optional[str] = None, day: Optional[int] = None) -> None:
        eff_farm = farm if farm is not None else self.farm
        eff_day = day if day is not None else self.day
        self.inner.emit(stage, payload, ts=ts, farm=eff_farm, day=eff_day)


__all__ = [
    "DebugCollector",
    "NullDebugCollector",
    "ListDebugCollector",
    "JsonlDebugWriter",
    "JsonDebugWriter",
    "ScopedDebugCollector",
    "build_debug_collector",
]
