from __future__ import annotations

import logging
import threading
import time
from collections import deque
from statistics import mean
from typing import Any, Deque, Dict, Iterable, List, Optional, Tuple

LabelKey = Tuple[Tuple[str, str], ...]  # sorted tuple of (k,v)
MetricKey = Tuple[str, LabelKey]


def _labels_key(labels: Dict[str, Any] | None) -> LabelKey:
    if not labels:
        return tuple()
    return tuple(sorted((str(k), str(v)) for k, v in labels.items()))


def _pct(sorted_vals: List[float], q: float) -> float:
    if not sorted_vals:
        return 0.0
    idx = max(0, min(len(sorted_vals) - 1, int(round((len(sorted_vals) - 1) * q))))
    return sorted_vals[idx]


# ---------------- Metric types ----------------

class _Value:
    """Counter and gauge share one locked float; only the mutator differs."""

    def __init__(self, name: str, labels: LabelKey):
        self.name = name
        self.labels = labels
        self._value = 0.0
        self._lock = threading.Lock()

    def value(self) -> float:
        with self._lock:
            return self._value


class Counter(_Value):
    def inc(self, n: float = 1.0) -> None:
        with self._lock:
            self._value += n


class Gauge(_Value):
    def set(self, v: float) -> None:
        with self._lock:
            self._value = float(v)


class Histogram:
    def __init__(self, name: str, labels: LabelKey, maxlen: int = 2048):
        self.name = name
        self.labels = labels
        self._values: Deque[float] = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def observe(self, v: float) -> None:
        with self._lock:
            self._values.append(float(v))

    def snapshot(self) -> Dict[str, float]:
        with self._lock:
            vals = sorted(self._values)
        if not vals:
            return {"count": 0.0, "min": 0.0, "max": 0.0, "mean": 0.0, "p50": 0.0, "p90": 0.0, "p99": 0.0}
        return {
            "count": float(len(vals)),
            "min": vals[0],
            "max": vals[-1],
            "mean": mean(vals),
            "p50": _pct(vals, 0.50),
            "p90": _pct(vals, 0.90),
            "p99": _pct(vals, 0.99),
        }


# ---------------- Registry ----------------

class _Registry:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._tables: Dict[type, Dict[MetricKey, Any]] = {Counter: {}, Gauge: {}, Histogram: {}}

    def get(self, kind: type, name: str, labels: Dict[str, Any] | None):
        key = (name, _labels_key(labels))
        with self._lock:
            table = self._tables[kind]
            m = table.get(key)
            if m is None:
                m = table[key] = kind(name, key[1])
            return m

    def items(self, kind: type) -> Iterable[Tuple[MetricKey, Any]]:
        with self._lock:
            return list(self._tables[kind].items())

    def clear(self) -> None:
        with self._lock:
            for table in self._tables.values():
                table.clear()


_REG = _Registry()

# ---------------- Public API ----------------

def inc_counter(name: str, n: float = 1.0, **labels: Any) -> None:
    _REG.get(Counter, name, labels).inc(n)


def set_gauge(name: str, v: float, **labels: Any) -> None:
    _REG.get(Gauge, name, labels).set(v)


def observe_hist(name: str, v: float, **labels: Any) -> None:
    _REG.get(Histogram, name, labels).observe(v)


def counter_value(name: str, **labels: Any) -> float:
    return _REG.get(Counter, name, labels).value()


def gauge_value(name: str, **labels: Any) -> float:
    return _REG.get(Gauge, name, labels).value()


def reset() -> None:
    """Drop every recorded metric (tests)."""
    _REG.clear()


class Timer:
    """Context manager for measuring latency and reporting into a histogram."""
    def __init__(self, hist_name: str, **labels: Any) -> None:
        self.hist_name = hist_name
        self.labels = labels
        self._t0 = 0.0

    def __enter__(self):
        self._t0 = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb):
        dt_ms = (time.perf_counter() - self._t0) * 1000.0
        observe_hist(self.hist_name, dt_ms, **self.labels)
        return False


def snapshot_all() -> dict:
    """Return a snapshot of current metrics (for tests)."""
    out: Dict[str, list] = {"counters": [], "gauges": [], "hists": []}
    for (name, labels), m in _REG.items(Counter):
        out["counters"].append({"name": name, "labels": dict(labels), "value": m.value()})
    for (name, labels), m in _REG.items(Gauge):
        out["gauges"].append({"name": name, "labels": dict(labels), "value": m.value()})
    for (name, labels), m in _REG.items(Histogram):
        out["hists"].append({"name": name, "labels": dict(labels), **m.snapshot()})
    return out


# ---------------- Exporter (log every N seconds) ----------------

def _emit_snapshot(log: logging.Logger, json_mode: bool) -> None:
    snap = snapshot_all()
    if json_mode:
        for kind, rows in (("counter", snap["counters"]), ("gauge", snap["gauges"]), ("hist", snap["hists"])):
            for row in rows:
                log.info({"type": kind, **row})
        return
    for row in snap["counters"]:
        log.info("[ctr] %s %s value=%.0f", row["name"], row["labels"], row["value"])
    for row in snap["gauges"]:
        log.info("[gauge] %s %s value=%.3f", row["name"], row["labels"], row["value"])
    for row in snap["hists"]:
        log.info(
            "[hist] %s %s n=%d min=%.3f p50=%.3f p90=%.3f p99=%.3f max=%.3f mean=%.3f",
            row["name"], row["labels"], int(row["count"]), row["min"], row["p50"],
            row["p90"], row["p99"], row["max"], row["mean"],
        )


class _Exporter(threading.Thread):
    def __init__(self, interval_sec: float = 5.0, json_mode: bool = False, logger: Optional[logging.Logger] = None):
        super().__init__(name="metrics-exporter", daemon=True)
        self.interval = float(interval_sec)
        self.json_mode = bool(json_mode)
        self.log = logger or logging.getLogger("metrics")
        self._stop_evt = threading.Event()

    def run(self) -> None:
        while not self._stop_evt.is_set():
            t0 = time.time()
            _emit_snapshot(self.log, self.json_mode)
            to_sleep = max(0.5, self.interval - (time.time() - t0))
            self._stop_evt.wait(to_sleep)

    def stop(self, timeout: float = 1.0) -> None:
        self._stop_evt.set()
        self.join(timeout=timeout)


_EXPORTER: Optional[_Exporter] = None


def start_exporter(interval_sec: float = 5.0, json_mode: bool = False, logger: Optional[logging.Logger] = None) -> None:
    global _EXPORTER
    if _EXPORTER is not None:
        return
    _EXPORTER = _Exporter(interval_sec=interval_sec, json_mode=json_mode, logger=logger)
    _EXPORTER.start()


def stop_exporter(timeout: float = 1.0) -> None:
    global _EXPORTER
    if _EXPORTER is not None:
        _EXPORTER.stop(timeout=timeout)
        _EXPORTER = None


def force_emit(logger: Optional[logging.Logger] = None, json_mode: bool = False) -> None:
    """Force emit metrics snapshot now (useful for tests without sleeping)."""
    _emit_snapshot(logger or logging.getLogger("metrics"), json_mode)
