from __future__ import annotations

import threading
import time
from typing import Any

from loguru import logger

from sweepevo.utils.trackers.base import LogWriter


def _sanitize(s: str) -> str:
    return "".join(ch if ch.isalnum() or ch in "-_.=," else "_" for ch in str(s))


def _render_tag(path: list[str], metric: str, labels: dict[str, str]) -> str:
    base = "/".join(_sanitize(x) for x in [*path, metric] if x)
    if not labels:
        return base
    suffix = ",".join(f"{_sanitize(k)}={_sanitize(v)}" for k, v in sorted(labels.items()))
    return f"{base}/{suffix}"


class LoggerBackend:
    """Minimal adapter every backend must implement."""

    def open(self) -> None:
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError

    def write_scalar(self, tag: str, value: float, step: int, wall_time: float) -> None:
        raise NotImplementedError

    def write_hist(self, tag: str, values: Any, step: int, wall_time: float) -> None:
        raise NotImplementedError

    def flush(self) -> None:
        raise NotImplementedError


class GenericLogger(LogWriter):
    """Writes straight through to a backend; flushes every ``flush_secs``.

    Generations take seconds, so events are written synchronously from the
    coordinator. Series without an explicit ``step`` count up from 0.
    Backend errors are logged once per tag and never reach the caller.
    """

    def __init__(self, backend: LoggerBackend, *, flush_secs: float = 3.0):
        self.backend = backend
        self._flush_secs = float(flush_secs)
        self._steps: dict[str, int] = {}
        self._failed_tags: set[str] = set()
        self._lock = threading.Lock()
        self._closed = False
        self.backend.open()
        self._last_flush = time.time()

    def bind(
        self, *, path: list[str] | None = None, labels: dict[str, str] | None = None
    ) -> BoundGeneric:
        return BoundGeneric(self, path or [], labels or {})

    def scalar(self, metric: str, value: float, **kw) -> None:
        self._write("scalar", metric, float(value), **kw)

    def hist(self, metric: str, values: Any, **kw) -> None:
        self._write("hist", metric, values, **kw)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            try:
                self.backend.flush()
            finally:
                self.backend.close()

    # internals
    def _write(self, kind: str, metric: str, payload: Any, **kw) -> None:
        tag = _render_tag(kw.get("path") or [], metric, kw.get("labels") or {})
        wall_time = kw.get("wall_time") or time.time()
        with self._lock:
            if self._closed:
                return
            step = self._resolve_step(tag, kw.get("step"))
            try:
                if kind == "scalar":
                    self.backend.write_scalar(tag, payload, step, wall_time)
                else:
                    self.backend.write_hist(tag, payload, step, wall_time)
                if wall_time - self._last_flush >= self._flush_secs:
                    self.backend.flush()
                    self._last_flush = wall_time
            except Exception as exc:  # pylint: disable=broad-except
                if tag not in self._failed_tags:
                    self._failed_tags.add(tag)
                    logger.warning("[GenericLogger] Write failed | tag={}: {}", tag, exc)

    def _resolve_step(self, tag: str, step: int | None) -> int:
        resolved = int(step) if step is not None else self._steps.get(tag, -1) + 1
        self._steps[tag] = resolved
        return resolved


class BoundGeneric(LogWriter):
    def __init__(self, base: GenericLogger, path: list[str], labels: dict[str, str]):
        self._base = base
        self._path = list(path)
        self._labels = dict(labels)

    def bind(
        self, *, path: list[str] | None = None, labels: dict[str, str] | None = None
    ) -> BoundGeneric:
        return BoundGeneric(
            self._base, [*self._path, *(path or [])], {**self._labels, **(labels or {})}
        )

    def scalar(self, metric: str, value: float, **kw) -> None:
        self._base.scalar(metric, value, **self._scoped(kw))

    def hist(self, metric: str, values: Any, **kw) -> None:
        self._base.hist(metric, values, **self._scoped(kw))

    def close(self) -> None:
        self._base.close()

    def _scoped(self, kw: dict[str, Any]) -> dict[str, Any]:
        path = [*self._path, *kw.pop("path", [])]
        labels = {**self._labels, **kw.pop("labels", {})}
        return {"path": path, "labels": labels, **kw}
