from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TextIO


@dataclass
class _Timing:
    name: str
    start: float
    end: float | None = None

    @property
    def elapsed(self) -> float:
        return (self.end or time.perf_counter()) - self.start


class PipelineLogger:
    """Run logger for batch extraction with three sinks.

    - console   : INFO+ by default, human-readable
    - log_file  : INFO+ persisted copy of the console
    - trace_file: every line including DEBUG/TRACE (gate decisions, prompts)

    Each sink has its own level gate. Warnings are also retained so a batch
    run can report them in the summary.
    """

    LEVELS: dict[str, int] = {
        "TRACE": -1,
        "DEBUG": 0,
        "INFO": 1,
        "METRIC": 1,
        "WARN": 2,
        "ERROR": 3,
    }

    def __init__(
        self,
        log_file: str | Path | None = None,
        trace_file: str | Path | None = None,
        console: bool = True,
        min_level: str = "INFO",
    ) -> None:
        self.console = console
        self.min_level = self.LEVELS.get(min_level.upper(), 1)
        self.log_path: Path | None = None
        self.trace_path: Path | None = None
        self._log_sink: TextIO | None = None
        self._trace_sink: TextIO | None = None
        self._timings: dict[str, _Timing] = {}
        self._metrics: dict[str, Any] = {}
        self.warnings: list[str] = []
        self._start = time.perf_counter()

        if log_file:
            self.log_path = Path(log_file)
            self._log_sink = self._open_sink(self.log_path, "D-NAV extraction log")
        if trace_file:
            self.trace_path = Path(trace_file)
            self._trace_sink = self._open_sink(self.trace_path, "D-NAV extraction trace")

    @staticmethod
    def _open_sink(path: Path, title: str) -> TextIO:
        path.parent.mkdir(parents=True, exist_ok=True)
        sink = open(path, "w", encoding="utf-8", buffering=1)
        banner = "=" * 80
        sink.write(f"{banner}\n{title}, {time.strftime('%Y-%m-%d %H:%M:%S')}\n{banner}\n\n")
        return sink

    def _write(self, line: str, level_int: int) -> None:
        if self.console and level_int >= self.min_level:
            print(line, flush=True)
        if self._log_sink and level_int >= 1:
            self._log_sink.write(line + "\n")
        if self._trace_sink:
            self._trace_sink.write(line + "\n")

    def _emit(self, level: str, msg: str) -> None:
        elapsed = time.perf_counter() - self._start
        line = f"[{time.strftime('%H:%M:%S')}] [{elapsed:7.2f}s] {level:6} | {msg}"
        self._write(line, self.LEVELS.get(level, 1))

    def trace(self, msg: str) -> None:
        self._emit("TRACE", msg)

    def debug(self, msg: str) -> None:
        self._emit("DEBUG", msg)

    def info(self, msg: str) -> None:
        self._emit("INFO", msg)

    def warn(self, msg: str) -> None:
        self.warnings.append(msg)
        self._emit("WARN", msg)

    def error(self, msg: str) -> None:
        self._emit("ERROR", msg)

    def section(self, title: str, char: str = "=", width: int = 80) -> None:
        rule = char * width
        for line in ("", rule, f"  {title}", rule):
            self._write(line, 1)

    def subsection(self, title: str) -> None:
        self.section(title, char="-", width=60)

    def metric(self, name: str, value: Any, unit: str = "") -> None:
        self._metrics[name] = value
        shown = f"{value:.3f}" if isinstance(value, float) else str(value)
        self._emit("METRIC", f"{name} = {shown}{' ' + unit if unit else ''}")

    @contextmanager
    def timer(self, name: str):
        entry = _Timing(name=name, start=time.perf_counter())
        self._timings[name] = entry
        try:
            yield entry
        finally:
            entry.end = time.perf_counter()
            self._emit("METRIC", f"timer:{name} = {entry.elapsed:.3f}s")

    def summary(self) -> None:
        self.section("RUN SUMMARY")
        self.info(f"Total wall time: {time.perf_counter() - self._start:.2f}s")

        finished = [t for t in self._timings.values() if t.end is not None]
        if finished:
            self.subsection("Timings")
            for entry in sorted(finished, key=lambda t: -t.elapsed)[:20]:
                self.info(f"  {entry.name:<50} {entry.elapsed:>8.3f}s")

        if self._metrics:
            self.subsection("Metrics")
            for name, value in self._metrics.items():
                self.info(f"  {name:<50} {value}")

        if self.warnings:
            self.subsection(f"Warnings ({len(self.warnings)})")
            for msg in self.warnings:
                self.info(f"  {msg}")

        if self.log_path:
            self.info(f"Info log : {self.log_path}")
        if self.trace_path:
            self.info(f"Trace log: {self.trace_path}")

    def install_stdlib_bridge(self, root_logger: str = "dnav", level: int = logging.INFO) -> None:
        """Route records from stdlib loggers under *root_logger* into this logger."""
        root = logging.getLogger(root_logger)
        root.setLevel(min(root.level or logging.DEBUG, level))
        if not any(isinstance(h, _BridgeHandler) for h in root.handlers):
            handler = _BridgeHandler(self)
            handler.setLevel(level)
            root.addHandler(handler)

    def close(self) -> None:
        for sink in (self._log_sink, self._trace_sink):
            if sink:
                sink.close()
        self._log_sink = None
        self._trace_sink = None

    def __enter__(self) -> "PipelineLogger":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


class _BridgeHandler(logging.Handler):
    _MAP = {
        logging.DEBUG: "debug",
        logging.INFO: "info",
        logging.WARNING: "warn",
        logging.ERROR: "error",
        logging.CRITICAL: "error",
    }

    def __init__(self, target: PipelineLogger) -> None:
        super().__init__()
        self._target = target

    def emit(self, record: logging.LogRecord) -> None:
        try:
            method = self._MAP.get(record.levelno, "info")
            getattr(self._target, method)(f"[{record.name}] {self.format(record)}")
        except Exception:
            self.handleError(record)
