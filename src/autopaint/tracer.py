"""
Hierarchical runtime tracing for autopaint.

Nested spans with timing and one-off events, written to stderr and
optionally to a file as text or JSON lines. Every pipeline phase runs inside
a span so a job can be followed tick by tick without a debugger.
"""

import functools
import hashlib
import json
import sys
import time
from contextlib import contextmanager
from datetime import datetime


class TracerConfig:
    """Output settings for the tracer."""

    def __init__(self):
        self.enabled = False
        self.level = "INFO"
        self.file_path = None
        self.json_output = False
        self._file_handle = None

    def configure(self, enabled=False, level="INFO", file_path=None, json_output=False):
        """Apply new settings, reopening the log file if one is requested."""
        self.enabled = enabled
        self.level = level.upper()
        self.file_path = file_path
        self.json_output = json_output

        self.close()

        if file_path and enabled:
            self._file_handle = open(file_path, "w", encoding="utf-8")

    def close(self):
        """Close file handle if open."""
        if self._file_handle:
            self._file_handle.close()
            self._file_handle = None


class Tracer:
    """
    Hierarchical tracer for structured pipeline logging.

    Spans nest; events are attributed to the innermost open span.
    """

    LEVELS = {"ERROR": 0, "WARN": 1, "INFO": 2, "DEBUG": 3}

    def __init__(self):
        self.config = TracerConfig()
        self._depth = 0
        self._span_stack = []

    def enabled_for(self, level):
        """Check if this level would be written."""
        if not self.config.enabled:
            return False
        return self.LEVELS.get(level, 2) <= self.LEVELS.get(self.config.level, 2)

    def _timestamp(self):
        now = datetime.now()
        return now.strftime("%H:%M:%S.") + f"{now.microsecond // 1000:03d}"

    def _write(self, level, module, func, message, meta=None):
        if not self.enabled_for(level):
            return

        timestamp = self._timestamp()
        indent = "  " * self._depth
        location = f"{module}:{func}" if func else module

        lines = [f"{timestamp} {level:<5} {indent}{location}  {message}"]

        if self.config.json_output:
            lines.append(json.dumps({
                "timestamp": timestamp,
                "level": level,
                "depth": self._depth,
                "module": module,
                "function": func,
                "message": message,
                "meta": {k: summarize(v) for k, v in (meta or {}).items()},
            }))

        for line in lines:
            print(line, file=sys.stderr)
            if self.config._file_handle:
                self.config._file_handle.write(line + "\n")
                self.config._file_handle.flush()

    @contextmanager
    def span(self, name, module="", **meta):
        """
        Context manager for a traced span.

        Logs start and end with elapsed milliseconds; a failing body is
        logged at ERROR and re-raised.
        """
        if not self.config.enabled:
            yield
            return

        start_time = time.perf_counter()
        meta_str = " ".join(f"{k}={summarize(v)}" for k, v in meta.items())
        self._write("INFO", module, name, f"start {meta_str}".strip())
        self._depth += 1
        self._span_stack.append((name, module))

        try:
            yield
        except Exception as e:
            elapsed = (time.perf_counter() - start_time) * 1000
            self._depth -= 1
            self._span_stack.pop()
            self._write("ERROR", module, name, f"failed dt={elapsed:.0f}ms error={type(e).__name__}: {str(e)[:100]}")
            raise

        elapsed = (time.perf_counter() - start_time) * 1000
        self._depth -= 1
        self._span_stack.pop()
        self._write("INFO", module, name, f"end ok dt={elapsed:.0f}ms")

    def event(self, message, level="INFO", **meta):
        """Log a one-off event within the current span."""
        if not self.enabled_for(level):
            return

        func, module = self._span_stack[-1] if self._span_stack else ("", "")

        meta_str = " ".join(f"{k}={summarize(v)}" for k, v in meta.items())
        self._write(level, module, func, f"{message} {meta_str}".strip(), meta)


def summarize(obj, max_len=200):
    """
    Summarize an object for logging.

    Returns a compact string representation that never exceeds max_len chars.
    """
    try:
        result = _summarize_impl(obj)
    except Exception:
        return f"<{type(obj).__name__}>"
    if len(result) > max_len:
        return result[:max_len - 3] + "..."
    return result


def _summarize_impl(obj):
    if obj is None:
        return "None"

    type_name = type(obj).__name__

    # VectorPath / ActionPath
    if hasattr(obj, "path_id") and hasattr(obj, "tool_id"):
        return f"{type_name}(id={obj.path_id},tool={obj.tool_id},role={obj.role.value})"

    # Layer
    if hasattr(obj, "paths") and hasattr(obj, "hit_test"):
        return f"{type_name}(len={len(obj.paths)})"

    import numpy as np
    if isinstance(obj, np.ndarray):
        shape_str = "x".join(str(s) for s in obj.shape)
        if 0 < obj.size < 1000:
            h = hashlib.md5(obj.tobytes()).hexdigest()[:8]
        else:
            h = hashlib.md5(str(obj.shape).encode()).hexdigest()[:8]
        return f"ndarray({obj.dtype},{shape_str},h={h})"

    from shapely.geometry.base import BaseGeometry
    if isinstance(obj, BaseGeometry):
        if obj.is_empty:
            return f"{type_name}(empty)"
        bounds_str = ",".join(f"{b:.1f}" for b in obj.bounds)
        return f"{type_name}(bounds=[{bounds_str}])"

    from pydantic import BaseModel
    if isinstance(obj, BaseModel):
        fields = list(type(obj).model_fields.keys())[:3]
        return f"{type_name}(fields={fields}...)"

    if isinstance(obj, str):
        if len(obj) > 50:
            h = hashlib.md5(obj.encode()).hexdigest()[:8]
            return f"str(len={len(obj)},h={h})"
        return repr(obj)

    if isinstance(obj, (list, tuple)):
        if not obj:
            return f"{type_name}(len=0)"
        return f"{type_name}(len={len(obj)},first={type(obj[0]).__name__})"

    if isinstance(obj, dict):
        keys_str = ",".join(str(k) for k in list(obj.keys())[:5])
        return f"dict(len={len(obj)},keys=[{keys_str}])"

    if isinstance(obj, float):
        return f"{obj:.3f}"

    if isinstance(obj, int):
        return str(obj)

    return f"<{type_name}>"


def trace(label=None, arg_names=None):
    """
    Decorator to trace function execution.

    Wraps a function in a span that logs start/end with timing. Names in
    arg_names are picked from keyword arguments and summarized.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            if not _tracer.config.enabled:
                return func(*args, **kwargs)

            func_module = func.__module__.split(".")[-1] if func.__module__ else ""
            meta = {name: kwargs[name] for name in (arg_names or []) if name in kwargs}

            with _tracer.span(label or func.__name__, module=func_module, **meta):
                return func(*args, **kwargs)

        return wrapper
    return decorator


# Global tracer instance
_tracer = Tracer()


def get_tracer():
    """Get the global tracer instance."""
    return _tracer


def configure_tracer(enabled=False, level="INFO", file_path=None, json_output=False):
    """Configure the global tracer."""
    _tracer.config.configure(
        enabled=enabled,
        level=level,
        file_path=file_path,
        json_output=json_output,
    )


def trace_level(level, debug=False):
    """The level to trace at; geometry diagnostics need at least DEBUG."""
    if debug and Tracer.LEVELS.get(level.upper(), 2) < Tracer.LEVELS["DEBUG"]:
        return "DEBUG"
    return level


def configure_from(config):
    """Configure the global tracer from a SpoolConfig."""
    configure_tracer(
        enabled=config.tracing.enabled or config.debug.enabled,
        level=trace_level(config.tracing.level, config.debug.enabled),
        file_path=config.tracing.file_path,
        json_output=config.tracing.json_output,
    )
