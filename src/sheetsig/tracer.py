"""
Hierarchical runtime tracing for sheetsig.

Provides structured, nested logging with timing information. Systems of a
sheet may be processed in parallel threads, so span depth is tracked per
thread and writes are serialized.
"""

import functools
import json
import sys
import threading
import time
from contextlib import contextmanager
from datetime import datetime


class TracerConfig:
    """Configuration for the tracer."""

    def __init__(self):
        self.enabled = False
        self.level = "INFO"
        self.file_path = None
        self.json_output = False
        self._file_handle = None

    def configure(self, enabled=False, level="INFO", file_path=None, json_output=False):
        """Configure tracer settings."""
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
    Hierarchical tracer for structured logging.

    Supports nested spans with timing, argument summarization, and
    multiple output formats (text, JSON). Each thread gets its own span stack,
    and lines are tagged with the thread name when not on the main thread.
    """

    LEVELS = {"ERROR": 0, "WARN": 1, "INFO": 2, "DEBUG": 3}

    def __init__(self):
        self.config = TracerConfig()
        self._local = threading.local()
        self._lock = threading.Lock()

    @property
    def _span_stack(self):
        stack = getattr(self._local, "spans", None)
        if stack is None:
            stack = []
            self._local.spans = stack
        return stack

    def is_enabled_for(self, level):
        """Check if this level should be logged."""
        if not self.config.enabled:
            return False
        return self.LEVELS.get(level, 2) <= self.LEVELS.get(self.config.level, 2)

    def _format_timestamp(self):
        """Format current time as HH:MM:SS.mmm."""
        now = datetime.now()
        return now.strftime("%H:%M:%S.") + f"{now.microsecond // 1000:03d}"

    def _write(self, level, module, func, message, meta=None):
        """Write a log line."""
        if not self.is_enabled_for(level):
            return

        depth = len(self._span_stack)
        timestamp = self._format_timestamp()
        location = f"{module}:{func}" if func else module
        thread = threading.current_thread()
        tag = "" if thread is threading.main_thread() else f"[{thread.name}] "

        text_line = f"{timestamp} {level:<5} {tag}{'  ' * depth}{location}  {message}"

        with self._lock:
            print(text_line, file=sys.stderr)

            if self.config._file_handle:
                self.config._file_handle.write(text_line + "\n")
                self.config._file_handle.flush()

            if self.config.json_output:
                json_record = {
                    "timestamp": timestamp,
                    "level": level,
                    "thread": thread.name,
                    "depth": depth,
                    "module": module,
                    "function": func,
                    "message": message,
                    "meta": {k: summarize(v) for k, v in (meta or {}).items()},
                }
                json_line = json.dumps(json_record)
                print(json_line, file=sys.stderr)
                if self.config._file_handle:
                    self.config._file_handle.write(json_line + "\n")

    @contextmanager
    def span(self, name, module="", **meta):
        """
        Context manager for a traced span.

        Logs start and end with timing information.
        """
        if not self.config.enabled:
            yield
            return

        start_time = time.perf_counter()
        meta_str = " ".join(f"{k}={summarize(v)}" for k, v in meta.items())
        self._write("INFO", module, name, f"start {meta_str}".strip())
        self._span_stack.append((name, module))

        try:
            yield
        except Exception as e:
            elapsed = (time.perf_counter() - start_time) * 1000
            self._span_stack.pop()
            self._write("ERROR", module, name, f"failed dt={elapsed:.0f}ms error={type(e).__name__}: {str(e)[:100]}")
            raise
        else:
            elapsed = (time.perf_counter() - start_time) * 1000
            self._span_stack.pop()
            self._write("INFO", module, name, f"end ok dt={elapsed:.0f}ms")

    def event(self, message, level="INFO", **meta):
        """Log a one-off event within the current span."""
        if not self.is_enabled_for(level):
            return

        module = ""
        func = ""
        if self._span_stack:
            func, module = self._span_stack[-1]

        meta_str = " ".join(f"{k}={summarize(v)}" for k, v in meta.items())
        full_message = f"{message} {meta_str}".strip()
        self._write(level, module, func, full_message, meta)

    def vip(self, subject, message, **meta):
        """Log at INFO for VIP subjects, DEBUG otherwise."""
        level = "INFO" if getattr(subject, "vip", False) else "DEBUG"
        self.event(message, level=level, **meta)


def summarize(obj, max_len=200):
    """
    Summarize an object for logging.

    Returns a compact string representation that never exceeds max_len chars.
    Handles glyphs, sections, inters, numpy arrays, networkx graphs,
    pydantic models and builtin containers.
    """
    try:
        result = _summarize_impl(obj)
        if len(result) > max_len:
            return result[:max_len - 3] + "..."
        return result
    except Exception:
        return f"<{type(obj).__name__}>"


def _summarize_impl(obj):
    """Implementation of summarize without length capping."""
    if obj is None:
        return "None"

    type_name = type(obj).__name__

    if type_name == "Glyph":
        return f"{obj}(w={obj.weight},bounds={obj.bounds})"

    if type_name == "Section":
        return f"section#{obj.section_id}(w={obj.weight})"

    if type_name == "Inter":
        return f"{obj}(grade={obj.grade:.3f})"

    try:
        import numpy as np
        if isinstance(obj, np.ndarray):
            shape_str = "x".join(str(s) for s in obj.shape)
            return f"ndarray({obj.dtype},{shape_str})"
    except ImportError:
        pass

    try:
        import networkx as nx
        if isinstance(obj, nx.Graph):
            return f"{type_name}(nodes={obj.number_of_nodes()},edges={obj.number_of_edges()})"
    except ImportError:
        pass

    try:
        from pydantic import BaseModel
        if isinstance(obj, BaseModel):
            fields = list(type(obj).model_fields.keys())[:3]
            return f"{type_name}(fields={fields}...)"
    except ImportError:
        pass

    if isinstance(obj, str):
        if len(obj) > 50:
            return f"str(len={len(obj)})"
        return repr(obj)

    if isinstance(obj, (list, tuple, set, frozenset)):
        if len(obj) <= 5 and all(isinstance(o, (int, float, str)) for o in obj):
            return f"{type_name}({','.join(str(o) for o in obj)})"
        first_type = type(next(iter(obj))).__name__ if obj else "?"
        return f"{type_name}(len={len(obj)},first={first_type})"

    if isinstance(obj, dict):
        keys = list(obj.keys())[:5]
        keys_str = ",".join(str(k) for k in keys)
        return f"dict(len={len(obj)},keys=[{keys_str}])"

    if isinstance(obj, float):
        return f"{obj:.4g}"

    if isinstance(obj, int):
        return str(obj)

    if hasattr(obj, "value") and hasattr(obj, "name"):
        return str(obj.value)

    return f"<{type_name}>"


def trace(label=None, arg_names=None):
    """
    Decorator to trace function execution.

    Wraps a function in a span that logs start/end with timing.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            if not _tracer.config.enabled:
                return func(*args, **kwargs)

            func_module = func.__module__.split(".")[-1] if func.__module__ else ""
            func_name = label or func.__name__

            meta = {}
            if arg_names:
                for name in arg_names:
                    if name in kwargs:
                        meta[name] = kwargs[name]

            with _tracer.span(func_name, module=func_module, **meta):
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
