"""
Centralized logging for EngVantage.

Every module reports through one categorized, colour-coded logger so a run
can be followed from the terminal:
- ENV: configuration and credentials
- API: content gateway calls and responses
- AUD: speech synthesis and playback
- UI / TASK: window events and worker threads
- DB: stats persistence

Usage:
    from engvantage.logger import logger

    logger.api_call("chat.completions.create", model="gpt-4o-mini")
    logger.db_error("Could not write stats file", exc_info=True)
"""

import os
import sys
import time
import traceback
from datetime import datetime
from typing import Optional

# Status glyphs need UTF-8 on consoles that default to a legacy code page.
for _stream in (sys.stdout, sys.stderr):
    if hasattr(_stream, "reconfigure"):
        _stream.reconfigure(encoding="utf-8")


class Ansi:
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    MAGENTA = "\033[95m"
    CYAN = "\033[96m"
    WHITE = "\033[37m"


# Tag colour for each category; failures are always red.
CATEGORY_COLORS = {
    "ENV": Ansi.MAGENTA,
    "API": Ansi.CYAN,
    "AUD": Ansi.YELLOW,
    "UI": Ansi.BLUE,
    "TASK": Ansi.WHITE,
    "DB": Ansi.BLUE,
    "OK": Ansi.GREEN,
    "WARN": Ansi.YELLOW,
    "DBG": Ansi.DIM,
}


def _shorten(text: str, limit: int = 60) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


class DebugLogger:
    """
    Categorized debug logger writing to stdout.

    Each line carries the wall clock time, the seconds since start-up and a
    coloured category tag. Passing exc_info=True appends the traceback of
    the exception being handled (to stderr).
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._started = datetime.now()

    def _emit(self, category: str, message: str, failed: bool = False, exc_info: bool = False) -> None:
        if not self.enabled:
            return

        now = datetime.now()
        elapsed = (now - self._started).total_seconds()
        stamp = f"{now:%H:%M:%S}.{now.microsecond // 1000:03d} (+{elapsed:>6.1f}s)"
        color = Ansi.RED if failed else CATEGORY_COLORS.get(category, Ansi.WHITE)
        indent = " " * (len(stamp) + 8)

        first, *rest = message.split("\n")
        print(f"{Ansi.DIM}{stamp}{Ansi.RESET} {color}{Ansi.BOLD}[{category:>4}]{Ansi.RESET} {first}", flush=True)
        for line in rest:
            print(f"{indent}{line}", flush=True)

        if exc_info:
            for line in traceback.format_exc().splitlines():
                if line.strip():
                    print(f"{indent}{Ansi.RED}{line}{Ansi.RESET}", file=sys.stderr, flush=True)

    # Configuration
    def env(self, message: str, **kwargs) -> None:
        self._emit("ENV", message, **kwargs)

    def env_success(self, message: str, **kwargs) -> None:
        self._emit("ENV", f"✓ {message}", **kwargs)

    def env_error(self, message: str, **kwargs) -> None:
        self._emit("ENV", f"✗ {message}", failed=True, **kwargs)

    # Content gateway
    def api(self, message: str, **kwargs) -> None:
        self._emit("API", message, **kwargs)

    def api_call(self, endpoint: str, model: Optional[str] = None, **kwargs) -> None:
        suffix = f" [{model}]" if model else ""
        self._emit("API", f"→ {endpoint}{suffix}", **kwargs)

    def api_response(self, endpoint: str, duration_ms: Optional[float] = None, **kwargs) -> None:
        suffix = f" in {duration_ms:.0f}ms" if duration_ms else ""
        self._emit("API", f"← {endpoint}{suffix}", **kwargs)

    def api_error(self, message: str, **kwargs) -> None:
        self._emit("API", f"✗ {message}", failed=True, **kwargs)

    # Speech
    def audio(self, message: str, **kwargs) -> None:
        self._emit("AUD", message, **kwargs)

    def audio_start(self, text: str, **kwargs) -> None:
        self._emit("AUD", f"→ Pronouncing \"{_shorten(text)}\"", **kwargs)

    def audio_error(self, message: str, **kwargs) -> None:
        self._emit("AUD", f"✗ {message}", failed=True, **kwargs)

    # Window
    def ui(self, message: str, **kwargs) -> None:
        self._emit("UI", message, **kwargs)

    def ui_transition(self, before: str, after: str, **kwargs) -> None:
        self._emit("UI", f"{before} → {after}", **kwargs)

    # Worker threads
    def task_start(self, name: str, **kwargs) -> None:
        self._emit("TASK", f"⚡ {name} started", **kwargs)

    def task_complete(self, name: str, duration_ms: Optional[float] = None, **kwargs) -> None:
        suffix = f" in {duration_ms:.0f}ms" if duration_ms else ""
        self._emit("TASK", f"✓ {name} done{suffix}", **kwargs)

    def task_error(self, name: str, error: str, **kwargs) -> None:
        self._emit("TASK", f"✗ {name} failed: {error}", failed=True, **kwargs)

    # Stats storage
    def db(self, message: str, **kwargs) -> None:
        self._emit("DB", message, **kwargs)

    def db_error(self, message: str, **kwargs) -> None:
        self._emit("DB", f"✗ {message}", failed=True, **kwargs)

    # General
    def success(self, message: str, **kwargs) -> None:
        self._emit("OK", f"✓ {message}", **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._emit("WARN", f"⚠ {message}", **kwargs)

    def debug(self, message: str, **kwargs) -> None:
        self._emit("DBG", message, **kwargs)

    def separator(self, title: str = "") -> None:
        if not self.enabled:
            return
        rule = f"{'─' * 20} {title} {'─' * 20}" if title else "─" * 60
        print(f"\n{Ansi.DIM}{rule}{Ansi.RESET}\n", flush=True)

    def banner(self, text: str) -> None:
        if not self.enabled:
            return
        width = max(60, len(text) + 4)
        print(f"\n{Ansi.CYAN}{'═' * width}", flush=True)
        print(f"{Ansi.BOLD}{text.center(width)}", flush=True)
        print(f"{'═' * width}{Ansi.RESET}\n", flush=True)


# ENGVANTAGE_DEBUG=0 silences it; load_settings() re-applies the setting.
logger = DebugLogger(enabled=os.getenv("ENGVANTAGE_DEBUG", "1").strip().lower() not in ("0", "false", "no", "off"))


class Timer:
    """Measures a block in milliseconds: `with Timer() as t: ...; t.duration_ms`."""

    def __init__(self):
        self.duration_ms = 0.0
        self._start = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *exc) -> None:
        self.duration_ms = (time.perf_counter() - self._start) * 1000
