from __future__ import annotations
import faulthandler
import functools
import logging
import os
import sys
import threading
import traceback
from datetime import datetime, timezone
from typing import Callable, Optional, TypeVar

from logconf import log_dir

logger = logging.getLogger("Errors")

CRASH_DUMP = "crash.dump"

# faulthandler writes to this file from native code; it must stay open
_faulthandler_file: Optional[object] = None

F = TypeVar("F", bound=Callable)


def write_dump(prefix: str, text: str) -> str:
    """Write a traceback to <log dir>/<prefix>_<utc timestamp>.dump and return the path."""
    root = log_dir()
    os.makedirs(root, exist_ok=True)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
    path = os.path.join(root, f"{prefix}_{stamp}.dump")
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    logger.error("Wrote exception dump: %s", path)
    return path

def _report(kind: str, level: int, headline: str, exc_type, exc, tb) -> str:
    text = "".join(traceback.format_exception(exc_type, exc, tb))
    logger.log(level, "%s:\n%s", headline, text)
    write_dump(kind, text)
    return text

def install_global_exception_hooks(enable_faulthandler: bool = True) -> None:
    """
    Route every uncaught failure of the host process into the log and a dump file:
    the main thread, render worker threads, unraisable exceptions (finalizers) and,
    through faulthandler, native crashes inside the imaging libraries.
    """
    global _faulthandler_file

    def on_uncaught(exc_type, exc, tb):
        _report("uncaught", logging.CRITICAL, "Uncaught exception", exc_type, exc, tb)
        sys.__excepthook__(exc_type, exc, tb)

    def on_thread(args: threading.ExceptHookArgs):
        name = getattr(args.thread, "name", "<unknown>")
        _report("thread", logging.CRITICAL, f"Exception in render thread {name}",
                args.exc_type, args.exc_value, args.exc_traceback)

    def on_unraisable(u):
        _report("unraisable", logging.ERROR, f"Unraisable exception in {getattr(u, 'object', None)!r}",
                u.exc_type, u.exc_value, u.exc_traceback)

    sys.excepthook = on_uncaught
    threading.excepthook = on_thread
    sys.unraisablehook = on_unraisable

    if enable_faulthandler and _faulthandler_file is None:
        path = os.path.join(log_dir(), CRASH_DUMP)
        try:
            os.makedirs(log_dir(), exist_ok=True)
            _faulthandler_file = open(path, "ab", buffering=0)
            faulthandler.enable(file=_faulthandler_file, all_threads=True)
            logger.info("Faulthandler enabled: %s", path)
        except OSError as e:
            logger.warning("Failed to enable faulthandler: %s", e)

def safe_render(fn: F) -> F:
    """Decorator for host callbacks (preview refresh, batch jobs): a failure is logged
    and dumped instead of tearing down the caller, and the call returns None."""
    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except Exception:
            _report("render", logging.ERROR, f"Render failed in {getattr(fn, '__name__', fn)!r}", *sys.exc_info())
            return None
    return wrapper  # type: ignore[return-value]
