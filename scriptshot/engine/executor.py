"""
ScriptExecutor: execute(script, context) -> result.

Compiles with RestrictedPython, runs in the sandbox with the context's
capabilities injected. If the script defines execute(screenshot_path) it is
called and its return value used; otherwise the global `result` (or None).
Optional: SCRIPT_EXEC_TIMEOUT (signal.SIGALRM on Unix, main thread only)
aborts long-running scripts.
Optional: SCRIPT_EXTRA_MODULES (comma-separated) exposes whitelisted modules
in script globals.
"""

import importlib
import logging
import re
import signal
import threading
from typing import Any

from scriptshot.core.config import settings

from .context import ScriptContext
from .sandbox import build_restricted_globals, compile_script

_log = logging.getLogger(__name__)

# Only allow top-level module names, no submodules
_SAFE_MODULE_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


class ScriptTimeoutError(TimeoutError):
    """Raised when script execution exceeds SCRIPT_EXEC_TIMEOUT."""

    pass


def _inject_extra_modules(g: dict[str, Any]) -> None:
    """Inject whitelisted extra modules into script globals. Scripts cannot import on their own."""
    raw = (settings.SCRIPT_EXTRA_MODULES or "").strip()
    if not raw:
        return
    for name in (s.strip() for s in raw.split(",") if s.strip()):
        if not _SAFE_MODULE_NAME_RE.match(name):
            _log.warning("Ignoring invalid SCRIPT_EXTRA_MODULES entry: %r", name)
            continue
        try:
            g[name] = importlib.import_module(name)
        except ImportError as e:
            _log.warning("SCRIPT_EXTRA_MODULES: cannot import %s: %s", name, e)


def _exec_with_timeout(code: object, g: dict[str, Any], timeout_sec: int) -> None:
    """Run exec(code, g) with signal.SIGALRM. Unix main thread only."""
    def _handler(signum: int, frame: Any) -> None:
        raise ScriptTimeoutError(f"Script execution timed out after {timeout_sec}s")

    old = signal.signal(signal.SIGALRM, _handler)
    try:
        signal.alarm(timeout_sec)
        try:
            exec(code, g)
        finally:
            signal.alarm(0)
    finally:
        signal.signal(signal.SIGALRM, old)


class ScriptExecutor:
    """
    Run a Python script in a RestrictedPython sandbox with a ScriptContext (log, img, files, share).
    """

    def execute(self, script: str, context: ScriptContext) -> Any:
        """
        Compile script, exec in restricted globals, return the script's result.
        Raises ValueError for empty source; compile and runtime errors propagate.
        Always calls context.release() in finally.
        """
        try:
            if script is None or not script.strip():
                raise ValueError("Script source is empty")
            code = compile_script(script, filename=context.script_name)
            g = build_restricted_globals(context.to_dict())
            _inject_extra_modules(g)
            timeout = settings.SCRIPT_EXEC_TIMEOUT
            use_signal = (
                timeout is not None
                and timeout > 0
                and hasattr(signal, "SIGALRM")
                and threading.current_thread() is threading.main_thread()
            )
            if use_signal:
                _exec_with_timeout(code, g, timeout)
            else:
                exec(code, g)
            execute_fn = g.get("execute")
            if callable(execute_fn):
                return execute_fn(context.screenshot_path)
            return g.get("result")
        finally:
            context.release()
