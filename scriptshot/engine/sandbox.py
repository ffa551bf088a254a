"""
RestrictedPython sandbox for script execution.

Allowed: the RestrictedPython safe builtins, the container and aggregate
builtins in EXPOSED_BUILTINS, json, datetime/timezone, the capability
objects (log, img, files, share) and their error classes.

Blocked: open, exec, eval, __import__, compile, os, subprocess, etc.
"""

import builtins
import json
from datetime import datetime, timezone
from typing import Any

from RestrictedPython import compile_restricted
from RestrictedPython.Eval import default_guarded_getitem, default_guarded_getiter
from RestrictedPython.Guards import (
    full_write_guard,
    guarded_iter_unpack_sequence,
    safe_builtins,
    safer_getattr,
)


def _make_guard_globals() -> dict[str, Any]:
    """Guards required by RestrictedPython's rewritten bytecode."""
    return {
        "_getattr_": safer_getattr,
        "_getiter_": default_guarded_getiter,
        "_getitem_": default_guarded_getitem,
        "_iter_unpack_sequence_": guarded_iter_unpack_sequence,
        "_write_": full_write_guard,
    }


# Also bound as plain globals. list, dict, set, min, max and sum are not in
# safe_builtins; the rest already are and are repeated so scripts see one set.
#   list, dict, set, tuple  build values for `result` and files.write
#   len, range              walk files.list() output and base64 payloads
#   min, max, sum, abs      size and rectangle arithmetic for img calls
#   sorted                  order files.list() output
EXPOSED_BUILTINS = ("list", "dict", "set", "tuple", "len", "range", "min", "max", "sum", "abs", "sorted")


def _make_extra_globals() -> dict[str, Any]:
    """json for files.read/write payloads; datetime/timezone for timestamps (default.py)."""
    return {
        "json": json,
        "datetime": datetime,
        "timezone": timezone,
    }


def compile_script(script: str, filename: str = "<script>") -> Any:
    """
    Compile script with RestrictedPython. Raises SyntaxError on failure.

    Returns a code object suitable for exec(bytecode, globals).
    """
    code = compile_restricted(script, filename, "exec")
    if code is None:
        raise SyntaxError("RestrictedPython: compile failed")
    return code


def build_restricted_globals(context_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Build the globals dict for exec(compiled, globals): safe builtins, guards,
    extras (json, datetime) and the script context (log, img, files, share, ...).
    """
    safe = dict(safe_builtins)
    g: dict[str, Any] = {
        "__builtins__": safe,
        "__name__": "script",
    }
    g.update(_make_guard_globals())
    g.update(_make_extra_globals())
    for name in EXPOSED_BUILTINS:
        obj = safe.get(name, getattr(builtins, name, None))
        if obj is not None:
            g[name] = obj
    g.update(context_dict)
    return g
