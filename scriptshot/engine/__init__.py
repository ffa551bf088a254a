"""
Script engine (Python, RestrictedPython) and host.

Exports: ScriptHost, ScriptExecutor, ScriptContext, compile_script, build_restricted_globals.
"""

from .context import ScriptContext
from .executor import ScriptExecutor, ScriptTimeoutError
from .host import ScriptHost
from .sandbox import build_restricted_globals, compile_script

__all__ = [
    "ScriptContext",
    "ScriptExecutor",
    "ScriptHost",
    "ScriptTimeoutError",
    "compile_script",
    "build_restricted_globals",
]
