"""
ScriptShot: run sandboxed automation scripts against captured screenshots.
"""

from scriptshot.engine import ScriptContext, ScriptExecutor, ScriptHost

__all__ = ["ScriptContext", "ScriptExecutor", "ScriptHost"]
