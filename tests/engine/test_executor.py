"""Unit tests for engine.executor and context."""

import signal
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from scriptshot.engine import ScriptContext, ScriptExecutor
from scriptshot.engine.executor import ScriptTimeoutError


class TestScriptExecutorBasic:
    def test_result_list(self, context: ScriptContext) -> None:
        out = ScriptExecutor().execute("result = [1, 2, 3]", context)
        assert out == [1, 2, 3]

    def test_execute_function_style(self, storage_root: Path) -> None:
        """When script defines execute(screenshot_path), it is called and its return value used."""
        ctx = ScriptContext(screenshot_path="/tmp/shot.png", storage_root=storage_root)
        script = (
            "def execute(path=None):\n"
            "    return 'got ' + str(path)\n"
        )
        assert ScriptExecutor().execute(script, ctx) == "got /tmp/shot.png"

    def test_no_result_returns_none(self, context: ScriptContext) -> None:
        assert ScriptExecutor().execute("x = 1", context) is None

    def test_open_blocked(self, context: ScriptContext) -> None:
        with pytest.raises(NameError, match="open"):
            ScriptExecutor().execute("result = open('/etc/passwd')", context)

    def test_import_blocked(self, context: ScriptContext) -> None:
        with pytest.raises(ImportError):
            ScriptExecutor().execute("import os", context)

    def test_empty_source_rejected(self, context: ScriptContext) -> None:
        with pytest.raises(ValueError, match="empty"):
            ScriptExecutor().execute("   \n", context)

    def test_log_lines_collected(self, context: ScriptContext) -> None:
        ScriptExecutor().execute("log('one')\nlog.warn('two')", context)
        assert context.log_lines == ["one", "two"]

    def test_release_called_on_error(self, context: ScriptContext) -> None:
        context.share = MagicMock()
        with pytest.raises(ZeroDivisionError):
            ScriptExecutor().execute("x = 1 / 0", context)
        context.share.close.assert_called_once()


@patch("scriptshot.engine.executor.settings")
def test_extra_modules_injected(mock_settings: MagicMock, context: ScriptContext) -> None:
    mock_settings.SCRIPT_EXEC_TIMEOUT = None
    mock_settings.SCRIPT_EXTRA_MODULES = "math, not-a-module"
    out = ScriptExecutor().execute("result = math.floor(2.7)", context)
    assert out == 2


@patch("scriptshot.engine.executor.settings")
@pytest.mark.skipif(not hasattr(signal, "SIGALRM"), reason="SIGALRM not available (e.g. Windows)")
def test_script_executor_timeout_raises(mock_settings: MagicMock, context: ScriptContext) -> None:
    """When SCRIPT_EXEC_TIMEOUT is set, a long-running script raises ScriptTimeoutError."""
    mock_settings.SCRIPT_EXEC_TIMEOUT = 1
    mock_settings.SCRIPT_EXTRA_MODULES = ""
    with pytest.raises(ScriptTimeoutError, match="timed out"):
        ScriptExecutor().execute("while True: pass", context)


class TestScriptContextToDict:
    def test_has_capabilities_and_path(self, storage_root: Path) -> None:
        ctx = ScriptContext(screenshot_path="/tmp/a.png", storage_root=storage_root)
        d = ctx.to_dict()
        for name in ("log", "img", "files", "share", "ImageError", "FileError", "ShareError"):
            assert name in d
        assert d["screenshot_path"] == "/tmp/a.png"
        assert d["screenshotPath"] == "/tmp/a.png"

    def test_img_state_not_shared_between_contexts(self, storage_root: Path) -> None:
        a = ScriptContext(storage_root=storage_root)
        b = ScriptContext(storage_root=storage_root)
        a.img.rotate("x.png", 360)
        assert a.img.get_last_output_path() is not None
        assert b.img.get_last_output_path() is None
