"""Tests for ScriptHost: error boundary, batch runs, trigger debounce, built-in scripts."""

from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image

from scriptshot.core.config import settings
from scriptshot.core.errors import ShareError
from scriptshot.engine import ScriptHost


@pytest.fixture
def share_handler() -> MagicMock:
    return MagicMock()


@pytest.fixture
def host(storage_root: Path, share_handler: MagicMock) -> ScriptHost:
    return ScriptHost(storage_root=storage_root, share_handler=share_handler, debounce_ms=0)


def _joined(lines: list[str]) -> str:
    return "\n".join(lines)


class TestErrorBoundary:
    def test_uncaught_exception_reported(self, host: ScriptHost) -> None:
        out = host.run_source("log('before')\nraise ValueError('boom')", script_name="bad.py")
        assert out.success is False
        assert out.script_name == "bad.py"
        assert out.error == "ValueError: boom"
        assert out.log_lines[0] == "before"
        assert "bad.py failed" in out.log_lines[-1]

    def test_syntax_error_reported(self, host: ScriptHost) -> None:
        out = host.run_source("def f(  ")
        assert out.success is False
        assert out.error.startswith("SyntaxError")

    def test_empty_source_reported(self, host: ScriptHost) -> None:
        out = host.run_source("  ")
        assert out.success is False
        assert "Script source is empty" in out.error

    def test_unknown_script_reported(self, host: ScriptHost) -> None:
        out = host.run("missing.py")
        assert out.success is False
        assert "ScriptNotFoundError" in out.error
        assert out.log_lines

    def test_batch_continues_after_failure(self, host: ScriptHost, storage_root: Path) -> None:
        host.storage.save("first.py", "raise RuntimeError('first broke')")
        host.storage.save("second.py", "log('second ran')\nresult = 2")
        results = host.run_batch(["first.py", "second.py"])
        assert [r.success for r in results] == [False, True]
        assert results[1].log_lines == ["second ran"]
        assert results[1].result == 2

    def test_last_output_path_fresh_per_run(self, host: ScriptHost, make_image: Callable[..., Path]) -> None:
        path = make_image()
        first = host.run_source("img.rotate(screenshot_path, 180)\nresult = img.get_last_output_path()", path)
        second = host.run_source("result = img.getLastOutputPath()", path)
        assert first.result == str(path)
        assert second.result is None


class TestDefaultScript:
    def test_reports_dimensions_and_appends_runtime_log(
        self, host: ScriptHost, storage_root: Path, make_image: Callable[..., Path]
    ) -> None:
        path = make_image("shot.png", 100, 200)
        out = host.run("default.py", path)
        assert out.success, out.error
        text = _joined(out.log_lines)
        assert "100x200" in text
        assert f"bytes={path.stat().st_size}" in text
        assert "Base64 payload length=" in text

        host.run("default.py", path)
        runtime_log = (storage_root / "scripts" / "runtime.log").read_text(encoding="utf-8")
        assert runtime_log.count("Captured at ") == 2

    def test_nothing_to_do_without_path(self, host: ScriptHost, storage_root: Path) -> None:
        out = host.run("default.py", None)
        assert out.success
        assert "Nothing to do" in _joined(out.log_lines)
        assert not (storage_root / "scripts" / "runtime.log").exists()


class TestRotateScript:
    @pytest.mark.parametrize("screenshot_path", [None, ""])
    def test_skips_without_path(self, host: ScriptHost, screenshot_path: str | None) -> None:
        out = host.run("rotate_screenshot.py", screenshot_path)
        assert out.success
        text = _joined(out.log_lines)
        assert "Nothing to do" in text
        assert "rotation error" not in text

    def test_rotates_in_place(self, host: ScriptHost, make_image: Callable[..., Path]) -> None:
        path = make_image()
        with Image.open(path) as im:
            before = im.convert("RGB").tobytes()
        out = host.run("rotate_screenshot.py", path)
        assert out.success
        text = _joined(out.log_lines)
        assert "original size: 100x200, type=image/png" in text
        assert "overwrote the original" in text
        with Image.open(path) as im:
            assert im.convert("RGB").tobytes() != before

    def test_rotates_to_copy(self, host: ScriptHost, make_image: Callable[..., Path]) -> None:
        path = make_image()
        with patch.object(settings, "IMG_ROTATE_IN_PLACE", False):
            out = host.run("rotate_screenshot.py", path)
        assert out.success
        assert "saved a copy: " in _joined(out.log_lines)

    def test_unencodable_result_logs_false(
        self, host: ScriptHost, make_image: Callable[..., Path]
    ) -> None:
        path = make_image()
        with patch("PIL.Image.Image.save", side_effect=KeyError("XPM")):
            out = host.run("rotate_screenshot.py", path)
        assert out.success
        assert "rotation failed, returned False" in _joined(out.log_lines)

    def test_undecodable_logs_error(self, host: ScriptHost, tmp_path: Path) -> None:
        bogus = tmp_path / "bogus.png"
        bogus.write_text("nope")
        out = host.run("rotate_screenshot.py", bogus)
        # img.load raises ImageError first; the script catches it
        assert out.success
        assert "rotation error" in _joined(out.log_lines)


class TestQuickShareScript:
    def test_skips_without_path(self, host: ScriptHost, share_handler: MagicMock) -> None:
        out = host.run("quick_share.py", None)
        assert out.success
        share_handler.assert_not_called()
        assert "Nothing to do" in _joined(out.log_lines)

    def test_shares_screenshot(
        self, host: ScriptHost, share_handler: MagicMock, make_image: Callable[..., Path]
    ) -> None:
        path = make_image()
        out = host.run("quick_share.py", path)
        assert out.success
        share_handler.assert_called_once_with(str(path))
        assert "share target opened" in _joined(out.log_lines)

    def test_share_error_caught_and_batch_continues(
        self, host: ScriptHost, share_handler: MagicMock, make_image: Callable[..., Path]
    ) -> None:
        share_handler.side_effect = ShareError("chooser unavailable")
        path = make_image()
        results = host.run_batch(["quick_share.py", "default.py"], path)
        assert [r.success for r in results] == [True, True]
        assert "share failed: chooser unavailable" in _joined(results[0].log_lines)
        assert "100x200" in _joined(results[1].log_lines)


class TestTrigger:
    def test_runs_default_script_name(self, storage_root: Path) -> None:
        host = ScriptHost(storage_root=storage_root, default_script_name="default.py", debounce_ms=0)
        out = host.trigger(None)
        assert out is not None
        assert out.script_name == "default.py"

    def test_debounces_rapid_triggers(self, storage_root: Path) -> None:
        host = ScriptHost(storage_root=storage_root, debounce_ms=60_000)
        first = host.trigger(None, script_name="default.py")
        second = host.trigger(None, script_name="default.py")
        assert first is not None
        assert second is None

    def test_explicit_script_overrides_default(self, storage_root: Path) -> None:
        host = ScriptHost(storage_root=storage_root, default_script_name="default.py", debounce_ms=0)
        out = host.trigger(None, script_name="quick_share.py")
        assert out.script_name == "quick_share.py"
