"""
ScriptHost: load scripts, build a fresh ScriptContext per run, execute one
script at a time and report failures as ScriptRunResult instead of raising.
"""

import logging
import threading
import time
from pathlib import Path
from typing import Callable, Iterable

import httpx

from scriptshot.core.config import settings
from scriptshot.core.storage import ScriptStorage
from scriptshot.schemas import ScriptRunResult

from .context import ScriptContext
from .executor import ScriptExecutor
from .modules.share import ShareHandler

_log = logging.getLogger(__name__)


class ScriptHost:
    """
    run(name, screenshot_path) / run_source(source, ...) / run_batch(names, ...) / trigger(...)

    Every run is wrapped in an error boundary: an uncaught exception is logged,
    appended to the run's log lines and returned as a failed result, so a batch
    always continues with the next script.
    """

    def __init__(
        self,
        *,
        storage_root: Path | None = None,
        storage: ScriptStorage | None = None,
        executor: ScriptExecutor | None = None,
        share_handler: ShareHandler | None = None,
        share_transport: httpx.BaseTransport | None = None,
        logger: logging.Logger | None = None,
        default_script_name: str | None = None,
        debounce_ms: int | None = None,
    ) -> None:
        root = Path(storage_root) if storage_root is not None else None
        if storage is None:
            storage = ScriptStorage(root or settings.SCRIPTS_STORAGE_ROOT)
        self.storage = storage
        self.storage_root = root or storage.root
        self._executor = executor or ScriptExecutor()
        self._share_handler = share_handler
        self._share_transport = share_transport
        self._logger = logger
        self._default_script_name = default_script_name or settings.DEFAULT_SCRIPT_NAME
        self._debounce_ms = settings.TRIGGER_DEBOUNCE_MS if debounce_ms is None else debounce_ms
        self._run_lock = threading.Lock()
        self._trigger_lock = threading.Lock()
        self._last_trigger: float | None = None

    def _make_context(self, script_name: str, screenshot_path: str | Path | None) -> ScriptContext:
        return ScriptContext(
            screenshot_path=str(screenshot_path) if screenshot_path is not None else None,
            storage_root=self.storage_root,
            script_name=script_name,
            logger=self._logger,
            img_in_place=settings.IMG_ROTATE_IN_PLACE,
            img_output_dir=settings.IMG_OUTPUT_DIR,
            share_webhook_url=settings.SHARE_WEBHOOK_URL,
            share_handler=self._share_handler,
            share_timeout=settings.SHARE_TIMEOUT,
            share_transport=self._share_transport,
        )

    def _run(
        self,
        script_name: str,
        load_source: Callable[[], str],
        screenshot_path: str | Path | None,
    ) -> ScriptRunResult:
        with self._run_lock:
            ctx = self._make_context(script_name, screenshot_path)
            started = time.monotonic()
            try:
                source = load_source()
                result = self._executor.execute(source, ctx)
            except Exception as e:
                _log.error("Script %s failed: %s", script_name, e, exc_info=True)
                ctx.log.error(f"Script {script_name} failed: {type(e).__name__}: {e}")
                return ScriptRunResult(
                    script_name=script_name,
                    success=False,
                    error=f"{type(e).__name__}: {e}",
                    log_lines=ctx.log_lines,
                )
            _log.info(
                "Script %s finished in %.1fms", script_name, (time.monotonic() - started) * 1000
            )
            return ScriptRunResult(
                script_name=script_name, log_lines=ctx.log_lines, result=result
            )

    def run(self, script_name: str, screenshot_path: str | Path | None = None) -> ScriptRunResult:
        """Load a stored or built-in script by name and run it."""
        return self._run(script_name, lambda: self.storage.load(script_name), screenshot_path)

    def run_source(
        self,
        source: str,
        screenshot_path: str | Path | None = None,
        *,
        script_name: str = "<inline>",
    ) -> ScriptRunResult:
        return self._run(script_name, lambda: source, screenshot_path)

    def run_batch(
        self, script_names: Iterable[str], screenshot_path: str | Path | None = None
    ) -> list[ScriptRunResult]:
        return [self.run(name, screenshot_path) for name in script_names]

    def trigger(
        self, screenshot_path: str | Path | None = None, script_name: str | None = None
    ) -> ScriptRunResult | None:
        """
        Run script_name (or DEFAULT_SCRIPT_NAME) for a new screenshot.
        Triggers within TRIGGER_DEBOUNCE_MS of the previous accepted one are dropped (None).
        """
        now = time.monotonic()
        with self._trigger_lock:
            last = self._last_trigger
            if last is not None and (now - last) * 1000 < self._debounce_ms:
                _log.warning("Trigger debounced: within %dms of the previous one", self._debounce_ms)
                return None
            self._last_trigger = now
        return self.run(script_name or self._default_script_name, screenshot_path)
