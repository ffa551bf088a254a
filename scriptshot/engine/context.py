"""
ScriptContext: screenshot_path, log, img, files, share for one script execution.
"""

import logging
from pathlib import Path
from typing import Any

import httpx

from scriptshot.core.errors import FileError, ImageError, ShareError

from .modules import (
    make_files_module,
    make_img_module,
    make_log_module,
    make_share_module,
)
from .modules.share import DEFAULT_SHARE_TIMEOUT, ShareHandler


class ScriptContext:
    """
    Injects screenshot_path, log, img, files and share into the script namespace.
    Capability objects are built per context, so img's last output path and the
    collected log lines belong to this invocation only.
    """

    def __init__(
        self,
        *,
        screenshot_path: str | None = None,
        storage_root: Path,
        script_name: str = "<script>",
        logger: logging.Logger | None = None,
        img_in_place: bool = True,
        img_output_dir: Path | None = None,
        share_webhook_url: str | None = None,
        share_handler: ShareHandler | None = None,
        share_timeout: float = DEFAULT_SHARE_TIMEOUT,
        share_transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.screenshot_path = screenshot_path
        self.script_name = script_name
        self.log_lines: list[str] = []

        self.log = make_log_module(
            lines=self.log_lines,
            logger_instance=logger,
            extra={"script_name": script_name},
        )
        self.img = make_img_module(
            root=storage_root, in_place=img_in_place, output_dir=img_output_dir
        )
        self.files = make_files_module(root=storage_root)
        self.share = make_share_module(
            webhook_url=share_webhook_url,
            handler=share_handler,
            timeout=share_timeout,
            transport=share_transport,
            root=storage_root,
        )

    def release(self) -> None:
        """Call at script end: close the share client if one was opened."""
        self.share.close()

    def to_dict(self) -> dict[str, Any]:
        """Namespace for exec(compiled, globals): capabilities, screenshot path, error classes."""
        return {
            "screenshot_path": self.screenshot_path,
            "screenshotPath": self.screenshot_path,
            "log": self.log,
            "img": self.img,
            "files": self.files,
            "share": self.share,
            "ImageError": ImageError,
            "FileError": FileError,
            "ShareError": ShareError,
        }
