"""
Share module for script engine: image(path).

Hands a single image to the configured share target: an injected handler
callable (embedding hosts with a native share surface) or an HTTP webhook
that receives the file as multipart field ``file``. Without either, sharing
is unavailable and image() raises ShareError. Relative paths resolve
against the scripts-storage root, as in the img module.
"""

import logging
import mimetypes
from pathlib import Path
from typing import Any, Callable
from urllib.parse import urlparse

import httpx

from scriptshot.core.errors import ShareError

DEFAULT_SHARE_TIMEOUT = 30.0

_log = logging.getLogger(__name__)

ShareHandler = Callable[[str], Any]


class _ShareModule:
    """Share module that opens at most one httpx.Client per script execution."""

    __slots__ = ("_client", "_handler", "_root", "_timeout", "_transport", "_webhook_url")

    def __init__(
        self,
        *,
        webhook_url: str | None = None,
        handler: ShareHandler | None = None,
        timeout: float = DEFAULT_SHARE_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
        root: Path | None = None,
    ) -> None:
        self._root = root
        self._webhook_url = (webhook_url or "").strip() or None
        self._handler = handler
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self._timeout, transport=self._transport)
        return self._client

    def _post(self, file: Path) -> None:
        url = self._webhook_url
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ShareError(f"Share target URL is invalid: {url}")
        mime = mimetypes.guess_type(file.name)[0] or "image/*"
        try:
            with file.open("rb") as fh:
                resp = self._get_client().post(url, files={"file": (file.name, fh, mime)})
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ShareError(f"Share target rejected {file.name}: HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, OSError) as e:
            raise ShareError(f"Share failed: {e}") from e
        _log.info("Shared %s to %s", file, parsed.hostname)

    def image(self, path: str) -> None:
        if not isinstance(path, str) or not path.strip():
            raise ShareError("Path is required")
        file = Path(path)
        if not file.is_absolute() and self._root is not None:
            file = self._root / file
        if not file.is_file():
            raise ShareError(f"File not found: {path}")
        if self._handler is not None:
            try:
                self._handler(str(file))
            except ShareError:
                raise
            except Exception as e:
                raise ShareError(f"Share failed: {e}") from e
            return
        if self._webhook_url is None:
            raise ShareError("No share target is available")
        self._post(file)

    def close(self) -> None:
        if self._client is not None:
            try:
                self._client.close()
            except Exception as e:
                _log.debug("share client close failed: %s", e)
            self._client = None


def make_share_module(
    *,
    webhook_url: str | None = None,
    handler: ShareHandler | None = None,
    timeout: float = DEFAULT_SHARE_TIMEOUT,
    transport: httpx.BaseTransport | None = None,
    root: Path | None = None,
) -> _ShareModule:
    """Build the ``share`` object. *handler* takes precedence over *webhook_url*."""
    return _ShareModule(
        webhook_url=webhook_url, handler=handler, timeout=timeout, transport=transport, root=root
    )
