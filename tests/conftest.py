from collections.abc import Callable
from pathlib import Path

import pytest
from PIL import Image

from scriptshot.engine import ScriptContext


def _gradient(width: int, height: int, mode: str = "RGB") -> Image.Image:
    """Image whose pixels all differ, so orientation changes are detectable."""
    im = Image.new("RGB", (width, height))
    im.putdata(
        [((x * 7) % 256, (y * 5) % 256, (x + y) % 256) for y in range(height) for x in range(width)]
    )
    return im.convert(mode) if mode != "RGB" else im


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    root = tmp_path / "storage"
    root.mkdir()
    return root


@pytest.fixture
def make_image(tmp_path: Path) -> Callable[..., Path]:
    def _make(
        name: str = "shot.png", width: int = 100, height: int = 200, fmt: str | None = None
    ) -> Path:
        path = tmp_path / name
        _gradient(width, height).save(path, format=fmt)
        return path

    return _make


@pytest.fixture
def context(storage_root: Path) -> ScriptContext:
    return ScriptContext(storage_root=storage_root)
