"""
Image module for script engine: load, to_base64, rotate and simple transforms.

Backed by Pillow. Relative paths resolve against the scripts-storage root.
Transforms without an explicit out_path either overwrite the source
(IMG_ROTATE_IN_PLACE) or write a sibling copy named
``<stem>-<op>-<millis><ext>``; the path actually written is exposed through
get_last_output_path() until the next transform.

Output is encoded in the source's family: JPEG for JPEG sources, WEBP for
WEBP, PNG for everything else. A transform whose result cannot be encoded
returns False.
"""

import base64
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Callable

from PIL import (
    Image,
    ImageColor,
    ImageDraw,
    ImageFilter,
    ImageFont,
    ImageOps,
    ImageStat,
    UnidentifiedImageError,
)

from scriptshot.core.errors import ImageError
from scriptshot.schemas import ImageInfo

_log = logging.getLogger(__name__)

# Clockwise rotations that map onto lossless transposes
_TRANSPOSE_BY_DEGREES = {
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}

_JPEG_QUALITY = 100
_DEFAULT_COLOR = (255, 255, 255, 255)
_SHADOW_COLOR = (0, 0, 0, 120)

_POSITIONS = {
    "top_left": "top_left",
    "tl": "top_left",
    "top_right": "top_right",
    "tr": "top_right",
    "bottom_left": "bottom_left",
    "bl": "bottom_left",
    "center": "center",
    "middle": "center",
    "bottom_right": "bottom_right",
    "br": "bottom_right",
}


def _choose_format(mime: str | None) -> str:
    lower = (mime or "").lower()
    if "jpeg" in lower or "jpg" in lower:
        return "JPEG"
    if "webp" in lower:
        return "WEBP"
    return "PNG"


def _parse_color(color: str | None) -> tuple[int, int, int, int]:
    """CSS-style colors; ``#AARRGGBB`` is alpha first. Invalid or empty means white."""
    if color is None or not str(color).strip():
        return _DEFAULT_COLOR
    value = str(color).strip()
    if value.startswith("#") and len(value) == 9:
        value = "#" + value[3:] + value[1:3]
    try:
        return ImageColor.getcolor(value, "RGBA")
    except ValueError:
        _log.warning("Invalid color string %r, defaulting to white", color)
        return _DEFAULT_COLOR


def _resolve_position(value: str | None) -> str:
    return _POSITIONS.get((value or "").strip().lower(), "bottom_right")


def _build_box(
    left: int, top: int, right: int, bottom: int, width: int, height: int
) -> tuple[int, int, int, int]:
    """Normalise corners, then clamp to the image bounds."""
    def clamp(v: int, hi: int) -> int:
        return max(0, min(hi, int(v)))

    return (
        clamp(min(left, right), width),
        clamp(min(top, bottom), height),
        clamp(max(left, right), width),
        clamp(max(top, bottom), height),
    )


def _is_empty(box: tuple[int, int, int, int]) -> bool:
    return box[0] >= box[2] or box[1] >= box[3]


def _restore_mode(result: Image.Image, mode: str) -> Image.Image:
    if mode in ("RGB", "L") and result.mode != mode:
        return result.convert(mode)
    return result


def _anchor_xy(
    position: str, canvas: tuple[int, int], overlay: tuple[int, int], padding: int
) -> tuple[int, int]:
    cw, ch = canvas
    ow, oh = overlay
    if position == "top_left":
        return padding, padding
    if position == "top_right":
        return cw - ow - padding, padding
    if position == "bottom_left":
        return padding, ch - oh - padding
    if position == "center":
        return (cw - ow) // 2, (ch - oh) // 2
    return cw - ow - padding, ch - oh - padding


def _on_canvas(
    image: Image.Image, size: tuple[int, int], offset: tuple[int, int], color: str | None
) -> Image.Image:
    canvas = Image.new("RGBA", size, _parse_color(color))
    canvas.paste(image.convert("RGBA"), offset)
    return _restore_mode(canvas, image.mode)


class _ImgModule:
    """Per-invocation `img` object; holds the last output path of this run only."""

    __slots__ = ("_in_place", "_last_output_path", "_output_dir", "_root")

    def __init__(
        self,
        *,
        root: Path,
        in_place: bool = True,
        output_dir: Path | None = None,
    ) -> None:
        self._root = root
        self._in_place = in_place
        self._output_dir = output_dir
        self._last_output_path: str | None = None

    # -- path helpers -----------------------------------------------------

    def _resolve(self, path: str) -> Path:
        if not isinstance(path, str) or not path.strip():
            raise ImageError("Path is required")
        p = Path(path)
        if not p.is_absolute():
            p = self._root / p
        return p

    def _source(self, path: str) -> Path:
        src = self._resolve(path)
        if not src.is_file():
            raise ImageError(f"Image not found: {path}")
        return src

    def _copy_destination(self, src: Path, op: str) -> Path:
        directory = self._output_dir or src.parent
        stem = src.stem or "screenshot"
        millis = int(time.time() * 1000)
        dest = directory / f"{stem}-{op}-{millis}{src.suffix}"
        n = 1
        while dest.exists():
            dest = directory / f"{stem}-{op}-{millis}-{n}{src.suffix}"
            n += 1
        return dest

    # -- decode / encode --------------------------------------------------

    @staticmethod
    def _decode(src: Path) -> Image.Image | None:
        """Fully decode *src*; None when Pillow cannot read it."""
        try:
            with Image.open(src) as im:
                im.load()
                fmt = im.format
                decoded = im.copy()
        except (UnidentifiedImageError, OSError) as e:
            _log.debug("decode failed for %s: %s", src, e)
            return None
        decoded.format = fmt
        return decoded

    @staticmethod
    def _save(image: Image.Image, dest: Path, out_format: str, quality: int = _JPEG_QUALITY) -> bool:
        """Encode atomically into dest. False when Pillow cannot encode this image as out_format."""
        if out_format == "JPEG" and image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{dest.stem}-", suffix=dest.suffix, dir=dest.parent
            )
            os.close(fd)
            try:
                if out_format == "JPEG":
                    image.save(tmp_name, format=out_format, quality=quality)
                else:
                    image.save(tmp_name, format=out_format)
                os.replace(tmp_name, dest)
            finally:
                if os.path.exists(tmp_name):
                    os.remove(tmp_name)
        except (KeyError, ValueError) as e:
            _log.warning("Cannot encode %s as %s: %s", dest, out_format, e)
            return False
        except OSError as e:
            raise ImageError(f"Unable to write image {dest}: {e}") from e
        return True

    def _persist(self, image: Image.Image, src: Path, out_path: str | None, op: str) -> bool:
        if out_path is not None and out_path.strip():
            dest = self._resolve(out_path.strip())
        elif self._in_place:
            dest = src
        else:
            dest = self._copy_destination(src, op)
        mime = Image.MIME.get(image.format) if image.format else None
        if not self._save(image, dest, _choose_format(mime)):
            return False
        self._last_output_path = str(dest)
        return True

    def _transform(
        self,
        path: str,
        out_path: str | None,
        op: str,
        operator: Callable[[Image.Image], Image.Image],
    ) -> bool:
        src = self._source(path)
        image = self._decode(src)
        if image is None:
            return False
        fmt = image.format
        result = operator(image)
        result.format = fmt
        return self._persist(result, src, out_path, op)

    def _noop(self, src: Path, out_path: str | None) -> bool:
        if out_path is None or not out_path.strip():
            self._last_output_path = str(src)
            return True
        dest = self._resolve(out_path.strip())
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_bytes(src.read_bytes())
        except OSError as e:
            raise ImageError(f"Unable to copy image to {out_path}: {e}") from e
        self._last_output_path = str(dest)
        return True

    def _scale_to(self, path: str, out_path: str | None, op: str, scale: float) -> bool:
        def _resize(image: Image.Image) -> Image.Image:
            size = (max(1, round(image.width * scale)), max(1, round(image.height * scale)))
            return image.resize(size, Image.Resampling.LANCZOS)

        return self._transform(path, out_path, op, _resize)

    # -- script API -------------------------------------------------------

    def load(self, path: str) -> ImageInfo:
        src = self._source(path)
        try:
            with Image.open(src) as im:
                width, height = im.size
                mime = Image.MIME.get(im.format) if im.format else None
        except (UnidentifiedImageError, OSError) as e:
            raise ImageError(f"Unable to decode image: {path}") from e
        return ImageInfo(width=width, height=height, size=src.stat().st_size, mime=mime)

    def to_base64(self, path: str) -> str:
        src = self._source(path)
        try:
            data = src.read_bytes()
        except OSError as e:
            raise ImageError(f"Unable to read image: {path}") from e
        return base64.b64encode(data).decode("ascii")

    def rotate(self, path: str, degrees: int | float) -> bool:
        """Rotate clockwise. Returns False when the image cannot be decoded or re-encoded."""
        normalized = degrees % 360
        if normalized == 0:
            self._last_output_path = str(self._resolve(path))
            return True

        def _rotate(image: Image.Image) -> Image.Image:
            transpose = _TRANSPOSE_BY_DEGREES.get(normalized)
            if transpose is not None:
                return image.transpose(transpose)
            return image.rotate(-normalized, expand=True)

        return self._transform(path, None, "rotated", _rotate)

    def compress(self, path: str, quality: int, out_path: str) -> bool:
        """Re-encode as JPEG at *quality* (clamped to 0..100) into out_path."""
        src = self._source(path)
        image = self._decode(src)
        if image is None:
            return False
        dest = self._resolve(out_path)
        if not self._save(image, dest, "JPEG", quality=max(0, min(int(quality), 100))):
            return False
        self._last_output_path = str(dest)
        return True

    def crop_center(self, path: str, width: int, height: int, out_path: str | None = None) -> bool:
        if width <= 0 or height <= 0:
            raise ValueError("Width and height must be > 0")

        def _crop(image: Image.Image) -> Image.Image:
            w = min(width, image.width)
            h = min(height, image.height)
            left = (image.width - w) // 2
            top = (image.height - h) // 2
            return image.crop((left, top, left + w, top + h))

        return self._transform(path, out_path, "cropped", _crop)

    def crop_relative(
        self,
        path: str,
        left: float,
        top: float,
        right: float,
        bottom: float,
        out_path: str | None = None,
    ) -> bool:
        """Crop by fractions of width/height (0..1). An empty area leaves the image unchanged."""
        def _frac(v: float) -> float:
            return max(0.0, min(1.0, float(v)))

        x0, y0, x1, y1 = _frac(left), _frac(top), _frac(right), _frac(bottom)

        def _crop(image: Image.Image) -> Image.Image:
            box = (
                round(image.width * min(x0, x1)),
                round(image.height * min(y0, y1)),
                round(image.width * max(x0, x1)),
                round(image.height * max(y0, y1)),
            )
            if _is_empty(box):
                return image
            return image.crop(box)

        return self._transform(path, out_path, "cropped", _crop)

    def resize_to_max_edge(self, path: str, max_edge: int, out_path: str | None = None) -> bool:
        if max_edge <= 0:
            raise ValueError("max_edge must be > 0")
        src = self._source(path)
        info = self.load(path)
        longest = max(info.width, info.height)
        if longest <= max_edge:
            return self._noop(src, out_path)
        return self._scale_to(path, out_path, "resized", max_edge / float(longest))

    def resize_to_fit(
        self, path: str, max_width: int, max_height: int, out_path: str | None = None
    ) -> bool:
        if max_width <= 0 or max_height <= 0:
            raise ValueError("max_width and max_height must be > 0")
        src = self._source(path)
        info = self.load(path)
        if info.width <= max_width and info.height <= max_height:
            return self._noop(src, out_path)
        scale = min(max_width / float(info.width), max_height / float(info.height))
        return self._scale_to(path, out_path, "resized", scale)

    def to_grayscale(self, path: str, out_path: str | None = None) -> bool:
        return self._transform(path, out_path, "grayscale", ImageOps.grayscale)

    def fill_rect(
        self,
        path: str,
        left: int,
        top: int,
        right: int,
        bottom: int,
        color: str | None,
        out_path: str | None = None,
    ) -> bool:
        fill = _parse_color(color)

        def _fill(image: Image.Image) -> Image.Image:
            box = _build_box(left, top, right, bottom, image.width, image.height)
            if _is_empty(box):
                return image
            canvas = image.convert("RGBA")
            ImageDraw.Draw(canvas, "RGBA").rectangle(
                (box[0], box[1], box[2] - 1, box[3] - 1), fill=fill
            )
            return _restore_mode(canvas, image.mode)

        return self._transform(path, out_path, "filled", _fill)

    def draw_rect(
        self,
        path: str,
        left: int,
        top: int,
        right: int,
        bottom: int,
        color: str | None,
        stroke_width: float,
        out_path: str | None = None,
    ) -> bool:
        outline = _parse_color(color)
        width = max(1, round(stroke_width))

        def _draw(image: Image.Image) -> Image.Image:
            box = _build_box(left, top, right, bottom, image.width, image.height)
            if _is_empty(box):
                return image
            canvas = image.convert("RGBA")
            ImageDraw.Draw(canvas, "RGBA").rectangle(
                (box[0], box[1], box[2] - 1, box[3] - 1), outline=outline, width=width
            )
            return _restore_mode(canvas, image.mode)

        return self._transform(path, out_path, "outlined", _draw)

    def blur_rect(
        self,
        path: str,
        left: int,
        top: int,
        right: int,
        bottom: int,
        radius: int,
        out_path: str | None = None,
    ) -> bool:
        if radius <= 0:
            raise ValueError("radius must be > 0")

        def _blur(image: Image.Image) -> Image.Image:
            box = _build_box(left, top, right, bottom, image.width, image.height)
            if _is_empty(box):
                return image
            canvas = image.convert("RGBA")
            region = canvas.crop(box).filter(ImageFilter.BoxBlur(radius))
            canvas.paste(region, box[:2])
            return _restore_mode(canvas, image.mode)

        return self._transform(path, out_path, "blurred", _blur)

    def watermark_text(
        self,
        path: str,
        text: str,
        position: str | None = None,
        text_size: float = 24,
        color: str | None = None,
        padding: int = 0,
        out_path: str | None = None,
    ) -> bool:
        """Draw *text* with a soft shadow. Empty text returns False without touching the image."""
        if text is None or not str(text).strip():
            return False
        size = max(10.0, float(text_size))
        pad = max(0, int(padding))
        fill = _parse_color(color)
        where = _resolve_position(position)
        anchor = {
            "top_left": "la",
            "top_right": "ra",
            "bottom_left": "ld",
            "bottom_right": "rd",
            "center": "mm",
        }[where]

        def _watermark(image: Image.Image) -> Image.Image:
            canvas = image.convert("RGBA")
            w, h = canvas.size
            x = {"top_left": pad, "bottom_left": pad, "center": w // 2}.get(where, w - pad)
            y = {"top_left": pad, "top_right": pad, "center": h // 2}.get(where, h - pad)
            font = ImageFont.load_default(size=size)
            layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
            draw = ImageDraw.Draw(layer)
            draw.text((x + 1, y + 1), str(text), font=font, fill=_SHADOW_COLOR, anchor=anchor)
            draw.text((x, y), str(text), font=font, fill=fill, anchor=anchor)
            return _restore_mode(Image.alpha_composite(canvas, layer), image.mode)

        return self._transform(path, out_path, "watermarked", _watermark)

    def watermark_image(
        self,
        path: str,
        watermark_path: str,
        position: str | None = None,
        scale: float = 0.25,
        padding: int = 0,
        out_path: str | None = None,
    ) -> bool:
        """Overlay another image scaled to *scale* of the base width (0 < scale <= 1, default 0.25)."""
        overlay_src = self._resolve(watermark_path)
        if not overlay_src.is_file():
            raise ImageError(f"Watermark image not found: {watermark_path}")
        overlay = self._decode(overlay_src)
        if overlay is None:
            raise ImageError(f"Unable to decode watermark image: {watermark_path}")
        factor = 0.25 if scale <= 0 else min(float(scale), 1.0)
        pad = max(0, int(padding))
        where = _resolve_position(position)

        def _watermark(image: Image.Image) -> Image.Image:
            canvas = image.convert("RGBA")
            ow = int(max(1, canvas.width * factor))
            oh = int(max(1, ow / (overlay.width / max(1, overlay.height))))
            scaled = overlay.convert("RGBA").resize((ow, oh), Image.Resampling.LANCZOS)
            canvas.paste(scaled, _anchor_xy(where, canvas.size, (ow, oh), pad), scaled)
            return _restore_mode(canvas, image.mode)

        return self._transform(path, out_path, "watermarked", _watermark)

    def pad(
        self,
        path: str,
        left: int,
        top: int,
        right: int,
        bottom: int,
        color: str | None = None,
        out_path: str | None = None,
    ) -> bool:
        grow = [max(0, int(v)) for v in (left, top, right, bottom)]

        def _pad(image: Image.Image) -> Image.Image:
            size = (image.width + grow[0] + grow[2], image.height + grow[1] + grow[3])
            return _on_canvas(image, size, (grow[0], grow[1]), color)

        return self._transform(path, out_path, "padded", _pad)

    def pad_to_aspect_ratio(
        self,
        path: str,
        target_width: int,
        target_height: int,
        color: str | None = None,
        out_path: str | None = None,
    ) -> bool:
        """Pad evenly on two sides until width:height equals target_width:target_height."""
        if target_width <= 0 or target_height <= 0:
            raise ValueError("target_width and target_height must be > 0")
        src = self._source(path)
        info = self.load(path)
        target = target_width / float(target_height)
        if abs(target - info.width / float(info.height)) < 0.0001:
            return self._noop(src, out_path)

        def _pad(image: Image.Image) -> Image.Image:
            w, h = image.size
            if target > w / float(h):
                total = max(0, round(target * h) - w)
                size, offset = (w + total, h), (total // 2, 0)
            else:
                total = max(0, round(w / target) - h)
                size, offset = (w, h + total), (0, total // 2)
            return _on_canvas(image, size, offset, color)

        return self._transform(path, out_path, "padded", _pad)

    def get_average_color(self, path: str, left: int, top: int, right: int, bottom: int) -> str:
        """Average RGB of the clamped rectangle as ``#RRGGBB``; empty rectangle means whole image."""
        src = self._source(path)
        image = self._decode(src)
        if image is None:
            raise ImageError(f"Unable to decode image: {path}")
        w, h = image.size
        box = _build_box(left, top, right, bottom, w, h)
        if _is_empty(box):
            box = (0, 0, w, h)
        region = image.convert("RGB").crop(box)
        r, g, b = (int(v) for v in ImageStat.Stat(region).mean)
        return f"#{r:02X}{g:02X}{b:02X}"

    def delete(self, path: str) -> bool:
        target = self._resolve(path)
        if not target.exists():
            return False
        self._last_output_path = None
        try:
            target.unlink()
        except OSError as e:
            _log.warning("img.delete failed for %s: %s", target, e)
            return False
        return True

    def get_last_output_path(self) -> str | None:
        return self._last_output_path

    # camelCase aliases
    toBase64 = to_base64
    getLastOutputPath = get_last_output_path
    cropCenter = crop_center
    cropRelative = crop_relative
    resizeToMaxEdge = resize_to_max_edge
    resizeToFit = resize_to_fit
    toGrayscale = to_grayscale
    fillRect = fill_rect
    drawRect = draw_rect
    blurRect = blur_rect
    watermarkText = watermark_text
    watermarkImage = watermark_image
    padToAspectRatio = pad_to_aspect_ratio
    getAverageColor = get_average_color


def make_img_module(
    *,
    root: Path,
    in_place: bool = True,
    output_dir: Path | None = None,
) -> _ImgModule:
    """Build the `img` object for one script invocation."""
    return _ImgModule(root=root, in_place=in_place, output_dir=output_dir)
