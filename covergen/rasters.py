import io
import re
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image, ImageChops, ImageOps, UnidentifiedImageError

from .errors import InvalidImageError


# Per-channel difference below which a pixel still counts as border.
TRIM_THRESHOLD = 10

_UTF8_BOM = b"\xef\xbb\xbf"

# Optional XML declaration, then any mix of comments and doctypes, then the root element.
_SVG_PROLOG = re.compile(
    rb"\s*(?:<\?xml[^>]*>\s*)?"
    rb"(?:<!--.*?-->\s*|<!DOCTYPE[^>\[]*(?:\[.*?\])?\s*>\s*)*"
    rb"<svg[\s>/]",
    re.DOTALL | re.IGNORECASE,
)


def is_svg(data: bytes) -> bool:
    if data.startswith(_UTF8_BOM):
        data = data[len(_UTF8_BOM):]
    if data.lstrip()[:1] != b"<":
        return False
    return _SVG_PROLOG.match(data) is not None


def guess_mime_type(data: bytes, source_url: Optional[str] = None) -> str:
    """
    Sniff the MIME type of an image payload.

    Falls back to the source URL's file extension when the bytes are not
    recognized, and finally to `image/png`.
    """
    if is_svg(data):
        return "image/svg+xml"
    try:
        with Image.open(io.BytesIO(data)) as img:
            mime = Image.MIME.get(img.format or "")
            if mime:
                return mime
    except (UnidentifiedImageError, OSError):
        pass

    if source_url:
        suffix = Path(source_url.split("?", 1)[0]).suffix.lower().lstrip(".")
        if suffix == "svg":
            return "image/svg+xml"
        if suffix in ("jpg", "jpeg"):
            return "image/jpeg"
        if suffix:
            return f"image/{suffix}"
    return "image/png"


def rasterize_svg(data: bytes, output_height: Optional[int] = None) -> Image.Image:
    # cairosvg needs the native cairo library; import lazily so the service
    # starts without it and only SVG inputs are affected.
    import cairosvg

    png = cairosvg.svg2png(bytestring=data, output_height=output_height)
    return Image.open(io.BytesIO(png)).convert("RGBA")


def decode_image(data: bytes, svg_height: Optional[int] = None) -> Image.Image:
    """
    Decode raster or SVG bytes into a fully loaded RGB/RGBA Pillow image.

    Raises InvalidImageError when the payload cannot be decoded or has
    non-positive dimensions.
    """
    if not data:
        raise InvalidImageError("Image payload is empty")

    try:
        if is_svg(data):
            img = rasterize_svg(data, output_height=svg_height)
        else:
            img = Image.open(io.BytesIO(data))
            img.load()
            img = ImageOps.exif_transpose(img)
            img = img.convert("RGBA" if _has_alpha(img) else "RGB")
    except InvalidImageError:
        raise
    except Exception as e:
        raise InvalidImageError(f"Could not decode image: {e}") from e

    if img.width <= 0 or img.height <= 0:
        raise InvalidImageError("Invalid image dimensions")
    return img


def cover_fit(img: Image.Image, size: Tuple[int, int]) -> Image.Image:
    """
    Scale to fill `size` and crop the overflow symmetrically, preserving
    the aspect ratio.
    """
    if img.size == size:
        return img.copy()
    return ImageOps.fit(img, size, method=Image.LANCZOS, centering=(0.5, 0.5))


def fit_to_height(img: Image.Image, height: int) -> Image.Image:
    """
    Resize to exactly `height` pixels tall, scaling the width to keep the
    aspect ratio.
    """
    width = max(1, round(img.width * height / img.height))
    if (width, height) == img.size:
        return img.copy()
    return img.resize((width, height), Image.LANCZOS)


def trim_border(img: Image.Image, threshold: int = TRIM_THRESHOLD) -> Image.Image:
    """
    Remove a uniform border whose color matches the top-left pixel.

    Transparent borders are trimmed on the alpha channel alone. A fully
    uniform image is returned unchanged.
    """
    if img.mode == "RGBA" and img.getpixel((0, 0))[3] <= threshold:
        mask = img.getchannel("A").point(lambda a: 255 if a > threshold else 0)
    else:
        rgb = img.convert("RGB")
        corner = Image.new("RGB", rgb.size, rgb.getpixel((0, 0)))
        diff = ImageChops.difference(rgb, corner).convert("L")
        mask = diff.point(lambda d: 255 if d > threshold else 0)

    bbox = mask.getbbox()
    if bbox is None or bbox == (0, 0, img.width, img.height):
        return img.copy()
    return img.crop(bbox)


def ensure_alpha(img: Image.Image) -> Image.Image:
    if img.mode == "RGBA":
        return img.copy()
    return img.convert("RGBA")


def _has_alpha(img: Image.Image) -> bool:
    return img.mode in ("RGBA", "LA", "PA") or (
        img.mode == "P" and "transparency" in img.info
    )
