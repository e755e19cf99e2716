import io
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from PIL import Image

from .errors import EncodingError
from .layers import LayerSpec


logger = logging.getLogger(__name__)

JPEG_CONTENT_TYPE = "image/jpeg"


@dataclass(frozen=True)
class EncodedImage:
    data: bytes
    content_type: str
    width: int
    height: int


def flatten(background: Image.Image, layers: List[LayerSpec]) -> Image.Image:
    """
    Paint `layers` over `background` in order with alpha-over blending.

    Layer content falling outside the canvas is clipped. Returns a new RGBA
    image the size of `background`.
    """
    canvas = background.convert("RGBA")
    for layer in layers:
        clipped = _clip(layer, canvas.size)
        if clipped is None:
            logger.debug("Layer %s lies entirely outside the canvas", layer.name)
            continue
        content, dest = clipped
        if content.mode != "RGBA":
            content = content.convert("RGBA")
        canvas.alpha_composite(content, dest=dest)
    return canvas


def encode_jpeg(img: Image.Image, quality: int = 90) -> EncodedImage:
    buf = io.BytesIO()
    try:
        img.convert("RGB").save(buf, format="JPEG", quality=quality)
    except (OSError, ValueError) as e:
        raise EncodingError(f"Failed to encode image: {e}") from e
    return EncodedImage(
        data=buf.getvalue(),
        content_type=JPEG_CONTENT_TYPE,
        width=img.width,
        height=img.height,
    )


def compose(background: Image.Image, layers: List[LayerSpec], quality: int = 90) -> EncodedImage:
    return encode_jpeg(flatten(background, layers), quality=quality)


def _clip(
    layer: LayerSpec,
    canvas_size: Tuple[int, int],
) -> Optional[Tuple[Image.Image, Tuple[int, int]]]:
    canvas_w, canvas_h = canvas_size
    content = layer.content

    x0 = max(layer.left, 0)
    y0 = max(layer.top, 0)
    x1 = min(layer.left + content.width, canvas_w)
    y1 = min(layer.top + content.height, canvas_h)
    if x0 >= x1 or y0 >= y1:
        return None

    if (x0, y0, x1, y1) != (layer.left, layer.top, layer.left + content.width, layer.top + content.height):
        content = content.crop((x0 - layer.left, y0 - layer.top, x1 - layer.left, y1 - layer.top))
    return content, (x0, y0)
