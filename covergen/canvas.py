import logging
from dataclasses import dataclass
from typing import Tuple

from PIL import Image

from .config import CompositionConfig
from .errors import InvalidImageError
from .rasters import cover_fit, decode_image
from .settings import SIZE_PRESETS


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CanvasSpec:
    width: int
    height: int
    size_class: str
    # Whether the background must be cover-fitted to (width, height).
    resize: bool = True

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)


def resolve_canvas(natural_size: Tuple[int, int], config: CompositionConfig) -> CanvasSpec:
    """
    Turn the background's natural size and the requested size class into a
    canvas.

    Presets always win. For `custom`, the caller's width/height are used
    verbatim when both are positive; otherwise the background keeps its
    natural size.
    """
    natural_w, natural_h = natural_size
    if natural_w <= 0 or natural_h <= 0:
        raise InvalidImageError("Invalid background image dimensions")

    if config.size in SIZE_PRESETS:
        width, height = SIZE_PRESETS[config.size]
        return CanvasSpec(width=width, height=height, size_class=config.size)

    if config.width and config.height and config.width > 0 and config.height > 0:
        return CanvasSpec(width=config.width, height=config.height, size_class="custom")

    return CanvasSpec(width=natural_w, height=natural_h, size_class="custom", resize=False)


def prepare_background(data: bytes, config: CompositionConfig) -> Tuple[Image.Image, CanvasSpec]:
    """
    Decode the background and bring it to its canvas size.

    Returns an RGBA image exactly `canvas.size` large, ready for compositing.
    """
    background = decode_image(data)
    canvas = resolve_canvas(background.size, config)

    if canvas.resize:
        background = cover_fit(background, canvas.size)
    logger.info(
        "Canvas resolved: %s %dx%d (background %s)",
        canvas.size_class,
        canvas.width,
        canvas.height,
        "cover-fitted" if canvas.resize else "natural size",
    )
    return background.convert("RGBA"), canvas
