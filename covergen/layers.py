import logging
from dataclasses import dataclass
from importlib import resources
from typing import List, Optional, Tuple

from PIL import Image, ImageDraw

from .assets import AssetFetcher
from .canvas import CanvasSpec
from .config import RGB, CompositionConfig
from .rasters import cover_fit, decode_image, rasterize_svg
from .settings import RenderDefaults


logger = logging.getLogger(__name__)

# Relative opacity of the bottom gradient at the middle of its band.
GRADIENT_MID_STOP = 0.8


@dataclass(frozen=True)
class LayerSpec:
    """
    A positioned raster painted onto the canvas.

    `top`/`left` may place content partly outside the canvas; the
    compositor clips it.
    """

    name: str
    content: Image.Image
    top: int
    left: int


def build_layer_stack(
    config: CompositionConfig,
    canvas: CanvasSpec,
    logo: Image.Image,
    fetcher: Optional[AssetFetcher] = None,
    defaults: Optional[RenderDefaults] = None,
) -> List[LayerSpec]:
    """
    Build the ordered overlay stack: texture, bottom gradient, brand wash,
    logo, watermark. Optional layers that fail are left out.
    """
    defaults = defaults or RenderDefaults()

    texture = None
    if config.overlay and defaults.texture_enabled and fetcher is not None:
        texture = _optional_layer("texture", lambda: texture_layer(canvas, fetcher, defaults))

    brand_wash = None
    if config.brand_color is not None:
        brand_wash = _optional_layer(
            "brand_wash",
            lambda: brand_wash_layer(canvas, config.brand_color, defaults.brand_wash_opacity),
        )

    watermark = None
    if config.watermark:
        watermark = _optional_layer("watermark", lambda: watermark_layer(canvas, defaults))

    stack = [
        texture,
        bottom_gradient_layer(canvas, config.gradient_intensity, defaults.gradient_band),
        brand_wash,
        logo_layer(canvas, logo, config.logo_mode, defaults.logo_padding),
        watermark,
    ]
    return [layer for layer in stack if layer is not None]


def texture_layer(
    canvas: CanvasSpec,
    fetcher: AssetFetcher,
    defaults: RenderDefaults,
) -> LayerSpec:
    texture = decode_image(fetcher.fetch(defaults.texture_url)).convert("RGBA")
    return LayerSpec(name="texture", content=cover_fit(texture, canvas.size), top=0, left=0)


def bottom_gradient_layer(
    canvas: CanvasSpec,
    intensity: float,
    band: float = 0.4,
) -> LayerSpec:
    """
    Black band over the bottom of the canvas, fully transparent at its top
    edge and `intensity` opaque at the bottom edge.
    """
    band_height = max(1, round(canvas.height * band))
    gradient = Image.new("RGBA", (canvas.width, band_height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(gradient)

    for i in range(band_height):
        # Distance from the bottom edge, 0.0 (bottom) .. 1.0 (top of band).
        offset = 1.0 - (i + 0.5) / band_height
        alpha = round(255 * gradient_opacity(offset, intensity))
        draw.line([(0, i), (canvas.width, i)], fill=(0, 0, 0, alpha))

    return LayerSpec(
        name="bottom_gradient",
        content=gradient,
        top=canvas.height - band_height,
        left=0,
    )


def gradient_opacity(offset: float, intensity: float) -> float:
    """
    Opacity of the bottom gradient at `offset` (0.0 = bottom edge, 1.0 = top
    of the band): `intensity` -> mid stop at half-way -> 0.
    """
    mid = intensity * GRADIENT_MID_STOP
    if offset <= 0.5:
        return intensity + (mid - intensity) * (offset / 0.5)
    return mid * (1.0 - (offset - 0.5) / 0.5)


def brand_wash_layer(canvas: CanvasSpec, color: RGB, opacity: float = 0.8) -> LayerSpec:
    """
    Full-canvas vertical wash from the brand color (top) to black (bottom)
    at a constant opacity.
    """
    wash = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(wash)
    alpha = round(255 * opacity)
    last_row = max(1, canvas.height - 1)

    for y in range(canvas.height):
        t = y / last_row
        fill = tuple(round(channel * (1.0 - t)) for channel in color) + (alpha,)
        draw.line([(0, y), (canvas.width, y)], fill=fill)

    return LayerSpec(name="brand_wash", content=wash, top=0, left=0)


def logo_layer(
    canvas: CanvasSpec,
    logo: Image.Image,
    mode: str = "center",
    padding: int = 40,
) -> LayerSpec:
    top, left = logo_position(canvas, logo.size, mode, padding)
    return LayerSpec(name="logo", content=logo, top=top, left=left)


def logo_position(
    canvas: CanvasSpec,
    logo_size: Tuple[int, int],
    mode: str = "center",
    padding: int = 40,
) -> Tuple[int, int]:
    """
    Return (top, left) for the logo.

    `center` centers it on both axes; `corner` anchors it bottom-left,
    `padding` pixels from the edges.
    """
    logo_w, logo_h = logo_size
    if mode == "corner":
        return canvas.height - logo_h - padding, padding
    return round((canvas.height - logo_h) / 2), round((canvas.width - logo_w) / 2)


def watermark_layer(canvas: CanvasSpec, defaults: RenderDefaults) -> LayerSpec:
    mark = rasterize_svg(load_watermark_svg(), output_height=defaults.watermark_height)
    top = canvas.height - mark.height - defaults.watermark_offset
    left = round((canvas.width - mark.width) / 2)
    return LayerSpec(name="watermark", content=mark, top=top, left=left)


def load_watermark_svg() -> bytes:
    return resources.files("covergen").joinpath("static/watermark.svg").read_bytes()


def _optional_layer(name: str, build) -> Optional[LayerSpec]:
    try:
        return build()
    except Exception as e:
        logger.warning("Skipping %s layer: %s", name, e)
        return None
