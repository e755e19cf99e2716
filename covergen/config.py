import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .assets import is_http_url
from .errors import ValidationError
from .settings import LOGO_MODES, SIZE_CLASSES, RenderDefaults


logger = logging.getLogger(__name__)

RGB = Tuple[int, int, int]

_HEX_COLOR_RE = re.compile(r"^[0-9A-F]{6}$")
_FALSE_STRINGS = ("false", "0", "no", "off")
_TRUE_STRINGS = ("true", "1", "yes", "on")


@dataclass(frozen=True)
class CompositionConfig:
    """
    Fully resolved, validated composition request.
    """

    background: str
    logo: str
    quality: int
    overlay: bool
    gradient_intensity: float
    size: str
    width: Optional[int] = None
    height: Optional[int] = None
    brand_color: Optional[RGB] = None
    watermark: bool = False
    logo_mode: str = "center"
    logo_height: int = 200


def resolve_config(
    data: Dict[str, Any],
    defaults: Optional[RenderDefaults] = None,
) -> CompositionConfig:
    """
    Expand a sparse request body into a `CompositionConfig`.

    Only `background` and `logo` are required. An invalid `brandcolor` is
    logged and dropped rather than rejected.
    """
    defaults = defaults or RenderDefaults()
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    background = data.get("background")
    logo = data.get("logo")
    if not background or not logo:
        raise ValidationError("Missing required fields: background and logo")
    for field_name, value in (("background", background), ("logo", logo)):
        if not isinstance(value, str) or not is_http_url(value):
            raise ValidationError(f"Field '{field_name}' must be an http(s) URL")

    quality = _int_field(data, "quality", defaults.quality)
    if not 1 <= quality <= 100:
        raise ValidationError("Field 'quality' must be between 1 and 100")

    intensity = _float_field(data, "gradient_intensity", defaults.gradient_intensity)
    if not 0.0 <= intensity <= 1.0:
        raise ValidationError("Field 'gradient_intensity' must be between 0 and 1")

    size = data.get("size") or defaults.size
    if size not in SIZE_CLASSES:
        raise ValidationError(f"Field 'size' must be one of: {', '.join(SIZE_CLASSES)}")

    logo_mode = data.get("logo_mode") or defaults.logo_mode
    if logo_mode not in LOGO_MODES:
        raise ValidationError(f"Field 'logo_mode' must be one of: {', '.join(LOGO_MODES)}")

    logo_height = _int_field(data, "logo_height", defaults.logo_height)
    if not defaults.min_logo_height <= logo_height <= defaults.max_logo_height:
        raise ValidationError(
            f"Field 'logo_height' must be between {defaults.min_logo_height} "
            f"and {defaults.max_logo_height}"
        )

    width = _optional_int_field(data, "width")
    height = _optional_int_field(data, "height")
    for field_name, value in (("width", width), ("height", height)):
        if value is not None and value > defaults.max_canvas_side:
            raise ValidationError(
                f"Field '{field_name}' must be at most {defaults.max_canvas_side}"
            )

    return CompositionConfig(
        background=background,
        logo=logo,
        quality=quality,
        overlay=_overlay_flag(data.get("overlay")),
        gradient_intensity=float(intensity),
        size=size,
        width=width,
        height=height,
        brand_color=parse_brand_color(data.get("brandcolor")),
        watermark=_watermark_flag(data.get("watermark")),
        logo_mode=logo_mode,
        logo_height=logo_height,
    )


def parse_brand_color(value: Any) -> Optional[RGB]:
    """
    Parse 'FF5733' or '#ff5733' into an RGB tuple.

    Returns None for absent or malformed values.
    """
    if value is None or value == "":
        return None
    hex_color = str(value).strip()
    if hex_color.startswith("#"):
        hex_color = hex_color[1:]
    hex_color = hex_color.upper()
    if not _HEX_COLOR_RE.match(hex_color):
        logger.warning("Ignoring invalid brand color: %r", value)
        return None
    return (
        int(hex_color[0:2], 16),
        int(hex_color[2:4], 16),
        int(hex_color[4:6], 16),
    )


def _overlay_flag(value: Any) -> bool:
    # Only an explicit false switches the texture overlay off.
    if value is False:
        return False
    if isinstance(value, str) and value.strip().lower() in _FALSE_STRINGS:
        return False
    return True


def _watermark_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return value == 1


def _int_field(data: Dict[str, Any], name: str, default: int) -> int:
    value = data.get(name)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"Field '{name}' must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError(f"Field '{name}' must be an integer")
    return int(value)


def _optional_int_field(data: Dict[str, Any], name: str) -> Optional[int]:
    if data.get(name) is None:
        return None
    return _int_field(data, name, 0)


def _float_field(data: Dict[str, Any], name: str, default: float) -> float:
    value = data.get(name)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"Field '{name}' must be a number")
    return float(value)
