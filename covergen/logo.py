import base64
import io
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from PIL import Image
from playwright.sync_api import sync_playwright

from .canvas import CanvasSpec
from .errors import LogoProcessingError
from .rasters import decode_image, ensure_alpha, fit_to_height, guess_mime_type, trim_border
from .settings import RenderDefaults


logger = logging.getLogger(__name__)

# White card baked behind the mark on the isolated-render path.
CARD_PADDING = 20
CARD_RADIUS = 8

_BROWSER_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]

_LOGO_READY_JS = """
() => {
    const img = document.querySelector('img.logo');
    if (!img) return false;
    if (img.complete && img.naturalWidth === 0) throw new Error('logo failed to decode');
    return img.complete && img.naturalWidth > 0;
}
"""

_LOGO_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <style>
        body {{
            margin: 0;
            padding: 0;
            width: {width}px;
            height: {height}px;
            display: flex;
            align-items: center;
            justify-content: center;
            background: transparent;
        }}
        .logo-container {{
            display: flex;
            align-items: center;
            justify-content: center;
            width: 100%;
            height: 100%;
        }}
        .logo {{
            max-height: {logo_height}px;
            max-width: 100%;
            object-fit: contain;
            background: white;
            padding: {padding}px;
            border-radius: {radius}px;
        }}
    </style>
</head>
<body>
    <div class="logo-container">
        <img src="data:{mime_type};base64,{payload}" class="logo" alt="Logo" />
    </div>
</body>
</html>
"""


class LogoPath(Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class NormalizedLogo:
    """
    Result of logo normalization, tagged with the path that produced it.

    Callers only need `image`; `path` is informational.
    """

    path: LogoPath
    image: Image.Image

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height


def build_logo_html(data: bytes, mime_type: str, canvas: CanvasSpec, target_height: int) -> str:
    return _LOGO_TEMPLATE.format(
        width=canvas.width,
        height=canvas.height,
        logo_height=target_height,
        padding=CARD_PADDING,
        radius=CARD_RADIUS,
        mime_type=mime_type,
        payload=base64.b64encode(data).decode("ascii"),
    )


class IsolatedRenderer:
    """
    Rasterize a logo inside a headless Chromium page.

    At most `max_sessions` renders run at once across the process. Each
    render starts and closes its own browser, so no session outlives a
    single logo.
    """

    def __init__(self, max_sessions: int = 2, timeout: float = 15.0) -> None:
        self.timeout = timeout
        self._sessions = threading.BoundedSemaphore(max_sessions)

    def render(
        self,
        data: bytes,
        mime_type: str,
        canvas: CanvasSpec,
        target_height: int,
    ) -> Image.Image:
        html = build_logo_html(data, mime_type, canvas, target_height)

        if not self._sessions.acquire(timeout=self.timeout):
            raise TimeoutError("No render session became available")
        try:
            png = self._screenshot(html, canvas)
        finally:
            self._sessions.release()

        shot = Image.open(io.BytesIO(png))
        shot.load()
        return shot.convert("RGBA")

    def _screenshot(self, html: str, canvas: CanvasSpec) -> bytes:
        timeout_ms = self.timeout * 1000
        with sync_playwright() as p:
            browser = p.chromium.launch(headless=True, args=_BROWSER_ARGS, timeout=timeout_ms)
            try:
                page = browser.new_page(viewport={"width": canvas.width, "height": canvas.height})
                page.set_default_timeout(timeout_ms)
                page.set_content(html, wait_until="load")
                page.wait_for_function(_LOGO_READY_JS)
                return page.locator("img.logo").screenshot(type="png", omit_background=True)
            finally:
                browser.close()


class LogoNormalizer:
    """
    Turn an arbitrary logo asset into a transparent raster of a fixed height.

    The isolated render is tried first when a renderer is configured; any
    failure there falls through to a direct trim-and-resize of the raw
    bytes. Only when both fail is `LogoProcessingError` raised.
    """

    def __init__(self, renderer: Optional[IsolatedRenderer] = None) -> None:
        self.renderer = renderer

    @classmethod
    def from_defaults(cls, defaults: RenderDefaults) -> "LogoNormalizer":
        renderer = None
        if defaults.isolated_render:
            renderer = IsolatedRenderer(
                max_sessions=defaults.render_sessions,
                timeout=defaults.render_timeout,
            )
        return cls(renderer=renderer)

    def normalize(
        self,
        data: bytes,
        canvas: CanvasSpec,
        target_height: int,
        source_url: Optional[str] = None,
    ) -> NormalizedLogo:
        if self.renderer is not None:
            try:
                mime_type = guess_mime_type(data, source_url)
                shot = self.renderer.render(data, mime_type, canvas, target_height)
                image = fit_to_height(ensure_alpha(shot), target_height)
                logger.info("Logo rendered in isolation: %dx%d", image.width, image.height)
                return NormalizedLogo(path=LogoPath.PRIMARY, image=image)
            except Exception as e:
                logger.warning("Isolated logo render failed, falling back to direct resize: %s", e)

        try:
            image = direct_resize(data, target_height)
        except Exception as e:
            raise LogoProcessingError(f"Failed to process logo image: {e}") from e

        logger.info("Logo resized directly: %dx%d", image.width, image.height)
        return NormalizedLogo(path=LogoPath.FALLBACK, image=image)


def direct_resize(data: bytes, target_height: int) -> Image.Image:
    """
    Trim the blank border off the raw logo and scale it to `target_height`,
    always returning RGBA.
    """
    # Rasterize vectors above the target so trimming doesn't force an upscale.
    source = decode_image(data, svg_height=target_height * 2)
    trimmed = trim_border(source)
    return fit_to_height(ensure_alpha(trimmed), target_height)
