import io
from typing import Dict, Optional, Tuple

import pytest
from PIL import Image

from covergen.errors import FetchError
from covergen.settings import RenderDefaults


BACKGROUND_URL = "https://cdn.example.com/background.jpg"
LOGO_URL = "https://cdn.example.com/logo.png"
TEXTURE_URL = "https://cdn.example.com/texture.png"


def image_bytes(
    size: Tuple[int, int],
    color=(128, 128, 128),
    mode: str = "RGB",
    fmt: str = "PNG",
) -> bytes:
    buf = io.BytesIO()
    Image.new(mode, size, color).save(buf, format=fmt)
    return buf.getvalue()


def logo_bytes(
    size: Tuple[int, int] = (507, 144),
    border: int = 0,
    color=(220, 20, 20, 255),
) -> bytes:
    """A solid mark, optionally surrounded by a transparent border."""
    w, h = size
    img = Image.new("RGBA", (w + 2 * border, h + 2 * border), (0, 0, 0, 0))
    img.paste(Image.new("RGBA", size, color), (border, border))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def decode(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


class FakeFetcher:
    """In-memory stand-in for AssetFetcher."""

    def __init__(self, assets: Optional[Dict[str, bytes]] = None) -> None:
        self.assets = dict(assets or {})
        self.requested = []

    def fetch(self, url: str) -> bytes:
        self.requested.append(url)
        if url not in self.assets:
            raise FetchError(f"Failed to fetch {url}: HTTP 404", details={"status": 404})
        return self.assets[url]


class FakeRenderer:
    def __init__(self, image: Optional[Image.Image] = None, error: Optional[Exception] = None) -> None:
        self.image = image
        self.error = error
        self.calls = []

    def render(self, data, mime_type, canvas, target_height):
        self.calls.append((mime_type, canvas, target_height))
        if self.error is not None:
            raise self.error
        return self.image


@pytest.fixture
def defaults() -> RenderDefaults:
    return RenderDefaults(isolated_render=False, api_token="test-token")


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher(
        {
            BACKGROUND_URL: image_bytes((3840, 2160), color=(90, 110, 130), fmt="JPEG"),
            LOGO_URL: logo_bytes(border=12),
        }
    )


@pytest.fixture
def require_cairo():
    try:
        import cairosvg  # noqa: F401
    except (ImportError, OSError) as e:
        pytest.skip(f"cairo unavailable: {e}")
