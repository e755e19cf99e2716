import pytest
from PIL import Image

from covergen.errors import InvalidImageError
from covergen.rasters import (
    cover_fit,
    decode_image,
    ensure_alpha,
    fit_to_height,
    guess_mime_type,
    is_svg,
    trim_border,
)

from .conftest import image_bytes, logo_bytes


SVG = b'<svg xmlns="http://www.w3.org/2000/svg" width="507" height="144"><rect width="507" height="144" fill="red"/></svg>'


def test_decode_rejects_garbage():
    with pytest.raises(InvalidImageError):
        decode_image(b"definitely not an image")


def test_decode_rejects_empty_payload():
    with pytest.raises(InvalidImageError):
        decode_image(b"")


def test_decode_keeps_alpha_only_when_present():
    assert decode_image(image_bytes((10, 10), mode="RGB")).mode == "RGB"
    assert decode_image(logo_bytes((10, 10))).mode == "RGBA"
    assert decode_image(image_bytes((10, 10), color=128, mode="L")).mode == "RGB"


def test_is_svg():
    assert is_svg(SVG)
    assert is_svg(b'<?xml version="1.0"?>\n' + SVG)
    assert not is_svg(image_bytes((4, 4)))
    assert not is_svg(b"<html><body>svg</body></html>")


DOCTYPE = b'<!DOCTYPE svg PUBLIC "-//W3C//DTD SVG 1.1//EN" "http://www.w3.org/Graphics/SVG/1.1/DTD/svg11.dtd">\n'


@pytest.mark.parametrize(
    "prolog",
    [
        DOCTYPE,
        b'<?xml version="1.0" encoding="UTF-8"?>\n' + DOCTYPE,
        b"<!-- Generator: Adobe Illustrator 27.0 -->\n",
        b'<?xml version="1.0"?>\n<!-- exported -->\n' + DOCTYPE + b"<!-- logo -->\n",
        b'<!DOCTYPE svg [<!ENTITY ns "http://www.w3.org/2000/svg">]>\n',
        b"\xef\xbb\xbf",
        b'\xef\xbb\xbf<?xml version="1.0"?>\n',
        b"<!--" + b"x" * 5000 + b"-->\n",
    ],
)
def test_is_svg_skips_prolog(prolog):
    assert is_svg(prolog + SVG)
    assert guess_mime_type(prolog + SVG) == "image/svg+xml"


def test_guess_mime_type_sniffs_bytes():
    assert guess_mime_type(SVG) == "image/svg+xml"
    assert guess_mime_type(image_bytes((4, 4))) == "image/png"
    assert guess_mime_type(image_bytes((4, 4), fmt="JPEG"), "https://x.test/logo.png") == "image/jpeg"


def test_guess_mime_type_falls_back_to_extension():
    assert guess_mime_type(b"???", "https://x.test/a/logo.svg?w=2000") == "image/svg+xml"
    assert guess_mime_type(b"???", "https://x.test/logo.webp") == "image/webp"
    assert guess_mime_type(b"???") == "image/png"


def test_cover_fit_crops_longer_axis_symmetrically():
    img = Image.new("RGB", (300, 100), (255, 0, 0))
    img.paste(Image.new("RGB", (100, 100), (0, 255, 0)), (100, 0))
    img.paste(Image.new("RGB", (100, 100), (0, 0, 255)), (200, 0))

    fitted = cover_fit(img, (100, 100))

    assert fitted.size == (100, 100)
    for x in (2, 97):
        r, g, b = fitted.getpixel((x, 50))
        assert g > 240 and r < 15 and b < 15


def test_cover_fit_scales_up_to_fill():
    fitted = cover_fit(Image.new("RGB", (400, 100)), (1120, 400))
    assert fitted.size == (1120, 400)


def test_fit_to_height_preserves_aspect_ratio():
    resized = fit_to_height(Image.new("RGBA", (507, 144)), 200)
    assert resized.size == (704, 200)


def test_fit_to_height_does_not_mutate_source():
    source = Image.new("RGBA", (100, 50))
    fit_to_height(source, 50).putpixel((0, 0), (1, 2, 3, 4))
    assert source.getpixel((0, 0)) == (0, 0, 0, 0)


def test_trim_transparent_border():
    img = decode_image(logo_bytes((40, 20), border=7))
    assert trim_border(img).size == (40, 20)


def test_trim_solid_border():
    img = Image.new("RGB", (60, 60), (255, 255, 255))
    img.paste(Image.new("RGB", (20, 30), (10, 10, 10)), (15, 5))
    assert trim_border(img).size == (20, 30)


def test_trim_uniform_image_is_unchanged():
    img = Image.new("RGB", (30, 30), (255, 255, 255))
    assert trim_border(img).size == (30, 30)


def test_ensure_alpha():
    assert ensure_alpha(Image.new("RGB", (2, 2))).mode == "RGBA"


def test_decode_svg(require_cairo):
    img = decode_image(SVG, svg_height=288)
    assert img.mode == "RGBA"
    assert img.height == 288
    assert img.width == pytest.approx(1014, abs=1)
