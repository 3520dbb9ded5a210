from __future__ import annotations

import io

import pytest
import requests
from PIL import Image, ImageDraw

import simple_disc_builder as sdb
from conftest import fake_tracks, fixed_prober, png_bytes, unreachable_icon
from simple_disc_builder import ICON_SIZE, IconError, fetch_default_icon, normalize_icon, resolve_icon


def open_png(data: bytes) -> Image.Image:
    im = Image.open(io.BytesIO(data))
    assert im.format == "PNG"
    return im


def test_output_is_square_rgba_png():
    out = open_png(normalize_icon(png_bytes((200, 100), mode="RGB", color=(255, 0, 0))))
    assert out.size == (ICON_SIZE, ICON_SIZE)
    assert out.mode == "RGBA"


def test_cover_fit_fills_the_square():
    out = open_png(normalize_icon(png_bytes((64, 480), color=(0, 0, 255, 255))))
    for xy in ((0, 0), (ICON_SIZE - 1, 0), (0, ICON_SIZE - 1), (ICON_SIZE - 1, ICON_SIZE - 1)):
        assert out.getpixel(xy)[3] == 255


def test_cover_fit_crops_around_the_center():
    src = Image.new("RGB", (300, 100), (255, 0, 0))
    draw = ImageDraw.Draw(src)
    draw.rectangle((100, 0, 199, 99), fill=(0, 255, 0))
    draw.rectangle((200, 0, 299, 99), fill=(0, 0, 255))
    buf = io.BytesIO()
    src.save(buf, format="PNG")

    out = open_png(normalize_icon(buf.getvalue()))
    for xy in ((40, 540), (540, 540), (1040, 540)):
        assert out.getpixel(xy) == (0, 255, 0, 255)


def test_extreme_aspect_icon_is_cropped_at_target_size():
    sliver = png_bytes((2, 4000), color=(0, 128, 255, 255))
    out = open_png(normalize_icon(sliver))
    assert out.size == (ICON_SIZE, ICON_SIZE)
    assert out.getpixel((540, 540)) == (0, 128, 255, 255)

    durations = {"a.ogg": 100.0}
    result = sdb.build_pack(fake_tracks(durations), sdb.PackMetadata(), sliver, prober=fixed_prober(durations))
    assert result.icon_included


def test_background_stays_transparent():
    out = open_png(normalize_icon(png_bytes((300, 300), color=(0, 0, 0, 0))))
    assert out.getpixel((540, 540))[3] == 0
    assert out.getpixel((0, 0))[3] == 0


def test_square_icon_at_target_size_is_unchanged():
    src = Image.new("RGBA", (ICON_SIZE, ICON_SIZE), (20, 40, 60, 255))
    draw = ImageDraw.Draw(src)
    draw.ellipse((100, 100, 700, 900), fill=(250, 200, 10, 255))
    draw.line((0, 0, ICON_SIZE, ICON_SIZE), fill=(255, 255, 255, 255), width=9)
    buf = io.BytesIO()
    src.save(buf, format="PNG")

    out = open_png(normalize_icon(buf.getvalue()))
    assert out.size == src.size
    assert out.tobytes() == src.tobytes()


def test_undecodable_icon():
    with pytest.raises(IconError):
        normalize_icon(b"GIF89a-but-not-really")


def test_resolve_prefers_custom_icon():
    def must_not_fetch(_url=None):
        raise AssertionError("default icon should not be downloaded")

    out = resolve_icon(png_bytes((10, 10)), fetcher=must_not_fetch)
    assert open_png(out).size == (ICON_SIZE, ICON_SIZE)


def test_resolve_uses_default_icon():
    out = resolve_icon(None, fetcher=lambda _url=None: png_bytes((512, 512)))
    assert open_png(out).size == (ICON_SIZE, ICON_SIZE)


def test_resolve_soft_fails(caplog):
    assert resolve_icon(None, fetcher=unreachable_icon) is None
    assert "without icon" in caplog.text
    assert resolve_icon(b"junk") is None


def test_resolve_without_default():
    assert resolve_icon(None, use_default=False) is None


def test_fetch_default_icon_network_error(no_network):
    with pytest.raises(IconError, match="Could not download"):
        fetch_default_icon("https://example.invalid/icon.png")


class _Response:
    def __init__(self, status: int, content: bytes = b""):
        self.status_code = status
        self.content = content

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")


def test_fetch_default_icon_http_error(monkeypatch):
    monkeypatch.setattr(requests, "get", lambda *a, **kw: _Response(404))
    with pytest.raises(IconError, match="404"):
        fetch_default_icon("https://example.invalid/icon.png")


def test_fetch_default_icon_honours_env(monkeypatch):
    seen = {}

    def fake_get(url, **kwargs):
        seen["url"] = url
        return _Response(200, b"png")

    monkeypatch.setenv("SDB_DEFAULT_ICON_URL", "https://mirror.example/jukebox.png")
    monkeypatch.setattr(requests, "get", fake_get)
    assert fetch_default_icon() == b"png"
    assert seen["url"] == "https://mirror.example/jukebox.png"
    assert sdb.default_icon_url() == "https://mirror.example/jukebox.png"
