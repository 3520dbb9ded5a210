from __future__ import annotations

import io
import wave

import pytest
from PIL import Image

from simple_disc_builder import IconError, Track


def wav_bytes(seconds: float, rate: int = 44100) -> bytes:
    buf = io.BytesIO()
    with wave.open(buf, "wb") as w:
        w.setnchannels(1)
        w.setsampwidth(2)
        w.setframerate(rate)
        w.writeframes(b"\x00\x00" * int(seconds * rate))
    return buf.getvalue()


def png_bytes(size: tuple[int, int], color=(255, 0, 0, 255), mode: str = "RGBA") -> bytes:
    buf = io.BytesIO()
    Image.new(mode, size, color).save(buf, format="PNG")
    return buf.getvalue()


def fake_tracks(durations: dict[str, float]) -> list[Track]:
    return [Track(name=name, data=name.encode("utf-8")) for name in durations]


def fixed_prober(durations: dict[str, float]):
    def _probe(track: Track) -> float:
        return durations[track.name]

    return _probe


def unreachable_icon(_url=None) -> bytes:
    raise IconError("icon host unreachable")


@pytest.fixture
def no_network(monkeypatch):
    import requests

    def _blocked(*args, **kwargs):
        raise requests.ConnectionError("network disabled in tests")

    monkeypatch.setattr(requests, "get", _blocked)
