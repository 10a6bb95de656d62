"""Shared test fixtures for reelcompose tests."""

import json
import subprocess

import pytest
import imageio_ffmpeg
import requests

from reelcompose.manifest import Caption, Clip, Product, VideoManifest

_FFMPEG = imageio_ffmpeg.get_ffmpeg_exe()


@pytest.fixture
def source_video(tmp_path):
    """Create a 5-second test video (320x240, 10fps) with audio using ffmpeg.

    Shared across test_media.py and test_export.py.
    """
    out = tmp_path / "source.mp4"
    subprocess.run(
        [
            _FFMPEG, "-y",
            "-f", "lavfi", "-i", "color=c=blue:s=320x240:d=5:r=10",
            "-f", "lavfi", "-i", "anullsrc=r=44100:cl=mono",
            "-shortest",
            "-c:v", "libx264", "-crf", "28", "-pix_fmt", "yuv420p",
            "-c:a", "aac", "-b:a", "32k",
            str(out),
        ],
        check=True,
        capture_output=True,
    )
    return out


@pytest.fixture
def tone_audio(tmp_path):
    """Create a 2-second sine tone mp3 using ffmpeg."""
    out = tmp_path / "tone.mp3"
    subprocess.run(
        [
            _FFMPEG, "-y",
            "-f", "lavfi", "-i", "sine=frequency=440:duration=2",
            "-c:a", "libmp3lame", "-b:a", "64k",
            str(out),
        ],
        check=True,
        capture_output=True,
    )
    return out


# ── Manifest builders ─────────────────────────────────────────────


def make_manifest(**overrides) -> VideoManifest:
    """A small valid manifest: 2 captions, 3 clips over 300 frames."""
    fields = {
        "id": "test-001",
        "script": "A\nB",
        "product": Product(
            title="Test Earbuds",
            price="$49.99",
            image="https://via.placeholder.com/800x800?text=Product",
        ),
        "duration_in_frames": 300,
        "captions": (
            Caption(0, 60, "A", "impact"),
            Caption(60, 120, "B", "glitch"),
        ),
        "clips": (
            Clip(start_frame=0, duration=100, url="https://example.com/1.jpg", type="image"),
            Clip(start_frame=100, duration=100, url="https://example.com/2.jpg", type="image"),
            Clip(start_frame=200, duration=100, url="https://example.com/3.jpg", type="image"),
        ),
        "created_at": "2026-01-01T00:00:00.000Z",
        "updated_at": "2026-01-01T00:00:00.000Z",
    }
    fields.update(overrides)
    return VideoManifest(**fields)


@pytest.fixture
def manifest():
    return make_manifest()


@pytest.fixture
def small_manifest():
    """Same timeline at 108x192 so rasterizing stays fast."""
    return make_manifest(width=108, height=192)


# ── Network fakes ─────────────────────────────────────────────────


class FakeResponse:
    def __init__(self, status_code=200, content=b"", json_data=None, text=None):
        self.status_code = status_code
        if json_data is not None:
            content = json.dumps(json_data).encode("utf-8")
        elif text is not None:
            content = text.encode("utf-8")
        self.content = content
        self.text = content.decode("utf-8", errors="replace")

    def json(self):
        return json.loads(self.text)

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    """Stands in for requests.Session; routes are url -> FakeResponse.

    Unknown URLs answer 404. Every call is recorded in .calls.
    """

    def __init__(self, routes=None, error=None):
        self.routes = routes or {}
        self.error = error
        self.calls = []

    def _respond(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.error is not None:
            raise self.error
        return self.routes.get(url, FakeResponse(404))

    def get(self, url, **kwargs):
        return self._respond("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._respond("POST", url, **kwargs)


class FakeLLM:
    """Text generator with scripted answers per model.

    A value that is an Exception instance is raised instead of returned.
    """

    def __init__(self, answers):
        self.answers = answers
        self.calls = []

    def generate(self, model, prompt):
        self.calls.append((model, prompt))
        answer = self.answers[model]
        if isinstance(answer, Exception):
            raise answer
        return answer
