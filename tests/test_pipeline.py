"""Tests for the URL-to-manifest generation pipeline."""

import json

import pytest

from reelcompose.demo import DEMO_CAPTIONS, DEMO_SCRIPT, demo_manifest
from reelcompose.manifest import manifest_to_dict, parse_manifest
from reelcompose.pipeline import fit_captions, generate_video, theme_for_style, tile_clips
from reelcompose.tts import TTSResult

from conftest import FakeLLM, FakeResponse, FakeSession

PRODUCT_URL = "https://store.test/products/lamp"
SHOPIFY = {
    "product": {
        "title": "Brass Lamp",
        "variants": [{"price": "64.00"}],
        "images": [{"src": f"https://cdn.store.test/{i}.jpg"} for i in range(6)],
    },
}


def _session():
    return FakeSession({f"{PRODUCT_URL}.json": FakeResponse(json_data=SHOPIFY)})


class FakeTTS:
    def __init__(self, result):
        self.result = result
        self.calls = []

    def voiceover(self, script, style):
        self.calls.append((script, style))
        return self.result


class TestHelpers:
    def test_theme_for_style(self):
        assert theme_for_style("luxury", "anything") == "luxe"
        assert theme_for_style("unknown", "RGB Gaming Keyboard") == "cyber"

    def test_fit_captions_rescales(self):
        fitted = fit_captions(DEMO_CAPTIONS, 150)
        assert [(c.start_frame, c.end_frame) for c in fitted] == [
            (0, 30), (30, 60), (60, 90), (90, 120), (120, 150),
        ]

    def test_fit_captions_identity(self):
        assert fit_captions(DEMO_CAPTIONS, 300) == DEMO_CAPTIONS

    def test_tile_clips_cover_duration(self):
        clips = tile_clips(["a", "b", "c"], 100)
        assert [(c.start_frame, c.duration) for c in clips] == [(0, 33), (33, 33), (66, 34)]
        assert clips[-1].end_frame == 100

    def test_tile_clips_caps_count(self):
        assert len(tile_clips([str(i) for i in range(10)], 300)) == 4

    def test_tile_clips_empty(self):
        assert tile_clips([], 300) == ()


class TestGenerateVideo:
    def test_builds_valid_manifest(self):
        m = generate_video(PRODUCT_URL, style="luxury", duration="medium", session=_session())
        assert m.version == 1
        assert m.duration_in_frames == 300
        assert m.product.title == "Brass Lamp"
        assert m.product.price == "$64.00"
        assert m.product.url == PRODUCT_URL
        assert m.theme.id == "luxe"
        assert len(m.clips) == 4
        assert m.script == DEMO_SCRIPT
        assert parse_manifest(json.loads(json.dumps(manifest_to_dict(m)))) == m

    def test_captions_fit_short_duration(self):
        m = generate_video(PRODUCT_URL, session=_session())
        assert m.duration_in_frames == 150
        assert max(c.end_frame for c in m.captions) == 150

    def test_uses_model_script(self):
        answer = json.dumps({
            "script": "BRIGHT\n$64",
            "captions": [
                {"startFrame": 0, "endFrame": 150, "text": "BRIGHT", "style": "impact"},
                {"startFrame": 150, "endFrame": 300, "text": "$64", "style": "impact"},
            ],
        })
        m = generate_video(PRODUCT_URL, llm=FakeLLM({"m": answer}), models=["m"], session=_session())
        assert m.script == "BRIGHT\n$64"
        assert [(c.start_frame, c.end_frame) for c in m.captions] == [(0, 75), (75, 150)]

    def test_voiceover_attached(self):
        tts = FakeTTS(TTSResult("data:audio/mpeg;base64,AAAA", 900))
        m = generate_video(PRODUCT_URL, style="playful", tts=tts, session=_session())
        assert m.audio_url == "data:audio/mpeg;base64,AAAA"
        assert tts.calls == [(DEMO_SCRIPT, "playful")]

    def test_voiceover_failure_is_silent(self):
        m = generate_video(PRODUCT_URL, tts=FakeTTS(None), session=_session())
        assert m.audio_url is None

    def test_scrape_failure_still_renders(self):
        m = generate_video("https://offline.test/item", session=FakeSession())
        assert m.product.title == "Product from offline.test"
        assert len(m.clips) == 1

    def test_unknown_duration_raises(self):
        with pytest.raises(ValueError, match="Unknown duration"):
            generate_video(PRODUCT_URL, duration="epic", session=_session())


class TestDemoManifest:
    def test_round_trips(self):
        m = demo_manifest()
        assert m.id == "demo-001"
        assert m.duration_in_frames == 300
        assert parse_manifest(manifest_to_dict(m)) == m
