"""Tests for the manifest model, parsing and serialization."""

import json

import pytest
import yaml

from reelcompose.manifest import (
    Clip,
    find_clip_overlaps,
    load_manifest,
    manifest_to_dict,
    now_iso,
    parse_caption,
    parse_clip,
    parse_manifest,
    parse_theme,
    parse_video_index,
    save_manifest,
)
from reelcompose.themes import THEME_PRESETS

from conftest import make_manifest


def _minimal_raw(**overrides):
    """Return a minimal valid manifest dict."""
    m = {
        "id": "m-1",
        "durationInFrames": 300,
        "product": {"title": "Mug", "price": "$12.00", "image": "https://example.com/mug.jpg"},
        "captions": [
            {"startFrame": 0, "endFrame": 60, "text": "HELLO", "style": "impact"},
        ],
        "clips": [
            {"startFrame": 0, "duration": 150, "type": "image", "url": "https://example.com/a.jpg"},
        ],
    }
    m.update(overrides)
    return m


class TestParseManifest:
    def test_defaults(self):
        m = parse_manifest(_minimal_raw())
        assert m.version == 1
        assert m.fps == 30
        assert (m.width, m.height) == (1080, 1920)
        assert m.music_volume == 0.3
        assert m.voice_volume == 1.0
        assert m.theme is None

    def test_captions_and_clips_are_tuples(self):
        m = parse_manifest(_minimal_raw())
        assert isinstance(m.captions, tuple)
        assert isinstance(m.clips, tuple)
        assert m.captions[0].position == "center"

    def test_missing_duration_raises(self):
        raw = _minimal_raw()
        del raw["durationInFrames"]
        with pytest.raises(ValueError, match="durationInFrames"):
            parse_manifest(raw)

    def test_zero_duration_raises(self):
        with pytest.raises(ValueError, match="durationInFrames"):
            parse_manifest(_minimal_raw(durationInFrames=0))

    def test_zero_fps_raises(self):
        with pytest.raises(ValueError, match="fps"):
            parse_manifest(_minimal_raw(fps=0))

    def test_missing_product_raises(self):
        raw = _minimal_raw()
        del raw["product"]
        with pytest.raises(ValueError, match="product"):
            parse_manifest(raw)

    def test_volume_out_of_range_raises(self):
        with pytest.raises(ValueError, match="musicVolume"):
            parse_manifest(_minimal_raw(musicVolume=1.5))

    def test_generates_id_when_absent(self):
        raw = _minimal_raw()
        del raw["id"]
        assert parse_manifest(raw).id

    def test_not_a_mapping_raises(self):
        with pytest.raises(ValueError, match="mapping"):
            parse_manifest(["not", "a", "dict"])


class TestParseCaption:
    def test_end_before_start_raises(self):
        raw = {"startFrame": 60, "endFrame": 40, "text": "X", "style": "impact"}
        with pytest.raises(ValueError, match=r"Caption 2: endFrame \(40\) must be > startFrame \(60\)"):
            parse_caption(raw, 2)

    def test_end_past_duration_raises(self):
        raw = {"startFrame": 0, "endFrame": 400, "text": "X", "style": "impact"}
        with pytest.raises(ValueError, match="exceeds durationInFrames"):
            parse_caption(raw, 0, 300)

    def test_unknown_style_raises(self):
        raw = {"startFrame": 0, "endFrame": 10, "text": "X", "style": "wobble"}
        with pytest.raises(ValueError, match="invalid style"):
            parse_caption(raw, 0)

    def test_overrides(self):
        raw = {
            "startFrame": 0, "endFrame": 10, "text": "X", "style": "impact",
            "color": "#ff0000", "fontSize": 72, "fontWeight": 700, "fontFamily": "Inter",
        }
        c = parse_caption(raw, 0)
        assert (c.color, c.font_size, c.font_weight, c.font_family) == ("#ff0000", 72, 700, "Inter")

    def test_bad_override_color_raises(self):
        raw = {"startFrame": 0, "endFrame": 10, "text": "X", "style": "impact", "color": "red"}
        with pytest.raises(ValueError, match="color"):
            parse_caption(raw, 0)

    def test_font_weight_bounds(self):
        raw = {"startFrame": 0, "endFrame": 10, "text": "X", "style": "impact", "fontWeight": 1000}
        with pytest.raises(ValueError, match="fontWeight"):
            parse_caption(raw, 0)

    def test_float_frames_that_are_integral_accepted(self):
        raw = {"startFrame": 0.0, "endFrame": 30.0, "text": "X", "style": "impact"}
        c = parse_caption(raw, 0)
        assert c.end_frame == 30 and isinstance(c.end_frame, int)


class TestParseClip:
    def test_defaults(self):
        c = parse_clip({"startFrame": 0, "duration": 30, "url": "a.mp4"}, 0)
        assert c.type == "video"
        assert c.source_start_time == 0.0
        assert c.transition is None
        assert c.end_frame == 30

    def test_zero_duration_raises(self):
        with pytest.raises(ValueError, match="Clip 1: 'duration'"):
            parse_clip({"startFrame": 0, "duration": 0, "url": "a.mp4"}, 1)

    def test_unknown_transition_raises(self):
        raw = {"startFrame": 0, "duration": 30, "url": "a.mp4", "transition": "wipe"}
        with pytest.raises(ValueError, match="transition"):
            parse_clip(raw, 0)

    def test_source_end_before_start_raises(self):
        raw = {"startFrame": 0, "duration": 30, "url": "a.mp4",
               "sourceStartTime": 5, "sourceEndTime": 2}
        with pytest.raises(ValueError, match="sourceEndTime"):
            parse_clip(raw, 0)

    def test_empty_url_raises(self):
        with pytest.raises(ValueError, match="url"):
            parse_clip({"startFrame": 0, "duration": 30, "url": "  "}, 0)


class TestParseTheme:
    def test_id_only_fills_from_preset(self):
        assert parse_theme({"id": "luxe"}) == THEME_PRESETS["luxe"]

    def test_partial_overlay_on_base(self):
        theme = parse_theme({"clipDuration": 30}, base=THEME_PRESETS["luxe"])
        assert theme.clip_duration == 30
        assert theme.id == "luxe"
        assert theme.primary_color == THEME_PRESETS["luxe"].primary_color

    def test_unknown_field_raises(self):
        with pytest.raises(ValueError, match="unknown field"):
            parse_theme({"id": "cyber", "sparkles": True})

    def test_unknown_id_raises(self):
        with pytest.raises(ValueError, match="unknown theme id"):
            parse_theme({"id": "vaporwave"})

    def test_bad_color_raises(self):
        with pytest.raises(ValueError, match="primaryColor"):
            parse_theme({"id": "cyber", "primaryColor": "green"})


class TestSerialization:
    def test_round_trip(self, manifest):
        assert parse_manifest(manifest_to_dict(manifest)) == manifest

    def test_round_trip_with_theme(self):
        m = make_manifest(theme=THEME_PRESETS["minimal"], music_url="music.mp3")
        assert parse_manifest(manifest_to_dict(m)) == m

    def test_camel_case_keys(self, manifest):
        d = manifest_to_dict(manifest)
        assert d["durationInFrames"] == 300
        assert d["captions"][0]["startFrame"] == 0
        assert d["clips"][0]["sourceStartTime"] == 0.0
        assert "duration_in_frames" not in d

    def test_omits_absent_optionals(self, manifest):
        d = manifest_to_dict(manifest)
        assert "audioUrl" not in d
        assert "theme" not in d
        assert "color" not in d["captions"][0]

    def test_frame_indices_stay_integers(self, manifest):
        d = json.loads(json.dumps(manifest_to_dict(manifest)))
        assert isinstance(d["captions"][1]["endFrame"], int)

    def test_now_iso_format(self):
        stamp = now_iso()
        assert stamp.endswith("Z")
        assert "T" in stamp


class TestFileIO:
    def test_yaml_round_trip(self, manifest, tmp_path):
        path = tmp_path / "m.yaml"
        save_manifest(manifest, path)
        assert yaml.safe_load(path.read_text())["id"] == "test-001"
        assert load_manifest(path) == manifest

    def test_json_round_trip(self, manifest, tmp_path):
        path = tmp_path / "m.json"
        save_manifest(manifest, path)
        assert json.loads(path.read_text())["version"] == 1
        assert load_manifest(path) == manifest

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_manifest(tmp_path / "nope.yaml")


class TestFindClipOverlaps:
    def test_tiled_clips_do_not_overlap(self, manifest):
        assert find_clip_overlaps(manifest) == []

    def test_reports_overlapping_pairs(self):
        m = make_manifest(clips=(
            Clip(start_frame=0, duration=100, url="a.jpg", type="image"),
            Clip(start_frame=50, duration=100, url="b.jpg", type="image"),
            Clip(start_frame=200, duration=50, url="c.jpg", type="image"),
        ))
        assert find_clip_overlaps(m) == [(0, 1)]


class TestParseVideoIndex:
    def _raw(self, segments):
        return {"videoId": "v1", "videoUrl": "https://example.com/p.mp4",
                "duration": 10, "segments": segments}

    def test_segments(self):
        index = parse_video_index(self._raw([
            {"label": "Unboxing", "startTime": 0, "endTime": 2.5, "confidence": 0.9},
        ]))
        assert index.segments[0].label == "Unboxing"
        assert index.segments[0].confidence == 0.9

    def test_segment_not_a_mapping_raises(self):
        with pytest.raises(ValueError, match="VideoIndex, segment 1: must be a mapping"):
            parse_video_index(self._raw([
                {"label": "Unboxing", "startTime": 0, "endTime": 2.5},
                "close-up",
            ]))
