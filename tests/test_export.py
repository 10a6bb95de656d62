"""Tests for still rendering and mp4 export."""

from dataclasses import replace

import pytest
from moviepy import VideoFileClip
from PIL import Image

from reelcompose.export import export_video, render_frame, render_still
from reelcompose.manifest import Clip


class TestRenderFrame:
    def test_matches_manifest_dimensions(self, small_manifest):
        assert render_frame(small_manifest, 0).shape == (192, 108, 3)


class TestRenderStill:
    def test_writes_png(self, small_manifest, tmp_path):
        out = tmp_path / "stills" / "f10.png"
        render_still(small_manifest, 10, str(out))
        with Image.open(out) as img:
            assert img.size == (108, 192)

    def test_out_of_range_raises(self, small_manifest, tmp_path):
        with pytest.raises(ValueError, match="out of range"):
            render_still(small_manifest, 300, str(tmp_path / "x.png"))


class TestExportVideo:
    def test_preview_with_voice_track(self, small_manifest, tone_audio, tmp_path):
        m = replace(small_manifest, audio_url=str(tone_audio))
        out = tmp_path / "out.mp4"
        export_video(m, str(out), preview_duration=1.0, quiet=True)
        clip = VideoFileClip(str(out))
        try:
            assert tuple(clip.size) == (108, 192)
            assert clip.duration == pytest.approx(1.0, abs=0.15)
            assert clip.audio is not None
        finally:
            clip.close()

    def test_missing_audio_exports_silent(self, small_manifest, tmp_path):
        m = replace(small_manifest, music_url=str(tmp_path / "missing.mp3"))
        out = tmp_path / "silent.mp4"
        export_video(m, str(out), preview_duration=0.5, quiet=True)
        clip = VideoFileClip(str(out))
        try:
            assert clip.audio is None
        finally:
            clip.close()

    def test_video_clip_source(self, small_manifest, source_video, tmp_path):
        m = replace(
            small_manifest,
            clips=(Clip(start_frame=0, duration=300, url=str(source_video)),),
        )
        out = tmp_path / "video.mp4"
        export_video(m, str(out), preview_duration=0.5, quiet=True)
        assert out.stat().st_size > 0
