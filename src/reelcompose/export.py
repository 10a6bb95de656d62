"""Frame rendering and mp4 export.

render_frame() is the pure per-frame pipeline (scene graph, then
pixels). export_video() drives it through a moviepy VideoClip and
mixes the manifest's voice and music tracks at their volumes.
"""

import base64
import logging
import tempfile
from pathlib import Path

import numpy as np
import requests
from moviepy import AudioFileClip, CompositeAudioClip, VideoClip, afx
from PIL import Image

from .compositor import rasterize_scene
from .manifest import VideoManifest
from .media import MediaLoader, REQUEST_TIMEOUT
from .timeline import audio_tracks, build_scene

logger = logging.getLogger(__name__)


def render_frame(
    manifest: VideoManifest, frame: int, loader: MediaLoader | None = None,
) -> np.ndarray:
    """RGB pixels of one frame, shape (height, width, 3)."""
    return rasterize_scene(build_scene(manifest, frame), loader)


def render_still(
    manifest: VideoManifest, frame: int, output_path: str,
    loader: MediaLoader | None = None,
) -> None:
    """Render one frame to an image file (format from the suffix)."""
    if not 0 <= frame < manifest.duration_in_frames:
        raise ValueError(
            f"Frame {frame} out of range "
            f"(manifest has {manifest.duration_in_frames} frames, "
            f"0-{manifest.duration_in_frames - 1})"
        )
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(render_frame(manifest, frame, loader)).save(output_path)


# ── Audio ────────────────────────────────────────────────────────


def _materialize_audio(url: str, workdir: Path, name: str, session) -> Path | None:
    """Local file for an audio URL (data:, http(s) or path), or None."""
    try:
        if url.startswith("data:"):
            _, _, payload = url.partition(",")
            path = workdir / f"{name}.mp3"
            path.write_bytes(base64.b64decode(payload))
            return path
        if url.startswith(("http://", "https://")):
            response = session.get(url, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
            path = workdir / f"{name}{Path(url.split('?')[0]).suffix or '.mp3'}"
            path.write_bytes(response.content)
            return path
    except (requests.RequestException, ValueError, OSError) as e:
        logger.warning("Audio fetch failed for %s track: %s", name, e)
        return None
    path = Path(url)
    if not path.exists():
        logger.warning("Audio file not found for %s track: %s", name, url)
        return None
    return path


def _mix_audio(manifest: VideoManifest, workdir: Path, session, duration: float):
    clips = []
    for track in audio_tracks(manifest):
        path = _materialize_audio(track["url"], workdir, track["kind"], session)
        if path is None:
            continue
        try:
            audio = AudioFileClip(str(path))
        except (OSError, ValueError, RuntimeError) as e:
            logger.warning("Audio decode failed for %s track: %s", track["kind"], e)
            continue
        if audio.duration > duration:
            audio = audio.subclipped(0, duration)
        clips.append(audio.with_effects([afx.MultiplyVolume(track["volume"])]))
    if not clips:
        return None
    return CompositeAudioClip(clips)


# ── Export ───────────────────────────────────────────────────────


def export_video(
    manifest: VideoManifest,
    output_path: str,
    codec: str = "libx264",
    preview_duration: float | None = None,
    quiet: bool = False,
    loader: MediaLoader | None = None,
) -> None:
    """Render every frame of a manifest and write an mp4.

    Args:
        manifest: Validated manifest.
        output_path: Destination mp4 path.
        codec: Video codec, "libx264" (CPU) or "h264_nvenc" (GPU).
        preview_duration: If set, cap the export to this many seconds.
        quiet: Suppress moviepy's progress bar.
        loader: Media loader; a fresh one is used if omitted.
    """
    owns_loader = loader is None
    loader = loader or MediaLoader()
    fps = manifest.fps
    total = manifest.duration_in_frames
    duration = total / fps
    if preview_duration:
        duration = min(duration, preview_duration)

    def _frame_at(t):
        return render_frame(manifest, min(int(round(t * fps)), total - 1), loader)

    clip = VideoClip(frame_function=_frame_at, duration=duration)

    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    quality = ["-cq", "20"] if codec == "h264_nvenc" else ["-crf", "20"]
    with tempfile.TemporaryDirectory(prefix="reelcompose-audio-") as tmp:
        audio = _mix_audio(manifest, Path(tmp), loader.session, duration)
        if audio is not None:
            clip = clip.with_audio(audio)
        try:
            clip.write_videofile(
                str(output_path),
                fps=fps,
                codec=codec,
                audio=audio is not None,
                audio_codec="aac",
                preset="medium",
                ffmpeg_params=[*quality, "-pix_fmt", "yuv420p"],
                logger=None if quiet else "bar",
            )
        finally:
            clip.close()
            if owns_loader:
                loader.close()
